"""Service abstractions for the packet filter, systemd and managed files."""

from fwctl.services.packetfilter import AddressFamily, FAMILY_ORDER, PacketFilter
from fwctl.services.systemd import SystemdService
from fwctl.services.orchestrator import Orchestrator, resolve_scope

__all__ = [
    "AddressFamily",
    "FAMILY_ORDER",
    "PacketFilter",
    "SystemdService",
    "Orchestrator",
    "resolve_scope",
]
