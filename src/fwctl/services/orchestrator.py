"""Install/remove state machine.

Every invocation walks the same states:

    IDLE -> SCOPE_RESOLVED -> GUARDED -> MATERIALIZED -> ACTIVATED -> DONE   (install)
    IDLE -> SCOPE_RESOLVED -> GUARDED -> DEACTIVATED -> DONE                 (remove)

Any error moves the machine to ABORTED and propagates. Nothing is
rolled back: the guard runs for every family in scope before the first
mutation, and after that a failure leaves whatever the failed step
produced.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from fwctl.core.context import ExecutionContext
from fwctl.core.deps import Toolchain
from fwctl.core.exceptions import FwError, RulesetPersistError, UsageError
from fwctl.core.executor import CommandExecutor
from fwctl.services.artifacts import ManagedArtifactSet, PreconditionGuard
from fwctl.services.directory_state import DirectoryLifecycleTracker, DirectoryState
from fwctl.services.packetfilter import AddressFamily, FAMILY_ORDER, PacketFilter
from fwctl.services.policy import PolicyEngine, RulesetSnapshot
from fwctl.services.systemd import ServiceStatus, SystemdService
from fwctl.services.units import ServiceUnitManager, ServiceUnitSpec


class OrchestratorState(str, Enum):
    IDLE = "idle"
    SCOPE_RESOLVED = "scope_resolved"
    GUARDED = "guarded"
    MATERIALIZED = "materialized"
    ACTIVATED = "activated"
    DEACTIVATED = "deactivated"
    DONE = "done"
    ABORTED = "aborted"


def resolve_scope(scope: Optional[str]) -> tuple[AddressFamily, ...]:
    """Map a scope argument onto the families it covers.

    Args:
        scope: None for both families, "4" or "6" for one

    Raises:
        UsageError: If scope is anything else
    """
    if scope is None:
        return FAMILY_ORDER
    try:
        return (AddressFamily(str(scope)),)
    except ValueError:
        raise UsageError(
            f"Invalid scope: {scope}",
            step="scope",
            hint="Use 4, 6, or omit the argument for both",
        )


@dataclass
class InstallReport:
    families: tuple[AddressFamily, ...]
    directory_state: DirectoryState
    snapshots: dict[AddressFamily, RulesetSnapshot] = field(default_factory=dict)
    units: dict[AddressFamily, ServiceUnitSpec] = field(default_factory=dict)


@dataclass
class RemoveReport:
    families: tuple[AddressFamily, ...]
    directory_state: DirectoryState
    directory_removed: bool = False


@dataclass
class FamilyStatus:
    """Read-only view of one family on the host."""
    family: AddressFamily
    artifacts: ManagedArtifactSet
    present: list[Path]
    service: ServiceStatus

    @property
    def managed(self) -> bool:
        return len(self.present) == len(self.artifacts.paths)

    @property
    def partial(self) -> bool:
        return 0 < len(self.present) < len(self.artifacts.paths)


class Orchestrator:
    """Drives install, remove and status for a scope of families.

    Collaborators are built per family; tests may inject a packet
    filter factory and a systemd service.
    """

    def __init__(
        self,
        ctx: ExecutionContext,
        executor: CommandExecutor,
        toolchain: Toolchain,
        *,
        systemd: Optional[SystemdService] = None,
        packet_filter_factory: Optional[Callable[[AddressFamily], PacketFilter]] = None,
    ) -> None:
        self.ctx = ctx
        self.executor = executor
        self.toolchain = toolchain
        self.config = ctx.config
        self.systemd = systemd or SystemdService(ctx, executor, toolchain)
        self._packet_filter_factory = packet_filter_factory or self._default_packet_filter
        self.guard = PreconditionGuard(self.config)
        self.tracker = DirectoryLifecycleTracker(ctx, executor)
        self.state = OrchestratorState.IDLE
        self.history: list[OrchestratorState] = [self.state]

    def _default_packet_filter(self, family: AddressFamily) -> PacketFilter:
        return PacketFilter(self.ctx, self.executor, self.toolchain, family)

    def _transition(self, state: OrchestratorState) -> None:
        self.ctx.console.debug(f"State: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _policy_engine(self, family: AddressFamily) -> PolicyEngine:
        return PolicyEngine(
            self.ctx,
            self.executor,
            self._packet_filter_factory(family),
            self.guard.artifacts(family),
        )

    def _unit_manager(self, family: AddressFamily) -> ServiceUnitManager:
        return ServiceUnitManager(
            self.ctx,
            self.executor,
            self.systemd,
            self.toolchain,
            self.guard.artifacts(family),
        )

    # =========================================================================
    # Install
    # =========================================================================

    def install(self, scope: Optional[str] = None) -> InstallReport:
        """Install the baseline firewall for every family in scope.

        Raises:
            UsageError: If the scope is invalid
            AlreadyManagedError: If any family has an artifact in place
            RulesetPersistError: If a ruleset cannot be applied or saved
            ServiceLifecycleError: If a unit cannot be written or started
        """
        try:
            return self._install(scope)
        except FwError:
            self._transition(OrchestratorState.ABORTED)
            raise

    def _install(self, scope: Optional[str]) -> InstallReport:
        directory_state = self.tracker.capture_initial_state()

        families = resolve_scope(scope)
        self._transition(OrchestratorState.SCOPE_RESOLVED)

        for family in families:
            self.guard.assert_absent(family)
        self._transition(OrchestratorState.GUARDED)

        report = InstallReport(families=families, directory_state=directory_state)

        try:
            self.tracker.record(directory_state)
            self.tracker.ensure_directory()
        except OSError as e:
            raise FwError(
                f"Could not prepare {self.config.rules_dir}",
                step="install",
                hint=f"Check that {self.config.state_dir} and {self.config.rules_dir.parent} are writable",
                details=[str(e)],
            ) from e

        for family in families:
            self.ctx.console.info(f"Installing {family.label} firewall")

            engine = self._policy_engine(family)
            engine.materialize_empty()
            report.snapshots[family] = engine.materialize_hardened()
            self._transition(OrchestratorState.MATERIALIZED)

            report.units[family] = self._unit_manager(family).activate()
            self._transition(OrchestratorState.ACTIVATED)

        self._transition(OrchestratorState.DONE)
        return report

    # =========================================================================
    # Remove
    # =========================================================================

    def remove(self, scope: Optional[str] = None) -> RemoveReport:
        """Remove the baseline firewall for every family in scope.

        Raises:
            UsageError: If the scope is invalid
            NotManagedError: If any family is missing an artifact
            RulesetPersistError: If a ruleset file cannot be deleted
            ServiceLifecycleError: If a unit cannot be stopped or removed
        """
        try:
            return self._remove(scope)
        except FwError:
            self._transition(OrchestratorState.ABORTED)
            raise

    def _remove(self, scope: Optional[str]) -> RemoveReport:
        directory_state = self.tracker.capture_initial_state()

        families = resolve_scope(scope)
        self._transition(OrchestratorState.SCOPE_RESOLVED)

        for family in families:
            self.guard.assert_present(family)
        self._transition(OrchestratorState.GUARDED)

        for family in families:
            self.ctx.console.info(f"Removing {family.label} firewall")

            # Stop restores the empty ruleset, so the files go after the unit
            self._unit_manager(family).deactivate()

            artifacts = self.guard.artifacts(family)
            for path in (artifacts.hardened_ruleset_path, artifacts.empty_ruleset_path):
                try:
                    self.executor.remove_file(path, description=f"Removing {path}")
                except OSError as e:
                    raise RulesetPersistError(
                        f"Could not remove {path}",
                        family=family.value,
                        path=str(path),
                        step=f"remove v{family.value}",
                        details=[str(e)],
                    ) from e
            self._transition(OrchestratorState.DEACTIVATED)

        report = RemoveReport(families=families, directory_state=directory_state)
        try:
            report.directory_removed = self.tracker.finalize_on_remove(
                directory_state,
                removed=families,
            )
        except OSError as e:
            raise FwError(
                f"Could not clean up {self.config.rules_dir}",
                step="remove",
                details=[str(e)],
            ) from e

        self._transition(OrchestratorState.DONE)
        return report

    # =========================================================================
    # Status
    # =========================================================================

    def status(self, scope: Optional[str] = None) -> list[FamilyStatus]:
        """Report artifact presence and unit state. Never mutates."""
        families = resolve_scope(scope)
        self.tracker.capture_initial_state()

        statuses = []
        for family in families:
            artifacts = self.guard.artifacts(family)
            statuses.append(FamilyStatus(
                family=family,
                artifacts=artifacts,
                present=artifacts.present(),
                service=self.systemd.status(artifacts.unit_name),
            ))
        return statuses
