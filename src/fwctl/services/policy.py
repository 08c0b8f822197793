"""Baseline firewall policy.

Builds the two rulesets fwctl manages for each address family and
persists them through the packet filter:

- empty: every chain ACCEPT, no rules (the state restored on stop)
- hardened: default-deny INPUT/FORWARD, default-accept OUTPUT,
  stateful filtering and loopback allowance
"""

from dataclasses import dataclass
from pathlib import Path

from fwctl.core.context import ExecutionContext
from fwctl.core.exceptions import ExecutionError, RulesetPersistError
from fwctl.core.executor import CommandExecutor
from fwctl.services.artifacts import ManagedArtifactSet
from fwctl.services.packetfilter import (
    AddressFamily,
    Chain,
    ConnState,
    Directive,
    FilterRule,
    PacketFilter,
    PolicyDefault,
    Target,
)


@dataclass(frozen=True)
class RulesetSnapshot:
    """Ordered, immutable list of directives for one family."""
    family: AddressFamily
    name: str
    directives: tuple[Directive, ...]

    @property
    def policies(self) -> tuple[PolicyDefault, ...]:
        return tuple(d for d in self.directives if isinstance(d, PolicyDefault))

    @property
    def rules(self) -> tuple[FilterRule, ...]:
        return tuple(d for d in self.directives if isinstance(d, FilterRule))

    def to_commands(self) -> list[list[str]]:
        """iptables argument lists, one per directive, in order."""
        return [d.to_iptables_args() for d in self.directives]


def build_empty_ruleset(family: AddressFamily) -> RulesetSnapshot:
    """Accept-all ruleset with no rules."""
    return RulesetSnapshot(
        family=family,
        name="empty",
        directives=(
            PolicyDefault(Chain.INPUT, Target.ACCEPT),
            PolicyDefault(Chain.OUTPUT, Target.ACCEPT),
            PolicyDefault(Chain.FORWARD, Target.ACCEPT),
        ),
    )


def build_hardened_ruleset(family: AddressFamily) -> RulesetSnapshot:
    """Default-deny ruleset with stateful and loopback exceptions."""
    directives: list[Directive] = [
        PolicyDefault(Chain.INPUT, Target.DROP),
        PolicyDefault(Chain.FORWARD, Target.DROP),
        PolicyDefault(Chain.OUTPUT, Target.ACCEPT),
    ]

    # Neighbor discovery and path MTU need ICMPv6 ahead of the state drop
    if family is AddressFamily.V6:
        directives.append(FilterRule(protocol="icmpv6", target=Target.ACCEPT))

    directives.extend([
        FilterRule(
            states=(ConnState.INVALID, ConnState.UNTRACKED),
            target=Target.DROP,
        ),
        FilterRule(
            states=(ConnState.RELATED, ConnState.ESTABLISHED),
            target=Target.ACCEPT,
        ),
        FilterRule(
            interface="lo",
            states=(ConnState.NEW,),
            target=Target.ACCEPT,
        ),
    ])

    return RulesetSnapshot(family=family, name="hardened", directives=tuple(directives))


class PolicyEngine:
    """Realizes and persists rulesets for one address family."""

    def __init__(
        self,
        ctx: ExecutionContext,
        executor: CommandExecutor,
        packet_filter: PacketFilter,
        artifacts: ManagedArtifactSet,
    ) -> None:
        self.ctx = ctx
        self.executor = executor
        self.packet_filter = packet_filter
        self.artifacts = artifacts

    @property
    def family(self) -> AddressFamily:
        return self.artifacts.family

    def _persist_error(self, action: str, path: Path, error: Exception) -> RulesetPersistError:
        details = list(getattr(error, "details", [])) or [str(error)]
        return RulesetPersistError(
            f"Could not {action} {path}",
            family=self.family.value,
            path=str(path),
            step=f"install v{self.family.value}",
            details=details,
        )

    def materialize_empty(self) -> None:
        """Put the filter in its pass-through state and persist it.

        An existing empty ruleset file is restored as-is instead of
        being regenerated.

        Raises:
            RulesetPersistError: If any packet filter call or write fails
        """
        path = self.artifacts.empty_ruleset_path

        if path.is_file():
            self.ctx.console.step(f"Restoring existing {path}")
            try:
                self.packet_filter.restore(path.read_text())
            except (ExecutionError, OSError) as e:
                raise self._persist_error("restore", path, e) from e
            return

        try:
            self.packet_filter.flush_to_default()
            content = self.packet_filter.save()
            self.executor.write_file(
                path,
                content,
                description=f"Saving {self.family.label} pass-through ruleset to {path}",
            )
        except (ExecutionError, OSError) as e:
            raise self._persist_error("save", path, e) from e

    def materialize_hardened(self) -> RulesetSnapshot:
        """Apply the hardened ruleset live and persist it.

        Returns:
            The snapshot that was applied

        Raises:
            RulesetPersistError: If any packet filter call or write fails
        """
        snapshot = build_hardened_ruleset(self.family)
        path = self.artifacts.hardened_ruleset_path

        self.ctx.console.step(f"Applying {self.family.label} hardened ruleset")
        try:
            for directive in snapshot.directives:
                self.packet_filter.apply(directive)
            content = self.packet_filter.save()
            self.executor.write_file(
                path,
                content,
                description=f"Saving {self.family.label} hardened ruleset to {path}",
            )
        except (ExecutionError, OSError) as e:
            raise self._persist_error("save", path, e) from e

        return snapshot
