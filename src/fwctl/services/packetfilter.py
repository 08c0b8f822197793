"""Packet filter (iptables / ip6tables) collaborator.

Provides the primitive operations the policy engine needs for one
address family:
- flush to the pass-through default
- set a chain's default policy
- append a rule
- save the live ruleset as text
- restore a ruleset from text
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from fwctl.core.context import ExecutionContext
from fwctl.core.deps import Toolchain
from fwctl.core.executor import CommandExecutor, CommandResult


class AddressFamily(str, Enum):
    """IP address family managed by fwctl."""
    V4 = "4"
    V6 = "6"

    @property
    def command(self) -> str:
        """Base packet filter executable."""
        return "iptables" if self is AddressFamily.V4 else "ip6tables"

    @property
    def save_command(self) -> str:
        return f"{self.command}-save"

    @property
    def restore_command(self) -> str:
        return f"{self.command}-restore"

    @property
    def suffix(self) -> str:
        """Ruleset file suffix (v4 / v6)."""
        return f"v{self.value}"

    @property
    def label(self) -> str:
        return f"IPv{self.value}"


# Fixed processing order for scopes covering both families
FAMILY_ORDER: tuple[AddressFamily, ...] = (AddressFamily.V4, AddressFamily.V6)


class Chain(str, Enum):
    """Built-in filter table chain."""
    INPUT = "INPUT"
    FORWARD = "FORWARD"
    OUTPUT = "OUTPUT"


class Target(str, Enum):
    """Rule or policy target."""
    ACCEPT = "ACCEPT"
    DROP = "DROP"


class ConnState(str, Enum):
    """Connection tracking state."""
    NEW = "NEW"
    ESTABLISHED = "ESTABLISHED"
    RELATED = "RELATED"
    INVALID = "INVALID"
    UNTRACKED = "UNTRACKED"


@dataclass(frozen=True)
class PolicyDefault:
    """Default policy for a built-in chain."""
    chain: Chain
    target: Target

    def to_iptables_args(self) -> list[str]:
        return ["-P", self.chain.value, self.target.value]

    def __str__(self) -> str:
        return f"policy {self.chain.value} {self.target.value}"


@dataclass(frozen=True)
class FilterRule:
    """A rule appended to a chain."""
    chain: Chain = Chain.INPUT
    target: Target = Target.ACCEPT
    protocol: Optional[str] = None
    interface: Optional[str] = None
    states: tuple[ConnState, ...] = ()

    def to_iptables_args(self) -> list[str]:
        """Convert rule to iptables append arguments."""
        args = ["-A", self.chain.value]

        if self.protocol:
            args.extend(["-p", self.protocol])

        if self.interface:
            args.extend(["-i", self.interface])

        if self.states:
            args.extend(["-m", "state", "--state", ",".join(s.value for s in self.states)])

        args.extend(["-j", self.target.value])
        return args

    def __str__(self) -> str:
        parts = [self.target.value, self.chain.value]
        if self.protocol:
            parts.append(self.protocol)
        if self.interface:
            parts.append(f"on {self.interface}")
        if self.states:
            parts.append("state " + ",".join(s.value for s in self.states))
        return " ".join(parts)


Directive = Union[PolicyDefault, FilterRule]


# iptables-save emits a timestamped header and trailer, plus live counters
_SAVE_COMMENT = re.compile(r"^#.*$")
_CHAIN_COUNTERS = re.compile(r"^(:\S+ \S+) \[\d+:\d+\]$")


def normalize_saved_ruleset(text: str) -> str:
    """Make iptables-save output deterministic.

    Drops comment lines and zeroes chain counters so two saves of the
    same ruleset are byte-identical.
    """
    lines = []
    for line in text.splitlines():
        if _SAVE_COMMENT.match(line):
            continue
        lines.append(_CHAIN_COUNTERS.sub(r"\1 [0:0]", line))
    return "\n".join(lines) + "\n" if lines else ""


class PacketFilter:
    """iptables or ip6tables, addressed through resolved executables.

    Every method raises ExecutionError on a non-zero exit; callers map
    that onto their own error types.
    """

    def __init__(
        self,
        ctx: ExecutionContext,
        executor: CommandExecutor,
        toolchain: Toolchain,
        family: AddressFamily,
    ) -> None:
        self.ctx = ctx
        self.executor = executor
        self.toolchain = toolchain
        self.family = family

    def _run(self, args: list[str], *, description: Optional[str] = None) -> CommandResult:
        command = [self.toolchain.path(self.family.command)] + args
        return self.executor.run(command, description=description)

    def flush_to_default(self) -> None:
        """Flush all rules, zero counters, and accept everything."""
        self._run(["-F"], description=f"Flushing {self.family.label} rules")
        self._run(["-Z"])
        for chain in (Chain.INPUT, Chain.OUTPUT, Chain.FORWARD):
            self.set_policy(chain, Target.ACCEPT)

    def set_policy(self, chain: Chain, target: Target) -> None:
        self.apply(PolicyDefault(chain, target))

    def apply(self, directive: Directive) -> None:
        """Apply one policy default or appended rule to the live filter."""
        self.ctx.console.verbose(f"{self.family.command}: {directive}")
        self._run(directive.to_iptables_args())

    def save(self) -> str:
        """Dump the live ruleset, normalized for persistence."""
        command = [self.toolchain.path(self.family.save_command)]
        result = self.executor.run(command)
        return normalize_saved_ruleset(result.stdout)

    def restore(self, ruleset: str) -> None:
        """Replace the live ruleset with the given text."""
        command = [self.toolchain.path(self.family.restore_command)]
        self.executor.run(command, input=ruleset)
