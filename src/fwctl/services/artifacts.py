"""Managed artifacts and the precondition guard.

For each address family fwctl owns exactly three files: the systemd
unit, the empty (pass-through) ruleset and the hardened ruleset. They
are created together by install and deleted together by remove; the
guard refuses to act on a family whose files are partially present.
"""

from dataclasses import dataclass
from pathlib import Path

from fwctl.core.config import AppConfig
from fwctl.core.exceptions import AlreadyManagedError, NotManagedError
from fwctl.services.packetfilter import AddressFamily


@dataclass(frozen=True)
class ManagedArtifactSet:
    """The files fwctl manages for one address family."""
    family: AddressFamily
    unit_name: str
    unit_path: Path
    empty_ruleset_path: Path
    hardened_ruleset_path: Path

    @classmethod
    def for_family(cls, config: AppConfig, family: AddressFamily) -> "ManagedArtifactSet":
        unit_name = config.unit_name(family.value)
        return cls(
            family=family,
            unit_name=unit_name,
            unit_path=config.unit_dir / unit_name,
            empty_ruleset_path=config.rules_dir / f"empty.{family.suffix}",
            hardened_ruleset_path=config.rules_dir / f"rules.{family.suffix}",
        )

    @property
    def paths(self) -> tuple[Path, Path, Path]:
        return (self.unit_path, self.empty_ruleset_path, self.hardened_ruleset_path)

    def present(self) -> list[Path]:
        """Artifacts that currently exist."""
        return [p for p in self.paths if p.is_file()]

    def missing(self) -> list[Path]:
        """Artifacts that currently do not exist."""
        return [p for p in self.paths if not p.is_file()]

    @property
    def fully_present(self) -> bool:
        return not self.missing()

    @property
    def fully_absent(self) -> bool:
        return not self.present()


class PreconditionGuard:
    """Read-only checks run before any mutation of a family."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def artifacts(self, family: AddressFamily) -> ManagedArtifactSet:
        return ManagedArtifactSet.for_family(self.config, family)

    def assert_absent(self, family: AddressFamily) -> None:
        """Fail if any artifact for the family exists.

        Raises:
            AlreadyManagedError: If one or more artifacts are present
        """
        present = self.artifacts(family).present()
        if present:
            raise AlreadyManagedError(
                f"{family.label} firewall is already managed",
                family=family.value,
                present=[str(p) for p in present],
                step=f"install v{family.value}",
                hint=f"Run 'fwctl remove {family.value}' first, or delete the files listed above",
            )

    def assert_present(self, family: AddressFamily) -> None:
        """Fail if any artifact for the family is missing.

        Raises:
            NotManagedError: If one or more artifacts are missing
        """
        missing = self.artifacts(family).missing()
        if missing:
            raise NotManagedError(
                f"{family.label} firewall is not managed",
                family=family.value,
                missing=[str(p) for p in missing],
                step=f"remove v{family.value}",
                hint=f"Run 'fwctl install {family.value}' first, or clean up the remaining files by hand",
            )
