"""Resolution of the external executables fwctl drives.

Every executable is resolved once, at startup, into a Toolchain.
Services receive absolute paths from it instead of relying on PATH
lookups at the moment of use.
"""

import shutil
from dataclasses import dataclass, field
from typing import Callable, Optional

from fwctl.core.exceptions import MissingDependencyError
from fwctl.core.output import console


# Executables needed for every run, in resolution order
REQUIRED_EXECUTABLES = (
    "sh",
    "systemctl",
    "iptables",
    "iptables-save",
    "iptables-restore",
    "ip6tables",
    "ip6tables-save",
    "ip6tables-restore",
)

# Package hints per executable (Debian/Ubuntu)
PACKAGE_HINTS = {
    "sh": "dash",
    "systemctl": "systemd",
    "iptables": "iptables",
    "iptables-save": "iptables",
    "iptables-restore": "iptables",
    "ip6tables": "iptables",
    "ip6tables-save": "iptables",
    "ip6tables-restore": "iptables",
}


@dataclass(frozen=True)
class Toolchain:
    """Absolute paths of every external executable, keyed by name."""
    paths: dict[str, str] = field(default_factory=dict)

    def path(self, name: str) -> str:
        """Get the resolved path of an executable.

        Raises:
            MissingDependencyError: If the executable was never resolved
        """
        try:
            return self.paths[name]
        except KeyError:
            raise MissingDependencyError(
                f"Missing {name} executable",
                missing=[name],
                step="resolve",
            ) from None


def _get_manual_install_hint(missing: list[str]) -> str:
    """Generate a helpful hint for manual installation."""
    packages = sorted({PACKAGE_HINTS.get(name, name) for name in missing})
    return "Install with: sudo apt install " + " ".join(packages)


def resolve_toolchain(
    names: tuple[str, ...] = REQUIRED_EXECUTABLES,
    *,
    which: Callable[[str], Optional[str]] = shutil.which,
    allow_missing: bool = False,
) -> Toolchain:
    """Resolve executables to absolute paths.

    Args:
        names: Executables to resolve
        which: Lookup function (shutil.which by default)
        allow_missing: Fall back to the bare name instead of failing
            (used in dry-run mode on hosts without the tools)

    Returns:
        Toolchain with one entry per name

    Raises:
        MissingDependencyError: If any executable cannot be resolved
    """
    paths: dict[str, str] = {}
    missing: list[str] = []

    for name in names:
        resolved = which(name)
        if resolved:
            paths[name] = resolved
        else:
            missing.append(name)

    if missing:
        if not allow_missing:
            raise MissingDependencyError(
                f"Missing {', '.join(missing)} executable" + ("s" if len(missing) > 1 else ""),
                missing=missing,
                step="resolve",
                hint=_get_manual_install_hint(missing),
            )
        console.warn(f"Executables not found, using bare names: {', '.join(missing)}")
        for name in missing:
            paths[name] = name

    console.debug("Resolved: " + ", ".join(f"{k}={v}" for k, v in paths.items()))
    return Toolchain(paths=paths)
