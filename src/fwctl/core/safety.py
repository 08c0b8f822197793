"""Pre-flight checks run before any firewall change.

Provides:
- Root privilege verification
- Systemd presence verification
- A runner that turns failures into typed errors
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from fwctl.core.exceptions import FwError, PrivilegeError
from fwctl.core.output import console


SYSTEMD_RUNTIME_DIR = Path("/run/systemd/system")


class CheckResult(Enum):
    """Result of a pre-flight check."""
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass(frozen=True)
class PreflightResult:
    """Immutable result of a pre-flight check."""
    check_name: str
    result: CheckResult
    message: str
    remediation: Optional[str] = None


class PreflightCheck(ABC):
    """Base class for all pre-flight checks."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the check."""
        ...

    @property
    @abstractmethod
    def critical(self) -> bool:
        """If True, failure blocks all operations."""
        ...

    @abstractmethod
    def run(self) -> PreflightResult:
        """Execute the check and return result."""
        ...


class RootCheck(PreflightCheck):
    """Verify fwctl is running as root or with sudo."""

    name = "Root/Sudo Verification"
    critical = True

    def run(self) -> PreflightResult:
        if os.geteuid() != 0:
            return PreflightResult(
                check_name=self.name,
                result=CheckResult.FAIL,
                message="fwctl must be run as root",
                remediation="Run with: sudo fwctl <command>",
            )
        return PreflightResult(
            check_name=self.name,
            result=CheckResult.PASS,
            message="Running with root privileges",
        )


class SystemdCheck(PreflightCheck):
    """Verify the host is booted with systemd."""

    name = "Systemd"
    critical = False

    def run(self) -> PreflightResult:
        if not SYSTEMD_RUNTIME_DIR.is_dir():
            return PreflightResult(
                check_name=self.name,
                result=CheckResult.WARN,
                message="systemd does not appear to be running",
                remediation="Units will be written but may not start",
            )
        return PreflightResult(
            check_name=self.name,
            result=CheckResult.PASS,
            message="systemd is running",
        )


class PreflightRunner:
    """Orchestrates pre-flight checks."""

    DEFAULT_CHECKS: list[type[PreflightCheck]] = [
        RootCheck,
        SystemdCheck,
    ]

    def __init__(
        self,
        checks: Optional[list[type[PreflightCheck]]] = None,
        skip_root_check: bool = False,
    ) -> None:
        check_classes = checks or self.DEFAULT_CHECKS
        if skip_root_check:
            check_classes = [c for c in check_classes if c != RootCheck]
        self.checks = [c() for c in check_classes]

    def run_all(self) -> list[PreflightResult]:
        """Run checks in order, stopping after the first critical failure."""
        results = []

        for check in self.checks:
            result = check.run()
            results.append(result)

            if check.critical and result.result == CheckResult.FAIL:
                break

        return results


def run_preflight_checks(dry_run: bool = False) -> None:
    """Run pre-flight checks, raising on the first failure.

    Root is not required in dry-run mode.

    Raises:
        PrivilegeError: If not running as root
        FwError: If any other critical check fails
    """
    runner = PreflightRunner(skip_root_check=dry_run)

    for result in runner.run_all():
        if result.result == CheckResult.PASS:
            console.debug(f"{result.check_name}: {result.message}")
        elif result.result == CheckResult.WARN:
            console.warn(f"{result.check_name}: {result.message}")
        elif result.check_name == RootCheck.name:
            raise PrivilegeError(
                result.message,
                step="preflight",
                hint=result.remediation,
            )
        else:
            raise FwError(
                f"{result.check_name}: {result.message}",
                step="preflight",
                hint=result.remediation,
            )
