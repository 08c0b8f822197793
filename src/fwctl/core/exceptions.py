"""Custom exceptions for fwctl.

All exceptions provide:
- Clear error messages
- The step that failed
- Optional hints for resolution
- Optional details for debugging
- Exit codes for proper shell integration
"""

from typing import Optional


class FwError(Exception):
    """Base exception for all fwctl errors.

    Attributes:
        message: Human-readable error description
        step: Identifier of the failing step (e.g. "install v4")
        hint: Suggested action to resolve the error
        details: Additional context for debugging
        exit_code: Shell exit code (1-127)
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        step: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.step = step
        self.hint = hint
        self.details = details or []

    def __str__(self) -> str:
        return self.message


class UsageError(FwError):
    """Bad or missing command line arguments."""
    exit_code = 2


class ConfigurationError(FwError):
    """Configuration file or settings errors.

    Raised when:
    - Config file unreadable
    - Invalid YAML syntax
    - Invalid configuration values
    """
    exit_code = 2


class ExecutionError(FwError):
    """Command execution failures.

    Raised when:
    - Shell command returns non-zero exit code
    - Command times out
    """
    exit_code = 5

    def __init__(
        self,
        message: str,
        *,
        command: Optional[str] = None,
        return_code: Optional[int] = None,
        stderr: Optional[str] = None,
        step: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        if not details:
            details = []
        if return_code is not None:
            details.append(f"Exit code: {return_code}")
        if stderr:
            details.append(f"Error output: {stderr.strip()}")
        super().__init__(message, step=step, hint=hint, details=details)
        self.command = command
        self.return_code = return_code
        self.stderr = stderr


class PrivilegeError(FwError):
    """Not running with root privileges."""
    exit_code = 6


class MissingDependencyError(FwError):
    """A required external executable cannot be resolved."""
    exit_code = 6

    def __init__(
        self,
        message: str,
        *,
        missing: Optional[list[str]] = None,
        step: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, step=step, hint=hint, details=details)
        self.missing = missing or []


# Managed artifact preconditions

class AlreadyManagedError(FwError):
    """Install attempted while artifacts for the family already exist."""
    exit_code = 20

    def __init__(
        self,
        message: str,
        *,
        family: Optional[str] = None,
        present: Optional[list[str]] = None,
        step: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            step=step,
            hint=hint,
            details=[f"Present: {p}" for p in present or []],
        )
        self.family = family
        self.present = present or []


class NotManagedError(FwError):
    """Remove attempted while artifacts for the family are missing."""
    exit_code = 21

    def __init__(
        self,
        message: str,
        *,
        family: Optional[str] = None,
        missing: Optional[list[str]] = None,
        step: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            step=step,
            hint=hint,
            details=[f"Missing: {p}" for p in missing or []],
        )
        self.family = family
        self.missing = missing or []


# Collaborator failures

class RulesetPersistError(FwError):
    """Packet filter flush/apply/save/restore failed."""
    exit_code = 22

    def __init__(
        self,
        message: str,
        *,
        family: Optional[str] = None,
        path: Optional[str] = None,
        step: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, step=step, hint=hint, details=details)
        self.family = family
        self.path = path


class ServiceLifecycleError(FwError):
    """Systemd unit write/reload/enable/start/stop/disable failed."""
    exit_code = 23

    def __init__(
        self,
        message: str,
        *,
        service: Optional[str] = None,
        step: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, step=step, hint=hint, details=details)
        self.service = service
