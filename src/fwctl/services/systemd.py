"""Systemd service abstraction.

Provides a safe interface for the unit lifecycle calls fwctl needs.
"""

from dataclasses import dataclass
from typing import Optional

from fwctl.core.context import ExecutionContext
from fwctl.core.deps import Toolchain
from fwctl.core.exceptions import ExecutionError, ServiceLifecycleError
from fwctl.core.executor import CommandExecutor


@dataclass
class ServiceStatus:
    """Status of a systemd service."""
    name: str
    active: bool
    enabled: bool


class SystemdService:
    """Safe interface for managing systemd services.

    All operations respect dry-run mode and log appropriately.
    """

    def __init__(
        self,
        ctx: ExecutionContext,
        executor: CommandExecutor,
        toolchain: Toolchain,
    ) -> None:
        """Initialize systemd service manager.

        Args:
            ctx: Execution context
            executor: Command executor
            toolchain: Resolved executables (for systemctl)
        """
        self.ctx = ctx
        self.executor = executor
        self.toolchain = toolchain

    @property
    def systemctl(self) -> str:
        return self.toolchain.path("systemctl")

    def _lifecycle(
        self,
        action: str,
        service: Optional[str],
        description: str,
        *,
        hint: Optional[str] = None,
    ) -> None:
        command = [self.systemctl, action]
        if service:
            command.append(service)

        try:
            self.executor.run(command, description=description)
        except ExecutionError as e:
            target = service or "systemd"
            raise ServiceLifecycleError(
                f"Failed to {action} {target}",
                service=service,
                hint=hint,
                details=e.details,
            ) from e

    def is_active(self, service: str) -> bool:
        """Check if a service is active."""
        if self.ctx.dry_run:
            return False

        result = self.executor.run(
            [self.systemctl, "is-active", "--quiet", service],
            check=False,
        )
        return result.success

    def is_enabled(self, service: str) -> bool:
        """Check if a service is enabled."""
        if self.ctx.dry_run:
            return False

        result = self.executor.run(
            [self.systemctl, "is-enabled", "--quiet", service],
            check=False,
        )
        return result.success

    def status(self, service: str) -> ServiceStatus:
        return ServiceStatus(
            name=service,
            active=self.is_active(service),
            enabled=self.is_enabled(service),
        )

    def daemon_reload(self) -> None:
        """Reload systemd unit definitions."""
        self._lifecycle("daemon-reload", None, "Reloading systemd daemon")

    def enable(self, service: str) -> None:
        """Enable a service to start on boot."""
        self._lifecycle("enable", service, f"Enabling {service}")

    def disable(self, service: str) -> None:
        """Disable a service from starting on boot."""
        self._lifecycle("disable", service, f"Disabling {service}")

    def start(self, service: str) -> None:
        """Start a service."""
        self._lifecycle(
            "start",
            service,
            f"Starting {service}",
            hint=f"Check logs: journalctl -xeu {service}",
        )

    def stop(self, service: str) -> None:
        """Stop a service."""
        self._lifecycle(
            "stop",
            service,
            f"Stopping {service}",
            hint=f"Check logs: journalctl -xeu {service}",
        )
