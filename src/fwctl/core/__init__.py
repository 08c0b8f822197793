"""Core framework components for fwctl."""

from fwctl.core.exceptions import (
    FwError,
    UsageError,
    ConfigurationError,
    ExecutionError,
    PrivilegeError,
    MissingDependencyError,
    AlreadyManagedError,
    NotManagedError,
    RulesetPersistError,
    ServiceLifecycleError,
)

from fwctl.core.context import ExecutionContext, create_context
from fwctl.core.output import console, Console, Verbosity
from fwctl.core.config import AppConfig, FirewallConfig
from fwctl.core.safety import run_preflight_checks
from fwctl.core.deps import Toolchain, resolve_toolchain
from fwctl.core.executor import CommandExecutor, CommandResult

__all__ = [
    # Exceptions
    "FwError",
    "UsageError",
    "ConfigurationError",
    "ExecutionError",
    "PrivilegeError",
    "MissingDependencyError",
    "AlreadyManagedError",
    "NotManagedError",
    "RulesetPersistError",
    "ServiceLifecycleError",
    # Context
    "ExecutionContext",
    "create_context",
    # Output
    "console",
    "Console",
    "Verbosity",
    # Config
    "AppConfig",
    "FirewallConfig",
    # Safety
    "run_preflight_checks",
    # Dependencies
    "Toolchain",
    "resolve_toolchain",
    # Executor
    "CommandExecutor",
    "CommandResult",
]
