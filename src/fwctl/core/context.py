"""Per-invocation state shared by every fwctl service.

One ExecutionContext is built by each CLI command. It decides whether
the host may be touched (dry-run, read-only), how much is printed, and
which configuration is in effect.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from fwctl.core.config import AppConfig, DEFAULT_CONFIG_PATH
from fwctl.core.output import Console, console, Verbosity


@dataclass
class ExecutionContext:
    """Flags and configuration for one fwctl run.

    Attributes:
        dry_run: Print every mutation instead of performing it
        read_only: The command only inspects the host (status)
        verbosity: Output verbosity level (0-3)
        no_color: Disable colored output
        config_path: Path to configuration file
    """

    dry_run: bool = False
    read_only: bool = False
    verbosity: int = 1
    no_color: bool = False

    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG_PATH)

    _config: Optional[AppConfig] = field(default=None, repr=False)
    _console: Console = field(default_factory=lambda: console, repr=False)

    def __post_init__(self) -> None:
        self._console.configure(
            verbosity=self.verbosity,
            dry_run=self.dry_run,
            no_color=self.no_color,
        )

    @property
    def config(self) -> AppConfig:
        """Application configuration, loaded on first use."""
        if self._config is None:
            self._config = AppConfig(config_path=self.config_path)
        return self._config

    @property
    def console(self) -> Console:
        return self._console

    @property
    def is_verbose(self) -> bool:
        return self.verbosity >= Verbosity.VERBOSE

    @property
    def mutates_host(self) -> bool:
        """True if this run will change rulesets, units or files."""
        return not (self.dry_run or self.read_only)

    @property
    def tolerates_missing_tools(self) -> bool:
        """Missing executables only matter when the host is changed.

        Dry-run prints commands it never runs; read-only commands only
        query systemctl.
        """
        return not self.mutates_host


def create_context(
    dry_run: bool = False,
    verbose: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    config: Optional[Path] = None,
    *,
    read_only: bool = False,
    app_config: Optional[AppConfig] = None,
) -> ExecutionContext:
    """Create an execution context from CLI options.

    Args:
        dry_run: Preview changes without executing
        verbose: Increase verbosity (can be repeated)
        quiet: Suppress non-essential output
        no_color: Disable colored output
        config: Path to configuration file
        read_only: The command never changes the host
        app_config: Already-built configuration (skips loading config)

    Returns:
        Configured execution context
    """
    if quiet:
        verbosity = Verbosity.QUIET
    else:
        verbosity = min(Verbosity.NORMAL + verbose, Verbosity.DEBUG)

    if app_config is not None and config is None:
        config = app_config.config_path

    return ExecutionContext(
        dry_run=dry_run,
        read_only=read_only,
        verbosity=verbosity,
        no_color=no_color,
        config_path=config or DEFAULT_CONFIG_PATH,
        _config=app_config,
    )
