"""Main CLI entry point using Typer.

This module defines the root CLI application, the install/remove/status
commands and the config command group.
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Annotated

import typer
from rich.console import Console

from fwctl import __version__
from fwctl.core.context import ExecutionContext, create_context
from fwctl.core.output import console as app_console
from fwctl.core.config import DEFAULT_CONFIG_PATH, get_example_config
from fwctl.core.deps import resolve_toolchain
from fwctl.core.exceptions import FwError
from fwctl.core.executor import CommandExecutor
from fwctl.core.safety import run_preflight_checks
from fwctl.services.orchestrator import Orchestrator


# Create the main Typer app
app = typer.Typer(
    name="fwctl",
    help="Baseline iptables/ip6tables firewall installer.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)

config_app = typer.Typer(
    name="config",
    help="Configuration management.",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")


class Scope(str, Enum):
    """Address family selector."""
    IPV4 = "4"
    IPV6 = "6"


# Type aliases for common options
ScopeArgument = Annotated[
    Optional[Scope],
    typer.Argument(
        help="4 for IPv4 only, 6 for IPv6 only. Omit for both.",
        show_default=False,
    ),
]

DryRunOption = Annotated[
    bool,
    typer.Option(
        "--dry-run",
        help="Preview changes without executing. Shows what would happen.",
        is_flag=True,
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase output verbosity. Can be repeated (-v, -vv).",
    ),
]

QuietOption = Annotated[
    bool,
    typer.Option(
        "--quiet",
        "-q",
        help="Suppress non-essential output. Only show errors.",
        is_flag=True,
    ),
]

NoColorOption = Annotated[
    bool,
    typer.Option(
        "--no-color",
        help="Disable colored output.",
        is_flag=True,
    ),
]

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help=f"Path to configuration file. Default: {DEFAULT_CONFIG_PATH}",
        exists=False,
        file_okay=True,
        dir_okay=False,
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console = Console()
        console.print(f"fwctl version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Baseline iptables/ip6tables firewall installer.

    Installs a default-deny inbound policy for IPv4 and IPv6, persists it
    under /etc/iptables and restores it at boot through systemd units.

    [bold]Examples:[/bold]
        sudo fwctl install
        sudo fwctl install 4 --dry-run
        sudo fwctl remove 6
        fwctl status
    """
    pass


def get_context(
    dry_run: bool = False,
    verbose: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    config: Optional[Path] = None,
    read_only: bool = False,
) -> ExecutionContext:
    """Create execution context from CLI options."""
    return create_context(
        dry_run=dry_run,
        verbose=verbose,
        quiet=quiet,
        no_color=no_color,
        config=config,
        read_only=read_only,
    )


def handle_error(error: FwError) -> None:
    """Print a formatted error and exit with the error's code."""
    app_console.failure(
        error.message,
        step=error.step,
        details=error.details,
        hint=error.hint,
    )
    raise typer.Exit(error.exit_code)


def _build_orchestrator(ctx: ExecutionContext, *, preflight: bool) -> Orchestrator:
    if preflight:
        run_preflight_checks(dry_run=ctx.dry_run)
    toolchain = resolve_toolchain(allow_missing=ctx.tolerates_missing_tools)
    return Orchestrator(ctx, CommandExecutor(ctx), toolchain)


def _scope_value(scope: Optional[Scope]) -> Optional[str]:
    return scope.value if scope is not None else None


# ============================================================================
# Firewall commands
# ============================================================================

@app.command("install")
def install_cmd(
    scope: ScopeArgument = None,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    quiet: QuietOption = False,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Install the baseline firewall.

    For each address family: saves a pass-through ruleset, applies and
    saves the hardened ruleset, then writes, enables and starts the
    systemd unit that restores it at boot.

    Refuses to run if any managed file for a family already exists.

    [bold]Examples:[/bold]

        # Both families
        sudo fwctl install

        # IPv4 only, preview
        sudo fwctl install 4 --dry-run
    """
    ctx = get_context(
        dry_run=dry_run, verbose=verbose, quiet=quiet, no_color=no_color, config=config,
    )

    try:
        orchestrator = _build_orchestrator(ctx, preflight=True)
        report = orchestrator.install(_scope_value(scope))

        if dry_run:
            ctx.console.print()
            ctx.console.info("[DRY-RUN] No changes were made")
            return

        ctx.console.print()
        for family in report.families:
            unit = report.units[family]
            ctx.console.success(f"{family.label} firewall installed ({unit.name})")

    except FwError as e:
        handle_error(e)


@app.command("remove")
def remove_cmd(
    scope: ScopeArgument = None,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    quiet: QuietOption = False,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Remove the baseline firewall.

    For each address family: stops the unit (which restores the
    pass-through ruleset), disables and deletes it, then deletes both
    ruleset files. The rules directory is deleted only if fwctl
    created it.

    Refuses to run if any managed file for a family is missing.

    [bold]Examples:[/bold]

        sudo fwctl remove
        sudo fwctl remove 6
    """
    ctx = get_context(
        dry_run=dry_run, verbose=verbose, quiet=quiet, no_color=no_color, config=config,
    )

    try:
        orchestrator = _build_orchestrator(ctx, preflight=True)
        report = orchestrator.remove(_scope_value(scope))

        if dry_run:
            ctx.console.print()
            ctx.console.info("[DRY-RUN] No changes were made")
            return

        ctx.console.print()
        for family in report.families:
            ctx.console.success(f"{family.label} firewall removed")
        if report.directory_removed:
            ctx.console.success(f"Removed {ctx.config.rules_dir}")

    except FwError as e:
        handle_error(e)


@app.command("status")
def status_cmd(
    scope: ScopeArgument = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Show which families are managed and whether their units run.

    Read-only; does not require root.
    """
    ctx = get_context(verbose=verbose, no_color=no_color, config=config, read_only=True)

    try:
        orchestrator = _build_orchestrator(ctx, preflight=False)
        statuses = orchestrator.status(_scope_value(scope))

        rows = []
        for status in statuses:
            if status.managed:
                state = "[green]managed[/green]"
            elif status.partial:
                state = "[yellow]partial[/yellow]"
            else:
                state = "[dim]not managed[/dim]"
            rows.append([
                status.family.label,
                state,
                status.artifacts.unit_name,
                "yes" if status.service.active else "no",
                "yes" if status.service.enabled else "no",
            ])

        ctx.console.table(
            "Baseline Firewall",
            ["Family", "State", "Unit", "Active", "Enabled"],
            rows,
        )
        ctx.console.print(
            f"[bold]Rules directory:[/bold] {ctx.config.rules_dir} "
            f"({orchestrator.tracker.state.value})"
        )

        if ctx.is_verbose:
            for status in statuses:
                for path in status.artifacts.paths:
                    mark = "present" if path in status.present else "missing"
                    ctx.console.verbose(f"  {path}: {mark}")

        for status in statuses:
            if status.partial:
                ctx.console.warn(
                    f"{status.family.label} is partially installed; "
                    "neither install nor remove will act on it"
                )

    except FwError as e:
        handle_error(e)


# ============================================================================
# Config commands
# ============================================================================

@config_app.command("show")
def config_show(
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Show current configuration.

    Displays the loaded configuration and the effective paths after
    environment overrides.
    """
    ctx = get_context(verbose=verbose, no_color=no_color, config=config)

    try:
        app_config = ctx.config

        ctx.console.print()
        ctx.console.print(f"[bold]Configuration file:[/bold] {ctx.config_path}")
        ctx.console.print(f"[bold]File exists:[/bold] {ctx.config_path.exists()}")
        ctx.console.print()

        ctx.console.yaml(app_config.config.to_yaml(), title="Configuration")

        ctx.console.summary("Effective paths", {
            "Rules directory": app_config.rules_dir,
            "Unit directory": app_config.unit_dir,
            "State marker": app_config.state_file,
            "IPv4 unit": app_config.unit_name("4"),
            "IPv6 unit": app_config.unit_name("6"),
        })

    except FwError as e:
        handle_error(e)


@config_app.command("example")
def config_example(no_color: NoColorOption = False) -> None:
    """Print example configuration file."""
    ctx = get_context(no_color=no_color)
    ctx.console.print(get_example_config())


if __name__ == "__main__":
    app()
