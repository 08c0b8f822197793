"""Unit tests for execution context and console failures."""

from fwctl.core.context import create_context
from fwctl.core.output import Console, Verbosity


class TestCreateContext:
    """Tests for create_context."""

    def test_install_mutates_host(self, app_config):
        ctx = create_context(app_config=app_config)

        assert ctx.mutates_host
        assert not ctx.tolerates_missing_tools
        assert ctx.config is app_config

    def test_dry_run_tolerates_missing_tools(self, app_config):
        ctx = create_context(dry_run=True, app_config=app_config)

        assert not ctx.mutates_host
        assert ctx.tolerates_missing_tools

    def test_read_only_tolerates_missing_tools(self, app_config):
        """Status is read-only without being a dry run."""
        ctx = create_context(read_only=True, app_config=app_config)

        assert not ctx.dry_run
        assert not ctx.mutates_host
        assert ctx.tolerates_missing_tools

    def test_verbosity(self, app_config):
        assert create_context(quiet=True, verbose=2, app_config=app_config).verbosity == Verbosity.QUIET
        assert create_context(verbose=5, app_config=app_config).verbosity == Verbosity.DEBUG

    def test_config_path_follows_app_config(self, app_config):
        ctx = create_context(app_config=app_config)
        assert ctx.config_path == app_config.config_path


class TestConsoleFailure:
    """Tests for Console.failure."""

    def test_failure_with_step(self, capsys):
        out = Console()
        out.configure(verbosity=Verbosity.QUIET, no_color=True)

        out.failure(
            "IPv4 firewall is already managed",
            step="install v4",
            details=["[Errno 17] File exists"],
            hint="Run 'fwctl remove 4' first",
        )

        captured = capsys.readouterr()
        assert captured.out == ""
        lines = captured.err.splitlines()
        assert lines[0] == "fwctl: install v4: IPv4 firewall is already managed"
        assert lines[1] == "  [Errno 17] File exists"
        assert lines[2] == "Hint: Run 'fwctl remove 4' first"

    def test_failure_without_step(self, capsys):
        out = Console()
        out.configure(no_color=True)

        out.failure("Invalid configuration")

        assert capsys.readouterr().err == "fwctl: Invalid configuration\n"
