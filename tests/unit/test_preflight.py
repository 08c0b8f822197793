"""Unit tests for preflight checks and executable resolution."""

from unittest.mock import patch

import pytest

from fwctl.core.deps import REQUIRED_EXECUTABLES, Toolchain, resolve_toolchain
from fwctl.core.exceptions import MissingDependencyError, PrivilegeError
from fwctl.core.safety import (
    CheckResult,
    PreflightRunner,
    RootCheck,
    SystemdCheck,
    run_preflight_checks,
)


class TestRootCheck:
    """Tests for RootCheck."""

    def test_root_passes(self):
        with patch("fwctl.core.safety.os.geteuid", return_value=0):
            assert RootCheck().run().result == CheckResult.PASS

    def test_non_root_fails(self):
        with patch("fwctl.core.safety.os.geteuid", return_value=1000):
            result = RootCheck().run()
        assert result.result == CheckResult.FAIL
        assert "root" in result.message


class TestRunPreflightChecks:
    """Tests for run_preflight_checks."""

    def test_non_root_raises_privilege_error(self):
        """Non-root is an error with exit code 6."""
        with patch("fwctl.core.safety.os.geteuid", return_value=1000):
            with pytest.raises(PrivilegeError) as exc:
                run_preflight_checks()
        assert exc.value.exit_code == 6
        assert exc.value.step == "preflight"

    def test_dry_run_skips_root_check(self):
        """Dry-run does not need root."""
        with patch("fwctl.core.safety.os.geteuid", return_value=1000):
            run_preflight_checks(dry_run=True)

    def test_missing_systemd_only_warns(self, tmp_path):
        """A host without systemd gets a warning, not an error."""
        with patch("fwctl.core.safety.os.geteuid", return_value=0), \
             patch("fwctl.core.safety.SYSTEMD_RUNTIME_DIR", tmp_path / "missing"):
            run_preflight_checks()

    def test_runner_skip_root(self):
        runner = PreflightRunner(skip_root_check=True)
        assert [type(c) for c in runner.checks] == [SystemdCheck]

    def test_runner_stops_after_critical_failure(self):
        """SystemdCheck never runs once RootCheck has failed."""
        with patch("fwctl.core.safety.os.geteuid", return_value=1000), \
             patch.object(SystemdCheck, "run") as systemd_run:
            results = PreflightRunner().run_all()

        assert [r.result for r in results] == [CheckResult.FAIL]
        systemd_run.assert_not_called()


class TestResolveToolchain:
    """Tests for resolve_toolchain."""

    def test_all_found(self):
        toolchain = resolve_toolchain(which=lambda name: f"/usr/sbin/{name}")

        assert set(toolchain.paths) == set(REQUIRED_EXECUTABLES)
        assert toolchain.path("ip6tables-save") == "/usr/sbin/ip6tables-save"

    def test_missing_executable(self):
        """Missing tools fail before anything runs, with an install hint."""
        def which(name):
            return None if name.startswith("ip6tables") else f"/usr/sbin/{name}"

        with pytest.raises(MissingDependencyError) as exc:
            resolve_toolchain(which=which)

        assert exc.value.exit_code == 6
        assert exc.value.step == "resolve"
        assert exc.value.missing == ["ip6tables", "ip6tables-save", "ip6tables-restore"]
        assert "apt install iptables" in exc.value.hint

    def test_allow_missing_uses_bare_names(self):
        """Dry-run on a host without the tools still resolves."""
        toolchain = resolve_toolchain(which=lambda name: None, allow_missing=True)
        assert toolchain.path("systemctl") == "systemctl"

    def test_unknown_name(self):
        with pytest.raises(MissingDependencyError):
            Toolchain(paths={}).path("iptables")
