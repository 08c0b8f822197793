"""Unit tests for rules directory lifecycle tracking."""

import pytest
import yaml

from fwctl.services.artifacts import ManagedArtifactSet
from fwctl.services.directory_state import DirectoryLifecycleTracker, DirectoryState
from fwctl.services.packetfilter import AddressFamily


@pytest.fixture
def tracker(ctx, executor):
    return DirectoryLifecycleTracker(ctx, executor)


class TestCapture:
    """Tests for capture_initial_state."""

    def test_absent_directory(self, tracker, tree):
        """No marker, no directory: ABSENT, and nothing is written."""
        before = tree()
        assert tracker.capture_initial_state() is DirectoryState.ABSENT
        assert tracker.recorded is False
        assert tree() == before

    def test_present_directory(self, tracker, app_config):
        """No marker, existing directory: PRESENT."""
        app_config.rules_dir.mkdir(parents=True)
        assert tracker.capture_initial_state() is DirectoryState.PRESENT

    def test_marker_wins_over_inspection(self, tracker, app_config):
        """Once recorded, the marker decides even though the directory now exists."""
        app_config.state_dir.mkdir(parents=True)
        app_config.state_file.write_text("rules_dir_preexisted: false\n")
        app_config.rules_dir.mkdir(parents=True)

        assert tracker.capture_initial_state() is DirectoryState.ABSENT
        assert tracker.recorded is True

    def test_malformed_marker_is_treated_as_present(self, tracker, app_config):
        """An unreadable marker never leads to deleting the directory."""
        app_config.state_dir.mkdir(parents=True)
        app_config.state_file.write_text("rules_dir_preexisted: maybe\n")

        assert tracker.capture_initial_state() is DirectoryState.PRESENT

    def test_invalid_yaml_marker(self, tracker, app_config):
        """Broken YAML is handled like a malformed marker."""
        app_config.state_dir.mkdir(parents=True)
        app_config.state_file.write_text("rules_dir_preexisted: [unclosed\n")

        assert tracker.capture_initial_state() is DirectoryState.PRESENT


class TestRecord:
    """Tests for record and ensure_directory."""

    def test_record_writes_marker(self, tracker, app_config):
        """Marker stores whether the directory pre-existed."""
        tracker.capture_initial_state()
        tracker.record(DirectoryState.ABSENT)

        data = yaml.safe_load(app_config.state_file.read_text())
        assert data["rules_dir_preexisted"] is False
        assert data["rules_dir"] == str(app_config.rules_dir)
        assert "recorded_at" in data

    def test_record_is_skipped_when_marker_exists(self, tracker, app_config):
        """An existing marker is never overwritten."""
        app_config.state_dir.mkdir(parents=True)
        app_config.state_file.write_text("rules_dir_preexisted: true\n")

        tracker.capture_initial_state()
        tracker.record(DirectoryState.ABSENT)

        assert app_config.state_file.read_text() == "rules_dir_preexisted: true\n"

    def test_record_precedes_directory_creation(self, tracker, app_config):
        """The marker captures the state from before ensure_directory."""
        state = tracker.capture_initial_state()
        tracker.record(state)
        tracker.ensure_directory()

        assert app_config.rules_dir.is_dir()
        data = yaml.safe_load(app_config.state_file.read_text())
        assert data["rules_dir_preexisted"] is False

    def test_dry_run_record_writes_nothing(self, dry_ctx, dry_executor, tree):
        """Dry-run leaves no marker and no directory behind."""
        tracker = DirectoryLifecycleTracker(dry_ctx, dry_executor)
        before = tree()

        tracker.record(tracker.capture_initial_state())
        tracker.ensure_directory()

        assert tree() == before
        assert not dry_ctx.config.rules_dir.exists()


class TestFinalizeOnRemove:
    """Tests for finalize_on_remove."""

    def _install_marker(self, app_config, preexisted):
        app_config.state_dir.mkdir(parents=True)
        app_config.state_file.write_text(f"rules_dir_preexisted: {str(preexisted).lower()}\n")

    def test_deletes_directory_fwctl_created(self, tracker, app_config):
        """ABSENT at install time: directory and marker go away."""
        app_config.rules_dir.mkdir(parents=True)
        self._install_marker(app_config, preexisted=False)

        assert tracker.finalize_on_remove(DirectoryState.ABSENT) is True

        assert not app_config.rules_dir.exists()
        assert not app_config.state_file.exists()
        assert not app_config.state_dir.exists()

    def test_keeps_preexisting_directory(self, tracker, app_config):
        """PRESENT at install time: directory and its other files stay."""
        app_config.rules_dir.mkdir(parents=True)
        (app_config.rules_dir / "custom.rules").write_text("keep me")
        self._install_marker(app_config, preexisted=True)

        assert tracker.finalize_on_remove(DirectoryState.PRESENT) is False

        assert (app_config.rules_dir / "custom.rules").read_text() == "keep me"
        assert not app_config.state_file.exists()

    def test_no_op_while_other_family_managed(self, tracker, app_config, tree):
        """Nothing is touched while any family still has artifacts."""
        app_config.rules_dir.mkdir(parents=True)
        self._install_marker(app_config, preexisted=False)
        v6 = ManagedArtifactSet.for_family(app_config, AddressFamily.V6)
        v6.hardened_ruleset_path.write_text("x")
        before = tree()

        assert tracker.finalize_on_remove(DirectoryState.ABSENT) is False
        assert tree() == before

    def test_removed_families_count_as_gone(self, dry_ctx, dry_executor, app_config, tree):
        """In dry-run, families being removed do not block finalization."""
        app_config.rules_dir.mkdir(parents=True)
        self._install_marker(app_config, preexisted=False)
        for family in (AddressFamily.V4, AddressFamily.V6):
            ManagedArtifactSet.for_family(app_config, family).hardened_ruleset_path.write_text("x")
        tracker = DirectoryLifecycleTracker(dry_ctx, dry_executor)
        before = tree()

        assert tracker.finalize_on_remove(
            DirectoryState.ABSENT,
            removed=(AddressFamily.V4, AddressFamily.V6),
        ) is True
        assert tree() == before

    def test_keeps_state_dir_with_other_files(self, tracker, app_config):
        """Only an empty state directory is removed."""
        self._install_marker(app_config, preexisted=True)
        (app_config.state_dir / "other").write_text("x")

        tracker.finalize_on_remove(DirectoryState.PRESENT)

        assert not app_config.state_file.exists()
        assert (app_config.state_dir / "other").exists()
