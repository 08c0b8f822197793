"""Tracking of the shared rules directory's origin.

fwctl only deletes the rules directory (/etc/iptables) on remove if the
directory did not exist before fwctl first installed anything. That
fact is captured once and persisted in a small YAML marker outside the
directory, so later invocations (including remove) can read it back.
"""

from datetime import datetime, timezone
from enum import Enum

import yaml

from fwctl.core.context import ExecutionContext
from fwctl.core.executor import CommandExecutor
from fwctl.services.artifacts import ManagedArtifactSet
from fwctl.services.packetfilter import AddressFamily, FAMILY_ORDER


MARKER_VERSION = 1


class DirectoryState(str, Enum):
    """Whether the rules directory pre-dates fwctl."""
    UNKNOWN = "unknown"
    PRESENT = "present"
    ABSENT = "absent"


class DirectoryLifecycleTracker:
    """Captures, persists and acts on the rules directory's origin."""

    def __init__(self, ctx: ExecutionContext, executor: CommandExecutor) -> None:
        self.ctx = ctx
        self.executor = executor
        self.state = DirectoryState.UNKNOWN
        self.recorded = False

    @property
    def rules_dir(self):
        return self.ctx.config.rules_dir

    @property
    def marker_path(self):
        return self.ctx.config.state_file

    def _read_marker(self) -> DirectoryState:
        try:
            with open(self.marker_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            self.ctx.console.warn(f"Cannot read {self.marker_path}: {e}")
            return DirectoryState.PRESENT

        preexisted = data.get("rules_dir_preexisted") if isinstance(data, dict) else None
        if not isinstance(preexisted, bool):
            self.ctx.console.warn(
                f"{self.marker_path} is malformed; treating {self.rules_dir} as pre-existing"
            )
            return DirectoryState.PRESENT

        return DirectoryState.PRESENT if preexisted else DirectoryState.ABSENT

    def capture_initial_state(self) -> DirectoryState:
        """Determine whether the rules directory pre-dates fwctl.

        Reads the marker when one exists, otherwise inspects the
        directory. Never writes.
        """
        if self.marker_path.is_file():
            self.state = self._read_marker()
            self.recorded = True
            source = str(self.marker_path)
        else:
            self.state = (
                DirectoryState.PRESENT if self.rules_dir.is_dir() else DirectoryState.ABSENT
            )
            self.recorded = False
            source = "inspection"

        self.ctx.console.debug(f"{self.rules_dir}: {self.state.value} (from {source})")
        return self.state

    def record(self, state: DirectoryState) -> None:
        """Persist the captured state, unless a marker already exists."""
        if self.recorded:
            return

        content = yaml.dump(
            {
                "version": MARKER_VERSION,
                "rules_dir": str(self.rules_dir),
                "rules_dir_preexisted": state is DirectoryState.PRESENT,
                "recorded_at": datetime.now(timezone.utc).isoformat(),
            },
            default_flow_style=False,
            sort_keys=False,
        )

        self.executor.make_dir(self.marker_path.parent)
        self.executor.write_file(
            self.marker_path,
            content,
            description=f"Recording {self.rules_dir} as {state.value} in {self.marker_path}",
        )
        self.recorded = True

    def ensure_directory(self) -> None:
        """Create the rules directory if it does not exist."""
        if self.rules_dir.is_dir():
            return
        self.ctx.console.step(f"Creating {self.rules_dir}")
        self.executor.make_dir(self.rules_dir)

    def finalize_on_remove(
        self,
        state: DirectoryState,
        removed: tuple[AddressFamily, ...] = (),
    ) -> bool:
        """Clean up once no family is managed any more.

        Deletes the rules directory only if fwctl created it, and drops
        the marker. Families in ``removed`` count as gone even if their
        files still exist (dry-run).

        Returns:
            True if the rules directory was deleted
        """
        for family in FAMILY_ORDER:
            if family in removed:
                continue
            remaining = ManagedArtifactSet.for_family(self.ctx.config, family).present()
            if remaining:
                self.ctx.console.verbose(
                    f"{family.label} still managed; leaving {self.rules_dir} in place"
                )
                return False

        deleted = False
        if state is DirectoryState.ABSENT and self.rules_dir.is_dir():
            self.executor.remove_tree(
                self.rules_dir,
                description=f"Removing {self.rules_dir} (created by fwctl)",
            )
            deleted = True
        elif state is DirectoryState.PRESENT:
            self.ctx.console.verbose(f"Keeping {self.rules_dir} (pre-existing)")

        if self.marker_path.is_file():
            self.executor.remove_file(self.marker_path, description=f"Removing {self.marker_path}")
            if not self.ctx.dry_run:
                try:
                    self.marker_path.parent.rmdir()
                except OSError:
                    pass  # Directory not empty

        return deleted
