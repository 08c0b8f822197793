"""Systemd units that restore the managed rulesets.

One oneshot unit per address family: start and reload restore the
hardened ruleset, stop restores the empty one. RemainAfterExit keeps
the unit "active" without a running process.
"""

from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, PackageLoader, select_autoescape

from fwctl.core.context import ExecutionContext
from fwctl.core.deps import Toolchain
from fwctl.core.exceptions import ServiceLifecycleError
from fwctl.core.executor import CommandExecutor
from fwctl.services.artifacts import ManagedArtifactSet
from fwctl.services.systemd import SystemdService

# Jinja2 environment for templates
jinja_env = Environment(
    loader=PackageLoader("fwctl", "templates"),
    autoescape=select_autoescape(),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)

UNIT_TEMPLATE = "systemd/packet-filter.service.j2"


@dataclass(frozen=True)
class ServiceUnitSpec:
    """Everything needed to render one family's unit file."""
    name: str
    path: Path
    label: str
    description: str
    shell: str
    restore: str
    hardened_path: Path
    empty_path: Path

    def render(self) -> str:
        template = jinja_env.get_template(UNIT_TEMPLATE)
        return template.render(
            label=self.label,
            description=self.description,
            shell=self.shell,
            restore=self.restore,
            hardened_path=str(self.hardened_path),
            empty_path=str(self.empty_path),
        )


class ServiceUnitManager:
    """Writes a family's unit and drives its lifecycle."""

    def __init__(
        self,
        ctx: ExecutionContext,
        executor: CommandExecutor,
        systemd: SystemdService,
        toolchain: Toolchain,
        artifacts: ManagedArtifactSet,
    ) -> None:
        self.ctx = ctx
        self.executor = executor
        self.systemd = systemd
        self.toolchain = toolchain
        self.artifacts = artifacts

    def generate_unit(self) -> ServiceUnitSpec:
        family = self.artifacts.family
        return ServiceUnitSpec(
            name=self.artifacts.unit_name,
            path=self.artifacts.unit_path,
            label=family.label,
            description=f"{family.label} Packet Filtering",
            shell=self.toolchain.path("sh"),
            restore=self.toolchain.path(family.restore_command),
            hardened_path=self.artifacts.hardened_ruleset_path,
            empty_path=self.artifacts.empty_ruleset_path,
        )

    def activate(self) -> ServiceUnitSpec:
        """Write the unit, reload systemd, then enable and start it.

        Raises:
            ServiceLifecycleError: If any step fails
        """
        spec = self.generate_unit()
        content = spec.render()
        step = f"install v{self.artifacts.family.value}"

        if self.ctx.is_verbose:
            self.ctx.console.ini(content, title=spec.name)

        try:
            self.executor.write_file(
                spec.path,
                content,
                description=f"Writing {spec.path}",
            )
        except OSError as e:
            raise ServiceLifecycleError(
                f"Could not write {spec.path}",
                service=spec.name,
                step=step,
                details=[str(e)],
            ) from e

        try:
            self.systemd.daemon_reload()
            self.systemd.enable(spec.name)
            self.systemd.start(spec.name)
        except ServiceLifecycleError as e:
            e.step = step
            raise

        return spec

    def deactivate(self) -> None:
        """Stop and disable the unit, then delete its file.

        Must run while the empty ruleset file still exists: the stop
        action restores it.

        Raises:
            ServiceLifecycleError: If any step fails
        """
        name = self.artifacts.unit_name
        path = self.artifacts.unit_path
        step = f"remove v{self.artifacts.family.value}"

        try:
            self.systemd.stop(name)
            self.systemd.disable(name)
        except ServiceLifecycleError as e:
            e.step = step
            raise

        try:
            self.executor.remove_file(path, description=f"Removing {path}")
        except OSError as e:
            raise ServiceLifecycleError(
                f"Could not remove {path}",
                service=name,
                step=step,
                details=[str(e)],
            ) from e

        try:
            self.systemd.daemon_reload()
        except ServiceLifecycleError as e:
            e.step = step
            raise
