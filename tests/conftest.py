"""Shared fixtures: a temporary host tree and a fake packet filter/systemd."""

import os
from pathlib import Path
from typing import Optional

import pytest

from fwctl.core.config import AppConfig, EnvironmentOverrides, FirewallConfig, PathsConfig
from fwctl.core.context import create_context
from fwctl.core.deps import REQUIRED_EXECUTABLES, Toolchain
from fwctl.core.exceptions import ExecutionError
from fwctl.core.executor import CommandExecutor, CommandResult


class FakeTable:
    """In-memory filter table of one address family."""

    def __init__(self) -> None:
        self.policies = {"INPUT": "ACCEPT", "FORWARD": "ACCEPT", "OUTPUT": "ACCEPT"}
        self.rules: list[str] = []
        self.saves = 0

    def apply(self, args: list[str]) -> None:
        if args == ["-F"]:
            self.rules = []
        elif args == ["-Z"]:
            pass
        elif args[0] == "-P":
            self.policies[args[1]] = args[2]
        elif args[0] == "-A":
            self.rules.append(" ".join(args))
        else:
            raise AssertionError(f"unexpected packet filter args: {args}")

    def dump(self, binary: str) -> str:
        # Counters and timestamps change on every save, like the real tool
        self.saves += 1
        lines = [f"# Generated by {binary} v1.8.7 on save #{self.saves}", "*filter"]
        for chain in ("INPUT", "FORWARD", "OUTPUT"):
            lines.append(f":{chain} {self.policies[chain]} [{self.saves}:{self.saves * 40}]")
        lines.extend(self.rules)
        lines.append("COMMIT")
        lines.append(f"# Completed on save #{self.saves}")
        return "\n".join(lines) + "\n"

    def load(self, text: str) -> None:
        self.rules = []
        for line in text.splitlines():
            if line.startswith(":"):
                chain, policy = line[1:].split()[:2]
                self.policies[chain] = policy
            elif line.startswith("-A "):
                self.rules.append(line)


class FakeHostExecutor(CommandExecutor):
    """CommandExecutor that simulates iptables and systemctl.

    Files are written for real (into a temporary tree); commands are
    recorded and answered from in-memory state.
    """

    def __init__(self, ctx) -> None:
        super().__init__(ctx)
        self.tables = {"iptables": FakeTable(), "ip6tables": FakeTable()}
        self.commands: list[list[str]] = []
        self.units: dict[str, set[str]] = {}
        self.fail_on: Optional[tuple[str, ...]] = None

    def run(self, command, *, description=None, check=True, input=None, timeout=None):
        if self.ctx.dry_run:
            return super().run(command, description=description, check=check, input=input)

        name = os.path.basename(command[0])
        args = list(command[1:])
        self.commands.append([name] + args)

        if self.fail_on is not None and tuple([name] + args[:len(self.fail_on) - 1]) == self.fail_on:
            if check:
                raise ExecutionError(
                    f"Command failed: {' '.join(command)}",
                    command=" ".join(command),
                    return_code=1,
                    stderr="simulated failure",
                )
            return CommandResult(command=command, return_code=1, stdout="", stderr="")

        stdout = ""
        return_code = 0

        if name in self.tables:
            self.tables[name].apply(args)
        elif name.endswith("-save"):
            stdout = self.tables[name[: -len("-save")]].dump(name)
        elif name.endswith("-restore"):
            self.tables[name[: -len("-restore")]].load(input or "")
        elif name == "systemctl":
            return_code = self._systemctl(args)
        else:
            raise AssertionError(f"unexpected command: {command}")

        return CommandResult(command=command, return_code=return_code, stdout=stdout, stderr="")

    def _systemctl(self, args: list[str]) -> int:
        action = args[0]
        if action == "daemon-reload":
            return 0
        service = args[-1]
        flags = self.units.setdefault(service, set())
        if action == "enable":
            flags.add("enabled")
        elif action == "disable":
            flags.discard("enabled")
        elif action == "start":
            flags.add("active")
        elif action == "stop":
            flags.discard("active")
        elif action == "is-active":
            return 0 if "active" in flags else 3
        elif action == "is-enabled":
            return 0 if "enabled" in flags else 1
        return 0

    def ran(self, name: str) -> list[list[str]]:
        """Recorded invocations of one executable."""
        return [c for c in self.commands if c[0] == name]


def snapshot_tree(root: Path) -> dict[str, bytes]:
    """Map of every file under root to its content."""
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def host_root(tmp_path: Path) -> Path:
    """Temporary host with /etc/systemd/system but no /etc/iptables."""
    (tmp_path / "etc" / "systemd" / "system").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def app_config(host_root: Path) -> AppConfig:
    paths = PathsConfig(
        rules_dir=host_root / "etc" / "iptables",
        unit_dir=host_root / "etc" / "systemd" / "system",
        state_dir=host_root / "var" / "lib" / "fwctl",
    )
    return AppConfig(
        config_path=host_root / "etc" / "fwctl" / "config.yaml",
        config=FirewallConfig(paths=paths),
        overrides=EnvironmentOverrides.model_construct(),
    )


@pytest.fixture
def ctx(app_config: AppConfig):
    return create_context(app_config=app_config)


@pytest.fixture
def dry_ctx(app_config: AppConfig):
    return create_context(dry_run=True, app_config=app_config)


@pytest.fixture
def toolchain() -> Toolchain:
    return Toolchain(paths={name: f"/usr/sbin/{name}" for name in REQUIRED_EXECUTABLES} | {"sh": "/bin/sh"})


@pytest.fixture
def executor(ctx) -> FakeHostExecutor:
    return FakeHostExecutor(ctx)


@pytest.fixture
def dry_executor(dry_ctx) -> FakeHostExecutor:
    return FakeHostExecutor(dry_ctx)


@pytest.fixture
def tree(host_root: Path):
    """Callable returning the current contents of the host tree."""
    return lambda: snapshot_tree(host_root)


@pytest.fixture
def executor_factory():
    """Build a fresh fake host (clean packet filter state) for a context."""
    return FakeHostExecutor
