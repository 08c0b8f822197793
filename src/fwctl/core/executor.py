"""Command execution and filesystem primitives.

Provides:
- Safe command execution with output capture and stdin input
- Atomic file writes
- File and directory removal
- Dry-run mode support for all of the above
"""

import contextlib
import os
import secrets
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, Optional

from fwctl.core.context import ExecutionContext
from fwctl.core.exceptions import ExecutionError


DEFAULT_FILE_PERMS = 0o644


@dataclass
class CommandResult:
    """Result of a command execution."""
    command: list[str]
    return_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        """Check if command succeeded."""
        return self.return_code == 0


class AtomicFileWriter:
    """Atomic file writer using temp file and rename.

    Ensures file is either completely written or not modified at all.
    The parent directory must already exist.
    """

    def __init__(self, target_path: Path, permissions: int = DEFAULT_FILE_PERMS) -> None:
        self.target_path = Path(target_path)
        self.permissions = permissions

    @contextlib.contextmanager
    def open(self, mode: str = "w") -> Generator:
        """Open for atomic writing.

        Usage:
            with AtomicFileWriter(path).open() as f:
                f.write("content")
            # File is atomically replaced here
        """
        tmp_path = self.target_path.with_name(
            f".{self.target_path.name}.tmp_{secrets.token_hex(8)}"
        )

        success = False
        fd = None

        try:
            fd = os.open(
                tmp_path,
                os.O_WRONLY | os.O_CREAT | os.O_EXCL,
                self.permissions,
            )

            with os.fdopen(fd, mode) as f:
                fd = None  # fdopen takes ownership
                yield f
                f.flush()
                os.fsync(f.fileno())

            os.chmod(tmp_path, self.permissions)
            os.rename(tmp_path, self.target_path)
            success = True
        finally:
            if fd is not None:
                os.close(fd)
            if not success:
                with contextlib.suppress(FileNotFoundError):
                    tmp_path.unlink()


class CommandExecutor:
    """Safe command execution with dry-run support and output capture.

    Features:
    - Dry-run mode shows what would happen
    - Output capture for processing
    - Stdin input for restore-style commands
    - Timeout support
    """

    def __init__(self, ctx: ExecutionContext) -> None:
        """Initialize executor with context.

        Args:
            ctx: Execution context with flags
        """
        self.ctx = ctx

    def run(
        self,
        command: list[str],
        *,
        description: Optional[str] = None,
        check: bool = True,
        input: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> CommandResult:
        """Execute a command safely.

        Args:
            command: Command as list of strings
            description: Human-readable description for logging
            check: Raise exception on non-zero exit
            input: Text fed to the command's stdin
            timeout: Command timeout in seconds

        Returns:
            CommandResult with output

        Raises:
            ExecutionError: If command fails and check=True
        """
        if description:
            self.ctx.console.step(description)

        cmd_display = shlex.join(command)
        self.ctx.console.debug(f"Running: {cmd_display}")

        if self.ctx.dry_run:
            suffix = " (with stdin)" if input is not None else ""
            self.ctx.console.dry_run_msg(f"Run: {cmd_display}{suffix}")
            return CommandResult(
                command=command,
                return_code=0,
                stdout="",
                stderr="",
            )

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                input=input,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            raise ExecutionError(
                f"Command timed out after {timeout}s: {description or cmd_display}",
                command=cmd_display,
            )
        except OSError as e:
            raise ExecutionError(
                f"Cannot execute: {cmd_display}",
                command=cmd_display,
                details=[str(e)],
            ) from e

        cmd_result = CommandResult(
            command=command,
            return_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )

        if check and result.returncode != 0:
            raise ExecutionError(
                f"Command failed: {description or cmd_display}",
                command=cmd_display,
                return_code=result.returncode,
                stderr=result.stderr,
            )

        return cmd_result

    def write_file(
        self,
        path: Path,
        content: str,
        *,
        description: Optional[str] = None,
        permissions: int = DEFAULT_FILE_PERMS,
    ) -> None:
        """Write content to a file atomically.

        Args:
            path: Destination path
            content: File content
            description: Human-readable description
            permissions: File permissions
        """
        if description:
            self.ctx.console.step(description)

        if self.ctx.dry_run:
            self.ctx.console.dry_run_msg(f"Write {len(content)} bytes to {path}")
            return

        with AtomicFileWriter(path, permissions=permissions).open() as f:
            f.write(content)
        self.ctx.console.debug(f"Wrote {path}")

    def remove_file(self, path: Path, *, description: Optional[str] = None) -> None:
        """Remove a single file. Missing files are an error."""
        if description:
            self.ctx.console.step(description)

        if self.ctx.dry_run:
            self.ctx.console.dry_run_msg(f"Remove {path}")
            return

        path.unlink()
        self.ctx.console.debug(f"Removed {path}")

    def make_dir(self, path: Path, *, mode: int = 0o755) -> None:
        """Create a directory and any missing parents."""
        if self.ctx.dry_run:
            self.ctx.console.dry_run_msg(f"Create directory {path}")
            return

        path.mkdir(mode=mode, parents=True, exist_ok=True)
        self.ctx.console.debug(f"Created directory {path}")

    def remove_tree(self, path: Path, *, description: Optional[str] = None) -> None:
        """Remove a directory and everything below it."""
        if description:
            self.ctx.console.step(description)

        if self.ctx.dry_run:
            self.ctx.console.dry_run_msg(f"Remove directory {path}")
            return

        shutil.rmtree(path)
        self.ctx.console.debug(f"Removed directory {path}")
