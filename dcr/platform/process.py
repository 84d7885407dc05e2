"""Subprocess execution returning Results.

Every external tool (docker, yarn, npm) is launched through this module, so
callers only ever see ``Ok`` or ``Err(ProcessError)``.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from dcr.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run", "run_silent"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that could not be started or exited non-zero.

    Attributes:
        command: The command that was executed.
        returncode: Exit code, or -1 when the process never started.
        stdout: Captured standard output (empty for streamed commands).
        stderr: Captured standard error, or the OS error text.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
) -> Result[str, ProcessError]:
    """Run a command and capture its output.

    Args:
        cmd: Command and arguments.
        cwd: Working directory.
        env: Environment (inherits the current one if None).

    Returns:
        Ok(stdout) on exit code 0, Err(ProcessError) otherwise.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)


def run_silent(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
) -> Result[None, ProcessError]:
    """Run a command with output streamed to the terminal.

    Used for long-running builds and pushes where the user wants to follow
    progress. Nothing is captured.
    """
    try:
        proc = subprocess.run(cmd, cwd=str(cwd), env=env, check=False)
    except OSError as e:
        return Err(ProcessError(command=tuple(cmd), returncode=-1, stdout="", stderr=str(e)))

    if proc.returncode != 0:
        return Err(
            ProcessError(command=tuple(cmd), returncode=proc.returncode, stdout="", stderr="")
        )

    return Ok(None)
