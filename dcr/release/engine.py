"""Container engine collaborator.

The pipeline treats builds, pushes and in-image queries as opaque commands
whose only outcome is success or failure. ``DockerCli`` runs them with the
docker CLI; tests substitute their own ``ContainerEngine``.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from dcr.core.result import Result
from dcr.platform.process import ProcessError, run, run_silent

__all__ = ["ContainerEngine", "DockerCli", "build_args"]


class ContainerEngine(Protocol):
    def build(
        self, working_dir: Path, dockerfile: Path, tags: Sequence[str]
    ) -> Result[None, ProcessError]: ...

    def push(self, tag: str, working_dir: Path) -> Result[None, ProcessError]: ...

    def run(self, image: str, command: str) -> Result[str, ProcessError]: ...


def build_args(working_dir: Path, dockerfile: Path, tags: Sequence[str]) -> list[str]:
    args = ["build", str(working_dir), "-f", str(dockerfile)]
    for tag in tags:
        args += ["-t", tag]
    return args


class DockerCli:
    """ContainerEngine backed by the ``docker`` executable."""

    def __init__(self, executable: str = "docker") -> None:
        self._exe = executable

    def build(
        self, working_dir: Path, dockerfile: Path, tags: Sequence[str]
    ) -> Result[None, ProcessError]:
        return run_silent([self._exe, *build_args(working_dir, dockerfile, tags)], cwd=working_dir)

    def push(self, tag: str, working_dir: Path) -> Result[None, ProcessError]:
        return run_silent([self._exe, "push", tag], cwd=working_dir)

    def run(self, image: str, command: str) -> Result[str, ProcessError]:
        # The command is a shell snippet, evaluated by the image's own shell.
        return run([self._exe, "run", "--rm", image, "sh", "-c", command], cwd=Path.cwd())
