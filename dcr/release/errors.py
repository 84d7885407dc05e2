"""Release error variants.

Each variant is a small frozen record; ``ReleaseError`` is their union.
All of them expose ``message`` and ``hint`` so CLI adapters can render any
error without knowing its type.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

_VERSION_HINT = "Valid form: v{MAJOR}.{MINOR}.{FIX}"


@dataclass(frozen=True, slots=True)
class MalformedVersion:
    identifier: str

    @property
    def message(self) -> str:
        return f"Invalid release identifier {self.identifier}"

    @property
    def hint(self) -> str | None:
        return _VERSION_HINT


@dataclass(frozen=True, slots=True)
class InvalidVersionFormat:
    version: str

    @property
    def message(self) -> str:
        return f"Invalid version format in {self.version}"

    @property
    def hint(self) -> str | None:
        return _VERSION_HINT


@dataclass(frozen=True, slots=True)
class UnknownDefinition:
    definition_id: str
    available: tuple[str, ...] = ()

    @property
    def message(self) -> str:
        return f"Unknown definition: {self.definition_id}"

    @property
    def hint(self) -> str | None:
        if not self.available:
            return None
        return f"Available: {', '.join(self.available)}"


@dataclass(frozen=True, slots=True)
class CyclicDependency:
    cycle: tuple[str, ...]

    @property
    def message(self) -> str:
        return f"Definition parents form a cycle: {' -> '.join(self.cycle)}"

    @property
    def hint(self) -> str | None:
        return "Fix the 'parent' entries in definitionBuildSettings."


@dataclass(frozen=True, slots=True)
class MissingDockerfile:
    definition_id: str
    path: Path

    @property
    def message(self) -> str:
        return f"{self.definition_id}: invalid path {self.path}"

    @property
    def hint(self) -> str | None:
        return None


@dataclass(frozen=True, slots=True)
class DescriptorInvalid:
    definition_id: str
    path: Path
    reason: str

    @property
    def message(self) -> str:
        return f"{self.definition_id}: cannot read {self.path} ({self.reason})"

    @property
    def hint(self) -> str | None:
        return None


@dataclass(frozen=True, slots=True)
class NotAStub:
    path: Path
    base_tag: str

    @property
    def message(self) -> str:
        return f"{self.path} has no 'FROM {self.base_tag}:' line to update"

    @property
    def hint(self) -> str | None:
        return "Use a folder whose Dockerfile uses the published image, or one without a Dockerfile."


@dataclass(frozen=True, slots=True)
class BuildFailed:
    definition_id: str
    returncode: int

    @property
    def message(self) -> str:
        return f"{self.definition_id}: image build failed (exit {self.returncode})"

    @property
    def hint(self) -> str | None:
        return None


@dataclass(frozen=True, slots=True)
class PushFailed:
    definition_id: str
    failed_tags: tuple[str, ...]

    @property
    def message(self) -> str:
        tags = ", ".join(self.failed_tags)
        return f"{self.definition_id}: push failed for {tags}"

    @property
    def hint(self) -> str | None:
        return "Check registry credentials (docker login)."


@dataclass(frozen=True, slots=True)
class PackageQueryFailed:
    image: str
    returncode: int
    stderr: str = ""

    @property
    def message(self) -> str:
        return f"package query in {self.image} failed (exit {self.returncode})"

    @property
    def hint(self) -> str | None:
        return self.stderr.strip() or None


@dataclass(frozen=True, slots=True)
class PackageFailed:
    step: str
    returncode: int
    staging_dir: Path

    @property
    def message(self) -> str:
        return f"{self.step} failed (exit {self.returncode})"

    @property
    def hint(self) -> str | None:
        return f"Staged files left in {self.staging_dir}"


@dataclass(frozen=True, slots=True)
class IoFailed:
    path: Path
    reason: str

    @property
    def message(self) -> str:
        return f"I/O error on {self.path}: {self.reason}"

    @property
    def hint(self) -> str | None:
        return None


@dataclass(frozen=True, slots=True)
class ConfigInvalid:
    reason: str
    path: Path | None = None

    @property
    def message(self) -> str:
        return self.reason

    @property
    def hint(self) -> str | None:
        if self.path is None:
            return None
        return f"Config: {self.path}"


ReleaseError = (
    MalformedVersion
    | InvalidVersionFormat
    | UnknownDefinition
    | CyclicDependency
    | MissingDockerfile
    | DescriptorInvalid
    | NotAStub
    | BuildFailed
    | PushFailed
    | PackageQueryFailed
    | PackageFailed
    | IoFailed
    | ConfigInvalid
)


def is_run_fatal(error: ReleaseError) -> bool:
    """True for errors that must stop the whole batch, not just one definition."""
    return isinstance(error, (IoFailed, ConfigInvalid, MalformedVersion, InvalidVersionFormat))
