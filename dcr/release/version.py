from __future__ import annotations

from dataclasses import dataclass

from dcr.core.result import Err, Ok, Result
from dcr.release.errors import InvalidVersionFormat, MalformedVersion

__all__ = ["DEV", "ReleaseVersion", "major_minor", "parse_version", "version_parts"]


@dataclass(frozen=True, slots=True)
class ReleaseVersion:
    """A concrete version string (``1.2.3``) or the ``dev`` channel."""

    value: str

    @property
    def is_dev(self) -> bool:
        return self.value == DEV_CHANNEL

    def __str__(self) -> str:
        return self.value


DEV_CHANNEL = "dev"
DEV = ReleaseVersion(DEV_CHANNEL)


def parse_version(identifier: str) -> ReleaseVersion:
    """Turn a release tag (``v1.2.3``), bare version or branch name into a version.

    Branch names such as ``master`` map to the dev channel.
    """
    if identifier[:1].isdigit():
        return ReleaseVersion(identifier)
    if identifier[:1] == "v" and identifier[1:2].isdigit():
        return ReleaseVersion(identifier[1:])
    return DEV


def version_parts(version: ReleaseVersion) -> Result[tuple[str, str, str], InvalidVersionFormat]:
    parts = version.value.split(".")
    if len(parts) != 3 or any(not p for p in parts):
        return Err(InvalidVersionFormat(version=version.value))
    return Ok((parts[0], parts[1], parts[2]))


def major_minor(identifier: str) -> Result[str, MalformedVersion]:
    """``MAJOR.MINOR`` of a release identifier, or ``dev`` for branches."""
    version = parse_version(identifier)
    if version.is_dev:
        return Ok(DEV_CHANNEL)

    parts = version.value.split(".")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return Err(MalformedVersion(identifier=identifier))
    return Ok(f"{parts[0]}.{parts[1]}")
