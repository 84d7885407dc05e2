"""Registry tag derivation.

A definition declares tag templates such as ``python:${VERSION}-buster``.
A release expands every template over a list of version strings:

- ``dev`` builds get a single ``dev`` expansion
- other releases get ``X.Y.Z`` and ``X.Y``, plus ``X`` and the empty
  version when ``update_latest`` is set

The empty version is the no-suffix variant: ``python:${VERSION}-buster``
becomes ``python:buster`` (the dangling ``-`` after the colon is dropped),
while ``python:${VERSION}`` degenerates to ``python:`` and is never emitted.
"""

from __future__ import annotations

import re

from dcr.core.config import Catalog, DefinitionConfig
from dcr.core.result import Err, Ok, Result
from dcr.release.errors import ReleaseError, UnknownDefinition
from dcr.release.version import ReleaseVersion, version_parts

__all__ = [
    "VERSION_PLACEHOLDER",
    "base_tag",
    "generate_tags",
    "latest_tags",
    "tags_for_version",
]

VERSION_PLACEHOLDER = "${VERSION}"

_SUFFIX_RE = re.compile(r":.+")


def _qualify(tag: str, registry: str, registry_path: str) -> str:
    return f"{registry}/{registry_path}/{tag}"


def tags_for_version(
    definition: DefinitionConfig, version: str, registry: str, registry_path: str
) -> list[str]:
    """Expand every template of a definition for one version string."""
    out: list[str] = []
    for template in definition.tags:
        tag = template.replace(VERSION_PLACEHOLDER, version, 1).replace(":-", ":", 1)
        if tag.endswith(":"):
            continue
        out.append(_qualify(tag, registry, registry_path))
    return out


def latest_tags(definition: DefinitionConfig, registry: str, registry_path: str) -> list[str]:
    """``latest`` flavour of each template (everything after the colon replaced)."""
    return [
        _qualify(_SUFFIX_RE.sub(":latest", template, count=1), registry, registry_path)
        for template in definition.tags
    ]


def base_tag(definition: DefinitionConfig, registry: str, registry_path: str) -> str:
    """Registry-qualified image name without a tag, from the first template."""
    name = definition.tags[0].split(":", 1)[0]
    return _qualify(name, registry, registry_path)


def generate_tags(
    catalog: Catalog,
    definition_id: str,
    version: ReleaseVersion,
    *,
    update_latest: bool,
    registry: str,
    registry_path: str,
) -> Result[tuple[str, ...], ReleaseError]:
    """Full ordered tag list for one definition and release.

    ``latest`` seeds come first when the definition is promoted to latest.
    Duplicates across expansion steps are kept: pushing a tag twice is
    harmless and the order is what gets displayed.
    """
    definition = catalog.get(definition_id)
    if definition is None:
        return Err(UnknownDefinition(definition_id=definition_id, available=tuple(catalog)))

    if version.is_dev:
        return Ok(tuple(tags_for_version(definition, version.value, registry, registry_path)))

    parts = version_parts(version)
    if isinstance(parts, Err):
        return parts
    major, minor, _ = parts.value

    candidates = [version.value, f"{major}.{minor}"]
    if update_latest:
        candidates += [major, ""]

    tags: list[str] = []
    if update_latest and definition.latest:
        tags += latest_tags(definition, registry, registry_path)
    for candidate in candidates:
        tags += tags_for_version(definition, candidate, registry, registry_path)

    return Ok(tuple(tags))
