"""Text rewrites applied to a definition after its image is published.

- the user-facing stub Dockerfile, reduced to ``FROM <published image>``
  under a provenance comment pointing at the real build recipe
- the devcontainer.json header and Dockerfile reference
- the common setup script pin (``COMMON_SCRIPT_SHA`` / ``COMMON_SCRIPT_SOURCE``)

All functions here are pure string transforms; file I/O lives in the
state machine.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dcr.core.config import Distro
from dcr.core.result import Err, Ok, Result
from dcr.release.errors import IoFailed

__all__ = [
    "PLACEHOLDER_LINE",
    "StubProvenance",
    "StubTemplates",
    "create_stub",
    "descriptor_header",
    "pin_common_script",
    "provenance_snippet",
    "raw_content_url",
    "references_base",
    "rewrite_descriptor",
    "update_stub",
]

PLACEHOLDER_LINE = "FROM REPLACE-ME"


@dataclass(frozen=True, slots=True)
class StubProvenance:
    """Everything the stub's ``FROM`` block says about where it came from."""

    preamble: str
    repository_url: str
    release: str
    containers_path: str
    definition_id: str
    dockerfile_name: str
    base_tag: str
    version: str

    @property
    def source_url(self) -> str:
        return (
            f"{self.repository_url}/tree/{self.release}/{self.containers_path}/"
            f"{self.definition_id}/.devcontainer/{self.dockerfile_name}"
        )


def provenance_snippet(provenance: StubProvenance) -> str:
    return (
        f"# {provenance.preamble}\n"
        f"# {provenance.source_url}\n"
        f"FROM {provenance.base_tag}:{provenance.version}"
    )


def create_stub(template: str, provenance: StubProvenance) -> str:
    return template.replace(PLACEHOLDER_LINE, provenance_snippet(provenance), 1)


def references_base(text: str, base_tag: str) -> bool:
    """True when text has a ``FROM <base_tag>:...`` line that ``update_stub`` can repoint."""
    return re.search(rf"^FROM {re.escape(base_tag)}:.+$", text, re.MULTILINE) is not None


def update_stub(text: str, provenance: StubProvenance) -> str:
    """Point an existing stub at a new version of the same image.

    Only a ``FROM`` line for this exact base tag is touched, together with
    the provenance comment right above it, so running the update twice
    yields the same text.
    """
    pattern = re.compile(
        rf"(?:^# {re.escape(provenance.preamble)}\n# .*\n)?"
        rf"^FROM {re.escape(provenance.base_tag)}:.+$",
        re.MULTILINE,
    )
    snippet = provenance_snippet(provenance)
    return pattern.sub(lambda _: snippet, text, count=1)


def descriptor_header(
    preamble: str, repository_url: str, release: str, containers_path: str, definition_id: str
) -> str:
    return (
        f"// {preamble}\n"
        f"// {repository_url}/tree/{release}/{containers_path}/{definition_id}\n"
    )


def rewrite_descriptor(raw: str, header: str, old_ref: str, new_ref: str) -> str:
    """Prefix the provenance header and swap the Dockerfile reference."""
    return header + raw.replace(f'"{old_ref}"', f'"{new_ref}"', 1)


_SCRIPT_SOURCE_RE = re.compile(r'COMMON_SCRIPT_SOURCE="[^"\n]*"')


def pin_common_script(text: str, sha: str, source_url: str) -> str:
    pinned = text.replace('COMMON_SCRIPT_SHA="none"', f'COMMON_SCRIPT_SHA="{sha}"', 1)
    return _SCRIPT_SOURCE_RE.sub(lambda _: f'COMMON_SCRIPT_SOURCE="{source_url}"', pinned, count=1)


def raw_content_url(repository_url: str, ref: str, path: str) -> str:
    """URL serving the raw content of a file in the repository at ref."""
    github = "https://github.com/"
    if repository_url.startswith(github):
        slug = repository_url[len(github) :]
        return f"https://raw.githubusercontent.com/{slug}/{ref}/{path}"
    return f"{repository_url}/raw/{ref}/{path}"


def _default_stub_dir() -> Path:
    return Path(__file__).parent.parent / "data" / "stubs"


@dataclass(frozen=True, slots=True)
class StubTemplates:
    """Stub Dockerfile templates keyed by distro."""

    by_distro: Mapping[Distro, str]

    @classmethod
    def load(cls, directory: Path | None = None) -> Result[StubTemplates, IoFailed]:
        stub_dir = directory or _default_stub_dir()
        templates: dict[Distro, str] = {}
        for distro in Distro:
            path = stub_dir / f"{distro.value}.Dockerfile"
            try:
                templates[distro] = path.read_text(encoding="utf-8")
            except OSError as e:
                return Err(IoFailed(path=path, reason=str(e)))
        return Ok(cls(by_distro=templates))

    def for_distro(self, distro: Distro) -> str:
        return self.by_distro[distro]
