"""Stub command - write a user-facing Dockerfile for one definition."""

from __future__ import annotations

from pathlib import Path

import typer

from dcr.cli.commands._helpers import exit_on_error
from dcr.cli.context import CLIContext, build_context
from dcr.core.config import Distro
from dcr.core.result import Err, Ok, Result
from dcr.platform.files import atomic_write_text
from dcr.release.definition import DOCKERFILE, PUSH_LAYOUT
from dcr.release.errors import IoFailed, NotAStub, ReleaseError, UnknownDefinition
from dcr.release.stub import (
    StubProvenance,
    StubTemplates,
    create_stub,
    references_base,
    update_stub,
)
from dcr.release.tags import base_tag


def _stub_ref(version: str, ctx: CLIContext) -> str:
    if version[:1].isdigit():
        return f"v{version}"
    return ctx.config.settings.default_branch


def write_stub(
    ctx: CLIContext,
    definition_id: str,
    devcontainer_dir: Path,
    version: str,
    *,
    alpine: bool,
) -> Result[Path, ReleaseError]:
    """Create ``Dockerfile`` in devcontainer_dir, or repoint the one already there.

    An existing ``Dockerfile`` that does not build from the published image
    is left untouched and reported as ``NotAStub``.
    """
    catalog = ctx.config.catalog
    definition = catalog.get(definition_id)
    if definition is None:
        return Err(UnknownDefinition(definition_id=definition_id, available=tuple(catalog)))

    settings = ctx.config.settings
    version = version.removeprefix("v")
    recipe = PUSH_LAYOUT.marker if (devcontainer_dir / PUSH_LAYOUT.marker).is_file() else DOCKERFILE
    provenance = StubProvenance(
        preamble=settings.docker_file_preamble,
        repository_url=settings.repository_url,
        release=_stub_ref(version, ctx),
        containers_path=settings.containers_path_in_repo,
        definition_id=definition_id,
        dockerfile_name=recipe,
        base_tag=base_tag(definition, settings.stub_registry, settings.stub_registry_path),
        version=version,
    )

    target = devcontainer_dir / DOCKERFILE
    try:
        if target.is_file():
            current = target.read_text(encoding="utf-8")
            if not references_base(current, provenance.base_tag):
                return Err(NotAStub(path=target, base_tag=provenance.base_tag))
            ctx.console.info(f"Updating {target}...")
            stub = update_stub(current, provenance)
        else:
            templates = StubTemplates.load()
            if isinstance(templates, Err):
                return templates
            distro = Distro.ALPINE if alpine else definition.root_distro
            ctx.console.info(f"Generating {target}...")
            stub = create_stub(templates.value.for_distro(distro), provenance)
        atomic_write_text(target, stub)
    except OSError as e:
        return Err(IoFailed(path=target, reason=str(e)))
    return Ok(target)


def stub(
    definition: str = typer.Argument(..., help="ID of the dev container definition"),
    path: Path = typer.Argument(Path("."), help="Path to the .devcontainer folder"),
    version: str = typer.Option("latest", "--version", help="Image version to use in the stub"),
    alpine: bool = typer.Option(
        False, "--alpine/--no-alpine", help="Use the Alpine stub template"
    ),
) -> None:
    """Generate a stub Dockerfile that uses the published image."""
    ctx = build_context()
    target = exit_on_error(write_stub(ctx, definition, path, version, alpine=alpine), ctx)
    ctx.console.success(f"wrote {target}")
