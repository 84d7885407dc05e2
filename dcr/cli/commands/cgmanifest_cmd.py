"""Cgmanifest command - inventory third-party components in the images."""

from __future__ import annotations

import typer

from dcr.cli.commands._helpers import exit_on_error, make_orchestrator
from dcr.cli.context import build_context
from dcr.cli.errors import print_run_summary, run_exit_code
from dcr.release.cgmanifest import MANIFEST_NAME, generate_manifest, write_manifest
from dcr.release.orchestrator import ReleaseRequest
from dcr.release.version import DEV


def cgmanifest(
    build: bool = typer.Option(
        True, "--build/--no-build", help="Build the dev images before querying them"
    ),
) -> None:
    """Generate cgmanifest.json from the dependency inventory."""
    ctx = build_context()

    if build:
        request = ReleaseRequest(release=DEV.value, update_latest=False, push_images=False)
        report = exit_on_error(make_orchestrator(ctx).run(request), ctx)
        code = run_exit_code(report)
        if code:
            print_run_summary(report, ctx.console)
            raise typer.Exit(code=code)

    document = exit_on_error(generate_manifest(ctx.config, ctx.engine, ctx.console), ctx)
    path = exit_on_error(write_manifest(ctx.root / MANIFEST_NAME, document), ctx)
    ctx.console.success(f"wrote {path}")
