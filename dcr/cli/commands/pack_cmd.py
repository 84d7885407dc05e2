"""Pack command - push everything, then build the npm package."""

from __future__ import annotations

import typer

from dcr.cli.commands._helpers import exit_on_error, make_orchestrator, require_release_tag
from dcr.cli.context import build_context
from dcr.cli.errors import print_run_summary, run_exit_code
from dcr.release.orchestrator import Flow, ReleaseRequest
from dcr.release.package import pack as pack_release


def pack(
    release: str | None = typer.Option(
        None, "--release", help="Release tag (e.g. v0.55.1); defaults to package.json"
    ),
    update_latest: bool = typer.Option(
        True,
        "--update-latest/--no-update-latest",
        help='Also update the "latest" and {MAJOR} tags',
    ),
) -> None:
    """Package dev container definitions."""
    ctx = build_context()
    tag = require_release_tag(release, ctx)

    request = ReleaseRequest(release=tag, update_latest=update_latest, flow=Flow.PUSH)
    result = exit_on_error(
        pack_release(make_orchestrator(ctx), request, output_dir=ctx.root, console=ctx.console),
        ctx,
    )

    print_run_summary(result.report, ctx.console)
    for package in result.packages:
        ctx.console.success(str(package))
    code = run_exit_code(result.report)
    if code:
        raise typer.Exit(code=code)
