"""Push command - build and push definition images."""

from __future__ import annotations

import typer

from dcr.cli.commands._helpers import exit_on_error, make_orchestrator, require_release_tag
from dcr.cli.context import build_context
from dcr.cli.errors import print_run_summary, run_exit_code
from dcr.release.orchestrator import Flow, ReleaseRequest


def push(
    definition: str | None = typer.Argument(
        None, help="ID of a specific definition to push", show_default=False
    ),
    release: str | None = typer.Option(
        None, "--release", help="Release tag (e.g. v0.55.1); defaults to package.json"
    ),
    update_latest: bool = typer.Option(
        True,
        "--update-latest/--no-update-latest",
        help='Also update the "latest" and {MAJOR} tags',
    ),
) -> None:
    """Push dev container images to a registry."""
    ctx = build_context()
    tag = require_release_tag(release, ctx)

    request = ReleaseRequest(
        release=tag,
        update_latest=update_latest,
        flow=Flow.PUSH,
        definition_id=definition,
    )
    report = exit_on_error(make_orchestrator(ctx).run(request), ctx)

    print_run_summary(report, ctx.console)
    code = run_exit_code(report)
    if code:
        raise typer.Exit(code=code)
