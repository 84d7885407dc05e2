"""Release command - publish images and generate user.Dockerfile stubs."""

from __future__ import annotations

import typer

from dcr.cli.commands._helpers import exit_on_error, make_orchestrator, require_release_tag
from dcr.cli.context import build_context
from dcr.cli.errors import print_run_summary, run_exit_code
from dcr.release.orchestrator import Flow, ReleaseRequest


def release(
    tag: str = typer.Argument(..., help="Release tag (e.g. v0.55.1)"),
    definition: str | None = typer.Argument(
        None, help="ID of a specific definition to release", show_default=False
    ),
    update_latest: bool = typer.Option(
        True,
        "--update-latest/--no-update-latest",
        help='Also update the "latest" and {MAJOR} tags',
    ),
) -> None:
    """Release definitions, keeping their Dockerfile and adding user.Dockerfile."""
    ctx = build_context()
    release_tag = require_release_tag(tag, ctx)

    request = ReleaseRequest(
        release=release_tag,
        update_latest=update_latest,
        flow=Flow.RELEASE,
        definition_id=definition,
    )
    report = exit_on_error(make_orchestrator(ctx).run(request), ctx)

    print_run_summary(report, ctx.console)
    code = run_exit_code(report)
    if code:
        raise typer.Exit(code=code)
