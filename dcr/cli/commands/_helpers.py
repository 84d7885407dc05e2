"""Shared helpers for CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, NoReturn

import typer

from dcr.core.errors import ErrorCode
from dcr.core.result import Err, Result
from dcr.cli.errors import print_release_error, release_error_exit_code
from dcr.release.errors import MalformedVersion, ReleaseError
from dcr.release.orchestrator import ReleaseOrchestrator

if TYPE_CHECKING:
    from dcr.cli.context import CLIContext


def exit_on_error[T](result: Result[T, ReleaseError], ctx: CLIContext) -> T:
    """Return the Ok value, or print the error and exit."""
    if isinstance(result, Err):
        print_release_error(result.error, ctx.console)
        raise typer.Exit(code=release_error_exit_code(result.error))
    return result.value


def exit_with_code(code: int) -> NoReturn:
    raise typer.Exit(code=code)


def default_release(ctx: CLIContext) -> str:
    """``v<version>`` from the repository's package.json."""
    package_json = ctx.root / "package.json"
    try:
        data: object = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        ctx.console.error(f"no --release given and cannot read {package_json}: {e}")
        exit_with_code(int(ErrorCode.FAILED))

    version = data.get("version") if isinstance(data, dict) else None
    if not isinstance(version, str) or not version:
        ctx.console.error(f"no --release given and no version in {package_json}")
        exit_with_code(int(ErrorCode.FAILED))
    return f"v{version}"


def require_release_tag(release: str | None, ctx: CLIContext) -> str:
    """Resolve the release identifier; published releases must look like ``vX.Y.Z``."""
    tag = release or default_release(ctx)
    if not tag.startswith("v"):
        print_release_error(MalformedVersion(identifier=tag), ctx.console)
        exit_with_code(int(ErrorCode.FAILED))
    return tag


def make_orchestrator(ctx: CLIContext) -> ReleaseOrchestrator:
    return ReleaseOrchestrator(
        config=ctx.config,
        source_root=ctx.root,
        engine=ctx.engine,
        console=ctx.console,
    )
