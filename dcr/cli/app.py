from __future__ import annotations

import os
from pathlib import Path

import typer

from dcr import __version__
from dcr.cli.commands.cgmanifest_cmd import cgmanifest
from dcr.cli.commands.pack_cmd import pack
from dcr.cli.commands.push_cmd import push
from dcr.cli.commands.release_cmd import release
from dcr.cli.commands.stub_cmd import stub
from dcr.cli.context import CONFIG_ENV, ROOT_ENV
from dcr.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(push)
app.command()(pack)
app.command()(stub)
app.command()(release)
app.command()(cgmanifest)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        callback=_print_version,
        is_eager=True,
        help="Show version and exit.",
    ),
    root: Path | None = typer.Option(
        None,
        "--root",
        help="Repository root (defaults to the current directory)",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        help="Config file (defaults to <root>/build/config.toml)",
    ),
) -> None:
    if root is not None:
        try:
            resolved = root.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --root: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.FAILED))

        if not resolved.is_dir():
            typer.echo(f"error: --root '{resolved}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.FAILED))

        os.environ[ROOT_ENV] = str(resolved)

    if config is not None:
        os.environ[CONFIG_ENV] = str(config.expanduser().resolve())


def main() -> None:
    app()
