from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from dcr.core.config import Config, load_config
from dcr.core.result import Err
from dcr.output.console import ConsoleProtocol, RichConsole
from dcr.cli.errors import print_release_error, release_error_exit_code
from dcr.release.engine import ContainerEngine, DockerCli
from dcr.release.errors import ConfigInvalid

ROOT_ENV = "DCR_ROOT"
CONFIG_ENV = "DCR_CONFIG"
DEFAULT_CONFIG = Path("build") / "config.toml"


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol
    engine: ContainerEngine


def resolve_root() -> Path:
    env = os.environ.get(ROOT_ENV)
    if env:
        return Path(env).expanduser().resolve()
    return Path.cwd().resolve()


def config_path(root: Path) -> Path:
    env = os.environ.get(CONFIG_ENV)
    if env:
        return Path(env).expanduser()
    return root / DEFAULT_CONFIG


def build_context() -> CLIContext:
    root = resolve_root()
    console = RichConsole()

    config_result = load_config(config_path(root))
    if isinstance(config_result, Err):
        error = ConfigInvalid(reason=config_result.error.message, path=config_result.error.path)
        print_release_error(error, console)
        raise typer.Exit(code=release_error_exit_code(error))

    return CLIContext(
        root=root,
        config=config_result.value,
        console=console,
        engine=DockerCli(),
    )
