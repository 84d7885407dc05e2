from __future__ import annotations

from pathlib import Path

from dcr.cli.context import CLIContext
from dcr.core.config import Config, DefinitionConfig, DefinitionDependencies, Distro, Settings
from dcr.output.console import MockConsole
from dcr.test.release._fakes import FakeEngine, make_definition

CATALOG = {
    "debian": DefinitionConfig(id="debian", tags=("base:${VERSION}-debian",)),
    "python": DefinitionConfig(id="python", tags=("python:${VERSION}-3",), parent="debian"),
    "alpine": DefinitionConfig(
        id="alpine", tags=("base:${VERSION}-alpine",), root_distro=Distro.ALPINE
    ),
}


def make_ctx(
    tmp_path: Path,
    *,
    engine: FakeEngine | None = None,
    dependencies: dict[str, DefinitionDependencies] | None = None,
    version: str = "1.2.3",
) -> CLIContext:
    """Repository with every catalog definition and a package.json."""
    root = tmp_path / "repo"
    for definition_id in CATALOG:
        make_definition(root / "containers", definition_id)
    (root / "package.json").write_text(f'{{"version": "{version}"}}', encoding="utf-8")
    return CLIContext(
        root=root,
        config=Config(
            settings=Settings(staging_root=tmp_path / "staging"),
            catalog=CATALOG,
            dependencies=dependencies or {},
        ),
        console=MockConsole(),
        engine=engine or FakeEngine(),
    )
