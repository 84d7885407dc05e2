"""Typed configuration loading.

The release config is a TOML file with three parts:

- top-level camelCase settings (``registry``, ``registryPath``, ...), each
  overridable by an environment variable (see ``env_var_name``)
- ``[definitionBuildSettings.<id>]`` tables forming the definition catalog
- optional ``[definitionDependencies.<id>]`` tables describing what the
  component manifest should register for each image
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_dict_list,
    get_str,
    get_str_list,
    get_table,
)

__all__ = [
    "Catalog",
    "Config",
    "ConfigError",
    "DefinitionConfig",
    "DefinitionDependencies",
    "Distro",
    "PackageSet",
    "Settings",
    "config_from_dict",
    "env_var_name",
    "load_config",
]


class Distro(StrEnum):
    DEBIAN = "debian"
    ALPINE = "alpine"
    REDHAT = "redhat"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or is inconsistent."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class DefinitionConfig:
    """Build settings for one definition."""

    id: str
    tags: tuple[str, ...]
    parent: str | None = None
    latest: bool = False
    root_distro: Distro = Distro.DEBIAN


type Catalog = Mapping[str, DefinitionConfig]


@dataclass(frozen=True, slots=True)
class PackageSet:
    """OS packages to register, and the distro release they come from."""

    version: str
    packages: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class DefinitionDependencies:
    image: str | None = None
    image_link: str | None = None
    # keyed by package source: debian, ubuntu or alpine
    package_sets: Mapping[str, PackageSet] = field(default_factory=dict)
    manual: tuple[StrDict, ...] = ()


def env_var_name(name: str) -> str:
    """Environment variable overriding a camelCase setting.

    Each uppercase letter is preceded by ``_`` and the result is uppercased:
    ``registryPath`` -> ``REGISTRY_PATH``.
    """
    return "".join(f"_{c}" if "A" <= c <= "Z" else c.upper() for c in name)


class _SettingSource:
    """Resolves a setting: environment first, then config, then default."""

    def __init__(self, data: Mapping[str, object], environ: Mapping[str, str]) -> None:
        self._data = data
        self._environ = environ

    def text(self, name: str, default: str) -> str:
        return self.optional_text(name) or default

    def optional_text(self, name: str) -> str | None:
        env_value = self._environ.get(env_var_name(name), "").strip()
        if env_value:
            return env_value
        return get_str(self._data, name)

    def items(self, name: str, default: tuple[str, ...] = ()) -> tuple[str, ...]:
        env_value = self._environ.get(env_var_name(name), "").strip()
        if env_value:
            return tuple(p.strip() for p in env_value.split(",") if p.strip())
        values = get_str_list(self._data, name)
        if values is None:
            return default
        return tuple(values)


@dataclass(frozen=True, slots=True)
class Settings:
    """Named settings shared by every release flow."""

    repository_url: str = "https://github.com/microsoft/vscode-dev-containers"
    default_branch: str = "main"
    registry: str = "mcr.microsoft.com"
    registry_path: str = "vscode/devcontainers"
    stub_registry: str = "mcr.microsoft.com"
    stub_registry_path: str = "vscode/devcontainers"
    dev_container_json_preamble: str = (
        "For format details, see https://aka.ms/devcontainer.json. "
        "For config options, see the README at:"
    )
    docker_file_preamble: str = "See here for image contents:"
    containers_path_in_repo: str = "containers"
    script_library_path_in_repo: str = "script-library"
    files_to_stage: tuple[str, ...] = ("containers/**/*", "script-library/*", "package.json")
    definitions_to_push: tuple[str, ...] = ()
    definitions_to_release: tuple[str, ...] = ()
    definitions_to_skip: tuple[str, ...] = ()
    staging_root: Path | None = None
    common_script_mapping: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, object], environ: Mapping[str, str] | None = None
    ) -> Settings:
        src = _SettingSource(data, os.environ if environ is None else environ)
        defaults = cls()
        registry = src.text("registry", defaults.registry)
        registry_path = src.text("registryPath", defaults.registry_path)
        staging_root = src.optional_text("stagingRoot")
        mapping = get_table(data, "commonScriptMapping") or {}

        return cls(
            repository_url=src.text("repositoryUrl", defaults.repository_url).rstrip("/"),
            default_branch=src.text("defaultBranch", defaults.default_branch),
            registry=registry,
            registry_path=registry_path,
            stub_registry=src.text("stubRegistry", registry),
            stub_registry_path=src.text("stubRegistryPath", registry_path),
            dev_container_json_preamble=src.text(
                "devContainerJsonPreamble", defaults.dev_container_json_preamble
            ),
            docker_file_preamble=src.text("dockerFilePreamble", defaults.docker_file_preamble),
            containers_path_in_repo=src.text(
                "containersPathInRepo", defaults.containers_path_in_repo
            ),
            script_library_path_in_repo=src.text(
                "scriptLibraryPathInRepo", defaults.script_library_path_in_repo
            ),
            files_to_stage=src.items("filesToStage", defaults.files_to_stage),
            definitions_to_push=src.items("definitionsToPush"),
            definitions_to_release=src.items("definitionsToRelease"),
            definitions_to_skip=src.items("definitionsToSkip"),
            staging_root=Path(staging_root) if staging_root else None,
            common_script_mapping={
                k: v.strip() for k, v in mapping.items() if isinstance(v, str) and v.strip()
            },
        )


@dataclass(frozen=True, slots=True)
class Config:
    settings: Settings = field(default_factory=Settings)
    catalog: Catalog = field(default_factory=dict)
    dependencies: Mapping[str, DefinitionDependencies] = field(default_factory=dict)


def _parse_definition(definition_id: str, table: StrDict) -> DefinitionConfig:
    tags = get_str_list(table, "tags")
    if not tags or any(not t.strip() for t in tags):
        raise ValueError(f"definition '{definition_id}' needs a non-empty list of tags")

    distro_name = get_str(table, "rootDistro") or Distro.DEBIAN.value
    try:
        distro = Distro(distro_name)
    except ValueError:
        raise ValueError(
            f"definition '{definition_id}' has unknown rootDistro '{distro_name}'"
        ) from None

    return DefinitionConfig(
        id=definition_id,
        tags=tuple(tags),
        parent=get_str(table, "parent"),
        latest=get_bool(table, "latest") or False,
        root_distro=distro,
    )


def _parse_catalog(data: Mapping[str, object]) -> dict[str, DefinitionConfig]:
    settings = get_table(data, "definitionBuildSettings") or {}
    catalog: dict[str, DefinitionConfig] = {}
    for definition_id, raw in settings.items():
        table = as_str_dict(raw)
        if table is None:
            raise ValueError(f"definition '{definition_id}' must be a table")
        catalog[definition_id] = _parse_definition(definition_id, table)

    for definition in catalog.values():
        if definition.parent is not None and definition.parent not in catalog:
            raise ValueError(
                f"definition '{definition.id}' references unknown parent '{definition.parent}'"
            )
    return catalog


def _parse_dependencies(data: Mapping[str, object]) -> dict[str, DefinitionDependencies]:
    tables = get_table(data, "definitionDependencies") or {}
    out: dict[str, DefinitionDependencies] = {}
    for definition_id, raw in tables.items():
        table = as_str_dict(raw)
        if table is None:
            raise ValueError(f"dependencies for '{definition_id}' must be a table")

        package_sets: dict[str, PackageSet] = {}
        for source in ("debian", "ubuntu", "alpine"):
            pkg_table = get_table(table, source)
            if pkg_table is None:
                continue
            version = get_str(pkg_table, "version")
            packages = get_str_list(pkg_table, "packages")
            if version is None or packages is None:
                raise ValueError(
                    f"dependencies for '{definition_id}.{source}' need version and packages"
                )
            package_sets[source] = PackageSet(version=version, packages=tuple(packages))

        out[definition_id] = DefinitionDependencies(
            image=get_str(table, "image"),
            image_link=get_str(table, "imageLink"),
            package_sets=package_sets,
            manual=tuple(get_dict_list(table, "manual") or ()),
        )
    return out


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and syntax errors."""
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def config_from_dict(
    data: Mapping[str, object], environ: Mapping[str, str] | None = None
) -> Config:
    """Build a Config from parsed TOML.

    Raises:
        ValueError: If the catalog or dependency tables are inconsistent.
    """
    return Config(
        settings=Settings.from_dict(data, environ),
        catalog=_parse_catalog(data),
        dependencies=_parse_dependencies(data),
    )


def load_config(
    path: Path, environ: Mapping[str, str] | None = None
) -> Result[Config, ConfigError]:
    """Load and validate the release configuration.

    Args:
        path: Path to the TOML config file.
        environ: Environment used for setting overrides (defaults to os.environ).

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure.
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(config_from_dict(result.value, environ))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))
