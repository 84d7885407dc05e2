"""Tests for dcr.core.config module."""

from __future__ import annotations

from pathlib import Path

import pytest

from dcr.core.config import (
    Config,
    DefinitionConfig,
    Distro,
    Settings,
    config_from_dict,
    env_var_name,
    load_config,
)
from dcr.core.result import Err, Ok


CONFIG_TOML = """
registry = "example.azurecr.io"
registryPath = "public/dev"
definitionsToRelease = ["python-3"]
definitionsToSkip = ["skipped"]

[commonScriptMapping]
debian = "common-debian.sh"

[definitionBuildSettings.debian]
tags = ["base:${VERSION}-debian"]

[definitionBuildSettings.python-3]
tags = ["python:${VERSION}-3"]
latest = true
parent = "debian"

[definitionBuildSettings.alpine]
tags = ["base:${VERSION}-alpine"]
rootDistro = "alpine"

[definitionDependencies.python-3]
image = "python:3"
imageLink = "https://github.com/docker-library/python"

[definitionDependencies.python-3.debian]
version = "buster"
packages = ["git", "curl"]

[[definitionDependencies.python-3.manual]]
Component = { Type = "git", Git = { Name = "oh-my-zsh" } }
"""


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(content, encoding="utf-8")
    return path


class TestEnvVarName:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("registry", "REGISTRY"),
            ("registryPath", "REGISTRY_PATH"),
            ("stubRegistryPath", "STUB_REGISTRY_PATH"),
            ("devContainerJsonPreamble", "DEV_CONTAINER_JSON_PREAMBLE"),
        ],
    )
    def test_camel_case_transform(self, name: str, expected: str) -> None:
        assert env_var_name(name) == expected


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings.from_dict({}, environ={})
        assert settings.registry == "mcr.microsoft.com"
        assert settings.stub_registry == settings.registry
        assert settings.stub_registry_path == settings.registry_path
        assert settings.staging_root is None
        assert "package.json" in settings.files_to_stage

    def test_config_value_used(self) -> None:
        settings = Settings.from_dict({"registryPath": "team/images"}, environ={})
        assert settings.registry_path == "team/images"
        assert settings.stub_registry_path == "team/images"

    def test_environment_wins_over_config(self) -> None:
        settings = Settings.from_dict(
            {"registryPath": "team/images"},
            environ={"REGISTRY_PATH": "override/path"},
        )
        assert settings.registry_path == "override/path"

    def test_empty_environment_value_ignored(self) -> None:
        settings = Settings.from_dict({"registry": "cfg.io"}, environ={"REGISTRY": "  "})
        assert settings.registry == "cfg.io"

    def test_list_setting_from_environment_is_comma_split(self) -> None:
        settings = Settings.from_dict(
            {}, environ={"DEFINITIONS_TO_SKIP": "a, b,,c"}
        )
        assert settings.definitions_to_skip == ("a", "b", "c")

    def test_stub_registry_overridable(self) -> None:
        settings = Settings.from_dict(
            {"registry": "push.io", "stubRegistry": "pull.io"}, environ={}
        )
        assert settings.registry == "push.io"
        assert settings.stub_registry == "pull.io"

    def test_repository_url_trailing_slash_dropped(self) -> None:
        settings = Settings.from_dict({"repositoryUrl": "https://github.com/o/r/"}, environ={})
        assert settings.repository_url == "https://github.com/o/r"


class TestLoadConfig:
    def test_full_config(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, CONFIG_TOML), environ={})

        assert isinstance(result, Ok)
        config = result.value
        assert config.settings.registry == "example.azurecr.io"
        assert config.settings.definitions_to_push == ()
        assert config.settings.definitions_to_release == ("python-3",)
        assert config.settings.definitions_to_skip == ("skipped",)
        assert config.settings.common_script_mapping == {"debian": "common-debian.sh"}
        assert list(config.catalog) == ["debian", "python-3", "alpine"]
        assert config.catalog["python-3"] == DefinitionConfig(
            id="python-3",
            tags=("python:${VERSION}-3",),
            parent="debian",
            latest=True,
            root_distro=Distro.DEBIAN,
        )
        assert config.catalog["alpine"].root_distro == Distro.ALPINE

    def test_dependencies(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, CONFIG_TOML), environ={})

        assert isinstance(result, Ok)
        deps = result.value.dependencies["python-3"]
        assert deps.image == "python:3"
        assert deps.package_sets["debian"].version == "buster"
        assert deps.package_sets["debian"].packages == ("git", "curl")
        assert len(deps.manual) == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        result = load_config(tmp_path / "missing.toml", environ={})

        assert isinstance(result, Err)
        assert "not found" in result.error.message

    def test_invalid_toml(self, tmp_path: Path) -> None:
        result = load_config(_write(tmp_path, "registry = "), environ={})

        assert isinstance(result, Err)
        assert "Invalid TOML" in result.error.message

    def test_unknown_parent_rejected(self, tmp_path: Path) -> None:
        content = '[definitionBuildSettings.a]\ntags = ["a:${VERSION}"]\nparent = "nope"\n'
        result = load_config(_write(tmp_path, content), environ={})

        assert isinstance(result, Err)
        assert "unknown parent 'nope'" in result.error.message

    def test_unknown_distro_rejected(self, tmp_path: Path) -> None:
        content = '[definitionBuildSettings.a]\ntags = ["a:${VERSION}"]\nrootDistro = "arch"\n'
        result = load_config(_write(tmp_path, content), environ={})

        assert isinstance(result, Err)
        assert "rootDistro" in result.error.message

    def test_empty_tags_rejected(self, tmp_path: Path) -> None:
        content = "[definitionBuildSettings.a]\ntags = []\n"
        result = load_config(_write(tmp_path, content), environ={})

        assert isinstance(result, Err)


def test_config_from_dict_empty() -> None:
    config = config_from_dict({}, environ={})
    assert config == Config(settings=Settings.from_dict({}, environ={}))
