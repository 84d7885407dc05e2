from __future__ import annotations

import json
from pathlib import Path

from dcr.core.config import Config, DefinitionConfig, DefinitionDependencies, PackageSet
from dcr.core.result import Err, Ok
from dcr.output.console import MockConsole
from dcr.release.cgmanifest import (
    PACKAGE_QUERIES,
    ComponentRegistry,
    generate_manifest,
    parse_package_versions,
    write_manifest,
)
from dcr.release.errors import PackageQueryFailed, UnknownDefinition
from dcr.test.release._fakes import FakeEngine

DEV_IMAGE = "mcr.microsoft.com/vscode/devcontainers/python:dev-3"


def _config(**dependencies: DefinitionDependencies) -> Config:
    return Config(
        catalog={"python": DefinitionConfig(id="python", tags=("python:${VERSION}-3",))},
        dependencies=dependencies,
    )


def test_parse_debian_packages() -> None:
    output = "git\t1:2.20.1-2\ncurl\t7.64.0-4\n\nnot a package line\n"

    pairs = parse_package_versions(output, PACKAGE_QUERIES["debian"].pattern)

    assert pairs == [("git", "1:2.20.1-2"), ("curl", "7.64.0-4")]


def test_parse_alpine_packages_with_dashes_in_name() -> None:
    output = "git-2.24.3-r0\nca-certificates-20191127-r2\nlibc-utils-0.7.2-r3\n"

    pairs = parse_package_versions(output, PACKAGE_QUERIES["alpine"].pattern)

    assert pairs == [
        ("git", "2.24.3-r0"),
        ("ca-certificates", "20191127-r2"),
        ("libc-utils", "0.7.2-r3"),
    ]


def test_registry_deduplicates() -> None:
    registry = ComponentRegistry()

    assert registry.add_image("python:3", "https://link")
    assert not registry.add_image("python:3", "https://link")
    assert registry.add_package("Debian Package: git", "1.0", "(buster)", "u")
    assert not registry.add_package("Debian Package: git", "1.0", "(buster)", "u")
    assert registry.add_package("Debian Package: git", "2.0", "(bullseye)", "u")
    manual = {"Component": {"Type": "git", "Git": {"Name": "x"}}}
    assert registry.add_manual(manual)
    assert not registry.add_manual({"Component": {"Git": {"Name": "x"}, "Type": "git"}})

    document = registry.to_document()
    assert document["Version"] == 1
    assert len(document["Registrations"]) == 4  # type: ignore[arg-type]


def test_generate_manifest(tmp_path: Path) -> None:
    engine = FakeEngine(run_outputs={DEV_IMAGE: "git\t1:2.20.1-2\ncurl\t7.64.0-4\n"})
    config = _config(
        python=DefinitionDependencies(
            image="python:3.8",
            image_link="https://github.com/docker-library/python",
            package_sets={"debian": PackageSet(version="buster", packages=("git", "curl"))},
            manual=({"Component": {"Type": "pip", "Pip": {"Name": "pylint"}}},),
        )
    )

    result = generate_manifest(config, engine, MockConsole())

    assert isinstance(result, Ok)
    assert engine.runs == [
        (DEV_IMAGE, r"dpkg-query --show -f='${Package}\t${Version}\n' git curl"),
    ]
    registrations = result.value["Registrations"]
    assert registrations == [
        {
            "Component": {
                "Type": "other",
                "Other": {
                    "Name": "Docker Image: python",
                    "Version": "3.8",
                    "DownloadUrl": "https://github.com/docker-library/python",
                },
            }
        },
        {
            "Component": {
                "Type": "other",
                "Other": {
                    "Name": "Debian Package: git",
                    "Version": "1:2.20.1-2 (buster)",
                    "DownloadUrl": "https://packages.debian.org/buster/git",
                },
            }
        },
        {
            "Component": {
                "Type": "other",
                "Other": {
                    "Name": "Debian Package: curl",
                    "Version": "7.64.0-4 (buster)",
                    "DownloadUrl": "https://packages.debian.org/buster/curl",
                },
            }
        },
        {"Component": {"Type": "pip", "Pip": {"Name": "pylint"}}},
    ]


def test_generate_manifest_query_failure() -> None:
    engine = FakeEngine(failing_runs={DEV_IMAGE})
    config = _config(
        python=DefinitionDependencies(
            package_sets={"debian": PackageSet(version="buster", packages=("git",))}
        )
    )

    result = generate_manifest(config, engine, MockConsole())

    assert result == Err(PackageQueryFailed(image=DEV_IMAGE, returncode=125, stderr="no such image"))


def test_generate_manifest_unknown_definition() -> None:
    config = _config(
        ruby=DefinitionDependencies(
            package_sets={"debian": PackageSet(version="buster", packages=("git",))}
        )
    )

    result = generate_manifest(config, FakeEngine(), MockConsole())

    assert isinstance(result, Err)
    assert isinstance(result.error, UnknownDefinition)


def test_image_only_dependencies_need_no_query() -> None:
    engine = FakeEngine()
    config = _config(ruby=DefinitionDependencies(image="ruby:2"))

    result = generate_manifest(config, engine, MockConsole())

    assert isinstance(result, Ok)
    assert engine.runs == []
    assert len(result.value["Registrations"]) == 1  # type: ignore[arg-type]


def test_write_manifest(tmp_path: Path) -> None:
    path = tmp_path / "cgmanifest.json"
    document = {"Registrations": [], "Version": 1}

    assert write_manifest(path, document) == Ok(path)
    assert json.loads(path.read_text(encoding="utf-8")) == document
    assert '\n    "Version": 1' in path.read_text(encoding="utf-8")
