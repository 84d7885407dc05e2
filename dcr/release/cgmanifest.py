"""Component governance manifest.

Lists the third-party components shipped in the published images: each base
Docker image, the OS packages installed in each image (queried from the
built image itself) and any components registered by hand. The output is
``cgmanifest.json``:

    {
        "Registrations": [{"Component": {"Type": "other", "Other": {...}}}],
        "Version": 1
    }
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dcr.core.config import Config, DefinitionDependencies, PackageSet
from dcr.core.result import Err, Ok, Result
from dcr.core.structured import StrDict
from dcr.output.console import ConsoleProtocol, Style
from dcr.platform.files import atomic_write_text
from dcr.release.engine import ContainerEngine
from dcr.release.errors import (
    IoFailed,
    PackageQueryFailed,
    ReleaseError,
    UnknownDefinition,
)
from dcr.release.tags import tags_for_version
from dcr.release.version import DEV

__all__ = [
    "MANIFEST_NAME",
    "PACKAGE_QUERIES",
    "ComponentRegistry",
    "PackageQuery",
    "generate_manifest",
    "parse_package_versions",
    "write_manifest",
]

MANIFEST_NAME = "cgmanifest.json"


@dataclass(frozen=True, slots=True)
class PackageQuery:
    """How to list installed package versions for one package source."""

    command: str
    pattern: re.Pattern[str]
    name_prefix: str
    url_base: str


PACKAGE_QUERIES: Mapping[str, PackageQuery] = {
    # <package>\t<version>
    "debian": PackageQuery(
        command=r"dpkg-query --show -f='${Package}\t${Version}\n'",
        pattern=re.compile(r"(.+)\t(.+)"),
        name_prefix="Debian Package:",
        url_base="https://packages.debian.org/{version}",
    ),
    "ubuntu": PackageQuery(
        command=r"dpkg-query --show -f='${Package}\t${Version}\n'",
        pattern=re.compile(r"(.+)\t(.+)"),
        name_prefix="Ubuntu Package:",
        url_base="https://packages.ubuntu.com/{version}",
    ),
    # <package>-<version>-r<n>; package names may contain dashes
    "alpine": PackageQuery(
        command="apk info -e -v",
        pattern=re.compile(r"(.+?)-(\d.*)"),
        name_prefix="Alpine Package:",
        url_base="https://pkgs.alpinelinux.org/package/v{version}/main/x86_64",
    ),
}


def _other_component(name: str, version: str, download_url: str | None) -> StrDict:
    other: StrDict = {"Name": name, "Version": version}
    if download_url is not None:
        other["DownloadUrl"] = download_url
    return {"Component": {"Type": "other", "Other": other}}


@dataclass
class ComponentRegistry:
    """Accumulates registrations, skipping anything already registered."""

    registrations: list[StrDict] = field(default_factory=list)
    _seen: dict[str, list[str]] = field(default_factory=dict)

    def _is_new(self, key: str, version: str) -> bool:
        return version not in self._seen.get(key, [])

    def _mark(self, key: str, version: str) -> None:
        self._seen.setdefault(key, []).append(version)

    def add_image(self, image: str, image_link: str | None) -> bool:
        if image in self._seen:
            return False
        name, _, version = image.partition(":")
        self.registrations.append(_other_component(f"Docker Image: {name}", version, image_link))
        self._mark(image, version)
        return True

    def add_package(self, name: str, version: str, version_suffix: str, url: str) -> bool:
        if not self._is_new(name, version):
            return False
        self.registrations.append(_other_component(name, f"{version} {version_suffix}", url))
        self._mark(name, version)
        return True

    def add_manual(self, component: StrDict) -> bool:
        key = json.dumps(component, sort_keys=True)
        if key in self._seen:
            return False
        self.registrations.append(component)
        self._mark(key, key)
        return True

    def to_document(self) -> StrDict:
        return {"Registrations": list(self.registrations), "Version": 1}


def parse_package_versions(output: str, pattern: re.Pattern[str]) -> list[tuple[str, str]]:
    """Extract (name, version) pairs from package-listing output.

    Blank lines and lines the pattern does not match are ignored.
    """
    pairs: list[tuple[str, str]] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        m = pattern.fullmatch(line)
        if m is None:
            continue
        pairs.append((m.group(1), m.group(2)))
    return pairs


def _register_packages(
    registry: ComponentRegistry,
    engine: ContainerEngine,
    image_tag: str,
    source: str,
    package_set: PackageSet,
) -> Result[int, ReleaseError]:
    query = PACKAGE_QUERIES[source]
    command = " ".join([query.command, *package_set.packages])
    output = engine.run(image_tag, command)
    if isinstance(output, Err):
        return Err(
            PackageQueryFailed(
                image=image_tag, returncode=output.error.returncode, stderr=output.error.stderr
            )
        )

    url_base = query.url_base.format(version=package_set.version)
    added = 0
    for name, version in parse_package_versions(output.value, query.pattern):
        if registry.add_package(
            f"{query.name_prefix} {name}",
            version,
            f"({package_set.version})",
            f"{url_base}/{name}",
        ):
            added += 1
    return Ok(added)


def _register_definition(
    registry: ComponentRegistry,
    config: Config,
    engine: ContainerEngine,
    definition_id: str,
    deps: DefinitionDependencies,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    if deps.image is not None:
        registry.add_image(deps.image, deps.image_link)

    if deps.package_sets:
        definition = config.catalog.get(definition_id)
        settings = config.settings
        dev_tags = (
            tags_for_version(definition, DEV.value, settings.registry, settings.registry_path)
            if definition is not None
            else []
        )
        if not dev_tags:
            return Err(UnknownDefinition(definition_id=definition_id, available=tuple(config.catalog)))

        image_tag = dev_tags[0]
        console.info(f"Generating Linux distribution package registrations for {image_tag}...")
        for source in PACKAGE_QUERIES:
            package_set = deps.package_sets.get(source)
            if package_set is None:
                continue
            added = _register_packages(registry, engine, image_tag, source, package_set)
            if isinstance(added, Err):
                return added
            console.print(f"{source}: {added} new package(s)", Style.DIM)

    for component in deps.manual:
        registry.add_manual(component)
    return Ok(None)


def generate_manifest(
    config: Config, engine: ContainerEngine, console: ConsoleProtocol
) -> Result[StrDict, ReleaseError]:
    """Build the manifest document from the dependency inventory.

    Package versions are read from the ``dev`` image of each definition, so
    those images must have been built beforehand.
    """
    console.info("Generating manifest...")
    registry = ComponentRegistry()
    for definition_id, deps in config.dependencies.items():
        result = _register_definition(registry, config, engine, definition_id, deps, console)
        if isinstance(result, Err):
            return result
    return Ok(registry.to_document())


def write_manifest(path: Path, document: StrDict) -> Result[Path, ReleaseError]:
    try:
        atomic_write_text(path, json.dumps(document, indent=4))
    except OSError as e:
        return Err(IoFailed(path=path, reason=str(e)))
    return Ok(path)
