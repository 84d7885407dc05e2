"""Release runs over the definition catalog.

A run validates its inputs before touching anything, stages a snapshot of
the repository into a directory it exclusively owns, publishes each
selected definition in parent-first order and reports one outcome per
definition. A failing definition does not stop its siblings; only I/O
failures abort the batch.
"""

from __future__ import annotations

import tempfile
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from dcr.core.config import Config
from dcr.core.result import Err, Ok, Result
from dcr.output.console import ConsoleProtocol
from dcr.platform.files import copy_matching, make_unique_dir, remove_tree
from dcr.release.definition import (
    PUSH_LAYOUT,
    RELEASE_LAYOUT,
    DefinitionJob,
    DefinitionOutcome,
    DefinitionPublisher,
    DockerfileLayout,
    Status,
)
from dcr.release.engine import ContainerEngine
from dcr.release.errors import IoFailed, ReleaseError, UnknownDefinition, is_run_fatal
from dcr.release.ordering import select_definitions, topo_sort
from dcr.release.stub import StubTemplates
from dcr.release.tags import generate_tags
from dcr.release.version import ReleaseVersion, parse_version, version_parts

__all__ = ["Flow", "ReleaseOrchestrator", "ReleaseRequest", "RunPlan", "RunReport"]

STAGING_DIR_NAME = "dcr"


class Flow(StrEnum):
    PUSH = "push"
    RELEASE = "release"


_LAYOUTS: dict[Flow, DockerfileLayout] = {
    Flow.PUSH: PUSH_LAYOUT,
    Flow.RELEASE: RELEASE_LAYOUT,
}


@dataclass(frozen=True, slots=True)
class ReleaseRequest:
    release: str
    update_latest: bool = True
    flow: Flow = Flow.PUSH
    definition_id: str | None = None
    push_images: bool = True
    keep_staging: bool = False


@dataclass(frozen=True, slots=True)
class RunPlan:
    """Validated inputs of a run; computing it has no side effects."""

    request: ReleaseRequest
    version: ReleaseVersion
    definitions: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class RunReport:
    staging_dir: Path
    outcomes: tuple[DefinitionOutcome, ...]
    staging_removed: bool = False
    aborted_by: ReleaseError | None = None

    @property
    def failures(self) -> tuple[DefinitionOutcome, ...]:
        return tuple(o for o in self.outcomes if o.status == Status.FAILED)

    def ids_with(self, status: Status) -> tuple[str, ...]:
        return tuple(o.definition_id for o in self.outcomes if o.status == status)

    @property
    def ok(self) -> bool:
        return self.aborted_by is None and not self.failures


class ReleaseOrchestrator:
    def __init__(
        self,
        *,
        config: Config,
        source_root: Path,
        engine: ContainerEngine,
        console: ConsoleProtocol,
        templates: StubTemplates | None = None,
    ) -> None:
        self._config = config
        self._source_root = source_root
        self._engine = engine
        self._console = console
        self._templates = templates

    def plan(self, request: ReleaseRequest) -> Result[RunPlan, ReleaseError]:
        """Validate version, catalog and target before any side effect."""
        version = parse_version(request.release)
        if not version.is_dev:
            parts = version_parts(version)
            if isinstance(parts, Err):
                return parts

        catalog = self._config.catalog
        order = topo_sort(catalog)
        if isinstance(order, Err):
            return order

        if request.definition_id is not None and request.definition_id not in catalog:
            return Err(
                UnknownDefinition(definition_id=request.definition_id, available=tuple(catalog))
            )

        definitions = select_definitions(
            order.value,
            explicit=request.definition_id,
            allow_list=self._allow_list(request.flow),
        )
        return Ok(RunPlan(request=request, version=version, definitions=definitions))

    def _allow_list(self, flow: Flow) -> tuple[str, ...]:
        settings = self._config.settings
        if flow == Flow.RELEASE:
            return settings.definitions_to_release
        return settings.definitions_to_push

    def run(self, request: ReleaseRequest) -> Result[RunReport, ReleaseError]:
        plan = self.plan(request)
        if isinstance(plan, Err):
            return plan

        templates = self._templates
        if templates is None:
            loaded = StubTemplates.load()
            if isinstance(loaded, Err):
                return loaded
            templates = loaded.value

        staging = self._stage(plan.value)
        if isinstance(staging, Err):
            return staging
        staging_dir = staging.value

        outcomes: tuple[DefinitionOutcome, ...] = ()
        aborted_by: ReleaseError | None = None
        try:
            outcomes, aborted_by = self._publish_all(plan.value, staging_dir, templates)
        finally:
            removed = False
            if not request.keep_staging:
                removed = self._cleanup(staging_dir)

        return Ok(
            RunReport(
                staging_dir=staging_dir,
                outcomes=outcomes,
                staging_removed=removed,
                aborted_by=aborted_by,
            )
        )

    def _stage(self, plan: RunPlan) -> Result[Path, ReleaseError]:
        settings = self._config.settings
        root = settings.staging_root or Path(tempfile.gettempdir())
        parent = root / STAGING_DIR_NAME
        try:
            staging_dir = make_unique_dir(parent, plan.version.value)
        except OSError as e:
            return Err(IoFailed(path=parent, reason=str(e)))

        self._console.info(f"Copying files to {staging_dir}")
        try:
            copy_matching(self._source_root, settings.files_to_stage, staging_dir)
        except OSError as e:
            self._cleanup(staging_dir)
            return Err(IoFailed(path=staging_dir, reason=str(e)))
        return Ok(staging_dir)

    def _cleanup(self, staging_dir: Path) -> bool:
        try:
            remove_tree(staging_dir)
        except OSError as e:
            self._console.warning(f"could not remove {staging_dir}: {e}")
            return False
        return True

    def _publish_all(
        self, plan: RunPlan, staging_dir: Path, templates: StubTemplates
    ) -> tuple[tuple[DefinitionOutcome, ...], ReleaseError | None]:
        settings = self._config.settings
        request = plan.request
        publisher = DefinitionPublisher(
            settings=settings,
            engine=self._engine,
            templates=templates,
            console=self._console,
            script_root=staging_dir,
        )
        definitions_root = staging_dir / settings.containers_path_in_repo
        skip = set(settings.definitions_to_skip)
        verb = "Releasing" if request.flow == Flow.RELEASE else "Pushing"
        if not request.push_images:
            verb = "Building"

        outcomes: list[DefinitionOutcome] = []
        for definition_id in plan.definitions:
            if definition_id in skip:
                self._console.info(f"Skipping {definition_id}...")
                outcomes.append(DefinitionOutcome(definition_id=definition_id, status=Status.SKIPPED))
                continue

            self._console.header(f"{verb} {definition_id} {request.release}")
            outcome = self._publish_one(publisher, plan, definitions_root, definition_id)
            outcomes.append(outcome)

            if outcome.error is not None:
                self._console.error(outcome.error.message)
                if is_run_fatal(outcome.error):
                    return tuple(outcomes), outcome.error

        return tuple(outcomes), None

    def _publish_one(
        self,
        publisher: DefinitionPublisher,
        plan: RunPlan,
        definitions_root: Path,
        definition_id: str,
    ) -> DefinitionOutcome:
        settings = self._config.settings
        request = plan.request
        tags = generate_tags(
            self._config.catalog,
            definition_id,
            plan.version,
            update_latest=request.update_latest,
            registry=settings.registry,
            registry_path=settings.registry_path,
        )
        if isinstance(tags, Err):
            return DefinitionOutcome(
                definition_id=definition_id, status=Status.FAILED, error=tags.error
            )

        job = DefinitionJob(
            definition=self._config.catalog[definition_id],
            definition_dir=definitions_root / definition_id,
            release=request.release,
            tags=tags.value,
            layout=_LAYOUTS[request.flow],
            push_images=request.push_images,
        )
        return publisher.publish(job)
