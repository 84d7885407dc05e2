"""Publishing one definition.

A definition moves through

    staged -> dockerfile_detected -> built -> pushed -> metadata_rewritten -> done

with every side effect strictly after the previous one succeeded: nothing is
pushed before the build passed, and the stub Dockerfile is written before the
devcontainer.json that references it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum
from pathlib import Path

from dcr.core.config import DefinitionConfig, Settings
from dcr.core.result import Err, Ok, Result
from dcr.output.console import ConsoleProtocol, Style
from dcr.platform.files import atomic_write_text, sha256_file
from dcr.release.descriptor import DESCRIPTOR_NAME, build_context, parse_descriptor
from dcr.release.engine import ContainerEngine
from dcr.release.errors import (
    BuildFailed,
    DescriptorInvalid,
    IoFailed,
    MissingDockerfile,
    PushFailed,
    ReleaseError,
)
from dcr.release.fsm import FINISH, StepOutcome, advance, run_state_machine
from dcr.release.stub import (
    StubProvenance,
    StubTemplates,
    create_stub,
    descriptor_header,
    pin_common_script,
    raw_content_url,
    references_base,
    rewrite_descriptor,
    update_stub,
)
from dcr.release.tags import base_tag
from dcr.release.version import major_minor

__all__ = [
    "DOCKERFILE",
    "DefinitionJob",
    "DefinitionOutcome",
    "DefinitionPublisher",
    "DefinitionState",
    "DockerfileLayout",
    "Phase",
    "PUSH_LAYOUT",
    "RELEASE_LAYOUT",
    "Status",
]

DEVCONTAINER_DIR = ".devcontainer"
DOCKERFILE = "Dockerfile"


class Phase(StrEnum):
    STAGED = "staged"
    DOCKERFILE_DETECTED = "dockerfile_detected"
    BUILT = "built"
    PUSHED = "pushed"
    METADATA_REWRITTEN = "metadata_rewritten"
    DONE = "done"


class Status(StrEnum):
    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class DockerfileLayout:
    """Which files a publish flavour builds from, writes and references.

    Attributes:
        marker: File whose presence means the definition was published before.
        stub: File the user-facing stub lives in.
        build_from_marker: Build from the marker file when it exists.
        descriptor_ref_from: Dockerfile name replaced in devcontainer.json.
        descriptor_ref_to: Name it is replaced with.
    """

    marker: str
    stub: str
    build_from_marker: bool
    descriptor_ref_from: str
    descriptor_ref_to: str


# The recipe lives in base.Dockerfile once published; Dockerfile becomes the stub.
PUSH_LAYOUT = DockerfileLayout(
    marker="base.Dockerfile",
    stub=DOCKERFILE,
    build_from_marker=True,
    descriptor_ref_from="base.Dockerfile",
    descriptor_ref_to=DOCKERFILE,
)

# The recipe stays in Dockerfile; the stub is a separate user.Dockerfile.
RELEASE_LAYOUT = DockerfileLayout(
    marker="user.Dockerfile",
    stub="user.Dockerfile",
    build_from_marker=False,
    descriptor_ref_from=DOCKERFILE,
    descriptor_ref_to="user.Dockerfile",
)


@dataclass(frozen=True, slots=True)
class DefinitionJob:
    definition: DefinitionConfig
    definition_dir: Path
    release: str
    tags: tuple[str, ...]
    layout: DockerfileLayout = PUSH_LAYOUT
    push_images: bool = True

    @property
    def devcontainer_dir(self) -> Path:
        return self.definition_dir / DEVCONTAINER_DIR


@dataclass(frozen=True, slots=True)
class DefinitionState:
    phase: Phase = Phase.STAGED
    marker_exists: bool = False
    dockerfile: Path | None = None
    descriptor_raw: str = ""
    working_dir: Path | None = None
    pushed: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DefinitionOutcome:
    definition_id: str
    status: Status
    phase: Phase | None = None
    tags: tuple[str, ...] = ()
    error: ReleaseError | None = None


def _write(path: Path, content: str) -> Result[None, ReleaseError]:
    try:
        atomic_write_text(path, content)
    except OSError as e:
        return Err(IoFailed(path=path, reason=str(e)))
    return Ok(None)


class DefinitionPublisher:
    """Runs the publish state machine for one definition at a time."""

    def __init__(
        self,
        *,
        settings: Settings,
        engine: ContainerEngine,
        templates: StubTemplates,
        console: ConsoleProtocol,
        script_root: Path | None = None,
    ) -> None:
        self._settings = settings
        self._engine = engine
        self._templates = templates
        self._console = console
        self._script_root = script_root

    def publish(self, job: DefinitionJob) -> DefinitionOutcome:
        def detect(state: DefinitionState) -> Result[StepOutcome[DefinitionState], ReleaseError]:
            return self._detect(job, state)

        def build(state: DefinitionState) -> Result[StepOutcome[DefinitionState], ReleaseError]:
            return self._build(job, state)

        def push(state: DefinitionState) -> Result[StepOutcome[DefinitionState], ReleaseError]:
            return self._push(job, state)

        def rewrite(state: DefinitionState) -> Result[StepOutcome[DefinitionState], ReleaseError]:
            return self._rewrite(job, state)

        def complete(state: DefinitionState) -> Result[StepOutcome[DefinitionState], ReleaseError]:
            return Ok(advance(replace(state, phase=Phase.DONE)))

        def finish(_: DefinitionState) -> Result[StepOutcome[DefinitionState], ReleaseError]:
            return Ok(FINISH)

        result = run_state_machine(
            initial_state=DefinitionState(),
            get_step=lambda s: s.phase.value,
            handlers={
                Phase.STAGED.value: detect,
                Phase.DOCKERFILE_DETECTED.value: build,
                Phase.BUILT.value: push,
                Phase.PUSHED.value: rewrite,
                Phase.METADATA_REWRITTEN.value: complete,
                Phase.DONE.value: finish,
            },
        )

        definition_id = job.definition.id
        if isinstance(result, Err):
            state, error = result.error
            return DefinitionOutcome(
                definition_id=definition_id,
                status=Status.FAILED,
                phase=state.phase,
                tags=job.tags,
                error=error,
            )

        self._console.success(f"{definition_id} done")
        return DefinitionOutcome(
            definition_id=definition_id,
            status=Status.DONE,
            phase=result.value.phase,
            tags=job.tags,
        )

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _detect(
        self, job: DefinitionJob, state: DefinitionState
    ) -> Result[StepOutcome[DefinitionState], ReleaseError]:
        devcontainer_dir = job.devcontainer_dir
        marker = devcontainer_dir / job.layout.marker
        marker_exists = marker.is_file()
        dockerfile = (
            marker if job.layout.build_from_marker and marker_exists else devcontainer_dir / DOCKERFILE
        )
        if not dockerfile.is_file():
            return Err(MissingDockerfile(definition_id=job.definition.id, path=dockerfile))

        self._console.info("Tags:" + "".join(f"\n     {tag}" for tag in job.tags))

        self._console.info(f"Reading {DESCRIPTOR_NAME}...")
        descriptor_path = devcontainer_dir / DESCRIPTOR_NAME
        try:
            raw = descriptor_path.read_text(encoding="utf-8")
        except OSError as e:
            return Err(
                DescriptorInvalid(definition_id=job.definition.id, path=descriptor_path, reason=str(e))
            )
        parsed = parse_descriptor(raw)
        if isinstance(parsed, Err):
            return Err(
                DescriptorInvalid(
                    definition_id=job.definition.id, path=descriptor_path, reason=parsed.error
                )
            )

        pinned = self._pin_common_script(job, dockerfile)
        if isinstance(pinned, Err):
            return pinned

        return Ok(
            advance(
                replace(
                    state,
                    phase=Phase.DOCKERFILE_DETECTED,
                    marker_exists=marker_exists,
                    dockerfile=dockerfile,
                    descriptor_raw=raw,
                    working_dir=build_context(parsed.value, devcontainer_dir),
                )
            )
        )

    def _pin_common_script(self, job: DefinitionJob, dockerfile: Path) -> Result[None, ReleaseError]:
        script_name = self._settings.common_script_mapping.get(job.definition.root_distro.value)
        if script_name is None or self._script_root is None:
            return Ok(None)

        library = self._settings.script_library_path_in_repo
        script = self._script_root / library / script_name
        if not script.is_file():
            self._console.warning(f"common script not found, not pinning: {script}")
            return Ok(None)

        try:
            sha = sha256_file(script)
            text = dockerfile.read_text(encoding="utf-8")
        except OSError as e:
            return Err(IoFailed(path=script, reason=str(e)))

        source_url = raw_content_url(
            self._settings.repository_url, job.release, f"{library}/{script_name}"
        )
        pinned = pin_common_script(text, sha, source_url)
        if pinned == text:
            return Ok(None)
        self._console.print(f"pinned {script_name} ({sha[:12]})", Style.DIM)
        return _write(dockerfile, pinned)

    def _build(
        self, job: DefinitionJob, state: DefinitionState
    ) -> Result[StepOutcome[DefinitionState], ReleaseError]:
        assert state.dockerfile is not None and state.working_dir is not None
        self._console.info(f"Building {state.dockerfile.name}...")
        built = self._engine.build(state.working_dir, state.dockerfile, job.tags)
        if isinstance(built, Err):
            return Err(BuildFailed(definition_id=job.definition.id, returncode=built.error.returncode))
        return Ok(advance(replace(state, phase=Phase.BUILT)))

    def _push(
        self, job: DefinitionJob, state: DefinitionState
    ) -> Result[StepOutcome[DefinitionState], ReleaseError]:
        assert state.working_dir is not None
        if not job.push_images:
            self._console.print("build only, not pushing", Style.DIM)
            return Ok(advance(replace(state, phase=Phase.PUSHED)))

        self._console.info(f"Pushing {job.definition.id}...")
        pushed: list[str] = []
        failed: list[str] = []
        for tag in job.tags:
            result = self._engine.push(tag, state.working_dir)
            if isinstance(result, Err):
                self._console.error(f"push {tag}: {result.error}")
                failed.append(tag)
            else:
                pushed.append(tag)

        if failed:
            return Err(PushFailed(definition_id=job.definition.id, failed_tags=tuple(failed)))
        return Ok(advance(replace(state, phase=Phase.PUSHED, pushed=tuple(pushed))))

    def _rewrite(
        self, job: DefinitionJob, state: DefinitionState
    ) -> Result[StepOutcome[DefinitionState], ReleaseError]:
        assert state.dockerfile is not None
        settings = self._settings
        definition = job.definition

        version = major_minor(job.release)
        if isinstance(version, Err):
            return version

        provenance = StubProvenance(
            preamble=settings.docker_file_preamble,
            repository_url=settings.repository_url,
            release=job.release,
            containers_path=settings.containers_path_in_repo,
            definition_id=definition.id,
            dockerfile_name=state.dockerfile.name,
            base_tag=base_tag(definition, settings.stub_registry, settings.stub_registry_path),
            version=version.value,
        )

        stub_path = job.devcontainer_dir / job.layout.stub
        if state.marker_exists and stub_path.is_file():
            self._console.info(f"Updating {stub_path.name}...")
            try:
                current = stub_path.read_text(encoding="utf-8")
            except OSError as e:
                return Err(IoFailed(path=stub_path, reason=str(e)))
            if not references_base(current, provenance.base_tag):
                self._console.warning(f"no 'FROM {provenance.base_tag}:' line in {stub_path}")
            stub = update_stub(current, provenance)
        else:
            self._console.info(f"Generating {stub_path.name}...")
            template = self._templates.for_distro(definition.root_distro)
            stub = create_stub(template, provenance)

        written = _write(stub_path, stub)
        if isinstance(written, Err):
            return written

        self._console.info(f"Updating {DESCRIPTOR_NAME}...")
        header = descriptor_header(
            settings.dev_container_json_preamble,
            settings.repository_url,
            job.release,
            settings.containers_path_in_repo,
            definition.id,
        )
        descriptor = rewrite_descriptor(
            state.descriptor_raw,
            header,
            job.layout.descriptor_ref_from,
            job.layout.descriptor_ref_to,
        )
        written = _write(job.devcontainer_dir / DESCRIPTOR_NAME, descriptor)
        if isinstance(written, Err):
            return written

        return Ok(advance(replace(state, phase=Phase.METADATA_REWRITTEN)))
