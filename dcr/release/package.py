"""Pack flow: push every definition, then package the staged tree as an npm tarball."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from dcr.core.result import Err, Ok, Result
from dcr.output.console import ConsoleProtocol
from dcr.platform.files import copy_matching, remove_tree
from dcr.platform.process import run_silent
from dcr.release.errors import IoFailed, PackageFailed, ReleaseError
from dcr.release.orchestrator import ReleaseOrchestrator, ReleaseRequest, RunReport

__all__ = ["PackResult", "pack"]

_PACK_STEPS: tuple[tuple[str, ...], ...] = (
    ("yarn", "install"),
    ("npm", "pack"),
)


@dataclass(frozen=True, slots=True)
class PackResult:
    report: RunReport
    packages: tuple[Path, ...] = ()


def pack(
    orchestrator: ReleaseOrchestrator,
    request: ReleaseRequest,
    *,
    output_dir: Path,
    console: ConsoleProtocol,
) -> Result[PackResult, ReleaseError]:
    """Push all definitions, package the staged result and copy it to output_dir.

    The staging directory is kept when a step fails so it can be inspected.
    """
    pushed = orchestrator.run(replace(request, definition_id=None, keep_staging=True))
    if isinstance(pushed, Err):
        return pushed

    report = pushed.value
    staging_dir = report.staging_dir
    if not report.ok:
        console.warning(f"push failed, not packaging; staged files left in {staging_dir}")
        return Ok(PackResult(report=report))

    console.header(f"Package {request.release} in {staging_dir}")
    console.info("Packaging...")
    for step in _PACK_STEPS:
        result = run_silent(list(step), cwd=staging_dir)
        if isinstance(result, Err):
            return Err(
                PackageFailed(
                    step=" ".join(step),
                    returncode=result.error.returncode,
                    staging_dir=staging_dir,
                )
            )

    console.info("Copying package...")
    try:
        packages = copy_matching(staging_dir, ["*.tgz"], output_dir)
    except OSError as e:
        return Err(IoFailed(path=output_dir, reason=str(e)))

    console.info("Cleaning up...")
    try:
        remove_tree(staging_dir)
    except OSError as e:
        console.warning(f"could not remove {staging_dir}: {e}")
    else:
        report = replace(report, staging_removed=True)

    return Ok(PackResult(report=report, packages=tuple(packages)))
