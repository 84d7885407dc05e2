"""Error and run-report presentation for the CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dcr.core.errors import ErrorCode
from dcr.output.console import Style
from dcr.release.definition import Status
from dcr.release.errors import PushFailed, ReleaseError, UnknownDefinition

if TYPE_CHECKING:
    from dcr.output.console import ConsoleProtocol
    from dcr.release.orchestrator import RunReport

__all__ = ["print_release_error", "print_run_summary", "release_error_exit_code", "run_exit_code"]


def print_release_error(error: ReleaseError, console: ConsoleProtocol) -> None:
    match error:
        case PushFailed(definition_id=definition_id, failed_tags=failed_tags):
            console.error(f"{definition_id}: push failed for {len(failed_tags)} tag(s)")
            for tag in failed_tags:
                console.print(f"  {tag}", Style.DIM)
        case UnknownDefinition(definition_id=definition_id, available=available):
            console.error(f"Unknown definition: {definition_id}")
            if available:
                console.print(f"Available: {', '.join(available)}", Style.DIM)
            return
        case _:
            console.error(error.message)

    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def release_error_exit_code(error: ReleaseError) -> int:
    return int(ErrorCode.FAILED)


def print_run_summary(report: RunReport, console: ConsoleProtocol) -> None:
    console.newline()
    done = report.ids_with(Status.DONE)
    skipped = report.ids_with(Status.SKIPPED)
    if done:
        console.success(f"done: {', '.join(done)}")
    if skipped:
        console.print(f"skipped: {', '.join(skipped)}", Style.DIM)
    for outcome in report.failures:
        phase = outcome.phase.value if outcome.phase is not None else "-"
        console.error(f"failed: {outcome.definition_id} (at {phase})")
    if report.aborted_by is not None:
        console.error(f"run aborted: {report.aborted_by.message}")
    if not report.staging_removed:
        console.print(f"staging: {report.staging_dir}", Style.DIM)


def run_exit_code(report: RunReport) -> int:
    return int(ErrorCode.OK if report.ok else ErrorCode.FAILED)
