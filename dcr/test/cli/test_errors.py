from __future__ import annotations

from pathlib import Path

from dcr.cli.errors import (
    print_release_error,
    print_run_summary,
    release_error_exit_code,
    run_exit_code,
)
from dcr.core.errors import ErrorCode
from dcr.output.console import MockConsole
from dcr.release.definition import DefinitionOutcome, Phase, Status
from dcr.release.errors import (
    BuildFailed,
    IoFailed,
    MalformedVersion,
    PushFailed,
    UnknownDefinition,
)
from dcr.release.orchestrator import RunReport


def test_print_malformed_version_with_hint() -> None:
    console = MockConsole()

    print_release_error(MalformedVersion(identifier="1.0.0"), console)

    assert console.messages == [
        "(!) Invalid release identifier 1.0.0",
        "hint: Valid form: v{MAJOR}.{MINOR}.{FIX}",
    ]


def test_print_push_failed_lists_tags() -> None:
    console = MockConsole()

    print_release_error(PushFailed(definition_id="python", failed_tags=("t1", "t2")), console)

    assert console.messages[0] == "(!) python: push failed for 2 tag(s)"
    assert "  t1" in console.messages
    assert "  t2" in console.messages


def test_print_unknown_definition_lists_available() -> None:
    console = MockConsole()

    print_release_error(UnknownDefinition(definition_id="x", available=("a", "b")), console)

    assert console.messages == ["(!) Unknown definition: x", "Available: a, b"]


def test_release_error_exit_code() -> None:
    assert release_error_exit_code(BuildFailed(definition_id="a", returncode=2)) == 1


def _report(*outcomes: DefinitionOutcome, **kwargs: object) -> RunReport:
    return RunReport(staging_dir=Path("/tmp/dcr/1.0.0-x"), outcomes=outcomes, **kwargs)  # type: ignore[arg-type]


def test_run_summary_and_exit_code() -> None:
    console = MockConsole()
    report = _report(
        DefinitionOutcome(definition_id="a", status=Status.DONE),
        DefinitionOutcome(definition_id="b", status=Status.SKIPPED),
        DefinitionOutcome(
            definition_id="c",
            status=Status.FAILED,
            phase=Phase.BUILT,
            error=PushFailed(definition_id="c", failed_tags=("t",)),
        ),
        staging_removed=True,
    )

    print_run_summary(report, console)

    assert "(*) done: a" in console.messages
    assert "skipped: b" in console.messages
    assert "(!) failed: c (at built)" in console.messages
    assert not console.find("staging:")
    assert run_exit_code(report) == int(ErrorCode.FAILED)


def test_run_summary_reports_abort_and_kept_staging() -> None:
    console = MockConsole()
    report = _report(aborted_by=IoFailed(path=Path("/x"), reason="disk full"))

    print_run_summary(report, console)

    assert console.find("run aborted: I/O error on /x: disk full")
    assert console.find("staging: /tmp/dcr/1.0.0-x")
    assert run_exit_code(report) == 1


def test_skipped_only_run_succeeds() -> None:
    report = _report(DefinitionOutcome(definition_id="a", status=Status.SKIPPED), staging_removed=True)

    assert report.ok
    assert run_exit_code(report) == int(ErrorCode.OK)
