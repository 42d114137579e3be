from __future__ import annotations

import pytest
from rich.console import Console

from reclaim.models.action import ActionResult, CleanupTarget
from reclaim.models.enums import ActionStatus, SessionMode, TargetCategory, TargetKind
from reclaim.models.errors import SessionStateError
from reclaim.models.session import CleanupSession
from reclaim.services.report import build_report, recommendations, render_brief, render_report
from tests.fakes import snapshot

MB = 1024 * 1024


def _session(
    mode: SessionMode,
    results: list[ActionResult],
    *,
    baseline_mb: int = 1500,
    final_mb: int | None = 1500,
) -> CleanupSession:
    session = CleanupSession(mode=mode, start_time=10.0)
    session.set_baseline(snapshot(baseline_mb))
    session.set_plan(r.target for r in results)
    for result in results:
        session.record(result)
    session.finish_execution()
    session.set_final(snapshot(final_mb) if final_mb is not None else None)
    session.mark_reported(17.0)
    return session


def _cache(size: int, label: str = "Chrome cache") -> CleanupTarget:
    return CleanupTarget(
        identifier="/cache",
        kind=TargetKind.FILE,
        label=label,
        category=TargetCategory.CACHE,
        size_bytes=size,
    )


def test_memory_freed_line() -> None:
    report = build_report(_session(SessionMode.LIVE, [], baseline_mb=1500, final_mb=1800))

    assert report.delta == 300 * MB
    assert report.delta_message == "Memory freed: 300 MB"


def test_negative_delta_reported_as_increase() -> None:
    report = build_report(_session(SessionMode.LIVE, [], baseline_mb=1500, final_mb=1300))

    assert report.delta == -200 * MB
    assert report.delta_message.startswith("Memory usage increased by 200 MB")


def test_dry_run_line_shows_would_be_size() -> None:
    results = [ActionResult(_cache(500 * MB), ActionStatus.DRY_RUN)]

    report = build_report(_session(SessionMode.DRY_RUN, results))

    assert report.action_lines == ("DRY_RUN | Chrome cache | 500 MB",)
    assert report.total_freed == 0
    assert report.would_free == 500 * MB


def test_missing_path_line() -> None:
    target = CleanupTarget(
        identifier="/nope",
        kind=TargetKind.FILE,
        label="Firefox cache",
        category=TargetCategory.CACHE,
        present=False,
    )
    skipped = ActionResult(target, ActionStatus.SKIPPED, detail="not found")

    report = build_report(_session(SessionMode.LIVE, [skipped]))

    assert report.action_lines == ("SKIPPED | Firefox cache | 0 B",)
    assert report.count(ActionStatus.SKIPPED) == 1


def test_failed_target_excluded_from_total() -> None:
    results = [
        ActionResult(_cache(10 * MB, "locked"), ActionStatus.FAILED, detail="permission denied"),
        ActionResult(_cache(20 * MB, "open"), ActionStatus.SUCCESS, bytes_freed=20 * MB),
    ]

    report = build_report(_session(SessionMode.LIVE, results))

    assert report.total_freed == 20 * MB
    assert report.action_lines == ("FAILED | locked | 0 B", "SUCCESS | open | 20 MB")


def test_report_is_deterministic() -> None:
    success = ActionResult(_cache(MB), ActionStatus.SUCCESS, bytes_freed=MB)
    session = _session(SessionMode.LIVE, [success])

    assert build_report(session) == build_report(session)


def test_incomplete_delta_reuses_baseline() -> None:
    session = _session(SessionMode.LIVE, [], final_mb=None)

    report = build_report(session)

    assert session.delta_incomplete
    assert report.final == report.baseline
    assert report.delta == 0
    assert "unknown" in report.delta_message


def test_report_requires_final_snapshot() -> None:
    session = CleanupSession(mode=SessionMode.LIVE, start_time=0.0)
    session.set_baseline(snapshot(1500))

    with pytest.raises(SessionStateError):
        build_report(session)


def test_render_report_prints_snapshots_actions_and_totals() -> None:
    console = Console(record=True, width=160)
    session = _session(
        SessionMode.LIVE,
        [ActionResult(_cache(20 * MB, "open"), ActionStatus.SUCCESS, bytes_freed=20 * MB)],
        final_mb=1800,
    )
    report = build_report(session)

    render_report(console, report, title="CLEANUP SUMMARY", elapsed=session.elapsed_seconds)

    text = console.export_text()
    assert "CLEANUP SUMMARY" in text
    assert "BEFORE" in text and "AFTER" in text
    assert "unknown" in text
    assert "Total space freed" in text
    assert "20 MB" in text
    assert "Memory freed: 300 MB" in text
    assert "7s" in text


def test_render_brief_for_dry_run() -> None:
    console = Console(record=True, width=160)
    session = _session(SessionMode.DRY_RUN, [ActionResult(_cache(500 * MB), ActionStatus.DRY_RUN)])

    render_brief(console, build_report(session), elapsed=session.elapsed_seconds)

    assert "500 MB would be freed" in console.export_text()


def test_render_report_counts_removed_files_and_recommends() -> None:
    console = Console(record=True, width=160)
    session = _session(
        SessionMode.LIVE,
        [ActionResult(_cache(20 * MB, "open"), ActionStatus.SUCCESS, bytes_freed=20 * MB)],
        final_mb=1800,
    )

    render_report(
        console,
        build_report(session),
        title="RAM OPTIMIZATION SUMMARY",
        elapsed=1.0,
        recommend=True,
    )

    text = console.export_text()
    assert "Files/directories removed" in text
    assert "system already clean" not in text
    assert "Recommendations:" in text
    assert "Great! Significant memory was freed" in text


def test_render_report_when_nothing_was_removed() -> None:
    console = Console(record=True, width=160)
    target = CleanupTarget(
        identifier="/nope",
        kind=TargetKind.FILE,
        label="Firefox cache",
        category=TargetCategory.CACHE,
        present=False,
    )
    skipped = ActionResult(target, ActionStatus.SKIPPED, detail="not found")
    session = _session(SessionMode.LIVE, [skipped])

    render_report(console, build_report(session), title="CLEANUP SUMMARY", elapsed=1.0)

    text = console.export_text()
    assert "No files were removed, system already clean!" in text
    assert "Recommendations:" not in text
    assert "No cleanup steps completed successfully" not in text


def test_render_brief_hints_at_verbose_when_everything_failed() -> None:
    console = Console(record=True, width=160)
    session = _session(
        SessionMode.LIVE,
        [ActionResult(_cache(10 * MB, "locked"), ActionStatus.FAILED, detail="permission denied")],
    )

    render_brief(console, build_report(session), elapsed=1.0)

    text = console.export_text()
    assert "No cleanup steps completed successfully" in text
    assert "--verbose" in text


@pytest.mark.parametrize(
    ("final_mb", "headline"),
    [
        (1800, "Great! Significant memory was freed"),
        (1600, "Good! Some memory was freed"),
        (1520, "Your system was already well optimized"),
    ],
)
def test_recommendation_tiers(final_mb: int, headline: str) -> None:
    report = build_report(_session(SessionMode.LIVE, [], baseline_mb=1500, final_mb=final_mb))

    assert headline in recommendations(report)[0]


def test_no_tier_when_final_snapshot_missing() -> None:
    report = build_report(_session(SessionMode.LIVE, [], final_mb=None))

    assert "Monitor Activity Monitor" in recommendations(report)[0]
