from __future__ import annotations

import pytest

from reclaim.models.action import ActionResult, CleanupTarget
from reclaim.models.enums import ActionStatus, SessionMode, TargetCategory, TargetKind
from reclaim.models.errors import CommandErrorCode
from reclaim.models.session import CleanupSession
from reclaim.services.executor import ActionExecutor
from tests.fakes import FakeProcesses, FakeRunner, snapshot
from tests.fs_mock import MemoryFileSystem

MB = 1024 * 1024


def _file(path: str, size: int, label: str = "cache") -> CleanupTarget:
    return CleanupTarget(
        identifier=path,
        kind=TargetKind.FILE,
        label=label,
        category=TargetCategory.CACHE,
        size_bytes=size,
    )


def _process(pid: int, name: str = "Slack", protected: bool = False) -> CleanupTarget:
    return CleanupTarget(
        identifier=str(pid),
        kind=TargetKind.PROCESS,
        label=name,
        category=TargetCategory.APPLICATIONS,
        command=name,
        protected=protected,
    )


def _command(*argv: str) -> CleanupTarget:
    return CleanupTarget(
        identifier=" ".join(argv),
        kind=TargetKind.COMMAND,
        label=argv[-1],
        category=TargetCategory.MEMORY,
        argv=argv,
    )


def _planned_session(mode: SessionMode, targets: list[CleanupTarget]) -> CleanupSession:
    session = CleanupSession(mode=mode, start_time=0.0)
    session.set_baseline(snapshot(1500))
    session.set_plan(targets)
    return session


def test_dry_run_touches_nothing() -> None:
    fs = MemoryFileSystem().add_file("/cache/big/blob", size=500 * MB)
    processes = FakeProcesses()
    runner = FakeRunner().respond(["sudo", "-n", "purge"])
    executor = ActionExecutor(fs=fs, processes=processes, runner=runner)
    targets = [_file("/cache/big", 500 * MB), _process(400), _command("sudo", "-n", "purge")]
    session = _planned_session(SessionMode.DRY_RUN, targets)

    assert executor.execute(session, targets)

    assert [a.status for a in session.actions] == [ActionStatus.DRY_RUN] * 3
    assert all(a.bytes_freed == 0 for a in session.actions)
    assert fs.exists("/cache/big/blob")
    assert fs.removed == []
    assert processes.terminated == []
    assert runner.calls == []


def test_live_file_deletion_reports_planned_size() -> None:
    fs = MemoryFileSystem().add_file("/cache/big/blob", size=500 * MB)

    result = ActionExecutor(fs=fs).apply(_file("/cache/big", 500 * MB), SessionMode.LIVE)

    assert result.status is ActionStatus.SUCCESS
    assert result.bytes_freed == 500 * MB
    assert not fs.exists("/cache/big")


def test_permission_denied_fails_and_execution_continues() -> None:
    fs = (
        MemoryFileSystem()
        .add_file("/cache/locked/blob", size=10 * MB)
        .add_file("/cache/open/blob", size=20 * MB)
        .deny("/cache/locked")
    )
    targets = [_file("/cache/locked", 10 * MB, "locked"), _file("/cache/open", 20 * MB, "open")]
    session = _planned_session(SessionMode.LIVE, targets)

    ActionExecutor(fs=fs).execute(session, targets)

    locked, opened = session.actions
    assert (locked.status, locked.bytes_freed) == (ActionStatus.FAILED, 0)
    assert locked.detail == "permission denied"
    assert (opened.status, opened.bytes_freed) == (ActionStatus.SUCCESS, 20 * MB)


def test_vanished_file_fails_without_bytes() -> None:
    result = ActionExecutor(fs=MemoryFileSystem()).apply(_file("/gone", 5 * MB), SessionMode.LIVE)

    assert result.status is ActionStatus.FAILED
    assert result.bytes_freed == 0


def test_absent_target_is_skipped_in_every_mode() -> None:
    target = CleanupTarget(
        identifier="/nope",
        kind=TargetKind.FILE,
        label="Firefox cache",
        category=TargetCategory.CACHE,
        present=False,
    )
    executor = ActionExecutor(fs=MemoryFileSystem())

    for mode in SessionMode:
        result = executor.apply(target, mode)
        assert (result.status, result.bytes_freed) == (ActionStatus.SKIPPED, 0)
        assert result.detail == "not found"


def test_process_that_exits_is_a_success_with_no_bytes() -> None:
    processes = FakeProcesses()

    executor = ActionExecutor(processes=processes, grace_period=2.5)

    result = executor.apply(_process(400), SessionMode.LIVE)

    assert result.status is ActionStatus.SUCCESS
    assert result.bytes_freed == 0
    assert processes.terminated == [400]
    assert processes.waits == [(400, 2.5)]


def test_process_still_alive_fails_without_escalation() -> None:
    processes = FakeProcesses(stubborn={400})

    result = ActionExecutor(processes=processes).apply(_process(400), SessionMode.LIVE)

    assert result.status is ActionStatus.FAILED
    assert processes.terminated == [400]


@pytest.mark.parametrize(
    ("processes", "status"),
    [
        (FakeProcesses(gone={400}), ActionStatus.SKIPPED),
        (FakeProcesses(denied={400}), ActionStatus.FAILED),
    ],
)
def test_process_signal_errors(processes: FakeProcesses, status: ActionStatus) -> None:
    result = ActionExecutor(processes=processes).apply(_process(400), SessionMode.LIVE)

    assert result.status is status
    assert processes.terminated == []


def test_protected_process_is_never_signalled() -> None:
    processes = FakeProcesses()

    target = _process(300, "zsh", protected=True)

    result = ActionExecutor(processes=processes).apply(target, SessionMode.LIVE)

    assert result.status is ActionStatus.SKIPPED
    assert processes.terminated == []


def test_protected_target_cannot_be_recorded_as_success() -> None:
    with pytest.raises(ValueError, match="protected"):
        ActionResult(_process(300, "zsh", protected=True), ActionStatus.SUCCESS)


def test_command_timeout_is_a_failure() -> None:
    runner = FakeRunner().fail(["sudo", "-n", "purge"], CommandErrorCode.TIMEOUT)

    executor = ActionExecutor(runner=runner, command_timeout=60)

    result = executor.apply(_command("sudo", "-n", "purge"), SessionMode.LIVE)

    assert (result.status, result.detail) == (ActionStatus.FAILED, "timed out")


def test_command_success() -> None:
    runner = FakeRunner().respond(["dscacheutil", "-flushcache"])

    target = _command("dscacheutil", "-flushcache")

    result = ActionExecutor(runner=runner).apply(target, SessionMode.LIVE)

    assert result.status is ActionStatus.SUCCESS
    assert runner.calls == [("dscacheutil", "-flushcache")]


def test_cancellation_stops_between_actions() -> None:
    fs = MemoryFileSystem()
    for name in ("a", "b", "c"):
        fs.add_file(f"/{name}/x", size=MB)
    targets = [_file("/a", MB, "a"), _file("/b", MB, "b"), _file("/c", MB, "c")]
    session = _planned_session(SessionMode.LIVE, targets)
    seen: list[str] = []

    def on_result(result: ActionResult) -> None:
        seen.append(result.target.label)

    completed = ActionExecutor(fs=fs).execute(
        session, targets, cancel_check=lambda: len(seen) >= 1, on_result=on_result
    )

    assert completed is False
    assert [a.target.label for a in session.actions] == ["a"]
    assert fs.exists("/b/x") and fs.exists("/c/x")
