from __future__ import annotations

import logging
import signal
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field
from types import FrameType

from result import Err

from reclaim.models.action import ActionResult, CleanupTarget
from reclaim.models.enums import ActionStatus, SessionMode, TargetCategory
from reclaim.models.errors import MetricsUnavailable
from reclaim.models.session import CleanupSession, ResultCallback
from reclaim.services.accounting import Accountant
from reclaim.services.executor import ActionExecutor
from reclaim.services.metrics import MetricsCollector

log = logging.getLogger(__name__)

Planner = Callable[[], list[CleanupTarget]]
ConfirmCategory = Callable[[TargetCategory, list[CleanupTarget]], bool]

SETTLE_STEP = 0.5


@dataclass(slots=True)
class CancelToken:
    """Turns SIGINT/SIGTERM into a flag the executor checks between actions."""

    signum: int | None = None
    _previous: dict[int, object] = field(default_factory=dict)

    def __call__(self) -> bool:
        return self.signum is not None

    def _handle(self, signum: int, frame: FrameType | None) -> None:
        log.warning("Received %s, stopping after the current action", signal.Signals(signum).name)
        self.signum = signum

    @property
    def exit_code(self) -> int | None:
        return None if self.signum is None else 128 + self.signum

    @contextmanager
    def armed(self) -> Iterator[CancelToken]:
        for signum in (signal.SIGINT, signal.SIGTERM):
            self._previous[signum] = signal.signal(signum, self._handle)
        try:
            yield self
        finally:
            for signum, handler in self._previous.items():
                signal.signal(signum, handler)  # type: ignore[arg-type]
            self._previous.clear()


def gate(
    targets: list[CleanupTarget], confirm: ConfirmCategory | None
) -> tuple[list[CleanupTarget], list[ActionResult]]:
    """Ask once per category; declined targets become skipped results."""
    if confirm is None:
        return targets, []

    categories: dict[TargetCategory, list[CleanupTarget]] = {}
    for target in targets:
        categories.setdefault(target.category, []).append(target)

    declined: set[TargetCategory] = set()
    for category, members in categories.items():
        if not any(t.present for t in members):
            continue
        if not confirm(category, members):
            log.info("Skipping %s", category.value.replace("_", " "))
            declined.add(category)

    approved = [t for t in targets if t.category not in declined]
    skipped = [
        ActionResult(t, ActionStatus.SKIPPED, detail="declined")
        for t in targets
        if t.category in declined
    ]
    return approved, skipped


def run_session(
    *,
    mode: SessionMode,
    collector: MetricsCollector,
    planner: Planner,
    executor: ActionExecutor,
    confirm: ConfirmCategory | None = None,
    cancel: CancelToken | None = None,
    on_result: ResultCallback | None = None,
    settle_seconds: float = 5.0,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], None] = time.sleep,
) -> CleanupSession:
    """Run baseline, plan, gate, execute and final collection for one session.

    Only a failed baseline collection raises (``MetricsUnavailable``); every
    later failure is carried in the returned session.
    """
    session = CleanupSession(mode=mode, start_time=clock())

    baseline = collector.collect()
    if isinstance(baseline, Err):
        raise MetricsUnavailable(baseline.unwrap_err())
    session.set_baseline(baseline.unwrap())

    session.set_plan(planner())
    log.debug("Planned %d targets", len(session.targets))

    approved, declined = gate(list(session.targets), None if session.dry_run else confirm)
    for result in declined:
        session.record(result)

    accountant = Accountant.from_actions(declined)

    def record(result: ActionResult) -> None:
        accountant.record(result)
        if on_result is not None:
            on_result(result)

    # Once execution starts a signal only sets the token, so the session always
    # reaches the report stage.
    with cancel.armed() if cancel is not None else nullcontext():
        completed = executor.execute(session, approved, cancel_check=cancel, on_result=record)
        session.finish_execution(cancelled=not completed)

        if not session.dry_run and completed and accountant.counts[ActionStatus.SUCCESS] > 0:
            _settle(settle_seconds, sleep, cancel)

        final = collector.collect()
        if isinstance(final, Err):
            log.warning("Failed to get final memory information: %s", final.unwrap_err().message)
            session.set_final(None)
        else:
            session.set_final(final.unwrap())

    session.mark_reported(clock())
    return session


def _settle(seconds: float, sleep: Callable[[float], None], cancel: CancelToken | None) -> None:
    """Wait *seconds*, returning early once *cancel* fires."""
    if seconds <= 0:
        return
    log.info("Waiting for optimization to take effect...")
    if cancel is None:
        sleep(seconds)
        return
    remaining = seconds
    while remaining > 0 and not cancel():
        step = min(remaining, SETTLE_STEP)
        sleep(step)
        remaining -= step
    if cancel():
        log.warning("Settle wait cut short by %s", signal.Signals(cancel.signum).name)
