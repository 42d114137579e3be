from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from reclaim.models.action import ActionResult, CleanupTarget
from reclaim.models.enums import SessionMode, SessionStage
from reclaim.models.errors import SessionStateError
from reclaim.models.snapshot import ResourceSnapshot

CancelCheck = Callable[[], bool]
ResultCallback = Callable[[ActionResult], None]


@dataclass(slots=True)
class CleanupSession:
    """State of one run, threaded through every stage of the pipeline.

    Stages only move forward. Each setter checks the stage it belongs to, so
    nothing produced by a completed stage can be overwritten later.
    """

    mode: SessionMode
    start_time: float
    end_time: float | None = None
    stage: SessionStage = SessionStage.CREATED
    baseline: ResourceSnapshot | None = None
    final: ResourceSnapshot | None = None
    delta_incomplete: bool = False
    cancelled: bool = False
    _targets: tuple[CleanupTarget, ...] = ()
    _actions: list[ActionResult] = field(default_factory=list)

    @property
    def dry_run(self) -> bool:
        return self.mode is SessionMode.DRY_RUN

    @property
    def targets(self) -> tuple[CleanupTarget, ...]:
        return self._targets

    @property
    def actions(self) -> tuple[ActionResult, ...]:
        return tuple(self._actions)

    @property
    def elapsed_seconds(self) -> float:
        if self.end_time is None:
            return 0.0
        return max(0.0, self.end_time - self.start_time)

    def _advance(self, expected: SessionStage, to: SessionStage) -> None:
        if self.stage is not expected:
            raise SessionStateError(f"cannot move to {to.name} from {self.stage.name}")
        self.stage = to

    def set_baseline(self, snapshot: ResourceSnapshot) -> None:
        self._advance(SessionStage.CREATED, SessionStage.BASELINE_COLLECTED)
        self.baseline = snapshot

    def set_plan(self, targets: Iterable[CleanupTarget]) -> None:
        self._advance(SessionStage.BASELINE_COLLECTED, SessionStage.PLANNED)
        self._targets = tuple(targets)

    def record(self, result: ActionResult) -> None:
        if self.stage is not SessionStage.PLANNED:
            raise SessionStateError(f"cannot record actions in stage {self.stage.name}")
        self._actions.append(result)

    def finish_execution(self, *, cancelled: bool = False) -> None:
        self._advance(SessionStage.PLANNED, SessionStage.EXECUTED)
        self.cancelled = cancelled

    def set_final(self, snapshot: ResourceSnapshot | None) -> None:
        """Store the final snapshot, reusing the baseline when it is missing."""
        self._advance(SessionStage.EXECUTED, SessionStage.FINAL_COLLECTED)
        if snapshot is None:
            self.final = self.baseline
            self.delta_incomplete = True
        else:
            self.final = snapshot

    def mark_reported(self, end_time: float) -> None:
        self._advance(SessionStage.FINAL_COLLECTED, SessionStage.REPORTED)
        self.end_time = end_time
