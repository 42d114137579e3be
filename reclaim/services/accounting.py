from __future__ import annotations

from collections.abc import Iterable

from reclaim.models.action import ActionResult
from reclaim.models.enums import ActionStatus
from reclaim.models.snapshot import ResourceSnapshot


class Accountant:
    """Running totals over action results, updated after each action completes."""

    def __init__(self) -> None:
        self.total_freed = 0
        self.would_free = 0
        self.counts: dict[ActionStatus, int] = {status: 0 for status in ActionStatus}

    @classmethod
    def from_actions(cls, actions: Iterable[ActionResult]) -> Accountant:
        accountant = cls()
        for result in actions:
            accountant.record(result)
        return accountant

    def record(self, result: ActionResult) -> None:
        self.counts[result.status] += 1
        match result.status:
            case ActionStatus.SUCCESS:
                self.total_freed += result.bytes_freed
            case ActionStatus.DRY_RUN:
                self.would_free += result.target.size_bytes
            case ActionStatus.SKIPPED | ActionStatus.FAILED:
                pass


def compute_delta(baseline: ResourceSnapshot, final: ResourceSnapshot) -> int:
    """Change in available memory; negative when usage grew during the run."""
    return final.available_bytes - baseline.available_bytes
