from __future__ import annotations

from dataclasses import dataclass

from reclaim.models.enums import ActionStatus, TargetCategory, TargetKind


@dataclass(slots=True, frozen=True)
class CleanupTarget:
    """One planned reclamation step.

    ``identifier`` is a path for FILE targets, a pid for PROCESS targets and the
    command line for COMMAND targets. ``present`` is False when planning found
    nothing to act on; such a target is only ever reported as skipped.

    ``protected`` targets are skipped by the executor and can never produce a
    SUCCESS result. The planner leaves protected processes out of the plan
    altogether, so the flag is set only on targets built outside it.
    """

    identifier: str
    kind: TargetKind
    label: str
    category: TargetCategory
    size_bytes: int = 0
    present: bool = True
    argv: tuple[str, ...] = ()
    command: str = ""
    protected: bool = False
    skip_reason: str = ""

    @property
    def pid(self) -> int:
        if self.kind is not TargetKind.PROCESS:
            raise ValueError(f"{self.label} is not a process target")
        return int(self.identifier)


@dataclass(slots=True, frozen=True)
class ActionResult:
    target: CleanupTarget
    status: ActionStatus
    bytes_freed: int = 0
    detail: str = ""

    def __post_init__(self) -> None:
        if self.bytes_freed < 0:
            raise ValueError("bytes_freed must be non-negative")
        if self.bytes_freed > 0 and self.status is not ActionStatus.SUCCESS:
            raise ValueError(f"{self.status.value} result cannot free bytes")
        if self.status is ActionStatus.SUCCESS and self.target.protected:
            raise ValueError(f"protected target {self.target.label} cannot succeed")
