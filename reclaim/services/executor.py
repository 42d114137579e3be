from __future__ import annotations

import logging
from collections.abc import Iterable

from result import Err

from reclaim.models.action import ActionResult, CleanupTarget
from reclaim.models.enums import ActionStatus, SessionMode, TargetKind
from reclaim.models.errors import CommandErrorCode
from reclaim.models.session import CancelCheck, CleanupSession, ResultCallback
from reclaim.services.commands import DEFAULT_RUNNER, DEFAULT_TIMEOUT, CommandRunner
from reclaim.services.fs import DEFAULT_FS, FileSystem
from reclaim.services.processes import DEFAULT_PROCESSES, ProcessController

log = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 3.0


class ActionExecutor:
    """Applies planned targets one at a time.

    A failing target is recorded and execution moves on. Dry runs return before
    any filesystem, process or command call is made.
    """

    def __init__(
        self,
        fs: FileSystem = DEFAULT_FS,
        processes: ProcessController = DEFAULT_PROCESSES,
        runner: CommandRunner = DEFAULT_RUNNER,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        command_timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._fs = fs
        self._processes = processes
        self._runner = runner
        self._grace_period = grace_period
        self._command_timeout = command_timeout

    def execute(
        self,
        session: CleanupSession,
        targets: Iterable[CleanupTarget],
        cancel_check: CancelCheck | None = None,
        on_result: ResultCallback | None = None,
    ) -> bool:
        """Apply *targets* in order, appending each result to *session*.

        Cancellation is checked between targets only. Returns False when it
        stopped early.
        """
        for target in targets:
            if cancel_check is not None and cancel_check():
                log.warning("Cancelled; %s and later targets not attempted", target.label)
                return False
            result = self.apply(target, session.mode)
            session.record(result)
            if on_result is not None:
                on_result(result)
        return True

    def apply(self, target: CleanupTarget, mode: SessionMode) -> ActionResult:
        if not target.present:
            detail = target.skip_reason or "not found"
            return ActionResult(target, ActionStatus.SKIPPED, detail=detail)
        if target.protected:
            return ActionResult(target, ActionStatus.SKIPPED, detail="protected")
        if mode is SessionMode.DRY_RUN:
            return ActionResult(target, ActionStatus.DRY_RUN)

        match target.kind:
            case TargetKind.FILE:
                return self._remove(target)
            case TargetKind.PROCESS:
                return self._terminate(target)
            case TargetKind.COMMAND:
                return self._run(target)

    def _remove(self, target: CleanupTarget) -> ActionResult:
        log.debug("Deleting %s", target.identifier)
        try:
            self._fs.remove(target.identifier)
        except PermissionError:
            return ActionResult(target, ActionStatus.FAILED, detail="permission denied")
        except FileNotFoundError:
            return ActionResult(target, ActionStatus.FAILED, detail="vanished before deletion")
        except OSError as exc:
            return ActionResult(target, ActionStatus.FAILED, detail=exc.strerror or str(exc))
        return ActionResult(target, ActionStatus.SUCCESS, bytes_freed=target.size_bytes)

    def _terminate(self, target: CleanupTarget) -> ActionResult:
        pid = target.pid
        log.debug("Sending TERM to %s (PID: %d)", target.command, pid)
        try:
            self._processes.terminate(pid, target.command)
        except ProcessLookupError:
            return ActionResult(target, ActionStatus.SKIPPED, detail="process already exited")
        except PermissionError:
            return ActionResult(target, ActionStatus.FAILED, detail="permission denied")

        if self._processes.wait_gone(pid, self._grace_period):
            log.debug("%s quit successfully", target.command)
            return ActionResult(target, ActionStatus.SUCCESS)
        log.debug("%s still running after TERM signal", target.command)
        return ActionResult(
            target,
            ActionStatus.FAILED,
            detail=f"still running after {self._grace_period:.0f}s",
        )

    def _run(self, target: CleanupTarget) -> ActionResult:
        outcome = self._runner.run(target.argv, timeout=self._command_timeout)
        if isinstance(outcome, Err):
            error = outcome.unwrap_err()
            detail = "timed out" if error.code is CommandErrorCode.TIMEOUT else error.message
            return ActionResult(target, ActionStatus.FAILED, detail=detail)
        return ActionResult(target, ActionStatus.SUCCESS)
