from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Protocol, Sequence

from result import Err, Ok, Result

from reclaim.models.errors import CommandError, CommandErrorCode

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0


@dataclass(slots=True, frozen=True)
class CommandOutput:
    argv: tuple[str, ...]
    stdout: str
    returncode: int = 0


CommandResult = Result[CommandOutput, CommandError]


class CommandRunner(Protocol):
    def available(self, executable: str) -> bool: ...

    def run(self, argv: Sequence[str], timeout: float = DEFAULT_TIMEOUT) -> CommandResult: ...


class SubprocessRunner:
    """Runs external tools synchronously; every call is bounded by *timeout*.

    Children get their own session, so a terminal Ctrl-C reaches only this
    process and an action in flight runs to completion.
    """

    def available(self, executable: str) -> bool:
        return shutil.which(executable) is not None

    def run(self, argv: Sequence[str], timeout: float = DEFAULT_TIMEOUT) -> CommandResult:
        args = tuple(argv)
        log.debug("Running %s (timeout %.0fs)", " ".join(args), timeout)
        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=timeout,
                stdin=subprocess.DEVNULL,
                start_new_session=True,
                check=False,
            )
        except FileNotFoundError:
            message = f"{args[0]}: command not found"
            return Err(CommandError(CommandErrorCode.NOT_FOUND, args, message))
        except subprocess.TimeoutExpired:
            message = f"timed out after {timeout:.0f}s"
            return Err(CommandError(CommandErrorCode.TIMEOUT, args, message))
        except OSError as exc:
            return Err(CommandError(CommandErrorCode.OS_ERROR, args, str(exc)))

        if completed.returncode != 0:
            message = (completed.stderr or "").strip().splitlines()
            return Err(
                CommandError(
                    CommandErrorCode.NON_ZERO_EXIT,
                    args,
                    message[-1] if message else f"exited with status {completed.returncode}",
                )
            )
        return Ok(CommandOutput(argv=args, stdout=completed.stdout, returncode=0))


DEFAULT_RUNNER: CommandRunner = SubprocessRunner()
