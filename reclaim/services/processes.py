from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable
from typing import Any, Callable, Protocol

import psutil

from reclaim.models.process import ProcessRecord

log = logging.getLogger(__name__)

DEFAULT_PROTECTED_PROCESSES: tuple[str, ...] = (
    "kernel_task",
    "launchd",
    "init",
    "systemd",
    "WindowServer",
    "loginwindow",
    "Finder",
    "SystemUIServer",
    "Dock",
    "Activity Monitor",
    "Terminal",
    "iTerm2",
    "Console",
    "Script Editor",
    "bash",
    "zsh",
    "sh",
    "ssh",
    "sudo",
    "top",
    "htop",
)

_INTEGER = re.compile(r"^[0-9]+$")

# (pid, rss, command) as read from the process table, before validation.
RawRow = tuple[Any, Any, Any]
RowSource = Callable[[], Iterable[RawRow]]


def psutil_rows() -> Iterable[RawRow]:
    for proc in psutil.process_iter(attrs=["pid", "name", "memory_info"]):
        try:
            info = proc.info
            mem = info.get("memory_info")
            yield info.get("pid"), mem.rss if mem is not None else None, info.get("name")
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            continue


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and _INTEGER.match(value.strip()):
        return int(value.strip())
    return None


class ProcessInventory:
    """Lists running processes by resident memory and flags the protected ones."""

    def __init__(
        self,
        protected_names: Iterable[str] = DEFAULT_PROTECTED_PROCESSES,
        rows: RowSource = psutil_rows,
        self_pid: int | None = None,
        parent_pid: int | None = None,
    ) -> None:
        self._protected = frozenset(protected_names)
        self._rows = rows
        self._self_pid = os.getpid() if self_pid is None else self_pid
        self._parent_pid = os.getppid() if parent_pid is None else parent_pid

    def is_protected(self, pid: int, command: str) -> bool:
        if pid in (self._self_pid, self._parent_pid):
            return True
        name = command.rsplit("/", 1)[-1]
        return name in self._protected or command in self._protected

    def list(self, min_size_bytes: int = 0) -> list[ProcessRecord]:
        records: list[ProcessRecord] = []
        dropped = 0
        for raw_pid, raw_rss, raw_command in self._rows():
            pid = _as_int(raw_pid)
            rss = _as_int(raw_rss)
            if pid is None or rss is None or not raw_command:
                dropped += 1
                continue
            if rss < min_size_bytes:
                continue
            command = str(raw_command)
            records.append(
                ProcessRecord(
                    pid=pid,
                    resident_bytes=rss,
                    command=command,
                    is_protected=self.is_protected(pid, command),
                )
            )
        if dropped:
            log.debug("Dropped %d unreadable process rows", dropped)
        records.sort(key=lambda r: (-r.resident_bytes, r.pid))
        return records

    def top(self, n: int = 10) -> list[ProcessRecord]:
        return self.list(min_size_bytes=1024 * 1024)[:n]


class ProcessController(Protocol):
    def terminate(self, pid: int, name: str) -> None:
        """Request graceful exit.

        Raises ``ProcessLookupError`` if *pid* is gone or now runs something
        other than *name*, ``PermissionError`` if it may not be signalled.
        """

    def wait_gone(self, pid: int, timeout: float) -> bool: ...


class PsutilProcessController:
    def terminate(self, pid: int, name: str) -> None:
        try:
            proc = psutil.Process(pid)
            if name and proc.name() != name:
                raise ProcessLookupError(f"pid {pid} now belongs to {proc.name()}")
            proc.terminate()
        except psutil.NoSuchProcess as exc:
            raise ProcessLookupError(f"pid {pid} no longer exists") from exc
        except psutil.AccessDenied as exc:
            raise PermissionError(f"not permitted to signal pid {pid}") from exc

    def wait_gone(self, pid: int, timeout: float) -> bool:
        try:
            psutil.Process(pid).wait(timeout=timeout)
        except psutil.NoSuchProcess:
            return True
        except psutil.TimeoutExpired:
            return False
        return True


DEFAULT_PROCESSES: ProcessController = PsutilProcessController()
