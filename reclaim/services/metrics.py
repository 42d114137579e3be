from __future__ import annotations

import logging
import mmap
import re
import time
from typing import Callable

from result import Err, Ok, Result

from reclaim.models.errors import MetricsError, MetricsErrorCode
from reclaim.models.snapshot import ResourceSnapshot
from reclaim.services.commands import DEFAULT_RUNNER, CommandRunner

log = logging.getLogger(__name__)

MetricsResult = Result[ResourceSnapshot, MetricsError]

_INTEGER = re.compile(r"^[0-9]+$")
_PAGE_SIZE = re.compile(r"page size of ([0-9]+) bytes")
_PRESSURE = re.compile(r"System-wide memory free percentage:\s*([0-9]+)%")

# Snapshot field -> vm_stat counter label.
_COUNTERS: dict[str, str] = {
    "free": "Pages free",
    "active": "Pages active",
    "inactive": "Pages inactive",
    "wired": "Pages wired down",
    "compressed": "Pages stored in compressor",
}


def parse_page_size(text: str) -> int | None:
    match = _PAGE_SIZE.search(text)
    return int(match.group(1)) if match else None


def parse_vm_stat(
    text: str, page_size: int, *, pressure: int | None = None, timestamp: float = 0.0
) -> MetricsResult:
    """Turn ``vm_stat`` output into a snapshot.

    Every counter the snapshot needs must be present and a plain integer
    (a trailing period is allowed); anything else is an error, never zero.
    """
    raw: dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep:
            raw[key.strip()] = value.strip()

    pages: dict[str, int] = {}
    for name, label in _COUNTERS.items():
        value = raw.get(label)
        if value is None:
            message = f"'{label}' missing from vm_stat output"
            return Err(MetricsError(MetricsErrorCode.FIELD_MISSING, message))
        value = value.rstrip(".")
        if not _INTEGER.match(value):
            message = f"'{label}' is not an integer: {value!r}"
            return Err(MetricsError(MetricsErrorCode.FIELD_INVALID, message))
        pages[name] = int(value)

    b = {name: count * page_size for name, count in pages.items()}
    used = b["active"] + b["wired"] + b["compressed"]
    available = b["free"] + b["inactive"]
    return Ok(
        ResourceSnapshot(
            total_bytes=used + available,
            used_bytes=used,
            free_bytes=b["free"],
            inactive_bytes=b["inactive"],
            active_bytes=b["active"],
            wired_bytes=b["wired"],
            compressed_bytes=b["compressed"],
            available_bytes=available,
            pressure_percent=pressure,
            timestamp=timestamp,
        )
    )


def parse_memory_pressure(text: str) -> int | None:
    match = _PRESSURE.search(text)
    if match is None:
        return None
    value = int(match.group(1))
    return value if value <= 100 else None


class MetricsCollector:
    def __init__(
        self,
        runner: CommandRunner = DEFAULT_RUNNER,
        timeout: float = 10.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._runner = runner
        self._timeout = timeout
        self._clock = clock

    def collect(self) -> MetricsResult:
        output = self._runner.run(["vm_stat"], timeout=self._timeout)
        if isinstance(output, Err):
            error = output.unwrap_err()
            message = f"vm_stat failed: {error.message}"
            return Err(MetricsError(MetricsErrorCode.COMMAND_FAILED, message))
        text = output.unwrap().stdout

        page_size = parse_page_size(text)
        if page_size is None:
            page_size = mmap.PAGESIZE
            log.debug("vm_stat reported no page size, using %d", page_size)

        return parse_vm_stat(text, page_size, pressure=self._pressure(), timestamp=self._clock())

    def _pressure(self) -> int | None:
        if not self._runner.available("memory_pressure"):
            return None
        output = self._runner.run(["memory_pressure"], timeout=self._timeout)
        if isinstance(output, Err):
            log.debug("memory_pressure unavailable: %s", output.unwrap_err().message)
            return None
        return parse_memory_pressure(output.unwrap().stdout)
