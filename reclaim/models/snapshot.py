from __future__ import annotations

from dataclasses import dataclass, field, fields


@dataclass(slots=True, frozen=True)
class ResourceSnapshot:
    """Point-in-time memory accounting, all values in bytes.

    ``used_bytes`` is active + wired + compressed and ``available_bytes`` is
    free + inactive, so ``used_bytes + available_bytes == total_bytes`` always
    holds. ``pressure_percent`` is the OS-reported free percentage, ``None`` when
    the OS did not report one. The timestamp does not take part in equality.
    """

    total_bytes: int
    used_bytes: int
    free_bytes: int
    inactive_bytes: int
    active_bytes: int
    wired_bytes: int
    compressed_bytes: int
    available_bytes: int
    pressure_percent: int | None = None
    timestamp: float = field(default=0.0, compare=False)

    def __post_init__(self) -> None:
        for f in fields(self):
            if not f.name.endswith("_bytes"):
                continue
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"{f.name} must be a non-negative integer, got {value!r}")
        if self.used_bytes + self.available_bytes != self.total_bytes:
            raise ValueError(
                f"used ({self.used_bytes}) + available ({self.available_bytes})"
                f" != total ({self.total_bytes})"
            )
        if self.pressure_percent is not None and not 0 <= self.pressure_percent <= 100:
            raise ValueError(f"pressure_percent out of range: {self.pressure_percent}")

    @property
    def usage_percent(self) -> int:
        if self.total_bytes == 0:
            return 0
        return self.used_bytes * 100 // self.total_bytes
