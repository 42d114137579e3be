from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    pid: int
    resident_bytes: int
    command: str
    is_protected: bool = False

    @property
    def name(self) -> str:
        return self.command.rsplit("/", 1)[-1] or self.command
