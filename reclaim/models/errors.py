from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ReclaimError(Exception):
    """Base class for errors that end a run."""


class PlatformUnsupported(ReclaimError):
    def __init__(self, platform: str) -> None:
        super().__init__(f"Unsupported platform: {platform}. This tool is for macOS only.")
        self.platform = platform


class MacOSVersionUnsupported(ReclaimError):
    def __init__(self, version: str, minimum: str) -> None:
        super().__init__(f"This tool requires macOS {minimum} or later. Current version: {version}")
        self.version = version
        self.minimum = minimum


class SessionStateError(ReclaimError):
    pass


class MetricsErrorCode(str, Enum):
    COMMAND_FAILED = "command_failed"
    FIELD_MISSING = "field_missing"
    FIELD_INVALID = "field_invalid"


@dataclass(slots=True, frozen=True)
class MetricsError:
    code: MetricsErrorCode
    message: str


class MetricsUnavailable(ReclaimError):
    def __init__(self, error: MetricsError) -> None:
        super().__init__(f"Memory statistics unavailable: {error.message}")
        self.error = error


class CommandErrorCode(str, Enum):
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    NON_ZERO_EXIT = "non_zero_exit"
    OS_ERROR = "os_error"


@dataclass(slots=True, frozen=True)
class CommandError:
    code: CommandErrorCode
    argv: tuple[str, ...]
    message: str
