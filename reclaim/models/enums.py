from __future__ import annotations

from enum import Enum


class TargetKind(str, Enum):
    FILE = "file"
    PROCESS = "process"
    COMMAND = "command"


class ActionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"
    DRY_RUN = "DRY_RUN"


class SessionMode(str, Enum):
    DRY_RUN = "dry_run"
    LIVE = "live"


class SessionStage(int, Enum):
    CREATED = 0
    BASELINE_COLLECTED = 1
    PLANNED = 2
    EXECUTED = 3
    FINAL_COLLECTED = 4
    REPORTED = 5


class TargetCategory(str, Enum):
    TEMP = "temp"
    CACHE = "cache"
    TRASH = "trash"
    LOGS = "logs"
    DEVELOPMENT = "development"
    MEMORY = "memory"
    SYSTEM_CACHE = "system_cache"
    SERVICES = "services"
    APPLICATIONS = "applications"

    @property
    def prompt(self) -> str:
        return _PROMPTS[self]


_PROMPTS: dict[TargetCategory, str] = {
    TargetCategory.TEMP: "Clean temporary files?",
    TargetCategory.CACHE: "Clean application caches?",
    TargetCategory.TRASH: "Empty Trash and remove snapshots?",
    TargetCategory.LOGS: "Clean logs?",
    TargetCategory.DEVELOPMENT: "Clean development caches?",
    TargetCategory.MEMORY: "Purge inactive memory?",
    TargetCategory.SYSTEM_CACHE: "Clear system memory caches (DNS, font, icon)?",
    TargetCategory.SERVICES: "Restart Dock and WindowServer (may cause screen flicker)?",
    TargetCategory.APPLICATIONS: "Quit these applications to free memory?",
}
