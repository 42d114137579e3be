from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from reclaim.models.enums import TargetCategory

MB = 1024 * 1024


@dataclass(slots=True, frozen=True)
class PathRule:
    label: str
    pattern: str
    category: TargetCategory


@dataclass(slots=True, frozen=True)
class CommandRule:
    label: str
    argv: tuple[str, ...]
    category: TargetCategory


@dataclass(slots=True)
class AppConfig:
    process_threshold_mb: int = 100
    grace_period_seconds: float = 3.0
    command_timeout_seconds: float = 60.0
    settle_seconds: float = 5.0
    protected_processes: list[str] = field(default_factory=list)
    files_first: bool = True
    delete_local_snapshots: bool = True
    log_file: str | None = None
    memory_paths: list[PathRule] = field(default_factory=list)
    memory_commands: list[CommandRule] = field(default_factory=list)
    service_commands: list[CommandRule] = field(default_factory=list)
    disk_paths: list[PathRule] = field(default_factory=list)
    disk_commands: list[CommandRule] = field(default_factory=list)

    @property
    def process_threshold_bytes(self) -> int:
        return self.process_threshold_mb * MB

    def to_dict(self) -> dict[str, Any]:
        return {
            "processThresholdMb": self.process_threshold_mb,
            "gracePeriodSeconds": self.grace_period_seconds,
            "commandTimeoutSeconds": self.command_timeout_seconds,
            "settleSeconds": self.settle_seconds,
            "protectedProcesses": self.protected_processes,
            "filesFirst": self.files_first,
            "deleteLocalSnapshots": self.delete_local_snapshots,
            "logFile": self.log_file,
            "memoryPaths": [_path_rule_to_dict(rule) for rule in self.memory_paths],
            "memoryCommands": [_command_rule_to_dict(rule) for rule in self.memory_commands],
            "serviceCommands": [_command_rule_to_dict(rule) for rule in self.service_commands],
            "diskPaths": [_path_rule_to_dict(rule) for rule in self.disk_paths],
            "diskCommands": [_command_rule_to_dict(rule) for rule in self.disk_commands],
        }


def _path_rule_to_dict(rule: PathRule) -> dict[str, Any]:
    return {"label": rule.label, "pattern": rule.pattern, "category": rule.category.value}


def _command_rule_to_dict(rule: CommandRule) -> dict[str, Any]:
    return {"label": rule.label, "argv": list(rule.argv), "category": rule.category.value}


def _path_rule_from_dict(payload: dict[str, Any]) -> PathRule:
    return PathRule(
        label=str(payload["label"]),
        pattern=str(payload["pattern"]),
        category=TargetCategory(str(payload["category"])),
    )


def _command_rule_from_dict(payload: dict[str, Any]) -> CommandRule:
    argv = payload["argv"]
    if not isinstance(argv, list) or not argv:
        raise ValueError(f"argv for {payload.get('label')!r} must be a non-empty list")
    return CommandRule(
        label=str(payload["label"]),
        argv=tuple(str(x) for x in argv),
        category=TargetCategory(str(payload["category"])),
    )


def from_dict(data: dict[str, Any], defaults: AppConfig) -> AppConfig:
    log_file = data.get("logFile", defaults.log_file)
    protected = data.get("protectedProcesses", defaults.protected_processes)

    def number(key: str, fallback: float) -> float:
        return float(data.get(key, fallback))

    def paths(key: str, fallback: list[PathRule]) -> list[PathRule]:
        return [_path_rule_from_dict(x) for x in data[key]] if key in data else list(fallback)

    def commands(key: str, fallback: list[CommandRule]) -> list[CommandRule]:
        return [_command_rule_from_dict(x) for x in data[key]] if key in data else list(fallback)

    return AppConfig(
        process_threshold_mb=max(
            1, int(number("processThresholdMb", defaults.process_threshold_mb))
        ),
        grace_period_seconds=max(0.0, number("gracePeriodSeconds", defaults.grace_period_seconds)),
        command_timeout_seconds=max(
            1.0, number("commandTimeoutSeconds", defaults.command_timeout_seconds)
        ),
        settle_seconds=max(0.0, number("settleSeconds", defaults.settle_seconds)),
        protected_processes=[str(x) for x in protected],
        files_first=bool(data.get("filesFirst", defaults.files_first)),
        delete_local_snapshots=bool(
            data.get("deleteLocalSnapshots", defaults.delete_local_snapshots)
        ),
        log_file=str(log_file) if log_file else None,
        memory_paths=paths("memoryPaths", defaults.memory_paths),
        memory_commands=commands("memoryCommands", defaults.memory_commands),
        service_commands=commands("serviceCommands", defaults.service_commands),
        disk_paths=paths("diskPaths", defaults.disk_paths),
        disk_commands=commands("diskCommands", defaults.disk_commands),
    )
