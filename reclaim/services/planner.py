from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from fnmatch import fnmatchcase

from result import Err

from reclaim.config.schema import MB, CommandRule, PathRule
from reclaim.models.action import CleanupTarget
from reclaim.models.enums import TargetCategory, TargetKind
from reclaim.services.commands import DEFAULT_RUNNER, CommandRunner
from reclaim.services.formatting import format_bytes
from reclaim.services.fs import DEFAULT_FS, FileSystem
from reclaim.services.processes import ProcessInventory

log = logging.getLogger(__name__)

DEFAULT_PROCESS_THRESHOLD = 100 * MB

_SNAPSHOT_DATE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}-[0-9]{6}$")


def _has_glob_chars(s: str) -> bool:
    return "*" in s or "?" in s or "[" in s


def _join(base: str, name: str) -> str:
    return f"{base.rstrip('/')}/{name}"


def expand_pattern(pattern: str, fs: FileSystem = DEFAULT_FS) -> list[str]:
    """Expand a ``~``/glob pattern one path segment at a time.

    Wildcards never cross a ``/`` and, like ``find -name``, also match hidden
    entries. The result is sorted.
    """
    path = fs.expanduser(pattern)
    if not _has_glob_chars(path):
        return [path] if fs.exists(path) else []

    absolute = path.startswith("/")
    segments = [s for s in path.split("/") if s]
    candidates = ["/" if absolute else "."]
    for segment in segments:
        following: list[str] = []
        for base in candidates:
            if not _has_glob_chars(segment):
                child = _join(base, segment)
                if fs.exists(child):
                    following.append(child)
                continue
            try:
                entries = list(fs.scandir(base))
            except OSError:
                continue
            following.extend(entry.path for entry in entries if fnmatchcase(entry.name, segment))
        candidates = following
        if not candidates:
            break
    return sorted(candidates)


def _glob_base(pattern: str) -> str:
    """The directory part of *pattern* before its first wildcard segment."""
    head: list[str] = []
    for segment in pattern.split("/"):
        if _has_glob_chars(segment):
            break
        head.append(segment)
    return "/".join(head)


def tree_disk_usage(path: str, fs: FileSystem = DEFAULT_FS) -> int:
    """Allocated bytes of *path* and everything below it, like ``du -s``.

    Symlinks are counted, not followed; unreadable entries add nothing. A file
    with several hard links inside the tree is counted once.
    """
    try:
        root = fs.stat(path)
    except OSError:
        return 0
    total = root.disk_usage
    if not root.is_dir:
        return total

    seen: set[tuple[int, int]] = set()
    errors = 0
    stack = [path]
    while stack:
        current = stack.pop()
        try:
            entries = list(fs.scandir(current))
        except OSError:
            errors += 1
            continue
        for entry in entries:
            st = entry.stat
            if st is None:
                errors += 1
                continue
            if st.links > 1 and not st.is_dir and st.file_id is not None:
                if st.file_id in seen:
                    continue
                seen.add(st.file_id)
            total += st.disk_usage
            if st.is_dir:
                stack.append(entry.path)
    if errors:
        log.debug("%d unreadable entries under %s", errors, path)
    return total


class ActionPlanner:
    def __init__(self, fs: FileSystem = DEFAULT_FS, runner: CommandRunner = DEFAULT_RUNNER) -> None:
        self._fs = fs
        self._runner = runner

    def _forbidden(self, path: str) -> bool:
        normalized = path.rstrip("/") or "/"
        return normalized in ("/", self._fs.home().rstrip("/"))

    def plan_files(self, rules: Iterable[PathRule]) -> list[CleanupTarget]:
        targets: list[CleanupTarget] = []
        planned: list[str] = []

        # A match overlapping an earlier one in either direction would count
        # the same bytes twice.
        def covered(path: str) -> bool:
            prefix = path.rstrip("/") + "/"
            return any(
                path == p or path.startswith(p.rstrip("/") + "/") or p.startswith(prefix)
                for p in planned
            )

        for rule in rules:
            expanded = self._fs.expanduser(rule.pattern)
            matches = expand_pattern(rule.pattern, self._fs)
            if not matches:
                log.debug("Nothing matches %s", expanded)
                targets.append(self._absent(rule, expanded, "not found"))
                continue

            fresh = [m for m in matches if not covered(m) and not self._forbidden(m)]
            if not fresh:
                reason = "already planned" if any(covered(m) for m in matches) else "protected path"
                targets.append(self._absent(rule, expanded, reason))
                continue

            base = _glob_base(expanded)
            for match in fresh:
                label = rule.label
                if _has_glob_chars(expanded):
                    label = f"{rule.label} ({match[len(base):].lstrip('/')})"
                targets.append(
                    CleanupTarget(
                        identifier=match,
                        kind=TargetKind.FILE,
                        label=label,
                        category=rule.category,
                        size_bytes=tree_disk_usage(match, self._fs),
                    )
                )
                planned.append(match)
        return targets

    @staticmethod
    def _absent(rule: PathRule, path: str, reason: str) -> CleanupTarget:
        return CleanupTarget(
            identifier=path,
            kind=TargetKind.FILE,
            label=rule.label,
            category=rule.category,
            present=False,
            skip_reason=reason,
        )

    def plan_commands(self, rules: Iterable[CommandRule]) -> list[CleanupTarget]:
        targets: list[CleanupTarget] = []
        for rule in rules:
            # sudo -n wraps the real tool; look that one up instead.
            wrapped = (a for a in rule.argv if not a.startswith("-") and a != "sudo")
            executable = next(wrapped, rule.argv[0])
            present = self._runner.available(executable)
            targets.append(
                CleanupTarget(
                    identifier=" ".join(rule.argv),
                    kind=TargetKind.COMMAND,
                    label=rule.label,
                    category=rule.category,
                    present=present,
                    argv=rule.argv,
                    skip_reason="" if present else f"{executable} not available",
                )
            )
        return targets

    def plan_snapshots(self, timeout: float = 60.0) -> list[CleanupTarget]:
        if not self._runner.available("tmutil"):
            return []
        output = self._runner.run(["tmutil", "listlocalsnapshotdates", "/"], timeout=timeout)
        if isinstance(output, Err):
            log.debug("Could not list local snapshots: %s", output.unwrap_err().message)
            return []
        dates = [line.strip() for line in output.unwrap().stdout.splitlines()]
        return self.plan_commands(
            CommandRule(
                f"Local snapshot {date}",
                ("tmutil", "deletelocalsnapshots", date),
                TargetCategory.TRASH,
            )
            for date in dates
            if _SNAPSHOT_DATE.match(date)
        )

    def plan_processes(
        self, inventory: ProcessInventory, threshold_bytes: int = DEFAULT_PROCESS_THRESHOLD
    ) -> list[CleanupTarget]:
        targets: list[CleanupTarget] = []
        for record in inventory.list(min_size_bytes=threshold_bytes):
            if record.resident_bytes <= threshold_bytes:
                continue
            if record.is_protected:
                log.debug("Skipping protected process: %s (PID: %d)", record.name, record.pid)
                continue
            size = format_bytes(record.resident_bytes)
            targets.append(
                CleanupTarget(
                    identifier=str(record.pid),
                    kind=TargetKind.PROCESS,
                    label=f"{record.name} (PID {record.pid}, {size})",
                    category=TargetCategory.APPLICATIONS,
                    command=record.name,
                )
            )
        return targets

    def plan(
        self,
        *,
        path_rules: Iterable[PathRule] = (),
        command_rules: Iterable[CommandRule] = (),
        inventory: ProcessInventory | None = None,
        threshold_bytes: int = DEFAULT_PROCESS_THRESHOLD,
        snapshots: bool = False,
        files_first: bool = True,
    ) -> list[CleanupTarget]:
        """Plan every target in a fixed order: files, commands, then processes."""
        files = self.plan_files(path_rules)
        commands = self.plan_commands(command_rules)
        if snapshots:
            commands.extend(self.plan_snapshots())
        processes = self.plan_processes(inventory, threshold_bytes) if inventory is not None else []
        ordered = files + commands if files_first else commands + files
        return ordered + processes
