from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

from reclaim.services.fs import DirEntry, StatResult


@dataclass
class _MockEntry:
    is_dir: bool
    size: int
    content: str
    disk_usage: int = 0
    inode: int = 0


class MemoryFileSystem:
    def __init__(self, home: str = "/mock/home") -> None:
        self._entries: dict[str, _MockEntry] = {}
        self._denied: set[str] = set()
        self._home = home
        self.removed: list[str] = []
        self._next_inode = 1

    def add_dir(self, path: str) -> MemoryFileSystem:
        key = self._normalize(path)
        self._add_parents(key)
        self._entries[key] = _MockEntry(is_dir=True, size=0, content="")
        return self

    def add_file(
        self,
        path: str,
        size: int = 0,
        content: str = "",
        disk_usage: int | None = None,
    ) -> MemoryFileSystem:
        key = self._normalize(path)
        self._add_parents(key)
        self._entries[key] = _MockEntry(
            is_dir=False,
            size=size,
            content=content,
            disk_usage=disk_usage if disk_usage is not None else size,
            inode=self._next_inode,
        )
        self._next_inode += 1
        return self

    def add_link(self, path: str, existing: str) -> MemoryFileSystem:
        """Add *path* as another hard link to the file at *existing*."""
        key = self._normalize(path)
        self._add_parents(key)
        self._entries[key] = self._entries[self._normalize(existing)]
        return self

    def deny(self, path: str) -> MemoryFileSystem:
        """Make removal of *path* fail with ``PermissionError``."""
        self._denied.add(self._normalize(path))
        return self

    def _add_parents(self, key: str) -> None:
        for parent in reversed(PurePosixPath(key).parents):
            pk = str(parent)
            if pk not in self._entries:
                self._entries[pk] = _MockEntry(is_dir=True, size=0, content="")

    def expanduser(self, path: str) -> str:
        return path.replace("~", self._home, 1) if path.startswith("~") else path

    def home(self) -> str:
        return self._home

    def exists(self, path: str) -> bool:
        return self._normalize(path) in self._entries

    def stat(self, path: str) -> StatResult:
        key = self._normalize(path)
        entry = self._entries.get(key)
        if entry is None:
            raise FileNotFoundError(f"No such file or directory: '{key}'")
        return self._stat(entry)

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        key = self._normalize(path)
        entry = self._entries.get(key)
        if entry is None:
            raise FileNotFoundError(f"No such file or directory: '{key}'")
        return entry.content

    def scandir(self, path: str) -> list[DirEntry]:
        key = self._normalize(path)
        entry = self._entries.get(key)
        if entry is None:
            raise FileNotFoundError(f"No such file or directory: '{key}'")
        if not entry.is_dir:
            raise NotADirectoryError(f"Not a directory: '{key}'")
        prefix = key.rstrip("/") + "/"
        result: list[DirEntry] = []
        for p, mock in self._entries.items():
            if p == key or not p.startswith(prefix) or "/" in p[len(prefix) :]:
                continue
            result.append(DirEntry(path=p, name=p[len(prefix) :], stat=self._stat(mock)))
        return result

    def remove(self, path: str) -> None:
        key = self._normalize(path)
        if key not in self._entries:
            raise FileNotFoundError(f"No such file or directory: '{key}'")
        if key in self._denied:
            raise PermissionError(f"Permission denied: '{key}'")
        prefix = key.rstrip("/") + "/"
        for p in [p for p in self._entries if p == key or p.startswith(prefix)]:
            del self._entries[p]
        self.removed.append(key)

    def _stat(self, entry: _MockEntry) -> StatResult:
        links = sum(1 for e in self._entries.values() if e is entry)
        file_id = None if entry.is_dir else (1, entry.inode)
        return StatResult(
            size=entry.size,
            is_dir=entry.is_dir,
            disk_usage=entry.disk_usage,
            file_id=file_id,
            links=links,
        )

    @staticmethod
    def _normalize(path: str) -> str:
        return path.rstrip("/") or "/"
