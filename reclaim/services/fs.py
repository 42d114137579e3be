from __future__ import annotations

import os
import shutil
import stat as statmod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol


@dataclass(slots=True, frozen=True)
class StatResult:
    size: int
    is_dir: bool
    disk_usage: int = 0
    file_id: tuple[int, int] | None = None
    links: int = 1


@dataclass(slots=True, frozen=True)
class DirEntry:
    path: str
    name: str
    stat: StatResult | None = None


class FileSystem(Protocol):
    def expanduser(self, path: str) -> str: ...

    def home(self) -> str: ...

    def exists(self, path: str) -> bool: ...

    def stat(self, path: str) -> StatResult: ...

    def scandir(self, path: str) -> Iterable[DirEntry]: ...

    def read_text(self, path: str, encoding: str = "utf-8") -> str: ...

    def remove(self, path: str) -> None: ...


def _to_stat(st: os.stat_result) -> StatResult:
    return StatResult(
        size=st.st_size,
        is_dir=statmod.S_ISDIR(st.st_mode),
        disk_usage=getattr(st, "st_blocks", 0) * 512,
        file_id=(st.st_dev, st.st_ino),
        links=st.st_nlink,
    )


class OsFileSystem:
    def expanduser(self, path: str) -> str:
        return str(Path(path).expanduser())

    def home(self) -> str:
        return str(Path.home())

    def exists(self, path: str) -> bool:
        return os.path.lexists(path)

    def stat(self, path: str) -> StatResult:
        return _to_stat(os.stat(path, follow_symlinks=False))

    def scandir(self, path: str) -> Iterable[DirEntry]:
        with os.scandir(path) as entries:
            for e in entries:
                try:
                    sr: StatResult | None = _to_stat(e.stat(follow_symlinks=False))
                except OSError:
                    sr = None
                yield DirEntry(path=e.path, name=e.name, stat=sr)

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        return Path(path).read_text(encoding=encoding)

    def remove(self, path: str) -> None:
        st = os.stat(path, follow_symlinks=False)
        if statmod.S_ISDIR(st.st_mode):
            shutil.rmtree(path)
        else:
            os.unlink(path)


DEFAULT_FS: FileSystem = OsFileSystem()
