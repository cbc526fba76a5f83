"""File system abstraction used by tables, with an implementation backed by the OS."""

from __future__ import annotations

import os
import shutil
import stat
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Iterator


@dataclass(frozen=True)
class FileInfo:
    """Description of one entry visited while walking a file system."""

    name: str
    is_dir: bool
    size: int = 0
    mode: int = 0
    mod_time: datetime | None = None


class FileSystem(ABC):
    """Operations a table needs from the file system it is stored on."""

    @abstractmethod
    def mkdir_all(self, path: str) -> None:
        """Create directory ``path`` and any missing parents."""

    @abstractmethod
    def remove_all(self, path: str) -> None:
        """Remove ``path`` and everything below it; a missing path is not an error."""

    @abstractmethod
    def open(self, name: str) -> BinaryIO:
        """Open ``name`` for reading; raise FileNotFoundError if it does not exist."""

    @abstractmethod
    def create(self, name: str) -> BinaryIO:
        """Create or truncate ``name`` and return a writable binary stream."""

    @abstractmethod
    def remove(self, name: str) -> None:
        """Remove the file or empty directory ``name``."""

    @abstractmethod
    def walk(self, root: str) -> Iterator[tuple[str, FileInfo]]:
        """Yield ``(path, info)`` for ``root`` and every entry below it in lexical order."""


def _base_name(path: str) -> str:
    stripped = path.rstrip(os.sep)
    if not stripped:
        return os.sep if path else "."
    return os.path.basename(stripped)


class OSFileSystem(FileSystem):
    """File system that operates on the real disk."""

    def mkdir_all(self, path: str) -> None:
        os.makedirs(path, mode=0o700, exist_ok=True)

    def remove_all(self, path: str) -> None:
        try:
            st = os.lstat(path)
        except FileNotFoundError:
            return
        if stat.S_ISDIR(st.st_mode):
            shutil.rmtree(path)
        else:
            os.remove(path)

    def open(self, name: str) -> BinaryIO:
        return open(name, "rb")

    def create(self, name: str) -> BinaryIO:
        return open(name, "w+b")

    def remove(self, name: str) -> None:
        if os.path.isdir(name) and not os.path.islink(name):
            os.rmdir(name)
        else:
            os.remove(name)

    def walk(self, root: str) -> Iterator[tuple[str, FileInfo]]:
        yield from self._walk(root, os.lstat(root))

    def _walk(self, path: str, st: os.stat_result) -> Iterator[tuple[str, FileInfo]]:
        is_dir = stat.S_ISDIR(st.st_mode)
        yield path, FileInfo(
            name=_base_name(path),
            is_dir=is_dir,
            size=st.st_size,
            mode=st.st_mode,
            mod_time=datetime.fromtimestamp(st.st_mtime),
        )
        if not is_dir:
            return
        for entry in sorted(os.listdir(path)):
            child = os.path.join(path, entry)
            yield from self._walk(child, os.lstat(child))