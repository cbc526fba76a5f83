"""An in-memory file system, mainly for tests."""

from __future__ import annotations

import errno
import io
import posixpath
import stat
from typing import BinaryIO, Iterator

from filetable.filesystem import FileInfo, FileSystem

_SEP = "/"


def _clean(path: str) -> str:
    cleaned = posixpath.normpath(path)
    if cleaned.startswith("//"):
        cleaned = _SEP + cleaned.lstrip(_SEP)
    return cleaned


def _ensure_dir_name(path: str) -> str:
    cleaned = _clean(path)
    if cleaned == _SEP:
        return cleaned
    return cleaned + _SEP


def _parent_dir(path: str) -> str:
    return _ensure_dir_name(posixpath.dirname(_clean(path)))


def _base_name(path: str) -> str:
    stripped = path.rstrip(_SEP)
    if not stripped:
        return _SEP if path else "."
    return posixpath.basename(stripped)


class _MemoryWriter(io.BytesIO):
    """Buffer that stores its content in the file system when closed."""

    def __init__(self, fs: MemoryFileSystem, path: str) -> None:
        super().__init__()
        self._fs = fs
        self._path = path

    def close(self) -> None:
        if not self.closed:
            self._fs.write_file(self._path, self.getvalue())
        super().close()


class MemoryFileSystem(FileSystem):
    """A fake file system holding files and directories in a dictionary.

    Directories are stored under their path with a trailing slash; files under
    their clean path.
    """

    def __init__(self) -> None:
        self._files: dict[str, bytes | None] = {_SEP: None}

    def mkdir(self, name: str) -> None:
        """Create directory ``name``; its parent must already exist."""
        current = _clean(name)
        if _parent_dir(current) not in self._files:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", name)
        self._files[_ensure_dir_name(current)] = None

    def mkdir_all(self, path: str) -> None:
        current = _clean(path)
        if current in (".", _SEP):
            return
        if _ensure_dir_name(current) in self._files:
            return
        try:
            self.mkdir_all(_parent_dir(current))
        except FileNotFoundError:
            pass
        self.mkdir(_ensure_dir_name(current))

    def remove_all(self, path: str) -> None:
        prefix = _clean(path) + _SEP
        for key in [k for k in self._files if k.startswith(prefix)]:
            del self._files[key]

    def open(self, name: str) -> BinaryIO:
        cleaned = _clean(name)
        if cleaned not in self._files:
            raise FileNotFoundError(errno.ENOENT, "file does not exist", name)
        return io.BytesIO(self._files[cleaned] or b"")

    def create(self, name: str) -> BinaryIO:
        self._files[_clean(name)] = b""
        return _MemoryWriter(self, name)

    def remove(self, name: str) -> None:
        self._files.pop(_clean(name), None)

    def walk(self, root: str) -> Iterator[tuple[str, FileInfo]]:
        prefix = _clean(root)
        for path in sorted(p for p in self._files if p.startswith(prefix)):
            is_dir = path.endswith(_SEP)
            mode = 0o777 | (stat.S_IFDIR if is_dir else 0)
            yield _clean(path), FileInfo(name=_base_name(path), is_dir=is_dir, size=0, mode=mode)

    def write_file(self, filename: str, data: bytes) -> None:
        """Store ``data`` as the whole content of ``filename``."""
        self._files[_clean(filename)] = bytes(data)