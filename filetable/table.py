"""Key/value tables stored as one file per key, optionally keeping every snapshot."""

from __future__ import annotations

import base64
import binascii
import os
import struct
import time
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator

from filetable.filesystem import FileSystem, OSFileSystem

_MAX_VARINT_LEN = 10
_DEFAULT_HEADER_SIZE = 16
_TIMESTAMP = struct.Struct(">Q")


class TableError(Exception):
    """Base class for errors raised by table operations."""


class HeaderSizeMismatchError(TableError):
    """The header's recorded size is smaller than its content."""

    def __init__(self) -> None:
        super().__init__("filetable: header size mismatch")


class NoSnapshotsError(TableError):
    """The stored value of a key holds no snapshots."""

    def __init__(self) -> None:
        super().__init__("filetable: no snapshots")


@dataclass(frozen=True)
class SnapshotInfo:
    """When a snapshot was written and how many bytes it holds."""

    timestamp: int
    byte_size: int


@dataclass(frozen=True)
class Snapshot:
    """A snapshot's information together with its value."""

    info: SnapshotInfo
    value: bytes


def _uvarint(value: int) -> bytes:
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


class _CountingReader:
    """Reads from a stream while counting the bytes consumed."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream
        self.count = 0

    def read_exact(self, size: int) -> bytes:
        data = self._stream.read(size) if size else b""
        self.count += len(data)
        if len(data) < size:
            raise EOFError("unexpected end of data")
        return data

    def read_uvarint(self) -> int:
        result = 0
        shift = 0
        for i in range(_MAX_VARINT_LEN):
            byte = self.read_exact(1)[0]
            if byte < 0x80:
                if i == _MAX_VARINT_LEN - 1 and byte > 1:
                    raise TableError("varint overflows a 64-bit integer")
                return result | (byte << shift)
            result |= (byte & 0x7F) << shift
            shift += 7
        raise TableError("varint overflows a 64-bit integer")


@dataclass
class Header:
    """Header of a stored value: its own byte size and the snapshot index."""

    byte_size: int = _DEFAULT_HEADER_SIZE
    snapshots: list[SnapshotInfo] = field(default_factory=list)

    def write_to(self, stream: BinaryIO) -> int:
        """Write the header to ``stream`` and return the number of bytes written.

        ``byte_size`` is grown if the content does not fit; the header is padded
        with zero bytes up to ``byte_size``.
        """
        body = bytearray(_uvarint(len(self.snapshots)))
        for info in self.snapshots:
            body += _TIMESTAMP.pack(info.timestamp)
            body += _uvarint(info.byte_size)
        size_field = _uvarint(self.byte_size)
        while self.byte_size < len(size_field) + len(body):
            self.byte_size = len(size_field) + len(body)
            size_field = _uvarint(self.byte_size)
        data = size_field + bytes(body)
        data += bytes(max(0, self.byte_size - len(data)))
        stream.write(data)
        return len(data)


def encode_key(key: bytes) -> str:
    """Encode ``key`` as URL-safe base64 so it can be used as a file name."""
    return base64.urlsafe_b64encode(key).decode("ascii")


def decode_key(encoded: str | bytes) -> bytes:
    """Decode a URL-safe base64 file name back into a key.

    Raises ValueError if ``encoded`` is not valid padded URL-safe base64.
    """
    text = encoded.decode("ascii") if isinstance(encoded, bytes) else encoded
    if "+" in text or "/" in text:
        raise ValueError(f"illegal base64 data: {text!r}")
    try:
        return base64.b64decode(text.translate(str.maketrans("-_", "+/")), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"illegal base64 data: {text!r}") from exc


def read_header(stream: BinaryIO) -> Header:
    """Read a header from ``stream``, leaving it positioned at the first value.

    Raises HeaderSizeMismatchError if the content is larger than the recorded
    size, and EOFError if the stream ends early.
    """
    reader = _CountingReader(stream)
    header_size = reader.read_uvarint()
    count = reader.read_uvarint()
    snapshots = []
    for _ in range(count):
        (timestamp,) = _TIMESTAMP.unpack(reader.read_exact(_TIMESTAMP.size))
        snapshots.append(SnapshotInfo(timestamp, reader.read_uvarint()))
    if reader.count > header_size:
        raise HeaderSizeMismatchError()
    reader.read_exact(header_size - reader.count)
    return Header(byte_size=header_size, snapshots=snapshots)


def _as_bytes(data: bytes | str) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


class Table:
    """A table whose values are files in ``base_directory``, one per key."""

    def __init__(
        self,
        base_directory: str,
        file_system: FileSystem | None = None,
        keep_snapshots: bool = False,
    ) -> None:
        self.base_directory = base_directory
        self.file_system = file_system if file_system is not None else OSFileSystem()
        self.keep_snapshots = keep_snapshots

    def __repr__(self) -> str:
        return (
            f"Table({self.base_directory!r}, {self.file_system!r}, "
            f"keep_snapshots={self.keep_snapshots})"
        )

    def _path(self, key: bytes | str) -> str:
        return os.path.join(self.base_directory, encode_key(_as_bytes(key)))

    def drop(self) -> None:
        """Remove the table directory and all its data."""
        self.file_system.remove_all(self.base_directory)

    def recover(self) -> None:
        """Create the table directory if it is missing."""
        self.file_system.mkdir_all(self.base_directory)

    def get(self, key: bytes | str) -> bytes:
        """Return the current value of ``key``.

        Raises FileNotFoundError if the key is absent.
        """
        if not self.keep_snapshots:
            with self.file_system.open(self._path(key)) as stream:
                return stream.read()
        value = b""
        for snapshot in self.get_snapshots(key):
            value = snapshot.value
        return value

    def get_snapshots(self, key: bytes | str) -> Iterator[Snapshot]:
        """Yield every snapshot of ``key``, oldest first.

        Raises FileNotFoundError if the key is absent and NoSnapshotsError if
        its header lists none.
        """
        with self.file_system.open(self._path(key)) as stream:
            header = read_header(stream)
            if not header.snapshots:
                raise NoSnapshotsError()
            for info in header.snapshots:
                value = stream.read(info.byte_size) if info.byte_size else b""
                if len(value) < info.byte_size:
                    raise EOFError("unexpected end of data")
                yield Snapshot(info, value)

    def put_snapshots(self, key: bytes | str, snapshots: list[Snapshot]) -> None:
        """Replace all snapshots of ``key`` with ``snapshots``."""
        header = Header(snapshots=[snapshot.info for snapshot in snapshots])
        with self.file_system.create(self._path(key)) as stream:
            header.write_to(stream)
            for snapshot in snapshots:
                stream.write(snapshot.value)

    def put(self, key: bytes | str, value: bytes | str) -> None:
        """Store ``value`` under ``key``, appending a snapshot if snapshots are kept."""
        value = _as_bytes(value)
        path = self._path(key)
        header: Header | None = None
        value_area = b""
        if self.keep_snapshots:
            try:
                stream = self.file_system.open(path)
            except OSError:
                header = Header()
            else:
                with stream:
                    header = read_header(stream)
                    value_area = stream.read()
        with self.file_system.create(path) as stream:
            if header is not None:
                header.snapshots.append(SnapshotInfo(time.time_ns(), len(value)))
                header.write_to(stream)
            stream.write(value_area)
            stream.write(value)

    def remove(self, key: bytes | str) -> None:
        """Remove ``key`` from the table."""
        self.file_system.remove(self._path(key))

    def keys(self) -> Iterator[bytes]:
        """Yield the keys of the table in the order of their file names.

        Iteration stops at the first file whose name is not an encoded key.
        """
        for _path, info in self.file_system.walk(self.base_directory):
            if info.is_dir:
                continue
            try:
                key = decode_key(info.name)
            except ValueError:
                return
            yield key


def create(
    base_directory: str,
    file_system: FileSystem | None = None,
    keep_snapshots: bool = False,
) -> Table:
    """Create the table directory if needed and return the table."""
    table = Table(base_directory, file_system, keep_snapshots)
    table.recover()
    return table


def open_table(
    base_directory: str,
    file_system: FileSystem | None = None,
    keep_snapshots: bool = False,
) -> Table:
    """Open the table in ``base_directory``, creating it if needed."""
    return create(base_directory, file_system, keep_snapshots)