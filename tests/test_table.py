import io

import pytest

from filetable.filesystem import OSFileSystem
from filetable.memfs import MemoryFileSystem
from filetable.table import (
    Header,
    HeaderSizeMismatchError,
    NoSnapshotsError,
    Snapshot,
    SnapshotInfo,
    Table,
    TableError,
    create,
    decode_key,
    encode_key,
    open_table,
    read_header,
)

PUT, GET = "put", "get"


@pytest.mark.parametrize(
    "base, keep, operations",
    [
        ("/test-table-0001", False, []),
        ("/test-table-0002", True, []),
        (
            "/test-table-0003",
            False,
            [
                (PUT, "hello", "world", None),
                (PUT, "hello", "world2", None),
                (GET, "world", "", FileNotFoundError),
                (GET, "hello", "world2", None),
            ],
        ),
        (
            "/test-table-0004",
            True,
            [
                (PUT, "hello", "world", None),
                (PUT, "hello", "world2", None),
                (GET, "world", "", FileNotFoundError),
                (GET, "hello", "world2", None),
            ],
        ),
        (
            "/test-table-0005",
            True,
            [
                (PUT, "hello", "world", None),
                (PUT, "hello", "world1", None),
                (PUT, "hello", "world123", None),
                (PUT, "hello", "world45678", None),
                (PUT, "hello", "world9", None),
                (PUT, "hello", "world100", None),
                (PUT, "hello", "world23", None),
                (GET, "world", "", FileNotFoundError),
                (GET, "hello", "world23", None),
            ],
        ),
    ],
)
def test_put_and_get(base, keep, operations):
    fs = MemoryFileSystem()
    tbl = create(base, fs, keep)
    for op, key, value, error in operations:
        if op == PUT:
            tbl.put(key.encode(), value.encode())
        elif error is not None:
            with pytest.raises(error):
                tbl.get(key.encode())
        else:
            assert tbl.get(key.encode()) == value.encode()
    tbl.drop()
    assert list(tbl.keys()) == []


def _sample_table():
    tbl = create("/test-table-0000", MemoryFileSystem(), True)
    tbl.put(b"key", b"history1")
    tbl.put(b"key", b"history2")
    tbl.put(b"key2", b"history3")
    tbl.put(b"key", b"history4")
    return tbl


def test_get_snapshots_example():
    tbl = _sample_table()
    assert [s.value for s in tbl.get_snapshots(b"key")] == [
        b"history1",
        b"history2",
        b"history4",
    ]
    assert [s.value for s in tbl.get_snapshots(b"key2")] == [b"history3"]
    with pytest.raises(FileNotFoundError, match="file does not exist"):
        list(tbl.get_snapshots(b"key3"))
    assert list(tbl.keys()) == [b"key", b"key2"]
    tbl.drop()
    assert list(tbl.keys()) == []


def test_put_snapshots_example():
    tbl = create("/test-table-0000", MemoryFileSystem(), True)
    tbl.put_snapshots(
        b"key",
        [
            Snapshot(SnapshotInfo(100, 7), b"history"),
            Snapshot(SnapshotInfo(200, 8), b"history2"),
            Snapshot(SnapshotInfo(300, 5), b"test0"),
        ],
    )
    snapshots = list(tbl.get_snapshots(b"key"))
    assert [s.value for s in snapshots] == [b"history", b"history2", b"test0"]
    assert [s.info.timestamp for s in snapshots] == [100, 200, 300]
    assert tbl.get(b"key") == b"test0"


def test_snapshot_infos_record_value_sizes():
    tbl = _sample_table()
    infos = [s.info for s in tbl.get_snapshots(b"key")]
    assert [i.byte_size for i in infos] == [8, 8, 8]
    assert all(i.timestamp > 0 for i in infos)


def test_no_snapshots_error():
    tbl = create("/t", MemoryFileSystem(), True)
    tbl.put_snapshots(b"empty", [])
    with pytest.raises(NoSnapshotsError):
        tbl.get(b"empty")
    assert issubclass(NoSnapshotsError, TableError)


def test_remove_key():
    tbl = create("/t", MemoryFileSystem(), False)
    tbl.put(b"a", b"1")
    tbl.put(b"b", b"2")
    tbl.remove(b"a")
    assert list(tbl.keys()) == [b"b"]
    with pytest.raises(FileNotFoundError):
        tbl.get(b"a")


def test_keys_stop_at_invalid_name():
    fs = MemoryFileSystem()
    tbl = create("/t", fs, False)
    tbl.put(b"key", b"v")
    with fs.create("/t/not!base64") as stream:
        stream.write(b"x")
    assert list(tbl.keys()) == [b"key"]


def test_open_table_on_disk(tmp_path):
    base = str(tmp_path / "tbl")
    tbl = open_table(base, OSFileSystem(), True)
    tbl.put(b"key", b"one")
    tbl.put(b"key", b"two")
    tbl.put(b"key2", b"three")
    assert tbl.get(b"key") == b"two"
    assert [s.value for s in tbl.get_snapshots(b"key")] == [b"one", b"two"]
    assert list(tbl.keys()) == [b"key", b"key2"]
    tbl.drop()
    assert not (tmp_path / "tbl").exists()


def test_default_file_system_is_os(tmp_path):
    tbl = Table(str(tmp_path / "x"))
    tbl.recover()
    tbl.put("k", "v")
    assert tbl.get("k") == b"v"
    assert isinstance(tbl.file_system, OSFileSystem)


@pytest.mark.parametrize(
    "key, encoded",
    [(b"key", "a2V5"), (b"key2", "a2V5Mg=="), (b"\xfb\xff", "-_8="), (b"", "")],
)
def test_key_encoding(key, encoded):
    assert encode_key(key) == encoded
    assert decode_key(encoded) == key
    assert decode_key(encoded.encode()) == key


@pytest.mark.parametrize("bad", ["a2V5!", "a2V5Mg", "+/8="])
def test_decode_key_rejects_invalid(bad):
    with pytest.raises(ValueError):
        decode_key(bad)


def test_header_write_to_pads_to_byte_size():
    header = Header(16, [SnapshotInfo(100, 7)])
    stream = io.BytesIO()
    assert header.write_to(stream) == 16
    assert stream.getvalue() == (
        b"\x10\x01" + (100).to_bytes(8, "big") + b"\x07" + b"\x00" * 5
    )


def test_header_grows_when_content_is_larger():
    infos = [SnapshotInfo(i * 1000, i) for i in range(20)]
    header = Header(1, list(infos))
    stream = io.BytesIO()
    written = header.write_to(stream)
    assert written == header.byte_size == len(stream.getvalue())
    assert header.byte_size > 16
    stream.seek(0)
    read = read_header(stream)
    assert read.snapshots == infos
    assert read.byte_size == header.byte_size
    assert stream.read() == b""


def test_read_header_leaves_stream_at_values():
    stream = io.BytesIO()
    Header(snapshots=[SnapshotInfo(5, 3)]).write_to(stream)
    stream.write(b"abc")
    stream.seek(0)
    header = read_header(stream)
    assert header.byte_size == 16
    assert stream.read() == b"abc"


def test_read_header_size_mismatch():
    with pytest.raises(HeaderSizeMismatchError):
        read_header(io.BytesIO(b"\x01\x00"))


def test_read_header_truncated():
    with pytest.raises(EOFError):
        read_header(io.BytesIO(b""))
    with pytest.raises(EOFError):
        read_header(io.BytesIO(b"\x10\x00\x00"))


def test_read_header_varint_overflow():
    with pytest.raises(TableError):
        read_header(io.BytesIO(b"\xff" * 11))