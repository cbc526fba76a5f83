# filetable

A small key-value table that keeps every key in its own file under a base
directory. Each file is named by the URL-safe base64 encoding of its key, so
any byte string can be a key.

When a table keeps snapshots, every `put` adds a timestamped version of the
value to the key's file, and the whole history stays available. Otherwise
each `put` replaces the file's contents with the raw value.

## Installation

```
pip install .
```

No third-party libraries are needed.

## Using the library

```python
from filetable.table import create
from filetable.memfs import MemoryFileSystem

table = create("/my-table", MemoryFileSystem(), True)
table.put(b"key", b"history1")
table.put(b"key", b"history2")

print(table.get(b"key"))                # b'history2'
for snapshot in table.get_snapshots(b"key"):
    print(snapshot.info.timestamp, snapshot.value)

print(list(table.keys()))               # [b'key']
table.remove(b"key")
table.drop()
```

`create(base_directory, file_system=None, keep_snapshots=False)` makes the
table directory if it is missing and returns a `Table`. `open_table` takes the
same arguments and does the same. Keys and values may be given as `bytes` or
as `str`, which is encoded as UTF-8.

`Table` methods:

- `put(key, value)` stores a value; with snapshots kept, it appends a snapshot
  stamped with the current time in nanoseconds.
- `get(key)` returns the current (latest) value.
- `get_snapshots(key)` yields `Snapshot` objects, oldest first; each has an
  `info` (`SnapshotInfo` with `timestamp` and `byte_size`) and a `value`.
- `put_snapshots(key, snapshots)` replaces the whole history of a key.
- `keys()` yields the stored keys in the order of their file names, and stops
  at the first file whose name is not an encoded key.
- `remove(key)` deletes one key; `drop()` deletes the table directory and all
  its data; `recover()` creates the directory again.

If `file_system` is `None`, the table uses the real disk through
`filetable.filesystem.OSFileSystem`. `filetable.memfs.MemoryFileSystem` keeps
everything in a dictionary, which is handy for tests. Both implement the
`FileSystem` interface (`mkdir_all`, `remove_all`, `open`, `create`, `remove`,
`walk`), so other storage can be plugged in.

### Errors

- A missing key raises `FileNotFoundError`.
- A key file whose header content is larger than its recorded size raises
  `HeaderSizeMismatchError`.
- A key file whose header lists no snapshots raises `NoSnapshotsError` from
  `get_snapshots`.
- A key file that ends before the data its header promises raises `EOFError`.

`HeaderSizeMismatchError` and `NoSnapshotsError` derive from `TableError`.

### File format with snapshots

A key file starts with a header: its own byte size as an unsigned varint, the
number of snapshots as a varint, then for each snapshot an 8-byte big-endian
timestamp and its value length as a varint. The header is padded with zero
bytes to its recorded size (at least 16 bytes). The snapshot values follow,
one after another, in the same order. `read_header` and `Header.write_to`
read and write this header; `encode_key` and `decode_key` convert between
keys and file names.

## Command line

```
filetable ls PATH [PATH...]   # print the keys stored in each table
filetable cat PATH KEY        # print the latest value of KEY
filetable help [COMMAND]      # list the commands, or describe one of them
```

Both `ls` and `cat` read tables as tables that keep snapshots, and create the
table directory if it does not exist. Errors are logged and the command ends
without printing a value.

## Web viewer

```
filetable-web --table_path PATH [--addr :9001]
```

This serves the table with the standard library's WSGI server. The index page
at `/` lists every key as a link; each key page (`/<encoded key>`) shows the
stored snapshots with their timestamps. Only `GET` requests produce a page.
`filetable.web.make_app(table)` returns the WSGI application itself, so it can
be run under any WSGI server.

## What it does not do

The command line tool and the web viewer only read tables: writing,
removing and dropping are done through the library. There is no locking, so
a table should not be written by several processes at once. The memory file
system ignores permissions and does not record sizes or modification times
when walked.