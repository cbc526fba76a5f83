"""Command line tool for listing and reading tables."""

from __future__ import annotations

import logging
import sys

from filetable.table import TableError, create

_log = logging.getLogger(__name__)

_HELP_DETAILS = {
    "ls": "ls path [path...] - prints list of keys from each path",
    "cat": "cat path key - prints the value",
}

_ERRORS = (OSError, EOFError, ValueError, TableError)


def ls(table_paths: list[str]) -> None:
    """Print the keys of every table in ``table_paths``, one per line.

    Stops at the first table that cannot be opened.
    """
    for table_path in table_paths:
        try:
            table = create(table_path, keep_snapshots=True)
        except _ERRORS as exc:
            _log.error("Error on path %s : %s", table_path, exc)
            return
        for key in table.keys():
            print(key.decode("utf-8", errors="replace"))


def cat(table_path: str, key: str) -> None:
    """Print the current value of ``key`` in the table at ``table_path``."""
    try:
        table = create(table_path, keep_snapshots=True)
        value = table.get(key.encode("utf-8"))
    except _ERRORS as exc:
        _log.error("%s", exc)
        return
    print(value.decode("utf-8", errors="replace"))


def help_text(cmd: str) -> str:
    """Return the help for ``cmd``, or the list of commands if ``cmd`` is empty.

    An unknown command gives an empty string.
    """
    if not cmd:
        lines = ["Available commands are:"]
        lines.extend(f"{name} : {details}" for name, details in _HELP_DETAILS.items())
        return "\n".join(lines)
    return _HELP_DETAILS.get(cmd, "")


def main(argv: list[str] | None = None) -> int:
    """Run the command given by ``argv`` (defaults to the process arguments)."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args == ["help"]:
        print(help_text(""))
        return 0
    if len(args) == 2 and args[0] == "help":
        print(help_text(args[1]))
        return 0
    cmd = args[0]
    if cmd == "ls":
        if len(args) < 2:
            print(help_text("ls"))
            return 0
        ls(args[1:])
        return 0
    if cmd == "cat":
        if len(args) != 3:
            print(help_text("cat"))
            return 0
        cat(args[1], args[2])
    return 0


if __name__ == "__main__":
    sys.exit(main())