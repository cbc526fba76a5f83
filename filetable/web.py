"""A small web server that shows the keys and snapshots of a table."""

from __future__ import annotations

import argparse
import logging
from datetime import datetime
from typing import Callable, Iterable
from wsgiref.simple_server import make_server

from filetable.table import Table, TableError, create, decode_key, encode_key

_log = logging.getLogger(__name__)

_OPEN = "<html><body>"
_CLOSE = "</body></html>"

_ERRORS = (OSError, EOFError, ValueError, TableError)


def _text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _format_timestamp(nanoseconds: int) -> str:
    seconds, nanos = divmod(nanoseconds, 1_000_000_000)
    moment = datetime.fromtimestamp(seconds).astimezone()
    fraction = f".{nanos:09d}".rstrip("0") if nanos else ""
    return moment.strftime("%Y-%m-%d %H:%M:%S") + fraction + moment.strftime(" %z %Z")


def render_index(table: Table) -> str:
    """Return the index page listing every key with a link to its snapshots."""
    parts = [_OPEN, "<ul>"]
    for key in table.keys():
        parts.append(f'<li><a href="/{encode_key(key)}">{_text(key)}</a></li>')
    parts.append("</ul>")
    parts.append(_CLOSE)
    return "".join(parts)


def render_key(table: Table, encoded: str) -> str:
    """Return the page showing every snapshot of the key encoded as ``encoded``.

    Snapshots read before an error are kept; the error is logged.
    """
    parts = [_OPEN]
    try:
        key = decode_key(encoded)
        for snapshot in table.get_snapshots(key):
            parts.append(f"<h2>{_format_timestamp(snapshot.info.timestamp)}</h2>")
            parts.append(f"<p>\n{_text(snapshot.value)}\n</p>")
    except _ERRORS as exc:
        _log.error("%s", exc)
    parts.append(_CLOSE)
    return "".join(parts)


def make_app(table: Table) -> Callable[[dict, Callable], Iterable[bytes]]:
    """Return a WSGI application serving ``table``."""

    def app(environ: dict, start_response: Callable) -> Iterable[bytes]:
        path = environ.get("PATH_INFO", "") or "/"
        if path == "/favicon.ico" or environ.get("REQUEST_METHOD", "GET") != "GET":
            start_response("200 OK", [("Content-Length", "0")])
            return [b""]
        if path == "/":
            page = render_index(table)
        else:
            pieces = path.split("/")
            if len(pieces) == 2 and pieces[1]:
                page = render_key(table, pieces[1])
            else:
                page = _OPEN + _CLOSE
        body = page.encode("utf-8")
        start_response(
            "200 OK",
            [("Content-Type", "text/html"), ("Content-Length", str(len(body)))],
        )
        return [body]

    return app


def _split_address(addr: str) -> tuple[str, int]:
    host, _, port = addr.rpartition(":")
    return host, int(port)


def main(argv: list[str] | None = None) -> int:
    """Serve the table given by ``--table_path`` on ``--addr``."""
    parser = argparse.ArgumentParser(description="Browse a table over HTTP.")
    parser.add_argument("-addr", "--addr", default=":9001", help="address of server")
    parser.add_argument(
        "-table_path", "--table_path", default="", help="path to the backend table"
    )
    args = parser.parse_args(argv)
    try:
        table = create(args.table_path, keep_snapshots=True)
    except _ERRORS as exc:
        _log.error("%s", exc)
        return 1
    host, port = _split_address(args.addr)
    with make_server(host, port, make_app(table)) as server:
        server.serve_forever()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())