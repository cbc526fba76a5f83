"""A file-per-key table with optional snapshot history, a command line tool and a web viewer."""

__version__ = "0.1.0"
__all__ = ["filesystem", "memfs", "table", "command", "web"]