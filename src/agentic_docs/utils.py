"""Core utility functions: console logging, corpus root discovery, path helpers."""

import os

from rich.console import Console

from agentic_docs.config import CONFIG_FILENAME

console = Console()
err_console = Console(stderr=True)

_log_file = ""


def set_log_file(path: str) -> None:
    """Route log() output to a file in addition to the console. Empty disables."""
    global _log_file
    _log_file = path


def log(message: str, style: str = "") -> None:
    """Write a message to stderr (with optional style) and the log file, if any."""
    if style:
        err_console.print(message, style=style)
    else:
        err_console.print(message)

    if not _log_file:
        return
    try:
        with open(_log_file, "a", encoding="utf-8") as f:
            f.write(message + "\n")
    except Exception:
        pass  # Never break a command over logging


_ROOT_MARKERS = (CONFIG_FILENAME, ".git")


def find_docs_root(cwd: str) -> str:
    """Return the nearest ancestor of cwd holding agentic-docs.toml or .git.

    Falls back to cwd itself when no marker is found on the way up.
    """
    current = os.path.abspath(cwd)
    while True:
        if any(os.path.exists(os.path.join(current, m)) for m in _ROOT_MARKERS):
            return current
        parent = os.path.dirname(current)
        if parent == current:
            return os.path.abspath(cwd)
        current = parent


class UnreadableFileError(Exception):
    """A file exists but its content is not valid UTF-8 text."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"{path} is not valid UTF-8 text ({reason})")


def read_text(path: str) -> str:
    """Read a UTF-8 text file.

    Raises FileNotFoundError if missing and UnreadableFileError if the bytes
    don't decode.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except UnicodeDecodeError as exc:
        raise UnreadableFileError(path, f"{exc.reason} at byte {exc.start}") from exc


def plural(count: int, word: str) -> str:
    """Return '1 module' / '3 modules'."""
    return f"{count} {word}{'' if count == 1 else 's'}"
