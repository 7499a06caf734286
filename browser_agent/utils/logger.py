"""
Structured console logging for browser sessions, request interception,
and cookie import/export.

Each line carries a UTC timestamp, a level marker, the logger's context
and optional ``key=value`` data. Output goes to stderr in colour; the
same line, ANSI-stripped, is appended to a per-context buffer so callers
and tests can inspect what was logged.

The minimum level is read from ``BROWSER_AGENT_LOG_LEVEL`` (``debug``,
``info``, ``warn`` or ``error``; default ``info``) each time a line is
emitted.
"""

from __future__ import annotations

import collections
import contextvars
import os
import re
import sys
from datetime import UTC, datetime
from typing import NamedTuple

# ============================================================================
# Log buffer (isolated via contextvars)
# ============================================================================

_log_buffer_var: contextvars.ContextVar[collections.deque[str]] = contextvars.ContextVar("_log_buffer_var")

_ANSI_RE = re.compile(r"\033\[[0-9;]*m")

# Oldest lines are dropped beyond this many.
MAX_BUFFERED_LINES = 1000


def _buffer() -> collections.deque[str]:
    try:
        return _log_buffer_var.get()
    except LookupError:
        lines: collections.deque[str] = collections.deque(maxlen=MAX_BUFFERED_LINES)
        _log_buffer_var.set(lines)
        return lines


def get_log_buffer() -> list[str]:
    """Return a copy of the most recent lines logged in this context (ANSI-stripped).

    At most ``MAX_BUFFERED_LINES`` lines are kept; call
    :func:`clear_log_buffer` to start afresh.
    """
    return list(_buffer())


def clear_log_buffer() -> None:
    _buffer().clear()


# ============================================================================
# Levels & styling
# ============================================================================

_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_RED = "\033[31m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_CYAN = "\033[36m"
_GRAY = "\033[90m"


class _Level(NamedTuple):
    rank: int
    colour: str
    symbol: str


_LEVELS = {
    "debug": _Level(10, _GRAY, "•"),
    "info": _Level(20, _CYAN, "ℹ"),
    "success": _Level(20, _GREEN, "✓"),
    "warn": _Level(30, _YELLOW, "⚠"),
    "error": _Level(40, _RED, "✗"),
}

_DEFAULT_LEVEL = "info"
_MAX_VALUE_CHARS = 200


def _threshold() -> int:
    name = os.environ.get("BROWSER_AGENT_LOG_LEVEL", _DEFAULT_LEVEL).strip().lower()
    return _LEVELS.get(name, _LEVELS[_DEFAULT_LEVEL]).rank


def _timestamp() -> str:
    """Current UTC time as HH:MM:SS.mmm."""
    return datetime.now(UTC).isoformat(timespec="milliseconds")[11:23]


def _render_value(value: object) -> str:
    if value is None:
        return f"{_DIM}None{_RESET}"
    if isinstance(value, bool):
        return f"{_GREEN if value else _RED}{value}{_RESET}"
    if isinstance(value, (int, float)):
        return f"{_YELLOW}{value}{_RESET}"
    if isinstance(value, str):
        if len(value) > _MAX_VALUE_CHARS:
            value = value[: _MAX_VALUE_CHARS - 3] + "..."
        return f'{_GREEN}"{value}"{_RESET}'
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"{_CYAN}[{len(value)} items]{_RESET}"
    if isinstance(value, dict):
        return f"{_CYAN}{{{len(value)} keys}}{_RESET}"
    return str(value)


def _render_data(data: dict[str, object]) -> str:
    return " ".join(f"{_DIM}{key}={_RESET}{_render_value(value)}" for key, value in data.items())


# ============================================================================
# Logger
# ============================================================================


class Logger:
    """Structured logger bound to a context name (usually the component)."""

    def __init__(self, context: str = "BrowserAgent") -> None:
        self._context = context

    @property
    def context(self) -> str:
        return self._context

    def _emit(self, level: str, message: str, data: dict[str, object] | None) -> None:
        style = _LEVELS[level]
        if style.rank < _threshold():
            return

        line = (
            f"{_GRAY}[{_timestamp()}]{_RESET} {style.colour}{style.symbol}{_RESET} "
            f"{_BOLD}[{self._context}]{_RESET} {message}"
        )
        if data:
            line = f"{line} {_render_data(data)}"

        print(line, file=sys.stderr)
        _buffer().append(_ANSI_RE.sub("", line))

    def debug(self, message: str, data: dict[str, object] | None = None) -> None:
        """Per-event detail, hidden unless the level is ``debug``."""
        self._emit("debug", message, data)

    def info(self, message: str, data: dict[str, object] | None = None) -> None:
        self._emit("info", message, data)

    def success(self, message: str, data: dict[str, object] | None = None) -> None:
        self._emit("success", message, data)

    def warn(self, message: str, data: dict[str, object] | None = None) -> None:
        self._emit("warn", message, data)

    def error(self, message: str, data: dict[str, object] | None = None) -> None:
        self._emit("error", message, data)


def create_logger(context: str) -> Logger:
    """Create a logger for a specific component."""
    return Logger(context)
