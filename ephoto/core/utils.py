"""Shared utilities: console logging and small string helpers."""

import contextvars
from contextlib import contextmanager
from datetime import datetime
from urllib.parse import urlsplit

from .debug import is_debug_logging_enabled

# Context variable for the current operation (e.g., "HttpGenerator", "BrowserGenerator")
_log_context: contextvars.ContextVar[str | None] = contextvars.ContextVar("log_context", default=None)


@contextmanager
def log_context(name: str):
    """Set logging context for a block of code. All logs will include this context."""
    token = _log_context.set(name)
    try:
        yield
    finally:
        _log_context.reset(token)


def log(msg, symbol="▸"):
    """Log with timestamp, context, and symbol."""
    ts = datetime.now().strftime("%H:%M:%S")
    ctx = _log_context.get()
    ctx_str = f" {ctx}:" if ctx else ""
    print(f"[Ephoto {ts}]{ctx_str} {symbol} {msg}")


def debug_log(msg, symbol="⌘"):
    """Log only when EPHOTO_DEBUG=1 is set."""
    if is_debug_logging_enabled():
        log(msg, symbol)


def shorten(text: str, limit: int = 60) -> str:
    """Shorten text for log lines."""
    return text[:limit] + "..." if len(text) > limit else text


def origin_of(url: str) -> str:
    """Return scheme://host[:port] of a URL."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"
