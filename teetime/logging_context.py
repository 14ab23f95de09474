"""Draft-session logging context for tracing one golfer across modules.

Provides a session-aware logger that attaches the draft session key to
every log record, so a single booking draft can be followed through the
wizard, the hold manager, and checkout reconciliation.

Usage:
    from teetime.logging_context import get_session_logger, set_session_id

    set_session_id("draft-abc123")
    logger = get_session_logger(__name__)
    logger.info("Slot selected")  # record.session_id == "draft-abc123"
"""

import logging
from contextvars import ContextVar

_session_id: ContextVar[str] = ContextVar("session_id", default="NO_SESSION")


def set_session_id(session_id: str) -> None:
    """Set the draft session key for the current async context."""
    _session_id.set(session_id)


def get_session_id() -> str:
    """Retrieve the current draft session key."""
    return _session_id.get()


class SessionIdFilter(logging.Filter):
    """Injects session_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def get_session_logger(name: str) -> logging.Logger:
    """Return a logger with the SessionIdFilter attached.

    The filter adds ``session_id`` to each record so formatters can
    include ``%(session_id)s`` in their format string.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, SessionIdFilter) for f in logger.filters):
        logger.addFilter(SessionIdFilter())
    return logger
