"""
Per-session log tagging.

The active chat session id lives in a ContextVar, so concurrent sessions
running on one event loop each log under their own id. The filter is
attached to the output handler rather than to individual loggers, which
means records from every module (extractor, gateway, persistence) are
stamped, not only the ones emitted by the session itself.

Usage:
    logging.basicConfig(level=logging.INFO, handlers=[session_log_handler()])
    set_session_id("session_1718000000000_k3j2h1g0f")
    logging.getLogger("booking_engine").info("Turn handled")
    # 2026-10-16 12:00:00 [session_1718000000000_k3j2h1g0f] booking_engine INFO: Turn handled
"""

import logging
from contextvars import ContextVar
from typing import IO, Optional

UNBOUND_SESSION = "-"

LOG_FORMAT = "%(asctime)s [%(session_id)s] %(name)s %(levelname)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_current_session: ContextVar[str] = ContextVar("booking_session_id", default=UNBOUND_SESSION)


def set_session_id(session_id: str) -> None:
    _current_session.set(session_id)


def get_session_id() -> str:
    return _current_session.get()


class SessionIdFilter(logging.Filter):
    """Stamp ``record.session_id`` unless the caller already passed one via ``extra``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = _current_session.get()  # type: ignore[attr-defined]
        return True


def session_log_handler(
    stream: Optional[IO[str]] = None,
    fmt: str = LOG_FORMAT,
    datefmt: str = LOG_DATEFMT,
) -> logging.Handler:
    """A stream handler whose output lines include the session id."""
    handler = logging.StreamHandler(stream)
    handler.addFilter(SessionIdFilter())
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler
