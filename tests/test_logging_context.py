"""Tests for session-aware logging."""

import asyncio
import contextvars
import io
import logging

import pytest

from booking_engine.logging_context import (
    UNBOUND_SESSION,
    SessionIdFilter,
    get_session_id,
    session_log_handler,
    set_session_id,
)


class TestSessionIdContext:
    @pytest.mark.asyncio
    async def test_ids_are_isolated_per_task(self):
        async def worker(session_id: str) -> str:
            set_session_id(session_id)
            await asyncio.sleep(0)
            return get_session_id()

        results = await asyncio.gather(worker("session_a"), worker("session_b"))
        assert results == ["session_a", "session_b"]

    def test_filter_stamps_records(self):
        set_session_id("session_filter")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        assert SessionIdFilter().filter(record)
        assert record.session_id == "session_filter"

    def test_filter_keeps_explicit_session_id(self):
        set_session_id("session_context")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        record.session_id = "session_explicit"
        SessionIdFilter().filter(record)
        assert record.session_id == "session_explicit"


class TestSessionLogHandler:
    @pytest.fixture
    def capture(self):
        stream = io.StringIO()
        logger = logging.getLogger("booking_engine.tests.handler")
        logger.propagate = False
        logger.setLevel(logging.INFO)
        handler = session_log_handler(stream)
        logger.addHandler(handler)
        yield logger, stream
        logger.removeHandler(handler)
        logger.propagate = True

    def test_output_includes_session_id(self, capture):
        logger, stream = capture
        set_session_id("session_1718000000000_k3j2h1g0f")
        logger.info("Turn handled")
        line = stream.getvalue()
        assert "[session_1718000000000_k3j2h1g0f]" in line
        assert "Turn handled" in line

    def test_unbound_context_uses_placeholder(self, capture):
        logger, stream = capture
        contextvars.Context().run(logger.info, "no session yet")
        assert f"[{UNBOUND_SESSION}] booking_engine.tests.handler INFO: no session yet" in stream.getvalue()
