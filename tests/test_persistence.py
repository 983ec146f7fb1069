"""Tests for the conversation store and background persistence writer."""

import asyncio
import logging
from datetime import datetime, timezone

import pytest

from booking_engine.schemas.booking_schema import BookingSlots
from booking_engine.schemas.conversation_schema import (
    AIConversation,
    ChatMessage,
    ConversationStatus,
    Role,
)
from booking_engine.tools.persistence import (
    ConversationNotFoundError,
    InMemoryConversationStore,
    PersistenceWriter,
    persistence_guard,
)

SESSION = "session_test"


def _conversation(session_id: str = SESSION) -> AIConversation:
    return AIConversation(
        session_id=session_id,
        agent_id="agent_1",
        organization_id="org_1",
        started_at=datetime(2026, 10, 16, tzinfo=timezone.utc),
    )


def _message(content: str, role: Role = Role.USER, tokens_used=None) -> ChatMessage:
    return ChatMessage(
        id=f"msg_{content}",
        role=role,
        content=content,
        timestamp=datetime(2026, 10, 16, tzinfo=timezone.utc),
        tokens_used=tokens_used,
    )


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_create_and_get(self, store):
        await store.create_conversation(_conversation())
        record = await store.get_conversation(SESSION)
        assert record.status == ConversationStatus.ACTIVE
        assert record.messages == []

    @pytest.mark.asyncio
    async def test_unknown_session_returns_none(self, store):
        assert await store.get_conversation("nope") is None

    @pytest.mark.asyncio
    async def test_add_message_updates_totals(self, store):
        await store.create_conversation(_conversation())
        await store.add_message(SESSION, _message("hi"))
        await store.add_message(SESSION, _message("hello", Role.ASSISTANT, tokens_used=42))
        record = await store.get_conversation(SESSION)
        assert [m.content for m in record.messages] == ["hi", "hello"]
        assert record.total_messages == 2
        assert record.total_tokens_used == 42
        assert record.last_message_at is not None

    @pytest.mark.asyncio
    async def test_write_to_unknown_session_raises(self, store):
        with pytest.raises(ConversationNotFoundError):
            await store.add_message("nope", _message("hi"))

    @pytest.mark.asyncio
    async def test_booking_slots_merge(self, store):
        await store.create_conversation(_conversation())
        await store.update_booking_slots(SESSION, BookingSlots(party_size=4))
        await store.update_booking_slots(SESSION, BookingSlots(time="2:30 PM"))
        record = await store.get_conversation(SESSION)
        assert record.booking_slots == BookingSlots(party_size=4, time="2:30 PM")

    @pytest.mark.asyncio
    async def test_reset_booking_slots(self, store):
        await store.create_conversation(_conversation())
        await store.update_booking_slots(SESSION, BookingSlots(party_size=4, customer_email="a@b.co"))
        await store.reset_booking_slots(SESSION)
        record = await store.get_conversation(SESSION)
        assert record.booking_slots == BookingSlots()

    @pytest.mark.asyncio
    async def test_response_times(self, store):
        await store.create_conversation(_conversation())
        await store.record_response_time(SESSION, 120.5)
        record = await store.get_conversation(SESSION)
        assert record.response_times_ms == [120.5]

    @pytest.mark.asyncio
    async def test_complete_conversation(self, store):
        await store.create_conversation(_conversation())
        await store.complete_conversation(SESSION, booking_id="bk_1", rating=5, feedback="Great")
        record = await store.get_conversation(SESSION)
        assert record.status == ConversationStatus.COMPLETED
        assert record.booking_id == "bk_1"
        assert record.satisfaction_rating == 5
        assert record.ended_at is not None

    @pytest.mark.asyncio
    async def test_recreate_replaces_record(self, store):
        await store.create_conversation(_conversation())
        await store.add_message(SESSION, _message("hi"))
        await store.create_conversation(_conversation())
        record = await store.get_conversation(SESSION)
        assert record.messages == []


class TestPersistenceGuard:
    def test_swallows_and_logs(self, caplog):
        with caplog.at_level(logging.ERROR):
            with persistence_guard("add_message", SESSION):
                raise RuntimeError("disk full")
        assert "Persistence operation 'add_message' failed" in caplog.text

    def test_passes_through_on_success(self):
        ran = []
        with persistence_guard("add_message", SESSION):
            ran.append(True)
        assert ran == [True]


class TestPersistenceWriter:
    @pytest.mark.asyncio
    async def test_writes_land_in_submission_order(self, store):
        writer = PersistenceWriter(store)
        writer.submit("create_conversation", SESSION, store.create_conversation, _conversation())
        for text in ["one", "two", "three"]:
            writer.submit("add_message", SESSION, store.add_message, SESSION, _message(text))
        await writer.flush()
        record = await store.get_conversation(SESSION)
        assert [m.content for m in record.messages] == ["one", "two", "three"]

    @pytest.mark.asyncio
    async def test_slow_write_does_not_reorder(self):
        seen: list[str] = []

        async def slow(label: str) -> None:
            await asyncio.sleep(0.02)
            seen.append(label)

        async def fast(label: str) -> None:
            seen.append(label)

        writer = PersistenceWriter(InMemoryConversationStore())
        writer.submit("slow", SESSION, slow, "first")
        writer.submit("fast", SESSION, fast, "second")
        await writer.flush()
        assert seen == ["first", "second"]

    @pytest.mark.asyncio
    async def test_failure_does_not_block_later_writes(self, store, caplog):
        writer = PersistenceWriter(store)
        # No conversation yet: this write fails
        writer.submit("add_message", SESSION, store.add_message, SESSION, _message("lost"))
        writer.submit("create_conversation", SESSION, store.create_conversation, _conversation())
        writer.submit("add_message", SESSION, store.add_message, SESSION, _message("kept"))
        with caplog.at_level(logging.ERROR):
            await writer.flush()
        record = await store.get_conversation(SESSION)
        assert [m.content for m in record.messages] == ["kept"]
        assert "Persistence operation 'add_message' failed" in caplog.text

    @pytest.mark.asyncio
    async def test_flush_clears_pending(self, store):
        writer = PersistenceWriter(store)
        writer.submit("create_conversation", SESSION, store.create_conversation, _conversation())
        assert writer.pending == 1
        await writer.flush()
        assert writer.pending == 0
