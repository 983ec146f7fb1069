"""
Conversation persistence.

In production this is the hosted data store holding one row per
conversation; the in-memory store below stands in for it in the demo
and tests. From the engine's side persistence is append-only and
fire-and-forget: writes run as background tasks in submission order,
and a failed write is logged, never raised into the live turn.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterator, Optional

from booking_engine.conversation.slot_manager import apply_patch
from booking_engine.schemas.booking_schema import BookingSlots
from booking_engine.schemas.conversation_schema import (
    AIConversation,
    ChatMessage,
    ConversationRecord,
    ConversationStatus,
)

logger = logging.getLogger(__name__)


class ConversationNotFoundError(KeyError):
    """Raised when a write targets a session with no conversation record."""


class ConversationStore(ABC):
    """Durable store for conversation and message records, keyed by session ID."""

    @abstractmethod
    async def create_conversation(self, conversation: AIConversation) -> None: ...

    @abstractmethod
    async def add_message(self, session_id: str, message: ChatMessage) -> None: ...

    @abstractmethod
    async def update_booking_slots(self, session_id: str, slots: BookingSlots) -> None: ...

    @abstractmethod
    async def reset_booking_slots(self, session_id: str) -> None:
        """Replace the stored slots with an empty record."""

    @abstractmethod
    async def record_response_time(self, session_id: str, response_time_ms: float) -> None: ...

    @abstractmethod
    async def complete_conversation(
        self,
        session_id: str,
        booking_id: Optional[str] = None,
        rating: Optional[int] = None,
        feedback: Optional[str] = None,
    ) -> None: ...

    @abstractmethod
    async def get_conversation(self, session_id: str) -> Optional[ConversationRecord]: ...


class InMemoryConversationStore(ConversationStore):
    """Dict-backed store used by the console demo and tests."""

    def __init__(self) -> None:
        self._records: dict[str, ConversationRecord] = {}

    def _get(self, session_id: str) -> ConversationRecord:
        record = self._records.get(session_id)
        if record is None:
            raise ConversationNotFoundError(session_id)
        return record

    async def create_conversation(self, conversation: AIConversation) -> None:
        if conversation.session_id in self._records:
            logger.warning("Replacing existing conversation for %s", conversation.session_id)
        self._records[conversation.session_id] = ConversationRecord(conversation=conversation)
        logger.debug("Conversation created: %s", conversation.session_id)

    async def add_message(self, session_id: str, message: ChatMessage) -> None:
        record = self._get(session_id)
        record.messages.append(message)
        record.total_messages += 1
        record.total_tokens_used += message.tokens_used or 0
        record.last_message_at = datetime.now(timezone.utc)

    async def update_booking_slots(self, session_id: str, slots: BookingSlots) -> None:
        record = self._get(session_id)
        record.booking_slots = apply_patch(record.booking_slots, slots)

    async def reset_booking_slots(self, session_id: str) -> None:
        self._get(session_id).booking_slots = BookingSlots()

    async def record_response_time(self, session_id: str, response_time_ms: float) -> None:
        self._get(session_id).response_times_ms.append(response_time_ms)

    async def complete_conversation(
        self,
        session_id: str,
        booking_id: Optional[str] = None,
        rating: Optional[int] = None,
        feedback: Optional[str] = None,
    ) -> None:
        record = self._get(session_id)
        record.status = ConversationStatus.COMPLETED
        record.booking_id = booking_id
        record.satisfaction_rating = rating
        record.feedback = feedback
        record.ended_at = datetime.now(timezone.utc)
        logger.info("Conversation completed: %s (booking %s)", session_id, booking_id)

    async def get_conversation(self, session_id: str) -> Optional[ConversationRecord]:
        return self._records.get(session_id)


@contextmanager
def persistence_guard(operation: str, session_id: str) -> Iterator[None]:
    """Log and contain any failure of a persistence call."""
    try:
        yield
    except Exception:
        logger.exception("Persistence operation '%s' failed for session %s", operation, session_id)


class PersistenceWriter:
    """
    Runs store writes as background tasks, one after another.

    Each write waits for the previous one, so the store sees messages in
    send order, while the caller never waits on the store.
    """

    def __init__(self, store: ConversationStore) -> None:
        self.store = store
        self._tail: Optional[asyncio.Task] = None
        self._pending: set[asyncio.Task] = set()

    def submit(
        self,
        operation: str,
        session_id: str,
        write: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> asyncio.Task:
        previous = self._tail

        async def run() -> None:
            if previous is not None:
                await asyncio.wait({previous})
            with persistence_guard(operation, session_id):
                await write(*args)

        task = asyncio.get_running_loop().create_task(run())
        self._tail = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def flush(self) -> None:
        """Wait until every submitted write has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
