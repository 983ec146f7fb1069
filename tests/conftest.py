"""Shared test fixtures and helpers."""

import asyncio
from datetime import date, datetime, timezone
from typing import Optional, Union

import pytest

from booking_engine.config import _default_time_slots
from booking_engine.conversation.entity_extractor import EntityExtractor
from booking_engine.conversation.session import ConversationSession
from booking_engine.conversation.state_machine import SessionStateMachine
from booking_engine.schemas.agent_schema import Agent, AgentConfig
from booking_engine.schemas.booking_schema import BookingSlots
from booking_engine.tools.activities import get_all_activities
from booking_engine.tools.model_gateway import GatewayError, ModelGateway, ModelReply, ModelRequest
from booking_engine.tools.persistence import InMemoryConversationStore

# Friday
TODAY = date(2026, 10, 16)
NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)

MYSTERY_MANSION_ID = "act_mystery_mansion"


def fixed_clock() -> datetime:
    return NOW


class ScriptedGateway(ModelGateway):
    """Returns canned replies in order; exceptions in the script are raised."""

    def __init__(self, replies: list[Union[str, Exception]], tokens_used: int = 10) -> None:
        self.replies = list(replies)
        self.tokens_used = tokens_used
        self.requests: list[ModelRequest] = []

    async def complete(self, request: ModelRequest) -> ModelReply:
        self.requests.append(request)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return ModelReply(content=reply, tokens_used=self.tokens_used)


class FailingGateway(ModelGateway):
    """Simulates a total model outage."""

    def __init__(self) -> None:
        self.calls = 0

    async def complete(self, request: ModelRequest) -> ModelReply:
        self.calls += 1
        raise GatewayError("service unavailable")


class BlockingGateway(ModelGateway):
    """Holds every call until ``release`` is set."""

    def __init__(self, reply: str = "Which date works for you?") -> None:
        self.reply = reply
        self.release = asyncio.Event()
        self.calls = 0

    async def complete(self, request: ModelRequest) -> ModelReply:
        self.calls += 1
        await self.release.wait()
        return ModelReply(content=self.reply, tokens_used=5)


@pytest.fixture
def activities():
    return get_all_activities()


@pytest.fixture
def time_slots():
    return list(_default_time_slots())


@pytest.fixture
def extractor(activities, time_slots):
    return EntityExtractor(activities, time_slots=time_slots, activity_tie_break="first_in_text")


@pytest.fixture
def state_machine():
    return SessionStateMachine()


@pytest.fixture
def agent():
    return Agent(
        id="agent_1",
        organization_id="org_1",
        name="Test Agent",
        config=AgentConfig(greeting="Hi! What would you like to book?"),
    )


@pytest.fixture
def store():
    return InMemoryConversationStore()


@pytest.fixture
def make_session(agent, activities, store):
    """Factory for sessions sharing the test agent, catalog and store."""

    def _make(
        gateway: Optional[ModelGateway] = None,
        on_booking_ready=None,
        **kwargs,
    ) -> ConversationSession:
        kwargs.setdefault("store", store)
        kwargs.setdefault("clock", fixed_clock)
        return ConversationSession(
            agent,
            activities,
            gateway=gateway,
            on_booking_ready=on_booking_ready,
            **kwargs,
        )

    return _make


def full_slots(**overrides) -> BookingSlots:
    """A BookingSlots with every field filled."""
    values = dict(
        activity_id=MYSTERY_MANSION_ID,
        date=date(2026, 10, 17),
        time="2:30 PM",
        party_size=4,
        customer_email="jane@example.com",
    )
    values.update(overrides)
    return BookingSlots(**values)
