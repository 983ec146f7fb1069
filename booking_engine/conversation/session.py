"""
Conversation session: one live booking chat.

Sequences each user turn through extraction, slot merge, persistence,
prompt composition and the model call, and falls back to the
deterministic responder whenever the model fails, times out, or is not
configured. Only one turn runs at a time; a message sent while a turn is
in flight is dropped.

The model call is the only suspension point. Every state write after it
is gated on a liveness token, so a reset or close issued while the model
is thinking turns the late reply into a no-op.

Usage:
    session = ConversationSession(agent, activities, store=store, gateway=gateway,
                                  on_booking_ready=show_checkout)
    await session.start()
    reply = await session.send_message("4 people for Mystery Mansion tomorrow at 2:30 PM")
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import date, datetime
from typing import Callable, Iterable, Optional

from booking_engine.config import AppConfig, settings
from booking_engine.conversation.entity_extractor import EntityExtractor
from booking_engine.conversation.fallback import TROUBLE_MESSAGE, respond
from booking_engine.conversation.slot_manager import (
    apply_patch,
    get_next_empty_slot,
    get_stats,
)
from booking_engine.conversation.state_machine import (
    SessionState,
    SessionStateMachine,
    TransitionTrigger,
)
from booking_engine.logging_context import set_session_id
from booking_engine.prompts.system_prompts import compose_system_prompt, has_checkout_marker
from booking_engine.schemas.agent_schema import Agent
from booking_engine.schemas.booking_schema import Activity, BookingSlots
from booking_engine.schemas.conversation_schema import (
    AIConversation,
    Channel,
    ChatMessage,
    Role,
)
from booking_engine.tools.model_gateway import ModelGateway, ModelRequest
from booking_engine.tools.persistence import (
    ConversationStore,
    InMemoryConversationStore,
    PersistenceWriter,
)
from booking_engine.utils import generate_message_id, generate_session_id

logger = logging.getLogger(__name__)

BookingReadyCallback = Callable[[BookingSlots], None]


def _local_now() -> datetime:
    return datetime.now().astimezone()


class LivenessToken:
    """Marks whether results of an in-flight turn may still be applied."""

    def __init__(self) -> None:
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    def cancel(self) -> None:
        self._alive = False


class ConversationSession:
    """Stateful owner of one chat's messages and booking slots."""

    def __init__(
        self,
        agent: Agent,
        activities: Iterable[Activity] = (),
        store: Optional[ConversationStore] = None,
        gateway: Optional[ModelGateway] = None,
        on_booking_ready: Optional[BookingReadyCallback] = None,
        channel: Channel = Channel.WIDGET,
        session_id: Optional[str] = None,
        clock: Callable[[], datetime] = _local_now,
        config: AppConfig = settings,
    ) -> None:
        self.session_id = session_id or generate_session_id()
        self.channel = channel
        self._config = config
        self._clock = clock
        self._gateway = gateway
        self._on_booking_ready = on_booking_ready
        self._writer = PersistenceWriter(store or InMemoryConversationStore())
        self._state = SessionStateMachine()
        self._slots = BookingSlots()
        self._messages: list[ChatMessage] = []
        self._token = LivenessToken()
        self._agent = agent
        self._activities: list[Activity] = []
        self.update_config(activities=activities)

    # ------------------------------------------------------------------ #
    # Read-only views
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> SessionState:
        return self._state.current_state

    @property
    def slots(self) -> BookingSlots:
        return self._slots

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    @property
    def is_processing(self) -> bool:
        return self._state.current_state == SessionState.PROCESSING_TURN

    @property
    def agent(self) -> Agent:
        return self._agent

    @property
    def activities(self) -> list[Activity]:
        return list(self._activities)

    @property
    def store(self) -> ConversationStore:
        return self._writer.store

    @property
    def state_machine(self) -> SessionStateMachine:
        return self._state

    def get_stats(self) -> dict[str, float]:
        return get_stats(self._slots)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def update_config(
        self,
        agent: Optional[Agent] = None,
        activities: Optional[Iterable[Activity]] = None,
    ) -> None:
        """Swap agent settings or the catalog; applies from the next turn."""
        if agent is not None:
            self._agent = agent
        if activities is not None:
            self._activities = list(activities)
            self._extractor = EntityExtractor(
                self._activities,
                time_slots=self._config.conversation.time_slots,
                activity_tie_break=self._config.conversation.activity_tie_break,
            )
        logger.debug("Session config updated (%d activities)", len(self._activities))

    async def start(self) -> ChatMessage:
        """Create the conversation record and seed the greeting."""
        set_session_id(self.session_id)
        if self._state.current_state != SessionState.INITIALIZING:
            # Let the state machine raise with the valid triggers listed
            self._state.transition(TransitionTrigger.GREETING_SEEDED)
        self._create_conversation_record()
        greeting = self._seed_greeting()
        self._state.transition(TransitionTrigger.GREETING_SEEDED)
        logger.info("Session started for agent %s", self._agent.id)
        return greeting

    async def reset(self, new_session: bool = False) -> Optional[ChatMessage]:
        """Clear slots and history and greet again.

        Any turn still waiting on the model is discarded when it returns.
        """
        if self._state.is_terminal():
            return None
        self._token.cancel()
        self._token = LivenessToken()
        self._state.transition(TransitionTrigger.RESET)
        self._slots = BookingSlots()
        self._messages = []
        if new_session:
            self.session_id = generate_session_id()
            set_session_id(self.session_id)
            self._create_conversation_record()
        else:
            set_session_id(self.session_id)
            self._writer.submit(
                "reset_booking_slots", self.session_id,
                self.store.reset_booking_slots, self.session_id,
            )
        greeting = self._seed_greeting()
        self._state.transition(TransitionTrigger.GREETING_SEEDED)
        logger.info("Session reset")
        return greeting

    async def complete(
        self,
        booking_id: Optional[str] = None,
        rating: Optional[int] = None,
        feedback: Optional[str] = None,
    ) -> None:
        """Mark the durable conversation as completed (after checkout)."""
        self._writer.submit(
            "complete_conversation", self.session_id,
            self.store.complete_conversation, self.session_id, booking_id, rating, feedback,
        )

    async def close(self) -> None:
        """Tear the session down; late model replies become no-ops."""
        if self._state.is_terminal():
            return
        self._token.cancel()
        self._state.transition(TransitionTrigger.CLOSE)
        await self._writer.flush()
        logger.info("Session closed")

    async def flush(self) -> None:
        """Wait for background persistence writes to finish."""
        await self._writer.flush()

    # ------------------------------------------------------------------ #
    # Turn processing
    # ------------------------------------------------------------------ #

    async def send_message(self, content: str) -> Optional[ChatMessage]:
        """
        Process one user message and return the assistant's reply.

        Returns None when the message is empty, when another turn is
        still in flight, when the session is closed, or when the session
        was reset or closed before the reply arrived.
        """
        if not content or not content.strip():
            return None
        if self._state.is_terminal():
            logger.debug("Message ignored: session closed")
            return None
        if self.is_processing:
            logger.debug("Message dropped: a turn is already in flight")
            return None

        set_session_id(self.session_id)
        self._state.transition(TransitionTrigger.USER_MESSAGE)
        text = content.strip()[: self._config.conversation.max_input_length]
        return await self._process_turn(text, self._token)

    async def _process_turn(self, text: str, token: LivenessToken) -> Optional[ChatMessage]:
        started = time.monotonic()
        tokens_used: Optional[int] = None
        try:
            entities = self._extractor.extract(
                text, expected_slot=get_next_empty_slot(self._slots), today=self._today(),
            )
            user_message = self._new_message(
                Role.USER, text, entities=None if entities.is_empty() else entities,
            )
            self._messages.append(user_message)
            self._slots = apply_patch(self._slots, entities)
            if not entities.is_empty():
                self._writer.submit(
                    "update_booking_slots", self.session_id,
                    self.store.update_booking_slots, self.session_id, entities,
                )
            self._writer.submit(
                "add_message", self.session_id,
                self.store.add_message, self.session_id, user_message,
            )
            reply, tokens_used = await self._generate_reply()
        except asyncio.CancelledError:
            if token.alive:
                self._state.transition(TransitionTrigger.REPLY_DELIVERED)
            raise
        except Exception:
            logger.exception("Failed to process message")
            reply = TROUBLE_MESSAGE

        if not token.alive:
            logger.debug("Session reset or closed during turn; reply discarded")
            return None

        assistant_message = self._new_message(Role.ASSISTANT, reply, tokens_used=tokens_used)
        self._messages.append(assistant_message)
        response_time_ms = (time.monotonic() - started) * 1000
        self._writer.submit(
            "record_response_time", self.session_id,
            self.store.record_response_time, self.session_id, response_time_ms,
        )
        self._writer.submit(
            "add_message", self.session_id,
            self.store.add_message, self.session_id, assistant_message,
        )

        if has_checkout_marker(reply):
            self._state.transition(TransitionTrigger.CHECKOUT_SIGNALLED)
            logger.info("Booking ready for checkout")
            self._notify_booking_ready()
        else:
            self._state.transition(TransitionTrigger.REPLY_DELIVERED)
        return assistant_message

    async def _generate_reply(self) -> tuple[str, Optional[int]]:
        """Ask the model; on any gateway failure answer from the fallback tree."""
        if self._gateway is None:
            return self._fallback_reply(), None

        system_config = self._agent.system_config
        request = ModelRequest(
            system_prompt=compose_system_prompt(
                self._agent.config, self._activities, self._slots,
                instructions=system_config.instructions,
                business=self._config.business,
            ),
            messages=[m.to_model_turn() for m in self._messages if m.role != Role.SYSTEM],
            provider=system_config.provider,
            model=system_config.model,
            temperature=system_config.temperature,
            max_tokens=system_config.max_tokens,
        )
        try:
            result = await asyncio.wait_for(
                self._gateway.complete(request), timeout=self._config.model.timeout_sec,
            )
        except Exception as exc:
            logger.warning("Model call failed, using fallback: %r", exc)
            return self._fallback_reply(), None
        return result.content, result.tokens_used

    def _fallback_reply(self) -> str:
        return respond(self._slots, self._activities, self._extractor.time_slots)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _notify_booking_ready(self) -> None:
        if self._on_booking_ready is None:
            return
        try:
            self._on_booking_ready(self._slots)
        except Exception:
            logger.exception("on_booking_ready callback failed")

    def _create_conversation_record(self) -> None:
        conversation = AIConversation(
            session_id=self.session_id,
            agent_id=self._agent.id,
            organization_id=self._agent.organization_id,
            channel=self.channel,
            started_at=self._clock(),
        )
        self._writer.submit(
            "create_conversation", self.session_id,
            self.store.create_conversation, conversation,
        )

    def _seed_greeting(self) -> ChatMessage:
        greeting = self._new_message(Role.ASSISTANT, self._agent.config.greeting)
        self._messages = [greeting]
        self._writer.submit(
            "add_message", self.session_id,
            self.store.add_message, self.session_id, greeting,
        )
        return greeting

    def _new_message(self, role: Role, content: str, **extra) -> ChatMessage:
        timestamp = self._clock()
        if self._messages and timestamp < self._messages[-1].timestamp:
            timestamp = self._messages[-1].timestamp
        return ChatMessage(
            id=generate_message_id(), role=role, content=content, timestamp=timestamp, **extra,
        )

    def _today(self) -> date:
        return self._clock().date()
