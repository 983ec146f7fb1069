"""Chat message and conversation record schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from booking_engine.schemas.booking_schema import BookingSlots


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Channel(str, Enum):
    WIDGET = "widget"
    PREVIEW = "preview"
    CONSOLE = "console"


class ConversationStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ESCALATED = "escalated"
    ABANDONED = "abandoned"


class ChatMessage(BaseModel):
    """A single immutable message in a chat session."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    content: str
    timestamp: datetime
    entities: Optional[BookingSlots] = None
    tokens_used: Optional[int] = None

    def to_model_turn(self) -> dict[str, str]:
        """Shape used in the chat-completion ``messages`` list."""
        return {"role": self.role.value, "content": self.content}


class AIConversation(BaseModel):
    """Session envelope, written once when the session starts."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    agent_id: str
    organization_id: str
    channel: Channel = Channel.WIDGET
    started_at: datetime
    source_url: Optional[str] = None


class ConversationRecord(BaseModel):
    """Durable copy of a conversation as held by the persistence layer."""

    conversation: AIConversation
    status: ConversationStatus = ConversationStatus.ACTIVE
    messages: list[ChatMessage] = Field(default_factory=list)
    booking_slots: BookingSlots = Field(default_factory=BookingSlots)
    total_messages: int = 0
    total_tokens_used: int = 0
    response_times_ms: list[float] = Field(default_factory=list)
    booking_id: Optional[str] = None
    satisfaction_rating: Optional[int] = None
    feedback: Optional[str] = None
    last_message_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
