"""Agent personality and model settings supplied per session."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from booking_engine.config import settings


class FAQ(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    answer: str


class AgentConfig(BaseModel):
    """Operator-facing behaviour settings for a text agent."""

    model_config = ConfigDict(frozen=True)

    greeting: str = "Hi! I can help you book an experience. What would you like to do?"
    personality: Literal["friendly", "professional", "casual"] = "friendly"
    business_hours: Optional[str] = None
    escalate_to_human: bool = False
    auto_suggest: bool = True
    show_prices: bool = True
    collect_feedback: bool = False
    custom_faqs: tuple[FAQ, ...] = ()


class AgentSystemConfig(BaseModel):
    """Model settings, managed by system admins rather than venue operators."""

    model_config = ConfigDict(frozen=True)

    provider: Literal["openai", "deepseek"] = settings.model.provider  # type: ignore[assignment]
    model: str = settings.model.model
    temperature: float = Field(default=settings.model.temperature, ge=0.0, le=2.0)
    max_tokens: int = Field(default=settings.model.max_tokens, ge=1)
    instructions: Optional[str] = None


class Agent(BaseModel):
    """A configured booking agent belonging to an organization."""

    model_config = ConfigDict(frozen=True)

    id: str
    organization_id: str
    name: str
    config: AgentConfig = Field(default_factory=AgentConfig)
    system_config: AgentSystemConfig = Field(default_factory=AgentSystemConfig)
