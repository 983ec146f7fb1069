"""
Centralized configuration with environment variable overrides.

Venue details, model settings, and the conversation engine's tunables
(time-slot grid, activity tie-break policy, input limits) live here.
Per-agent personality settings are NOT read from here; they are passed
into each ConversationSession explicitly.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from booking_engine.logging_context import session_log_handler

load_dotenv()

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("openai", "deepseek")
ACTIVITY_TIE_BREAK_POLICIES = ("first_in_text", "catalog_order")


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


def _default_time_slots() -> tuple[str, ...]:
    """Every half hour from 10:00 AM to 8:00 PM."""
    slots: list[str] = []
    for minutes in range(10 * 60, 20 * 60 + 1, 30):
        hour, minute = divmod(minutes, 60)
        suffix = "AM" if hour < 12 else "PM"
        slots.append(f"{hour % 12 or 12}:{minute:02d} {suffix}")
    return tuple(slots)


def _parse_time_slots(env_var: str) -> tuple[str, ...]:
    raw = os.getenv(env_var)
    if not raw:
        return _default_time_slots()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class BusinessConfig:
    """Venue settings loaded from environment or defaults."""

    name: str = os.getenv("BUSINESS_NAME", "Lockbox Adventures")
    venue_type: str = os.getenv("VENUE_TYPE", "escape room/activity venue")
    business_hours: str = os.getenv("BUSINESS_HOURS", "Daily 10am to 9pm")


@dataclass(frozen=True)
class ModelConfig:
    """Chat-completion defaults used when an agent does not override them."""

    provider: str = os.getenv("LLM_PROVIDER", "openai")
    model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    temperature: float = _safe_float("LLM_TEMPERATURE", "0.7")
    max_tokens: int = _safe_int("LLM_MAX_TOKENS", "500")
    timeout_sec: float = _safe_float("LLM_TIMEOUT_SEC", "20.0")


@dataclass(frozen=True)
class ConversationConfig:
    """Tunables for extraction and turn handling."""

    time_slots: tuple[str, ...] = _parse_time_slots("TIME_SLOTS")
    activity_tie_break: str = os.getenv("ACTIVITY_TIE_BREAK", "first_in_text")
    max_input_length: int = _safe_int("MAX_INPUT_LENGTH", "500")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    agent_name: str = os.getenv("AGENT_NAME", "booking-assistant")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.model.provider not in SUPPORTED_PROVIDERS:
        raise ValueError(
            f"LLM_PROVIDER must be one of {SUPPORTED_PROVIDERS}, got {config.model.provider!r}"
        )
    if not 0.0 <= config.model.temperature <= 2.0:
        raise ValueError(
            f"LLM_TEMPERATURE must be between 0.0 and 2.0, got {config.model.temperature}"
        )
    if config.model.max_tokens < 1:
        raise ValueError(
            f"LLM_MAX_TOKENS must be >= 1, got {config.model.max_tokens}"
        )
    if config.model.timeout_sec <= 0:
        raise ValueError(
            f"LLM_TIMEOUT_SEC must be > 0, got {config.model.timeout_sec}"
        )
    if not config.conversation.time_slots:
        raise ValueError("TIME_SLOTS must list at least one slot")
    if config.conversation.activity_tie_break not in ACTIVITY_TIE_BREAK_POLICIES:
        raise ValueError(
            f"ACTIVITY_TIE_BREAK must be one of {ACTIVITY_TIE_BREAK_POLICIES}, "
            f"got {config.conversation.activity_tie_break!r}"
        )
    if config.conversation.max_input_length < 1:
        raise ValueError(
            f"MAX_INPUT_LENGTH must be >= 1, got {config.conversation.max_input_length}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        handlers=[session_log_handler()],
    )
    logger.info("Configuration loaded for '%s'", config.business.name)
    return config


# Singleton instance
settings = load_config()
