"""
Chat-completion gateway.

The conversation engine hands over a prompt, the message history and the
agent's model settings; the gateway owns credential lookup and the HTTP
call. Every failure is raised as GatewayError so the session can route
it to the fallback responder.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Raised when the model cannot produce a usable reply."""


class ModelRequest(BaseModel):
    """Provider-agnostic chat-completion request."""
    system_prompt: str
    messages: list[dict[str, str]] = Field(default_factory=list)
    provider: str = "openai"
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 500


class ModelReply(BaseModel):
    content: str
    tokens_used: int = 0


class ModelGateway(ABC):
    """Stateless request/response call to a hosted chat model."""

    @abstractmethod
    async def complete(self, request: ModelRequest) -> ModelReply:
        """Return the model's reply or raise GatewayError."""


class OpenAIChatGateway(ModelGateway):
    """Gateway for OpenAI-compatible chat-completion APIs (OpenAI, DeepSeek)."""

    PROVIDER_BASE_URLS: dict[str, Optional[str]] = {
        "openai": None,
        "deepseek": "https://api.deepseek.com/v1",
    }
    PROVIDER_KEY_VARS: dict[str, str] = {
        "openai": "OPENAI_API_KEY",
        "deepseek": "DEEPSEEK_API_KEY",
    }

    def __init__(self, clients: Optional[dict[str, AsyncOpenAI]] = None) -> None:
        self._clients: dict[str, AsyncOpenAI] = dict(clients or {})

    def _client_for(self, provider: str) -> AsyncOpenAI:
        if provider in self._clients:
            return self._clients[provider]
        if provider not in self.PROVIDER_BASE_URLS:
            raise GatewayError(f"Unsupported provider: {provider!r}")
        api_key = os.getenv(self.PROVIDER_KEY_VARS[provider])
        if not api_key:
            raise GatewayError(
                f"No API key configured for {provider} ({self.PROVIDER_KEY_VARS[provider]})"
            )
        client = AsyncOpenAI(api_key=api_key, base_url=self.PROVIDER_BASE_URLS[provider])
        self._clients[provider] = client
        return client

    async def complete(self, request: ModelRequest) -> ModelReply:
        client = self._client_for(request.provider)
        messages = [{"role": "system", "content": request.system_prompt}, *request.messages]
        try:
            response = await client.chat.completions.create(
                model=request.model,
                messages=messages,
                temperature=request.temperature,
                max_tokens=request.max_tokens,
            )
        except openai.OpenAIError as exc:
            raise GatewayError(f"{request.provider} API error: {exc}") from exc

        if not response.choices:
            raise GatewayError("Model response contained no choices")
        content = response.choices[0].message.content
        if not content:
            raise GatewayError("Model response contained no content")

        tokens_used = response.usage.total_tokens if response.usage else 0
        logger.debug("Model %s replied with %d tokens", request.model, tokens_used)
        return ModelReply(content=content, tokens_used=tokens_used)
