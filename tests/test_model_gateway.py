"""Tests for the chat-completion gateway, using stand-in API clients."""

from types import SimpleNamespace

import openai
import pytest

from booking_engine.tools.model_gateway import (
    GatewayError,
    ModelRequest,
    OpenAIChatGateway,
)


class FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


class FakeClient:
    def __init__(self, completions: FakeCompletions):
        self.chat = SimpleNamespace(completions=completions)


def _response(content="Which date works for you?", total_tokens=42):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


def _request(**overrides) -> ModelRequest:
    values = dict(
        system_prompt="You are a booking assistant.",
        messages=[{"role": "assistant", "content": "Hi!"}, {"role": "user", "content": "4 people"}],
        provider="openai",
        model="gpt-4o-mini",
        temperature=0.7,
        max_tokens=500,
    )
    values.update(overrides)
    return ModelRequest(**values)


class TestOpenAIChatGateway:
    @pytest.mark.asyncio
    async def test_returns_content_and_tokens(self):
        completions = FakeCompletions(response=_response())
        gateway = OpenAIChatGateway(clients={"openai": FakeClient(completions)})
        reply = await gateway.complete(_request())
        assert reply.content == "Which date works for you?"
        assert reply.tokens_used == 42

    @pytest.mark.asyncio
    async def test_system_prompt_leads_the_messages(self):
        completions = FakeCompletions(response=_response())
        gateway = OpenAIChatGateway(clients={"openai": FakeClient(completions)})
        await gateway.complete(_request())
        call = completions.calls[0]
        assert call["messages"][0] == {"role": "system", "content": "You are a booking assistant."}
        assert [m["role"] for m in call["messages"][1:]] == ["assistant", "user"]
        assert call["model"] == "gpt-4o-mini"
        assert call["temperature"] == 0.7
        assert call["max_tokens"] == 500

    @pytest.mark.asyncio
    async def test_routes_by_provider(self):
        openai_calls = FakeCompletions(response=_response("from openai"))
        deepseek_calls = FakeCompletions(response=_response("from deepseek"))
        gateway = OpenAIChatGateway(clients={
            "openai": FakeClient(openai_calls),
            "deepseek": FakeClient(deepseek_calls),
        })
        reply = await gateway.complete(_request(provider="deepseek", model="deepseek-chat"))
        assert reply.content == "from deepseek"
        assert openai_calls.calls == []

    @pytest.mark.asyncio
    async def test_api_error_becomes_gateway_error(self):
        completions = FakeCompletions(error=openai.OpenAIError("rate limited"))
        gateway = OpenAIChatGateway(clients={"openai": FakeClient(completions)})
        with pytest.raises(GatewayError, match="rate limited"):
            await gateway.complete(_request())

    @pytest.mark.asyncio
    async def test_empty_choices(self):
        response = SimpleNamespace(choices=[], usage=None)
        gateway = OpenAIChatGateway(clients={"openai": FakeClient(FakeCompletions(response=response))})
        with pytest.raises(GatewayError):
            await gateway.complete(_request())

    @pytest.mark.asyncio
    async def test_empty_content(self):
        completions = FakeCompletions(response=_response(content=None))
        gateway = OpenAIChatGateway(clients={"openai": FakeClient(completions)})
        with pytest.raises(GatewayError):
            await gateway.complete(_request())

    @pytest.mark.asyncio
    async def test_missing_usage_counts_zero_tokens(self):
        response = _response()
        response.usage = None
        gateway = OpenAIChatGateway(clients={"openai": FakeClient(FakeCompletions(response=response))})
        assert (await gateway.complete(_request())).tokens_used == 0

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(GatewayError, match="OPENAI_API_KEY"):
            await OpenAIChatGateway().complete(_request())

    @pytest.mark.asyncio
    async def test_unsupported_provider(self):
        with pytest.raises(GatewayError, match="Unsupported provider"):
            await OpenAIChatGateway().complete(_request(provider="anthropic"))

    def test_client_created_lazily_from_env(self, monkeypatch):
        monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-test")
        gateway = OpenAIChatGateway()
        client = gateway._client_for("deepseek")
        assert isinstance(client, openai.AsyncOpenAI)
        assert "api.deepseek.com" in str(client.base_url)
        assert gateway._client_for("deepseek") is client
