from __future__ import annotations

import pytest
from openai import OpenAIError

from playcode.application.services.chatbot_service import (
    COMPLETION_PARAMS,
    EMPTY_REPLY,
    PLAYBOT_SYSTEM_PROMPT,
    ChatbotService,
    chat_achievements,
    chat_xp,
)
from playcode.core.errors import RateLimitError, ServiceUnavailableError, ValidationError
from playcode.infrastructure.llm.providers.openai_provider import OpenAIProvider
from playcode.infrastructure.security.rate_limit import MemoryRateLimitStore, RateLimiter


def _limiter(max_requests=10):
    return RateLimiter(MemoryRateLimitStore(), window_seconds=60, max_requests=max_requests)


def test_xp_and_achievements():
    assert chat_xp("oi") == 10
    assert chat_xp("x" * 55) == 15
    assert chat_achievements("Quero um game com IA") == ["ai_curious", "gaming_enthusiast"]
    assert chat_achievements("x" * 101) == ["detailed_player"]
    assert chat_achievements("olá") == []


def test_status_reflects_provider(fake_llm):
    assert ChatbotService(None, _limiter()).status()["status"] == "offline"
    assert ChatbotService(fake_llm, _limiter()).status()["status"] == "online"


@pytest.mark.asyncio
async def test_chat_returns_reply_and_progress(fake_llm):
    service = ChatbotService(fake_llm, _limiter())
    result = await service.chat({"message": "Quero um jogo", "conversationId": "conv-1"}, ip="1.2.3.4")

    assert result["response"] == "🎮 Fala, player!"
    assert result["conversationId"] == "conv-1"
    assert result["user"] == {"id": "anonymous", "xp": 11, "achievements": ["gaming_enthusiast"]}
    assert result["metadata"]["model"] == "fake-model"

    ((messages, kwargs),) = fake_llm.calls
    assert messages[0] == {"role": "system", "content": PLAYBOT_SYSTEM_PROMPT}
    assert messages[-1] == {"role": "user", "content": "Quero um jogo"}
    assert kwargs == COMPLETION_PARAMS


@pytest.mark.asyncio
async def test_empty_reply_gets_default(fake_llm):
    fake_llm.reply = ""
    result = await ChatbotService(fake_llm, _limiter()).chat({"message": "oi"})
    assert result["response"] == EMPTY_REPLY
    assert result["conversationId"].startswith("chat_")


@pytest.mark.asyncio
async def test_offline_chatbot():
    with pytest.raises(ServiceUnavailableError) as exc_info:
        await ChatbotService(None, _limiter()).chat({"message": "oi"})
    assert exc_info.value.code == "CHATBOT_OFFLINE"
    assert exc_info.value.status_code == 503
    assert "fallbackResponse" in exc_info.value.to_dict()["details"]


@pytest.mark.asyncio
async def test_provider_error_becomes_service_unavailable(fake_llm):
    fake_llm.error = OpenAIError("upstream timeout")
    with pytest.raises(ServiceUnavailableError) as exc_info:
        await ChatbotService(fake_llm, _limiter()).chat({"message": "oi"})
    assert exc_info.value.code == "CHATBOT_PROVIDER_ERROR"


@pytest.mark.asyncio
async def test_rate_limit_and_validation(fake_llm):
    service = ChatbotService(fake_llm, _limiter(max_requests=1))
    with pytest.raises(ValidationError):
        await service.chat({"message": ""}, ip="9.9.9.9")
    with pytest.raises(RateLimitError) as exc_info:
        await service.chat({"message": "oi"}, ip="9.9.9.9")
    assert exc_info.value.context == {"achievement": "speed_demon"}
    assert fake_llm.calls == []


class _Completions:
    def __init__(self, content):
        self.content = content
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        message = type("Message", (), {"content": self.content})()
        choice = type("Choice", (), {"message": message})()
        return type("Response", (), {"choices": [choice]})()


def test_openai_provider_filters_params():
    completions = _Completions("  olá  ")
    client = type("Client", (), {"chat": type("Chat", (), {"completions": completions})()})()
    provider = OpenAIProvider("sk-test", model_name="gpt-4o-mini", client=client)

    assert provider.invoke([{"role": "user", "content": "oi"}], temperature=0.7, seed=1) == "olá"
    assert completions.kwargs["model"] == "gpt-4o-mini"
    assert completions.kwargs["temperature"] == 0.7
    assert completions.kwargs["timeout"] == 30.0
    assert "seed" not in completions.kwargs
    assert provider.info.provider_name == "openai"

    with pytest.raises(ValueError):
        OpenAIProvider("")
