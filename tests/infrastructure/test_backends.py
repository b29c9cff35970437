"""Tests for the concrete model backends and the router factory."""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import anthropic
import httpx
import pytest

from golddigger.domain.enums import BackendKind, ModelTier, RoutingMode
from golddigger.infrastructure.config import ANTHROPIC_MODELS, OPENROUTER_MODELS, AppConfig, ModelOverrides
from golddigger.infrastructure.llm import (
    LLMConnectionError,
    LLMError,
    LLMMessage,
    LLMResponseError,
    LLMTimeoutError,
    normalize_completion,
)
from golddigger.infrastructure.llm.anthropic import AnthropicBackend, normalize_anthropic_model
from golddigger.infrastructure.llm.chat_model import ChatModelBackend, to_langchain_messages
from golddigger.infrastructure.llm.factory import (
    build_backends,
    build_router,
    check_backend,
    check_connections,
)
from golddigger.infrastructure.llm.openrouter import OpenRouterBackend
from golddigger.testing import ScriptedBackend, ScriptedChatModel

_MESSAGES = [LLMMessage("user", "Analyze AAPL")]


# ---------------------------------------------------------------------------
# normalize_completion
# ---------------------------------------------------------------------------


class TestNormalizeCompletion:

    def test_content_wins(self) -> None:
        assert normalize_completion({"content": "answer", "reasoning": "thinking"}) == "answer"

    def test_reasoning_string(self) -> None:
        assert normalize_completion({"content": "", "reasoning": "from reasoning"}) == "from reasoning"

    def test_reasoning_details(self) -> None:
        message = {"content": None, "reasoning_details": [{"text": "detail text"}]}
        assert normalize_completion(message) == "detail text"

    def test_reasoning_object(self) -> None:
        assert normalize_completion({"reasoning": {"text": "nested"}}) == "nested"

    def test_nothing_usable(self) -> None:
        assert normalize_completion(None) == ""
        assert normalize_completion({"content": ""}) == ""


# ---------------------------------------------------------------------------
# OpenRouter
# ---------------------------------------------------------------------------


def _openrouter(handler: Any, **kwargs: Any) -> OpenRouterBackend:
    return OpenRouterBackend(api_key="sk-or-test", transport=httpx.MockTransport(handler), **kwargs)


class TestOpenRouterBackend:

    def test_request_shape(self) -> None:
        seen: dict[str, Any] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["title"] = request.headers["X-Title"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "hello"}}]})

        backend = _openrouter(handler, max_tokens=512)
        assert backend.complete(ModelTier.STANDARD, _MESSAGES, "be brief") == "hello"

        assert seen["url"] == "https://openrouter.ai/api/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-or-test"
        assert seen["title"] == "Gold Digger"
        assert seen["body"]["model"] == OPENROUTER_MODELS[ModelTier.STANDARD]
        assert seen["body"]["max_tokens"] == 512
        assert seen["body"]["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "Analyze AAPL"},
        ]

    def test_bare_model_name_uses_default(self) -> None:
        backend = _openrouter(lambda r: httpx.Response(200, json={}), models={
            ModelTier.LIGHT: "llama-3.1-8b",
            ModelTier.PREMIUM: "openai/gpt-4o",
        })
        assert backend.model_for(ModelTier.LIGHT) == OPENROUTER_MODELS[ModelTier.LIGHT]
        assert backend.model_for(ModelTier.PREMIUM) == "openai/gpt-4o"

    def test_reasoning_only_reply(self) -> None:
        body = {"choices": [{"message": {"content": "", "reasoning": "thought it through"}}]}
        backend = _openrouter(lambda r: httpx.Response(200, json=body))
        assert backend.complete(ModelTier.PREMIUM, _MESSAGES) == "thought it through"

    def test_server_error_is_connection_error(self) -> None:
        backend = _openrouter(lambda r: httpx.Response(503, text="upstream down"))
        with pytest.raises(LLMConnectionError, match="HTTP 503"):
            backend.complete(ModelTier.LIGHT, _MESSAGES)

    def test_client_error_is_response_error(self) -> None:
        backend = _openrouter(lambda r: httpx.Response(401, text="bad key"))
        with pytest.raises(LLMResponseError, match="401"):
            backend.complete(ModelTier.LIGHT, _MESSAGES)

    def test_error_body_without_content(self) -> None:
        body = {"error": {"message": "model overloaded"}}
        backend = _openrouter(lambda r: httpx.Response(200, json=body))
        with pytest.raises(LLMResponseError, match="model overloaded"):
            backend.complete(ModelTier.LIGHT, _MESSAGES)

    def test_invalid_json(self) -> None:
        backend = _openrouter(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(LLMResponseError, match="Invalid JSON"):
            backend.complete(ModelTier.LIGHT, _MESSAGES)

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(LLMTimeoutError, match="timed out after 90s"):
            _openrouter(handler).complete(ModelTier.LIGHT, _MESSAGES)

    def test_connect_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(LLMConnectionError):
            _openrouter(handler).complete(ModelTier.LIGHT, _MESSAGES)


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------


class _FakeMessages:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.kwargs: dict[str, Any] = {}

    def create(self, **kwargs: Any) -> Any:
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


def _anthropic(response: Any = None, error: Exception | None = None, **kwargs: Any) -> tuple[AnthropicBackend, _FakeMessages]:
    messages = _FakeMessages(response, error)
    client = SimpleNamespace(messages=messages)
    return AnthropicBackend(api_key="sk-ant-test", client=client, **kwargs), messages


def _text_response(*texts: str) -> SimpleNamespace:
    blocks = [SimpleNamespace(type="text", text=t) for t in texts]
    blocks.append(SimpleNamespace(type="tool_use", id="x"))
    return SimpleNamespace(content=blocks)


class TestAnthropicBackend:

    def test_model_normalization(self) -> None:
        assert normalize_anthropic_model("anthropic/claude-opus-4", ModelTier.PREMIUM) == "claude-opus-4"
        assert normalize_anthropic_model("claude-haiku-4-5", ModelTier.LIGHT) == "claude-haiku-4-5"
        assert (
            normalize_anthropic_model("meta-llama/llama-3.1-8b-instruct", ModelTier.LIGHT)
            == ANTHROPIC_MODELS[ModelTier.LIGHT]
        )

    def test_request_shape(self) -> None:
        backend, fake = _anthropic(_text_response("part one", "part two"), max_tokens=1000)
        messages = [LLMMessage("system", "extra rules"), LLMMessage("user", "hi")]

        assert backend.complete(ModelTier.LIGHT, messages, "persona") == "part one\npart two"
        assert fake.kwargs["model"] == ANTHROPIC_MODELS[ModelTier.LIGHT]
        assert fake.kwargs["max_tokens"] == 1000
        assert fake.kwargs["system"] == "persona\n\nextra rules"
        assert fake.kwargs["messages"] == [{"role": "user", "content": "hi"}]

    def test_no_system(self) -> None:
        backend, fake = _anthropic(_text_response("ok"))
        backend.complete(ModelTier.PREMIUM, _MESSAGES)
        assert "system" not in fake.kwargs

    def test_connection_error(self) -> None:
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        backend, _ = _anthropic(error=anthropic.APIConnectionError(request=request))
        with pytest.raises(LLMConnectionError):
            backend.complete(ModelTier.PREMIUM, _MESSAGES)

    def test_timeout_error(self) -> None:
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        backend, _ = _anthropic(error=anthropic.APITimeoutError(request=request))
        with pytest.raises(LLMTimeoutError, match="timed out after 60s"):
            backend.complete(ModelTier.PREMIUM, _MESSAGES)

    def test_unparseable_response(self) -> None:
        backend, _ = _anthropic(object())
        with pytest.raises(LLMResponseError):
            backend.complete(ModelTier.PREMIUM, _MESSAGES)


# ---------------------------------------------------------------------------
# LangChain adapter
# ---------------------------------------------------------------------------


class TestChatModelBackend:

    def test_message_conversion(self) -> None:
        converted = to_langchain_messages(
            [LLMMessage("assistant", "a"), LLMMessage("user", "b")], system_prompt="sys"
        )
        assert [m.type for m in converted] == ["system", "ai", "human"]

    def test_keyed_reply(self) -> None:
        model = ScriptedChatModel(keyed={"investment query parser": '{"symbol": "AAPL"}'})
        backend = ChatModelBackend(model)
        reply = backend.complete(ModelTier.LIGHT, _MESSAGES, "You are an investment query parser.")
        assert reply == '{"symbol": "AAPL"}'
        assert len(model.calls) == 1

    def test_queued_replies_cycle(self) -> None:
        backend = ChatModelBackend(ScriptedChatModel(responses=["one", "two"]))
        replies = [backend.complete(ModelTier.STANDARD, _MESSAGES) for _ in range(3)]
        assert replies == ["one", "two", "one"]

    def test_per_tier_mapping_must_be_complete(self) -> None:
        with pytest.raises(ValueError, match="missing models"):
            ChatModelBackend({ModelTier.LIGHT: ScriptedChatModel()})

    def test_per_tier_mapping(self) -> None:
        backend = ChatModelBackend(
            {tier: ScriptedChatModel(responses=[tier.value]) for tier in ModelTier},
            kind=BackendKind.ANTHROPIC,
        )
        assert backend.kind is BackendKind.ANTHROPIC
        assert backend.complete(ModelTier.PREMIUM, _MESSAGES) == "premium"
        assert backend.model_for(ModelTier.LIGHT) == "scripted"

    def test_errors_are_wrapped(self) -> None:
        class Broken(ScriptedChatModel):
            def _generate(self, messages, stop=None, run_manager=None, **kwargs):  # type: ignore[override]
                raise RuntimeError("local model crashed")

        with pytest.raises(LLMError, match="local model crashed"):
            ChatModelBackend(Broken()).complete(ModelTier.LIGHT, _MESSAGES)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestFactory:

    def test_no_keys(self) -> None:
        router = build_router(AppConfig())
        assert router.mode is RoutingMode.NONE
        assert router.backends == {}

    def test_openrouter_key_only(self) -> None:
        config = AppConfig(
            openrouter_api_key="sk-or-v1-abcdefghijklmnop",
            models=ModelOverrides(light="mistralai/mistral-small"),
        )
        backends = build_backends(config)
        assert list(backends) == [BackendKind.OPENROUTER]
        assert backends[BackendKind.OPENROUTER].model_for(ModelTier.LIGHT) == "mistralai/mistral-small"
        assert build_router(config).mode is RoutingMode.OPENROUTER_ONLY

    def test_both_keys_hybrid(self) -> None:
        config = AppConfig(
            anthropic_api_key="sk-ant-REDACTED",
            openrouter_api_key="sk-or-v1-abcdefghijklmnop",
        )
        router = build_router(config)
        assert router.mode is RoutingMode.HYBRID
        assert isinstance(router.backends[BackendKind.ANTHROPIC], AnthropicBackend)

    def test_injected_backends(self) -> None:
        backend = ScriptedBackend()
        router = build_router(AppConfig(), backends={BackendKind.OPENROUTER: backend})
        assert router.backends[BackendKind.OPENROUTER] is backend
        assert router.mode is RoutingMode.OPENROUTER_ONLY

    def test_explicit_mode_downgraded_when_key_missing(self) -> None:
        config = AppConfig(openrouter_api_key="sk-or-v1-abcdefghijklmnop", routing_mode="anthropic_only")
        assert build_router(config).mode is RoutingMode.OPENROUTER_ONLY


class TestConnectionCheck:

    def test_missing_key(self) -> None:
        result = check_backend(BackendKind.ANTHROPIC, None)
        assert not result.success
        assert result.message == "No API key configured"

    def test_valid_key(self) -> None:
        backend = ScriptedBackend(default="Hello!")
        result = check_backend(BackendKind.OPENROUTER, backend)
        assert result.success
        assert result.message == "openrouter API key is valid"
        (call,) = backend.calls
        assert call.tier is ModelTier.LIGHT
        assert call.last_message == "Hi"

    def test_rejected_key(self) -> None:
        backend = ScriptedBackend(default=LLMResponseError('OpenRouter API 401: {"error": "No auth"}'))
        result = check_backend(BackendKind.OPENROUTER, backend)
        assert not result.success
        assert result.message == "Invalid API key"

    def test_unreachable(self) -> None:
        backend = ScriptedBackend(default=LLMConnectionError("connect ECONNREFUSED"))
        result = check_backend(BackendKind.OPENROUTER, backend)
        assert result.to_dict() == {
            "backend": "openrouter",
            "success": False,
            "message": "Connection failed: connect ECONNREFUSED",
        }

    def test_check_connections_covers_both_backends(self) -> None:
        results = check_connections(
            AppConfig(), backends={BackendKind.OPENROUTER: ScriptedBackend(default="ok")}
        )
        assert [(r.backend, r.success) for r in results] == [
            (BackendKind.ANTHROPIC, False),
            (BackendKind.OPENROUTER, True),
        ]
