"""Anthropic Claude backend.

Wraps the ``anthropic`` Python SDK.  Model names are normalized for the
direct API: an OpenRouter-style ``provider/`` prefix is stripped, and a
name that is not a Claude model falls back to the tier's Claude default.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import anthropic

from golddigger.domain.enums import BackendKind, ModelTier
from golddigger.infrastructure.config import ANTHROPIC_MODELS
from golddigger.infrastructure.llm import (
    ChatBackend,
    LLMConnectionError,
    LLMError,
    LLMMessage,
    LLMResponseError,
    LLMTimeoutError,
)

logger = logging.getLogger(__name__)


def normalize_anthropic_model(name: str, tier: ModelTier) -> str:
    """Strip a ``provider/`` prefix; non-Claude names use the tier default."""
    model = name.rsplit("/", 1)[-1] if "/" in name else name
    if not model.startswith("claude-"):
        return ANTHROPIC_MODELS[tier]
    return model


class AnthropicBackend(ChatBackend):
    """Backend for Anthropic Claude models via the Messages API.

    Parameters
    ----------
    api_key:
        Anthropic API key.
    models:
        Per-tier model names.  Missing tiers use :data:`ANTHROPIC_MODELS`.
    timeout:
        Request timeout in seconds.  Defaults to 60.
    max_tokens:
        Completion budget per call.  Defaults to 4096.
    client:
        Pre-built SDK client (used by tests).
    """

    def __init__(
        self,
        api_key: str = "",
        models: Mapping[ModelTier, str] | None = None,
        timeout: float = 60.0,
        max_tokens: int = 4096,
        client: Any = None,
    ) -> None:
        models = models or {}
        self._models = {
            tier: normalize_anthropic_model(models.get(tier) or ANTHROPIC_MODELS[tier], tier)
            for tier in ModelTier
        }
        self._timeout = timeout
        self._max_tokens = max_tokens
        # Retries are the router's job, not the SDK's.
        self._client = client or anthropic.Anthropic(
            api_key=api_key, timeout=timeout, max_retries=0
        )

    @property
    def kind(self) -> BackendKind:
        return BackendKind.ANTHROPIC

    def model_for(self, tier: ModelTier) -> str:
        return self._models[tier]

    def complete(
        self,
        tier: ModelTier,
        messages: Sequence[LLMMessage],
        system_prompt: str | None = None,
    ) -> str:
        """Call the Messages API with the model configured for *tier*.

        System-role messages are folded into the ``system`` parameter after
        *system_prompt*.

        Raises
        ------
        LLMTimeoutError
            When the request exceeds the timeout.
        LLMConnectionError
            On network failures.
        LLMResponseError
            On non-2xx responses or unparseable bodies.
        """
        kwargs: dict[str, Any] = {
            "model": self._models[tier],
            "max_tokens": self._max_tokens,
            "messages": self._build_messages(messages),
        }
        system_parts = [m.content for m in messages if m.role == "system"]
        if system_prompt:
            system_parts.insert(0, system_prompt)
        if system_parts:
            kwargs["system"] = "\n\n".join(system_parts)

        try:
            response = self._client.messages.create(**kwargs)
        except anthropic.APITimeoutError as exc:
            raise LLMTimeoutError(
                f"Anthropic request timed out after {self._timeout:.0f}s"
            ) from exc
        except anthropic.APIConnectionError as exc:
            raise LLMConnectionError(f"Anthropic API connection failed: {exc}") from exc
        except anthropic.APIStatusError as exc:
            raise LLMResponseError(
                f"Anthropic API error (status {exc.status_code}): {exc.message}"
            ) from exc
        except anthropic.AnthropicError as exc:
            raise LLMError(f"Unexpected error calling Anthropic API: {exc}") from exc

        return self._parse_response(response)

    # -- internal helpers -----------------------------------------------------

    @staticmethod
    def _build_messages(messages: Sequence[LLMMessage]) -> list[dict[str, str]]:
        """System messages are filtered out; they go in ``system``."""
        return [
            {"role": msg.role, "content": msg.content}
            for msg in messages
            if msg.role != "system"
        ]

    @staticmethod
    def _parse_response(response: object) -> str:
        """Join the text blocks of a Messages API response."""
        try:
            blocks = response.content  # type: ignore[attr-defined]
        except AttributeError as exc:
            raise LLMResponseError(f"Failed to parse Anthropic response: {exc}") from exc
        return "\n".join(
            block.text for block in blocks
            if getattr(block, "type", "") == "text" and getattr(block, "text", None)
        )

    def __repr__(self) -> str:
        return f"AnthropicBackend(premium={self._models[ModelTier.PREMIUM]!r})"
