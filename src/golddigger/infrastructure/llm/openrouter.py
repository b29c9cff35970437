"""OpenRouter backend.

Uses ``httpx`` for raw POSTs to the OpenAI-compatible chat completions
endpoint at ``https://openrouter.ai/api/v1``.  Model names need a
``provider/`` prefix; a bare name falls back to the tier default.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from golddigger.domain.enums import BackendKind, ModelTier
from golddigger.infrastructure.config import OPENROUTER_MODELS
from golddigger.infrastructure.llm import (
    ChatBackend,
    LLMConnectionError,
    LLMMessage,
    LLMResponseError,
    LLMTimeoutError,
    normalize_completion,
)

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
APP_REFERER = "https://gold-digger.app"
APP_TITLE = "Gold Digger"


class OpenRouterBackend(ChatBackend):
    """Backend for any model served through OpenRouter.

    Parameters
    ----------
    api_key:
        OpenRouter API key, sent as ``Authorization: Bearer``.
    models:
        Per-tier model names.  Missing tiers use :data:`OPENROUTER_MODELS`.
    timeout:
        Request timeout in seconds.  Defaults to 90.
    max_tokens:
        Completion budget per call.  Defaults to 4096.
    base_url:
        API base URL.
    transport:
        Optional ``httpx`` transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        api_key: str = "",
        models: Mapping[ModelTier, str] | None = None,
        timeout: float = 90.0,
        max_tokens: int = 4096,
        base_url: str = OPENROUTER_BASE_URL,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        models = models or {}
        self._models = {}
        for tier in ModelTier:
            name = models.get(tier) or OPENROUTER_MODELS[tier]
            self._models[tier] = name if "/" in name else OPENROUTER_MODELS[tier]
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_tokens = max_tokens

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
            "HTTP-Referer": APP_REFERER,
            "X-Title": APP_TITLE,
        }
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
        )

    @property
    def kind(self) -> BackendKind:
        return BackendKind.OPENROUTER

    @property
    def endpoint_url(self) -> str:
        return f"{self._base_url}/chat/completions"

    def model_for(self, tier: ModelTier) -> str:
        return self._models[tier]

    def complete(
        self,
        tier: ModelTier,
        messages: Sequence[LLMMessage],
        system_prompt: str | None = None,
    ) -> str:
        """POST a chat completion for *tier*.

        Raises
        ------
        LLMTimeoutError
            When the request exceeds the timeout.
        LLMConnectionError
            On network failures and 5xx responses.
        LLMResponseError
            On 4xx responses, invalid JSON, or an error body with no content.
        """
        payload = self._build_payload(tier, messages, system_prompt)
        logger.info("OpenRouter call: tier=%s, model=%s", tier.value, payload["model"])

        try:
            response = self._client.post(self.endpoint_url, json=payload)
        except httpx.TimeoutException as exc:
            raise LLMTimeoutError(
                f"OpenRouter request timed out after {self._timeout:.0f}s"
            ) from exc
        except httpx.TransportError as exc:
            raise LLMConnectionError(f"Failed to connect to OpenRouter: {exc}") from exc

        if response.status_code >= 500:
            raise LLMConnectionError(
                f"OpenRouter server error (HTTP {response.status_code}): {response.text[:200]}"
            )
        if response.status_code >= 400:
            raise LLMResponseError(
                f"OpenRouter API {response.status_code}: {response.text[:200]}"
            )

        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise LLMResponseError(f"Invalid JSON response from OpenRouter: {exc}") from exc
        return self._parse_response(data)

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    # -- internal helpers -----------------------------------------------------

    def _build_payload(
        self,
        tier: ModelTier,
        messages: Sequence[LLMMessage],
        system_prompt: str | None,
    ) -> dict[str, Any]:
        api_messages: list[dict[str, str]] = []
        if system_prompt:
            api_messages.append({"role": "system", "content": system_prompt})
        api_messages.extend(msg.to_dict() for msg in messages)
        return {
            "model": self._models[tier],
            "messages": api_messages,
            "max_tokens": self._max_tokens,
        }

    @staticmethod
    def _parse_response(data: Any) -> str:
        if not isinstance(data, dict):
            raise LLMResponseError(f"Unexpected OpenRouter response type: {type(data).__name__}")
        choices = data.get("choices") or []
        message = choices[0].get("message") if choices and isinstance(choices[0], dict) else None
        content = normalize_completion(message)

        error = data.get("error")
        if not content and error:
            detail = error.get("message") if isinstance(error, dict) else None
            raise LLMResponseError(f"OpenRouter error: {detail or json.dumps(error)}")
        return content

    def __repr__(self) -> str:
        return f"OpenRouterBackend(base_url={self._base_url!r})"
