"""Model backend layer for Gold Digger.

This sub-package provides a **backend-agnostic** abstraction over the model
services the router escalates across (Anthropic, OpenRouter, or any
LangChain chat model).

Public API
----------
ChatBackend
    Abstract base class that every concrete backend implements.
LLMMessage
    A single role/content message.
LLMError
    Base exception for all backend failures.
normalize_completion
    Extracts reply text from an OpenAI-style message object.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from golddigger.domain.enums import BackendKind, ModelTier

logger = logging.getLogger(__name__)


# =========================================================================== #
#  Exceptions                                                                  #
# =========================================================================== #

class LLMError(Exception):
    """Base exception for backend errors."""


class LLMConnectionError(LLMError):
    """Raised when the backend cannot be reached."""


class LLMTimeoutError(LLMError):
    """Raised when the backend does not answer within its timeout."""


class LLMResponseError(LLMError):
    """Raised when the backend returns an error status or an unusable body."""


# =========================================================================== #
#  Data structures                                                             #
# =========================================================================== #

@dataclass(frozen=True)
class LLMMessage:
    """A single message in a conversation.

    Attributes
    ----------
    role:
        One of ``"system"``, ``"user"``, ``"assistant"``.
    content:
        The text content of the message.
    """

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


def as_messages(items: Sequence[Any]) -> list[LLMMessage]:
    """Coerce dicts, ``ChatTurn`` objects or ``LLMMessage`` into messages."""
    out: list[LLMMessage] = []
    for item in items:
        if isinstance(item, LLMMessage):
            out.append(item)
        elif isinstance(item, Mapping):
            out.append(LLMMessage(str(item.get("role", "user")), str(item.get("content", ""))))
        else:
            out.append(LLMMessage(str(getattr(item, "role", "user")), str(getattr(item, "content", ""))))
    return out


def normalize_completion(message: Mapping[str, Any] | None) -> str:
    """Return the reply text of an OpenAI-style ``message`` object.

    Precedence: ``content``, then a string ``reasoning`` field, then
    ``reasoning_details[0].text``, then ``reasoning.text``, else ``""``.
    Reasoning models sometimes leave ``content`` empty and put the answer
    in one of the reasoning fields.
    """
    if not message:
        return ""
    content = message.get("content")
    if isinstance(content, str) and content:
        return content

    reasoning = message.get("reasoning")
    if isinstance(reasoning, str) and reasoning:
        logger.warning("Completion content empty, using reasoning field")
        return reasoning

    details = message.get("reasoning_details")
    if isinstance(details, list) and details and isinstance(details[0], Mapping):
        text = details[0].get("text")
        if isinstance(text, str) and text:
            logger.warning("Completion content empty, using reasoning_details")
            return text

    if isinstance(reasoning, Mapping):
        text = reasoning.get("text")
        if isinstance(text, str) and text:
            logger.warning("Completion content empty, using reasoning.text")
            return text
    return ""


# =========================================================================== #
#  Abstract backend                                                            #
# =========================================================================== #

class ChatBackend(ABC):
    """Abstract base class for a model backend the router can call.

    A backend owns its own credentials, timeout and per-tier model names;
    the router only decides *which* backend serves *which* tier.
    """

    @property
    @abstractmethod
    def kind(self) -> BackendKind:
        """Which backend family this is."""
        ...

    @abstractmethod
    def complete(
        self,
        tier: ModelTier,
        messages: Sequence[LLMMessage],
        system_prompt: str | None = None,
    ) -> str:
        """Generate a reply with the model configured for *tier*.

        Returns
        -------
        str
            The reply text (may be empty).

        Raises
        ------
        LLMError
            On any backend-level failure.
        """
        ...

    def model_for(self, tier: ModelTier) -> str:
        """Model identifier used for *tier*.  Overridden by concrete backends."""
        return ""


__all__ = [
    "LLMError",
    "LLMConnectionError",
    "LLMTimeoutError",
    "LLMResponseError",
    "LLMMessage",
    "as_messages",
    "normalize_completion",
    "ChatBackend",
]


def __getattr__(name: str):  # noqa: N807
    """Lazy-load concrete backends on attribute access."""
    _lazy_map = {
        "AnthropicBackend": "golddigger.infrastructure.llm.anthropic",
        "OpenRouterBackend": "golddigger.infrastructure.llm.openrouter",
        "ChatModelBackend": "golddigger.infrastructure.llm.chat_model",
        "TieredRouter": "golddigger.infrastructure.llm.router",
        "build_router": "golddigger.infrastructure.llm.factory",
    }

    if name in _lazy_map:
        import importlib
        module = importlib.import_module(_lazy_map[name])
        return getattr(module, name)

    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
