"""Adapter from a LangChain ``BaseChatModel`` to :class:`ChatBackend`.

Lets any LangChain chat model (a hosted integration, a local model, or the
scripted model in :mod:`golddigger.testing`) stand in for one of the
router's backends.

Example
-------
::

    from golddigger.domain import BackendKind
    from golddigger.infrastructure.llm.chat_model import ChatModelBackend
    from golddigger.infrastructure.llm.router import TieredRouter

    backend = ChatModelBackend(my_chat_model, kind=BackendKind.OPENROUTER)
    router = TieredRouter({BackendKind.OPENROUTER: backend})
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from golddigger.domain.enums import BackendKind, ModelTier
from golddigger.infrastructure.llm import (
    ChatBackend,
    LLMConnectionError,
    LLMError,
    LLMMessage,
    LLMTimeoutError,
)

logger = logging.getLogger(__name__)


def to_langchain_messages(
    messages: Sequence[LLMMessage],
    system_prompt: str | None = None,
) -> list[BaseMessage]:
    """Convert :class:`LLMMessage` items to LangChain message objects."""
    converted: list[BaseMessage] = []
    if system_prompt:
        converted.append(SystemMessage(content=system_prompt))
    for msg in messages:
        if msg.role == "system":
            converted.append(SystemMessage(content=msg.content))
        elif msg.role == "assistant":
            converted.append(AIMessage(content=msg.content))
        else:
            converted.append(HumanMessage(content=msg.content))
    return converted


def _message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    # Content-block lists: keep the text blocks.
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text", "")))
    return "\n".join(parts)


class ChatModelBackend(ChatBackend):
    """Serve every tier (or a per-tier mapping) from LangChain chat models.

    Parameters
    ----------
    model:
        A single chat model for all tiers, or a mapping from tier to model.
    kind:
        Which backend slot this adapter fills in the router.
    """

    def __init__(
        self,
        model: BaseChatModel | Mapping[ModelTier, BaseChatModel],
        kind: BackendKind = BackendKind.OPENROUTER,
    ) -> None:
        if isinstance(model, Mapping):
            missing = [t.value for t in ModelTier if t not in model]
            if missing:
                raise ValueError(f"ChatModelBackend is missing models for tiers: {missing}")
            self._models = dict(model)
        else:
            self._models = {tier: model for tier in ModelTier}
        self._kind = kind

    @property
    def kind(self) -> BackendKind:
        return self._kind

    def model_for(self, tier: ModelTier) -> str:
        return getattr(self._models[tier], "_llm_type", type(self._models[tier]).__name__)

    def complete(
        self,
        tier: ModelTier,
        messages: Sequence[LLMMessage],
        system_prompt: str | None = None,
    ) -> str:
        try:
            reply = self._models[tier].invoke(to_langchain_messages(messages, system_prompt))
        except TimeoutError as exc:
            raise LLMTimeoutError(f"Chat model timed out: {exc}") from exc
        except ConnectionError as exc:
            raise LLMConnectionError(f"Chat model connection failed: {exc}") from exc
        except LLMError:
            raise
        except Exception as exc:
            raise LLMError(f"Chat model call failed: {exc}") from exc
        return _message_text(reply)

    def __repr__(self) -> str:
        return f"ChatModelBackend(kind={self._kind.value!r})"
