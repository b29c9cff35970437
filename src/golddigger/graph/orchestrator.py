"""Inbound facade over the compiled request graph.

``Orchestrator.handle`` takes a validated :class:`ChatRequest`, labels it
where the label is already known (forced, quick chat, greeting), runs the
graph and returns a :class:`ChatResponse`.  It never raises: anything that
escapes the graph is turned into the offline text for the request's label.

Example
-------
::

    orchestrator = Orchestrator()
    reply = orchestrator.run("Should I buy AAPL?")
    print(reply.reply)
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from golddigger.domain.enums import AgentLabel, Stage
from golddigger.graph.context import PipelineContext, build_context
from golddigger.graph.graph import build_orchestrator_graph
from golddigger.services.credential_detector import sanitize
from golddigger.services.fallbacks import dispatch_failure_text, sanitize_error_text
from golddigger.services.routing import is_greeting

logger = logging.getLogger(__name__)


# -- Request / response models ----------------------------------------------


class ChatMessage(BaseModel):
    """One prior turn supplied by the caller."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Inbound chat request.  Field names accept camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    message: str
    history: list[ChatMessage] = Field(default_factory=list)
    force_agent_label: AgentLabel | None = Field(
        default=None,
        validation_alias=AliasChoices("forceAgentLabel", "force_agent_label", "agentType"),
    )
    quick_chat: bool = Field(default=False, alias="quickChat")
    thread_id: str | None = Field(default=None, alias="threadId")

    @field_validator("message")
    @classmethod
    def _non_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value

    @field_validator("history", mode="before")
    @classmethod
    def _usable_turns(cls, value: Any) -> Any:
        """Drop turns with an unknown role or blank content."""
        if not isinstance(value, list):
            return value
        kept = []
        for turn in value:
            role = turn.get("role") if isinstance(turn, dict) else getattr(turn, "role", None)
            content = turn.get("content") if isinstance(turn, dict) else getattr(turn, "content", None)
            if role in ("user", "assistant") and isinstance(content, str) and content.strip():
                kept.append(turn)
        return kept

    @field_validator("force_agent_label", mode="before")
    @classmethod
    def _parse_label(cls, value: Any) -> AgentLabel | None:
        return AgentLabel.parse(value)


class ChatResponse(BaseModel):
    """Outbound reply.  ``to_dict()`` uses the camelCase wire names."""

    reply: str
    agent_label: AgentLabel
    stage: Stage
    thread_id: str
    governance: dict[str, Any] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reply": self.reply,
            "agentLabel": self.agent_label.value,
            "stage": self.stage.value,
            "threadId": self.thread_id,
            "governance": self.governance,
        }


# ============================================================================ #
#  Orchestrator                                                                #
# ============================================================================ #


class Orchestrator:
    """Runs chat requests through the compiled graph.

    Parameters
    ----------
    context:
        Shared collaborators.  Built with :func:`build_context` if omitted.
    checkpointer:
        Optional LangGraph checkpointer passed to the graph.
    """

    def __init__(self, context: PipelineContext | None = None, checkpointer: Any | None = None) -> None:
        self._context = context if context is not None else build_context()
        self._graph = build_orchestrator_graph(self._context, checkpointer=checkpointer)

    @property
    def context(self) -> PipelineContext:
        return self._context

    @property
    def graph(self) -> Any:
        return self._graph

    def preassigned_label(self, request: ChatRequest) -> AgentLabel | None:
        """Label known before classification, or ``None`` to classify."""
        if request.force_agent_label is not None:
            return request.force_agent_label
        default = AgentLabel.parse(self._context.config.preferences.default_agent)
        if default is not None:
            return default
        if request.quick_chat or is_greeting(request.message):
            return AgentLabel.GENERAL
        return None

    def initial_state(self, request: ChatRequest, thread_id: str) -> dict[str, Any]:
        state: dict[str, Any] = {
            "thread_id": thread_id,
            "original_query": request.message,
            "query": request.message,
            "history": [turn.model_dump() for turn in request.history],
            "force_label": request.force_agent_label.value if request.force_agent_label else None,
            "quick_chat": request.quick_chat,
            "governance": None,
            "draft": "",
            "stage_trail": [],
            "metadata": {},
        }
        label = self.preassigned_label(request)
        if label is not None:
            state["agent_label"] = label.value
        return state

    def handle(self, request: ChatRequest) -> ChatResponse:
        """Serve one request.  Never raises."""
        thread_id = request.thread_id or uuid.uuid4().hex
        state = self.initial_state(request, thread_id)
        try:
            result = self._graph.invoke(state, {"configurable": {"thread_id": thread_id}})
        except Exception as exc:
            label = AgentLabel.parse(state.get("agent_label")) or AgentLabel.GENERAL
            logger.exception("Request graph failed: %s", sanitize_error_text(str(exc)))
            return ChatResponse(
                reply=dispatch_failure_text(label, request.message, exc),
                agent_label=label,
                stage=Stage.DONE,
                thread_id=thread_id,
                metadata={"error": "graph_failure"},
            )

        label = AgentLabel.parse(result.get("agent_label")) or AgentLabel.GENERAL
        stage = Stage(result.get("stage", Stage.DONE.value))
        decision = result.get("governance")
        response = ChatResponse(
            reply=result.get("response", ""),
            agent_label=label,
            stage=stage,
            thread_id=thread_id,
            governance=decision.summary() if decision is not None else None,
            metadata={**(result.get("metadata") or {}), "stage_trail": list(result.get("stage_trail", []))},
        )
        if stage is Stage.DONE:
            self._remember(result.get("query", ""), response)
        logger.info("Request %s finished: %s via %s", thread_id[:8], stage.value, label.value)
        return response

    def run(
        self,
        message: str,
        history: list[dict[str, str]] | None = None,
        agent: str | AgentLabel | None = None,
        quick_chat: bool = False,
    ) -> ChatResponse:
        """Convenience wrapper building the :class:`ChatRequest` for you."""
        request = ChatRequest(
            message=message,
            history=history or [],
            force_agent_label=agent,
            quick_chat=quick_chat,
        )
        return self.handle(request)

    def _remember(self, query: str, response: ChatResponse) -> None:
        memory = self._context.memory
        if memory is None:
            return
        symbol = response.metadata.get("symbol")
        try:
            memory.store_conversation(
                user_query=sanitize(query),
                agent_type=response.agent_label.value,
                full_response=response.reply,
                symbols=[symbol] if symbol else None,
            )
        except (OSError, ValueError) as exc:
            logger.warning("Could not store conversation: %s", exc)
