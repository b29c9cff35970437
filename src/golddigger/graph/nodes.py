"""LangGraph node functions for the request pipeline.

Each ``make_*_node`` factory closes over a :class:`PipelineContext` and
returns a node that takes a ``RequestState`` and returns a partial update
dict.  Nodes delegate to the service layer rather than reimplementing any
logic, and every node appends the stage it entered to ``stage_trail``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from golddigger.domain.enums import AgentLabel, Stage
from golddigger.domain.values import ChatTurn, GovernanceDecision
from golddigger.graph.context import PipelineContext
from golddigger.infrastructure.llm import LLMMessage
from golddigger.services.credential_detector import sanitize
from golddigger.services.fallbacks import dispatch_failure_text, is_service_down, sanitize_error_text
from golddigger.services.governor import apply_disclaimer, redact_pii
from golddigger.services.investment import InvestmentReport
from golddigger.services.personality import (
    add_personality_wrapper,
    get_agent_prompt,
    get_emotional_context,
)
from golddigger.services.research import ResearchReport
from golddigger.services.routing import classify, keyword_route

logger = logging.getLogger(__name__)

Node = Callable[[dict[str, Any]], dict[str, Any]]

NO_RESPONSE = "I'm not sure how to respond to that. Could you rephrase?"
DEFAULT_BLOCK_REASON = "This request has been blocked by safety guardrails."

CHAT_HISTORY_TURNS = 20
CHAT_HISTORY_CHARS = 6000


def _label(state: dict[str, Any]) -> AgentLabel:
    return AgentLabel.parse(state.get("agent_label")) or AgentLabel.GENERAL


def _for_log(text: str) -> str:
    return sanitize(text)[:60]


def prepare_outbound(query: str, decision: GovernanceDecision) -> str:
    """Apply the decision's credential and PII transforms to text bound for a model."""
    if decision.flags.sanitize_credentials:
        logger.warning("Credentials detected in query, sanitizing before any model call")
        query = sanitize(query)
    if decision.flags.redact_pii:
        logger.warning("PII detected in query, redacting before any model call")
        query = redact_pii(query)
    return query


def chat_window(history: Sequence[Any]) -> list[LLMMessage]:
    """Recent turns for general chat, newest first within a character budget.

    Takes at most the last 20 turns and stops adding older ones once
    6000 characters are spent; the turn that crosses the budget is kept.
    """
    turns = [ChatTurn.from_any(t) for t in history][-CHAT_HISTORY_TURNS:]
    window: list[LLMMessage] = []
    budget = CHAT_HISTORY_CHARS
    for turn in reversed(turns):
        if budget <= 0:
            break
        budget -= len(turn.content)
        window.insert(0, LLMMessage(turn.role, turn.content))
    return window


def general_chat(context: PipelineContext, query: str, history: Sequence[Any]) -> str:
    """Single premium call with the persona prompt and the user's emotional context."""
    system_prompt = get_agent_prompt(
        "general", context.config.user_profile, context.include_identity
    )
    emotional = get_emotional_context(history)
    if emotional:
        system_prompt = f"{system_prompt}\n\n{emotional}"
    messages = chat_window(history)
    messages.append(LLMMessage("user", query))
    reply = context.router.invoke_task("general_chat", messages, system_prompt)
    return add_personality_wrapper(reply, "general")


# -- memory writes -----------------------------------------------------------


def remember_investment(context: PipelineContext, report: InvestmentReport) -> None:
    """Record a structured recommendation; storage errors are logged only."""
    if context.memory is None or report.recommendation is None or report.snapshot is None:
        return
    rec = report.recommendation.value
    try:
        context.memory.store_investment_decision(
            symbol=report.symbol or "",
            action=rec.action.value,
            confidence=rec.confidence,
            reasoning=rec.reasoning,
            price_at_time=report.snapshot.value.current_price,
            entry_price=rec.entry_price,
            stop_loss=rec.stop_loss,
            take_profit=rec.take_profit,
        )
    except (OSError, ValueError) as exc:
        logger.warning("Could not store investment decision: %s", exc)


def remember_research(context: PipelineContext, report: ResearchReport) -> None:
    if context.memory is None or not report.structured or report.score is None:
        return
    findings = report.trends.value.key_trends[:3] if report.trends else ()
    verdict = report.recommendations.strip().splitlines()[0] if report.recommendations.strip() else ""
    try:
        context.memory.store_research_finding(
            niche=report.niche_name,
            opportunity_score=report.score.score,
            key_findings="; ".join(findings),
            verdict=verdict[:200],
        )
    except (OSError, ValueError) as exc:
        logger.warning("Could not store research finding: %s", exc)


# -- nodes -------------------------------------------------------------------


def make_classify_node(context: PipelineContext) -> Node:
    """Create the classify node.

    The query is pre-screened by the governor before any model sees it.
    A query the governor would block is routed by keywords alone; otherwise
    the classifier receives the credential-sanitized, PII-redacted text.
    """

    def classify_node(state: dict[str, Any]) -> dict[str, Any]:
        query = state["query"]
        screen = context.governor.check(query, AgentLabel.GENERAL)
        if not screen.approved:
            label = keyword_route(query)
            logger.info("classify: pre-screen failed, keyword route -> %s", label.value)
        else:
            label = classify(
                context.router,
                prepare_outbound(query, screen),
                state.get("history", []),
                context.include_identity,
            )
        return {
            "agent_label": label.value,
            "stage": Stage.CLASSIFY.value,
            "stage_trail": [Stage.CLASSIFY.value],
        }

    return classify_node


def make_govern_node(context: PipelineContext) -> Node:
    """Create the govern node: the one decision every request passes."""

    def govern_node(state: dict[str, Any]) -> dict[str, Any]:
        label = _label(state)
        decision = context.governor.check(state["query"], label)
        if not decision.approved:
            logger.warning(
                "govern: blocked %s request %r: %s", label.value, _for_log(state["query"]),
                decision.block_reason,
            )
            return {
                "agent_label": label.value,
                "governance": decision,
                "draft": decision.block_reason or DEFAULT_BLOCK_REASON,
                "stage": Stage.BLOCKED.value,
                "stage_trail": [Stage.GOVERN.value, Stage.BLOCKED.value],
            }
        return {
            "agent_label": label.value,
            "governance": decision,
            "query": prepare_outbound(state["query"], decision),
            "stage": Stage.GOVERN.value,
            "stage_trail": [Stage.GOVERN.value],
        }

    return govern_node


def make_dispatch_node(context: PipelineContext) -> Node:
    """Create the dispatch node: investment, research or general chat."""

    def dispatch_node(state: dict[str, Any]) -> dict[str, Any]:
        label = _label(state)
        query = state["query"]
        history = state.get("history", [])
        metadata = dict(state.get("metadata") or {})
        logger.info("Routing to %s: %r", label.value, _for_log(query))

        try:
            if label is AgentLabel.INVESTMENT:
                report = context.investment.run(query, history)
                draft = report.render()
                remember_investment(context, report)
                metadata["symbol"] = report.symbol
                metadata["degraded_nodes"] = report.degraded_nodes()
            elif label is AgentLabel.RESEARCH:
                research = context.research.run(query, history)
                draft = research.render()
                remember_research(context, research)
                metadata["niche"] = research.niche_name
                metadata["degraded_nodes"] = research.degraded_nodes()
            else:
                draft = general_chat(context, query, history)
        except Exception as exc:
            logger.error(
                "%s dispatch failed: %s", label.value, sanitize_error_text(str(exc))
            )
            draft = dispatch_failure_text(label, query, exc)
            metadata["error"] = "service_unavailable" if is_service_down(exc) else "agent_error"

        return {
            "draft": draft,
            "metadata": metadata,
            "stage": Stage.DISPATCH.value,
            "stage_trail": [Stage.DISPATCH.value],
        }

    return dispatch_node


def finalize_node(state: dict[str, Any]) -> dict[str, Any]:
    """Write ``response`` once, applying the governance post-processing flags.

    A blocked request keeps its block reason and never gets a disclaimer.
    """
    blocked = state.get("stage") == Stage.BLOCKED.value
    response = state.get("draft") or ""
    if not response.strip():
        response = NO_RESPONSE

    decision: GovernanceDecision | None = state.get("governance")
    if decision is not None:
        flags = decision.flags
        if flags.sanitize_credentials:
            response = sanitize(response)
        if flags.add_disclaimer and not blocked:
            response = apply_disclaimer(response)
        if flags.redact_pii:
            response = redact_pii(response)

    if blocked:
        return {"response": response, "stage": Stage.BLOCKED.value}
    return {
        "response": response,
        "stage": Stage.DONE.value,
        "stage_trail": [Stage.DONE.value],
    }
