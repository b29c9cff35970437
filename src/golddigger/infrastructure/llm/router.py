"""Tiered model router.

Implements a **Strategy + Escalation Chain**: every internal sub-task maps
to a cost tier, and a failed call escalates ``light -> standard -> premium``.
In hybrid mode the final tier is retried once on the alternate backend.

Backend selection per routing mode:

==================  ==================  ==================
mode                light / standard    premium
==================  ==================  ==================
``anthropic_only``  Anthropic           Anthropic
``openrouter_only`` OpenRouter          OpenRouter
``hybrid``          OpenRouter          Anthropic
``none``            (ConfigurationError)
==================  ==================  ==================

Usage::

    router = TieredRouter({BackendKind.OPENROUTER: openrouter_backend})
    text = router.invoke_task("parse_query", [LLMMessage("user", query)])
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any

from golddigger.domain.enums import BackendKind, ModelTier, RoutingMode
from golddigger.domain.exceptions import AllTiersExhaustedError, ConfigurationError
from golddigger.infrastructure.llm import (
    ChatBackend,
    LLMConnectionError,
    LLMTimeoutError,
    as_messages,
)

logger = logging.getLogger(__name__)

TIER_ESCALATION: tuple[ModelTier, ...] = (ModelTier.LIGHT, ModelTier.STANDARD, ModelTier.PREMIUM)

_L, _S, _P = ModelTier.LIGHT, ModelTier.STANDARD, ModelTier.PREMIUM

TASK_TIER_MAP: Mapping[str, ModelTier] = MappingProxyType({
    # light: extraction and classification
    "parse_query": _L,
    "extract_parameters": _L,
    "classify_intent": _L,
    "identify_niche": _L,
    "extract_entities": _L,
    "validate_input": _L,
    # standard: interpretation
    "interpret_fundamentals": _S,
    "interpret_technicals": _S,
    "interpret_sentiment": _S,
    "analyze_trends": _S,
    "analyze_competition": _S,
    "estimate_market_size": _S,
    "identify_pain_points": _S,
    "summarize": _S,
    "generate_insights": _S,
    "process_data": _S,
    # premium: final decisions
    "generate_recommendation": _P,
    "verify_output": _P,
    "generate_research_recommendations": _P,
    "supervisor_routing": _P,
    "general_chat": _P,
    "make_decision": _P,
    "final_analysis": _P,
})

ESTIMATED_COSTS: Mapping[ModelTier, float] = MappingProxyType({
    _L: 0.0001,
    _S: 0.001,
    _P: 0.003,
})


def get_tier_for_task(task: str, fallback: ModelTier = ModelTier.STANDARD) -> ModelTier:
    """Tier assigned to *task*; unknown tasks get *fallback*."""
    return TASK_TIER_MAP.get(task, fallback)


def estimate_savings(task: str) -> float:
    """Estimated USD saved per call versus running *task* on premium."""
    tier = get_tier_for_task(task)
    return round(ESTIMATED_COSTS[ModelTier.PREMIUM] - ESTIMATED_COSTS[tier], 6)


def derive_routing_mode(available: Sequence[BackendKind]) -> RoutingMode:
    has_anthropic = BackendKind.ANTHROPIC in available
    has_openrouter = BackendKind.OPENROUTER in available
    if has_anthropic and has_openrouter:
        return RoutingMode.HYBRID
    if has_openrouter:
        return RoutingMode.OPENROUTER_ONLY
    if has_anthropic:
        return RoutingMode.ANTHROPIC_ONLY
    return RoutingMode.NONE


class _BackendEntry:
    """Internal entry tracking a backend's call statistics."""

    __slots__ = (
        "backend",
        "consecutive_failures",
        "last_failure_time",
        "total_requests",
        "total_failures",
    )

    def __init__(self, backend: ChatBackend) -> None:
        self.backend = backend
        self.consecutive_failures: int = 0
        self.last_failure_time: float = 0.0
        self.total_requests: int = 0
        self.total_failures: int = 0

    def record_success(self) -> None:
        self.consecutive_failures = 0
        self.total_requests += 1

    def record_failure(self) -> None:
        self.consecutive_failures += 1
        self.total_failures += 1
        self.total_requests += 1
        self.last_failure_time = time.monotonic()

    def __repr__(self) -> str:
        return (
            f"BackendEntry(kind={self.backend.kind.value!r}, "
            f"failures={self.consecutive_failures})"
        )


class TieredRouter:
    """Route model calls by tier with escalation on failure.

    Parameters
    ----------
    backends:
        Mapping from backend kind to a configured backend.
    mode:
        Routing mode.  ``None`` derives it from which backends exist.  An
        explicit mode whose backend is missing is downgraded to the derived
        mode with a warning.

    Attributes
    ----------
    attempts:
        ``(tier, backend kind)`` pairs tried by the most recent call, in
        order.  Diagnostic only.
    """

    def __init__(
        self,
        backends: Mapping[BackendKind, ChatBackend],
        mode: RoutingMode | None = None,
    ) -> None:
        self._entries: dict[BackendKind, _BackendEntry] = {
            kind: _BackendEntry(backend) for kind, backend in backends.items()
        }
        derived = derive_routing_mode(list(self._entries))
        if mode is None or mode is RoutingMode.NONE:
            mode = derived
        elif not self._supports(mode):
            logger.warning(
                "TieredRouter: routing mode %s lacks a configured backend, using %s",
                mode.value,
                derived.value,
            )
            mode = derived
        self._mode = mode
        self.attempts: list[tuple[ModelTier, BackendKind]] = []
        self.estimated_spend: float = 0.0

    @property
    def mode(self) -> RoutingMode:
        return self._mode

    @property
    def backends(self) -> dict[BackendKind, ChatBackend]:
        return {kind: entry.backend for kind, entry in self._entries.items()}

    def backend_for(self, tier: ModelTier) -> BackendKind:
        """Backend kind that serves *tier* under the current mode."""
        if self._mode is RoutingMode.ANTHROPIC_ONLY:
            return BackendKind.ANTHROPIC
        if self._mode is RoutingMode.OPENROUTER_ONLY:
            return BackendKind.OPENROUTER
        if self._mode is RoutingMode.HYBRID:
            return BackendKind.ANTHROPIC if tier is ModelTier.PREMIUM else BackendKind.OPENROUTER
        raise ConfigurationError(
            "No LLM API keys configured. Set ANTHROPIC_API_KEY or OPENROUTER_API_KEY.",
            details={"mode": self._mode.value},
        )

    # -- calls ----------------------------------------------------------------

    def invoke(
        self,
        tier: ModelTier,
        messages: Sequence[Any],
        system_prompt: str | None = None,
    ) -> str:
        """Generate a reply starting at *tier*, escalating on failure.

        Parameters
        ----------
        tier:
            Starting tier.
        messages:
            Conversation as :class:`LLMMessage` items or role/content dicts.
        system_prompt:
            Optional system prompt.

        Returns
        -------
        str
            Reply text from the first backend that succeeded.

        Raises
        ------
        ConfigurationError
            If no backend is configured.
        AllTiersExhaustedError
            If every tier (and, in hybrid mode, the alternate backend for
            the last tier) failed.
        """
        msgs = as_messages(messages)
        self.attempts = []
        self.backend_for(tier)  # raises when nothing is configured

        tried: list[ModelTier] = []
        last_error: Exception | None = None
        current = tier

        while True:
            tried.append(current)
            kind = self.backend_for(current)
            try:
                return self._call(current, kind, msgs, system_prompt)
            except Exception as exc:
                last_error = exc

            position = TIER_ESCALATION.index(current)
            if position < len(TIER_ESCALATION) - 1:
                nxt = TIER_ESCALATION[position + 1]
                logger.warning(
                    "TieredRouter: %s failed, falling back to %s", current.value, nxt.value
                )
                current = nxt
                continue
            break

        if self._mode is RoutingMode.HYBRID:
            primary = self.backend_for(current)
            alternate = (
                BackendKind.OPENROUTER if primary is BackendKind.ANTHROPIC else BackendKind.ANTHROPIC
            )
            logger.warning(
                "TieredRouter: %s on %s failed, trying %s",
                current.value,
                primary.value,
                alternate.value,
            )
            try:
                return self._call(current, alternate, msgs, system_prompt)
            except Exception as exc:
                last_error = exc

        raise self._exhausted(tried, last_error)

    def invoke_task(
        self,
        task: str,
        messages: Sequence[Any],
        system_prompt: str | None = None,
    ) -> str:
        """Like :meth:`invoke`, with the starting tier taken from :data:`TASK_TIER_MAP`."""
        return self.invoke(get_tier_for_task(task), messages, system_prompt)

    def _call(
        self,
        tier: ModelTier,
        kind: BackendKind,
        messages: Sequence[Any],
        system_prompt: str | None,
    ) -> str:
        entry = self._entries[kind]
        self.attempts.append((tier, kind))
        logger.debug("TieredRouter: trying %s on %s", tier.value, kind.value)
        try:
            text = entry.backend.complete(tier, messages, system_prompt)
        except Exception as exc:
            entry.record_failure()
            logger.warning(
                "TieredRouter: %s/%s failed (consecutive=%d): %s",
                kind.value,
                tier.value,
                entry.consecutive_failures,
                exc,
            )
            raise
        entry.record_success()
        self.estimated_spend += ESTIMATED_COSTS[tier]
        return text

    @staticmethod
    def _exhausted(tried: list[ModelTier], last_error: Exception | None) -> AllTiersExhaustedError:
        raw = str(last_error) if last_error is not None else "unknown error"
        if isinstance(last_error, LLMTimeoutError) or "timeout" in raw.lower():
            kind = "timeout"
            detail = "Request timed out: the AI model took too long to respond"
        elif isinstance(last_error, LLMConnectionError):
            kind = "connection"
            detail = "Could not connect to the AI service: check your internet connection and API keys"
        else:
            kind = "failure"
            detail = raw
        names = tuple(t.value for t in tried)
        return AllTiersExhaustedError(
            f"All LLM tiers failed (tried: {', '.join(names)}). {detail}",
            tried_tiers=names,
            kind=kind,
            details={"last_error": raw},
        )

    # -- diagnostics ----------------------------------------------------------

    def _supports(self, mode: RoutingMode) -> bool:
        needed = {
            RoutingMode.HYBRID: {BackendKind.ANTHROPIC, BackendKind.OPENROUTER},
            RoutingMode.ANTHROPIC_ONLY: {BackendKind.ANTHROPIC},
            RoutingMode.OPENROUTER_ONLY: {BackendKind.OPENROUTER},
        }.get(mode, set())
        return bool(needed) and needed.issubset(self._entries)

    def health_check(self) -> dict[str, dict[str, Any]]:
        """Call statistics per backend."""
        return {
            kind.value: {
                "consecutive_failures": entry.consecutive_failures,
                "total_requests": entry.total_requests,
                "total_failures": entry.total_failures,
                "last_failure_time": entry.last_failure_time,
                "models": {t.value: entry.backend.model_for(t) for t in ModelTier},
                "backend_type": type(entry.backend).__name__,
            }
            for kind, entry in self._entries.items()
        }

    def __repr__(self) -> str:
        kinds = ", ".join(k.value for k in self._entries)
        return f"TieredRouter(mode={self._mode.value!r}, backends=[{kinds}])"
