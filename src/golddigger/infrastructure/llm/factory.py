"""Build a :class:`TieredRouter` from an :class:`AppConfig` snapshot.

Usage::

    config = load_config()
    router = build_router(config)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from golddigger.domain.enums import BackendKind, ModelTier, RoutingMode
from golddigger.infrastructure.config import (
    ANTHROPIC_MODELS,
    OPENROUTER_MODELS,
    AppConfig,
    resolve_models,
    resolve_routing_mode,
)
from golddigger.infrastructure.llm import ChatBackend, LLMError, LLMMessage
from golddigger.infrastructure.llm.router import TieredRouter

logger = logging.getLogger(__name__)

BackendBuilder = Callable[[AppConfig], ChatBackend]


def _build_anthropic(config: AppConfig) -> ChatBackend:
    from golddigger.infrastructure.llm.anthropic import AnthropicBackend

    return AnthropicBackend(
        api_key=config.anthropic_api_key,
        models=resolve_models(config, ANTHROPIC_MODELS),
        timeout=config.router.anthropic_timeout,
        max_tokens=config.router.max_tokens,
    )


def _build_openrouter(config: AppConfig) -> ChatBackend:
    from golddigger.infrastructure.llm.openrouter import OpenRouterBackend

    return OpenRouterBackend(
        api_key=config.openrouter_api_key,
        models=resolve_models(config, OPENROUTER_MODELS),
        timeout=config.router.openrouter_timeout,
        max_tokens=config.router.max_tokens,
    )


_BUILDERS: dict[BackendKind, tuple[Callable[[AppConfig], str], BackendBuilder]] = {
    BackendKind.ANTHROPIC: (lambda c: c.anthropic_api_key, _build_anthropic),
    BackendKind.OPENROUTER: (lambda c: c.openrouter_api_key, _build_openrouter),
}


def build_backends(config: AppConfig) -> dict[BackendKind, ChatBackend]:
    """One backend per configured API key."""
    backends: dict[BackendKind, ChatBackend] = {}
    for kind, (key_of, builder) in _BUILDERS.items():
        if key_of(config):
            backends[kind] = builder(config)
            logger.debug("build_backends: configured %s", kind.value)
    return backends


def build_router(
    config: AppConfig,
    backends: dict[BackendKind, ChatBackend] | None = None,
) -> TieredRouter:
    """Create the router for *config*.

    Parameters
    ----------
    config:
        Configuration snapshot.
    backends:
        Pre-built backends, replacing the ones derived from API keys.

    Returns
    -------
    TieredRouter
        Router in the resolved routing mode.  With no keys configured the
        router is in ``none`` mode and raises ``ConfigurationError`` when
        invoked.
    """
    if backends is None:
        backends = build_backends(config)
    mode = resolve_routing_mode(config)
    router = TieredRouter(backends, mode=None if mode is RoutingMode.NONE else mode)
    logger.info("Model router ready: mode=%s", router.mode.value)
    return router


# --------------------------------------------------------------------------- #
#  Connection check                                                            #
# --------------------------------------------------------------------------- #

_UNAUTHORIZED_RE = re.compile(r"\b401\b")


@dataclass(frozen=True)
class ConnectionCheck:
    """Outcome of one minimal call through a backend."""

    backend: BackendKind
    success: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"backend": self.backend.value, "success": self.success, "message": self.message}


def check_backend(kind: BackendKind, backend: ChatBackend | None) -> ConnectionCheck:
    """Send one short light-tier message through *backend*.

    A missing backend means no key is configured for *kind*.  Backend
    errors are reported in the result rather than raised.
    """
    if backend is None:
        return ConnectionCheck(kind, False, "No API key configured")
    try:
        backend.complete(ModelTier.LIGHT, [LLMMessage("user", "Hi")])
    except LLMError as exc:
        logger.warning("check_backend: %s failed: %s", kind.value, exc)
        if _UNAUTHORIZED_RE.search(str(exc)):
            return ConnectionCheck(kind, False, "Invalid API key")
        return ConnectionCheck(kind, False, f"Connection failed: {str(exc)[:200]}")
    return ConnectionCheck(kind, True, f"{kind.value} API key is valid")


def check_connections(
    config: AppConfig,
    kinds: tuple[BackendKind, ...] = tuple(_BUILDERS),
    backends: Mapping[BackendKind, ChatBackend] | None = None,
) -> list[ConnectionCheck]:
    """Check each backend in *kinds*, building it from *config* unless given."""
    if backends is None:
        backends = build_backends(config)
    return [check_backend(kind, backends.get(kind)) for kind in kinds]
