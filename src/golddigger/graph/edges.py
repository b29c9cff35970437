"""Conditional edge functions for the request graph."""

from __future__ import annotations

from typing import Any, Literal

from golddigger.domain.enums import Stage


def route_entry(state: dict[str, Any]) -> Literal["classify", "govern"]:
    """Skip classification when the request arrives already labelled.

    Forced labels, quick-chat requests and bare greetings are labelled
    before the graph starts; everything else goes to ``classify``.
    """
    if state.get("agent_label"):
        return "govern"
    return "classify"


def route_after_govern(state: dict[str, Any]) -> Literal["dispatch", "finalize"]:
    """A blocked request goes straight to ``finalize`` and is never dispatched."""
    if state.get("stage") == Stage.BLOCKED.value:
        return "finalize"
    return "dispatch"
