"""Gold Digger.

Routed AI assistant for investment analysis and market research: a
LangGraph orchestrator classifies each request, passes it through a safety
governor, and dispatches it to the investment pipeline, the research
pipeline or general chat over a tiered model router.
"""

__version__ = "0.3.0"

from golddigger.graph import (
    ChatRequest,
    ChatResponse,
    Orchestrator,
    build_context,
    build_orchestrator_graph,
)

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "Orchestrator",
    "build_context",
    "build_orchestrator_graph",
]
