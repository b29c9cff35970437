"""LangGraph-native request orchestration.

Public API
----------
build_orchestrator_graph
    Build and compile the classify-govern-dispatch-finalize graph.
RequestState
    The TypedDict state flowing through the graph.
PipelineContext, build_context
    Collaborators captured by the node closures.
Orchestrator, ChatRequest, ChatResponse
    The inbound facade.

Node factories (for advanced customisation):
    make_classify_node, make_govern_node, make_dispatch_node, finalize_node

Edge functions:
    route_entry, route_after_govern
"""

from golddigger.graph.context import PipelineContext, build_context
from golddigger.graph.edges import route_after_govern, route_entry
from golddigger.graph.graph import build_orchestrator_graph
from golddigger.graph.nodes import (
    finalize_node,
    general_chat,
    make_classify_node,
    make_dispatch_node,
    make_govern_node,
)
from golddigger.graph.orchestrator import ChatMessage, ChatRequest, ChatResponse, Orchestrator
from golddigger.graph.state import RequestState

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "Orchestrator",
    "PipelineContext",
    "RequestState",
    "build_context",
    "build_orchestrator_graph",
    "finalize_node",
    "general_chat",
    "make_classify_node",
    "make_dispatch_node",
    "make_govern_node",
    "route_after_govern",
    "route_entry",
]
