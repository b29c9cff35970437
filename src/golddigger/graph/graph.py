"""Build the request StateGraph.

``build_orchestrator_graph()`` wires classify, govern, dispatch and
finalize into a compiled LangGraph::

    START -> (classify) -> govern -> dispatch -> finalize -> END
                                  \\-----------/
                                    (blocked)
"""

from typing import Any

from langgraph.graph import END, START, StateGraph

from golddigger.graph.context import PipelineContext
from golddigger.graph.edges import route_after_govern, route_entry
from golddigger.graph.nodes import (
    finalize_node,
    make_classify_node,
    make_dispatch_node,
    make_govern_node,
)
from golddigger.graph.state import RequestState


def build_orchestrator_graph(
    context: PipelineContext,
    checkpointer: Any | None = None,
    interrupt_before: list[str] | None = None,
) -> Any:
    """Build and compile the request graph.

    Parameters
    ----------
    context:
        Collaborators captured by the node closures.
    checkpointer:
        Optional LangGraph checkpointer for persistence.
    interrupt_before:
        Node names to interrupt before (human-in-the-loop).

    Returns
    -------
    CompiledStateGraph
        A compiled graph ready for ``.invoke()`` or ``.stream()``.
    """
    graph = StateGraph(RequestState)

    graph.add_node("classify", make_classify_node(context))
    graph.add_node("govern", make_govern_node(context))
    graph.add_node("dispatch", make_dispatch_node(context))
    graph.add_node("finalize", finalize_node)

    graph.add_conditional_edges(
        START,
        route_entry,
        {"classify": "classify", "govern": "govern"},
    )
    graph.add_edge("classify", "govern")
    graph.add_conditional_edges(
        "govern",
        route_after_govern,
        {"dispatch": "dispatch", "finalize": "finalize"},
    )
    graph.add_edge("dispatch", "finalize")
    graph.add_edge("finalize", END)

    compile_kwargs: dict[str, Any] = {}
    if checkpointer is not None:
        compile_kwargs["checkpointer"] = checkpointer
    if interrupt_before:
        compile_kwargs["interrupt_before"] = interrupt_before

    return graph.compile(**compile_kwargs)
