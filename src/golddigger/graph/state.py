"""LangGraph state definition for the request pipeline.

Defines ``RequestState``, a ``TypedDict`` that flows through the
``StateGraph``.  ``stage_trail`` is an append-only channel
(``Annotated[list, operator.add]``) so every node can record the stage it
entered without overwriting earlier entries.

Note: We intentionally do NOT use ``from __future__ import annotations`` because
LangGraph needs to resolve type hints at runtime via ``get_type_hints()``.
"""

import operator
from typing import Annotated, Any, TypedDict

from golddigger.domain.values import ChatTurn, GovernanceDecision


class RequestState(TypedDict, total=False):
    """State of one chat request.

    Fields are grouped into:

    - **Identity**: ``thread_id``
    - **Input**: ``original_query``, ``query`` (sanitized before dispatch),
      ``history``, ``force_label``, ``quick_chat``
    - **Routing**: ``agent_label``, ``stage``
    - **Governance**: ``governance``
    - **Output**: ``draft`` (dispatch result), ``response`` (final text,
      written once by ``finalize``)
    - **Accumulation**: ``stage_trail``
    - **Extensibility**: ``metadata``
    """

    # -- Identity
    thread_id: str

    # -- Input
    original_query: str
    query: str
    history: list[ChatTurn]
    force_label: str | None
    quick_chat: bool

    # -- Routing
    agent_label: str
    stage: str

    # -- Governance
    governance: GovernanceDecision | None

    # -- Output
    draft: str
    response: str

    # -- Append-only
    stage_trail: Annotated[list, operator.add]

    # -- Extensibility
    metadata: dict[str, Any]
