"""Collaborators shared by the orchestrator's nodes.

``PipelineContext`` bundles the configuration snapshot with everything
built from it (router, market feed, memory store, governor, pipelines).
It is created once by :func:`build_context` and captured by the node
closures, so the graph state itself stays plain data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from golddigger.infrastructure.config import AppConfig, load_config
from golddigger.infrastructure.llm.factory import build_router
from golddigger.infrastructure.llm.router import TieredRouter
from golddigger.infrastructure.market_data import MarketFeed, YahooFinanceClient
from golddigger.infrastructure.memory_store import MemoryStore
from golddigger.services.governor import SafetyGovernor
from golddigger.services.investment import InvestmentPipeline
from golddigger.services.research import ResearchPipeline

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    """Everything one orchestrator needs to serve requests.

    Attributes
    ----------
    memory:
        ``None`` disables memory writes.
    """

    config: AppConfig
    router: TieredRouter
    feed: MarketFeed
    governor: SafetyGovernor
    investment: InvestmentPipeline
    research: ResearchPipeline
    memory: MemoryStore | None = None

    @property
    def include_identity(self) -> bool:
        return self.config.preferences.enable_personality


def build_context(
    config: AppConfig | None = None,
    *,
    router: TieredRouter | None = None,
    feed: MarketFeed | None = None,
    memory: MemoryStore | None = None,
    governor: SafetyGovernor | None = None,
    use_memory: bool = True,
) -> PipelineContext:
    """Assemble a :class:`PipelineContext`.

    Parameters
    ----------
    config:
        Configuration snapshot.  Loaded with :func:`load_config` if omitted.
    router, feed, memory, governor:
        Pre-built collaborators replacing the ones derived from *config*.
    use_memory:
        When ``False`` and no *memory* is given, no memory store is used.
    """
    config = config if config is not None else load_config()
    prefs = config.preferences

    if router is None:
        router = build_router(config)
    if feed is None:
        feed = YahooFinanceClient()
    if memory is None and use_memory:
        memory = MemoryStore()
    if governor is None:
        # blocking checks always run; the switches only gate the disclaimer
        governor = SafetyGovernor(
            enable_disclaimers=prefs.enable_disclaimers and prefs.enable_safety_governor
        )

    profile = config.user_profile
    context = PipelineContext(
        config=config,
        router=router,
        feed=feed,
        governor=governor,
        investment=InvestmentPipeline(router, feed, profile, prefs.enable_personality),
        research=ResearchPipeline(router, profile, prefs.enable_personality),
        memory=memory,
    )
    logger.debug(
        "Pipeline context ready: mode=%s, memory=%s",
        router.mode.value,
        memory.path if memory is not None else None,
    )
    return context
