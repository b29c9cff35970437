"""Shared fixtures for the Gold Digger test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from golddigger.domain.enums import BackendKind, TrendDirection
from golddigger.graph.context import PipelineContext, build_context
from golddigger.infrastructure.config import AppConfig
from golddigger.infrastructure.llm.router import TieredRouter
from golddigger.infrastructure.market_data import FundamentalData, MarketSnapshot
from golddigger.infrastructure.memory_store import MemoryStore
from golddigger.testing import ScriptedBackend, StaticMarketFeed, bullish_overview
from tests.helpers.scripts import RESEARCH_REPLIES, investment_replies

# ---------------------------------------------------------------------------
# Market fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def aapl_snapshot() -> MarketSnapshot:
    """A live AAPL snapshot in an uptrend."""
    return MarketSnapshot(
        symbol="AAPL",
        current_price=190.25,
        price_change_24h=1.35,
        volume=52_000_000,
        market_cap=2.95e12,
        high_52w=199.62,
        low_52w=164.08,
        sma20=186.4,
        sma50=181.9,
        trend=TrendDirection.UPTREND,
        data_source="live",
    )


@pytest.fixture
def aapl_fundamentals() -> FundamentalData:
    return FundamentalData(
        company_name="Apple Inc.",
        sector="Technology",
        industry="Consumer Electronics",
        market_cap=2.95e12,
    )


@pytest.fixture
def market_feed(aapl_snapshot: MarketSnapshot, aapl_fundamentals: FundamentalData) -> StaticMarketFeed:
    """Feed with live AAPL data and three rising indices."""
    return StaticMarketFeed(
        snapshots={"AAPL": aapl_snapshot},
        fundamentals={"AAPL": aapl_fundamentals},
        index_changes={"SPY": 0.8, "QQQ": 1.1, "DIA": 0.4},
        overview=bullish_overview(),
    )


# ---------------------------------------------------------------------------
# Model and pipeline fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def backend() -> ScriptedBackend:
    """Scripted backend answering the classifier, both pipelines and chat."""
    return ScriptedBackend(
        {**investment_replies(), **RESEARCH_REPLIES},
        default="Happy to help. What would you like to look at today?",
    )


@pytest.fixture
def router(backend: ScriptedBackend) -> TieredRouter:
    return TieredRouter({BackendKind.OPENROUTER: backend})


@pytest.fixture
def memory_path(tmp_path: Path) -> Path:
    return tmp_path / "golddigger-memory.json"


@pytest.fixture
def memory(memory_path: Path) -> MemoryStore:
    return MemoryStore(memory_path)


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(openrouter_api_key="sk-or-test-0000000000000000000000")


@pytest.fixture
def context(
    app_config: AppConfig,
    router: TieredRouter,
    market_feed: StaticMarketFeed,
    memory: MemoryStore,
) -> PipelineContext:
    """A fully wired context with no network access."""
    return build_context(app_config, router=router, feed=market_feed, memory=memory)
