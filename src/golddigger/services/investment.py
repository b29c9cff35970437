"""Six-node investment analysis pipeline.

Nodes, in order:

1. ``parse_query``        light tier, ticker/asset class/timeframe extraction
2. ``market_snapshot``    live price data from the market feed
3. ``fundamentals``       quoteSummary fields + standard-tier interpretation
4. ``technicals``         moving-average view + standard-tier interpretation
5. ``sentiment``          broad-index tally + standard-tier interpretation
6. ``recommendation``     premium-tier synthesis into a structured trade idea

Every node returns a :class:`NodeResult`; a failing node degrades its own
output and the pipeline carries on.  Only a failure of the final synthesis
aborts the structured run, in which case :meth:`InvestmentPipeline.run`
falls back to a single premium call with a "live data unavailable" note.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from golddigger.domain.enums import AssetType, ModelTier, NodeStatus, Sentiment, TradeAction
from golddigger.domain.exceptions import AllTiersExhaustedError, ConfigurationError
from golddigger.domain.values import ChatTurn, NodeResult
from golddigger.infrastructure.llm import LLMError, LLMMessage
from golddigger.infrastructure.llm.router import TieredRouter
from golddigger.infrastructure.market_data import (
    MARKET_INDICES,
    TIMEFRAME_RANGES,
    FundamentalData,
    IndexChange,
    MarketFeed,
    MarketSnapshot,
    tally_sentiment,
)
from golddigger.services.fallbacks import find_tickers
from golddigger.services.parsing import (
    as_float,
    as_str_list,
    extract_json,
    fmt_currency,
    fmt_percent,
    label_text,
)
from golddigger.services.personality import get_agent_prompt

logger = logging.getLogger(__name__)

DEFAULT_SYMBOL = "SPY"
FALLBACK_HISTORY_TURNS = 5

UNAVAILABLE_NOTE = (
    "\n\n---\nNote: Live market analysis was unavailable. This response is based on "
    "general knowledge.\nDisclaimer: This is analysis only, not financial advice."
)

# Router failures a node absorbs by degrading its own output.
_MODEL_FAILURES = (AllTiersExhaustedError, ConfigurationError, LLMError)


# -- Structured output schemas -----------------------------------------------


class ParsedQuery(BaseModel):
    """What the user asked about."""

    model_config = ConfigDict(frozen=True)

    symbol: str = DEFAULT_SYMBOL
    asset_type: AssetType = AssetType.STOCK
    timeframe: str = "1y"

    @field_validator("symbol", mode="before")
    @classmethod
    def _upper_symbol(cls, value: Any) -> str:
        text = str(value or "").strip().upper()
        return text or DEFAULT_SYMBOL

    @field_validator("asset_type", mode="before")
    @classmethod
    def _known_asset(cls, value: Any) -> AssetType:
        try:
            return AssetType(label_text(value).lower())
        except ValueError:
            return AssetType.STOCK

    @field_validator("timeframe", mode="before")
    @classmethod
    def _known_timeframe(cls, value: Any) -> str:
        text = str(value or "").strip().lower()
        return text if text in TIMEFRAME_RANGES else "1y"


class Recommendation(BaseModel):
    """Premium-tier trade idea.  Every field has a default."""

    model_config = ConfigDict(frozen=True)

    action: TradeAction = TradeAction.HOLD
    confidence: float = 50.0
    position_type: str = "NONE"
    timeframe: str = "MEDIUM_TERM"
    entry_price: float | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    risk_level: str = "MEDIUM"
    signal: str = ""
    opportunity: str = ""
    reasoning: str = "Insufficient data for detailed reasoning"
    risk_warning: str = ""
    key_factors: tuple[str, ...] = ()
    action_today: str = ""

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # null fields take their defaults
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @field_validator("action", mode="before")
    @classmethod
    def _known_action(cls, value: Any) -> TradeAction:
        try:
            return TradeAction(label_text(value).upper())
        except ValueError:
            return TradeAction.HOLD

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        number = as_float(value)
        return 50.0 if number is None else max(0.0, min(100.0, number))

    @field_validator("entry_price", "stop_loss", "take_profit", mode="before")
    @classmethod
    def _price(cls, value: Any) -> float | None:
        return as_float(value)

    @field_validator("position_type", "timeframe", "risk_level", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> str:
        return str(value).strip().upper()

    @field_validator("signal", "opportunity", "reasoning", "risk_warning", "action_today", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return value if isinstance(value, str) else str(value)

    @field_validator("key_factors", mode="before")
    @classmethod
    def _factors(cls, value: Any) -> tuple[str, ...]:
        return tuple(as_str_list(value))

    @property
    def risk_reward_ratio(self) -> str | None:
        """``"2.0"``-style reward/risk ratio, when all three prices are positive."""
        entry, stop, target = self.entry_price, self.stop_loss, self.take_profit
        if not (entry and stop and target) or min(entry, stop, target) <= 0:
            return None
        risk = abs(entry - stop)
        if risk == 0:
            return "N/A"
        return f"{abs(target - entry) / risk:.1f}"


# -- Node records ------------------------------------------------------------


@dataclass(frozen=True)
class Fundamentals:
    data: FundamentalData
    summary: str = ""


@dataclass(frozen=True)
class TechnicalView:
    snapshot: MarketSnapshot
    interpretation: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_price": self.snapshot.current_price,
            "trend": self.snapshot.trend.value,
            "sma_20": self.snapshot.sma20,
            "sma_50": self.snapshot.sma50,
            "52_week_high": self.snapshot.high_52w,
            "52_week_low": self.snapshot.low_52w,
        }


@dataclass(frozen=True)
class SentimentView:
    overall: Sentiment = Sentiment.NEUTRAL
    bullish_indices: int = 0
    bearish_indices: int = 0
    indices: tuple[IndexChange, ...] = ()
    interpretation: str = ""

    def index_data(self) -> dict[str, Any]:
        return {change.symbol: change.to_dict() for change in self.indices}


# -- Report ------------------------------------------------------------------


@dataclass
class InvestmentReport:
    """Everything one pipeline run produced.

    ``fallback_text`` is set (and the node fields left ``None``) when the
    structured run failed and a general premium answer was used instead.
    """

    query: str
    parsed: NodeResult[ParsedQuery] | None = None
    snapshot: NodeResult[MarketSnapshot] | None = None
    fundamentals: NodeResult[Fundamentals | None] | None = None
    technicals: NodeResult[TechnicalView] | None = None
    sentiment: NodeResult[SentimentView] | None = None
    recommendation: NodeResult[Recommendation] | None = None
    market_context: dict[str, Any] = field(default_factory=dict)
    fallback_text: str = ""

    @property
    def symbol(self) -> str | None:
        return self.parsed.value.symbol if self.parsed else None

    @property
    def structured(self) -> bool:
        return self.recommendation is not None

    def degraded_nodes(self) -> list[str]:
        nodes = {
            "parse_query": self.parsed,
            "market_snapshot": self.snapshot,
            "fundamentals": self.fundamentals,
            "technicals": self.technicals,
            "sentiment": self.sentiment,
            "recommendation": self.recommendation,
        }
        return [name for name, result in nodes.items() if result is not None and not result.ok]

    def render(self) -> str:
        """Daily Radar report text (or the fallback answer)."""
        if not self.structured or not (self.parsed and self.snapshot and self.technicals and self.sentiment):
            return self.fallback_text

        rec = self.recommendation.value
        snap = self.snapshot.value
        symbol = self.parsed.value.symbol
        lines: list[str] = [f"**{rec.action.value} {symbol}** - Confidence: {rec.confidence:g}%", ""]

        if rec.signal:
            lines.append(f"**SIGNAL:** {rec.signal}")
        elif snap.is_live:
            lines.append(
                f"**SIGNAL:** {symbol} trading at {fmt_currency(snap.current_price)} "
                f"({fmt_percent(snap.price_change_24h)} today), {snap.trend.value}"
            )
        lines.append("")
        if rec.opportunity:
            lines.append(f"**OPPORTUNITY:** {rec.opportunity}")
        lines.append("")

        lines.append("**TRADE SETUP:**")
        lines.append(
            f"Position: {rec.position_type} | Timeframe: {rec.timeframe} | Risk: {rec.risk_level}"
        )
        lines.append(
            f"Entry: {fmt_currency(rec.entry_price)} | Stop Loss: {fmt_currency(rec.stop_loss)}"
            f" | Take Profit: {fmt_currency(rec.take_profit)}"
        )
        ratio = rec.risk_reward_ratio
        if ratio is not None:
            lines.append(f"Risk/Reward Ratio: 1:{ratio}")
        lines.append("")

        lines.append(f"**ANALYSIS:** {rec.reasoning}")
        lines.append("")
        if rec.key_factors:
            lines.append("**KEY FACTORS:**")
            lines.extend(f"• {factor}" for factor in rec.key_factors)
            lines.append("")
        if rec.risk_warning:
            lines.extend([f"**RISK:** {rec.risk_warning}", ""])
        if rec.action_today:
            lines.extend([f"**ACTION TODAY:** {rec.action_today}", ""])

        lines.extend(["---", ""])
        fundamentals = self.fundamentals.value if self.fundamentals else None
        if fundamentals is not None and fundamentals.summary:
            lines.extend([f"**Fundamentals:** {fundamentals.summary}", ""])
        lines.extend([f"**Technicals:** {self.technicals.value.interpretation}", ""])
        lines.extend([f"**Sentiment:** {self.sentiment.value.interpretation}", ""])

        lines.append("---")
        if snap.is_live:
            lines.append(
                f"Live Data: {fmt_currency(snap.current_price)} | "
                f"{fmt_percent(snap.price_change_24h)} today | {snap.trend.value.upper()}"
            )
            lines.append(
                f"SMA-20: {fmt_currency(snap.sma20)} | SMA-50: {fmt_currency(snap.sma50)} | "
                f"52W: {fmt_currency(snap.low_52w)} - {fmt_currency(snap.high_52w)}"
            )
        else:
            lines.append(
                "⚠ Live market data was unavailable. Price targets are estimates, "
                "verify before acting."
            )
        return "\n".join(lines)


# -- Prompts -----------------------------------------------------------------

_PARSE_PROMPT = """You are an investment query parser. Extract investment parameters from user queries.

Return a JSON object with exactly these fields:
- symbol: The ticker symbol in UPPERCASE (e.g., "AAPL", "BTC")
- asset_type: One of "stock", "crypto", "etf", or "forex"
- timeframe: One of "1d", "1w", "1m", "3m", "6m", "1y", "5y", or "all"

Only return valid JSON, no other text."""

_FUNDAMENTALS_PROMPT = (
    "You are a financial analyst. Provide a brief 2-3 sentence interpretation of "
    "fundamental metrics.\nFocus on investment implications. Be concise and professional."
)

_TECHNICALS_PROMPT = (
    "You are a technical analyst. Provide a brief technical interpretation (2-3 sentences).\n"
    "Analyze the trend and moving averages. Focus on actionable insights."
)

_SENTIMENT_PROMPT = (
    "You are a market sentiment analyst. Analyze the overall market sentiment for a {asset_type}.\n"
    "Provide a brief 2-3 sentence interpretation of market conditions and how they "
    "affect {symbol}."
)

_RECOMMENDATION_TASK = """

TASK: Generate a detailed investment recommendation using the DAILY RADAR format.

Return ONLY a valid JSON object with these fields:
- action: "BUY", "SELL", "HOLD", or "AVOID"
- confidence: number between 0 and 100
- position_type: "LONG", "SHORT", or "NONE"
- timeframe: "SHORT_TERM", "MEDIUM_TERM", or "LONG_TERM"
- entry_price: suggested entry price (float), SPECIFIC to the current data
- stop_loss: suggested stop-loss price (float) based on key support levels
- take_profit: suggested take-profit price (float) based on resistance levels or targets
- risk_level: "LOW", "MEDIUM", or "HIGH"
- signal: 1-2 sentence summary of what's happening with this asset RIGHT NOW
- opportunity: 1-2 sentences on how to profit from this (the trade setup, the edge)
- reasoning: 2-3 sentence explanation including the bull AND bear case
- risk_warning: 1-2 sentences on specific scenarios that could go wrong
- key_factors: list of 3-4 main factors affecting the recommendation
- action_today: ONE specific, executable thing the user can do RIGHT NOW

Be specific with prices based on current market data. Quantify the risk/reward ratio."""

_NO_LIVE_DATA = (
    "\nIMPORTANT: Live market data is currently unavailable. Use your best knowledge for "
    "price estimates but clearly note they may be outdated."
)

_FALLBACK_TASK = (
    "\n\nThe automated pipeline encountered an error. Provide the best investment analysis "
    "you can based on your training knowledge. Be honest about not having live data."
)


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


# -- Pipeline ----------------------------------------------------------------


class InvestmentPipeline:
    """Runs the six investment nodes against a router and a market feed.

    Parameters
    ----------
    router:
        Tiered model router.
    feed:
        Market data source.
    profile:
        Optional user profile folded into the persona prompts.
    include_identity:
        Whether persona prompts carry the core identity block.
    """

    def __init__(
        self,
        router: TieredRouter,
        feed: MarketFeed,
        profile: Any = None,
        include_identity: bool = True,
    ) -> None:
        self._router = router
        self._feed = feed
        self._profile = profile
        self._include_identity = include_identity

    def _persona(self) -> str:
        return get_agent_prompt("investment", self._profile, self._include_identity)

    def _ask(self, task: str, content: str, system_prompt: str) -> str:
        return self._router.invoke_task(task, [LLMMessage("user", content)], system_prompt)

    # -- node 1 ----------------------------------------------------------------

    def parse_query(self, query: str) -> NodeResult[ParsedQuery]:
        """Extract symbol, asset class and timeframe.

        Falls back to the first ticker-like token in *query* (or ``SPY``)
        when the model is unreachable or its reply is not JSON.
        """
        guess = next(iter(find_tickers(query)), DEFAULT_SYMBOL)
        fallback = {"symbol": guess, "asset_type": "stock", "timeframe": "1y"}
        status = NodeStatus.OK
        try:
            raw = self._ask(
                "parse_query",
                f"Extract investment parameters from this query: {query}",
                _PARSE_PROMPT,
            )
        except _MODEL_FAILURES as exc:
            logger.warning("parse_query: model unavailable, guessing %s: %s", guess, exc)
            raw, status = "", NodeStatus.UNAVAILABLE
        data = extract_json(raw, fallback={})
        if not data:
            data = fallback
            if status is NodeStatus.OK:
                status = NodeStatus.DEGRADED

        try:
            parsed = ParsedQuery.model_validate(data)
        except ValidationError as exc:
            logger.warning("parse_query: invalid fields, guessing %s: %s", guess, exc)
            parsed, status = ParsedQuery(symbol=guess), NodeStatus.DEGRADED
        logger.info(
            "Parsed: %s (%s), %s", parsed.symbol, parsed.asset_type.value, parsed.timeframe
        )
        return NodeResult(parsed, status)

    # -- node 2 ----------------------------------------------------------------

    def market_snapshot(self, parsed: ParsedQuery) -> NodeResult[MarketSnapshot]:
        try:
            snapshot = self._feed.fetch_snapshot(parsed.symbol, parsed.asset_type, parsed.timeframe)
        except Exception as exc:
            logger.warning("market_snapshot: feed failed for %s: %s", parsed.symbol, exc)
            snapshot = MarketSnapshot.unavailable(parsed.symbol)
        if snapshot.is_live:
            return NodeResult(snapshot)
        return NodeResult.unavailable(snapshot, "live market data unavailable")

    # -- node 3 ----------------------------------------------------------------

    def fundamentals(
        self, parsed: ParsedQuery, snapshot: MarketSnapshot
    ) -> NodeResult[Fundamentals | None]:
        """Fundamentals for equities and funds; ``None`` for crypto and forex."""
        if parsed.asset_type not in (AssetType.STOCK, AssetType.ETF):
            logger.info("Skipping fundamentals for %s", parsed.asset_type.value)
            return NodeResult(None, note=f"not applicable to {parsed.asset_type.value}")

        try:
            data = self._feed.fetch_fundamentals(parsed.symbol)
        except Exception as exc:
            logger.warning("fundamentals: feed failed for %s: %s", parsed.symbol, exc)
            data = None
        status = NodeStatus.OK
        if data is None:
            data = FundamentalData(company_name=parsed.symbol, market_cap=snapshot.market_cap)
            status = NodeStatus.DEGRADED
        try:
            summary = self._ask(
                "interpret_fundamentals",
                f"Interpret these fundamental metrics for {parsed.symbol}:\n{_to_json(data.to_dict())}",
                _FUNDAMENTALS_PROMPT,
            )
        except _MODEL_FAILURES as exc:
            logger.warning("fundamentals: interpretation unavailable: %s", exc)
            return NodeResult.unavailable(Fundamentals(data), "interpretation unavailable")
        return NodeResult(Fundamentals(data, summary), status)

    # -- node 4 ----------------------------------------------------------------

    def technicals(self, symbol: str, snapshot: MarketSnapshot) -> NodeResult[TechnicalView]:
        view = TechnicalView(snapshot)
        try:
            text = self._ask(
                "interpret_technicals",
                f"Interpret this technical data for {symbol}:\n{_to_json(view.to_dict())}",
                _TECHNICALS_PROMPT,
            )
        except _MODEL_FAILURES as exc:
            logger.warning("technicals: interpretation unavailable: %s", exc)
            return NodeResult.unavailable(
                TechnicalView(snapshot, "Technical interpretation unavailable."),
                "interpretation unavailable",
            )
        status = NodeStatus.OK if snapshot.is_live else NodeStatus.DEGRADED
        return NodeResult(TechnicalView(snapshot, text), status)

    # -- node 5 ----------------------------------------------------------------

    def sentiment(self, parsed: ParsedQuery) -> NodeResult[SentimentView]:
        """Tally the major indices, then interpret the tally."""
        try:
            changes = list(self._feed.fetch_index_changes(MARKET_INDICES))
        except Exception as exc:
            logger.warning("sentiment: index feed failed: %s", exc)
            changes = []
        overall, bullish, bearish = tally_sentiment(changes)
        view = SentimentView(overall, bullish, bearish, tuple(changes))

        system_prompt = _SENTIMENT_PROMPT.format(
            asset_type=parsed.asset_type.value, symbol=parsed.symbol
        )
        try:
            text = self._ask(
                "interpret_sentiment",
                f"Current market sentiment data:\n{_to_json(view.index_data())}\n\n"
                f"Asset: {parsed.symbol} ({parsed.asset_type.value})",
                system_prompt,
            )
        except _MODEL_FAILURES as exc:
            logger.warning("sentiment: interpretation unavailable: %s", exc)
            return NodeResult.unavailable(
                SentimentView(overall, bullish, bearish, tuple(changes),
                              f"Broad market tally: {overall.value}."),
                "interpretation unavailable",
            )
        result = SentimentView(overall, bullish, bearish, tuple(changes), text)
        if not changes:
            return NodeResult.degraded(result, "no index data")
        return NodeResult(result)

    # -- node 6 ----------------------------------------------------------------

    def market_context(self) -> dict[str, Any]:
        """Best-effort overview and sector context; ``{}`` when unavailable."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            overview_future = pool.submit(self._feed.get_market_overview)
            sectors_future = pool.submit(self._feed.get_sector_performance)
            try:
                overview = overview_future.result()
                sectors = sectors_future.result()
            except Exception as exc:
                logger.warning("Market context enrichment failed, continuing without it: %s", exc)
                return {}
        if overview.error:
            return {}
        return {
            "marketSentiment": overview.sentiment.value,
            "vixLevel": overview.vix_level,
            "fearGreedEstimate": overview.fear_greed_estimate,
            "topSector": sectors.top_sector,
            "weakestSector": sectors.weakest_sector,
        }

    def recommendation(
        self,
        parsed: ParsedQuery,
        snapshot: MarketSnapshot,
        fundamentals: Fundamentals | None,
        technicals: TechnicalView,
        sentiment: SentimentView,
        context: dict[str, Any],
    ) -> NodeResult[Recommendation]:
        """Premium synthesis of every prior node.

        Raises
        ------
        AllTiersExhaustedError, ConfigurationError
            When no model can produce the synthesis.
        """
        summary: dict[str, Any] = {
            "symbol": parsed.symbol,
            "asset_type": parsed.asset_type.value,
            "market_data": snapshot.to_dict(),
            "fundamental_analysis": (
                {**fundamentals.data.to_dict(), "summary": fundamentals.summary}
                if fundamentals
                else None
            ),
            "technical_analysis": {**technicals.to_dict(), "interpretation": technicals.interpretation},
            "market_sentiment": {
                "overall_sentiment": sentiment.overall.value,
                "bullish_indices": sentiment.bullish_indices,
                "bearish_indices": sentiment.bearish_indices,
                "index_data": sentiment.index_data(),
                "interpretation": sentiment.interpretation,
            },
        }
        if context:
            summary["broader_market"] = context

        system_prompt = self._persona() + _RECOMMENDATION_TASK
        if not snapshot.is_live:
            system_prompt += "\n" + _NO_LIVE_DATA
        raw = self._ask(
            "generate_recommendation",
            f"Generate investment recommendation for this analysis:\n{_to_json(summary)}",
            system_prompt,
        )

        live_entry = snapshot.current_price if snapshot.is_live else None
        data = extract_json(raw, fallback={})
        status = NodeStatus.OK
        if not data:
            status = NodeStatus.DEGRADED
            data = {
                "risk_level": "HIGH",
                "reasoning": raw[:300] or None,
                "key_factors": ["Analysis data was partially available"],
            }
        if data.get("entry_price") is None:
            data["entry_price"] = live_entry
        try:
            rec = Recommendation.model_validate(data)
        except ValidationError as exc:
            logger.warning("recommendation: invalid fields, using defaults: %s", exc)
            rec, status = Recommendation(entry_price=live_entry, risk_level="HIGH"), NodeStatus.DEGRADED
        return NodeResult(rec, status)

    # -- run -------------------------------------------------------------------

    def run(self, query: str, history: Sequence[Any] = ()) -> InvestmentReport:
        """Run all six nodes.

        Raises
        ------
        AllTiersExhaustedError, ConfigurationError
            Only when the structured run and the general fallback both fail.
        """
        logger.info("Starting investment pipeline")
        report = InvestmentReport(query=query)
        try:
            report.parsed = self.parse_query(query)
            parsed = report.parsed.value
            report.snapshot = self.market_snapshot(parsed)
            snapshot = report.snapshot.value
            report.fundamentals = self.fundamentals(parsed, snapshot)
            report.technicals = self.technicals(parsed.symbol, snapshot)
            report.sentiment = self.sentiment(parsed)
            report.market_context = self.market_context()
            report.recommendation = self.recommendation(
                parsed,
                snapshot,
                report.fundamentals.value,
                report.technicals.value,
                report.sentiment.value,
                report.market_context,
            )
        except _MODEL_FAILURES as exc:
            logger.error("Investment pipeline failed, using general fallback: %s", exc)
            report.recommendation = None
            report.fallback_text = self._fallback(query, history)
            return report
        except Exception as exc:
            logger.exception("Investment pipeline error, using general fallback: %s", exc)
            report.recommendation = None
            report.fallback_text = self._fallback(query, history)
            return report

        rec = report.recommendation.value
        logger.info(
            "Pipeline complete: %s -> %s (%g%% confidence)",
            parsed.symbol,
            rec.action.value,
            rec.confidence,
        )
        degraded = report.degraded_nodes()
        if degraded:
            logger.warning("Investment pipeline degraded nodes: %s", ", ".join(degraded))
        return report

    def _fallback(self, query: str, history: Sequence[Any]) -> str:
        turns = [ChatTurn.from_any(t) for t in history][-FALLBACK_HISTORY_TURNS:]
        messages = [LLMMessage(t.role, t.content) for t in turns]
        messages.append(LLMMessage("user", query))
        response = self._router.invoke(ModelTier.PREMIUM, messages, self._persona() + _FALLBACK_TASK)
        return response + UNAVAILABLE_NOTE
