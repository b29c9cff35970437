"""Seven-node market research pipeline.

1. ``identify_niche``        light tier; falls back to the raw query
2. ``analyze_trends``        standard tier
3. ``analyze_competition``   standard tier
4. ``estimate_market_size``  standard tier (TAM / SAM / SOM)
5. ``identify_pain_points``  standard tier
6. ``score``                 :func:`calculate_opportunity_score`, no model call
7. ``recommendations``       premium tier, prompt keyed on the score tier

Nodes 1 to 5 never raise: unparseable or missing model output degrades to
defaults.  A failure of node 7 triggers the general premium fallback.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from golddigger.domain.enums import CompetitionLevel, GrowthRate, ModelTier, NodeStatus, OpportunityTier
from golddigger.domain.exceptions import AllTiersExhaustedError, ConfigurationError
from golddigger.domain.values import ChatTurn, NodeResult, OpportunityScore
from golddigger.infrastructure.llm import LLMError, LLMMessage
from golddigger.infrastructure.llm.router import TieredRouter
from golddigger.services.parsing import as_str_list, extract_json, label_text
from golddigger.services.personality import get_agent_prompt
from golddigger.services.scoring import calculate_opportunity_score

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

GENERAL_MARKET = "General Market"
NICHE_MAX_LENGTH = 80
DIVIDER = "=" * 56
FALLBACK_HISTORY_TURNS = 5

_MODEL_FAILURES = (AllTiersExhaustedError, ConfigurationError, LLMError)

DATA_SOURCE_NOTE = (
    "---\n⚠ DATA SOURCE NOTE: This analysis is based on the AI model's training data, "
    "not live market feeds. Market conditions, company financials, and competitive "
    "landscapes may have changed since the model's last training update.\n\n"
    "Disclaimer: This market research is for informational purposes only. Always "
    "validate findings with primary research and current data sources before making "
    "business decisions."
)

UNAVAILABLE_NOTE = (
    "\n\n---\nNote: The full research pipeline was unavailable. This is a general analysis "
    "based on AI training data only.\nDisclaimer: This market research is for "
    "informational purposes only. Always validate with current data sources."
)


def fallback_niche(query: str) -> str:
    """The raw query as a niche, truncated; very short queries become ``General Market``."""
    text = query.strip()
    if len(text) <= 3:
        return GENERAL_MARKET
    return text[:NICHE_MAX_LENGTH]


# -- Structured output schemas -----------------------------------------------


class _NodeOutput(BaseModel):
    """Lenient base: nulls take defaults, lists keep only their strings."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


def _lower(value: Any) -> str:
    return label_text(value).lower()


class NicheResult(_NodeOutput):
    niche: str = ""
    depth: str = "standard"
    query_understood: bool = False

    @field_validator("depth", mode="before")
    @classmethod
    def _depth(cls, value: Any) -> str:
        text = _lower(value)
        return text if text in ("quick", "standard", "deep") else "standard"

    @field_validator("query_understood", mode="before")
    @classmethod
    def _strict_true(cls, value: Any) -> bool:
        return value is True

    @field_validator("niche", mode="before")
    @classmethod
    def _niche(cls, value: Any) -> str:
        return str(value).strip()


class TrendsResult(_NodeOutput):
    growth_rate: GrowthRate = GrowthRate.STABLE
    seasonality: str = "moderate"
    key_trends: tuple[str, ...] = ()
    emerging_opportunities: tuple[str, ...] = ()

    @field_validator("growth_rate", mode="before")
    @classmethod
    def _growth(cls, value: Any) -> GrowthRate:
        try:
            return GrowthRate(_lower(value))
        except ValueError:
            return GrowthRate.STABLE

    @field_validator("seasonality", mode="before")
    @classmethod
    def _seasonality(cls, value: Any) -> str:
        return _lower(value) or "moderate"

    @field_validator("key_trends", "emerging_opportunities", mode="before")
    @classmethod
    def _strings(cls, value: Any) -> tuple[str, ...]:
        return tuple(as_str_list(value))


class CompetitionResult(_NodeOutput):
    competition_level: CompetitionLevel = CompetitionLevel.MEDIUM
    market_leaders: tuple[str, ...] = ()
    barriers_to_entry: tuple[str, ...] = ()
    differentiation_opportunities: tuple[str, ...] = ()

    @field_validator("competition_level", mode="before")
    @classmethod
    def _level(cls, value: Any) -> CompetitionLevel:
        try:
            return CompetitionLevel(_lower(value))
        except ValueError:
            return CompetitionLevel.MEDIUM

    @field_validator(
        "market_leaders", "barriers_to_entry", "differentiation_opportunities", mode="before"
    )
    @classmethod
    def _strings(cls, value: Any) -> tuple[str, ...]:
        return tuple(as_str_list(value))


class MarketSizeResult(_NodeOutput):
    estimated_tam: str = "N/A"
    estimated_sam: str = "N/A"
    estimated_som: str = "N/A"
    confidence_level: str = "medium"
    data_sources_note: str = ""

    @field_validator("estimated_tam", "estimated_sam", "estimated_som", "data_sources_note", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return str(value)

    @field_validator("confidence_level", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> str:
        text = _lower(value)
        return text if text in ("high", "medium", "low") else "medium"


class PainPointsResult(_NodeOutput):
    pain_points: tuple[str, ...] = ()
    severity_assessment: str = ""
    target_audience: tuple[str, ...] = ()

    @field_validator("pain_points", "target_audience", mode="before")
    @classmethod
    def _strings(cls, value: Any) -> tuple[str, ...]:
        return tuple(as_str_list(value))

    @field_validator("severity_assessment", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return str(value)


# -- Prompts -----------------------------------------------------------------

_NICHE_PROMPT = """You are a market research query analyzer. Extract the niche/market/industry from user queries.

Return a JSON object with exactly these fields:
- niche: The market/industry/niche identified (string)
- depth: One of "quick", "standard", or "deep" based on query complexity
- query_understood: boolean indicating if the query is clear

Only return valid JSON, no other text."""

_TRENDS_PROMPT = """You are a market trends analyst. Analyze trends for a given market niche.

Return a JSON object with exactly these fields:
- growth_rate: One of "growing", "stable", or "declining"
- seasonality: "high", "moderate", or "low"
- key_trends: list of 3-5 current market trends (strings)
- emerging_opportunities: list of 3-5 emerging opportunities (strings)

Base your analysis on current market knowledge. Only return valid JSON, no other text."""

_COMPETITION_PROMPT = """You are a competitive intelligence analyst. Analyze the competitive landscape.

Return a JSON object with exactly these fields:
- competition_level: One of "low", "medium", or "high"
- market_leaders: list of 3-5 major competitors/leaders (strings)
- barriers_to_entry: list of 3-5 barriers (strings)
- differentiation_opportunities: list of 3-5 ways to differentiate (strings)

Only return valid JSON, no other text."""

_MARKET_SIZE_PROMPT = """You are a market sizing analyst. Estimate TAM/SAM/SOM for a market niche.

Return a JSON object with exactly these fields:
- estimated_tam: estimated total addressable market in USD (number or string with estimate)
- estimated_sam: estimated serviceable addressable market in USD (number or string with estimate)
- estimated_som: estimated serviceable obtainable market in USD (number or string with estimate)
- confidence_level: "high", "medium", or "low"
- data_sources_note: brief note on data sources used (string)

Provide realistic estimates. Only return valid JSON, no other text."""

_PAIN_POINTS_PROMPT = """You are a customer research analyst. Identify pain points in a market niche.

Return a JSON object with exactly these fields:
- pain_points: list of 4-7 specific customer pain points (strings)
- severity_assessment: brief assessment of pain point severity (string)
- target_audience: list of 2-4 target audience segments (strings)

Focus on real, addressable pain points. Only return valid JSON, no other text."""

TIER_CONTEXT: dict[OpportunityTier, str] = {
    OpportunityTier.STRONG: (
        "This is a STRONG market opportunity with high growth potential, manageable "
        "competition, and significant addressable pain points."
    ),
    OpportunityTier.MODERATE: (
        "This is a MODERATE market opportunity with reasonable growth prospects and "
        "definable market niches."
    ),
    OpportunityTier.WEAK: (
        "This is a WEAK market opportunity with limited growth prospects or high "
        "competitive barriers."
    ),
}

_RECOMMENDATION_TASK = """

TASK: Generate wealth-focused strategic recommendations.

The opportunity tier for this market is: {tier} ({score}/100)
Context: {context}

Generate specific, ACTIONABLE recommendations that answer: "How does the user make money from this?"

STRUCTURE YOUR RESPONSE:
1. **Verdict**: One sentence. Is this worth pursuing? Yes/No/Conditional
2. **The Money Play**: The #1 way to profit from this market (invest in it, build for it, or leverage the trend)
3. **Picks & Shovels**: Who profits regardless of which specific company wins?
4. **Entry Strategy**: Specific steps to get started (timeline, capital needed, first moves)
5. **Risk Factors**: What could kill this opportunity (specific, not vague)
6. **30/90/365 Day View**: What to watch and when to act

Every recommendation must tie back to revenue potential, investment opportunity, or competitive advantage.
Be specific about stocks/ETFs to watch, business models to consider, or skills to develop.
Be concise but comprehensive. No fluff."""

_FALLBACK_TASK = (
    "\n\nThe automated research pipeline encountered an error. Provide the best market "
    "research analysis you can based on your training knowledge. Be thorough and structured."
)

_NEXT_STEPS = (
    "Validating key assumptions with customer interviews",
    "Analyzing specific competitive solutions in detail",
    "Building a prototype or MVP to test market fit",
    "Developing a go-to-market strategy",
    "Assessing resource requirements and timeline",
)


# -- Report ------------------------------------------------------------------


def _bullets(items: Sequence[str]) -> list[str]:
    return [f"  • {item}" for item in items]


def _signed(value: float) -> str:
    return f"{'+' if value >= 0 else ''}{value:g}"


@dataclass
class ResearchReport:
    """Result of one research run; ``fallback_text`` replaces it on total failure."""

    query: str
    niche: NodeResult[NicheResult] | None = None
    trends: NodeResult[TrendsResult] | None = None
    competition: NodeResult[CompetitionResult] | None = None
    market_size: NodeResult[MarketSizeResult] | None = None
    pain_points: NodeResult[PainPointsResult] | None = None
    score: OpportunityScore | None = None
    recommendations: str = ""
    fallback_text: str = ""

    @property
    def structured(self) -> bool:
        return not self.fallback_text and self.score is not None

    @property
    def niche_name(self) -> str:
        return self.niche.value.niche if self.niche else fallback_niche(self.query)

    def degraded_nodes(self) -> list[str]:
        nodes = {
            "identify_niche": self.niche,
            "analyze_trends": self.trends,
            "analyze_competition": self.competition,
            "estimate_market_size": self.market_size,
            "identify_pain_points": self.pain_points,
        }
        return [name for name, result in nodes.items() if result is not None and not result.ok]

    def render(self) -> str:
        """Fixed-section research report."""
        if not self.structured or not (
            self.trends and self.competition and self.market_size and self.pain_points
        ):
            return self.fallback_text

        niche = self.niche_name
        score = self.score
        trends = self.trends.value
        competition = self.competition.value
        size = self.market_size.value
        pains = self.pain_points.value
        notes = score.breakdown
        tier = score.tier.value.upper()

        lines = [
            f"MARKET RESEARCH REPORT: {niche.upper()}",
            "",
            f"OPPORTUNITY SCORE: {score.score:g}/100 ({tier})",
            "",
            DIVIDER,
            "",
            "EXECUTIVE SUMMARY",
            f"Market: {niche}",
            f"Opportunity Tier: {tier}",
            f"Confidence Score: {score.score:g}/100",
            "",
            DIVIDER,
            "",
            "MARKET TRENDS",
            f"Growth Rate: {trends.growth_rate.value}",
            f"Seasonality: {trends.seasonality}",
            "Key Trends:",
            *_bullets(trends.key_trends),
            "Emerging Opportunities:",
            *_bullets(trends.emerging_opportunities),
            "",
            "COMPETITIVE LANDSCAPE",
            f"Competition Level: {competition.competition_level.value}",
            "Market Leaders:",
            *_bullets(competition.market_leaders),
            "Barriers to Entry:",
            *_bullets(competition.barriers_to_entry),
            "Differentiation Opportunities:",
            *_bullets(competition.differentiation_opportunities),
            "",
            "MARKET SIZING",
            f"TAM (Total Addressable Market): {size.estimated_tam}",
            f"SAM (Serviceable Addressable Market): {size.estimated_sam}",
            f"SOM (Serviceable Obtainable Market): {size.estimated_som}",
            f"Data Confidence: {size.confidence_level}",
            f"Sources: {size.data_sources_note or 'N/A'}",
            "",
            "CUSTOMER PAIN POINTS",
            "Target Audience Segments:",
            *_bullets(pains.target_audience),
            "",
            "Pain Points:",
            *_bullets(pains.pain_points),
            f"Severity: {pains.severity_assessment}",
            "",
            "SCORE BREAKDOWN",
            f"  Base Score:             {notes.base:g}",
            f"  Growth Adjustment:      {_signed(notes.growth_adjustment)}",
            f"  Competition Adjustment: {_signed(notes.competition_adjustment)}",
            f"  Pain Points Bonus:      +{notes.pain_points_adjustment:g}",
            f"  Final Score:            {score.score:g}/100",
            "",
            "STRATEGIC RECOMMENDATIONS",
            self.recommendations,
            "",
            DIVIDER,
            "",
            "NEXT STEPS",
            "Based on this research, consider:",
            *(f"  {i}. {step}" for i, step in enumerate(_NEXT_STEPS, start=1)),
            "",
            DATA_SOURCE_NOTE,
        ]
        return "\n".join(lines)


# -- Pipeline ----------------------------------------------------------------


class ResearchPipeline:
    """Runs the seven research nodes against a router.

    Parameters
    ----------
    router:
        Tiered model router.
    profile:
        Optional user profile folded into the persona prompt.
    include_identity:
        Whether the persona prompt carries the core identity block.
    """

    def __init__(
        self,
        router: TieredRouter,
        profile: Any = None,
        include_identity: bool = True,
    ) -> None:
        self._router = router
        self._profile = profile
        self._include_identity = include_identity

    def _persona(self) -> str:
        return get_agent_prompt("research", self._profile, self._include_identity)

    def _structured(
        self, task: str, content: str, system_prompt: str, schema: type[M]
    ) -> NodeResult[M]:
        """Ask for JSON and validate it into *schema*, degrading to its defaults."""
        try:
            raw = self._router.invoke_task(task, [LLMMessage("user", content)], system_prompt)
        except _MODEL_FAILURES as exc:
            logger.warning("%s: model unavailable, using defaults: %s", task, exc)
            return NodeResult.unavailable(schema(), "model unavailable")
        data = extract_json(raw, fallback={})
        if not data:
            return NodeResult.degraded(schema(), "unparseable model output")
        try:
            return NodeResult(schema.model_validate(data))
        except ValidationError as exc:
            logger.warning("%s: invalid fields, using defaults: %s", task, exc)
            return NodeResult.degraded(schema(), "invalid model output")

    # -- nodes -----------------------------------------------------------------

    def identify_niche(self, query: str) -> NodeResult[NicheResult]:
        """Extract the niche; an unclear answer falls back to the raw query."""
        result = self._structured(
            "identify_niche",
            f"Analyze this market research query and extract the niche: {query}",
            _NICHE_PROMPT,
            NicheResult,
        )
        niche = result.value
        if niche.query_understood and niche.niche and "unknown" not in niche.niche.lower():
            logger.info("Niche identified: %r (depth: %s)", niche.niche, niche.depth)
            return result

        fallback = fallback_niche(query)
        logger.warning("Niche unclear, using fallback: %r", fallback)
        value = NicheResult(niche=fallback, depth=niche.depth, query_understood=True)
        status = result.status if result.status is NodeStatus.UNAVAILABLE else NodeStatus.DEGRADED
        return NodeResult(value, status, "raw query used as niche")

    def analyze_trends(self, niche: str) -> NodeResult[TrendsResult]:
        return self._structured(
            "analyze_trends",
            f"Analyze current trends and opportunities in the {niche} market:",
            _TRENDS_PROMPT,
            TrendsResult,
        )

    def analyze_competition(self, niche: str) -> NodeResult[CompetitionResult]:
        return self._structured(
            "analyze_competition",
            f"Analyze the competitive landscape in the {niche} market:",
            _COMPETITION_PROMPT,
            CompetitionResult,
        )

    def estimate_market_size(self, niche: str) -> NodeResult[MarketSizeResult]:
        result = self._structured(
            "estimate_market_size",
            f"Estimate the market size (TAM/SAM/SOM) for the {niche} market:",
            _MARKET_SIZE_PROMPT,
            MarketSizeResult,
        )
        if not result.ok:
            value = MarketSizeResult(confidence_level="low", data_sources_note="Estimates unavailable")
            return NodeResult(value, result.status, result.note)
        return result

    def identify_pain_points(self, niche: str) -> NodeResult[PainPointsResult]:
        result = self._structured(
            "identify_pain_points",
            f"Identify the key pain points and target audiences in the {niche} market:",
            _PAIN_POINTS_PROMPT,
            PainPointsResult,
        )
        if not result.ok:
            return NodeResult(
                PainPointsResult(severity_assessment="Unable to assess"), result.status, result.note
            )
        return result

    @staticmethod
    def score(
        trends: TrendsResult, competition: CompetitionResult, pains: PainPointsResult
    ) -> OpportunityScore:
        score = calculate_opportunity_score(
            trends.growth_rate, competition.competition_level, pains.pain_points
        )
        logger.info("Opportunity score: %g/100 (%s)", score.score, score.tier.value)
        return score

    def recommendations(
        self,
        niche: str,
        trends: TrendsResult,
        competition: CompetitionResult,
        market_size: MarketSizeResult,
        pains: PainPointsResult,
        score: OpportunityScore,
    ) -> str:
        """Premium strategic recommendations for the scored niche.

        Raises
        ------
        AllTiersExhaustedError, ConfigurationError
            When no model can answer.
        """
        system_prompt = self._persona() + _RECOMMENDATION_TASK.format(
            tier=score.tier.value.upper(),
            score=f"{score.score:g}",
            context=TIER_CONTEXT[score.tier],
        )
        summary = {
            "niche": niche,
            "score": score.score,
            "tier": score.tier.value,
            "trends": trends.model_dump(mode="json"),
            "competition": competition.model_dump(mode="json"),
            "market_size": market_size.model_dump(mode="json"),
            "pain_points": pains.model_dump(mode="json"),
        }
        return self._router.invoke_task(
            "generate_research_recommendations",
            [
                LLMMessage(
                    "user",
                    "Generate strategic recommendations based on this market research:\n"
                    + json.dumps(summary, indent=2),
                )
            ],
            system_prompt,
        )

    # -- run -------------------------------------------------------------------

    def run(self, query: str, history: Sequence[Any] = ()) -> ResearchReport:
        """Run all seven nodes.

        Raises
        ------
        AllTiersExhaustedError, ConfigurationError
            Only when the recommendations node and the general fallback both fail.
        """
        logger.info("Starting research pipeline")
        report = ResearchReport(query=query)
        report.niche = self.identify_niche(query)
        niche = report.niche.value.niche
        report.trends = self.analyze_trends(niche)
        report.competition = self.analyze_competition(niche)
        report.market_size = self.estimate_market_size(niche)
        report.pain_points = self.identify_pain_points(niche)
        report.score = self.score(
            report.trends.value, report.competition.value, report.pain_points.value
        )
        try:
            report.recommendations = self.recommendations(
                niche,
                report.trends.value,
                report.competition.value,
                report.market_size.value,
                report.pain_points.value,
                report.score,
            )
        except _MODEL_FAILURES as exc:
            logger.error("Research pipeline failed, using general fallback: %s", exc)
            report.fallback_text = self._fallback(query, history)
            return report

        logger.info(
            "Research pipeline complete: %r -> %g/100 (%s)",
            niche,
            report.score.score,
            report.score.tier.value,
        )
        degraded = report.degraded_nodes()
        if degraded:
            logger.warning("Research pipeline degraded nodes: %s", ", ".join(degraded))
        return report

    def _fallback(self, query: str, history: Sequence[Any]) -> str:
        turns = [ChatTurn.from_any(t) for t in history][-FALLBACK_HISTORY_TURNS:]
        messages = [LLMMessage(t.role, t.content) for t in turns]
        messages.append(LLMMessage("user", query))
        response = self._router.invoke(ModelTier.PREMIUM, messages, self._persona() + _FALLBACK_TASK)
        return response + UNAVAILABLE_NOTE
