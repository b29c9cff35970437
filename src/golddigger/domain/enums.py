"""Domain enumerations for the Gold Digger pipeline.

These enums capture the fixed vocabularies used across the domain layer:
agent labels, pipeline stages, model tiers, governance vocabularies, node
statuses, and the categorical signals produced by the analysis pipelines.
"""

from enum import Enum


class AgentLabel(Enum):
    """Category a request is routed to."""

    INVESTMENT = "investment"
    RESEARCH = "research"
    GENERAL = "general"

    @classmethod
    def parse(cls, value: "str | AgentLabel | None") -> "AgentLabel | None":
        """Return the matching label, or ``None`` for blank/unknown input."""
        if isinstance(value, AgentLabel):
            return value
        if not value:
            return None
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class Stage(Enum):
    """Orchestrator pipeline stage.  Ordered; only ``BLOCKED`` short-circuits."""

    CLASSIFY = "classify"
    GOVERN = "govern"
    DISPATCH = "dispatch"
    BLOCKED = "blocked"
    DONE = "done"


class ModelTier(Enum):
    """Cost/capability class of a language-model backend."""

    LIGHT = "light"
    STANDARD = "standard"
    PREMIUM = "premium"


class BackendKind(Enum):
    """Concrete model backends the router can call."""

    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"


class RoutingMode(Enum):
    """How tiers are mapped onto the configured backends."""

    HYBRID = "hybrid"
    OPENROUTER_ONLY = "openrouter_only"
    ANTHROPIC_ONLY = "anthropic_only"
    NONE = "none"


class RiskLevel(Enum):
    """Risk level attached to a governance decision."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ViolationType(Enum):
    """Category of a policy violation found by the governor."""

    CREDENTIAL_LEAK = "credential_leak"
    ILLEGAL_ACTIVITY = "illegal_activity"
    RESOURCE_EXHAUSTION = "resource_exhaustion"
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    PROMPT_INJECTION = "prompt_injection"
    DATA_EXFILTRATION = "data_exfiltration"
    BUDGET_EXCEEDED = "budget_exceeded"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    UNSAFE_OPERATION = "unsafe_operation"
    POLICY_VIOLATION = "policy_violation"


class Severity(Enum):
    """Severity of a violation."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class GuardAction(Enum):
    """Action taken by the governor for a violation."""

    BLOCK = "block"
    WARN = "warn"
    LOG = "log"
    NOTIFY = "notify"
    QUARANTINE = "quarantine"


class NodeStatus(Enum):
    """Outcome of a single pipeline node."""

    OK = "ok"
    DEGRADED = "degraded"  # produced output from defaults or partial data
    UNAVAILABLE = "unavailable"  # upstream dependency failed entirely


class AssetType(Enum):
    """Asset class of an investment query."""

    STOCK = "stock"
    CRYPTO = "crypto"
    ETF = "etf"
    FOREX = "forex"


class TrendDirection(Enum):
    """Moving-average crossover classification."""

    UPTREND = "uptrend"
    DOWNTREND = "downtrend"
    SIDEWAYS = "sideways"


class Sentiment(Enum):
    """Broad-market sentiment tally."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class TradeAction(Enum):
    """Action label of an investment recommendation."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"
    AVOID = "AVOID"


class GrowthRate(Enum):
    """Trend signal of a market niche."""

    GROWING = "growing"
    STABLE = "stable"
    DECLINING = "declining"


class CompetitionLevel(Enum):
    """Competitive intensity of a market niche."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OpportunityTier(Enum):
    """Tier label derived from an opportunity score."""

    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
