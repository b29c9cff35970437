"""Domain layer: enums, value objects and exceptions."""

from golddigger.domain.enums import (
    AgentLabel,
    AssetType,
    BackendKind,
    CompetitionLevel,
    GrowthRate,
    GuardAction,
    ModelTier,
    NodeStatus,
    OpportunityTier,
    RiskLevel,
    RoutingMode,
    Sentiment,
    Severity,
    Stage,
    TradeAction,
    TrendDirection,
    ViolationType,
)
from golddigger.domain.exceptions import (
    AllTiersExhaustedError,
    ConfigurationError,
    GoldDiggerError,
    GovernanceBlockedError,
    MarketDataUnavailableError,
    ParseFailureError,
)
from golddigger.domain.values import (
    ChatTurn,
    CredentialMatch,
    GovernanceDecision,
    InjectionMatch,
    NodeResult,
    OpportunityScore,
    PostProcessingFlags,
    ScoreBreakdown,
    Violation,
)

__all__ = [
    # Enums
    "AgentLabel",
    "AssetType",
    "BackendKind",
    "CompetitionLevel",
    "GrowthRate",
    "GuardAction",
    "ModelTier",
    "NodeStatus",
    "OpportunityTier",
    "RiskLevel",
    "RoutingMode",
    "Sentiment",
    "Severity",
    "Stage",
    "TradeAction",
    "TrendDirection",
    "ViolationType",
    # Exceptions
    "AllTiersExhaustedError",
    "ConfigurationError",
    "GoldDiggerError",
    "GovernanceBlockedError",
    "MarketDataUnavailableError",
    "ParseFailureError",
    # Values
    "ChatTurn",
    "CredentialMatch",
    "GovernanceDecision",
    "InjectionMatch",
    "NodeResult",
    "OpportunityScore",
    "PostProcessingFlags",
    "ScoreBreakdown",
    "Violation",
]
