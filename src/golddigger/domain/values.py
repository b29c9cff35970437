"""Value objects for the Gold Digger pipeline.

All types here are frozen dataclasses: immutable and compared by value.
They represent governance outcomes, detector matches, node results and the
opportunity score, none of which have identity beyond their content (the
generated ids on decisions and violations exist for audit logs only).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from .enums import (
    GuardAction,
    NodeStatus,
    OpportunityTier,
    RiskLevel,
    Severity,
    ViolationType,
)

T = TypeVar("T")


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Conversation turns
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChatTurn:
    """One prior turn of a conversation."""

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_any(cls, value: Any) -> ChatTurn:
        """Build a turn from a ``ChatTurn``, a mapping, or an object with
        ``role``/``content`` attributes (e.g. a pydantic message model)."""
        if isinstance(value, ChatTurn):
            return value
        if isinstance(value, dict):
            return cls(role=str(value.get("role", "user")), content=str(value.get("content", "")))
        return cls(role=str(getattr(value, "role", "user")), content=str(getattr(value, "content", "")))


# ---------------------------------------------------------------------------
# Detector matches
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CredentialMatch:
    """A credential-looking substring found in text.

    Attributes
    ----------
    type:
        Credential family name (e.g. ``"openai_key"``).
    match:
        The matched text.
    span:
        ``(start, end)`` offsets into the scanned text.
    """

    type: str
    match: str
    span: tuple[int, int]


@dataclass(frozen=True)
class InjectionMatch:
    """A prompt-injection phrase found in text."""

    pattern: str
    match: str
    span: tuple[int, int]


# ---------------------------------------------------------------------------
# Governance
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Violation:
    """A single policy finding recorded by the governor."""

    violation_type: ViolationType
    severity: Severity
    description: str
    action_taken: GuardAction
    source: str = "content_guard"
    evidence: dict[str, Any] = field(default_factory=dict)
    violation_id: str = field(default_factory=_new_id)
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.violation_id,
            "timestamp": self.timestamp,
            "violationType": self.violation_type.value,
            "severity": self.severity.value,
            "description": self.description,
            "source": self.source,
            "actionTaken": self.action_taken.value,
            "evidence": dict(self.evidence),
        }


@dataclass(frozen=True)
class PostProcessingFlags:
    """Independent text transforms the final stage must apply."""

    sanitize_credentials: bool = False
    add_disclaimer: bool = False
    redact_pii: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {
            "sanitizeCredentials": self.sanitize_credentials,
            "addDisclaimer": self.add_disclaimer,
            "redactPii": self.redact_pii,
        }


@dataclass(frozen=True)
class GovernanceDecision:
    """Outcome of :meth:`SafetyGovernor.check`.

    Created once per request and never mutated afterwards.
    """

    approved: bool
    reason: str
    risk_level: RiskLevel
    flags: PostProcessingFlags = field(default_factory=PostProcessingFlags)
    violations: tuple[Violation, ...] = ()
    warnings: tuple[str, ...] = ()
    block_reason: str | None = None
    requires_human_approval: bool = False
    decision_id: str = field(default_factory=_new_id)
    timestamp: str = field(default_factory=utc_now_iso)

    @property
    def metadata(self) -> dict[str, Any]:
        """Flags plus warnings, keyed the way API consumers expect."""
        meta: dict[str, Any] = self.flags.to_dict()
        meta["warnings"] = list(self.warnings)
        return meta

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.decision_id,
            "timestamp": self.timestamp,
            "approved": self.approved,
            "reason": self.reason,
            "riskLevel": self.risk_level.value,
            "requiresHumanApproval": self.requires_human_approval,
            "violations": [v.to_dict() for v in self.violations],
            "blockReason": self.block_reason,
            "metadata": self.metadata,
        }

    def summary(self) -> dict[str, Any]:
        """The compact shape returned to inbound callers."""
        out: dict[str, Any] = {
            "approved": self.approved,
            "riskLevel": self.risk_level.value,
            "warnings": list(self.warnings),
        }
        if self.block_reason:
            out["blockReason"] = self.block_reason
        return out


# ---------------------------------------------------------------------------
# Node results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NodeResult(Generic[T]):
    """Typed output of one pipeline node plus its health status.

    A node never raises for upstream failures; it returns a result whose
    ``status`` tells the caller whether ``value`` came from live data
    (``OK``), from defaults or partial data (``DEGRADED``), or whether the
    dependency was unreachable (``UNAVAILABLE``).
    """

    value: T
    status: NodeStatus = NodeStatus.OK
    note: str = ""

    @property
    def ok(self) -> bool:
        return self.status is NodeStatus.OK

    @classmethod
    def degraded(cls, value: T, note: str = "") -> NodeResult[T]:
        return cls(value=value, status=NodeStatus.DEGRADED, note=note)

    @classmethod
    def unavailable(cls, value: T, note: str = "") -> NodeResult[T]:
        return cls(value=value, status=NodeStatus.UNAVAILABLE, note=note)


# ---------------------------------------------------------------------------
# Opportunity score
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScoreBreakdown:
    """Components that add up to an opportunity score (before clamping)."""

    base: float
    growth_adjustment: float
    competition_adjustment: float
    pain_points_adjustment: float

    @property
    def raw_total(self) -> float:
        return (
            self.base
            + self.growth_adjustment
            + self.competition_adjustment
            + self.pain_points_adjustment
        )

    def to_dict(self) -> dict[str, float]:
        return {
            "base": self.base,
            "growthAdjustment": self.growth_adjustment,
            "competitionAdjustment": self.competition_adjustment,
            "painPointsAdjustment": self.pain_points_adjustment,
        }


@dataclass(frozen=True)
class OpportunityScore:
    """Deterministic 0-100 market attractiveness score."""

    score: float
    tier: OpportunityTier
    breakdown: ScoreBreakdown

    def __post_init__(self) -> None:
        if not (0.0 <= self.score <= 100.0):
            raise ValueError(f"score must be in [0, 100], got {self.score}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "tier": self.tier.value,
            "calculationNotes": self.breakdown.to_dict(),
        }
