"""Safety governor: content-level guardrails run before any pipeline.

Implements a fixed-order Chain of Responsibility over six guard checks.
Each check inspects the query and records findings on a shared
:class:`GuardFindings` accumulator; blocking checks stop the chain.

Classes
-------
BaseGuardCheck
    Abstract base class for a single guard check.
PiiCheck
    Warns on personal data and flags redaction (never blocks).
LegalComplianceCheck
    Blocks insider trading, money laundering, guaranteed-return and
    tax-evasion requests.
PrivacyCheck
    Blocks data-exfiltration phrasing and sensitive system paths.
CredentialCheck
    Warns on secrets in the query and flags sanitization (never blocks).
InjectionCheck
    Blocks prompt-injection phrasing.
DisclaimerCheck
    Flags finance-adjacent queries for the financial disclaimer.
SafetyGovernor
    Runs the chain and freezes the result into a ``GovernanceDecision``.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from golddigger.domain.enums import (
    AgentLabel,
    GuardAction,
    RiskLevel,
    Severity,
    ViolationType,
)
from golddigger.domain.exceptions import GovernanceBlockedError
from golddigger.domain.values import GovernanceDecision, PostProcessingFlags, Violation
from golddigger.services.credential_detector import (
    REDACTION_MARKER,
    merge_spans,
    detect_credentials,
    detect_injection,
)

logger = logging.getLogger(__name__)


FINANCIAL_DISCLAIMER = (
    "\n\n---\n*Disclaimer: This is analysis only, not financial advice. "
    "Always consult a qualified financial advisor before making investment "
    "decisions. Past performance does not guarantee future results.*"
)

# ===================================================================== #
#  Rule sets                                                             #
# ===================================================================== #

PII_PATTERNS: dict[str, re.Pattern[str]] = {
    "ssn": re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
    "credit_card": re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"),
    "phone": re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"),
    "email": re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
}

INSIDER_TRADING_KEYWORDS: tuple[str, ...] = (
    "insider information",
    "material non-public",
    "mnpi",
    "tip from someone inside",
    "material information not yet disclosed",
    "inside information",
    "confidential tip",
)

MONEY_LAUNDERING_KEYWORDS: tuple[str, ...] = (
    "money laundering",
    "wash trading",
    "structuring deposits",
    "smurfing",
    "placement of illicit funds",
    "layering transactions",
    "integration schemes",
)

GUARANTEED_RETURNS_KEYWORDS: tuple[str, ...] = (
    "guaranteed profit",
    "risk-free investment",
    "100% guaranteed",
    "can't lose money",
    "guaranteed returns",
    "guaranteed gains",
    "sure profit",
    "certain return",
)

TAX_EVASION_KEYWORDS: tuple[str, ...] = ("tax evasion", "avoid taxes")

DATA_EXTRACTION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"list\s+all\s+users", re.IGNORECASE),
    re.compile(r"export\s+database", re.IGNORECASE),
    re.compile(r"dump\s+users", re.IGNORECASE),
    re.compile(r"get\s+everyone'?s\s+data", re.IGNORECASE),
    re.compile(r"extract\s+personal\s+info", re.IGNORECASE),
    re.compile(r"retrieve\s+sensitive\s+data", re.IGNORECASE),
    re.compile(r"all\s+customers?\s+information", re.IGNORECASE),
)

DANGEROUS_PATHS: tuple[str, ...] = (
    "/etc/passwd",
    ".env",
    "credentials",
    "secrets",
    "private key",
)

# Analysis phrasing plus plain market vocabulary; a bare "Analyze AAPL
# stock" must still be flagged.
FINANCIAL_ANALYSIS_KEYWORDS: tuple[str, ...] = (
    "stock price",
    "investment",
    "portfolio",
    "trading strategy",
    "market analysis",
    "buy recommendation",
    "sell recommendation",
    "fund allocation",
    "asset allocation",
    "financial forecast",
    "earnings forecast",
    "price target",
    "bull case",
    "bear case",
    "stock",
    "shares",
    "crypto",
    "bitcoin",
    "etf",
    "dividend",
    "earnings",
    "invest",
    "trading",
    "market",
)

DISCLAIMER_LABELS = frozenset({AgentLabel.INVESTMENT, AgentLabel.RESEARCH})

_BLOCK_REASONS = {
    "insider_trading": (
        "Query appears to involve insider trading information. "
        "This is illegal and I cannot assist with it."
    ),
    "money_laundering": (
        "Query appears to involve money laundering. "
        "This is illegal and I cannot assist with it."
    ),
    "guaranteed_returns": (
        "Query requests guaranteed returns, which are unrealistic and typically "
        "indicate fraud. I cannot assist with marketing or promoting such claims."
    ),
    "tax_evasion": "Tax evasion is illegal. I cannot assist with it.",
    "data_exfiltration": (
        "Query appears to request unauthorized extraction of other users' data. "
        "This violates privacy protections."
    ),
}


# ===================================================================== #
#  Findings accumulator                                                  #
# ===================================================================== #


@dataclass
class GuardFindings:
    """Mutable scratch record shared by the checks of one ``check()`` call."""

    blocked: bool = False
    block_reason: str | None = None
    warnings: list[str] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)
    sanitize_credentials: bool = False
    add_disclaimer: bool = False
    redact_pii: bool = False
    evidence: dict[str, Any] = field(default_factory=dict)

    def block(
        self,
        reason: str,
        violation_type: ViolationType,
        severity: Severity,
        evidence: dict[str, Any],
        source: str,
    ) -> None:
        self.blocked = True
        self.block_reason = reason
        self.evidence.update(evidence)
        self.violations.append(
            Violation(
                violation_type=violation_type,
                severity=severity,
                description=reason,
                action_taken=GuardAction.BLOCK,
                source=source,
                evidence=evidence,
            )
        )

    def warn(
        self,
        message: str,
        violation_type: ViolationType,
        evidence: dict[str, Any],
        source: str,
        severity: Severity = Severity.LOW,
    ) -> None:
        self.warnings.append(message)
        self.evidence.update(evidence)
        self.violations.append(
            Violation(
                violation_type=violation_type,
                severity=severity,
                description=message,
                action_taken=GuardAction.WARN,
                source=source,
                evidence=evidence,
            )
        )


# ===================================================================== #
#  Guard checks                                                          #
# ===================================================================== #


class BaseGuardCheck(ABC):
    """Abstract base class for a single guard check.

    ``blocking`` checks are skipped once an earlier check has blocked.
    """

    name: str = "guard"
    blocking: bool = False

    @abstractmethod
    def run(self, query: str, label: AgentLabel, findings: GuardFindings) -> None:
        """Inspect *query* and record findings."""


class PiiCheck(BaseGuardCheck):
    name = "pii"

    def run(self, query: str, label: AgentLabel, findings: GuardFindings) -> None:
        found = {
            pii_type: len(pattern.findall(query))
            for pii_type, pattern in PII_PATTERNS.items()
            if pattern.search(query)
        }
        if not found:
            return
        findings.redact_pii = True
        findings.warn(
            f"PII detected in query: {found}. This will be redacted.",
            ViolationType.POLICY_VIOLATION,
            {"pii_types": found},
            source=self.name,
        )


class LegalComplianceCheck(BaseGuardCheck):
    name = "legal"
    blocking = True

    _rules: tuple[tuple[str, tuple[str, ...]], ...] = (
        ("insider_trading", INSIDER_TRADING_KEYWORDS),
        ("money_laundering", MONEY_LAUNDERING_KEYWORDS),
        ("guaranteed_returns", GUARANTEED_RETURNS_KEYWORDS),
        ("tax_evasion", TAX_EVASION_KEYWORDS),
    )

    def run(self, query: str, label: AgentLabel, findings: GuardFindings) -> None:
        lowered = query.lower()
        for category, keywords in self._rules:
            for keyword in keywords:
                if keyword in lowered:
                    findings.block(
                        _BLOCK_REASONS[category],
                        ViolationType.ILLEGAL_ACTIVITY,
                        Severity.CRITICAL,
                        {"violation": f"{category}_attempt", "keyword": keyword},
                        source=self.name,
                    )
                    return


class PrivacyCheck(BaseGuardCheck):
    name = "privacy"
    blocking = True

    def run(self, query: str, label: AgentLabel, findings: GuardFindings) -> None:
        for pattern in DATA_EXTRACTION_PATTERNS:
            if pattern.search(query):
                findings.block(
                    _BLOCK_REASONS["data_exfiltration"],
                    ViolationType.DATA_EXFILTRATION,
                    Severity.HIGH,
                    {"violation": "data_exfiltration_attempt"},
                    source=self.name,
                )
                return

        lowered = query.lower()
        for path in DANGEROUS_PATHS:
            if path in lowered:
                findings.block(
                    f"Query appears to request access to sensitive system files ({path}). "
                    "This is not permitted.",
                    ViolationType.UNAUTHORIZED_ACCESS,
                    Severity.HIGH,
                    {"violation": "unauthorized_system_access", "path": path},
                    source=self.name,
                )
                return


class CredentialCheck(BaseGuardCheck):
    name = "credentials"
    blocking = True  # skipped after a block; never blocks by itself

    def run(self, query: str, label: AgentLabel, findings: GuardFindings) -> None:
        matches = detect_credentials(query)
        if not matches:
            return
        types = sorted({m.type for m in matches})
        findings.sanitize_credentials = True
        findings.warn(
            f"Credentials detected in query: {', '.join(types)}. These will be redacted.",
            ViolationType.CREDENTIAL_LEAK,
            {"credentials_found": types},
            source=self.name,
            severity=Severity.MEDIUM,
        )


class InjectionCheck(BaseGuardCheck):
    name = "injection"
    blocking = True

    def run(self, query: str, label: AgentLabel, findings: GuardFindings) -> None:
        matches = detect_injection(query)
        if not matches:
            return
        first = min(matches, key=lambda m: m.span[0])
        findings.block(
            f"Prompt injection detected: {first.match}. This is not permitted.",
            ViolationType.PROMPT_INJECTION,
            Severity.CRITICAL,
            {"injection_patterns": [m.pattern for m in matches]},
            source=self.name,
        )


class DisclaimerCheck(BaseGuardCheck):
    name = "disclaimer"

    def run(self, query: str, label: AgentLabel, findings: GuardFindings) -> None:
        if label not in DISCLAIMER_LABELS or findings.blocked:
            return
        lowered = query.lower()
        if any(keyword in lowered for keyword in FINANCIAL_ANALYSIS_KEYWORDS):
            findings.add_disclaimer = True
            findings.evidence["financial_analysis_requested"] = True


def default_checks() -> list[BaseGuardCheck]:
    """The six checks, in the order they must run."""
    return [
        PiiCheck(),
        LegalComplianceCheck(),
        PrivacyCheck(),
        CredentialCheck(),
        InjectionCheck(),
        DisclaimerCheck(),
    ]


# ===================================================================== #
#  Governor                                                              #
# ===================================================================== #


class SafetyGovernor:
    """Approves, warns on, or blocks a query before any pipeline runs.

    Parameters
    ----------
    checks:
        Ordered guard checks.  Defaults to :func:`default_checks`.
    enable_disclaimers:
        When ``False`` the disclaimer flag is never set.  Blocking rules
        cannot be disabled.
    """

    def __init__(
        self,
        checks: Sequence[BaseGuardCheck] | None = None,
        enable_disclaimers: bool = True,
    ) -> None:
        self._checks: list[BaseGuardCheck] = list(checks) if checks is not None else default_checks()
        self._enable_disclaimers = enable_disclaimers

    @property
    def checks(self) -> list[BaseGuardCheck]:
        return list(self._checks)

    def check(self, query: str, agent_label: AgentLabel | str = AgentLabel.GENERAL) -> GovernanceDecision:
        """Run every guard check on *query* and return the decision.

        Parameters
        ----------
        query:
            Raw user text.
        agent_label:
            The label the request is routed to; only finance-adjacent
            labels are eligible for the disclaimer flag.

        Returns
        -------
        GovernanceDecision
            ``approved`` is ``False`` as soon as any blocking check fires.
        """
        label = AgentLabel.parse(agent_label) or AgentLabel.GENERAL
        findings = GuardFindings()

        for guard in self._checks:
            if findings.blocked and guard.blocking:
                continue
            guard.run(query, label, findings)

        if findings.blocked:
            risk = RiskLevel.HIGH
        elif findings.warnings:
            risk = RiskLevel.MEDIUM
        else:
            risk = RiskLevel.LOW

        decision = GovernanceDecision(
            approved=not findings.blocked,
            reason=(
                findings.block_reason or "Blocked by content guard"
                if findings.blocked
                else "Content passed safety checks"
            ),
            risk_level=risk,
            flags=PostProcessingFlags(
                sanitize_credentials=findings.sanitize_credentials,
                add_disclaimer=findings.add_disclaimer and self._enable_disclaimers,
                redact_pii=findings.redact_pii,
            ),
            violations=tuple(findings.violations),
            warnings=tuple(findings.warnings),
            block_reason=findings.block_reason,
        )

        if decision.approved:
            logger.info(
                "Governor approved %s query (risk=%s, warnings=%d)",
                label.value, risk.value, len(findings.warnings),
            )
        else:
            logger.warning("Governor blocked %s query: %s", label.value, findings.block_reason)
        return decision

    def enforce(self, query: str, agent_label: AgentLabel | str = AgentLabel.GENERAL) -> GovernanceDecision:
        """Like :meth:`check`, but raise :class:`GovernanceBlockedError` on a block."""
        decision = self.check(query, agent_label)
        if not decision.approved:
            raise GovernanceBlockedError(
                decision.block_reason or decision.reason,
                decision=decision,
                details={"violations": [v.violation_type.value for v in decision.violations]},
            )
        return decision


# ===================================================================== #
#  Text transforms                                                       #
# ===================================================================== #


def redact_pii(text: str) -> str:
    """Replace every PII span in *text* with the redaction marker."""
    spans = [m.span() for pattern in PII_PATTERNS.values() for m in pattern.finditer(text)]
    if not spans:
        return text
    redacted = text
    for start, end in sorted(merge_spans(spans), key=lambda s: s[0], reverse=True):
        redacted = redacted[:start] + REDACTION_MARKER + redacted[end:]
    return redacted


def apply_disclaimer(text: str) -> str:
    """Append :data:`FINANCIAL_DISCLAIMER` unless the text already carries one."""
    if "not financial advice" in text.lower():
        return text
    return text + FINANCIAL_DISCLAIMER
