"""Service layer for Gold Digger.

Re-exports public service types for convenient top-level access::

    from golddigger.services import (
        SafetyGovernor, sanitize, detect_credentials, detect_injection,
        calculate_opportunity_score,
        InvestmentPipeline, ResearchPipeline,
        offline_fallback, agent_error_message,
        classify, keyword_route,
    )
"""

from golddigger.services.credential_detector import (
    detect_credentials,
    detect_injection,
    sanitize,
)
from golddigger.services.fallbacks import (
    agent_error_message,
    is_service_down,
    offline_fallback,
    sanitize_error_text,
)
from golddigger.services.governor import (
    FINANCIAL_DISCLAIMER,
    SafetyGovernor,
    apply_disclaimer,
    redact_pii,
)
from golddigger.services.investment import InvestmentPipeline, InvestmentReport
from golddigger.services.research import ResearchPipeline, ResearchReport
from golddigger.services.routing import ROUTING_TIE_BIAS, classify, keyword_route
from golddigger.services.scoring import calculate_opportunity_score

__all__ = [
    "detect_credentials",
    "detect_injection",
    "sanitize",
    "agent_error_message",
    "is_service_down",
    "offline_fallback",
    "sanitize_error_text",
    "FINANCIAL_DISCLAIMER",
    "SafetyGovernor",
    "apply_disclaimer",
    "redact_pii",
    "InvestmentPipeline",
    "InvestmentReport",
    "ResearchPipeline",
    "ResearchReport",
    "ROUTING_TIE_BIAS",
    "classify",
    "keyword_route",
    "calculate_opportunity_score",
]
