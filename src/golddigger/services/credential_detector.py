"""Credential and prompt-injection detection.

Pure pattern matching with no I/O.  Each credential family is matched
independently; :func:`sanitize` redacts the *entire* matched span of every
hit (never a prefix or suffix), merging overlapping hits so the output
contains no credential substring.
"""

from __future__ import annotations

import logging
import re

from golddigger.domain.values import CredentialMatch, InjectionMatch

logger = logging.getLogger(__name__)

REDACTION_MARKER = "[REDACTED]"

# =========================================================================== #
#  Patterns                                                                    #
# =========================================================================== #

CREDENTIAL_PATTERNS: dict[str, re.Pattern[str]] = {
    "openai_key": re.compile(r"sk-[a-zA-Z0-9]{20,}"),
    "anthropic_key": re.compile(r"sk-ant-[a-zA-Z0-9]{20,}"),
    "github_token": re.compile(r"ghp_[a-zA-Z0-9]{36}"),
    "gitlab_token": re.compile(r"glpat-[a-zA-Z0-9\-]{20}"),
    "aws_access_key": re.compile(r"AKIA[0-9A-Z]{16}"),
    "aws_secret_key": re.compile(r"aws_secret_access_key\s*=\s*[a-zA-Z0-9/+=]{40}"),
    "google_oauth": re.compile(r"ya29\.[a-zA-Z0-9_\-]+"),
    "private_key": re.compile(
        r"-----BEGIN[^\-]+PRIVATE KEY-----[\s\S]*?-----END[^\-]+PRIVATE KEY-----"
    ),
    "connection_string": re.compile(r"(?:mongodb|postgres|mysql|redis)://[^@\s]+@[^\s]+"),
    "generic_api_key": re.compile(
        r"(?:api[_-]?key|token|secret)[=:]\s*['\"]?[a-zA-Z0-9_\-]{20,}['\"]?",
        re.IGNORECASE,
    ),
    "openrouter_key": re.compile(r"sk-or-[a-zA-Z0-9\-]{20,}"),
    "jwt_token": re.compile(r"eyJ[a-zA-Z0-9_\-]+\.eyJ[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+"),
    "huggingface_token": re.compile(r"hf_[a-zA-Z0-9]{34,}"),
    "slack_token": re.compile(r"xox[baprs]-[0-9]{10,13}-[0-9]{10,13}-[0-9a-zA-Z]{24,34}"),
    "discord_token": re.compile(
        r"[MN][A-Za-z0-9_\-]{23,25}\.[A-Za-z0-9_\-]{6,7}\.[A-Za-z0-9_\-]{27}"
    ),
    "stripe_key": re.compile(r"sk_live_[0-9a-zA-Z]{24}"),
    "sendgrid_key": re.compile(r"SG\.[a-zA-Z0-9_\-]{22}"),
    "twilio_key": re.compile(r"AC[a-zA-Z0-9_\-]{32}"),
    "azure_storage_key": re.compile(
        r"DefaultEndpointsProtocol=https;[^;]*AccountKey=[a-zA-Z0-9+/=]+"
    ),
    "basic_auth": re.compile(r"https?://[^:\s]+:[^@\s]+@[^\s]+"),
}

INJECTION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"ignore\s+previous\s+instructions", re.IGNORECASE),
    re.compile(r"disregard\s+(?:all\s+)?rules", re.IGNORECASE),
    re.compile(r"(?:you\s+are\s+now|pretend\s+to\s+be|act\s+as\s+if)", re.IGNORECASE),
    re.compile(r"leak\s+(?:your\s+)?prompt", re.IGNORECASE),
    re.compile(r"show\s+(?:your\s+)?instructions", re.IGNORECASE),
    re.compile(r"system\s+prompt", re.IGNORECASE),
    re.compile(r"reveal\s+your", re.IGNORECASE),
    re.compile(r"jailbreak", re.IGNORECASE),
    re.compile(r"bypass\s+security", re.IGNORECASE),
)


# =========================================================================== #
#  Detection                                                                   #
# =========================================================================== #

def detect_credentials(text: str) -> list[CredentialMatch]:
    """Return every credential match in *text*, family by family.

    Families are scanned independently, so one secret can be reported by
    more than one family (e.g. ``api_key=sk-...`` hits both
    ``generic_api_key`` and ``openai_key``).
    """
    matches: list[CredentialMatch] = []
    for cred_type, pattern in CREDENTIAL_PATTERNS.items():
        for m in pattern.finditer(text):
            matches.append(CredentialMatch(type=cred_type, match=m.group(0), span=m.span()))
    return matches


def contains_credentials(text: str) -> bool:
    """``True`` if any credential family matches *text*."""
    return any(p.search(text) for p in CREDENTIAL_PATTERNS.values())


def merge_spans(spans: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Merge overlapping ``(start, end)`` spans; adjacent spans stay separate."""
    merged: list[tuple[int, int]] = []
    for start, end in sorted(spans):
        if merged and start < merged[-1][1]:
            prev_start, prev_end = merged[-1]
            merged[-1] = (prev_start, max(prev_end, end))
        else:
            merged.append((start, end))
    return merged


def sanitize(text: str) -> str:
    """Replace every credential span in *text* with :data:`REDACTION_MARKER`.

    The whole matched span is replaced by a single marker.  Overlapping
    matches collapse into one redacted region, and replacements run from
    the highest start offset down so earlier offsets stay valid.
    """
    spans = [m.span for m in detect_credentials(text)]
    if not spans:
        return text

    sanitized = text
    for start, end in sorted(merge_spans(spans), key=lambda s: s[0], reverse=True):
        sanitized = sanitized[:start] + REDACTION_MARKER + sanitized[end:]

    logger.debug("sanitize: redacted %d credential span(s)", len(spans))
    return sanitized


def detect_injection(text: str) -> list[InjectionMatch]:
    """Return every prompt-injection phrase found in *text*."""
    matches: list[InjectionMatch] = []
    for pattern in INJECTION_PATTERNS:
        for m in pattern.finditer(text):
            matches.append(InjectionMatch(pattern=pattern.pattern, match=m.group(0), span=m.span()))
    return matches
