"""Helpers for turning free-form model replies into structured data."""

from __future__ import annotations

import json
import logging
import math
import re
from enum import Enum
from typing import Any

from golddigger.domain.exceptions import ParseFailureError

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def extract_json(raw: str, fallback: dict[str, Any] | None = None) -> dict[str, Any]:
    """Extract the JSON object embedded in a model reply.

    Markdown code fences are stripped, then the outermost ``{...}`` block
    is parsed.

    Parameters
    ----------
    raw:
        Model output.
    fallback:
        Returned (as a copy) when no object can be parsed.

    Raises
    ------
    ParseFailureError
        If parsing fails and no *fallback* was given.
    """
    cleaned = _FENCE_RE.sub("", raw or "").replace("```", "").strip()
    match = _OBJECT_RE.search(cleaned)
    try:
        if match is None:
            raise ValueError("no JSON object found in model response")
        parsed = json.loads(match.group(0))
        if not isinstance(parsed, dict):
            raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
        return parsed
    except ValueError as exc:
        if fallback is not None:
            logger.warning("JSON extraction failed, using fallback: %s", exc)
            return dict(fallback)
        raise ParseFailureError(str(exc), raw=raw[:500] if raw else "") from exc


def label_text(value: Any) -> str:
    """Stripped text of a categorical value; enum members give their ``value``."""
    if isinstance(value, Enum):
        value = value.value
    return str(value if value is not None else "").strip()


def as_str_list(value: Any) -> list[str]:
    """Keep only the string items of a list-like value."""
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, str)]


def as_float(value: Any) -> float | None:
    """Coerce numbers and numeric strings (``"$1,234.5"``) to float."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.replace("$", "").replace(",", "").strip())
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def fmt_currency(value: float | None) -> str:
    if value is None or not math.isfinite(value):
        return "N/A"
    return f"${value:,.2f}"


def fmt_percent(value: float | None) -> str:
    if value is None or math.isnan(value):
        return "N/A"
    return f"{'+' if value >= 0 else ''}{value:.2f}%"
