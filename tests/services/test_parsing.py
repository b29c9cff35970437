"""Tests for model-output parsing helpers."""

from __future__ import annotations

import math

import pytest

from golddigger.domain.enums import GrowthRate
from golddigger.domain.exceptions import ParseFailureError
from golddigger.services.parsing import (
    as_float,
    as_str_list,
    extract_json,
    fmt_currency,
    fmt_percent,
    label_text,
)


class TestExtractJson:

    def test_plain_object(self) -> None:
        assert extract_json('{"symbol": "AAPL"}') == {"symbol": "AAPL"}

    def test_fenced_with_chatter(self) -> None:
        raw = 'Sure! Here it is:\n```json\n{"action": "HOLD", "confidence": 60}\n```\nHope that helps.'
        assert extract_json(raw) == {"action": "HOLD", "confidence": 60}

    def test_fallback_copy(self) -> None:
        fallback = {"symbol": "SPY"}
        result = extract_json("no json here", fallback=fallback)
        assert result == fallback
        assert result is not fallback

    def test_raises_without_fallback(self) -> None:
        with pytest.raises(ParseFailureError) as info:
            extract_json("[1, 2, 3]")
        assert info.value.raw == "[1, 2, 3]"

    def test_invalid_json_uses_fallback(self) -> None:
        assert extract_json("{not: valid}", fallback={}) == {}


class TestCoercion:

    @pytest.mark.parametrize(
        "value, expected",
        [(3, 3.0), ("$1,234.50", 1234.5), (" 42 ", 42.0), ("abc", None), (None, None), (True, None)],
    )
    def test_as_float(self, value: object, expected: float | None) -> None:
        assert as_float(value) == expected

    def test_as_float_rejects_nan(self) -> None:
        assert as_float(math.nan) is None
        assert as_float("inf") is None

    def test_as_str_list(self) -> None:
        assert as_str_list(["a", 1, None, "b"]) == ["a", "b"]
        assert as_str_list("not a list") == []

    def test_label_text(self) -> None:
        assert label_text(GrowthRate.GROWING) == "growing"
        assert label_text(" Buy ") == "Buy"
        assert label_text(None) == ""


class TestFormatting:

    def test_currency(self) -> None:
        assert fmt_currency(1234.5) == "$1,234.50"
        assert fmt_currency(None) == "N/A"

    def test_percent(self) -> None:
        assert fmt_percent(1.234) == "+1.23%"
        assert fmt_percent(-0.5) == "-0.50%"
        assert fmt_percent(None) == "N/A"
