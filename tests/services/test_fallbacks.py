"""Tests for offline answers and error-text helpers."""

from __future__ import annotations

from golddigger.domain.enums import AgentLabel
from golddigger.domain.exceptions import AllTiersExhaustedError, ConfigurationError
from golddigger.infrastructure.llm import LLMConnectionError
from golddigger.services.fallbacks import (
    SERVICE_NOTICE,
    agent_error_message,
    dispatch_failure_text,
    find_tickers,
    is_service_down,
    offline_fallback,
    sanitize_error_text,
)


class TestFindTickers:

    def test_keeps_tickers(self) -> None:
        assert find_tickers("Compare NVDA and AMD") == ["NVDA", "AMD"]

    def test_drops_common_words(self) -> None:
        assert find_tickers("IS IT OK TO BUY NOW") == ["OK", "BUY"]

    def test_single_letters_ignored(self) -> None:
        assert find_tickers("I want F") == []


class TestIsServiceDown:

    def test_router_errors(self) -> None:
        assert is_service_down(AllTiersExhaustedError("All LLM tiers failed (tried: light)"))
        assert is_service_down(ConfigurationError("no keys"))
        assert is_service_down(LLMConnectionError("boom"))

    def test_message_markers(self) -> None:
        assert is_service_down(RuntimeError("connect ECONNREFUSED 127.0.0.1:443"))
        assert is_service_down(RuntimeError("request timeout"))

    def test_ordinary_bug(self) -> None:
        assert not is_service_down(KeyError("missing"))


class TestSanitizeErrorText:

    def test_paths_hidden(self) -> None:
        text = sanitize_error_text("failed reading /home/app/data/config.json")
        assert "/home/app" not in text
        assert "[internal]" in text

    def test_credentials_hidden(self) -> None:
        key = "sk-" + "q" * 30
        assert key not in sanitize_error_text(f"bad key {key}")


class TestOfflineFallback:

    def test_investment_with_ticker(self) -> None:
        text = offline_fallback(AgentLabel.INVESTMENT, "Should I buy AAPL?")
        assert text.startswith("I'm unable to pull live data for **AAPL** right now")
        assert text.endswith(SERVICE_NOTICE)

    def test_investment_without_ticker(self) -> None:
        text = offline_fallback("investment", "where should my savings go?")
        assert "**General principles:**" in text
        assert text.endswith(SERVICE_NOTICE)

    def test_research(self) -> None:
        text = offline_fallback(AgentLabel.RESEARCH, "EV charging market")
        assert "AI Infrastructure" in text
        assert text.endswith(SERVICE_NOTICE)

    def test_general(self) -> None:
        text = offline_fallback(AgentLabel.GENERAL, "hello")
        assert text.startswith("**Gold Digger AGI: Offline Mode**")
        assert SERVICE_NOTICE not in text

    def test_unknown_label_is_general(self) -> None:
        assert offline_fallback("astrology", "hi") == offline_fallback(AgentLabel.GENERAL, "hi")


class TestDispatchFailureText:

    def test_service_down_uses_offline_text(self) -> None:
        exc = AllTiersExhaustedError("All LLM tiers failed (tried: premium)")
        text = dispatch_failure_text(AgentLabel.RESEARCH, "fintech", exc)
        assert text == offline_fallback(AgentLabel.RESEARCH, "fintech")

    def test_other_errors_apologize(self) -> None:
        text = dispatch_failure_text(AgentLabel.INVESTMENT, "AAPL", ValueError("bad"))
        assert text == agent_error_message(AgentLabel.INVESTMENT)
        assert "Analyze AAPL" in text
