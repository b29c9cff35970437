"""Tests for the Yahoo Finance feed, served by an httpx mock transport."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import unquote

import httpx
import pytest

from golddigger.domain.enums import AssetType, Sentiment, TrendDirection
from golddigger.domain.exceptions import MarketDataUnavailableError
from golddigger.infrastructure.market_data import (
    CryptoQuote,
    IndexChange,
    MarketSnapshot,
    ScreenedStock,
    YahooFinanceClient,
    crypto_from_chart,
    crypto_symbol,
    fear_greed_from_vix,
    sector_for_industry,
    series_change,
    snapshot_from_chart,
    tally_sentiment,
    _fan_out,
)
from golddigger.testing import StaticMarketFeed


def _chart(closes: list[Any], **meta: Any) -> dict[str, Any]:
    return {"meta": meta, "indicators": {"quote": [{"close": closes, "volume": [1000] * len(closes)}]}}


def _chart_body(chart: dict[str, Any]) -> dict[str, Any]:
    return {"chart": {"result": [chart], "error": None}}


def _client(
    charts: Mapping[str, dict[str, Any]],
    extra: Callable[[httpx.Request], httpx.Response | None] | None = None,
) -> YahooFinanceClient:
    """Serve *charts* by symbol; unknown symbols get a 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        if extra is not None:
            response = extra(request)
            if response is not None:
                return response
        symbol = unquote(request.url.path.rsplit("/", 1)[-1])
        if symbol in charts:
            return httpx.Response(200, json=_chart_body(charts[symbol]))
        return httpx.Response(404, json={"chart": {"result": None}})

    return YahooFinanceClient(transport=httpx.MockTransport(handler))


class TestPureHelpers:

    def test_snapshot_uptrend(self) -> None:
        closes = [100.0 + i for i in range(60)]
        snap = snapshot_from_chart("AAPL", _chart(closes, regularMarketPrice=160.0, previousClose=158.0))

        assert snap.is_live
        assert snap.current_price == 160.0
        assert snap.price_change_24h == round(2 / 158 * 100, 2)
        assert snap.sma20 == round(sum(closes[-20:]) / 20, 2)
        assert snap.sma50 == round(sum(closes[-50:]) / 50, 2)
        assert snap.trend is TrendDirection.UPTREND
        assert snap.high_52w == 159.0
        assert snap.low_52w == 100.0

    def test_snapshot_skips_null_closes(self) -> None:
        snap = snapshot_from_chart("X", _chart([10.0, None, 8.0]))
        assert snap.current_price == 8.0
        assert snap.price_change_24h == -20.0
        assert snap.trend is TrendDirection.SIDEWAYS

    def test_snapshot_without_closes(self) -> None:
        with pytest.raises(MarketDataUnavailableError):
            snapshot_from_chart("X", _chart([None, None]))

    def test_unavailable_snapshot(self) -> None:
        snap = MarketSnapshot.unavailable("ZZZZ")
        assert not snap.is_live
        assert snap.current_price is None
        assert snap.to_dict()["trend"] == "sideways"

    def test_series_change(self) -> None:
        assert series_change(_chart([50.0, 55.0])) == (55.0, 10.0)
        assert series_change(_chart([])) is None

    def test_tally(self) -> None:
        changes = [IndexChange("SPY", 0.5), IndexChange("QQQ", -0.2), IndexChange("DIA", 0.1)]
        assert tally_sentiment(changes) == (Sentiment.BULLISH, 2, 1)
        assert tally_sentiment([]) == (Sentiment.NEUTRAL, 0, 0)
        assert tally_sentiment([IndexChange("SPY", 0.0)]) == (Sentiment.BEARISH, 0, 1)

    @pytest.mark.parametrize("vix, label", [(0.0, "unknown"), (30.0, "fear"), (12.0, "greed"), (20.0, "neutral")])
    def test_fear_greed(self, vix: float, label: str) -> None:
        assert fear_greed_from_vix(vix) == label

    def test_fan_out_skips_any_failure(self) -> None:
        def fetch(key: str) -> int:
            if key == "QQQ":
                raise AttributeError("'str' object has no attribute 'get'")
            return len(key)

        assert _fan_out(["SPY", "QQQ", "^VIX"], fetch) == {"SPY": 3, "^VIX": 4}


class TestYahooFinanceClient:

    def test_snapshot_request(self) -> None:
        seen: list[httpx.Request] = []

        def spy(request: httpx.Request) -> httpx.Response | None:
            seen.append(request)
            return None

        client = _client({"AAPL": _chart([180.0, 190.0], regularMarketPrice=190.0)}, spy)
        snap = client.fetch_snapshot("AAPL", AssetType.STOCK, "3m")

        assert snap.current_price == 190.0
        assert seen[0].url.params["range"] == "6mo"
        assert seen[0].url.params["interval"] == "1d"
        assert seen[0].headers["User-Agent"].startswith("Mozilla/5.0")

    def test_crypto_symbol_suffix(self) -> None:
        client = _client({"BTC-USD": _chart([60000.0, 61000.0])})
        snap = client.fetch_snapshot("BTC", AssetType.CRYPTO, "1y")
        assert snap.symbol == "BTC"
        assert snap.is_live

    def test_snapshot_unavailable_on_http_error(self) -> None:
        snap = _client({}).fetch_snapshot("NOPE", AssetType.STOCK, "1y")
        assert snap == MarketSnapshot.unavailable("NOPE")

    def test_snapshot_unavailable_on_transport_error(self) -> None:
        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        snap = _client({}, boom).fetch_snapshot("AAPL", AssetType.STOCK, "1y")
        assert not snap.is_live

    def test_fetch_chart_empty_result(self) -> None:
        def empty(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"chart": {"result": []}})

        with pytest.raises(MarketDataUnavailableError, match="No chart result"):
            _client({}, empty).fetch_chart("AAPL")

    def test_fundamentals(self) -> None:
        body = {
            "quoteSummary": {
                "result": [{
                    "assetProfile": {"longName": "Apple Inc.", "sector": "Technology"},
                    "financialData": {
                        "totalRevenue": {"raw": 3.9e11, "fmt": "390B"},
                        "recommendationKey": "buy",
                        "targetMeanPrice": {"raw": 210.5},
                    },
                    "defaultKeyStatistics": {"marketCap": {"raw": 2.9e12}},
                }]
            }
        }

        def summary(request: httpx.Request) -> httpx.Response | None:
            if "quoteSummary" in request.url.path:
                return httpx.Response(200, json=body)
            return None

        data = _client({}, summary).fetch_fundamentals("AAPL")
        assert data is not None
        assert data.company_name == "Apple Inc."
        assert data.revenue == 3.9e11
        assert data.market_cap == 2.9e12
        assert data.analyst_recommendation == "buy"
        assert data.target_price == 210.5
        assert data.industry is None

    def test_fundamentals_unavailable(self) -> None:
        assert _client({}).fetch_fundamentals("AAPL") is None

    def test_index_changes_skip_failures(self) -> None:
        charts = {
            "SPY": _chart([500.0], regularMarketPrice=505.0, previousClose=500.0),
            "QQQ": _chart([400.0], regularMarketPrice=396.0, previousClose=400.0),
        }
        changes = _client(charts).fetch_index_changes()
        assert [(c.symbol, c.price_change) for c in changes] == [("SPY", 1.0), ("QQQ", -1.0)]
        assert changes[0].name == "S&P 500"

    def test_malformed_index_body_skips_only_that_index(self) -> None:
        charts = {
            "SPY": _chart([500.0], regularMarketPrice=505.0, previousClose=500.0),
            "DIA": _chart([300.0], regularMarketPrice=303.0, previousClose=300.0),
        }

        def malformed(request: httpx.Request) -> httpx.Response | None:
            if request.url.path.endswith("/QQQ"):
                return httpx.Response(200, json={"chart": {"result": ["unavailable"]}})
            return None

        changes = _client(charts, malformed).fetch_index_changes()
        assert [c.symbol for c in changes] == ["SPY", "DIA"]

    def test_market_overview(self) -> None:
        charts = {
            "SPY": _chart([100.0, 101.0]),
            "QQQ": _chart([100.0, 102.0]),
            "DIA": _chart([100.0, 100.5]),
            "IWM": _chart([100.0, 99.0]),
            "^VIX": _chart([14.0, 13.0]),
        }
        overview = _client(charts).get_market_overview()

        assert overview.error == ""
        assert overview.sentiment is Sentiment.BULLISH
        assert overview.vix_level == 13.0
        assert overview.fear_greed_estimate == "greed"
        assert [i.symbol for i in overview.indices] == ["SPY", "QQQ", "DIA", "IWM", "^VIX"]

    def test_market_overview_unreachable(self) -> None:
        overview = _client({}).get_market_overview()
        assert overview.error
        assert overview.sentiment is Sentiment.NEUTRAL

    def test_sector_performance(self) -> None:
        charts = {
            "XLK": _chart([100.0, 103.0]),
            "XLE": _chart([100.0, 98.0]),
            "XLF": _chart([100.0, 100.2]),
        }
        sectors = _client(charts).get_sector_performance()

        assert [s.name for s in sectors.sectors] == ["Technology", "Finance", "Energy"]
        assert sectors.top_sector == "Technology"
        assert sectors.weakest_sector == "Energy"
        assert [s.trend for s in sectors.sectors] == ["up", "neutral", "down"]

    def test_no_sectors(self) -> None:
        sectors = _client({}).get_sector_performance()
        assert sectors.error
        assert sectors.sectors == ()
        assert sectors.top_sector is None


class TestMarketTools:

    def test_screen_ranks_by_five_day_change(self) -> None:
        charts = {
            "AAPL": _chart([100.0, 101.0], regularMarketPrice=101.0),
            "MSFT": _chart([100.0, 104.0]),
            "KO": _chart([60.0, 59.4]),
        }
        screen = _client(charts).screen_stocks("blue_chip")

        assert screen.error == ""
        assert [(s.symbol, s.change_5d) for s in screen.stocks] == [
            ("MSFT", 4.0),
            ("AAPL", 1.0),
            ("KO", -1.0),
        ]
        assert [s.trend for s in screen.stocks] == ["up", "up", "down"]
        assert screen.stocks[0].volume == 1000

    def test_screen_unknown_criteria(self) -> None:
        screen = _client({}).screen_stocks("meme")
        assert screen.stocks == ()
        assert screen.error.startswith("Invalid criteria. Valid options: blue_chip, growth")

    def test_crypto_changes(self) -> None:
        charts = {"BTC-USD": _chart([100.0 + i for i in range(30)])}
        result = _client(charts).get_crypto_data("btc")

        assert result.error == ""
        assert result.data == CryptoQuote(
            symbol="BTC-USD",
            price=129.0,
            change_24h=0.78,
            change_7d=4.88,
            change_30d=29.0,
            volume_24h=1000,
        )
        assert result.data.trend == "up"

    def test_crypto_short_series(self) -> None:
        quote = crypto_from_chart("ETH-USD", _chart([50.0, 55.0]))
        assert (quote.change_24h, quote.change_7d, quote.change_30d) == (10.0, 10.0, 10.0)

    def test_crypto_unavailable(self) -> None:
        result = _client({}).get_crypto_data("DOGE")
        assert result.data is None
        assert result.error.startswith("Could not fetch data for DOGE")

    def test_crypto_symbol(self) -> None:
        assert crypto_symbol(" eth ") == "ETH-USD"
        assert crypto_symbol("BTC-USD") == "BTC-USD"

    def test_related_assets_from_industry(self) -> None:
        def profile(request: httpx.Request) -> httpx.Response | None:
            if "quoteSummary" in request.url.path:
                body = {"quoteSummary": {"result": [{"assetProfile": {"industry": "Banks - Diversified"}}]}}
                return httpx.Response(200, json=body)
            return None

        related = _client({}, profile).get_related_assets("jpm")
        assert related.symbol == "JPM"
        assert related.sector == "Finance"
        assert related.peers == ("BAC", "WFC", "GS", "MS", "BLK", "AXP")

    def test_related_assets_without_profile(self) -> None:
        related = _client({}).get_related_assets("AAPL")
        assert related.sector == "Technology"
        assert "AAPL" not in related.peers
        assert len(related.peers) == 6

    @pytest.mark.parametrize(
        "industry, sector",
        [
            ("Semiconductors", "Technology"),
            ("Oil & Gas Integrated", "Energy"),
            ("Specialty Industrial Machinery", "Industrial"),
            ("Medical Devices", "Healthcare"),
            (None, "Technology"),
        ],
    )
    def test_sector_for_industry(self, industry: str | None, sector: str) -> None:
        assert sector_for_industry(industry) == sector


class TestStaticMarketFeedTools:

    def test_screen(self) -> None:
        feed = StaticMarketFeed(stocks={
            "NVDA": ScreenedStock("NVDA", 120.0, 6.5),
            "TSLA": ScreenedStock("TSLA", 250.0, -2.0),
            "JPM": ScreenedStock("JPM", 200.0, 9.0),
        })
        screen = feed.screen_stocks("growth")
        assert [s.symbol for s in screen.stocks] == ["NVDA", "TSLA"]
        assert feed.screen_stocks("nope").error

    def test_crypto(self) -> None:
        quote = CryptoQuote("SOL-USD", 150.0, 1.0, 5.0, 20.0)
        feed = StaticMarketFeed(crypto={"SOL-USD": quote})
        assert feed.get_crypto_data("sol").data is quote
        assert feed.get_crypto_data("ADA").error == "Could not fetch data for ADA"

    def test_related_assets(self) -> None:
        feed = StaticMarketFeed(industries={"XOM": "Oil & Gas Integrated"})
        related = feed.get_related_assets("xom")
        assert related.sector == "Energy"
        assert related.peers == ("CVX", "COP", "MPC", "PSX", "VLO", "OXY")
