"""Market data feed backed by the public Yahoo Finance endpoints.

Two endpoints are used:

* ``/v8/finance/chart/{symbol}``: OHLC-like close/volume series plus a
  ``meta`` block with the latest price.
* ``/v10/finance/quoteSummary/{symbol}``: best-effort company and
  financial fields.

Every public method degrades to an explicit unavailable value; only the
low-level :meth:`YahooFinanceClient.fetch_chart` raises
:class:`MarketDataUnavailableError`.  Fan-out fetches (index baskets,
sector ETFs) run on a ``ThreadPoolExecutor``; a failed symbol is skipped
without affecting its siblings.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from typing import Any, TypeVar
from urllib.parse import quote

import httpx

from golddigger.domain.enums import AssetType, Sentiment, TrendDirection
from golddigger.domain.exceptions import MarketDataUnavailableError
from golddigger.domain.values import utc_now_iso

logger = logging.getLogger(__name__)

YAHOO_BASE_URL = "https://query1.finance.yahoo.com"
USER_AGENT = "Mozilla/5.0 (compatible; GoldDigger/1.0)"

CHART_TIMEOUT = 15.0
QUOTE_SUMMARY_TIMEOUT = 10.0
INDEX_TIMEOUT = 8.0

TIMEFRAME_RANGES: dict[str, str] = {
    "1d": "5d",
    "1w": "1mo",
    "1m": "3mo",
    "3m": "6mo",
    "6m": "1y",
    "1y": "2y",
    "5y": "5y",
    "all": "max",
}

TRADING_DAYS_PER_YEAR = 252

MARKET_INDICES: tuple[str, ...] = ("SPY", "QQQ", "DIA", "IWM")
VIX_SYMBOL = "^VIX"
INDEX_NAMES: dict[str, str] = {
    "SPY": "S&P 500",
    "QQQ": "Nasdaq 100",
    "DIA": "Dow Jones",
    "IWM": "Russell 2000",
    VIX_SYMBOL: "VIX",
}

SECTOR_ETFS: dict[str, str] = {
    "Technology": "XLK",
    "Finance": "XLF",
    "Energy": "XLE",
    "Healthcare": "XLV",
    "Consumer Discretionary": "XLY",
    "Industrial": "XLI",
    "Consumer Staples": "XLP",
    "Utilities": "XLU",
    "Real Estate": "XLRE",
    "Communication": "XLC",
}

STOCK_SCREENER_CRITERIA: dict[str, tuple[str, ...]] = {
    "blue_chip": ("AAPL", "MSFT", "JNJ", "V", "WMT", "PG", "KO", "DIS"),
    "growth": ("TSLA", "NVDA", "AVGO", "NFLX", "MSTR", "CRM", "ADBE", "SQ"),
    "dividend": ("PEP", "MCD", "O", "SCHD", "VYM", "DGRO", "SDIV", "JNJ"),
    "value": ("JPM", "BAC", "C", "F", "GE", "XOM", "CVX", "T"),
    "momentum": ("TSLA", "MSTR", "AVGO", "NVDA", "NFLX", "UBER", "PLTR", "PYPL"),
    "quick_wins": ("SOFI", "RIOT", "MARA", "CLSK", "MSTR", "COIN", "MVIS", "FUBO"),
}

SECTOR_PEERS: dict[str, tuple[str, ...]] = {
    "Technology": ("AAPL", "MSFT", "GOOGL", "META", "NVDA", "AMD", "INTC"),
    "Finance": ("JPM", "BAC", "WFC", "GS", "MS", "BLK", "AXP"),
    "Energy": ("XOM", "CVX", "COP", "MPC", "PSX", "VLO", "OXY"),
    "Healthcare": ("UNH", "JNJ", "PFE", "ABBV", "MRK", "TMO", "AMGN"),
    "Consumer Discretionary": ("AMZN", "MCD", "NKE", "TSLA", "HD", "LOW", "TJX"),
    "Industrial": ("BA", "CAT", "GE", "MMM", "HON", "RTX", "DE"),
    "Consumer Staples": ("PG", "PEP", "KO", "WMT", "CL", "MO", "EL"),
    "Utilities": ("NEE", "DUK", "SO", "EXC", "D", "AEE", "AWK"),
}
DEFAULT_PEER_SECTOR = "Technology"

# first match wins
_INDUSTRY_SECTORS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("Software", "Semiconductor", "Technology"), "Technology"),
    (("Finance", "Bank", "Insurance"), "Finance"),
    (("Energy", "Oil"), "Energy"),
    (("Healthcare", "Medical", "Pharma"), "Healthcare"),
    (("Retail", "Consumer"), "Consumer Discretionary"),
    (("Industrial", "Manufacturing"), "Industrial"),
)

VIX_FEAR_LEVEL = 25.0
VIX_GREED_LEVEL = 15.0

T = TypeVar("T")


# ===================================================================== #
#  Records                                                               #
# ===================================================================== #

@dataclass(frozen=True)
class MarketSnapshot:
    """Price snapshot of one symbol.

    ``data_source`` is ``"live"`` or ``"unavailable"``; an unavailable
    snapshot has every numeric field set to ``None`` and a sideways trend.
    """

    symbol: str
    current_price: float | None = None
    price_change_24h: float | None = None
    volume: float | None = None
    market_cap: float | None = None
    high_52w: float | None = None
    low_52w: float | None = None
    sma20: float | None = None
    sma50: float | None = None
    trend: TrendDirection = TrendDirection.SIDEWAYS
    data_source: str = "unavailable"

    @property
    def is_live(self) -> bool:
        return self.data_source == "live"

    @classmethod
    def unavailable(cls, symbol: str) -> MarketSnapshot:
        return cls(symbol=symbol)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["trend"] = self.trend.value
        return data


@dataclass(frozen=True)
class FundamentalData:
    """Best-effort company and financial fields.  Missing values are ``None``."""

    company_name: str
    sector: str | None = None
    industry: str | None = None
    market_cap: float | None = None
    revenue: float | None = None
    profit_margin: float | None = None
    debt_to_equity: float | None = None
    return_on_equity: float | None = None
    earnings_growth: float | None = None
    analyst_recommendation: str | None = None
    target_price: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class IndexChange:
    """Daily move of one broad-market index."""

    symbol: str
    price_change: float
    price: float | None = None

    @property
    def direction(self) -> Sentiment:
        return Sentiment.BULLISH if self.price_change > 0 else Sentiment.BEARISH

    @property
    def name(self) -> str:
        return INDEX_NAMES.get(self.symbol, self.symbol)

    def to_dict(self) -> dict[str, Any]:
        return {"priceChange": self.price_change, "direction": self.direction.value}


@dataclass(frozen=True)
class MarketOverview:
    sentiment: Sentiment = Sentiment.NEUTRAL
    indices: tuple[IndexChange, ...] = ()
    vix_level: float = 0.0
    fear_greed_estimate: str = "unknown"
    timestamp: str = field(default_factory=utc_now_iso)
    error: str = ""


@dataclass(frozen=True)
class SectorMove:
    name: str
    etf: str
    change_5d: float

    @property
    def trend(self) -> str:
        return _calculate_trend(self.change_5d)


@dataclass(frozen=True)
class SectorPerformance:
    """Sector ETFs sorted by 5-day change, best first."""

    sectors: tuple[SectorMove, ...] = ()
    timestamp: str = field(default_factory=utc_now_iso)
    error: str = ""

    @property
    def top_sector(self) -> str | None:
        return self.sectors[0].name if self.sectors else None

    @property
    def weakest_sector(self) -> str | None:
        return self.sectors[-1].name if self.sectors else None


@dataclass(frozen=True)
class ScreenedStock:
    """One screener row: last close and 5-day move."""

    symbol: str
    price: float
    change_5d: float
    volume: int = 0

    @property
    def trend(self) -> str:
        return _calculate_trend(self.change_5d)


@dataclass(frozen=True)
class StockScreen:
    """Screener result, best 5-day performer first."""

    criteria: str
    stocks: tuple[ScreenedStock, ...] = ()
    fetched_at: str = field(default_factory=utc_now_iso)
    error: str = ""

    @classmethod
    def ranked(cls, criteria: str, stocks: Sequence[ScreenedStock]) -> StockScreen:
        return cls(criteria, tuple(sorted(stocks, key=lambda s: s.change_5d, reverse=True)))

    @classmethod
    def invalid(cls, criteria: str) -> StockScreen:
        valid = ", ".join(STOCK_SCREENER_CRITERIA)
        return cls(criteria, error=f"Invalid criteria. Valid options: {valid}")


@dataclass(frozen=True)
class CryptoQuote:
    """Daily-close changes of a ``<SYMBOL>-USD`` pair over the last month."""

    symbol: str
    price: float
    change_24h: float
    change_7d: float
    change_30d: float
    volume_24h: int = 0
    # the chart endpoint carries no market cap
    market_cap: float = 0.0

    @property
    def trend(self) -> str:
        return _calculate_trend(self.change_7d)


@dataclass(frozen=True)
class CryptoResult:
    data: CryptoQuote | None = None
    error: str = ""


@dataclass(frozen=True)
class RelatedAssets:
    """Sector peers of a symbol; the symbol itself is never listed."""

    symbol: str
    sector: str | None = None
    peers: tuple[str, ...] = ()
    error: str = ""


# ===================================================================== #
#  Pure helpers                                                          #
# ===================================================================== #

def _calculate_trend(change_percent: float) -> str:
    if change_percent > 0.5:
        return "up"
    if change_percent < -0.5:
        return "down"
    return "neutral"


def _raw(block: dict[str, Any], key: str) -> Any:
    """Yahoo wraps numbers as ``{"raw": 1.2, "fmt": "1.2"}``."""
    value = block.get(key)
    if isinstance(value, dict):
        return value.get("raw")
    return value


def _valid(series: Sequence[Any] | None) -> list[float]:
    return [float(v) for v in series or () if isinstance(v, (int, float)) and not isinstance(v, bool)]


def _quote_block(chart: dict[str, Any]) -> dict[str, Any]:
    return ((chart.get("indicators") or {}).get("quote") or [{}])[0] or {}


def snapshot_from_chart(symbol: str, chart: dict[str, Any]) -> MarketSnapshot:
    """Derive a :class:`MarketSnapshot` from one ``chart.result`` entry.

    Raises
    ------
    MarketDataUnavailableError
        If the series holds no valid closes.
    """
    meta = chart.get("meta") or {}
    quote_block = _quote_block(chart)
    closes = _valid(quote_block.get("close"))
    volumes = _valid(quote_block.get("volume"))
    if not closes:
        raise MarketDataUnavailableError("No valid price data", symbol=symbol)

    current = meta.get("regularMarketPrice") or closes[-1]
    previous = meta.get("previousClose") or (closes[-2] if len(closes) > 1 else current)
    change = round((current - previous) / previous * 100, 2) if previous else 0.0

    year = closes[-TRADING_DAYS_PER_YEAR:]
    sma20_window = closes[-20:]
    sma50_window = closes[-50:]
    sma20 = sum(sma20_window) / len(sma20_window)
    sma50 = sum(sma50_window) / len(sma50_window) if sma50_window else sma20

    if sma20 > sma50:
        trend = TrendDirection.UPTREND
    elif sma20 < sma50:
        trend = TrendDirection.DOWNTREND
    else:
        trend = TrendDirection.SIDEWAYS

    return MarketSnapshot(
        symbol=symbol,
        current_price=round(float(current), 2),
        price_change_24h=change,
        volume=volumes[-1] if volumes else None,
        market_cap=meta.get("marketCap"),
        high_52w=round(max(year), 2),
        low_52w=round(min(year), 2),
        sma20=round(sma20, 2),
        sma50=round(sma50, 2),
        trend=trend,
        data_source="live",
    )


def series_change(chart: dict[str, Any]) -> tuple[float, float] | None:
    """``(last close, % change from first close)`` of a chart, or ``None``."""
    quote_block = _quote_block(chart)
    closes = _valid(quote_block.get("close"))
    if not closes:
        return None
    first, last = closes[0], closes[-1]
    change = (last - first) / first * 100 if len(closes) > 1 and first else 0.0
    return round(last, 2), round(change, 2)


def tally_sentiment(changes: Sequence[IndexChange]) -> tuple[Sentiment, int, int]:
    """Majority vote over index directions: ``(sentiment, bullish, bearish)``."""
    bullish = sum(1 for c in changes if c.direction is Sentiment.BULLISH)
    bearish = len(changes) - bullish
    if bullish > bearish:
        return Sentiment.BULLISH, bullish, bearish
    if bearish > bullish:
        return Sentiment.BEARISH, bullish, bearish
    return Sentiment.NEUTRAL, bullish, bearish


def fear_greed_from_vix(vix: float) -> str:
    """``"fear"`` above 25, ``"greed"`` below 15; ``"unknown"`` without a reading."""
    if vix <= 0:
        return "unknown"
    if vix > VIX_FEAR_LEVEL:
        return "fear"
    if vix < VIX_GREED_LEVEL:
        return "greed"
    return "neutral"


def crypto_symbol(symbol: str) -> str:
    """``btc`` -> ``BTC-USD``; already-suffixed pairs are kept."""
    ticker = symbol.strip().upper()
    return ticker if ticker.endswith("-USD") else f"{ticker}-USD"


def screened_stock(symbol: str, chart: dict[str, Any]) -> ScreenedStock | None:
    """Screener row from a 5-day chart, or ``None`` without closes."""
    point = series_change(chart)
    if point is None:
        return None
    volumes = _valid(_quote_block(chart).get("volume"))
    return ScreenedStock(symbol, point[0], point[1], int(volumes[-1]) if volumes else 0)


def crypto_from_chart(symbol: str, chart: dict[str, Any]) -> CryptoQuote:
    """Derive 24h, 7d and 30d changes from a month of daily closes.

    Short series fall back: 7d to the 24h change, 24h to zero.

    Raises
    ------
    MarketDataUnavailableError
        If the series holds no valid closes.
    """
    closes = _valid(_quote_block(chart).get("close"))
    volumes = _valid(_quote_block(chart).get("volume"))
    if not closes:
        raise MarketDataUnavailableError(f"No price data available for {symbol}", symbol=symbol)

    current = closes[-1]

    def change_from(base: float) -> float:
        return round((current - base) / base * 100, 2) if base else 0.0

    change_24h = change_from(closes[-2]) if len(closes) >= 2 else 0.0
    change_7d = change_from(closes[-7]) if len(closes) >= 7 else change_24h
    return CryptoQuote(
        symbol=symbol,
        price=round(current, 2),
        change_24h=change_24h,
        change_7d=change_7d,
        change_30d=change_from(closes[0]),
        volume_24h=int(volumes[-1]) if volumes else 0,
    )


def sector_for_industry(industry: str | None) -> str:
    """Map a Yahoo industry label onto a peer sector; unknown labels map to Technology."""
    if isinstance(industry, str):
        for keywords, sector in _INDUSTRY_SECTORS:
            if any(word in industry for word in keywords):
                return sector
    return DEFAULT_PEER_SECTOR


def related_assets(symbol: str, sector: str) -> RelatedAssets:
    ticker = symbol.strip().upper()
    peers = SECTOR_PEERS.get(sector) or SECTOR_PEERS[DEFAULT_PEER_SECTOR]
    return RelatedAssets(ticker, sector, tuple(p for p in peers if p != ticker))


def _fan_out(
    keys: Sequence[str],
    fetch: Callable[[str], T],
    max_workers: int = 8,
) -> dict[str, T]:
    """Run *fetch* for every key concurrently; failed keys are omitted."""
    results: dict[str, T] = {}
    if not keys:
        return results
    with ThreadPoolExecutor(max_workers=min(max_workers, len(keys))) as pool:
        futures = {key: pool.submit(fetch, key) for key in keys}
        for key, future in futures.items():
            try:
                results[key] = future.result()
            except Exception as exc:
                logger.warning("Fan-out fetch for %s failed: %s", key, exc)
    return results


# ===================================================================== #
#  Feed interface                                                        #
# ===================================================================== #

class MarketFeed(ABC):
    """What the investment pipeline needs from a market data source."""

    @abstractmethod
    def fetch_snapshot(self, symbol: str, asset_type: AssetType, timeframe: str) -> MarketSnapshot:
        ...

    @abstractmethod
    def fetch_fundamentals(self, symbol: str) -> FundamentalData | None:
        """``None`` when the fundamentals feed is unavailable."""
        ...

    @abstractmethod
    def fetch_index_changes(self, symbols: Sequence[str] = MARKET_INDICES) -> list[IndexChange]:
        ...

    @abstractmethod
    def get_market_overview(self) -> MarketOverview:
        ...

    @abstractmethod
    def get_sector_performance(self) -> SectorPerformance:
        ...

    @abstractmethod
    def screen_stocks(self, criteria: str) -> StockScreen:
        """Rank a named stock basket (see ``STOCK_SCREENER_CRITERIA``) by 5-day change."""
        ...

    @abstractmethod
    def get_crypto_data(self, symbol: str) -> CryptoResult:
        ...

    @abstractmethod
    def get_related_assets(self, symbol: str) -> RelatedAssets:
        ...


class YahooFinanceClient(MarketFeed):
    """:class:`MarketFeed` over the Yahoo Finance public API.

    Parameters
    ----------
    base_url:
        API host.
    transport:
        Optional ``httpx`` transport (``httpx.MockTransport`` in tests).
    max_workers:
        Thread-pool width for fan-out fetches.
    """

    def __init__(
        self,
        base_url: str = YAHOO_BASE_URL,
        transport: httpx.BaseTransport | None = None,
        max_workers: int = 8,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url,
            headers={"User-Agent": USER_AGENT},
            timeout=httpx.Timeout(CHART_TIMEOUT),
            transport=transport,
        )
        self._max_workers = max_workers

    # -- low level ------------------------------------------------------------

    def _get_json(self, path: str, params: dict[str, str], timeout: float, symbol: str) -> Any:
        try:
            response = self._client.get(path, params=params, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise MarketDataUnavailableError(
                "Yahoo Finance API request timeout", symbol=symbol
            ) from exc
        except httpx.TransportError as exc:
            raise MarketDataUnavailableError(
                f"Yahoo Finance unreachable: {exc}", symbol=symbol
            ) from exc
        if response.status_code >= 400:
            raise MarketDataUnavailableError(
                f"Yahoo Finance API {response.status_code} for {symbol}",
                symbol=symbol,
                details={"status": response.status_code},
            )
        try:
            return response.json()
        except ValueError as exc:
            raise MarketDataUnavailableError(
                f"Yahoo Finance returned non-JSON response for {symbol}", symbol=symbol
            ) from exc

    def fetch_chart(
        self,
        symbol: str,
        range_: str = "1y",
        interval: str = "1d",
        timeout: float = CHART_TIMEOUT,
    ) -> dict[str, Any]:
        """Return the first ``chart.result`` entry for *symbol*.

        Raises
        ------
        MarketDataUnavailableError
            On transport errors, HTTP errors, bad JSON or an empty result.
        """
        data = self._get_json(
            f"/v8/finance/chart/{quote(symbol, safe='')}",
            {"range": range_, "interval": interval},
            timeout,
            symbol,
        )
        results = ((data or {}).get("chart") or {}).get("result") or []
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            raise MarketDataUnavailableError("No chart result data", symbol=symbol)
        return results[0]

    # -- feed API -------------------------------------------------------------

    def fetch_snapshot(self, symbol: str, asset_type: AssetType, timeframe: str) -> MarketSnapshot:
        """Live snapshot, or :meth:`MarketSnapshot.unavailable` on any failure."""
        fetch_symbol = f"{symbol}-USD" if asset_type is AssetType.CRYPTO else symbol
        range_ = TIMEFRAME_RANGES.get(timeframe, "1y")
        try:
            chart = self.fetch_chart(fetch_symbol, range_)
            snapshot = snapshot_from_chart(symbol, chart)
        except MarketDataUnavailableError as exc:
            logger.warning("Market data unavailable for %s: %s", fetch_symbol, exc)
            return MarketSnapshot.unavailable(symbol)
        logger.info(
            "Live data: %s @ %.2f (%s)", fetch_symbol, snapshot.current_price, snapshot.trend.value
        )
        return snapshot

    def fetch_fundamentals(self, symbol: str) -> FundamentalData | None:
        try:
            data = self._get_json(
                f"/v10/finance/quoteSummary/{quote(symbol, safe='')}",
                {"modules": "assetProfile,financialData,defaultKeyStatistics"},
                QUOTE_SUMMARY_TIMEOUT,
                symbol,
            )
        except MarketDataUnavailableError as exc:
            logger.warning("quoteSummary unavailable for %s: %s", symbol, exc)
            return None

        results = ((data or {}).get("quoteSummary") or {}).get("result") or [{}]
        summary = results[0] or {}
        profile = summary.get("assetProfile") or {}
        fin = summary.get("financialData") or {}
        stats = summary.get("defaultKeyStatistics") or {}
        return FundamentalData(
            company_name=profile.get("longName") or symbol,
            sector=profile.get("sector"),
            industry=profile.get("industry"),
            market_cap=_raw(stats, "marketCap") or _raw(summary.get("price") or {}, "marketCap"),
            revenue=_raw(fin, "totalRevenue"),
            profit_margin=_raw(fin, "profitMargins"),
            debt_to_equity=_raw(fin, "debtToEquity"),
            return_on_equity=_raw(fin, "returnOnEquity"),
            earnings_growth=_raw(fin, "earningsGrowth"),
            analyst_recommendation=fin.get("recommendationKey"),
            target_price=_raw(fin, "targetMeanPrice"),
        )

    def _index_change(self, symbol: str) -> IndexChange:
        chart = self.fetch_chart(symbol, "2d", timeout=INDEX_TIMEOUT)
        meta = chart.get("meta") or {}
        price = meta.get("regularMarketPrice")
        previous = meta.get("previousClose")
        change = (price - previous) / previous * 100 if price and previous else 0.0
        return IndexChange(symbol=symbol, price_change=round(change, 2), price=price)

    def fetch_index_changes(self, symbols: Sequence[str] = MARKET_INDICES) -> list[IndexChange]:
        """Daily change of each index, fetched concurrently.  Failures are skipped."""
        fetched = _fan_out(list(symbols), self._index_change, self._max_workers)
        return [fetched[s] for s in symbols if s in fetched]

    def get_market_overview(self) -> MarketOverview:
        """Index tally plus the VIX fear/greed gauge."""
        symbols = [*MARKET_INDICES, VIX_SYMBOL]
        fetched = _fan_out(
            symbols,
            lambda s: series_change(self.fetch_chart(s, "5d", timeout=CHART_TIMEOUT)),
            self._max_workers,
        )
        indices: list[IndexChange] = []
        bullish = 0
        vix = 0.0
        for symbol in symbols:
            point = fetched.get(symbol)
            if point is None:
                continue
            price, change = point
            indices.append(IndexChange(symbol=symbol, price_change=change, price=price))
            if symbol == VIX_SYMBOL:
                vix = price
                # VIX falling is bullish
                bullish += change <= 0
            else:
                bullish += change > 0

        if not indices:
            return MarketOverview(error="No market index data available")

        if bullish >= 4:
            sentiment = Sentiment.BULLISH
        elif bullish <= 1:
            sentiment = Sentiment.BEARISH
        else:
            sentiment = Sentiment.NEUTRAL
        return MarketOverview(
            sentiment=sentiment,
            indices=tuple(indices),
            vix_level=vix,
            fear_greed_estimate=fear_greed_from_vix(vix),
        )

    def get_sector_performance(self) -> SectorPerformance:
        """Sector ETFs ranked by 5-day change."""
        etfs = list(SECTOR_ETFS.values())
        fetched = _fan_out(
            etfs,
            lambda s: series_change(self.fetch_chart(s, "5d", timeout=CHART_TIMEOUT)),
            self._max_workers,
        )
        moves = [
            SectorMove(name=name, etf=etf, change_5d=fetched[etf][1])
            for name, etf in SECTOR_ETFS.items()
            if fetched.get(etf) is not None
        ]
        if not moves:
            return SectorPerformance(error="No sector data available")
        moves.sort(key=lambda m: m.change_5d, reverse=True)
        return SectorPerformance(sectors=tuple(moves))

    def screen_stocks(self, criteria: str) -> StockScreen:
        """Fetch every ticker of the *criteria* basket; failed tickers are skipped."""
        tickers = STOCK_SCREENER_CRITERIA.get(criteria)
        if tickers is None:
            return StockScreen.invalid(criteria)
        fetched = _fan_out(
            list(tickers),
            lambda s: screened_stock(s, self.fetch_chart(s, "5d", timeout=CHART_TIMEOUT)),
            self._max_workers,
        )
        return StockScreen.ranked(criteria, [fetched[s] for s in tickers if fetched.get(s)])

    def get_crypto_data(self, symbol: str) -> CryptoResult:
        ticker = crypto_symbol(symbol)
        try:
            chart = self.fetch_chart(ticker, "1mo")
            return CryptoResult(crypto_from_chart(ticker, chart))
        except MarketDataUnavailableError as exc:
            logger.warning("Crypto data unavailable for %s: %s", ticker, exc)
            return CryptoResult(error=f"Could not fetch data for {symbol}: {exc}")

    def get_related_assets(self, symbol: str) -> RelatedAssets:
        """Peers from the sector implied by the company's industry.

        The industry lookup is best effort; without it the Technology
        peers are returned.
        """
        ticker = symbol.strip().upper()
        industry = None
        try:
            data = self._get_json(
                f"/v10/finance/quoteSummary/{quote(ticker, safe='')}",
                {"modules": "assetProfile"},
                QUOTE_SUMMARY_TIMEOUT,
                ticker,
            )
        except MarketDataUnavailableError as exc:
            logger.warning("Sector lookup failed for %s: %s", ticker, exc)
        else:
            results = ((data or {}).get("quoteSummary") or {}).get("result") or [{}]
            if isinstance(results[0], dict):
                industry = (results[0].get("assetProfile") or {}).get("industry")
        return related_assets(ticker, sector_for_industry(industry))

    def close(self) -> None:
        self._client.close()

    def __repr__(self) -> str:
        return f"YahooFinanceClient(base_url={str(self._client.base_url)!r})"
