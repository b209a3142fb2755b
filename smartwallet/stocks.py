"""
Stock quotes from the Alpha Vantage free API.

Without an API key every call returns mock data that drifts with the clock
plus jitter from the injected random source.
"""

import logging
import math
import random
import time
from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
from pydantic import BaseModel

logger = logging.getLogger("smartwallet.stocks")

_BASE_URL = "https://www.alphavantage.co/query"
_CACHE_TTL = 2 * 60  # seconds

_BASE_PRICES = {
    "AAPL": 175, "GOOGL": 140, "MSFT": 380, "TSLA": 250, "AMZN": 145, "META": 320,
    "NVDA": 480, "AMD": 110, "INTC": 45, "SPY": 450, "QQQ": 380, "VTI": 220,
}
_NAMES = {
    "AAPL": "Apple Inc.",
    "GOOGL": "Alphabet Inc.",
    "MSFT": "Microsoft Corporation",
    "TSLA": "Tesla Inc.",
    "AMZN": "Amazon.com Inc.",
    "META": "Meta Platforms Inc.",
    "NVDA": "NVIDIA Corporation",
    "AMD": "Advanced Micro Devices",
    "INTC": "Intel Corporation",
    "SPY": "SPDR S&P 500 ETF",
    "QQQ": "Invesco QQQ Trust",
    "VTI": "Vanguard Total Stock Market ETF",
}
POPULAR = ["AAPL", "GOOGL", "MSFT", "TSLA", "AMZN", "META", "NVDA"]


class StockQuote(BaseModel):
    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    volume: int
    market_cap: Optional[int] = None
    pe: Optional[float] = None
    dividend: Optional[float] = None


class ChartPoint(BaseModel):
    date: str
    open: float
    high: float
    low: float
    close: float
    volume: int


class StockChart(BaseModel):
    symbol: str
    data: List[ChartPoint]


class MarketIndex(BaseModel):
    name: str
    symbol: str
    value: float
    change: float
    change_percent: float


class MarketOverview(BaseModel):
    indices: List[MarketIndex]
    top_gainers: List[StockQuote]
    top_losers: List[StockQuote]
    most_active: List[StockQuote]


def company_name(symbol: str) -> str:
    return _NAMES.get(symbol, f"{symbol} Corporation")


def base_price(symbol: str) -> float:
    return float(_BASE_PRICES.get(symbol, 100))


class StockService:
    def __init__(
        self,
        api_key: str = "",
        session: Optional[requests.Session] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        timeout: float = 10,
    ):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.rng = rng or random.Random()
        self.clock = clock
        self.timeout = timeout
        self._cache: Dict[str, Tuple[float, Any]] = {}
        if not api_key:
            logger.warning("ALPHA_VANTAGE_API_KEY not set; stock data is mocked")

    def _cached(self, key: str):
        hit = self._cache.get(key)
        if hit and self.clock() - hit[0] < _CACHE_TTL:
            return hit[1]
        return None

    def clear_cache(self) -> None:
        self._cache = {}

    def quote(self, symbol: str) -> StockQuote:
        symbol = symbol.upper()
        key = f"quote_{symbol}"
        hit = self._cached(key)
        if hit is not None:
            return hit
        if not self.api_key:
            return self.mock_quote(symbol)

        try:
            r = self.session.get(
                _BASE_URL,
                params={"function": "GLOBAL_QUOTE", "symbol": symbol, "apikey": self.api_key},
                timeout=self.timeout,
            )
            if r.status_code == 200:
                q = (r.json() or {}).get("Global Quote") or {}
                if q.get("01. symbol"):
                    quote = StockQuote(
                        symbol=q["01. symbol"],
                        name=company_name(symbol),
                        price=float(q["05. price"]),
                        change=float(q["09. change"]),
                        change_percent=float(q["10. change percent"].replace("%", "")),
                        volume=int(q["06. volume"]),
                    )
                    self._cache[key] = (self.clock(), quote)
                    return quote
        except (requests.RequestException, ValueError, KeyError) as e:
            logger.warning("Stock API failed for %s, using mock data: %s", symbol, e)

        return self.mock_quote(symbol)

    def quotes(self, symbols: List[str]) -> List[StockQuote]:
        return [self.quote(s) for s in symbols]

    def chart(self, symbol: str) -> StockChart:
        symbol = symbol.upper()
        key = f"chart_{symbol}_daily"
        hit = self._cached(key)
        if hit is not None:
            return hit
        if not self.api_key:
            return self.mock_chart(symbol)

        try:
            r = self.session.get(
                _BASE_URL,
                params={"function": "TIME_SERIES_DAILY", "symbol": symbol, "apikey": self.api_key},
                timeout=self.timeout,
            )
            if r.status_code == 200:
                series = (r.json() or {}).get("Time Series (Daily)")
                if series:
                    points = [
                        ChartPoint(
                            date=d,
                            open=float(v["1. open"]),
                            high=float(v["2. high"]),
                            low=float(v["3. low"]),
                            close=float(v["4. close"]),
                            volume=int(v["5. volume"]),
                        )
                        for d, v in list(series.items())[:30]
                    ]
                    points.reverse()  # oldest first
                    chart = StockChart(symbol=symbol, data=points)
                    self._cache[key] = (self.clock(), chart)
                    return chart
        except (requests.RequestException, ValueError, KeyError) as e:
            logger.warning("Chart API failed for %s, using mock data: %s", symbol, e)

        return self.mock_chart(symbol)

    def market_overview(self) -> MarketOverview:
        hit = self._cached("market_overview")
        if hit is not None:
            return hit
        overview = self._mock_overview()
        self._cache["market_overview"] = (self.clock(), overview)
        return overview

    def search(self, query: str) -> List[StockQuote]:
        q = query.lower()
        matches = [s for s in POPULAR if q in s.lower() or q in company_name(s).lower()]
        return self.quotes(matches[:5])

    def mock_quote(self, symbol: str) -> StockQuote:
        base = base_price(symbol)
        volatility = math.sin(self.clock() / 10) * 0.02 + (self.rng.random() - 0.5) * 0.03
        change = base * volatility
        return StockQuote(
            symbol=symbol,
            name=company_name(symbol),
            price=round(base + change, 2),
            change=round(change, 2),
            change_percent=round(change / base * 100, 2),
            volume=self.rng.randint(1_000_000, 10_999_999),
            market_cap=self.rng.randint(10_000_000_000, 1_010_000_000_000),
            pe=round(self.rng.random() * 30 + 10, 2),
            dividend=round(self.rng.random() * 5, 2),
        )

    def mock_chart(self, symbol: str) -> StockChart:
        price = base_price(symbol)
        today = date.today()
        points = []
        for i in range(29, -1, -1):
            daily = (self.rng.random() - 0.5) * price * 0.03
            open_, close = price, price + daily
            high = max(open_, close) * (1 + self.rng.random() * 0.02)
            low = min(open_, close) * (1 - self.rng.random() * 0.02)
            points.append(ChartPoint(
                date=(today - timedelta(days=i)).isoformat(),
                open=round(open_, 2),
                high=round(high, 2),
                low=round(low, 2),
                close=round(close, 2),
                volume=self.rng.randint(1_000_000, 5_999_999),
            ))
            price = close
        return StockChart(symbol=symbol, data=points)

    def _mock_overview(self) -> MarketOverview:
        t = math.sin(self.clock() / 100)
        rnd = self.rng.random

        def index(name, symbol, value, spread, swing, pct_swing, t_val, t_chg, t_pct):
            return MarketIndex(
                name=name,
                symbol=symbol,
                value=value + rnd() * spread + t * t_val,
                change=(rnd() - 0.5) * swing + t * t_chg,
                change_percent=(rnd() - 0.5) * pct_swing + t * t_pct,
            )

        gainers = []
        for s in ("AAPL", "GOOGL", "MSFT"):
            q = self.mock_quote(s)
            gainers.append(q.model_copy(update={"change": abs(q.change), "change_percent": abs(q.change_percent)}))
        losers = []
        for s in ("TSLA", "AMZN", "META"):
            q = self.mock_quote(s)
            losers.append(q.model_copy(update={"change": -abs(q.change), "change_percent": -abs(q.change_percent)}))

        return MarketOverview(
            indices=[
                index("S&P 500", "SPX", 4500, 200, 50, 2, 100, 20, 0.5),
                index("Dow Jones", "DJI", 35000, 1000, 300, 1.5, 500, 100, 0.3),
                index("NASDAQ", "IXIC", 14000, 500, 100, 2.5, 250, 50, 0.4),
            ],
            top_gainers=gainers,
            top_losers=losers,
            most_active=[self.mock_quote(s) for s in ("NVDA", "AMD", "INTC")],
        )
