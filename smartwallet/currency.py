import logging
import math
import random
import time
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

import requests
from pydantic import BaseModel

logger = logging.getLogger("smartwallet.currency")

_CACHE_TTL = 60 * 60  # seconds


class UnsupportedCurrency(ValueError):
    """No rates are known for this currency code."""


class Currency(BaseModel):
    code: str
    name: str
    symbol: str
    rate: float  # per USD


class Conversion(BaseModel):
    from_currency: str
    to_currency: str
    amount: float
    converted_amount: float
    rate: float
    timestamp: str


CURRENCIES = [
    Currency(code="USD", name="US Dollar", symbol="$", rate=1.0),
    Currency(code="EUR", name="Euro", symbol="€", rate=0.85),
    Currency(code="GBP", name="British Pound", symbol="£", rate=0.73),
    Currency(code="JPY", name="Japanese Yen", symbol="¥", rate=110.0),
    Currency(code="INR", name="Indian Rupee", symbol="₹", rate=83.0),
    Currency(code="CAD", name="Canadian Dollar", symbol="C$", rate=1.25),
    Currency(code="AUD", name="Australian Dollar", symbol="A$", rate=1.35),
    Currency(code="CHF", name="Swiss Franc", symbol="CHF", rate=0.92),
    Currency(code="CNY", name="Chinese Yuan", symbol="¥", rate=6.45),
    Currency(code="SEK", name="Swedish Krona", symbol="kr", rate=8.85),
]
_BY_CODE = {c.code: c for c in CURRENCIES}


def currency_symbol(code: str) -> str:
    c = _BY_CODE.get(code)
    return c.symbol if c else code


def format_currency(amount: float, code: str) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency_symbol(code)}{abs(amount):,.2f}"


def _group_indian(amount: float) -> str:
    whole, frac = f"{abs(amount):.2f}".split(".")
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        pairs = []
        while len(head) > 2:
            pairs.insert(0, head[-2:])
            head = head[:-2]
        if head:
            pairs.insert(0, head)
        whole = ",".join(pairs + [tail])
    return f"{whole}.{frac}"


def format_indian(amount: float) -> str:
    """Rupee amount with crore (Cr) and lakh (L) abbreviations."""
    if amount >= 10_000_000:
        return f"₹{amount / 10_000_000:.2f} Cr"
    if amount >= 100_000:
        return f"₹{amount / 100_000:.2f} L"
    return f"₹{_group_indian(amount)}"


class CurrencyService:
    def __init__(
        self,
        api_url: str = "https://api.exchangerate-api.com/v4/latest",
        session: Optional[requests.Session] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        timeout: float = 10,
    ):
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.rng = rng or random.Random()
        self.clock = clock
        self.timeout = timeout
        self._cache: Dict[str, Tuple[float, Dict[str, float]]] = {}

    def supported(self) -> List[Currency]:
        return list(CURRENCIES)

    def get_rates(self, base: str = "USD") -> Dict[str, float]:
        """Rates per one unit of ``base``, cached per base for an hour."""
        base = base.upper()
        now = self.clock()
        hit = self._cache.get(base)
        if hit and now - hit[0] < _CACHE_TTL:
            return hit[1]

        try:
            r = self.session.get(f"{self.api_url}/{base}", timeout=self.timeout)
            if r.status_code == 200:
                rates = (r.json() or {}).get("rates")
                if isinstance(rates, dict) and rates:
                    fresh = {k: float(v) for k, v in rates.items()}
                    self._cache[base] = (now, fresh)
                    return fresh
            logger.warning("Exchange rate API returned %s, using fallback rates", r.status_code)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Exchange rate API failed, using fallback rates: %s", e)

        if base not in _BY_CODE:
            raise UnsupportedCurrency(base)
        # +/-1% around the static table, rebased onto ``base``
        jittered = {
            c.code: c.rate * (1 + (self.rng.random() - 0.5) * 0.02) for c in CURRENCIES
        }
        pivot = jittered[base]
        fallback = {code: rate / pivot for code, rate in jittered.items()}
        self._cache[base] = (now, fallback)
        return fallback

    def convert(self, amount: float, from_currency: str, to_currency: str) -> Conversion:
        rates = self.get_rates("USD")
        from_rate = rates.get(from_currency) or 1
        to_rate = rates.get(to_currency) or 1

        converted = amount / from_rate * to_rate
        return Conversion(
            from_currency=from_currency,
            to_currency=to_currency,
            amount=amount,
            converted_amount=round(converted, 2),
            rate=round(to_rate / from_rate, 4),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def historical_rates(self, code: str, days: int = 30) -> List[dict]:
        base_rate = _BY_CODE[code].rate if code in _BY_CODE else 1.0
        today = date.today()
        out = []
        for i in range(days, -1, -1):
            d = today - timedelta(days=i)
            drift = math.sin(i * 0.1) * 0.05 + (self.rng.random() - 0.5) * 0.02
            out.append({"date": d.isoformat(), "rate": base_rate * (1 + drift)})
        return out
