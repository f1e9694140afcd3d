"""Exchange rates: cached live lookups with an offline fallback table."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import httpx

from .cache import DEFAULT_TTL, TTLCache
from .fetch import FetchFailure, get_json, make_client

logger = logging.getLogger(__name__)

RATES_URL = "https://api.exchangerate-api.com/v4/latest/{base}"
RATES_TIMEOUT = 10.0
MAX_AMOUNT_CHARS = 12

# Approximate units of each currency per 1 NZD.
FALLBACK_RATES: Dict[str, float] = {
    "NZD": 1.0,
    "USD": 0.60,
    "EUR": 0.55,
    "GBP": 0.47,
    "AUD": 0.92,
    "JPY": 90.0,
}

CURRENCY_PAIRS: List[Tuple[str, str]] = [
    ("NZD", "USD"),
    ("NZD", "EUR"),
    ("NZD", "GBP"),
    ("NZD", "AUD"),
    ("NZD", "JPY"),
]


@dataclass(frozen=True)
class RateQuote:
    rate: Optional[float]
    source: str
    error: Optional[str] = None

    @property
    def is_live(self) -> bool:
        return self.source == "live"


def cache_key(from_currency: str, to_currency: str) -> str:
    return f"{from_currency.upper()}_{to_currency.upper()}"


def fallback_rate(from_currency: str, to_currency: str, table: Optional[Dict[str, float]] = None) -> Optional[float]:
    table = FALLBACK_RATES if table is None else table
    from_rate = table.get(from_currency.upper())
    to_rate = table.get(to_currency.upper())
    if not from_rate or to_rate is None:
        return None
    return (1.0 / from_rate) * to_rate


class RateCache:
    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
        fallback_table: Optional[Dict[str, float]] = None,
    ) -> None:
        self.client = client or make_client(RATES_TIMEOUT)
        self.cache: TTLCache[float] = TTLCache(ttl=ttl, clock=clock)
        self.fallback_table = dict(FALLBACK_RATES if fallback_table is None else fallback_table)

    def get_rate(self, from_currency: str, to_currency: str, force: bool = False) -> RateQuote:
        key = cache_key(from_currency, to_currency)
        if not force:
            cached = self.cache.get(key)
            if cached is not None:
                return RateQuote(cached, "cache")

        try:
            rate = self.fetch_rate(from_currency, to_currency)
        except FetchFailure as e:
            previous = self.cache.peek(key)
            if previous is not None:
                logger.info("keeping last rate for %s: %s", key, e)
                return RateQuote(previous.value, "cache", str(e))
            fallback = fallback_rate(from_currency, to_currency, self.fallback_table)
            if fallback is None:
                logger.warning("no rate for %s: %s (no fallback)", key, e)
            else:
                logger.info("using fallback rate for %s: %s", key, e)
            return RateQuote(fallback, "fallback", str(e))

        self.cache.put(key, rate)
        return RateQuote(rate, "live")

    def fetch_rate(self, from_currency: str, to_currency: str) -> float:
        data = get_json(self.client, RATES_URL.format(base=from_currency.upper()))
        rates = data.get("rates")
        if not isinstance(rates, dict):
            raise FetchFailure("invalid response format")
        value = rates.get(to_currency.upper())
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise FetchFailure(f"{to_currency.upper()} not found in response")
        return float(value)

    def close(self) -> None:
        self.client.close()


@dataclass
class CurrencyConverter:
    from_currency: str
    to_currency: str
    from_amount: float = 100.0
    to_amount: float = 0.0
    rate: Optional[float] = None
    pair_index: int = 0
    needs_refresh: bool = True
    input_buffer: str = "100"
    rate_source: Optional[str] = None
    rate_error: Optional[str] = None

    def __post_init__(self) -> None:
        self.from_currency = self.from_currency.upper()
        self.to_currency = self.to_currency.upper()

    def update_rate(self, rate: float, source: str = "live") -> None:
        self.rate = rate
        self.rate_source = source
        self.needs_refresh = False
        self._recalculate()

    def set_amount(self, amount: float) -> None:
        self.from_amount = amount
        self._recalculate()

    def _recalculate(self) -> None:
        self.to_amount = self.from_amount * self.rate if self.rate is not None else 0.0

    def swap_currencies(self) -> None:
        self.from_currency, self.to_currency = self.to_currency, self.from_currency
        if self.rate is not None and self.rate != 0:
            self.rate = 1.0 / self.rate
            self._recalculate()
        else:
            self.rate = None
            self.to_amount = 0.0
            self.needs_refresh = True

    def handle_input(self, ch: str) -> None:
        if len(self.input_buffer) >= MAX_AMOUNT_CHARS:
            return
        if ch.isdigit() or (ch == "." and "." not in self.input_buffer):
            self.input_buffer += ch
            self._parse_buffer()

    def handle_backspace(self) -> None:
        self.input_buffer = self.input_buffer[:-1]
        if not self.input_buffer:
            self.set_amount(0.0)
        else:
            self._parse_buffer()

    def clear_input(self) -> None:
        self.input_buffer = ""
        self.set_amount(0.0)

    def _parse_buffer(self) -> None:
        try:
            amount = float(self.input_buffer)
        except ValueError:
            return
        self.set_amount(amount)

    def cycle_pair(self) -> None:
        self.pair_index = (self.pair_index + 1) % len(CURRENCY_PAIRS)
        self.from_currency, self.to_currency = CURRENCY_PAIRS[self.pair_index]
        self.rate = None
        self.rate_source = None
        self.rate_error = None
        self.needs_refresh = True
        self._recalculate()

    def needs_rate_refresh(self) -> bool:
        return self.needs_refresh or self.rate is None

    @property
    def reverse_rate(self) -> Optional[float]:
        if not self.rate:
            return None
        return 1.0 / self.rate

    def rate_display(self) -> str:
        if self.rate is not None:
            return f"1 {self.from_currency} = {self.rate:.4f} {self.to_currency}"
        if self.rate_error:
            return "rate unavailable (offline, no cache)"
        return "loading..."

    def source_tag(self) -> str:
        if self.rate is None:
            return ""
        return "[live]" if self.rate_source == "live" else "[cache]"
