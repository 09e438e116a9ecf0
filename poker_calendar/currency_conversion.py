from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from http.client import HTTPException
import json
import re
import threading
import time
from typing import Callable, Mapping
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import structlog

from poker_calendar.config import DEFAULT_FX_RATES_URL
from poker_calendar.exceptions import RateSourceUnavailable

logger = structlog.get_logger(__name__)

RateTable = Mapping[str, Decimal]

DEFAULT_STABLE_ASSET_ALIASES = frozenset({"USDT", "USDC"})


@dataclass(frozen=True)
class StaticRateSource:
    """Deterministic, in-memory FX rates.

    Rates are expressed as units of the currency per 1 reference unit.
    """

    rates: Mapping[str, Decimal] = None
    reference_currency: str = "USD"

    def __post_init__(self) -> None:
        parsed = {normalize_currency(code): Decimal(str(value)) for code, value in (self.rates or {}).items()}
        parsed[normalize_currency(self.reference_currency)] = Decimal("1")
        object.__setattr__(self, "rates", parsed)

    def get_rates(self) -> RateTable:
        return self.rates


@dataclass(frozen=True)
class CachedRates:
    rates: RateTable
    expires_at: float


@dataclass
class LiveRateSource:
    """Rates from a JSON endpoint shaped like ``{"rates": {"TWD": 32.1}}``.

    The table is fetched at most once per ``cache_ttl_seconds``. A refresh
    swaps the whole ``CachedRates`` value, so readers never see a partial
    table. With ``allow_stale`` a failed refresh keeps serving the expired
    table instead of raising.
    """

    base_url: str = DEFAULT_FX_RATES_URL
    reference_currency: str = "USD"
    cache_ttl_seconds: int = 24 * 60 * 60
    timeout_seconds: float = 8
    allow_stale: bool = False
    clock: Callable[[], float] = time.monotonic
    _cache: CachedRates | None = field(default=None, repr=False)
    _refresh_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def get_rates(self) -> RateTable:
        cached = self._cache
        now = self.clock()
        if cached and cached.expires_at > now:
            logger.debug("rates_cache_hit", currencies=len(cached.rates))
            return cached.rates

        with self._refresh_lock:
            cached = self._cache
            if cached and cached.expires_at > now:
                return cached.rates
            try:
                rates = self._fetch_rates()
            except RateSourceUnavailable:
                if self.allow_stale and cached is not None:
                    logger.warning("rates_refresh_failed_serving_stale", currencies=len(cached.rates))
                    return cached.rates
                raise
            self._cache = CachedRates(rates=rates, expires_at=now + self.cache_ttl_seconds)

        logger.info("rates_refreshed", currencies=len(rates), url=self.base_url)
        return rates

    def _fetch_rates(self) -> RateTable:
        request = Request(self.base_url, headers={"Accept": "application/json"})
        try:
            with urlopen(request, timeout=self.timeout_seconds) as response:
                payload = json.load(response)
        except (HTTPError, URLError, HTTPException, OSError, ValueError) as exc:
            raise RateSourceUnavailable("Exchange rate source unavailable") from exc

        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict):
            raise RateSourceUnavailable("Exchange rate response missing rates")

        parsed: dict[str, Decimal] = {}
        for code, value in rates.items():
            rate = _coerce_rate(value)
            if rate is not None:
                parsed[normalize_currency(code)] = rate
        parsed[normalize_currency(self.reference_currency)] = Decimal("1")
        return parsed


def resolve_reference_amount(
    buy_in: str | None,
    currency: str | None,
    rates: RateTable,
    *,
    override: str | None = None,
    reference_currency: str = "USD",
    stable_aliases: frozenset[str] = DEFAULT_STABLE_ASSET_ALIASES,
) -> Decimal | None:
    """Return the buy-in in the reference currency, or None when unknown.

    A numeric ``override`` wins over everything else. Reference-currency and
    stable-asset amounts pass through 1:1; other codes divide by the rate,
    which is "units of that currency per 1 reference unit".
    """
    explicit = parse_amount(override)
    if explicit is not None:
        return explicit

    amount = parse_amount(buy_in)
    if amount is None:
        return None

    code = normalize_currency(currency)
    if not code:
        return None

    if code == normalize_currency(reference_currency) or code in stable_aliases:
        return amount

    rate = rates.get(code)
    if rate is None or rate == 0:
        return None
    return amount / rate


def parse_amount(value: str | None) -> Decimal | None:
    """Parse a loosely written buy-in such as ``"30,000"`` or ``"$ 1,100"``.

    Empty text and placeholders like ``TBA`` yield None, never zero.
    """
    cleaned = value.strip() if value else ""
    if not cleaned:
        return None

    cleaned = cleaned.replace(",", "")
    cleaned = re.sub(r"\s+", "", cleaned)
    cleaned = re.sub(r"^[^\d.+-]{1,3}(?=[\d.])", "", cleaned)

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None

    if not amount.is_finite() or amount < 0:
        return None
    return amount


def normalize_currency(value: str | None) -> str:
    return value.strip().upper() if value else ""


def _coerce_rate(value: object) -> Decimal | None:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        return None
    return rate if rate.is_finite() else None
