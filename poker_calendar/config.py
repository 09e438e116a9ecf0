from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_FX_RATES_URL = "https://open.er-api.com/v6/latest/USD"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    sheet_csv_url: str | None
    fx_rates_url: str = DEFAULT_FX_RATES_URL
    reference_currency: str = "USD"
    stable_asset_aliases: frozenset[str] = frozenset({"USDT", "USDC"})
    rate_cache_ttl_seconds: int = 24 * 60 * 60
    recency_grace_days: int = 3
    fetch_timeout_seconds: float = 10
    rate_stale_fallback: bool = False
    frontend_origin: str = "http://localhost:3000"
    json_logs: bool = False
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Read settings from the environment.

    The app loads settings twice. The copy loaded at import drives the CORS
    middleware, the logging setup and the shared rate source, so FX_RATES_URL,
    RATE_CACHE_TTL_SECONDS, RATE_STALE_FALLBACK, FRONTEND_ORIGIN and the log
    options are fixed until restart. Each request loads them again for
    SHEET_CSV_URL, the currency options and the grace period, so a missing
    SHEET_CSV_URL fails every request.
    """
    return Settings(
        sheet_csv_url=(os.getenv("SHEET_CSV_URL") or "").strip() or None,
        fx_rates_url=os.getenv("FX_RATES_URL", DEFAULT_FX_RATES_URL),
        reference_currency=_get_currency("REFERENCE_CURRENCY", "USD"),
        stable_asset_aliases=_get_codes("STABLE_ASSET_ALIASES", "USDT,USDC"),
        rate_cache_ttl_seconds=_get_int("RATE_CACHE_TTL_SECONDS", 24 * 60 * 60),
        recency_grace_days=_get_int("RECENCY_GRACE_DAYS", 3),
        fetch_timeout_seconds=_get_float("FETCH_TIMEOUT_SECONDS", 10),
        rate_stale_fallback=_get_bool("RATE_STALE_FALLBACK", False),
        frontend_origin=os.getenv("FRONTEND_ORIGIN", "http://localhost:3000"),
        json_logs=_get_bool("JSON_LOGS", False),
        log_level=_get_log_level("LOG_LEVEL", "INFO"),
    )


def _get_currency(name: str, fallback: str) -> str:
    raw = (os.getenv(name) or "").strip().upper()
    return raw or fallback


def _get_codes(name: str, fallback: str) -> frozenset[str]:
    raw = os.getenv(name, fallback)
    return frozenset(code.strip().upper() for code in raw.split(",") if code.strip())


def _get_int(name: str, fallback: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return fallback
    try:
        value = int(raw)
    except ValueError:
        return fallback
    return value if value >= 0 else fallback


def _get_float(name: str, fallback: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return fallback
    try:
        value = float(raw)
    except ValueError:
        return fallback
    return value if value > 0 else fallback


def _get_bool(name: str, fallback: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return fallback
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_log_level(name: str, fallback: str) -> str:
    raw = (os.getenv(name) or "").strip().upper()
    return raw if raw in LOG_LEVELS else fallback
