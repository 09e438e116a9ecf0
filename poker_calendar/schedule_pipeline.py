from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Protocol

import structlog
from pydantic import BaseModel, ConfigDict, Field

from poker_calendar.csv_parser import (
    BUY_IN,
    BUY_IN_REFERENCE,
    CURRENCY,
    END_DATE,
    HANDBOOK_URL,
    LOCATION,
    START_DATE,
    TOURNAMENT,
    RawRow,
    clean_text,
    parse_schedule_csv,
)
from poker_calendar.currency_conversion import (
    DEFAULT_STABLE_ASSET_ALIASES,
    RateTable,
    normalize_currency,
    parse_amount,
    resolve_reference_amount,
)
from poker_calendar.schedule_filter import (
    RECENCY_GRACE_DAYS,
    TAIPEI,
    filter_rows,
    parse_calendar_date,
    sort_rows,
)

logger = structlog.get_logger(__name__)

QUICK_LOCATION_KEYWORDS = ("Taiwan", "Korea")


class ScheduleSource(Protocol):
    def fetch_csv(self) -> str: ...


class RateSource(Protocol):
    def get_rates(self) -> RateTable: ...


class NormalizedEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_date: str
    end_date: str
    location: str
    tournament: str
    buy_in: str
    currency: str
    handbook_url: str
    starts_on: date | None = None
    ends_on: date | None = None
    buy_in_amount: Decimal | None = None
    reference_amount: Decimal | None = None


@dataclass(frozen=True)
class ScheduleSnapshot:
    events: tuple[NormalizedEvent, ...]
    generated_at: datetime


class ScheduleRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: str = Field(alias="Start Date")
    end_date: str = Field(alias="End Date")
    location: str = Field(alias="Location")
    tournament: str = Field(alias="Tournament")
    buy_in: str = Field(alias="ME Buy-in")
    currency: str = Field(alias="Currency")
    handbook_url: str = Field(alias="Handbook URL")
    usd: float | None = None


class ScheduleResponse(BaseModel):
    rows: list[ScheduleRow]


def normalize_event(
    row: RawRow,
    rates: RateTable,
    *,
    reference_currency: str = "USD",
    stable_aliases: frozenset[str] = DEFAULT_STABLE_ASSET_ALIASES,
) -> NormalizedEvent:
    buy_in = row.get(BUY_IN) or ""
    currency = normalize_currency(row.get(CURRENCY))
    return NormalizedEvent(
        start_date=clean_text(row.get(START_DATE)),
        end_date=clean_text(row.get(END_DATE)),
        location=clean_text(row.get(LOCATION)),
        tournament=clean_text(row.get(TOURNAMENT)),
        buy_in=buy_in.strip(),
        currency=currency,
        handbook_url=clean_text(row.get(HANDBOOK_URL)),
        starts_on=parse_calendar_date(row.get(START_DATE)),
        ends_on=parse_calendar_date(row.get(END_DATE)),
        buy_in_amount=parse_amount(buy_in),
        reference_amount=resolve_reference_amount(
            buy_in,
            currency,
            rates,
            override=row.get(BUY_IN_REFERENCE),
            reference_currency=reference_currency,
            stable_aliases=stable_aliases,
        ),
    )


def build_snapshot(
    csv_text: str,
    rates: RateTable,
    *,
    now: datetime | None = None,
    reference_currency: str = "USD",
    stable_aliases: frozenset[str] = DEFAULT_STABLE_ASSET_ALIASES,
    grace_days: int = RECENCY_GRACE_DAYS,
) -> ScheduleSnapshot:
    """Parse, filter, sort and convert one schedule export."""
    generated_at = now or datetime.now(TAIPEI)
    rows = parse_schedule_csv(csv_text)
    kept = filter_rows(rows, now=generated_at, grace_days=grace_days)
    ordered = sort_rows(kept)
    events = tuple(
        normalize_event(
            row,
            rates,
            reference_currency=reference_currency,
            stable_aliases=stable_aliases,
        )
        for row in ordered
    )
    unconverted = sum(1 for event in events if event.reference_amount is None)
    logger.info("schedule_built", parsed=len(rows), events=len(events), unconverted=unconverted)
    return ScheduleSnapshot(events=events, generated_at=generated_at)


def run_schedule_pipeline(
    schedule_source: ScheduleSource,
    rate_source: RateSource,
    *,
    now: datetime | None = None,
    reference_currency: str = "USD",
    stable_aliases: frozenset[str] = DEFAULT_STABLE_ASSET_ALIASES,
    grace_days: int = RECENCY_GRACE_DAYS,
) -> ScheduleSnapshot:
    """Fetch the sheet and rates concurrently, then build the snapshot.

    Either fetch failing aborts the run; no partial snapshot is produced.
    """
    with ThreadPoolExecutor(max_workers=2) as executor:
        csv_future = executor.submit(schedule_source.fetch_csv)
        rates_future = executor.submit(rate_source.get_rates)
        csv_text = csv_future.result()
        rates = rates_future.result()

    return build_snapshot(
        csv_text,
        rates,
        now=now,
        reference_currency=reference_currency,
        stable_aliases=stable_aliases,
        grace_days=grace_days,
    )


def assemble_rows(events: Iterable[NormalizedEvent]) -> list[ScheduleRow]:
    return [
        ScheduleRow(
            start_date=event.start_date,
            end_date=event.end_date,
            location=event.location,
            tournament=event.tournament,
            buy_in=event.buy_in,
            currency=event.currency,
            handbook_url=event.handbook_url,
            usd=float(event.reference_amount) if event.reference_amount is not None else None,
        )
        for event in events
    ]


def search_events(
    events: Iterable[NormalizedEvent],
    *,
    location: str | None = None,
    query: str | None = None,
) -> list[NormalizedEvent]:
    """Narrow events by location pick and free-text query.

    Quick keywords (``Taiwan``, ``Korea``) match by containment so that
    ``"Taipei, Taiwan"`` is found; any other location must match exactly.
    The query matches tournament or location, case-insensitively.
    """
    pick = clean_text(location)
    needle = clean_text(query).lower()
    quick = {keyword.lower() for keyword in QUICK_LOCATION_KEYWORDS}

    matches: list[NormalizedEvent] = []
    for event in events:
        if pick and pick.upper() != "ALL":
            if pick.lower() in quick:
                if pick.lower() not in event.location.lower():
                    continue
            elif event.location != pick:
                continue
        if needle and needle not in event.tournament.lower() and needle not in event.location.lower():
            continue
        matches.append(event)
    return matches


def list_locations(events: Iterable[NormalizedEvent]) -> list[str]:
    return sorted({event.location for event in events if event.location})
