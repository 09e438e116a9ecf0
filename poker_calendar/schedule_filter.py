"""Row validation, recency filtering and chronological ordering.

All schedule dates are calendar dates in Taipei (UTC+8, no DST). The same
parser feeds both the recency cutoff and the sort key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

import structlog

from poker_calendar.csv_parser import END_DATE, START_DATE, TOURNAMENT, RawRow, clean_text

logger = structlog.get_logger(__name__)

TAIPEI = timezone(timedelta(hours=8), "Asia/Taipei")
RECENCY_GRACE_DAYS = 3

DATE_PATTERN = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$")

REASON_MISSING_REQUIRED = "missing_required_field"
REASON_ENDED = "ended"


@dataclass(frozen=True)
class RowVerdict:
    row: RawRow
    kept: bool
    reason: str | None = None


def parse_calendar_date(value: str | None) -> date | None:
    """Parse ``YYYY-MM-DD`` or ``YYYY/MM/DD`` (single-digit month/day allowed)."""
    cleaned = clean_text(value)
    match = DATE_PATTERN.match(cleaned)
    if match is None:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def taipei_today(now: datetime | None = None) -> date:
    current = now or datetime.now(TAIPEI)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    return current.astimezone(TAIPEI).date()


def recency_cutoff(now: datetime | None = None, grace_days: int = RECENCY_GRACE_DAYS) -> date:
    return taipei_today(now) - timedelta(days=grace_days)


def check_row(row: RawRow, cutoff: date) -> RowVerdict:
    if not clean_text(row.get(START_DATE)) or not clean_text(row.get(TOURNAMENT)):
        return RowVerdict(row=row, kept=False, reason=REASON_MISSING_REQUIRED)

    end_date = parse_calendar_date(row.get(END_DATE))
    if end_date is not None and end_date < cutoff:
        return RowVerdict(row=row, kept=False, reason=REASON_ENDED)

    return RowVerdict(row=row, kept=True)


def filter_rows(
    rows: Iterable[RawRow],
    *,
    now: datetime | None = None,
    grace_days: int = RECENCY_GRACE_DAYS,
) -> list[RawRow]:
    cutoff = recency_cutoff(now, grace_days)
    kept: list[RawRow] = []
    dropped: dict[str, int] = {}
    for row in rows:
        verdict = check_row(row, cutoff)
        if verdict.kept:
            kept.append(verdict.row)
            continue
        dropped[verdict.reason] = dropped.get(verdict.reason, 0) + 1
        logger.debug("row_dropped", reason=verdict.reason, tournament=clean_text(row.get(TOURNAMENT)))

    logger.info("rows_filtered", kept=len(kept), dropped=dropped, cutoff=cutoff.isoformat())
    return kept


def sort_rows(rows: Iterable[RawRow]) -> list[RawRow]:
    """Stable ascending sort by Start Date; unparseable dates go last."""
    return sorted(rows, key=start_date_sort_key)


def start_date_sort_key(row: RawRow) -> tuple[bool, date]:
    start = parse_calendar_date(row.get(START_DATE))
    if start is None:
        return (True, date.max)
    return (False, start)
