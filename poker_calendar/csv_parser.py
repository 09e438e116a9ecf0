from __future__ import annotations

import csv
import io
import re

import structlog

logger = structlog.get_logger(__name__)

RawRow = dict[str, str]

START_DATE = "Start Date"
END_DATE = "End Date"
LOCATION = "Location"
TOURNAMENT = "Tournament"
BUY_IN = "ME Buy-in"
BUY_IN_REFERENCE = "ME Buy-in(USD)"
CURRENCY = "Currency"
HANDBOOK_URL = "Handbook URL"

SCHEDULE_COLUMNS: tuple[str, ...] = (
    START_DATE,
    END_DATE,
    LOCATION,
    TOURNAMENT,
    BUY_IN,
    CURRENCY,
    HANDBOOK_URL,
)

COLUMN_ALIASES: dict[str, list[str]] = {
    START_DATE: ["start date", "start"],
    END_DATE: ["end date", "end"],
    LOCATION: ["location", "venue"],
    TOURNAMENT: ["tournament", "event"],
    BUY_IN: ["me buy-in", "main event buy-in", "buy-in"],
    BUY_IN_REFERENCE: ["me buy-in(usd)", "me buy-in usd", "buy-in(usd)"],
    CURRENCY: ["currency"],
    HANDBOOK_URL: ["handbook url", "handbook"],
}


def parse_schedule_csv(contents: str) -> list[RawRow]:
    """Parse the published schedule export into raw rows.

    Never raises: short rows are padded, blank rows are skipped and a
    malformed record is dropped while the records after it are still read.
    """
    reader = csv.reader(io.StringIO(contents.lstrip("\ufeff")))
    header: list[str] | None = None
    rows: list[RawRow] = []
    skipped = 0
    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as exc:
            skipped += 1
            logger.warning("csv_record_skipped", line=reader.line_num, error=str(exc))
            continue

        if is_blank_line(row):
            continue
        if header is None:
            header = canonical_headers(row)
            continue
        rows.append(row_to_dict(header, row))

    if skipped:
        logger.info("csv_parsed_with_skips", rows=len(rows), skipped=skipped)
    return rows


def canonical_headers(fieldnames: list[str]) -> list[str]:
    """Map header cells onto the schedule column names.

    Unknown headers are kept as written (trimmed).
    """
    canonical: list[str] = []
    for name in fieldnames:
        column = find_column(name)
        canonical.append(column or name.strip())
    return canonical


def find_column(name: str) -> str | None:
    normalized = normalize_header(name)
    if not normalized:
        return None
    for column in COLUMN_ALIASES:
        if normalized == normalize_header(column):
            return column
    for column, candidates in COLUMN_ALIASES.items():
        for candidate in candidates:
            if normalized == normalize_header(candidate):
                return column
    return None


def row_to_dict(fieldnames: list[str], row: list[str]) -> RawRow:
    if len(row) < len(fieldnames):
        row = row + [""] * (len(fieldnames) - len(row))
    if len(row) > len(fieldnames):
        row = row[: len(fieldnames)]
    parsed = dict(zip(fieldnames, row))
    parsed.pop("", None)
    for column in SCHEDULE_COLUMNS:
        parsed.setdefault(column, "")
    return parsed


def normalize_header(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", value.strip().lower())


def clean_text(value: str | None) -> str:
    return value.strip() if value else ""


def is_blank_line(row: list[str]) -> bool:
    return all(not clean_text(value) for value in row)
