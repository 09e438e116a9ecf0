from __future__ import annotations

from dataclasses import dataclass
from http.client import HTTPException
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

import structlog

from poker_calendar.exceptions import ConfigurationMissing, SourceUnavailable

logger = structlog.get_logger(__name__)

DIAGNOSTIC_LIMIT = 800


@dataclass(frozen=True)
class SheetScheduleSource:
    """Fetches the published spreadsheet CSV export.

    Every call goes to the network; responses are never reused, so edits to
    the sheet show up on the next request.
    """

    url: str | None
    timeout_seconds: float = 10

    def fetch_csv(self) -> str:
        if not self.url:
            raise ConfigurationMissing("Missing SHEET_CSV_URL")

        request = Request(
            self.url,
            headers={"Accept": "text/csv", "Cache-Control": "no-cache", "Pragma": "no-cache"},
        )
        try:
            with urlopen(request, timeout=self.timeout_seconds) as response:
                content_type = response.headers.get("Content-Type", "")
                body = response.read().decode("utf-8", errors="replace")
        except HTTPError as exc:
            raise SourceUnavailable(
                f"Schedule source returned HTTP {exc.code}", diagnostic=_read_error_body(exc)
            ) from exc
        except (URLError, HTTPException, OSError, ValueError) as exc:
            raise SourceUnavailable("Schedule source unreachable", diagnostic=str(exc)) from exc

        if looks_like_webpage(body, content_type):
            raise SourceUnavailable(
                "Schedule source did not return CSV", diagnostic=body.strip()[:DIAGNOSTIC_LIMIT]
            )

        logger.info("schedule_fetched", bytes=len(body), content_type=content_type)
        return body.lstrip("\ufeff")


def looks_like_webpage(body: str, content_type: str = "") -> bool:
    if "html" in content_type.lower():
        return True
    return body.lstrip("\ufeff \t\r\n").startswith("<")


def _read_error_body(exc: HTTPError) -> str | None:
    try:
        raw = exc.read()
    except OSError:
        return None
    if not raw:
        return None
    return raw.decode("utf-8", errors="replace").strip()[:DIAGNOSTIC_LIMIT]
