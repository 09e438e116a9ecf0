from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import structlog

from poker_calendar.config import Settings, load_settings
from poker_calendar.currency_conversion import LiveRateSource
from poker_calendar.exceptions import ScheduleUnavailable
from poker_calendar.logging_config import configure_logging
from poker_calendar.schedule_pipeline import (
    RateSource,
    ScheduleResponse,
    ScheduleSnapshot,
    ScheduleSource,
    assemble_rows,
    list_locations,
    run_schedule_pipeline,
    search_events,
)
from poker_calendar.schedule_source import SheetScheduleSource

logger = structlog.get_logger(__name__)

startup_settings = load_settings()

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=[startup_settings.frontend_origin],
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


def build_rate_source(settings: Settings) -> LiveRateSource:
    return LiveRateSource(
        base_url=settings.fx_rates_url,
        reference_currency=settings.reference_currency,
        cache_ttl_seconds=settings.rate_cache_ttl_seconds,
        timeout_seconds=settings.fetch_timeout_seconds,
        allow_stale=settings.rate_stale_fallback,
    )


app.state.rate_source = build_rate_source(startup_settings)


class LocationsResponse(BaseModel):
    locations: list[str]


@app.on_event("startup")
def on_startup() -> None:
    configure_logging(json_logs=startup_settings.json_logs, level=startup_settings.log_level)
    logger.info(
        "schedule_service_started",
        sheet_configured=startup_settings.sheet_csv_url is not None,
        reference_currency=startup_settings.reference_currency,
    )


@app.exception_handler(ScheduleUnavailable)
async def schedule_unavailable_handler(request: Request, exc: ScheduleUnavailable) -> JSONResponse:
    logger.error(
        "schedule_request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(status_code=500, content={"error": str(exc)})


def get_settings() -> Settings:
    return load_settings()


def get_schedule_source(settings: Settings = Depends(get_settings)) -> ScheduleSource:
    return SheetScheduleSource(url=settings.sheet_csv_url, timeout_seconds=settings.fetch_timeout_seconds)


def get_rate_source(request: Request) -> RateSource:
    return request.app.state.rate_source


def load_snapshot(
    settings: Settings = Depends(get_settings),
    schedule_source: ScheduleSource = Depends(get_schedule_source),
    rate_source: RateSource = Depends(get_rate_source),
) -> ScheduleSnapshot:
    return run_schedule_pipeline(
        schedule_source,
        rate_source,
        reference_currency=settings.reference_currency,
        stable_aliases=settings.stable_asset_aliases,
        grace_days=settings.recency_grace_days,
    )


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/api/schedule", response_model=ScheduleResponse)
def get_schedule(
    location: str | None = Query(default=None),
    q: str | None = Query(default=None),
    snapshot: ScheduleSnapshot = Depends(load_snapshot),
) -> ScheduleResponse:
    events = search_events(snapshot.events, location=location, query=q)
    return ScheduleResponse(rows=assemble_rows(events))


@app.get("/api/locations", response_model=LocationsResponse)
def get_locations(snapshot: ScheduleSnapshot = Depends(load_snapshot)) -> LocationsResponse:
    return LocationsResponse(locations=list_locations(snapshot.events))
