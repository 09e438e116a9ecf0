import logging
import sys
from typing import Any

import structlog

SERVICE_NAME = "poker-calendar"


def add_service_name(logger: Any, method_name: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def build_processors(json_logs: bool) -> list[Any]:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_service_name,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]
    if json_logs:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def configure_logging(json_logs: bool = False, level: str = "INFO") -> None:
    """Route structlog and stdlib logging to stdout.

    JSON output is meant for the hosted deployment, where each pipeline event
    (``schedule_fetched``, ``rates_refreshed``, ``rows_filtered``) becomes one
    searchable line tagged with the service name.
    """
    structlog.configure(
        processors=build_processors(json_logs),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        level=level.upper(),
        force=True,
    )
