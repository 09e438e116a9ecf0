"""Errors that abort a schedule request.

Dropped rows and missing conversions are not errors and never raise.
"""


class ScheduleUnavailable(RuntimeError):
    """Raised when the schedule cannot be produced for a request."""


class ConfigurationMissing(ScheduleUnavailable):
    """Raised when the schedule source URL is not configured."""


class SourceUnavailable(ScheduleUnavailable):
    """Raised when the schedule CSV cannot be fetched or is not CSV."""

    def __init__(self, message: str, diagnostic: str | None = None) -> None:
        super().__init__(message)
        self.diagnostic = diagnostic

    def __str__(self) -> str:
        message = super().__str__()
        if self.diagnostic:
            return f"{message}: {self.diagnostic}"
        return message


class RateSourceUnavailable(ScheduleUnavailable):
    """Raised when live FX rates cannot be fetched."""
