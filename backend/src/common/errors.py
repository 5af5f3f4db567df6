class SensorDataError(Exception):
    """Base class for failures on the ingest and read paths."""


class ValidationError(SensorDataError):
    """Ingest payload or query parameters rejected before touching the store."""

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class InvertedRangeError(SensorDataError):
    """A requested window whose start lies after its end."""

    def __init__(self, start: float, end: float) -> None:
        super().__init__(f"Start time must be before end time (start={start}, end={end})")
        self.start = start
        self.end = end


class DataSourceError(SensorDataError):
    """The time-series store failed or answered with something unusable.

    `diagnostic` keeps the raw text returned by the store so the caller can
    surface it without replaying the request.
    """

    def __init__(self, message: str, diagnostic: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.diagnostic = diagnostic
        self.status_code = status_code


class EmptyResultWarning(SensorDataError, Warning):
    """The query succeeded but matched no rows."""
