import math
import time
from datetime import UTC, datetime


def now_epoch_seconds() -> float:
    return time.time()


def month_from_epoch_seconds(ts: float) -> int:
    return datetime.fromtimestamp(ts, tz=UTC).month


def round_half_up(value: float) -> int:
    """Nearest whole number, halves rounded up (0.5 -> 1, -0.5 -> 0)."""
    return math.floor(value + 0.5)


def parse_epoch_seconds(raw: str | None) -> int | None:
    """Parse a query-string timestamp, rounded to whole seconds.

    Anything that is not a finite number yields None so the caller can fall
    back to its default window.
    """
    if raw is None:
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return round_half_up(value)
