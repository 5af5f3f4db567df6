from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Final

from common.errors import InvertedRangeError
from common.timeutil import round_half_up

MINUTE_MS: Final[int] = 60 * 1000
HOUR_MS: Final[int] = 60 * MINUTE_MS
DAY_MS: Final[int] = 24 * HOUR_MS


class TimeRange(StrEnum):
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H3 = "3h"
    H6 = "6h"
    H12 = "12h"
    H24 = "24h"
    D2 = "2d"
    D7 = "7d"
    D14 = "14d"
    D30 = "30d"
    Y1 = "1y"

    @property
    def milliseconds(self) -> int:
        return _RANGE_MS[self]


_RANGE_MS: Final[dict[TimeRange, int]] = {
    TimeRange.M15: 15 * MINUTE_MS,
    TimeRange.M30: 30 * MINUTE_MS,
    TimeRange.H1: HOUR_MS,
    TimeRange.H3: 3 * HOUR_MS,
    TimeRange.H6: 6 * HOUR_MS,
    TimeRange.H12: 12 * HOUR_MS,
    TimeRange.H24: DAY_MS,
    TimeRange.D2: 2 * DAY_MS,
    TimeRange.D7: 7 * DAY_MS,
    TimeRange.D14: 14 * DAY_MS,
    TimeRange.D30: 30 * DAY_MS,
    TimeRange.Y1: 365 * DAY_MS,
}

DEFAULT_RANGE: Final[TimeRange] = TimeRange.H12
# Fallback after a failed read
SHORTEST_RANGE: Final[TimeRange] = min(TimeRange, key=lambda r: r.milliseconds)


@dataclass(frozen=True)
class CustomRange:
    """A fixed window chosen by the user, epoch seconds."""

    start: int
    end: int

    @property
    def milliseconds(self) -> int:
        return (self.end - self.start) * 1000


RangeSelection = TimeRange | CustomRange


def custom_range(start: datetime, end: datetime) -> CustomRange:
    """Validate a user-picked window; rejected before any request goes out."""
    start_s = round_half_up(start.timestamp())
    end_s = round_half_up(end.timestamp())
    if start_s > end_s:
        raise InvertedRangeError(start_s, end_s)
    return CustomRange(start_s, end_s)


def window_for(selection: RangeSelection, now: float) -> tuple[int, int]:
    """``(start, end)`` in whole epoch seconds for a selection evaluated at ``now``."""
    if isinstance(selection, CustomRange):
        return selection.start, selection.end
    end = round_half_up(now)
    return round_half_up(now - selection.milliseconds / 1000), end
