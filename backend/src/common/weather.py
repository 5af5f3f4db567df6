"""Coarse local forecast from pressure, its trend, temperature and humidity.

This is a rule of thumb, not a meteorological model. The label table runs
from the most settled outlook (index 0) to the most unsettled (index 11).
"""

import math
from collections.abc import Sequence
from enum import StrEnum
from typing import Final

from .models import BucketModel

TREND_THRESHOLD_HPA: Final[float] = 2.0

FORECAST_LABELS: Final[tuple[str, ...]] = (
    "Settled fine",
    "Fine weather",
    "Becoming fine",
    "Fine, becoming less settled",
    "Fairly fine, showers possible",
    "Showery, becoming more unsettled",
    "Changeable, some rain",
    "Unsettled, rain at times",
    "Rain at frequent intervals",
    "Very unsettled, rain",
    "Stormy, much rain",
    "Rain at times, becoming very unsettled",
)
_MAX_INDEX: Final[int] = len(FORECAST_LABELS) - 1


class Season(StrEnum):
    WINTER = "winter"
    SPRING = "spring"
    SUMMER = "summer"
    AUTUMN = "autumn"


def season_for_month(month: int) -> Season:
    """Northern-hemisphere meteorological season."""
    if month in (12, 1, 2):
        return Season.WINTER
    if month in (3, 4, 5):
        return Season.SPRING
    if month in (6, 7, 8):
        return Season.SUMMER
    return Season.AUTUMN


def _clamp(index: int) -> int:
    return max(0, min(_MAX_INDEX, index))


def forecast_index(pressure_hpa: float, pressure_trend: float, temp_c: float, rh_pct: float, month: int) -> int:
    index = _clamp(math.floor((pressure_hpa - 950) / 10))

    if pressure_trend > TREND_THRESHOLD_HPA:
        index -= 2
    elif pressure_trend < -TREND_THRESHOLD_HPA:
        index += 2

    if (temp_c > 25 and rh_pct > 70) or (temp_c < 10 and rh_pct > 80):
        index += 1

    season = season_for_month(month)
    if season is Season.SUMMER and index < 4:
        index += 1
    elif season is Season.WINTER and index > 8:
        index -= 1

    return _clamp(index)


def classify(pressure_hpa: float, pressure_trend: float, temp_c: float, rh_pct: float, month: int) -> str:
    """Forecast label; ``pressure_trend`` is the hPa change over the observed window."""
    return FORECAST_LABELS[forecast_index(pressure_hpa, pressure_trend, temp_c, rh_pct, month)]


def pressure_trend(points: Sequence[BucketModel]) -> float:
    """Pressure change from the first to the last point of an ascending window."""
    if len(points) < 2:
        return 0.0
    return points[-1].pressure - points[0].pressure


def predict(points: Sequence[BucketModel], month: int) -> str | None:
    """Label the latest point of an aggregated window, or None when it is empty."""
    if not points:
        return None
    latest = points[-1]
    return classify(latest.pressure, pressure_trend(points), latest.atmp, latest.rhum, month)
