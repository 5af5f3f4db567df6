"""Derived metrics shared by the read service and the dashboard.

Both sides import these functions; neither keeps its own copy of a formula.
"""

import math
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Final

from .models import DERIVED_FIELDS, BucketModel, DerivedPointModel

PM25_BREAKPOINTS: Final[tuple[float, ...]] = (12, 35.4, 55.4, 150.4, 250.4)
CO2_BREAKPOINTS: Final[tuple[float, ...]] = (1000, 2000, 5000, 10000, 40000)
NOX_BREAKPOINTS: Final[tuple[float, ...]] = (1, 2, 3, 4, 5)

AIR_QUALITY_LABELS: Final[dict[int, str]] = {
    1: "Good",
    2: "Moderate",
    3: "Unhealthy for Sensitive Groups",
    4: "Unhealthy",
    5: "Very Unhealthy",
    6: "Hazardous",
}


def round_half_away(value: float, places: int = 1) -> float:
    """Round the exact binary value half away from zero (as JS ``toFixed`` does)."""
    if not math.isfinite(value):
        return value
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def heat_index(temp_c: float, rh: float) -> float:
    """Felt temperature in °C from air temperature (°C) and relative humidity (%).

    Below 80°F or under 40% humidity the air temperature is returned as is.
    Otherwise the Steadman approximation is computed and, above 79°F, replaced
    by the Rothfusz regression with its low/high humidity adjustments.
    """
    t = temp_c * 1.8 + 32
    r = rh
    if t < 80 or r < 40:
        return temp_c

    hi = 0.5 * (t + 61 + (t - 68) * 1.2 + r * 0.094)
    if hi > 79:
        t2 = t * t
        r2 = r * r
        hi = (
            -42.379
            + 2.04901523 * t
            + 10.14333127 * r
            - 0.22475541 * t * r
            - 0.00683783 * t2
            - 0.05481717 * r2
            + 0.00122874 * t2 * r
            + 0.00085282 * t * r2
            - 0.00000199 * t2 * r2
        )
        if r < 13 and 80 <= t <= 112:
            hi -= ((13 - r) * 0.25) * math.sqrt((17 - abs(t - 95)) * 0.05882)
        elif r > 85 and 80 <= t <= 87:
            hi += ((r - 85) * 0.1) * ((87 - t) * 0.2)

    return round_half_away((hi - 32) / 1.8, 1)


def _sub_index(value: float, breakpoints: tuple[float, ...]) -> int:
    for idx, upper in enumerate(breakpoints, start=1):
        if value <= upper:
            return idx
    return len(breakpoints) + 1


def air_quality_index(pm25: float, co2: float, nox: float) -> int:
    """Composite 1-6 index; the worst of the PM2.5, CO2 and NOx sub-indices."""
    return max(
        _sub_index(pm25, PM25_BREAKPOINTS),
        _sub_index(co2, CO2_BREAKPOINTS),
        _sub_index(nox, NOX_BREAKPOINTS),
    )


def air_quality_label(aqi: int | None) -> str:
    if aqi is None:
        return "Unknown"
    return AIR_QUALITY_LABELS.get(int(aqi), "Unknown")


def enrich(bucket: BucketModel) -> DerivedPointModel:
    payload: dict[str, Any] = bucket.model_dump()
    payload["feltTemp"] = heat_index(bucket.atmp, bucket.rhum)
    payload["aqi"] = air_quality_index(bucket.pm02, bucket.rco2, bucket.nox_index)
    return DerivedPointModel.model_validate(payload)


def strip_derived(point: DerivedPointModel) -> BucketModel:
    return BucketModel.model_validate(point.model_dump(exclude=set(DERIVED_FIELDS)))


def enrich_row(row: Mapping[str, Any]) -> dict[str, Any]:
    """Add derived fields to a plain row that does not carry them yet."""
    out = dict(row)
    if "feltTemp" not in out:
        out["feltTemp"] = heat_index(float(out["atmp"]), float(out["rhum"]))
    if "aqi" not in out:
        out["aqi"] = air_quality_index(float(out["pm02"]), float(out["rco2"]), float(out["nox_index"]))
    return out
