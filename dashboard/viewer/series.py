"""Catalogue of charted metrics, their visibility and gauge formatting."""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final

from common.metrics import air_quality_label, round_half_away
from common.timeutil import round_half_up


class MetricKey(StrEnum):
    ATMP = "atmp"
    FELT_TEMP = "feltTemp"
    RHUM = "rhum"
    PRESSURE = "pressure"
    RCO2 = "rco2"
    PM02 = "pm02"
    TVOC_INDEX = "tvoc_index"
    NOX_INDEX = "nox_index"
    AQI = "aqi"
    WIFI = "wifi"


@dataclass(frozen=True)
class SeriesDescriptor:
    key: MetricKey
    label: str
    unit: str
    color: str
    default_visible: bool
    # Gauge turns orange within 20% below this value and red at or above it
    threshold: float | None = None


SERIES: Final[tuple[SeriesDescriptor, ...]] = (
    SeriesDescriptor(MetricKey.ATMP, "Temperature", "°C", "#FF4500", True, threshold=35),
    SeriesDescriptor(MetricKey.FELT_TEMP, "Felt Temp", "°C", "#FF8C00", True, threshold=35),
    SeriesDescriptor(MetricKey.RHUM, "Humidity", "%", "#1E90FF", True, threshold=60),
    SeriesDescriptor(MetricKey.PRESSURE, "Pressure", "hPa", "#800080", False),
    SeriesDescriptor(MetricKey.RCO2, "CO2", "ppm", "#228B22", False, threshold=1000),
    SeriesDescriptor(MetricKey.PM02, "PM2.5", "μg/m³", "#8B4513", True, threshold=25),
    SeriesDescriptor(MetricKey.TVOC_INDEX, "TVOC Index", "", "#FF1493", True, threshold=300),
    SeriesDescriptor(MetricKey.NOX_INDEX, "NOx Index", "", "#E07C83", False, threshold=2),
    SeriesDescriptor(MetricKey.AQI, "Air Quality", "", "#8B008B", True, threshold=4),
    SeriesDescriptor(MetricKey.WIFI, "WiFi", "dBm", "#EBA45E", False),
)
DESCRIPTORS: Final[dict[MetricKey, SeriesDescriptor]] = {d.key: d for d in SERIES}


class VisibilityState:
    """Which series are drawn. Changes only through :meth:`toggle`."""

    def __init__(self, descriptors: Iterable[SeriesDescriptor] = SERIES) -> None:
        self._descriptors = tuple(descriptors)
        self._visible: dict[MetricKey, bool] = {d.key: d.default_visible for d in self._descriptors}

    def is_visible(self, key: MetricKey) -> bool:
        return self._visible[key]

    def toggle(self, key: MetricKey) -> bool:
        self._visible[key] = not self._visible[key]
        return self._visible[key]

    def visible_keys(self) -> tuple[MetricKey, ...]:
        return tuple(d.key for d in self._descriptors if self._visible[d.key])

    def snapshot(self) -> dict[MetricKey, bool]:
        return dict(self._visible)


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _one_decimal(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{round_half_away(float(value), 1):.1f}"


def format_gauge_value(key: MetricKey, value: Any) -> str:
    if _is_missing(value):
        return "N/A"
    number = float(value)
    match key:
        case MetricKey.RCO2 | MetricKey.PM02:
            return str(round_half_up(number))
        case MetricKey.AQI:
            return air_quality_label(round_half_up(number))
        case (
            MetricKey.ATMP
            | MetricKey.FELT_TEMP
            | MetricKey.RHUM
            | MetricKey.PRESSURE
            | MetricKey.TVOC_INDEX
            | MetricKey.NOX_INDEX
            | MetricKey.WIFI
        ):
            return _one_decimal(number)


def gauge_status(value: Any, threshold: float | None) -> str | None:
    if threshold is None or _is_missing(value):
        return None
    number = float(value)
    if number < threshold - 0.2 * threshold:
        return "green"
    if number < threshold:
        return "orange"
    return "red"


@dataclass(frozen=True)
class Gauge:
    descriptor: SeriesDescriptor
    text: str
    visible: bool
    status: str | None

    @property
    def display(self) -> str:
        unit = self.descriptor.unit if self.text != "N/A" and self.descriptor.key is not MetricKey.AQI else ""
        return f"{self.text}{unit}"


def build_gauges(latest: Mapping[str, Any] | None, visibility: VisibilityState) -> list[Gauge]:
    """One gauge per descriptor from the most recent point."""
    out: list[Gauge] = []
    for descriptor in SERIES:
        value = latest.get(descriptor.key.value) if latest else None
        out.append(
            Gauge(
                descriptor=descriptor,
                text=format_gauge_value(descriptor.key, value),
                visible=visibility.is_visible(descriptor.key),
                status=gauge_status(value, descriptor.threshold),
            )
        )
    return out
