from typing import Final

from pydantic import BaseModel, ConfigDict

# Order matches the columns written by ingest and averaged by the read query
METRIC_FIELDS: Final[tuple[str, ...]] = (
    "wifi",
    "rco2",
    "pm02",
    "tvoc_index",
    "nox_index",
    "atmp",
    "rhum",
    "pressure",
)
DERIVED_FIELDS: Final[tuple[str, ...]] = ("feltTemp", "aqi")


class MeasureModel(BaseModel):
    """Ingest body. Every field is mandatory and must be a JSON number."""

    model_config = ConfigDict(strict=True, allow_inf_nan=False, extra="ignore")

    wifi: float
    rco2: float
    pm02: float
    tvoc_index: float
    nox_index: float
    atmp: float
    rhum: float
    pressure: float


class ReadingModel(MeasureModel):
    sensorId: str
    ts: int


class BucketModel(BaseModel):
    ts: int
    wifi: float
    rco2: float
    pm02: float
    tvoc_index: float
    nox_index: float
    atmp: float
    rhum: float
    pressure: float


class DerivedPointModel(BucketModel):
    feltTemp: float
    aqi: int | None = None


class SeriesEnvelopeModel(BaseModel):
    version: str
    data: list[DerivedPointModel]
    weatherPrediction: str | None = None


def sensor_index(sensor_id: str) -> str:
    """Storage key for a sensor id such as ``airgradient:744dbdbfed18``."""
    _, sep, rest = sensor_id.partition(":")
    return rest if sep and rest else sensor_id
