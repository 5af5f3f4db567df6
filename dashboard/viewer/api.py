import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import pandas as pd
import requests  # type: ignore[import-untyped]

from common.errors import DataSourceError, EmptyResultWarning, InvertedRangeError
from common.metrics import enrich_row
from common.models import DERIVED_FIELDS, METRIC_FIELDS

logger = logging.getLogger(__name__)

FRAME_COLUMNS: tuple[str, ...] = ("ts", *METRIC_FIELDS, *DERIVED_FIELDS)


@dataclass(frozen=True)
class SeriesResponse:
    frame: pd.DataFrame
    version: str | None
    weather_prediction: str | None


def rows_to_frame(rows: list[Mapping[str, Any]]) -> pd.DataFrame:
    """DerivedPoint rows as a frame with a UTC ``ts`` column, ascending."""
    try:
        enriched = [enrich_row(row) for row in rows]
        frame = pd.DataFrame(enriched, columns=list(FRAME_COLUMNS))
        frame["ts"] = pd.to_datetime(frame["ts"].astype("int64"), unit="s", utc=True)
        for name in FRAME_COLUMNS[1:]:
            frame[name] = pd.to_numeric(frame[name])
    except (KeyError, TypeError, ValueError) as exc:
        raise DataSourceError("Malformed series rows", diagnostic=str(exc)) from exc
    return frame.sort_values("ts", kind="stable").reset_index(drop=True)


class SensorApiClient:
    """Read-path client of the sensor API."""

    def __init__(self, base_url: str, sensor_id: str, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.sensor_id = sensor_id
        self.timeout = timeout

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = requests.get(url, params=params, headers={"Accept": "application/json"}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise DataSourceError("Sensor API unreachable", diagnostic=str(exc)) from exc
        if resp.status_code >= 300:
            raise DataSourceError(f"HTTP error! status: {resp.status_code}", diagnostic=resp.text, status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise DataSourceError("Invalid JSON from sensor API", diagnostic=str(exc)) from exc

    def fetch_window(self, start: int, end: int, width: int | None = None) -> SeriesResponse:
        """Points for ``[start, end]`` in epoch seconds.

        ``width`` pins the server's bucket width in seconds; left out, the
        server picks it from the span.

        Raises InvertedRangeError without any request when ``start > end``
        and EmptyResultWarning when the window holds no points.
        """
        if start > end:
            raise InvertedRangeError(start, end)

        params: dict[str, Any] = {"start": start, "end": end}
        if width is not None:
            params["width"] = int(width)
        payload = self._get_json(f"/sensors/{quote(self.sensor_id, safe=':@')}", params)
        version: str | None = None
        prediction: str | None = None
        if isinstance(payload, dict):
            rows = payload.get("data")
            version = payload.get("version")
            prediction = payload.get("weatherPrediction") or None
        else:
            rows = payload
        if not isinstance(rows, list):
            raise DataSourceError("Received invalid data", diagnostic=repr(payload)[:500])
        if not rows:
            logger.warning("Received empty data for %s [%s, %s]", self.sensor_id, start, end)
            raise EmptyResultWarning(f"No data for {self.sensor_id} between {start} and {end}")

        return SeriesResponse(frame=rows_to_frame(rows), version=version, weather_prediction=prediction)

    def fetch_version(self) -> str:
        payload = self._get_json("/version")
        if not isinstance(payload, dict) or "version" not in payload:
            raise DataSourceError("Invalid version payload", diagnostic=repr(payload)[:500])
        return str(payload["version"])
