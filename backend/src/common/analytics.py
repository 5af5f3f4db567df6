import json
from collections.abc import Mapping
from typing import Any, cast

import requests  # type: ignore[import-untyped]
from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities import parameters
from aws_lambda_powertools.utilities.parameters.exceptions import GetParameterError

from .errors import DataSourceError
from .models import METRIC_FIELDS, ReadingModel

logger = Logger()


class AnalyticsClient:
    """SQL-over-HTTP client for the time-series store.

    Queries go out as SQL text with typed placeholders such as
    ``{start:UInt32}``; the values travel separately as ``param_<name>``
    query parameters, so nothing user-supplied is spliced into the SQL.
    The bearer token is read from Secrets Manager on first use.
    """

    def __init__(self, base_url: str, table: str, token_secret_name: str = "", timeout: float = 15.0) -> None:
        self.base_url = base_url
        self.table = table
        self.token_secret_name = token_secret_name
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "text/plain; charset=utf-8"}
        if self.token_secret_name:
            try:
                token = parameters.get_secret(self.token_secret_name)
            except GetParameterError as exc:
                logger.error("store_token_unavailable", secret=self.token_secret_name, details=str(exc))
                raise DataSourceError("Time-series store credentials unavailable", diagnostic=str(exc)) from exc
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _post(self, params: Mapping[str, Any], body: str) -> requests.Response:
        try:
            return requests.post(
                self.base_url,
                params=dict(params),
                data=body.encode("utf-8"),
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DataSourceError("Time-series store unreachable", diagnostic=str(exc)) from exc

    def write_reading(self, reading: ReadingModel) -> None:
        row: dict[str, Any] = {"sensor_id": reading.sensorId, "timestamp": reading.ts}
        row.update({field: getattr(reading, field) for field in METRIC_FIELDS})
        resp = self._post({"query": f"INSERT INTO {self.table} FORMAT JSONEachRow"}, json.dumps(row))
        if resp.status_code >= 300:
            logger.error("store_write_failed", status=resp.status_code, details=resp.text)
            raise DataSourceError("Failed to write data point", diagnostic=resp.text, status_code=resp.status_code)

    def query(self, sql: str, bind: Mapping[str, Any]) -> list[dict[str, Any]]:
        """Run a SELECT and return its rows in store order."""
        params: dict[str, Any] = {f"param_{name}": value for name, value in bind.items()}
        params["default_format"] = "JSON"
        resp = self._post(params, sql)
        if resp.status_code != 200:
            logger.error("store_query_failed", status=resp.status_code, details=resp.text)
            raise DataSourceError(
                "An error occurred while fetching data", diagnostic=resp.text, status_code=resp.status_code
            )
        try:
            payload = resp.json()
        except ValueError as exc:
            raise DataSourceError("An error occurred while parsing data", diagnostic=str(exc)) from exc
        rows = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(rows, list):
            raise DataSourceError("An error occurred while parsing data", diagnostic="response has no data list")
        return cast(list[dict[str, Any]], rows)
