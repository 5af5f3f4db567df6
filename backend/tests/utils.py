import json
from dataclasses import dataclass
from typing import Any

from common.intervals import BucketWidth, bucket_start
from common.models import METRIC_FIELDS, ReadingModel


@dataclass
class FakeLambdaContext:
    function_name: str = "sensor-api"
    memory_limit_in_mb: int = 128
    invoked_function_arn: str = "arn:aws:lambda:us-east-1:123456789012:function:sensor-api"
    aws_request_id: str = "52fdfc07-2182-154f-163f-5f0f9a621d72"


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)
        self.headers: dict[str, str] = {}

    def json(self) -> Any:
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class InMemoryStore:
    """Stands in for the time-series store: keeps raw rows, answers the series query.

    Aggregation follows the bound parameters of the read query (sensor, start,
    end, width) rather than parsing the SQL text.
    """

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self.queries: list[tuple[str, dict[str, Any]]] = []
        self.fail_writes = False

    def write_reading(self, reading: ReadingModel) -> None:
        from common.errors import DataSourceError

        if self.fail_writes:
            raise DataSourceError("Failed to write data point", diagnostic="store down", status_code=503)
        row = {"sensor_id": reading.sensorId, "timestamp": reading.ts}
        row.update({field: getattr(reading, field) for field in METRIC_FIELDS})
        self.rows.append(row)

    def query(self, sql: str, bind: dict[str, Any]) -> list[dict[str, Any]]:
        self.queries.append((sql, dict(bind)))
        width = BucketWidth(int(bind["width"]))
        groups: dict[int, list[dict[str, Any]]] = {}
        for row in self.rows:
            if row["sensor_id"] != bind["sensor"]:
                continue
            if not (bind["start"] <= row["timestamp"] <= bind["end"]):
                continue
            groups.setdefault(bucket_start(row["timestamp"], width), []).append(row)
        out: list[dict[str, Any]] = []
        for ts in sorted(groups):
            members = groups[ts]
            bucket: dict[str, Any] = {"ts": ts}
            for field in METRIC_FIELDS:
                bucket[field] = sum(m[field] for m in members) / len(members)
            out.append(bucket)
        return out


def measure_body(**overrides: float) -> dict[str, float]:
    body = {
        "wifi": -61.0,
        "rco2": 640.0,
        "pm02": 4.0,
        "tvoc_index": 98.0,
        "nox_index": 1.0,
        "atmp": 20.0,
        "rhum": 50.0,
        "pressure": 1013.0,
    }
    body.update(overrides)
    return body


def api_event(method: str, path: str, body: Any = None, query: dict[str, str] | None = None) -> dict[str, Any]:
    return {
        "resource": path,
        "path": path,
        "httpMethod": method,
        "headers": {"Content-Type": "application/json"},
        "multiValueHeaders": {},
        "queryStringParameters": query,
        "multiValueQueryStringParameters": {k: [v] for k, v in (query or {}).items()} or None,
        "pathParameters": None,
        "stageVariables": None,
        "requestContext": {
            "requestId": "c6af9ac6-7b61-11e6-9a41-93e8deadbeef",
            "stage": "prod",
            "httpMethod": method,
            "path": path,
            "resourcePath": path,
        },
        "body": body if body is None or isinstance(body, str) else json.dumps(body),
        "isBase64Encoded": False,
    }
