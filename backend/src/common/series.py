from typing import Any, Final, Protocol

from aws_lambda_powertools import Logger
from pydantic import ValidationError as PydanticValidationError

from .errors import DataSourceError
from .intervals import BucketWidth, select_bucket_width
from .models import METRIC_FIELDS, BucketModel, sensor_index

logger = Logger()


class QueryableStore(Protocol):
    def query(self, sql: str, bind: dict[str, Any]) -> list[dict[str, Any]]: ...


_AVERAGES: Final[str] = ",\n    ".join(f"avg({field}) AS {field}" for field in METRIC_FIELDS)


def build_series_query(table: str) -> str:
    """Per-bucket averages for one sensor, buckets aligned on the Unix epoch."""
    return f"""
SELECT
    intDiv(toUInt32(timestamp), {{width:UInt32}}) * {{width:UInt32}} AS ts,
    {_AVERAGES}
FROM {table}
WHERE sensor_id = {{sensor:String}}
    AND timestamp >= {{start:UInt32}}
    AND timestamp <= {{end:UInt32}}
GROUP BY ts
ORDER BY ts ASC
"""


def fetch_series(
    store: QueryableStore,
    table: str,
    sensor_id: str,
    start: int,
    end: int,
    width: BucketWidth | None = None,
) -> list[BucketModel]:
    """Ordered per-bucket averages for ``[start, end]`` (epoch seconds, inclusive).

    The bucket width follows the span unless the caller pins one, which a live
    refresh does so its buckets line up with the window it extends.
    """
    if width is None:
        width = select_bucket_width(end - start)
    bind: dict[str, Any] = {
        "sensor": sensor_index(sensor_id),
        "start": int(start),
        "end": int(end),
        "width": int(width),
    }
    logger.debug("fetch_series", sensor_id=sensor_id, start=start, end=end, width=int(width))
    rows = store.query(build_series_query(table), bind)
    try:
        buckets = [BucketModel.model_validate(row) for row in rows]
    except PydanticValidationError as exc:
        raise DataSourceError("An error occurred while parsing data", diagnostic=str(exc)) from exc
    # The store is asked for ascending order; keep the contract even if it ignores it
    buckets.sort(key=lambda b: b.ts)
    return buckets
