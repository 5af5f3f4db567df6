from typing import Any

import pytest

from common.errors import DataSourceError
from common.intervals import DAY_SECS, BucketWidth
from common.series import build_series_query, fetch_series


class RecordingStore:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self.rows = rows
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def query(self, sql: str, bind: dict[str, Any]) -> list[dict[str, Any]]:
        self.calls.append((sql, bind))
        return self.rows


def _row(ts: int, atmp: float = 20.0) -> dict[str, Any]:
    return {
        "ts": ts,
        "wifi": -60,
        "rco2": 600,
        "pm02": 2.5,
        "tvoc_index": 100,
        "nox_index": 1,
        "atmp": atmp,
        "rhum": 50,
        "pressure": 1013.2,
    }


def test_query_text_uses_placeholders_only() -> None:
    sql = build_series_query("measures")
    for name in ("{width:UInt32}", "{start:UInt32}", "{end:UInt32}", "{sensor:String}"):
        assert name in sql
    assert "avg(pressure) AS pressure" in sql
    assert "ORDER BY ts ASC" in sql


def test_fetch_series_binds_width_and_sensor_index() -> None:
    store = RecordingStore([_row(0), _row(60)])
    buckets = fetch_series(store, "measures", "airgradient:744dbdbfed18", 0, 3 * DAY_SECS)

    sql, bind = store.calls[0]
    assert bind == {"sensor": "744dbdbfed18", "start": 0, "end": 3 * DAY_SECS, "width": int(BucketWidth.FIVE_MINUTES)}
    assert "744dbdbfed18" not in sql
    assert [b.ts for b in buckets] == [0, 60]


def test_fetch_series_orders_ascending() -> None:
    store = RecordingStore([_row(120, 21.0), _row(0, 19.0), _row(60, 20.0)])
    buckets = fetch_series(store, "measures", "s1", 0, 180)
    assert [b.ts for b in buckets] == [0, 60, 120]
    assert [b.atmp for b in buckets] == [19.0, 20.0, 21.0]


def test_fetch_series_accepts_quoted_numbers() -> None:
    row = {k: str(v) for k, v in _row(60).items()}
    buckets = fetch_series(RecordingStore([row]), "measures", "s1", 0, 60)
    assert buckets[0].ts == 60
    assert buckets[0].pressure == pytest.approx(1013.2)


def test_fetch_series_malformed_row_raises() -> None:
    bad = _row(60)
    del bad["atmp"]
    with pytest.raises(DataSourceError):
        fetch_series(RecordingStore([bad]), "measures", "s1", 0, 60)


def test_fetch_series_empty() -> None:
    assert fetch_series(RecordingStore([]), "measures", "s1", 0, 60) == []


def test_fetch_series_pinned_width_overrides_span() -> None:
    store = RecordingStore([_row(1735689600)])
    fetch_series(store, "measures", "s1", 1735689600, 1735689720, BucketWidth.FIVE_MINUTES)
    _, bind = store.calls[0]
    assert bind["width"] == 300
