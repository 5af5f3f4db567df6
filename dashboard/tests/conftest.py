from collections.abc import Callable
from typing import Any

import pytest

PointFactory = Callable[..., dict[str, Any]]


@pytest.fixture
def make_point() -> PointFactory:
    def _make(ts: int, **overrides: Any) -> dict[str, Any]:
        point: dict[str, Any] = {
            "ts": ts,
            "wifi": -61.0,
            "rco2": 640.0,
            "pm02": 4.0,
            "tvoc_index": 98.0,
            "nox_index": 1.0,
            "atmp": 20.0,
            "rhum": 50.0,
            "pressure": 1013.0,
            "feltTemp": 20.0,
            "aqi": 1,
        }
        point.update(overrides)
        return point

    return _make
