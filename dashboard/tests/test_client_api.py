from typing import Any
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest
import requests  # type: ignore[import-untyped]

from common.errors import DataSourceError, EmptyResultWarning, InvertedRangeError
from viewer.api import SensorApiClient


def _response(status_code: int = 200, payload: Any = None, text: str = "") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    resp.json.return_value = payload
    return resp


def _client() -> SensorApiClient:
    return SensorApiClient("https://api.example.com/", "airgradient:744dbdbfed18", timeout=3)


def test_fetch_window_envelope(make_point) -> None:
    payload = {
        "version": "abc1234",
        "data": [make_point(120, atmp=21.0), make_point(60)],
        "weatherPrediction": "Fine weather",
    }
    with patch("viewer.api.requests.get", return_value=_response(payload=payload)) as get:
        result = _client().fetch_window(0, 180)

    get.assert_called_once()
    args, kwargs = get.call_args
    assert args[0] == "https://api.example.com/sensors/airgradient:744dbdbfed18"
    assert kwargs["params"] == {"start": 0, "end": 180}
    assert kwargs["timeout"] == 3

    assert result.version == "abc1234"
    assert result.weather_prediction == "Fine weather"
    assert list(result.frame["ts"]) == [pd.Timestamp(60, unit="s", tz="UTC"), pd.Timestamp(120, unit="s", tz="UTC")]
    assert result.frame["atmp"].tolist() == [20.0, 21.0]


def test_fetch_window_bare_list_is_enriched(make_point) -> None:
    row = make_point(60)
    del row["feltTemp"]
    del row["aqi"]
    with patch("viewer.api.requests.get", return_value=_response(payload=[row])):
        result = _client().fetch_window(0, 120)
    assert result.version is None
    assert result.weather_prediction is None
    assert result.frame.loc[0, "feltTemp"] == 20.0
    assert result.frame.loc[0, "aqi"] == 1


def test_server_enrichment_is_kept(make_point) -> None:
    with patch("viewer.api.requests.get", return_value=_response(payload=[make_point(60, feltTemp=25.5, aqi=3)])):
        result = _client().fetch_window(0, 120)
    assert result.frame.loc[0, "feltTemp"] == 25.5
    assert result.frame.loc[0, "aqi"] == 3


def test_inverted_window_sends_no_request() -> None:
    with patch("viewer.api.requests.get") as get:
        with pytest.raises(InvertedRangeError):
            _client().fetch_window(200, 100)
    get.assert_not_called()


def test_non_2xx_raises_data_source_error() -> None:
    with patch("viewer.api.requests.get", return_value=_response(500, text="boom")):
        with pytest.raises(DataSourceError) as exc:
            _client().fetch_window(0, 100)
    assert exc.value.status_code == 500
    assert exc.value.diagnostic == "boom"


def test_network_failure_raises_data_source_error() -> None:
    with patch("viewer.api.requests.get", side_effect=requests.ConnectionError("refused")):
        with pytest.raises(DataSourceError, match="unreachable"):
            _client().fetch_window(0, 100)


def test_malformed_json_raises_data_source_error() -> None:
    resp = _response()
    resp.json.side_effect = ValueError("Expecting value")
    with patch("viewer.api.requests.get", return_value=resp):
        with pytest.raises(DataSourceError):
            _client().fetch_window(0, 100)


@pytest.mark.parametrize("payload", [{"version": "x"}, "nope", {"data": {"ts": 1}}])
def test_unexpected_shape_raises_data_source_error(payload: Any) -> None:
    with patch("viewer.api.requests.get", return_value=_response(payload=payload)):
        with pytest.raises(DataSourceError):
            _client().fetch_window(0, 100)


def test_rows_missing_fields_raise_data_source_error() -> None:
    with patch("viewer.api.requests.get", return_value=_response(payload=[{"ts": 60}])):
        with pytest.raises(DataSourceError):
            _client().fetch_window(0, 100)


@pytest.mark.parametrize("payload", [[], {"version": "abc1234", "data": [], "weatherPrediction": None}])
def test_empty_result(payload: Any) -> None:
    with patch("viewer.api.requests.get", return_value=_response(payload=payload)):
        with pytest.raises(EmptyResultWarning):
            _client().fetch_window(0, 100)


def test_fetch_version() -> None:
    with patch("viewer.api.requests.get", return_value=_response(payload={"version": "abc1234"})) as get:
        assert _client().fetch_version() == "abc1234"
    assert get.call_args.args[0] == "https://api.example.com/version"


def test_fetch_window_pins_bucket_width(make_point) -> None:
    with patch("viewer.api.requests.get", return_value=_response(payload=[make_point(300)])) as get:
        _client().fetch_window(300, 400, width=300)
    assert get.call_args.kwargs["params"] == {"start": 300, "end": 400, "width": 300}
