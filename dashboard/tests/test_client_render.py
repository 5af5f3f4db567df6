import pandas as pd

from viewer.render import build_figure
from viewer.series import MetricKey, VisibilityState
from viewer.session import ChartState


def _chart() -> ChartState:
    labels = list(pd.date_range("2025-01-01", periods=3, freq="min", tz="UTC"))
    return ChartState(
        labels=labels,
        series={MetricKey.ATMP: [20.0, 20.5, 21.0], MetricKey.PRESSURE: [1013.0, 1013.1, 1013.2]},
    )


def test_one_trace_per_visible_series() -> None:
    visibility = VisibilityState()
    fig = build_figure(_chart(), visibility, 3)
    assert [trace.name for trace in fig.data] == ["Temperature (°C)"]
    assert list(fig.data[0].y) == [20.0, 20.5, 21.0]
    assert fig.data[0].line.color == "#FF4500"


def test_hidden_series_comes_back_when_toggled() -> None:
    visibility = VisibilityState()
    visibility.toggle(MetricKey.PRESSURE)
    fig = build_figure(_chart(), visibility, 3)
    assert [trace.name for trace in fig.data] == ["Temperature (°C)", "Pressure (hPa)"]


def test_uirevision_follows_session() -> None:
    visibility = VisibilityState()
    assert build_figure(_chart(), visibility, 3).layout.uirevision == "3"
    assert build_figure(ChartState(), visibility, 4).layout.uirevision == "4"
