import plotly.graph_objects as go

from viewer.series import DESCRIPTORS, MetricKey, VisibilityState
from viewer.session import ChartState


def _trace_name(key: MetricKey) -> str:
    descriptor = DESCRIPTORS[key]
    return f"{descriptor.label} ({descriptor.unit})" if descriptor.unit else descriptor.label


def build_figure(chart: ChartState, visibility: VisibilityState, uirevision: int | str) -> go.Figure:
    """Line chart of the drawn series on a shared time axis.

    Series hidden through ``visibility`` are skipped even if the chart still
    carries their data. ``uirevision`` keeps zoom and legend state while it
    stays the same between renders.
    """
    fig = go.Figure()
    for key, values in chart.series.items():
        if not visibility.is_visible(key):
            continue
        fig.add_trace(
            go.Scatter(
                x=chart.labels,
                y=values,
                mode="lines",
                name=_trace_name(key),
                line=dict(color=DESCRIPTORS[key].color, width=2),
            )
        )

    fig.update_layout(
        uirevision=str(uirevision),
        xaxis=dict(title="Time", type="date"),
        yaxis=dict(title="Value"),
        hovermode="x unified",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="left", x=0),
        margin=dict(l=40, r=40, t=30, b=40),
        height=480,
    )
    return fig
