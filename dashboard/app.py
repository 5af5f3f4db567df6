import logging
import time
from datetime import datetime, timedelta

import streamlit as st
import streamlit.components.v1 as components

from common.errors import InvertedRangeError
from viewer.api import SensorApiClient
from viewer.config import Settings, load_settings
from viewer.page import PAGE_SIGNAL_SCRIPT, read_page_signal
from viewer.ranges import DEFAULT_RANGE, TimeRange
from viewer.render import build_figure
from viewer.session import ChartSession

# The fragment ticks often; the session's refresh timer decides when to fetch
TICK_SECS = 1

STATUS_COLORS = {"green": "#2e7d32", "orange": "#ef6c00", "red": "#c62828"}


def _session(settings: Settings) -> ChartSession:
    if "chart_session" not in st.session_state:
        st.session_state.chart_session = ChartSession(
            refresh_secs=settings.refresh_secs,
            target_points=settings.target_points,
            resize_debounce_ms=settings.resize_debounce_ms,
        )
    return st.session_state.chart_session


def _render_range_controls(session: ChartSession) -> None:
    current = session.selection if isinstance(session.selection, TimeRange) else None
    # The session may have moved the range on its own (fallback after a failed read)
    if current is not None:
        st.session_state.range_choice = current
    elif "range_choice" not in st.session_state:
        st.session_state.range_choice = DEFAULT_RANGE
    choice = st.radio(
        "Time range",
        options=list(TimeRange),
        horizontal=True,
        key="range_choice",
        on_change=lambda: session.set_time_range(st.session_state.range_choice),
    )

    with st.expander("Custom range"):
        local_tz = datetime.now().astimezone().tzinfo
        now_local = datetime.now(tz=local_tz)
        col_a, col_b = st.columns(2)
        with col_a:
            start_date = st.date_input("Start date", value=(now_local - timedelta(days=1)).date())
            start_time = st.time_input("Start time", value=now_local.time().replace(microsecond=0))
        with col_b:
            end_date = st.date_input("End date", value=now_local.date())
            end_time = st.time_input("End time", value=now_local.time().replace(microsecond=0))
        if st.button("Apply custom range"):
            start = datetime.combine(start_date, start_time, tzinfo=local_tz)
            end = datetime.combine(end_date, end_time, tzinfo=local_tz)
            try:
                session.set_custom_range(start, end)
            except InvertedRangeError as exc:
                st.error(str(exc))
        if current is None and st.button("Back to live"):
            session.set_time_range(choice)


def _render_gauges(session: ChartSession) -> None:
    gauges = session.gauges()
    columns = st.columns(len(gauges))
    for column, gauge in zip(columns, gauges):
        with column:
            color = STATUS_COLORS.get(gauge.status or "", "inherit")
            st.markdown(
                f"<div style='font-size:0.8rem'>{gauge.descriptor.label}</div>"
                f"<div style='font-size:1.4rem;color:{color}'>{gauge.display}</div>",
                unsafe_allow_html=True,
            )
            st.checkbox(
                "Show",
                value=gauge.visible,
                key=f"show_{gauge.descriptor.key}",
                on_change=session.toggle,
                args=(gauge.descriptor.key,),
            )


def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level.value)
    st.set_page_config(page_title="Air Monitor", layout="wide")
    st.title("Air Monitor")

    client = SensorApiClient(settings.api_base_url, settings.sensor_id, timeout=settings.request_timeout_secs)
    session = _session(settings)

    components.html(PAGE_SIGNAL_SCRIPT, height=0)
    _render_range_controls(session)

    @st.fragment(run_every=timedelta(seconds=TICK_SECS))
    def live_chart() -> None:
        now = time.time()
        signal = read_page_signal(st.query_params)
        session.observe_page(signal.visible, signal.width, now)
        if session.refresh_due(now):
            session.run_cycle(client, now)

        if session.new_version_available:
            st.warning("A new version is available. Reload the page to update.")
        if session.last_error:
            st.error(f"{session.last_error}. Falling back to the last {session.selection}.")
        if session.weather_prediction:
            st.caption(f"Weather: {session.weather_prediction}")

        _render_gauges(session)
        if session.dataset is None:
            st.info("No data for the selected window.")
            return
        st.plotly_chart(
            build_figure(session.chart, session.visibility, session.uirevision),
            use_container_width=True,
            config={"displaylogo": False},
        )
        st.caption(f"{len(session.chart.labels)} points, {len(session.visibility.visible_keys())} series")

    live_chart()


if __name__ == "__main__":
    main()
