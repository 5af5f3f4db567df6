"""Visibility and incremental chart controller for one chart instance.

A ``ChartSession`` owns everything that changes while the page is open: the
selected range, the fetched dataset, the drawn ``ChartState``, the refresh
timer and the resize debouncer. Fetches are split in two steps,
:meth:`ChartSession.begin_request` and :meth:`ChartSession.commit`, so a
response that arrives after a newer request was issued can be recognised and
dropped.
"""

import logging
from bisect import bisect_left
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Protocol

import pandas as pd

from common.errors import DataSourceError, EmptyResultWarning
from common.intervals import BucketWidth, bucket_start, select_bucket_width
from viewer.api import SeriesResponse
from viewer.downsample import reduce_points, smooth, smoothing_window
from viewer.ranges import DEFAULT_RANGE, SHORTEST_RANGE, CustomRange, RangeSelection, TimeRange, custom_range, window_for
from viewer.scheduling import Debouncer, RefreshTimer
from viewer.series import Gauge, MetricKey, VisibilityState, build_gauges

logger = logging.getLogger(__name__)


class ChartPhase(StrEnum):
    UNINITIALIZED = "uninitialized"
    BUILT = "built"
    UPDATED = "updated"
    REBUILT = "rebuilt"


class SeriesSource(Protocol):
    def fetch_window(self, start: int, end: int, width: int | None = None) -> SeriesResponse: ...


@dataclass
class ChartState:
    """Labels plus one data list per drawn series, always the same length."""

    labels: list[pd.Timestamp] = field(default_factory=list)
    series: dict[MetricKey, list[float]] = field(default_factory=dict)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame, keys: tuple[MetricKey, ...]) -> "ChartState":
        return cls(
            labels=list(frame["ts"]),
            series={key: frame[key.value].astype(float).tolist() for key in keys},
        )

    @property
    def last_label(self) -> pd.Timestamp | None:
        return self.labels[-1] if self.labels else None

    def append(self, frame: pd.DataFrame) -> int:
        self.labels.extend(frame["ts"])
        for key, values in self.series.items():
            values.extend(frame[key.value].astype(float).tolist())
        return len(frame)

    def truncate_from(self, label: pd.Timestamp) -> None:
        """Drop every point at or after ``label``."""
        idx = bisect_left(self.labels, label)
        del self.labels[idx:]
        for values in self.series.values():
            del values[idx:]

    def trim_before(self, label: pd.Timestamp) -> int:
        """Drop every point before ``label``; returns how many went."""
        idx = bisect_left(self.labels, label)
        del self.labels[:idx]
        for values in self.series.values():
            del values[:idx]
        return idx

    def is_consistent(self) -> bool:
        return all(len(values) == len(self.labels) for values in self.series.values())


@dataclass(frozen=True)
class FetchRequest:
    seq: int
    selection: RangeSelection
    start: int
    end: int
    # Bucket width of the whole window, also pinned on incremental fetches
    width: BucketWidth
    window_start: int
    incremental: bool
    # Bumped on every range change; a request from an older epoch is superseded
    range_epoch: int


class ChartSession:
    def __init__(
        self,
        refresh_secs: float = 30,
        target_points: int = 500,
        resize_debounce_ms: int = 250,
        selection: RangeSelection = DEFAULT_RANGE,
        visibility: VisibilityState | None = None,
    ) -> None:
        self.target_points = target_points
        self.visibility = visibility or VisibilityState()
        self.selection: RangeSelection = selection
        self.chart = ChartState()
        self.phase = ChartPhase.UNINITIALIZED
        self.dataset: pd.DataFrame | None = None
        self.weather_prediction: str | None = None
        self.last_error: str | None = None

        self.timer = RefreshTimer(refresh_secs)
        self.resize_debouncer: Debouncer[int] = Debouncer(resize_debounce_ms / 1000)
        self.viewport_width: int | None = None
        self._reported_width: int | None = None

        self.version: str | None = None
        self.new_version_available = False

        # Changes on every rebuild so plotly resets zoom only then
        self.uirevision = 0

        self._request_seq = 0
        self._committed_seq = 0
        self._range_epoch = 0
        self._needs_full_fetch = True

    # fetch cycle

    def begin_request(self, now: float) -> FetchRequest:
        """Next request to issue.

        Live ranges fetch from the start of the last held bucket, so that bucket
        comes back complete, and pin the window's bucket width so the new
        buckets match the ones already drawn.
        """
        window_start, end = window_for(self.selection, now)
        width = select_bucket_width(end - window_start)
        start = window_start
        incremental = False
        if (
            not self._needs_full_fetch
            and isinstance(self.selection, TimeRange)
            and self.dataset is not None
            and not self.dataset.empty
        ):
            last_ts = int(self.dataset["ts"].iloc[-1].timestamp())
            if window_start <= last_ts <= end:
                start = max(window_start, bucket_start(last_ts, width))
                incremental = True

        self._request_seq += 1
        return FetchRequest(
            seq=self._request_seq,
            selection=self.selection,
            start=start,
            end=end,
            width=width,
            window_start=window_start,
            incremental=incremental,
            range_epoch=self._range_epoch,
        )

    def is_stale(self, request: FetchRequest) -> bool:
        return request.seq <= self._committed_seq or request.range_epoch != self._range_epoch

    def commit(self, request: FetchRequest, response: SeriesResponse) -> bool:
        """Apply a completed response. Returns False when it was dropped as stale."""
        if self.is_stale(request):
            logger.debug("Dropping stale response seq=%s (committed=%s)", request.seq, self._committed_seq)
            return False
        self._committed_seq = request.seq
        self.last_error = None
        if response.version:
            self.observe_version(response.version)

        frame = response.frame
        if request.incremental and self.dataset is not None and self.phase is not ChartPhase.UNINITIALIZED:
            self._append(self.dataset, frame, request.window_start)
        else:
            # The trend behind the forecast needs the whole window
            self.weather_prediction = response.weather_prediction
            self.dataset = frame.reset_index(drop=True)
            self._needs_full_fetch = False
            self._rebuild()
        return True

    def skip_empty(self, request: FetchRequest) -> None:
        """An empty window leaves the chart as it is."""
        if self.is_stale(request):
            return
        self._committed_seq = request.seq
        logger.info("No data between %s and %s, keeping the current chart", request.start, request.end)

    def fail(self, request: FetchRequest | None, exc: Exception) -> None:
        """Record a failed read and fall back to the shortest preset."""
        if request is not None and self.is_stale(request):
            return
        if request is not None:
            self._committed_seq = request.seq
        logger.error("Failed to load sensor data: %s", exc)
        self.last_error = str(exc)
        self._select(SHORTEST_RANGE)

    def run_cycle(self, source: SeriesSource, now: float) -> bool:
        """One fetch-and-render cycle against ``source``. Returns True when the chart changed."""
        request = self.begin_request(now)
        self.timer.mark_fired(now)
        try:
            response = source.fetch_window(request.start, request.end, int(request.width))
        except EmptyResultWarning:
            self.skip_empty(request)
            return False
        except DataSourceError as exc:
            self.fail(request, exc)
            return False
        return self.commit(request, response)

    # user actions

    def set_time_range(self, selection: TimeRange) -> None:
        self._select(selection)

    def set_custom_range(self, start: datetime, end: datetime) -> CustomRange:
        """Select a fixed window. Raises InvertedRangeError and leaves the selection unchanged when start > end."""
        selection = custom_range(start, end)
        self._select(selection)
        return selection

    def toggle(self, key: MetricKey) -> bool:
        visible = self.visibility.toggle(key)
        if self.phase is not ChartPhase.UNINITIALIZED:
            self._rebuild()
        return visible

    def resize(self, width: int, now: float) -> None:
        self.resize_debouncer.push(width, now)

    def settle_resize(self, now: float) -> bool:
        """Apply a debounced width. The first measurement only records the viewport."""
        width = self.resize_debouncer.settle(now)
        if width is None or width == self.viewport_width:
            return False
        first = self.viewport_width is None
        self.viewport_width = width
        if not first and self.phase is not ChartPhase.UNINITIALIZED:
            self._rebuild()
        return True

    def set_visible(self, visible: bool, now: float) -> None:
        self.timer.set_visible(visible, now)

    def observe_page(self, visible: bool, width: int | None, now: float) -> bool:
        """Feed the page's current visibility and width; called on every tick.

        A width is pushed to the debouncer only when it differs from the last
        one reported, so a steady page does not keep postponing the settle.
        Returns True when a resize was applied.
        """
        self.set_visible(visible, now)
        if width is not None and width != self._reported_width:
            self._reported_width = width
            self.resize(width, now)
        return self.settle_resize(now)

    def refresh_due(self, now: float) -> bool:
        """A changed range fetches right away; otherwise the refresh timer decides."""
        if self._needs_full_fetch and self.timer.visible:
            return True
        return self.timer.due(now)

    def observe_version(self, version: str) -> None:
        if self.version is None:
            self.version = version
        elif version != self.version:
            if not self.new_version_available:
                logger.info("New version available: %s (running %s)", version, self.version)
            self.new_version_available = True

    # derived views

    def latest_point(self) -> dict[str, Any] | None:
        if self.dataset is None or self.dataset.empty:
            return None
        return self.dataset.iloc[-1].to_dict()

    def gauges(self) -> list[Gauge]:
        return build_gauges(self.latest_point(), self.visibility)

    # internals

    def _select(self, selection: RangeSelection) -> None:
        self.selection = selection
        self._range_epoch += 1
        self._needs_full_fetch = True

    def _append(self, dataset: pd.DataFrame, frame: pd.DataFrame, window_start: int) -> None:
        if frame.empty:
            return
        first_fresh = frame["ts"].iloc[0]
        cutoff = pd.Timestamp(window_start, unit="s", tz="UTC")

        # Re-fetched buckets replace the partial averages held for the same timestamps
        merged = pd.concat([dataset[dataset["ts"] < first_fresh], frame], ignore_index=True)
        self.dataset = merged[merged["ts"] >= cutoff].reset_index(drop=True)

        # Smooth the new points with enough history before them to fill the window
        window_size = smoothing_window(self.selection.milliseconds)
        fresh_count = int((self.dataset["ts"] >= first_fresh).sum())
        context = self.dataset.iloc[max(0, len(self.dataset) - fresh_count - window_size // 2) :]
        tail = smooth(context, window_size).iloc[len(context) - fresh_count :]

        self.chart.truncate_from(first_fresh)
        self.chart.append(tail)
        self.chart.trim_before(cutoff)
        self.phase = ChartPhase.UPDATED

        # Keep a long live session bounded; the view (zoom) is left alone
        if len(self.chart.labels) > 2 * self.target_points:
            self.chart = self._draw(self.dataset)

    def _draw(self, dataset: pd.DataFrame) -> ChartState:
        reduced = reduce_points(dataset, self.target_points)
        processed = smooth(reduced, smoothing_window(self.selection.milliseconds))
        return ChartState.from_frame(processed, self.visibility.visible_keys())

    def _rebuild(self) -> None:
        if self.dataset is None:
            return
        self.chart = self._draw(self.dataset)
        self.phase = ChartPhase.BUILT if self.phase is ChartPhase.UNINITIALIZED else ChartPhase.REBUILT
        self.uirevision += 1
