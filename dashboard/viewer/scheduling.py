"""Clock-driven refresh and resize timing.

Both helpers take ``now`` from the caller instead of reading a clock, so the
Streamlit loop and the tests drive them the same way.
"""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


class RefreshTimer:
    """Periodic refresh that pauses while the page is hidden.

    Returning to a visible page makes the timer due immediately, then the
    regular period applies again.
    """

    def __init__(self, period_s: float) -> None:
        if period_s <= 0:
            raise ValueError("period_s must be > 0")
        self.period_s = period_s
        self.visible = True
        self._last_fired: float | None = None

    def set_visible(self, visible: bool, now: float) -> None:
        if visible and not self.visible:
            self._last_fired = None
        self.visible = visible

    def due(self, now: float) -> bool:
        if not self.visible:
            return False
        if self._last_fired is None:
            return True
        return now - self._last_fired >= self.period_s

    def mark_fired(self, now: float) -> None:
        self._last_fired = now


@dataclass
class Debouncer(Generic[T]):
    """Keeps the latest pushed value and releases it once ``delay_s`` passed without a new push."""

    delay_s: float
    _pending: T | None = field(default=None, init=False)
    _pushed_at: float = field(default=0.0, init=False)

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def push(self, value: T, now: float) -> None:
        self._pending = value
        self._pushed_at = now

    def settle(self, now: float) -> T | None:
        if self._pending is None or now - self._pushed_at < self.delay_s:
            return None
        value, self._pending = self._pending, None
        return value
