"""Client-side point reduction and smoothing for legible charts."""

import math
from typing import Final

import numpy as np
import pandas as pd

FIFTEEN_MINUTES_MS: Final[int] = 15 * 60 * 1000


def reduce_points(frame: pd.DataFrame, target_count: int) -> pd.DataFrame:
    """Fixed-stride decimation down to roughly ``target_count`` rows.

    Keeps every ``len // target_count``-th row by position. This does not
    preserve extremes: a short peak between kept rows disappears.
    """
    if target_count <= 0:
        raise ValueError("target_count must be > 0")
    if len(frame) <= target_count:
        return frame.copy()
    stride = len(frame) // target_count
    return frame.iloc[::stride].reset_index(drop=True)


def smoothing_window(range_ms: float) -> int:
    """Odd smoothing window that widens with the requested range (15 minutes as base)."""
    factor = math.sqrt(max(range_ms, 0) / FIFTEEN_MINUTES_MS)
    return max(3, math.floor(factor * 2 + 0.5) | 1)


def _is_smoothable(column: pd.Series) -> bool:
    return pd.api.types.is_numeric_dtype(column) and not pd.api.types.is_bool_dtype(column)


def smooth(frame: pd.DataFrame, window_size: int) -> pd.DataFrame:
    """Centred triangular-weighted moving average over every numeric column.

    The window is clipped at both ends of the sequence; non-numeric columns
    (timestamps, labels) are copied through. Length and order are preserved
    and the input frame is left untouched.
    """
    out = frame.copy()
    half = int(window_size) // 2
    if half <= 0 or out.empty:
        return out

    offsets = np.arange(-half, half + 1)
    kernel = 1.0 - np.abs(offsets) / half
    # Zero padding clips the window at the boundaries; the weight sum is
    # computed over the same padding so edge points are normalised correctly
    weight_sum = np.convolve(np.pad(np.ones(len(out)), half), kernel, mode="valid")

    for name in out.columns:
        column = out[name]
        if not _is_smoothable(column):
            continue
        values = np.pad(column.to_numpy(dtype=float), half)
        out[name] = np.convolve(values, kernel, mode="valid") / weight_sum
    return out
