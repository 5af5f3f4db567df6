from enum import IntEnum
from typing import Final

DAY_SECS: Final[int] = 24 * 60 * 60


class BucketWidth(IntEnum):
    """Aggregation bucket widths in seconds."""

    ONE_MINUTE = 60
    FIVE_MINUTES = 5 * 60
    FIFTEEN_MINUTES = 15 * 60
    ONE_HOUR = 60 * 60


# Widest span first; the first threshold exceeded picks the width
_TIERS: Final[tuple[tuple[int, BucketWidth], ...]] = (
    (30 * DAY_SECS, BucketWidth.ONE_HOUR),
    (7 * DAY_SECS, BucketWidth.FIFTEEN_MINUTES),
    (1 * DAY_SECS, BucketWidth.FIVE_MINUTES),
)


def select_bucket_width(span_seconds: float) -> BucketWidth:
    """Bucket width for a requested span.

    Keeps a response to a few hundred to a few thousand points whatever the
    span. Zero or negative spans get the finest width.
    """
    for threshold, width in _TIERS:
        if span_seconds > threshold:
            return width
    return BucketWidth.ONE_MINUTE


def bucket_start(ts: int, width: BucketWidth) -> int:
    """Epoch-aligned start of the bucket containing ``ts``."""
    return (int(ts) // int(width)) * int(width)


def parse_bucket_width(raw: str | None) -> BucketWidth | None:
    """A canonical width from a query-string value, or None for anything else."""
    if raw is None:
        return None
    try:
        return BucketWidth(int(str(raw).strip()))
    except ValueError:
        return None
