"""
Threshold crossing detection.

Scans a series once and returns the intervals where values stay strictly
above a threshold. An interval closes at the first sample that does not
exceed the threshold. When the series ends while an interval is still open,
the interval is returned with open_ended=True and ends at the last sample, as
more data may extend it.
"""

from typing import NamedTuple

from .models import TimeSeries


class DetectedInterval(NamedTuple):
    """Raw detection interval produced by an analytic unit"""

    from_: int
    to: int
    open_ended: bool = False


def detect_threshold(series: TimeSeries, threshold: float) -> list[DetectedInterval]:
    """Return the intervals of series whose values exceed threshold

    Args:
        series: Samples ordered by strictly increasing timestamp
        threshold: Values equal to the threshold do not exceed it

    Returns:
        Intervals ordered by start time
    """
    result: list[DetectedInterval] = []
    segment_start: int | None = None

    for timestamp, value in series:
        if value > threshold:
            if segment_start is None:
                segment_start = timestamp
        elif segment_start is not None:
            result.append(DetectedInterval(segment_start, timestamp))
            segment_start = None

    if segment_start is not None:
        result.append(DetectedInterval(segment_start, series[-1][0], open_ended=True))

    return result
