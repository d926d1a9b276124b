"""Trend windows and summaries over the reading history.

Every function here is read-only and preserves insertion order exactly:
no re-sorting, no deduplication.
"""

from collections.abc import Iterable, Sequence
from statistics import mean

from iop_monitor.config import NormalRange, TrendConfig
from iop_monitor.domain.models import Reading, TrendDirection, TrendSummary
from iop_monitor.services.reading_store import ReadingStore


def recent_window(store: ReadingStore | Iterable[Reading], n: int) -> list[Reading]:
    """Return the last ``n`` readings in chronological order."""
    if n <= 0:
        raise ValueError(f"window size must be positive, got {n}")
    readings = list(store)
    return readings[-n:]


def full_history(store: ReadingStore | Iterable[Reading]) -> list[Reading]:
    """Return every reading, unmodified and in insertion order."""
    return list(store)


def is_out_of_range(reading: Reading, normal_range: NormalRange) -> bool:
    return not normal_range.contains(reading.value)


def summarize_trend(
    readings: Sequence[Reading],
    normal_range: NormalRange,
    stable_epsilon: float = 0.5,
) -> TrendSummary | None:
    """
    Summarize a window by comparing its earliest and latest values.

    Returns None for an empty window. A single reading is stable by definition.
    """
    if not readings:
        return None

    earliest = readings[0]
    latest = readings[-1]
    change = latest.value - earliest.value

    if abs(change) < stable_epsilon:
        direction = TrendDirection.STABLE
    elif change > 0:
        direction = TrendDirection.INCREASING
    else:
        direction = TrendDirection.DECREASING

    values = [r.value for r in readings]
    return TrendSummary(
        direction=direction,
        change=round(change, 1),
        earliest=earliest,
        latest=latest,
        latest_out_of_range=is_out_of_range(latest, normal_range),
        minimum=min(values),
        maximum=max(values),
        average=round(mean(values), 1),
        count=len(values),
    )


class TrendAggregator:
    """Trend queries bound to a configured window size, normal range and epsilon."""

    def __init__(self, config: TrendConfig | None = None) -> None:
        self.config = config or TrendConfig()

    @property
    def normal_range(self) -> NormalRange:
        return self.config.normal_range

    def recent_window(self, store: ReadingStore, n: int | None = None) -> list[Reading]:
        return recent_window(store, n if n is not None else self.config.window_size)

    def full_history(self, store: ReadingStore) -> list[Reading]:
        return full_history(store)

    def summarize(self, readings: Sequence[Reading]) -> TrendSummary | None:
        return summarize_trend(readings, self.config.normal_range, self.config.stable_epsilon)

    def summarize_recent(self, store: ReadingStore, n: int | None = None) -> TrendSummary | None:
        return self.summarize(self.recent_window(store, n))
