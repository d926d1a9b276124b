"""Tests for trend windows and summaries."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from iop_monitor.config import NormalRange, TrendConfig
from iop_monitor.domain.models import Reading, TrendDirection
from iop_monitor.services.reading_store import ReadingStore
from iop_monitor.services.trends import (
    TrendAggregator,
    full_history,
    is_out_of_range,
    recent_window,
    summarize_trend,
)

from conftest import readings_at

NORMAL = NormalRange(minimum=12.0, maximum=22.0)


class TestWindows:
    def test_recent_window_on_short_store_returns_everything_in_order(self) -> None:
        readings = readings_at([18.0, 22.0, 19.0])
        store = ReadingStore.from_readings(readings)

        assert recent_window(store, 7) == readings

    def test_recent_window_returns_last_n(self) -> None:
        readings = readings_at([18, 19, 18, 20, 21, 20, 22, 23, 24])
        store = ReadingStore.from_readings(readings)

        assert recent_window(store, 7) == readings[-7:]

    def test_duplicates_are_kept(self) -> None:
        readings = readings_at([20.0, 20.0, 20.0])
        store = ReadingStore.from_readings(readings)

        assert len(recent_window(store, 5)) == 3
        assert len(full_history(store)) == 3

    @pytest.mark.parametrize("n", [0, -3])
    def test_window_size_must_be_positive(self, n: int) -> None:
        with pytest.raises(ValueError, match="window size must be positive"):
            recent_window(ReadingStore(), n)

    def test_windows_do_not_mutate_store(self) -> None:
        store = ReadingStore.from_readings(readings_at([18.0, 19.0]))

        window = recent_window(store, 1)
        window.clear()
        full_history(store).append(Reading(value=99.0))

        assert len(store) == 2

    @given(
        values=st.lists(st.floats(min_value=0.0, max_value=60.0), max_size=20),
        n=st.integers(min_value=1, max_value=25),
    )
    def test_window_is_suffix_of_history(self, values: list[float], n: int) -> None:
        store = ReadingStore.from_readings(readings_at(values))

        window = recent_window(store, n)
        history = full_history(store)

        assert len(window) == min(n, len(values))
        assert history[len(history) - len(window) :] == window


class TestSummaries:
    def test_empty_window_has_no_summary(self) -> None:
        assert summarize_trend([], NORMAL) is None

    def test_single_reading_is_stable(self) -> None:
        summary = summarize_trend(readings_at([20.0]), NORMAL)

        assert summary is not None
        assert summary.direction == TrendDirection.STABLE
        assert summary.count == 1

    @pytest.mark.parametrize(
        "values,direction",
        [
            ([20.0, 26.4], TrendDirection.INCREASING),
            ([22.0, 19.0, 18.0], TrendDirection.DECREASING),
            ([20.0, 25.0, 20.3], TrendDirection.STABLE),
        ],
    )
    def test_direction_compares_earliest_and_latest(
        self, values: list[float], direction: TrendDirection
    ) -> None:
        summary = summarize_trend(readings_at(values), NORMAL, stable_epsilon=0.5)

        assert summary is not None
        assert summary.direction == direction

    def test_change_just_below_epsilon_is_stable(self) -> None:
        summary = summarize_trend(readings_at([20.0, 20.4]), NORMAL, stable_epsilon=0.5)

        assert summary is not None
        assert summary.direction == TrendDirection.STABLE

    def test_statistics_and_range_flag(self) -> None:
        summary = summarize_trend(readings_at([18.0, 22.0, 26.0]), NORMAL)

        assert summary is not None
        assert summary.minimum == 18.0
        assert summary.maximum == 26.0
        assert summary.average == 22.0
        assert summary.change == 8.0
        assert summary.latest_out_of_range is True

    def test_normal_range_is_inclusive(self) -> None:
        assert not is_out_of_range(Reading(value=12.0), NORMAL)
        assert not is_out_of_range(Reading(value=22.0), NORMAL)
        assert is_out_of_range(Reading(value=22.1), NORMAL)
        assert is_out_of_range(Reading(value=11.9), NORMAL)


class TestTrendAggregator:
    def test_uses_configured_window(self) -> None:
        aggregator = TrendAggregator(TrendConfig(window_size=3))
        readings = readings_at([18, 19, 20, 21, 22])
        store = ReadingStore.from_readings(readings)

        assert aggregator.recent_window(store) == readings[-3:]
        assert aggregator.recent_window(store, 2) == readings[-2:]
        assert aggregator.full_history(store) == readings

    def test_summarize_recent(self) -> None:
        aggregator = TrendAggregator()
        store = ReadingStore.from_readings(readings_at([18, 19, 18, 20, 21, 20, 22]))

        summary = aggregator.summarize_recent(store)

        assert summary is not None
        assert summary.direction == TrendDirection.INCREASING
        assert summary.latest_out_of_range is False
