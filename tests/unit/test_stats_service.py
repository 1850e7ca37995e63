"""
Unit tests for KPI time-series statistics.
Run: pytest tests/unit/test_stats_service.py -v
"""
import copy

import pytest

from kpiscope.services.stats_service import coerce_value, stat_cards, summarize


@pytest.fixture
def unordered_records():
    return [
        {"time": "2024-01-02", "x": 10},
        {"time": "2024-01-01", "x": 4},
        {"time": "2024-01-03", "x": 4},
    ]


class TestSummarizeEdgeCases:
    """No-data and single-point series are valid, not errors."""

    def test_empty_records(self):
        """Empty input yields zeroed stats and an empty label."""
        series, summary = summarize([], "x")

        assert series == []
        assert summary.count == 0
        assert summary.current == 0
        assert summary.change == 0
        assert summary.change_pct == 0
        assert summary.average == 0
        assert summary.std_dev == 0
        assert summary.minimum == 0
        assert summary.minimum_time is None
        assert summary.range_label == ""

    def test_single_record(self):
        """One point: current, average and extrema equal the value; std is 0."""
        series, summary = summarize([{"time": "2024-01-01", "x": 5}], "x")

        assert len(series) == 1
        assert summary.current == 5
        assert summary.change_pct == 0
        assert summary.average == 5
        assert summary.minimum == summary.maximum == 5
        assert summary.std_dev == 0
        assert summary.range_label == "Jan 1, 00:00"

    def test_single_record_label_includes_time(self):
        """Single-point labels show hour and minute."""
        _, summary = summarize([{"time": "2024-03-05T14:30:00", "x": 1}], "x")

        assert summary.range_label == "Mar 5, 14:30"


class TestSummarizeStatistics:
    """Trend, extrema and dispersion over an unordered series."""

    def test_series_sorted_ascending(self, unordered_records):
        """Records come back ordered by time."""
        series, _ = summarize(unordered_records, "x")

        assert [r["time"] for r in series] == ["2024-01-01", "2024-01-02", "2024-01-03"]

    def test_first_last_and_change(self, unordered_records):
        """Change compares the last value with the first."""
        _, summary = summarize(unordered_records, "x")

        assert summary.current == 4
        assert summary.change == 0
        assert summary.change_pct == 0
        assert summary.direction == "up"

    def test_average_and_std_dev(self, unordered_records):
        """Mean and sample (n-1) standard deviation."""
        _, summary = summarize(unordered_records, "x")

        assert summary.average == 6
        assert summary.std_dev == pytest.approx(3.4641, abs=1e-4)

    def test_extrema_keep_earliest_tie(self, unordered_records):
        """Tied minima report the earliest timestamp."""
        _, summary = summarize(unordered_records, "x")

        assert summary.minimum == 4
        assert summary.minimum_time == "2024-01-01"
        assert summary.maximum == 10
        assert summary.maximum_time == "2024-01-02"

    def test_range_label(self, unordered_records):
        """Several points produce a first - last day label."""
        _, summary = summarize(unordered_records, "x")

        assert summary.range_label == "Jan 1 – Jan 3"

    def test_percentage_change_and_direction(self):
        """Percent change is relative to the first value."""
        records = [
            {"time": "2024-01-01", "x": 50},
            {"time": "2024-01-02", "x": 40},
        ]

        _, summary = summarize(records, "x")

        assert summary.change == -10
        assert summary.change_pct == pytest.approx(-20.0)
        assert summary.direction == "down"

    def test_zero_first_value_guards_division(self):
        """A zero first value gives 0% instead of dividing by zero."""
        records = [
            {"time": "2024-01-01", "x": 0},
            {"time": "2024-01-02", "x": 8},
        ]

        _, summary = summarize(records, "x")

        assert summary.change == 8
        assert summary.change_pct == 0

    def test_max_tie_keeps_earliest(self):
        """Tied maxima report the earliest timestamp."""
        records = [
            {"time": "2024-01-03", "x": 9},
            {"time": "2024-01-01", "x": 1},
            {"time": "2024-01-02", "x": 9},
        ]

        _, summary = summarize(records, "x")

        assert summary.maximum == 9
        assert summary.maximum_time == "2024-01-02"


class TestCoercionAndOrdering:
    """Value coercion and time ordering rules."""

    def test_missing_values_count_as_zero(self):
        """Records without the KPI count as 0 and are not dropped."""
        records = [
            {"time": "2024-01-01", "x": 6},
            {"time": "2024-01-02"},
            {"time": "2024-01-03", "x": None},
        ]

        series, summary = summarize(records, "x")

        assert len(series) == 3
        assert summary.count == 3
        assert summary.average == 2
        assert summary.minimum == 0
        assert summary.minimum_time == "2024-01-02"

    @pytest.mark.parametrize("raw, expected", [
        (None, 0.0),
        ("", 0.0),
        ("3.5", 3.5),
        ("abc", 0.0),
        (float("nan"), 0.0),
        (True, 1.0),
        ({"nested": 1}, 0.0),
        (7, 7.0),
        (10**400, 0.0),
        (-10**400, 0.0),
        ("1e400", 0.0),
        (float("inf"), 0.0),
    ])
    def test_coerce_value(self, raw, expected):
        """Anything that is not a usable number becomes 0."""
        assert coerce_value(raw) == expected

    def test_out_of_range_value_does_not_raise(self):
        """An integer too large for a float counts as 0 and keeps its slot."""
        series, summary = summarize(
            [
                {"time": "2024-01-01", "x": 4},
                {"time": "2024-01-02", "x": 10**400},
                {"time": "2024-01-03", "x": 2},
            ],
            "x",
        )

        assert len(series) == 3
        assert summary.count == 3
        assert summary.average == 2
        assert summary.minimum == 0
        assert summary.minimum_time == "2024-01-02"
        assert summary.maximum == 4

    def test_equal_times_keep_input_order(self):
        """Sorting is stable for identical timestamps."""
        records = [
            {"time": "2024-01-02", "x": 1, "id": "a"},
            {"time": "2024-01-01", "x": 2, "id": "b"},
            {"time": "2024-01-02", "x": 3, "id": "c"},
        ]

        series, _ = summarize(records, "x")

        assert [r["id"] for r in series] == ["b", "a", "c"]

    def test_mixed_offsets_sorted_by_instant(self):
        """Timestamps with different offsets are ordered by actual instant."""
        records = [
            {"time": "2024-01-01T10:00:00+02:00", "x": 1},
            {"time": "2024-01-01T09:00:00Z", "x": 2},
        ]

        series, _ = summarize(records, "x")

        assert [r["x"] for r in series] == [1, 2]

    def test_unparseable_times_sort_last(self):
        """Records with unparseable times go after all parseable ones."""
        records = [
            {"time": "not a date", "x": 1},
            {"time": "2024-01-02", "x": 2},
            {"time": "2024-01-01", "x": 3},
        ]

        series, _ = summarize(records, "x")

        assert [r["x"] for r in series] == [3, 2, 1]


class TestPurity:
    """summarize keeps no state and does not touch its input."""

    def test_idempotent(self, unordered_records):
        """Two calls on the same input give identical output."""
        first = summarize(unordered_records, "x")
        second = summarize(unordered_records, "x")

        assert first == second

    def test_input_not_mutated(self, unordered_records):
        """The input list keeps its order and contents."""
        snapshot = copy.deepcopy(unordered_records)

        summarize(unordered_records, "x")

        assert unordered_records == snapshot


class TestStatCards:
    """Footer cards built from a summary."""

    def test_cards_for_series(self, unordered_records):
        """Six cards with two-decimal values and day subtitles on extrema."""
        _, summary = summarize(unordered_records, "x")

        cards = stat_cards(summary)

        assert [c.label for c in cards] == ["Current", "Change", "Average", "Min", "Max", "Std Dev"]
        assert cards[0].value == "4.00"
        assert cards[1].value == "0.00%"
        assert cards[1].direction == "up"
        assert cards[3].sub == "Jan 1"
        assert cards[4].sub == "Jan 2"
        assert cards[5].value == "3.46"

    def test_change_card_shows_absolute_percent(self):
        """A drop shows a positive percentage with direction down."""
        _, summary = summarize([
            {"time": "2024-01-01", "x": 50},
            {"time": "2024-01-02", "x": 40},
        ], "x")

        change = stat_cards(summary)[1]

        assert change.value == "20.00%"
        assert change.direction == "down"

    def test_no_cards_without_data(self):
        """Empty series render no cards."""
        _, summary = summarize([], "x")

        assert stat_cards(summary) == []
