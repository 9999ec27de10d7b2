"""
Aggregation tests
Run with: python3 -m pytest tests/
"""

import pandas as pd
import pytest

from healthdash import aggregation
from healthdash.aggregation import Bucketing, HistoryRange, Reducer


def ts(s):
    return pd.Timestamp(s)


class TestDailyBuckets:
    def test_average_per_day(self):
        samples = [
            (ts("2024-01-15 08:00"), 180.0),
            (ts("2024-01-15 20:00"), 182.0),
            (ts("2024-01-16 07:00"), 181.0),
        ]
        series = aggregation.aggregate(samples, Bucketing.DAY, Reducer.AVERAGE)
        assert list(series["date"]) == [ts("2024-01-15"), ts("2024-01-16")]
        assert list(series["value"]) == [181.0, 181.0]

    def test_sum_per_day(self):
        samples = [
            (ts("2024-01-15 00:05"), 1200.0),
            (ts("2024-01-15 23:55"), 300.0),
        ]
        series = aggregation.aggregate(samples, Bucketing.DAY, Reducer.SUM)
        assert list(series["value"]) == [1500.0]

    def test_empty_days_are_omitted(self):
        samples = [(ts("2024-01-15 09:00"), 1.0), (ts("2024-01-18 09:00"), 2.0)]
        series = aggregation.aggregate(samples, Bucketing.DAY, Reducer.SUM)
        assert list(series["date"]) == [ts("2024-01-15"), ts("2024-01-18")]

    def test_output_sorted_ascending(self):
        samples = [(ts("2024-01-18 09:00"), 2.0), (ts("2024-01-15 09:00"), 1.0), (ts("2024-01-16 09:00"), 3.0)]
        series = aggregation.aggregate(samples, Bucketing.DAY, Reducer.AVERAGE)
        assert series["date"].is_monotonic_increasing
        assert series["date"].is_unique

    def test_accepts_dataframe(self):
        df = pd.DataFrame({"date": [ts("2024-01-15 09:00")], "value": [170.0], "extra": ["x"]})
        series = aggregation.aggregate(df, Bucketing.DAY, Reducer.AVERAGE)
        assert list(series.columns) == ["date", "value"]
        assert series["value"].iloc[0] == 170.0

    def test_empty_input(self):
        series = aggregation.aggregate([], Bucketing.DAY, Reducer.SUM)
        assert series.empty
        assert list(series.columns) == ["date", "value"]


class TestWeeklyBuckets:
    def test_weeks_start_on_saturday(self):
        samples = [
            (ts("2024-01-12 10:00"), 100.0),  # Friday
            (ts("2024-01-13 00:30"), 200.0),  # Saturday
            (ts("2024-01-19 23:59"), 300.0),  # Friday
        ]
        series = aggregation.aggregate(samples, Bucketing.WEEK_STARTING_SATURDAY, Reducer.SUM)
        assert list(series["date"]) == [ts("2024-01-06"), ts("2024-01-13")]
        assert list(series["value"]) == [100.0, 500.0]

    def test_bucket_start_is_always_saturday_midnight(self):
        stamps = pd.Series(pd.date_range("2024-01-01 13:17", periods=30, freq=pd.Timedelta(hours=19)))
        starts = aggregation.bucket_start(stamps, Bucketing.WEEK_STARTING_SATURDAY)
        assert (starts.dt.weekday == 5).all()
        assert (starts == starts.dt.normalize()).all()
        assert ((stamps - starts) < pd.Timedelta(days=7)).all()

    def test_weekly_average(self):
        samples = [(ts("2024-01-14 08:00"), 180.0), (ts("2024-01-17 08:00"), 178.0)]
        series = aggregation.aggregate(samples, Bucketing.WEEK_STARTING_SATURDAY, Reducer.AVERAGE)
        assert list(series["value"]) == [179.0]

    def test_half_year_range_uses_weeks(self):
        samples = [(ts("2024-01-14 08:00"), 1.0), (ts("2024-01-15 08:00"), 1.0)]
        series = aggregation.aggregate_for_range(samples, HistoryRange.HALF_YEAR, Reducer.SUM)
        assert len(series) == 1
        series = aggregation.aggregate_for_range(samples, HistoryRange.MONTH, Reducer.SUM)
        assert len(series) == 2


class TestSummary:
    def test_summary_of_series(self):
        series = pd.DataFrame({"date": pd.date_range("2024-01-01", periods=3), "value": [170.0, 180.0, 175.0]})
        summary = aggregation.summarize(series)
        assert summary.average == pytest.approx(175.0)
        assert summary.minimum == 170.0
        assert summary.maximum == 180.0

    def test_summary_of_empty_series(self):
        empty = aggregation.aggregate([], Bucketing.DAY, Reducer.SUM)
        assert aggregation.summarize(empty) == (0.0, 0.0, 0.0)

    def test_axis_bounds_padded(self):
        series = pd.DataFrame({"date": pd.date_range("2024-01-01", periods=2), "value": [170.0, 180.0]})
        assert aggregation.axis_bounds(series, aggregation.WEIGHT_AXIS) == (165.0, 185.0)
        assert aggregation.axis_bounds(series, aggregation.CALORIE_AXIS) == (120.0, 230.0)
        nights = pd.DataFrame({"date": pd.date_range("2024-01-01", periods=2), "value": [6.5, 8.0]})
        assert aggregation.axis_bounds(nights, aggregation.SLEEP_AXIS) == (5.5, 9.0)

    def test_axis_bounds_fallback(self):
        empty = aggregation.aggregate([], Bucketing.DAY, Reducer.SUM)
        assert aggregation.axis_bounds(empty, aggregation.WEIGHT_AXIS) == (0, 200)
        assert aggregation.axis_bounds(empty, aggregation.CALORIE_AXIS) == (0, 3000)
        assert aggregation.axis_bounds(empty, aggregation.SLEEP_AXIS) == (0, 12)


class TestChartHelpers:
    def setup_method(self):
        self.series = pd.DataFrame({"date": pd.date_range("2024-01-01", periods=7), "value": range(7)})

    def test_month_ticks_every_third_bucket(self):
        ticks = aggregation.x_axis_values(self.series, HistoryRange.MONTH)
        assert ticks == [ts("2024-01-01"), ts("2024-01-04"), ts("2024-01-07")]

    def test_week_ticks_every_bucket(self):
        assert len(aggregation.x_axis_values(self.series, HistoryRange.WEEK)) == 7
        assert len(aggregation.x_axis_values(self.series, HistoryRange.HALF_YEAR)) == 7

    def test_nearest_point(self):
        when, value = aggregation.nearest_point(self.series, ts("2024-01-03 20:00"))
        assert when == ts("2024-01-04")
        assert value == 3.0

    def test_nearest_point_empty(self):
        assert aggregation.nearest_point(self.series.iloc[0:0], ts("2024-01-03")) is None

    def test_week_range_label(self):
        assert aggregation.week_range(ts("2024-01-15 12:00")) == "Jan 13 – Jan 19"
        assert aggregation.week_range(ts("2024-02-01")) == "Jan 27 – Feb 2"


class TestHistoryRange:
    def test_labels_and_days(self):
        assert [(r.label, r.days) for r in HistoryRange] == [("Week", 7), ("Month", 30), ("6 Months", 180)]

    def test_from_label(self):
        assert HistoryRange.from_label("6 Months") is HistoryRange.HALF_YEAR
        with pytest.raises(ValueError):
            HistoryRange.from_label("Year")
