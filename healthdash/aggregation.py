"""
Grouping of timestamped samples into daily or weekly buckets, plus the
summary statistics and axis bounds the history charts are drawn with.
All timestamps are naive local wall-clock times.
"""
from enum import Enum
from typing import NamedTuple

import numpy as np
import pandas as pd

SATURDAY = 5  # pandas weekday numbering, Monday == 0


class Bucketing(Enum):
    DAY = "day"
    WEEK_STARTING_SATURDAY = "week"


class Reducer(Enum):
    AVERAGE = "mean"
    SUM = "sum"


class HistoryRange(Enum):
    WEEK = ("Week", 7, Bucketing.DAY)
    MONTH = ("Month", 30, Bucketing.DAY)
    HALF_YEAR = ("6 Months", 180, Bucketing.WEEK_STARTING_SATURDAY)

    def __init__(self, label, days, bucketing):
        self.label = label
        self.days = days
        self.bucketing = bucketing

    @classmethod
    def from_label(cls, label):
        for history_range in cls:
            if history_range.label == label:
                return history_range
        raise ValueError(f"Unknown history range: {label!r}")


class AxisPolicy(NamedTuple):
    padding: float
    fallback_min: float
    fallback_max: float


WEIGHT_AXIS = AxisPolicy(padding=5, fallback_min=0, fallback_max=200)
CALORIE_AXIS = AxisPolicy(padding=50, fallback_min=0, fallback_max=3000)
SLEEP_AXIS = AxisPolicy(padding=1, fallback_min=0, fallback_max=12)


class SeriesSummary(NamedTuple):
    average: float
    minimum: float
    maximum: float


# --- Bucketing ---

def _to_samples_frame(samples):
    if isinstance(samples, pd.DataFrame):
        df = samples[['date', 'value']].copy()
    else:
        df = pd.DataFrame(list(samples), columns=['date', 'value'])
    df['date'] = pd.to_datetime(df['date'])
    df['value'] = df['value'].astype(float)
    return df


def bucket_start(timestamps, bucketing):
    """Start of the bucket containing each timestamp (Series in, Series out)."""
    day_start = pd.to_datetime(timestamps).dt.normalize()
    if bucketing is Bucketing.DAY:
        return day_start
    days_since_saturday = (day_start.dt.weekday - SATURDAY) % 7
    return day_start - pd.to_timedelta(days_since_saturday, unit='D')


def aggregate(samples, bucketing, reducer):
    """
    Reduce samples to one value per non-empty bucket, ascending by bucket start.
    Buckets without samples are left out rather than zero-filled.
    """
    df = _to_samples_frame(samples)
    if df.empty:
        return pd.DataFrame({'date': pd.Series(dtype='datetime64[ns]'), 'value': pd.Series(dtype=float)})

    df['bucket'] = bucket_start(df['date'], bucketing)
    reduced = df.groupby('bucket', sort=True)['value'].agg(reducer.value)
    return pd.DataFrame({'date': reduced.index, 'value': reduced.to_numpy()}).reset_index(drop=True)


def aggregate_for_range(samples, history_range, reducer):
    return aggregate(samples, history_range.bucketing, reducer)


# --- Derived values ---

def summarize(series):
    if series.empty:
        return SeriesSummary(0.0, 0.0, 0.0)
    values = series['value']
    return SeriesSummary(float(values.mean()), float(values.min()), float(values.max()))


def axis_bounds(series, policy):
    if series.empty:
        return policy.fallback_min, policy.fallback_max
    return float(series['value'].min()) - policy.padding, float(series['value'].max()) + policy.padding


def x_axis_values(series, history_range):
    dates = list(series['date'])
    if history_range is HistoryRange.MONTH:
        return dates[::3]
    return dates


def nearest_point(series, when):
    """Row closest in time to `when`, as (date, value), or None for an empty series."""
    if series.empty:
        return None
    distances = np.abs((series['date'] - pd.Timestamp(when)).to_numpy())
    row = series.iloc[int(distances.argmin())]
    return row['date'], float(row['value'])


def week_range(when):
    start = bucket_start(pd.Series([pd.Timestamp(when)]), Bucketing.WEEK_STARTING_SATURDAY).iloc[0]
    end = start + pd.Timedelta(days=6)
    return f"{start:%b} {start.day} – {end:%b} {end.day}"
