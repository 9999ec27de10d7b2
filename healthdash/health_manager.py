import logging

import pandas as pd

from . import health_store
from .errors import HealthDataError

logger = logging.getLogger(__name__)

# Sleep analysis category values that count as time asleep.
ASLEEP_VALUES = frozenset({
    'HKCategoryValueSleepAnalysisAsleep',
    'HKCategoryValueSleepAnalysisAsleepUnspecified',
    'HKCategoryValueSleepAnalysisAsleepCore',
    'HKCategoryValueSleepAnalysisAsleepDeep',
    'HKCategoryValueSleepAnalysisAsleepREM',
})

LATEST_SLEEP_LOOKBACK_DAYS = 2
# Asleep segments further apart than this belong to different sessions.
SLEEP_SESSION_GAP = pd.Timedelta(hours=1)


def _empty_series():
    return pd.DataFrame({'date': pd.Series(dtype='datetime64[ns]'), 'value': pd.Series(dtype=float)})


def _last_session_hours(asleep):
    """
    Hours asleep in the most recent session. `asleep` is ordered newest end
    date first. Overlapping segments from several sources count once.
    """
    session = []
    session_start = None
    for seg in asleep.itertuples(index=False):
        if session_start is not None and seg.endDate < session_start - SLEEP_SESSION_GAP:
            break
        session.append((seg.startDate, seg.endDate))
        session_start = seg.startDate if session_start is None else min(session_start, seg.startDate)

    total = pd.Timedelta(0)
    covered_until = None
    for seg_start, seg_end in sorted(session):
        if covered_until is not None:
            seg_start = max(seg_start, covered_until)
        if seg_end > seg_start:
            total += seg_end - seg_start
        covered_until = seg_end if covered_until is None else max(covered_until, seg_end)
    return total.total_seconds() / 3600


class HealthManager:
    """
    Runs the dashboard's queries against a HealthStore and keeps the latest
    results on plain attributes for the views to read.
    """

    def __init__(self, store, anchor='export', clock=pd.Timestamp.now):
        self.store = store
        self.anchor = anchor
        self.clock = clock

        self.authorized = False
        self.latest_weight = None
        self.latest_sleep_hours = None
        self.latest_calories = None
        self.weight_history = _empty_series()
        self.total_calories_history = _empty_series()
        self.sleep_history = _empty_series()

        self.request_authorization()

    def now(self):
        """Reference time: the clock, or the newest sample when anchored to the export."""
        now = self.clock()
        if self.anchor == 'export':
            latest = self.store.latest_end_date()
            if latest is not None and not pd.isna(latest):
                return min(now, latest)
        return now

    def request_authorization(self):
        try:
            self.store.request_authorization(health_store.READABLE_TYPES)
        except HealthDataError as e:
            logger.error("Authorization failed: %s", e)
            return
        self.authorized = True
        self.fetch_latest_weight()
        self.fetch_latest_sleep()
        self.fetch_total_calories_today()

    # --- Weight ---

    def fetch_latest_weight(self):
        try:
            self.latest_weight = self.store.latest_quantity(health_store.BODY_MASS, unit='lb')
        except HealthDataError as e:
            logger.error("Latest weight query error: %s", e)
        return self.latest_weight

    def fetch_weight_history(self, days=30):
        end = self.now()
        start = end - pd.Timedelta(days=days)
        try:
            self.weight_history = self.store.quantity_samples(health_store.BODY_MASS, start, end, unit='lb')
        except HealthDataError as e:
            logger.error("Weight history query error: %s", e)
        return self.weight_history

    # --- Sleep ---

    def _asleep_intervals(self, start, end):
        sleep_df = self.store.category_samples(health_store.SLEEP_ANALYSIS, start, end)
        return sleep_df[sleep_df['value'].isin(ASLEEP_VALUES)]

    def fetch_latest_sleep(self):
        end = self.now()
        start = end - pd.Timedelta(days=LATEST_SLEEP_LOOKBACK_DAYS)
        asleep = self._asleep_intervals(start, end)
        if asleep.empty:
            logger.info("No asleep samples in the last %d days", LATEST_SLEEP_LOOKBACK_DAYS)
            self.latest_sleep_hours = None
            return None
        self.latest_sleep_hours = _last_session_hours(asleep)
        return self.latest_sleep_hours

    def fetch_sleep_history(self, days=30):
        end = self.now()
        asleep = self._asleep_intervals(end - pd.Timedelta(days=days), end)
        hours = (asleep['endDate'] - asleep['startDate']).dt.total_seconds() / 3600
        self.sleep_history = (
            pd.DataFrame({'date': asleep['endDate'].to_numpy(), 'value': hours.to_numpy(dtype=float)})
            .sort_values('date', kind='stable')
            .reset_index(drop=True)
        )
        return self.sleep_history

    # --- Energy ---

    def _energy_sum(self, sample_type, start, end):
        try:
            return self.store.cumulative_sum(sample_type, start, end, unit='kcal')
        except HealthDataError as e:
            logger.error("Error fetching %s: %s", sample_type, e)
            return 0.0

    def fetch_total_calories_today(self):
        now = self.now()
        start_of_day = now.normalize()
        basal_total = self._energy_sum(health_store.BASAL_ENERGY_BURNED, start_of_day, now)
        active_total = self._energy_sum(health_store.ACTIVE_ENERGY_BURNED, start_of_day, now)
        self.latest_calories = basal_total + active_total
        logger.info("Total calories burned today: %.0f kcal", self.latest_calories)
        return self.latest_calories

    def fetch_total_calories(self, days=30):
        end = self.now()
        start = end - pd.Timedelta(days=days)
        frames = []
        for sample_type in (health_store.BASAL_ENERGY_BURNED, health_store.ACTIVE_ENERGY_BURNED):
            try:
                frames.append(self.store.quantity_samples(sample_type, start, end, unit='kcal'))
            except HealthDataError as e:
                logger.error("Error fetching %s: %s", sample_type, e)
        frames = [f for f in frames if not f.empty]
        if not frames:
            self.total_calories_history = _empty_series()
        else:
            self.total_calories_history = (
                pd.concat(frames, ignore_index=True).sort_values('date', kind='stable').reset_index(drop=True)
            )
        return self.total_calories_history
