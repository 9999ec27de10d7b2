"""
Read-only access to an Apple Health export, standing in for the on-device
health store: a streaming parser for export.xml / export.zip and a small
query surface over the parsed records.
"""
import logging
import xml.etree.ElementTree as ET
import zipfile

import numpy as np
import pandas as pd

from .errors import AuthorizationError, ExportFormatError, UnitError

logger = logging.getLogger(__name__)

# --- Sample types ---

BODY_MASS = 'HKQuantityTypeIdentifierBodyMass'
SLEEP_ANALYSIS = 'HKCategoryTypeIdentifierSleepAnalysis'
ACTIVE_ENERGY_BURNED = 'HKQuantityTypeIdentifierActiveEnergyBurned'
BASAL_ENERGY_BURNED = 'HKQuantityTypeIdentifierBasalEnergyBurned'

READABLE_TYPES = frozenset({BODY_MASS, SLEEP_ANALYSIS, ACTIVE_ENERGY_BURNED, BASAL_ENERGY_BURNED})

RECORD_COLUMNS = ['type', 'value', 'unit', 'sourceName', 'startDate', 'endDate']

# Factors into the unit the dashboard displays.
UNIT_FACTORS = {
    'lb': {'lb': 1.0, 'kg': 2.20462262185, 'g': 0.00220462262185},
    'kcal': {'kcal': 1.0, 'Cal': 1.0, 'cal': 0.001, 'kJ': 1 / 4.184},
}


# --- Parsing ---

def _read_records(xml_file):
    record_list = []
    try:
        for _, elem in ET.iterparse(xml_file, events=('end',)):
            if elem.tag == 'Record' and elem.get('type') in READABLE_TYPES:
                record_list.append({col: elem.get(col) for col in RECORD_COLUMNS})
            elem.clear()
    except ET.ParseError as e:
        raise ExportFormatError(f"Could not parse export.xml: {e}") from e
    return record_list


def _read_zip_records(source, name):
    try:
        zf = zipfile.ZipFile(source)
    except zipfile.BadZipFile as e:
        raise ExportFormatError(f"Not a valid zip file: {name}") from e
    with zf:
        # Apple Health zips hold apple_health_export/export.xml
        xml_candidates = [n for n in zf.namelist() if n.endswith('export.xml')]
        if not xml_candidates:
            raise ExportFormatError("No export.xml found in zip. Is this an Apple Health export?")
        with zf.open(xml_candidates[0]) as xml_file:
            return _read_records(xml_file)


def _local_wall_clock(raw_dates, timezone):
    # Apple writes "2024-01-15 08:23:44 -0500"
    if timezone:
        return pd.to_datetime(raw_dates, utc=True, format='%Y-%m-%d %H:%M:%S %z').dt.tz_convert(timezone).dt.tz_localize(None)
    return pd.to_datetime(raw_dates.str.slice(0, 19), format='%Y-%m-%d %H:%M:%S')


def parse_export(source, timezone=None):
    """
    Parse the readable record types out of an Apple Health export.
    `source` is a path or file object for export.xml or export.zip.
    """
    name = str(getattr(source, 'name', source))
    if name.endswith('.zip'):
        record_list = _read_zip_records(source, name)
    else:
        record_list = _read_records(source)

    records_df = pd.DataFrame(record_list, columns=RECORD_COLUMNS)
    for col in ['startDate', 'endDate']:
        try:
            records_df[col] = _local_wall_clock(records_df[col].astype(str), timezone)
        except ValueError as e:
            raise ExportFormatError(f"Unreadable {col} in export: {e}") from e
    logger.info("Parsed %d records from health export", len(records_df))
    return records_df


# --- Store ---

class HealthStore:
    def __init__(self, records):
        if records is None:
            records = pd.DataFrame(columns=RECORD_COLUMNS)
            records['startDate'] = pd.to_datetime(records['startDate'])
            records['endDate'] = pd.to_datetime(records['endDate'])
        self.records = records
        self._authorized = set()

    def request_authorization(self, read_types):
        """
        Grant read access to `read_types`. Returns the subset that has samples.
        """
        read_types = set(read_types)
        unknown = read_types - READABLE_TYPES
        if unknown:
            raise AuthorizationError(f"Cannot read sample types: {', '.join(sorted(unknown))}")
        self._authorized |= read_types
        present = set(self.records['type'].unique()) if not self.records.empty else set()
        return read_types & present

    def _samples(self, sample_type, start, end):
        if sample_type not in self._authorized:
            raise AuthorizationError(f"Read access to {sample_type} was not requested")
        df = self.records[self.records['type'] == sample_type]
        if start is not None:
            df = df[df['endDate'] >= start]
        if end is not None:
            df = df[df['endDate'] <= end]
        return df

    def quantity_samples(self, sample_type, start=None, end=None, unit='lb'):
        """Samples as a DataFrame with `date` (end date) and `value` in `unit`, ascending."""
        df = self._samples(sample_type, start, end)
        factors = UNIT_FACTORS.get(unit)
        if factors is None:
            raise UnitError(f"Unsupported display unit: {unit}")
        unknown_units = set(df['unit'].unique()) - set(factors)
        if unknown_units:
            raise UnitError(f"Cannot convert {', '.join(sorted(map(str, unknown_units)))} to {unit} for {sample_type}")

        values = pd.to_numeric(df['value'], errors='coerce').to_numpy(dtype=float)
        scale = df['unit'].map(factors).to_numpy(dtype=float)
        out = pd.DataFrame({'date': df['endDate'].to_numpy(), 'value': values * scale})
        out = out[~np.isnan(out['value'])]
        return out.sort_values('date', kind='stable').reset_index(drop=True)

    def latest_quantity(self, sample_type, unit):
        samples = self.quantity_samples(sample_type, unit=unit)
        if samples.empty:
            return None
        return float(samples['value'].iloc[-1])

    def category_samples(self, sample_type, start=None, end=None):
        """Category records in the window, newest end date first."""
        df = self._samples(sample_type, start, end)
        return df[['value', 'startDate', 'endDate']].sort_values('endDate', ascending=False).reset_index(drop=True)

    def cumulative_sum(self, sample_type, start, end, unit='kcal'):
        return float(self.quantity_samples(sample_type, start, end, unit)['value'].sum())

    def latest_end_date(self):
        if self.records.empty:
            return None
        return self.records['endDate'].max()
