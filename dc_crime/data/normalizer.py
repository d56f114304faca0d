"""
Record normalizer - turns decoded string rows into canonical incidents.

Operations:
  - Parse REPORT_DAT (required; rows without a parseable value are dropped)
  - Parse START_DATE / END_DATE (optional; unparseable means absent)
  - Coerce coordinates and ward to numbers with a fallback of 0
  - Default missing classification, shift and location fields
"""

from typing import Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from dc_crime.models import Incident, Shift
from dc_crime.utils.logger_config import setup_logger

logger = setup_logger(__name__)

TIMESTAMP_FORMAT = '%Y/%m/%d %H:%M:%S'

# Optional trailing timezone offset, e.g. '2024/01/05 18:20:00+00'
_TZ_SUFFIX = r'[+-]\d{2}$'

# Source column -> canonical column
COLUMN_MAPPING: Dict[str, str] = {
    'CCN': 'case_number',
    'OBJECTID': 'object_id',
    'LATITUDE': 'latitude',
    'LONGITUDE': 'longitude',
    'X': 'x',
    'Y': 'y',
    'REPORT_DAT': 'report_timestamp',
    'START_DATE': 'start_timestamp',
    'END_DATE': 'end_timestamp',
    'SHIFT': 'shift',
    'METHOD': 'method',
    'OFFENSE': 'offense',
    'BLOCK': 'block',
    'WARD': 'ward',
    'ANC': 'anc',
    'DISTRICT': 'district',
    'PSA': 'psa',
    'NEIGHBORHOOD_CLUSTER': 'neighborhood_cluster',
    'BID': 'bid',
    'BLOCK_GROUP': 'block_group',
    'CENSUS_TRACT': 'census_tract',
    'VOTING_PRECINCT': 'voting_precinct',
}

# Canonical columns and their dtypes, in Incident field order
INCIDENT_COLUMNS: Dict[str, str] = {
    'case_number': 'object',
    'object_id': 'object',
    'latitude': 'float64',
    'longitude': 'float64',
    'x': 'float64',
    'y': 'float64',
    'report_timestamp': 'datetime64[ns]',
    'start_timestamp': 'datetime64[ns]',
    'end_timestamp': 'datetime64[ns]',
    'shift': 'object',
    'method': 'object',
    'offense': 'object',
    'block': 'object',
    'ward': 'int64',
    'anc': 'object',
    'district': 'object',
    'psa': 'object',
    'neighborhood_cluster': 'object',
    'bid': 'object',
    'block_group': 'object',
    'census_tract': 'object',
    'voting_precinct': 'object',
}

FLOAT_COLUMNS = ['latitude', 'longitude', 'x', 'y']
UNKNOWN_DEFAULTS = ['method', 'offense']
_VALID_SHIFTS = [s.value for s in Shift if s is not Shift.UNKNOWN]


def parse_timestamps(values: pd.Series) -> pd.Series:
    """
    Parse source timestamps, returning NaT where the value is empty or malformed

    Args:
    values (pd.Series): Raw timestamp strings

    Returns:
    pd.Series: datetime64[ns] series
    """
    cleaned = values.fillna('').astype(str).str.strip().str.replace(_TZ_SUFFIX, '', regex=True).str.strip()
    parsed = pd.to_datetime(cleaned, format=TIMESTAMP_FORMAT, errors='coerce')
    # pandas 3 parses to datetime64[us]
    return parsed.astype(INCIDENT_COLUMNS['report_timestamp'])


def parse_timestamp(value: Optional[str]) -> Optional[pd.Timestamp]:
    """Scalar form of parse_timestamps; returns None when the value cannot be parsed."""
    parsed = parse_timestamps(pd.Series([value], dtype=object)).iloc[0]
    return None if pd.isna(parsed) else parsed


def _coerce_float(values: pd.Series) -> pd.Series:
    numeric = pd.to_numeric(values, errors='coerce').replace([np.inf, -np.inf], np.nan)
    return numeric.fillna(0.0).astype('float64')


def _coerce_ward(values: pd.Series) -> pd.Series:
    # '3.0' and '3' are both ward 3
    return np.trunc(_coerce_float(values)).astype('int64')


def empty_incident_frame() -> pd.DataFrame:
    return pd.DataFrame({col: pd.Series(dtype=dtype) for col, dtype in INCIDENT_COLUMNS.items()})


def normalize_frame(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize decoded rows into the canonical incident frame

    Args:
    raw (pd.DataFrame): Decoded rows keyed by the source header names

    Returns:
    pd.DataFrame: Canonical incidents (INCIDENT_COLUMNS), rows without a valid
    report timestamp removed, original order kept, index reset
    """
    if raw.empty:
        return empty_incident_frame()

    text = raw.reindex(columns=list(COLUMN_MAPPING), fill_value='')
    text = text.fillna('').astype(str).apply(lambda col: col.str.strip())
    text = text.rename(columns=COLUMN_MAPPING)

    report = parse_timestamps(text['report_timestamp'])
    invalid = report.isna()
    if invalid.any():
        for idx in text.index[invalid]:
            logger.warning(
                f"Invalid report date {text.at[idx, 'report_timestamp']!r} "
                f"(CCN {text.at[idx, 'case_number'] or 'n/a'}); dropping row"
            )
        logger.warning(f'Dropped {int(invalid.sum())} of {len(text)} rows without a valid report date')

    df = text.loc[~invalid].copy()
    df['report_timestamp'] = report[~invalid]
    df['start_timestamp'] = parse_timestamps(df['start_timestamp'])
    df['end_timestamp'] = parse_timestamps(df['end_timestamp'])

    for col in FLOAT_COLUMNS:
        df[col] = _coerce_float(df[col])
    df['ward'] = _coerce_ward(df['ward'])

    shift = df['shift'].str.upper()
    df['shift'] = shift.where(shift.isin(_VALID_SHIFTS), Shift.UNKNOWN.value)

    for col in UNKNOWN_DEFAULTS:
        df[col] = df[col].mask(df[col] == '', 'UNKNOWN')

    df = df[list(INCIDENT_COLUMNS)].reset_index(drop=True)
    logger.debug(f'Normalized {len(df)} incidents')
    return df


def _optional_datetime(value):
    return None if pd.isna(value) else value.to_pydatetime()


def to_incidents(frame: pd.DataFrame) -> List[Incident]:
    """Convert canonical rows into Incident values."""
    incidents = []
    for row in frame.itertuples(index=False):
        incidents.append(Incident(
            case_number=row.case_number,
            object_id=row.object_id,
            latitude=float(row.latitude),
            longitude=float(row.longitude),
            x=float(row.x),
            y=float(row.y),
            report_timestamp=row.report_timestamp.to_pydatetime(),
            start_timestamp=_optional_datetime(row.start_timestamp),
            end_timestamp=_optional_datetime(row.end_timestamp),
            shift=Shift(row.shift),
            method=row.method,
            offense=row.offense,
            block=row.block,
            ward=int(row.ward),
            anc=row.anc,
            district=row.district,
            psa=row.psa,
            neighborhood_cluster=row.neighborhood_cluster,
            bid=row.bid,
            block_group=row.block_group,
            census_tract=row.census_tract,
            voting_precinct=row.voting_precinct,
        ))
    return incidents


def normalize_record(row: Mapping[str, str]) -> Optional[Incident]:
    """
    Normalize a single decoded row

    Args:
    row (Mapping[str, str]): Field name -> raw string value

    Returns:
    Incident | None: The incident, or None when the row is rejected
    """
    frame = normalize_frame(pd.DataFrame([dict(row)], dtype=object))
    if frame.empty:
        return None
    return to_incidents(frame)[0]
