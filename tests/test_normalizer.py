from datetime import datetime

import pandas as pd

from dc_crime.data.normalizer import (
    INCIDENT_COLUMNS,
    normalize_frame,
    normalize_record,
    parse_timestamp,
    to_incidents,
)
from dc_crime.models import Shift

from conftest import raw_row


class TestParseTimestamp:
    def test_timezone_suffix_stripped(self):
        assert parse_timestamp('2024/01/05 18:20:00+00') == pd.Timestamp('2024-01-05 18:20:00')

    def test_negative_offset_stripped(self):
        assert parse_timestamp('2024/01/05 18:20:00-05') == pd.Timestamp('2024-01-05 18:20:00')

    def test_without_suffix(self):
        assert parse_timestamp(' 2024/12/31 23:59:59 ') == pd.Timestamp('2024-12-31 23:59:59')

    def test_malformed_values(self):
        assert parse_timestamp('2024-01-05') is None
        assert parse_timestamp('not a date') is None
        assert parse_timestamp('') is None
        assert parse_timestamp(None) is None


class TestNormalizeRecord:
    def test_valid_row(self):
        incident = normalize_record(raw_row(
            REPORT_DAT='2024/01/05 18:20:00+00',
            START_DATE='2024/01/05 17:00:00+00',
            END_DATE='garbage',
            SHIFT='evening',
            WARD='6',
        ))
        assert incident.report_timestamp == datetime(2024, 1, 5, 18, 20)
        assert incident.start_timestamp == datetime(2024, 1, 5, 17, 0)
        assert incident.end_timestamp is None
        assert incident.shift is Shift.EVENING
        assert incident.ward == 6
        assert incident.latitude == 38.9026
        assert incident.category == 'THEFT/OTHER'

    def test_invalid_report_date_rejected(self):
        assert normalize_record(raw_row(REPORT_DAT='')) is None
        assert normalize_record(raw_row(REPORT_DAT='05/01/2024')) is None

    def test_numeric_fallbacks(self):
        incident = normalize_record(raw_row(LATITUDE='abc', LONGITUDE='', X='inf', WARD=''))
        assert incident.latitude == 0.0
        assert incident.longitude == 0.0
        assert incident.x == 0.0
        assert incident.ward == 0

    def test_fractional_ward_truncated(self):
        assert normalize_record(raw_row(WARD='3.0')).ward == 3

    def test_defaults(self):
        incident = normalize_record(raw_row(SHIFT='', METHOD='', OFFENSE='', NEIGHBORHOOD_CLUSTER=''))
        assert incident.shift is Shift.UNKNOWN
        assert incident.method == 'UNKNOWN'
        assert incident.offense == 'UNKNOWN'
        assert incident.neighborhood_cluster == ''

    def test_unrecognised_shift(self):
        assert normalize_record(raw_row(SHIFT='SWING')).shift is Shift.UNKNOWN

    def test_missing_columns_default(self):
        incident = normalize_record({'REPORT_DAT': '2024/06/01 10:00:00', 'LATITUDE': '38.9', 'LONGITUDE': '-77'})
        assert incident.case_number == ''
        assert incident.block == ''
        assert incident.offense == 'UNKNOWN'
        assert incident.ward == 0


class TestNormalizeFrame:
    def test_drops_invalid_and_keeps_order(self):
        raw = pd.DataFrame([
            raw_row(CCN='a'),
            raw_row(CCN='b', REPORT_DAT='bad'),
            raw_row(CCN='c'),
        ], dtype=object)
        df = normalize_frame(raw)
        assert list(df['case_number']) == ['a', 'c']
        assert list(df.index) == [0, 1]
        assert df['report_timestamp'].notna().all()

    def test_columns_and_dtypes(self):
        df = normalize_frame(pd.DataFrame([raw_row()], dtype=object))
        assert list(df.columns) == list(INCIDENT_COLUMNS)
        assert df['report_timestamp'].dtype == 'datetime64[ns]'
        assert df['latitude'].dtype == 'float64'
        assert df['ward'].dtype == 'int64'

    def test_empty_input(self):
        df = normalize_frame(pd.DataFrame())
        assert df.empty
        assert list(df.columns) == list(INCIDENT_COLUMNS)

    def test_to_incidents_round(self, make_incidents):
        df = make_incidents([{'CCN': '1'}, {'CCN': '2', 'SHIFT': 'MIDNIGHT'}])
        incidents = to_incidents(df)
        assert [i.case_number for i in incidents] == ['1', '2']
        assert incidents[1].shift is Shift.MIDNIGHT

    def test_timestamp_dtype_matches_empty_frame(self):
        df = normalize_frame(pd.DataFrame([raw_row()], dtype=object))
        empty = normalize_frame(pd.DataFrame([raw_row(REPORT_DAT='bad')], dtype=object))
        assert empty.empty
        for col in ['report_timestamp', 'start_timestamp', 'end_timestamp']:
            assert df[col].dtype == empty[col].dtype == INCIDENT_COLUMNS[col]
