import pandas as pd
import pytest

from dc_crime.data.normalizer import normalize_frame

HEADER = [
    'X', 'Y', 'CCN', 'REPORT_DAT', 'SHIFT', 'METHOD', 'OFFENSE', 'BLOCK',
    'XBLOCK', 'YBLOCK', 'WARD', 'ANC', 'DISTRICT', 'PSA', 'NEIGHBORHOOD_CLUSTER',
    'BLOCK_GROUP', 'CENSUS_TRACT', 'VOTING_PRECINCT', 'LATITUDE', 'LONGITUDE',
    'BID', 'START_DATE', 'END_DATE', 'OBJECTID',
]


def raw_row(**fields):
    """One decoded source row with sensible defaults."""
    row = {name: '' for name in HEADER}
    row.update({
        'X': '-77.03',
        'Y': '38.90',
        'CCN': '24000001',
        'REPORT_DAT': '2024/03/15 14:30:00+00',
        'SHIFT': 'DAY',
        'METHOD': 'OTHERS',
        'OFFENSE': 'THEFT/OTHER',
        'BLOCK': '1200 - 1299 BLOCK OF K STREET NW',
        'WARD': '2',
        'NEIGHBORHOOD_CLUSTER': 'Cluster 2',
        'CENSUS_TRACT': '010100',
        'LATITUDE': '38.9026',
        'LONGITUDE': '-77.0289',
        'OBJECTID': '1',
    })
    row.update(fields)
    return row


@pytest.fixture
def make_incidents():
    """Build a canonical incident frame from a list of per-row overrides."""
    def _make(rows):
        return normalize_frame(pd.DataFrame([raw_row(**r) for r in rows], dtype=object))
    return _make


@pytest.fixture
def sample_csv():
    lines = [','.join(HEADER)]
    rows = [
        raw_row(CCN='1', OFFENSE='HOMICIDE', SHIFT='MIDNIGHT', REPORT_DAT='2024/01/01 02:15:00+00',
                NEIGHBORHOOD_CLUSTER='Cluster 1'),
        raw_row(CCN='2', OFFENSE='HOMICIDE', SHIFT='EVENING', REPORT_DAT='2024/01/01 19:00:00+00',
                NEIGHBORHOOD_CLUSTER='Cluster 1'),
        raw_row(CCN='3', OFFENSE='THEFT/OTHER', SHIFT='DAY', REPORT_DAT='2024/02/10 10:00:00+00',
                NEIGHBORHOOD_CLUSTER='Cluster 6'),
        raw_row(CCN='4', OFFENSE='BURGLARY', SHIFT='DAY', REPORT_DAT='2024/07/04 09:00:00+00',
                NEIGHBORHOOD_CLUSTER='', LATITUDE='', LONGITUDE=''),
        raw_row(CCN='5', OFFENSE='ROBBERY', SHIFT='EVENING', REPORT_DAT='2023/12/31 23:00:00+00',
                NEIGHBORHOOD_CLUSTER='Cluster 9'),
        raw_row(CCN='6', REPORT_DAT='not a date'),
    ]
    for row in rows:
        values = [row[name] for name in HEADER]
        # quote the block, it can carry commas
        values[HEADER.index('BLOCK')] = f'"{values[HEADER.index("BLOCK")]}"'
        lines.append(','.join(values))
    return '\r\n'.join(lines) + '\r\n'


def _write_table(path, rows):
    pd.DataFrame(rows).to_csv(path, index=False)


@pytest.fixture
def census_dir(tmp_path):
    """The eight census tables for DC plus one other region."""
    dc = '16000US1150000'
    other = '16000US2404000'

    education = {'B15002001': 1000, 'B15002001 Error': 12}
    for field in ['B15002015', 'B15002016', 'B15002017', 'B15002018',
                  'B15002032', 'B15002033', 'B15002034', 'B15002035']:
        education[field] = 50

    income = {f'B19001{n:03d}': 0 for n in range(2, 18)}
    income.update({'B19001001': 100, 'B19001013': 50, 'B19001014': 50})

    value = {f'B25075{n:03d}': 0 for n in range(2, 28)}
    value.update({'B25075001': 100, 'B25075023': 80, 'B25075024': 10,
                  'B25075025': 5, 'B25075026': 3, 'B25075027': 2})

    tables = {
        'dc_education.csv': education,
        'dc_income.csv': income,
        'dc_race.csv': {'B03002001': 1000, 'B03002003': 400, 'B03002004': 400,
                        'B03002006': 100, 'B03002012': 100},
        'dc_poverty.csv': {'B17001001': 2000, 'B17001002': 300, 'B17001031': 1700},
        'dc_value.csv': value,
        'dc_mobility.csv': {'B07003001': 690000},
        'dc_transportation.csv': {'B08006001': 380000, 'B08006008': 120000},
        'dc_tenure.csv': {'B25003001': 310000, 'B25003002': 130000},
    }
    for file_name, fields in tables.items():
        _write_table(tmp_path / file_name, [
            {'geoid': dc, 'name': 'Washington, DC', **fields},
            {'geoid': other, 'name': 'Baltimore, MD', **{k: 1 for k in fields}},
        ])
    return tmp_path
