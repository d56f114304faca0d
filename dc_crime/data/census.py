"""
Census reference data loader.

Reads the ACS 5-year tables exported per demographic domain (one CSV each),
selects the row for the target region (Washington DC, geoid 16000US1150000)
and derives the metrics the correlation labels use. Loading is all-or-nothing:
a missing table or a missing region row fails the whole load.
"""

from functools import lru_cache
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from dc_crime.config import DC_GEOID
from dc_crime.models import DerivedDemographics
from dc_crime.utils.logger_config import setup_logger
from dc_crime.utils.exceptions import ReferenceDataError

logger = setup_logger(__name__)

REGION_KEY = 'geoid'

# Table name -> file name inside the reference directory
CENSUS_FILES: Dict[str, str] = {
    'income': 'dc_income.csv',
    'education': 'dc_education.csv',
    'race': 'dc_race.csv',
    'poverty': 'dc_poverty.csv',
    'value': 'dc_value.csv',
    'mobility': 'dc_mobility.csv',
    'transportation': 'dc_transportation.csv',
    'tenure': 'dc_tenure.csv',
}

# B15002: educational attainment, population 25 years and over
EDUCATION_TOTAL = 'B15002001'
HIGHER_EDUCATION_FIELDS = [
    'B15002015', 'B15002016', 'B15002017', 'B15002018',  # male: bachelor's .. doctorate
    'B15002032', 'B15002033', 'B15002034', 'B15002035',  # female: bachelor's .. doctorate
]

# B17001: poverty status in the past 12 months
POVERTY_UNIVERSE = 'B17001001'
BELOW_POVERTY = 'B17001002'

# B25075: value of owner-occupied housing units
HOUSING_TOTAL = 'B25075001'
# $750,000 and above
HIGH_VALUE_HOUSING_FIELDS = ['B25075024', 'B25075025', 'B25075026', 'B25075027']

# B03002: hispanic or latino origin by race
RACE_TOTAL = 'B03002001'
RACE_GROUPS = {
    'white': 'B03002003',
    'black': 'B03002004',
    'asian': 'B03002006',
    'hispanic': 'B03002012',
}

# Bracket field -> (lower bound, upper bound); the open top bracket has no upper bound
INCOME_BRACKETS: Dict[str, Tuple[float, Optional[float]]] = {
    'B19001002': (0, 10_000),
    'B19001003': (10_000, 15_000),
    'B19001004': (15_000, 20_000),
    'B19001005': (20_000, 25_000),
    'B19001006': (25_000, 30_000),
    'B19001007': (30_000, 35_000),
    'B19001008': (35_000, 40_000),
    'B19001009': (40_000, 45_000),
    'B19001010': (45_000, 50_000),
    'B19001011': (50_000, 60_000),
    'B19001012': (60_000, 75_000),
    'B19001013': (75_000, 100_000),
    'B19001014': (100_000, 125_000),
    'B19001015': (125_000, 150_000),
    'B19001016': (150_000, 200_000),
    'B19001017': (200_000, None),
}

HOUSING_VALUE_BRACKETS: Dict[str, Tuple[float, Optional[float]]] = {
    'B25075002': (0, 10_000),
    'B25075003': (10_000, 15_000),
    'B25075004': (15_000, 20_000),
    'B25075005': (20_000, 25_000),
    'B25075006': (25_000, 30_000),
    'B25075007': (30_000, 35_000),
    'B25075008': (35_000, 40_000),
    'B25075009': (40_000, 50_000),
    'B25075010': (50_000, 60_000),
    'B25075011': (60_000, 70_000),
    'B25075012': (70_000, 80_000),
    'B25075013': (80_000, 90_000),
    'B25075014': (90_000, 100_000),
    'B25075015': (100_000, 125_000),
    'B25075016': (125_000, 150_000),
    'B25075017': (150_000, 175_000),
    'B25075018': (175_000, 200_000),
    'B25075019': (200_000, 250_000),
    'B25075020': (250_000, 300_000),
    'B25075021': (300_000, 400_000),
    'B25075022': (400_000, 500_000),
    'B25075023': (500_000, 750_000),
    'B25075024': (750_000, 1_000_000),
    'B25075025': (1_000_000, 1_500_000),
    'B25075026': (1_500_000, 2_000_000),
    'B25075027': (2_000_000, None),
}


def _read_table(path: Path) -> pd.DataFrame:
    try:
        df = pd.read_csv(path, dtype={REGION_KEY: str})
    except Exception as e:
        logger.error(f'Error in Loading {path} : {str(e)}')
        raise ReferenceDataError(f'Error in Loading {path} : {str(e)}')

    if REGION_KEY not in df.columns:
        raise ReferenceDataError(f'{path.name} has no {REGION_KEY!r} column')

    # Margin-of-error columns are not used
    df = df.drop(columns=[c for c in df.columns if 'Error' in c])
    for col in df.columns:
        if col != REGION_KEY and df[col].dtype == object:
            converted = pd.to_numeric(df[col], errors='coerce')
            # Only label columns (e.g. 'name') stay text
            if converted.notna().any() or df[col].isna().all():
                df[col] = converted
    df[REGION_KEY] = df[REGION_KEY].str.strip()
    return df


def load_reference_tables(
    reference_dir: Union[str, Path],
    files: Mapping[str, str] = CENSUS_FILES,
) -> Dict[str, pd.DataFrame]:
    """
    Load every census table from the reference directory

    Args:
    reference_dir (str | Path): Folder holding the table files
    files (Mapping[str, str]): Table name -> file name

    Returns:
    dict: Table name -> DataFrame

    Raises:
    ReferenceDataError: A table file is missing or unreadable
    """
    reference_dir = Path(reference_dir)
    missing = [name for name, file_name in files.items() if not (reference_dir / file_name).is_file()]
    if missing:
        raise ReferenceDataError(f'Missing census tables in {reference_dir}: {missing}')

    tables = {}
    for name, file_name in files.items():
        tables[name] = _read_table(reference_dir / file_name)
        logger.debug(f'Loaded census table {name} ({len(tables[name])} rows)')
    return tables


def extract_region(table: pd.DataFrame, geoid: str, table_name: str = 'table') -> pd.Series:
    """
    Select the row for one region

    Raises:
    ReferenceDataError: The region key is absent from the table
    """
    matches = table.loc[table[REGION_KEY] == geoid]
    if matches.empty:
        raise ReferenceDataError(f'Region {geoid} not found in census table {table_name}')
    return matches.iloc[0]


def _value(row: pd.Series, field: str) -> float:
    value = pd.to_numeric(row.get(field, 0), errors='coerce')
    return 0.0 if pd.isna(value) else float(value)


def _share(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def grouped_median(row: pd.Series, brackets: Mapping[str, Tuple[float, Optional[float]]]) -> Optional[float]:
    """
    Median of a bracketed distribution by linear interpolation within the median bracket

    Returns None when the brackets hold no counts. If the median falls in the
    open top bracket its lower bound is returned.
    """
    counts = np.array([_value(row, field) for field in brackets], dtype=float)
    total = counts.sum()
    if total <= 0:
        return None

    half = total / 2
    cumulative = np.cumsum(counts)
    idx = int(np.searchsorted(cumulative, half))
    lower, upper = list(brackets.values())[idx]
    if upper is None:
        return float(lower)

    below = cumulative[idx - 1] if idx > 0 else 0.0
    within = counts[idx]
    fraction = (half - below) / within if within > 0 else 0.0
    return float(lower + fraction * (upper - lower))


def compute_derived_demographics(tables: Mapping[str, pd.DataFrame], geoid: str = DC_GEOID) -> DerivedDemographics:
    """
    Derive the demographic metrics for one region

    Args:
    tables (Mapping[str, pd.DataFrame]): Output of load_reference_tables
    geoid (str): Target region key

    Returns:
    DerivedDemographics: Percentages are 0-100, diversity index is 0-1

    Raises:
    ReferenceDataError: A table is missing or does not hold the region
    """
    missing = [name for name in CENSUS_FILES if name not in tables]
    if missing:
        raise ReferenceDataError(f'Missing census tables: {missing}')

    rows = {name: extract_region(tables[name], geoid, name) for name in CENSUS_FILES}

    education = rows['education']
    higher_education = sum(_value(education, f) for f in HIGHER_EDUCATION_FIELDS)
    higher_education_pct = _share(higher_education, _value(education, EDUCATION_TOTAL)) * 100

    poverty = rows['poverty']
    poverty_pct = _share(_value(poverty, BELOW_POVERTY), _value(poverty, POVERTY_UNIVERSE)) * 100

    housing = rows['value']
    high_value = sum(_value(housing, f) for f in HIGH_VALUE_HOUSING_FIELDS)
    high_value_housing_pct = _share(high_value, _value(housing, HOUSING_TOTAL)) * 100

    # Simpson diversity index over the four largest groups
    race = rows['race']
    race_total = _value(race, RACE_TOTAL)
    shares = {group: _share(_value(race, field), race_total) for group, field in RACE_GROUPS.items()}
    diversity_index = 1 - sum(s ** 2 for s in shares.values())

    composition = {group: s * 100 for group, s in shares.items()}
    composition['other'] = 100 - sum(composition.values())

    demographics = DerivedDemographics(
        geoid=geoid,
        higher_education_pct=higher_education_pct,
        poverty_pct=poverty_pct,
        high_value_housing_pct=high_value_housing_pct,
        median_household_income=grouped_median(rows['income'], INCOME_BRACKETS),
        median_housing_value=grouped_median(housing, HOUSING_VALUE_BRACKETS),
        diversity_index=diversity_index,
        racial_composition=composition,
    )
    logger.info(
        f'Derived demographics for {geoid}: education {higher_education_pct:.1f}%, '
        f'poverty {poverty_pct:.1f}%, diversity {diversity_index:.3f}'
    )
    return demographics


@lru_cache(maxsize=None)
def _cached_demographics(reference_dir: str, geoid: str) -> DerivedDemographics:
    tables = load_reference_tables(reference_dir)
    return compute_derived_demographics(tables, geoid)


def load_derived_demographics(reference_dir: Union[str, Path], geoid: str = DC_GEOID) -> DerivedDemographics:
    """
    Load the census tables and derive the metrics, cached for the process lifetime

    Raises:
    ReferenceDataError: Any table is missing or lacks the region row
    """
    return _cached_demographics(str(Path(reference_dir).resolve()), geoid)


def clear_demographics_cache() -> None:
    _cached_demographics.cache_clear()
