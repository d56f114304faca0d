"""
Runtime configuration for the DC crime pipeline.

Settings are read from environment variables (a local `.env` file is picked up
through python-dotenv). The lookup tables further down are the tunable
configuration for the correlation labels.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv

from dc_crime.utils.exceptions import ConfigError


DEFAULT_INCIDENTS_PATH = 'data/raw/Crime Incidents in 2024.csv'
DEFAULT_REFERENCE_DIR = 'data/census'
DC_GEOID = '16000US1150000'
DEFAULT_TREND_YEAR = 2024
DEFAULT_TREND_WINDOW = 7

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}
_FALSE_VALUES = {'0', 'false', 'no', 'off', ''}


@dataclass(frozen=True)
class Settings:
    """
    Pipeline settings

    Attributes:
    incidents_path (Path): CSV extract of crime incidents
    reference_dir (Path): Folder holding the dc_<table>.csv census tables
    target_geoid (str): Region key selected from every census table
    trend_year (int): Calendar year covered by the dense daily trend
    trend_window (int): Days in the trailing moving average of the daily trend
    include_zero_coordinates (bool): Keep incidents with fallback (0) coordinates in the heat map
    parallel_reducers (bool): Run the aggregation reducers on a thread pool
    log_dir (str): Folder for log files
    """
    incidents_path: Path = Path(DEFAULT_INCIDENTS_PATH)
    reference_dir: Path = Path(DEFAULT_REFERENCE_DIR)
    target_geoid: str = DC_GEOID
    trend_year: int = DEFAULT_TREND_YEAR
    trend_window: int = DEFAULT_TREND_WINDOW
    include_zero_coordinates: bool = False
    parallel_reducers: bool = False
    log_dir: str = 'logs'


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f'{name} must be a boolean flag, got {raw!r}')


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f'{name} must be an integer, got {raw!r}')


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Build Settings from the environment

    Args:
    env_file (str): Optional .env file to load before reading the variables

    Returns:
    Settings: The resolved settings

    Raises:
    ConfigError: A variable holds a value of the wrong type
    """
    load_dotenv(env_file)

    trend_year = _env_int('DC_CRIME_TREND_YEAR', DEFAULT_TREND_YEAR)
    if not 1 <= trend_year <= 9999:
        raise ConfigError(f'DC_CRIME_TREND_YEAR out of range: {trend_year}')
    trend_window = _env_int('DC_CRIME_TREND_WINDOW', DEFAULT_TREND_WINDOW)
    if trend_window < 1:
        raise ConfigError(f'DC_CRIME_TREND_WINDOW must be positive: {trend_window}')

    return Settings(
        incidents_path=Path(os.getenv('DC_CRIME_INCIDENTS_PATH', DEFAULT_INCIDENTS_PATH)),
        reference_dir=Path(os.getenv('DC_CRIME_REFERENCE_DIR', DEFAULT_REFERENCE_DIR)),
        target_geoid=os.getenv('DC_CRIME_TARGET_GEOID', DC_GEOID),
        trend_year=trend_year,
        trend_window=trend_window,
        include_zero_coordinates=_env_bool('DC_CRIME_INCLUDE_ZERO_COORDS', False),
        parallel_reducers=_env_bool('DC_CRIME_PARALLEL_REDUCERS', False),
        log_dir=os.getenv('DC_CRIME_LOG_DIR', 'logs'),
    )


# === Correlation label tables ===

# 'inverse': a high metric value is expected to go with low crime (income).
# 'direct': a high metric value is expected to go with high crime (poverty).
METRIC_THRESHOLDS: Dict[str, Dict[str, object]] = {
    'income': {'high': 120_000, 'low': 90_000, 'direction': 'inverse'},
    'education': {'high': 80, 'low': 65, 'direction': 'inverse'},
    'poverty': {'high': 15, 'low': 7, 'direction': 'direct'},
    # Median home values between 600k and 750k stay moderate
    'housing': {'high': 750_000, 'low': 600_000, 'direction': 'inverse'},
}

# (direction, metric level) -> expected crime level
EXPECTATION_TABLE: Dict[tuple, str] = {
    ('inverse', 'high'): 'low',
    ('inverse', 'low'): 'high',
    ('inverse', 'moderate'): 'moderate',
    ('direct', 'high'): 'high',
    ('direct', 'low'): 'low',
    ('direct', 'moderate'): 'moderate',
}

# Crime level bands relative to the median total of the top areas
HIGH_CRIME_FACTOR = 1.2
LOW_CRIME_FACTOR = 0.8

# Per-cluster demographic profiles used when annotating the area rollup.
# Income and housing in dollars, education and poverty in percent, diversity 0-1.
CLUSTER_PROFILES: Dict[str, Dict[str, float]] = {
    'Cluster 1': {'income': 143000, 'education': 88, 'poverty': 5.2, 'housing': 820000, 'diversity': 0.62},
    'Cluster 2': {'income': 128000, 'education': 84, 'poverty': 6.8, 'housing': 790000, 'diversity': 0.58},
    'Cluster 3': {'income': 108000, 'education': 76, 'poverty': 8.5, 'housing': 710000, 'diversity': 0.73},
    'Cluster 4': {'income': 119000, 'education': 79, 'poverty': 7.2, 'housing': 735000, 'diversity': 0.64},
    'Cluster 5': {'income': 132000, 'education': 82, 'poverty': 6.5, 'housing': 780000, 'diversity': 0.61},
    'Cluster 6': {'income': 97000, 'education': 71, 'poverty': 11.3, 'housing': 650000, 'diversity': 0.78},
    'Cluster 7': {'income': 86000, 'education': 65, 'poverty': 14.7, 'housing': 590000, 'diversity': 0.83},
    'Cluster 8': {'income': 92000, 'education': 68, 'poverty': 13.1, 'housing': 620000, 'diversity': 0.79},
    'Cluster 9': {'income': 76000, 'education': 59, 'poverty': 17.5, 'housing': 520000, 'diversity': 0.87},
    'Cluster 10': {'income': 82000, 'education': 62, 'poverty': 15.8, 'housing': 570000, 'diversity': 0.85},
}
