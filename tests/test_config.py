from pathlib import Path

import pytest

from dc_crime.config import DC_GEOID, load_settings
from dc_crime.utils.exceptions import ConfigError

ENV_VARS = [
    'DC_CRIME_INCIDENTS_PATH',
    'DC_CRIME_REFERENCE_DIR',
    'DC_CRIME_TARGET_GEOID',
    'DC_CRIME_TREND_YEAR',
    'DC_CRIME_TREND_WINDOW',
    'DC_CRIME_INCLUDE_ZERO_COORDS',
    'DC_CRIME_PARALLEL_REDUCERS',
    'DC_CRIME_LOG_DIR',
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # set then delete so monkeypatch also removes values load_dotenv adds
    for name in ENV_VARS:
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings()
        assert settings.target_geoid == DC_GEOID
        assert settings.trend_year == 2024
        assert settings.trend_window == 7
        assert settings.include_zero_coordinates is False
        assert settings.incidents_path == Path('data/raw/Crime Incidents in 2024.csv')

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv('DC_CRIME_TREND_YEAR', '2023')
        monkeypatch.setenv('DC_CRIME_TREND_WINDOW', '14')
        monkeypatch.setenv('DC_CRIME_INCLUDE_ZERO_COORDS', 'yes')
        monkeypatch.setenv('DC_CRIME_PARALLEL_REDUCERS', 'TRUE')
        monkeypatch.setenv('DC_CRIME_REFERENCE_DIR', '/srv/census')
        settings = load_settings()
        assert settings.trend_year == 2023
        assert settings.trend_window == 14
        assert settings.include_zero_coordinates is True
        assert settings.parallel_reducers is True
        assert settings.reference_dir == Path('/srv/census')

    def test_env_file(self, tmp_path):
        env_file = tmp_path / 'pipeline.env'
        env_file.write_text('DC_CRIME_TARGET_GEOID=16000US2404000\n')
        settings = load_settings(str(env_file))
        assert settings.target_geoid == '16000US2404000'

    @pytest.mark.parametrize('name,value', [
        ('DC_CRIME_TREND_YEAR', 'twenty'),
        ('DC_CRIME_TREND_YEAR', '0'),
        ('DC_CRIME_TREND_WINDOW', '0'),
        ('DC_CRIME_INCLUDE_ZERO_COORDS', 'maybe'),
    ])
    def test_invalid_values(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ConfigError):
            load_settings()
