"""
Crime data pipeline - the single entry point consumers talk to.

decode -> normalize -> filter -> aggregate -> annotate

The canonical incident frame and the derived demographics are built once when
the pipeline is constructed and are never modified afterwards. Every call to
set_filter runs a fresh filter pass and a fresh aggregation pass, then swaps
the published views in one assignment.

Example:
    >>> pipeline = CrimeDataPipeline.from_settings()
    >>> pipeline.set_filter(FilterSpec.from_raw(categories=['HOMICIDE']))
    >>> pipeline.category_counts
"""

from dataclasses import dataclass
from multiprocessing.pool import ThreadPool
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from dc_crime.aggregations import (
    area_totals,
    build_area_rollup,
    build_daily_trend,
    build_heatmap_points,
    count_shifts,
    moving_average,
    rank_categories,
    rollup_by_tract,
    summarize_time_patterns,
)
from dc_crime.config import CLUSTER_PROFILES, Settings, load_settings
from dc_crime.correlation import annotate_rollup
from dc_crime.data.census import load_derived_demographics
from dc_crime.data.decoder import decode_table, read_incident_table
from dc_crime.data.normalizer import normalize_frame, to_incidents
from dc_crime.filters import FilterSpec, apply_filter
from dc_crime.models import (
    AnnotatedArea,
    AreaRollupSummary,
    CategoryCount,
    DailyTrendPoint,
    DerivedDemographics,
    HeatmapPoint,
    Incident,
    ShiftCount,
    TemporalPatterns,
    TractRollup,
)
from dc_crime.stats import metric_correlations
from dc_crime.utils.logger_config import setup_logger
from dc_crime.utils.exceptions import DataLoadError, DataProcessingError

logger = setup_logger(__name__)


def _canonical_store(decoded: pd.DataFrame, source: str) -> pd.DataFrame:
    if decoded.empty:
        raise DataLoadError(f'No valid data rows in {source}')
    return normalize_frame(decoded)


@dataclass(frozen=True)
class PipelineViews:
    """Everything one filter pass publishes."""

    filter_spec: FilterSpec
    filtered: pd.DataFrame
    heatmap_points: tuple
    shift_counts: tuple
    category_counts: tuple
    daily_trend: tuple
    trend_moving_average: tuple
    area_rollup: AreaRollupSummary
    annotated_areas: tuple
    time_patterns: TemporalPatterns
    tract_rollups: tuple
    metric_correlations: tuple


class CrimeDataPipeline:
    """
    In-memory crime analysis session

    Attributes:
    settings (Settings): Resolved pipeline settings
    """

    def __init__(
        self,
        incidents: pd.DataFrame,
        demographics: Optional[DerivedDemographics] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        """
        Args:
        incidents (pd.DataFrame): Canonical incident frame (output of normalize_frame)
        demographics (DerivedDemographics): Citywide metrics; None when no census data is used
        settings (Settings): Defaults to Settings()
        """
        self.settings = settings or Settings()
        self._incidents = incidents.reset_index(drop=True).copy()
        self._demographics = demographics
        self._views: Optional[PipelineViews] = None

        logger.info(f'Pipeline ready with {len(self._incidents)} incidents')
        self.set_filter(FilterSpec())

    # === Construction ===

    @classmethod
    def from_text(
        cls,
        text: str,
        demographics: Optional[DerivedDemographics] = None,
        settings: Optional[Settings] = None,
    ) -> 'CrimeDataPipeline':
        """Build from the raw CSV text of the incident extract."""
        return cls(_canonical_store(decode_table(text).frame, 'incident text'), demographics, settings)

    @classmethod
    def from_files(
        cls,
        incidents_path: Union[str, Path],
        reference_dir: Optional[Union[str, Path]] = None,
        settings: Optional[Settings] = None,
    ) -> 'CrimeDataPipeline':
        """
        Build from the incident CSV and, when given, the census reference folder

        Raises:
        DataLoadError: The extract or any census table cannot be loaded
        """
        settings = settings or Settings()
        incidents = _canonical_store(read_incident_table(incidents_path).frame, str(incidents_path))

        demographics = None
        if reference_dir is not None:
            demographics = load_derived_demographics(reference_dir, settings.target_geoid)
        return cls(incidents, demographics, settings)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> 'CrimeDataPipeline':
        """Build from the paths in the settings (environment by default)."""
        settings = settings or load_settings()
        return cls.from_files(settings.incidents_path, settings.reference_dir, settings)

    # === Filtering ===

    def set_filter(self, spec: Optional[FilterSpec] = None) -> None:
        """
        Apply a filter and rebuild every derived view

        Args:
        spec (FilterSpec): New filter; None clears all axes

        Raises:
        DataProcessingError: A reducer failed unexpectedly
        """
        spec = spec or FilterSpec()
        try:
            filtered = apply_filter(self._incidents, spec)
            views = self._build_views(spec, filtered)
        except Exception as e:
            logger.error(f'Error applying filter {spec} : {str(e)}')
            raise DataProcessingError(f'Error applying filter : {str(e)}')

        self._views = views
        logger.debug(f'Filter applied: {len(filtered)} of {len(self._incidents)} incidents')

    def _build_views(self, spec: FilterSpec, filtered: pd.DataFrame) -> PipelineViews:
        settings = self.settings
        reducers = {
            'heatmap_points': lambda: build_heatmap_points(filtered, settings.include_zero_coordinates),
            'shift_counts': lambda: count_shifts(filtered),
            'category_counts': lambda: rank_categories(filtered),
            'daily_trend': lambda: build_daily_trend(filtered, settings.trend_year),
            'area_rollup': lambda: build_area_rollup(filtered, spec.categories),
            'time_patterns': lambda: summarize_time_patterns(filtered),
            'tract_rollups': lambda: rollup_by_tract(filtered),
            'area_totals': lambda: area_totals(filtered, spec.categories),
        }

        if settings.parallel_reducers:
            with ThreadPool(len(reducers)) as pool:
                outputs = pool.map(lambda fn: fn(), list(reducers.values()))
            results = dict(zip(reducers, outputs))
        else:
            results = {name: fn() for name, fn in reducers.items()}

        rollup = results['area_rollup']
        annotated = annotate_rollup(rollup.areas, self._demographics)
        correlations = metric_correlations(results['area_totals'], CLUSTER_PROFILES)

        return PipelineViews(
            filter_spec=spec,
            filtered=filtered,
            heatmap_points=tuple(results['heatmap_points']),
            shift_counts=tuple(results['shift_counts']),
            category_counts=tuple(results['category_counts']),
            daily_trend=tuple(results['daily_trend']),
            trend_moving_average=tuple(moving_average(results['daily_trend'], settings.trend_window)),
            area_rollup=rollup,
            annotated_areas=tuple(annotated),
            time_patterns=results['time_patterns'],
            tract_rollups=tuple(results['tract_rollups']),
            metric_correlations=tuple(correlations),
        )

    # === Read accessors ===

    @property
    def incidents(self) -> pd.DataFrame:
        """Copy of the canonical incident frame."""
        return self._incidents.copy()

    def incident_values(self) -> List[Incident]:
        return to_incidents(self._incidents)

    @property
    def filter_spec(self) -> FilterSpec:
        return self._views.filter_spec

    @property
    def filtered_incidents(self) -> pd.DataFrame:
        return self._views.filtered.copy()

    @property
    def heatmap_points(self) -> List[HeatmapPoint]:
        return list(self._views.heatmap_points)

    @property
    def shift_counts(self) -> List[ShiftCount]:
        return list(self._views.shift_counts)

    @property
    def category_counts(self) -> List[CategoryCount]:
        return list(self._views.category_counts)

    @property
    def daily_trend(self) -> List[DailyTrendPoint]:
        return list(self._views.daily_trend)

    @property
    def daily_trend_moving_average(self) -> List[float]:
        """Trailing mean of the daily trend, one value per day."""
        return list(self._views.trend_moving_average)

    @property
    def area_rollup(self) -> AreaRollupSummary:
        return self._views.area_rollup

    @property
    def annotated_areas(self) -> List[AnnotatedArea]:
        return list(self._views.annotated_areas)

    @property
    def time_patterns(self) -> TemporalPatterns:
        return self._views.time_patterns

    @property
    def tract_rollups(self) -> List[TractRollup]:
        return list(self._views.tract_rollups)

    @property
    def metric_correlations(self) -> list:
        return list(self._views.metric_correlations)

    @property
    def demographics(self) -> Optional[DerivedDemographics]:
        return self._demographics

    def snapshot(self) -> dict:
        """The derived views of the current filter as plain lists and values."""
        views = self._views
        return {
            'filter_spec': views.filter_spec,
            'total': len(views.filtered),
            'heatmap_points': list(views.heatmap_points),
            'shift_counts': list(views.shift_counts),
            'category_counts': list(views.category_counts),
            'daily_trend': list(views.daily_trend),
            'daily_trend_moving_average': list(views.trend_moving_average),
            'area_rollup': views.area_rollup,
            'annotated_areas': list(views.annotated_areas),
        }
