"""Value types shared by the pipeline stages and handed to consumers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class Shift(str, Enum):
    """MPD patrol shift recorded on each incident."""

    DAY = 'DAY'
    EVENING = 'EVENING'
    MIDNIGHT = 'MIDNIGHT'
    UNKNOWN = 'UNKNOWN'

    @classmethod
    def parse(cls, value: Any) -> 'Shift':
        """Coerce a bare string, a Shift or a {'value': ...} / {'shift': ...} record into a Shift."""
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            value = value.get('value', value.get('shift'))
        if value is None:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.UNKNOWN


# Order used by the shift counter
SHIFT_ORDER: Tuple[Shift, ...] = (Shift.DAY, Shift.EVENING, Shift.MIDNIGHT)


@dataclass(frozen=True)
class Incident:
    case_number: str
    object_id: str
    latitude: float
    longitude: float
    x: float
    y: float
    report_timestamp: datetime
    start_timestamp: Optional[datetime]
    end_timestamp: Optional[datetime]
    shift: Shift
    method: str
    offense: str
    block: str
    ward: int
    anc: str
    district: str
    psa: str
    neighborhood_cluster: str
    bid: str
    block_group: str
    census_tract: str
    voting_precinct: str

    @property
    def category(self) -> str:
        return self.offense


@dataclass(frozen=True)
class HeatmapPoint:
    lat: float
    lng: float
    category: str
    shift: Shift
    timestamp: datetime
    block: str = ''
    neighborhood: str = ''
    weight: int = 1


@dataclass(frozen=True)
class ShiftCount:
    shift: Shift
    count: int


@dataclass(frozen=True)
class CategoryCount:
    category: str
    count: int
    percentage_of_total: float


@dataclass(frozen=True)
class DailyTrendPoint:
    date: date
    count: int


@dataclass(frozen=True)
class AreaRollup:
    area_label: str
    total: int
    per_category_counts: Mapping[str, int]
    rank: int


@dataclass(frozen=True)
class AreaRollupSummary:
    """Top areas plus the insights derived from them."""

    areas: Tuple[AreaRollup, ...] = ()
    dominant_category: Optional[str] = None
    dominant_count: int = 0
    top_areas_percentage: float = 0.0
    property_crime_percentage: float = 0.0
    active_categories: Tuple[str, ...] = ()

    @property
    def top_area(self) -> Optional[AreaRollup]:
        return self.areas[0] if self.areas else None


class CorrelationLabel(str, Enum):
    EXPECTED_NEGATIVE = 'expected-negative'
    EXPECTED_POSITIVE = 'expected-positive'
    ANOMALY_HIGH_CRIME = 'anomaly-high-crime'
    ANOMALY_LOW_CRIME = 'anomaly-low-crime'
    MODERATE = 'moderate'
    NO_DATA = 'no-data'


@dataclass(frozen=True)
class AnnotatedArea:
    rollup: AreaRollup
    metrics: Mapping[str, Optional[float]]
    labels: Mapping[str, CorrelationLabel]
    profile_source: str = 'cluster'


@dataclass(frozen=True)
class TimeBlockCount:
    block: int
    label: str
    count: int
    offense_counts: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class TemporalPatterns:
    blocks: Tuple[TimeBlockCount, ...]
    peak_block: Optional[TimeBlockCount]
    peak_percentage: float
    weekend_difference: float
    night_violent_percentage: float
    top_cluster: Optional[str]
    top_cluster_period: Optional[str]
    top_cluster_period_percentage: float


@dataclass(frozen=True)
class TractRollup:
    tract: str
    total: int
    violent_percentage: float
    offense_counts: Mapping[str, int]


@dataclass(frozen=True)
class DerivedDemographics:
    """Demographic metrics for one region, derived from the ACS tables."""

    geoid: str
    higher_education_pct: float
    poverty_pct: float
    high_value_housing_pct: float
    median_household_income: Optional[float]
    median_housing_value: Optional[float]
    diversity_index: float
    racial_composition: Mapping[str, float] = field(default_factory=dict)

    def as_metrics(self) -> Dict[str, Optional[float]]:
        """Metric values keyed the way the correlation thresholds are."""
        return {
            'income': self.median_household_income,
            'education': self.higher_education_pct,
            'poverty': self.poverty_pct,
            'housing': self.median_housing_value,
            'diversity': self.diversity_index,
        }
