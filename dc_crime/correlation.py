"""
Correlation labels for the area rollup.

An area's incident total is compared with the median total of the top areas,
its demographic metrics are compared with the per-metric thresholds, and the
two levels are combined through the expectation table. Thresholds,
expectations and cluster profiles live in dc_crime.config.
"""

from typing import Dict, Mapping, Optional, Sequence

import numpy as np

from dc_crime.config import (
    CLUSTER_PROFILES,
    EXPECTATION_TABLE,
    HIGH_CRIME_FACTOR,
    LOW_CRIME_FACTOR,
    METRIC_THRESHOLDS,
)
from dc_crime.models import AnnotatedArea, AreaRollup, CorrelationLabel, DerivedDemographics

HIGH = 'high'
LOW = 'low'
MODERATE = 'moderate'


def median_total(areas: Sequence[AreaRollup]) -> float:
    """Median incident total across the given areas; 0 for an empty set."""
    if not areas:
        return 0.0
    return float(np.median([area.total for area in areas]))


def classify_crime_level(total: float, median: float) -> str:
    if total > median * HIGH_CRIME_FACTOR:
        return HIGH
    if total < median * LOW_CRIME_FACTOR:
        return LOW
    return MODERATE


def classify_metric(value: float, thresholds: Mapping[str, object]) -> str:
    if value > thresholds['high']:
        return HIGH
    if value < thresholds['low']:
        return LOW
    return MODERATE


def label_for(
    metric: str,
    value: Optional[float],
    crime_level: str,
    thresholds: Mapping[str, Mapping[str, object]] = METRIC_THRESHOLDS,
    expectations: Mapping[tuple, str] = EXPECTATION_TABLE,
) -> CorrelationLabel:
    """
    Combine a metric value and a crime level into a correlation label

    Args:
    metric (str): Metric name, e.g. 'income'
    value (float): Metric value for the area; None or NaN means no data
    crime_level (str): 'high', 'low' or 'moderate'
    thresholds: Per-metric {'high', 'low', 'direction'} table
    expectations: (direction, metric level) -> expected crime level

    Returns:
    CorrelationLabel: The label
    """
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return CorrelationLabel.NO_DATA
    if metric not in thresholds:
        return CorrelationLabel.MODERATE

    table = thresholds[metric]
    expected = expectations.get((table['direction'], classify_metric(value, table)), MODERATE)

    if expected == LOW and crime_level == HIGH:
        return CorrelationLabel.ANOMALY_HIGH_CRIME
    if expected == HIGH and crime_level == LOW:
        return CorrelationLabel.ANOMALY_LOW_CRIME
    if expected == LOW:
        return CorrelationLabel.EXPECTED_NEGATIVE
    if expected == HIGH:
        return CorrelationLabel.EXPECTED_POSITIVE
    return CorrelationLabel.MODERATE


def annotate_area(
    area: AreaRollup,
    metrics,
    top_areas: Sequence[AreaRollup],
    metric: str,
    thresholds: Mapping[str, Mapping[str, object]] = METRIC_THRESHOLDS,
    expectations: Mapping[tuple, str] = EXPECTATION_TABLE,
) -> CorrelationLabel:
    """
    Label one area for one metric against the top-area median

    metrics is either a DerivedDemographics value or a metric name -> value mapping.
    """
    if isinstance(metrics, DerivedDemographics):
        metrics = metrics.as_metrics()
    level = classify_crime_level(area.total, median_total(top_areas))
    return label_for(metric, metrics.get(metric), level, thresholds, expectations)


def area_metrics(
    label: str,
    demographics: Optional[DerivedDemographics],
    profiles: Mapping[str, Mapping[str, float]] = CLUSTER_PROFILES,
):
    """Cluster profile for the area, else the citywide metrics, else nothing."""
    if label in profiles:
        return dict(profiles[label]), 'cluster'
    if demographics is not None:
        return demographics.as_metrics(), 'citywide'
    return {}, 'none'


def annotate_rollup(
    areas: Sequence[AreaRollup],
    demographics: Optional[DerivedDemographics],
    profiles: Mapping[str, Mapping[str, float]] = CLUSTER_PROFILES,
    thresholds: Mapping[str, Mapping[str, object]] = METRIC_THRESHOLDS,
    expectations: Mapping[tuple, str] = EXPECTATION_TABLE,
) -> list:
    """
    Annotate every top area for every metric

    Args:
    areas (Sequence[AreaRollup]): The top areas
    demographics (DerivedDemographics): Citywide metrics, used for areas without a profile
    profiles: Area label -> metric values

    Returns:
    list[AnnotatedArea]: One entry per area, in rank order
    """
    median = median_total(areas)
    annotated = []
    for area in areas:
        metrics, source = area_metrics(area.area_label, demographics, profiles)
        level = classify_crime_level(area.total, median)
        metric_names = list(thresholds) + [m for m in metrics if m not in thresholds]
        labels: Dict[str, CorrelationLabel] = {
            name: label_for(name, metrics.get(name), level, thresholds, expectations)
            for name in metric_names
        }
        annotated.append(AnnotatedArea(rollup=area, metrics=metrics, labels=labels, profile_source=source))
    return annotated
