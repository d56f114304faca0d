"""Statistical helper utilities for DC crime analytics."""

from .analysis_utils import (
    MIN_OBSERVATIONS,
    MetricCorrelation,
    correlation_tests,
    metric_correlations,
)

__all__ = [
    'MIN_OBSERVATIONS',
    'MetricCorrelation',
    'correlation_tests',
    'metric_correlations',
]
