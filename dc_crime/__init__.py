"""Incident ingestion, filtering and aggregation for the DC crime dashboard."""

from .filters import DateRange, FilterSpec, apply_filter
from .models import CorrelationLabel, Incident, Shift
from .pipeline import CrimeDataPipeline

__all__ = [
    'CrimeDataPipeline',
    'CorrelationLabel',
    'DateRange',
    'FilterSpec',
    'Incident',
    'Shift',
    'apply_filter',
]
