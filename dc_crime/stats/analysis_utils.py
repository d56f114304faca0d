"""Statistical helpers relating area incident totals to area demographics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats

from dc_crime.config import CLUSTER_PROFILES


MIN_OBSERVATIONS = 3


def correlation_tests(x: Sequence[float], y: Sequence[float]) -> dict:
    """Pearson and Spearman correlation of two samples with NaN pairs removed."""
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    mask = ~np.isnan(x_arr) & ~np.isnan(y_arr)
    x_clean, y_clean = x_arr[mask], y_arr[mask]
    pearson = stats.pearsonr(x_clean, y_clean)
    spearman = stats.spearmanr(x_clean, y_clean)
    return {
        "n": int(mask.sum()),
        "pearson_r": (float(pearson.statistic), float(pearson.pvalue)),
        "spearman_rho": (float(spearman.statistic), float(spearman.pvalue)),
    }


@dataclass(frozen=True)
class MetricCorrelation:
    metric: str
    n: int
    pearson_r: Optional[float] = None
    pearson_p: Optional[float] = None
    spearman_rho: Optional[float] = None
    spearman_p: Optional[float] = None

    @property
    def is_defined(self) -> bool:
        return self.pearson_r is not None

    def to_dict(self) -> dict:
        return {
            "metric": self.metric,
            "n": self.n,
            "pearson_r": self.pearson_r,
            "pearson_p": self.pearson_p,
            "spearman_rho": self.spearman_rho,
            "spearman_p": self.spearman_p,
        }


def _metric_names(profiles: Mapping[str, Mapping[str, float]]) -> list:
    names: dict = {}
    for profile in profiles.values():
        for name in profile:
            names.setdefault(name, None)
    return list(names)


def metric_correlations(
    totals: Mapping[str, float] | pd.Series,
    profiles: Mapping[str, Mapping[str, float]] = CLUSTER_PROFILES,
    metrics: Optional[Iterable[str]] = None,
) -> list:
    """
    Correlate area incident totals with each demographic metric

    Areas are paired by label; profiled areas with no incidents count as 0.
    A metric with fewer than MIN_OBSERVATIONS pairs, or with constant values
    on either side, gets a MetricCorrelation with no statistics.

    Args:
    totals: Area label -> incident total
    profiles: Area label -> metric values
    metrics: Metric names to test. Defaults to every metric in the profiles

    Returns:
    list[MetricCorrelation]: One entry per metric
    """
    totals = pd.Series(totals, dtype='float64') if not isinstance(totals, pd.Series) else totals.astype('float64')
    labels = sorted(profiles)
    y = totals.reindex(labels).fillna(0.0).to_numpy()

    results = []
    for metric in (list(metrics) if metrics is not None else _metric_names(profiles)):
        x = np.array([profiles[label].get(metric, np.nan) for label in labels], dtype=float)
        mask = ~np.isnan(x)
        n = int(mask.sum())
        if n < MIN_OBSERVATIONS or np.ptp(x[mask]) == 0 or np.ptp(y[mask]) == 0:
            results.append(MetricCorrelation(metric=metric, n=n))
            continue
        report = correlation_tests(x[mask], y[mask])
        results.append(MetricCorrelation(
            metric=metric,
            n=report["n"],
            pearson_r=report["pearson_r"][0],
            pearson_p=report["pearson_r"][1],
            spearman_rho=report["spearman_rho"][0],
            spearman_p=report["spearman_rho"][1],
        ))
    return results
