#!/usr/bin/env python3
"""Generate smoke summary CSVs for the derived views of the configured extract.

Reads the incident extract and census tables named by the DC_CRIME_* settings
and writes one CSV per view under reports/smoke/.
"""
from dataclasses import asdict
from pathlib import Path
import sys

import pandas as pd

from dc_crime.config import load_settings
from dc_crime.pipeline import CrimeDataPipeline
from dc_crime.utils.exceptions import DCCrimeException

ROOT = Path(__file__).resolve().parents[1]
OUT = ROOT / 'reports' / 'smoke'


def view_frames(pipeline):
    rollup = pipeline.area_rollup
    areas = []
    for annotated in pipeline.annotated_areas:
        row = {
            'rank': annotated.rollup.rank,
            'area': annotated.rollup.area_label,
            'total': annotated.rollup.total,
            'profile_source': annotated.profile_source,
        }
        row.update({f'label_{k}': v.value for k, v in annotated.labels.items()})
        areas.append(row)

    return {
        'shift_counts': pd.DataFrame([{'shift': s.shift.value, 'count': s.count} for s in pipeline.shift_counts]),
        'category_counts': pd.DataFrame([asdict(c) for c in pipeline.category_counts]),
        'daily_trend': pd.DataFrame([asdict(p) for p in pipeline.daily_trend]).assign(
            moving_average=pipeline.daily_trend_moving_average,
        ),
        'area_rollup': pd.DataFrame(areas),
        'area_insights': pd.DataFrame([{
            'dominant_category': rollup.dominant_category,
            'dominant_count': rollup.dominant_count,
            'top_areas_percentage': rollup.top_areas_percentage,
            'property_crime_percentage': rollup.property_crime_percentage,
        }]),
        'metric_correlations': pd.DataFrame([c.to_dict() for c in pipeline.metric_correlations]),
    }


def main():
    try:
        pipeline = CrimeDataPipeline.from_settings(load_settings())
    except DCCrimeException as e:
        print(f'Failed to load data: {e}', file=sys.stderr)
        return 2

    OUT.mkdir(parents=True, exist_ok=True)
    for name, df in view_frames(pipeline).items():
        path = OUT / f'{name}.csv'
        df.to_csv(path, index=False)
        print('Wrote', path, f'({len(df)} rows)')
    print('Heat map points:', len(pipeline.heatmap_points))
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
