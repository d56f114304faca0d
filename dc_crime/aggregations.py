"""
Aggregations over a filtered incident frame.

Each reducer takes the filtered canonical frame and returns a fresh view; none
of them mutate their input or keep state between calls, so they can run in any
order or side by side.

Reducers:
  - build_heatmap_points: one weighted point per geocoded incident
  - count_shifts: incident counts for DAY / EVENING / MIDNIGHT
  - rank_categories: top offenses with their share of the total
  - build_daily_trend: dense per-day counts over one calendar year
  - build_area_rollup: top neighborhood clusters plus area insights

Supplementary views: moving_average, summarize_time_patterns, rollup_by_tract.
"""

from typing import Iterable, List, Optional, Sequence

import pandas as pd

from dc_crime.models import (
    AreaRollup,
    AreaRollupSummary,
    CategoryCount,
    DailyTrendPoint,
    HeatmapPoint,
    SHIFT_ORDER,
    Shift,
    ShiftCount,
    TemporalPatterns,
    TimeBlockCount,
    TractRollup,
)
from dc_crime.utils.offense_taxonomy import (
    KNOWN_OFFENSES,
    NIGHT_VIOLENT_OFFENSES,
    PROPERTY_OFFENSES,
    VIOLENT,
    categorize_offense,
)

TOP_CATEGORY_LIMIT = 10
TOP_AREA_LIMIT = 5
AREA_TOKEN = 'cluster'
UNKNOWN_AREA = 'Unknown'


def _pct(part: float, total: float) -> float:
    return float(round(part / total * 100, 1)) if total else 0.0


def _valid_area_mask(labels: pd.Series) -> pd.Series:
    labels = labels.fillna('').astype(str)
    return (
        (labels.str.strip() != '')
        & (labels != UNKNOWN_AREA)
        & labels.str.contains(AREA_TOKEN, case=False, regex=False)
    )


def build_heatmap_points(df: pd.DataFrame, include_zero_coordinates: bool = False) -> List[HeatmapPoint]:
    """
    Project incidents to heat map points

    Args:
    df (pd.DataFrame): Filtered incidents
    include_zero_coordinates (bool): Keep incidents whose latitude or longitude fell back to 0

    Returns:
    list[HeatmapPoint]: One point per incident, weight 1
    """
    if not include_zero_coordinates:
        df = df.loc[(df['latitude'] != 0) & (df['longitude'] != 0)]

    return [
        HeatmapPoint(
            lat=float(row.latitude),
            lng=float(row.longitude),
            category=row.offense,
            shift=Shift(row.shift),
            timestamp=row.report_timestamp.to_pydatetime(),
            block=row.block,
            neighborhood=row.neighborhood_cluster,
        )
        for row in df.itertuples(index=False)
    ]


def count_shifts(df: pd.DataFrame) -> List[ShiftCount]:
    """Counts per shift in the fixed DAY, EVENING, MIDNIGHT order; other shifts are ignored."""
    counts = df['shift'].value_counts()
    return [ShiftCount(shift=shift, count=int(counts.get(shift.value, 0))) for shift in SHIFT_ORDER]


def rank_categories(df: pd.DataFrame, limit: int = TOP_CATEGORY_LIMIT) -> List[CategoryCount]:
    """
    Rank offenses by incident count

    Ties are broken alphabetically. Percentages are of the whole filtered
    total, rounded to one decimal.
    """
    total = len(df)
    if total == 0:
        return []

    counts = df['offense'].value_counts().rename_axis('category').reset_index(name='n')
    counts = counts.sort_values(['n', 'category'], ascending=[False, True], kind='mergesort').head(limit)

    return [
        CategoryCount(category=row.category, count=int(row.n), percentage_of_total=_pct(row.n, total))
        for row in counts.itertuples(index=False)
    ]


def build_daily_trend(df: pd.DataFrame, year: int) -> List[DailyTrendPoint]:
    """
    Dense daily counts for one calendar year

    Every day from Jan 1 to Dec 31 appears exactly once, zero-filled.
    Incidents reported outside the year are ignored.
    """
    days = pd.date_range(start=f'{year:04d}-01-01', end=f'{year:04d}-12-31', freq='D')
    reported = df['report_timestamp']
    in_year = reported.loc[reported.dt.year == year].dt.normalize()
    counts = in_year.value_counts().reindex(days, fill_value=0)
    return [DailyTrendPoint(date=day.date(), count=int(n)) for day, n in counts.items()]


def moving_average(trend: Sequence[DailyTrendPoint], window: int = 7) -> List[float]:
    """Trailing mean over the trend; the first days average over what is available."""
    if not trend:
        return []
    series = pd.Series([point.count for point in trend], dtype='float64')
    return series.rolling(window=window, min_periods=1).mean().tolist()


def active_category_set(categories: Optional[Iterable[str]]) -> tuple:
    """Filter categories when some are selected, otherwise the known offense universe."""
    selected = tuple(sorted(set(categories or ())))
    return selected or KNOWN_OFFENSES


def area_category_counts(df: pd.DataFrame, active: Sequence[str]) -> pd.DataFrame:
    """Area label x active category count table over the valid cluster labels."""
    areas = df.loc[_valid_area_mask(df['neighborhood_cluster'])]
    if areas.empty:
        return pd.DataFrame(columns=list(active), dtype='int64')
    counts = pd.crosstab(areas['neighborhood_cluster'], areas['offense'])
    return counts.reindex(columns=list(active), fill_value=0)


def area_totals(df: pd.DataFrame, active_categories: Optional[Iterable[str]] = None) -> pd.Series:
    """Active-category incident total for every valid cluster label."""
    return area_category_counts(df, active_category_set(active_categories)).sum(axis=1)


def build_area_rollup(
    df: pd.DataFrame,
    active_categories: Optional[Iterable[str]] = None,
    top_n: int = TOP_AREA_LIMIT,
) -> AreaRollupSummary:
    """
    Roll incidents up by neighborhood cluster

    Only labels containing 'cluster' (any case) count as areas. An area's
    total is its number of incidents in the active category set.

    Args:
    df (pd.DataFrame): Filtered incidents
    active_categories (Iterable[str]): Selected filter categories; empty means all known offenses
    top_n (int): Number of areas kept

    Returns:
    AreaRollupSummary: Ranked areas, dominant category of the top area,
    share held by the top areas and share of property crime
    """
    active = active_category_set(active_categories)
    total = len(df)
    property_pct = _pct(int(df['offense'].isin(PROPERTY_OFFENSES).sum()), total)

    counts = area_category_counts(df, active)
    ranking = (
        counts.sum(axis=1)
        .rename_axis('area')
        .reset_index(name='total')
    )
    # Areas with no active-category incidents are not ranked
    ranking = ranking.loc[ranking['total'] > 0]
    if ranking.empty:
        return AreaRollupSummary(property_crime_percentage=property_pct, active_categories=active)

    ranking = ranking.sort_values(['total', 'area'], ascending=[False, True], kind='mergesort').head(top_n)

    rollups = tuple(
        AreaRollup(
            area_label=row.area,
            total=int(row.total),
            per_category_counts={cat: int(counts.at[row.area, cat]) for cat in active},
            rank=rank,
        )
        for rank, row in enumerate(ranking.itertuples(index=False), start=1)
    )

    dominant, dominant_count = sorted(rollups[0].per_category_counts.items(), key=lambda kv: (-kv[1], kv[0]))[0]

    return AreaRollupSummary(
        areas=rollups,
        dominant_category=dominant,
        dominant_count=dominant_count,
        top_areas_percentage=_pct(sum(a.total for a in rollups), total),
        property_crime_percentage=property_pct,
        active_categories=active,
    )


def _shift_period(hour: int) -> str:
    if 8 <= hour < 16:
        return Shift.DAY.value
    if 16 <= hour < 24:
        return Shift.EVENING.value
    return Shift.MIDNIGHT.value


def summarize_time_patterns(df: pd.DataFrame) -> TemporalPatterns:
    """
    Hour-of-day and day-of-week patterns in the filtered incidents

    - six 4-hour blocks with per-offense counts and the peak block
    - weekend vs weekday difference in average incidents per day (percent)
    - share of violent offenses reported between 20:00 and 06:00
    - the busiest cluster and the period (from report hour) that dominates it
    """
    total = len(df)
    hours = df['report_timestamp'].dt.hour
    block_ids = hours // 4

    blocks = []
    for block in range(6):
        in_block = df.loc[block_ids == block, 'offense']
        blocks.append(TimeBlockCount(
            block=block,
            label=f'{block * 4}:00 - {(block + 1) * 4}:00',
            count=int(len(in_block)),
            offense_counts={k: int(v) for k, v in in_block.value_counts().sort_index().items()},
        ))

    peak = None
    for block in blocks:
        if block.count > (peak.count if peak else 0):
            peak = block
    peak_pct = _pct(peak.count, total) if peak else 0.0

    weekday = df['report_timestamp'].dt.dayofweek
    avg_weekday = int((weekday < 5).sum()) / 5
    avg_weekend = int((weekday >= 5).sum()) / 2
    weekend_difference = round(abs((avg_weekend - avg_weekday) / avg_weekday * 100), 1) if avg_weekday else 0.0

    violent = df['offense'].isin(NIGHT_VIOLENT_OFFENSES)
    at_night = (hours >= 20) | (hours < 6)
    night_violent_pct = _pct(int((violent & at_night).sum()), int(violent.sum()))

    top_cluster, top_period, top_period_pct = None, None, 0.0
    clustered = df.loc[_valid_area_mask(df['neighborhood_cluster'])]
    if not clustered.empty:
        periods = clustered['report_timestamp'].dt.hour.map(_shift_period)
        table = pd.crosstab(clustered['neighborhood_cluster'], periods)
        table = table.reindex(columns=[s.value for s in SHIFT_ORDER], fill_value=0)
        totals = table.sum(axis=1).rename_axis('area').reset_index(name='total')
        best = totals.sort_values(['total', 'area'], ascending=[False, True], kind='mergesort').iloc[0]
        top_cluster = best['area']
        row = table.loc[top_cluster]
        # idxmax keeps the first of DAY, EVENING, MIDNIGHT on ties
        top_period = str(row.idxmax()).lower()
        top_period_pct = _pct(int(row.max()), int(best['total']))

    return TemporalPatterns(
        blocks=tuple(blocks),
        peak_block=peak,
        peak_percentage=peak_pct,
        weekend_difference=weekend_difference,
        night_violent_percentage=night_violent_pct,
        top_cluster=top_cluster,
        top_cluster_period=top_period,
        top_cluster_period_percentage=top_period_pct,
    )


def rollup_by_tract(df: pd.DataFrame) -> List[TractRollup]:
    """Incident totals per census tract with the violent share; tracts without an id are skipped."""
    tracts = df['census_tract'].fillna('').astype(str).str.replace(r'\s+', '', regex=True)
    keyed = df.assign(tract=tracts).loc[tracts != '']
    if keyed.empty:
        return []

    counts = pd.crosstab(keyed['tract'], keyed['offense'])
    totals = counts.sum(axis=1).rename_axis('tract').reset_index(name='total')
    totals = totals.sort_values(['total', 'tract'], ascending=[False, True], kind='mergesort')
    violent_cols = [c for c in counts.columns if categorize_offense(c) == VIOLENT]

    rollups = []
    for row in totals.itertuples(index=False):
        per_offense = {k: int(v) for k, v in counts.loc[row.tract].items() if v > 0}
        violent = int(counts.loc[row.tract, violent_cols].sum()) if violent_cols else 0
        rollups.append(TractRollup(
            tract=row.tract,
            total=int(row.total),
            violent_percentage=_pct(violent, int(row.total)),
            offense_counts=per_offense,
        ))
    return rollups
