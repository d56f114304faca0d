from datetime import date

import pandas as pd
import pytest

from dc_crime.aggregations import (
    active_category_set,
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
from dc_crime.data.normalizer import empty_incident_frame
from dc_crime.models import DailyTrendPoint, Shift
from dc_crime.utils.offense_taxonomy import KNOWN_OFFENSES


class TestCounts:
    def test_category_percentages(self, make_incidents):
        df = make_incidents([{'OFFENSE': 'HOMICIDE'}, {'OFFENSE': 'HOMICIDE'}, {'OFFENSE': 'THEFT/OTHER'}])
        counts = rank_categories(df)
        assert [(c.category, c.count, c.percentage_of_total) for c in counts] == [
            ('HOMICIDE', 2, 66.7),
            ('THEFT/OTHER', 1, 33.3),
        ]

    def test_category_ties_alphabetical_and_capped(self, make_incidents):
        offenses = [f'OFFENSE {i:02d}' for i in range(12)]
        df = make_incidents([{'OFFENSE': o} for o in reversed(offenses)])
        counts = rank_categories(df)
        assert len(counts) == 10
        assert [c.category for c in counts] == offenses[:10]

    def test_category_counts_empty(self):
        assert rank_categories(empty_incident_frame()) == []

    def test_shift_counts_fixed_order(self, make_incidents):
        df = make_incidents([{'SHIFT': 'DAY'}, {'SHIFT': 'EVENING'}, {'SHIFT': 'DAY'}, {'SHIFT': ''}])
        assert [(s.shift, s.count) for s in count_shifts(df)] == [
            (Shift.DAY, 2),
            (Shift.EVENING, 1),
            (Shift.MIDNIGHT, 0),
        ]


class TestDailyTrend:
    @pytest.mark.parametrize('year,days', [(2024, 366), (2023, 365)])
    def test_every_day_once(self, make_incidents, year, days):
        trend = build_daily_trend(make_incidents([{}]), year)
        assert len(trend) == days
        assert len({p.date for p in trend}) == days
        assert trend[0].date == date(year, 1, 1)
        assert trend[-1].date == date(year, 12, 31)

    def test_counts_only_in_year(self, make_incidents):
        df = make_incidents([
            {'REPORT_DAT': '2024/01/01 00:00:00'},
            {'REPORT_DAT': '2024/01/01 23:59:59'},
            {'REPORT_DAT': '2024/12/31 12:00:00'},
            {'REPORT_DAT': '2023/12/31 12:00:00'},
        ])
        trend = build_daily_trend(df, 2024)
        assert trend[0].count == 2
        assert trend[-1].count == 1
        assert sum(p.count for p in trend) == 3

    def test_empty_frame_zero_filled(self):
        trend = build_daily_trend(empty_incident_frame(), 2024)
        assert len(trend) == 366
        assert all(p.count == 0 for p in trend)

    def test_moving_average(self):
        trend = [DailyTrendPoint(date(2024, 1, d), c) for d, c in enumerate([7, 0, 0, 0, 0, 0, 0, 7], start=1)]
        averages = moving_average(trend)
        assert averages[0] == 7.0
        assert averages[1] == 3.5
        assert averages[6] == pytest.approx(1.0)
        assert averages[7] == pytest.approx(1.0)
        assert moving_average([]) == []


class TestHeatmap:
    def test_zero_coordinates_excluded(self, make_incidents):
        df = make_incidents([
            {'CCN': '1'},
            {'CCN': '2', 'LATITUDE': ''},
            {'CCN': '3', 'LONGITUDE': 'n/a'},
        ])
        points = build_heatmap_points(df)
        assert len(points) == 1
        assert points[0].weight == 1
        assert points[0].category == 'THEFT/OTHER'
        assert points[0].lat == pytest.approx(38.9026)

    def test_zero_coordinates_kept_when_asked(self, make_incidents):
        df = make_incidents([{'CCN': '1'}, {'CCN': '2', 'LATITUDE': ''}])
        assert len(build_heatmap_points(df, include_zero_coordinates=True)) == 2


class TestAreaRollup:
    @pytest.fixture
    def incidents(self, make_incidents):
        rows = (
            [{'NEIGHBORHOOD_CLUSTER': 'Cluster 1', 'OFFENSE': 'THEFT/OTHER'}] * 4
            + [{'NEIGHBORHOOD_CLUSTER': 'Cluster 1', 'OFFENSE': 'ROBBERY'}] * 4
            + [{'NEIGHBORHOOD_CLUSTER': 'Cluster 2', 'OFFENSE': 'BURGLARY'}] * 3
            + [{'NEIGHBORHOOD_CLUSTER': 'Cluster 3', 'OFFENSE': 'HOMICIDE'}] * 3
            + [{'NEIGHBORHOOD_CLUSTER': 'Cluster 4', 'OFFENSE': 'ARSON'}] * 2
            + [{'NEIGHBORHOOD_CLUSTER': 'Cluster 5', 'OFFENSE': 'SEX ABUSE'}]
            + [{'NEIGHBORHOOD_CLUSTER': 'Cluster 6', 'OFFENSE': 'SEX ABUSE'}]
            + [{'NEIGHBORHOOD_CLUSTER': '', 'OFFENSE': 'THEFT/OTHER'}] * 5
            + [{'NEIGHBORHOOD_CLUSTER': 'Unknown', 'OFFENSE': 'THEFT/OTHER'}]
            + [{'NEIGHBORHOOD_CLUSTER': 'Ward 7', 'OFFENSE': 'THEFT/OTHER'}]
        )
        return make_incidents(rows)

    def test_ranking_and_cap(self, incidents):
        rollup = build_area_rollup(incidents)
        assert [(a.area_label, a.total, a.rank) for a in rollup.areas] == [
            ('Cluster 1', 8, 1),
            ('Cluster 2', 3, 2),
            ('Cluster 3', 3, 3),
            ('Cluster 4', 2, 4),
            ('Cluster 5', 1, 5),
        ]

    def test_invalid_labels_excluded(self, incidents):
        labels = set(area_totals(incidents).index)
        assert labels == {f'Cluster {i}' for i in range(1, 7)}

    def test_per_category_counts_cover_known_offenses(self, incidents):
        top = build_area_rollup(incidents).top_area
        assert set(top.per_category_counts) == set(KNOWN_OFFENSES)
        assert top.per_category_counts['ROBBERY'] == 4
        assert top.per_category_counts['HOMICIDE'] == 0

    def test_dominant_category_tie_alphabetical(self, incidents):
        rollup = build_area_rollup(incidents)
        assert rollup.dominant_category == 'ROBBERY'
        assert rollup.dominant_count == 4

    def test_insight_percentages(self, incidents):
        rollup = build_area_rollup(incidents)
        # 17 of 25 incidents sit in the top five clusters
        assert rollup.top_areas_percentage == 68.0
        # theft/other 11 + burglary 3
        assert rollup.property_crime_percentage == 56.0

    def test_active_categories_restrict_totals(self, incidents):
        rollup = build_area_rollup(incidents, active_categories=['ROBBERY', 'HOMICIDE'])
        assert rollup.active_categories == ('HOMICIDE', 'ROBBERY')
        assert [(a.area_label, a.total) for a in rollup.areas][:2] == [('Cluster 1', 4), ('Cluster 3', 3)]
        assert set(rollup.top_area.per_category_counts) == {'HOMICIDE', 'ROBBERY'}

    def test_areas_without_active_incidents_not_ranked(self, make_incidents):
        df = make_incidents([
            {'NEIGHBORHOOD_CLUSTER': 'Cluster 1', 'OFFENSE': 'HOMICIDE'},
            {'NEIGHBORHOOD_CLUSTER': 'Cluster 2', 'OFFENSE': 'THEFT/OTHER'},
        ])
        rollup = build_area_rollup(df, active_categories=['HOMICIDE'])
        assert [(a.area_label, a.total) for a in rollup.areas] == [('Cluster 1', 1)]

    def test_no_area_with_active_incidents(self, make_incidents):
        df = make_incidents([{'NEIGHBORHOOD_CLUSTER': 'Cluster 1', 'OFFENSE': 'THEFT/OTHER'}])
        rollup = build_area_rollup(df, active_categories=['HOMICIDE'])
        assert rollup.areas == ()
        assert rollup.dominant_category is None
        assert rollup.property_crime_percentage == 100.0

    def test_empty(self):
        rollup = build_area_rollup(empty_incident_frame())
        assert rollup.areas == ()
        assert rollup.top_area is None
        assert rollup.property_crime_percentage == 0.0

    def test_active_category_set_default(self):
        assert active_category_set(None) == KNOWN_OFFENSES
        assert active_category_set({'B', 'A'}) == ('A', 'B')


class TestTimePatterns:
    def test_blocks_and_peak(self, make_incidents):
        df = make_incidents([
            {'REPORT_DAT': '2024/03/04 01:00:00', 'OFFENSE': 'ROBBERY'},
            {'REPORT_DAT': '2024/03/04 21:00:00', 'OFFENSE': 'ROBBERY'},
            {'REPORT_DAT': '2024/03/04 22:00:00', 'OFFENSE': 'THEFT/OTHER'},
            {'REPORT_DAT': '2024/03/04 12:00:00', 'OFFENSE': 'HOMICIDE'},
        ])
        patterns = summarize_time_patterns(df)
        assert [b.count for b in patterns.blocks] == [1, 0, 0, 1, 0, 2]
        assert patterns.peak_block.block == 5
        assert patterns.peak_block.label == '20:00 - 24:00'
        assert patterns.peak_block.offense_counts == {'ROBBERY': 1, 'THEFT/OTHER': 1}
        assert patterns.peak_percentage == 50.0
        # robbery at 01:00 and 21:00 of three violent incidents
        assert patterns.night_violent_percentage == 66.7

    def test_weekend_difference(self, make_incidents):
        # Monday x5, Saturday x4: weekday avg 1.0, weekend avg 2.0
        df = make_incidents(
            [{'REPORT_DAT': '2024/03/04 10:00:00'}] * 5
            + [{'REPORT_DAT': '2024/03/09 10:00:00'}] * 4
        )
        assert summarize_time_patterns(df).weekend_difference == 100.0

    def test_top_cluster_period(self, make_incidents):
        df = make_incidents([
            {'NEIGHBORHOOD_CLUSTER': 'Cluster 2', 'REPORT_DAT': '2024/03/04 17:00:00'},
            {'NEIGHBORHOOD_CLUSTER': 'Cluster 2', 'REPORT_DAT': '2024/03/04 18:00:00'},
            {'NEIGHBORHOOD_CLUSTER': 'Cluster 2', 'REPORT_DAT': '2024/03/04 09:00:00'},
            {'NEIGHBORHOOD_CLUSTER': 'Cluster 1', 'REPORT_DAT': '2024/03/04 03:00:00'},
        ])
        patterns = summarize_time_patterns(df)
        assert patterns.top_cluster == 'Cluster 2'
        assert patterns.top_cluster_period == 'evening'
        assert patterns.top_cluster_period_percentage == 66.7

    def test_empty(self):
        patterns = summarize_time_patterns(empty_incident_frame())
        assert patterns.peak_block is None
        assert patterns.top_cluster is None
        assert patterns.weekend_difference == 0.0


class TestTractRollup:
    def test_totals_and_violent_share(self, make_incidents):
        df = make_incidents([
            {'CENSUS_TRACT': '007401', 'OFFENSE': 'ROBBERY'},
            {'CENSUS_TRACT': '007401', 'OFFENSE': 'SEX ABUSE'},
            {'CENSUS_TRACT': '007401', 'OFFENSE': 'THEFT/OTHER'},
            {'CENSUS_TRACT': '004100', 'OFFENSE': 'THEFT/OTHER'},
            {'CENSUS_TRACT': '', 'OFFENSE': 'HOMICIDE'},
        ])
        tracts = rollup_by_tract(df)
        assert [(t.tract, t.total) for t in tracts] == [('007401', 3), ('004100', 1)]
        assert tracts[0].violent_percentage == 66.7
        assert tracts[0].offense_counts == {'ROBBERY': 1, 'SEX ABUSE': 1, 'THEFT/OTHER': 1}
        assert tracts[1].violent_percentage == 0.0

    def test_empty(self):
        assert rollup_by_tract(empty_incident_frame()) == []


def test_reducers_do_not_mutate_input(make_incidents):
    df = make_incidents([{'OFFENSE': 'HOMICIDE'}, {'OFFENSE': 'ROBBERY', 'NEIGHBORHOOD_CLUSTER': 'Cluster 7'}])
    before = df.copy()
    rank_categories(df)
    build_area_rollup(df)
    summarize_time_patterns(df)
    rollup_by_tract(df)
    pd.testing.assert_frame_equal(df, before)
