"""Unit tests for the monthly stats aggregator and action plan."""

from psycopg2.errors import InvalidDatetimeFormat
import pytest

from satisfaction_svc.errors import StorageError
from satisfaction_svc.stats import RECOMMENDATIONS, build_action_plan, get_monthly_stats, month_start

from .conftest import stats_row

REACTIVITY, DEADLINES, DELIVERABLES, PROFESSIONALISM = (text for _, text in RECOMMENDATIONS)


def test_month_start():
    assert month_start('2026-01') == '2026-01-01'
    assert month_start('2024-02') == '2024-02-01'


def test_recommendation_texts():
    assert REACTIVITY == 'Responsiveness: define an SLA (e.g., response < 24h), weekly check-in, single channel.'
    assert DEADLINES == 'Deadlines: milestones, buffer, regular tracking, risk management.'
    assert DELIVERABLES == 'Deliverables: quality checklist, internal review, templates.'
    assert PROFESSIONALISM == 'Professionalism/Innovation: monthly retrospective, training, best-practice sharing.'


class TestBuildActionPlan:
    def test_empty_rows(self):
        assert build_action_plan([]) == []

    def test_project_above_threshold_is_omitted(self):
        assert build_action_plan([stats_row('Alpha', 4, 4, 5, 4.5)]) == []

    def test_threshold_is_strict(self):
        plan = build_action_plan([stats_row('Alpha', 3.99, 4.0, 4.0, 4.0)])
        assert len(plan) == 1
        assert plan[0].recommendations == [REACTIVITY]

    def test_one_recommendation_per_low_dimension_in_fixed_order(self):
        plan = build_action_plan([stats_row('Beta', 1, 5, 2, 3)])
        assert plan[0].project == 'Beta'
        assert plan[0].recommendations == [REACTIVITY, DELIVERABLES, PROFESSIONALISM]

    def test_all_dimensions_low(self):
        plan = build_action_plan([stats_row('Gamma', 1, 1, 1, 1)])
        assert plan[0].recommendations == [REACTIVITY, DEADLINES, DELIVERABLES, PROFESSIONALISM]

    def test_keeps_row_order_and_filters(self):
        rows = [
            stats_row('Low', 2, 2, 2, 2),
            stats_row('Fine', 5, 5, 5, 5),
            stats_row('Mid', 5, 3, 5, 5),
        ]
        plan = build_action_plan(rows)
        assert [p.project for p in plan] == ['Low', 'Mid']
        assert plan[1].recommendations == [DEADLINES]


class TestGetMonthlyStats:
    def test_queries_with_first_day_of_month(self, store):
        store.monthly_project_stats.return_value = []
        get_monthly_stats(store, '2026-01')
        store.monthly_project_stats.assert_called_once_with('2026-01-01')

    def test_empty_month(self, store):
        store.monthly_project_stats.return_value = []
        report = get_monthly_stats(store, '2026-03')
        assert report.month == '2026-03'
        assert report.start == '2026-03-01'
        assert report.projects == []
        assert report.action_plan == []

    def test_single_record_example(self, store):
        store.monthly_project_stats.return_value = [stats_row('Alpha', 2, 5, 5, 5)]
        report = get_monthly_stats(store, '2026-01')

        project = report.projects[0]
        assert project.avg_reactivity == 2
        assert project.avg_total == 4.25
        assert len(report.action_plan) == 1
        assert report.action_plan[0].project == 'Alpha'
        assert report.action_plan[0].recommendations == [REACTIVITY]

    def test_projects_keep_query_order(self, store):
        store.monthly_project_stats.return_value = [
            stats_row('B', 1, 2, 3, 4),
            stats_row('A', 4, 4, 4, 4),
            stats_row('C', 5, 5, 5, 5),
        ]
        report = get_monthly_stats(store, '2026-01')
        assert [p.project for p in report.projects] == ['B', 'A', 'C']
        totals = [p.avg_total for p in report.projects]
        assert totals == sorted(totals)

    def test_invalid_month_surfaces_as_storage_error(self, store):
        store.monthly_project_stats.side_effect = InvalidDatetimeFormat(
            'invalid input syntax for type date: "garbage-01"'
        )
        with pytest.raises(StorageError) as exc:
            get_monthly_stats(store, 'garbage')
        assert 'garbage-01' in exc.value.details
