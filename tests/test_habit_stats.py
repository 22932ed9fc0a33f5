"""Tests for the habit statistics calculators and their aggregation."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from habitlens.services.habit_stats import (
    Completion,
    calendar_month,
    completion_rate,
    compute_habit_stats,
    day_of_week_breakdown,
    estimate_distance_km,
    heatmap,
    heatmap_level,
    is_step_habit,
    monthly_breakdown,
    normalize_completions,
    period_comparison,
    personal_record,
    recent_progress,
    year_projection,
)

from tests.conftest import TODAY


def ago(days: int) -> date:
    return TODAY - timedelta(days=days)


class TestNormalization:
    def test_empty_inputs(self):
        assert normalize_completions(None) == []
        assert normalize_completions([]) == []

    def test_accepts_mixed_shapes(self):
        raw = [
            "2024-06-14",
            date(2024, 6, 13),
            {"completed_date": "2024-06-12T08:30:00", "state": "missed"},
            {"completed_date": date(2024, 6, 11), "value": "12"},
        ]
        normalized = normalize_completions(raw)
        assert [c.completed_date for c in normalized] == [
            date(2024, 6, 14),
            date(2024, 6, 13),
            date(2024, 6, 12),
            date(2024, 6, 11),
        ]
        assert normalized[2].state == "missed"
        assert normalized[3].value == 12.0

    def test_malformed_date_raises(self):
        with pytest.raises(ValueError):
            normalize_completions([{"completed_date": "not-a-date"}])


class TestCompletionRate:
    def test_full_week_is_hundred(self):
        dates = [ago(i) for i in range(7)]
        assert completion_rate(dates, 7, today=TODAY) == 100

    def test_window_is_inclusive_but_clamped(self):
        dates = [ago(i) for i in range(8)]
        assert completion_rate(dates, 7, today=TODAY) == 100

    def test_rounds_half_up(self):
        # 3 / 7 = 42.86%
        assert completion_rate([ago(0), ago(2), ago(4)], 7, today=TODAY) == 43
        # 1 / 8 = 12.5%
        assert completion_rate([ago(0)], 8, today=TODAY) == 13

    def test_old_dates_ignored(self):
        assert completion_rate([ago(31), ago(40)], 30, today=TODAY) == 0

    def test_duplicates_count_once(self):
        assert completion_rate([ago(0), ago(0), ago(0)], 30, today=TODAY) == 3

    def test_empty_and_bad_window(self):
        assert completion_rate([], 7, today=TODAY) == 0
        assert completion_rate([ago(0)], 0, today=TODAY) == 0


class TestPeriodComparison:
    def test_previous_zero_is_infinite_improvement(self):
        history = [Completion(ago(1)), Completion(ago(2))]
        result = period_comparison(history, "boolean", 7, today=TODAY)
        assert result.trend == "up"
        assert result.infinite is True
        assert result.change == 100

    def test_no_activity_is_flat(self):
        result = period_comparison([], "boolean", 7, today=TODAY)
        assert (result.change, result.trend, result.infinite) == (0, "equal", False)

    def test_boolean_counts_entries(self):
        history = [Completion(ago(d)) for d in (0, 1, 2, 3)]
        history += [Completion(ago(d)) for d in (8, 9)]
        result = period_comparison(history, "boolean", 7, today=TODAY)
        assert result.change == 100
        assert result.trend == "up"
        assert result.infinite is False

    def test_counter_sums_values(self):
        history = [Completion(ago(1), value=10), Completion(ago(2), value=20)]
        history += [Completion(ago(9), value=60)]
        result = period_comparison(history, "counter", 7, today=TODAY)
        assert result.change == -50
        assert result.trend == "down"

    def test_window_boundaries(self):
        # today-7 belongs to the current window, today-14 to the previous one.
        history = [Completion(ago(7), value=5), Completion(ago(14), value=5), Completion(ago(15), value=99)]
        result = period_comparison(history, "counter", 7, today=TODAY)
        assert result.change == 0
        assert result.trend == "equal"

    def test_as_dict_shape(self):
        result = period_comparison([Completion(ago(0))], "boolean", 30, today=TODAY)
        assert result.as_dict() == {"change": 100, "trend": "up", "infinite": True}


class TestDayOfWeek:
    def test_counter_average_uses_all_entries(self):
        history = [
            Completion(date(2024, 6, 10), value=10),  # Monday, below goal
            Completion(date(2024, 6, 3), value=20),  # Monday
            Completion(date(2024, 6, 11), value=7),  # Tuesday
        ]
        rows = day_of_week_breakdown(history, "counter", 100, "pages")
        assert len(rows) == 7
        assert rows[0]["name"] == "Monday"
        assert rows[0]["value"] == 15
        assert rows[1]["value"] == 7
        assert rows[2]["value"] == 0
        assert rows[0]["tooltip"] == "Average: 15 pages"

    def test_boolean_counts_successes(self):
        history = [
            Completion(date(2024, 6, 10), state="completed"),
            Completion(date(2024, 6, 3), state="missed"),
            Completion(date(2024, 6, 16), state="completed"),  # Sunday
        ]
        rows = day_of_week_breakdown(history, "boolean", 0)
        assert rows[0]["value"] == 1
        assert rows[0]["tooltip"] == "1 completion"
        assert rows[6]["name"] == "Sunday"
        assert rows[6]["value"] == 1
        assert sum(row["value"] for row in rows) == 2

    def test_empty_history_is_zero_filled(self):
        rows = day_of_week_breakdown([], "counter", 10)
        assert [row["value"] for row in rows] == [0] * 7


class TestMonthly:
    def test_always_twelve_months(self):
        history = [Completion(date(2024, 3, d)) for d in (1, 2, 3)]
        rows = monthly_breakdown(history, "boolean", 0, today=TODAY)
        assert len(rows) == 12
        assert rows[2] == {"name": "Mar", "count": 3}
        assert sum(row["count"] for row in rows) == 3

    def test_other_years_and_failures_excluded(self):
        history = [
            Completion(date(2023, 12, 31), value=10),
            Completion(date(2024, 1, 5), value=4),
            Completion(date(2024, 1, 6), value=10),
        ]
        rows = monthly_breakdown(history, "counter", 10, today=TODAY)
        assert rows[0]["count"] == 1
        assert rows[11]["count"] == 0


class TestPersonalRecord:
    def test_counter_max_value(self):
        history = [Completion(ago(3), value=5), Completion(ago(2), value=12), Completion(ago(1), value=3)]
        record = personal_record(history, "counter")
        assert record is not None
        assert record.value == 12
        assert record.date == ago(2)

    def test_ties_keep_first_seen(self):
        history = [Completion(ago(1), value=12), Completion(ago(5), value=12)]
        assert personal_record(history, "counter").date == ago(1)

    def test_boolean_and_empty_return_none(self):
        assert personal_record([Completion(ago(0), value=50)], "boolean") is None
        assert personal_record([], "counter") is None


class TestProjection:
    def test_counter_projection(self):
        # June 15th 2024 is day 167 of 366.
        history = [Completion(date(2024, 2, 1), value=167), Completion(date(2024, 5, 1), value=167)]
        history.append(Completion(date(2023, 5, 1), value=1000))
        projection = year_projection(history, "counter", 10, today=TODAY)
        assert projection.avg == "2.0"
        assert projection.total == 334 + 2 * 199

    def test_boolean_counts_successes_only(self):
        history = [Completion(date(2024, 1, 1) + timedelta(days=i)) for i in range(167)]
        history.append(Completion(date(2024, 1, 2), state="missed"))
        projection = year_projection(history, "boolean", 0, today=TODAY)
        assert projection.avg == "1.0"
        assert projection.total == 366

    def test_first_day_of_year(self):
        projection = year_projection([Completion(date(2023, 1, 1))], "boolean", 0, today=date(2023, 1, 1))
        assert projection.avg == "1.0"
        assert projection.total == 365

    def test_empty_history(self):
        projection = year_projection([], "counter", 10, today=TODAY)
        assert projection.as_dict() == {"total": 0, "avg": "0.0"}


class TestHeatmap:
    @pytest.mark.parametrize(
        ("value", "level"),
        [(10, 4), (15, 4), (7, 3), (7.5, 3), (5, 2), (1, 1), (0, 0)],
    )
    def test_counter_levels(self, value, level):
        assert heatmap_level(Completion(TODAY, value=value), "counter", 10) == level

    def test_missing_day_is_zero(self):
        assert heatmap_level(None, "counter", 10) == 0

    def test_zero_goal_counter(self):
        assert heatmap_level(Completion(TODAY, value=3), "counter", 0) == 4
        assert heatmap_level(Completion(TODAY, value=0), "counter", 0) == 0

    def test_boolean_levels(self):
        assert heatmap_level(Completion(TODAY, state="completed"), "boolean", 0) == 4
        assert heatmap_level(Completion(TODAY), "boolean", 0) == 4
        assert heatmap_level(Completion(TODAY, state="failed"), "boolean", 0) == 0

    def test_covers_every_day_of_year(self):
        cells = heatmap([Completion(date(2024, 2, 29), value=10)], "counter", 10, today=TODAY)
        assert len(cells) == 366
        assert cells[0]["date"] == "2024-01-01"
        assert cells[-1]["date"] == "2024-12-31"
        assert cells[59] == {"date": "2024-02-29", "level": 4}
        assert sum(cell["level"] for cell in cells) == 4

    def test_non_leap_year(self):
        assert len(heatmap([], "boolean", 0, today=date(2023, 5, 1))) == 365


class TestDetailExtras:
    def test_recent_progress_is_ascending_and_capped(self):
        history = [Completion(ago(i), value=i) for i in range(40)]
        series = recent_progress(history)
        assert len(series) == 30
        assert series[0]["date"] == ago(29).isoformat()
        assert series[-1] == {"date": TODAY.isoformat(), "value": 0}

    def test_step_detection_and_distance(self):
        assert is_step_habit("Steps")
        assert is_step_habit("pasos")
        assert not is_step_habit("pages")
        assert estimate_distance_km(10000, 170) == 7.04
        assert estimate_distance_km(0, 170) == 0.0

    def test_calendar_month_states(self):
        history = [
            Completion(date(2024, 6, 10), state="completed"),
            Completion(date(2024, 6, 11), state="failed"),
        ]
        days = calendar_month(history, "boolean", 0, 2024, 6, today=TODAY)
        by_date = {day["date"]: day for day in days}
        assert len(days) == 30
        assert by_date["2024-06-10"]["state"] == "completed"
        assert by_date["2024-06-11"]["state"] == "failed"
        assert by_date["2024-06-01"]["state"] == "missed"
        assert by_date["2024-06-15"]["state"] == "none"
        assert by_date["2024-06-20"]["state"] == "none"

    def test_calendar_month_counter_goal(self):
        history = [Completion(date(2024, 6, 1), value=12), Completion(date(2024, 6, 2), value=3)]
        days = calendar_month(history, "counter", 10, 2024, 6, today=TODAY)
        assert days[0]["state"] == "completed"
        assert days[0]["value"] == 12
        assert days[1]["state"] == "missed"


class TestComputeHabitStats:
    def test_boolean_payload(self):
        habit = {"id": 1, "type": "boolean", "goal": 0, "unit": ""}
        completions = [
            {"completed_date": ago(2).isoformat(), "state": "completed"},
            {"completed_date": ago(0).isoformat(), "state": "completed"},
            {"completed_date": ago(1).isoformat(), "state": "completed"},
        ]
        payload = compute_habit_stats(habit, completions, today=TODAY).as_dict()
        assert payload["currentStreak"] == 3
        assert payload["longestStreak"] == 3
        assert payload["rate7"] == 43
        assert payload["comparison7"]["infinite"] is True
        assert len(payload["dayOfWeek"]) == 7
        assert len(payload["monthly"]) == 12
        assert payload["monthly"][5]["count"] == 3
        assert payload["personalRecord"] is None
        assert len(payload["heatmap"]) == 366
        assert payload["totalCompletions"] == 3
        assert payload["distanceKm"] is None

    def test_counter_payload_with_steps(self):
        habit = {"id": 2, "type": "counter", "goal": 8000, "unit": "steps"}
        completions = [
            {"completed_date": ago(0).isoformat(), "value": 9000},
            {"completed_date": ago(1).isoformat(), "value": 1000},
        ]
        stats = compute_habit_stats(habit, completions, today=TODAY, height_cm=170)
        assert stats.current_streak == 1
        assert stats.personal_record.value == 9000
        assert stats.total_value == 10000
        assert stats.distance_km == 7.04
        levels = {cell["date"]: cell["level"] for cell in stats.heatmap}
        assert levels[ago(0).isoformat()] == 4
        assert levels[ago(1).isoformat()] == 1
        assert levels[ago(2).isoformat()] == 0

    def test_reads_completions_from_habit(self):
        habit = {"type": "boolean", "completions": [ago(1).isoformat(), ago(2).isoformat()]}
        stats = compute_habit_stats(habit, today=TODAY)
        assert stats.current_streak == 2

    def test_empty_history_defaults(self):
        payload = compute_habit_stats({"type": "counter", "goal": 5}, [], today=TODAY).as_dict()
        assert payload["currentStreak"] == 0
        assert payload["longestStreak"] == 0
        assert payload["rate7"] == 0
        assert payload["rate30"] == 0
        assert payload["personalRecord"] is None
        assert payload["projection"] == {"total": 0, "avg": "0.0"}
        assert payload["comparison30"] == {"change": 0, "trend": "equal", "infinite": False}
        assert all(cell["level"] == 0 for cell in payload["heatmap"])
