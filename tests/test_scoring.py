"""Tests for task scoring and stack ranking."""

import pytest
from datetime import datetime

from dayplanner.engine.scoring import (
    current_energy_band,
    duration_factor,
    energy_match_score,
    is_urgent_today,
    priority_score,
    score_task,
    stack_rank,
    urgency_score,
)
from dayplanner.models.config import SchedulingConfig, ScoreWeights, Strategy
from dayplanner.models.task import EnergyLevel, Priority, TaskKind


class TestSubScores:
    """Test the individual sub-scores."""

    def test_priority_score_averages_priority_and_kind(self, make_task):
        urgent_emergency = make_task("a", priority=Priority.URGENT, kind=TaskKind.EMERGENCY)
        low_subtask = make_task("b", priority=Priority.LOW, kind=TaskKind.SUBTASK)
        medium_normal = make_task("c", priority=Priority.MEDIUM, kind=TaskKind.NORMAL)

        assert priority_score(urgent_emergency) == 1.0
        assert priority_score(low_subtask) == pytest.approx(0.75 / 4)
        assert priority_score(medium_normal) == pytest.approx(1.5 / 4)

    @pytest.mark.parametrize("hour,expected", [(1, 1.0), (5, 0.8), (11, 0.6), (23, 0.4)])
    def test_urgency_same_day_buckets(self, make_task, plan_date, hour, expected):
        task = make_task("t", deadline=datetime(2024, 1, 15, hour, 30))
        assert urgency_score(task, plan_date) == expected

    @pytest.mark.parametrize("day,expected", [(16, 0.3), (17, 0.2), (20, 0.1), (25, 0.0)])
    def test_urgency_future_buckets(self, make_task, plan_date, day, expected):
        task = make_task("t", deadline=datetime(2024, 1, day, 12, 0))
        assert urgency_score(task, plan_date) == expected

    def test_urgency_without_deadline_is_zero(self, make_task, plan_date):
        assert urgency_score(make_task("t"), plan_date) == 0.0

    def test_overdue_task_saturates_urgency(self, make_task, plan_date):
        overdue = make_task("late", deadline=datetime(2024, 1, 14, 18, 0))
        assert urgency_score(overdue, plan_date) == 1.0

    def test_overdue_high_priority_counts_as_urgent_today(self, make_task, plan_date):
        overdue = make_task("overdue", priority=Priority.HIGH, deadline=datetime(2024, 1, 14, 12, 0))
        today = make_task("today", priority=Priority.HIGH, deadline=datetime(2024, 1, 15, 15, 0))
        urgent_later = make_task("urgent-later", priority=Priority.URGENT, deadline=datetime(2024, 1, 19, 9, 0))

        assert is_urgent_today(overdue, plan_date) is True
        ranked = stack_rank([urgent_later, today, overdue], plan_date)
        assert [t.id for t in ranked] == ["overdue", "today", "urgent-later"]

    def test_energy_match(self):
        assert energy_match_score(EnergyLevel.HIGH, EnergyLevel.HIGH) == 1.0
        assert energy_match_score(EnergyLevel.HIGH, EnergyLevel.MEDIUM) == 0.8
        assert energy_match_score(EnergyLevel.HIGH, EnergyLevel.LOW) == 0.5
        assert energy_match_score(EnergyLevel.LOW, EnergyLevel.MEDIUM) == 0.8

    def test_duration_factor_prefers_short_tasks(self, make_task):
        assert duration_factor(make_task("a", duration_min=30)) > duration_factor(make_task("b", duration_min=90))
        assert duration_factor(make_task("c", duration_min=400)) == 0.0

    def test_score_task_uses_strategy_weights(self, make_task, plan_date):
        task = make_task("t", priority=Priority.URGENT, kind=TaskKind.EMERGENCY, duration_min=180)
        config = SchedulingConfig(strategy=Strategy.PRIORITY_FOCUSED)
        score = score_task(task, plan_date, config, EnergyLevel.LOW)

        # priority 1.0, urgency 0, energy 0.8 (MEDIUM vs LOW), duration 0
        assert score.total == pytest.approx(0.5 * 1.0 + 0.1 * 0.8)

    def test_explicit_weights_override_preset(self, make_task, plan_date):
        task = make_task("t")
        config = SchedulingConfig(score_weights=ScoreWeights(priority=0, urgency=0, energy_match=1, duration=0))
        assert score_task(task, plan_date, config, EnergyLevel.MEDIUM).total == 1.0


class TestCurrentEnergyBand:
    def test_uses_now_on_the_plan_date(self, plan_date):
        config = SchedulingConfig()
        assert current_energy_band(plan_date, config, datetime(2024, 1, 15, 20, 0)) == EnergyLevel.LOW

    def test_falls_back_to_first_window(self, plan_date):
        config = SchedulingConfig(work_windows=[(14, 18)])
        assert current_energy_band(plan_date, config, datetime(2024, 1, 14, 20, 0)) == EnergyLevel.MEDIUM
        assert current_energy_band(plan_date, SchedulingConfig()) == EnergyLevel.HIGH


class TestStackRank:
    """Test stack_rank() ordering rules."""

    def test_inflexible_first(self, make_task, plan_date):
        flexible_urgent = make_task("flex", priority=Priority.URGENT)
        fixed_low = make_task("fixed", priority=Priority.LOW, flexible=False)

        ranked = stack_rank([flexible_urgent, fixed_low], plan_date)
        assert [t.id for t in ranked] == ["fixed", "flex"]

    def test_emergency_kind_before_priority(self, make_task, plan_date):
        urgent = make_task("urgent", priority=Priority.URGENT)
        emergency = make_task("emergency", priority=Priority.LOW, kind=TaskKind.EMERGENCY)

        assert [t.id for t in stack_rank([urgent, emergency], plan_date)] == ["emergency", "urgent"]

    def test_urgent_today_before_higher_priority(self, make_task, plan_date):
        urgent_no_deadline = make_task("urgent", priority=Priority.URGENT)
        high_due_today = make_task("high-today", priority=Priority.HIGH, deadline=datetime(2024, 1, 15, 17, 0))

        ranked = stack_rank([urgent_no_deadline, high_due_today], plan_date)
        assert [t.id for t in ranked] == ["high-today", "urgent"]

    def test_priority_then_deadline_then_no_deadline(self, make_task, plan_date):
        low = make_task("low", priority=Priority.LOW)
        medium_none = make_task("medium-none")
        medium_late = make_task("medium-late", deadline=datetime(2024, 1, 20, 9, 0))
        medium_soon = make_task("medium-soon", deadline=datetime(2024, 1, 17, 9, 0))
        high = make_task("high", priority=Priority.HIGH)

        ranked = stack_rank([low, medium_none, medium_late, medium_soon, high], plan_date)
        assert [t.id for t in ranked] == ["high", "medium-soon", "medium-late", "medium-none", "low"]

    def test_energy_distance_then_duration(self, make_task, plan_date):
        config = SchedulingConfig()
        now = datetime(2024, 1, 15, 9, 0)  # HIGH band
        low_energy = make_task("low-energy", energy_level=EnergyLevel.LOW, duration_min=10)
        high_long = make_task("high-long", energy_level=EnergyLevel.HIGH, duration_min=90)
        high_short = make_task("high-short", energy_level=EnergyLevel.HIGH, duration_min=20)

        ranked = stack_rank([low_energy, high_long, high_short], plan_date, config, now)
        assert [t.id for t in ranked] == ["high-short", "high-long", "low-energy"]

    def test_overdue_sorts_ahead_of_equal_priority(self, make_task, plan_date):
        on_time = make_task("on-time", deadline=datetime(2024, 1, 18, 12, 0))
        overdue = make_task("overdue", deadline=datetime(2024, 1, 14, 12, 0))

        ranked = stack_rank([on_time, overdue], plan_date)
        assert [t.id for t in ranked] == ["overdue", "on-time"]
        assert urgency_score(overdue, plan_date) == 1.0

    def test_ties_keep_input_order(self, make_task, plan_date):
        tasks = [make_task(f"t{i}") for i in range(5)]
        assert [t.id for t in stack_rank(tasks, plan_date)] == [f"t{i}" for i in range(5)]
        assert [t.id for t in stack_rank(list(reversed(tasks)), plan_date)] == [f"t{i}" for i in reversed(range(5))]

    def test_deterministic(self, make_task, plan_date):
        tasks = [
            make_task("a", priority=Priority.HIGH, duration_min=60),
            make_task("b", deadline=datetime(2024, 1, 15, 16, 0)),
            make_task("c", energy_level=EnergyLevel.LOW),
        ]
        assert stack_rank(tasks, plan_date) == stack_rank(tasks, plan_date)

    def test_is_urgent_today(self, make_task, plan_date):
        assert is_urgent_today(make_task("a", priority=Priority.HIGH, deadline=datetime(2024, 1, 15, 20, 0)), plan_date)
        assert not is_urgent_today(make_task("b", deadline=datetime(2024, 1, 15, 20, 0)), plan_date)
        assert not is_urgent_today(make_task("c", priority=Priority.URGENT, deadline=datetime(2024, 1, 16, 1, 0)), plan_date)
