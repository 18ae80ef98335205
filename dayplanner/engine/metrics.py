"""Quality metrics and advisory suggestions for a finished allocation."""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence

from dayplanner.engine.intervals import at_hour, day_bounds, localize, total_minutes
from dayplanner.engine.scoring import current_energy_band, urgency_score
from dayplanner.models.config import SchedulingConfig
from dayplanner.models.constants import (
    COMPLETION_RATE_THRESHOLD,
    DEFAULT_COMPLETION_RATE,
    DURATION_PRESSURE_BUCKETS,
    HIGH_COMPLETION_PRESSURE,
    HIGH_ENERGY_IN_BAND_PRESSURE,
    HIGH_ENERGY_OUT_OF_BAND_PRESSURE,
    LONG_TASK_PRESSURE,
    LOW_COMPLETION_PRESSURE,
    MAX_PRIORITY_BOOST,
    NEW_TASK_AGE_VALUE,
    OTHER_ENERGY_PRESSURE,
    PRIORITY_FACTOR_WEIGHTS,
    SAME_DAY_URGENCY_BUCKETS,
    SIGNIFICANT_FACTOR_VALUE,
    TASK_AGE_BUCKETS,
    TASK_KIND_PRESSURE,
)
from dayplanner.models.schedule import (
    Adjustment,
    AllocationResult,
    Metrics,
    PlannedItem,
    PlanningStats,
    PriorityAdjustment,
    PriorityFactor,
    TimeInterval,
)
from dayplanner.models.task import EnergyLevel, Priority, Task, TaskKind

logger = logging.getLogger(__name__)


def utilization(items: Sequence[PlannedItem], free_slots: Sequence[TimeInterval]) -> float:
    """Planned minutes as a percentage of free minutes (0 without free time)."""
    available = total_minutes(free_slots)
    if available <= 0:
        return 0.0
    return total_minutes(items) / available * 100


def energy_efficiency(
    items: Sequence[PlannedItem],
    tasks_by_id: Dict[str, Task],
    config: SchedulingConfig,
) -> float:
    """Share of planned items starting in their task's energy band."""
    if not items:
        return 0.0
    matched = 0
    for item in items:
        task = tasks_by_id.get(item.task_id)
        if task is not None and config.energy_bands.band_of(item.start.hour) == EnergyLevel(task.energy_level):
            matched += 1
    return matched / len(items) * 100


def priority_satisfaction(scheduled: Sequence[Task], unscheduled: Sequence[Task]) -> float:
    """Share of HIGH/URGENT tasks that got scheduled (100 if there are none)."""
    scheduled_high = sum(1 for task in scheduled if task.is_high_priority)
    total_high = scheduled_high + sum(1 for task in unscheduled if task.is_high_priority)
    if total_high == 0:
        return 100.0
    return scheduled_high / total_high * 100


def break_optimization(items: Sequence[PlannedItem], config: SchedulingConfig) -> float:
    """How well gaps beyond the padding add up to the expected breaks.

    Each consecutive pair of items is expected to leave ``break_minutes``
    of rest on top of the padding. Capped at 100; 100 with fewer than two
    items.
    """
    if len(items) < 2 or config.break_minutes == 0:
        return 100.0
    ordered = sorted(items, key=lambda item: item.start)
    padding = timedelta(minutes=config.padding_minutes)
    extra = timedelta(0)
    for previous, current in zip(ordered, ordered[1:]):
        extra += max(timedelta(0), current.start - previous.end - padding)
    expected = timedelta(minutes=config.break_minutes * (len(ordered) - 1))
    return min(100.0, extra / expected * 100)


def suggest_adjustments(
    items: Sequence[PlannedItem],
    tasks_by_id: Dict[str, Task],
    plan_date: date,
    config: SchedulingConfig,
) -> List[Adjustment]:
    """Propose moving energy-mismatched items to the nearest hour of their band.

    Suggestions are advisory; nothing is changed in the plan.
    """
    adjustments = []
    for item in items:
        task = tasks_by_id.get(item.task_id)
        if task is None:
            continue
        level = EnergyLevel(task.energy_level)
        if config.energy_bands.band_of(item.start.hour) == level:
            continue
        hours = config.energy_bands.hours_for(level)
        if not hours:
            continue
        nearest = min(hours, key=lambda h: (abs(h - item.start.hour), h))
        start = at_hour(plan_date, nearest, config.time_zone)
        adjustments.append(Adjustment(
            task_id=item.task_id,
            original=item.interval,
            suggested=TimeInterval(start=start, end=start + item.duration),
            reason=f"{level.value.capitalize()} energy task starts at {item.start:%H:%M}; "
                   f"{nearest:02d}:00 falls in its preferred hours",
        ))
    return adjustments

def suggest_priority_adjustments(
    tasks: Sequence[Task],
    plan_date: date,
    config: Optional[SchedulingConfig] = None,
    now: Optional[datetime] = None,
    completion_rates: Optional[Dict[TaskKind, float]] = None,
) -> List[PriorityAdjustment]:
    """Suggest raising the priority of tasks that keep gathering pressure.

    Each task is scored on six weighted factors (deadline urgency, completion
    rate of its kind, age, energy fit at ``now``, kind and duration). The
    weighted sum, times ``MAX_PRIORITY_BOOST`` and truncated, is how many
    levels the priority may rise. Priorities are never lowered and the tasks
    are not touched; the caller decides what to apply.

    ``now`` defaults to the start of the planning day. ``completion_rates``
    maps a kind to the share of its tasks finished on time; kinds without
    history use ``DEFAULT_COMPLETION_RATE``.
    """
    config = config or SchedulingConfig()
    reference = localize(now, config.time_zone) if now is not None else day_bounds(plan_date, config.time_zone)[0]
    band = current_energy_band(plan_date, config, now)
    rates = completion_rates or {}

    suggestions = []
    for task in tasks:
        factors = [
            _deadline_factor(task, plan_date, config),
            _completion_factor(task, rates),
            _age_factor(task, reference, config),
            _energy_factor(task, band),
            _kind_factor(task),
            _duration_factor(task),
        ]
        score = sum(factor.weight * factor.value for factor in factors)
        current = Priority(task.priority)
        boost = int(score * MAX_PRIORITY_BOOST)
        suggested_rank = max(0, current.rank - boost)
        if suggested_rank == current.rank:
            continue
        suggested = next(p for p in Priority if p.rank == suggested_rank)
        significant = [f"{f.name} ({f.impact})" for f in factors if f.value > SIGNIFICANT_FACTOR_VALUE]
        suggestions.append(PriorityAdjustment(
            task_id=task.id,
            current_priority=current,
            suggested_priority=suggested,
            score=round(score, 4),
            reason=", ".join(significant) if significant else "Overall score",
            factors=factors,
        ))
        logger.debug(f"Suggest {current.value} -> {suggested.value} for task {task.id} (score {score:.2f})")
    return suggestions


def _factor(name: str, value: float, impact: str) -> PriorityFactor:
    return PriorityFactor(name=name, weight=PRIORITY_FACTOR_WEIGHTS[name], value=value, impact=impact)


def _deadline_factor(task: Task, plan_date: date, config: SchedulingConfig) -> PriorityFactor:
    value = urgency_score(task, plan_date, config.time_zone)
    if task.deadline is None:
        impact = "no deadline"
    elif value >= SAME_DAY_URGENCY_BUCKETS[-1][1]:
        impact = "due by the end of the day"
    elif value > 0:
        impact = "due within a week"
    else:
        impact = "deadline is more than a week away"
    return _factor("deadline", value, impact)


def _completion_factor(task: Task, rates: Dict[TaskKind, float]) -> PriorityFactor:
    kind = TaskKind(task.kind)
    rate = rates.get(kind, DEFAULT_COMPLETION_RATE)
    value = LOW_COMPLETION_PRESSURE if rate < COMPLETION_RATE_THRESHOLD else HIGH_COMPLETION_PRESSURE
    return _factor("completion_rate", value, f"{rate:.0%} of {kind.value} tasks done on time")


def _age_factor(task: Task, reference: datetime, config: SchedulingConfig) -> PriorityFactor:
    if task.created_at is None:
        return _factor("age", NEW_TASK_AGE_VALUE, "creation time unknown")
    hours = (reference - localize(task.created_at, config.time_zone)) / timedelta(hours=1)
    for limit, value in TASK_AGE_BUCKETS:
        if hours > limit:
            return _factor("age", value, f"open for more than {limit} hours")
    return _factor("age", NEW_TASK_AGE_VALUE, "created within the last day")


def _energy_factor(task: Task, band: EnergyLevel) -> PriorityFactor:
    if EnergyLevel(task.energy_level) != EnergyLevel.HIGH:
        return _factor("energy", OTHER_ENERGY_PRESSURE, "no high energy needed")
    if band == EnergyLevel.HIGH:
        return _factor("energy", HIGH_ENERGY_IN_BAND_PRESSURE, "high energy hours are now")
    return _factor("energy", HIGH_ENERGY_OUT_OF_BAND_PRESSURE, "needs high energy outside its hours")


def _kind_factor(task: Task) -> PriorityFactor:
    kind = TaskKind(task.kind)
    return _factor("kind", TASK_KIND_PRESSURE[kind.value], f"{kind.value} task")


def _duration_factor(task: Task) -> PriorityFactor:
    for limit, value in DURATION_PRESSURE_BUCKETS:
        if task.duration_min < limit:
            return _factor("duration", value, f"shorter than {limit} minutes")
    return _factor("duration", LONG_TASK_PRESSURE, f"{task.duration_min} minutes long")



def planning_stats(scheduled: Sequence[Task], unscheduled: Sequence[Task]) -> PlanningStats:
    total = len(scheduled) + len(unscheduled)
    scheduled_minutes = sum(task.duration_min for task in scheduled)
    return PlanningStats(
        total_tasks=total,
        scheduled_tasks=len(scheduled),
        unscheduled_tasks=len(unscheduled),
        total_duration_min=scheduled_minutes + sum(task.duration_min for task in unscheduled),
        scheduled_duration_min=scheduled_minutes,
        scheduling_rate=len(scheduled) / total * 100 if total else 0.0,
    )


def compute_metrics(
    result: AllocationResult,
    free_slots: Sequence[TimeInterval],
    config: Optional[SchedulingConfig] = None,
) -> Metrics:
    """Derive utilization, energy efficiency, priority satisfaction and break quality."""
    config = config or SchedulingConfig()
    tasks_by_id = {task.id: task for task in result.scheduled_tasks}
    metrics = Metrics(
        utilization=round(utilization(result.planned_items, free_slots), 2),
        energy_efficiency=round(energy_efficiency(result.planned_items, tasks_by_id, config), 2),
        priority_satisfaction=round(priority_satisfaction(result.scheduled_tasks, result.unscheduled_tasks), 2),
        break_optimization=round(break_optimization(result.planned_items, config), 2),
    )
    logger.debug(f"Metrics for {result.plan_date}: {metrics.model_dump()}")
    return metrics
