"""Boundary operations of the dayplanner engine.

Every entry point takes the time it should consider "now" and the time zone
explicitly (via ``SchedulingConfig.time_zone``); nothing reads a global clock.
Inputs are validated here and copied; callers' collections are never mutated.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from dayplanner.engine import intervals
from dayplanner.engine.allocator import allocate
from dayplanner.engine.conflicts import (
    detect_energy_mismatches,
    detect_priority_violations,
    plan_with_resolver,
)
from dayplanner.engine.emergency import EmergencyInserter
from dayplanner.engine.intervals import is_sorted_disjoint, localize, work_windows_for
from dayplanner.engine.metrics import (
    compute_metrics,
    planning_stats,
    suggest_adjustments,
    suggest_priority_adjustments,
)
from dayplanner.engine.scoring import score_tasks, stack_rank
from dayplanner.models.config import SchedulingConfig
from dayplanner.models.constants import DEFAULT_MIN_SLOT_MINUTES
from dayplanner.models.schedule import (
    AllocationResult,
    InsertionResult,
    PlannedItem,
    TimeInterval,
)
from dayplanner.models.task import Task

logger = logging.getLogger(__name__)

__all__ = [
    "compute_free_slots",
    "generate_plan",
    "insert_emergency_task",
    "compute_metrics",
    "suggest_priority_adjustments",
]


def compute_free_slots(
    work_windows: Iterable[TimeInterval],
    blocked: Iterable[TimeInterval],
    min_slot_minutes: int = DEFAULT_MIN_SLOT_MINUTES,
) -> List[TimeInterval]:
    """Free intervals of the day: work windows minus blocked time.

    Raises:
        ValueError: if the work windows overlap each other
    """
    slots = intervals.compute_free_slots(work_windows, blocked, min_slot_minutes)
    if not is_sorted_disjoint(slots):
        raise ValueError("work windows must not overlap")
    return slots


def generate_plan(
    plan_date: date,
    tasks: Sequence[Task],
    blocked: Sequence[TimeInterval],
    config: Optional[SchedulingConfig] = None,
    *,
    now: Optional[datetime] = None,
    existing_plan: Optional[Sequence[PlannedItem]] = None,
) -> AllocationResult:
    """Plan a day.

    Ranks the tasks, computes free intervals from the configured work windows
    minus ``blocked``, and assigns tasks greedily. Tasks that do not fit end
    up in ``unscheduled_tasks``; that is a normal outcome, not an error.

    With ``existing_plan`` the committed items stay where they are: tasks
    that already have an item of the right length keep it, and the remaining
    tasks are placed around them by the conflict resolver. Items of tasks
    that are not being planned are ignored.

    Args:
        plan_date: Day to plan
        tasks: Pending tasks (read-only)
        blocked: Fixed obstacles such as classes or meetings
        config: Scheduling configuration (defaults if omitted)
        now: Explicit current time, used to pick the current energy band
        existing_plan: Already committed plan items for the day

    Returns:
        AllocationResult holding every input task exactly once

    Raises:
        ValueError: on duplicate task ids or inconsistent datetimes
    """
    config = config or SchedulingConfig()
    tasks = list(tasks)
    _check_unique_ids(tasks)
    _check_datetimes(config, tasks, blocked, existing_plan or (), now)

    blocked = [_localize_interval(b, config.time_zone) for b in blocked]
    windows = work_windows_for(plan_date, config.work_windows, config.time_zone)
    free_slots = compute_free_slots(windows, blocked, config.min_slot_minutes)

    ranked = stack_rank(tasks, plan_date, config, now)

    if existing_plan is None:
        outcome = allocate(ranked, free_slots, plan_date, config)
        planned, scheduled = outcome.planned_items, outcome.scheduled_tasks
        unscheduled, conflicts = outcome.unscheduled_tasks, outcome.conflicts
    else:
        kept, pending = _split_committed(ranked, existing_plan, plan_date, config)
        placed, unscheduled, conflicts = plan_with_resolver(pending, free_slots, kept, plan_date, config)
        planned = kept + placed
        placed_ids = {item.task_id for item in planned}
        scheduled = [task for task in ranked if task.id in placed_ids]

    tasks_by_id = {task.id: task for task in tasks}
    planned = sorted(planned, key=lambda item: (item.start, item.task_id))
    conflicts = (
        list(conflicts)
        + detect_energy_mismatches(planned, tasks_by_id, config)
        + detect_priority_violations(planned, unscheduled, tasks_by_id)
    )

    result = AllocationResult(
        plan_date=plan_date,
        strategy=config.strategy,
        planned_items=planned,
        unscheduled_tasks=unscheduled,
        scheduled_tasks=scheduled,
        free_slots=free_slots,
        scores=score_tasks(ranked, plan_date, config, now),
        conflicts=conflicts,
        adjustments=suggest_adjustments(planned, tasks_by_id, plan_date, config),
        priority_adjustments=suggest_priority_adjustments(ranked, plan_date, config, now),
        stats=planning_stats(scheduled, unscheduled),
    )
    result = result.model_copy(update={"metrics": compute_metrics(result, free_slots, config)})

    logger.info(
        f"Planned {plan_date} ({result.strategy.value}): {len(planned)} scheduled, "
        f"{len(unscheduled)} unscheduled, utilization {result.metrics.utilization}%"
    )
    return result


def insert_emergency_task(
    task: Task,
    current_plan: Sequence[PlannedItem],
    blocked: Sequence[TimeInterval],
    config: Optional[SchedulingConfig] = None,
    *,
    plan_tasks: Sequence[Task] = (),
    plan_date: Optional[date] = None,
) -> InsertionResult:
    """Insert an urgent task into an existing plan with minimal disruption.

    ``plan_tasks`` are the tasks behind ``current_plan``; their priorities
    decide which item may be displaced. The planning date defaults to that
    of the first plan item.

    Raises:
        ValueError: if no planning date can be determined, the task is
            already planned, or datetimes are inconsistent
    """
    config = config or SchedulingConfig()
    if plan_date is None:
        if not current_plan:
            raise ValueError("plan_date is required when the current plan is empty")
        plan_date = current_plan[0].plan_date
    _check_datetimes(config, [task, *plan_tasks], blocked, current_plan, None)

    inserter = EmergencyInserter(
        plan_date,
        [_localize_item(item, config.time_zone) for item in current_plan],
        [_localize_interval(b, config.time_zone) for b in blocked],
        config,
        plan_tasks=plan_tasks,
    )
    return inserter.insert(task)


def _check_unique_ids(tasks: Sequence[Task]) -> None:
    seen = set()
    for task in tasks:
        if task.id in seen:
            raise ValueError(f"duplicate task id: {task.id}")
        seen.add(task.id)


def _check_datetimes(
    config: SchedulingConfig,
    tasks: Sequence[Task],
    blocked: Sequence[TimeInterval],
    plan: Sequence[PlannedItem],
    now: Optional[datetime],
) -> None:
    """Without a configured time zone every datetime has to be naive."""
    if config.time_zone is not None:
        return
    values = [dt for task in tasks for dt in (task.deadline, task.created_at) if dt is not None]
    values += [dt for b in blocked for dt in (b.start, b.end)]
    values += [dt for item in plan for dt in (item.start, item.end)]
    if now is not None:
        values.append(now)
    if any(dt.tzinfo is not None for dt in values):
        raise ValueError("timezone-aware datetimes require SchedulingConfig.time_zone")


def _localize_interval(interval: TimeInterval, time_zone: Optional[str]) -> TimeInterval:
    if time_zone is None:
        return interval
    return interval.model_copy(update={
        "start": localize(interval.start, time_zone),
        "end": localize(interval.end, time_zone),
    })


def _localize_item(item: PlannedItem, time_zone: Optional[str]) -> PlannedItem:
    if time_zone is None:
        return item
    return item.model_copy(update={
        "start": localize(item.start, time_zone),
        "end": localize(item.end, time_zone),
    })


def _split_committed(
    ranked: Sequence[Task],
    existing_plan: Sequence[PlannedItem],
    plan_date: date,
    config: SchedulingConfig,
) -> Tuple[List[PlannedItem], List[Task]]:
    """Committed items to keep as they are, and the tasks still to place.

    An item is kept only for an input task whose duration it still matches.
    Items of tasks outside the input are dropped and block nothing.
    """
    committed_by_id = {
        item.task_id: _localize_item(item, config.time_zone) for item in existing_plan
    }
    kept: List[PlannedItem] = []
    pending: List[Task] = []
    for task in ranked:
        item = committed_by_id.pop(task.id, None)
        if item is not None and item.duration == timedelta(minutes=task.duration_min):
            kept.append(item.model_copy(update={"plan_date": plan_date}))
            continue
        if item is not None:
            logger.debug(f"Committed item of task {task.id} no longer matches its duration; placing it again")
        pending.append(task)
    if committed_by_id:
        logger.debug(f"Ignoring committed items of tasks not being planned: {sorted(committed_by_id)}")
    return kept, pending
