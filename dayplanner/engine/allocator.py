"""Greedy slot allocation for dayplanner.

Places stack-ranked tasks into free intervals in a single pass. Each task
goes into the first interval that can hold it plus padding; the interval is
then replaced by whatever usable fragments remain. Tasks that fit nowhere are
reported as unscheduled and the allocator moves on (it never backtracks).
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from dayplanner.engine.conflicts import ConflictResolver
from dayplanner.engine.intervals import at_hour, localize
from dayplanner.models.config import SchedulingConfig, Strategy
from dayplanner.models.constants import (
    BALANCED_CONFIDENCE,
    ENERGY_MATCHED_CONFIDENCE,
    ENERGY_FALLBACK_CONFIDENCE,
    FLEXIBLE_CONFIDENCE,
    NO_DEADLINE_CONFIDENCE,
)
from dayplanner.models.schedule import Conflict, PlannedItem, TimeInterval
from dayplanner.models.task import EnergyLevel, Priority, Task

logger = logging.getLogger(__name__)

# Confidence by hours left between start and deadline
DEADLINE_CONFIDENCE_BUCKETS = [(1, 1.0), (2, 0.9), (4, 0.8), (8, 0.7), (12, 0.6), (24, 0.5)]


class AllocationOutcome:
    """Result of a single allocation pass."""

    def __init__(self):
        self.planned_items: List[PlannedItem] = []
        self.scheduled_tasks: List[Task] = []
        self.unscheduled_tasks: List[Task] = []
        self.conflicts: List[Conflict] = []
        self.remaining_slots: List[TimeInterval] = []


def allocate(
    ordered_tasks: Sequence[Task],
    free_slots: Sequence[TimeInterval],
    plan_date: date,
    config: SchedulingConfig,
) -> AllocationOutcome:
    """Assign tasks, in the given order, to free intervals.

    Args:
        ordered_tasks: Tasks in stack-ranked order
        free_slots: Sorted, non-overlapping free intervals of the day
        plan_date: Day being planned
        config: Scheduling configuration (strategy, padding, breaks)

    Returns:
        AllocationOutcome with planned items and unscheduled tasks
    """
    outcome = AllocationOutcome()
    strategy = Strategy(config.strategy)
    padding = timedelta(minutes=config.padding_minutes)
    min_slot = timedelta(minutes=config.min_slot_minutes)
    break_gap = max(padding, timedelta(minutes=config.break_minutes))

    # Rebuilt as a new tuple after every placement instead of spliced in place
    slots: Tuple[TimeInterval, ...] = tuple(free_slots)
    resolver = ConflictResolver(minimum_gap_minutes=config.padding_minutes, max_attempts=1)

    for task in ordered_tasks:
        duration = timedelta(minutes=task.duration_min)
        index, start, matched, slots = _place_with_rest(
            task, slots, duration, outcome.planned_items, plan_date, config, strategy, break_gap
        )

        if index is None:
            outcome.unscheduled_tasks.append(task)
            logger.debug(f"No slot for task {task.id} ({task.duration_min} min)")
            continue

        end = start + duration
        conflict = resolver.check(task.id, start, end)
        if conflict is not None:
            outcome.conflicts.append(conflict)
            outcome.unscheduled_tasks.append(task)
            logger.debug(f"Rejected placement of task {task.id}: {conflict.suggested_resolution}")
            continue
        resolver.occupy(start, end, task.id)

        run = _continuous_minutes(outcome.planned_items, start, padding) + task.duration_min
        trailing = padding
        if run >= config.max_continuous_work_minutes:
            trailing = break_gap

        slot = slots[index]
        fragments = []
        if start - padding - slot.start >= min_slot:
            fragments.append(TimeInterval(start=slot.start, end=start - padding))
        if slot.end - (end + trailing) >= min_slot:
            fragments.append(TimeInterval(start=end + trailing, end=slot.end))
        slots = slots[:index] + tuple(fragments) + slots[index + 1:]

        confidence, reason = _explain(task, start, matched, strategy, config)
        outcome.planned_items.append(PlannedItem(
            task_id=task.id,
            plan_date=plan_date,
            start=start,
            end=end,
            confidence=confidence,
            reason=reason,
        ))
        outcome.scheduled_tasks.append(task)
        logger.debug(f"Placed task {task.id} at {start:%H:%M}-{end:%H:%M}")

    outcome.remaining_slots = list(slots)
    return outcome


def _place_with_rest(
    task: Task,
    slots: Tuple[TimeInterval, ...],
    duration: timedelta,
    planned: Sequence[PlannedItem],
    plan_date: date,
    config: SchedulingConfig,
    strategy: Strategy,
    break_gap: timedelta,
) -> Tuple[Optional[int], Optional[datetime], bool, Tuple[TimeInterval, ...]]:
    """Choose a placement that does not stretch a work chain past the limit.

    Under ENERGY_AWARE, when the chain ending right before the chosen start
    plus the task would exceed ``max_continuous_work_minutes``, the slot is
    cut to start after a break and the choice is made again. The other
    strategies only rest once a chain has reached the limit. Returns the
    placement together with the slots it refers to.
    """
    padding = timedelta(minutes=config.padding_minutes)
    min_slot = timedelta(minutes=config.min_slot_minutes)
    original = slots
    while True:
        index, start, matched = _choose_placement(task, slots, duration, plan_date, config, strategy)
        if index is None:
            return None, None, False, original
        if strategy != Strategy.ENERGY_AWARE:
            return index, start, matched, slots
        chain = _continuous_minutes(planned, start, padding)
        if chain == 0 or chain + task.duration_min <= config.max_continuous_work_minutes:
            return index, start, matched, slots
        chain_end = max(item.end for item in planned if start - padding <= item.end <= start)
        rested = chain_end + break_gap
        if rested <= start:
            return index, start, matched, slots
        slot = slots[index]
        cut = (TimeInterval(start=rested, end=slot.end),) if slot.end - rested >= min_slot else ()
        slots = slots[:index] + cut + slots[index + 1:]


def _choose_placement(
    task: Task,
    slots: Sequence[TimeInterval],
    duration: timedelta,
    plan_date: date,
    config: SchedulingConfig,
    strategy: Strategy,
) -> Tuple[Optional[int], Optional[datetime], bool]:
    """Pick (slot index, start, energy matched) for a task, or (None, None, False)."""
    padding = timedelta(minutes=config.padding_minutes)
    fitting = [i for i, slot in enumerate(slots) if slot.duration >= duration + padding]
    if not fitting:
        return None, None, False

    if strategy == Strategy.ENERGY_AWARE:
        for i in fitting:
            start, matched = energy_start(task, slots[i], duration, plan_date, config)
            if matched:
                return i, start, True
        start, _ = energy_start(task, slots[fitting[0]], duration, plan_date, config)
        return fitting[0], start, False

    if strategy == Strategy.DEADLINE_DRIVEN and task.deadline is not None:
        deadline = localize(task.deadline, config.time_zone)
        for i in fitting:
            if slots[i].start + duration <= deadline:
                return i, slots[i].start, False

    slot = slots[fitting[0]]
    if strategy == Strategy.BALANCED and task.energy_level == EnergyLevel.HIGH:
        start, matched = energy_start(task, slot, duration, plan_date, config)
        return fitting[0], start, matched
    return fitting[0], slot.start, False


def energy_start(
    task: Task,
    slot: TimeInterval,
    duration: timedelta,
    plan_date: date,
    config: SchedulingConfig,
) -> Tuple[datetime, bool]:
    """Start inside ``slot`` nearest to the task's preferred energy hours.

    The start is clamped to ``[slot.start, slot.end - duration]`` so the task
    always stays inside the slot. Returns (start, whether it lands in band).
    """
    level = EnergyLevel(task.energy_level)
    bands = config.energy_bands
    latest = max(slot.start, slot.end - duration)

    if bands.band_of(slot.start.hour) == level:
        return slot.start, True

    hours = bands.hours_for(level)
    if not hours:
        return slot.start, False

    candidates = sorted(hours, key=lambda h: (abs(h - slot.start.hour), h))
    for hour in candidates:
        start = min(max(at_hour(plan_date, hour, config.time_zone), slot.start), latest)
        if bands.band_of(start.hour) == level:
            return start, True

    start = min(max(at_hour(plan_date, candidates[0], config.time_zone), slot.start), latest)
    return start, False


def _continuous_minutes(planned: Sequence[PlannedItem], start: datetime, padding: timedelta) -> int:
    """Minutes of back-to-back work ending right before ``start``."""
    total = 0
    cursor = start
    while True:
        previous = next(
            (item for item in planned if cursor - padding <= item.end <= cursor),
            None,
        )
        if previous is None:
            return total
        total += int(previous.duration.total_seconds() // 60)
        cursor = previous.start


def _explain(
    task: Task,
    start: datetime,
    matched: bool,
    strategy: Strategy,
    config: SchedulingConfig,
) -> Tuple[float, str]:
    """Confidence and human-readable reason for a placement."""
    if strategy == Strategy.PRIORITY_FOCUSED:
        return _priority_confidence(task, start, config), "Priority-focused allocation"

    if strategy == Strategy.ENERGY_AWARE:
        level = EnergyLevel(task.energy_level).value
        if matched:
            return ENERGY_MATCHED_CONFIDENCE, f"Energy-aware: matched {level} energy hours"
        return ENERGY_FALLBACK_CONFIDENCE, "Energy-aware: fallback slot"

    if strategy == Strategy.DEADLINE_DRIVEN:
        if task.deadline is None:
            return NO_DEADLINE_CONFIDENCE, "Deadline-driven: no deadline"
        hours_left = (localize(task.deadline, config.time_zone) - start) / timedelta(hours=1)
        return _deadline_confidence(hours_left), f"Deadline-driven: {hours_left:.1f}h before deadline"

    if strategy == Strategy.FLEXIBLE:
        return FLEXIBLE_CONFIDENCE, "Flexible allocation"

    if matched:
        return BALANCED_CONFIDENCE, "Balanced allocation in high energy hours"
    return BALANCED_CONFIDENCE, "Balanced allocation"


def _priority_confidence(task: Task, start: datetime, config: SchedulingConfig) -> float:
    confidence = 0.7
    if task.priority == Priority.URGENT:
        confidence += 0.2
    elif task.priority == Priority.HIGH:
        confidence += 0.1
    if task.deadline is not None:
        hours_left = (localize(task.deadline, config.time_zone) - start) / timedelta(hours=1)
        if hours_left < 24:
            confidence += 0.1
        elif hours_left < 48:
            confidence += 0.05
    return min(1.0, round(confidence, 6))


def _deadline_confidence(hours_left: float) -> float:
    if hours_left < 0:
        return 0.0
    for limit, confidence in DEADLINE_CONFIDENCE_BUCKETS:
        if hours_left < limit:
            return confidence
    return 0.4
