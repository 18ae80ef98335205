"""Task scoring and stack ranking for dayplanner.

Computes a composite score per task (priority, deadline urgency, energy
match and duration) and the deterministic total order used by allocation.
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from dayplanner.engine.intervals import day_bounds, localize
from dayplanner.models.config import SchedulingConfig
from dayplanner.models.constants import (
    MAX_PRIORITY_SCORE,
    DURATION_FACTOR_CAP_MINUTES,
    SAME_DAY_URGENCY_BUCKETS,
    FUTURE_URGENCY_BUCKETS,
    OVERDUE_URGENCY_SCORE,
    ENERGY_MATCH_SCORES,
    ENERGY_MISMATCH_FLOOR,
)
from dayplanner.models.schedule import TaskScore
from dayplanner.models.task import EnergyLevel, Priority, Task, TaskKind

logger = logging.getLogger(__name__)


def priority_score(task: Task) -> float:
    """Average of priority value and kind weight, normalized to [0, 1]."""
    raw = (Priority(task.priority).value_score + TaskKind(task.kind).weight) / 2
    return min(1.0, raw / MAX_PRIORITY_SCORE)


def urgency_score(task: Task, plan_date: date, time_zone: Optional[str] = None) -> float:
    """Score deadline urgency relative to the start of the planning day.

    Deadlines inside the day are bucketed by hours from day start, later
    deadlines by days after the day ends. Overdue tasks saturate at the top
    bucket; tasks without a deadline score 0.
    """
    if task.deadline is None:
        return 0.0

    day_start, day_end = day_bounds(plan_date, time_zone)
    deadline = localize(task.deadline, time_zone)

    if deadline < day_start:
        return OVERDUE_URGENCY_SCORE

    if deadline < day_end:
        hours = (deadline - day_start) / timedelta(hours=1)
        for limit, score in SAME_DAY_URGENCY_BUCKETS:
            if hours < limit:
                return score
        return SAME_DAY_URGENCY_BUCKETS[-1][1]

    days = (deadline - day_end) / timedelta(days=1)
    for limit, score in FUTURE_URGENCY_BUCKETS:
        if days < limit:
            return score
    return 0.0


def energy_match_score(task_level: EnergyLevel, band: EnergyLevel) -> float:
    """1.0 for the same band, 0.8 adjacent, 0.5 two apart."""
    distance = EnergyLevel(task_level).distance(band)
    if distance < len(ENERGY_MATCH_SCORES):
        return ENERGY_MATCH_SCORES[distance]
    return ENERGY_MISMATCH_FLOOR


def duration_factor(task: Task) -> float:
    """Shorter tasks score higher; anything past the cap scores 0."""
    capped = min(task.duration_min, DURATION_FACTOR_CAP_MINUTES)
    return 1.0 - capped / DURATION_FACTOR_CAP_MINUTES


def current_energy_band(
    plan_date: date,
    config: SchedulingConfig,
    now: Optional[datetime] = None,
) -> EnergyLevel:
    """Energy band the planning starts in.

    Uses ``now`` when it falls on the planning date, otherwise the start of
    the first work window.
    """
    if now is not None:
        local_now = localize(now, config.time_zone)
        if local_now.date() == plan_date:
            return config.energy_bands.band_of(local_now.hour)
    if config.work_windows:
        return config.energy_bands.band_of(config.work_windows[0][0])
    return EnergyLevel.MEDIUM


def is_urgent_today(task: Task, plan_date: date, time_zone: Optional[str] = None) -> bool:
    """HIGH/URGENT task due before the planning day ends, overdue ones included."""
    if not task.is_high_priority or task.deadline is None:
        return False
    _, day_end = day_bounds(plan_date, time_zone)
    return localize(task.deadline, time_zone) < day_end


def score_task(
    task: Task,
    plan_date: date,
    config: SchedulingConfig,
    band: EnergyLevel,
) -> TaskScore:
    """Compute all sub-scores and the weighted composite for one task."""
    weights = config.weights
    p = priority_score(task)
    u = urgency_score(task, plan_date, config.time_zone)
    e = energy_match_score(task.energy_level, band)
    d = duration_factor(task)
    total = p * weights.priority + u * weights.urgency + e * weights.energy_match + d * weights.duration
    return TaskScore(task_id=task.id, priority=p, urgency=u, energy_match=e, duration=d, total=round(total, 6))


def score_tasks(
    tasks: Sequence[Task],
    plan_date: date,
    config: SchedulingConfig,
    now: Optional[datetime] = None,
) -> List[TaskScore]:
    band = current_energy_band(plan_date, config, now)
    return [score_task(task, plan_date, config, band) for task in tasks]


def stack_rank(
    tasks: Sequence[Task],
    plan_date: date,
    config: Optional[SchedulingConfig] = None,
    now: Optional[datetime] = None,
) -> List[Task]:
    """Stack-rank tasks for allocation.

    Tasks are sorted lexicographically by:
    1. Inflexible before flexible
    2. EMERGENCY kind before all others
    3. Urgent-today (HIGH/URGENT due within the day) before others
    4. Priority (URGENT first)
    5. Deadline ascending, tasks without a deadline last
    6. Distance from the current energy band
    7. Duration ascending

    Python's sort is stable, so equal tasks keep their input order. This
    function is deterministic - same inputs always produce same outputs.

    Args:
        tasks: Tasks to rank
        plan_date: Day being planned
        config: Scheduling configuration (defaults if omitted)
        now: Explicit current time, used only to pick the current energy band

    Returns:
        New list of tasks, highest rank first
    """
    config = config or SchedulingConfig()
    band = current_energy_band(plan_date, config, now)
    ranked = sorted(tasks, key=lambda task: _rank_key(task, plan_date, config, band))
    logger.debug(f"Ranked {len(ranked)} tasks for {plan_date} (current band {EnergyLevel(band).value})")
    return ranked


def _rank_key(task: Task, plan_date: date, config: SchedulingConfig, band: EnergyLevel) -> tuple:
    return (
        0 if not task.flexible else 1,
        0 if task.kind == TaskKind.EMERGENCY else 1,
        0 if is_urgent_today(task, plan_date, config.time_zone) else 1,
        Priority(task.priority).rank,
        _deadline_sort_key(task, plan_date, config.time_zone),
        EnergyLevel(task.energy_level).distance(band),
        task.duration_min,
    )


def _deadline_sort_key(task: Task, plan_date: date, time_zone: Optional[str]) -> Tuple[int, datetime]:
    """Tasks with deadlines come before those without; earlier deadlines first."""
    if task.deadline is not None:
        return (0, localize(task.deadline, time_zone))
    # Placeholder of the same type; never compared against a real deadline
    day_start, _ = day_bounds(plan_date, time_zone)
    return (1, day_start)
