"""Emergency task insertion for dayplanner.

Tries three escalating strategies against an existing plan and stops at the
first that succeeds:

1. DIRECT - a free gap already holds the task; nothing moves.
2. DISPLACEMENT - drop exactly one LOW/MEDIUM item of lower priority than the
   incoming task to open a gap, choosing the item whose removal has the
   lowest impact.
3. FORCED - take the start of the earliest work window regardless of what is
   planned there; the caller is expected to re-plan afterwards.

An infeasible insertion is a result with ``success=False``, never an exception.
"""

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from dayplanner.engine.intervals import compute_free_slots, work_windows_for
from dayplanner.models.config import SchedulingConfig
from dayplanner.models.constants import (
    DISPLACEMENT_IMPACT_WEIGHTS,
    DISPLACEMENT_IMPACT_DEFAULT,
    FORCED_INSERTION_IMPACT,
)
from dayplanner.models.schedule import (
    InsertionResult,
    InsertionStrategy,
    PlannedItem,
    TimeInterval,
)
from dayplanner.models.task import Priority, Task

logger = logging.getLogger(__name__)

DISPLACEABLE_PRIORITIES = (Priority.LOW, Priority.MEDIUM)


def displacement_impact(task: Optional[Task]) -> float:
    """Cost of postponing ``task``; unknown tasks get the default weight."""
    if task is None:
        return DISPLACEMENT_IMPACT_DEFAULT
    return DISPLACEMENT_IMPACT_WEIGHTS.get(Priority(task.priority).value, DISPLACEMENT_IMPACT_DEFAULT)


class EmergencyInserter:
    """Places one emergency task into an existing plan for a date."""

    def __init__(
        self,
        plan_date: date,
        current_plan: Sequence[PlannedItem],
        blocked: Sequence[TimeInterval],
        config: SchedulingConfig,
        plan_tasks: Sequence[Task] = (),
    ):
        self.plan_date = plan_date
        self.original_plan = list(current_plan)
        self.current_plan = _sorted_plan(self.original_plan)
        self.blocked = list(blocked)
        self.config = config
        self.tasks_by_id: Dict[str, Task] = {task.id: task for task in plan_tasks}
        self.windows = work_windows_for(plan_date, config.work_windows, config.time_zone)
        self.padding = timedelta(minutes=config.padding_minutes)

    def insert(self, task: Task) -> InsertionResult:
        if any(item.task_id == task.id for item in self.current_plan):
            raise ValueError(f"task {task.id} is already in the plan")

        for attempt in (self._direct, self._displace, self._force):
            result = attempt(task)
            if result is not None:
                logger.info(f"Emergency task {task.id} inserted via {result.strategy.value}: {result.message}")
                return result

        logger.info(f"Emergency task {task.id} could not be inserted on {self.plan_date}")
        return InsertionResult(
            success=False,
            adjusted_plan=list(self.original_plan),
            message=f"No room for {task.duration_min} minutes on {self.plan_date}, even after displacement",
        )

    def _occupied(self, items: Sequence[PlannedItem]) -> List[TimeInterval]:
        """Blocked time plus plan items widened by the padding on each side."""
        padded = [
            TimeInterval(start=item.start - self.padding, end=item.end + self.padding)
            for item in items
        ]
        return self.blocked + padded

    def _frame(self, items: Sequence[PlannedItem]) -> List[TimeInterval]:
        return compute_free_slots(self.windows, self._occupied(items), min_slot_minutes=0)

    def _item(self, task: Task, start, confidence: float, reason: str) -> PlannedItem:
        return PlannedItem(
            task_id=task.id,
            plan_date=self.plan_date,
            start=start,
            end=start + timedelta(minutes=task.duration_min),
            confidence=confidence,
            reason=reason,
        )

    def _direct(self, task: Task) -> Optional[InsertionResult]:
        duration = timedelta(minutes=task.duration_min)
        for gap in self._frame(self.current_plan):
            if gap.duration >= duration:
                item = self._item(task, gap.start, 1.0, "Emergency: placed in a free gap")
                return InsertionResult(
                    success=True,
                    adjusted_plan=_sorted_plan(self.current_plan + [item]),
                    message=f"Placed at {gap.start:%H:%M} without moving other tasks",
                    strategy=InsertionStrategy.DIRECT,
                    impact_score=0.0,
                    inserted_item=item,
                )
        return None

    def _displace(self, task: Task) -> Optional[InsertionResult]:
        best: Optional[Tuple[float, PlannedItem, PlannedItem]] = None
        for candidate in self.current_plan:
            victim = self.tasks_by_id.get(candidate.task_id)
            if not _may_displace(task, victim):
                continue

            start = self._start_in_opened_gap(task, candidate)
            if start is None:
                continue

            impact = displacement_impact(victim)
            # strict comparison keeps the earliest item on ties
            if best is None or impact < best[0]:
                best = (impact, candidate, self._item(task, start, 0.8, f"Emergency: displaced {candidate.task_id}"))

        if best is None:
            return None

        impact, removed, item = best
        remaining = [i for i in self.current_plan if i is not removed]
        postponed = self.tasks_by_id.get(removed.task_id)
        return InsertionResult(
            success=True,
            adjusted_plan=_sorted_plan(remaining + [item]),
            postponed_tasks=[postponed] if postponed is not None else [],
            postponed_task_ids=[removed.task_id],
            message=f"Placed at {item.start:%H:%M} by postponing {removed.task_id}",
            strategy=InsertionStrategy.DISPLACEMENT,
            impact_score=impact,
            inserted_item=item,
        )

    def _start_in_opened_gap(self, task: Task, removed: PlannedItem):
        """Start inside the gap left by ``removed``, or None if the task does not fit."""
        duration = timedelta(minutes=task.duration_min)
        others = [i for i in self.current_plan if i is not removed]
        for gap in self._frame(others):
            if not gap.overlaps(removed.start, removed.end):
                continue
            start = max(gap.start, min(removed.start, gap.end - duration))
            if start + duration <= gap.end:
                return start
        return None

    def _force(self, task: Task) -> Optional[InsertionResult]:
        if not self.windows:
            return None
        window = self.windows[0]
        if window.duration < timedelta(minutes=task.duration_min):
            return None
        item = self._item(task, window.start, 0.5, "Emergency: forced into the first work window")
        return InsertionResult(
            success=True,
            adjusted_plan=_sorted_plan(self.current_plan + [item]),
            message=f"Forced in at {window.start:%H:%M}; re-plan the rest of the day",
            strategy=InsertionStrategy.FORCED,
            impact_score=FORCED_INSERTION_IMPACT,
            inserted_item=item,
            requires_replan=True,
        )


def _may_displace(task: Task, victim: Optional[Task]) -> bool:
    """LOW/MEDIUM items strictly below the incoming task's priority; unknown items always."""
    if victim is None:
        return True
    victim_priority = Priority(victim.priority)
    return victim_priority in DISPLACEABLE_PRIORITIES and victim_priority.rank > Priority(task.priority).rank

def _sorted_plan(items: Sequence[PlannedItem]) -> List[PlannedItem]:
    return sorted(items, key=lambda item: (item.start, item.task_id))
