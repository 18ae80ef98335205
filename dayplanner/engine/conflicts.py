"""Conflict detection and resolution for dayplanner.

Validates proposed placements against occupied intervals plus a minimum
inter-task gap. On conflict the search cursor jumps past the conflicting
interval and the placement is retried, a bounded number of times.
Conflicts are recorded for diagnostics; nothing here raises.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from dayplanner.engine.intervals import overlaps
from dayplanner.models.config import SchedulingConfig
from dayplanner.models.schedule import Conflict, ConflictKind, PlannedItem, TimeInterval
from dayplanner.models.task import EnergyLevel, Priority, Task

logger = logging.getLogger(__name__)


class Occupied(NamedTuple):
    start: datetime
    end: datetime
    task_id: Optional[str] = None


class ConflictResolver:
    """Tracks occupied intervals and finds conflict-free placements."""

    def __init__(
        self,
        occupied: Iterable[Occupied] = (),
        minimum_gap_minutes: int = 0,
        max_attempts: int = 3,
    ):
        if minimum_gap_minutes < 0:
            raise ValueError("minimum_gap_minutes must not be negative")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.minimum_gap = timedelta(minutes=minimum_gap_minutes)
        self.max_attempts = max_attempts
        self._occupied: List[Occupied] = sorted(occupied, key=lambda o: (o.start, o.end))

    @classmethod
    def from_plan(cls, items: Iterable[PlannedItem], minimum_gap_minutes: int, max_attempts: int) -> "ConflictResolver":
        return cls(
            [Occupied(item.start, item.end, item.task_id) for item in items],
            minimum_gap_minutes=minimum_gap_minutes,
            max_attempts=max_attempts,
        )

    @property
    def occupied(self) -> List[Occupied]:
        return list(self._occupied)

    def occupy(self, start: datetime, end: datetime, task_id: Optional[str] = None) -> None:
        self._occupied.append(Occupied(start, end, task_id))
        self._occupied.sort(key=lambda o: (o.start, o.end))

    def find_conflict(self, start: datetime, end: datetime) -> Optional[Tuple[Occupied, ConflictKind]]:
        """Return the first occupied interval a proposal collides with.

        Overlaps take precedence over gap violations.
        """
        for occ in self._occupied:
            if overlaps(start, end, occ.start, occ.end):
                return occ, ConflictKind.TIME_OVERLAP
        if self.minimum_gap > timedelta(0):
            for occ in self._occupied:
                after = start - occ.end
                before = occ.start - end
                if timedelta(0) <= after < self.minimum_gap or timedelta(0) <= before < self.minimum_gap:
                    return occ, ConflictKind.TIME_OVERLAP
        return None

    def check(self, task_id: str, start: datetime, end: datetime) -> Optional[Conflict]:
        """Validate ``[start, end)`` for a task; None when it is free."""
        found = self.find_conflict(start, end)
        if found is None:
            return None
        occ, kind = found
        if overlaps(start, end, occ.start, occ.end):
            resolution = f"Move task after {occ.end:%H:%M} to avoid the overlap"
        else:
            resolution = f"Increase the gap between tasks to {int(self.minimum_gap.total_seconds() // 60)} minutes"
        return Conflict(
            task_id=task_id,
            other_task_id=occ.task_id,
            kind=kind,
            proposed_start=start,
            proposed_end=end,
            suggested_resolution=resolution,
        )

    def place(
        self,
        task: Task,
        frame: Sequence[TimeInterval],
        cursor: Optional[datetime] = None,
    ) -> Tuple[Optional[datetime], List[Conflict]]:
        """Find the earliest conflict-free start for ``task`` inside ``frame``.

        Each conflict advances the cursor to the end of the conflicting
        interval plus the minimum gap. After ``max_attempts`` conflicts the
        task is given up on.

        Returns:
            (start or None, conflicts met along the way)
        """
        duration = timedelta(minutes=task.duration_min)
        conflicts: List[Conflict] = []
        if cursor is None and frame:
            cursor = frame[0].start

        attempts = 0
        while attempts < self.max_attempts:
            start = first_fit_start(frame, cursor, duration)
            if start is None:
                conflicts.append(Conflict(
                    task_id=task.id,
                    kind=ConflictKind.RESOURCE_CONSTRAINT,
                    suggested_resolution="No free window left today; move the task to another day",
                ))
                return None, conflicts

            end = start + duration
            conflict = self.check(task.id, start, end)
            if conflict is None:
                self.occupy(start, end, task.id)
                return start, conflicts

            conflicts.append(conflict)
            attempts += 1
            occ, _ = self.find_conflict(start, end)
            cursor = occ.end + self.minimum_gap
            logger.debug(f"Conflict placing task {task.id} at {start:%H:%M}, retrying from {cursor:%H:%M}")

        conflicts.append(Conflict(
            task_id=task.id,
            kind=ConflictKind.RESOURCE_CONSTRAINT,
            suggested_resolution=f"Gave up after {self.max_attempts} attempts; re-plan the day or shorten the task",
        ))
        return None, conflicts


def first_fit_start(frame: Sequence[TimeInterval], cursor: Optional[datetime], duration: timedelta) -> Optional[datetime]:
    """Earliest start at or after ``cursor`` where ``duration`` fits in a frame interval."""
    for interval in frame:
        start = interval.start if cursor is None else max(interval.start, cursor)
        if start + duration <= interval.end:
            return start
    return None


def detect_energy_mismatches(
    items: Sequence[PlannedItem],
    tasks_by_id: Dict[str, Task],
    config: SchedulingConfig,
) -> List[Conflict]:
    """Flag planned items whose start hour lies outside their task's energy band."""
    conflicts = []
    for item in items:
        task = tasks_by_id.get(item.task_id)
        if task is None:
            continue
        band = config.energy_bands.band_of(item.start.hour)
        if band != EnergyLevel(task.energy_level):
            hours = config.energy_bands.hours_for(task.energy_level)
            conflicts.append(Conflict(
                task_id=task.id,
                kind=ConflictKind.ENERGY_MISMATCH,
                proposed_start=item.start,
                proposed_end=item.end,
                suggested_resolution=f"Prefer hours {hours} for {EnergyLevel(task.energy_level).value} energy work",
            ))
    return conflicts


def detect_priority_violations(
    items: Sequence[PlannedItem],
    unscheduled: Sequence[Task],
    tasks_by_id: Dict[str, Task],
) -> List[Conflict]:
    """Flag unscheduled HIGH/URGENT tasks left out while lower priorities got time."""
    conflicts = []
    for task in unscheduled:
        if not task.is_high_priority:
            continue
        rank = Priority(task.priority).rank
        lower = [
            item for item in items
            if item.task_id in tasks_by_id and Priority(tasks_by_id[item.task_id].priority).rank > rank
        ]
        if lower:
            conflicts.append(Conflict(
                task_id=task.id,
                other_task_id=lower[0].task_id,
                kind=ConflictKind.PRIORITY_VIOLATION,
                proposed_start=lower[0].start,
                proposed_end=lower[0].end,
                suggested_resolution="Postpone lower-priority work or insert this task as an emergency",
            ))
    return conflicts


def plan_with_resolver(
    ordered_tasks: Sequence[Task],
    frame: Sequence[TimeInterval],
    existing_plan: Sequence[PlannedItem],
    plan_date: date,
    config: SchedulingConfig,
) -> Tuple[List[PlannedItem], List[Task], List[Conflict]]:
    """Allocate tasks around already committed plan items.

    Every task's search starts at the beginning of the frame so earlier gaps
    between committed items can be reused.
    """
    resolver = ConflictResolver.from_plan(
        existing_plan,
        minimum_gap_minutes=config.minimum_break_minutes,
        max_attempts=config.max_reschedule_attempts,
    )
    planned: List[PlannedItem] = []
    unscheduled: List[Task] = []
    conflicts: List[Conflict] = []

    for task in ordered_tasks:
        start, met = resolver.place(task, frame)
        conflicts.extend(met)
        if start is None:
            unscheduled.append(task)
            logger.debug(f"Task {task.id} left unscheduled after {len(met)} conflicts")
            continue
        planned.append(PlannedItem(
            task_id=task.id,
            plan_date=plan_date,
            start=start,
            end=start + timedelta(minutes=task.duration_min),
            confidence=max(0.0, 1.0 - 0.1 * len(met)),
            reason="Placed around committed items" if not met else f"Placed after resolving {len(met)} conflicts",
        ))

    return planned, unscheduled, conflicts
