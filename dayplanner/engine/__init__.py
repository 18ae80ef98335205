"""Scheduling engine for dayplanner."""

from dayplanner.engine.intervals import subtract, work_windows_for
from dayplanner.engine.scoring import score_task, stack_rank
from dayplanner.engine.allocator import allocate, AllocationOutcome
from dayplanner.engine.conflicts import ConflictResolver
from dayplanner.engine.emergency import EmergencyInserter
from dayplanner.engine.planner import (
    compute_free_slots,
    generate_plan,
    insert_emergency_task,
    compute_metrics,
    suggest_priority_adjustments,
)

__all__ = [
    "subtract",
    "work_windows_for",
    "score_task",
    "stack_rank",
    "allocate",
    "AllocationOutcome",
    "ConflictResolver",
    "EmergencyInserter",
    "compute_free_slots",
    "generate_plan",
    "insert_emergency_task",
    "compute_metrics",
    "suggest_priority_adjustments",
]
