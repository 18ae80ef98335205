"""Data models for dayplanner."""

from dayplanner.models.task import Task, Priority, EnergyLevel, TaskKind
from dayplanner.models.schedule import (
    TimeInterval,
    BlockedInterval,
    PlannedItem,
    Conflict,
    ConflictKind,
    Adjustment,
    TaskScore,
    Metrics,
    PlanningStats,
    AllocationResult,
    InsertionResult,
    InsertionStrategy,
)
from dayplanner.models.config import SchedulingConfig, Strategy, ScoreWeights, EnergyBands, load_config
from dayplanner.models.fixed_schedule import FixedSchedule

__all__ = [
    "Task",
    "Priority",
    "EnergyLevel",
    "TaskKind",
    "TimeInterval",
    "BlockedInterval",
    "PlannedItem",
    "Conflict",
    "ConflictKind",
    "Adjustment",
    "TaskScore",
    "Metrics",
    "PlanningStats",
    "AllocationResult",
    "InsertionResult",
    "InsertionStrategy",
    "SchedulingConfig",
    "Strategy",
    "ScoreWeights",
    "EnergyBands",
    "load_config",
    "FixedSchedule",
]
