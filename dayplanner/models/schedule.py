"""Schedule data models for dayplanner.

Intervals are half-open ``[start, end)``. Everything the engine returns is
frozen: callers that want to keep results copy them into their own storage.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dayplanner.models.config import Strategy
from dayplanner.models.task import Priority, Task


class TimeInterval(BaseModel):
    """A half-open time range ``[start, end)`` (a.k.a. slot)."""

    model_config = ConfigDict(frozen=True)

    start: datetime = Field(..., description="Inclusive start")
    end: datetime = Field(..., description="Exclusive end")

    @model_validator(mode="after")
    def _validate_bounds(self):
        if self.start >= self.end:
            raise ValueError(f"interval start must be before end ({self.start} >= {self.end})")
        return self

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_min(self) -> float:
        return self.duration.total_seconds() / 60

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end

    def contains(self, start: datetime, end: datetime) -> bool:
        return self.start <= start and end <= self.end


class BlockedInterval(TimeInterval):
    """An externally imposed, non-movable occupied interval (class, meeting, ...)."""

    title: str = Field("", description="What blocks this time")
    source_id: Optional[str] = Field(None, description="ID of the fixed schedule it came from")


class PlannedItem(BaseModel):
    """A task assigned to a concrete time interval on a date."""

    model_config = ConfigDict(frozen=True)

    task_id: str = Field(..., description="ID of the planned task")
    plan_date: date = Field(..., description="Date the plan belongs to")
    start: datetime = Field(..., description="Planned start")
    end: datetime = Field(..., description="Planned end")
    confidence: float = Field(1.0, ge=0.0, le=1.0, description="How well the placement suits the task")
    reason: str = Field("", description="Why the task was placed here")

    @model_validator(mode="after")
    def _validate_bounds(self):
        if self.start >= self.end:
            raise ValueError(f"planned item {self.task_id} must start before it ends")
        return self

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(start=self.start, end=self.end)


class ConflictKind(str, Enum):
    """Kinds of scheduling conflicts recorded for diagnostics."""
    TIME_OVERLAP = "time_overlap"
    RESOURCE_CONSTRAINT = "resource_constraint"
    ENERGY_MISMATCH = "energy_mismatch"
    PRIORITY_VIOLATION = "priority_violation"


class Conflict(BaseModel):
    """A conflict met while placing a task. Diagnostic only."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    other_task_id: Optional[str] = None
    kind: ConflictKind
    proposed_start: Optional[datetime] = None
    proposed_end: Optional[datetime] = None
    suggested_resolution: str = ""


class Adjustment(BaseModel):
    """A non-binding suggestion to move a planned item."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    original: TimeInterval
    suggested: TimeInterval
    reason: str


class TaskScore(BaseModel):
    """Sub-scores (each in [0, 1]) and weighted total for one task."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    priority: float
    urgency: float
    energy_match: float
    duration: float
    total: float


class PriorityFactor(BaseModel):
    """One weighted factor behind a priority suggestion."""

    model_config = ConfigDict(frozen=True)

    name: str
    weight: float
    value: float = Field(..., ge=0.0, le=1.0)
    impact: str = Field("", description="Human-readable description of the value")


class PriorityAdjustment(BaseModel):
    """A non-binding suggestion to raise a task's priority."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    current_priority: Priority
    suggested_priority: Priority
    score: float = Field(..., description="Weighted sum of the factors, 0..1")
    reason: str
    factors: List[PriorityFactor] = Field(default_factory=list)


class Metrics(BaseModel):
    """Derived quality metrics of an allocation, as percentages."""

    model_config = ConfigDict(frozen=True)

    utilization: float = 0.0
    energy_efficiency: float = 0.0
    priority_satisfaction: float = 100.0
    break_optimization: float = 100.0


class PlanningStats(BaseModel):
    """Counts and durations summarizing an allocation."""

    model_config = ConfigDict(frozen=True)

    total_tasks: int = 0
    scheduled_tasks: int = 0
    unscheduled_tasks: int = 0
    total_duration_min: int = 0
    scheduled_duration_min: int = 0
    scheduling_rate: float = 0.0


class AllocationResult(BaseModel):
    """Result of planning a day.

    ``planned_items`` and ``unscheduled_tasks`` together hold every input
    task exactly once.
    """

    model_config = ConfigDict(frozen=True)

    plan_date: date
    strategy: Strategy
    planned_items: List[PlannedItem] = Field(default_factory=list)
    unscheduled_tasks: List[Task] = Field(default_factory=list)
    scheduled_tasks: List[Task] = Field(default_factory=list)
    free_slots: List[TimeInterval] = Field(default_factory=list)
    scores: List[TaskScore] = Field(default_factory=list)
    conflicts: List[Conflict] = Field(default_factory=list)
    adjustments: List[Adjustment] = Field(default_factory=list)
    priority_adjustments: List[PriorityAdjustment] = Field(default_factory=list)
    metrics: Metrics = Field(default_factory=Metrics)
    stats: PlanningStats = Field(default_factory=PlanningStats)


class InsertionStrategy(str, Enum):
    """Which escalation step placed an emergency task."""
    DIRECT = "direct"
    DISPLACEMENT = "displacement"
    FORCED = "forced"


class InsertionResult(BaseModel):
    """Outcome of inserting an emergency task into an existing plan."""

    model_config = ConfigDict(frozen=True)

    success: bool
    adjusted_plan: List[PlannedItem] = Field(default_factory=list)
    postponed_tasks: List[Task] = Field(default_factory=list)
    postponed_task_ids: List[str] = Field(default_factory=list)
    message: str = ""
    strategy: Optional[InsertionStrategy] = None
    impact_score: float = 0.0
    inserted_item: Optional[PlannedItem] = None
    requires_replan: bool = False
