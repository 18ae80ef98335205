"""Task data model for dayplanner."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Priority(str, Enum):
    """Task priority enumeration (URGENT > HIGH > MEDIUM > LOW)."""
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def value_score(self) -> int:
        """Numeric priority value (URGENT=4 ... LOW=1)."""
        return PRIORITY_VALUES[self]

    @property
    def rank(self) -> int:
        """Sort rank, 0 for the most important priority."""
        return 4 - PRIORITY_VALUES[self]


PRIORITY_VALUES = {
    Priority.URGENT: 4,
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}


class EnergyLevel(str, Enum):
    """Energy band enumeration, ordered HIGH, MEDIUM, LOW."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def ordinal(self) -> int:
        return ENERGY_ORDER.index(self)

    def distance(self, other: "EnergyLevel") -> int:
        """Number of bands between two energy levels (0-2)."""
        return abs(self.ordinal - EnergyLevel(other).ordinal)


ENERGY_ORDER = [EnergyLevel.HIGH, EnergyLevel.MEDIUM, EnergyLevel.LOW]


class TaskKind(str, Enum):
    """Task kind enumeration. Every kind carries a fixed weight."""
    EMERGENCY = "emergency"
    MEETING = "meeting"
    LEARNING = "learning"
    EXERCISE = "exercise"
    ROUTINE = "routine"
    PERSONAL = "personal"
    NORMAL = "normal"
    SUBTASK = "subtask"

    @property
    def weight(self) -> float:
        return TASK_KIND_WEIGHTS[self]


TASK_KIND_WEIGHTS = {
    TaskKind.EMERGENCY: 4.0,
    TaskKind.MEETING: 3.5,
    TaskKind.LEARNING: 3.0,
    TaskKind.EXERCISE: 2.5,
    TaskKind.ROUTINE: 2.0,
    TaskKind.PERSONAL: 1.5,
    TaskKind.NORMAL: 1.0,
    TaskKind.SUBTASK: 0.5,
}


class Task(BaseModel):
    """Canonical Task model.

    The scheduling engine treats tasks as read-only input; they are frozen so
    an allocation can never alter what the caller handed in.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique task identifier")
    title: str = Field(..., description="Task title")
    notes: Optional[str] = Field(None, description="Task notes or description")
    duration_min: int = Field(..., gt=0, description="Estimated duration in minutes")
    priority: Priority = Field(Priority.MEDIUM, description="Task priority")
    deadline: Optional[datetime] = Field(None, description="Absolute deadline")
    energy_level: EnergyLevel = Field(EnergyLevel.MEDIUM, description="Energy required to work on the task")
    kind: TaskKind = Field(TaskKind.NORMAL, description="Task kind")
    flexible: bool = Field(True, description="Whether the task may be moved around the day")
    completed: bool = Field(False, description="Whether the task is done")
    created_at: Optional[datetime] = Field(None, description="Task creation timestamp")

    @property
    def is_high_priority(self) -> bool:
        """True for HIGH and URGENT tasks."""
        return self.priority in (Priority.HIGH, Priority.URGENT)
