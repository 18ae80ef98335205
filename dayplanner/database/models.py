"""SQLAlchemy database models for dayplanner."""

from datetime import datetime
from typing import Union, TypeVar, Type
import uuid
from sqlalchemy import Column, String, Integer, Float, Boolean, Date, DateTime, Time, ForeignKey, CheckConstraint, UniqueConstraint

from dayplanner.database.database import Base
from dayplanner.models.task import Task, Priority, EnergyLevel, TaskKind
from dayplanner.models.fixed_schedule import FixedSchedule
from dayplanner.models.schedule import PlannedItem

T = TypeVar('T')


def enum_to_value(enum_obj: Union[str, T]) -> str:
    """Convert enum to string value (handles both enum and string).

    Args:
        enum_obj: Enum instance or string value

    Returns:
        String value of the enum, or the string itself if already a string
    """
    if hasattr(enum_obj, 'value'):
        return enum_obj.value
    return str(enum_obj)


def value_to_enum(value: str, enum_class: Type[T], default: T) -> T:
    """Convert string to enum with fallback to default."""
    if not value:
        return default
    try:
        return enum_class(value.lower())
    except (ValueError, AttributeError):
        return default


class TaskDB(Base):
    """Database model for Task."""

    __tablename__ = "tasks"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    notes = Column(String, nullable=True)

    duration_min = Column(Integer, nullable=False)
    priority = Column(String, nullable=False, default=Priority.MEDIUM.value)
    deadline = Column(DateTime, nullable=True)
    energy_level = Column(String, nullable=False, default=EnergyLevel.MEDIUM.value)
    kind = Column(String, nullable=False, default=TaskKind.NORMAL.value)

    flexible = Column(Boolean, nullable=False, default=True)
    completed = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self) -> Task:
        """Convert database model to Pydantic model."""
        return Task(
            id=self.id,
            title=self.title,
            notes=self.notes,
            duration_min=self.duration_min,
            priority=value_to_enum(self.priority, Priority, Priority.MEDIUM),
            deadline=self.deadline,
            energy_level=value_to_enum(self.energy_level, EnergyLevel, EnergyLevel.MEDIUM),
            kind=value_to_enum(self.kind, TaskKind, TaskKind.NORMAL),
            flexible=self.flexible,
            completed=self.completed,
            created_at=self.created_at,
        )

    @classmethod
    def from_pydantic(cls, task: Task) -> "TaskDB":
        """Create database model from Pydantic model."""
        return cls(
            id=task.id,
            title=task.title,
            notes=task.notes,
            duration_min=task.duration_min,
            priority=enum_to_value(task.priority),
            deadline=task.deadline,
            energy_level=enum_to_value(task.energy_level),
            kind=enum_to_value(task.kind),
            flexible=task.flexible,
            completed=task.completed,
            created_at=task.created_at or datetime.utcnow(),
        )


class FixedScheduleDB(Base):
    """A weekly recurring blocked period (class, meeting, commute)."""

    __tablename__ = "fixed_schedules"
    __table_args__ = (
        CheckConstraint("weekday BETWEEN 1 AND 7", name="ck_fixed_schedule_weekday"),
        CheckConstraint("start_time < end_time", name="ck_fixed_schedule_times"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    # ISO weekday: 1 = Monday ... 7 = Sunday
    weekday = Column(Integer, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_pydantic(self) -> FixedSchedule:
        """Convert database model to Pydantic model."""
        return FixedSchedule(
            id=self.id,
            title=self.title,
            weekday=self.weekday,
            start_time=self.start_time,
            end_time=self.end_time,
            created_at=self.created_at,
        )

    @classmethod
    def from_pydantic(cls, schedule: FixedSchedule) -> "FixedScheduleDB":
        """Create database model from Pydantic model."""
        return cls(
            id=schedule.id,
            title=schedule.title,
            weekday=schedule.weekday,
            start_time=schedule.start_time,
            end_time=schedule.end_time,
            created_at=schedule.created_at or datetime.utcnow(),
        )


class PlanItemDB(Base):
    """Database model for a persisted PlannedItem."""

    __tablename__ = "plan_items"
    __table_args__ = (
        UniqueConstraint("plan_date", "task_id", name="uq_plan_items_date_task"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    plan_date = Column(Date, nullable=False, index=True)
    task_id = Column(String, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    confidence = Column(Float, nullable=False, default=1.0)
    reason = Column(String, nullable=False, default="")

    def to_pydantic(self) -> PlannedItem:
        """Convert database model to Pydantic model."""
        return PlannedItem(
            task_id=self.task_id,
            plan_date=self.plan_date,
            start=self.start_time,
            end=self.end_time,
            confidence=self.confidence,
            reason=self.reason or "",
        )

    @classmethod
    def from_pydantic(cls, item: PlannedItem) -> "PlanItemDB":
        """Create database model from Pydantic model."""
        return cls(
            plan_date=item.plan_date,
            task_id=item.task_id,
            start_time=item.start,
            end_time=item.end,
            confidence=item.confidence,
            reason=item.reason,
        )


class PlanDayDB(Base):
    """One row per planned date; locked while that date is re-planned."""

    __tablename__ = "plan_days"

    plan_date = Column(Date, primary_key=True)
    updated_at = Column(DateTime, nullable=True)
