"""FastAPI web application for dayplanner."""

import logging
import uuid
from datetime import date, datetime, time
from typing import List, Optional, Dict
from fastapi import FastAPI, HTTPException, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dayplanner.database.database import get_db
from dayplanner.database.repository import TaskRepository
from dayplanner.database.fixed_schedule_repository import FixedScheduleRepository
from dayplanner.database.plan_repository import PlanItemRepository
from dayplanner.engine.intervals import work_windows_for
from dayplanner.engine.planner import compute_free_slots, generate_plan, insert_emergency_task
from dayplanner.models.config import SchedulingConfig, Strategy, load_config
from dayplanner.models.fixed_schedule import FixedSchedule
from dayplanner.models.schedule import AllocationResult, InsertionResult, PlannedItem, TimeInterval
from dayplanner.models.task import Task, Priority, EnergyLevel, TaskKind

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="dayplanner API",
    description="Plans your day: fits pending tasks around fixed commitments",
    version="0.1.0"
)


def get_config() -> SchedulingConfig:
    """Scheduling configuration (dependency, overridable in tests)."""
    return load_config()


# Request models
class TaskCreateRequest(BaseModel):
    """Request to create a task."""
    title: str = Field(..., min_length=1)
    notes: Optional[str] = None
    duration_min: int = Field(..., gt=0)
    priority: Priority = Priority.MEDIUM
    deadline: Optional[datetime] = None
    energy_level: EnergyLevel = EnergyLevel.MEDIUM
    kind: TaskKind = TaskKind.NORMAL
    flexible: bool = True


class EmergencyTaskRequest(BaseModel):
    """Request to insert an emergency task into a day's plan."""
    title: str = Field(..., min_length=1)
    notes: Optional[str] = None
    duration_min: int = Field(..., gt=0)
    priority: Priority = Priority.URGENT
    deadline: Optional[datetime] = None
    energy_level: EnergyLevel = EnergyLevel.MEDIUM


class FixedScheduleCreateRequest(BaseModel):
    """Request to create a weekly fixed schedule entry."""
    title: str = Field(..., min_length=1)
    weekday: int = Field(..., ge=1, le=7, description="ISO weekday, 1 = Monday")
    start_time: time
    end_time: time


class PlanRequest(BaseModel):
    """Options for generating a plan."""
    strategy: Optional[Strategy] = None
    now: Optional[datetime] = None
    keep_existing: bool = Field(False, description="Plan around already stored items instead of replacing them")


# Response models
class TaskResponse(BaseModel):
    """Response for a single task."""
    task: Task


class TasksListResponse(BaseModel):
    """Response for a list of tasks."""
    tasks: List[Task]
    count: int


class FixedScheduleResponse(BaseModel):
    """Response for a single fixed schedule entry."""
    fixed_schedule: FixedSchedule


class FixedSchedulesListResponse(BaseModel):
    """Response for a list of fixed schedule entries."""
    fixed_schedules: List[FixedSchedule]
    count: int


class FreeSlotsResponse(BaseModel):
    """Response for the free intervals of a day."""
    plan_date: date
    free_slots: List[TimeInterval]
    free_minutes: float


class PlanItemsResponse(BaseModel):
    """Response for a stored plan."""
    plan_date: date
    items: List[PlannedItem]
    task_titles: Dict[str, str] = Field(default_factory=dict, description="Map of task_id to task title")


class EmergencyResponse(BaseModel):
    """Response for an emergency insertion."""
    task: Task
    result: InsertionResult


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


@app.post("/tasks", response_model=TaskResponse, status_code=201)
def create_task(request: TaskCreateRequest, db: Session = Depends(get_db)):
    """Create a task."""
    task = Task(id=str(uuid.uuid4()), created_at=datetime.utcnow(), **request.model_dump())
    try:
        return TaskResponse(task=TaskRepository(db).create(task))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create task: {str(e)}")


@app.get("/tasks", response_model=TasksListResponse)
def list_tasks(pending_only: bool = False, db: Session = Depends(get_db)):
    """List tasks (newest first), or only the pending ones."""
    repo = TaskRepository(db)
    tasks = repo.get_pending() if pending_only else repo.get_all()
    return TasksListResponse(tasks=tasks, count=len(tasks))


@app.post("/tasks/{task_id}/complete", response_model=TaskResponse)
def complete_task(task_id: str, db: Session = Depends(get_db)):
    """Mark a task completed; it is left out of future plans."""
    task = TaskRepository(db).mark_completed(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return TaskResponse(task=task)


@app.post("/fixed-schedules", response_model=FixedScheduleResponse, status_code=201)
def create_fixed_schedule(request: FixedScheduleCreateRequest, db: Session = Depends(get_db)):
    """Create a weekly fixed schedule entry (class, meeting, ...)."""
    try:
        schedule = FixedSchedule(id=str(uuid.uuid4()), created_at=datetime.utcnow(), **request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    try:
        return FixedScheduleResponse(fixed_schedule=FixedScheduleRepository(db).create(schedule))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to create fixed schedule: {str(e)}")


@app.get("/fixed-schedules", response_model=FixedSchedulesListResponse)
def list_fixed_schedules(weekday: Optional[int] = None, db: Session = Depends(get_db)):
    """List fixed schedule entries, optionally for one ISO weekday."""
    repo = FixedScheduleRepository(db)
    if weekday is not None:
        if not 1 <= weekday <= 7:
            raise HTTPException(status_code=422, detail="weekday must be between 1 and 7")
        schedules = repo.list_for_weekday(weekday)
    else:
        schedules = repo.get_all()
    return FixedSchedulesListResponse(fixed_schedules=schedules, count=len(schedules))


@app.get("/plans/{plan_date}/free-slots", response_model=FreeSlotsResponse)
def get_free_slots(plan_date: date, db: Session = Depends(get_db), config: SchedulingConfig = Depends(get_config)):
    """Free intervals of a day: work windows minus fixed schedules."""
    blocked = FixedScheduleRepository(db).blocked_intervals_for(plan_date)
    windows = work_windows_for(plan_date, config.work_windows, config.time_zone)
    try:
        slots = compute_free_slots(windows, blocked, config.min_slot_minutes)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    free_minutes = sum(slot.duration_min for slot in slots)
    return FreeSlotsResponse(plan_date=plan_date, free_slots=slots, free_minutes=free_minutes)


@app.post("/plans/{plan_date}", response_model=AllocationResult)
def build_plan(
    plan_date: date,
    request: Optional[PlanRequest] = None,
    db: Session = Depends(get_db),
    config: SchedulingConfig = Depends(get_config),
):
    """Plan a day from the pending tasks and store the result.

    The date is locked from reading the pending tasks until the stored
    items are replaced, so concurrent re-plans of one date run one after
    the other.
    """
    request = request or PlanRequest()
    if request.strategy is not None:
        config = config.model_copy(update={"strategy": request.strategy})

    plan_repo = PlanItemRepository(db)
    plan_repo.lock_date(plan_date)
    tasks = TaskRepository(db).get_pending()
    blocked = FixedScheduleRepository(db).blocked_intervals_for(plan_date)
    existing = plan_repo.get_for_date(plan_date) if request.keep_existing else None

    try:
        result = generate_plan(plan_date, tasks, blocked, config, now=request.now, existing_plan=existing)
    except ValueError as e:
        plan_repo.release_date()
        raise HTTPException(status_code=422, detail=str(e))

    try:
        plan_repo.replace_for_date(plan_date, result.planned_items)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to store plan: {str(e)}")

    logger.info(f"Stored plan for {plan_date}: {len(result.planned_items)} items")
    return result


@app.get("/plans/{plan_date}", response_model=PlanItemsResponse)
def view_plan(plan_date: date, db: Session = Depends(get_db)):
    """View the stored plan of a day."""
    items = PlanItemRepository(db).get_for_date(plan_date)
    tasks = TaskRepository(db).get_many([item.task_id for item in items])
    task_titles = {task.id: task.title for task in tasks}
    return PlanItemsResponse(plan_date=plan_date, items=items, task_titles=task_titles)


@app.post("/plans/{plan_date}/emergency", response_model=EmergencyResponse)
def insert_emergency(
    plan_date: date,
    request: EmergencyTaskRequest,
    db: Session = Depends(get_db),
    config: SchedulingConfig = Depends(get_config),
):
    """Create an emergency task and squeeze it into the stored plan of a day."""
    task_repo = TaskRepository(db)
    plan_repo = PlanItemRepository(db)
    plan_repo.lock_date(plan_date)

    try:
        task = Task(
            id=str(uuid.uuid4()),
            created_at=datetime.utcnow(),
            kind=TaskKind.EMERGENCY,
            flexible=False,
            **request.model_dump(),
        )
        current_plan = plan_repo.get_for_date(plan_date)
        plan_tasks = task_repo.get_many([item.task_id for item in current_plan])
        blocked = FixedScheduleRepository(db).blocked_intervals_for(plan_date)
        result = insert_emergency_task(
            task, current_plan, blocked, config, plan_tasks=plan_tasks, plan_date=plan_date,
        )
    except ValueError as e:
        plan_repo.release_date()
        raise HTTPException(status_code=422, detail=str(e))

    try:
        # Task and adjusted plan are committed together, which also ends the date lock
        task = task_repo.create(task, commit=not result.success)
        if result.success:
            plan_repo.replace_for_date(plan_date, result.adjusted_plan)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to store emergency task: {str(e)}")

    return EmergencyResponse(task=task, result=result)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
