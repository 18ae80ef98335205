"""Tests for the repository layer (tasks, fixed schedules, plan items)."""

import pytest
from datetime import datetime, time, timedelta
from sqlalchemy.dialects import postgresql
import uuid

from dayplanner.database.models import PlanDayDB
from dayplanner.models.fixed_schedule import FixedSchedule
from dayplanner.models.schedule import PlannedItem
from dayplanner.models.task import Task, Priority, EnergyLevel, TaskKind


class TestTaskRepository:
    """Test TaskRepository operations."""

    def test_create_task(self, task_repository, sample_task):
        """Test creating a task."""
        created = task_repository.create(sample_task)

        assert created.id == sample_task.id
        assert created.title == sample_task.title
        assert created.priority == Priority.MEDIUM
        assert created.completed is False

    def test_create_preserves_enums_and_deadline(self, task_repository, sample_task_base):
        deadline = datetime(2024, 1, 15, 17, 0)
        task = Task(**{
            **sample_task_base,
            "priority": Priority.URGENT,
            "energy_level": EnergyLevel.LOW,
            "kind": TaskKind.MEETING,
            "flexible": False,
            "deadline": deadline,
        })
        created = task_repository.create(task)

        assert created.priority == Priority.URGENT
        assert created.energy_level == EnergyLevel.LOW
        assert created.kind == TaskKind.MEETING
        assert created.flexible is False
        assert created.deadline == deadline

    def test_get_task_by_id(self, task_repository, sample_task):
        created = task_repository.create(sample_task)
        retrieved = task_repository.get(created.id)

        assert retrieved is not None
        assert retrieved.id == created.id

    def test_get_nonexistent_task(self, task_repository):
        """Test retrieving a nonexistent task returns None."""
        assert task_repository.get("nonexistent-id") is None

    def test_duplicate_id_rolls_back_and_raises(self, task_repository, sample_task):
        task_repository.create(sample_task)
        with pytest.raises(Exception):
            task_repository.create(sample_task)
        # Session is usable again after the rollback
        assert task_repository.get(sample_task.id) is not None

    def test_get_all_sorted_by_creation_date(self, task_repository, sample_task_base):
        """Test that get_all() returns tasks sorted by creation date (newest first)."""
        now = datetime(2024, 1, 10, 12, 0)
        task1 = Task(**{**sample_task_base, "id": str(uuid.uuid4()), "created_at": now, "title": "Task 1"})
        task2 = Task(**{**sample_task_base, "id": str(uuid.uuid4()), "created_at": now - timedelta(minutes=1), "title": "Task 2"})
        task3 = Task(**{**sample_task_base, "id": str(uuid.uuid4()), "created_at": now - timedelta(minutes=2), "title": "Task 3"})

        task_repository.create(task3)
        task_repository.create(task1)
        task_repository.create(task2)

        assert [t.title for t in task_repository.get_all()] == ["Task 1", "Task 2", "Task 3"]

    def test_get_pending_excludes_completed(self, task_repository, sample_task_base):
        open_task = Task(**{**sample_task_base, "id": "open"})
        done_task = Task(**{**sample_task_base, "id": "done"})
        task_repository.create(open_task)
        task_repository.create(done_task)

        completed = task_repository.mark_completed("done")

        assert completed.completed is True
        assert [t.id for t in task_repository.get_pending()] == ["open"]

    def test_mark_completed_missing_task_returns_none(self, task_repository):
        assert task_repository.mark_completed("missing") is None

    def test_get_many_skips_missing(self, task_repository, sample_task_base):
        task_repository.create(Task(**{**sample_task_base, "id": "a"}))
        task_repository.create(Task(**{**sample_task_base, "id": "b"}))

        assert [t.id for t in task_repository.get_many(["b", "a", "zzz"])] == ["a", "b"]
        assert task_repository.get_many([]) == []


class TestFixedScheduleRepository:
    """Test FixedScheduleRepository operations."""

    def _schedule(self, schedule_id, weekday, start, end, title="Class"):
        return FixedSchedule(id=schedule_id, title=title, weekday=weekday, start_time=start, end_time=end)

    def test_list_for_weekday_sorted_by_start(self, fixed_schedule_repository):
        fixed_schedule_repository.create(self._schedule("late", 1, time(14, 0), time(15, 0)))
        fixed_schedule_repository.create(self._schedule("early", 1, time(9, 0), time(10, 0)))
        fixed_schedule_repository.create(self._schedule("tuesday", 2, time(9, 0), time(10, 0)))

        monday = fixed_schedule_repository.list_for_weekday(1)

        assert [s.id for s in monday] == ["early", "late"]
        assert len(fixed_schedule_repository.get_all()) == 3

    def test_blocked_intervals_for_date(self, fixed_schedule_repository, plan_date):
        fixed_schedule_repository.create(self._schedule("lecture", plan_date.isoweekday(), time(10, 0), time(11, 30), "Lecture"))

        blocked = fixed_schedule_repository.blocked_intervals_for(plan_date)

        assert len(blocked) == 1
        assert blocked[0].start == datetime(2024, 1, 15, 10, 0)
        assert blocked[0].end == datetime(2024, 1, 15, 11, 30)
        assert blocked[0].title == "Lecture"
        assert blocked[0].source_id == "lecture"

    def test_blocked_intervals_other_weekday_empty(self, fixed_schedule_repository, plan_date):
        fixed_schedule_repository.create(self._schedule("sunday", 7, time(10, 0), time(11, 0)))
        assert fixed_schedule_repository.blocked_intervals_for(plan_date) == []

    def test_invalid_times_rejected(self):
        with pytest.raises(ValueError):
            self._schedule("bad", 1, time(11, 0), time(10, 0))


class TestPlanItemRepository:
    """Test PlanItemRepository operations."""

    def _item(self, task_id, plan_date, start_hour, end_hour):
        return PlannedItem(
            task_id=task_id,
            plan_date=plan_date,
            start=datetime(plan_date.year, plan_date.month, plan_date.day, start_hour),
            end=datetime(plan_date.year, plan_date.month, plan_date.day, end_hour),
        )

    def test_replace_for_date_replaces_only_that_date(self, task_repository, plan_repository, sample_task_base, plan_date):
        for task_id in ("a", "b", "c"):
            task_repository.create(Task(**{**sample_task_base, "id": task_id}))
        other_date = plan_date + timedelta(days=1)

        plan_repository.replace_for_date(plan_date, [self._item("a", plan_date, 9, 10)])
        plan_repository.replace_for_date(other_date, [self._item("c", other_date, 9, 10)])
        stored = plan_repository.replace_for_date(
            plan_date, [self._item("b", plan_date, 14, 15), self._item("a", plan_date, 10, 11)]
        )

        assert [i.task_id for i in stored] == ["a", "b"]
        assert [i.task_id for i in plan_repository.get_for_date(other_date)] == ["c"]

    def test_replace_with_empty_list_clears_date(self, task_repository, plan_repository, sample_task_base, plan_date):
        task_repository.create(Task(**{**sample_task_base, "id": "a"}))
        plan_repository.replace_for_date(plan_date, [self._item("a", plan_date, 9, 10)])

        assert plan_repository.replace_for_date(plan_date, []) == []

    def test_replace_rejects_items_of_other_dates(self, plan_repository, plan_date):
        other_date = plan_date + timedelta(days=1)
        with pytest.raises(ValueError):
            plan_repository.replace_for_date(plan_date, [self._item("a", other_date, 9, 10)])

    def test_failed_replace_keeps_previous_items(self, task_repository, plan_repository, sample_task_base, plan_date):
        task_repository.create(Task(**{**sample_task_base, "id": "a"}))
        plan_repository.replace_for_date(plan_date, [self._item("a", plan_date, 9, 10)])

        # Unknown task id violates the foreign key, so the whole replace is rolled back
        with pytest.raises(Exception):
            plan_repository.replace_for_date(plan_date, [self._item("missing", plan_date, 10, 11)])

        assert [i.task_id for i in plan_repository.get_for_date(plan_date)] == ["a"]

    def test_same_task_twice_on_one_date_rejected(self, task_repository, plan_repository, sample_task_base, plan_date):
        task_repository.create(Task(**{**sample_task_base, "id": "a"}))
        plan_repository.replace_for_date(plan_date, [self._item("a", plan_date, 9, 10)])

        with pytest.raises(Exception):
            plan_repository.replace_for_date(
                plan_date, [self._item("a", plan_date, 10, 11), self._item("a", plan_date, 14, 15)]
            )

        stored = plan_repository.get_for_date(plan_date)
        assert [(i.task_id, i.start.hour) for i in stored] == [("a", 9)]

    def test_lock_date_takes_row_lock_on_day(self, plan_repository, db_session, plan_date):
        plan_repository.lock_date(plan_date)
        # Taking it again inside the same transaction is a no-op
        plan_repository.lock_date(plan_date)

        assert db_session.query(PlanDayDB).filter(PlanDayDB.plan_date == plan_date).count() == 1
        sql = str(plan_repository.day_lock_query(plan_date).statement.compile(dialect=postgresql.dialect()))
        assert "FOR UPDATE" in sql

        plan_repository.release_date()
        assert db_session.query(PlanDayDB).count() == 0

    def test_replace_after_lock_stamps_the_day(self, task_repository, plan_repository, db_session, sample_task_base, plan_date):
        task_repository.create(Task(**{**sample_task_base, "id": "a"}))

        plan_repository.lock_date(plan_date)
        plan_repository.replace_for_date(plan_date, [self._item("a", plan_date, 9, 10)])

        day = db_session.query(PlanDayDB).filter(PlanDayDB.plan_date == plan_date).one()
        assert day.updated_at is not None
        assert len(plan_repository.get_for_date(plan_date)) == 1
