"""Repository layer for database operations."""

import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc

from dayplanner.models.task import Task
from dayplanner.database.models import TaskDB

logger = logging.getLogger(__name__)


class TaskRepository:
    """Repository for Task database operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, task: Task, commit: bool = True) -> Task:
        """Create a new task.

        With ``commit=False`` the row is only flushed; it is stored by the
        caller's next commit.
        """
        try:
            task_db = TaskDB.from_pydantic(task)
            self.db.add(task_db)
            if commit:
                self.db.commit()
            else:
                self.db.flush()
            self.db.refresh(task_db)
            logger.debug(f"Created task {task.id}: {task.title[:50]}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create task {task.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, task_id: str) -> Optional[Task]:
        """Get task by ID."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
        return task_db.to_pydantic() if task_db else None

    def get_many(self, task_ids: List[str]) -> List[Task]:
        """Get the tasks with the given IDs (missing IDs are skipped)."""
        if not task_ids:
            return []
        tasks_db = self.db.query(TaskDB).filter(TaskDB.id.in_(task_ids)).order_by(TaskDB.id).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def get_all(self) -> List[Task]:
        """Get all tasks sorted by creation date (newest first)."""
        tasks_db = self.db.query(TaskDB).order_by(desc(TaskDB.created_at), TaskDB.id).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def get_pending(self) -> List[Task]:
        """Get all tasks that are not completed, oldest first."""
        tasks_db = self.db.query(TaskDB).filter(
            TaskDB.completed.is_(False),
        ).order_by(TaskDB.created_at, TaskDB.id).all()
        return [task_db.to_pydantic() for task_db in tasks_db]

    def mark_completed(self, task_id: str) -> Optional[Task]:
        """Mark a task completed. Returns None if it does not exist."""
        task_db = self.db.query(TaskDB).filter(TaskDB.id == task_id).first()
        if not task_db:
            return None

        try:
            task_db.completed = True
            self.db.commit()
            self.db.refresh(task_db)
            logger.debug(f"Completed task {task_id}")
            return task_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to complete task {task_id}: {type(e).__name__}: {str(e)}")
            raise
