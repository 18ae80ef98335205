"""Repository for persisted plan items."""

import logging
from datetime import date, datetime
from typing import List
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, Query

from dayplanner.models.schedule import PlannedItem
from dayplanner.database.models import PlanDayDB, PlanItemDB

logger = logging.getLogger(__name__)


class PlanItemRepository:
    """Repository for PlannedItem database operations."""

    def __init__(self, db: Session):
        self.db = db

    def get_for_date(self, plan_date: date) -> List[PlannedItem]:
        """Plan items of a date sorted by start time."""
        rows = self.db.query(PlanItemDB).filter(
            PlanItemDB.plan_date == plan_date,
        ).order_by(PlanItemDB.start_time, PlanItemDB.task_id).all()
        return [row.to_pydantic() for row in rows]

    def day_lock_query(self, plan_date: date) -> Query:
        """SELECT ... FOR UPDATE of the date's plan_days row."""
        return self.db.query(PlanDayDB).filter(PlanDayDB.plan_date == plan_date).with_for_update()

    def lock_date(self, plan_date: date) -> None:
        """Lock a date for re-planning until the transaction ends.

        Call before reading what the new plan is computed from; the lock is
        released by the commit (or rollback) of ``replace_for_date``. On
        server databases a second re-plan of the same date waits here.
        SQLite has no row locks but allows only one writer at a time.
        """
        try:
            self._lock_row(plan_date)
        except IntegrityError:
            # A concurrent request inserted the row first and has committed it
            self.db.rollback()
            self._lock_row(plan_date)

    def _lock_row(self, plan_date: date) -> None:
        if self.day_lock_query(plan_date).one_or_none() is None:
            self.db.add(PlanDayDB(plan_date=plan_date))
            self.db.flush()

    def release_date(self) -> None:
        """Give up a lock taken by ``lock_date`` without changing anything."""
        self.db.rollback()

    def replace_for_date(self, plan_date: date, items: List[PlannedItem]) -> List[PlannedItem]:
        """Replace every plan item of a date in a single transaction.

        Either the old items are all gone and the new ones stored, or nothing
        changes.

        Raises:
            ValueError: if an item belongs to a different date
        """
        for item in items:
            if item.plan_date != plan_date:
                raise ValueError(f"plan item {item.task_id} belongs to {item.plan_date}, not {plan_date}")

        try:
            deleted_count = self.db.query(PlanItemDB).filter(
                PlanItemDB.plan_date == plan_date,
            ).delete(synchronize_session=False)
            self.db.add_all([PlanItemDB.from_pydantic(item) for item in items])
            self.db.merge(PlanDayDB(plan_date=plan_date, updated_at=datetime.utcnow()))
            self.db.commit()
            logger.debug(f"Replaced {deleted_count} plan items for {plan_date} with {len(items)}")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to replace plan items for {plan_date}: {type(e).__name__}: {str(e)}")
            raise
        return self.get_for_date(plan_date)
