"""Repository for FixedSchedule database operations."""

import logging
from datetime import date
from typing import List
from sqlalchemy.orm import Session

from dayplanner.models.fixed_schedule import FixedSchedule
from dayplanner.models.schedule import BlockedInterval
from dayplanner.database.models import FixedScheduleDB

logger = logging.getLogger(__name__)


class FixedScheduleRepository:
    """Read/write access to weekly fixed schedules."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, schedule: FixedSchedule) -> FixedSchedule:
        """Create a new fixed schedule entry."""
        try:
            schedule_db = FixedScheduleDB.from_pydantic(schedule)
            self.db.add(schedule_db)
            self.db.commit()
            self.db.refresh(schedule_db)
            logger.debug(f"Created fixed schedule {schedule.id} on weekday {schedule.weekday}")
            return schedule_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create fixed schedule {schedule.id}: {type(e).__name__}: {str(e)}")
            raise

    def get_all(self) -> List[FixedSchedule]:
        rows = self.db.query(FixedScheduleDB).order_by(
            FixedScheduleDB.weekday, FixedScheduleDB.start_time, FixedScheduleDB.id
        ).all()
        return [row.to_pydantic() for row in rows]

    def list_for_weekday(self, weekday: int) -> List[FixedSchedule]:
        """Fixed schedules of an ISO weekday (1 = Monday), sorted by start time."""
        rows = self.db.query(FixedScheduleDB).filter(
            FixedScheduleDB.weekday == weekday,
        ).order_by(FixedScheduleDB.start_time, FixedScheduleDB.id).all()
        return [row.to_pydantic() for row in rows]

    def blocked_intervals_for(self, on: date) -> List[BlockedInterval]:
        """Blocked intervals that apply on a concrete date."""
        return [schedule.blocked_on(on) for schedule in self.list_for_weekday(on.isoweekday())]
