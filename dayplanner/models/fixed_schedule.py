"""Fixed (weekly recurring) schedule model for dayplanner."""

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from dayplanner.models.schedule import BlockedInterval


class FixedSchedule(BaseModel):
    """A period that is blocked every week on the same weekday.

    Weekdays follow ISO numbering: 1 is Monday, 7 is Sunday.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Unique identifier")
    title: str = Field(..., description="What blocks the time (class, meeting, ...)")
    weekday: int = Field(..., ge=1, le=7, description="ISO weekday")
    start_time: time = Field(..., description="Local start time")
    end_time: time = Field(..., description="Local end time")
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _validate_times(self):
        if self.start_time >= self.end_time:
            raise ValueError(f"start_time must be before end_time ({self.start_time} >= {self.end_time})")
        return self

    def blocked_on(self, on: date) -> BlockedInterval:
        """Concrete blocked interval on ``on`` (the weekday is not checked)."""
        return BlockedInterval(
            start=datetime.combine(on, self.start_time),
            end=datetime.combine(on, self.end_time),
            title=self.title,
            source_id=self.id,
        )
