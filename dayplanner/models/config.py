"""Scheduling configuration for dayplanner.

Defaults live in ``dayplanner.models.constants``; ``load_config`` lets the
environment (or a ``.env`` file) override them.
"""

import os
from enum import Enum
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from dayplanner.models.constants import (
    DEFAULT_WORK_WINDOWS,
    DEFAULT_HIGH_ENERGY_HOURS,
    DEFAULT_MEDIUM_ENERGY_HOURS,
    DEFAULT_LOW_ENERGY_HOURS,
    DEFAULT_PADDING_MINUTES,
    DEFAULT_MIN_SLOT_MINUTES,
    DEFAULT_MINIMUM_BREAK_MINUTES,
    DEFAULT_MAX_CONTINUOUS_WORK_MINUTES,
    DEFAULT_BREAK_MINUTES,
    DEFAULT_MAX_RESCHEDULE_ATTEMPTS,
)
from dayplanner.models.task import EnergyLevel


class Strategy(str, Enum):
    """Allocation strategy selector."""
    BALANCED = "balanced"
    PRIORITY_FOCUSED = "priority_focused"
    ENERGY_AWARE = "energy_aware"
    DEADLINE_DRIVEN = "deadline_driven"
    FLEXIBLE = "flexible"


class ScoreWeights(BaseModel):
    """Weights of the composite task score."""

    model_config = ConfigDict(frozen=True)

    priority: float = Field(0.3, ge=0.0)
    urgency: float = Field(0.3, ge=0.0)
    energy_match: float = Field(0.2, ge=0.0)
    duration: float = Field(0.2, ge=0.0)


STRATEGY_WEIGHTS: Dict[Strategy, ScoreWeights] = {
    Strategy.BALANCED: ScoreWeights(priority=0.3, urgency=0.3, energy_match=0.2, duration=0.2),
    Strategy.PRIORITY_FOCUSED: ScoreWeights(priority=0.5, urgency=0.2, energy_match=0.1, duration=0.2),
    Strategy.ENERGY_AWARE: ScoreWeights(priority=0.2, urgency=0.2, energy_match=0.4, duration=0.2),
    Strategy.DEADLINE_DRIVEN: ScoreWeights(priority=0.2, urgency=0.5, energy_match=0.1, duration=0.2),
    Strategy.FLEXIBLE: ScoreWeights(priority=0.25, urgency=0.25, energy_match=0.25, duration=0.25),
}


class EnergyBands(BaseModel):
    """Hours of the day belonging to each energy band."""

    model_config = ConfigDict(frozen=True)

    high: List[int] = Field(default_factory=lambda: list(DEFAULT_HIGH_ENERGY_HOURS))
    medium: List[int] = Field(default_factory=lambda: list(DEFAULT_MEDIUM_ENERGY_HOURS))
    low: List[int] = Field(default_factory=lambda: list(DEFAULT_LOW_ENERGY_HOURS))

    @field_validator("high", "medium", "low")
    @classmethod
    def _validate_hours(cls, v):
        for hour in v:
            if not 0 <= hour <= 23:
                raise ValueError(f"energy band hour out of range: {hour}")
        return sorted(set(v))

    def hours_for(self, level: EnergyLevel) -> List[int]:
        level = EnergyLevel(level)
        if level == EnergyLevel.HIGH:
            return self.high
        if level == EnergyLevel.MEDIUM:
            return self.medium
        return self.low

    def band_of(self, hour: int) -> EnergyLevel:
        """Energy band of an hour; hours outside every band count as MEDIUM."""
        if hour in self.high:
            return EnergyLevel.HIGH
        if hour in self.low:
            return EnergyLevel.LOW
        return EnergyLevel.MEDIUM


class SchedulingConfig(BaseModel):
    """Options recognized by the scheduling engine."""

    model_config = ConfigDict(frozen=True)

    strategy: Strategy = Strategy.BALANCED
    work_windows: List[Tuple[int, int]] = Field(default_factory=lambda: list(DEFAULT_WORK_WINDOWS))
    energy_bands: EnergyBands = Field(default_factory=EnergyBands)
    padding_minutes: int = Field(DEFAULT_PADDING_MINUTES, ge=0)
    min_slot_minutes: int = Field(DEFAULT_MIN_SLOT_MINUTES, ge=0)
    minimum_break_minutes: int = Field(DEFAULT_MINIMUM_BREAK_MINUTES, ge=0)
    max_continuous_work_minutes: int = Field(DEFAULT_MAX_CONTINUOUS_WORK_MINUTES, gt=0)
    break_minutes: int = Field(DEFAULT_BREAK_MINUTES, ge=0)
    max_reschedule_attempts: int = Field(DEFAULT_MAX_RESCHEDULE_ATTEMPTS, ge=1)
    score_weights: Optional[ScoreWeights] = None
    time_zone: Optional[str] = Field(None, description="IANA time zone; None keeps datetimes naive")

    @field_validator("work_windows")
    @classmethod
    def _validate_work_windows(cls, v):
        for start_hour, end_hour in v:
            if not (0 <= start_hour < end_hour <= 24):
                raise ValueError(f"invalid work window ({start_hour}, {end_hour})")
        return sorted(v)

    @property
    def weights(self) -> ScoreWeights:
        """Explicit weights if configured, else the strategy preset."""
        if self.score_weights is not None:
            return self.score_weights
        return STRATEGY_WEIGHTS[Strategy(self.strategy)]


def _parse_work_windows(raw: str) -> List[Tuple[int, int]]:
    """Parse ``"9-12,14-18"`` into ``[(9, 12), (14, 18)]``."""
    windows = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        start, _, end = part.partition("-")
        windows.append((int(start), int(end)))
    return windows


def _parse_hours(raw: str) -> List[int]:
    return [int(h) for h in raw.split(",") if h.strip()]


def load_config(**overrides) -> SchedulingConfig:
    """Build a SchedulingConfig from DAYPLANNER_* environment variables.

    Keyword overrides win over the environment.
    """
    load_dotenv()

    values: dict = {}
    env_ints = {
        "padding_minutes": "DAYPLANNER_PADDING_MINUTES",
        "min_slot_minutes": "DAYPLANNER_MIN_SLOT_MINUTES",
        "minimum_break_minutes": "DAYPLANNER_MINIMUM_BREAK_MINUTES",
        "max_continuous_work_minutes": "DAYPLANNER_MAX_CONTINUOUS_WORK_MINUTES",
        "break_minutes": "DAYPLANNER_BREAK_MINUTES",
        "max_reschedule_attempts": "DAYPLANNER_MAX_RESCHEDULE_ATTEMPTS",
    }
    for field_name, env_name in env_ints.items():
        raw = os.getenv(env_name)
        if raw:
            values[field_name] = int(raw)

    strategy = os.getenv("DAYPLANNER_STRATEGY")
    if strategy:
        values["strategy"] = Strategy(strategy.lower())

    windows = os.getenv("DAYPLANNER_WORK_WINDOWS")
    if windows:
        values["work_windows"] = _parse_work_windows(windows)

    bands = {}
    for band in ("high", "medium", "low"):
        raw = os.getenv(f"DAYPLANNER_{band.upper()}_ENERGY_HOURS")
        if raw:
            bands[band] = _parse_hours(raw)
    if bands:
        values["energy_bands"] = EnergyBands(**bands)

    time_zone = os.getenv("DAYPLANNER_TIME_ZONE")
    if time_zone:
        values["time_zone"] = time_zone

    values.update(overrides)
    return SchedulingConfig(**values)
