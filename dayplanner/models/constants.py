"""Constants for dayplanner.

This module centralizes all magic numbers and default values used throughout the application.
"""

# Work windows as (start_hour, end_hour) pairs
DEFAULT_WORK_WINDOWS = [(9, 12), (14, 18), (19, 22)]

# Hours of the day associated with each energy band
DEFAULT_HIGH_ENERGY_HOURS = [9, 10, 11]
DEFAULT_MEDIUM_ENERGY_HOURS = [14, 15, 16, 17]
DEFAULT_LOW_ENERGY_HOURS = [19, 20, 21]

# Allocation
DEFAULT_PADDING_MINUTES = 5
DEFAULT_MIN_SLOT_MINUTES = 15
DEFAULT_MINIMUM_BREAK_MINUTES = 5
DEFAULT_MAX_CONTINUOUS_WORK_MINUTES = 120
DEFAULT_BREAK_MINUTES = 15
DEFAULT_MAX_RESCHEDULE_ATTEMPTS = 3

# Scoring
MAX_PRIORITY_SCORE = 4.0
DURATION_FACTOR_CAP_MINUTES = 180

# Urgency buckets: (hours from day start, score) and (days after day end, score)
SAME_DAY_URGENCY_BUCKETS = [(2, 1.0), (6, 0.8), (12, 0.6), (24, 0.4)]
FUTURE_URGENCY_BUCKETS = [(1, 0.3), (3, 0.2), (7, 0.1)]
OVERDUE_URGENCY_SCORE = 1.0

# Energy match by band distance (0, 1, 2)
ENERGY_MATCH_SCORES = [1.0, 0.8, 0.5]
ENERGY_MISMATCH_FLOOR = 0.2

# Emergency insertion impact weights
DISPLACEMENT_IMPACT_WEIGHTS = {"high": 3.0, "medium": 2.0, "low": 1.0}
DISPLACEMENT_IMPACT_DEFAULT = 1.5
FORCED_INSERTION_IMPACT = 1.0

# Confidence reported for each allocation
BALANCED_CONFIDENCE = 0.8
ENERGY_MATCHED_CONFIDENCE = 0.9
ENERGY_FALLBACK_CONFIDENCE = 0.7
FLEXIBLE_CONFIDENCE = 0.75
NO_DEADLINE_CONFIDENCE = 0.6

# Priority suggestions: factor weights sum to 1.0
PRIORITY_FACTOR_WEIGHTS = {
    "deadline": 0.3,
    "completion_rate": 0.2,
    "age": 0.15,
    "energy": 0.15,
    "kind": 0.1,
    "duration": 0.1,
}
MAX_PRIORITY_BOOST = 2
SIGNIFICANT_FACTOR_VALUE = 0.6
DEFAULT_COMPLETION_RATE = 0.5
COMPLETION_RATE_THRESHOLD = 0.8
LOW_COMPLETION_PRESSURE = 0.8
HIGH_COMPLETION_PRESSURE = 0.2
# (hours since creation, value), checked as "older than"
TASK_AGE_BUCKETS = [(168, 1.0), (72, 0.8), (48, 0.6), (24, 0.4)]
NEW_TASK_AGE_VALUE = 0.2
TASK_KIND_PRESSURE = {
    "emergency": 1.0,
    "meeting": 0.8,
    "learning": 0.6,
    "exercise": 0.4,
    "routine": 0.2,
    "personal": 0.2,
    "normal": 0.4,
    "subtask": 0.2,
}
# (minutes, value), checked as "shorter than"
DURATION_PRESSURE_BUCKETS = [(30, 0.2), (60, 0.4), (120, 0.6)]
LONG_TASK_PRESSURE = 0.8
HIGH_ENERGY_IN_BAND_PRESSURE = 0.2
HIGH_ENERGY_OUT_OF_BAND_PRESSURE = 0.8
OTHER_ENERGY_PRESSURE = 0.4
