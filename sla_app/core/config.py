"""Central configuration, constants, roster defaults, and tuning knobs."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# =============================================================================
# Working Hours
# =============================================================================
# 8 AM - 5 PM US Eastern (UTC-5) expressed in UTC
DEFAULT_BUSINESS_START_HOUR: int = 13
DEFAULT_BUSINESS_END_HOUR: int = 22

# Local working day used when an actor is configured by UTC offset
LOCAL_WORKDAY_START_HOUR: int = 8
LOCAL_WORKDAY_END_HOUR: int = 17

# Saturday and Sunday (datetime.weekday() numbering)
WEEKEND_DAYS: frozenset[int] = frozenset({5, 6})

# =============================================================================
# On-call Coverage
# =============================================================================
# Hours (UTC) the on-call schedule is expected to be staffed. Instants outside
# this window with no shift are classified as after-hours gaps.
COVERAGE_START_HOUR: int = 7
COVERAGE_END_HOUR: int = 23

# Instants earlier than this are attributed to the before-schedule-start gap
SCHEDULE_START_DATE = "2025-10-31T00:00:00Z"

# =============================================================================
# Responder Roster
# =============================================================================
# Actors who take on-call shifts. Per-actor windows are UTC offsets applied to
# the local workday; everyone currently works US East Coast hours.
ON_CALL_RESPONDERS: dict[str, int] = {
    "Brad Goldberg": -5,
    "Jeff Maciorowski": -5,
    "Akshay Vijay Takkar": -5,
    "Grigoriy Semenenko": -5,
    "Randy Dahl": -5,
    "Evgeniy Suhov": -5,
    "Max Kuklin": -5,
}

# Actors whose actions count as an SLA response (on-call + key engineers)
SLA_RESPONDERS: frozenset[str] = frozenset(
    set(ON_CALL_RESPONDERS)
    | {
        "Manjeet Kumar Mahto",
        "Mitali Goel",
    }
)

# Schedule recipients are reported by account handle; map them to display names.
# Keys should be lowercase for case-insensitive matching
ACTOR_ALIASES: dict[str, str] = {
    "bgoldberg": "Brad Goldberg",
    "jmaciorowski": "Jeff Maciorowski",
    "atakkar": "Akshay Vijay Takkar",
    "gsemenenko": "Grigoriy Semenenko",
    "rdahl": "Randy Dahl",
    "esuhov": "Evgeniy Suhov",
    "mkulkin": "Max Kuklin",
}

# Optional YAML override for everything in this section
ROSTER_FILENAME = "roster.yaml"
ROSTER_PATH_ENV = "SLA_ROSTER_PATH"

# =============================================================================
# Reporting
# =============================================================================
# (label, exclusive upper bound in minutes); None marks the open-ended bucket
RESPONSE_TIME_BUCKETS: Sequence[tuple[str, int | None]] = (
    ("Under 1 hour", 60),
    ("1-2 hours", 120),
    ("2-4 hours", 240),
    ("4-8 hours", 480),
    ("Over 8 hours", None),
)
NO_RESPONSE_BUCKET = "No response"

DAY_NAMES: Sequence[str] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

COMPLIANCE_TARGET_PCT: float = 90.0

# =============================================================================
# Jira Field Extraction
# =============================================================================
# Statuses that imply resolution even when resolutiondate is empty
CLOSED_STATUS_HINTS: Sequence[str] = ("closed", "complete", "completed", "done", "resolved")

# Field-name fragments searched for SLA cycle data
SLA_FIELD_HINTS: Sequence[str] = ("sla", "customfield")

# Parallel evaluation tuning
# Evaluation is CPU bound but cheap per ticket; threads keep the inputs shared
# without copying. Below the minimum we stay sequential to reduce overhead.
EVALUATION_MAX_WORKERS = 8
EVALUATION_MIN_PARALLEL = 64

OUTCOME_COLUMNS: Sequence[str] = (
    "ticket_key",
    "pathway",
    "responsible",
    "is_gap",
    "status",
    "business_minutes",
    "goal_minutes",
    "met",
    "disposition",
    "shift_ended",
    "coverage",
    "created_at",
)


@dataclass(slots=True)
class AppSettings:
    max_table_rows: int = 1000
    compliance_decimals: int = 1


SETTINGS = AppSettings()
