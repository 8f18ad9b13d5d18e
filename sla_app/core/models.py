"""Domain data models for tickets, actors, shifts, and SLA outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .config import LOCAL_WORKDAY_END_HOUR, LOCAL_WORKDAY_START_HOUR


class Pathway(str, Enum):
    ON_CALL = "on-call"
    ASSIGNEE = "assignee"


class OutcomeStatus(str, Enum):
    RESPONDED = "responded"
    PENDING = "pending"
    RESOLVED_NO_COMMENT = "resolved-no-comment"
    NO_RESPONSE = "no-response"
    RESPONDED_AFTER_SHIFT = "responded-after-shift"

    @property
    def is_open(self) -> bool:
        """True while the ticket is still waiting on the accountable actor."""
        return self in (OutcomeStatus.PENDING, OutcomeStatus.NO_RESPONSE)


class Disposition(str, Enum):
    MET = "met"
    BREACHED = "breached"
    PENDING = "pending"


class GapSentinel(str, Enum):
    BEFORE_SCHEDULE_START = "before-schedule-start"
    WEEKEND = "weekend"
    AFTER_HOURS = "after-hours"
    NO_COVERAGE = "no-coverage"

    @property
    def label(self) -> str:
        return "[" + self.value.replace("-", " ").title() + "]"

    @property
    def is_off_hours(self) -> bool:
        """Weekend, after-hours and pre-schedule gaps; an unstaffed weekday slot is not."""
        return self is not GapSentinel.NO_COVERAGE


@dataclass(frozen=True, slots=True)
class WorkingHours:
    """Daily working window in UTC hours.

    ``start > end`` wraps past midnight (e.g. 22 -> 7); ``start == end`` covers
    the whole day.
    """

    start: int
    end: int

    def __post_init__(self):
        for value in (self.start, self.end):
            if not 0 <= value <= 23:
                raise ValueError(f"Working hour out of range: {value!r}")

    @property
    def wraps(self) -> bool:
        return self.start > self.end

    def contains_hour(self, hour: int) -> bool:
        if self.start == self.end:
            return True
        if self.start < self.end:
            return self.start <= hour < self.end
        return hour >= self.start or hour < self.end

    @classmethod
    def from_local(
        cls,
        utc_offset: int,
        start: int = LOCAL_WORKDAY_START_HOUR,
        end: int = LOCAL_WORKDAY_END_HOUR,
    ) -> WorkingHours:
        """Translate a local ``start``-``end`` workday at ``utc_offset`` into UTC hours."""
        return cls(start=(start - utc_offset) % 24, end=(end - utc_offset) % 24)


@dataclass(frozen=True, slots=True)
class Actor:
    id: str
    hours: WorkingHours
    is_on_call_responder: bool = False
    is_sla_responder: bool = False


@dataclass(frozen=True, slots=True)
class Shift:
    actor: str
    start: datetime
    end: datetime

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts <= self.end


@dataclass(frozen=True, slots=True)
class Ticket:
    key: str
    created_at: datetime | None
    resolved_at: datetime | None = None
    assigned_at: datetime | None = None
    assigned_by: str | None = None
    owner_comment_at: datetime | None = None
    first_responder_comment_at: datetime | None = None
    first_responder_assign_at: datetime | None = None
    first_responder: str | None = None
    current_owner: str | None = None
    goal_minutes: float | None = None

    @property
    def has_goal(self) -> bool:
        return self.goal_minutes is not None and self.goal_minutes > 0

    @property
    def first_responder_action_at(self) -> datetime | None:
        actions = [
            ts for ts in (self.first_responder_comment_at, self.first_responder_assign_at) if ts is not None
        ]
        return min(actions) if actions else None


@dataclass(frozen=True, slots=True)
class SLAOutcome:
    ticket_key: str
    pathway: Pathway
    responsible: str | GapSentinel
    status: OutcomeStatus
    business_minutes: int
    met: bool
    goal_minutes: float
    created_at: datetime | None = None
    shift_ended: bool = False
    coverage: GapSentinel | None = None

    @property
    def is_gap(self) -> bool:
        return isinstance(self.responsible, GapSentinel)

    @property
    def response_minutes(self) -> int | None:
        """Business minutes to the closing event; None while still open."""
        if self.status.is_open:
            return None
        return self.business_minutes

    @property
    def disposition(self) -> Disposition:
        if self.status.is_open and self.met and not self.shift_ended:
            return Disposition.PENDING
        return Disposition.MET if self.met else Disposition.BREACHED

    def to_dict(self) -> dict:
        responsible = self.responsible
        if isinstance(responsible, GapSentinel):
            responsible = responsible.value
        return {
            "ticket_key": self.ticket_key,
            "pathway": self.pathway.value,
            "responsible": responsible,
            "is_gap": self.is_gap,
            "status": self.status.value,
            "business_minutes": self.business_minutes,
            "goal_minutes": self.goal_minutes,
            "met": self.met,
            "disposition": self.disposition.value,
            "shift_ended": self.shift_ended,
            "coverage": self.coverage.value if self.coverage else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
