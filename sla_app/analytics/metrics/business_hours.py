"""Business-hours calendar: elapsed working minutes between two instants.

Windows are UTC hour ranges per actor (or the default window); Saturday and
Sunday are never working days. A window whose start hour is later than its
end hour wraps past midnight, so a single calendar day then holds two working
spans: ``[00:00, end)`` and ``[start, 24:00)``.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta

import pytz

from sla_app.core.config import DAY_NAMES, WEEKEND_DAYS
from sla_app.core.models import Actor, WorkingHours
from sla_app.core.roster import EngineConfig, default_engine_config

from .timestamps import ensure_utc

# Any 8 consecutive calendar days contain a weekday window
MAX_SCAN_DAYS = 8

ActorRef = str | Actor | None


def is_weekend(ts: datetime | date) -> bool:
    return ts.weekday() in WEEKEND_DAYS


def format_business_time(minutes: float | None) -> str:
    """Render minutes as ``"45m"`` / ``"2h 5m"``; ``"N/A"`` when missing."""
    if minutes is None:
        return "N/A"
    hours = int(minutes // 60)
    mins = int(round(minutes % 60))
    if hours == 0:
        return f"{mins}m"
    return f"{hours}h {mins}m"


class BusinessCalendar:
    def __init__(self, config: EngineConfig | None = None):
        self.config = config or default_engine_config()

    def hours_for(self, actor: ActorRef = None) -> WorkingHours:
        if isinstance(actor, Actor):
            return actor.hours
        return self.config.hours_for(actor)

    # ------------------ Day Windows ------------------
    def day_windows(self, day: date, actor: ActorRef = None) -> list[tuple[datetime, datetime]]:
        """Working spans on ``day`` (empty on weekends), ordered by start."""
        if is_weekend(day):
            return []
        hours = self.hours_for(actor)
        midnight = datetime.combine(day, time(0, 0), tzinfo=pytz.UTC)
        next_midnight = midnight + timedelta(days=1)
        window_start = midnight + timedelta(hours=hours.start)
        window_end = midnight + timedelta(hours=hours.end)
        if hours.start == hours.end:
            return [(midnight, next_midnight)]
        if hours.start < hours.end:
            return [(window_start, window_end)]
        return [(midnight, window_end), (window_start, next_midnight)]

    # ------------------ Instant Queries ------------------
    def is_working_instant(self, ts: datetime, actor: ActorRef = None) -> bool:
        ts = ensure_utc(ts)
        if is_weekend(ts):
            return False
        return self.hours_for(actor).contains_hour(ts.hour)

    def is_outside_business_hours(self, ts: datetime, actor: ActorRef = None) -> bool:
        return not self.is_working_instant(ts, actor)

    def next_working_instant(self, ts: datetime, actor: ActorRef = None) -> datetime:
        ts = ensure_utc(ts)
        for offset in range(MAX_SCAN_DAYS):
            day = ts.date() + timedelta(days=offset)
            for span_start, span_end in self.day_windows(day, actor):
                if span_end > ts:
                    return max(ts, span_start)
        raise RuntimeError(f"No working instant within {MAX_SCAN_DAYS} days of {ts.isoformat()}")

    def created_time_context(self, ts: datetime, actor: ActorRef = None) -> str:
        """Describe when ``ts`` fell relative to the (actor's) working window."""
        ts = ensure_utc(ts)
        owner = actor.id if isinstance(actor, Actor) else actor
        if is_weekend(ts):
            return f"{DAY_NAMES[ts.weekday()]} (Weekend)"
        hours = self.hours_for(actor)
        scope = f"{owner}'s business hours" if owner else "business hours"
        if hours.contains_hour(ts.hour):
            return f"During {scope}"
        if not hours.wraps and ts.hour < hours.start:
            return f"Before {scope}"
        return f"After {scope}"

    # ------------------ Elapsed Time ------------------
    def elapsed_business_minutes(self, start: datetime, end: datetime, actor: ActorRef = None) -> int:
        """Working minutes between ``start`` and ``end``, rounded to the nearest minute.

        Returns 0 when ``end`` falls at or before the first working instant at or
        after ``start``.
        """
        start = ensure_utc(start)
        end = ensure_utc(end)
        pointer = self.next_working_instant(start, actor)
        if end <= pointer:
            return 0

        seconds = 0.0
        day = pointer.date()
        while day <= end.date():
            for span_start, span_end in self.day_windows(day, actor):
                lower = max(pointer, span_start)
                upper = min(end, span_end)
                if upper > lower:
                    seconds += (upper - lower).total_seconds()
            day += timedelta(days=1)
        # Half-up rounding; round() would bank to even
        return int(math.floor(seconds / 60.0 + 0.5))
