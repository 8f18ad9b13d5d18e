"""Mapping upstream payloads (Jira issue JSON, flat records, schedule timelines) into models."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from sla_app.analytics.metrics.timestamps import earliest, normalize_timestamp

from .config import CLOSED_STATUS_HINTS, SLA_FIELD_HINTS
from .models import Shift, Ticket
from .roster import EngineConfig, load_engine_config

logger = logging.getLogger(__name__)

# Accepted keys for flat ticket records, first match wins
RECORD_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "key": ("key", "ticket", "ticket_key"),
    "created_at": ("created_at", "createdAt", "created"),
    "resolved_at": ("resolved_at", "resolvedAt", "resolutionDate", "resolution_date"),
    "assigned_at": ("assigned_at", "assignedAt", "firstAssignmentTime"),
    "assigned_by": ("assigned_by", "assignedBy"),
    "owner_comment_at": ("owner_comment_at", "ownerCommentAt", "firstAssigneeCommentTime"),
    "first_responder_comment_at": ("first_responder_comment_at", "firstResponderCommentAt"),
    "first_responder_assign_at": ("first_responder_assign_at", "firstResponderAssignAt"),
    "first_responder": ("first_responder", "firstResponder"),
    "current_owner": ("current_owner", "currentOwner", "assigneeCurrent", "assignee"),
    "goal_minutes": ("goal_minutes", "goalMinutes"),
}

TIMESTAMP_FIELDS = frozenset(
    {
        "created_at",
        "resolved_at",
        "assigned_at",
        "owner_comment_at",
        "first_responder_comment_at",
        "first_responder_assign_at",
    }
)


def _display_name(person: Any) -> str | None:
    if isinstance(person, dict):
        return person.get("displayName") or person.get("name")
    if person:
        return str(person)
    return None


def _goal_number(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return number


# ------------------ Flat Records ------------------
def ticket_from_record(record: Mapping[str, Any]) -> Ticket:
    """Build a ``Ticket`` from a flat dict; unparseable timestamps become None."""
    values: dict[str, Any] = {}
    for name, aliases in RECORD_FIELD_ALIASES.items():
        raw = next((record[a] for a in aliases if a in record and record[a] is not None), None)
        if name in TIMESTAMP_FIELDS:
            values[name] = normalize_timestamp(raw)
        elif name == "goal_minutes":
            values[name] = _goal_number(raw)
        else:
            values[name] = _display_name(raw)
    if not values["key"]:
        raise ValueError("Ticket record has no key")
    return Ticket(**values)


# ------------------ Jira Issues ------------------
def extract_goal_minutes(fields: Mapping[str, Any]) -> float | None:
    """Goal of the first SLA cycle found among the SLA-like custom fields.

    Tickets may carry several goal entries; the first one wins.
    """
    for field_key, value in fields.items():
        lowered = field_key.lower()
        if not any(hint in lowered for hint in SLA_FIELD_HINTS):
            continue
        if not isinstance(value, dict):
            continue
        cycles = value.get("completedCycles") or []
        cycle = cycles[0] if cycles else value.get("ongoingCycle")
        if not isinstance(cycle, dict):
            continue
        millis = (cycle.get("goalDuration") or {}).get("millis")
        if millis is None:
            return None
        return float(millis) / 60000.0
    return None


def _resolution_date(fields: Mapping[str, Any], histories: list[dict]) -> datetime | None:
    resolved = normalize_timestamp(fields.get("resolutiondate") or fields.get("resolveddatetime"))
    if resolved is not None:
        return resolved
    status = ((fields.get("status") or {}).get("name") or "").lower()
    if not any(hint in status for hint in CLOSED_STATUS_HINTS):
        return None
    for h in histories:
        for item in h.get("items") or []:
            if item.get("field") != "status":
                continue
            target = (item.get("toString") or "").lower()
            if any(hint in target for hint in CLOSED_STATUS_HINTS):
                return normalize_timestamp(h.get("created"))
    return None


def _sorted_by_created(entries: Iterable[dict]) -> list[tuple[datetime, dict]]:
    stamped = []
    for entry in entries:
        ts = normalize_timestamp(entry.get("created"))
        if ts is not None:
            stamped.append((ts, entry))
    stamped.sort(key=lambda pair: pair[0])
    return stamped


def map_issue(raw: Mapping[str, Any], config: EngineConfig | None = None) -> Ticket:
    """Derive ticket lifecycle timestamps from a Jira issue with changelog."""
    config = config or load_engine_config()
    fields = raw.get("fields") or {}
    histories = _sorted_by_created((raw.get("changelog") or {}).get("histories") or [])
    comments = _sorted_by_created((fields.get("comment") or {}).get("comments") or [])
    owner = config.canonical_name(_display_name(fields.get("assignee")))

    assigned_at = assigned_by = None
    responder_assign_at = responder_assign_by = None
    for ts, h in histories:
        if not any(i.get("field") == "assignee" and i.get("toString") for i in h.get("items") or []):
            continue
        author = config.canonical_name(_display_name(h.get("author")))
        if assigned_at is None:
            assigned_at, assigned_by = ts, author
        if responder_assign_at is None and author in config.sla_responders:
            responder_assign_at, responder_assign_by = ts, author

    owner_comment_at = responder_comment_at = responder_comment_by = None
    for ts, c in comments:
        author = config.canonical_name(_display_name(c.get("author")))
        if owner_comment_at is None and assigned_at is not None and author == owner and ts >= assigned_at:
            owner_comment_at = ts
        if responder_comment_at is None and author in config.sla_responders:
            responder_comment_at, responder_comment_by = ts, author

    first_action = earliest(responder_comment_at, responder_assign_at)
    if first_action is None:
        first_responder = None
    elif first_action == responder_comment_at:
        first_responder = responder_comment_by
    else:
        first_responder = responder_assign_by

    return Ticket(
        key=raw.get("key"),
        created_at=normalize_timestamp(fields.get("created")),
        resolved_at=_resolution_date(fields, [h for _, h in histories]),
        assigned_at=assigned_at,
        assigned_by=assigned_by,
        owner_comment_at=owner_comment_at,
        first_responder_comment_at=responder_comment_at,
        first_responder_assign_at=responder_assign_at,
        first_responder=first_responder,
        current_owner=owner,
        goal_minutes=extract_goal_minutes(fields),
    )


# ------------------ Schedule Timelines ------------------
def map_timeline(payload: Mapping[str, Any], config: EngineConfig | None = None) -> list[Shift]:
    """Flatten a schedule timeline (rotations -> periods) into ordered shifts.

    Periods are taken in start order (ties go to the lower-order rotation); a
    period overlapping the one before it is clipped to start where that one
    ends, and back-to-back periods for the same actor are merged.
    """
    config = config or load_engine_config()
    data = payload.get("data", payload)
    timeline = data.get("finalTimeline") or data.get("baseTimeline") or data
    candidates: list[tuple[datetime, int, datetime, str]] = []
    for rotation in timeline.get("rotations") or []:
        order = rotation.get("order", 0)
        for period in rotation.get("periods") or []:
            actor = config.canonical_name(_display_name(period.get("recipient")))
            start = normalize_timestamp(period.get("startDate"))
            end = normalize_timestamp(period.get("endDate"))
            if actor is None or start is None or end is None or end <= start:
                logger.debug("Skipping unusable timeline period in %s", rotation.get("name"))
                continue
            candidates.append((start, order, end, actor))

    candidates.sort(key=lambda c: (c[0], c[1]))
    shifts: list[Shift] = []
    for start, _order, end, actor in candidates:
        if shifts and start < shifts[-1].end:
            if end <= shifts[-1].end:
                continue
            start = shifts[-1].end
        if shifts and shifts[-1].actor == actor and shifts[-1].end == start:
            shifts[-1] = Shift(actor, shifts[-1].start, end)
            continue
        shifts.append(Shift(actor, start, end))
    return shifts
