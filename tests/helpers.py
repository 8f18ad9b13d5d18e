"""Shared builders for SLA engine tests."""

from __future__ import annotations

from datetime import datetime

import pytz

from sla_app.core.models import WorkingHours
from sla_app.core.roster import EngineConfig

# 2025-11-03 is a Monday; 2025-11-01 a Saturday.


def ts(day: int, hour: int, minute: int = 0, month: int = 11) -> datetime:
    return datetime(2025, month, day, hour, minute, tzinfo=pytz.UTC)


def make_config(**overrides) -> EngineConfig:
    values = {
        "default_hours": WorkingHours(13, 22),
        "coverage_hours": WorkingHours(7, 23),
        "schedule_start": ts(31, 0, month=10),
        "on_call_responders": frozenset({"Alice", "Bob"}),
        "sla_responders": frozenset({"Alice", "Bob", "Dana"}),
        "hours_by_actor": {},
        "aliases": {"alice.h": "Alice"},
    }
    values.update(overrides)
    return EngineConfig(**values)
