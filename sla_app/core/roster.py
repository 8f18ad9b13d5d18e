"""Load the responder roster and working-hour windows from YAML (with fallbacks).

The roster file is optional. When present it looks like::

    default_hours: {start: 13, end: 22}
    coverage_hours: {start: 7, end: 23}
    schedule_start: "2025-10-31T00:00:00Z"
    on_call:
      Brad Goldberg: {utc_offset: -5}
      Max Kuklin: {start: 13, end: 22}
    sla_responders: [Mitali Goel]
    working_hours:
      Mitali Goel: {utc_offset: 5}
    aliases:
      bgoldberg: Brad Goldberg

Any missing section falls back to the constants in ``config.py``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

from .config import (
    ACTOR_ALIASES,
    COVERAGE_END_HOUR,
    COVERAGE_START_HOUR,
    DEFAULT_BUSINESS_END_HOUR,
    DEFAULT_BUSINESS_START_HOUR,
    ON_CALL_RESPONDERS,
    ROSTER_FILENAME,
    ROSTER_PATH_ENV,
    SCHEDULE_START_DATE,
    SLA_RESPONDERS,
)
from .models import Actor, WorkingHours

logger = logging.getLogger(__name__)

_CACHE: dict[str, EngineConfig] = {}


@dataclass(frozen=True, slots=True)
class EngineConfig:
    default_hours: WorkingHours
    coverage_hours: WorkingHours
    schedule_start: datetime
    on_call_responders: frozenset[str]
    sla_responders: frozenset[str]
    hours_by_actor: dict[str, WorkingHours] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)

    def hours_for(self, actor_id: str | None) -> WorkingHours:
        if actor_id is None:
            return self.default_hours
        return self.hours_by_actor.get(actor_id, self.default_hours)

    def canonical_name(self, name: str | None) -> str | None:
        """Resolve schedule handles / emails (``bgoldberg@corp.com``) to roster names."""
        if not name:
            return None
        text = str(name).strip()
        handle = text.split("@")[0].lower()
        return self.aliases.get(handle, text)

    def actor(self, actor_id: str) -> Actor:
        return Actor(
            id=actor_id,
            hours=self.hours_for(actor_id),
            is_on_call_responder=actor_id in self.on_call_responders,
            is_sla_responder=actor_id in self.sla_responders,
        )


def default_engine_config() -> EngineConfig:
    hours = {name: WorkingHours.from_local(offset) for name, offset in ON_CALL_RESPONDERS.items()}
    return EngineConfig(
        default_hours=WorkingHours(DEFAULT_BUSINESS_START_HOUR, DEFAULT_BUSINESS_END_HOUR),
        coverage_hours=WorkingHours(COVERAGE_START_HOUR, COVERAGE_END_HOUR),
        schedule_start=_parse_instant(SCHEDULE_START_DATE),
        on_call_responders=frozenset(ON_CALL_RESPONDERS),
        sla_responders=frozenset(SLA_RESPONDERS),
        hours_by_actor=hours,
        aliases={k.lower(): v for k, v in ACTOR_ALIASES.items()},
    )


def _parse_instant(value: Any) -> datetime:
    ts = pd.to_datetime(value, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        raise ValueError(f"Unparseable instant: {value!r}")
    return ts.to_pydatetime()


def _parse_hours(entry: Any, fallback: WorkingHours) -> WorkingHours:
    if not isinstance(entry, dict):
        return fallback
    if "utc_offset" in entry:
        return WorkingHours.from_local(int(entry["utc_offset"]))
    return WorkingHours(int(entry.get("start", fallback.start)), int(entry.get("end", fallback.end)))


def engine_config_from_mapping(data: dict[str, Any]) -> EngineConfig:
    """Build an ``EngineConfig`` from parsed YAML, defaulting missing sections."""
    base = default_engine_config()
    default_hours = _parse_hours(data.get("default_hours"), base.default_hours)
    coverage_hours = _parse_hours(data.get("coverage_hours"), base.coverage_hours)
    schedule_start = (
        _parse_instant(data["schedule_start"]) if data.get("schedule_start") else base.schedule_start
    )

    on_call_raw = data.get("on_call")
    if on_call_raw is None:
        on_call = set(base.on_call_responders)
        hours_by_actor = dict(base.hours_by_actor)
    else:
        if isinstance(on_call_raw, dict):
            on_call = set(on_call_raw)
            entries = on_call_raw.items()
        else:
            on_call = {str(name) for name in on_call_raw}
            entries = ()
        hours_by_actor = {name: _parse_hours(entry, default_hours) for name, entry in entries if entry}

    for name, entry in (data.get("working_hours") or {}).items():
        hours_by_actor[name] = _parse_hours(entry, default_hours)

    sla_extra = data.get("sla_responders")
    sla = set(on_call) | (set(sla_extra) if sla_extra is not None else set(base.sla_responders))

    aliases = data.get("aliases")
    alias_map = base.aliases if aliases is None else {str(k).lower(): v for k, v in aliases.items()}

    return EngineConfig(
        default_hours=default_hours,
        coverage_hours=coverage_hours,
        schedule_start=schedule_start,
        on_call_responders=frozenset(on_call),
        sla_responders=frozenset(sla),
        hours_by_actor=hours_by_actor,
        aliases=alias_map,
    )


def _resolve_path(path: str | Path | None) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.environ.get(ROSTER_PATH_ENV)
    if env_path:
        return Path(env_path)
    return Path(__file__).resolve().parent.parent / ROSTER_FILENAME


def load_engine_config(path: str | Path | None = None) -> EngineConfig:
    """Load the roster once per run; unreadable files fall back to built-in defaults."""
    yaml_path = _resolve_path(path)
    cache_key = str(yaml_path)
    if cache_key in _CACHE:
        return _CACHE[cache_key]
    if not yaml_path.exists():
        config = default_engine_config()
    else:
        try:
            data = yaml.safe_load(yaml_path.read_text()) or {}
            config = engine_config_from_mapping(data)
        except (yaml.YAMLError, ValueError, TypeError, AttributeError) as exc:
            logger.warning("Failed to load roster %s, using defaults: %s", yaml_path, exc)
            config = default_engine_config()
    _CACHE[cache_key] = config
    return config


def clear_config_cache() -> None:
    _CACHE.clear()
