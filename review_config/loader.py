"""
Configuration Loader (``review_config.loader``).

Responsibility
--------------
Loads a configuration set's YAML file and parses it into the typed
``review_config.schema`` dataclasses.  This is build/test tooling; the
runtime entry point is ``review_config.get_active_config()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on kernel domain
value objects only (``RoleGroups``, ``FieldLimits``).

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Unknown keys in ``groups`` or ``limits`` are rejected, so a misspelt
  limit cannot silently fall back to its default.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``config_id`` / ``version``  -> ``KeyError`` propagates.
* Invalid date, weekday or limit  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from datetime import date
from pathlib import Path
from typing import Any

import yaml

from review_kernel.domain.limits import FieldLimits
from review_kernel.domain.principal import RoleGroups
from review_config.schema import CalendarDef, WorkflowConfiguration

_WEEKDAYS = {"mon": 0, "tue": 1, "wed": 2, "thu": 3, "fri": 4, "sat": 5, "sun": 6}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """
    Parse a date from YAML (string or date object).

    Raises:
        ValueError: if ``value`` is not a valid date representation.
    """
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_weekday(value: Any) -> int:
    """Weekday as ``date.weekday()`` number from ``mon``..``sun`` or 0..6."""
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 6:
        return value
    if isinstance(value, str) and value.strip().lower()[:3] in _WEEKDAYS:
        return _WEEKDAYS[value.strip().lower()[:3]]
    raise ValueError(f"Cannot parse weekday from {value!r}")


def _check_keys(section: str, data: dict[str, Any], allowed: set[str]) -> None:
    unknown = set(data) - allowed
    if unknown:
        raise ValueError(f"Unknown {section} keys: {sorted(unknown)}")


def parse_groups(data: dict[str, Any]) -> RoleGroups:
    """Parse the role -> directory group mapping."""
    _check_keys("groups", data, {f.name for f in fields(RoleGroups)})
    return RoleGroups(**{k: str(v) for k, v in data.items()})


def parse_limits(data: dict[str, Any]) -> FieldLimits:
    """Parse field limits; omitted limits keep their defaults."""
    _check_keys("limits", data, {f.name for f in fields(FieldLimits)})
    parsed: dict[str, int] = {}
    for key, value in data.items():
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f"limit {key} must be an integer, got {value!r}")
        parsed[key] = value
    return FieldLimits(**parsed)


def parse_calendar(data: dict[str, Any]) -> CalendarDef:
    """Parse the business calendar section."""
    defaults = CalendarDef()
    return CalendarDef(
        timezone=data.get("timezone", defaults.timezone),
        start_hour=int(data.get("start_hour", defaults.start_hour)),
        end_hour=int(data.get("end_hour", defaults.end_hour)),
        working_days=tuple(
            sorted({parse_weekday(d) for d in data.get("working_days", defaults.working_days)})
        ),
        holidays=tuple(sorted({parse_date(h) for h in data.get("holidays") or ()})),
    )


def parse_configuration(data: dict[str, Any]) -> WorkflowConfiguration:
    """
    Parse a complete ``WorkflowConfiguration`` from the root YAML dict.

    Preconditions:
        - ``data`` contains ``config_id`` and ``version``.
    Postconditions:
        - The returned configuration carries the checksum of ``data``.
        - Its calendar has been validated by building a ``BusinessCalendar``.
    Raises:
        KeyError: if required keys are missing.
        ValueError: if any section fails validation.
    """
    config = WorkflowConfiguration(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        groups=parse_groups(data.get("groups") or {}),
        limits=parse_limits(data.get("limits") or {}),
        calendar=parse_calendar(data.get("calendar") or {}),
        turnaround_business_days=int(data.get("turnaround_business_days", 5)),
        checksum=compute_checksum(data),
    )
    # Fail at load time rather than on the first time-tracking call.
    config.calendar.to_business_calendar()
    return config


def load_configuration(path: Path) -> WorkflowConfiguration:
    """Load and parse one configuration file."""
    return parse_configuration(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
