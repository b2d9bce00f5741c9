"""
WorkflowConfiguration schema.

The human-authored, reviewable configuration for the review workflow:
directory group names per role, form field limits, the business calendar
and the standard turnaround.  YAML files are parsed into these types by
the loader; ``get_active_config()`` returns the assembled object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from review_kernel.domain.calendar import BusinessCalendar
from review_kernel.domain.limits import FieldLimits
from review_kernel.domain.principal import RoleGroups

# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CalendarDef:
    """Business calendar as declared in YAML."""

    timezone: str = "America/Los_Angeles"
    start_hour: int = 8
    end_hour: int = 17
    working_days: tuple[int, ...] = (0, 1, 2, 3, 4)
    holidays: tuple[date, ...] = ()

    def to_business_calendar(self) -> BusinessCalendar:
        return BusinessCalendar(
            timezone=self.timezone,
            start_hour=self.start_hour,
            end_hour=self.end_hour,
            working_days=frozenset(self.working_days),
            holidays=frozenset(self.holidays),
        )


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowConfiguration:
    """The complete configuration set.

    ``checksum`` is the SHA-256 of the canonical JSON form of the source
    YAML and identifies the configuration in traces.
    """

    config_id: str
    version: int
    groups: RoleGroups = field(default_factory=RoleGroups)
    limits: FieldLimits = field(default_factory=FieldLimits)
    calendar: CalendarDef = field(default_factory=CalendarDef)
    turnaround_business_days: int = 5
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.config_id:
            raise ValueError("config_id is required")
        if self.version < 1:
            raise ValueError(f"version must be positive, got {self.version}")
        if self.turnaround_business_days < 0:
            raise ValueError(
                f"turnaround_business_days cannot be negative, "
                f"got {self.turnaround_business_days}"
            )

    @property
    def business_calendar(self) -> BusinessCalendar:
        return self.calendar.to_business_calendar()
