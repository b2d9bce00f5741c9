"""
Field length limits (``review_kernel.domain.limits``).

Shared by the validators and the configuration layer.  Defaults mirror the
limits the request forms enforce.
"""

from __future__ import annotations

from dataclasses import dataclass, fields


@dataclass(frozen=True)
class FieldLimits:
    title_min: int = 3
    title_max: int = 255
    purpose_min: int = 10
    purpose_max: int = 1000
    rush_rationale_max: int = 500
    reason_min: int = 10
    reason_max: int = 1000
    notes_max: int = 1000
    review_notes_max: int = 2000
    resubmit_notes_max: int = 4000
    tracking_id_max: int = 50
    approval_title_max: int = 100

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value < 0:
                raise ValueError(f"{f.name} cannot be negative: {value}")
        if self.title_min > self.title_max:
            raise ValueError("title_min cannot exceed title_max")
        if self.purpose_min > self.purpose_max:
            raise ValueError("purpose_min cannot exceed purpose_max")
        if self.reason_min > self.reason_max:
            raise ValueError("reason_min cannot exceed reason_max")
