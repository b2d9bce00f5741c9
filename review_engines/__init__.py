"""
Module: review_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    workflow engines.  This is the canonical import surface for
    review_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import review_kernel/domain/ (and sibling engine modules).
    MUST NOT import review_services or review_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Instants and dates are passed in as explicit parameters.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from review_engines.guards import default_guard_set
    from review_engines.validation import validate, ValidationContext
    from review_engines.mutations import apply_transition
"""

from review_engines.approval import (
    ApprovalEvaluation,
    ApprovalRequirements,
    evaluate_approval_requirements,
    required_approvals,
)
from review_engines.business_hours import (
    RushAssessment,
    add_business_days,
    assess_rush,
    business_hours_between,
    business_minutes_between,
    business_seconds_between,
    count_business_days,
    stage_elapsed_minutes,
)
from review_engines.guards import TransitionGuardSet, default_guard_set
from review_engines.mutations import apply_transition
from review_engines.roles import resolve_roles
from review_engines.time_tracking import stage_owner
from review_engines.validation import (
    AttachmentSnapshot,
    ValidationContext,
    validate,
)

__all__ = [
    "ApprovalEvaluation",
    "ApprovalRequirements",
    "AttachmentSnapshot",
    "RushAssessment",
    "TransitionGuardSet",
    "ValidationContext",
    "add_business_days",
    "apply_transition",
    "assess_rush",
    "business_hours_between",
    "business_minutes_between",
    "business_seconds_between",
    "count_business_days",
    "default_guard_set",
    "evaluate_approval_requirements",
    "required_approvals",
    "resolve_roles",
    "stage_elapsed_minutes",
    "stage_owner",
    "validate",
]
