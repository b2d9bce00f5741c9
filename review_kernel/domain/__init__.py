"""
Pure domain layer.

This module contains the request aggregate, workflow enumerations, payloads
and results with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Time/clock reads
- I/O

All domain objects are immutable and deterministic.
"""

from review_kernel.domain.calendar import BusinessCalendar
from review_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from review_kernel.domain.payloads import (
    AttorneyAssignment,
    CloseoutDetails,
    CommitteeReferral,
    DraftChanges,
    ForesideCompletion,
    ReasonPayload,
    ResubmissionNotes,
    ReviewSubmission,
)
from review_kernel.domain.limits import FieldLimits
from review_kernel.domain.principal import Principal, PrincipalRef, RoleFlags, RoleGroups
from review_kernel.domain.request import (
    Approval,
    ApprovalType,
    ComplianceReview,
    LegalReview,
    NoteEntry,
    Request,
    ReviewNotes,
    Stage,
    StageOwner,
    TimeTracking,
)
from review_kernel.domain.results import (
    FieldError,
    GuardResult,
    TransitionOutcome,
    TransitionResult,
)
from review_kernel.domain.workflow import (
    ALLOWED_TRANSITIONS,
    ComplianceReviewStatus,
    LegalReviewStatus,
    Lifecycle,
    RequestStatus,
    ReviewAudience,
    ReviewOutcome,
    WorkflowAction,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Approval",
    "ApprovalType",
    "AttorneyAssignment",
    "BusinessCalendar",
    "Clock",
    "CloseoutDetails",
    "CommitteeReferral",
    "ComplianceReview",
    "ComplianceReviewStatus",
    "DeterministicClock",
    "DraftChanges",
    "FieldError",
    "FieldLimits",
    "ForesideCompletion",
    "GuardResult",
    "LegalReview",
    "LegalReviewStatus",
    "Lifecycle",
    "NoteEntry",
    "Principal",
    "PrincipalRef",
    "ReasonPayload",
    "Request",
    "RequestStatus",
    "ResubmissionNotes",
    "ReviewAudience",
    "ReviewNotes",
    "ReviewOutcome",
    "ReviewSubmission",
    "RoleFlags",
    "RoleGroups",
    "Stage",
    "StageOwner",
    "SystemClock",
    "TimeTracking",
    "TransitionOutcome",
    "TransitionResult",
    "WorkflowAction",
]
