"""
Transition payloads (``review_kernel.domain.payloads``).

What the caller proposes alongside an action.  Payloads are validated by
``review_engines.validation`` before ``review_engines.mutations`` applies
them; they never reach the record store directly.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date

from review_kernel.domain.principal import PrincipalRef
from review_kernel.domain.request import Approval, Request
from review_kernel.domain.workflow import ReviewAudience, ReviewOutcome, WorkflowAction


@dataclass(frozen=True)
class DraftChanges:
    """Field edits for SaveDraft, Submit and Edit.  None leaves a field unchanged."""

    title: str | None = None
    purpose: str | None = None
    target_return_date: date | None = None
    is_rush_request: bool | None = None
    rush_rationale: str | None = None
    distribution_methods: tuple[str, ...] | None = None
    review_audience: ReviewAudience | None = None
    requires_communications_approval: bool | None = None
    communications_only: bool | None = None
    approvals: tuple[Approval, ...] | None = None

    def changed(self) -> dict[str, object]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def apply_to(self, request: Request) -> Request:
        changes = self.changed()
        return replace(request, **changes) if changes else request


@dataclass(frozen=True)
class AttorneyAssignment:
    """AssignAttorney and CommitteeAssignAttorney.

    ``review_audience`` overrides the submitter's choice when set.
    """

    attorney: PrincipalRef | None = None
    review_audience: ReviewAudience | None = None
    notes: str | None = None


@dataclass(frozen=True)
class CommitteeReferral:
    notes: str | None = None


@dataclass(frozen=True)
class ReviewSubmission:
    """SubmitLegalReview and SubmitComplianceReview.

    The two Foreside flags are read for compliance reviews only.
    """

    outcome: ReviewOutcome | None = None
    notes: str | None = None
    is_foreside_review_required: bool | None = None
    is_retail_use: bool | None = None


@dataclass(frozen=True)
class ResubmissionNotes:
    notes: str | None = None


@dataclass(frozen=True)
class CloseoutDetails:
    tracking_id: str | None = None
    notes: str | None = None
    comments_acknowledged: bool = False


@dataclass(frozen=True)
class ForesideCompletion:
    notes: str | None = None


@dataclass(frozen=True)
class ReasonPayload:
    """Cancel and Hold."""

    reason: str = ""


# Payload type accepted by each action; None means the action takes no payload.
PAYLOAD_TYPES: dict[WorkflowAction, type | None] = {
    WorkflowAction.SAVE_DRAFT: DraftChanges,
    WorkflowAction.SUBMIT: DraftChanges,
    WorkflowAction.EDIT: DraftChanges,
    WorkflowAction.ASSIGN_ATTORNEY: AttorneyAssignment,
    WorkflowAction.COMMITTEE_ASSIGN_ATTORNEY: AttorneyAssignment,
    WorkflowAction.SEND_TO_COMMITTEE: CommitteeReferral,
    WorkflowAction.SUBMIT_LEGAL_REVIEW: ReviewSubmission,
    WorkflowAction.SUBMIT_COMPLIANCE_REVIEW: ReviewSubmission,
    WorkflowAction.RESUBMIT_LEGAL_REVIEW: ResubmissionNotes,
    WorkflowAction.RESUBMIT_COMPLIANCE_REVIEW: ResubmissionNotes,
    WorkflowAction.CLOSEOUT: CloseoutDetails,
    WorkflowAction.COMPLETE_FORESIDE_DOCUMENTS: ForesideCompletion,
    WorkflowAction.CANCEL: ReasonPayload,
    WorkflowAction.HOLD: ReasonPayload,
    WorkflowAction.RESUME: None,
}


def coerce_payload(action: WorkflowAction, payload: object | None) -> object | None:
    """Default an omitted payload and reject one of the wrong type.

    Raises:
        TypeError: if ``payload`` is not the type ``action`` accepts.
    """
    expected = PAYLOAD_TYPES[action]
    if expected is None:
        if payload is not None:
            raise TypeError(f"{action.value} takes no payload, got {type(payload).__name__}")
        return None
    if payload is None:
        return expected()
    if not isinstance(payload, expected):
        raise TypeError(
            f"{action.value} expects {expected.__name__}, got {type(payload).__name__}"
        )
    return payload
