"""
review_engines.mutations -- Domain effect of each transition.

Responsibility:
    Given a record the guard has allowed and the validators have accepted,
    produce the post-transition record: status and sub-status, audit
    fields, append-only notes, and time-tracking updates.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The transition instant is
    passed in; nothing here reads a clock.

Invariants enforced:
    - Every mutation returns a new ``Request``; the input is never modified,
      so a failed save cannot leave a half-mutated record behind.
    - Status changes go through ``Lifecycle`` and therefore through
      ``ALLOWED_TRANSITIONS``.
    - Audit fields are set, never cleared.  Review notes start a new round
      on resubmission without dropping earlier entries.
    - Every stage-closing or stage-reopening step updates time tracking in
      the same mutation as the status change.

Failure modes:
    - StateInconsistentError when an assumed invariant does not hold, e.g.
      a legal review is submitted on a record with no assigned attorney.
    - InvalidLifecycleTransitionError when a status edge is not allowed.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Callable

from review_engines.time_tracking import (
    close_all_open,
    close_stage,
    hand_off,
    open_stage,
    resume_open_stages,
)
from review_kernel.domain.calendar import BusinessCalendar
from review_kernel.domain.payloads import (
    AttorneyAssignment,
    CloseoutDetails,
    CommitteeReferral,
    DraftChanges,
    ForesideCompletion,
    ReasonPayload,
    ResubmissionNotes,
    ReviewSubmission,
    coerce_payload,
)
from review_kernel.domain.principal import Principal
from review_kernel.domain.request import (
    ComplianceReview,
    LegalReview,
    Request,
    Stage,
    StageOwner,
    with_note,
)
from review_kernel.domain.workflow import (
    ComplianceReviewStatus,
    LegalReviewStatus,
    RequestStatus,
    ReviewOutcome,
    WorkflowAction,
)
from review_kernel.exceptions import StateInconsistentError

Mutation = Callable[[Request, Any, Principal, datetime, BusinessCalendar], Request]


# ---------------------------------------------------------------------------
# Draft and submission
# ---------------------------------------------------------------------------


def _apply_draft_changes(request: Request, changes: DraftChanges, actor: Principal, at: datetime) -> Request:
    updated = changes.apply_to(request)
    if updated.is_new:
        updated = replace(
            updated,
            author_id=updated.author_id or actor.id,
            created_on=updated.created_on or at,
        )
    return updated


def save_draft(request: Request, changes: DraftChanges, actor: Principal, at: datetime,
               calendar: BusinessCalendar) -> Request:
    return _apply_draft_changes(request, changes, actor, at)


def edit(request: Request, changes: DraftChanges, actor: Principal, at: datetime,
         calendar: BusinessCalendar) -> Request:
    return _apply_draft_changes(request, changes, actor, at)


def submit(request: Request, changes: DraftChanges, actor: Principal, at: datetime,
           calendar: BusinessCalendar) -> Request:
    """Draft -> Legal Intake.  Creates the sub-reviews the audience selects."""
    updated = _apply_draft_changes(request, changes, actor, at)
    audience = updated.review_audience
    legal = updated.legal_review
    compliance = updated.compliance_review
    if audience is not None and audience.includes_legal and legal is None:
        legal = LegalReview()
    if audience is not None and audience.includes_compliance and compliance is None:
        compliance = ComplianceReview()
    return replace(
        updated,
        lifecycle=updated.lifecycle.advance(RequestStatus.LEGAL_INTAKE),
        submitted_by=actor.id,
        submitted_on=at,
        legal_review=legal,
        compliance_review=compliance,
        time_tracking=open_stage(updated.time_tracking, Stage.LEGAL_INTAKE, at),
    )


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------


def send_to_committee(request: Request, referral: CommitteeReferral, actor: Principal,
                      at: datetime, calendar: BusinessCalendar) -> Request:
    """Legal Intake -> Assign Attorney.  Intake time keeps accruing."""
    return replace(
        request,
        lifecycle=request.lifecycle.advance(RequestStatus.ASSIGN_ATTORNEY),
        submitted_to_assign_attorney_by=actor.id,
        submitted_to_assign_attorney_on=at,
        intake_notes=with_note(request.intake_notes, actor.id, at, referral.notes),
    )


def assign_attorney(request: Request, assignment: AttorneyAssignment, actor: Principal,
                    at: datetime, calendar: BusinessCalendar) -> Request:
    """Legal Intake or Assign Attorney -> In Review.

    Closes the intake stage, starts the selected sub-reviews In Progress and
    marks deselected ones Not Required.
    """
    audience = assignment.review_audience or request.review_audience
    if audience is None:
        raise StateInconsistentError(request.id, "review audience is not set")

    tracking = close_stage(request.time_tracking, Stage.LEGAL_INTAKE, StageOwner.REVIEWER, at, calendar)

    legal = request.legal_review
    if audience.includes_legal:
        if assignment.attorney is None:
            raise StateInconsistentError(request.id, "legal review selected without an attorney")
        legal = replace(
            legal or LegalReview(),
            status=LegalReviewStatus.IN_PROGRESS,
            assigned_attorney=assignment.attorney,
            status_updated_by=actor.id,
            status_updated_on=at,
        )
        tracking = open_stage(tracking, Stage.LEGAL_REVIEW, at)
    elif legal is not None:
        legal = replace(
            legal,
            status=LegalReviewStatus.NOT_REQUIRED,
            status_updated_by=actor.id,
            status_updated_on=at,
        )

    compliance = request.compliance_review
    if audience.includes_compliance:
        compliance = replace(
            compliance or ComplianceReview(),
            status=ComplianceReviewStatus.IN_PROGRESS,
            status_updated_by=actor.id,
            status_updated_on=at,
        )
        tracking = open_stage(tracking, Stage.COMPLIANCE_REVIEW, at)
    elif compliance is not None:
        compliance = replace(
            compliance,
            status=ComplianceReviewStatus.NOT_REQUIRED,
            status_updated_by=actor.id,
            status_updated_on=at,
        )

    return replace(
        request,
        lifecycle=request.lifecycle.advance(RequestStatus.IN_REVIEW),
        review_audience=audience,
        legal_review=legal,
        compliance_review=compliance,
        submitted_for_review_by=actor.id,
        submitted_for_review_on=at,
        intake_notes=with_note(request.intake_notes, actor.id, at, assignment.notes),
        time_tracking=tracking,
    )


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------


def _conclude_reviews(request: Request, at: datetime) -> Request:
    """Leave In Review once every required sub-review is Completed.

    Any Not Approved outcome ends the request; otherwise it moves to
    Closeout and the closeout stage starts accruing.
    """
    if not request.required_reviews_completed:
        return request
    outcomes = []
    if request.legal_review_required and request.legal_review is not None:
        outcomes.append(request.legal_review.outcome)
    if request.compliance_review_required and request.compliance_review is not None:
        outcomes.append(request.compliance_review.outcome)
    if ReviewOutcome.NOT_APPROVED in outcomes:
        return replace(request, lifecycle=request.lifecycle.advance(RequestStatus.COMPLETED))
    return replace(
        request,
        lifecycle=request.lifecycle.advance(RequestStatus.CLOSEOUT),
        time_tracking=open_stage(request.time_tracking, Stage.CLOSEOUT, at),
    )


def submit_legal_review(request: Request, submission: ReviewSubmission, actor: Principal,
                        at: datetime, calendar: BusinessCalendar) -> Request:
    review = request.legal_review
    if review is None:
        raise StateInconsistentError(request.id, "legal review record is missing")
    if review.assigned_attorney is None:
        raise StateInconsistentError(request.id, "no attorney is assigned to the legal review")

    outcome = submission.outcome
    notes = with_note(review.notes, actor.id, at, submission.notes)
    if outcome.completes_review:
        review = replace(
            review,
            status=LegalReviewStatus.COMPLETED,
            outcome=outcome,
            notes=notes,
            status_updated_by=actor.id,
            status_updated_on=at,
            completed_by=actor.id,
            completed_on=at,
        )
        tracking = close_stage(request.time_tracking, Stage.LEGAL_REVIEW, StageOwner.REVIEWER, at, calendar)
    else:
        review = replace(
            review,
            status=LegalReviewStatus.WAITING_ON_SUBMITTER,
            outcome=outcome,
            notes=notes,
            status_updated_by=actor.id,
            status_updated_on=at,
        )
        tracking = hand_off(request.time_tracking, Stage.LEGAL_REVIEW, StageOwner.REVIEWER, at, calendar)

    return _conclude_reviews(replace(request, legal_review=review, time_tracking=tracking), at)


def submit_compliance_review(request: Request, submission: ReviewSubmission, actor: Principal,
                             at: datetime, calendar: BusinessCalendar) -> Request:
    review = request.compliance_review
    if review is None:
        raise StateInconsistentError(request.id, "compliance review record is missing")

    outcome = submission.outcome
    notes = with_note(review.notes, actor.id, at, submission.notes)
    review = replace(
        review,
        outcome=outcome,
        notes=notes,
        is_foreside_review_required=submission.is_foreside_review_required,
        is_retail_use=submission.is_retail_use,
        status_updated_by=actor.id,
        status_updated_on=at,
    )
    if outcome.completes_review:
        review = replace(
            review,
            status=ComplianceReviewStatus.COMPLETED,
            completed_by=actor.id,
            completed_on=at,
        )
        tracking = close_stage(
            request.time_tracking, Stage.COMPLIANCE_REVIEW, StageOwner.REVIEWER, at, calendar
        )
    else:
        review = replace(review, status=ComplianceReviewStatus.WAITING_ON_SUBMITTER)
        tracking = hand_off(
            request.time_tracking, Stage.COMPLIANCE_REVIEW, StageOwner.REVIEWER, at, calendar
        )

    return _conclude_reviews(replace(request, compliance_review=review, time_tracking=tracking), at)


def resubmit_legal_review(request: Request, payload: ResubmissionNotes, actor: Principal,
                          at: datetime, calendar: BusinessCalendar) -> Request:
    """Waiting On Submitter -> Waiting On Attorney; the attorney starts a fresh notes round."""
    review = request.legal_review
    if review is None:
        raise StateInconsistentError(request.id, "legal review record is missing")
    review = replace(
        review,
        status=LegalReviewStatus.WAITING_ON_ATTORNEY,
        notes=with_note(review.notes, actor.id, at, payload.notes).start_new_round(),
        status_updated_by=actor.id,
        status_updated_on=at,
    )
    tracking = hand_off(request.time_tracking, Stage.LEGAL_REVIEW, StageOwner.SUBMITTER, at, calendar)
    return replace(request, legal_review=review, time_tracking=tracking)


def resubmit_compliance_review(request: Request, payload: ResubmissionNotes, actor: Principal,
                               at: datetime, calendar: BusinessCalendar) -> Request:
    review = request.compliance_review
    if review is None:
        raise StateInconsistentError(request.id, "compliance review record is missing")
    review = replace(
        review,
        status=ComplianceReviewStatus.WAITING_ON_COMPLIANCE,
        notes=with_note(review.notes, actor.id, at, payload.notes).start_new_round(),
        status_updated_by=actor.id,
        status_updated_on=at,
    )
    tracking = hand_off(
        request.time_tracking, Stage.COMPLIANCE_REVIEW, StageOwner.SUBMITTER, at, calendar
    )
    return replace(request, compliance_review=review, time_tracking=tracking)


# ---------------------------------------------------------------------------
# Closeout
# ---------------------------------------------------------------------------


def closeout(request: Request, details: CloseoutDetails, actor: Principal, at: datetime,
             calendar: BusinessCalendar) -> Request:
    """Closeout -> Awaiting Foreside Documents (Foreside retail) or Completed."""
    tracking = close_stage(request.time_tracking, Stage.CLOSEOUT, StageOwner.REVIEWER, at, calendar)
    tracking_id = (details.tracking_id or "").strip() or None
    updated = replace(
        request,
        closeout_by=actor.id,
        closeout_on=at,
        tracking_id=tracking_id,
        closeout_notes=details.notes,
        comments_acknowledged=details.comments_acknowledged,
        time_tracking=tracking,
    )
    if request.requires_foreside_documents:
        return replace(
            updated,
            lifecycle=request.lifecycle.advance(RequestStatus.AWAITING_FORESIDE_DOCUMENTS),
            awaiting_foreside_since=at,
        )
    return replace(updated, lifecycle=request.lifecycle.advance(RequestStatus.COMPLETED))


def complete_foreside_documents(request: Request, payload: ForesideCompletion, actor: Principal,
                                at: datetime, calendar: BusinessCalendar) -> Request:
    return replace(
        request,
        lifecycle=request.lifecycle.advance(RequestStatus.COMPLETED),
        foreside_completed_by=actor.id,
        foreside_completed_on=at,
        foreside_notes=payload.notes,
    )


# ---------------------------------------------------------------------------
# Side paths
# ---------------------------------------------------------------------------


def cancel(request: Request, payload: ReasonPayload, actor: Principal, at: datetime,
           calendar: BusinessCalendar) -> Request:
    """Any non-terminal state -> Cancelled.  Open stages stop where accrual last ran."""
    stop_at = request.on_hold_since if request.lifecycle.is_on_hold else at
    if stop_at is None:
        raise StateInconsistentError(request.id, "request is on hold without a hold timestamp")
    return replace(
        request,
        lifecycle=request.lifecycle.cancel(),
        cancelled_by=actor.id,
        cancelled_on=at,
        cancelled_reason=payload.reason,
        time_tracking=close_all_open(request, stop_at, calendar),
    )


def hold(request: Request, payload: ReasonPayload, actor: Principal, at: datetime,
         calendar: BusinessCalendar) -> Request:
    """Pause the request.  Counters are untouched; Resume re-anchors the open stages."""
    return replace(
        request,
        lifecycle=request.lifecycle.hold(),
        on_hold_by=actor.id,
        on_hold_since=at,
        on_hold_reason=payload.reason,
    )


def resume(request: Request, payload: None, actor: Principal, at: datetime,
           calendar: BusinessCalendar) -> Request:
    """On Hold -> the interrupted status, excluding the held time from every open stage."""
    if request.on_hold_since is None:
        raise StateInconsistentError(request.id, "request is on hold without a hold timestamp")
    return replace(
        request,
        lifecycle=request.lifecycle.resume(),
        time_tracking=resume_open_stages(
            request.time_tracking, request.on_hold_since, at, calendar
        ),
    )


MUTATIONS: dict[WorkflowAction, Mutation] = {
    WorkflowAction.SAVE_DRAFT: save_draft,
    WorkflowAction.SUBMIT: submit,
    WorkflowAction.EDIT: edit,
    WorkflowAction.ASSIGN_ATTORNEY: assign_attorney,
    WorkflowAction.SEND_TO_COMMITTEE: send_to_committee,
    WorkflowAction.COMMITTEE_ASSIGN_ATTORNEY: assign_attorney,
    WorkflowAction.SUBMIT_LEGAL_REVIEW: submit_legal_review,
    WorkflowAction.SUBMIT_COMPLIANCE_REVIEW: submit_compliance_review,
    WorkflowAction.RESUBMIT_LEGAL_REVIEW: resubmit_legal_review,
    WorkflowAction.RESUBMIT_COMPLIANCE_REVIEW: resubmit_compliance_review,
    WorkflowAction.CLOSEOUT: closeout,
    WorkflowAction.COMPLETE_FORESIDE_DOCUMENTS: complete_foreside_documents,
    WorkflowAction.CANCEL: cancel,
    WorkflowAction.HOLD: hold,
    WorkflowAction.RESUME: resume,
}


def apply_transition(
    action: WorkflowAction,
    request: Request,
    payload: Any,
    actor: Principal,
    at: datetime,
    calendar: BusinessCalendar,
) -> Request:
    """Apply the domain effect of ``action`` and return the new record."""
    return MUTATIONS[action](request, coerce_payload(action, payload), actor, at, calendar)
