"""
Tests for the domain effect of each transition.

Mutations are called directly with a fixed instant; guards and validation
are not involved here.
"""

from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

import pytest

from review_engines.mutations import MUTATIONS, apply_transition
from review_kernel.domain.payloads import (
    AttorneyAssignment,
    CloseoutDetails,
    CommitteeReferral,
    DraftChanges,
    ReasonPayload,
    ResubmissionNotes,
    ReviewSubmission,
)
from review_kernel.domain.request import (
    ComplianceReview,
    LegalReview,
    Request,
    TimeTracking,
)
from review_kernel.domain.workflow import (
    ComplianceReviewStatus,
    LegalReviewStatus,
    RequestStatus,
    ReviewAudience,
    ReviewOutcome,
    WorkflowAction,
)
from review_kernel.exceptions import InvalidLifecycleTransitionError, StateInconsistentError
from tests.factories import (
    ADMIN,
    ATTORNEY,
    COMPLIANCE,
    LEGAL_ADMIN,
    SUBMITTER,
    la,
    make_at_status,
    make_calendar,
    make_completed_reviews,
    make_draft,
    make_held,
    make_in_review,
    make_valid_changes,
)

MON_9 = la(2026, 10, 19, 9)
MON_11 = la(2026, 10, 19, 11)
MON_13 = la(2026, 10, 19, 13)

CAL = make_calendar()


def run(action, request, payload=None, actor=SUBMITTER, at=MON_11):
    return apply_transition(action, request, payload, actor, at, CAL)


class TestRegistry:

    def test_every_action_has_a_mutation(self):
        assert set(MUTATIONS) == set(WorkflowAction)


class TestDraftMutations:

    def test_save_new_draft_sets_author(self):
        saved = run(WorkflowAction.SAVE_DRAFT, Request(), DraftChanges(title="Fact sheet"))
        assert saved.author_id == SUBMITTER.id
        assert saved.created_on == MON_11
        assert saved.status is RequestStatus.DRAFT

    def test_existing_author_preserved(self):
        draft = make_draft()
        saved = run(WorkflowAction.SAVE_DRAFT, draft, DraftChanges(title="Renamed"), actor=ADMIN)
        assert saved.author_id == SUBMITTER.id
        assert saved.created_on == draft.created_on

    def test_input_not_modified(self):
        draft = make_draft()
        before = replace(draft)
        run(WorkflowAction.SUBMIT, draft, DraftChanges())
        assert draft == before

    def test_submit_moves_to_intake(self):
        submitted = run(WorkflowAction.SUBMIT, make_draft(), DraftChanges())
        assert submitted.status is RequestStatus.LEGAL_INTAKE
        assert submitted.submitted_by == SUBMITTER.id
        assert submitted.submitted_on == MON_11
        assert submitted.legal_review == LegalReview()
        assert submitted.compliance_review == ComplianceReview()
        assert submitted.time_tracking.legal_intake_since == MON_11

    def test_submit_creates_only_selected_reviews(self):
        draft = make_draft(review_audience=ReviewAudience.COMPLIANCE)
        submitted = run(WorkflowAction.SUBMIT, draft, DraftChanges())
        assert submitted.legal_review is None
        assert submitted.compliance_review is not None

    def test_submit_new_request_in_one_step(self):
        submitted = run(WorkflowAction.SUBMIT, Request(), make_valid_changes())
        assert submitted.author_id == SUBMITTER.id
        assert submitted.status is RequestStatus.LEGAL_INTAKE


class TestIntakeMutations:

    def _intake(self):
        return make_at_status(
            RequestStatus.LEGAL_INTAKE, time_tracking=TimeTracking(legal_intake_since=MON_9),
        )

    def test_assign_closes_intake_and_starts_reviews(self):
        assigned = run(
            WorkflowAction.ASSIGN_ATTORNEY, self._intake(),
            AttorneyAssignment(attorney=ATTORNEY.as_ref(), notes="Straightforward"),
            actor=LEGAL_ADMIN,
        )
        assert assigned.status is RequestStatus.IN_REVIEW
        assert assigned.legal_review.status is LegalReviewStatus.IN_PROGRESS
        assert assigned.legal_review.assigned_attorney == ATTORNEY.as_ref()
        assert assigned.compliance_review.status is ComplianceReviewStatus.IN_PROGRESS
        tracking = assigned.time_tracking
        assert tracking.legal_intake_legal_admin_hours == Decimal("2.00")
        assert tracking.legal_intake_since is None
        assert tracking.legal_review_since == MON_11
        assert tracking.compliance_review_since == MON_11
        assert assigned.submitted_for_review_by == LEGAL_ADMIN.id
        assert assigned.intake_notes.text == "Straightforward"

    def test_audience_override_marks_legal_not_required(self):
        assigned = run(
            WorkflowAction.ASSIGN_ATTORNEY, self._intake(),
            AttorneyAssignment(review_audience=ReviewAudience.COMPLIANCE),
            actor=LEGAL_ADMIN,
        )
        assert assigned.review_audience is ReviewAudience.COMPLIANCE
        assert assigned.legal_review.status is LegalReviewStatus.NOT_REQUIRED
        assert assigned.time_tracking.legal_review_since is None

    def test_legal_without_attorney_is_inconsistent(self):
        with pytest.raises(StateInconsistentError):
            run(WorkflowAction.ASSIGN_ATTORNEY, self._intake(), AttorneyAssignment(), actor=LEGAL_ADMIN)

    def test_committee_referral_keeps_intake_open(self):
        referred = run(
            WorkflowAction.SEND_TO_COMMITTEE, self._intake(),
            CommitteeReferral(notes="Needs a securities specialist"), actor=LEGAL_ADMIN,
        )
        assert referred.status is RequestStatus.ASSIGN_ATTORNEY
        assert referred.submitted_to_assign_attorney_by == LEGAL_ADMIN.id
        assert referred.time_tracking.legal_intake_since == MON_9
        assert referred.intake_notes.text == "Needs a securities specialist"

    def test_committee_assignment_from_assign_attorney(self):
        referred = make_at_status(RequestStatus.ASSIGN_ATTORNEY)
        assigned = run(
            WorkflowAction.COMMITTEE_ASSIGN_ATTORNEY, referred,
            AttorneyAssignment(attorney=ATTORNEY.as_ref()), actor=LEGAL_ADMIN,
        )
        assert assigned.status is RequestStatus.IN_REVIEW


def _reviewing(**overrides):
    return make_in_review(
        time_tracking=TimeTracking(legal_review_since=MON_9, compliance_review_since=MON_9),
        **overrides,
    )


class TestReviewMutations:

    def test_approval_completes_legal_only(self):
        reviewed = run(
            WorkflowAction.SUBMIT_LEGAL_REVIEW, _reviewing(),
            ReviewSubmission(outcome=ReviewOutcome.APPROVED, notes="Looks good"), actor=ATTORNEY,
        )
        assert reviewed.status is RequestStatus.IN_REVIEW
        assert reviewed.legal_review.status is LegalReviewStatus.COMPLETED
        assert reviewed.legal_review.completed_by == ATTORNEY.id
        assert reviewed.legal_review.notes.text == "Looks good"
        assert reviewed.time_tracking.legal_review_attorney_hours == Decimal("2.00")
        assert reviewed.time_tracking.legal_review_since is None

    def test_respond_to_comments_hands_off_to_submitter(self):
        reviewed = run(
            WorkflowAction.SUBMIT_LEGAL_REVIEW, _reviewing(),
            ReviewSubmission(outcome=ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT), actor=ATTORNEY,
        )
        assert reviewed.legal_review.status is LegalReviewStatus.WAITING_ON_SUBMITTER
        assert reviewed.legal_review.outcome is ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT
        assert reviewed.time_tracking.legal_review_attorney_hours == Decimal("2.00")
        assert reviewed.time_tracking.legal_review_since == MON_11

    def test_resubmit_credits_submitter_and_starts_new_round(self):
        waiting = run(
            WorkflowAction.SUBMIT_LEGAL_REVIEW, _reviewing(),
            ReviewSubmission(outcome=ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT, notes="Fix p.2"),
            actor=ATTORNEY,
        )
        resubmitted = run(
            WorkflowAction.RESUBMIT_LEGAL_REVIEW, waiting,
            ResubmissionNotes(notes="Fixed"), at=MON_13,
        )
        review = resubmitted.legal_review
        assert review.status is LegalReviewStatus.WAITING_ON_ATTORNEY
        assert review.notes.text == "Fix p.2\n\nFixed"
        assert review.notes.current_text == ""
        assert resubmitted.time_tracking.legal_review_submitter_hours == Decimal("2.00")
        assert resubmitted.time_tracking.legal_review_since == MON_13

    def test_last_review_moves_to_closeout(self):
        request = _reviewing(legal_review=LegalReview(
            status=LegalReviewStatus.COMPLETED, outcome=ReviewOutcome.APPROVED_WITH_COMMENTS,
            assigned_attorney=ATTORNEY.as_ref(),
        ))
        reviewed = run(
            WorkflowAction.SUBMIT_COMPLIANCE_REVIEW, request,
            ReviewSubmission(outcome=ReviewOutcome.APPROVED, is_foreside_review_required=True,
                             is_retail_use=True),
            actor=COMPLIANCE,
        )
        assert reviewed.status is RequestStatus.CLOSEOUT
        assert reviewed.compliance_review.is_foreside_review_required is True
        assert reviewed.time_tracking.closeout_since == MON_11
        assert reviewed.time_tracking.compliance_review_reviewer_hours == Decimal("2.00")

    def test_not_approved_completes_request(self):
        request = _reviewing(audience=ReviewAudience.LEGAL)
        reviewed = run(
            WorkflowAction.SUBMIT_LEGAL_REVIEW, request,
            ReviewSubmission(outcome=ReviewOutcome.NOT_APPROVED), actor=ATTORNEY,
        )
        assert reviewed.status is RequestStatus.COMPLETED
        assert reviewed.time_tracking.closeout_since is None

    def test_compliance_resubmission(self):
        request = _reviewing(compliance_status=ComplianceReviewStatus.WAITING_ON_SUBMITTER)
        resubmitted = run(WorkflowAction.RESUBMIT_COMPLIANCE_REVIEW, request, ResubmissionNotes())
        assert resubmitted.compliance_review.status is ComplianceReviewStatus.WAITING_ON_COMPLIANCE
        assert resubmitted.time_tracking.compliance_review_submitter_hours == Decimal("2.00")

    def test_legal_review_without_attorney_is_inconsistent(self):
        with pytest.raises(StateInconsistentError, match="no attorney"):
            run(
                WorkflowAction.SUBMIT_LEGAL_REVIEW, _reviewing(attorney=None),
                ReviewSubmission(outcome=ReviewOutcome.APPROVED), actor=ADMIN,
            )

    def test_missing_compliance_record_is_inconsistent(self):
        with pytest.raises(StateInconsistentError):
            run(
                WorkflowAction.SUBMIT_COMPLIANCE_REVIEW, _reviewing(audience=ReviewAudience.LEGAL),
                ReviewSubmission(outcome=ReviewOutcome.APPROVED), actor=ADMIN,
            )


class TestCloseoutMutations:

    def test_closeout_completes_without_foreside(self):
        request = make_completed_reviews(time_tracking=TimeTracking(closeout_since=MON_9))
        closed = run(WorkflowAction.CLOSEOUT, request, CloseoutDetails(tracking_id="  ", notes="Done"))
        assert closed.status is RequestStatus.COMPLETED
        assert closed.tracking_id is None
        assert closed.closeout_by == SUBMITTER.id
        assert closed.time_tracking.closeout_reviewer_hours == Decimal("2.00")

    def test_closeout_awaits_foreside_documents(self):
        request = make_completed_reviews()
        request = replace(request, compliance_review=replace(
            request.compliance_review, is_foreside_review_required=True, is_retail_use=True,
        ))
        closed = run(WorkflowAction.CLOSEOUT, request, CloseoutDetails(tracking_id=" FS-1 "))
        assert closed.status is RequestStatus.AWAITING_FORESIDE_DOCUMENTS
        assert closed.tracking_id == "FS-1"
        assert closed.awaiting_foreside_since == MON_11

    def test_foreside_completion(self):
        request = make_at_status(RequestStatus.AWAITING_FORESIDE_DOCUMENTS)
        done = run(WorkflowAction.COMPLETE_FORESIDE_DOCUMENTS, request, None)
        assert done.status is RequestStatus.COMPLETED
        assert done.foreside_completed_on == MON_11


class TestSidePathMutations:

    def test_hold_records_reason_and_leaves_counters(self):
        request = _reviewing()
        held = run(WorkflowAction.HOLD, request, ReasonPayload("Waiting on prospectus"), actor=LEGAL_ADMIN)
        assert held.status is RequestStatus.ON_HOLD
        assert held.previous_status is RequestStatus.IN_REVIEW
        assert held.on_hold_since == MON_11
        assert held.time_tracking == request.time_tracking

    def test_resume_excludes_held_time_from_open_anchors(self):
        held = run(WorkflowAction.HOLD, _reviewing(), ReasonPayload("Waiting on prospectus"))
        resumed = run(WorkflowAction.RESUME, held, None, at=MON_13)
        assert resumed.status is RequestStatus.IN_REVIEW
        assert resumed.time_tracking.legal_review_since == MON_9 + timedelta(hours=2)

    def test_overnight_resume_keeps_anchor_when_no_business_time_held(self):
        held = run(
            WorkflowAction.HOLD, _reviewing(), ReasonPayload("Waiting on prospectus"),
            at=la(2026, 10, 19, 18),
        )
        resumed = run(WorkflowAction.RESUME, held, None, at=la(2026, 10, 20, 7, 45))
        assert resumed.time_tracking == held.time_tracking
        assert resumed.on_hold_since == la(2026, 10, 19, 18)

    def test_resume_without_hold_timestamp_is_inconsistent(self):
        held = replace(make_held(), on_hold_since=None)
        with pytest.raises(StateInconsistentError):
            run(WorkflowAction.RESUME, held, None)

    def test_cancel_closes_open_stages(self):
        cancelled = run(WorkflowAction.CANCEL, _reviewing(), ReasonPayload("No longer needed"))
        assert cancelled.status is RequestStatus.CANCELLED
        assert cancelled.previous_status is RequestStatus.IN_REVIEW
        assert cancelled.cancelled_reason == "No longer needed"
        assert cancelled.time_tracking.open_stages == ()
        assert cancelled.time_tracking.total_reviewer_hours == Decimal("4.00")

    def test_cancel_while_held_stops_at_hold_start(self):
        held = run(WorkflowAction.HOLD, _reviewing(), ReasonPayload("Waiting on prospectus"))
        cancelled = run(WorkflowAction.CANCEL, held, ReasonPayload("No longer needed"), at=MON_13)
        assert cancelled.previous_status is RequestStatus.IN_REVIEW
        assert cancelled.time_tracking.legal_review_attorney_hours == Decimal("2.00")

    def test_cancel_completed_rejected(self):
        with pytest.raises(InvalidLifecycleTransitionError):
            run(WorkflowAction.CANCEL, make_at_status(RequestStatus.COMPLETED), ReasonPayload("x" * 10))
