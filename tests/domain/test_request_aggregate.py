"""Tests for the request aggregate and its owned value objects."""

from dataclasses import replace
from decimal import Decimal

import pytest

from review_kernel.domain.limits import FieldLimits
from review_kernel.domain.principal import PrincipalRef, RoleGroups
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
    with_note,
)
from review_kernel.domain.workflow import (
    ComplianceReviewStatus,
    LegalReviewStatus,
    ReviewAudience,
    ReviewOutcome,
)
from tests.factories import MONDAY_9AM, SUBMITTER, make_completed_reviews, make_in_review


class TestReviewNotes:

    def test_append_keeps_history(self):
        notes = with_note(ReviewNotes(), "attorney", MONDAY_9AM, "Please revise page 2")
        notes = with_note(notes, "submitter", MONDAY_9AM, "Revised")
        assert [e.text for e in notes.entries] == ["Please revise page 2", "Revised"]
        assert notes.text == "Please revise page 2\n\nRevised"

    def test_blank_note_not_recorded(self):
        notes = with_note(ReviewNotes(), "attorney", MONDAY_9AM, "   ")
        assert notes.entries == ()
        assert with_note(notes, "attorney", MONDAY_9AM, None) is notes

    def test_new_round_clears_current_text_only(self):
        notes = with_note(ReviewNotes(), "attorney", MONDAY_9AM, "Round one")
        notes = notes.start_new_round()
        assert notes.current_text == ""
        assert notes.text == "Round one"
        notes = with_note(notes, "attorney", MONDAY_9AM, "Round two")
        assert notes.current_text == "Round two"
        assert len(notes.entries) == 2

    def test_round_start_bounds(self):
        entry = NoteEntry(author_id="a", timestamp=MONDAY_9AM, text="x")
        with pytest.raises(ValueError):
            ReviewNotes(entries=(entry,), round_start=2)


class TestApproval:

    def test_title_only_on_other(self):
        with pytest.raises(ValueError, match="only Other"):
            Approval(approval_type=ApprovalType.PERFORMANCE, title="Desk check")

    def test_other_with_title(self):
        approval = Approval(approval_type=ApprovalType.OTHER, title="Desk check")
        assert approval.title == "Desk check"


class TestReviewSubRecords:

    def test_completed_legal_requires_final_outcome(self):
        with pytest.raises(ValueError):
            LegalReview(status=LegalReviewStatus.COMPLETED)
        with pytest.raises(ValueError):
            LegalReview(
                status=LegalReviewStatus.COMPLETED,
                outcome=ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT,
            )

    def test_completed_compliance_with_outcome(self):
        review = ComplianceReview(
            status=ComplianceReviewStatus.COMPLETED, outcome=ReviewOutcome.NOT_APPROVED,
        )
        assert review.is_completed
        assert not review.is_active

    @pytest.mark.parametrize("foreside,retail,expected", [
        (True, True, True),
        (True, False, False),
        (False, True, False),
        (None, None, False),
    ])
    def test_foreside_documents_required(self, foreside, retail, expected):
        review = ComplianceReview(is_foreside_review_required=foreside, is_retail_use=retail)
        assert review.requires_foreside_documents is expected

    def test_not_required_is_inactive(self):
        assert not LegalReview(status=LegalReviewStatus.NOT_REQUIRED).is_active
        assert LegalReview(status=LegalReviewStatus.WAITING_ON_SUBMITTER).is_active


class TestRequest:

    def test_unsaved_request_is_new(self):
        assert Request().is_new
        assert not Request(id=3).is_new

    def test_owner_is_author_or_submitter(self):
        request = Request(author_id="author", submitted_by="submitter")
        assert request.is_owner("author")
        assert request.is_owner("submitter")
        assert not request.is_owner("someone-else")

    def test_revision_does_not_affect_equality(self):
        assert Request(id=1, revision=1) == Request(id=1, revision=9)

    def test_pending_reviews_for_both(self):
        request = make_in_review(audience=ReviewAudience.BOTH)
        assert request.pending_reviews == ("Legal", "Compliance")
        assert not request.required_reviews_completed

    def test_pending_reviews_ignores_unselected(self):
        request = make_in_review(audience=ReviewAudience.LEGAL)
        assert request.pending_reviews == ("Legal",)

    def test_all_reviews_completed(self):
        request = make_completed_reviews()
        assert request.pending_reviews == ()
        assert request.required_reviews_completed

    def test_no_audience_is_never_complete(self):
        assert not Request().required_reviews_completed

    def test_assigned_attorney(self):
        request = make_in_review()
        assert request.assigned_attorney.id == "attorney"
        assert Request().assigned_attorney is None

    def test_owner_check_uses_submitter(self):
        request = make_in_review(author_id="delegate")
        assert request.is_owner(SUBMITTER.id)


class TestTimeTracking:

    def test_recompute_totals_sums_counters(self):
        tracking = TimeTracking(
            legal_intake_legal_admin_hours=Decimal("1.50"),
            legal_review_attorney_hours=Decimal("2.25"),
            legal_review_submitter_hours=Decimal("0.75"),
            closeout_submitter_hours=Decimal("0.10"),
        ).recompute_totals()
        assert tracking.total_reviewer_hours == Decimal("3.75")
        assert tracking.total_submitter_hours == Decimal("0.85")

    def test_open_stages_follow_anchors(self):
        tracking = TimeTracking(legal_review_since=MONDAY_9AM, closeout_since=MONDAY_9AM)
        assert tracking.open_stages == (Stage.LEGAL_REVIEW, Stage.CLOSEOUT)

    def test_counter_lookup(self):
        tracking = replace(TimeTracking(), compliance_review_submitter_hours=Decimal("4.00"))
        assert tracking.counter(Stage.COMPLIANCE_REVIEW, StageOwner.SUBMITTER) == Decimal("4.00")


class TestPrincipalAndLimits:

    def test_principal_ref_requires_id(self):
        with pytest.raises(ValueError):
            PrincipalRef(id=" ")

    def test_role_groups_must_be_distinct(self):
        with pytest.raises(ValueError, match="distinct"):
            RoleGroups(attorneys="LW - Admin")

    def test_limits_reject_inverted_bounds(self):
        with pytest.raises(ValueError):
            FieldLimits(reason_min=20, reason_max=10)

    def test_limits_reject_negative(self):
        with pytest.raises(ValueError):
            FieldLimits(notes_max=-1)

