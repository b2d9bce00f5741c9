"""Tests for the stage time accumulator."""

from dataclasses import replace
from decimal import Decimal

import pytest

from review_engines.time_tracking import (
    close_all_open,
    close_stage,
    credit,
    hand_off,
    minutes_to_hours,
    open_stage,
    resume_open_stages,
    stage_owner,
)
from review_kernel.domain.request import Stage, StageOwner, TimeTracking
from review_kernel.domain.workflow import (
    ComplianceReviewStatus,
    LegalReviewStatus,
    RequestStatus,
)
from tests.factories import la, make_at_status, make_calendar, make_held, make_in_review

MON_9 = la(2026, 10, 19, 9)
MON_10 = la(2026, 10, 19, 10)
MON_11 = la(2026, 10, 19, 11)


@pytest.fixture
def cal():
    return make_calendar()


class TestMinutesToHours:

    @pytest.mark.parametrize("minutes,hours", [
        (0, Decimal("0.00")),
        (1, Decimal("0.02")),
        (30, Decimal("0.50")),
        (90, Decimal("1.50")),
        (960, Decimal("16.00")),
    ])
    def test_quantized_to_hundredths(self, minutes, hours):
        assert minutes_to_hours(minutes) == hours


class TestCredit:

    def test_credit_updates_counter_and_totals(self, cal):
        tracking = credit(
            TimeTracking(), Stage.LEGAL_REVIEW, StageOwner.REVIEWER, MON_9, la(2026, 10, 19, 10, 30), cal,
        )
        assert tracking.legal_review_attorney_hours == Decimal("1.50")
        assert tracking.total_reviewer_hours == Decimal("1.50")
        assert tracking.total_submitter_hours == Decimal("0.00")

    def test_empty_interval_credits_nothing(self, cal):
        tracking = TimeTracking()
        assert credit(tracking, Stage.CLOSEOUT, StageOwner.REVIEWER, MON_9, MON_9, cal) is tracking

    def test_after_hours_interval_still_counts(self, cal):
        tracking = credit(
            TimeTracking(), Stage.LEGAL_INTAKE, StageOwner.REVIEWER,
            la(2026, 10, 16, 17), la(2026, 10, 17, 9), cal,
        )
        assert tracking.legal_intake_legal_admin_hours == Decimal("16.00")


class TestOpenClose:

    def test_close_credits_and_clears_anchor(self, cal):
        tracking = open_stage(TimeTracking(), Stage.COMPLIANCE_REVIEW, MON_9)
        tracking = close_stage(tracking, Stage.COMPLIANCE_REVIEW, StageOwner.REVIEWER, MON_11, cal)
        assert tracking.compliance_review_reviewer_hours == Decimal("2.00")
        assert tracking.compliance_review_since is None

    def test_close_unopened_stage_is_noop(self, cal):
        tracking = TimeTracking()
        assert close_stage(tracking, Stage.CLOSEOUT, StageOwner.REVIEWER, MON_11, cal) is tracking

    def test_hand_off_splits_interval_between_owners(self, cal):
        tracking = open_stage(TimeTracking(), Stage.LEGAL_REVIEW, MON_9)
        tracking = hand_off(tracking, Stage.LEGAL_REVIEW, StageOwner.REVIEWER, MON_10, cal)
        assert tracking.legal_review_since == MON_10
        tracking = close_stage(tracking, Stage.LEGAL_REVIEW, StageOwner.SUBMITTER, MON_11, cal)
        assert tracking.legal_review_attorney_hours == Decimal("1.00")
        assert tracking.legal_review_submitter_hours == Decimal("1.00")
        assert tracking.total_reviewer_hours + tracking.total_submitter_hours == Decimal("2.00")


class TestStageOwner:

    def test_intake_owned_by_reviewer_through_committee_step(self):
        request = make_at_status(RequestStatus.ASSIGN_ATTORNEY)
        assert stage_owner(request, Stage.LEGAL_INTAKE) is StageOwner.REVIEWER
        assert stage_owner(request, Stage.LEGAL_REVIEW) is None

    @pytest.mark.parametrize("status,owner", [
        (LegalReviewStatus.IN_PROGRESS, StageOwner.REVIEWER),
        (LegalReviewStatus.WAITING_ON_ATTORNEY, StageOwner.REVIEWER),
        (LegalReviewStatus.WAITING_ON_SUBMITTER, StageOwner.SUBMITTER),
    ])
    def test_legal_review_owner(self, status, owner):
        assert stage_owner(make_in_review(legal_status=status), Stage.LEGAL_REVIEW) is owner

    def test_compliance_waiting_on_submitter(self):
        request = make_in_review(compliance_status=ComplianceReviewStatus.WAITING_ON_SUBMITTER)
        assert stage_owner(request, Stage.COMPLIANCE_REVIEW) is StageOwner.SUBMITTER

    def test_looks_through_hold(self):
        assert stage_owner(make_held(RequestStatus.CLOSEOUT), Stage.CLOSEOUT) is StageOwner.REVIEWER


class TestCloseAllOpen:

    def test_each_open_stage_credited_to_its_owner(self, cal):
        request = make_in_review(
            legal_status=LegalReviewStatus.WAITING_ON_SUBMITTER,
            time_tracking=TimeTracking(legal_review_since=MON_9, compliance_review_since=MON_9),
        )
        tracking = close_all_open(request, MON_11, cal)
        assert tracking.legal_review_submitter_hours == Decimal("2.00")
        assert tracking.compliance_review_reviewer_hours == Decimal("2.00")
        assert tracking.open_stages == ()
        assert tracking.total_reviewer_hours == Decimal("2.00")
        assert tracking.total_submitter_hours == Decimal("2.00")


class TestResumeOpenStages:

    def test_hold_inside_business_hours(self, cal):
        tracking = TimeTracking(legal_review_since=MON_9)
        resumed = resume_open_stages(tracking, MON_10, MON_11, cal)
        assert resumed.legal_review_since == MON_10
        assert resumed.compliance_review_since is None

    def test_overnight_hold_keeps_time_before_the_hold(self, cal):
        tracking = TimeTracking(legal_review_since=la(2026, 10, 19, 16))
        resumed = resume_open_stages(tracking, la(2026, 10, 19, 16, 30), la(2026, 10, 20, 8), cal)
        closed = close_stage(resumed, Stage.LEGAL_REVIEW, StageOwner.REVIEWER, la(2026, 10, 20, 9), cal)
        assert closed.legal_review_attorney_hours == Decimal("1.50")

    def test_hold_before_hours_does_not_count_held_time(self, cal):
        tracking = TimeTracking(legal_review_since=la(2026, 10, 19, 7))
        resumed = resume_open_stages(tracking, la(2026, 10, 19, 7, 30), la(2026, 10, 19, 16), cal)
        assert resumed.legal_review_since == la(2026, 10, 19, 16)
        closed = close_stage(resumed, Stage.LEGAL_REVIEW, StageOwner.REVIEWER, la(2026, 10, 19, 17), cal)
        assert closed.legal_review_attorney_hours == Decimal("1.00")

    def test_weekend_hold(self, cal):
        tracking = TimeTracking(closeout_since=la(2026, 10, 23, 16))
        resumed = resume_open_stages(tracking, la(2026, 10, 23, 16, 30), la(2026, 10, 26, 9), cal)
        closed = close_stage(resumed, Stage.CLOSEOUT, StageOwner.REVIEWER, la(2026, 10, 26, 10), cal)
        assert closed.closeout_reviewer_hours == Decimal("1.50")

    def test_hold_without_business_time_keeps_anchor(self, cal):
        tracking = TimeTracking(legal_review_since=MON_10, compliance_review_since=MON_9)
        resumed = resume_open_stages(tracking, la(2026, 10, 19, 17, 30), la(2026, 10, 20, 7), cal)
        assert resumed == tracking

    def test_resume_at_hold_instant_is_identity(self, cal):
        tracking = replace(TimeTracking(), closeout_since=MON_9)
        assert resume_open_stages(tracking, MON_11, MON_11, cal) is tracking
