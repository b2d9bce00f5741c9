"""
review_engines.time_tracking -- Stage time accumulator.

Responsibility:
    Credit elapsed business time to the per-stage counter of whichever role
    owned the stage during each sub-interval, and keep the running totals
    consistent with those counters.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import review_kernel/domain/ types and sibling engines.

Invariants enforced:
    - Totals are recomputed from the counters after every credit, never
      patched incrementally.
    - A stage accrues only while its anchor is set.  ``hand_off`` closes the
      outgoing owner's sub-interval and opens the next at the same instant,
      so no time is lost or counted twice across ownership flips.
    - Holds pause accrual: ``resume_open_stages`` re-anchors every open
      stage so only the business time accrued before the hold carries over.
      Counters are left alone, so an immediate Hold then Resume changes
      nothing.

Ownership:
    Legal Intake (including the committee assignment step) and Closeout
    belong to the reviewer.  Within Legal and Compliance review, Waiting On
    Submitter belongs to the submitter; In Progress and Waiting On
    Attorney/Compliance belong to the reviewer.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from review_engines.business_hours import (
    business_seconds_between,
    rewind_business_seconds,
    stage_elapsed_minutes,
)
from review_kernel.domain.calendar import BusinessCalendar
from review_kernel.domain.request import (
    ANCHOR_FIELDS,
    COUNTER_FIELDS,
    HOURS_QUANTUM,
    Request,
    Stage,
    StageOwner,
    TimeTracking,
)
from review_kernel.domain.workflow import (
    ComplianceReviewStatus,
    LegalReviewStatus,
    RequestStatus,
)

_MINUTES_PER_HOUR = Decimal(60)

_LEGAL_OWNERS: dict[LegalReviewStatus, StageOwner] = {
    LegalReviewStatus.NOT_STARTED: StageOwner.REVIEWER,
    LegalReviewStatus.IN_PROGRESS: StageOwner.REVIEWER,
    LegalReviewStatus.WAITING_ON_ATTORNEY: StageOwner.REVIEWER,
    LegalReviewStatus.WAITING_ON_SUBMITTER: StageOwner.SUBMITTER,
}

_COMPLIANCE_OWNERS: dict[ComplianceReviewStatus, StageOwner] = {
    ComplianceReviewStatus.NOT_STARTED: StageOwner.REVIEWER,
    ComplianceReviewStatus.IN_PROGRESS: StageOwner.REVIEWER,
    ComplianceReviewStatus.WAITING_ON_COMPLIANCE: StageOwner.REVIEWER,
    ComplianceReviewStatus.WAITING_ON_SUBMITTER: StageOwner.SUBMITTER,
}

_INTAKE_STATUSES = frozenset({RequestStatus.LEGAL_INTAKE, RequestStatus.ASSIGN_ATTORNEY})


def minutes_to_hours(minutes: int) -> Decimal:
    return (Decimal(minutes) / _MINUTES_PER_HOUR).quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)


def legal_stage_owner(status: LegalReviewStatus) -> StageOwner | None:
    return _LEGAL_OWNERS.get(status)


def compliance_stage_owner(status: ComplianceReviewStatus) -> StageOwner | None:
    return _COMPLIANCE_OWNERS.get(status)


def stage_owner(request: Request, stage: Stage) -> StageOwner | None:
    """Who owns ``stage`` right now, or None when the stage is not running.

    Looks through a hold to the interrupted status.
    """
    status = request.lifecycle.effective_status
    if stage is Stage.LEGAL_INTAKE:
        return StageOwner.REVIEWER if status in _INTAKE_STATUSES else None
    if stage is Stage.CLOSEOUT:
        return StageOwner.REVIEWER if status is RequestStatus.CLOSEOUT else None
    if status is not RequestStatus.IN_REVIEW:
        return None
    if stage is Stage.LEGAL_REVIEW:
        review = request.legal_review
        return legal_stage_owner(review.status) if review else None
    review = request.compliance_review
    return compliance_stage_owner(review.status) if review else None


def credit(
    tracking: TimeTracking,
    stage: Stage,
    owner: StageOwner,
    start: datetime,
    end: datetime,
    calendar: BusinessCalendar,
) -> TimeTracking:
    """Add the elapsed time of one sub-interval to ``(stage, owner)``."""
    minutes = stage_elapsed_minutes(start, end, calendar)
    if minutes == 0:
        return tracking
    name = COUNTER_FIELDS[(stage, owner)]
    updated = replace(tracking, **{name: getattr(tracking, name) + minutes_to_hours(minutes)})
    return updated.recompute_totals()


def open_stage(tracking: TimeTracking, stage: Stage, at: datetime) -> TimeTracking:
    return replace(tracking, **{ANCHOR_FIELDS[stage]: at})


def close_stage(
    tracking: TimeTracking,
    stage: Stage,
    owner: StageOwner,
    at: datetime,
    calendar: BusinessCalendar,
) -> TimeTracking:
    """Credit the open sub-interval of ``stage`` to ``owner`` and stop accrual.

    A stage that is not open is returned unchanged.
    """
    started = tracking.anchor(stage)
    if started is None:
        return tracking
    credited = credit(tracking, stage, owner, started, at, calendar)
    return replace(credited, **{ANCHOR_FIELDS[stage]: None})


def hand_off(
    tracking: TimeTracking,
    stage: Stage,
    outgoing_owner: StageOwner,
    at: datetime,
    calendar: BusinessCalendar,
) -> TimeTracking:
    """Close the outgoing owner's sub-interval and reopen the stage at ``at``."""
    return open_stage(close_stage(tracking, stage, outgoing_owner, at, calendar), stage, at)


def close_all_open(
    request: Request,
    at: datetime,
    calendar: BusinessCalendar,
) -> TimeTracking:
    """Close every open stage of ``request``, crediting its current owner."""
    tracking = request.time_tracking
    for stage in tracking.open_stages:
        owner = stage_owner(request, stage) or StageOwner.REVIEWER
        tracking = close_stage(tracking, stage, owner, at, calendar)
    return tracking


def resume_open_stages(
    tracking: TimeTracking,
    held_since: datetime,
    at: datetime,
    calendar: BusinessCalendar,
) -> TimeTracking:
    """Re-anchor every open stage so the time on hold is not credited.

    Each anchor becomes the instant that leaves exactly the business time
    the stage had accrued before ``held_since`` between it and ``at``.  A
    resume at the hold instant leaves the anchors untouched.
    """
    if at <= held_since:
        return tracking
    anchors = {}
    for stage in tracking.open_stages:
        accrued = business_seconds_between(tracking.anchor(stage), held_since, calendar)
        anchors[ANCHOR_FIELDS[stage]] = rewind_business_seconds(at, accrued, calendar)
    return replace(tracking, **anchors)
