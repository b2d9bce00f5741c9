"""
Request aggregate (``review_kernel.domain.request``).

Responsibility
--------------
The legal review request and everything it owns: the Legal and Compliance
review sub-records, the approvals collection, append-only review notes and
the stage time-tracking counters.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  Every type is a
frozen dataclass; transitions produce a new ``Request`` with
``dataclasses.replace`` and never modify one in place.

Invariants enforced
-------------------
* Review notes are append-only.  Starting a new round moves a cursor; it
  never drops entries.
* Only the Other approval type carries a title.
* A sub-review in status Completed carries a completing outcome.
* Time-tracking totals equal the sum of their per-stage counters
  (``TimeTracking.recompute_totals``).
* ``revision`` is store metadata and does not take part in equality.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from review_kernel.domain.principal import PrincipalRef
from review_kernel.domain.workflow import (
    ComplianceReviewStatus,
    LegalReviewStatus,
    Lifecycle,
    RequestStatus,
    ReviewAudience,
    ReviewOutcome,
)

HOURS_QUANTUM = Decimal("0.01")
ZERO_HOURS = Decimal("0.00")


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NoteEntry:
    author_id: str
    timestamp: datetime
    text: str


@dataclass(frozen=True)
class ReviewNotes:
    """Ordered, append-only note history.

    ``round_start`` is the index of the first entry of the current round.
    Resubmission starts a new round so the form shows an empty field while
    every earlier entry stays in ``entries``.
    """

    entries: tuple[NoteEntry, ...] = ()
    round_start: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.round_start <= len(self.entries):
            raise ValueError(
                f"round_start {self.round_start} outside 0..{len(self.entries)}"
            )

    def append(self, entry: NoteEntry) -> ReviewNotes:
        return replace(self, entries=self.entries + (entry,))

    def start_new_round(self) -> ReviewNotes:
        return replace(self, round_start=len(self.entries))

    @property
    def current_round(self) -> tuple[NoteEntry, ...]:
        return self.entries[self.round_start:]

    @property
    def text(self) -> str:
        """Whole history, concatenated oldest first."""
        return "\n\n".join(e.text for e in self.entries)

    @property
    def current_text(self) -> str:
        return "\n\n".join(e.text for e in self.current_round)


def with_note(notes: ReviewNotes, author_id: str, at: datetime, text: str | None) -> ReviewNotes:
    """Append ``text`` when it has content; blank notes are not recorded."""
    if text is None or not text.strip():
        return notes
    return notes.append(NoteEntry(author_id=author_id, timestamp=at, text=text))


# ---------------------------------------------------------------------------
# Approvals
# ---------------------------------------------------------------------------


class ApprovalType(str, Enum):
    COMMUNICATIONS = "Communications"
    PORTFOLIO_MANAGER = "Portfolio Manager"
    RESEARCH_ANALYST = "Research Analyst"
    SUBJECT_MATTER_EXPERT = "Subject Matter Expert"
    PERFORMANCE = "Performance"
    OTHER = "Other"


@dataclass(frozen=True)
class Approval:
    """One pre-submission approval, tagged by ``approval_type``.

    ``document_ids`` is what the record knows about; whether a document is
    currently attached is answered by the attachment collaborator.
    """

    approval_type: ApprovalType
    approver: PrincipalRef | None = None
    approval_date: date | None = None
    document_ids: tuple[str, ...] = ()
    notes: str | None = None
    title: str | None = None

    def __post_init__(self) -> None:
        if self.title is not None and self.approval_type is not ApprovalType.OTHER:
            raise ValueError(
                f"only Other approvals carry a title, not {self.approval_type.value}"
            )


# ---------------------------------------------------------------------------
# Review sub-records
# ---------------------------------------------------------------------------


def _check_completed_outcome(status_completed: bool, outcome: ReviewOutcome | None, kind: str) -> None:
    if status_completed and (outcome is None or not outcome.completes_review):
        raise ValueError(f"completed {kind} review requires a final outcome, got {outcome}")


@dataclass(frozen=True)
class LegalReview:
    status: LegalReviewStatus = LegalReviewStatus.NOT_STARTED
    outcome: ReviewOutcome | None = None
    notes: ReviewNotes = ReviewNotes()
    assigned_attorney: PrincipalRef | None = None
    status_updated_by: str | None = None
    status_updated_on: datetime | None = None
    completed_by: str | None = None
    completed_on: datetime | None = None

    def __post_init__(self) -> None:
        _check_completed_outcome(self.is_completed, self.outcome, "legal")

    @property
    def is_completed(self) -> bool:
        return self.status is LegalReviewStatus.COMPLETED

    @property
    def is_active(self) -> bool:
        return self.status not in (LegalReviewStatus.NOT_REQUIRED, LegalReviewStatus.COMPLETED)


@dataclass(frozen=True)
class ComplianceReview:
    status: ComplianceReviewStatus = ComplianceReviewStatus.NOT_STARTED
    outcome: ReviewOutcome | None = None
    notes: ReviewNotes = ReviewNotes()
    is_foreside_review_required: bool | None = None
    is_retail_use: bool | None = None
    status_updated_by: str | None = None
    status_updated_on: datetime | None = None
    completed_by: str | None = None
    completed_on: datetime | None = None

    def __post_init__(self) -> None:
        _check_completed_outcome(self.is_completed, self.outcome, "compliance")

    @property
    def is_completed(self) -> bool:
        return self.status is ComplianceReviewStatus.COMPLETED

    @property
    def is_active(self) -> bool:
        return self.status not in (
            ComplianceReviewStatus.NOT_REQUIRED,
            ComplianceReviewStatus.COMPLETED,
        )

    @property
    def requires_foreside_documents(self) -> bool:
        return bool(self.is_foreside_review_required and self.is_retail_use)


# ---------------------------------------------------------------------------
# Time tracking
# ---------------------------------------------------------------------------


class Stage(str, Enum):
    LEGAL_INTAKE = "Legal Intake"
    LEGAL_REVIEW = "Legal Review"
    COMPLIANCE_REVIEW = "Compliance Review"
    CLOSEOUT = "Closeout"


class StageOwner(str, Enum):
    REVIEWER = "reviewer"
    SUBMITTER = "submitter"


# (stage, owner) -> counter attribute on TimeTracking
COUNTER_FIELDS: dict[tuple[Stage, StageOwner], str] = {
    (Stage.LEGAL_INTAKE, StageOwner.REVIEWER): "legal_intake_legal_admin_hours",
    (Stage.LEGAL_INTAKE, StageOwner.SUBMITTER): "legal_intake_submitter_hours",
    (Stage.LEGAL_REVIEW, StageOwner.REVIEWER): "legal_review_attorney_hours",
    (Stage.LEGAL_REVIEW, StageOwner.SUBMITTER): "legal_review_submitter_hours",
    (Stage.COMPLIANCE_REVIEW, StageOwner.REVIEWER): "compliance_review_reviewer_hours",
    (Stage.COMPLIANCE_REVIEW, StageOwner.SUBMITTER): "compliance_review_submitter_hours",
    (Stage.CLOSEOUT, StageOwner.REVIEWER): "closeout_reviewer_hours",
    (Stage.CLOSEOUT, StageOwner.SUBMITTER): "closeout_submitter_hours",
}

# stage -> open-interval anchor attribute on TimeTracking
ANCHOR_FIELDS: dict[Stage, str] = {
    Stage.LEGAL_INTAKE: "legal_intake_since",
    Stage.LEGAL_REVIEW: "legal_review_since",
    Stage.COMPLIANCE_REVIEW: "compliance_review_since",
    Stage.CLOSEOUT: "closeout_since",
}


@dataclass(frozen=True)
class TimeTracking:
    """Business-hour counters per stage and owner, plus open-interval anchors.

    An anchor is the instant the current sub-interval of that stage began;
    None means the stage is not accruing time.
    """

    legal_intake_legal_admin_hours: Decimal = ZERO_HOURS
    legal_intake_submitter_hours: Decimal = ZERO_HOURS
    legal_review_attorney_hours: Decimal = ZERO_HOURS
    legal_review_submitter_hours: Decimal = ZERO_HOURS
    compliance_review_reviewer_hours: Decimal = ZERO_HOURS
    compliance_review_submitter_hours: Decimal = ZERO_HOURS
    closeout_reviewer_hours: Decimal = ZERO_HOURS
    closeout_submitter_hours: Decimal = ZERO_HOURS
    total_reviewer_hours: Decimal = ZERO_HOURS
    total_submitter_hours: Decimal = ZERO_HOURS
    legal_intake_since: datetime | None = None
    legal_review_since: datetime | None = None
    compliance_review_since: datetime | None = None
    closeout_since: datetime | None = None

    def counter(self, stage: Stage, owner: StageOwner) -> Decimal:
        return getattr(self, COUNTER_FIELDS[(stage, owner)])

    def anchor(self, stage: Stage) -> datetime | None:
        return getattr(self, ANCHOR_FIELDS[stage])

    @property
    def open_stages(self) -> tuple[Stage, ...]:
        return tuple(s for s in Stage if self.anchor(s) is not None)

    def recompute_totals(self) -> TimeTracking:
        """Rebuild both totals from the per-stage counters."""
        reviewer = sum(
            (self.counter(s, StageOwner.REVIEWER) for s in Stage), ZERO_HOURS
        )
        submitter = sum(
            (self.counter(s, StageOwner.SUBMITTER) for s in Stage), ZERO_HOURS
        )
        return replace(
            self,
            total_reviewer_hours=reviewer.quantize(HOURS_QUANTUM),
            total_submitter_hours=submitter.quantize(HOURS_QUANTUM),
        )


# ---------------------------------------------------------------------------
# Aggregate root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Request:
    """A legal review request.

    Contract: frozen; identified by an integer ``id`` once stored (None for
    an unsaved draft).  Audit fields are only ever set, never cleared.
    """

    id: int | None = None
    request_code: str | None = None
    lifecycle: Lifecycle = field(default_factory=Lifecycle.draft)
    review_audience: ReviewAudience | None = None

    # Submission content
    title: str = ""
    purpose: str = ""
    target_return_date: date | None = None
    is_rush_request: bool = False
    rush_rationale: str | None = None
    distribution_methods: tuple[str, ...] = ()
    requires_communications_approval: bool = True
    communications_only: bool = False
    approvals: tuple[Approval, ...] = ()

    legal_review: LegalReview | None = None
    compliance_review: ComplianceReview | None = None

    author_id: str | None = None
    created_on: datetime | None = None

    submitted_by: str | None = None
    submitted_on: datetime | None = None
    submitted_to_assign_attorney_by: str | None = None
    submitted_to_assign_attorney_on: datetime | None = None
    submitted_for_review_by: str | None = None
    submitted_for_review_on: datetime | None = None
    intake_notes: ReviewNotes = ReviewNotes()

    closeout_by: str | None = None
    closeout_on: datetime | None = None
    tracking_id: str | None = None
    closeout_notes: str | None = None
    comments_acknowledged: bool = False
    awaiting_foreside_since: datetime | None = None

    foreside_completed_by: str | None = None
    foreside_completed_on: datetime | None = None
    foreside_notes: str | None = None

    on_hold_by: str | None = None
    on_hold_since: datetime | None = None
    on_hold_reason: str | None = None

    cancelled_by: str | None = None
    cancelled_on: datetime | None = None
    cancelled_reason: str | None = None

    time_tracking: TimeTracking = TimeTracking()

    revision: int = field(default=0, compare=False)

    @property
    def status(self) -> RequestStatus:
        return self.lifecycle.status

    @property
    def previous_status(self) -> RequestStatus | None:
        return self.lifecycle.previous_status

    @property
    def is_new(self) -> bool:
        return self.id is None

    def is_owner(self, user_id: str) -> bool:
        """Author of the record, or the principal who submitted it."""
        return user_id is not None and user_id in (self.author_id, self.submitted_by)

    @property
    def legal_review_required(self) -> bool:
        return self.review_audience is not None and self.review_audience.includes_legal

    @property
    def compliance_review_required(self) -> bool:
        return self.review_audience is not None and self.review_audience.includes_compliance

    @property
    def pending_reviews(self) -> tuple[str, ...]:
        """Names of required sub-reviews that have not reached Completed."""
        pending: list[str] = []
        if self.legal_review_required and not (
            self.legal_review is not None and self.legal_review.is_completed
        ):
            pending.append("Legal")
        if self.compliance_review_required and not (
            self.compliance_review is not None and self.compliance_review.is_completed
        ):
            pending.append("Compliance")
        return tuple(pending)

    @property
    def required_reviews_completed(self) -> bool:
        return self.review_audience is not None and not self.pending_reviews

    @property
    def requires_foreside_documents(self) -> bool:
        return (
            self.compliance_review is not None
            and self.compliance_review.requires_foreside_documents
        )

    @property
    def assigned_attorney(self) -> PrincipalRef | None:
        return self.legal_review.assigned_attorney if self.legal_review else None
