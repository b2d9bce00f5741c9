"""
Canonical workflow types (``review_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the legal review request state machine: the primary
status, the two review sub-statuses, review outcomes, audiences, the
enumerated actions, and the ``Lifecycle`` variant that carries the state a
hold or cancellation interrupted.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, or outer layers.

Invariants enforced
-------------------
* Enum values are the persisted interchange strings and are compared by
  exact string equality; they must never be reworded.
* ``Lifecycle.interrupted`` is set if and only if the status is OnHold or
  Cancelled, so Resume can never meet a stale or missing previous status.
* ``Lifecycle.advance`` only follows edges listed in ``ALLOWED_TRANSITIONS``.
* Cancelled and Completed have no outbound edges.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from review_kernel.exceptions import InvalidLifecycleTransitionError


class RequestStatus(str, Enum):
    """Primary status of a request."""

    DRAFT = "Draft"
    LEGAL_INTAKE = "Legal Intake"
    ASSIGN_ATTORNEY = "Assign Attorney"
    IN_REVIEW = "In Review"
    CLOSEOUT = "Closeout"
    AWAITING_FORESIDE_DOCUMENTS = "Awaiting Foreside Documents"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    ON_HOLD = "On Hold"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


class LegalReviewStatus(str, Enum):
    NOT_REQUIRED = "Not Required"
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    WAITING_ON_SUBMITTER = "Waiting On Submitter"
    WAITING_ON_ATTORNEY = "Waiting On Attorney"
    COMPLETED = "Completed"


class ComplianceReviewStatus(str, Enum):
    NOT_REQUIRED = "Not Required"
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    WAITING_ON_SUBMITTER = "Waiting On Submitter"
    WAITING_ON_COMPLIANCE = "Waiting On Compliance"
    COMPLETED = "Completed"


class ReviewOutcome(str, Enum):
    """Decision recorded by a reviewer when submitting a review."""

    APPROVED = "Approved"
    APPROVED_WITH_COMMENTS = "Approved With Comments"
    RESPOND_TO_COMMENTS_AND_RESUBMIT = "Respond To Comments And Resubmit"
    NOT_APPROVED = "Not Approved"

    @property
    def completes_review(self) -> bool:
        """True when the outcome ends the sub-workflow (no resubmission loop)."""
        return self is not ReviewOutcome.RESPOND_TO_COMMENTS_AND_RESUBMIT


class ReviewAudience(str, Enum):
    """Which review sub-workflows are active for a request."""

    LEGAL = "Legal"
    COMPLIANCE = "Compliance"
    BOTH = "Both"

    @property
    def includes_legal(self) -> bool:
        return self in (ReviewAudience.LEGAL, ReviewAudience.BOTH)

    @property
    def includes_compliance(self) -> bool:
        return self in (ReviewAudience.COMPLIANCE, ReviewAudience.BOTH)


class WorkflowAction(str, Enum):
    """Every action the transition engine accepts."""

    SAVE_DRAFT = "SaveDraft"
    SUBMIT = "Submit"
    ASSIGN_ATTORNEY = "AssignAttorney"
    SEND_TO_COMMITTEE = "SendToCommittee"
    COMMITTEE_ASSIGN_ATTORNEY = "CommitteeAssignAttorney"
    SUBMIT_LEGAL_REVIEW = "SubmitLegalReview"
    SUBMIT_COMPLIANCE_REVIEW = "SubmitComplianceReview"
    RESUBMIT_LEGAL_REVIEW = "ResubmitLegalReview"
    RESUBMIT_COMPLIANCE_REVIEW = "ResubmitComplianceReview"
    CLOSEOUT = "Closeout"
    COMPLETE_FORESIDE_DOCUMENTS = "CompleteForesideDocuments"
    CANCEL = "Cancel"
    HOLD = "Hold"
    RESUME = "Resume"
    EDIT = "Edit"


TERMINAL_STATUSES: frozenset[RequestStatus] = frozenset(
    {RequestStatus.COMPLETED, RequestStatus.CANCELLED}
)

INTERRUPTED_STATUSES: frozenset[RequestStatus] = frozenset(
    {RequestStatus.ON_HOLD, RequestStatus.CANCELLED}
)

_SIDE_EXITS = frozenset({RequestStatus.ON_HOLD, RequestStatus.CANCELLED})

ALLOWED_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.DRAFT: frozenset({RequestStatus.LEGAL_INTAKE}) | _SIDE_EXITS,
    RequestStatus.LEGAL_INTAKE: frozenset(
        {RequestStatus.ASSIGN_ATTORNEY, RequestStatus.IN_REVIEW}
    ) | _SIDE_EXITS,
    RequestStatus.ASSIGN_ATTORNEY: frozenset({RequestStatus.IN_REVIEW}) | _SIDE_EXITS,
    RequestStatus.IN_REVIEW: frozenset(
        {RequestStatus.CLOSEOUT, RequestStatus.COMPLETED}
    ) | _SIDE_EXITS,
    RequestStatus.CLOSEOUT: frozenset(
        {RequestStatus.AWAITING_FORESIDE_DOCUMENTS, RequestStatus.COMPLETED}
    ) | _SIDE_EXITS,
    RequestStatus.AWAITING_FORESIDE_DOCUMENTS: frozenset(
        {RequestStatus.COMPLETED}
    ) | _SIDE_EXITS,
    # Resume returns to whatever Lifecycle.interrupted holds.
    RequestStatus.ON_HOLD: frozenset({RequestStatus.CANCELLED}),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True)
class Lifecycle:
    """Primary status as a tagged variant.

    Contract: frozen.  ``interrupted`` carries the status a hold or a
    cancellation interrupted and is None for every other status.
    Guarantees: ``resume()`` on a held lifecycle always yields exactly the
    interrupted status.
    """

    status: RequestStatus
    interrupted: RequestStatus | None = None

    def __post_init__(self) -> None:
        if self.status in INTERRUPTED_STATUSES:
            if self.interrupted is None:
                raise ValueError(f"{self.status.value} must record the interrupted status")
            if self.interrupted in INTERRUPTED_STATUSES:
                raise ValueError(
                    f"{self.status.value} cannot interrupt {self.interrupted.value}"
                )
        elif self.interrupted is not None:
            raise ValueError(
                f"{self.status.value} cannot carry an interrupted status"
            )

    @classmethod
    def draft(cls) -> Lifecycle:
        return cls(RequestStatus.DRAFT)

    @property
    def previous_status(self) -> RequestStatus | None:
        return self.interrupted

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_on_hold(self) -> bool:
        return self.status is RequestStatus.ON_HOLD

    @property
    def effective_status(self) -> RequestStatus:
        """The workflow stage the request belongs to, looking through a hold."""
        return self.interrupted if self.is_on_hold else self.status

    def advance(self, to: RequestStatus) -> Lifecycle:
        """Move along a forward edge of ``ALLOWED_TRANSITIONS``."""
        if to in INTERRUPTED_STATUSES:
            raise InvalidLifecycleTransitionError(self.status.value, to.value)
        if to not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidLifecycleTransitionError(self.status.value, to.value)
        return Lifecycle(to)

    def hold(self) -> Lifecycle:
        if RequestStatus.ON_HOLD not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidLifecycleTransitionError(
                self.status.value, RequestStatus.ON_HOLD.value
            )
        return Lifecycle(RequestStatus.ON_HOLD, interrupted=self.status)

    def cancel(self) -> Lifecycle:
        if RequestStatus.CANCELLED not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidLifecycleTransitionError(
                self.status.value, RequestStatus.CANCELLED.value
            )
        return Lifecycle(RequestStatus.CANCELLED, interrupted=self.effective_status)

    def resume(self) -> Lifecycle:
        if not self.is_on_hold:
            raise InvalidLifecycleTransitionError(
                self.status.value, "previous status"
            )
        return Lifecycle(self.interrupted)
