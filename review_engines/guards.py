"""
review_engines.guards -- Transition guard set.

Responsibility:
    One guard per action deciding whether a principal may invoke it from
    the record's current state.  Each guard is a pure function of
    ``(request, roles, user_id)`` and returns a ``GuardResult`` whose reason
    is shown to the user verbatim.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Guards never mutate; a denial leaves the record untouched.
    - Admin overrides every ROLE requirement.  State requirements apply to
      everyone: nobody cancels a Completed request or resumes one that is
      not on hold.
    - Guards are evaluated on every invocation.  Nothing is cached between
      calls because roles and record state can change between renders.

Guard table:
    SaveDraft / Submit       Draft (or unsaved)     owner; submitter/legal-admin to create
    AssignAttorney           Legal Intake           legal-admin
    SendToCommittee          Legal Intake           legal-admin
    CommitteeAssignAttorney  Assign Attorney        legal-admin / attorney assigner
    SubmitLegalReview        In Review, legal In Progress or Waiting On Attorney
                                                    assigned attorney / legal-admin
    SubmitComplianceReview   In Review, compliance active
                                                    compliance user
    ResubmitLegalReview      In Review, legal Waiting On Submitter      owner / legal-admin
    ResubmitComplianceReview In Review, compliance Waiting On Submitter owner / legal-admin
    Closeout                 Closeout, required reviews Completed       owner / legal-admin
    CompleteForesideDocuments Awaiting Foreside Documents               owner / legal-admin
    Cancel                   any non-terminal       owner / legal-admin
    Hold                     non-terminal, not On Hold                  legal-admin
    Resume                   On Hold                legal-admin
    Edit                     stage window           role owning the current stage
"""

from __future__ import annotations

from typing import Callable

from review_kernel.domain.principal import RoleFlags
from review_kernel.domain.request import Request
from review_kernel.domain.results import GuardResult
from review_kernel.domain.workflow import (
    ComplianceReviewStatus,
    LegalReviewStatus,
    RequestStatus,
    WorkflowAction,
)
from review_kernel.logging_config import get_logger

logger = get_logger("engines.guards")

GuardFn = Callable[[Request, RoleFlags, str], GuardResult]

_ALLOW = GuardResult.allow()


def _status_is(request: Request, status: RequestStatus, action: str) -> GuardResult:
    if request.status is status:
        return _ALLOW
    return GuardResult.deny(
        f"Cannot {action}: request is {request.status.value}, expected {status.value}"
    )


# ---------------------------------------------------------------------------
# Draft and submission
# ---------------------------------------------------------------------------


def _draft_access(request: Request, roles: RoleFlags, action: str) -> GuardResult:
    if request.is_new:
        if roles.is_submitter or roles.is_legal_admin or roles.is_admin:
            return _ALLOW
        return GuardResult.deny(
            "You do not have permission to create requests"
        )
    if request.status is not RequestStatus.DRAFT:
        return GuardResult.deny(
            f"Cannot {action}: request is {request.status.value}, expected Draft"
        )
    if roles.is_owner or roles.is_admin:
        return _ALLOW
    return GuardResult.deny("Only the request owner can modify this draft")


def can_save_draft(request: Request, roles: RoleFlags, user_id: str) -> GuardResult:
    return _draft_access(request, roles, "save draft")


def can_submit(request: Request, roles: RoleFlags, user_id: str) -> GuardResult:
    return _draft_access(request, roles, "submit")


# ---------------------------------------------------------------------------
# Intake and assignment
# ---------------------------------------------------------------------------


def can_assign_attorney(request: Request, roles: RoleFlags, user_id: str) -> GuardResult:
    state = _status_is(request, RequestStatus.LEGAL_INTAKE, "assign attorney")
    if not state:
        return state
    if roles.is_legal_admin or roles.is_admin:
        return _ALLOW
    return GuardResult.deny("Only Legal Admins can assign attorneys")


def can_send_to_committee(request: Request, roles: RoleFlags, user_id: str) -> GuardResult:
    state = _status_is(request, RequestStatus.LEGAL_INTAKE, "send to committee")
    if not state:
        return state
    if roles.is_legal_admin or roles.is_admin:
        return _ALLOW
    return GuardResult.deny("Only Legal Admins can send requests to the committee")


def can_committee_assign_attorney(
    request: Request, roles: RoleFlags, user_id: str
) -> GuardResult:
    state = _status_is(request, RequestStatus.ASSIGN_ATTORNEY, "assign attorney")
    if not state:
        return state
    if roles.is_legal_admin or roles.is_attorney_assigner or roles.is_admin:
        return _ALLOW
    return GuardResult.deny("Only committee members can assign attorneys")


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

_LEGAL_SUBMITTABLE = frozenset(
    {LegalReviewStatus.IN_PROGRESS, LegalReviewStatus.WAITING_ON_ATTORNEY}
)
_COMPLIANCE_SUBMITTABLE = frozenset(
    {ComplianceReviewStatus.IN_PROGRESS, ComplianceReviewStatus.WAITING_ON_COMPLIANCE}
)


def can_submit_legal_review(request: Request, roles: RoleFlags, user_id: str) -> GuardResult:
    state = _status_is(request, RequestStatus.IN_REVIEW, "submit legal review")
    if not state:
        return state
    review = request.legal_review
    if not request.legal_review_required or review is None:
        return GuardResult.deny("Legal review is not required for this request")
    if review.status is LegalReviewStatus.COMPLETED:
        return GuardResult.deny("Legal review has already been completed")
    if review.status not in _LEGAL_SUBMITTABLE:
        return GuardResult.deny(f"Legal review is {review.status.value}")
    if roles.is_admin or roles.is_legal_admin:
        return _ALLOW
    if not roles.is_attorney:
        return GuardResult.deny("Only attorneys can submit legal reviews")
    if review.assigned_attorney is None:
        return GuardResult.deny("No attorney has been assigned to this request")
    if review.assigned_attorney.id != user_id:
        return GuardResult.deny("Only the assigned attorney can submit this legal review")
    return _ALLOW


def can_submit_compliance_review(
    request: Request, roles: RoleFlags, user_id: str
) -> GuardResult:
    state = _status_is(request, RequestStatus.IN_REVIEW, "submit compliance review")
    if not state:
        return state
    review = request.compliance_review
    if not request.compliance_review_required or review is None:
        return GuardResult.deny("Compliance review is not required for this request")
    if review.status is ComplianceReviewStatus.COMPLETED:
        return GuardResult.deny("Compliance review has already been completed")
    if review.status not in _COMPLIANCE_SUBMITTABLE:
        return GuardResult.deny(f"Compliance review is {review.status.value}")
    if roles.is_compliance_user or roles.is_admin:
        return _ALLOW
    return GuardResult.deny("Only compliance users can submit compliance reviews")


def _owner_or_legal_admin(roles: RoleFlags, what: str) -> GuardResult:
    if roles.is_owner or roles.is_legal_admin or roles.is_admin:
        return _ALLOW
    return GuardResult.deny(f"Only the request owner or a Legal Admin can {what}")


def can_resubmit_legal_review(request: Request, roles: RoleFlags, user_id: str) -> GuardResult:
    state = _status_is(request, RequestStatus.IN_REVIEW, "resubmit")
    if not state:
        return state
    review = request.legal_review
    if review is None or review.status is not LegalReviewStatus.WAITING_ON_SUBMITTER:
        return GuardResult.deny("Legal review is not waiting on the submitter")
    return _owner_or_legal_admin(roles, "resubmit for legal review")


def can_resubmit_compliance_review(
    request: Request, roles: RoleFlags, user_id: str
) -> GuardResult:
    state = _status_is(request, RequestStatus.IN_REVIEW, "resubmit")
    if not state:
        return state
    review = request.compliance_review
    if review is None or review.status is not ComplianceReviewStatus.WAITING_ON_SUBMITTER:
        return GuardResult.deny("Compliance review is not waiting on the submitter")
    return _owner_or_legal_admin(roles, "resubmit for compliance review")


# ---------------------------------------------------------------------------
# Closeout
# ---------------------------------------------------------------------------


def can_closeout(request: Request, roles: RoleFlags, user_id: str) -> GuardResult:
    state = _status_is(request, RequestStatus.CLOSEOUT, "close out")
    if not state:
        return state
    pending = request.pending_reviews
    if pending:
        return GuardResult.deny(
            f"Cannot close out: {' and '.join(pending)} review is not completed"
        )
    return _owner_or_legal_admin(roles, "close out this request")


def can_complete_foreside_documents(
    request: Request, roles: RoleFlags, user_id: str
) -> GuardResult:
    state = _status_is(
        request, RequestStatus.AWAITING_FORESIDE_DOCUMENTS, "complete Foreside documents"
    )
    if not state:
        return state
    return _owner_or_legal_admin(roles, "complete Foreside documents")


# ---------------------------------------------------------------------------
# Side paths
# ---------------------------------------------------------------------------


def can_cancel(request: Request, roles: RoleFlags, user_id: str) -> GuardResult:
    if request.is_new:
        return GuardResult.deny("Cannot cancel a request that has not been saved")
    if request.lifecycle.is_terminal:
        return GuardResult.deny(f"Cannot cancel a request that is {request.status.value}")
    return _owner_or_legal_admin(roles, "cancel this request")


def can_hold(request: Request, roles: RoleFlags, user_id: str) -> GuardResult:
    if request.is_new:
        return GuardResult.deny("Cannot place an unsaved request on hold")
    if request.lifecycle.is_terminal:
        return GuardResult.deny(
            f"Cannot place a request on hold when it is {request.status.value}"
        )
    if request.lifecycle.is_on_hold:
        return GuardResult.deny("Request is already on hold")
    if roles.is_legal_admin or roles.is_admin:
        return _ALLOW
    return GuardResult.deny("Only Legal Admins can place requests on hold")


def can_resume(request: Request, roles: RoleFlags, user_id: str) -> GuardResult:
    if not request.lifecycle.is_on_hold:
        return GuardResult.deny("Request is not on hold")
    if request.previous_status is None:
        return GuardResult.deny("Cannot resume: previous status is unknown")
    if roles.is_legal_admin or roles.is_admin:
        return _ALLOW
    return GuardResult.deny("Only Legal Admins can resume requests")


# ---------------------------------------------------------------------------
# General edit
# ---------------------------------------------------------------------------


def _is_assigned_attorney(request: Request, user_id: str) -> bool:
    attorney = request.assigned_attorney
    return attorney is not None and attorney.id == user_id


def can_edit(request: Request, roles: RoleFlags, user_id: str) -> GuardResult:
    status = request.status
    if request.is_new or status is RequestStatus.DRAFT:
        return _draft_access(request, roles, "edit")
    if request.lifecycle.is_terminal:
        return GuardResult.deny(f"{status.value} requests cannot be edited")
    if request.lifecycle.is_on_hold:
        return GuardResult.deny("Requests on hold cannot be edited; resume the request first")
    if roles.is_admin or roles.is_legal_admin:
        return _ALLOW
    if status is RequestStatus.ASSIGN_ATTORNEY and roles.is_attorney_assigner:
        return _ALLOW
    if status is RequestStatus.IN_REVIEW:
        legal = request.legal_review
        compliance = request.compliance_review
        if legal is not None and legal.is_active and _is_assigned_attorney(request, user_id):
            return _ALLOW
        if compliance is not None and compliance.is_active and roles.is_compliance_user:
            return _ALLOW
        waiting_on_submitter = (
            legal is not None and legal.status is LegalReviewStatus.WAITING_ON_SUBMITTER
        ) or (
            compliance is not None
            and compliance.status is ComplianceReviewStatus.WAITING_ON_SUBMITTER
        )
        if waiting_on_submitter and roles.is_owner:
            return _ALLOW
    if status in (RequestStatus.CLOSEOUT, RequestStatus.AWAITING_FORESIDE_DOCUMENTS) and roles.is_owner:
        return _ALLOW
    return GuardResult.deny(
        f"You do not have permission to edit this request while it is {status.value}"
    )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TransitionGuardSet:
    """Guard evaluators keyed by action.

    The workflow engine calls ``evaluate`` before anything else on every
    invocation.
    """

    def __init__(self) -> None:
        self._guards: dict[WorkflowAction, GuardFn] = {}

    def register(self, action: WorkflowAction, guard: GuardFn) -> None:
        """Register the guard for an action, replacing any previous one."""
        self._guards[action] = guard

    @property
    def actions(self) -> tuple[WorkflowAction, ...]:
        return tuple(self._guards)

    def evaluate(
        self,
        action: WorkflowAction,
        request: Request,
        roles: RoleFlags,
        user_id: str,
    ) -> GuardResult:
        """Evaluate the guard for ``action``.  Unregistered actions are denied."""
        guard = self._guards.get(action)
        if guard is None:
            logger.warning("guard_not_registered", extra={"workflow_action": action.value})
            return GuardResult.deny(f"Action {action.value} is not available")
        return guard(request, roles, user_id)

    def available_actions(
        self,
        request: Request,
        roles: RoleFlags,
        user_id: str,
    ) -> dict[WorkflowAction, bool]:
        """Every registered action mapped to whether its guard currently allows it."""
        return {
            action: guard(request, roles, user_id).allowed
            for action, guard in self._guards.items()
        }


def default_guard_set() -> TransitionGuardSet:
    """Return a TransitionGuardSet with every workflow action registered."""
    guards = TransitionGuardSet()
    guards.register(WorkflowAction.SAVE_DRAFT, can_save_draft)
    guards.register(WorkflowAction.SUBMIT, can_submit)
    guards.register(WorkflowAction.ASSIGN_ATTORNEY, can_assign_attorney)
    guards.register(WorkflowAction.SEND_TO_COMMITTEE, can_send_to_committee)
    guards.register(WorkflowAction.COMMITTEE_ASSIGN_ATTORNEY, can_committee_assign_attorney)
    guards.register(WorkflowAction.SUBMIT_LEGAL_REVIEW, can_submit_legal_review)
    guards.register(WorkflowAction.SUBMIT_COMPLIANCE_REVIEW, can_submit_compliance_review)
    guards.register(WorkflowAction.RESUBMIT_LEGAL_REVIEW, can_resubmit_legal_review)
    guards.register(WorkflowAction.RESUBMIT_COMPLIANCE_REVIEW, can_resubmit_compliance_review)
    guards.register(WorkflowAction.CLOSEOUT, can_closeout)
    guards.register(WorkflowAction.COMPLETE_FORESIDE_DOCUMENTS, can_complete_foreside_documents)
    guards.register(WorkflowAction.CANCEL, can_cancel)
    guards.register(WorkflowAction.HOLD, can_hold)
    guards.register(WorkflowAction.RESUME, can_resume)
    guards.register(WorkflowAction.EDIT, can_edit)
    return guards
