"""
review_services.workflow_engine -- Workflow transition engine.

Responsibility:
    Runs one transition of a legal review request end to end:
    guard -> validate -> mutate -> persist -> notify.  Thin coordinator --
    delegates permission checks to the guard set, field rules to the
    validators, the domain effect (status, sub-status, audit fields, notes,
    time tracking) to the pure mutations, and storage to the record store.

Architecture position:
    Services layer.  May import from review_engines/ (pure engines),
    review_kernel/ (domain, services) and review_config/.

Invariants enforced:
    - A denied guard or a failed validation never reaches the record store.
    - The caller's ``Request`` is never modified; on any failure the result
      carries it unchanged, on success it carries the record returned by
      the store.
    - The clock is read once per invocation; every timestamp written by the
      transition is that instant.
    - Saves carry the revision the caller read; a stale revision yields a
      CONFLICT result.

Failure modes:
    - Guard denial, validation failure, persistence failure and revision
      conflict are returned as a ``TransitionResult``.
    - StateInconsistentError (an engine assumption did not hold) is raised.
    - TypeError for a payload of the wrong type for the action.

Audit relevance:
    Every invocation emits one ``workflow_transition`` log record with the
    action, from/to status, outcome code, reason and duration.
"""

from __future__ import annotations

import time
from typing import Any

from review_config.schema import WorkflowConfiguration
from review_engines.business_hours import RushAssessment, assess_rush
from review_engines.guards import TransitionGuardSet, default_guard_set
from review_engines.mutations import apply_transition
from review_engines.roles import resolve_roles
from review_engines.validation import AttachmentSnapshot, ValidationContext, validate
from review_kernel.domain.clock import Clock, SystemClock
from review_kernel.domain.payloads import coerce_payload
from review_kernel.domain.principal import Principal, RoleFlags
from review_kernel.domain.request import ApprovalType, Request
from review_kernel.domain.results import (
    TransitionOutcome,
    TransitionResult,
)
from review_kernel.domain.workflow import RequestStatus, WorkflowAction
from review_kernel.exceptions import (
    PersistenceError,
    PersistenceFailedError,
    RecordConflictError,
    StateInconsistentError,
)
from review_kernel.logging_config import LogContext, get_logger
from review_kernel.services.record_store import RecordStore, changed_fields
from review_services.collaborators import (
    DocumentAttachments,
    IdentityProvider,
    Notification,
    NotificationSink,
    Severity,
)

logger = get_logger("services.workflow_engine")

# Trace message and outcome codes for structured logging
TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
OUTCOME_SUCCESS = TransitionOutcome.SUCCESS.value
OUTCOME_GUARD_DENIED = TransitionOutcome.GUARD_DENIED.value
OUTCOME_VALIDATION_FAILED = TransitionOutcome.VALIDATION_FAILED.value
OUTCOME_PERSISTENCE_FAILED = TransitionOutcome.PERSISTENCE_FAILED.value
OUTCOME_CONFLICT = TransitionOutcome.CONFLICT.value
OUTCOME_STATE_INCONSISTENT = "state_inconsistent"

SUCCESS_MESSAGES: dict[WorkflowAction, str] = {
    WorkflowAction.SAVE_DRAFT: "Draft saved successfully",
    WorkflowAction.SUBMIT: "Request submitted successfully",
    WorkflowAction.ASSIGN_ATTORNEY: "Attorney assigned successfully",
    WorkflowAction.SEND_TO_COMMITTEE: "Request sent to committee",
    WorkflowAction.COMMITTEE_ASSIGN_ATTORNEY: "Attorney assigned successfully",
    WorkflowAction.SUBMIT_LEGAL_REVIEW: "Legal review submitted",
    WorkflowAction.SUBMIT_COMPLIANCE_REVIEW: "Compliance review submitted",
    WorkflowAction.RESUBMIT_LEGAL_REVIEW: "Resubmitted for legal review",
    WorkflowAction.RESUBMIT_COMPLIANCE_REVIEW: "Resubmitted for compliance review",
    WorkflowAction.CLOSEOUT: "Request closed out",
    WorkflowAction.COMPLETE_FORESIDE_DOCUMENTS: "Foreside documents completed",
    WorkflowAction.CANCEL: "Request canceled successfully",
    WorkflowAction.HOLD: "Request put on hold successfully",
    WorkflowAction.RESUME: "Request resumed",
    WorkflowAction.EDIT: "Changes saved successfully",
}


def _emit_transition_trace(
    action: WorkflowAction,
    request_id: int | None,
    from_status: RequestStatus,
    outcome: str,
    reason: str,
    duration_ms: float,
    to_status: RequestStatus | None = None,
    error_count: int = 0,
) -> None:
    """Emit a structured workflow transition record for traceability."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "workflow_action": action.value,
        "entity_id": request_id,
        "from_status": from_status.value,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
    }
    if to_status is not None:
        record["to_status"] = to_status.value
    if error_count:
        record["error_count"] = error_count
    level_method = logger.info if outcome == OUTCOME_SUCCESS else logger.warning
    level_method("workflow_transition", extra=record)


class WorkflowEngine:
    """
    Executes workflow transitions on legal review requests.

    Contract:
        ``invoke`` either returns a successful result holding the stored
        record, or a failed result holding the caller's record unchanged.
        It never raises for guard, validation or persistence failures.

    Non-goals:
        - Does NOT retry persistence failures.
        - Does NOT cache guard decisions; guards are evaluated on every call.
    """

    def __init__(
        self,
        store: RecordStore,
        identity: IdentityProvider,
        attachments: DocumentAttachments,
        notifier: NotificationSink,
        config: WorkflowConfiguration,
        clock: Clock | None = None,
        guard_set: TransitionGuardSet | None = None,
    ):
        self._store = store
        self._identity = identity
        self._attachments = attachments
        self._notifier = notifier
        self._config = config
        self._calendar = config.business_calendar
        self._clock = clock or SystemClock()
        self._guards = guard_set or default_guard_set()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def load(self, request_id: int) -> Request:
        """Authoritative copy of a stored request.

        Raises:
            RecordNotFoundError: if no request has this identifier.
        """
        return self._store.load(request_id)

    def roles_for(self, request: Request, principal: Principal | None = None) -> RoleFlags:
        principal = principal or self._identity.current_principal()
        return resolve_roles(principal, request, self._config.groups)

    def available_actions(self, request: Request) -> dict[WorkflowAction, bool]:
        """Every action mapped to whether the current principal may invoke it now."""
        principal = self._identity.current_principal()
        roles = resolve_roles(principal, request, self._config.groups)
        return self._guards.available_actions(request, roles, principal.id)

    def assess_rush(self, request: Request) -> RushAssessment | None:
        """Compare the request's target return date with standard turnaround.

        Returns None when the request has no target return date.
        """
        if request.target_return_date is None:
            return None
        submitted = request.submitted_on or self._clock.now()
        return assess_rush(
            submitted.astimezone(self._calendar.tzinfo).date(),
            request.target_return_date,
            self._config.turnaround_business_days,
            self._calendar,
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _attachment_snapshot(self, request: Request) -> AttachmentSnapshot:
        return AttachmentSnapshot(
            request_documents=self._attachments.request_documents_attached(request),
            approval_documents=frozenset(
                t for t in ApprovalType
                if self._attachments.approval_documents_attached(request, t)
            ),
        )

    def _notify(self, severity: Severity, message: str, action: WorkflowAction,
                request_id: int | None) -> None:
        self._notifier.notify(
            Notification(severity=severity, message=message, action=action, request_id=request_id)
        )

    def invoke(
        self,
        request: Request,
        action: WorkflowAction,
        payload: Any = None,
    ) -> TransitionResult:
        """
        Run ``action`` against ``request``.

        Preconditions:
            - ``payload`` is the payload type registered for ``action``
              (or None where the action's payload is optional).

        Postconditions:
            - On success, the record store holds the transitioned record and
              ``result.request`` is the store's copy.
            - On failure, the store was not written and ``result.request``
              is ``request``.

        Raises:
            StateInconsistentError: if the record violates an engine
                assumption (e.g. no assigned attorney when submitting a
                legal review).
            TypeError: if ``payload`` has the wrong type for ``action``.
        """
        t0 = time.monotonic()
        at = self._clock.now()
        principal = self._identity.current_principal()
        roles = resolve_roles(principal, request, self._config.groups)
        from_status = request.status

        def _failed(outcome: TransitionOutcome, reason: str, **kwargs: Any) -> TransitionResult:
            _emit_transition_trace(
                action, request.id, from_status, outcome.value, reason,
                (time.monotonic() - t0) * 1000,
                error_count=len(kwargs.get("errors", ())),
            )
            self._notify(Severity.ERROR, reason, action, request.id)
            return TransitionResult(
                success=False,
                outcome=outcome,
                action=action,
                request=request,
                from_status=from_status,
                reason=reason,
                **kwargs,
            )

        with LogContext.bind(
            request_id=request.id,
            actor_id=principal.id,
            action=action.value,
        ):
            # 1. Guard
            guard = self._guards.evaluate(action, request, roles, principal.id)
            if not guard.allowed:
                return _failed(TransitionOutcome.GUARD_DENIED, guard.reason or "Not permitted")

            # 2. Validate
            payload = coerce_payload(action, payload)
            ctx = ValidationContext(
                request=request,
                today=at.astimezone(self._calendar.tzinfo).date(),
                limits=self._config.limits,
                attachments=self._attachment_snapshot(request),
            )
            errors = validate(action, payload, ctx)
            if errors:
                return _failed(
                    TransitionOutcome.VALIDATION_FAILED,
                    "Please correct the highlighted fields",
                    errors=errors,
                )

            # 3. Mutate
            try:
                updated = apply_transition(action, request, payload, principal, at, self._calendar)
            except StateInconsistentError as exc:
                _emit_transition_trace(
                    action, request.id, from_status, OUTCOME_STATE_INCONSISTENT,
                    str(exc), (time.monotonic() - t0) * 1000,
                )
                raise

            # 4. Persist
            try:
                if request.is_new:
                    stored = self._store.create(updated)
                else:
                    stored = self._store.save(
                        request.id,
                        changed_fields(request, updated),
                        request.revision,
                    )
            except RecordConflictError as exc:
                return _failed(TransitionOutcome.CONFLICT, str(exc), error=exc)
            except PersistenceError as exc:
                failure = exc if isinstance(exc, PersistenceFailedError) else (
                    PersistenceFailedError(request.id, str(exc))
                )
                return _failed(TransitionOutcome.PERSISTENCE_FAILED, str(exc), error=failure)

            # 5. Notify
            _emit_transition_trace(
                action, stored.id, from_status, OUTCOME_SUCCESS, "",
                (time.monotonic() - t0) * 1000,
                to_status=stored.status,
            )
            self._notify(Severity.SUCCESS, SUCCESS_MESSAGES[action], action, stored.id)
            return TransitionResult(
                success=True,
                outcome=TransitionOutcome.SUCCESS,
                action=action,
                request=stored,
                from_status=from_status,
                new_status=stored.status,
            )
