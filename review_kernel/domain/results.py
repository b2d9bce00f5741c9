"""
Transition results (``review_kernel.domain.results``).

Responsibility
--------------
Structured outcomes returned by guards, validators and the workflow engine.
Guard denials, validation failures and persistence failures travel as these
values, never as exceptions across the engine boundary.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from review_kernel.domain.request import Request
from review_kernel.domain.workflow import RequestStatus, WorkflowAction
from review_kernel.exceptions import (
    GuardDeniedError,
    PersistenceFailedError,
    ValidationFailedError,
)


@dataclass(frozen=True)
class GuardResult:
    """Allow/deny decision with the reason surfaced verbatim to the caller."""

    allowed: bool
    reason: str | None = None

    @classmethod
    def allow(cls) -> GuardResult:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> GuardResult:
        return cls(allowed=False, reason=reason)

    def __bool__(self) -> bool:
        return self.allowed


@dataclass(frozen=True)
class FieldError:
    """One violated rule, addressed to one field path (e.g. ``approvals[0].approver``)."""

    field: str
    message: str


class TransitionOutcome(str, Enum):
    SUCCESS = "success"
    GUARD_DENIED = "guard_denied"
    VALIDATION_FAILED = "validation_failed"
    PERSISTENCE_FAILED = "persistence_failed"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class TransitionResult:
    """Result of ``WorkflowEngine.invoke``.

    Guarantees: ``request`` is the authoritative post-save record on
    success and the untouched pre-transition record on every failure.
    """

    success: bool
    outcome: TransitionOutcome
    action: WorkflowAction
    request: Request
    from_status: RequestStatus
    new_status: RequestStatus | None = None
    reason: str | None = None
    errors: tuple[FieldError, ...] = ()
    error: PersistenceFailedError | None = None

    def errors_for(self, field: str) -> tuple[FieldError, ...]:
        return tuple(e for e in self.errors if e.field == field)

    def raise_for_outcome(self) -> None:
        """Raise the typed exception matching a failed outcome; no-op on success."""
        if self.success:
            return
        if self.outcome is TransitionOutcome.GUARD_DENIED:
            raise GuardDeniedError(self.action.value, self.from_status.value, self.reason or "")
        if self.outcome is TransitionOutcome.VALIDATION_FAILED:
            raise ValidationFailedError(self.action.value, self.errors)
        if self.error is not None:
            raise self.error
        raise PersistenceFailedError(self.request.id, self.reason or "unknown error")
