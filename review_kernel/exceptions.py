"""
Typed Exception Hierarchy for the Review Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A workflow engine has several very different ways to refuse a transition.
Callers (form layers, batch tooling, tests) must tell them apart without
parsing message text:
  - A guard denial is a role/state mismatch; the user cannot fix it by
    editing the form.
  - A validation failure is a list of field problems the user can fix.
  - A persistence failure comes from the record store and may be retried
    after re-fetching.
  - A state inconsistency is a data or programming error.

Every exception therefore has:
  1. A TYPED class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. Structured DATA (not just a message string)

Example:
    try:
        result.raise_for_outcome()
    except ValidationFailedError as e:
        for err in e.errors:
            form.attach(err.field, err.message)
    except GuardDeniedError as e:
        banner(e.reason)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ReviewKernelError (base)
    |
    +-- TransitionError
    |   +-- GuardDeniedError
    |   +-- ValidationFailedError
    |   +-- StateInconsistentError
    |       +-- InvalidLifecycleTransitionError
    |
    +-- PersistenceError
        +-- RecordNotFoundError
        +-- PersistenceFailedError
            +-- RecordConflictError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                          | When Raised
-------------|-------------------------------|------------------------------------
Transition   | GUARD_DENIED                  | Role/state does not permit action
             | VALIDATION_FAILED             | One or more field violations
             | STATE_INCONSISTENT            | Engine invariant did not hold
             | INVALID_LIFECYCLE_TRANSITION  | Mutation left the status table
-------------|-------------------------------|------------------------------------
Persistence  | REQUEST_NOT_FOUND             | No record for the identifier
             | PERSISTENCE_FAILED            | Store reported an error on save
             | RECORD_CONFLICT               | Revision token did not match

===============================================================================
PROPAGATION
===============================================================================

The workflow engine never raises GuardDeniedError, ValidationFailedError or
PersistenceFailedError past its boundary; it returns a TransitionResult and
the caller may opt in to exceptions with ``TransitionResult.raise_for_outcome``.
StateInconsistentError is raised, because nobody can recover from it by
retrying.
===============================================================================
"""


class ReviewKernelError(Exception):
    """
    Base exception for all review kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "REVIEW_KERNEL_ERROR"


# Transition-related exceptions


class TransitionError(ReviewKernelError):
    """Base exception for workflow transition errors."""

    code: str = "TRANSITION_ERROR"


class GuardDeniedError(TransitionError):
    """The principal may not invoke the action from the current state."""

    code: str = "GUARD_DENIED"

    def __init__(self, action: str, status: str, reason: str):
        self.action = action
        self.status = status
        self.reason = reason
        super().__init__(reason)


class ValidationFailedError(TransitionError):
    """The payload violated one or more field rules.

    ``errors`` holds every violation; it is never truncated to the first.
    """

    code: str = "VALIDATION_FAILED"

    def __init__(self, action: str, errors: tuple):
        self.action = action
        self.errors = tuple(errors)
        fields = ", ".join(e.field for e in self.errors)
        super().__init__(
            f"Validation failed for {action}: {len(self.errors)} error(s) ({fields})"
        )


class StateInconsistentError(TransitionError):
    """An invariant the engine relies on did not hold for the stored record."""

    code: str = "STATE_INCONSISTENT"

    def __init__(self, request_id: int | None, detail: str):
        self.request_id = request_id
        self.detail = detail
        super().__init__(f"Request {request_id} is inconsistent: {detail}")


class InvalidLifecycleTransitionError(StateInconsistentError):
    """A mutation tried to move the lifecycle along an edge it does not have."""

    code: str = "INVALID_LIFECYCLE_TRANSITION"

    def __init__(self, from_status: str, to_status: str, request_id: int | None = None):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            request_id, f"cannot transition from '{from_status}' to '{to_status}'"
        )


# Persistence-related exceptions


class PersistenceError(ReviewKernelError):
    """Base exception for record store errors."""

    code: str = "PERSISTENCE_ERROR"


class RecordNotFoundError(PersistenceError):
    """No request exists for the given identifier."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: int):
        self.request_id = request_id
        super().__init__(f"Request not found: {request_id}")


class PersistenceFailedError(PersistenceError):
    """The record store reported an error while saving.

    The engine does not interpret the cause; ``detail`` carries the store's
    own message.
    """

    code: str = "PERSISTENCE_FAILED"

    def __init__(self, request_id: int | None, detail: str):
        self.request_id = request_id
        self.detail = detail
        super().__init__(f"Failed to save request {request_id}: {detail}")


class RecordConflictError(PersistenceFailedError):
    """The stored revision differs from the one the caller last read."""

    code: str = "RECORD_CONFLICT"

    def __init__(self, request_id: int, expected_revision: int, actual_revision: int):
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision
        super().__init__(
            request_id,
            f"revision {expected_revision} is stale (stored revision is "
            f"{actual_revision}); reload the request and retry",
        )
