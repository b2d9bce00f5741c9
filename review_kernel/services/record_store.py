"""
Record store contract and the in-memory implementation.

Responsibility:
    Defines the ``RecordStore`` protocol the workflow engine persists
    through, the ``changed_fields`` diff that turns a before/after pair of
    aggregates into a field update, and ``InMemoryRecordStore`` for tests
    and tooling.

Architecture position:
    Kernel > Services.  Imports domain/ and exceptions only.

Invariants enforced:
    - Optimistic concurrency: ``save`` succeeds only when the caller's
      ``expected_revision`` equals the stored revision; every successful
      write increments the revision by one.
    - A failed save leaves the stored record untouched.
    - ``create`` assigns the identifier and the human-readable request code.

Failure modes:
    - RecordNotFoundError from ``load``/``save`` for an unknown identifier.
    - RecordConflictError when the revision token is stale.
    - PersistenceFailedError for any other store failure (and for failures
      injected with ``InMemoryRecordStore.fail_next_write``).
"""

from __future__ import annotations

from dataclasses import fields as dataclass_fields
from dataclasses import replace
from datetime import datetime
from typing import Any, Mapping, Protocol, runtime_checkable

from review_kernel.domain.request import Request
from review_kernel.exceptions import (
    PersistenceFailedError,
    RecordConflictError,
    RecordNotFoundError,
)
from review_kernel.logging_config import get_logger

logger = get_logger("services.record_store")

# Store-owned fields are never part of a field update.
_STORE_FIELDS = frozenset({"id", "request_code", "revision"})


def format_request_code(request_id: int, created_on: datetime | None) -> str:
    """``LRR-<year>-<id>``; the year is omitted when the creation date is unknown."""
    if created_on is None:
        return f"LRR-{request_id:05d}"
    return f"LRR-{created_on.year}-{request_id:05d}"


def changed_fields(before: Request, after: Request) -> dict[str, Any]:
    """Fields of ``after`` whose values differ from ``before``.

    Store-owned fields (id, request_code, revision) are excluded.
    """
    changes: dict[str, Any] = {}
    for f in dataclass_fields(Request):
        if f.name in _STORE_FIELDS:
            continue
        new_value = getattr(after, f.name)
        if getattr(before, f.name) != new_value:
            changes[f.name] = new_value
    return changes


@runtime_checkable
class RecordStore(Protocol):
    """Persistence port of the workflow engine."""

    def load(self, request_id: int) -> Request:
        ...

    def create(self, request: Request) -> Request:
        """Insert an unsaved request; returns it with id, code and revision set."""
        ...

    def save(
        self,
        request_id: int,
        changes: Mapping[str, Any],
        expected_revision: int,
    ) -> Request:
        """Apply ``changes`` atomically and return the stored request."""
        ...


class InMemoryRecordStore:
    """
    Dictionary-backed record store.

    Contract:
        Behaves like the SQL store, including revision checks.  Each write
        attempt (successful or not) is appended to ``writes`` as
        ``(operation, request_id)`` so callers can assert whether the store
        was reached at all.
    """

    def __init__(self) -> None:
        self._records: dict[int, Request] = {}
        self._next_id = 1
        self._pending_failure: PersistenceFailedError | None = None
        self.writes: list[tuple[str, int | None]] = []

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._records

    def fail_next_write(self, detail: str = "store unavailable") -> None:
        """Make the next ``create`` or ``save`` raise PersistenceFailedError."""
        self._pending_failure = PersistenceFailedError(None, detail)

    def _raise_pending(self, request_id: int | None) -> None:
        failure = self._pending_failure
        if failure is None:
            return
        self._pending_failure = None
        logger.warning(
            "record_write_failed",
            extra={"request_id": request_id, "detail": failure.detail},
        )
        raise PersistenceFailedError(request_id, failure.detail)

    def load(self, request_id: int) -> Request:
        try:
            return self._records[request_id]
        except KeyError:
            raise RecordNotFoundError(request_id) from None

    def create(self, request: Request) -> Request:
        self.writes.append(("create", None))
        if request.id is not None:
            raise PersistenceFailedError(request.id, "request already has an identifier")
        self._raise_pending(None)

        request_id = self._next_id
        self._next_id += 1
        stored = replace(
            request,
            id=request_id,
            request_code=format_request_code(request_id, request.created_on),
            revision=1,
        )
        self._records[request_id] = stored
        logger.info(
            "record_created",
            extra={"request_id": request_id, "request_code": stored.request_code},
        )
        return stored

    def save(
        self,
        request_id: int,
        changes: Mapping[str, Any],
        expected_revision: int,
    ) -> Request:
        self.writes.append(("save", request_id))
        current = self.load(request_id)
        if current.revision != expected_revision:
            raise RecordConflictError(request_id, expected_revision, current.revision)
        illegal = _STORE_FIELDS.intersection(changes)
        if illegal:
            raise PersistenceFailedError(
                request_id, f"store-owned fields cannot be updated: {sorted(illegal)}"
            )
        self._raise_pending(request_id)

        stored = replace(current, revision=current.revision + 1, **changes)
        self._records[request_id] = stored
        logger.info(
            "record_saved",
            extra={
                "request_id": request_id,
                "revision": stored.revision,
                "fields": sorted(changes),
            },
        )
        return stored
