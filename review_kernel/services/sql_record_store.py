"""
SqlRecordStore -- SQLAlchemy implementation of the record store.

Responsibility:
    Loads and writes ``LegalReviewRequestModel`` rows inside the caller's
    transaction.  Each write runs in a savepoint so a failed flush can be
    rolled back without poisoning the caller's session.

Architecture position:
    Kernel > Services.  Imports db/, models/, domain/ and exceptions.

Invariants enforced:
    - Flush-only: never commits or rolls back the outer transaction.
    - The revision check and the update happen against the same row read
      in the same session.

Failure modes:
    - RecordNotFoundError for an unknown identifier.
    - RecordConflictError when ``expected_revision`` is stale.
    - PersistenceFailedError wrapping any SQLAlchemyError raised by flush.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError

from review_kernel.domain.request import Request
from review_kernel.exceptions import (
    PersistenceFailedError,
    RecordConflictError,
    RecordNotFoundError,
)
from review_kernel.logging_config import get_logger
from review_kernel.models.request import LegalReviewRequestModel
from review_kernel.services.base import BaseService
from review_kernel.services.record_store import format_request_code

logger = get_logger("services.sql_record_store")


class SqlRecordStore(BaseService):
    """Record store over a SQLAlchemy session."""

    def _get_row(self, request_id: int) -> LegalReviewRequestModel:
        row = self.session.get(LegalReviewRequestModel, request_id)
        if row is None:
            raise RecordNotFoundError(request_id)
        return row

    def load(self, request_id: int) -> Request:
        return self._get_row(request_id).to_domain()

    def create(self, request: Request) -> Request:
        if request.id is not None:
            raise PersistenceFailedError(request.id, "request already has an identifier")

        savepoint = self.session.begin_nested()
        try:
            row = LegalReviewRequestModel.from_domain(replace(request, request_code=None))
            self.session.add(row)
            self.session.flush()
            row.request_code = format_request_code(row.id, request.created_on)
            self.session.flush()
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            logger.warning("record_write_failed", extra={"detail": str(exc)})
            raise PersistenceFailedError(None, str(exc)) from exc

        logger.info(
            "record_created",
            extra={"request_id": row.id, "request_code": row.request_code},
        )
        return row.to_domain()

    def save(
        self,
        request_id: int,
        changes: Mapping[str, Any],
        expected_revision: int,
    ) -> Request:
        row = self._get_row(request_id)
        if row.revision != expected_revision:
            raise RecordConflictError(request_id, expected_revision, row.revision)

        merged = replace(row.to_domain(), **changes)
        savepoint = self.session.begin_nested()
        try:
            row.update_from_domain(merged)
            row.revision = expected_revision + 1
            self.session.flush()
            savepoint.commit()
        except SQLAlchemyError as exc:
            savepoint.rollback()
            logger.warning(
                "record_write_failed",
                extra={"request_id": request_id, "detail": str(exc)},
            )
            raise PersistenceFailedError(request_id, str(exc)) from exc

        logger.info(
            "record_saved",
            extra={
                "request_id": request_id,
                "revision": row.revision,
                "fields": sorted(changes),
            },
        )
        return row.to_domain()
