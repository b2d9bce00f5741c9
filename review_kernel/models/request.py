"""
Module: review_kernel.models.request
Responsibility: ORM persistence for legal review requests.  Scalar fields
    map to columns one-to-one; the owned sub-records (review sub-records,
    approvals, note histories, time tracking) are stored as JSON documents
    on the same row.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - revision is incremented by the record store on every write and is the
      optimistic-concurrency token compared on save.
    - request_code is unique.
    - Hour counters are stored as decimal strings so no precision is lost
      through JSON.

Failure modes:
    - ValueError from to_domain() if a stored enum string is not a valid
      member (the row was written by an incompatible version).
    - IntegrityError on duplicate request_code.

Audit relevance:
    The row is the complete request record, including the append-only note
    histories with author and timestamp for every entry.
"""

from __future__ import annotations

from dataclasses import fields as dataclass_fields
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, Date, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from review_kernel.db.base import TrackedBase
from review_kernel.domain.principal import PrincipalRef
from review_kernel.domain.request import (
    Approval,
    ApprovalType,
    ComplianceReview,
    LegalReview,
    NoteEntry,
    Request,
    ReviewNotes,
    TimeTracking,
)
from review_kernel.domain.workflow import (
    ComplianceReviewStatus,
    LegalReviewStatus,
    Lifecycle,
    RequestStatus,
    ReviewAudience,
    ReviewOutcome,
)

# Request fields that map straight onto a column of the same name.
_SCALAR_FIELDS: tuple[str, ...] = (
    "request_code",
    "title",
    "purpose",
    "target_return_date",
    "is_rush_request",
    "rush_rationale",
    "requires_communications_approval",
    "communications_only",
    "author_id",
    "created_on",
    "submitted_by",
    "submitted_on",
    "submitted_to_assign_attorney_by",
    "submitted_to_assign_attorney_on",
    "submitted_for_review_by",
    "submitted_for_review_on",
    "closeout_by",
    "closeout_on",
    "tracking_id",
    "closeout_notes",
    "comments_acknowledged",
    "awaiting_foreside_since",
    "foreside_completed_by",
    "foreside_completed_on",
    "foreside_notes",
    "on_hold_by",
    "on_hold_since",
    "on_hold_reason",
    "cancelled_by",
    "cancelled_on",
    "cancelled_reason",
)


# ---------------------------------------------------------------------------
# JSON document codecs
# ---------------------------------------------------------------------------


def _dt(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


def _ref_to_json(ref: PrincipalRef | None) -> dict | None:
    if ref is None:
        return None
    return {"id": ref.id, "email": ref.email, "display_name": ref.display_name}


def _ref_from_json(data: dict | None) -> PrincipalRef | None:
    if data is None:
        return None
    return PrincipalRef(
        id=data["id"],
        email=data.get("email", ""),
        display_name=data.get("display_name", ""),
    )


def notes_to_json(notes: ReviewNotes) -> dict:
    return {
        "round_start": notes.round_start,
        "entries": [
            {"author_id": e.author_id, "timestamp": _dt(e.timestamp), "text": e.text}
            for e in notes.entries
        ],
    }


def notes_from_json(data: dict | None) -> ReviewNotes:
    if not data:
        return ReviewNotes()
    return ReviewNotes(
        entries=tuple(
            NoteEntry(
                author_id=e["author_id"],
                timestamp=_parse_dt(e["timestamp"]),
                text=e["text"],
            )
            for e in data.get("entries", ())
        ),
        round_start=data.get("round_start", 0),
    )


def _approval_to_json(approval: Approval) -> dict:
    return {
        "approval_type": approval.approval_type.value,
        "approver": _ref_to_json(approval.approver),
        "approval_date": (
            approval.approval_date.isoformat() if approval.approval_date else None
        ),
        "document_ids": list(approval.document_ids),
        "notes": approval.notes,
        "title": approval.title,
    }


def _approval_from_json(data: dict) -> Approval:
    raw_date = data.get("approval_date")
    return Approval(
        approval_type=ApprovalType(data["approval_type"]),
        approver=_ref_from_json(data.get("approver")),
        approval_date=date.fromisoformat(raw_date) if raw_date else None,
        document_ids=tuple(data.get("document_ids", ())),
        notes=data.get("notes"),
        title=data.get("title"),
    )


def _legal_to_json(review: LegalReview | None) -> dict | None:
    if review is None:
        return None
    return {
        "status": review.status.value,
        "outcome": review.outcome.value if review.outcome else None,
        "notes": notes_to_json(review.notes),
        "assigned_attorney": _ref_to_json(review.assigned_attorney),
        "status_updated_by": review.status_updated_by,
        "status_updated_on": _dt(review.status_updated_on),
        "completed_by": review.completed_by,
        "completed_on": _dt(review.completed_on),
    }


def _legal_from_json(data: dict | None) -> LegalReview | None:
    if data is None:
        return None
    return LegalReview(
        status=LegalReviewStatus(data["status"]),
        outcome=ReviewOutcome(data["outcome"]) if data.get("outcome") else None,
        notes=notes_from_json(data.get("notes")),
        assigned_attorney=_ref_from_json(data.get("assigned_attorney")),
        status_updated_by=data.get("status_updated_by"),
        status_updated_on=_parse_dt(data.get("status_updated_on")),
        completed_by=data.get("completed_by"),
        completed_on=_parse_dt(data.get("completed_on")),
    )


def _compliance_to_json(review: ComplianceReview | None) -> dict | None:
    if review is None:
        return None
    return {
        "status": review.status.value,
        "outcome": review.outcome.value if review.outcome else None,
        "notes": notes_to_json(review.notes),
        "is_foreside_review_required": review.is_foreside_review_required,
        "is_retail_use": review.is_retail_use,
        "status_updated_by": review.status_updated_by,
        "status_updated_on": _dt(review.status_updated_on),
        "completed_by": review.completed_by,
        "completed_on": _dt(review.completed_on),
    }


def _compliance_from_json(data: dict | None) -> ComplianceReview | None:
    if data is None:
        return None
    return ComplianceReview(
        status=ComplianceReviewStatus(data["status"]),
        outcome=ReviewOutcome(data["outcome"]) if data.get("outcome") else None,
        notes=notes_from_json(data.get("notes")),
        is_foreside_review_required=data.get("is_foreside_review_required"),
        is_retail_use=data.get("is_retail_use"),
        status_updated_by=data.get("status_updated_by"),
        status_updated_on=_parse_dt(data.get("status_updated_on")),
        completed_by=data.get("completed_by"),
        completed_on=_parse_dt(data.get("completed_on")),
    )


def time_tracking_to_json(tracking: TimeTracking) -> dict:
    doc: dict[str, Any] = {}
    for f in dataclass_fields(tracking):
        value = getattr(tracking, f.name)
        if isinstance(value, Decimal):
            doc[f.name] = str(value)
        else:
            doc[f.name] = _dt(value)
    return doc


def time_tracking_from_json(data: dict | None) -> TimeTracking:
    if not data:
        return TimeTracking()
    kwargs: dict[str, Any] = {}
    for f in dataclass_fields(TimeTracking):
        if f.name not in data:
            continue
        raw = data[f.name]
        if f.name.endswith("_since"):
            kwargs[f.name] = _parse_dt(raw)
        else:
            kwargs[f.name] = Decimal(raw)
    return TimeTracking(**kwargs)


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class LegalReviewRequestModel(TrackedBase):
    """
    Persistent legal review request.

    Contract:
        One row per request.  ``to_domain()`` and ``from_domain()`` are exact
        inverses for every field of ``Request``.

    Guarantees:
        - status/interrupted_status always form a valid ``Lifecycle``.
        - revision starts at 1 on insert.
    """

    __tablename__ = "legal_review_requests"

    __table_args__ = (
        Index("ix_legal_review_requests_status", "status"),
        Index("ix_legal_review_requests_author", "author_id"),
    )

    request_code: Mapped[str | None] = mapped_column(String(32), nullable=True, unique=True)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    status: Mapped[str] = mapped_column(String(50), nullable=False)
    interrupted_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    review_audience: Mapped[str | None] = mapped_column(String(20), nullable=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    purpose: Mapped[str] = mapped_column(Text, nullable=False, default="")
    target_return_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_rush_request: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rush_rationale: Mapped[str | None] = mapped_column(Text, nullable=True)
    distribution_methods: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    requires_communications_approval: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
    communications_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approvals: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    legal_review: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    compliance_review: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    author_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_on: Mapped[datetime | None] = mapped_column(nullable=True)

    submitted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    submitted_on: Mapped[datetime | None] = mapped_column(nullable=True)
    submitted_to_assign_attorney_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    submitted_to_assign_attorney_on: Mapped[datetime | None] = mapped_column(nullable=True)
    submitted_for_review_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    submitted_for_review_on: Mapped[datetime | None] = mapped_column(nullable=True)
    intake_notes: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    closeout_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    closeout_on: Mapped[datetime | None] = mapped_column(nullable=True)
    tracking_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    closeout_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    comments_acknowledged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    awaiting_foreside_since: Mapped[datetime | None] = mapped_column(nullable=True)

    foreside_completed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    foreside_completed_on: Mapped[datetime | None] = mapped_column(nullable=True)
    foreside_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    on_hold_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    on_hold_since: Mapped[datetime | None] = mapped_column(nullable=True)
    on_hold_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    cancelled_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cancelled_on: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    time_tracking: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<LegalReviewRequest {self.id} {self.request_code} status={self.status}>"

    def to_domain(self) -> Request:
        """Convert ORM row to the frozen domain aggregate.

        Raises: ValueError if a stored enum string is not a valid member.
        """
        scalars = {name: getattr(self, name) for name in _SCALAR_FIELDS}
        return Request(
            id=self.id,
            lifecycle=Lifecycle(
                RequestStatus(self.status),
                RequestStatus(self.interrupted_status) if self.interrupted_status else None,
            ),
            review_audience=(
                ReviewAudience(self.review_audience) if self.review_audience else None
            ),
            distribution_methods=tuple(self.distribution_methods or ()),
            approvals=tuple(_approval_from_json(a) for a in self.approvals or ()),
            legal_review=_legal_from_json(self.legal_review),
            compliance_review=_compliance_from_json(self.compliance_review),
            intake_notes=notes_from_json(self.intake_notes),
            time_tracking=time_tracking_from_json(self.time_tracking),
            revision=self.revision,
            **scalars,
        )

    def update_from_domain(self, request: Request) -> None:
        """Overwrite every persisted column with the aggregate's values.

        ``id`` and ``revision`` are owned by the record store and left alone.
        """
        for name in _SCALAR_FIELDS:
            setattr(self, name, getattr(request, name))
        self.status = request.lifecycle.status.value
        self.interrupted_status = (
            request.lifecycle.interrupted.value if request.lifecycle.interrupted else None
        )
        self.review_audience = request.review_audience.value if request.review_audience else None
        self.distribution_methods = list(request.distribution_methods)
        self.approvals = [_approval_to_json(a) for a in request.approvals]
        self.legal_review = _legal_to_json(request.legal_review)
        self.compliance_review = _compliance_to_json(request.compliance_review)
        self.intake_notes = notes_to_json(request.intake_notes)
        self.time_tracking = time_tracking_to_json(request.time_tracking)

    @classmethod
    def from_domain(cls, request: Request) -> LegalReviewRequestModel:
        """Create an ORM row from a new (unsaved) aggregate.

        Postconditions: Returns a row ready for session.add(); id is left
            for the database to assign.
        """
        row = cls(revision=1)
        row.update_from_domain(request)
        return row
