"""
Module: review_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the integer primary key convention, the type annotation map for consistent
    column types, and the TrackedBase mixin for audit timestamps.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, domain/, or outer layers.

Invariants enforced:
    - Integer primary keys: requests are addressed by an integer identifier
      assigned by the store.
    - Timezone-safe timestamps: every datetime column round-trips as an aware
      UTC datetime, including on backends (SQLite) that drop offsets.

Audit relevance:
    TrackedBase.created_at and updated_at are row metadata maintained by the
    database; the workflow's own audit fields live on the request row.
"""

from datetime import datetime, timezone
from typing import ClassVar

from sqlalchemy import DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime stored as naive UTC.

    Contract:
        Aware datetimes are normalized to UTC before binding.  Values read
        back are always aware UTC datetimes, whatever the backend returns.

    Guarantees:
        - process_bind_param: aware datetime -> naive UTC on INSERT/UPDATE.
        - process_result_value: naive datetime -> aware UTC on SELECT.
        - cache_ok=True enables SQLAlchemy statement caching.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        """Normalize to naive UTC when storing.

        Raises:
            ValueError: if ``value`` is a naive datetime.
        """
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"naive datetime cannot be stored: {value!r}")
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        """Attach UTC when loading."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is an autoincrementing integer primary key.
        - datetime maps to UTCDateTime -- always timezone-aware on read.
        - str maps to String(255) unless a column says otherwise.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: UTCDateTime(),
        str: String(255),
        int: Integer,
    }

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)


class TrackedBase(Base):
    """
    Abstract base with row audit timestamps.

    Guarantees:
        - created_at is set to server NOW() on INSERT and never changes.
        - updated_at is set on INSERT and refreshed on every UPDATE.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        server_default=func.now(),
        onupdate=func.now(),
        nullable=True,
    )
