"""
BaseService -- abstract base for kernel services that touch the database.

Responsibility:
    Provides the common constructor and session-handling contract for
    services in the kernel layer.  A concrete service receives a
    SQLAlchemy ``Session`` and uses ``session.flush()`` -- never
    ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's
    transaction and never commit or rollback the outer transaction.  The
    caller (usually ``session_scope()``) owns commit/rollback.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for session-backed kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session):
        """
        Preconditions:
            - ``session`` is a valid, open SQLAlchemy session.
        """
        self.session = session
