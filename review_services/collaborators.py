"""
review_services.collaborators -- ports the workflow engine talks through.

Responsibility:
    Protocols for the three collaborators outside the record store
    (identity, document attachments, notifications) and the default
    implementations used by tooling and tests.

Architecture position:
    Services layer.  May import from review_kernel/ only.

Invariants enforced:
    - The identity provider is read-only; the engine asks for the current
      principal once per invocation.
    - The attachment collaborator answers presence questions only; upload
      mechanics are not part of the contract.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

from review_kernel.domain.principal import Principal
from review_kernel.domain.request import ApprovalType, Request
from review_kernel.domain.workflow import WorkflowAction
from review_kernel.logging_config import get_logger

logger = get_logger("services.notifications")


# =========================================================================
# Identity
# =========================================================================


@runtime_checkable
class IdentityProvider(Protocol):
    """Source of the current principal and their group memberships."""

    def current_principal(self) -> Principal:
        ...


class StaticIdentityProvider:
    """Returns a fixed principal; ``switch`` replaces it."""

    def __init__(self, principal: Principal):
        self._principal = principal

    def current_principal(self) -> Principal:
        return self._principal

    def switch(self, principal: Principal) -> None:
        self._principal = principal


# =========================================================================
# Document attachments
# =========================================================================


@runtime_checkable
class DocumentAttachments(Protocol):
    """Reports whether documents are currently attached to a request."""

    def request_documents_attached(self, request: Request) -> bool:
        """True when the request itself has at least one attachment."""
        ...

    def approval_documents_attached(self, request: Request, approval_type: ApprovalType) -> bool:
        """True when the approval slot of ``approval_type`` has at least one document."""
        ...


class StaticDocumentAttachments:
    """
    Attachment state held in memory.

    Contract:
        Presence is whatever was last declared with ``attach_*``/``detach_*``,
        for every request alike.
    """

    def __init__(
        self,
        request_documents: bool = False,
        approval_types: frozenset[ApprovalType] | set[ApprovalType] = frozenset(),
    ):
        self._request_documents = request_documents
        self._approval_types: set[ApprovalType] = set(approval_types)

    @classmethod
    def everything_attached(cls) -> StaticDocumentAttachments:
        return cls(request_documents=True, approval_types=frozenset(ApprovalType))

    def attach_request_document(self) -> None:
        self._request_documents = True

    def detach_request_documents(self) -> None:
        self._request_documents = False

    def attach_approval_document(self, approval_type: ApprovalType) -> None:
        self._approval_types.add(approval_type)

    def detach_approval_documents(self, approval_type: ApprovalType) -> None:
        self._approval_types.discard(approval_type)

    def request_documents_attached(self, request: Request) -> bool:
        return self._request_documents

    def approval_documents_attached(self, request: Request, approval_type: ApprovalType) -> bool:
        return approval_type in self._approval_types


# =========================================================================
# Notifications
# =========================================================================


class Severity(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    severity: Severity
    message: str
    action: WorkflowAction
    request_id: int | None = None


@runtime_checkable
class NotificationSink(Protocol):
    """Receives success and failure reports; delivery is the sink's concern."""

    def notify(self, notification: Notification) -> None:
        ...


_LEVELS = {
    Severity.SUCCESS: logging.INFO,
    Severity.INFO: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.WARNING,
}


class LoggingNotificationSink:
    """Writes each notification to the structured log and keeps it in ``sent``."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.sent.append(notification)
        logger.log(
            _LEVELS[notification.severity],
            "notification_sent",
            extra={
                "severity": notification.severity.value,
                "notification": notification.message,
                "workflow_action": notification.action.value,
                "notified_request_id": notification.request_id,
            },
        )

    @property
    def last(self) -> Notification | None:
        return self.sent[-1] if self.sent else None
