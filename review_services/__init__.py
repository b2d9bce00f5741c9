"""
review_services -- workflow transition engine and its collaborators.

Usage:
    from review_services import WorkflowEngine
    engine = WorkflowEngine(store, identity, attachments, notifier, get_active_config())
    result = engine.invoke(request, WorkflowAction.SUBMIT, DraftChanges(...))
"""

from review_services.collaborators import (
    DocumentAttachments,
    IdentityProvider,
    LoggingNotificationSink,
    Notification,
    NotificationSink,
    Severity,
    StaticDocumentAttachments,
    StaticIdentityProvider,
)
from review_services.workflow_engine import WorkflowEngine

__all__ = [
    "DocumentAttachments",
    "IdentityProvider",
    "LoggingNotificationSink",
    "Notification",
    "NotificationSink",
    "Severity",
    "StaticDocumentAttachments",
    "StaticIdentityProvider",
    "WorkflowEngine",
]
