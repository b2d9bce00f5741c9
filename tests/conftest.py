"""
Pytest fixtures for the review workflow test suite.

Provides:
- Structured logging configured for the whole session, with per-test
  context cleanup and a JSON log capture fixture
- A deterministic clock pinned to a Monday morning in Los Angeles
- The default configuration set and its business calendar
- SQLite in-memory sessions for the SQL record store
- A ``harness`` bundling a WorkflowEngine with in-memory collaborators
"""

import json
import logging
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from review_config import get_active_config
from review_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from review_kernel.domain.clock import DeterministicClock
from review_kernel.domain.principal import Principal
from review_kernel.domain.workflow import WorkflowAction
from review_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from review_kernel.services.record_store import InMemoryRecordStore
from review_services.collaborators import (
    LoggingNotificationSink,
    StaticDocumentAttachments,
    StaticIdentityProvider,
)
from review_services.workflow_engine import WorkflowEngine
from tests.factories import MONDAY_9AM, SUBMITTER


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture review_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, harness):
            harness.invoke(request, WorkflowAction.HOLD, payload)
            logs = captured_logs()
            assert any(r["message"] == "workflow_transition" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("review_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock and configuration
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock pinned to Monday 2026-10-19 09:00 America/Los_Angeles."""
    return DeterministicClock(MONDAY_9AM)


@pytest.fixture(scope="session")
def workflow_config():
    return get_active_config()


@pytest.fixture(scope="session")
def calendar(workflow_config):
    return workflow_config.business_calendar


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """A session on a fresh in-memory SQLite database."""
    init_engine_from_url("sqlite://")
    create_tables()
    sess = get_session()
    yield sess
    sess.close()
    drop_tables()
    reset_engine()


# =============================================================================
# Workflow engine
# =============================================================================


class WorkflowHarness:
    """A WorkflowEngine wired to in-memory collaborators."""

    def __init__(self, config, clock: DeterministicClock, store=None):
        self.clock = clock
        self.store = store if store is not None else InMemoryRecordStore()
        self.identity = StaticIdentityProvider(SUBMITTER)
        self.attachments = StaticDocumentAttachments.everything_attached()
        self.notifier = LoggingNotificationSink()
        self.engine = WorkflowEngine(
            store=self.store,
            identity=self.identity,
            attachments=self.attachments,
            notifier=self.notifier,
            config=config,
            clock=clock,
        )

    def as_user(self, principal: Principal) -> "WorkflowHarness":
        self.identity.switch(principal)
        return self

    def invoke(self, request, action: WorkflowAction, payload=None):
        return self.engine.invoke(request, action, payload)

    def run(self, principal: Principal, request, action: WorkflowAction, payload=None):
        """Invoke as ``principal`` and insist on success."""
        result = self.as_user(principal).invoke(request, action, payload)
        assert result.success, (result.outcome, result.reason, result.errors)
        return result.request


@pytest.fixture
def harness(workflow_config, deterministic_clock):
    return WorkflowHarness(workflow_config, deterministic_clock)
