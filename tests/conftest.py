"""Test configuration and fixtures."""

from typing import Generator, List

import pytest
from sqlalchemy.orm import Session, sessionmaker

from delivery_workflow.config import Settings
from delivery_workflow.db.base import build_engine, drop_database, init_database
from delivery_workflow.workflow.engine import DeliveryWorkflowEngine
from delivery_workflow.workflow.enums import Role, WorkItemKind
from delivery_workflow.workflow.primitives import Principal
from delivery_workflow.workflow.schemas import NotificationEvent, WorkItemCreate


class RecordingSink:
    """Notification sink that keeps events in memory."""

    def __init__(self):
        self.events: List[NotificationEvent] = []

    def emit(self, event: NotificationEvent) -> None:
        self.events.append(event)


class FailingSink:
    """Notification sink that always fails."""

    def __init__(self):
        self.calls = 0

    def emit(self, event: NotificationEvent) -> None:
        self.calls += 1
        raise RuntimeError("notification backend down")


# Principals used across the suite
ASSIGNEE = Principal(id="U1", role=Role.DEV)
OPS = Principal(id="OPS1", role=Role.DEVOPS)
REVIEWER = Principal(id="U2", role=Role.REVIEWER)
QA = Principal(id="QA1", role=Role.QA)
OUTSIDER = Principal(id="U3", role=Role.DEV)


@pytest.fixture
def db_engine(tmp_path):
    """A fresh file-backed SQLite database per test."""
    engine = build_engine(f"sqlite:///{tmp_path / 'workflow.db'}")
    init_database(engine)
    yield engine
    drop_database(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        notifications_enabled=True,
        require_rejection_note=True,
        max_delivery_artifacts=10,
    )


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def engine(db_session, settings, sink) -> DeliveryWorkflowEngine:
    return DeliveryWorkflowEngine(db_session, settings=settings, sink=sink)


def make_work_item(**overrides) -> WorkItemCreate:
    """Create a module under review by U2/QA1, assigned to U1/OPS1."""
    defaults = {
        "kind": WorkItemKind.MODULE,
        "title": "Payments module",
        "assignee_id": ASSIGNEE.id,
        "operations_contact_id": OPS.id,
        "reviewer_id": REVIEWER.id,
        "qa_id": QA.id,
    }
    defaults.update(overrides)
    return WorkItemCreate(**defaults)


@pytest.fixture
def work_item(engine):
    """Registered work item W1 with delivery status ``none``."""
    return engine.register_work_item(make_work_item(), item_id="W1")
