"""
Delivery workflow engine.

Entry point for the boundary operations: submit a delivery, decide on it,
ask whether either is currently allowed, and move an item's lifecycle
status. One engine instance serves one request-scoped session; it holds no
state between calls beyond that session.
"""

from __future__ import annotations

from typing import List, Optional

import structlog
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings, get_settings
from ..db.history import HistoryRecorder
from ..db.store import WorkItemStore, lifecycle_of
from ..notifications.sink import (
    DatabaseNotificationSink,
    LoggingNotificationSink,
    NotificationSink,
)
from .approval import ApprovalHandler
from .enums import Action, DeliveryStatus, HistoryAction, LifecycleStatus
from .errors import ForbiddenError, WorkItemNotFoundError
from .policy import PolicyDecision, decide
from .primitives import Principal, utc_now
from .schemas import (
    ApprovalRequest,
    DeliverySubmission,
    HistoryEntry,
    Permissions,
    WorkItem,
    WorkItemCreate,
)
from .state_machine import validate_lifecycle_update
from .submission import DeliverySubmissionHandler

logger = structlog.get_logger(__name__)


def default_sink(db: Session, settings: Settings) -> NotificationSink:
    """Pick the sink for ``settings``; persisted sinks get their own sessions."""
    if not settings.notifications_enabled:
        return LoggingNotificationSink()
    return DatabaseNotificationSink(
        sessionmaker(autocommit=False, autoflush=False, bind=db.get_bind())
    )


class DeliveryWorkflowEngine:
    """Delivery/approval workflow for modules, user stories and tasks.

    Usage:
        engine = DeliveryWorkflowEngine(db_session)
        engine.submit_delivery(principal, item_id, DeliverySubmission(artifacts=["src.zip"]))
    """

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        sink: Optional[NotificationSink] = None,
        store: Optional[WorkItemStore] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.store = store or WorkItemStore(db)
        self.recorder = HistoryRecorder(db)
        self.sink = sink or default_sink(db, self.settings)
        self.submissions = DeliverySubmissionHandler(
            self.store, self.recorder, self.sink, self.settings
        )
        self.approvals = ApprovalHandler(
            self.store, self.recorder, self.sink, self.settings
        )

    # Transitions

    def submit_delivery(
        self,
        principal: Principal,
        work_item_id: str,
        submission: DeliverySubmission,
    ) -> WorkItem:
        """Submit a delivery for review (none/rejected -> pending)."""
        return self.submissions.handle(principal, work_item_id, submission)

    def approve_delivery(
        self,
        principal: Principal,
        work_item_id: str,
        request: ApprovalRequest,
    ) -> WorkItem:
        """Accept or reject a pending delivery."""
        return self.approvals.handle(principal, work_item_id, request)

    def update_lifecycle_status(
        self,
        principal: Principal,
        work_item_id: str,
        status: LifecycleStatus,
    ) -> WorkItem:
        """Move the item's lifecycle status; delivery status is untouched."""
        model = self.store.load(work_item_id)
        if model is None:
            raise WorkItemNotFoundError(work_item_id)
        item = self.store.project(model)

        decision = decide(principal, item, Action.UPDATE_STATUS)
        if not decision:
            raise ForbiddenError(decision.reason)

        previous = lifecycle_of(model)
        target = LifecycleStatus(status)
        validate_lifecycle_update(item.kind, previous, target)

        now = utc_now()
        with self.store.transaction(model.id):
            model.lifecycle_status = target.value
            model.updated_at = now
            self.recorder.record(
                model.id,
                HistoryEntry(
                    timestamp=now,
                    actor_id=principal.id,
                    action_type=HistoryAction.STATUS_CHANGED,
                    from_status=previous.value,
                    to_status=target.value,
                    note=f"Status changed: {previous.value} -> {target.value}",
                ),
            )

        logger.info(
            "lifecycle_status_changed",
            work_item_id=work_item_id,
            actor_id=principal.id,
            from_status=previous.value,
            to_status=target.value,
        )
        return self.store.project(model)

    # Read-only helpers

    def _decide(
        self, principal: Principal, work_item_id: str, action: Action
    ) -> Optional[PolicyDecision]:
        item = self.store.get(work_item_id)
        if item is None:
            return None
        return decide(principal, item, action)

    def can_submit_delivery(self, principal: Principal, work_item_id: str) -> bool:
        decision = self._decide(principal, work_item_id, Action.SUBMIT_DELIVERY)
        return bool(decision)

    def can_approve_delivery(self, principal: Principal, work_item_id: str) -> bool:
        decision = self._decide(principal, work_item_id, Action.APPROVE)
        return bool(decision)

    def permissions(self, principal: Principal, work_item_id: str) -> Permissions:
        """Both affordances with their denial reasons, for one principal."""
        item = self.get_work_item(work_item_id)
        submit = decide(principal, item, Action.SUBMIT_DELIVERY)
        approve = decide(principal, item, Action.APPROVE)
        return Permissions(
            can_submit_delivery=submit.allowed,
            can_approve_delivery=approve.allowed,
            reasons={
                Action.SUBMIT_DELIVERY.value: submit.reason,
                Action.APPROVE.value: approve.reason,
            },
        )

    def get_work_item(self, work_item_id: str) -> WorkItem:
        item = self.store.get(work_item_id)
        if item is None:
            raise WorkItemNotFoundError(work_item_id)
        return item

    def get_history(
        self,
        work_item_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[HistoryEntry]:
        """History of a work item, oldest first."""
        self.get_work_item(work_item_id)
        return self.recorder.list_for_work_item(work_item_id, limit=limit, offset=offset)

    def register_work_item(
        self, work_item: WorkItemCreate, item_id: Optional[str] = None
    ) -> WorkItem:
        """Put a work item under workflow control (delivery status ``none``)."""
        item = self.store.create(work_item, item_id=item_id)
        logger.info(
            "work_item_registered",
            work_item_id=item.id,
            kind=item.kind.value,
            delivery_status=DeliveryStatus.NONE.value,
        )
        return item
