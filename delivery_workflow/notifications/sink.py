"""
Notification sinks for workflow events.

The engine hands every committed transition to a sink as a
``NotificationEvent``. Emission is fire-and-forget: ``dispatch`` logs and
swallows any sink failure so it never surfaces as a failure of the
submission or approval that triggered it.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Protocol, runtime_checkable

import structlog
from sqlalchemy.orm import Session

from ..db.models import NotificationModel
from ..workflow.enums import NotificationType
from ..workflow.primitives import Principal, generate_ulid
from ..workflow.schemas import NotificationEvent, WorkItem

logger = structlog.get_logger(__name__)


@runtime_checkable
class NotificationSink(Protocol):
    """Accepts workflow events for downstream display."""

    def emit(self, event: NotificationEvent) -> None: ...


class LoggingNotificationSink:
    """Sink used when notifications are disabled: events are only logged."""

    def emit(self, event: NotificationEvent) -> None:
        logger.info(
            "notification_event",
            type=event.type.value,
            work_item_id=event.work_item_id,
            actor_id=event.actor_id,
            recipients=event.recipients,
        )


class DatabaseNotificationSink:
    """Persists one inbox row per recipient in its own session.

    The sink never shares the caller's session, so a failure here cannot
    roll back the work-item transaction that produced the event.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def emit(self, event: NotificationEvent) -> None:
        if not event.recipients:
            return

        db = self.session_factory()
        try:
            for recipient_id in event.recipients:
                db.add(
                    NotificationModel(
                        id=generate_ulid(),
                        recipient_id=recipient_id,
                        type=event.type.value,
                        title=event.title,
                        message=event.message,
                        work_item_id=event.work_item_id,
                        actor_id=event.actor_id,
                        is_read=False,
                        created_at=event.timestamp,
                    )
                )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


_TITLES = {
    NotificationType.DELIVERY_SUBMITTED: "Delivery submitted",
    NotificationType.DELIVERY_ACCEPTED: "Delivery accepted",
    NotificationType.DELIVERY_REJECTED: "Delivery rejected",
}


def recipients_for(
    event_type: NotificationType, item: WorkItem, actor_id: str
) -> List[str]:
    """Who should hear about ``event_type`` on ``item``.

    Submissions go to the reviewing side; decisions go to the producing
    side and whoever delivered. The actor is never notified of their own
    action and each recipient appears once.
    """
    if event_type == NotificationType.DELIVERY_SUBMITTED:
        candidates = [item.reviewer_id, item.qa_id]
    else:
        candidates = [item.assignee_id, item.operations_contact_id, item.delivered_by]

    recipients: List[str] = []
    for candidate in candidates:
        if candidate and candidate != actor_id and candidate not in recipients:
            recipients.append(candidate)
    return recipients


def build_event(
    event_type: NotificationType,
    item: WorkItem,
    principal: Principal,
    note: Optional[str] = None,
) -> NotificationEvent:
    """Build the event for a committed transition on ``item``."""
    title = _TITLES[event_type]
    message = f'{item.kind.value.replace("_", " ").capitalize()} "{item.title}": {title.lower()}'
    if note:
        message = f"{message}. Note: {note}"

    return NotificationEvent(
        type=event_type,
        work_item_id=item.id,
        actor_id=principal.id,
        recipients=recipients_for(event_type, item, principal.id),
        title=title,
        message=message,
    )


def dispatch(sink: NotificationSink, event: NotificationEvent) -> bool:
    """Hand ``event`` to ``sink``; never raises.

    Returns:
        True if the sink accepted the event, False if it failed
    """
    try:
        sink.emit(event)
    except Exception:
        logger.warning(
            "notification_failed",
            type=event.type.value,
            work_item_id=event.work_item_id,
            exc_info=True,
        )
        return False
    return True
