"""
Notification inbox queries.

Every operation is scoped to one recipient; a principal can only read or
mark their own notifications.
"""

from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..db.models import NotificationModel
from ..workflow.primitives import utc_now


class NotificationService:
    """Service for reading and acknowledging notifications."""

    def __init__(self, db: Session):
        self.db = db

    def list(
        self,
        recipient_id: str,
        is_read: Optional[bool] = None,
        notification_type: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[NotificationModel]:
        """List a recipient's notifications, newest first."""
        query = self.db.query(NotificationModel).filter(
            NotificationModel.recipient_id == recipient_id
        )

        if is_read is not None:
            query = query.filter(NotificationModel.is_read == is_read)
        if notification_type:
            query = query.filter(NotificationModel.type == notification_type)

        return (
            query.order_by(desc(NotificationModel.created_at), desc(NotificationModel.id))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def unread_count(self, recipient_id: str) -> int:
        return (
            self.db.query(NotificationModel)
            .filter(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.is_read.is_(False),
            )
            .count()
        )

    def mark_read(self, recipient_id: str, notification_id: str) -> Optional[NotificationModel]:
        """Mark one notification read; None if it is not the recipient's."""
        notification = (
            self.db.query(NotificationModel)
            .filter(
                NotificationModel.id == notification_id,
                NotificationModel.recipient_id == recipient_id,
            )
            .first()
        )
        if notification is None:
            return None

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utc_now()
            self.db.commit()
            self.db.refresh(notification)
        return notification

    def mark_all_read(self, recipient_id: str) -> int:
        """Mark every unread notification of the recipient read."""
        updated = (
            self.db.query(NotificationModel)
            .filter(
                NotificationModel.recipient_id == recipient_id,
                NotificationModel.is_read.is_(False),
            )
            .update(
                {NotificationModel.is_read: True, NotificationModel.read_at: utc_now()},
                synchronize_session=False,
            )
        )
        self.db.commit()
        return updated
