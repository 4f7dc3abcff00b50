"""
SQLAlchemy models for the delivery workflow.

``work_items`` holds the fields the engine reads and writes. Its ``version``
column is the mapper's version counter: every UPDATE is conditioned on the
version observed at read time, so concurrent transitions cannot both commit.
"""

from typing import Any, Dict

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..workflow.enums import (
    DeliverySource,
    DeliveryStatus,
    HistoryAction,
    LifecycleStatus,
    NotificationType,
    WorkItemKind,
)
from .base import Base


def _values(enum_cls) -> list:
    return [member.value for member in enum_cls]


work_item_kind_enum = Enum(*_values(WorkItemKind), name="work_item_kind")
delivery_status_enum = Enum(*_values(DeliveryStatus), name="delivery_status")
lifecycle_status_enum = Enum(*_values(LifecycleStatus), name="lifecycle_status")
delivery_source_enum = Enum(*_values(DeliverySource), name="delivery_source")
history_action_enum = Enum(*_values(HistoryAction), name="history_action")
notification_type_enum = Enum(*_values(NotificationType), name="notification_type")


def _iso(value):
    return value.isoformat() if value else None


class WorkItemModel(Base):
    """A module, user story or task under delivery/approval control."""

    __tablename__ = "work_items"

    id = Column(String(128), primary_key=True)
    kind = Column(work_item_kind_enum, nullable=False, index=True)
    title = Column(String(256), nullable=False)

    # Status
    lifecycle_status = Column(lifecycle_status_enum, nullable=False, index=True)
    delivery_status = Column(
        delivery_status_enum,
        nullable=False,
        default=DeliveryStatus.NONE.value,
        index=True,
    )

    # Producing side
    assignee_id = Column(String(128), nullable=True, index=True)
    operations_contact_id = Column(String(128), nullable=True)
    delivery_source = Column(
        delivery_source_enum, nullable=False, default=DeliverySource.INTERNAL.value
    )
    partner_id = Column(String(128), nullable=True, index=True)

    # Reviewing side
    reviewer_id = Column(String(128), nullable=True, index=True)
    qa_id = Column(String(128), nullable=True, index=True)

    # Delivery
    delivery_artifacts = Column(JSON, nullable=False, default=list)
    delivered_by = Column(String(128), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    delivery_note = Column(Text, nullable=True)
    delivery_commit = Column(String(128), nullable=True)

    # Approval
    approval_note = Column(Text, nullable=True)
    approved_by = Column(String(128), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    # Optimistic concurrency counter
    version = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    history = relationship(
        "WorkItemHistoryModel",
        back_populates="work_item",
        order_by="WorkItemHistoryModel.sequence",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_work_items_kind_delivery_status", "kind", "delivery_status"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "kind": self.kind,
            "title": self.title,
            "lifecycle_status": self.lifecycle_status,
            "delivery_status": self.delivery_status,
            "assignee_id": self.assignee_id,
            "operations_contact_id": self.operations_contact_id,
            "delivery_source": self.delivery_source,
            "partner_id": self.partner_id,
            "reviewer_id": self.reviewer_id,
            "qa_id": self.qa_id,
            "delivery_artifacts": list(self.delivery_artifacts or []),
            "delivered_by": self.delivered_by,
            "delivered_at": _iso(self.delivered_at),
            "delivery_note": self.delivery_note,
            "delivery_commit": self.delivery_commit,
            "approval_note": self.approval_note,
            "approved_by": self.approved_by,
            "approved_at": _iso(self.approved_at),
            "version": self.version,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class WorkItemHistoryModel(Base):
    """Append-only audit entry for one work-item transition.

    Rows are inserted by the history recorder in the same transaction as the
    work-item update that caused them and are never updated or deleted.
    """

    __tablename__ = "work_item_history"

    id = Column(String(36), primary_key=True)
    work_item_id = Column(
        String(128), ForeignKey("work_items.id"), nullable=False, index=True
    )
    # 1-based position within the item's history
    sequence = Column(Integer, nullable=False)

    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    actor_id = Column(String(128), nullable=False, index=True)
    action_type = Column(history_action_enum, nullable=False, index=True)
    from_status = Column(String(32), nullable=True)
    to_status = Column(String(32), nullable=False)
    note = Column(Text, nullable=True)

    work_item = relationship("WorkItemModel", back_populates="history")

    __table_args__ = (
        UniqueConstraint("work_item_id", "sequence", name="uq_work_item_history_seq"),
        Index("ix_work_item_history_item_ts", "work_item_id", "timestamp"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "work_item_id": self.work_item_id,
            "sequence": self.sequence,
            "timestamp": _iso(self.timestamp),
            "actor_id": self.actor_id,
            "action_type": self.action_type,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "note": self.note,
        }


class NotificationModel(Base):
    """Inbox entry produced from a workflow notification event."""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True)
    recipient_id = Column(String(128), nullable=False)
    type = Column(notification_type_enum, nullable=False)
    title = Column(String(256), nullable=False)
    message = Column(Text, nullable=False)
    work_item_id = Column(String(128), nullable=False, index=True)
    actor_id = Column(String(128), nullable=False)

    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    read_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_notifications_recipient_read_created", "recipient_id", "is_read", "created_at"),
        Index("ix_notifications_type_created", "type", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "recipient_id": self.recipient_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "work_item_id": self.work_item_id,
            "actor_id": self.actor_id,
            "is_read": self.is_read,
            "created_at": _iso(self.created_at),
            "read_at": _iso(self.read_at),
        }
