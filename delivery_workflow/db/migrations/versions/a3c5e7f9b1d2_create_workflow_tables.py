"""Create work_items, work_item_history and notifications tables

Revision ID: a3c5e7f9b1d2
Revises:
Create Date: 2026-10-19

work_items.version backs optimistic concurrency for delivery transitions;
work_item_history is insert-only and ordered per item by sequence.
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "a3c5e7f9b1d2"
down_revision = None
branch_labels = None
depends_on = None

WORK_ITEM_KINDS = ("module", "user_story", "task")
DELIVERY_STATUSES = ("none", "pending", "accepted", "rejected")
LIFECYCLE_STATUSES = (
    "backlog",
    "sprint-backlog",
    "planning",
    "in-progress",
    "testing",
    "completed",
    "delivered",
    "accepted",
    "rejected",
    "maintenance",
    "cancelled",
)
DELIVERY_SOURCES = ("internal", "partner")
HISTORY_ACTIONS = ("delivered", "approved", "rejected", "status-changed")
NOTIFICATION_TYPES = ("delivery-submitted", "delivery-accepted", "delivery-rejected")


def upgrade() -> None:
    op.create_table(
        "work_items",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column(
            "kind",
            sa.Enum(*WORK_ITEM_KINDS, name="work_item_kind", create_constraint=True),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column(
            "lifecycle_status",
            sa.Enum(*LIFECYCLE_STATUSES, name="lifecycle_status", create_constraint=True),
            nullable=False,
        ),
        sa.Column(
            "delivery_status",
            sa.Enum(*DELIVERY_STATUSES, name="delivery_status", create_constraint=True),
            nullable=False,
        ),
        # Producing side
        sa.Column("assignee_id", sa.String(length=128), nullable=True),
        sa.Column("operations_contact_id", sa.String(length=128), nullable=True),
        sa.Column(
            "delivery_source",
            sa.Enum(*DELIVERY_SOURCES, name="delivery_source", create_constraint=True),
            nullable=False,
        ),
        sa.Column("partner_id", sa.String(length=128), nullable=True),
        # Reviewing side
        sa.Column("reviewer_id", sa.String(length=128), nullable=True),
        sa.Column("qa_id", sa.String(length=128), nullable=True),
        # Delivery
        sa.Column("delivery_artifacts", sa.JSON, nullable=False),
        sa.Column("delivered_by", sa.String(length=128), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivery_note", sa.Text, nullable=True),
        sa.Column("delivery_commit", sa.String(length=128), nullable=True),
        # Approval
        sa.Column("approval_note", sa.Text, nullable=True),
        sa.Column("approved_by", sa.String(length=128), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_work_items_kind", "work_items", ["kind"])
    op.create_index("ix_work_items_lifecycle_status", "work_items", ["lifecycle_status"])
    op.create_index("ix_work_items_delivery_status", "work_items", ["delivery_status"])
    op.create_index("ix_work_items_assignee_id", "work_items", ["assignee_id"])
    op.create_index("ix_work_items_partner_id", "work_items", ["partner_id"])
    op.create_index("ix_work_items_reviewer_id", "work_items", ["reviewer_id"])
    op.create_index("ix_work_items_qa_id", "work_items", ["qa_id"])
    op.create_index(
        "ix_work_items_kind_delivery_status",
        "work_items",
        ["kind", "delivery_status"],
    )

    op.create_table(
        "work_item_history",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "work_item_id",
            sa.String(length=128),
            sa.ForeignKey("work_items.id"),
            nullable=False,
        ),
        sa.Column("sequence", sa.Integer, nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("actor_id", sa.String(length=128), nullable=False),
        sa.Column(
            "action_type",
            sa.Enum(*HISTORY_ACTIONS, name="history_action", create_constraint=True),
            nullable=False,
        ),
        sa.Column("from_status", sa.String(length=32), nullable=True),
        sa.Column("to_status", sa.String(length=32), nullable=False),
        sa.Column("note", sa.Text, nullable=True),
        sa.UniqueConstraint("work_item_id", "sequence", name="uq_work_item_history_seq"),
    )
    op.create_index("ix_work_item_history_work_item_id", "work_item_history", ["work_item_id"])
    op.create_index("ix_work_item_history_timestamp", "work_item_history", ["timestamp"])
    op.create_index("ix_work_item_history_actor_id", "work_item_history", ["actor_id"])
    op.create_index("ix_work_item_history_action_type", "work_item_history", ["action_type"])
    op.create_index(
        "ix_work_item_history_item_ts",
        "work_item_history",
        ["work_item_id", "timestamp"],
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("recipient_id", sa.String(length=128), nullable=False),
        sa.Column(
            "type",
            sa.Enum(*NOTIFICATION_TYPES, name="notification_type", create_constraint=True),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("work_item_id", sa.String(length=128), nullable=False),
        sa.Column("actor_id", sa.String(length=128), nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_notifications_work_item_id", "notifications", ["work_item_id"])
    op.create_index(
        "ix_notifications_recipient_read_created",
        "notifications",
        ["recipient_id", "is_read", "created_at"],
    )
    op.create_index("ix_notifications_type_created", "notifications", ["type", "created_at"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("work_item_history")
    op.drop_table("work_items")

    # Drop PostgreSQL enum types (no-op for SQLite)
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in (
            "notification_type",
            "history_action",
            "delivery_source",
            "delivery_status",
            "lifecycle_status",
            "work_item_kind",
        ):
            op.execute(f"DROP TYPE IF EXISTS {enum_name}")
