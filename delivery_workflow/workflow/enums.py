"""
Canonical enums for the delivery workflow.

Every status the engine reads or writes is a member of one of these closed
sets. Adapters MUST map storage or transport values into these sets.
"""

from enum import Enum


class WorkItemKind(str, Enum):
    """Kinds of work item that share the delivery workflow."""

    MODULE = "module"
    USER_STORY = "user_story"
    TASK = "task"


class DeliveryStatus(str, Enum):
    """Delivery/approval state of a work item."""

    NONE = "none"
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class LifecycleStatus(str, Enum):
    """Broader production status of a work item (union of all kinds)."""

    BACKLOG = "backlog"
    SPRINT_BACKLOG = "sprint-backlog"
    PLANNING = "planning"
    IN_PROGRESS = "in-progress"
    TESTING = "testing"
    COMPLETED = "completed"
    DELIVERED = "delivered"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    MAINTENANCE = "maintenance"
    CANCELLED = "cancelled"


class Decision(str, Enum):
    """Reviewer decision on a pending delivery."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Action(str, Enum):
    """Actions evaluated by the authorization policy."""

    SUBMIT_DELIVERY = "submit-delivery"
    APPROVE = "approve"
    REJECT = "reject"
    UPDATE_STATUS = "update-status"


class DenyReason(str, Enum):
    """Stable reasons for an authorization denial."""

    NOT_ASSIGNED = "NOT_ASSIGNED"
    ALREADY_ACCEPTED = "ALREADY_ACCEPTED"
    NOT_PENDING = "NOT_PENDING"
    NOT_REVIEWER = "NOT_REVIEWER"


class HistoryAction(str, Enum):
    """Action recorded on a history entry."""

    DELIVERED = "delivered"
    APPROVED = "approved"
    REJECTED = "rejected"
    STATUS_CHANGED = "status-changed"


class DeliverySource(str, Enum):
    """Who produces the delivery."""

    INTERNAL = "internal"
    PARTNER = "partner"


class Role(str, Enum):
    """Principal roles known to the identity provider."""

    ADMIN = "admin"
    PM = "pm"
    DEV = "dev"
    DEVOPS = "devops"
    REVIEWER = "reviewer"
    QA = "qa"
    PARTNER = "partner"


class NotificationType(str, Enum):
    """Notification events emitted by the engine."""

    DELIVERY_SUBMITTED = "delivery-submitted"
    DELIVERY_ACCEPTED = "delivery-accepted"
    DELIVERY_REJECTED = "delivery-rejected"
