"""
Delivery workflow core: enums, schemas, policy and errors.

The engine and its handlers import the database layer and are imported from
their own modules (``delivery_workflow.workflow.engine``).
"""

from .enums import (
    Action,
    Decision,
    DeliverySource,
    DeliveryStatus,
    DenyReason,
    HistoryAction,
    LifecycleStatus,
    NotificationType,
    Role,
    WorkItemKind,
)
from .errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    StoreUnavailableError,
    WorkflowError,
    WorkItemNotFoundError,
)
from .policy import PolicyDecision, decide
from .primitives import Principal, generate_ulid, utc_now
from .schemas import (
    ApprovalRequest,
    DeliverySubmission,
    HistoryEntry,
    LifecycleStatusUpdate,
    NotificationEvent,
    Permissions,
    WorkItem,
    WorkItemCreate,
)

__all__ = [
    # Enums
    "Action",
    "Decision",
    "DeliverySource",
    "DeliveryStatus",
    "DenyReason",
    "HistoryAction",
    "LifecycleStatus",
    "NotificationType",
    "Role",
    "WorkItemKind",
    # Errors
    "ConflictError",
    "ForbiddenError",
    "InvalidInputError",
    "StoreUnavailableError",
    "WorkflowError",
    "WorkItemNotFoundError",
    # Policy
    "PolicyDecision",
    "decide",
    # Primitives
    "Principal",
    "generate_ulid",
    "utc_now",
    # Schemas
    "ApprovalRequest",
    "DeliverySubmission",
    "HistoryEntry",
    "LifecycleStatusUpdate",
    "NotificationEvent",
    "Permissions",
    "WorkItem",
    "WorkItemCreate",
]
