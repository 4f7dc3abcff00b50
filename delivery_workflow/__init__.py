"""
Delivery Workflow

Delivery and approval workflow engine for project work items.
"""

import importlib.metadata

__version__ = importlib.metadata.version("delivery-workflow")

from .workflow import (
    ApprovalRequest,
    Decision,
    DeliveryStatus,
    DeliverySubmission,
    DenyReason,
    Principal,
    WorkflowError,
    WorkItem,
)
from .workflow.engine import DeliveryWorkflowEngine

__all__ = [
    "ApprovalRequest",
    "Decision",
    "DeliveryStatus",
    "DeliverySubmission",
    "DeliveryWorkflowEngine",
    "DenyReason",
    "Principal",
    "WorkflowError",
    "WorkItem",
]
