"""
Pydantic models for the delivery workflow.

``WorkItem`` is the projection the engine hands to the authorization policy
and returns to callers. Request models describe the inputs of the boundary
operations; they never carry delivery fields that only the engine may set.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, constr

from .enums import (
    Decision,
    DeliverySource,
    DeliveryStatus,
    DenyReason,
    HistoryAction,
    LifecycleStatus,
    NotificationType,
    WorkItemKind,
)
from .primitives import utc_now


class HistoryEntry(BaseModel):
    """Immutable audit record of one transition."""

    model_config = ConfigDict(extra="forbid", frozen=True, from_attributes=True)

    id: Optional[str] = Field(None, description="Entry ID (assigned on record)")
    work_item_id: Optional[str] = Field(None, description="Owning work item")
    sequence: Optional[int] = Field(
        None, ge=1, description="Per-item position in the history (assigned on record)"
    )
    timestamp: datetime = Field(default_factory=utc_now)
    actor_id: constr(min_length=1, max_length=128)
    action_type: HistoryAction
    from_status: Optional[str] = None
    to_status: str
    note: Optional[str] = None


class WorkItem(BaseModel):
    """Projection of a work item as seen by the workflow engine."""

    model_config = ConfigDict(extra="forbid", frozen=True, from_attributes=True)

    id: str
    kind: WorkItemKind
    title: str
    lifecycle_status: LifecycleStatus
    delivery_status: DeliveryStatus = DeliveryStatus.NONE

    # Producing side
    assignee_id: Optional[str] = None
    operations_contact_id: Optional[str] = None
    delivery_source: DeliverySource = DeliverySource.INTERNAL
    partner_id: Optional[str] = None

    # Reviewing side
    reviewer_id: Optional[str] = None
    qa_id: Optional[str] = None

    # Delivery
    delivery_artifacts: List[str] = Field(default_factory=list)
    delivered_by: Optional[str] = None
    delivered_at: Optional[datetime] = None
    delivery_note: Optional[str] = None
    delivery_commit: Optional[str] = None

    # Approval
    approval_note: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None

    history: List[HistoryEntry] = Field(default_factory=list)
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WorkItemCreate(BaseModel):
    """Schema for registering a work item under workflow control.

    Delivery fields are absent: ``delivery_status`` always
    starts at ``none`` and only the engine changes it.
    """

    model_config = ConfigDict(extra="forbid")

    kind: WorkItemKind
    title: constr(min_length=1, max_length=256)
    lifecycle_status: Optional[LifecycleStatus] = Field(
        None, description="Initial lifecycle status; defaults per kind"
    )
    assignee_id: Optional[constr(min_length=1, max_length=128)] = None
    operations_contact_id: Optional[constr(min_length=1, max_length=128)] = None
    reviewer_id: Optional[constr(min_length=1, max_length=128)] = None
    qa_id: Optional[constr(min_length=1, max_length=128)] = None
    delivery_source: DeliverySource = DeliverySource.INTERNAL
    partner_id: Optional[constr(min_length=1, max_length=128)] = None


class DeliverySubmission(BaseModel):
    """Input of ``submit_delivery``."""

    model_config = ConfigDict(extra="forbid")

    artifacts: List[constr(min_length=1, max_length=2000)] = Field(
        default_factory=list,
        description="Opaque file references (bundle, docs, notes)",
    )
    note: Optional[str] = None
    commit_ref: Optional[constr(min_length=1, max_length=128)] = None


class ApprovalRequest(BaseModel):
    """Input of ``approve_delivery``; covers both accept and reject."""

    model_config = ConfigDict(extra="forbid")

    decision: Decision
    note: Optional[str] = None


class LifecycleStatusUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: LifecycleStatus


class Permissions(BaseModel):
    """UI affordance projection for one principal and one work item."""

    can_submit_delivery: bool
    can_approve_delivery: bool
    reasons: Dict[str, Optional[DenyReason]] = Field(default_factory=dict)


class NotificationEvent(BaseModel):
    """Fire-and-forget event handed to the notification sink."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: NotificationType
    work_item_id: str
    actor_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    recipients: List[str] = Field(default_factory=list)
    title: str = ""
    message: str = ""
