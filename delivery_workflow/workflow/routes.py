"""
Work-item workflow API routes.

REST endpoints for the delivery/approval boundary operations.
All endpoints are prefixed with /work-items. Workflow errors propagate to
the application's exception handler, which maps them to HTTP responses.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db.base import get_db
from ..identity import get_principal
from .engine import DeliveryWorkflowEngine
from .primitives import Principal
from .schemas import (
    ApprovalRequest,
    DeliverySubmission,
    LifecycleStatusUpdate,
    WorkItemCreate,
)

router = APIRouter(prefix="/work-items", tags=["Work Items"])


def get_engine(db: Session = Depends(get_db)) -> DeliveryWorkflowEngine:
    """Dependency building a request-scoped engine."""
    return DeliveryWorkflowEngine(db)


@router.post("", status_code=201)
def register_work_item(
    work_item: WorkItemCreate,
    engine: DeliveryWorkflowEngine = Depends(get_engine),
    principal: Principal = Depends(get_principal),
) -> Dict[str, Any]:
    """Put a work item under delivery workflow control."""
    item = engine.register_work_item(work_item)
    return {
        "status": "success",
        "work_item": item.model_dump(mode="json"),
    }


@router.get("")
def list_work_items(
    kind: Optional[str] = Query(None, description="Filter by kind"),
    delivery_status: Optional[str] = Query(None, description="Filter by delivery status"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    engine: DeliveryWorkflowEngine = Depends(get_engine),
    principal: Principal = Depends(get_principal),
) -> List[Dict[str, Any]]:
    """List work items with optional filtering."""
    items = engine.store.list(
        kind=kind, delivery_status=delivery_status, limit=limit, offset=offset
    )
    return [item.model_dump(mode="json", exclude={"history"}) for item in items]


@router.get("/{work_item_id}")
def get_work_item(
    work_item_id: str,
    engine: DeliveryWorkflowEngine = Depends(get_engine),
    principal: Principal = Depends(get_principal),
) -> Dict[str, Any]:
    """Get a work item by ID."""
    return engine.get_work_item(work_item_id).model_dump(mode="json")


@router.get("/{work_item_id}/history")
def get_history(
    work_item_id: str,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    engine: DeliveryWorkflowEngine = Depends(get_engine),
    principal: Principal = Depends(get_principal),
) -> List[Dict[str, Any]]:
    """Get the history of a work item, oldest first."""
    return [
        entry.model_dump(mode="json")
        for entry in engine.get_history(work_item_id, limit=limit, offset=offset)
    ]


@router.get("/{work_item_id}/permissions")
def get_permissions(
    work_item_id: str,
    engine: DeliveryWorkflowEngine = Depends(get_engine),
    principal: Principal = Depends(get_principal),
) -> Dict[str, Any]:
    """What the calling principal may currently do with this work item."""
    return engine.permissions(principal, work_item_id).model_dump(mode="json")


@router.post("/{work_item_id}/deliveries")
def submit_delivery(
    work_item_id: str,
    submission: DeliverySubmission,
    engine: DeliveryWorkflowEngine = Depends(get_engine),
    principal: Principal = Depends(get_principal),
) -> Dict[str, Any]:
    """Submit a delivery for review."""
    item = engine.submit_delivery(principal, work_item_id, submission)
    return {
        "status": "success",
        "work_item": item.model_dump(mode="json"),
    }


@router.post("/{work_item_id}/approval")
def approve_delivery(
    work_item_id: str,
    request: ApprovalRequest,
    engine: DeliveryWorkflowEngine = Depends(get_engine),
    principal: Principal = Depends(get_principal),
) -> Dict[str, Any]:
    """Accept or reject the pending delivery."""
    item = engine.approve_delivery(principal, work_item_id, request)
    return {
        "status": "success",
        "work_item": item.model_dump(mode="json"),
    }


@router.patch("/{work_item_id}/status")
def update_status(
    work_item_id: str,
    update: LifecycleStatusUpdate,
    engine: DeliveryWorkflowEngine = Depends(get_engine),
    principal: Principal = Depends(get_principal),
) -> Dict[str, Any]:
    """Update the lifecycle status of a work item."""
    item = engine.update_lifecycle_status(principal, work_item_id, update.status)
    return {
        "status": "success",
        "work_item": item.model_dump(mode="json"),
    }
