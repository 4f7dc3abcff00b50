"""
Notification inbox API routes.

All endpoints are prefixed with /notifications and scoped to the calling
principal.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..db.base import get_db
from ..identity import get_principal
from ..workflow.primitives import Principal
from .service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
def list_notifications(
    is_read: Optional[bool] = Query(None, description="Filter by read flag"),
    type: Optional[str] = Query(None, description="Filter by notification type"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
) -> Dict[str, Any]:
    """List the caller's notifications, newest first."""
    service = NotificationService(db)
    notifications = service.list(
        principal.id,
        is_read=is_read,
        notification_type=type,
        limit=limit,
        offset=offset,
    )
    return {
        "notifications": [n.to_dict() for n in notifications],
        "unread_count": service.unread_count(principal.id),
    }


@router.get("/unread-count")
def unread_count(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
) -> Dict[str, int]:
    """Badge counter for the caller."""
    return {"unread_count": NotificationService(db).unread_count(principal.id)}


@router.put("/mark-all-read")
def mark_all_read(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
) -> Dict[str, Any]:
    """Mark all of the caller's notifications read."""
    updated = NotificationService(db).mark_all_read(principal.id)
    return {"status": "success", "updated": updated}


@router.put("/{notification_id}/read")
def mark_read(
    notification_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
) -> Dict[str, Any]:
    """Mark one of the caller's notifications read."""
    notification = NotificationService(db).mark_read(principal.id, notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"status": "success", "notification": notification.to_dict()}
