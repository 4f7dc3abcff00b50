"""
Database package for the delivery workflow.
"""

from .base import Base, get_db, get_engine, get_session_local, init_database
from .models import NotificationModel, WorkItemHistoryModel, WorkItemModel

__all__ = [
    "Base",
    "get_db",
    "get_engine",
    "get_session_local",
    "init_database",
    "NotificationModel",
    "WorkItemHistoryModel",
    "WorkItemModel",
]
