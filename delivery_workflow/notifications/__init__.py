"""
Notification sinks and the per-principal notification inbox.
"""

from .service import NotificationService
from .sink import (
    DatabaseNotificationSink,
    LoggingNotificationSink,
    NotificationSink,
    build_event,
    dispatch,
    recipients_for,
)

__all__ = [
    "DatabaseNotificationSink",
    "LoggingNotificationSink",
    "NotificationService",
    "NotificationSink",
    "build_event",
    "dispatch",
    "recipients_for",
]
