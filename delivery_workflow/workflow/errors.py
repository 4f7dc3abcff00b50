"""
Typed errors raised by the delivery workflow handlers.

Each error carries a stable ``code`` for programmatic handling and a
``retryable`` flag telling the caller whether re-fetching and retrying can
succeed. The authorization policy never raises; handlers translate its
denials into ``ForbiddenError``.
"""

from typing import Any, Dict, Optional

from .enums import DenyReason


class WorkflowError(Exception):
    """
    Base class for delivery workflow failures.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error description
        retryable: Whether the caller may safely retry
    """

    code = "WORKFLOW_ERROR"
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"{self.code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "error": "delivery_workflow_error",
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }


class WorkItemNotFoundError(WorkflowError):
    code = "NOT_FOUND"

    def __init__(self, work_item_id: str):
        self.work_item_id = work_item_id
        super().__init__(f"Work item {work_item_id} not found")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["work_item_id"] = self.work_item_id
        return data


class ForbiddenError(WorkflowError):
    """Authorization denial; ``reason`` is surfaced verbatim to the UI."""

    code = "FORBIDDEN"

    def __init__(self, reason: DenyReason, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or _REASON_MESSAGES[reason])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason.value
        return data


class InvalidInputError(WorkflowError):
    code = "INVALID_INPUT"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class ConflictError(WorkflowError):
    """The work item changed between read and commit."""

    code = "CONFLICT"
    retryable = True

    def __init__(self, work_item_id: str):
        self.work_item_id = work_item_id
        super().__init__(
            f"Work item {work_item_id} was modified concurrently; re-fetch and retry"
        )


class StoreUnavailableError(WorkflowError):
    code = "STORE_UNAVAILABLE"
    retryable = True

    def __init__(self, detail: str = "Work item store unavailable"):
        super().__init__(detail)


_REASON_MESSAGES = {
    DenyReason.NOT_ASSIGNED: "Only the assigned producer or operations contact can do this",
    DenyReason.ALREADY_ACCEPTED: "The delivery has already been accepted",
    DenyReason.NOT_PENDING: "There is no pending delivery to review",
    DenyReason.NOT_REVIEWER: "Only the assigned reviewer or QA can review this delivery",
}
