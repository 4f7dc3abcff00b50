"""
Authorization policy for the delivery workflow.

This module implements a pure, testable policy that decides whether a
principal may perform an action on a work item. It never raises and never
touches storage, so it can be called speculatively (e.g. to decide whether
to show a button).

Policy Rules:
- submit-delivery: denied with ALREADY_ACCEPTED once the delivery is
  accepted (for every principal); otherwise allowed only for the assignee or
  the operations contact, else NOT_ASSIGNED.
- approve / reject: allowed only for the reviewer or QA of the item, else
  NOT_REVIEWER (regardless of delivery status); then only while the delivery
  is pending, else NOT_PENDING. On partner-delivered items a principal with
  the partner role is never a reviewer.
- update-status: allowed only for the assignee or the operations contact,
  else NOT_ASSIGNED.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

from .enums import Action, DeliverySource, DeliveryStatus, DenyReason, Role
from .primitives import Principal
from .schemas import WorkItem


class PolicyDecision(BaseModel):
    """Outcome of a policy evaluation: Allow, or Deny with a reason."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: Optional[DenyReason] = None

    @classmethod
    def allow(cls) -> "PolicyDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "PolicyDecision":
        return cls(allowed=False, reason=reason)

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = PolicyDecision.allow()


def _is_producer(principal: Principal, item: WorkItem) -> bool:
    """Assignee or operations contact of the item."""
    return principal.id in {
        pid for pid in (item.assignee_id, item.operations_contact_id) if pid
    }


def _is_reviewer(principal: Principal, item: WorkItem) -> bool:
    """Reviewer or QA of the item; partners never review partner deliveries."""
    if item.delivery_source == DeliverySource.PARTNER and principal.role == Role.PARTNER:
        return False
    return principal.id in {pid for pid in (item.reviewer_id, item.qa_id) if pid}


def _decide_submit(principal: Principal, item: WorkItem) -> PolicyDecision:
    if item.delivery_status == DeliveryStatus.ACCEPTED:
        return PolicyDecision.deny(DenyReason.ALREADY_ACCEPTED)
    if not _is_producer(principal, item):
        return PolicyDecision.deny(DenyReason.NOT_ASSIGNED)
    return ALLOW


def _decide_review(principal: Principal, item: WorkItem) -> PolicyDecision:
    if not _is_reviewer(principal, item):
        return PolicyDecision.deny(DenyReason.NOT_REVIEWER)
    if item.delivery_status != DeliveryStatus.PENDING:
        return PolicyDecision.deny(DenyReason.NOT_PENDING)
    return ALLOW


def _decide_update_status(principal: Principal, item: WorkItem) -> PolicyDecision:
    if not _is_producer(principal, item):
        return PolicyDecision.deny(DenyReason.NOT_ASSIGNED)
    return ALLOW


_RULES = {
    Action.SUBMIT_DELIVERY: _decide_submit,
    Action.APPROVE: _decide_review,
    Action.REJECT: _decide_review,
    Action.UPDATE_STATUS: _decide_update_status,
}


def decide(principal: Principal, item: WorkItem, action: Action) -> PolicyDecision:
    """
    Evaluate whether ``principal`` may perform ``action`` on ``item``.

    This is a pure function: no DB access, no request objects, no logging.

    Args:
        principal: The acting principal for this request
        item: Projection of the work item as currently stored
        action: The requested action

    Returns:
        PolicyDecision.allow() or PolicyDecision.deny(reason)
    """
    return _RULES[Action(action)](principal, item)
