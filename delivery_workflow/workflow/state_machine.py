"""
Delivery state machine and per-kind lifecycle rules.

    none -> pending -> accepted (terminal)
                    -> rejected -> pending (resubmission loop)

Delivery status is owned by the engine. Lifecycle status is owned by the
work-item kind: each kind declares its vocabulary and how acceptance or
rejection of a delivery moves its lifecycle.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Optional

from .enums import Decision, DeliveryStatus, LifecycleStatus, WorkItemKind
from .errors import InvalidInputError

# Keep in sync with DeliveryStatus: every member must have an entry.
DELIVERY_TRANSITIONS: Dict[DeliveryStatus, FrozenSet[DeliveryStatus]] = {
    DeliveryStatus.NONE: frozenset({DeliveryStatus.PENDING}),
    DeliveryStatus.PENDING: frozenset({DeliveryStatus.ACCEPTED, DeliveryStatus.REJECTED}),
    DeliveryStatus.REJECTED: frozenset({DeliveryStatus.PENDING}),
    DeliveryStatus.ACCEPTED: frozenset(),
}

INITIAL_DELIVERY_STATUS = DeliveryStatus.NONE
TERMINAL_DELIVERY_STATUSES = frozenset(
    status for status, targets in DELIVERY_TRANSITIONS.items() if not targets
)

DECISION_TO_STATUS: Dict[Decision, DeliveryStatus] = {
    Decision.ACCEPTED: DeliveryStatus.ACCEPTED,
    Decision.REJECTED: DeliveryStatus.REJECTED,
}

LIFECYCLE_VOCABULARY: Dict[WorkItemKind, FrozenSet[LifecycleStatus]] = {
    WorkItemKind.MODULE: frozenset(
        {
            LifecycleStatus.PLANNING,
            LifecycleStatus.IN_PROGRESS,
            LifecycleStatus.TESTING,
            LifecycleStatus.COMPLETED,
            LifecycleStatus.DELIVERED,
            LifecycleStatus.REJECTED,
            LifecycleStatus.MAINTENANCE,
            LifecycleStatus.CANCELLED,
        }
    ),
    WorkItemKind.USER_STORY: frozenset(
        {
            LifecycleStatus.BACKLOG,
            LifecycleStatus.SPRINT_BACKLOG,
            LifecycleStatus.IN_PROGRESS,
            LifecycleStatus.TESTING,
            LifecycleStatus.COMPLETED,
            LifecycleStatus.ACCEPTED,
            LifecycleStatus.REJECTED,
            LifecycleStatus.CANCELLED,
        }
    ),
    WorkItemKind.TASK: frozenset(
        {
            LifecycleStatus.BACKLOG,
            LifecycleStatus.IN_PROGRESS,
            LifecycleStatus.TESTING,
            LifecycleStatus.COMPLETED,
            LifecycleStatus.CANCELLED,
        }
    ),
}

INITIAL_LIFECYCLE: Dict[WorkItemKind, LifecycleStatus] = {
    WorkItemKind.MODULE: LifecycleStatus.PLANNING,
    WorkItemKind.USER_STORY: LifecycleStatus.BACKLOG,
    WorkItemKind.TASK: LifecycleStatus.BACKLOG,
}

# Lifecycle reached when a delivery is decided; None leaves it unchanged.
LIFECYCLE_ON_DECISION: Dict[WorkItemKind, Dict[Decision, Optional[LifecycleStatus]]] = {
    WorkItemKind.MODULE: {
        Decision.ACCEPTED: LifecycleStatus.DELIVERED,
        Decision.REJECTED: LifecycleStatus.REJECTED,
    },
    WorkItemKind.USER_STORY: {
        Decision.ACCEPTED: LifecycleStatus.ACCEPTED,
        Decision.REJECTED: None,
    },
    WorkItemKind.TASK: {
        Decision.ACCEPTED: LifecycleStatus.COMPLETED,
        Decision.REJECTED: None,
    },
}

# Statuses only the approval handler may set.
ENGINE_OWNED_LIFECYCLE = frozenset(
    {LifecycleStatus.DELIVERED, LifecycleStatus.ACCEPTED, LifecycleStatus.REJECTED}
)


def can_transition(current: DeliveryStatus, target: DeliveryStatus) -> bool:
    return DeliveryStatus(target) in DELIVERY_TRANSITIONS[DeliveryStatus(current)]


def ensure_transition(current: DeliveryStatus, target: DeliveryStatus) -> None:
    """Raise InvalidInputError for a delivery transition the machine forbids."""
    if not can_transition(current, target):
        raise InvalidInputError(
            f"Illegal delivery transition: {DeliveryStatus(current).value} -> "
            f"{DeliveryStatus(target).value}"
        )


def lifecycle_after_decision(
    kind: WorkItemKind, decision: Decision, current: LifecycleStatus
) -> LifecycleStatus:
    target = LIFECYCLE_ON_DECISION[WorkItemKind(kind)][Decision(decision)]
    return target if target is not None else LifecycleStatus(current)


def initial_lifecycle(kind: WorkItemKind) -> LifecycleStatus:
    return INITIAL_LIFECYCLE[WorkItemKind(kind)]


def validate_lifecycle_update(
    kind: WorkItemKind, current: LifecycleStatus, target: LifecycleStatus
) -> None:
    """Check a manual lifecycle update against the kind's vocabulary."""
    kind = WorkItemKind(kind)
    target = LifecycleStatus(target)
    if target not in LIFECYCLE_VOCABULARY[kind]:
        raise InvalidInputError(
            f"Status '{target.value}' is not valid for a {kind.value}"
        )
    if target in ENGINE_OWNED_LIFECYCLE:
        raise InvalidInputError(
            f"Status '{target.value}' is set by the delivery approval flow"
        )
    if target == LifecycleStatus(current):
        raise InvalidInputError(f"Work item is already '{target.value}'")
