"""
Approval handler.

Moves a pending delivery to ``accepted`` or ``rejected``. Acceptance is
terminal; rejection re-opens the cycle for the original producer.
"""

from __future__ import annotations

import structlog

from ..config import Settings
from ..db.history import HistoryRecorder
from ..db.store import WorkItemStore, delivery_status_of, lifecycle_of
from ..notifications.sink import NotificationSink, build_event, dispatch
from .enums import Action, Decision, HistoryAction, NotificationType
from .errors import ForbiddenError, InvalidInputError, WorkItemNotFoundError
from .policy import decide
from .primitives import Principal, utc_now
from .schemas import ApprovalRequest, HistoryEntry, WorkItem
from .state_machine import DECISION_TO_STATUS, ensure_transition, lifecycle_after_decision

logger = structlog.get_logger(__name__)

_DECISION_ACTIONS = {
    Decision.ACCEPTED: Action.APPROVE,
    Decision.REJECTED: Action.REJECT,
}

_DECISION_HISTORY = {
    Decision.ACCEPTED: HistoryAction.APPROVED,
    Decision.REJECTED: HistoryAction.REJECTED,
}

_DECISION_EVENTS = {
    Decision.ACCEPTED: NotificationType.DELIVERY_ACCEPTED,
    Decision.REJECTED: NotificationType.DELIVERY_REJECTED,
}


class ApprovalHandler:
    """Validates and applies the approve/reject transition."""

    def __init__(
        self,
        store: WorkItemStore,
        recorder: HistoryRecorder,
        sink: NotificationSink,
        settings: Settings,
    ):
        self.store = store
        self.recorder = recorder
        self.sink = sink
        self.settings = settings

    def handle(
        self,
        principal: Principal,
        work_item_id: str,
        request: ApprovalRequest,
    ) -> WorkItem:
        model = self.store.load(work_item_id)
        if model is None:
            raise WorkItemNotFoundError(work_item_id)
        item = self.store.project(model)

        outcome = Decision(request.decision)
        decision = decide(principal, item, _DECISION_ACTIONS[outcome])
        if not decision:
            logger.info(
                "approval_denied",
                work_item_id=work_item_id,
                actor_id=principal.id,
                decision=outcome.value,
                reason=decision.reason.value,
            )
            raise ForbiddenError(decision.reason)

        note = request.note.strip() if request.note else None
        note = note or None
        if (
            outcome == Decision.REJECTED
            and self.settings.require_rejection_note
            and note is None
        ):
            raise InvalidInputError("rejection note required")

        previous = delivery_status_of(model)
        target = DECISION_TO_STATUS[outcome]
        ensure_transition(previous, target)

        now = utc_now()
        lifecycle = lifecycle_after_decision(item.kind, outcome, lifecycle_of(model))
        with self.store.transaction(model.id):
            model.delivery_status = target.value
            model.approval_note = note
            model.approved_by = principal.id
            model.approved_at = now
            model.lifecycle_status = lifecycle.value
            model.updated_at = now

            self.recorder.record(
                model.id,
                HistoryEntry(
                    timestamp=now,
                    actor_id=principal.id,
                    action_type=_DECISION_HISTORY[outcome],
                    from_status=previous.value,
                    to_status=target.value,
                    note=note,
                ),
            )

        updated = self.store.project(model)
        logger.info(
            "delivery_decided",
            work_item_id=work_item_id,
            actor_id=principal.id,
            from_status=previous.value,
            to_status=target.value,
            lifecycle_status=updated.lifecycle_status.value,
        )

        dispatch(self.sink, build_event(_DECISION_EVENTS[outcome], updated, principal, note))
        return updated
