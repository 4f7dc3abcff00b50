"""
Delivery submission handler.

Moves a work item from ``none`` or ``rejected`` to ``pending``.

Preconditions, checked in order (first failure wins):
1. the work item exists                      -> NOT_FOUND
2. the policy allows submit-delivery         -> FORBIDDEN(reason)
3. at least one artifact, at most the limit  -> INVALID_INPUT

Re-submitting the identical delivery while it is still pending is a no-op
that returns the current item; any other submission while pending is
INVALID_INPUT.
"""

from __future__ import annotations

from typing import List, Optional

import structlog

from ..config import Settings
from ..db.history import HistoryRecorder
from ..db.store import WorkItemStore, delivery_status_of
from ..notifications.sink import NotificationSink, build_event, dispatch
from .enums import Action, DeliveryStatus, HistoryAction, NotificationType
from .errors import ForbiddenError, InvalidInputError, WorkItemNotFoundError
from .policy import decide
from .primitives import Principal, utc_now
from .schemas import DeliverySubmission, HistoryEntry, WorkItem
from .state_machine import ensure_transition

logger = structlog.get_logger(__name__)


def _clean_note(note: Optional[str]) -> Optional[str]:
    if note is None:
        return None
    note = note.strip()
    return note or None


class DeliverySubmissionHandler:
    """Validates and applies the submit-delivery transition."""

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

    def _validate_artifacts(self, artifacts: List[str]) -> List[str]:
        cleaned = [ref.strip() for ref in artifacts if ref and ref.strip()]
        if not cleaned:
            raise InvalidInputError("no artifacts")
        if len(cleaned) > self.settings.max_delivery_artifacts:
            raise InvalidInputError(
                f"too many artifacts: {len(cleaned)} "
                f"(maximum {self.settings.max_delivery_artifacts})"
            )
        return cleaned

    @staticmethod
    def _is_same_delivery(
        item: WorkItem,
        principal: Principal,
        artifacts: List[str],
        note: Optional[str],
        commit_ref: Optional[str],
    ) -> bool:
        return (
            item.delivered_by == principal.id
            and list(item.delivery_artifacts) == artifacts
            and item.delivery_note == note
            and item.delivery_commit == commit_ref
        )

    def handle(
        self,
        principal: Principal,
        work_item_id: str,
        submission: DeliverySubmission,
    ) -> WorkItem:
        model = self.store.load(work_item_id)
        if model is None:
            raise WorkItemNotFoundError(work_item_id)
        item = self.store.project(model)

        decision = decide(principal, item, Action.SUBMIT_DELIVERY)
        if not decision:
            logger.info(
                "delivery_denied",
                work_item_id=work_item_id,
                actor_id=principal.id,
                reason=decision.reason.value,
            )
            raise ForbiddenError(decision.reason)

        artifacts = self._validate_artifacts(submission.artifacts)
        note = _clean_note(submission.note)
        commit_ref = submission.commit_ref

        previous = delivery_status_of(model)
        if previous == DeliveryStatus.PENDING:
            if self._is_same_delivery(item, principal, artifacts, note, commit_ref):
                logger.info(
                    "delivery_resubmitted_unchanged",
                    work_item_id=work_item_id,
                    actor_id=principal.id,
                )
                return item
            raise InvalidInputError("a delivery is already pending review")
        ensure_transition(previous, DeliveryStatus.PENDING)

        now = utc_now()
        with self.store.transaction(model.id):
            model.delivery_status = DeliveryStatus.PENDING.value
            model.delivery_artifacts = artifacts
            model.delivered_by = principal.id
            model.delivered_at = now
            model.delivery_note = note
            model.delivery_commit = commit_ref
            model.updated_at = now

            self.recorder.record(
                model.id,
                HistoryEntry(
                    timestamp=now,
                    actor_id=principal.id,
                    action_type=HistoryAction.DELIVERED,
                    from_status=previous.value,
                    to_status=DeliveryStatus.PENDING.value,
                    note=note,
                ),
            )

        updated = self.store.project(model)
        logger.info(
            "delivery_submitted",
            work_item_id=work_item_id,
            actor_id=principal.id,
            from_status=previous.value,
            to_status=DeliveryStatus.PENDING.value,
            artifacts=len(artifacts),
        )

        dispatch(
            self.sink,
            build_event(NotificationType.DELIVERY_SUBMITTED, updated, principal, note),
        )
        return updated
