"""Tests for accepting and rejecting deliveries."""

import pytest

from delivery_workflow.config import Settings
from delivery_workflow.workflow.engine import DeliveryWorkflowEngine
from delivery_workflow.workflow.enums import (
    Decision,
    DeliverySource,
    DeliveryStatus,
    DenyReason,
    HistoryAction,
    LifecycleStatus,
    NotificationType,
    Role,
    WorkItemKind,
)
from delivery_workflow.workflow.errors import (
    ForbiddenError,
    InvalidInputError,
    WorkItemNotFoundError,
)
from delivery_workflow.workflow.primitives import Principal
from delivery_workflow.workflow.schemas import ApprovalRequest, DeliverySubmission
from tests.conftest import ASSIGNEE, OPS, OUTSIDER, QA, REVIEWER, make_work_item

DELIVERY = DeliverySubmission(artifacts=["files/payments-1.0.zip"], note="ready")
ACCEPT = ApprovalRequest(decision=Decision.ACCEPTED, note="Looks good")
REJECT = ApprovalRequest(decision=Decision.REJECTED, note="Missing migration")


@pytest.fixture
def pending_item(engine, work_item):
    return engine.submit_delivery(ASSIGNEE, work_item.id, DELIVERY)


class TestAccept:
    def test_reviewer_accepts(self, engine, pending_item, sink):
        item = engine.approve_delivery(REVIEWER, pending_item.id, ACCEPT)

        assert item.delivery_status == DeliveryStatus.ACCEPTED
        assert item.approved_by == REVIEWER.id
        assert item.approved_at is not None
        assert item.approval_note == "Looks good"
        assert item.lifecycle_status == LifecycleStatus.DELIVERED

        entry = item.history[-1]
        assert entry.sequence == 2
        assert entry.action_type == HistoryAction.APPROVED
        assert entry.from_status == "pending"
        assert entry.to_status == "accepted"
        assert entry.note == "Looks good"

        event = sink.events[-1]
        assert event.type == NotificationType.DELIVERY_ACCEPTED
        assert event.recipients == [ASSIGNEE.id, OPS.id]

    def test_qa_accepts_without_note(self, engine, pending_item):
        item = engine.approve_delivery(
            QA, pending_item.id, ApprovalRequest(decision=Decision.ACCEPTED)
        )
        assert item.delivery_status == DeliveryStatus.ACCEPTED
        assert item.approval_note is None
        assert item.approved_by == QA.id

    def test_second_accept_is_not_pending(self, engine, pending_item):
        engine.approve_delivery(REVIEWER, pending_item.id, ACCEPT)

        with pytest.raises(ForbiddenError) as exc_info:
            engine.approve_delivery(QA, pending_item.id, ACCEPT)
        assert exc_info.value.reason == DenyReason.NOT_PENDING
        assert len(engine.get_history(pending_item.id)) == 2


class TestReject:
    def test_reviewer_rejects(self, engine, pending_item, sink):
        item = engine.approve_delivery(REVIEWER, pending_item.id, REJECT)

        assert item.delivery_status == DeliveryStatus.REJECTED
        assert item.approval_note == "Missing migration"
        assert item.approved_by == REVIEWER.id
        assert item.lifecycle_status == LifecycleStatus.REJECTED
        # Delivery fields stay for reference until the next submission
        assert item.delivery_artifacts == ["files/payments-1.0.zip"]

        entry = item.history[-1]
        assert entry.action_type == HistoryAction.REJECTED
        assert entry.from_status == "pending"
        assert entry.to_status == "rejected"

        event = sink.events[-1]
        assert event.type == NotificationType.DELIVERY_REJECTED
        assert "Missing migration" in event.message

    @pytest.mark.parametrize("note", [None, "", "   "])
    def test_rejection_requires_note(self, engine, pending_item, sink, note):
        with pytest.raises(InvalidInputError, match="rejection note required"):
            engine.approve_delivery(
                REVIEWER, pending_item.id, ApprovalRequest(decision=Decision.REJECTED, note=note)
            )
        assert engine.get_work_item(pending_item.id).delivery_status == DeliveryStatus.PENDING
        assert len(sink.events) == 1

    def test_rejection_note_optional_when_configured(self, db_session, sink, pending_item):
        engine = DeliveryWorkflowEngine(
            db_session, settings=Settings(require_rejection_note=False), sink=sink
        )
        item = engine.approve_delivery(
            REVIEWER, pending_item.id, ApprovalRequest(decision=Decision.REJECTED)
        )
        assert item.delivery_status == DeliveryStatus.REJECTED
        assert item.approval_note is None


class TestPreconditions:
    def test_unknown_work_item(self, engine):
        with pytest.raises(WorkItemNotFoundError):
            engine.approve_delivery(REVIEWER, "missing", ACCEPT)

    @pytest.mark.parametrize("principal", [ASSIGNEE, OPS, OUTSIDER])
    def test_not_reviewer(self, engine, pending_item, principal, sink):
        with pytest.raises(ForbiddenError) as exc_info:
            engine.approve_delivery(principal, pending_item.id, ACCEPT)

        assert exc_info.value.reason == DenyReason.NOT_REVIEWER
        item = engine.get_work_item(pending_item.id)
        assert item.delivery_status == DeliveryStatus.PENDING
        assert len(item.history) == 1
        assert len(sink.events) == 1

    def test_not_reviewer_even_when_nothing_pending(self, engine, work_item):
        with pytest.raises(ForbiddenError) as exc_info:
            engine.approve_delivery(OUTSIDER, work_item.id, ACCEPT)
        assert exc_info.value.reason == DenyReason.NOT_REVIEWER

    @pytest.mark.parametrize("request_", [ACCEPT, REJECT])
    def test_nothing_pending(self, engine, work_item, request_):
        with pytest.raises(ForbiddenError) as exc_info:
            engine.approve_delivery(REVIEWER, work_item.id, request_)
        assert exc_info.value.reason == DenyReason.NOT_PENDING
        assert engine.get_history(work_item.id) == []

    def test_partner_cannot_review_partner_delivery(self, engine):
        partner = Principal(id="P1", role=Role.PARTNER)
        item = engine.register_work_item(
            make_work_item(
                delivery_source=DeliverySource.PARTNER,
                partner_id=partner.id,
                reviewer_id=partner.id,
            ),
            item_id="W-partner",
        )
        engine.submit_delivery(ASSIGNEE, item.id, DELIVERY)

        with pytest.raises(ForbiddenError) as exc_info:
            engine.approve_delivery(partner, item.id, ACCEPT)
        assert exc_info.value.reason == DenyReason.NOT_REVIEWER

        accepted = engine.approve_delivery(QA, item.id, ACCEPT)
        assert accepted.delivery_status == DeliveryStatus.ACCEPTED


class TestLifecycleByKind:
    @pytest.mark.parametrize(
        "kind,decision,expected",
        [
            (WorkItemKind.USER_STORY, ACCEPT, LifecycleStatus.ACCEPTED),
            (WorkItemKind.USER_STORY, REJECT, LifecycleStatus.TESTING),
            (WorkItemKind.TASK, ACCEPT, LifecycleStatus.COMPLETED),
            (WorkItemKind.TASK, REJECT, LifecycleStatus.TESTING),
        ],
    )
    def test_decision_moves_lifecycle(self, engine, kind, decision, expected):
        item = engine.register_work_item(
            make_work_item(kind=kind, lifecycle_status=LifecycleStatus.TESTING)
        )
        engine.submit_delivery(ASSIGNEE, item.id, DELIVERY)

        decided = engine.approve_delivery(REVIEWER, item.id, decision)
        assert decided.lifecycle_status == expected


def test_full_cycle(engine, work_item):
    """none -> pending -> rejected -> pending -> accepted."""
    engine.submit_delivery(ASSIGNEE, work_item.id, DELIVERY)
    engine.approve_delivery(REVIEWER, work_item.id, REJECT)
    engine.submit_delivery(
        OPS, work_item.id, DeliverySubmission(artifacts=["files/payments-1.1.zip"])
    )
    item = engine.approve_delivery(QA, work_item.id, ACCEPT)

    assert item.delivery_status == DeliveryStatus.ACCEPTED
    assert [(e.from_status, e.to_status) for e in item.history] == [
        ("none", "pending"),
        ("pending", "rejected"),
        ("rejected", "pending"),
        ("pending", "accepted"),
    ]
    assert [e.sequence for e in item.history] == [1, 2, 3, 4]
