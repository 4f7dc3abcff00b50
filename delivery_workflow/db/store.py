"""
Work-item store adapter.

Owns every read and write of ``work_items`` on behalf of the engine and maps
storage failures onto the workflow error taxonomy. Reads always go to the
database (``populate_existing``); nothing is cached across requests.
"""

from contextlib import contextmanager
from typing import Iterator, List, Optional

import structlog
from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..workflow.enums import DeliveryStatus, LifecycleStatus
from ..workflow.errors import ConflictError, InvalidInputError, StoreUnavailableError
from ..workflow.primitives import generate_ulid, utc_now
from ..workflow.schemas import WorkItem, WorkItemCreate
from ..workflow.state_machine import (
    ENGINE_OWNED_LIFECYCLE,
    LIFECYCLE_VOCABULARY,
    initial_lifecycle,
)
from .models import WorkItemModel

logger = structlog.get_logger(__name__)


class WorkItemStore:
    """Transactional access to work items for one request-scoped session."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, work_item: WorkItemCreate, item_id: Optional[str] = None) -> WorkItem:
        """Register a new work item with ``delivery_status = none``."""
        lifecycle = work_item.lifecycle_status or initial_lifecycle(work_item.kind)
        if lifecycle not in LIFECYCLE_VOCABULARY[work_item.kind]:
            raise InvalidInputError(
                f"Status '{lifecycle.value}' is not valid for a {work_item.kind.value}"
            )
        if lifecycle in ENGINE_OWNED_LIFECYCLE:
            raise InvalidInputError(
                f"Status '{lifecycle.value}' is set by the delivery approval flow"
            )

        now = utc_now()
        model = WorkItemModel(
            id=item_id or generate_ulid(),
            kind=work_item.kind.value,
            title=work_item.title,
            lifecycle_status=lifecycle.value,
            delivery_status=DeliveryStatus.NONE.value,
            assignee_id=work_item.assignee_id,
            operations_contact_id=work_item.operations_contact_id,
            reviewer_id=work_item.reviewer_id,
            qa_id=work_item.qa_id,
            delivery_source=work_item.delivery_source.value,
            partner_id=work_item.partner_id,
            delivery_artifacts=[],
            created_at=now,
            updated_at=now,
        )
        with self.transaction(model.id):
            self.db.add(model)
        return self.project(model)

    def load(self, work_item_id: str) -> Optional[WorkItemModel]:
        """Read the current row for ``work_item_id`` (or None)."""
        try:
            return (
                self.db.query(WorkItemModel)
                .filter(WorkItemModel.id == work_item_id)
                .populate_existing()
                .first()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("store_read_failed", work_item_id=work_item_id, error=str(e))
            raise StoreUnavailableError(f"Could not read work item {work_item_id}") from e

    def get(self, work_item_id: str) -> Optional[WorkItem]:
        """Read-only projection of a work item (or None)."""
        model = self.load(work_item_id)
        return self.project(model) if model is not None else None

    def list(
        self,
        kind: Optional[str] = None,
        delivery_status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[WorkItem]:
        """List work items with optional filtering."""
        query = self.db.query(WorkItemModel)

        if kind:
            query = query.filter(WorkItemModel.kind == kind)
        if delivery_status:
            query = query.filter(WorkItemModel.delivery_status == delivery_status)

        try:
            rows = (
                query.order_by(desc(WorkItemModel.created_at))
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError("Could not list work items") from e
        return [self.project(row) for row in rows]

    @contextmanager
    def transaction(self, work_item_id: str) -> Iterator[None]:
        """Apply a mutation and its history entry as one commit.

        Everything done inside the block, including history lookups, is
        committed on exit. The UPDATE is conditioned on the version read
        earlier; if another transaction committed first, nothing is written.
        Any failure rolls the session back.

        Usage:
            with store.transaction(model.id):
                model.delivery_status = "pending"
                recorder.record(model.id, entry)

        Raises:
            ConflictError: The row changed since it was read
            StoreUnavailableError: Any other storage failure
        """
        try:
            yield
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            logger.warning("store_conflict", work_item_id=work_item_id)
            raise ConflictError(work_item_id) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("store_write_failed", work_item_id=work_item_id, error=str(e))
            raise StoreUnavailableError(f"Could not write work item {work_item_id}") from e
        except Exception:
            self.db.rollback()
            raise

    def project(self, model: WorkItemModel) -> WorkItem:
        """Build the engine-facing projection of a loaded row."""
        try:
            return WorkItem.model_validate(model)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError(f"Could not read work item {model.id}") from e


def lifecycle_of(model: WorkItemModel) -> LifecycleStatus:
    return LifecycleStatus(model.lifecycle_status)


def delivery_status_of(model: WorkItemModel) -> DeliveryStatus:
    return DeliveryStatus(model.delivery_status)
