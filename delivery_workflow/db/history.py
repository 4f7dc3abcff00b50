"""
Work-item history recorder.

Appends audit entries co-transactionally with the work-item mutation that
caused them. The recorder only adds rows to the caller's session; the
caller's commit makes the entry and the mutation visible together, and a
rollback discards both.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..workflow.errors import StoreUnavailableError
from ..workflow.primitives import generate_ulid
from ..workflow.schemas import HistoryEntry
from .models import WorkItemHistoryModel


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class HistoryRecorder:
    """Append-only writer and reader for ``work_item_history``.

    Usage:
        recorder = HistoryRecorder(db_session)
        recorder.record(item.id, HistoryEntry(actor_id="u1", action_type="delivered", ...))
        db_session.commit()
    """

    def __init__(self, db: Session):
        self.db = db

    def _last_entry(self, work_item_id: str) -> Optional[WorkItemHistoryModel]:
        # The caller's pending UPDATE must reach the database only on commit.
        with self.db.no_autoflush:
            return (
                self.db.query(WorkItemHistoryModel)
                .filter(WorkItemHistoryModel.work_item_id == work_item_id)
                .order_by(desc(WorkItemHistoryModel.sequence))
                .first()
            )

    def record(self, work_item_id: str, entry: HistoryEntry) -> WorkItemHistoryModel:
        """Stage ``entry`` as the next history row of ``work_item_id``.

        The entry is assigned the next sequence number and a timestamp no
        earlier than the previous entry's, so the history stays ordered by
        both. Nothing is committed here.

        Args:
            work_item_id: ID of the work item the entry belongs to
            entry: The entry to append; id and sequence are assigned here

        Returns:
            The staged WorkItemHistoryModel
        """
        last = self._last_entry(work_item_id)
        sequence = 1
        timestamp = _as_utc(entry.timestamp)
        if last is not None:
            sequence = last.sequence + 1
            timestamp = max(timestamp, _as_utc(last.timestamp))

        row = WorkItemHistoryModel(
            id=generate_ulid(),
            work_item_id=work_item_id,
            sequence=sequence,
            timestamp=timestamp,
            actor_id=entry.actor_id,
            action_type=entry.action_type.value,
            from_status=entry.from_status,
            to_status=entry.to_status,
            note=entry.note,
        )
        self.db.add(row)
        return row

    def list_for_work_item(
        self,
        work_item_id: str,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[HistoryEntry]:
        """Get the history of a work item, oldest first.

        Raises:
            StoreUnavailableError: The history could not be read
        """
        query = (
            self.db.query(WorkItemHistoryModel)
            .filter(WorkItemHistoryModel.work_item_id == work_item_id)
            .order_by(WorkItemHistoryModel.sequence)
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)

        try:
            rows = query.all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError(
                f"Could not read history of work item {work_item_id}"
            ) from e
        return [HistoryEntry.model_validate(row) for row in rows]
