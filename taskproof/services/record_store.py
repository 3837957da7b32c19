import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from taskproof.core.errors import DbError
from taskproof.models.verification import TaskVerification
from taskproof.services.ai.common.audit import log_ai_run

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 200


@dataclass(frozen=True)
class NewVerificationRecord:
    user_id: str
    task_id: str
    task_title: str
    task_description: Optional[str]
    image_path: str
    rating: int
    feedback: str


class RecordStore(Protocol):
    def insert(
        self,
        record: NewVerificationRecord,
        *,
        audit_output: Optional[dict[str, Any]] = None,
        audit_metadata: Optional[dict[str, Any]] = None,
    ) -> TaskVerification:
        """Append one verification record; raises ``DbError`` on failure."""


class SqlRecordStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def insert(
        self,
        record: NewVerificationRecord,
        *,
        audit_output: Optional[dict[str, Any]] = None,
        audit_metadata: Optional[dict[str, Any]] = None,
    ) -> TaskVerification:
        row = TaskVerification(
            user_id=record.user_id,
            task_id=record.task_id,
            task_title=record.task_title,
            task_description=record.task_description,
            image_path=record.image_path,
            ai_rating=record.rating,
            ai_feedback=record.feedback,
        )
        try:
            self.db.add(row)
            self.db.flush()
            if audit_metadata is not None:
                log_ai_run(
                    self.db,
                    entity_id=row.id,
                    actor_id=record.user_id,
                    parsed_output=audit_output,
                    metadata=audit_metadata,
                )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Verification insert failed for task=%s", record.task_id, exc_info=True)
            raise DbError(f"DB insert failed: {exc.__class__.__name__}") from exc
        return row

    def list_for_user(
        self,
        user_id: str,
        *,
        task_id: Optional[str] = None,
        limit: int = 50,
    ) -> list[TaskVerification]:
        limit = max(1, min(int(limit), MAX_LIST_LIMIT))
        stmt = select(TaskVerification).where(TaskVerification.user_id == user_id)
        if task_id:
            stmt = stmt.where(TaskVerification.task_id == task_id)
        stmt = stmt.order_by(TaskVerification.created_at.desc()).limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def summary_for_user(self, user_id: str) -> tuple[float, int]:
        """Average rating and number of verifications; ``(0.0, 0)`` when there are none."""
        avg, count = self.db.execute(
            select(func.avg(TaskVerification.ai_rating), func.count(TaskVerification.id)).where(
                TaskVerification.user_id == user_id
            )
        ).one()
        if not count:
            return 0.0, 0
        return round(float(avg), 1), int(count)
