"""ORM models: the verification history and the audit trail of model runs."""

import uuid

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Index,
    SmallInteger,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSON_TYPE = JSON().with_variant(JSONB, "postgresql")


def _uuid_primary_key() -> Column:
    return Column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )


class TaskVerification(Base):
    """One AI verification of a proof photo. Rows are append-only."""

    __tablename__ = "task_verifications"
    __table_args__ = (
        CheckConstraint("ai_rating >= 0 AND ai_rating <= 10", name="chk_task_verification_rating"),
        Index("idx_task_verifications_user_task", "user_id", "task_id"),
    )

    id = _uuid_primary_key()
    user_id = Column(String(64), nullable=False)
    task_id = Column(String(128), nullable=False)
    task_title = Column(Text, nullable=False)
    task_description = Column(Text)
    image_path = Column(Text, nullable=False)
    ai_rating = Column(SmallInteger, nullable=False)
    ai_feedback = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now(), server_default=func.now(), nullable=False)


class AuditLog(Base):
    __tablename__ = "audit_logs"
    __table_args__ = (Index("idx_audit_logs_entity", "entity_type", "entity_id"),)

    id = _uuid_primary_key()
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(Uuid(as_uuid=True), nullable=False)
    action = Column(String(64), nullable=False)
    new_value = Column(JSON_TYPE)
    actor_type = Column(String(50), nullable=False)
    actor_id = Column(String(64))
    # "metadata" is reserved on declarative classes.
    audit_meta = Column("metadata", JSON_TYPE, nullable=True)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
