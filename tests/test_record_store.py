import unittest
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from taskproof.core.errors import DbError
from taskproof.models.verification import AuditLog, Base, TaskVerification
from taskproof.services.record_store import NewVerificationRecord, SqlRecordStore


def _record(**overrides) -> NewVerificationRecord:
    fields = {
        "user_id": "u-1",
        "task_id": "t1",
        "task_title": "Clean desk",
        "task_description": None,
        "image_path": "u-1/t1_1.jpg",
        "rating": 7,
        "feedback": "Looks done",
    }
    fields.update(overrides)
    return NewVerificationRecord(**fields)


class SqlRecordStoreTests(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine)
        self.db = self.SessionLocal()
        self.store = SqlRecordStore(self.db)

    def tearDown(self):
        self.db.close()
        Base.metadata.drop_all(self.engine)
        self.engine.dispose()

    def test_insert_writes_record_and_audit_entry(self):
        row = self.store.insert(
            _record(),
            audit_output={"rating": 7},
            audit_metadata={"scope": "vision", "provider": "mock"},
        )

        self.assertIsInstance(row.id, uuid.UUID)
        stored = self.db.query(TaskVerification).one()
        self.assertEqual(stored.ai_rating, 7)
        self.assertEqual(stored.image_path, "u-1/t1_1.jpg")
        self.assertIsNotNone(stored.created_at)

        log = self.db.query(AuditLog).one()
        self.assertEqual(log.entity_type, "task_verification")
        self.assertEqual(log.entity_id, row.id)
        self.assertEqual(log.action, "AI_TASK_PROOF_VERIFIED")
        self.assertEqual(log.actor_type, "USER")
        self.assertEqual(log.actor_id, "u-1")
        self.assertEqual(log.new_value, {"rating": 7})
        self.assertEqual(log.audit_meta["provider"], "mock")

    def test_insert_without_audit_metadata_skips_audit(self):
        self.store.insert(_record())
        self.assertEqual(self.db.query(AuditLog).count(), 0)

    def test_insert_failure_raises_db_error_and_leaves_nothing(self):
        with patch.object(self.db, "flush", side_effect=OperationalError("INSERT", {}, Exception("disk full"))):
            with self.assertRaises(DbError) as ctx:
                self.store.insert(_record(), audit_metadata={"scope": "vision"})

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertTrue(ctx.exception.message.startswith("DB insert failed"))
        self.assertEqual(self.db.query(TaskVerification).count(), 0)
        self.assertEqual(self.db.query(AuditLog).count(), 0)

    def test_list_is_scoped_to_user_and_newest_first(self):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        for offset, (user, task) in enumerate([("u-1", "t1"), ("u-1", "t2"), ("u-2", "t1"), ("u-1", "t1")]):
            self.db.add(
                TaskVerification(
                    user_id=user,
                    task_id=task,
                    task_title="Task",
                    image_path=f"{user}/{task}_{offset}.jpg",
                    ai_rating=offset,
                    ai_feedback="ok",
                    created_at=base + timedelta(minutes=offset),
                )
            )
        self.db.commit()

        rows = self.store.list_for_user("u-1")
        self.assertEqual([row.ai_rating for row in rows], [3, 1, 0])

        rows = self.store.list_for_user("u-1", task_id="t1")
        self.assertEqual([row.ai_rating for row in rows], [3, 0])

        rows = self.store.list_for_user("u-1", limit=1)
        self.assertEqual(len(rows), 1)

    def test_summary_averages_ratings(self):
        for rating in (7, 8, 8):
            self.store.insert(_record(rating=rating))
        self.store.insert(_record(user_id="u-2", rating=1))

        self.assertEqual(self.store.summary_for_user("u-1"), (7.7, 3))
        self.assertEqual(self.store.summary_for_user("nobody"), (0.0, 0))


if __name__ == "__main__":
    unittest.main()
