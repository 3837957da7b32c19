"""Proof verification: validate, store the image, ask the vision model, record.

One call is one transaction with strictly sequential effects and no
compensation. A failure after the upload leaves the stored image in
place (an orphan with no record); the caller still receives the error.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from taskproof.core.auth import CurrentUser
from taskproof.core.config import Settings
from taskproof.core.errors import BadRequest, DbError, GatewayError, StorageError
from taskproof.core.storage import ObjectStore, build_proof_path
from taskproof.services.ai.common.audit import build_ai_run_metadata
from taskproof.services.ai.common.router import ResolvedConfig
from taskproof.services.ai.vision.contracts import (
    VERIFIER_SYSTEM_PROMPT,
    VERIFY_TOOL,
    VERIFY_TOOL_CHOICE,
    VerificationResult,
)
from taskproof.services.ai.vision.service import build_messages, build_user_prompt, extract_verification
from taskproof.services.record_store import NewVerificationRecord, RecordStore
from taskproof.utils.alerting import FailureAlertTracker, alert_tracker

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class ProofSubmission:
    """Raw form input; any field may be missing."""

    task_id: Optional[str] = None
    task_title: Optional[str] = None
    task_description: Optional[str] = None
    image_filename: Optional[str] = None
    image_content: Optional[bytes] = None
    image_content_type: Optional[str] = None
    has_image: bool = False


@dataclass(frozen=True)
class ValidatedProof:
    task_id: str
    task_title: str
    task_description: Optional[str]
    filename: Optional[str]
    content: bytes
    mime_type: str


@dataclass(frozen=True)
class VerificationOutcome:
    record_id: str
    result: VerificationResult
    image_path: str


class VerificationService:
    def __init__(
        self,
        settings: Settings,
        *,
        object_store: ObjectStore,
        gateway: ResolvedConfig,
        records: RecordStore,
        clock: Callable[[], int] = epoch_millis,
        alerts: FailureAlertTracker = alert_tracker,
    ) -> None:
        self.settings = settings
        self.object_store = object_store
        self.gateway = gateway
        self.records = records
        self.clock = clock
        self.alerts = alerts

    def validate(self, submission: ProofSubmission) -> ValidatedProof:
        task_id = (submission.task_id or "").strip()
        task_title = (submission.task_title or "").strip()
        if not submission.has_image or not task_id or not task_title:
            raise BadRequest("Missing required fields: image, taskId, taskTitle")
        if "/" in task_id:
            raise BadRequest("taskId must not contain '/'")

        content = submission.image_content or b""
        if not content:
            raise BadRequest("Image is empty")
        if len(content) > self.settings.proof_max_bytes:
            raise BadRequest(f"Image exceeds {self.settings.proof_max_bytes} bytes")

        content_type = (submission.image_content_type or "").strip()
        if content_type and not content_type.lower().startswith("image/"):
            raise BadRequest("File must be an image")

        description = (submission.task_description or "").strip() or None
        return ValidatedProof(
            task_id=task_id,
            task_title=task_title,
            task_description=description,
            filename=submission.image_filename,
            content=content,
            mime_type=content_type or DEFAULT_MIME_TYPE,
        )

    def store_image(self, user: CurrentUser, proof: ValidatedProof) -> str:
        path = build_proof_path(user.id, proof.task_id, proof.filename, self.clock())
        try:
            self.object_store.upload(path, proof.content, proof.mime_type)
        except StorageError:
            self.alerts.record("PROOF_STORAGE_FAILED", {"user_id": user.id, "task_id": proof.task_id})
            raise
        return path

    async def verify(self, user: CurrentUser, submission: ProofSubmission) -> VerificationOutcome:
        proof = self.validate(submission)
        image_path = self.store_image(user, proof)

        messages = build_messages(
            proof.task_title,
            proof.task_description,
            mime_type=proof.mime_type,
            content=proof.content,
        )
        try:
            provider_result = await self.gateway.provider.complete(
                messages,
                tools=[VERIFY_TOOL],
                tool_choice=VERIFY_TOOL_CHOICE,
                model=self.gateway.model,
                temperature=self.gateway.temperature,
                max_tokens=self.gateway.max_tokens,
                timeout_seconds=self.gateway.timeout_seconds,
            )
        except GatewayError:
            self.alerts.record("VISION_GATEWAY_FAILED", {"image_path": image_path})
            logger.warning("Vision call failed; proof %s stored without a record", image_path)
            raise

        result = extract_verification(provider_result.message)

        prompt_text = f"{VERIFIER_SYSTEM_PROMPT}\n\n{build_user_prompt(proof.task_title, proof.task_description)}"
        audit_metadata = build_ai_run_metadata(
            self.settings,
            scope="vision",
            provider_result=provider_result,
            prompt_text=prompt_text,
            extra_meta={"task_id": proof.task_id, "image_path": image_path},
        )
        try:
            row = self.records.insert(
                NewVerificationRecord(
                    user_id=user.id,
                    task_id=proof.task_id,
                    task_title=proof.task_title,
                    task_description=proof.task_description,
                    image_path=image_path,
                    rating=result.rating,
                    feedback=result.feedback,
                ),
                audit_output=result.model_dump(mode="json"),
                audit_metadata=audit_metadata,
            )
        except DbError:
            self.alerts.record("VERIFICATION_DB_FAILED", {"image_path": image_path})
            logger.warning("Verification record not written; proof %s is orphaned", image_path)
            raise

        logger.info(
            "Verified proof user=%s task=%s rating=%s path=%s",
            user.id,
            proof.task_id,
            result.rating,
            image_path,
        )
        return VerificationOutcome(record_id=str(row.id), result=result, image_path=image_path)
