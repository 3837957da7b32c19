from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from taskproof.core.auth import CurrentUser, get_current_user
from taskproof.core.config import get_settings
from taskproof.core.dependencies import get_db
from taskproof.core.storage import SupabaseObjectStore
from taskproof.models.verification import TaskVerification
from taskproof.schemas.verification import (
    ErrorResponse,
    TaskVerificationListResponse,
    TaskVerificationOut,
    VerificationOut,
    VerificationSummary,
    VerifyTaskProofResponse,
)
from taskproof.services.ai.common import router as ai_router
from taskproof.services.record_store import MAX_LIST_LIMIT, SqlRecordStore
from taskproof.services.verification_service import ProofSubmission, VerificationService
from taskproof.utils.rate_limit import rate_limiter

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


def get_verification_service(db: Session = Depends(get_db)) -> VerificationService:
    settings = get_settings()
    return VerificationService(
        settings,
        object_store=SupabaseObjectStore(settings),
        gateway=ai_router.resolve("vision", settings),
        records=SqlRecordStore(db),
    )


def enforce_verify_rate_limit(current_user: CurrentUser = Depends(get_current_user)) -> None:
    settings = get_settings()
    if not settings.rate_limit_verify_enabled:
        return
    decision = rate_limiter.hit(f"verify:{current_user.id}", settings.rate_limit_verify_per_min, 60)
    if not decision.allowed:
        raise HTTPException(429, "Too Many Requests", headers={"Retry-After": str(decision.retry_after)})


def _verification_to_out(row: TaskVerification) -> TaskVerificationOut:
    return TaskVerificationOut(
        id=str(row.id),
        task_id=row.task_id,
        task_title=row.task_title,
        task_description=row.task_description,
        image_path=row.image_path,
        rating=row.ai_rating,
        feedback=row.ai_feedback,
        created_at=row.created_at,
    )


@router.options("/verify-task-proof", include_in_schema=False)
async def verify_task_proof_preflight() -> Response:
    return Response(status_code=200)


@router.post(
    "/verify-task-proof",
    response_model=VerifyTaskProofResponse,
    responses=ERROR_RESPONSES,
    summary="Verify a task-completion photo with the vision model",
)
async def verify_task_proof(
    current_user: CurrentUser = Depends(get_current_user),
    _rate_limit: None = Depends(enforce_verify_rate_limit),
    service: VerificationService = Depends(get_verification_service),
    image: Optional[UploadFile] = File(None),
    task_id: Optional[str] = Form(None, alias="taskId"),
    task_title: Optional[str] = Form(None, alias="taskTitle"),
    task_description: Optional[str] = Form(None, alias="taskDescription"),
):
    content = await image.read() if image is not None else None
    submission = ProofSubmission(
        task_id=task_id,
        task_title=task_title,
        task_description=task_description,
        image_filename=image.filename if image is not None else None,
        image_content=content,
        image_content_type=image.content_type if image is not None else None,
        has_image=image is not None,
    )

    outcome = await service.verify(current_user, submission)

    return VerifyTaskProofResponse(
        success=True,
        verification=VerificationOut(
            id=outcome.record_id,
            rating=outcome.result.rating,
            feedback=outcome.result.feedback,
            relevance=outcome.result.relevance,
            completeness=outcome.result.completeness,
            image_path=outcome.image_path,
        ),
    )


@router.get(
    "/task-verifications",
    response_model=TaskVerificationListResponse,
    responses=ERROR_RESPONSES,
)
def list_task_verifications(
    task_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=MAX_LIST_LIMIT),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rows = SqlRecordStore(db).list_for_user(current_user.id, task_id=task_id, limit=limit)
    return TaskVerificationListResponse(items=[_verification_to_out(row) for row in rows])


@router.get(
    "/task-verifications/summary",
    response_model=VerificationSummary,
    responses=ERROR_RESPONSES,
)
def task_verification_summary(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    average, count = SqlRecordStore(db).summary_for_user(current_user.id)
    return VerificationSummary(average=average, count=count)
