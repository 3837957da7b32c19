from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from taskproof.services.ai.vision.contracts import Completeness, Relevance


class VerificationOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    rating: int = Field(ge=0, le=10)
    feedback: str
    relevance: Relevance
    completeness: Completeness
    image_path: str = Field(alias="imagePath")


class VerifyTaskProofResponse(BaseModel):
    success: bool = True
    verification: VerificationOut


class ErrorResponse(BaseModel):
    error: str


class TaskVerificationOut(BaseModel):
    id: str
    task_id: str
    task_title: str
    task_description: Optional[str] = None
    image_path: str
    rating: int
    feedback: str
    created_at: Optional[datetime] = None


class TaskVerificationListResponse(BaseModel):
    items: List[TaskVerificationOut]


class VerificationSummary(BaseModel):
    average: float
    count: int
