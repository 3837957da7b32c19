"""Vision scope contracts: the verification tool declaration and its result."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

VERIFY_TOOL_NAME = "verify_task_completion"

RATING_MIN = 0
RATING_MAX = 10

FALLBACK_RATING = 5
FALLBACK_FEEDBACK = "Verification completed"


class Relevance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


class Completeness(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    MINIMAL = "minimal"
    UNRELATED = "unrelated"


FALLBACK_RELEVANCE = Relevance.MEDIUM
FALLBACK_COMPLETENESS = Completeness.PARTIAL


class VerificationResult(BaseModel):
    """Normalized assessment of one proof image."""

    rating: int = Field(ge=RATING_MIN, le=RATING_MAX)
    feedback: str = Field(min_length=1)
    relevance: Relevance
    completeness: Completeness


VERIFIER_SYSTEM_PROMPT = (
    "You are a task completion verifier. Analyze the uploaded image and determine "
    "if it proves completion of the given task. Use the verify_task_completion "
    "function to return your assessment."
)

VERIFIER_USER_PROMPT = (
    "Verify if this image proves completion of the task.\n\n"
    "Task Title: {title}\n"
    "Task Description: {description}\n\n"
    "Rate how well this image demonstrates task completion on a scale of 0-10. Consider:\n"
    "- Is the image relevant to the task?\n"
    "- Does it show clear evidence of completion?\n"
    "- Is the work quality apparent from the image?"
)

NO_DESCRIPTION = "No description provided"

VERIFY_TOOL = {
    "type": "function",
    "function": {
        "name": VERIFY_TOOL_NAME,
        "description": "Verify task completion based on the uploaded image",
        "parameters": {
            "type": "object",
            "properties": {
                "rating": {
                    "type": "number",
                    "description": "Rating from 0-10 on how well the image proves task completion",
                },
                "feedback": {
                    "type": "string",
                    "description": "Detailed feedback about the verification",
                },
                "relevance": {
                    "type": "string",
                    "enum": [item.value for item in Relevance],
                    "description": "How relevant the image is to the task",
                },
                "completeness": {
                    "type": "string",
                    "enum": [item.value for item in Completeness],
                    "description": "Level of task completion shown",
                },
            },
            "required": ["rating", "feedback", "relevance", "completeness"],
        },
    },
}

VERIFY_TOOL_CHOICE = {"type": "function", "function": {"name": VERIFY_TOOL_NAME}}
