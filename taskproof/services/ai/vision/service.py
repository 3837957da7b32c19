"""Building the verification request and reading the model's answer.

The model is forced to call ``verify_task_completion``, but the answer is
still treated as untrusted input:

* tool arguments may arrive as a JSON string or as an already-decoded
  object; both are resolved here, once, into a plain dict;
* a missing or unreadable tool call degrades to a neutral result built
  from the assistant's free text instead of failing the request;
* every field is re-validated, and the rating is rounded then clamped to
  ``[0, 10]`` no matter where it came from.
"""

from __future__ import annotations

import base64
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional, Union

from ..common.json_tools import extract_json_object
from .contracts import (
    FALLBACK_COMPLETENESS,
    FALLBACK_FEEDBACK,
    FALLBACK_RATING,
    FALLBACK_RELEVANCE,
    NO_DESCRIPTION,
    RATING_MAX,
    RATING_MIN,
    VERIFIER_SYSTEM_PROMPT,
    VERIFIER_USER_PROMPT,
    Completeness,
    Relevance,
    VerificationResult,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JsonTextArguments:
    """Tool arguments delivered as a JSON document in a string."""

    text: str


@dataclass(frozen=True)
class StructuredArguments:
    """Tool arguments delivered as an already-decoded object."""

    value: dict[str, Any]


ToolArguments = Union[JsonTextArguments, StructuredArguments]


def build_user_prompt(title: str, description: Optional[str]) -> str:
    return VERIFIER_USER_PROMPT.format(title=title, description=description or NO_DESCRIPTION)


def image_data_url(content: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def build_messages(
    title: str,
    description: Optional[str],
    *,
    mime_type: str,
    content: bytes,
) -> list[dict[str, Any]]:
    return [
        {"role": "system", "content": VERIFIER_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": build_user_prompt(title, description)},
                {"type": "image_url", "image_url": {"url": image_data_url(content, mime_type)}},
            ],
        },
    ]


def read_tool_arguments(message: dict[str, Any]) -> Optional[ToolArguments]:
    """Return the first tool call's arguments, or ``None`` when there are none."""
    tool_calls = message.get("tool_calls") or []
    if not isinstance(tool_calls, list) or not tool_calls:
        return None
    first = tool_calls[0] if isinstance(tool_calls[0], dict) else {}
    function = first.get("function") or {}
    if not isinstance(function, dict):
        return None
    arguments = function.get("arguments")
    if isinstance(arguments, str):
        return JsonTextArguments(arguments) if arguments.strip() else None
    if isinstance(arguments, dict):
        return StructuredArguments(arguments)
    return None


def resolve_arguments(arguments: ToolArguments) -> Optional[dict[str, Any]]:
    if isinstance(arguments, StructuredArguments):
        return dict(arguments.value)
    parsed = extract_json_object(arguments.text)
    if parsed is None:
        logger.warning("Tool arguments are not a JSON object; using fallback result")
    return parsed


def normalize_rating(value: Any) -> int:
    """Round half up (as the client does) and clamp to ``[0, 10]``."""
    try:
        rating = float(value)
    except (TypeError, ValueError):
        rating = float(FALLBACK_RATING)
    if math.isnan(rating):
        rating = float(FALLBACK_RATING)
    if math.isinf(rating):
        return RATING_MAX if rating > 0 else RATING_MIN
    return max(RATING_MIN, min(RATING_MAX, math.floor(rating + 0.5)))


def _coerce_choice(value: Any, enum_cls, fallback):
    if not isinstance(value, str):
        return fallback
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return fallback


def _coerce_feedback(value: Any) -> str:
    if value is None:
        return FALLBACK_FEEDBACK
    text = value if isinstance(value, str) else str(value)
    return text.strip() or FALLBACK_FEEDBACK


def coerce_result(payload: dict[str, Any]) -> VerificationResult:
    return VerificationResult(
        rating=normalize_rating(payload.get("rating")),
        feedback=_coerce_feedback(payload.get("feedback")),
        relevance=_coerce_choice(payload.get("relevance"), Relevance, FALLBACK_RELEVANCE),
        completeness=_coerce_choice(payload.get("completeness"), Completeness, FALLBACK_COMPLETENESS),
    )


def fallback_result(content: Any) -> VerificationResult:
    feedback = content if isinstance(content, str) and content.strip() else FALLBACK_FEEDBACK
    return VerificationResult(
        rating=normalize_rating(FALLBACK_RATING),
        feedback=feedback,
        relevance=FALLBACK_RELEVANCE,
        completeness=FALLBACK_COMPLETENESS,
    )


def extract_verification(message: dict[str, Any]) -> VerificationResult:
    arguments = read_tool_arguments(message)
    payload = resolve_arguments(arguments) if arguments is not None else None
    if not payload:
        logger.info("No structured verification in model output; degrading to default result")
        return fallback_result(message.get("content"))
    return coerce_result(payload)
