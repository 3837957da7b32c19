"""Audit trail for model runs, stored in ``audit_logs`` next to the record they produced."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from sqlalchemy.orm import Session

from taskproof.core.config import Settings
from taskproof.models.verification import AuditLog

from .providers.base import ProviderResult

logger = logging.getLogger(__name__)

AUDIT_ENTITY_TYPE = "task_verification"
SCOPE_ACTIONS: dict[str, str] = {
    "vision": "AI_TASK_PROOF_VERIFIED",
}


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def build_ai_run_metadata(
    settings: Settings,
    *,
    scope: str,
    provider_result: ProviderResult,
    prompt_text: str,
    extra_meta: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Describe one model run.

    The prompt is never stored (the image travels inside it); prompt and
    response are kept as SHA-256 digests. ``AI_DEBUG_STORE_RAW=true`` adds
    the raw response text.
    """
    metadata: dict[str, Any] = {
        "scope": scope,
        "provider": provider_result.provider,
        "model": provider_result.model,
        "prompt_tokens": provider_result.prompt_tokens,
        "completion_tokens": provider_result.completion_tokens,
        "latency_ms": provider_result.latency_ms,
        "prompt_hash": _sha256(prompt_text),
        "response_hash": _sha256(provider_result.raw_text),
    }
    if settings.ai_debug_store_raw:
        metadata["response_raw"] = provider_result.raw_text
    metadata.update(extra_meta or {})
    return metadata


def log_ai_run(
    db: Session,
    *,
    entity_id: Any,
    actor_id: str | None,
    parsed_output: dict[str, Any] | None,
    metadata: dict[str, Any],
) -> AuditLog:
    """Stage an audit row on *db*; committing is up to the caller."""
    entry = AuditLog(
        entity_type=AUDIT_ENTITY_TYPE,
        entity_id=entity_id,
        action=SCOPE_ACTIONS.get(metadata.get("scope", ""), "AI_RUN"),
        new_value=parsed_output,
        actor_type="USER" if actor_id else "SYSTEM",
        actor_id=actor_id,
        audit_meta=metadata,
    )
    db.add(entry)
    logger.debug("Staged %s audit entry for %s", entry.action, entity_id)
    return entry
