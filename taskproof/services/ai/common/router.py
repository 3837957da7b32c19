"""AI Router: resolves the vision provider + model from configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from taskproof.core.config import Settings, get_settings

from .providers import BaseProvider, MockProvider, get_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedConfig:
    """Final resolved provider + model."""

    provider: BaseProvider
    model: str
    temperature: float
    max_tokens: int
    timeout_seconds: float


def resolve(scope: str, settings: Settings | None = None) -> ResolvedConfig:
    """Resolve provider + model for a given *scope*.

    Only the ``"vision"`` scope is configured; any other scope resolves to
    the mock provider so a misrouted call can never reach a paid endpoint.
    """
    settings = settings or get_settings()

    if scope != "vision":
        logger.warning("No AI configuration for scope %r; using mock", scope)
        return ResolvedConfig(
            provider=MockProvider(),
            model="",
            temperature=settings.ai_temperature,
            max_tokens=settings.ai_max_tokens,
            timeout_seconds=settings.ai_vision_timeout_seconds,
        )

    provider = get_provider(settings.ai_vision_provider or "mock", settings)
    model = settings.ai_vision_model.strip() if provider.name != "mock" else ""

    return ResolvedConfig(
        provider=provider,
        model=model,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
        timeout_seconds=settings.ai_vision_timeout_seconds,
    )
