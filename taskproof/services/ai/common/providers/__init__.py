"""Provider factory: returns the right provider instance or falls back to mock."""

from __future__ import annotations

import logging

from taskproof.core.config import Settings, get_settings

from .base import BaseProvider, ProviderResult
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = ["get_provider", "BaseProvider", "ProviderResult", "MockProvider"]


def get_provider(provider_name: str, settings: Settings | None = None) -> BaseProvider:
    """Return a provider instance for *provider_name*.

    If the requested provider is not in the allowlist, has no API key,
    or is unknown, we fall back to ``MockProvider``.
    """
    settings = settings or get_settings()
    name = provider_name.lower().strip()

    if name not in settings.ai_allowed_providers:
        logger.warning("Provider %r not in allowlist; falling back to mock", name)
        return MockProvider()

    if name == "mock":
        return MockProvider()

    if name == "gateway":
        if not settings.ai_gateway_api_key:
            logger.warning("AI_GATEWAY_API_KEY not set; falling back to mock")
            return MockProvider()
        from .gateway import GatewayProvider

        return GatewayProvider(api_key=settings.ai_gateway_api_key, url=settings.ai_gateway_url)

    if name == "openai":
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY not set; falling back to mock")
            return MockProvider()
        from .openai import OpenAIProvider

        return OpenAIProvider(api_key=settings.openai_api_key)

    logger.warning("Unknown provider %r; falling back to mock", name)
    return MockProvider()
