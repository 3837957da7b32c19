"""OpenAI provider."""

from __future__ import annotations

import httpx

from .gateway import GatewayProvider

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class OpenAIProvider(GatewayProvider):
    name = "openai"
    default_model = "gpt-4o-mini-2024-07-18"

    def __init__(self, api_key: str, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        super().__init__(api_key, url=OPENAI_CHAT_URL, transport=transport)
