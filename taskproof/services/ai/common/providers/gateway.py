"""OpenAI-compatible chat-completions gateway (vision + tool calling)."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from taskproof.core.config import DEFAULT_GATEWAY_URL
from taskproof.core.errors import GatewayError

from .base import BaseProvider, ProviderResult

logger = logging.getLogger(__name__)


def _token_count(usage: dict[str, Any], key: str) -> int:
    value = usage.get(key)
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


class GatewayProvider(BaseProvider):
    name = "gateway"
    default_model = "google/gemini-3-pro-preview"

    def __init__(
        self,
        api_key: str,
        *,
        url: str = DEFAULT_GATEWAY_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._url = url
        self._transport = transport

    def _build_payload(
        self,
        messages: list[dict[str, Any]],
        *,
        tools: list[dict[str, Any]] | None,
        tool_choice: dict[str, Any] | None,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if tools:
            payload["tools"] = tools
        if tool_choice:
            payload["tool_choice"] = tool_choice
        return payload

    async def complete(
        self,
        messages: list[dict[str, Any]],
        *,
        tools: list[dict[str, Any]] | None = None,
        tool_choice: dict[str, Any] | None = None,
        model: str = "",
        temperature: float = 0.2,
        max_tokens: int = 1024,
        timeout_seconds: float = 60.0,
    ) -> ProviderResult:
        model = model or self.default_model
        payload = self._build_payload(
            messages,
            tools=tools,
            tool_choice=tool_choice,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        t0 = time.monotonic()

        try:
            async with httpx.AsyncClient(timeout=timeout_seconds, transport=self._transport) as client:
                resp = await client.post(
                    self._url,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as exc:
            logger.warning("%s request failed: %s", self.name, exc)
            raise GatewayError(f"Vision gateway error: {exc}") from exc

        if not resp.is_success:
            logger.warning("%s returned HTTP %s", self.name, resp.status_code)
            raise GatewayError(f"Vision gateway error: {resp.text}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise GatewayError(f"Vision gateway error: invalid JSON body: {resp.text[:200]}") from exc

        elapsed = (time.monotonic() - t0) * 1000
        if not isinstance(data, dict):
            data = {}
        choices = data.get("choices")
        first = choices[0] if isinstance(choices, list) and choices and isinstance(choices[0], dict) else {}
        message = first.get("message") if isinstance(first.get("message"), dict) else {}
        content = message.get("content")
        usage = data.get("usage") if isinstance(data.get("usage"), dict) else {}

        return ProviderResult(
            message=message,
            raw_text=content if isinstance(content, str) else "",
            model=data.get("model") or model,
            provider=self.name,
            prompt_tokens=_token_count(usage, "prompt_tokens"),
            completion_tokens=_token_count(usage, "completion_tokens"),
            latency_ms=round(elapsed, 2),
        )
