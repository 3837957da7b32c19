"""Mock provider: deterministic tool call for tests and fallback."""

from __future__ import annotations

import json
import time
from typing import Any

from .base import BaseProvider, ProviderResult

MOCK_ARGUMENTS = {
    "rating": 7,
    "feedback": "Mock verification: the image appears related to the task.",
    "relevance": "medium",
    "completeness": "partial",
}


class MockProvider(BaseProvider):
    name = "mock"

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
        t0 = time.monotonic()
        message: dict[str, Any] = {"role": "assistant", "content": ""}
        if tool_choice:
            function_name = tool_choice.get("function", {}).get("name", "")
            message["tool_calls"] = [
                {
                    "id": "call_mock",
                    "type": "function",
                    "function": {"name": function_name, "arguments": json.dumps(MOCK_ARGUMENTS)},
                }
            ]
        else:
            message["content"] = MOCK_ARGUMENTS["feedback"]
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            message=message,
            raw_text=message["content"],
            model=model or "mock-vision-v1",
            provider=self.name,
            prompt_tokens=len(messages),
            completion_tokens=0,
            latency_ms=round(elapsed, 2),
        )
