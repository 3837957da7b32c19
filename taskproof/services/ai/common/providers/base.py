"""Abstract base for vision gateway providers."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider.

    ``message`` is the first choice's assistant message exactly as the
    gateway returned it (``content`` and, when the model used a tool,
    ``tool_calls``).
    """

    message: dict[str, Any] = field(default_factory=dict)
    raw_text: str = ""
    model: str = ""
    provider: str = ""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0


class BaseProvider(abc.ABC):
    """Contract that every vision provider must implement."""

    name: str = "base"

    @abc.abstractmethod
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
        """Send a chat-completion request and return a ``ProviderResult``."""
