"""Client-side proof capture: validation and preview of one chosen image."""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Optional

from taskproof.core.config import PROOF_MAX_BYTES

logger = logging.getLogger(__name__)


class ProofRejected(ValueError):
    """The chosen file cannot be used as proof; ``reason`` is user-facing."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class ProofImage:
    filename: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


def validate_proof(
    filename: str,
    content: bytes,
    content_type: Optional[str],
    *,
    max_bytes: int = PROOF_MAX_BYTES,
) -> ProofImage:
    if not content_type or not content_type.lower().startswith("image/"):
        raise ProofRejected(f"Only image files can be used as proof (got {content_type or 'unknown type'})")
    if not content:
        raise ProofRejected("The selected image is empty")
    if len(content) > max_bytes:
        raise ProofRejected(f"Image is too large ({len(content)} bytes, max {max_bytes})")
    return ProofImage(filename=filename, content=content, content_type=content_type)


def to_data_url(image: ProofImage) -> str:
    encoded = base64.b64encode(image.content).decode("ascii")
    return f"data:{image.content_type};base64,{encoded}"


class ProofCapture:
    """Holds at most one selected image and its preview."""

    def __init__(self, *, max_bytes: int = PROOF_MAX_BYTES) -> None:
        self.max_bytes = max_bytes
        self.image: Optional[ProofImage] = None
        self.preview: Optional[str] = None
        self._preview_task: Optional[asyncio.Task] = None

    def select(self, filename: str, content: bytes, content_type: Optional[str]) -> ProofImage:
        """Accept a new selection, replacing the current one.

        Raises ``ProofRejected`` and keeps the current selection when the
        file is not an image or is too large. When called inside a running
        event loop the preview is rendered in the background.
        """
        image = validate_proof(filename, content, content_type, max_bytes=self.max_bytes)
        self._cancel_preview()
        self.image = image
        self.preview = None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            self._preview_task = loop.create_task(self._render_preview(image))
        return image

    async def _render_preview(self, image: ProofImage) -> str:
        preview = await asyncio.to_thread(to_data_url, image)
        # A newer selection may have replaced this one meanwhile.
        if self.image is image:
            self.preview = preview
        return preview

    async def wait_preview(self) -> Optional[str]:
        if self.image is None:
            return None
        if self.preview is not None:
            return self.preview
        if self._preview_task is None:
            self._preview_task = asyncio.create_task(self._render_preview(self.image))
        await self._preview_task
        return self.preview

    def clear(self) -> None:
        self._cancel_preview()
        self.image = None
        self.preview = None

    def _cancel_preview(self) -> None:
        if self._preview_task is not None and not self._preview_task.done():
            self._preview_task.cancel()
        self._preview_task = None
