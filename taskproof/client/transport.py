"""HTTP client for the verify-task-proof endpoint.

``progress`` is a synthetic estimate that creeps towards 90 while the
request is in flight and jumps to 100 on success. It is not tied to bytes
transferred.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from taskproof.schemas.verification import VerificationOut

from .capture import ProofImage

logger = logging.getLogger(__name__)

PROGRESS_START = 10
PROGRESS_CEILING = 90
PROGRESS_STEP = 10


@dataclass(frozen=True)
class TaskRef:
    id: str
    title: str
    description: Optional[str] = None


class VerificationClient:
    def __init__(
        self,
        endpoint_url: str,
        access_token: str,
        *,
        timeout_seconds: float = 120.0,
        tick_seconds: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint_url = endpoint_url
        self.access_token = access_token
        self.timeout_seconds = timeout_seconds
        self.tick_seconds = tick_seconds
        self._transport = transport
        self.is_verifying = False
        self.progress = 0

    async def _tick(self) -> None:
        while self.progress < PROGRESS_CEILING:
            await asyncio.sleep(self.tick_seconds)
            self.progress = min(PROGRESS_CEILING, self.progress + PROGRESS_STEP)

    async def verify(self, image: ProofImage, task: TaskRef) -> Optional[VerificationOut]:
        """Submit one proof. Returns ``None`` on any failure; never retries."""
        if self.is_verifying:
            logger.warning("Verification for task %s already in progress", task.id)
            return None

        self.is_verifying = True
        self.progress = PROGRESS_START
        ticker = asyncio.create_task(self._tick())
        result: Optional[VerificationOut] = None
        try:
            result = await self._submit(image, task)
            return result
        finally:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker
            self.progress = 100 if result is not None else 0
            self.is_verifying = False

    async def _submit(self, image: ProofImage, task: TaskRef) -> Optional[VerificationOut]:
        data = {"taskId": task.id, "taskTitle": task.title}
        if task.description:
            data["taskDescription"] = task.description
        files = {"image": (image.filename, image.content, image.content_type)}

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                resp = await client.post(
                    self.endpoint_url,
                    headers={"Authorization": f"Bearer {self.access_token}"},
                    data=data,
                    files=files,
                )
        except httpx.HTTPError as exc:
            logger.warning("Verification request for task %s failed: %s", task.id, exc)
            return None

        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            logger.warning("Verification for task %s returned a non-JSON body (HTTP %s)", task.id, resp.status_code)
            return None

        if not resp.is_success or not body.get("success"):
            logger.warning(
                "Verification for task %s failed (HTTP %s): %s",
                task.id,
                resp.status_code,
                body.get("error", "unknown error"),
            )
            return None

        try:
            return VerificationOut.model_validate(body.get("verification"))
        except ValueError as exc:
            logger.warning("Verification for task %s returned an unexpected payload: %s", task.id, exc)
            return None
