"""State machine behind the proof upload dialog.

``IDLE -> SELECTED_NO_RESULT -> VERIFYING -> RESULTED``; a failed
verification returns to ``SELECTED_NO_RESULT`` so the user can retry, and
``close()`` always goes back to ``IDLE``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from taskproof.schemas.verification import VerificationOut

from .capture import ProofCapture, ProofRejected
from .transport import TaskRef, VerificationClient

logger = logging.getLogger(__name__)


class FlowState(str, Enum):
    IDLE = "idle"
    SELECTED_NO_RESULT = "selected_no_result"
    VERIFYING = "verifying"
    RESULTED = "resulted"


class FlowError(RuntimeError):
    pass


class ProofUploadFlow:
    def __init__(
        self,
        task: TaskRef,
        client: VerificationClient,
        *,
        capture: Optional[ProofCapture] = None,
        on_verified: Optional[Callable[[VerificationOut], None]] = None,
    ) -> None:
        self.task = task
        self.client = client
        self.capture = capture or ProofCapture()
        self.on_verified = on_verified
        self.state = FlowState.IDLE
        self.result: Optional[VerificationOut] = None
        self.rejection: Optional[str] = None
        self._generation = 0

    @property
    def preview(self) -> Optional[str]:
        return self.capture.preview

    @property
    def can_verify(self) -> bool:
        return self.state == FlowState.SELECTED_NO_RESULT and self.capture.image is not None

    def select_file(self, filename: str, content: bytes, content_type: Optional[str]) -> bool:
        """Returns False (and sets ``rejection``) when the file is refused."""
        if self.state == FlowState.VERIFYING:
            raise FlowError("Cannot change the proof while verification is running")
        try:
            self.capture.select(filename, content, content_type)
        except ProofRejected as exc:
            self.rejection = exc.reason
            logger.info("Proof for task %s rejected: %s", self.task.id, exc.reason)
            return False
        self.rejection = None
        self.result = None
        self.state = FlowState.SELECTED_NO_RESULT
        return True

    async def verify(self) -> Optional[VerificationOut]:
        if not self.can_verify:
            raise FlowError(f"Cannot verify from state {self.state.value}")

        generation = self._generation
        self.state = FlowState.VERIFYING
        result = await self.client.verify(self.capture.image, self.task)

        if generation != self._generation:
            # Closed while the request was in flight.
            return None
        if result is None:
            self.state = FlowState.SELECTED_NO_RESULT
            return None

        self.result = result
        self.state = FlowState.RESULTED
        if self.on_verified is not None:
            self.on_verified(result)
        return result

    def close(self) -> None:
        self._generation += 1
        self.capture.clear()
        self.result = None
        self.rejection = None
        self.state = FlowState.IDLE
