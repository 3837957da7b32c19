"""Threshold alerts for pipeline failures.

Each failure action is counted in a sliding window. When the count hits the
action's threshold (and every multiple of it) an ``ALERT`` warning is
logged, so a burst of storage, gateway or database failures stands out in
the logs. Storage-then-fail paths leave orphaned images, which is why
``VERIFICATION_DB_FAILED`` alerts earliest.
"""

import logging
import time
from collections import deque
from threading import Lock
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 3600
DEFAULT_THRESHOLDS = {
    "PROOF_STORAGE_FAILED": 5,
    "VISION_GATEWAY_FAILED": 5,
    "VERIFICATION_DB_FAILED": 3,
}


class FailureAlertTracker:
    def __init__(self, window_seconds: int, thresholds: dict[str, int]) -> None:
        self._window_seconds = window_seconds
        self._thresholds = dict(thresholds)
        self._events: dict[str, deque[float]] = {action: deque() for action in self._thresholds}
        self._lock = Lock()

    def _trim(self, events: deque, now: float) -> None:
        horizon = now - self._window_seconds
        while events and events[0] <= horizon:
            events.popleft()

    def record(self, action: str, metadata: Optional[dict] = None) -> bool:
        """Count one failure; True when this occurrence raised an alert."""
        threshold = self._thresholds.get(action)
        if not threshold:
            return False
        now = time.monotonic()
        with self._lock:
            events = self._events[action]
            self._trim(events, now)
            events.append(now)
            count = len(events)
        if count % threshold:
            return False
        logger.warning(
            "ALERT action=%s count=%s window_seconds=%s metadata=%s",
            action,
            count,
            self._window_seconds,
            metadata or {},
        )
        return True

    def count(self, action: str) -> int:
        with self._lock:
            events = self._events.get(action)
            if events is None:
                return 0
            self._trim(events, time.monotonic())
            return len(events)

    def reset(self) -> None:
        with self._lock:
            for events in self._events.values():
                events.clear()


alert_tracker = FailureAlertTracker(DEFAULT_WINDOW_SECONDS, DEFAULT_THRESHOLDS)
