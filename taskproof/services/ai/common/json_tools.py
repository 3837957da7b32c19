"""Tolerant JSON object extraction for model-produced argument strings."""

from __future__ import annotations

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the first JSON object found in *text*, or ``None``.

    Decoding is attempted from every ``{`` in turn, so prose or code fences
    around the object are ignored. Arrays and scalars never count.
    """
    if not text or not text.strip():
        return None

    start = text.find("{")
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(text, start)
        except ValueError:
            value = None
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)

    logger.debug("No JSON object in %d chars of model output", len(text))
    return None
