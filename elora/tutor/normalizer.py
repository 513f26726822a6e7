"""
Elora Assistant: Input Normalizer

Runs BEFORE anything else touches the payload.
Overlong strings are truncated, never rejected. Numbers are coerced and
clamped. The only hard failure is a request with nothing to answer:
no message and no image.

This is a PURE FUNCTION module: no API calls, no side effects.
"""

import math
from typing import Any, Optional

from elora.config import (
    MAX_MESSAGE_CHARS, MAX_SHORT_FIELD_CHARS, MAX_TOPIC_CHARS,
    MAX_ENUM_CHARS, MAX_IMAGE_BYTES, MAX_ATTEMPT,
)
from elora.errors import ValidationError
from elora.tutor.context import Action, Role, TutoringRequest

IMAGE_MARKER = "data:image/"


def clamp_str(value: Any, max_len: int) -> str:
    """Coerce to a trimmed string no longer than max_len."""
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    return value.strip()[:max_len]


def clamp_int(value: Any, lo: int, hi: int, fallback: int) -> int:
    """Coerce to int within [lo, hi]. Non-numeric input gives fallback."""
    if isinstance(value, bool):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if math.isnan(number) or math.isinf(number):
        return fallback
    return max(lo, min(hi, int(number)))


def normalize_image(value: Any) -> Optional[str]:
    """Keep an image data URL only if it is marked as an image and fits the size cap."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value.startswith(IMAGE_MARKER):
        return None
    if len(value.encode("utf-8")) > MAX_IMAGE_BYTES:
        return None
    return value


def _parse_role(value: Any) -> Role:
    raw = clamp_str(value, MAX_ENUM_CHARS).lower()
    try:
        return Role(raw)
    except ValueError:
        return Role.STUDENT


def _parse_action(value: Any) -> Action:
    raw = clamp_str(value, MAX_ENUM_CHARS).lower()
    try:
        return Action(raw)
    except ValueError:
        return Action.EXPLAIN


def normalize_request(payload: dict) -> TutoringRequest:
    """
    Turn a raw JSON payload into a TutoringRequest.

    Accepts the legacy client field names too: `userMessage` for
    `message`, `taskType` / `mode` for `action`.

    Raises:
        ValidationError("missing_message") if there is neither a message
        nor a usable image.
    """
    if not isinstance(payload, dict):
        payload = {}

    message = clamp_str(payload.get("message") or payload.get("userMessage"), MAX_MESSAGE_CHARS)
    action = payload.get("action") or payload.get("taskType") or payload.get("mode")
    image = normalize_image(payload.get("imageDataUrl"))

    if not message and image is None:
        raise ValidationError("missing_message")

    return TutoringRequest(
        role=_parse_role(payload.get("role")),
        country=clamp_str(payload.get("country"), MAX_SHORT_FIELD_CHARS),
        level=clamp_str(payload.get("level"), MAX_SHORT_FIELD_CHARS),
        subject=clamp_str(payload.get("subject"), MAX_SHORT_FIELD_CHARS),
        topic=clamp_str(payload.get("topic"), MAX_TOPIC_CHARS),
        requested_action=_parse_action(action),
        message=message,
        attempt=clamp_int(payload.get("attempt"), 0, MAX_ATTEMPT, fallback=0),
        image_data_url=image,
    )
