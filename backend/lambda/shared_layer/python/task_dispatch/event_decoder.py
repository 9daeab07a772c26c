"""task_dispatch.event_decoder — EventBridge envelope decoding."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, NamedTuple

from task_dispatch.config import UNKNOWN_EVENT_TYPE

__all__ = ["DecodedEvent", "decode_event"]


class DecodedEvent(NamedTuple):
    event_type: str
    detail: Any


def decode_event(envelope: Any) -> DecodedEvent:
    """Split an envelope into its type tag and opaque detail.

    A missing or falsy ``detail-type`` (null, ``""``, ``0``, ``False``) is a
    normal case and maps to ``"Unknown"``. Other non-string values are
    stringified. The detail is passed through untouched.
    """
    if not isinstance(envelope, Mapping):
        return DecodedEvent(UNKNOWN_EVENT_TYPE, None)

    raw_type = envelope.get("detail-type")
    if not raw_type:
        event_type = UNKNOWN_EVENT_TYPE
    elif isinstance(raw_type, str):
        event_type = raw_type
    else:
        event_type = str(raw_type)

    return DecodedEvent(event_type, envelope.get("detail"))
