"""task_dispatch.serialization — Event detail encoding and timestamp helpers."""

from __future__ import annotations

import datetime as dt
import json
import time
from typing import Any

from task_dispatch.errors import SerializationError

__all__ = ["_now_z", "_monotonic_ms", "serialize_detail"]


def serialize_detail(detail: Any) -> str:
    """Encode an event detail as compact JSON text.

    Output matches a compact JSON.stringify: no whitespace between tokens and
    non-ASCII characters kept as-is. NaN/Infinity are rejected since they are
    not valid JSON.
    """
    try:
        return json.dumps(detail, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as exc:
        raise SerializationError(f"Event detail is not JSON-encodable: {exc}") from exc


def _now_z() -> str:
    """Current UTC timestamp in ISO 8601 format with Z suffix."""
    return dt.datetime.now(dt.timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _monotonic_ms() -> int:
    return int(time.monotonic() * 1000)
