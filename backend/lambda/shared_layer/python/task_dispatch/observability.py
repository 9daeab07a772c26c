"""task_dispatch.observability — Structured outcome records.

One ``[OUTCOME]`` line is written per received event. CloudWatch metric
filters and alarms key off its JSON fields (``status``, ``classification``).
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from task_dispatch.config import logger
from task_dispatch.serialization import _now_z

__all__ = ["COMPONENT", "_emit_outcome"]

COMPONENT = "ecs-task-dispatcher"


def _emit_outcome(
    *,
    status: str,
    event_type: str,
    request_id: Optional[str] = None,
    classification: Optional[str] = None,
    error_code: Optional[str] = None,
    message: Optional[str] = None,
    task_arns: Optional[List[str]] = None,
    latency_ms: Optional[int] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "timestamp": _now_z(),
        "component": COMPONENT,
        "event": "task_launch_accepted" if status == "success" else "task_launch_failed",
        "status": status,
        "request_id": str(request_id or ""),
        "event_type": event_type,
        "classification": str(classification or ""),
        "error_code": str(error_code or ""),
        "message": str(message or ""),
        "task_arns": list(task_arns or []),
        "latency_ms": int(max(0, latency_ms or 0)),
    }
    if extra:
        payload.update(extra)

    line = json.dumps(payload, sort_keys=True, default=str)
    if status == "success":
        logger.info("[OUTCOME] %s", line)
    else:
        logger.error("[OUTCOME] %s", line)
    return payload
