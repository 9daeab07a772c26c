"""task_dispatch.dispatcher — Per-event Decoder → Builder → Client pipeline.

Flow:
    EventBridge envelope
    → decode_event (type tag + opaque detail)
    → build_launch_request (placement + EVENT_PAYLOAD / EVENT_TYPE overrides)
    → DispatchClient.submit (one RunTask attempt)
    → exactly one [OUTCOME] record

Nothing raised inside ``handle`` escapes it. Redelivered events launch a
second task; deduplication belongs to the event source.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from task_dispatch.config import PlacementContext, logger
from task_dispatch.dispatch_client import DispatchClient, Success
from task_dispatch.errors import DispatchError
from task_dispatch.event_decoder import decode_event
from task_dispatch.launch_request import build_launch_request
from task_dispatch.observability import _emit_outcome
from task_dispatch.serialization import _monotonic_ms

__all__ = ["Dispatcher"]


class Dispatcher:
    def __init__(
        self,
        context: PlacementContext,
        client: Optional[DispatchClient] = None,
        *,
        started_by: Optional[str] = None,
    ) -> None:
        self.context = context
        self.client = client or DispatchClient()
        self.started_by = started_by

    def handle(
        self,
        envelope: Any,
        *,
        timeout_seconds: Optional[float] = None,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Dispatch one event and return the outcome record that was logged."""
        started = _monotonic_ms()
        event_type, detail = decode_event(envelope)

        try:
            request = build_launch_request(
                self.context,
                event_type,
                detail,
                started_by=self.started_by,
            )
            outcome = self.client.submit(request, timeout_seconds=timeout_seconds)
        except DispatchError as exc:
            # Configuration or serialization problem: no request was sent.
            return _report_error(exc, event_type, request_id, _monotonic_ms() - started)
        except Exception as exc:
            logger.exception("[ERROR] Unexpected dispatch error for event_type=%s", event_type)
            return _emit_outcome(
                status="failure",
                event_type=event_type,
                request_id=request_id,
                classification="internal-error",
                error_code=type(exc).__name__,
                message=str(exc),
                latency_ms=_monotonic_ms() - started,
            )

        latency_ms = _monotonic_ms() - started
        if isinstance(outcome, Success):
            return _emit_outcome(
                status="success",
                event_type=event_type,
                request_id=request_id,
                task_arns=outcome.task_arns,
                latency_ms=latency_ms,
                extra={"task_statuses": outcome.task_statuses},
            )

        return _report_error(outcome.error, event_type, request_id, latency_ms)


def _report_error(
    error: DispatchError,
    event_type: str,
    request_id: Optional[str],
    latency_ms: int,
) -> Dict[str, Any]:
    fields = error.as_dict()
    return _emit_outcome(
        status="failure",
        event_type=event_type,
        request_id=request_id,
        classification=fields.pop("classification"),
        error_code=fields.pop("error_code"),
        message=fields.pop("message"),
        latency_ms=latency_ms,
        extra=fields,
    )
