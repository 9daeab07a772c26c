"""ecs_task_dispatcher/lambda_function.py

EventBridge-triggered Lambda that launches one Fargate task per event.

Flow:
    EventBridge rule (source custom.my-application, detail-type myDetailType)
    → This Lambda
    → ECS RunTask on the configured cluster/task definition
      (two private subnets, no public IP, EVENT_PAYLOAD / EVENT_TYPE overrides)
    → One [OUTCOME] log record per event

The handler never raises for per-event problems. A broken placement
configuration fails the cold start instead, so no event is accepted.

Environment variables:
    CLUSTER_NAME                      required
    TASK_DEFINITION                   required
    SUBNET_IDS                        comma-separated, first two are used
    SUBNET_1 / SUBNET_2               used when SUBNET_IDS is unset
    SECURITY_GROUP                    required
    CONTAINER_NAME                    default: MyContainer
    ECS_REGION                        default: AWS_REGION or us-west-2
    DISPATCH_STARTED_BY               default: event-task-dispatcher
    DISPATCH_TIMEOUT_BUFFER_SECONDS   default: 1.0
    DISPATCH_TIMEOUT_CEILING_SECONDS  default: 20.0
    DISPATCH_TIMEOUT_FLOOR_SECONDS    default: 1.0 (smaller budgets skip RunTask)
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from task_dispatch.aws_clients import make_ecs_client
from task_dispatch.config import (
    DISPATCH_STARTED_BY,
    DISPATCH_TIMEOUT_BUFFER_SECONDS,
    DISPATCH_TIMEOUT_CEILING_SECONDS,
    PlacementContext,
    logger,
)
from task_dispatch.dispatch_client import DispatchClient
from task_dispatch.dispatcher import Dispatcher

# ---------------------------------------------------------------------------
# Cold start
# ---------------------------------------------------------------------------

PLACEMENT = PlacementContext.from_env()
DISPATCHER = Dispatcher(
    PLACEMENT,
    DispatchClient(make_ecs_client),
    started_by=DISPATCH_STARTED_BY,
)

logger.info(
    "[INFO] dispatcher ready cluster=%s taskDefinition=%s subnets=%s",
    PLACEMENT.cluster_id,
    PLACEMENT.task_definition_id,
    ",".join(PLACEMENT.placement_subnets),
)


def _timeout_budget(context: Any) -> float:
    """Seconds the RunTask call may take before the Lambda deadline.

    Never more than the remaining time minus the buffer, so the result is
    zero or negative once the buffer is used up.
    """
    remaining_ms: Optional[int] = None
    if context is not None and hasattr(context, "get_remaining_time_in_millis"):
        remaining_ms = context.get_remaining_time_in_millis()
    if remaining_ms is None:
        return DISPATCH_TIMEOUT_CEILING_SECONDS
    budget = remaining_ms / 1000.0 - DISPATCH_TIMEOUT_BUFFER_SECONDS
    return min(budget, DISPATCH_TIMEOUT_CEILING_SECONDS)


# ---------------------------------------------------------------------------
# Handler
# ---------------------------------------------------------------------------


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    request_id = getattr(context, "aws_request_id", None)
    meta = event if isinstance(event, dict) else {}
    logger.info("[INFO] received event id=%s source=%s", meta.get("id"), meta.get("source"))
    return DISPATCHER.handle(
        event,
        timeout_seconds=_timeout_budget(context),
        request_id=request_id,
    )
