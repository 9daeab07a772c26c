"""task_dispatch.launch_request — ECS RunTask request assembly.

A LaunchRequest is built fresh for every event from the shared, read-only
PlacementContext and is never mutated after construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from task_dispatch.config import ENV_EVENT_PAYLOAD, ENV_EVENT_TYPE, PlacementContext, select_placement_subnets
from task_dispatch.serialization import serialize_detail

__all__ = ["LAUNCH_TYPE", "LaunchRequest", "build_launch_request"]

LAUNCH_TYPE = "FARGATE"


@dataclass(frozen=True)
class LaunchRequest:
    cluster_id: str
    task_definition_id: str
    subnet_ids: Tuple[str, ...]
    security_group_id: str
    container_name: str
    environment: Tuple[Tuple[str, str], ...]
    started_by: Optional[str] = None
    launch_type: str = LAUNCH_TYPE

    @property
    def assign_public_ip(self) -> bool:
        # Dispatched tasks are never directly reachable from outside the VPC.
        return False

    def environment_value(self, name: str) -> Optional[str]:
        for key, value in self.environment:
            if key == name:
                return value
        return None

    def to_run_task_kwargs(self) -> Dict[str, Any]:
        """Render the request as keyword arguments for ``ecs.run_task``."""
        kwargs: Dict[str, Any] = {
            "cluster": self.cluster_id,
            "taskDefinition": self.task_definition_id,
            "launchType": self.launch_type,
            "networkConfiguration": {
                "awsvpcConfiguration": {
                    "subnets": list(self.subnet_ids),
                    "securityGroups": [self.security_group_id],
                    "assignPublicIp": "DISABLED",
                },
            },
            "overrides": {
                "containerOverrides": [
                    {
                        "name": self.container_name,
                        "environment": [
                            {"name": key, "value": value} for key, value in self.environment
                        ],
                    }
                ],
            },
        }
        if self.started_by:
            kwargs["startedBy"] = self.started_by
        return kwargs


def build_launch_request(
    context: PlacementContext,
    event_type: str,
    detail: Any,
    *,
    started_by: Optional[str] = None,
) -> LaunchRequest:
    """Combine the placement context with one decoded event.

    Raises ConfigurationError when fewer than two subnets are configured and
    SerializationError when the detail cannot be encoded. Nothing is returned
    on failure, so a partial request can never reach ECS.
    """
    subnets = select_placement_subnets(context.subnet_ids)
    payload = serialize_detail(detail)
    return LaunchRequest(
        cluster_id=context.cluster_id,
        task_definition_id=context.task_definition_id,
        subnet_ids=subnets,
        security_group_id=context.security_group_id,
        container_name=context.container_name,
        environment=(
            (ENV_EVENT_PAYLOAD, payload),
            (ENV_EVENT_TYPE, event_type),
        ),
        started_by=started_by,
    )
