"""task_dispatch.config — Environment variables, constants, placement context, logging.

The placement context is resolved once per cold start. A missing or
insufficient value raises ConfigurationError so the Lambda never becomes
ready to accept events with a broken placement.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from task_dispatch.errors import ConfigurationError

__all__ = [
    "DEFAULT_CONTAINER_NAME",
    "DEFAULT_REGION",
    "DISPATCH_CONNECT_TIMEOUT_SECONDS",
    "DISPATCH_STARTED_BY",
    "DISPATCH_TIMEOUT_BUFFER_SECONDS",
    "DISPATCH_TIMEOUT_CEILING_SECONDS",
    "DISPATCH_TIMEOUT_FLOOR_SECONDS",
    "ECS_REGION",
    "ENV_EVENT_PAYLOAD",
    "ENV_EVENT_TYPE",
    "PLACEMENT_SUBNET_COUNT",
    "UNKNOWN_EVENT_TYPE",
    "PlacementContext",
    "logger",
    "select_placement_subnets",
]

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_REGION = "us-west-2"
DEFAULT_CONTAINER_NAME = "MyContainer"

ECS_REGION: str = os.environ.get("ECS_REGION", os.environ.get("AWS_REGION", DEFAULT_REGION))
DISPATCH_STARTED_BY: str = os.environ.get("DISPATCH_STARTED_BY", "event-task-dispatcher")
DISPATCH_TIMEOUT_BUFFER_SECONDS = float(os.environ.get("DISPATCH_TIMEOUT_BUFFER_SECONDS", "1.0"))
DISPATCH_TIMEOUT_CEILING_SECONDS = float(os.environ.get("DISPATCH_TIMEOUT_CEILING_SECONDS", "20.0"))
# Below this budget RunTask is not attempted and the event is reported as a timeout.
DISPATCH_TIMEOUT_FLOOR_SECONDS = float(os.environ.get("DISPATCH_TIMEOUT_FLOOR_SECONDS", "1.0"))
DISPATCH_CONNECT_TIMEOUT_SECONDS = float(os.environ.get("DISPATCH_CONNECT_TIMEOUT_SECONDS", "3.0"))

# Container environment override names read by the launched task.
ENV_EVENT_PAYLOAD = "EVENT_PAYLOAD"
ENV_EVENT_TYPE = "EVENT_TYPE"

UNKNOWN_EVENT_TYPE = "Unknown"

# Fixed placement policy: tasks always land on the first two private subnets.
PLACEMENT_SUBNET_COUNT = 2


def _parse_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(token.strip() for token in value.split(",") if token.strip())


def _require(environ: Mapping[str, str], name: str) -> str:
    value = (environ.get(name) or "").strip()
    if not value:
        raise ConfigurationError(f"Missing required environment variable {name}")
    return value


def select_placement_subnets(subnet_ids: Sequence[str]) -> Tuple[str, ...]:
    """Return the subnets a task is placed on (the first two, in order)."""
    if len(subnet_ids) < PLACEMENT_SUBNET_COUNT:
        raise ConfigurationError(
            f"Placement requires at least {PLACEMENT_SUBNET_COUNT} subnets, got {len(subnet_ids)}"
        )
    return tuple(subnet_ids[:PLACEMENT_SUBNET_COUNT])


# ---------------------------------------------------------------------------
# Placement context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlacementContext:
    """Network and identity parameters every launched task runs under."""

    cluster_id: str
    task_definition_id: str
    subnet_ids: Tuple[str, ...]
    security_group_id: str
    container_name: str = DEFAULT_CONTAINER_NAME

    def __post_init__(self) -> None:
        # Accept any iterable of subnets but store an immutable tuple.
        object.__setattr__(self, "subnet_ids", tuple(self.subnet_ids))
        for field_name in ("cluster_id", "task_definition_id", "security_group_id", "container_name"):
            if not str(getattr(self, field_name) or "").strip():
                raise ConfigurationError(f"PlacementContext.{field_name} must not be blank")
        if any(not str(subnet).strip() for subnet in self.subnet_ids):
            raise ConfigurationError("PlacementContext.subnet_ids must not contain blank entries")
        select_placement_subnets(self.subnet_ids)

    @property
    def placement_subnets(self) -> Tuple[str, ...]:
        return select_placement_subnets(self.subnet_ids)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PlacementContext":
        """Build the context from Lambda environment variables.

        SUBNET_IDS (comma-separated) takes precedence; otherwise SUBNET_1 and
        SUBNET_2 are read, matching how the stack wires the first two private
        subnets into the function.
        """
        env = os.environ if environ is None else environ
        subnet_ids: Iterable[str] = _parse_csv(env.get("SUBNET_IDS"))
        if not subnet_ids:
            subnet_ids = tuple(
                value.strip()
                for value in (env.get("SUBNET_1"), env.get("SUBNET_2"))
                if value and value.strip()
            )
        return cls(
            cluster_id=_require(env, "CLUSTER_NAME"),
            task_definition_id=_require(env, "TASK_DEFINITION"),
            subnet_ids=tuple(subnet_ids),
            security_group_id=_require(env, "SECURITY_GROUP"),
            container_name=(env.get("CONTAINER_NAME") or "").strip() or DEFAULT_CONTAINER_NAME,
        )
