"""task_dispatch.aws_clients — ECS client factory.

Clients are built per dispatch with timeouts sized to the caller's remaining
invocation budget, so no client is held across invocations. botocore retries
are disabled: each dispatch is exactly one RunTask attempt.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import boto3
from botocore.config import Config

from task_dispatch.config import (
    DISPATCH_CONNECT_TIMEOUT_SECONDS,
    DISPATCH_TIMEOUT_CEILING_SECONDS,
    ECS_REGION,
)

__all__ = ["EcsClientFactory", "_ecs_config", "make_ecs_client"]

# Callable returning a fresh ECS client for a given timeout budget (seconds).
# The client needs ``run_task``; ``close`` is called when present.
EcsClientFactory = Callable[[Optional[float]], Any]


def _ecs_config(timeout_seconds: Optional[float] = None) -> Config:
    """Split the budget into connect and read timeouts with retries off.

    connect + read never exceeds the budget (or the ceiling when unset).
    """
    budget = DISPATCH_TIMEOUT_CEILING_SECONDS if timeout_seconds is None else timeout_seconds
    budget = min(budget, DISPATCH_TIMEOUT_CEILING_SECONDS)
    connect_timeout = min(DISPATCH_CONNECT_TIMEOUT_SECONDS, budget / 2)
    read_timeout = budget - connect_timeout
    return Config(
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": 0, "mode": "standard"},
    )


def make_ecs_client(timeout_seconds: Optional[float] = None, region: Optional[str] = None):
    """Create a new ECS client bounded by ``timeout_seconds``."""
    return boto3.client(
        "ecs",
        region_name=region or ECS_REGION,
        config=_ecs_config(timeout_seconds),
    )
