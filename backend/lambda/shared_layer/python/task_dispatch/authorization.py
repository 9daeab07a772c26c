"""task_dispatch.authorization — Least-privilege IAM policy for the dispatcher.

The dispatcher's execution role needs exactly two privileges: ``ecs:RunTask``
on the task definition it launches and ``iam:PassRole`` on the execution and
task roles that task definition references.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from task_dispatch.errors import ConfigurationError

__all__ = ["POLICY_VERSION", "dispatcher_policy_document"]

POLICY_VERSION = "2012-10-17"


def _dedupe(values: Iterable[str]) -> List[str]:
    out: List[str] = []
    seen = set()
    for raw in values:
        value = str(raw or "").strip()
        if not value or value in seen:
            continue
        seen.add(value)
        out.append(value)
    return out


def dispatcher_policy_document(task_definition_arn: str, role_arns: Iterable[str]) -> Dict[str, Any]:
    task_definition_arn = str(task_definition_arn or "").strip()
    if not task_definition_arn:
        raise ConfigurationError("task_definition_arn is required")
    roles = _dedupe(role_arns)
    if not roles:
        raise ConfigurationError("At least one role ARN is required for iam:PassRole")

    return {
        "Version": POLICY_VERSION,
        "Statement": [
            {
                "Sid": "RunDispatchedTask",
                "Effect": "Allow",
                "Action": ["ecs:RunTask"],
                "Resource": [task_definition_arn],
            },
            {
                "Sid": "PassTaskRoles",
                "Effect": "Allow",
                "Action": ["iam:PassRole"],
                "Resource": roles,
            },
        ],
    }
