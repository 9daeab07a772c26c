#!/usr/bin/env python3
"""Print the least-privilege IAM policy for the ECS task dispatcher Lambda.

Example:
    python3 tools/render_dispatcher_policy.py \
        --task-definition-arn arn:aws:ecs:us-west-2:123456789012:task-definition/TaskDef:3 \
        --role-arn arn:aws:iam::123456789012:role/EcsTaskExecutionRole \
        --role-arn arn:aws:iam::123456789012:role/TaskRole
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import List, Optional

from task_dispatch.authorization import dispatcher_policy_document
from task_dispatch.errors import ConfigurationError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render the IAM policy granting ecs:RunTask and iam:PassRole to the dispatcher.",
    )
    parser.add_argument("--task-definition-arn", required=True)
    parser.add_argument(
        "--role-arn",
        action="append",
        default=[],
        help="Execution or task role ARN passed to the task. Repeat for each role.",
    )
    parser.add_argument("--indent", type=int, default=2)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        policy = dispatcher_policy_document(args.task_definition_arn, args.role_arn)
    except ConfigurationError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2
    print(json.dumps(policy, indent=args.indent))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
