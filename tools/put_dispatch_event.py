#!/usr/bin/env python3
"""Publish a test event that the dispatcher's EventBridge rule matches.

Useful as a post-deploy smoke test: the event should produce one
[OUTCOME] record in the dispatcher's log group and one ECS task.
"""

from __future__ import annotations

import argparse
import json
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

DEFAULT_REGION = "us-west-2"
DEFAULT_SOURCE = "custom.my-application"
DEFAULT_DETAIL_TYPE = "myDetailType"
DEFAULT_EVENT_BUS = "default"


def _log(tag: str, message: str) -> None:
    print(f"[{tag}] {message}")


def build_entry(source: str, detail_type: str, detail: Any, event_bus: str) -> Dict[str, Any]:
    return {
        "Source": source,
        "DetailType": detail_type,
        "Detail": json.dumps(detail, separators=(",", ":")),
        "EventBusName": event_bus,
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send a test event to the ECS task dispatcher rule.")
    parser.add_argument("--region", default=DEFAULT_REGION)
    parser.add_argument("--source", default=DEFAULT_SOURCE)
    parser.add_argument("--detail-type", default=DEFAULT_DETAIL_TYPE)
    parser.add_argument("--event-bus", default=DEFAULT_EVENT_BUS)
    parser.add_argument("--detail", default="{}", help="JSON object used as the event detail.")
    return parser


def main(argv: Optional[List[str]] = None, events_client: Any = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        detail = json.loads(args.detail)
    except json.JSONDecodeError as exc:
        _log("ERROR", f"--detail is not valid JSON: {exc}")
        return 2
    if not isinstance(detail, dict):
        _log("ERROR", "--detail must be a JSON object")
        return 2

    events = events_client or boto3.client(
        "events",
        region_name=args.region,
        config=Config(retries={"max_attempts": 3, "mode": "standard"}),
    )
    entry = build_entry(args.source, args.detail_type, detail, args.event_bus)
    try:
        resp = events.put_events(Entries=[entry])
    except (BotoCoreError, ClientError) as exc:
        _log("ERROR", f"put_events failed: {exc}")
        return 1

    if resp.get("FailedEntryCount"):
        for item in resp.get("Entries") or []:
            if item.get("ErrorCode"):
                _log("ERROR", f"{item.get('ErrorCode')}: {item.get('ErrorMessage', '')}")
        return 1

    event_ids = [item.get("EventId", "") for item in resp.get("Entries") or []]
    _log("OK", f"published {args.detail_type} from {args.source}: {', '.join(event_ids)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
