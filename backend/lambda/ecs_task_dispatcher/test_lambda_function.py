"""Unit tests for the ECS task dispatcher Lambda.

Covers the per-event pipeline (decode, build, submit, report) with a
substitute ECS client, plus cold-start configuration and timeout budgeting.
"""

from __future__ import annotations

import importlib.util
import json
import logging
import pathlib
import sys
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, ConnectTimeoutError

sys.path.insert(0, str(pathlib.Path(__file__).resolve().parents[1] / "shared_layer" / "python"))

from task_dispatch.config import PlacementContext
from task_dispatch.dispatch_client import DispatchClient
from task_dispatch.dispatcher import Dispatcher
from task_dispatch.errors import ConfigurationError

MODULE_PATH = pathlib.Path(__file__).with_name("lambda_function.py")
BASE_ENV = {
    "CLUSTER_NAME": "cluster-1",
    "TASK_DEFINITION": "task-1",
    "SUBNET_IDS": "subnet-a,subnet-b",
    "SECURITY_GROUP": "sg-1",
}
TASK_ARN = "arn:aws:ecs:us-west-2:123456789012:task/cluster-1/7c1d2e3f4a5b6c7d8e9f0a1b2c3d4e5f"


def _load_lambda(monkeypatch, env=None):
    for key in ("CLUSTER_NAME", "TASK_DEFINITION", "SUBNET_IDS", "SUBNET_1", "SUBNET_2", "SECURITY_GROUP"):
        monkeypatch.delenv(key, raising=False)
    for key, value in (BASE_ENV if env is None else env).items():
        monkeypatch.setenv(key, value)
    spec = importlib.util.spec_from_file_location("ecs_task_dispatcher_lambda", MODULE_PATH)
    module = importlib.util.module_from_spec(spec)
    assert spec and spec.loader
    spec.loader.exec_module(module)
    return module


def _ecs(response=None, error=None):
    ecs = MagicMock()
    if error is not None:
        ecs.run_task.side_effect = error
    else:
        ecs.run_task.return_value = response or {
            "tasks": [{"taskArn": TASK_ARN, "lastStatus": "PROVISIONING"}],
            "failures": [],
        }
    return ecs


def _dispatcher(ecs, subnets=("subnet-a", "subnet-b")):
    context = PlacementContext(
        cluster_id="cluster-1",
        task_definition_id="task-1",
        subnet_ids=subnets,
        security_group_id="sg-1",
    )
    return Dispatcher(context, DispatchClient(lambda _timeout: ecs))


def _outcome_records(caplog):
    return [r for r in caplog.records if r.getMessage().startswith("[OUTCOME] ")]


def _outcome_payload(record):
    return json.loads(record.getMessage()[len("[OUTCOME] "):])


def test_reference_event_launches_task(caplog):
    caplog.set_level(logging.INFO)
    ecs = _ecs()

    result = _dispatcher(ecs).handle(
        {"detail-type": "myDetailType", "detail": {"orderId": 42}},
        request_id="req-1",
    )

    kwargs = ecs.run_task.call_args.kwargs
    assert kwargs["networkConfiguration"]["awsvpcConfiguration"]["subnets"] == ["subnet-a", "subnet-b"]
    assert kwargs["networkConfiguration"]["awsvpcConfiguration"]["assignPublicIp"] == "DISABLED"
    env = {item["name"]: item["value"] for item in kwargs["overrides"]["containerOverrides"][0]["environment"]}
    assert env == {"EVENT_PAYLOAD": '{"orderId":42}', "EVENT_TYPE": "myDetailType"}

    assert result["status"] == "success"
    assert result["task_arns"] == [TASK_ARN]
    assert result["request_id"] == "req-1"
    records = _outcome_records(caplog)
    assert len(records) == 1
    assert records[0].levelno == logging.INFO
    assert _outcome_payload(records[0])["event"] == "task_launch_accepted"


def test_missing_detail_type_is_unknown():
    ecs = _ecs()

    result = _dispatcher(ecs).handle({"detail": {}})

    env = ecs.run_task.call_args.kwargs["overrides"]["containerOverrides"][0]["environment"]
    assert {"name": "EVENT_TYPE", "value": "Unknown"} in env
    assert {"name": "EVENT_PAYLOAD", "value": "{}"} in env
    assert result["event_type"] == "Unknown"


def test_extra_subnets_are_ignored():
    ecs = _ecs()

    _dispatcher(ecs, subnets=("s1", "s2", "s3")).handle({"detail-type": "t", "detail": {}})

    assert ecs.run_task.call_args.kwargs["networkConfiguration"]["awsvpcConfiguration"]["subnets"] == ["s1", "s2"]


def test_authorization_denied_is_logged_once_and_not_retried(caplog):
    caplog.set_level(logging.INFO)
    ecs = _ecs(
        error=ClientError(
            {
                "Error": {"Code": "AccessDeniedException", "Message": "not authorized to perform: ecs:RunTask"},
                "ResponseMetadata": {"HTTPStatusCode": 400},
            },
            "RunTask",
        )
    )

    result = _dispatcher(ecs).handle({"detail-type": "myDetailType", "detail": {"orderId": 42}})

    assert ecs.run_task.call_count == 1
    assert result["status"] == "failure"
    assert result["classification"] == "authorization-denied"
    assert result["error_code"] == "AccessDeniedException"
    records = _outcome_records(caplog)
    assert len(records) == 1
    assert records[0].levelno == logging.ERROR
    payload = _outcome_payload(records[0])
    assert payload["event_type"] == "myDetailType"
    assert payload["classification"] == "authorization-denied"
    assert "ecs:RunTask" in payload["message"]


def test_timeout_is_reported_as_failure(caplog):
    caplog.set_level(logging.INFO)
    ecs = _ecs(error=ConnectTimeoutError(endpoint_url="https://ecs.us-west-2.amazonaws.com/"))

    result = _dispatcher(ecs).handle({"detail-type": "t", "detail": {}}, timeout_seconds=1.0)

    assert result["classification"] == "timeout"
    assert len(_outcome_records(caplog)) == 1


def test_unencodable_detail_never_reaches_ecs(caplog):
    caplog.set_level(logging.INFO)
    ecs = _ecs()

    result = _dispatcher(ecs).handle({"detail-type": "t", "detail": {"bad": {1, 2}}})

    ecs.run_task.assert_not_called()
    assert result["classification"] == "serialization-error"
    assert len(_outcome_records(caplog)) == 1


def test_unexpected_client_error_is_contained(caplog):
    caplog.set_level(logging.INFO)
    client = MagicMock()
    client.submit.side_effect = RuntimeError("boom")
    dispatcher = Dispatcher(
        PlacementContext("cluster-1", "task-1", ("subnet-a", "subnet-b"), "sg-1"),
        client,
    )

    result = dispatcher.handle({"detail-type": "t", "detail": {}})

    assert result["classification"] == "internal-error"
    assert result["error_code"] == "RuntimeError"
    assert len(_outcome_records(caplog)) == 1


def test_backend_without_close_is_success(caplog):
    caplog.set_level(logging.INFO)

    class RunTaskOnly:
        def __init__(self):
            self.calls = []

        def run_task(self, **kwargs):
            self.calls.append(kwargs)
            return {"tasks": [{"taskArn": TASK_ARN, "lastStatus": "PROVISIONING"}], "failures": []}

    backend = RunTaskOnly()
    dispatcher = Dispatcher(
        PlacementContext("cluster-1", "task-1", ("subnet-a", "subnet-b"), "sg-1"),
        DispatchClient(lambda _timeout: backend),
    )

    result = dispatcher.handle({"detail-type": "t", "detail": {}})

    assert len(backend.calls) == 1
    assert result["status"] == "success"
    assert result["task_arns"] == [TASK_ARN]
    assert len(_outcome_records(caplog)) == 1


def test_redelivered_event_launches_again():
    ecs = _ecs()
    dispatcher = _dispatcher(ecs)
    event = {"id": "evt-1", "detail-type": "t", "detail": {"n": 1}}

    dispatcher.handle(event)
    dispatcher.handle(event)

    assert ecs.run_task.call_count == 2


def test_lambda_handler_uses_context_budget(monkeypatch):
    mod = _load_lambda(monkeypatch)
    ecs = _ecs()
    factory = MagicMock(return_value=ecs)
    monkeypatch.setattr(mod, "DISPATCHER", Dispatcher(mod.PLACEMENT, DispatchClient(factory)))
    context = SimpleNamespace(aws_request_id="req-9", get_remaining_time_in_millis=lambda: 6000)

    result = mod.lambda_handler({"detail-type": "myDetailType", "detail": {"orderId": 42}}, context)

    factory.assert_called_once_with(5.0)
    assert result["status"] == "success"
    assert result["request_id"] == "req-9"


def test_lambda_handler_reports_timeout_when_budget_is_spent(monkeypatch, caplog):
    caplog.set_level(logging.INFO)
    mod = _load_lambda(monkeypatch)
    ecs = _ecs()
    factory = MagicMock(return_value=ecs)
    monkeypatch.setattr(mod, "DISPATCHER", Dispatcher(mod.PLACEMENT, DispatchClient(factory)))
    context = SimpleNamespace(aws_request_id="req-10", get_remaining_time_in_millis=lambda: 200)

    result = mod.lambda_handler({"detail-type": "myDetailType", "detail": {"orderId": 42}}, context)

    factory.assert_not_called()
    ecs.run_task.assert_not_called()
    assert result["status"] == "failure"
    assert result["classification"] == "timeout"
    assert result["error_code"] == "BudgetExhausted"
    records = _outcome_records(caplog)
    assert len(records) == 1
    assert _outcome_payload(records[0])["classification"] == "timeout"


def test_timeout_budget(monkeypatch):
    mod = _load_lambda(monkeypatch)

    assert mod._timeout_budget(None) == 20.0
    assert mod._timeout_budget(SimpleNamespace(get_remaining_time_in_millis=lambda: 900000)) == 20.0
    assert mod._timeout_budget(SimpleNamespace(get_remaining_time_in_millis=lambda: 4500)) == 3.5
    assert mod._timeout_budget(SimpleNamespace(get_remaining_time_in_millis=lambda: 200)) == pytest.approx(-0.8)


def test_cold_start_reads_numbered_subnets(monkeypatch):
    mod = _load_lambda(
        monkeypatch,
        {
            "CLUSTER_NAME": "cluster-1",
            "TASK_DEFINITION": "task-1",
            "SUBNET_1": "subnet-a",
            "SUBNET_2": "subnet-b",
            "SECURITY_GROUP": "sg-1",
        },
    )

    assert mod.PLACEMENT.placement_subnets == ("subnet-a", "subnet-b")
    assert mod.DISPATCHER.started_by == "event-task-dispatcher"


def test_cold_start_fails_without_two_subnets(monkeypatch):
    env = dict(BASE_ENV, SUBNET_IDS="subnet-a")

    with pytest.raises(ConfigurationError):
        _load_lambda(monkeypatch, env)


def test_cold_start_fails_without_cluster(monkeypatch):
    env = {k: v for k, v in BASE_ENV.items() if k != "CLUSTER_NAME"}

    with pytest.raises(ConfigurationError):
        _load_lambda(monkeypatch, env)
