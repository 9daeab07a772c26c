"""task_dispatch.dispatch_client — Single-attempt ECS RunTask submission.

``submit`` never raises for backend or transport problems. Every error is
captured as a ``Failure`` carrying a DispatchFailure whose classification
tells alerting what went wrong:

    authorization-denied     caller may not run the task or pass its roles
    cluster-not-found        unknown cluster identifier
    invalid-request          malformed parameters (subnet/SG mismatch, ...)
    request-rejected         ECS ClientException (e.g. unknown task definition)
    platform-incompatible    Fargate platform/feature mismatch
    throttled                request rate exceeded
    backend-unavailable      ECS server-side error
    account-blocked          account blocked from running tasks
    credentials-unavailable  no usable AWS credentials in the runtime
    timeout                  no answer within, or no time left in, the budget
    transport-error          any other botocore transport failure
    placement-failed         ECS accepted the call but could not place the task
    no-task-started          ECS returned neither tasks nor failures
    backend-rejected         any other ECS error code
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)

from task_dispatch.aws_clients import EcsClientFactory, make_ecs_client
from task_dispatch.config import DISPATCH_TIMEOUT_FLOOR_SECONDS
from task_dispatch.errors import DispatchFailure, TimeoutFailure
from task_dispatch.launch_request import LaunchRequest

__all__ = [
    "DispatchClient",
    "DispatchOutcome",
    "Failure",
    "Success",
    "classify_client_error",
]

logger = logging.getLogger(__name__)

_AUTHORIZATION_CODES = frozenset({
    "AccessDenied",
    "AccessDeniedException",
    "UnauthorizedOperation",
    "UnrecognizedClientException",
    "InvalidClientTokenId",
    "ExpiredToken",
    "ExpiredTokenException",
    "SignatureDoesNotMatch",
})
_ERROR_CODE_CLASSES: Dict[str, str] = {
    "ClusterNotFoundException": "cluster-not-found",
    "InvalidParameterException": "invalid-request",
    "ValidationException": "invalid-request",
    "ClientException": "request-rejected",
    "PlatformUnknownException": "platform-incompatible",
    "PlatformTaskDefinitionIncompatibilityException": "platform-incompatible",
    "UnsupportedFeatureException": "platform-incompatible",
    "ThrottlingException": "throttled",
    "Throttling": "throttled",
    "TooManyRequestsException": "throttled",
    "ServerException": "backend-unavailable",
    "ServiceUnavailable": "backend-unavailable",
    "ServiceUnavailableException": "backend-unavailable",
    "InternalFailure": "backend-unavailable",
    "BlockedException": "account-blocked",
}


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Success:
    response: Dict[str, Any]
    ok = True

    @property
    def task_arns(self) -> List[str]:
        return [task.get("taskArn", "") for task in self.response.get("tasks") or []]

    @property
    def task_statuses(self) -> List[str]:
        return [task.get("lastStatus", "") for task in self.response.get("tasks") or []]


@dataclass(frozen=True)
class Failure:
    error: DispatchFailure
    ok = False

    @property
    def classification(self) -> str:
        return self.error.classification


DispatchOutcome = Union[Success, Failure]


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify_client_error(exc: ClientError) -> DispatchFailure:
    """Map an ECS ClientError to a classified DispatchFailure."""
    error = exc.response.get("Error", {}) or {}
    code = str(error.get("Code") or "Unknown")
    message = str(error.get("Message") or exc)
    status_code = (exc.response.get("ResponseMetadata") or {}).get("HTTPStatusCode")

    if code in _AUTHORIZATION_CODES or status_code == 403:
        classification = "authorization-denied"
    elif code in _ERROR_CODE_CLASSES:
        classification = _ERROR_CODE_CLASSES[code]
    elif isinstance(status_code, int) and status_code >= 500:
        classification = "backend-unavailable"
    else:
        classification = "backend-rejected"

    return DispatchFailure(
        message,
        classification=classification,
        code=code,
        status_code=status_code,
    )


def _classify_botocore_error(exc: BotoCoreError) -> DispatchFailure:
    if isinstance(exc, (ReadTimeoutError, ConnectTimeoutError)):
        return TimeoutFailure(str(exc), code=type(exc).__name__)
    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return DispatchFailure(
            str(exc),
            classification="credentials-unavailable",
            code=type(exc).__name__,
        )
    return DispatchFailure(str(exc), classification="transport-error", code=type(exc).__name__)


def _describe_failure(item: Dict[str, Any]) -> str:
    text = str(item.get("reason") or "UNKNOWN")
    if item.get("detail"):
        text += f" ({item['detail']})"
    if item.get("arn"):
        text += f" [{item['arn']}]"
    return text


def _classify_response(response: Dict[str, Any]) -> DispatchOutcome:
    failures = response.get("failures") or []
    if failures:
        reasons = "; ".join(_describe_failure(item) for item in failures)
        return Failure(
            DispatchFailure(
                f"ECS could not place the task: {reasons}",
                classification="placement-failed",
                code=str(failures[0].get("reason") or "UNKNOWN"),
            )
        )
    if not response.get("tasks"):
        return Failure(
            DispatchFailure(
                "ECS returned no tasks and no failures",
                classification="no-task-started",
            )
        )
    return Success(response)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class DispatchClient:
    """Submit launch requests to ECS, one attempt per call.

    ``client_factory`` is called with the timeout budget and must return an
    object exposing ``run_task``; a fresh client is acquired per submission
    and its ``close`` is called afterwards if it has one.

    A budget below ``DISPATCH_TIMEOUT_FLOOR_SECONDS`` is reported as a
    ``timeout`` without acquiring a client.
    """

    def __init__(self, client_factory: Optional[EcsClientFactory] = None) -> None:
        self._client_factory = client_factory or make_ecs_client

    def submit(self, request: LaunchRequest, *, timeout_seconds: Optional[float] = None) -> DispatchOutcome:
        if timeout_seconds is not None and timeout_seconds < DISPATCH_TIMEOUT_FLOOR_SECONDS:
            logger.warning(
                "[WARNING] RunTask skipped: %.3fs budget is below the %.3fs minimum",
                timeout_seconds,
                DISPATCH_TIMEOUT_FLOOR_SECONDS,
            )
            return Failure(
                TimeoutFailure(
                    f"Not enough invocation time left to call RunTask ({timeout_seconds:.3f}s)",
                    code="BudgetExhausted",
                )
            )

        logger.info(
            "[INFO] RunTask cluster=%s taskDefinition=%s subnets=%s timeout=%s",
            request.cluster_id,
            request.task_definition_id,
            ",".join(request.subnet_ids),
            timeout_seconds,
        )
        try:
            ecs = self._client_factory(timeout_seconds)
            try:
                response = ecs.run_task(**request.to_run_task_kwargs())
            finally:
                close = getattr(ecs, "close", None)
                if close is not None:
                    close()
        except ClientError as exc:
            return Failure(classify_client_error(exc))
        except BotoCoreError as exc:
            return Failure(_classify_botocore_error(exc))

        response = dict(response or {})
        # Not useful in the outcome record and not JSON-friendly.
        response.pop("ResponseMetadata", None)
        return _classify_response(response)
