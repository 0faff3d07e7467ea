from __future__ import annotations

import threading
import time
import typing

import pulumi
from botocore.exceptions import BotoCoreError, ClientError

import eksconverge
import eksconverge.config
import eksconverge.errors

REASON_UNKNOWN = "reason unknown"


def stack_failure_reason(events: typing.Iterable[dict[str, typing.Any]]) -> str:
    """Pick the most specific failure reason out of a stack's event history.

    A CREATE_FAILED reason wins outright; otherwise the last
    ROLLBACK_IN_PROGRESS reason seen is used. Events missing a status,
    logical resource id or reason are ignored.
    """
    reason = REASON_UNKNOWN

    for event in events:
        status = event.get("ResourceStatus")
        if status is None or event.get("LogicalResourceId") is None or event.get("ResourceStatusReason") is None:
            continue

        if status == eksconverge.StackStatus.CREATE_FAILED:
            return event["ResourceStatusReason"]

        if status == eksconverge.StackStatus.ROLLBACK_IN_PROGRESS:
            reason = event["ResourceStatusReason"]

    return reason


def _wait(
    stack_name: str,
    interval: float,
    deadline: float | None,
    cancel: threading.Event | None,
) -> None:
    if deadline is not None:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            msg = f"timed out waiting for stack [{stack_name}] to finish creating"
            raise eksconverge.errors.StackTimeoutError(msg)
        interval = min(interval, remaining)

    if cancel is None:
        time.sleep(interval)
    elif cancel.wait(interval):
        msg = f"cancelled while waiting for stack [{stack_name}] to finish creating"
        raise eksconverge.errors.StackTimeoutError(msg)


def _describe_stack(cloudformation: typing.Any, stack_name: str) -> dict[str, typing.Any]:
    try:
        response = cloudformation.describe_stacks(StackName=stack_name)
    except (BotoCoreError, ClientError) as err:
        msg = f"error polling stack [{stack_name}] info: {err}"
        raise eksconverge.errors.StackCreateError(msg) from err

    stacks = response.get("Stacks", [])
    if len(stacks) == 0:
        msg = f"stack [{stack_name}] did not have output"
        raise eksconverge.errors.StackCreateError(msg)

    return stacks[0]


def _describe_failure_reason(cloudformation: typing.Any, stack_name: str) -> str:
    try:
        response = cloudformation.describe_stack_events(StackName=stack_name)
    except (BotoCoreError, ClientError) as err:
        pulumi.log.warn(f"could not list events for stack [{stack_name}]: {err}")
        return REASON_UNKNOWN

    return stack_failure_reason(response.get("StackEvents", []))


def provision_stack(
    cloudformation: typing.Any,
    request: eksconverge.StackRequest,
    *,
    settings: eksconverge.config.Settings | None = None,
    cancel: threading.Event | None = None,
    classifier: eksconverge.errors.ErrorClassifier = eksconverge.errors.DEFAULT_CLASSIFIER,
) -> eksconverge.StackResult:
    """Create a CloudFormation stack and block until it leaves CREATE_IN_PROGRESS.

    A stack that already exists is treated as created by an earlier pass and
    is polled like a fresh one. The wait is bounded by
    ``settings.stack_timeout`` and by ``cancel``; either one ending the wait
    raises :class:`eksconverge.errors.StackTimeoutError`.
    """
    settings = settings or eksconverge.config.Settings()
    name = request.stack_name

    try:
        cloudformation.create_stack(
            StackName=name,
            TemplateBody=request.template_body,
            Capabilities=list(request.capabilities),
            Parameters=list(request.parameters),
            Tags=[{"Key": eksconverge.DISPLAY_NAME_TAG_KEY, "Value": request.display_name}],
        )
    except (BotoCoreError, ClientError) as err:
        if not classifier.already_exists(err):
            msg = f"error creating stack [{name}]: {err}"
            raise eksconverge.errors.StackCreateError(msg) from err
        pulumi.log.info(f"stack [{name}] already exists, waiting on it")

    deadline = None if settings.stack_timeout is None else time.monotonic() + settings.stack_timeout

    stack: dict[str, typing.Any] = {}
    status: str = eksconverge.StackStatus.CREATE_IN_PROGRESS
    while status == eksconverge.StackStatus.CREATE_IN_PROGRESS:
        _wait(name, settings.stack_poll_interval, deadline, cancel)
        stack = _describe_stack(cloudformation, name)
        status = stack["StackStatus"]

    if status != eksconverge.StackStatus.CREATE_COMPLETE:
        reason = _describe_failure_reason(cloudformation, name)
        msg = f"stack [{name}] failed to create: {reason}"
        raise eksconverge.errors.StackCreateError(msg)

    pulumi.log.debug(f"stack [{name}] created")
    return eksconverge.StackResult.from_stack(name, stack)
