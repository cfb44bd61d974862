"""
Termination notifications and the envelopes they arrive in.

Auto Scaling publishes lifecycle hook messages to SNS; the Lambda receives an
SNS event whose ``Records[].Sns.Message`` is the JSON message. EventBridge
delivers the same fields under ``detail``. A bare message dict is accepted
for manual invocation.

When a hook is first attached, Auto Scaling sends a test message
(``"Event": "autoscaling:TEST_NOTIFICATION"``) with no instance in it; such
messages are recognised so they can be skipped instead of reported.
"""

from __future__ import annotations

import json
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from node_lifecycle.core.errors import MalformedNotification
from node_lifecycle.core.result import Err, Ok, Result

TEST_NOTIFICATION_EVENT = "autoscaling:TEST_NOTIFICATION"


class TerminationNotification(BaseModel):
    """One termination intent for one instance. May be redelivered."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    instance_id: str = Field(alias="EC2InstanceId", min_length=1)
    hook_name: str = Field(alias="LifecycleHookName", min_length=1)
    group_name: str = Field(alias="AutoScalingGroupName", min_length=1)
    lifecycle_transition: str | None = Field(default=None, alias="LifecycleTransition")
    lifecycle_action_token: str | None = Field(default=None, alias="LifecycleActionToken")

    def log_context(self) -> dict[str, str]:
        return {
            "instance_id": self.instance_id,
            "hook_name": self.hook_name,
            "group_name": self.group_name,
        }


def is_test_notification(message: dict[str, Any]) -> bool:
    return message.get("Event") == TEST_NOTIFICATION_EVENT


def parse_notification(message: dict[str, Any]) -> TerminationNotification:
    """Validate one message.

    Raises:
        MalformedNotification: A required field is missing or empty
    """
    try:
        return TerminationNotification.model_validate(message)
    except ValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
        raise MalformedNotification(
            f"Notification missing or invalid fields: {', '.join(fields) or 'unknown'}",
            cause=exc,
        ).with_context(
            instance_id=message.get("EC2InstanceId"),
            hook_name=message.get("LifecycleHookName"),
            group_name=message.get("AutoScalingGroupName"),
        ) from exc


def _decode(raw: Any) -> Result[dict[str, Any]]:
    if isinstance(raw, dict):
        return Ok(raw)
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError as exc:
            return Err(MalformedNotification("Message is not valid JSON", cause=exc))
        if isinstance(decoded, dict):
            return Ok(decoded)
    return Err(MalformedNotification(f"Unsupported message payload: {type(raw).__name__}"))


def iter_messages(event: dict[str, Any]) -> Iterator[Result[dict[str, Any]]]:
    """Yield every message in an SNS, EventBridge or bare event."""
    records = event.get("Records")
    if isinstance(records, list):
        for record in records:
            sns = record.get("Sns") if isinstance(record, dict) else None
            if not isinstance(sns, dict) or "Message" not in sns:
                yield Err(MalformedNotification("Record has no Sns.Message"))
                continue
            yield _decode(sns["Message"])
        return

    if isinstance(event.get("detail"), dict):
        yield Ok(event["detail"])
        return

    yield _decode(event)


__all__ = [
    "TerminationNotification",
    "TEST_NOTIFICATION_EVENT",
    "is_test_notification",
    "parse_notification",
    "iter_messages",
]
