"""Reporting the outcome back to Auto Scaling."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from node_lifecycle.core.errors import ReportFailure
from node_lifecycle.core.logging import get_logger
from node_lifecycle.lifecycle.notification import TerminationNotification
from node_lifecycle.reconcile.states import ReconciliationOutcome

logger = get_logger(__name__)


class LifecycleReporter(ABC):
    """Tells the scaling controller whether to proceed with termination."""

    @abstractmethod
    def complete(
        self, notification: TerminationNotification, outcome: ReconciliationOutcome
    ) -> None:
        """Report the outcome.

        Raises:
            ReportFailure: The controller did not accept the report
        """
        ...


def completion_params(
    notification: TerminationNotification, outcome: ReconciliationOutcome
) -> dict[str, str]:
    """``CompleteLifecycleAction`` parameters for a notification."""
    return {
        "LifecycleHookName": notification.hook_name,
        "AutoScalingGroupName": notification.group_name,
        "LifecycleActionResult": outcome.value,
        "InstanceId": notification.instance_id,
    }


class AutoScalingReporter(LifecycleReporter):
    """boto3 ``autoscaling`` backed reporter."""

    def __init__(self, client: Any):
        self._client = client

    def complete(
        self, notification: TerminationNotification, outcome: ReconciliationOutcome
    ) -> None:
        params = completion_params(notification, outcome)
        try:
            self._client.complete_lifecycle_action(**params)
        except (ClientError, BotoCoreError) as exc:
            raise ReportFailure(
                f"CompleteLifecycleAction failed for {notification.instance_id}", cause=exc
            ).with_context(**notification.log_context()) from exc
        logger.info("lifecycle_action_completed", result=outcome.value)


__all__ = ["LifecycleReporter", "AutoScalingReporter", "completion_params"]
