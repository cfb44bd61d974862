"""Tests for lifecycle completion reporting."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from node_lifecycle.core.errors import ReportFailure
from node_lifecycle.lifecycle.completion import AutoScalingReporter, completion_params
from node_lifecycle.lifecycle.notification import TerminationNotification
from node_lifecycle.reconcile.states import ReconciliationOutcome


@pytest.fixture
def notification() -> TerminationNotification:
    return TerminationNotification(instance_id="i-1", hook_name="H", group_name="G")


class TestCompletionParams:
    def test_continue(self, notification):
        assert completion_params(notification, ReconciliationOutcome.CONTINUE) == {
            "LifecycleHookName": "H",
            "AutoScalingGroupName": "G",
            "LifecycleActionResult": "CONTINUE",
            "InstanceId": "i-1",
        }

    def test_abandon(self, notification):
        params = completion_params(notification, ReconciliationOutcome.ABANDON)
        assert params["LifecycleActionResult"] == "ABANDON"


class TestAutoScalingReporter:
    def test_calls_complete_lifecycle_action(self, notification):
        client = MagicMock()
        AutoScalingReporter(client).complete(notification, ReconciliationOutcome.CONTINUE)
        client.complete_lifecycle_action.assert_called_once_with(
            LifecycleHookName="H",
            AutoScalingGroupName="G",
            LifecycleActionResult="CONTINUE",
            InstanceId="i-1",
        )

    def test_client_error_is_report_failure(self, notification):
        client = MagicMock()
        client.complete_lifecycle_action.side_effect = ClientError(
            {"Error": {"Code": "ValidationError", "Message": "No active Lifecycle Action"}},
            "CompleteLifecycleAction",
        )
        with pytest.raises(ReportFailure) as exc_info:
            AutoScalingReporter(client).complete(notification, ReconciliationOutcome.ABANDON)
        assert exc_info.value.context.instance_id == "i-1"
        assert exc_info.value.context.hook_name == "H"

    def test_connection_error_is_report_failure(self, notification):
        client = MagicMock()
        client.complete_lifecycle_action.side_effect = EndpointConnectionError(
            endpoint_url="https://autoscaling"
        )
        with pytest.raises(ReportFailure):
            AutoScalingReporter(client).complete(notification, ReconciliationOutcome.CONTINUE)
