"""Tests for notification parsing and envelope unwrapping."""

import json

import pytest

from node_lifecycle.core.errors import MalformedNotification
from node_lifecycle.core.result import Err, Ok
from node_lifecycle.lifecycle.notification import (
    TerminationNotification,
    is_test_notification,
    iter_messages,
    parse_notification,
)


class TestParseNotification:
    def test_fields(self, termination_message):
        n = parse_notification(termination_message)
        assert n.instance_id == "i-1"
        assert n.hook_name == "H"
        assert n.group_name == "G"
        assert n.lifecycle_transition == "autoscaling:EC2_INSTANCE_TERMINATING"
        assert n.lifecycle_action_token == "token-1"

    def test_optional_fields(self):
        n = parse_notification(
            {"EC2InstanceId": "i-1", "LifecycleHookName": "H", "AutoScalingGroupName": "G"}
        )
        assert n.lifecycle_transition is None
        assert n.lifecycle_action_token is None

    def test_unknown_fields_ignored(self, termination_message):
        termination_message["Service"] = "AWS Auto Scaling"
        assert parse_notification(termination_message).instance_id == "i-1"

    def test_construct_by_field_name(self):
        n = TerminationNotification(instance_id="i-1", hook_name="H", group_name="G")
        assert n.log_context() == {"instance_id": "i-1", "hook_name": "H", "group_name": "G"}

    @pytest.mark.parametrize("field", ["EC2InstanceId", "LifecycleHookName", "AutoScalingGroupName"])
    def test_missing_required(self, termination_message, field):
        del termination_message[field]
        with pytest.raises(MalformedNotification) as exc_info:
            parse_notification(termination_message)
        assert field in exc_info.value.message

    def test_empty_required(self, termination_message):
        termination_message["EC2InstanceId"] = ""
        with pytest.raises(MalformedNotification):
            parse_notification(termination_message)

    def test_context_carries_what_was_present(self, termination_message):
        del termination_message["LifecycleHookName"]
        with pytest.raises(MalformedNotification) as exc_info:
            parse_notification(termination_message)
        assert exc_info.value.context.instance_id == "i-1"
        assert exc_info.value.context.group_name == "G"


class TestTestNotification:
    def test_detected(self):
        assert is_test_notification({"Event": "autoscaling:TEST_NOTIFICATION"})

    def test_real_message(self, termination_message):
        assert not is_test_notification(termination_message)


class TestIterMessages:
    def test_sns_records(self, termination_message):
        event = {
            "Records": [
                {"Sns": {"Message": json.dumps(termination_message)}},
                {"Sns": {"Message": json.dumps({**termination_message, "EC2InstanceId": "i-2"})}},
            ]
        }
        messages = [m.unwrap() for m in iter_messages(event)]
        assert [m["EC2InstanceId"] for m in messages] == ["i-1", "i-2"]

    def test_sns_record_without_message(self):
        results = list(iter_messages({"Records": [{"EventSource": "aws:sns"}]}))
        assert len(results) == 1
        assert isinstance(results[0], Err)

    def test_sns_message_not_json(self):
        results = list(iter_messages({"Records": [{"Sns": {"Message": "not json"}}]}))
        assert isinstance(results[0].error, MalformedNotification)

    def test_sns_message_json_array(self):
        results = list(iter_messages({"Records": [{"Sns": {"Message": "[1, 2]"}}]}))
        assert results[0].is_err()

    def test_eventbridge_detail(self, termination_message):
        event = {"detail-type": "EC2 Instance-terminate Lifecycle Action", "detail": termination_message}
        assert list(iter_messages(event)) == [Ok(termination_message)]

    def test_bare_message(self, termination_message):
        assert list(iter_messages(termination_message)) == [Ok(termination_message)]
