"""Lifecycle hook integration: notifications, completion reports, the bridge and Lambda entry point."""

from node_lifecycle.lifecycle.bridge import HandledNotification, NotificationBridge
from node_lifecycle.lifecycle.completion import (
    AutoScalingReporter,
    LifecycleReporter,
    completion_params,
)
from node_lifecycle.lifecycle.notification import (
    TerminationNotification,
    is_test_notification,
    iter_messages,
    parse_notification,
)

__all__ = [
    "HandledNotification",
    "NotificationBridge",
    "AutoScalingReporter",
    "LifecycleReporter",
    "completion_params",
    "TerminationNotification",
    "is_test_notification",
    "iter_messages",
    "parse_notification",
]
