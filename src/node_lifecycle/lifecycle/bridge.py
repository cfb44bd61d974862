"""
Lifecycle notification bridge.

Turns each termination notification into one reconciliation and one
completion report. Notifications are independent units of work: nothing is
shared between them except immutable configuration and thread-safe clients,
so an event with several records can be fanned out to a thread pool.

Every parsed notification reaches the report step. If the report itself
fails, the instance stays in ``Terminating:Wait`` until the hook times out
and Auto Scaling applies its default; that is logged at CRITICAL and not
retried here, since SNS redelivery is the retry boundary.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

from node_lifecycle.core.deadline import Deadline
from node_lifecycle.core.errors import LifecycleError, ReportFailure
from node_lifecycle.core.logging import LogContext, get_logger
from node_lifecycle.core.result import Err, Ok
from node_lifecycle.lifecycle.completion import LifecycleReporter
from node_lifecycle.lifecycle.notification import (
    TerminationNotification,
    is_test_notification,
    iter_messages,
    parse_notification,
)
from node_lifecycle.reconcile.reconciler import DEFAULT_BUDGET_SECONDS, DeregistrationReconciler
from node_lifecycle.reconcile.states import (
    ReconcileState,
    ReconciliationOutcome,
    ReconciliationReport,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class HandledNotification:
    """Outcome of one notification, including whether the report went out."""

    notification: TerminationNotification
    report: ReconciliationReport
    reported: bool
    report_error: Exception | None = None

    @property
    def outcome(self) -> ReconciliationOutcome:
        return self.report.outcome

    def to_dict(self) -> dict[str, Any]:
        result = {
            "instance_id": self.notification.instance_id,
            "outcome": self.outcome.value,
            "reported": self.reported,
        }
        if self.report_error is not None:
            result["report_error"] = str(self.report_error)
        return result


class NotificationBridge:
    """Runs the reconciler for notifications and reports the outcome.

    Args:
        reconciler: Deregistration state machine
        reporter: Completion API
        max_workers: Records handled concurrently per event
        budget_seconds: Per-notification reconciliation budget
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        reconciler: DeregistrationReconciler,
        reporter: LifecycleReporter,
        max_workers: int = 1,
        budget_seconds: float = DEFAULT_BUDGET_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.reconciler = reconciler
        self.reporter = reporter
        self.max_workers = max_workers
        self.budget_seconds = budget_seconds
        self._clock = clock

    def _deadline_for(
        self, notification: TerminationNotification, outer: Deadline | None
    ) -> Deadline:
        if outer is None:
            return Deadline.after(
                self.budget_seconds,
                operation=f"deregister {notification.instance_id}",
                clock=self._clock,
            )
        return outer.narrowed(self.budget_seconds)

    def _reconcile(
        self, notification: TerminationNotification, deadline: Deadline
    ) -> ReconciliationReport:
        try:
            return self.reconciler.reconcile(notification.instance_id, deadline=deadline)
        except Exception as exc:
            logger.error("reconciler_crashed", exc_info=exc)
            return ReconciliationReport(
                instance_id=notification.instance_id,
                outcome=ReconciliationOutcome.ABANDON,
                states=(ReconcileState.START, ReconcileState.DONE),
                error=exc,
            )

    def handle(
        self, notification: TerminationNotification, deadline: Deadline | None = None
    ) -> HandledNotification:
        """Reconcile one notification and report its outcome. Never raises."""
        with LogContext(**notification.log_context()):
            logger.info("termination_notification_received")
            report = self._reconcile(notification, self._deadline_for(notification, deadline))

            try:
                self.reporter.complete(notification, report.outcome)
            except ReportFailure as exc:
                logger.critical(
                    "lifecycle_action_report_failed",
                    result=report.outcome.value,
                    **exc.to_dict(),
                )
                return HandledNotification(notification, report, reported=False, report_error=exc)
            except Exception as exc:
                logger.critical(
                    "lifecycle_action_report_failed",
                    result=report.outcome.value,
                    exc_info=exc,
                )
                return HandledNotification(notification, report, reported=False, report_error=exc)

            return HandledNotification(notification, report, reported=True)

    def on_notification(
        self, notification: TerminationNotification, deadline: Deadline | None = None
    ) -> ReconciliationOutcome:
        """Handle one notification; returns the outcome that was reported."""
        return self.handle(notification, deadline).outcome

    def collect(self, event: dict[str, Any]) -> list[TerminationNotification]:
        """Parse an event into notifications, skipping test and malformed messages."""
        notifications: list[TerminationNotification] = []
        for item in iter_messages(event):
            match item:
                case Err(error):
                    logger.error("notification_unreadable", error=str(error))
                case Ok(message) if is_test_notification(message):
                    logger.info(
                        "test_notification_skipped",
                        group_name=message.get("AutoScalingGroupName"),
                    )
                case Ok(message):
                    try:
                        notifications.append(parse_notification(message))
                    except LifecycleError as exc:
                        logger.error("notification_malformed", **exc.to_dict())
        return notifications

    def handle_event(
        self, event: dict[str, Any], deadline: Deadline | None = None
    ) -> list[HandledNotification]:
        """Handle every notification in an SNS/EventBridge/bare event."""
        notifications = self.collect(event)
        if self.max_workers > 1 and len(notifications) > 1:
            with ThreadPoolExecutor(
                max_workers=min(self.max_workers, len(notifications)),
                thread_name_prefix="lifecycle",
            ) as pool:
                return list(pool.map(lambda n: self.handle(n, deadline), notifications))
        return [self.handle(n, deadline) for n in notifications]


__all__ = ["NotificationBridge", "HandledNotification"]
