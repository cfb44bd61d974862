"""
AWS Lambda entry point.

Configure the function with ``node_lifecycle.lifecycle.handler.lambda_handler``
and subscribe it to the SNS topic the lifecycle hook publishes to.

Each invocation loads settings, builds its own clients and handles every
record in the event. Missing configuration raises ``ConfigurationError``
before any notification is touched, which fails the invocation; SNS then
redelivers and the hook's heartbeat timeout governs the instance.

The reconciliation budget is the smaller of the hook budget and what the
Lambda runtime says is left, minus the safety margin reserved for the
completion call.
"""

from __future__ import annotations

from typing import Any

from node_lifecycle.core.deadline import Deadline
from node_lifecycle.core.logging import configure_logging, get_logger
from node_lifecycle.core.settings import LifecycleSettings, load_settings
from node_lifecycle.lifecycle.factory import build_bridge, build_components

logger = get_logger(__name__)


def invocation_deadline(settings: LifecycleSettings, context: Any | None) -> Deadline:
    """Deadline for the whole invocation."""
    budget = settings.reconcile_budget_seconds
    remaining_ms = getattr(context, "get_remaining_time_in_millis", None)
    if callable(remaining_ms):
        runtime_left = remaining_ms() / 1000.0 - settings.deadline_safety_margin_seconds
        budget = max(min(budget, runtime_left), 0.0)
    return Deadline.after(budget, operation="lambda invocation")


def lambda_handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    settings = load_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    logger.info(
        "lambda_invoked",
        request_id=getattr(context, "aws_request_id", None),
        records=len(event.get("Records") or []),
    )

    components = build_components(settings)
    try:
        bridge = build_bridge(components, settings)
        handled = bridge.handle_event(event, deadline=invocation_deadline(settings, context))
    finally:
        components.close()

    results = [h.to_dict() for h in handled]
    logger.info("lambda_finished", handled=len(results))
    return {"results": results}


__all__ = ["lambda_handler", "invocation_deadline"]
