"""States, outcomes and the report produced by one reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from node_lifecycle.core.errors import LifecycleError
from node_lifecycle.inventory.identity import NodeIdentity


class ReconciliationOutcome(str, Enum):
    """What Auto Scaling is told to do with the terminating instance.

    The values are the literal ``LifecycleActionResult`` strings.
    """

    CONTINUE = "CONTINUE"   # node confirmed absent from the registry
    ABANDON = "ABANDON"     # unknown or unsafe; hold termination


class ReconcileState(str, Enum):
    """States of the deregistration machine, in the order they can occur."""

    START = "START"
    SECRET_FETCHED = "SECRET_FETCHED"
    IDENTITY_RESOLVED = "IDENTITY_RESOLVED"
    ENTRIES_LISTED = "ENTRIES_LISTED"
    MATCHED = "MATCHED"
    UNMATCHED = "UNMATCHED"
    DELETED = "DELETED"
    DELETE_FAILED = "DELETE_FAILED"
    DONE = "DONE"


@dataclass(frozen=True)
class ReconciliationReport:
    """Everything one run decided, in order.

    Attributes:
        instance_id: Instance that was reconciled
        outcome: CONTINUE or ABANDON
        states: State trail from START to DONE
        identity: Resolved identity, if resolution succeeded
        matched_ids: Registry ids whose URL matched
        deleted_ids: Registry ids confirmed gone (deleted or already absent)
        error: The error that decided the outcome, if any
        dry_run: True if deletions were skipped
    """

    instance_id: str
    outcome: ReconciliationOutcome
    states: tuple[ReconcileState, ...]
    identity: NodeIdentity | None = None
    matched_ids: tuple[str, ...] = ()
    deleted_ids: tuple[str, ...] = ()
    error: Exception | None = field(default=None, compare=False)
    dry_run: bool = False

    @property
    def final_state(self) -> ReconcileState:
        """Last state before DONE."""
        return self.states[-2] if len(self.states) > 1 else self.states[-1]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "instance_id": self.instance_id,
            "outcome": self.outcome.value,
            "states": [s.value for s in self.states],
            "matched_ids": list(self.matched_ids),
            "deleted_ids": list(self.deleted_ids),
            "dry_run": self.dry_run,
        }
        if self.identity is not None:
            result["api_url"] = self.identity.api_url
        if self.error is not None:
            if isinstance(self.error, LifecycleError):
                result["error"] = self.error.to_dict()
            else:
                result["error"] = {
                    "error_type": type(self.error).__name__,
                    "message": str(self.error),
                }
        return result


__all__ = ["ReconciliationOutcome", "ReconcileState", "ReconciliationReport"]
