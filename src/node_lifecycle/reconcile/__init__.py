"""Deregistration reconciler and its state/outcome types."""

from node_lifecycle.reconcile.reconciler import DeregistrationReconciler, match_entries
from node_lifecycle.reconcile.states import (
    ReconcileState,
    ReconciliationOutcome,
    ReconciliationReport,
)

__all__ = [
    "DeregistrationReconciler",
    "match_entries",
    "ReconcileState",
    "ReconciliationOutcome",
    "ReconciliationReport",
]
