"""
Deregistration state machine.

Given an instance id, the reconciler makes sure the registry no longer lists
the node and says whether termination may proceed:

::

    START ──secret──▶ SECRET_FETCHED ──resolve──▶ IDENTITY_RESOLVED ──list──▶ ENTRIES_LISTED
      │ fail: ABANDON        │ not found: CONTINUE        │ fail: ABANDON          │
      ▼                      ▼                            ▼                        ├─ UNMATCHED ─▶ CONTINUE
     DONE                   DONE                         DONE                     └─ MATCHED ──delete──┐
                                                                                    DELETED ─▶ CONTINUE │
                                                                              DELETE_FAILED ─▶ ABANDON ◀┘

Each step returns a ``Result``; the machine only looks at values. Errors
flagged ``benign`` (missing instance, entry already deleted) resolve to
CONTINUE, everything else to ABANDON. ``reconcile`` never raises.

Re-running against an already deregistered node lands on UNMATCHED and
returns CONTINUE, so redelivered notifications are harmless.
"""

from __future__ import annotations

import time
from typing import Callable, Sequence, TypeVar

from node_lifecycle.core.deadline import Deadline
from node_lifecycle.core.errors import LifecycleError, NotFound, categorize_error, is_benign
from node_lifecycle.core.logging import get_logger
from node_lifecycle.core.result import Err, Ok, Result, try_result
from node_lifecycle.core.secrets import SecretValue, SharedSecretProvider
from node_lifecycle.inventory.identity import NodeIdentity
from node_lifecycle.inventory.resolver import IdentityResolver
from node_lifecycle.reconcile.states import (
    ReconcileState,
    ReconciliationOutcome,
    ReconciliationReport,
)
from node_lifecycle.registry.client import RegistryClient
from node_lifecycle.registry.models import DeleteStatus, RegistryEntry

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_BUDGET_SECONDS = 290.0


def _step(deadline: Deadline, op: str, call: Callable[[], T]) -> Result[T]:
    """Run one network step under the deadline; any exception becomes ``Err``."""

    def run() -> T:
        deadline.check(op)
        return call()

    return try_result(run)


def match_entries(entries: Sequence[RegistryEntry], api_url: str) -> list[RegistryEntry]:
    """Entries registered under exactly ``api_url`` (case-sensitive, no normalisation)."""
    return [entry for entry in entries if entry.url == api_url]


def _log_failure(step: str, error: Exception) -> None:
    if isinstance(error, LifecycleError):
        logger.error("reconcile_step_failed", step=step, **error.to_dict())
    else:
        logger.error(
            "reconcile_step_crashed",
            step=step,
            category=categorize_error(error).value,
            exc_info=error,
        )


class DeregistrationReconciler:
    """Removes a terminating node from the registry.

    Args:
        secrets: Fetches the shared secret, fresh on each run
        resolver: Instance id → NodeIdentity
        registry: Scalelite client
        request_timeout: Upper bound for each registry call
        budget_seconds: Default deadline when the caller passes none
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        secrets: SharedSecretProvider,
        resolver: IdentityResolver,
        registry: RegistryClient,
        request_timeout: float = 15.0,
        budget_seconds: float = DEFAULT_BUDGET_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.secrets = secrets
        self.resolver = resolver
        self.registry = registry
        self.request_timeout = request_timeout
        self.budget_seconds = budget_seconds
        self._clock = clock

    # ── Steps ────────────────────────────────────────────────────

    def fetch_secret(self, deadline: Deadline) -> Result[SecretValue]:
        return _step(deadline, "fetch_secret", self.secrets.fetch)

    def resolve_identity(self, instance_id: str, deadline: Deadline) -> Result[NodeIdentity]:
        return _step(deadline, "resolve_identity", lambda: self.resolver.resolve(instance_id))

    def list_entries(self, secret: SecretValue, deadline: Deadline) -> Result[list[RegistryEntry]]:
        return _step(
            deadline,
            "getServers",
            lambda: self.registry.list_entries(secret, timeout=deadline.clamp(self.request_timeout)),
        )

    def delete_entry(
        self, entry: RegistryEntry, secret: SecretValue, deadline: Deadline
    ) -> Result[DeleteStatus]:
        result = _step(
            deadline,
            "deleteServer",
            lambda: self.registry.delete_entry(
                entry.internal_id, secret, timeout=deadline.clamp(self.request_timeout)
            ),
        )
        # A NotFound raised by a registry implementation means the same as a 404
        if isinstance(result, Err) and isinstance(result.error, NotFound):
            return Ok(DeleteStatus.NOT_FOUND)
        return result

    # ── Machine ──────────────────────────────────────────────────

    def reconcile(
        self,
        instance_id: str,
        *,
        deadline: Deadline | None = None,
        dry_run: bool = False,
    ) -> ReconciliationReport:
        """Run the machine to DONE and report the outcome. Never raises."""
        if deadline is None:
            deadline = Deadline.after(
                self.budget_seconds, operation=f"deregister {instance_id}", clock=self._clock
            )

        trail: list[ReconcileState] = [ReconcileState.START]
        identity: NodeIdentity | None = None
        matched: list[RegistryEntry] = []

        def done(
            outcome: ReconciliationOutcome,
            error: Exception | None = None,
            deleted: Sequence[str] = (),
        ) -> ReconciliationReport:
            trail.append(ReconcileState.DONE)
            report = ReconciliationReport(
                instance_id=instance_id,
                outcome=outcome,
                states=tuple(trail),
                identity=identity,
                matched_ids=tuple(e.internal_id for e in matched),
                deleted_ids=tuple(deleted),
                error=error,
                dry_run=dry_run,
            )
            logger.info(
                "reconcile_finished",
                instance_id=instance_id,
                outcome=outcome.value,
                final_state=report.final_state.value,
                elapsed=round(deadline.elapsed, 3),
            )
            return report

        logger.info("reconcile_started", instance_id=instance_id, budget=deadline.timeout_seconds)

        match self.fetch_secret(deadline):
            case Err(error):
                _log_failure("fetch_secret", error)
                return done(ReconciliationOutcome.ABANDON, error)
            case Ok(secret):
                trail.append(ReconcileState.SECRET_FETCHED)

        match self.resolve_identity(instance_id, deadline):
            case Err(error) if is_benign(error):
                logger.warning("instance_not_in_inventory", instance_id=instance_id, reason=str(error))
                return done(ReconciliationOutcome.CONTINUE, error)
            case Err(error):
                _log_failure("resolve_identity", error)
                return done(ReconciliationOutcome.ABANDON, error)
            case Ok(identity):
                trail.append(ReconcileState.IDENTITY_RESOLVED)

        match self.list_entries(secret, deadline):
            case Err(error):
                _log_failure("getServers", error)
                return done(ReconciliationOutcome.ABANDON, error)
            case Ok(entries):
                trail.append(ReconcileState.ENTRIES_LISTED)

        matched = match_entries(entries, identity.api_url)
        if not matched:
            trail.append(ReconcileState.UNMATCHED)
            logger.warning(
                "registry_entry_unmatched",
                api_url=identity.api_url,
                registry_size=len(entries),
            )
            return done(ReconciliationOutcome.CONTINUE)

        trail.append(ReconcileState.MATCHED)
        logger.info(
            "registry_entry_matched",
            api_url=identity.api_url,
            internal_ids=[e.internal_id for e in matched],
        )

        if dry_run:
            logger.info("reconcile_dry_run", would_delete=[e.internal_id for e in matched])
            return done(ReconciliationOutcome.CONTINUE)

        deleted: list[str] = []
        for entry in matched:
            match self.delete_entry(entry, secret, deadline):
                case Err(error):
                    _log_failure("deleteServer", error)
                    trail.append(ReconcileState.DELETE_FAILED)
                    return done(ReconciliationOutcome.ABANDON, error, deleted)
                case Ok(status):
                    deleted.append(entry.internal_id)
                    logger.info(
                        "registry_entry_removed",
                        internal_id=entry.internal_id,
                        status=status.value,
                    )

        trail.append(ReconcileState.DELETED)
        return done(ReconciliationOutcome.CONTINUE, deleted=deleted)


__all__ = ["DeregistrationReconciler", "match_entries", "DEFAULT_BUDGET_SECONDS"]
