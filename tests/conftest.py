"""
Shared pytest fixtures for node-lifecycle tests.

This module provides:
- In-memory stand-ins for the secret store, EC2 inventory, registry and
  Auto Scaling reporter
- A manual clock for deadline tests
- Logging/context cleanup between tests

Usage:
    def test_something(reconciler, registry):
        registry.add("42", "http://node-1.internal/bigbluebutton/api")
        report = reconciler.reconcile("i-1")
"""

import json
import sys
from pathlib import Path
from typing import Generator

import pytest
import structlog

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from node_lifecycle.core.secrets import DictSecretStore, SecretValue, SharedSecretProvider
from node_lifecycle.inventory.resolver import IdentityResolver, InstanceInventory, InstanceRecord
from node_lifecycle.lifecycle.bridge import NotificationBridge
from node_lifecycle.lifecycle.completion import LifecycleReporter
from node_lifecycle.reconcile.reconciler import DeregistrationReconciler
from node_lifecycle.registry.models import DeleteStatus, RegistryEntry

SHARED_SECRET = "s3cr3t"
SECRET_ARN = "arn:aws:secretsmanager:us-east-1:123456789012:secret:scalelite"
NODE_URL = "http://node-1.internal/bigbluebutton/api"


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Drop structlog configuration and bound context between tests."""
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Fakes
# =============================================================================


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StaticInventory(InstanceInventory):
    """Inventory backed by a dict of records."""

    def __init__(self, records: dict[str, InstanceRecord] | None = None):
        self.records = dict(records or {})
        self.calls: list[str] = []
        self.error: Exception | None = None

    def add(self, instance_id: str, dns: str | None, state: str = "shutting-down") -> None:
        self.records[instance_id] = InstanceRecord(instance_id, dns, state)

    def describe_instance(self, instance_id: str) -> InstanceRecord | None:
        self.calls.append(instance_id)
        if self.error is not None:
            raise self.error
        return self.records.get(instance_id)


class FakeRegistry:
    """In-memory registry with the RegistryClient operation surface.

    Failure switches:
        list_error:   raised by list_entries
        delete_error: raised by delete_entry
        vanish_on_delete: ids that answer NOT_FOUND (already deleted elsewhere)
    """

    def __init__(self):
        self.entries: dict[str, RegistryEntry] = {}
        self.calls: list[tuple[str, ...]] = []
        self.secrets_seen: list[SecretValue] = []
        self.timeouts: list[float | None] = []
        self.list_error: Exception | None = None
        self.delete_error: Exception | None = None
        self.vanish_on_delete: set[str] = set()
        self._next_id = 100

    def add(self, internal_id: str, url: str, state: str = "enabled") -> RegistryEntry:
        entry = RegistryEntry(internal_id=internal_id, url=url, state=state)
        self.entries[internal_id] = entry
        return entry

    def list_entries(self, secret, timeout=None):
        self.calls.append(("getServers",))
        self.secrets_seen.append(secret)
        self.timeouts.append(timeout)
        if self.list_error is not None:
            raise self.list_error
        return list(self.entries.values())

    def delete_entry(self, internal_id, secret, timeout=None):
        self.calls.append(("deleteServer", internal_id))
        self.timeouts.append(timeout)
        if self.delete_error is not None:
            raise self.delete_error
        if internal_id in self.vanish_on_delete or internal_id not in self.entries:
            self.entries.pop(internal_id, None)
            return DeleteStatus.NOT_FOUND
        del self.entries[internal_id]
        return DeleteStatus.DELETED

    def add_entry(self, url, node_secret, secret, load_multiplier=None, timeout=None):
        self.calls.append(("addServer", url))
        self._next_id += 1
        return self.add(str(self._next_id), url, state="disabled")

    def enable_entry(self, internal_id, secret, timeout=None):
        self.calls.append(("updateServer", internal_id))
        entry = self.entries[internal_id]
        self.entries[internal_id] = entry.model_copy(update={"state": "enabled"})

    def close(self) -> None:
        pass


class RecordingReporter(LifecycleReporter):
    """Reporter that records every completion."""

    def __init__(self, error: Exception | None = None):
        self.completed: list[tuple[str, str, str, str]] = []
        self.error = error

    def complete(self, notification, outcome) -> None:
        if self.error is not None:
            raise self.error
        self.completed.append(
            (
                notification.instance_id,
                notification.hook_name,
                notification.group_name,
                outcome.value,
            )
        )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def secret_store() -> DictSecretStore:
    return DictSecretStore({SECRET_ARN: json.dumps({"secret": SHARED_SECRET})})


@pytest.fixture
def secrets(secret_store) -> SharedSecretProvider:
    return SharedSecretProvider(secret_store, SECRET_ARN)


@pytest.fixture
def inventory() -> StaticInventory:
    inv = StaticInventory()
    inv.add("i-1", "node-1.internal")
    return inv


@pytest.fixture
def resolver(inventory) -> IdentityResolver:
    return IdentityResolver(inventory)


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
def reconciler(secrets, resolver, registry, clock) -> DeregistrationReconciler:
    return DeregistrationReconciler(
        secrets, resolver, registry, request_timeout=15.0, budget_seconds=290.0, clock=clock
    )


@pytest.fixture
def bridge(reconciler, reporter, clock) -> NotificationBridge:
    return NotificationBridge(reconciler, reporter, budget_seconds=290.0, clock=clock)


@pytest.fixture
def termination_message() -> dict:
    return {
        "EC2InstanceId": "i-1",
        "LifecycleHookName": "H",
        "AutoScalingGroupName": "G",
        "LifecycleTransition": "autoscaling:EC2_INSTANCE_TERMINATING",
        "LifecycleActionToken": "token-1",
    }

