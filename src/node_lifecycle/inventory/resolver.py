"""
Instance id → NodeIdentity resolution against the compute inventory.

Outcomes:
    ::

        no record / InvalidInstanceID.NotFound        → InstanceNotFound (benign)
        terminated and no private DNS name            → InstanceNotFound (benign)
        live instance without a private DNS name      → IdentityUnresolvable
        any other AWS failure                         → InventoryUnavailable
        record with private DNS name                  → NodeIdentity
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from node_lifecycle.core.errors import (
    IdentityUnresolvable,
    InstanceNotFound,
    InventoryUnavailable,
)
from node_lifecycle.core.logging import get_logger
from node_lifecycle.inventory.identity import (
    DEFAULT_API_PATH,
    DEFAULT_API_SCHEME,
    NodeIdentity,
)

logger = get_logger(__name__)

_NOT_FOUND_CODE = "InvalidInstanceID.NotFound"


@dataclass(frozen=True)
class InstanceRecord:
    """The slice of an inventory record the resolver needs."""

    instance_id: str
    private_dns_name: str | None
    state: str | None = None


class InstanceInventory(ABC):
    """Compute pool inventory."""

    @abstractmethod
    def describe_instance(self, instance_id: str) -> InstanceRecord | None:
        """Return the record, or None if the inventory has no such instance."""
        ...


class Ec2Inventory(InstanceInventory):
    """EC2 ``DescribeInstances`` backed inventory.

    Args:
        client: boto3 ``ec2`` client
    """

    def __init__(self, client: Any):
        self._client = client

    def describe_instance(self, instance_id: str) -> InstanceRecord | None:
        try:
            response = self._client.describe_instances(InstanceIds=[instance_id])
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code", "")
            if code == _NOT_FOUND_CODE:
                return None
            raise InventoryUnavailable(
                f"DescribeInstances failed for {instance_id}: {code or exc}", cause=exc
            ).with_context(instance_id=instance_id) from exc
        except BotoCoreError as exc:
            raise InventoryUnavailable(
                f"DescribeInstances failed for {instance_id}", cause=exc
            ).with_context(instance_id=instance_id) from exc

        for reservation in response.get("Reservations") or []:
            for instance in reservation.get("Instances") or []:
                return InstanceRecord(
                    instance_id=instance.get("InstanceId", instance_id),
                    private_dns_name=instance.get("PrivateDnsName") or None,
                    state=(instance.get("State") or {}).get("Name"),
                )
        return None


class IdentityResolver:
    """Maps an instance id onto the identity it registered under.

    Args:
        inventory: Compute inventory
        api_scheme: Scheme of the registration URL
        api_path: Path of the registration URL
    """

    def __init__(
        self,
        inventory: InstanceInventory,
        api_scheme: str = DEFAULT_API_SCHEME,
        api_path: str = DEFAULT_API_PATH,
    ):
        self.inventory = inventory
        self.api_scheme = api_scheme
        self.api_path = api_path

    def resolve(self, instance_id: str) -> NodeIdentity:
        """Resolve an instance.

        Raises:
            InstanceNotFound: No usable record; nothing was or still is registered
            IdentityUnresolvable: Live instance without a private DNS name
            InventoryUnavailable: Inventory API failure
        """
        record = self.inventory.describe_instance(instance_id)
        if record is None:
            raise InstanceNotFound(instance_id)

        if not record.private_dns_name:
            if record.state == "terminated":
                raise InstanceNotFound(
                    instance_id, f"Instance {instance_id} is terminated and has no address"
                )
            raise IdentityUnresolvable(
                f"PrivateDnsName not found for {instance_id}"
            ).with_context(instance_id=instance_id, state=record.state)

        identity = NodeIdentity.for_address(
            instance_id, record.private_dns_name, self.api_scheme, self.api_path
        )
        logger.info(
            "identity_resolved",
            instance_id=instance_id,
            canonical_address=identity.canonical_address,
            api_url=identity.api_url,
        )
        return identity


__all__ = ["InstanceRecord", "InstanceInventory", "Ec2Inventory", "IdentityResolver"]
