"""Compute inventory lookups and the canonical node address."""

from node_lifecycle.inventory.identity import NodeIdentity, derive_api_url
from node_lifecycle.inventory.resolver import (
    Ec2Inventory,
    IdentityResolver,
    InstanceInventory,
    InstanceRecord,
)

__all__ = [
    "NodeIdentity",
    "derive_api_url",
    "Ec2Inventory",
    "IdentityResolver",
    "InstanceInventory",
    "InstanceRecord",
]
