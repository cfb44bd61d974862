"""Scalelite registry client: signing, models and the HTTP client."""

from node_lifecycle.registry.client import RegistryClient
from node_lifecycle.registry.models import DeleteStatus, RegistryEntry
from node_lifecycle.registry.signing import compute_checksum, signed_url, sorted_query_string

__all__ = [
    "RegistryClient",
    "RegistryEntry",
    "DeleteStatus",
    "compute_checksum",
    "signed_url",
    "sorted_query_string",
]
