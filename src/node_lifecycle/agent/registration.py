"""
Boot-time registration of a node with the registry.

The agent writes the URL the reconciler will later look for. Both sides call
``derive_api_url`` with the same scheme and path settings, so a node that
registered with this agent is always matched at termination.

Registration is idempotent: if the registry already lists the URL (a reboot,
or the agent ran twice), nothing is added.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from node_lifecycle.agent.metadata import InstanceMetadata
from node_lifecycle.core.logging import get_logger
from node_lifecycle.core.secrets import SecretValue, SharedSecretProvider
from node_lifecycle.inventory.identity import (
    DEFAULT_API_PATH,
    DEFAULT_API_SCHEME,
    derive_api_url,
)
from node_lifecycle.reconcile.reconciler import match_entries
from node_lifecycle.registry.client import RegistryClient

logger = get_logger(__name__)


class RegistrationStatus(str, Enum):
    REGISTERED = "registered"
    ALREADY_REGISTERED = "already_registered"


@dataclass(frozen=True)
class RegistrationResult:
    status: RegistrationStatus
    api_url: str
    internal_id: str
    enabled: bool


class RegistrationAgent:
    """Registers the local node.

    Args:
        registry: Scalelite client
        secrets: Shared secret provider (signs the requests)
        metadata: IMDS client, used when no hostname is given
        api_scheme: Scheme of the registration URL
        api_path: Path of the registration URL
    """

    def __init__(
        self,
        registry: RegistryClient,
        secrets: SharedSecretProvider,
        metadata: InstanceMetadata | None = None,
        api_scheme: str = DEFAULT_API_SCHEME,
        api_path: str = DEFAULT_API_PATH,
    ):
        self.registry = registry
        self.secrets = secrets
        self.metadata = metadata
        self.api_scheme = api_scheme
        self.api_path = api_path

    def discover_hostname(self) -> str:
        if self.metadata is None:
            raise ValueError("hostname not given and no instance metadata client configured")
        return self.metadata.local_hostname()

    def register(
        self,
        node_secret: SecretValue | str,
        hostname: str | None = None,
        load_multiplier: float | None = None,
        enable: bool = True,
    ) -> RegistrationResult:
        """Register this node unless the registry already lists it.

        Raises:
            SecretUnavailable, MetadataUnavailable, RegistryUnreachable, RegistryRejected
        """
        address = hostname or self.discover_hostname()
        api_url = derive_api_url(address, self.api_scheme, self.api_path)
        secret = self.secrets.fetch()

        existing = match_entries(self.registry.list_entries(secret), api_url)
        if existing:
            entry = existing[0]
            logger.info("node_already_registered", api_url=api_url, internal_id=entry.internal_id)
            return RegistrationResult(
                status=RegistrationStatus.ALREADY_REGISTERED,
                api_url=api_url,
                internal_id=entry.internal_id,
                enabled=entry.state in ("enabled", "enable"),
            )

        entry = self.registry.add_entry(api_url, node_secret, secret, load_multiplier=load_multiplier)
        if enable:
            self.registry.enable_entry(entry.internal_id, secret)

        logger.info("node_registered", api_url=api_url, internal_id=entry.internal_id, enabled=enable)
        return RegistrationResult(
            status=RegistrationStatus.REGISTERED,
            api_url=api_url,
            internal_id=entry.internal_id,
            enabled=enable,
        )


__all__ = ["RegistrationAgent", "RegistrationResult", "RegistrationStatus"]
