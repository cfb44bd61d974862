"""Registration agent run on each node at boot."""

from node_lifecycle.agent.metadata import InstanceMetadata
from node_lifecycle.agent.registration import (
    RegistrationAgent,
    RegistrationResult,
    RegistrationStatus,
)

__all__ = ["InstanceMetadata", "RegistrationAgent", "RegistrationResult", "RegistrationStatus"]
