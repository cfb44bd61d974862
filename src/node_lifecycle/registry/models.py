"""Registry data shapes."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from node_lifecycle.core.secrets import SecretValue


class RegistryEntry(BaseModel):
    """One row of the registry's live membership.

    ``internal_id`` is the registry-assigned id used for deletion; ``url`` is
    the API URL the node registered with and is matched byte-for-byte.
    Fields the registry returns beyond these are kept in ``extra``.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    internal_id: str
    url: str
    secret: SecretValue | None = None
    state: str | None = None
    online: bool | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("internal_id", mode="before")
    @classmethod
    def _id_as_string(cls, value: Any) -> str:
        return str(value)

    @field_validator("secret", mode="before")
    @classmethod
    def _wrap_secret(cls, value: Any) -> SecretValue | None:
        if value is None or isinstance(value, SecretValue):
            return value
        return SecretValue(str(value))

    @field_serializer("secret")
    def _redact_secret(self, value: SecretValue | None) -> str | None:
        return None if value is None else str(value)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> RegistryEntry:
        """Build from a ``getServers`` / ``addServer`` server object."""
        known = {"id", "url", "secret", "state", "online"}
        return cls(
            internal_id=payload["id"],
            url=payload["url"],
            secret=payload.get("secret"),
            state=payload.get("state"),
            online=payload.get("online"),
            extra={k: v for k, v in payload.items() if k not in known},
        )


class DeleteStatus(str, Enum):
    """Result of a delete call that did not fail."""

    DELETED = "deleted"
    NOT_FOUND = "not_found"


__all__ = ["RegistryEntry", "DeleteStatus"]
