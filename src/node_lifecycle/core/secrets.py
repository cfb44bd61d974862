"""Shared-secret retrieval for signing registry requests.

The registry secret lives in AWS Secrets Manager as a JSON document
(``{"secret": "<value>"}``). It is fetched fresh on every reconciliation so a
rotated secret takes effect on the next notification; nothing here caches.

Architecture:
    ::

        SharedSecretProvider(store, secret_id, key="secret")
              │ fetch()
              ▼
        SecretStore.get_secret_string(secret_id)   ── AwsSecretsManagerStore (boto3)
              │                                     └─ DictSecretStore (tests / local)
              ▼
        json.loads → document[key] → SecretValue

Guardrails:
    - Secrets are wrapped in SecretValue; str()/repr() print ``[REDACTED]``
    - A missing key or empty value is a hard failure (SecretUnavailable)

Tags:
    secrets, credentials, secrets-manager, boto3
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from node_lifecycle.core.errors import SecretUnavailable


class SecretValue:
    """Wrapper for secret values that prevents accidental logging.

    Example:
        >>> secret = SecretValue("my_password")
        >>> str(secret)
        '[REDACTED]'
        >>> secret.get_secret()
        'my_password'
    """

    __slots__ = ("_value",)

    def __init__(self, value: str):
        self._value = value

    def get_secret(self) -> str:
        """Get the actual secret value."""
        return self._value

    def __str__(self) -> str:
        return "[REDACTED]"

    def __repr__(self) -> str:
        return "SecretValue('[REDACTED]')"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SecretValue):
            return self._value == other._value
        return False

    def __hash__(self) -> int:
        return hash(self._value)

    def __bool__(self) -> bool:
        return bool(self._value)

    def __len__(self) -> int:
        return len(self._value)


class SecretStore(ABC):
    """Abstract secret store returning the raw secret string for an id."""

    @abstractmethod
    def get_secret_string(self, secret_id: str) -> str:
        """Return the stored secret string.

        Raises:
            SecretUnavailable: If the store cannot return a value
        """
        ...


class AwsSecretsManagerStore(SecretStore):
    """Secrets Manager backed store.

    Args:
        client: boto3 ``secretsmanager`` client
    """

    def __init__(self, client: Any):
        self._client = client

    def get_secret_string(self, secret_id: str) -> str:
        try:
            response = self._client.get_secret_value(SecretId=secret_id)
        except (ClientError, BotoCoreError) as exc:
            raise SecretUnavailable(
                f"Secrets Manager lookup failed for {secret_id}", cause=exc
            ) from exc

        value = response.get("SecretString")
        if not value:
            raise SecretUnavailable(f"SecretString not found for {secret_id}")
        return value


class DictSecretStore(SecretStore):
    """In-memory store for tests and local runs.

    NOT for production use.
    """

    def __init__(self, secrets: dict[str, str] | None = None):
        self._secrets = dict(secrets) if secrets else {}

    def get_secret_string(self, secret_id: str) -> str:
        try:
            return self._secrets[secret_id]
        except KeyError:
            raise SecretUnavailable(f"Secret not found: {secret_id}") from None

    def set(self, secret_id: str, value: str) -> None:
        """Set a secret value."""
        self._secrets[secret_id] = value


class SharedSecretProvider:
    """Fetches the registry shared secret out of its JSON document.

    Args:
        store: Backing secret store
        secret_id: Secret ARN or name
        key: JSON key holding the value
    """

    def __init__(self, store: SecretStore, secret_id: str, key: str = "secret"):
        self.store = store
        self.secret_id = secret_id
        self.key = key

    def fetch(self) -> SecretValue:
        """Fetch and unwrap the shared secret.

        Raises:
            SecretUnavailable: Store failure, non-JSON document, missing or empty key
        """
        raw = self.store.get_secret_string(self.secret_id)
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise SecretUnavailable(
                f"Secret {self.secret_id} is not a JSON document", cause=exc
            ) from exc

        if not isinstance(document, dict):
            raise SecretUnavailable(f"Secret {self.secret_id} is not a JSON object")

        value = document.get(self.key)
        if not isinstance(value, str) or not value:
            raise SecretUnavailable(
                f"Key '{self.key}' not found in secret {self.secret_id}"
            )
        return SecretValue(value)


__all__ = [
    "SecretValue",
    "SecretStore",
    "AwsSecretsManagerStore",
    "DictSecretStore",
    "SharedSecretProvider",
]
