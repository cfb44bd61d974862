"""
Signed HTTP client for the Scalelite control API.

The client is stateless apart from its injected ``httpx.Client``: it holds no
secret and no copy of registry membership. Callers pass the freshly fetched
shared secret into every call.

Error mapping:
    ::

        httpx.TimeoutException / TransportError  → RegistryUnreachable
        non-2xx, non-JSON, status != "ok"       → RegistryRejected
        deleteServer 404                         → DeleteStatus.NOT_FOUND
        200 + "<returncode>SUCCESS</returncode>" → success (legacy XML reply)

Example:
    >>> with RegistryClient.create("https://lb.example.com/scalelite/api") as client:
    ...     entries = client.list_entries(secret)
    ...     client.delete_entry(entries[0].internal_id, secret)
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx
from pydantic import ValidationError

from node_lifecycle.core.errors import RegistryRejected, RegistryUnreachable
from node_lifecycle.core.logging import get_logger
from node_lifecycle.core.secrets import SecretValue
from node_lifecycle.registry.models import DeleteStatus, RegistryEntry
from node_lifecycle.registry.signing import encode_body, redact_checksum, signed_url

logger = get_logger(__name__)

GET_SERVERS_ACTION = "getServers"
DELETE_SERVER_ACTION = "deleteServer"
ADD_SERVER_ACTION = "addServer"
UPDATE_SERVER_ACTION = "updateServer"

LEGACY_SUCCESS_MARKER = "<returncode>SUCCESS</returncode>"


class RegistryClient:
    """Scalelite control API client.

    Args:
        base_url: API root, e.g. ``https://lb.example.com/scalelite/api``
        http: Injected ``httpx.Client``
        timeout: Default per-request timeout in seconds
    """

    def __init__(self, base_url: str, http: httpx.Client, timeout: float = 15.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = http

    @classmethod
    def create(cls, base_url: str, timeout: float = 15.0) -> RegistryClient:
        """Client owning a new ``httpx.Client``."""
        return cls(base_url, httpx.Client(timeout=timeout), timeout=timeout)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> RegistryClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ── Transport ────────────────────────────────────────────────

    def _send(
        self,
        method: str,
        action: str,
        secret: SecretValue,
        *,
        params: Mapping[str, Any] | None = None,
        payload: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        body = encode_body(payload)
        url = signed_url(self.base_url, action, params, body, secret)
        log_url = redact_checksum(url)
        headers = {"Content-Type": "application/json"} if body else None

        logger.debug("registry_request", action=action, method=method, url=log_url)
        try:
            response = self._http.request(
                method,
                url,
                content=body.encode("utf-8") if body else None,
                headers=headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.TimeoutException as exc:
            raise RegistryUnreachable(
                f"{action} timed out", cause=exc
            ).with_context(action=action, url=log_url) from exc
        except httpx.TransportError as exc:
            raise RegistryUnreachable(
                f"{action} failed: {exc}", cause=exc
            ).with_context(action=action, url=log_url) from exc

        logger.debug("registry_response", action=action, http_status=response.status_code)
        return response

    @staticmethod
    def _json(response: httpx.Response, action: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as exc:
            raise RegistryRejected(
                f"{action} returned a non-JSON body", cause=exc
            ).with_context(action=action, http_status=response.status_code) from exc
        if not isinstance(data, dict):
            raise RegistryRejected(f"{action} returned an unexpected body").with_context(
                action=action, http_status=response.status_code
            )
        return data

    @staticmethod
    def _reject(response: httpx.Response, action: str, reason: str) -> RegistryRejected:
        return RegistryRejected(f"{action} {reason}").with_context(
            action=action,
            http_status=response.status_code,
            body=response.text[:500],
        )

    # ── Operations ───────────────────────────────────────────────

    def list_entries(self, secret: SecretValue, timeout: float | None = None) -> list[RegistryEntry]:
        """Fetch the full registry membership.

        The API has no server-side filter, so every call returns every server.

        Raises:
            RegistryUnreachable: Network failure or timeout
            RegistryRejected: Non-2xx, malformed body, or ``status != "ok"``
        """
        response = self._send("GET", GET_SERVERS_ACTION, secret, timeout=timeout)
        if not response.is_success:
            raise self._reject(response, GET_SERVERS_ACTION, f"returned HTTP {response.status_code}")

        data = self._json(response, GET_SERVERS_ACTION)
        servers = data.get("servers")
        if data.get("status") != "ok" or not isinstance(servers, list):
            raise self._reject(response, GET_SERVERS_ACTION, "did not report success")

        try:
            entries = [RegistryEntry.from_api(server) for server in servers]
        except (KeyError, TypeError, ValidationError) as exc:
            raise RegistryRejected(
                f"{GET_SERVERS_ACTION} returned a malformed server", cause=exc
            ).with_context(action=GET_SERVERS_ACTION) from exc

        logger.info("registry_entries_listed", count=len(entries))
        return entries

    def delete_entry(
        self,
        internal_id: str,
        secret: SecretValue,
        timeout: float | None = None,
    ) -> DeleteStatus:
        """Delete one registry entry by its internal id.

        Returns:
            ``DELETED`` on success, ``NOT_FOUND`` on HTTP 404

        Raises:
            RegistryUnreachable: Network failure or timeout
            RegistryRejected: Any other non-success answer
        """
        response = self._send(
            "POST",
            DELETE_SERVER_ACTION,
            secret,
            payload={"id": internal_id},
            timeout=timeout,
        )
        if response.status_code == 404:
            logger.warning("registry_entry_already_absent", internal_id=internal_id)
            return DeleteStatus.NOT_FOUND

        if response.status_code == 200:
            if LEGACY_SUCCESS_MARKER in response.text:
                logger.info("registry_entry_deleted", internal_id=internal_id, legacy=True)
                return DeleteStatus.DELETED
            try:
                data = response.json()
            except ValueError:
                data = None
            if isinstance(data, dict) and data.get("status") == "ok":
                logger.info("registry_entry_deleted", internal_id=internal_id)
                return DeleteStatus.DELETED

        raise self._reject(response, DELETE_SERVER_ACTION, "did not report success").with_context(
            internal_id=internal_id
        )

    def add_entry(
        self,
        url: str,
        node_secret: SecretValue | str,
        secret: SecretValue,
        load_multiplier: float | None = None,
        timeout: float | None = None,
    ) -> RegistryEntry:
        """Register a node. New entries start disabled until enabled."""
        raw_node_secret = (
            node_secret.get_secret() if isinstance(node_secret, SecretValue) else node_secret
        )
        server: dict[str, Any] = {"url": url, "secret": raw_node_secret}
        if load_multiplier is not None:
            server["load_multiplier"] = load_multiplier

        response = self._send(
            "POST", ADD_SERVER_ACTION, secret, payload={"server": server}, timeout=timeout
        )
        if not response.is_success:
            raise self._reject(response, ADD_SERVER_ACTION, f"returned HTTP {response.status_code}")

        data = self._json(response, ADD_SERVER_ACTION)
        if data.get("status") != "ok" or not isinstance(data.get("server"), dict):
            raise self._reject(response, ADD_SERVER_ACTION, "did not report success")

        try:
            entry = RegistryEntry.from_api(data["server"])
        except (KeyError, TypeError, ValidationError) as exc:
            raise RegistryRejected(
                f"{ADD_SERVER_ACTION} returned a malformed server", cause=exc
            ).with_context(action=ADD_SERVER_ACTION) from exc

        logger.info("registry_entry_added", internal_id=entry.internal_id, url=entry.url)
        return entry

    def enable_entry(
        self,
        internal_id: str,
        secret: SecretValue,
        timeout: float | None = None,
    ) -> None:
        """Put an entry into the ``enable`` state so it receives work."""
        response = self._send(
            "POST",
            UPDATE_SERVER_ACTION,
            secret,
            payload={"id": internal_id, "server": {"state": "enable"}},
            timeout=timeout,
        )
        if not response.is_success:
            raise self._reject(
                response, UPDATE_SERVER_ACTION, f"returned HTTP {response.status_code}"
            )
        data = self._json(response, UPDATE_SERVER_ACTION)
        if data.get("status") != "ok":
            raise self._reject(response, UPDATE_SERVER_ACTION, "did not report success")
        logger.info("registry_entry_enabled", internal_id=internal_id)


__all__ = [
    "RegistryClient",
    "GET_SERVERS_ACTION",
    "DELETE_SERVER_ACTION",
    "ADD_SERVER_ACTION",
    "UPDATE_SERVER_ACTION",
    "LEGACY_SUCCESS_MARKER",
]
