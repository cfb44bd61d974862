"""EC2 instance metadata (IMDSv2) lookups used by the registration agent."""

from __future__ import annotations

import httpx

from node_lifecycle.core.errors import MetadataUnavailable

IMDS_BASE_URL = "http://169.254.169.254"
TOKEN_TTL_SECONDS = 300


class InstanceMetadata:
    """Minimal IMDSv2 client.

    Args:
        http: Injected ``httpx.Client``
        base_url: Metadata endpoint
        timeout: Per-request timeout
    """

    def __init__(self, http: httpx.Client, base_url: str = IMDS_BASE_URL, timeout: float = 2.0):
        self._http = http
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _token(self) -> str:
        response = self._http.put(
            f"{self.base_url}/latest/api/token",
            headers={"X-aws-ec2-metadata-token-ttl-seconds": str(TOKEN_TTL_SECONDS)},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.text.strip()

    def get(self, path: str) -> str:
        """Read one metadata value, e.g. ``local-hostname``.

        Raises:
            MetadataUnavailable: Transport error or non-2xx answer
        """
        try:
            token = self._token()
            response = self._http.get(
                f"{self.base_url}/latest/meta-data/{path.lstrip('/')}",
                headers={"X-aws-ec2-metadata-token": token},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise MetadataUnavailable(f"Instance metadata '{path}' unavailable", cause=exc) from exc

        value = response.text.strip()
        if not value:
            raise MetadataUnavailable(f"Instance metadata '{path}' is empty")
        return value

    def local_hostname(self) -> str:
        """Private DNS name, the same value EC2 reports as ``PrivateDnsName``."""
        return self.get("local-hostname")

    def instance_id(self) -> str:
        return self.get("instance-id")


__all__ = ["InstanceMetadata", "IMDS_BASE_URL"]
