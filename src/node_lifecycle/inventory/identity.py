"""Canonical registration address of a node.

``derive_api_url`` is the single place where a hostname becomes the URL a node
registers under. The registration agent and the identity resolver both call
it, so the URL the reconciler matches is the URL the agent wrote.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

DEFAULT_API_SCHEME = "http"
DEFAULT_API_PATH = "/bigbluebutton/api"


def derive_api_url(
    address: str,
    scheme: str = DEFAULT_API_SCHEME,
    path: str = DEFAULT_API_PATH,
) -> str:
    """``{scheme}://{address}{path}``, e.g. ``http://ip-10-0-1-5.ec2.internal/bigbluebutton/api``."""
    if not address:
        raise ValueError("address must not be empty")
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{scheme}://{address}{path}"


class NodeIdentity(BaseModel):
    """Who a compute instance is, from the registry's point of view."""

    model_config = ConfigDict(frozen=True)

    instance_id: str
    canonical_address: str
    api_url: str

    @classmethod
    def for_address(
        cls,
        instance_id: str,
        address: str,
        scheme: str = DEFAULT_API_SCHEME,
        path: str = DEFAULT_API_PATH,
    ) -> NodeIdentity:
        return cls(
            instance_id=instance_id,
            canonical_address=address,
            api_url=derive_api_url(address, scheme, path),
        )


__all__ = ["NodeIdentity", "derive_api_url", "DEFAULT_API_SCHEME", "DEFAULT_API_PATH"]
