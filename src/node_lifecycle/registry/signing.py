"""
Request signing for the Scalelite control API.

Every call carries ``checksum = sha1(action + query + body + secret)`` as a
query parameter. The query string is built from parameters sorted by key and
form-encoded, so client and server derive the same string no matter what
order the parameters were supplied in. The body that is hashed is exactly
the body that is sent.

Examples:
    >>> sorted_query_string({"b": "2", "a": "1"})
    'a=1&b=2'
    >>> compute_checksum("getServers", "", "", "abc") == compute_checksum("getServers", "", "", "abc")
    True
    >>> signed_url("https://lb/scalelite/api", "getServers", {}, "", "abc")
    'https://lb/scalelite/api/getServers?checksum=...'
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Mapping
from urllib.parse import urlencode

from node_lifecycle.core.secrets import SecretValue


def sorted_query_string(params: Mapping[str, Any] | None) -> str:
    """Form-encode parameters in lexicographic key order."""
    if not params:
        return ""
    return urlencode([(key, str(params[key])) for key in sorted(params)])


def encode_body(payload: Mapping[str, Any] | None) -> str:
    """Serialize a JSON body compactly; an absent body is the empty string."""
    if payload is None:
        return ""
    return json.dumps(payload, separators=(",", ":"))


def compute_checksum(
    action: str,
    query_string: str,
    body: str,
    secret: SecretValue | str,
) -> str:
    """Hex SHA-1 over ``action + query_string + body + secret``."""
    raw = secret.get_secret() if isinstance(secret, SecretValue) else secret
    return hashlib.sha1(
        f"{action}{query_string}{body}{raw}".encode("utf-8")
    ).hexdigest()


def signed_url(
    base_url: str,
    action: str,
    params: Mapping[str, Any] | None,
    body: str,
    secret: SecretValue | str,
) -> str:
    """Full request URL including the checksum parameter."""
    query = sorted_query_string(params)
    checksum = compute_checksum(action, query, body, secret)
    prefix = f"{query}&" if query else ""
    return f"{base_url.rstrip('/')}/{action}?{prefix}checksum={checksum}"


def redact_checksum(url: str) -> str:
    """URL with the checksum value blanked, for logs."""
    head, sep, _ = url.partition("checksum=")
    return f"{head}{sep}***" if sep else url


__all__ = [
    "sorted_query_string",
    "encode_body",
    "compute_checksum",
    "signed_url",
    "redact_checksum",
]
