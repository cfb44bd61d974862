"""
Structured error types for the node lifecycle controller.

Every failure the controller can meet while deregistering a node is a typed
error carrying a category, a retryable flag, structured context and the
underlying cause. The reconciler maps these types onto lifecycle outcomes, so
the hierarchy doubles as the decision table for CONTINUE versus ABANDON.

Manifesto:
    - **Typed Error Hierarchy:** One type per failure mode of the handshake
    - **Benign is explicit:** ``benign = True`` marks errors that mean "nothing to clean up"
    - **Rich Context:** Errors carry instance id, URL and HTTP status for logs
    - **Error Chaining:** Preserve the boto3/httpx exception as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       LifecycleError                             │
        │  (category, retryable, benign, context, cause)                  │
        ├─────────────────────────────────────────────────────────────────┤
        │  ConfigurationError     SecretUnavailable     DeadlineExceeded  │
        │  (CONFIG)               (SECRET)              (DEADLINE)        │
        │                                                                  │
        │  InventoryError ──────────────┐     RegistryError ─────────┐    │
        │  (INVENTORY)                  │     (REGISTRY)             │    │
        │    InstanceNotFound (benign)  │       RegistryUnreachable  │    │
        │    IdentityUnresolvable       │       RegistryRejected     │    │
        │    InventoryUnavailable       │       NotFound (benign)    │    │
        │                                                                  │
        │  ReportFailure          MalformedNotification                    │
        │  (REPORT)               (NOTIFICATION)                          │
        │                                                                  │
        │  MetadataUnavailable (METADATA, registration agent only)        │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = RegistryUnreachable("getServers timed out")
    >>> err.retryable
    True
    >>> InstanceNotFound("i-0abc").benign
    True

    >>> err = RegistryRejected("deleteServer failed").with_context(
    ...     url="https://lb.example.com/scalelite/api/deleteServer", http_status=500
    ... )
    >>> err.to_dict()["context"]["http_status"]
    500

Tags:
    error-handling, exception-hierarchy, lifecycle-hook, registry
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for log routing and outcome decisions."""

    CONFIG = "CONFIG"               # Missing or invalid settings
    SECRET = "SECRET"               # Secret store failures
    INVENTORY = "INVENTORY"         # EC2 instance lookup
    REGISTRY = "REGISTRY"           # Scalelite control API
    REPORT = "REPORT"               # CompleteLifecycleAction
    NOTIFICATION = "NOTIFICATION"   # Envelope parsing
    METADATA = "METADATA"           # Instance metadata service
    DEADLINE = "DEADLINE"           # Hook budget exhausted
    INTERNAL = "INTERNAL"           # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        instance_id: EC2 instance the error relates to
        hook_name: Lifecycle hook name
        group_name: Auto Scaling group name
        action: Registry API action (``getServers``, ``deleteServer``, ...)
        url: URL that was being accessed (checksum stripped)
        http_status: HTTP status code if applicable
        metadata: Additional key-value pairs
    """

    instance_id: str | None = None
    hook_name: str | None = None
    group_name: str | None = None
    action: str | None = None
    url: str | None = None
    http_status: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["instance_id", "hook_name", "group_name", "action", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class LifecycleError(Exception):
    """
    Base exception for all node lifecycle errors.

    Subclasses set ``default_category`` and ``default_retryable``. ``benign``
    marks errors that tell the reconciler the node is already absent, which
    resolve to CONTINUE instead of ABANDON.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False
    benign: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> LifecycleError:
        """
        Add context to this error (fluent API).

        Usage:
            raise RegistryRejected("Failed").with_context(
                action="getServers", http_status=503
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        if self.benign:
            result["benign"] = True
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION
# =============================================================================


class ConfigurationError(LifecycleError):
    """Required configuration is missing or invalid. Fatal at startup."""

    default_category = ErrorCategory.CONFIG

    def __init__(self, message: str, *, missing: list[str] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.missing = missing or []


# =============================================================================
# SECRETS
# =============================================================================


class SecretUnavailable(LifecycleError):
    """The shared secret could not be fetched or was malformed."""

    default_category = ErrorCategory.SECRET
    default_retryable = True


# =============================================================================
# INVENTORY
# =============================================================================


class InventoryError(LifecycleError):
    """Base for compute inventory lookups."""

    default_category = ErrorCategory.INVENTORY


class InstanceNotFound(InventoryError):
    """The instance has no inventory record; it never registered or already unwound."""

    benign = True

    def __init__(self, instance_id: str, message: str | None = None, **kwargs: Any):
        super().__init__(message or f"Instance not found: {instance_id}", **kwargs)
        self.instance_id = instance_id
        self.context.instance_id = instance_id


class IdentityUnresolvable(InventoryError):
    """The instance exists but its registration address cannot be derived."""


class InventoryUnavailable(InventoryError):
    """The inventory API failed for a reason other than a missing instance."""

    default_retryable = True


# =============================================================================
# REGISTRY
# =============================================================================


class RegistryError(LifecycleError):
    """Base for Scalelite control API failures."""

    default_category = ErrorCategory.REGISTRY


class RegistryUnreachable(RegistryError):
    """Network error or timeout talking to the registry."""

    default_retryable = True


class RegistryRejected(RegistryError):
    """The registry answered with a non-2xx status or a logical failure body."""


class NotFound(RegistryError):
    """The delete target is already absent from the registry."""

    benign = True


# =============================================================================
# LIFECYCLE
# =============================================================================


class ReportFailure(LifecycleError):
    """The lifecycle outcome could not be reported back to Auto Scaling."""

    default_category = ErrorCategory.REPORT
    default_retryable = True


class MalformedNotification(LifecycleError):
    """A notification envelope lacks the fields needed to act on it."""

    default_category = ErrorCategory.NOTIFICATION


class DeadlineExceeded(LifecycleError):
    """The hook budget ran out before the next step could start."""

    default_category = ErrorCategory.DEADLINE


class MetadataUnavailable(LifecycleError):
    """The instance metadata service did not answer."""

    default_category = ErrorCategory.METADATA
    default_retryable = True


def is_benign(error: Exception) -> bool:
    """True if the error means the node is already absent."""
    return isinstance(error, LifecycleError) and error.benign


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, LifecycleError):
        return error.category
    return ErrorCategory.INTERNAL


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "LifecycleError",
    "ConfigurationError",
    "SecretUnavailable",
    "InventoryError",
    "InstanceNotFound",
    "IdentityUnresolvable",
    "InventoryUnavailable",
    "RegistryError",
    "RegistryUnreachable",
    "RegistryRejected",
    "NotFound",
    "ReportFailure",
    "MalformedNotification",
    "DeadlineExceeded",
    "MetadataUnavailable",
    "is_benign",
    "categorize_error",
]
