"""Shared primitives: errors, logging, settings, secrets, results, deadlines."""

from node_lifecycle.core.deadline import Deadline
from node_lifecycle.core.errors import (
    ConfigurationError,
    DeadlineExceeded,
    ErrorCategory,
    ErrorContext,
    IdentityUnresolvable,
    InstanceNotFound,
    InventoryUnavailable,
    LifecycleError,
    MalformedNotification,
    MetadataUnavailable,
    NotFound,
    RegistryRejected,
    RegistryUnreachable,
    ReportFailure,
    SecretUnavailable,
)
from node_lifecycle.core.result import Err, Ok, Result, try_result
from node_lifecycle.core.secrets import SecretValue, SharedSecretProvider

__all__ = [
    "ConfigurationError",
    "Deadline",
    "DeadlineExceeded",
    "Err",
    "ErrorCategory",
    "ErrorContext",
    "IdentityUnresolvable",
    "InstanceNotFound",
    "InventoryUnavailable",
    "LifecycleError",
    "MalformedNotification",
    "MetadataUnavailable",
    "NotFound",
    "Ok",
    "RegistryRejected",
    "RegistryUnreachable",
    "ReportFailure",
    "Result",
    "SecretUnavailable",
    "SecretValue",
    "SharedSecretProvider",
    "try_result",
]
