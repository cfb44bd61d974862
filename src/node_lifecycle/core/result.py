"""
Result envelope for reconciliation steps.

Each step of the deregistration state machine returns ``Ok(value)`` or
``Err(error)`` instead of raising, so the machine can decide the next state
from the value alone and the failure path never needs a try/finally.

Usage:
    from node_lifecycle.core.result import Result, Ok, Err

    def list_step(...) -> Result[list[RegistryEntry]]:
        try:
            return Ok(client.list_entries(secret))
        except RegistryError as e:
            return Err(e)

    match list_step(...):
        case Ok(entries):
            ...
        case Err(error):
            ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from node_lifecycle.core.errors import LifecycleError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result containing an error."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, LifecycleError):
            return {"ok": False, "error": self.error.to_dict()}
        return {
            "ok": False,
            "error": {
                "error_type": type(self.error).__name__,
                "message": str(self.error),
            },
        }

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


def try_result(f: Callable[[], T]) -> Result[T]:
    """Execute a zero-argument callable and wrap the outcome.

    Any exception becomes ``Err``; this is the bridge from boto3/httpx code
    that raises into the step functions that return.
    """
    try:
        return Ok(f())
    except Exception as e:
        return Err(e)


__all__ = ["Ok", "Err", "Result", "try_result"]
