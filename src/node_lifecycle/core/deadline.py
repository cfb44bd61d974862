"""Deadline tracking for the lifecycle hook budget.

A reconciliation must finish while the lifecycle hook is still waiting; the
reconciler checks the deadline before each network step and narrows every
call's timeout to the time that is left, failing toward ABANDON rather than
blocking past the heartbeat window.

Example:
    >>> deadline = Deadline.after(290.0, operation="deregister i-0abc")
    >>> deadline.check("getServers")          # raises DeadlineExceeded once expired
    >>> timeout = deadline.clamp(15.0)        # min(15.0, remaining)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from node_lifecycle.core.errors import DeadlineExceeded


@dataclass
class Deadline:
    """Absolute deadline on a monotonic clock.

    Attributes:
        deadline: Absolute deadline timestamp (clock units)
        timeout_seconds: Original budget in seconds
        operation: Name/description of the guarded operation
        clock: Monotonic clock, injectable for tests
        start_time: When tracking started
    """

    deadline: float
    timeout_seconds: float
    operation: str = "operation"
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    start_time: float = field(default=0.0)

    @classmethod
    def after(
        cls,
        seconds: float,
        operation: str = "operation",
        clock: Callable[[], float] = time.monotonic,
    ) -> Deadline:
        """Create a deadline ``seconds`` from now."""
        if seconds < 0:
            raise ValueError(f"Timeout must be non-negative, got {seconds}")
        now = clock()
        return cls(
            deadline=now + seconds,
            timeout_seconds=seconds,
            operation=operation,
            clock=clock,
            start_time=now,
        )

    def remaining(self) -> float:
        """Remaining seconds; negative once expired."""
        return self.deadline - self.clock()

    @property
    def elapsed(self) -> float:
        return self.clock() - self.start_time

    def is_expired(self) -> bool:
        return self.clock() >= self.deadline

    def check(self, op_name: str | None = None) -> None:
        """Raise if the deadline has passed.

        Raises:
            DeadlineExceeded: If no time is left
        """
        if self.is_expired():
            name = op_name or self.operation
            raise DeadlineExceeded(
                f"Deadline of {self.timeout_seconds:.1f}s exhausted before '{name}'"
                f" (ran for {self.elapsed:.2f}s)"
            ).with_context(action=name)

    def clamp(self, requested: float) -> float:
        """Effective timeout for one call: the smaller of requested and remaining."""
        return max(min(requested, self.remaining()), 0.0)

    def narrowed(self, seconds: float) -> Deadline:
        """Deadline that ends at ``seconds`` from now or at this deadline, whichever is first."""
        now = self.clock()
        end = min(self.deadline, now + max(seconds, 0.0))
        return Deadline(
            deadline=end,
            timeout_seconds=end - now,
            operation=self.operation,
            clock=self.clock,
            start_time=now,
        )


__all__ = ["Deadline"]
