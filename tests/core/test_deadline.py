"""Tests for Deadline."""

import pytest

from node_lifecycle.core.deadline import Deadline
from node_lifecycle.core.errors import DeadlineExceeded


class TestDeadline:
    def test_after(self, clock):
        d = Deadline.after(30.0, operation="op", clock=clock)
        assert d.remaining() == 30.0
        assert d.elapsed == 0.0
        assert not d.is_expired()

    def test_negative_rejected(self, clock):
        with pytest.raises(ValueError):
            Deadline.after(-1.0, clock=clock)

    def test_expires(self, clock):
        d = Deadline.after(10.0, clock=clock)
        clock.advance(10.0)
        assert d.is_expired()
        assert d.remaining() == 0.0

    def test_zero_budget_is_expired(self, clock):
        assert Deadline.after(0.0, clock=clock).is_expired()

    def test_check_passes_while_time_left(self, clock):
        Deadline.after(10.0, clock=clock).check("getServers")

    def test_check_raises_with_action(self, clock):
        d = Deadline.after(1.0, operation="deregister i-1", clock=clock)
        clock.advance(2.0)
        with pytest.raises(DeadlineExceeded) as exc_info:
            d.check("deleteServer")
        assert exc_info.value.context.action == "deleteServer"
        assert "deleteServer" in exc_info.value.message

    def test_check_defaults_to_operation_name(self, clock):
        d = Deadline.after(0.0, operation="deregister i-1", clock=clock)
        with pytest.raises(DeadlineExceeded) as exc_info:
            d.check()
        assert exc_info.value.context.action == "deregister i-1"


class TestClamp:
    def test_requested_when_plenty_left(self, clock):
        assert Deadline.after(100.0, clock=clock).clamp(15.0) == 15.0

    def test_remaining_when_short(self, clock):
        d = Deadline.after(100.0, clock=clock)
        clock.advance(95.0)
        assert d.clamp(15.0) == 5.0

    def test_never_negative(self, clock):
        d = Deadline.after(1.0, clock=clock)
        clock.advance(5.0)
        assert d.clamp(15.0) == 0.0


class TestNarrowed:
    def test_narrower_budget_wins(self, clock):
        outer = Deadline.after(100.0, clock=clock)
        inner = outer.narrowed(30.0)
        assert inner.remaining() == 30.0
        assert inner.timeout_seconds == 30.0

    def test_outer_deadline_wins(self, clock):
        outer = Deadline.after(100.0, clock=clock)
        clock.advance(90.0)
        inner = outer.narrowed(30.0)
        assert inner.remaining() == 10.0
        assert inner.elapsed == 0.0

    def test_shares_clock(self, clock):
        inner = Deadline.after(100.0, clock=clock).narrowed(30.0)
        clock.advance(31.0)
        assert inner.is_expired()
