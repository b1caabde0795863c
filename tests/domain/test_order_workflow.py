"""
Tests for the delivery order state machine.

Verifies:
- Every declared transition is reachable and nothing else is
- COMPLETED and CANCELLED are terminal
- Cancel transitions are the only ones flagged to restore stock
"""

import pytest

from logistics_kernel.domain.order_workflow import (
    AGENT_ASSIGNED,
    ORDER_WORKFLOW,
    OrderStatus,
    can_transition,
    is_terminal,
)

P, A, IP, C, X = (s.value for s in OrderStatus)


class TestTransitions:
    @pytest.mark.parametrize(
        "source,target",
        [(P, A), (P, IP), (P, C), (P, X), (A, P), (A, IP), (A, C), (A, X), (IP, C), (IP, X)],
    )
    def test_allowed(self, source, target):
        assert can_transition(source, target)

    @pytest.mark.parametrize(
        "source,target",
        [(IP, P), (IP, A), (C, P), (C, X), (X, P), (X, C)],
    )
    def test_disallowed(self, source, target):
        assert not can_transition(source, target)

    def test_terminal_states_have_no_exits(self):
        for status in (C, X):
            assert is_terminal(status)
            assert ORDER_WORKFLOW.allowed_targets(status) == ()

    def test_pending_is_initial_and_not_terminal(self):
        assert ORDER_WORKFLOW.initial_state == P
        assert not is_terminal(P)


class TestTransitionFlags:
    def test_only_cancel_restores_stock(self):
        for transition in ORDER_WORKFLOW.transitions:
            assert transition.restores_stock == (transition.to_state == X)

    def test_assign_requires_agent(self):
        assert ORDER_WORKFLOW.find(P, A).guard is AGENT_ASSIGNED
        assert ORDER_WORKFLOW.find(A, IP).guard is None
