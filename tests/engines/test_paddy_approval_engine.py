"""
Tests for the paddy movement approval transition engine.
"""

import pytest

from stock_engines.approval import evaluate_transition
from stock_kernel.domain.approval import APPROVAL_TRANSITIONS, ApprovalDecision, ApprovalStatus


class TestEvaluateTransition:
    @pytest.mark.parametrize(
        "decision,target",
        [
            (ApprovalDecision.APPROVE, ApprovalStatus.APPROVED),
            (ApprovalDecision.REJECT, ApprovalStatus.REJECTED),
        ],
    )
    def test_pending_can_be_resolved(self, decision, target):
        result = evaluate_transition(ApprovalStatus.PENDING, decision)

        assert result.allowed
        assert result.target == target

    @pytest.mark.parametrize("current", [ApprovalStatus.APPROVED, ApprovalStatus.REJECTED])
    @pytest.mark.parametrize("decision", list(ApprovalDecision))
    def test_terminal_states_refuse_every_decision(self, current, decision):
        result = evaluate_transition(current, decision)

        assert not result.allowed
        assert result.already_resolved
        assert current.value in result.reason

    def test_terminal_states_have_no_edges(self):
        assert APPROVAL_TRANSITIONS[ApprovalStatus.APPROVED] == frozenset()
        assert APPROVAL_TRANSITIONS[ApprovalStatus.REJECTED] == frozenset()
