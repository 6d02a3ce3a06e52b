"""
stock_engines.approval -- Pure approval transition evaluation.

Responsibility:
    Decide whether a paddy movement may move from its current status to the
    status an approver asked for.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import stock_kernel/domain/ types.

Invariants enforced:
    - Only edges in ``APPROVAL_TRANSITIONS`` are allowed.
    - Terminal states (approved, rejected) have no outgoing edges, including
      the self-edge: approving an approved movement is refused.
"""

from __future__ import annotations

from dataclasses import dataclass

from stock_kernel.domain.approval import (
    APPROVAL_TRANSITIONS,
    DECISION_TARGET,
    TERMINAL_APPROVAL_STATUSES,
    ApprovalDecision,
    ApprovalStatus,
)


@dataclass(frozen=True)
class TransitionEvaluation:
    current: ApprovalStatus
    target: ApprovalStatus
    allowed: bool
    already_resolved: bool = False
    reason: str = ""


def evaluate_transition(
    current: ApprovalStatus,
    decision: ApprovalDecision,
) -> TransitionEvaluation:
    """Evaluate an approve/reject decision against the current status."""
    target = DECISION_TARGET[decision]

    if current in TERMINAL_APPROVAL_STATUSES:
        return TransitionEvaluation(
            current=current,
            target=target,
            allowed=False,
            already_resolved=True,
            reason=f"Movement is already {current.value}",
        )

    if target not in APPROVAL_TRANSITIONS.get(current, frozenset()):
        return TransitionEvaluation(
            current=current,
            target=target,
            allowed=False,
            reason=f"{current.value} -> {target.value} is not a valid transition",
        )

    return TransitionEvaluation(current=current, target=target, allowed=True, reason="ok")
