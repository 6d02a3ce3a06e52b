"""
Approval domain types (``stock_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the paddy movement approval gate: the lifecycle
state machine and the per-item outcome records returned by bulk actions.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* ``APPROVAL_TRANSITIONS`` defines the only valid status transitions.
  Terminal states have no outgoing edges.
* Only ``approved`` movements are effective for balance computation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID


class ApprovalStatus(str, Enum):
    """Paddy movement lifecycle states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


APPROVAL_TRANSITIONS: dict[ApprovalStatus, frozenset[ApprovalStatus]] = {
    ApprovalStatus.PENDING: frozenset({
        ApprovalStatus.APPROVED,
        ApprovalStatus.REJECTED,
    }),
    ApprovalStatus.APPROVED: frozenset(),
    ApprovalStatus.REJECTED: frozenset(),
}

TERMINAL_APPROVAL_STATUSES: frozenset[ApprovalStatus] = frozenset({
    ApprovalStatus.APPROVED,
    ApprovalStatus.REJECTED,
})

EFFECTIVE_STATUSES: frozenset[ApprovalStatus] = frozenset({
    ApprovalStatus.APPROVED,
})


class ApprovalDecision(str, Enum):
    """Decisions an approver can make."""

    APPROVE = "approve"
    REJECT = "reject"


DECISION_TARGET: dict[ApprovalDecision, ApprovalStatus] = {
    ApprovalDecision.APPROVE: ApprovalStatus.APPROVED,
    ApprovalDecision.REJECT: ApprovalStatus.REJECTED,
}


class ItemOutcomeStatus(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class ItemOutcome:
    """Result of one item inside a bulk transition."""

    movement_id: UUID
    outcome: ItemOutcomeStatus
    error_code: str | None = None
    message: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome != ItemOutcomeStatus.FAILED


@dataclass(frozen=True)
class BulkOutcome:
    """Per-item summary of a bulk approve/reject."""

    decision: ApprovalDecision
    items: tuple[ItemOutcome, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> tuple[ItemOutcome, ...]:
        return tuple(i for i in self.items if i.succeeded)

    @property
    def failed(self) -> tuple[ItemOutcome, ...]:
        return tuple(i for i in self.items if not i.succeeded)
