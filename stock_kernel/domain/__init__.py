"""Pure domain value objects for the stock kernel. ZERO I/O."""

from stock_kernel.domain.approval import (
    APPROVAL_TRANSITIONS,
    EFFECTIVE_STATUSES,
    TERMINAL_APPROVAL_STATUSES,
    ApprovalDecision,
    ApprovalStatus,
    BulkOutcome,
    ItemOutcome,
    ItemOutcomeStatus,
)
from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.movements import (
    LocationInfo,
    LocationKind,
    OpeningBalance,
    OutturnInfo,
    OutturnType,
    PackagingInfo,
    PaddyMovement,
    PaddyMovementKind,
    ProductionOutput,
    StockMovement,
    StockMovementType,
)

__all__ = [
    "APPROVAL_TRANSITIONS",
    "EFFECTIVE_STATUSES",
    "TERMINAL_APPROVAL_STATUSES",
    "ApprovalDecision",
    "ApprovalStatus",
    "BulkOutcome",
    "Clock",
    "DeterministicClock",
    "ItemOutcome",
    "ItemOutcomeStatus",
    "LocationInfo",
    "LocationKind",
    "OpeningBalance",
    "OutturnInfo",
    "OutturnType",
    "PackagingInfo",
    "PaddyMovement",
    "PaddyMovementKind",
    "ProductionOutput",
    "StockMovement",
    "StockMovementType",
    "SystemClock",
]
