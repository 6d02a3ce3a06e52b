"""
stock_services -- Package init and public API.

Responsibility:
    Stateful orchestration that composes the pure engines (stock_engines/)
    with database sessions, key locks and the injected clock.

Architecture position:
    Dependency direction (enforced by tests/architecture):
        stock_services/ -> stock_engines/  (allowed)
        stock_services/ -> stock_kernel/   (allowed)
        stock_engines/  -> stock_services/ (FORBIDDEN)
        stock_kernel/   -> stock_services/ (FORBIDDEN)
"""

from stock_services.approval_service import ApprovalService
from stock_services.balance_query_service import (
    BalanceQueryService,
    OutturnAvailability,
    PaddyLedgerView,
)
from stock_services.finished_goods_service import FinishedGoodsService
from stock_services.movement_service import BatchItemResult, BatchResult, MovementService
from stock_services.production_service import ClearingResult, ProductionService

__all__ = [
    "ApprovalService",
    "BalanceQueryService",
    "BatchItemResult",
    "BatchResult",
    "ClearingResult",
    "FinishedGoodsService",
    "MovementService",
    "OutturnAvailability",
    "PaddyLedgerView",
    "ProductionService",
]
