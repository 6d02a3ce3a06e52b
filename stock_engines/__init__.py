"""
stock_engines -- pure stock computations.

Every function here is deterministic and performs no I/O: no database, no
clock, no configuration reads.  Inputs are domain value objects from
``stock_kernel.domain``; outputs are frozen dataclasses.
"""

from stock_engines.approval import TransitionEvaluation, evaluate_transition
from stock_engines.consumption import (
    Deduction,
    OutturnTotals,
    ProductionConsumption,
    compute_consumption,
    compute_deduction,
    compute_outturn_totals,
    month_bounds,
)
from stock_engines.finished_goods import (
    FinishedGoodsLedger,
    KeyBalance,
    ProductFilter,
    StockKey,
    available_from,
    balance_at,
    balances_at,
    build_finished_goods_legs,
    ledger,
)
from stock_engines.integrity import IntegrityReport, IntegrityViolation, check_integrity
from stock_engines.palti import PaltiResult, compute_palti
from stock_engines.postings import (
    BalanceKey,
    OutturnLotBook,
    PostingContext,
    StockLeg,
    build_paddy_legs,
)
from stock_engines.reconstruction import (
    DailyBalance,
    DaySheet,
    Reconstruction,
    iter_daily_balances,
    reconstruct,
)

__all__ = [
    "BalanceKey",
    "DailyBalance",
    "DaySheet",
    "Deduction",
    "FinishedGoodsLedger",
    "IntegrityReport",
    "IntegrityViolation",
    "KeyBalance",
    "OutturnLotBook",
    "OutturnTotals",
    "PaltiResult",
    "PostingContext",
    "ProductFilter",
    "ProductionConsumption",
    "Reconstruction",
    "StockKey",
    "StockLeg",
    "TransitionEvaluation",
    "available_from",
    "balance_at",
    "balances_at",
    "build_finished_goods_legs",
    "build_paddy_legs",
    "check_integrity",
    "compute_consumption",
    "compute_deduction",
    "compute_outturn_totals",
    "compute_palti",
    "evaluate_transition",
    "iter_daily_balances",
    "ledger",
    "month_bounds",
    "reconstruct",
]
