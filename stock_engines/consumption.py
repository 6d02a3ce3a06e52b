"""
stock_engines.consumption -- Production consumption tracking per outturn.

Responsibility:
    For an outturn and a date, derive how many paddy bags were made
    available to it in that calendar month and how many were drawn, and
    compute the paddy deduction of a new production entry.

    shifted   = bags of effective production-shifting and purchase movements
                earmarked to the outturn, dated in the month and <= as_of
    consumed  = paddy_bags_deducted of production outputs, plus bags returned
                to free stock by clearing, in the same window
    available = shifted - consumed

    The window resets on the first of every month: leftover bags from a
    prior month are not carried forward and must be shifted again.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Only effective (approved) paddy movements count as shifted.
    - Production outputs carry no approval gate and always count.
    - Deduction = round_half_up(bags x kg_per_bag / 100 x ratio), ratio
      from StockPolicy (default 3), fixed at entry time.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from stock_kernel.domain.movements import PaddyMovement, PaddyMovementKind, ProductionOutput
from stock_kernel.domain.policy import StockPolicy
from stock_kernel.domain.quantities import KG_PER_QUINTAL, quintals_for, round_half_up
from stock_engines.tracer import traced_engine

_EARMARKING_KINDS = frozenset({PaddyMovementKind.PRODUCTION_SHIFTING, PaddyMovementKind.PURCHASE})


def month_bounds(day: date) -> tuple[date, date]:
    """First and last calendar day of the month containing *day*."""
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


@dataclass(frozen=True)
class Deduction:
    quantity_quintals: Decimal
    paddy_bags_deducted: int


def compute_deduction(
    bags: int,
    kg_per_bag: Decimal,
    product_type: str,
    policy: StockPolicy,
) -> Deduction:
    """
    quantity_quintals = bags x kg_per_bag / 100
    paddy_bags_deducted = round_half_up(quantity_quintals x ratio)
    """
    quintals = quintals_for(bags, kg_per_bag)
    if not policy.deducts_paddy(product_type):
        return Deduction(quantity_quintals=quintals, paddy_bags_deducted=0)
    return Deduction(
        quantity_quintals=quintals,
        paddy_bags_deducted=round_half_up(quintals * policy.paddy_bags_per_quintal),
    )


def is_earmarking(movement: PaddyMovement, outturn_id: UUID) -> bool:
    """Effective movement that lands bags on the outturn."""
    return (
        movement.is_effective
        and movement.outturn_id == outturn_id
        and movement.kind in _EARMARKING_KINDS
        and not movement.is_clearing_credit
    )


def is_clearing_of(movement: PaddyMovement, outturn_id: UUID) -> bool:
    return movement.is_effective and movement.from_outturn_id == outturn_id


@dataclass(frozen=True)
class ProductionConsumption:
    """Monthly consumption figures for one outturn."""

    outturn_id: UUID
    as_of: date
    month_start: date
    month_end: date
    shifted_bags: int
    produced_bags_deducted: int
    cleared_bags: int

    @property
    def consumed_bags(self) -> int:
        return self.produced_bags_deducted + self.cleared_bags

    @property
    def available_bags(self) -> int:
        return self.shifted_bags - self.consumed_bags

    def can_deduct(self, paddy_bags: int) -> bool:
        return paddy_bags <= self.available_bags


@traced_engine("consumption", "1.0", fingerprint_fields=("outturn_id", "as_of"))
def compute_consumption(
    *,
    outturn_id: UUID,
    as_of: date,
    movements: Iterable[PaddyMovement],
    productions: Iterable[ProductionOutput],
) -> ProductionConsumption:
    """Consumption window for the calendar month of *as_of*, up to *as_of*."""
    month_start, month_end = month_bounds(as_of)

    def in_window(d: date) -> bool:
        return month_start <= d <= as_of

    shifted = 0
    cleared = 0
    for m in movements:
        if not in_window(m.movement_date):
            continue
        if is_earmarking(m, outturn_id):
            shifted += m.bags
        elif is_clearing_of(m, outturn_id):
            cleared += m.bags

    produced = sum(
        p.paddy_bags_deducted
        for p in productions
        if p.outturn_id == outturn_id and in_window(p.production_date)
    )

    return ProductionConsumption(
        outturn_id=outturn_id,
        as_of=as_of,
        month_start=month_start,
        month_end=month_end,
        shifted_bags=shifted,
        produced_bags_deducted=produced,
        cleared_bags=cleared,
    )


@dataclass(frozen=True)
class OutturnTotals:
    """Lifetime figures for an outturn (no monthly reset)."""

    outturn_id: UUID
    shifted_bags: int
    shifted_net_weight: Decimal
    produced_bags_deducted: int
    produced_quintals: Decimal
    cleared_bags: int

    @property
    def yield_percentage(self) -> Decimal:
        """Rice output quintals over paddy input quintals, x 100."""
        paddy_quintals = self.shifted_net_weight / KG_PER_QUINTAL
        if paddy_quintals <= 0:
            return Decimal("0")
        return self.produced_quintals / paddy_quintals * Decimal(100)


def compute_outturn_totals(
    outturn_id: UUID,
    movements: Iterable[PaddyMovement],
    productions: Iterable[ProductionOutput],
) -> OutturnTotals:
    shifted = 0
    weight = Decimal("0")
    cleared = 0
    for m in movements:
        if is_earmarking(m, outturn_id):
            shifted += m.bags
            weight += m.net_weight
        elif is_clearing_of(m, outturn_id):
            cleared += m.bags

    deducted = 0
    quintals = Decimal("0")
    for p in productions:
        if p.outturn_id == outturn_id:
            deducted += p.paddy_bags_deducted
            quintals += p.quantity_quintals

    return OutturnTotals(
        outturn_id=outturn_id,
        shifted_bags=shifted,
        shifted_net_weight=weight,
        produced_bags_deducted=deducted,
        produced_quintals=quintals,
        cleared_bags=cleared,
    )
