"""
Tests for the production consumption engine.

Tests cover:
- compute_deduction: ratio, half-up rounding, zero-deduction product types
- compute_consumption: monthly window, approval gate, clearing credits
- compute_outturn_totals: lifetime figures and yield percentage
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_engines.consumption import (
    compute_consumption,
    compute_deduction,
    compute_outturn_totals,
    month_bounds,
)
from stock_kernel.domain.approval import ApprovalStatus
from stock_kernel.domain.movements import PaddyMovement, PaddyMovementKind, ProductionOutput
from stock_kernel.domain.policy import StockPolicy

OUTTURN = uuid4()
CELL = uuid4()


# =========================================================================
# Factory helpers
# =========================================================================

_seq = iter(range(1, 10_000))


def make_shift(
    on: date,
    bags: int,
    status: ApprovalStatus = ApprovalStatus.APPROVED,
    outturn_id=OUTTURN,
    net_weight: Decimal = Decimal("0"),
    kind: PaddyMovementKind = PaddyMovementKind.PRODUCTION_SHIFTING,
) -> PaddyMovement:
    return PaddyMovement(
        id=uuid4(),
        seq=next(_seq),
        movement_date=on,
        kind=kind,
        variety="SONA",
        bags=bags,
        net_weight=net_weight,
        status=status,
        from_location_id=CELL,
        to_location_id=CELL,
        outturn_id=outturn_id,
    )


def make_clearing(on: date, bags: int, outturn_id=OUTTURN) -> PaddyMovement:
    return PaddyMovement(
        id=uuid4(),
        seq=next(_seq),
        movement_date=on,
        kind=PaddyMovementKind.PURCHASE,
        variety="SONA",
        bags=bags,
        net_weight=Decimal("0"),
        status=ApprovalStatus.APPROVED,
        to_location_id=CELL,
        from_outturn_id=outturn_id,
    )


def make_production(
    on: date,
    deducted: int,
    quintals: Decimal = Decimal("0"),
    outturn_id=OUTTURN,
) -> ProductionOutput:
    return ProductionOutput(
        id=uuid4(),
        seq=next(_seq),
        production_date=on,
        outturn_id=outturn_id,
        product_type="Rice",
        variety="SONA",
        packaging_id=uuid4(),
        bags=1,
        quantity_quintals=quintals,
        paddy_bags_deducted=deducted,
    )


# =========================================================================
# Deduction
# =========================================================================


class TestComputeDeduction:
    def test_default_ratio_is_three_bags_per_quintal(self):
        d = compute_deduction(10, Decimal("26"), "Rice", StockPolicy())

        assert d.quantity_quintals == Decimal("2.6")
        assert d.paddy_bags_deducted == 8  # 7.8 rounds up

    def test_half_rounds_away_from_zero(self):
        # 5 x 10kg = 0.5 q -> 1.5 bags -> 2
        d = compute_deduction(5, Decimal("10"), "Rice", StockPolicy())
        assert d.paddy_bags_deducted == 2

    def test_below_half_rounds_down(self):
        # 1 x 10kg = 0.1 q -> 0.3 bags -> 0
        d = compute_deduction(1, Decimal("10"), "Rice", StockPolicy())
        assert d.paddy_bags_deducted == 0

    def test_configured_ratio(self):
        policy = StockPolicy(paddy_bags_per_quintal=Decimal("2.5"))
        d = compute_deduction(4, Decimal("50"), "Rice", policy)
        assert d.paddy_bags_deducted == 5

    @pytest.mark.parametrize("product_type", ["Bran", "bran", " BRAN "])
    def test_zero_deduction_product_types(self, product_type):
        policy = StockPolicy(zero_deduction_product_types=("Bran",))
        d = compute_deduction(10, Decimal("50"), product_type, policy)

        assert d.paddy_bags_deducted == 0
        assert d.quantity_quintals == Decimal("5")


# =========================================================================
# Monthly consumption
# =========================================================================


class TestComputeConsumption:
    def test_month_bounds(self):
        assert month_bounds(date(2024, 2, 14)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_available_is_shifted_minus_produced(self):
        result = compute_consumption(
            outturn_id=OUTTURN,
            as_of=date(2024, 3, 20),
            movements=[make_shift(date(2024, 3, 5), 100)],
            productions=[make_production(date(2024, 3, 10), 30)],
        )

        assert result.shifted_bags == 100
        assert result.produced_bags_deducted == 30
        assert result.available_bags == 70
        assert result.can_deduct(70)
        assert not result.can_deduct(71)

    def test_previous_month_is_not_carried_forward(self):
        result = compute_consumption(
            outturn_id=OUTTURN,
            as_of=date(2024, 4, 2),
            movements=[make_shift(date(2024, 3, 5), 100)],
            productions=[make_production(date(2024, 3, 10), 30)],
        )

        assert result.shifted_bags == 0
        assert result.available_bags == 0

    def test_entries_after_as_of_are_ignored(self):
        result = compute_consumption(
            outturn_id=OUTTURN,
            as_of=date(2024, 3, 5),
            movements=[make_shift(date(2024, 3, 5), 100), make_shift(date(2024, 3, 6), 50)],
            productions=[make_production(date(2024, 3, 6), 30)],
        )

        assert result.available_bags == 100

    @pytest.mark.parametrize("status", [ApprovalStatus.PENDING, ApprovalStatus.REJECTED])
    def test_unapproved_shifts_do_not_count(self, status):
        result = compute_consumption(
            outturn_id=OUTTURN,
            as_of=date(2024, 3, 20),
            movements=[make_shift(date(2024, 3, 5), 100, status=status)],
            productions=[],
        )

        assert result.available_bags == 0

    def test_earmarked_purchase_counts_as_shifted(self):
        result = compute_consumption(
            outturn_id=OUTTURN,
            as_of=date(2024, 3, 20),
            movements=[make_shift(date(2024, 3, 5), 40, kind=PaddyMovementKind.PURCHASE)],
            productions=[],
        )

        assert result.shifted_bags == 40

    def test_other_outturns_are_ignored(self):
        other = uuid4()
        result = compute_consumption(
            outturn_id=OUTTURN,
            as_of=date(2024, 3, 20),
            movements=[make_shift(date(2024, 3, 5), 100, outturn_id=other)],
            productions=[make_production(date(2024, 3, 6), 10, outturn_id=other)],
        )

        assert result.available_bags == 0

    def test_clearing_consumes_the_remainder(self):
        result = compute_consumption(
            outturn_id=OUTTURN,
            as_of=date(2024, 3, 20),
            movements=[make_shift(date(2024, 3, 5), 100), make_clearing(date(2024, 3, 15), 70)],
            productions=[make_production(date(2024, 3, 10), 30)],
        )

        assert result.cleared_bags == 70
        assert result.consumed_bags == 100
        assert result.available_bags == 0


# =========================================================================
# Lifetime totals
# =========================================================================


class TestOutturnTotals:
    def test_yield_is_rice_over_paddy_quintals(self):
        totals = compute_outturn_totals(
            OUTTURN,
            movements=[
                make_shift(date(2024, 3, 5), 100, net_weight=Decimal("7500")),
                make_shift(date(2024, 4, 5), 100, net_weight=Decimal("2500")),
            ],
            productions=[make_production(date(2024, 3, 10), 30, quintals=Decimal("65"))],
        )

        assert totals.shifted_bags == 200
        assert totals.shifted_net_weight == Decimal("10000")
        assert totals.produced_quintals == Decimal("65")
        assert totals.yield_percentage == Decimal("65")

    def test_yield_without_paddy_is_zero(self):
        totals = compute_outturn_totals(OUTTURN, movements=[], productions=[])
        assert totals.yield_percentage == 0
