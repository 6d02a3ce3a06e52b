"""
Tests for the paddy posting rules.

Tests cover:
- Leg shapes per movement kind and the approval gate
- Conservation on two-sided movements
- FIFO consumption of earmarked lots by production and clearing
- Opening balances as inward legs
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_engines.postings import (
    LegKind,
    OutturnLotBook,
    PostingContext,
    build_paddy_legs,
    legs_for_movement,
)
from stock_kernel.domain.approval import ApprovalStatus
from stock_kernel.domain.movements import (
    OpeningBalance,
    PaddyMovement,
    PaddyMovementKind,
    ProductionOutput,
)

WAREHOUSE = uuid4()
CELL_A = uuid4()
CELL_B = uuid4()
OUTTURN = uuid4()

CTX = PostingContext(
    warehouse_of={CELL_A: WAREHOUSE, CELL_B: WAREHOUSE},
    outturn_codes={OUTTURN: "OT-1"},
)


# =========================================================================
# Factory helpers
# =========================================================================

_seq = iter(range(1, 10_000))


def make_movement(
    kind: PaddyMovementKind,
    bags: int,
    on: date = date(2024, 3, 1),
    from_location=None,
    to_location=None,
    outturn_id=None,
    from_outturn_id=None,
    status: ApprovalStatus = ApprovalStatus.APPROVED,
    net_weight: Decimal | None = None,
    variety: str = "SONA",
) -> PaddyMovement:
    return PaddyMovement(
        id=uuid4(),
        seq=next(_seq),
        movement_date=on,
        kind=kind,
        variety=variety,
        bags=bags,
        net_weight=Decimal(bags * 75) if net_weight is None else net_weight,
        status=status,
        from_location_id=from_location,
        to_location_id=to_location,
        outturn_id=outturn_id,
        from_outturn_id=from_outturn_id,
    )


def make_production(on: date, deducted: int, outturn_id=OUTTURN) -> ProductionOutput:
    return ProductionOutput(
        id=uuid4(),
        seq=next(_seq),
        production_date=on,
        outturn_id=outturn_id,
        product_type="Rice",
        variety="SONA",
        packaging_id=uuid4(),
        bags=10,
        quantity_quintals=Decimal("2.6"),
        paddy_bags_deducted=deducted,
    )


def earmark(on: date, bags: int, at=CELL_A, net_weight: Decimal | None = None) -> PaddyMovement:
    return make_movement(
        PaddyMovementKind.PRODUCTION_SHIFTING, bags, on,
        from_location=at, to_location=at, outturn_id=OUTTURN, net_weight=net_weight,
    )


# =========================================================================
# Single movements
# =========================================================================


class TestLegsForMovement:
    def test_purchase_credits_destination(self):
        m = make_movement(PaddyMovementKind.PURCHASE, 40, to_location=CELL_A)
        (leg,) = legs_for_movement(m, CTX)

        assert leg.kind == LegKind.PURCHASE
        assert leg.location_id == CELL_A
        assert leg.warehouse_id == WAREHOUSE
        assert leg.bags == 40
        assert leg.outturn_code is None

    def test_purchase_for_production_is_earmarked(self):
        m = make_movement(PaddyMovementKind.PURCHASE, 40, to_location=CELL_A, outturn_id=OUTTURN)
        (leg,) = legs_for_movement(m, CTX)

        assert leg.outturn_code == "OT-1"
        assert leg.key.is_earmarked

    def test_shifting_is_balanced(self):
        m = make_movement(PaddyMovementKind.SHIFTING, 25, from_location=CELL_A, to_location=CELL_B)
        legs = legs_for_movement(m, CTX)

        assert [(leg.location_id, leg.bags) for leg in legs] == [(CELL_A, -25), (CELL_B, 25)]
        assert sum(leg.bags for leg in legs) == 0
        assert sum(leg.net_weight for leg in legs) == 0

    def test_production_shifting_moves_free_stock_to_earmarked(self):
        legs = legs_for_movement(earmark(date(2024, 3, 1), 30), CTX)

        assert [(leg.location_id, leg.outturn_code, leg.bags) for leg in legs] == [
            (CELL_A, None, -30),
            (CELL_A, "OT-1", 30),
        ]

    def test_loose_is_free_inward(self):
        m = make_movement(PaddyMovementKind.LOOSE, 3, to_location=CELL_B)
        (leg,) = legs_for_movement(m, CTX)

        assert leg.kind == LegKind.LOOSE
        assert leg.bags == 3

    @pytest.mark.parametrize("status", [ApprovalStatus.PENDING, ApprovalStatus.REJECTED])
    def test_unapproved_movements_post_nothing(self, status):
        m = make_movement(PaddyMovementKind.PURCHASE, 40, to_location=CELL_A, status=status)
        assert legs_for_movement(m, CTX) == []


# =========================================================================
# FIFO lots
# =========================================================================


class TestOutturnLotBook:
    def test_production_draws_oldest_lot_first(self):
        first = earmark(date(2024, 3, 1), 60, at=CELL_A, net_weight=Decimal("6000"))
        second = earmark(date(2024, 3, 2), 50, at=CELL_B, net_weight=Decimal("5000"))
        prod = make_production(date(2024, 3, 3), 80)

        book = OutturnLotBook(OUTTURN, [second, first], [prod])
        draws = book.draws_for(prod.id)

        assert [(d.location_id, d.bags, d.net_weight) for d in draws] == [
            (CELL_A, 60, Decimal("6000.000")),
            (CELL_B, 20, Decimal("2000.000")),
        ]
        assert book.remaining_by_location() == {CELL_B: 30}

    def test_lots_dated_after_the_draw_are_not_eligible(self):
        early = earmark(date(2024, 3, 1), 10, at=CELL_A)
        late = earmark(date(2024, 3, 9), 50, at=CELL_B)
        prod = make_production(date(2024, 3, 3), 15)

        draws = OutturnLotBook(OUTTURN, [early, late], [prod]).draws_for(prod.id)

        # overdraw lands on the last eligible lot
        assert sum(d.bags for d in draws) == 15
        assert {d.location_id for d in draws} == {CELL_A}

    def test_draw_without_lots_has_no_location(self):
        prod = make_production(date(2024, 3, 3), 5)
        (draw,) = OutturnLotBook(OUTTURN, [], [prod]).draws_for(prod.id)

        assert draw.location_id is None
        assert draw.bags == 5

    def test_preview_does_not_consume(self):
        book = OutturnLotBook(OUTTURN, [earmark(date(2024, 3, 1), 40)], [])

        first = book.preview_draw(date(2024, 3, 5), 30)
        second = book.preview_draw(date(2024, 3, 5), 30)

        assert first == second
        assert book.remaining_by_location() == {CELL_A: 40}
        assert book.latest_lot_location() == CELL_A


# =========================================================================
# Full build
# =========================================================================


class TestBuildPaddyLegs:
    def test_production_debits_earmarked_stock(self):
        shift = earmark(date(2024, 3, 1), 60)
        prod = make_production(date(2024, 3, 2), 20)

        legs = build_paddy_legs([shift], [prod], ctx=CTX)
        debit = [leg for leg in legs if leg.kind == LegKind.PRODUCTION_OUTPUT]

        assert len(debit) == 1
        assert debit[0].location_id == CELL_A
        assert debit[0].outturn_code == "OT-1"
        assert debit[0].bags == -20

    def test_clearing_returns_bags_to_free_stock(self):
        shift = earmark(date(2024, 3, 1), 60, net_weight=Decimal("4500"))
        clearing = make_movement(
            PaddyMovementKind.PURCHASE, 60, date(2024, 3, 31),
            to_location=CELL_A, from_outturn_id=OUTTURN, net_weight=Decimal("4500"),
        )

        legs = [leg for leg in build_paddy_legs([shift, clearing], ctx=CTX) if leg.kind == LegKind.CLEARING]

        assert sorted(((leg.outturn_code or "", leg.bags) for leg in legs)) == [("", 60), ("OT-1", -60)]
        assert sum(leg.net_weight for leg in legs) == 0

    def test_opening_balance_sorts_first_on_its_day(self):
        opening = OpeningBalance(
            id=uuid4(), location_id=CELL_A, variety="SONA",
            balance_date=date(2024, 3, 1), bags=500, net_weight=Decimal("37500"),
        )
        sale_like = make_movement(
            PaddyMovementKind.SHIFTING, 10, date(2024, 3, 1), from_location=CELL_A, to_location=CELL_B,
        )

        legs = build_paddy_legs([sale_like], opening_balances=[opening], ctx=CTX)

        assert legs[0].kind == LegKind.OPENING
        assert legs[0].bags == 500

    def test_every_movement_conserves_bags(self):
        movements = [
            make_movement(PaddyMovementKind.SHIFTING, 7, from_location=CELL_A, to_location=CELL_B),
            earmark(date(2024, 3, 2), 12),
        ]
        legs = build_paddy_legs(movements, ctx=CTX)

        for m in movements:
            assert sum(leg.bags for leg in legs if leg.movement_id == m.id) == 0
