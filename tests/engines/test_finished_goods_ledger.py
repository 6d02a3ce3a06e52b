"""
Tests for the finished-goods (packed rice) ledger engine.

Tests cover:
- Posting rules for production, purchase, sale and palti
- Running balances per stock key and opening/closing balances
- Pagination: stable pages, totals over the whole window
- available_from: later-dated entries bound what can leave today
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from stock_engines.finished_goods import (
    ProductFilter,
    StockKey,
    available_from,
    balance_at,
    balances_at,
    build_finished_goods_legs,
    ledger,
)
from stock_kernel.domain.movements import ProductionOutput, StockMovement, StockMovementType
from stock_kernel.exceptions import InvalidDateRangeError, InvalidPaginationError

BAG_26 = uuid4()
BAG_50 = uuid4()
KEY_26 = StockKey("GODOWN-1", "Rice", "SONA", BAG_26)
KEY_50 = StockKey("GODOWN-1", "Rice", "SONA", BAG_50)


# =========================================================================
# Factory helpers
# =========================================================================

_seq = iter(range(1, 100_000))


def make_production(on: date, bags: int, packaging=BAG_26, location_code: str | None = "GODOWN-1") -> ProductionOutput:
    return ProductionOutput(
        id=uuid4(), seq=next(_seq), production_date=on, outturn_id=uuid4(),
        product_type="Rice", variety="SONA", packaging_id=packaging, bags=bags,
        quantity_quintals=Decimal(bags) * Decimal("0.26"), paddy_bags_deducted=0,
        location_code=location_code,
    )


def make_movement(
    movement_type: StockMovementType,
    on: date,
    bags: int,
    packaging=BAG_26,
    **extra,
) -> StockMovement:
    return StockMovement(
        id=uuid4(), seq=next(_seq), movement_date=on, movement_type=movement_type,
        location_code="GODOWN-1", product_type="Rice", variety="SONA",
        packaging_id=packaging, bags=bags, quantity_quintals=Decimal(bags) * Decimal("0.26"),
        **extra,
    )


def make_palti(on: date) -> StockMovement:
    return StockMovement(
        id=uuid4(), seq=next(_seq), movement_date=on, movement_type=StockMovementType.PALTI,
        location_code="GODOWN-1", product_type="Rice", variety="SONA",
        packaging_id=BAG_50, bags=100, quantity_quintals=Decimal("50"),
        target_packaging_id=BAG_26, target_bags=192, target_quantity_quintals=Decimal("49.92"),
        shortage_kg=Decimal("8"),
    )


# =========================================================================
# Posting rules
# =========================================================================


class TestPostingRules:
    def test_direct_loading_production_holds_no_stock(self):
        assert build_finished_goods_legs([make_production(date(2024, 3, 1), 10, location_code=None)], []) == []

    def test_sale_is_outward(self):
        legs = build_finished_goods_legs([], [make_movement(StockMovementType.SALE, date(2024, 3, 1), 5)])
        assert legs[0].bags == -5
        assert legs[0].quintals == Decimal("-1.30")

    def test_palti_moves_between_packagings(self):
        legs = build_finished_goods_legs([], [make_palti(date(2024, 3, 1))])

        assert [(leg.key.packaging_id, leg.bags) for leg in legs] == [(BAG_50, -100), (BAG_26, 192)]
        assert legs[1].shortage_kg == Decimal("8")
        assert legs[0].counterpart_packaging_id == BAG_26


# =========================================================================
# Balances
# =========================================================================


class TestBalances:
    def test_balance_at(self):
        legs = build_finished_goods_legs(
            [make_production(date(2024, 3, 1), 100)],
            [make_movement(StockMovementType.SALE, date(2024, 3, 5), 40)],
        )

        assert balance_at(legs, KEY_26, date(2024, 3, 4)).bags == 100
        assert balance_at(legs, KEY_26, date(2024, 3, 5)).bags == 60

    def test_balances_at_lists_non_zero_keys(self):
        legs = build_finished_goods_legs(
            [make_production(date(2024, 3, 1), 100), make_production(date(2024, 3, 1), 10, packaging=BAG_50)],
            [make_movement(StockMovementType.SALE, date(2024, 3, 2), 10, packaging=BAG_50)],
        )

        balances = balances_at(legs, "GODOWN-1", date(2024, 3, 2))

        assert [(b.key, b.bags) for b in balances] == [(KEY_26, 100)]

    def test_available_from_respects_later_sales(self):
        legs = build_finished_goods_legs(
            [make_production(date(2024, 3, 1), 100)],
            [make_movement(StockMovementType.SALE, date(2024, 3, 10), 50)],
        )

        # backdated sale on the 5th may take only what the sale on the 10th leaves
        assert available_from(legs, KEY_26, date(2024, 3, 5)) == 50
        assert available_from(legs, KEY_26, date(2024, 3, 10)) == 50
        assert available_from(legs, KEY_26, date(2024, 2, 28)) == 0

    def test_available_from_counts_same_day_inflows(self):
        legs = build_finished_goods_legs(
            [make_production(date(2024, 3, 5), 30)],
            [make_movement(StockMovementType.SALE, date(2024, 3, 5), 10)],
        )

        assert available_from(legs, KEY_26, date(2024, 3, 5)) == 20


# =========================================================================
# Ledger
# =========================================================================


class TestLedger:
    def _legs(self):
        return build_finished_goods_legs(
            [make_production(date(2024, 3, d), 10) for d in range(1, 11)],
            [
                make_movement(StockMovementType.SALE, date(2024, 3, 4), 5),
                make_movement(StockMovementType.PURCHASE, date(2024, 3, 6), 20),
            ],
        )

    def test_running_balance(self):
        result = ledger(self._legs(), location_code="GODOWN-1", page_size=50)

        assert [e.running_bags for e in result.entries][:6] == [10, 20, 30, 40, 35, 45]
        assert result.closing_balance[0].bags == 115
        assert result.pagination.total_entries == 12

    def test_pages_do_not_change_running_balances(self):
        legs = self._legs()
        full = ledger(legs, location_code="GODOWN-1", page_size=50)
        page2 = ledger(legs, location_code="GODOWN-1", page=2, page_size=5)

        assert page2.entries == full.entries[5:10]
        assert page2.pagination.total_pages == 3
        assert page2.pagination.has_next and page2.pagination.has_previous
        assert page2.totals == full.totals

    def test_repeated_queries_are_identical(self):
        legs = self._legs()
        assert ledger(legs, location_code="GODOWN-1", page_size=4) == ledger(legs, location_code="GODOWN-1", page_size=4)

    def test_window_opening_and_totals(self):
        result = ledger(
            self._legs(), location_code="GODOWN-1",
            date_from=date(2024, 3, 4), date_to=date(2024, 3, 6),
        )

        assert [(b.key, b.bags) for b in result.opening_balance] == [(KEY_26, 30)]
        assert result.entries[0].running_bags == 40
        totals = result.totals
        assert totals[StockMovementType.SALE].bags_out == 5
        assert totals[StockMovementType.PURCHASE].bags_in == 20
        assert totals[StockMovementType.PRODUCTION].movements == 3
        assert result.closing_balance[0].bags == 75

    def test_palti_totals_carry_shortage(self):
        legs = build_finished_goods_legs(
            [make_production(date(2024, 3, 1), 100, packaging=BAG_50)],
            [make_palti(date(2024, 3, 2))],
        )
        result = ledger(legs, location_code="GODOWN-1")
        palti = result.totals[StockMovementType.PALTI]

        assert palti.movements == 1
        assert (palti.bags_in, palti.bags_out) == (192, 100)
        assert palti.shortage_kg == Decimal("8")

    def test_product_filter(self):
        legs = build_finished_goods_legs(
            [make_production(date(2024, 3, 1), 10), make_production(date(2024, 3, 1), 7, packaging=BAG_50)],
            [],
        )
        result = ledger(legs, location_code="GODOWN-1", product_filter=ProductFilter(packaging_id=BAG_50))

        assert [e.key for e in result.entries] == [KEY_50]

    def test_empty_ledger_has_one_page(self):
        result = ledger([], location_code="GODOWN-1")

        assert result.entries == ()
        assert result.pagination.total_pages == 1
        assert not result.pagination.has_next

    def test_rejects_inverted_range(self):
        with pytest.raises(InvalidDateRangeError):
            ledger([], location_code="GODOWN-1", date_from=date(2024, 3, 5), date_to=date(2024, 3, 1))

    @pytest.mark.parametrize("page,page_size", [(0, 10), (1, 0), (1, 501)])
    def test_rejects_bad_pagination(self, page, page_size):
        with pytest.raises(InvalidPaginationError):
            ledger([], location_code="GODOWN-1", page=page, page_size=page_size)
