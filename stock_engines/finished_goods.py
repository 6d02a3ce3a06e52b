"""
stock_engines.finished_goods -- Finished-goods (packed rice) ledger.

Responsibility:
    Signed legs and running balances for packed rice keyed by
    (location_code, product_type, variety, packaging_id):

        production   +bags at the packaging it was packed in
        purchase     +bags
        sale         -bags
        palti        -source_bags at the source packaging,
                     +target_bags at the target packaging
                     (shortage_kg is carried as information only)

    Ledger pages are cut from one left-to-right scan over a stable
    (date, rank, seq, leg) order, so running balances do not depend on the
    page requested and repeated queries return identical pages.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Failure modes:
    - InvalidDateRangeError / InvalidPaginationError on bad query bounds.
"""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from stock_kernel.domain.movements import ProductionOutput, StockMovement, StockMovementType
from stock_kernel.exceptions import InvalidDateRangeError, InvalidPaginationError
from stock_engines.tracer import traced_engine

_ZERO = Decimal("0")

_RANK_PRODUCTION = 0
_RANK_MOVEMENT = 1


@dataclass(frozen=True)
class StockKey:
    location_code: str
    product_type: str
    variety: str
    packaging_id: UUID

    def sort_key(self) -> tuple:
        return (self.location_code, self.product_type, self.variety, str(self.packaging_id))


@dataclass(frozen=True)
class FinishedGoodsLeg:
    movement_id: UUID
    entry_date: date
    rank: int
    seq: int
    leg_no: int
    movement_type: StockMovementType
    key: StockKey
    bags: int
    quintals: Decimal
    shortage_kg: Decimal | None = None
    counterpart_packaging_id: UUID | None = None

    def order(self) -> tuple:
        return (self.entry_date, self.rank, self.seq, self.leg_no)


@dataclass(frozen=True)
class ProductFilter:
    product_type: str | None = None
    variety: str | None = None
    packaging_id: UUID | None = None

    def matches(self, key: StockKey) -> bool:
        return (
            (self.product_type is None or key.product_type == self.product_type)
            and (self.variety is None or key.variety == self.variety)
            and (self.packaging_id is None or key.packaging_id == self.packaging_id)
        )


# =========================================================================
# Posting rules
# =========================================================================


def legs_for_production(p: ProductionOutput) -> list[FinishedGoodsLeg]:
    """Production packed into a storage location; direct loading holds no stock."""
    if not p.location_code:
        return []
    return [FinishedGoodsLeg(
        movement_id=p.id,
        entry_date=p.production_date,
        rank=_RANK_PRODUCTION,
        seq=p.seq,
        leg_no=0,
        movement_type=StockMovementType.PRODUCTION,
        key=StockKey(p.location_code, p.product_type, p.variety, p.packaging_id),
        bags=p.bags,
        quintals=p.quantity_quintals,
    )]


def legs_for_stock_movement(m: StockMovement) -> list[FinishedGoodsLeg]:
    source = StockKey(m.location_code, m.product_type, m.variety, m.packaging_id)
    common = dict(movement_id=m.id, entry_date=m.movement_date, rank=_RANK_MOVEMENT, seq=m.seq)

    if m.movement_type in (StockMovementType.PURCHASE, StockMovementType.PRODUCTION):
        return [FinishedGoodsLeg(leg_no=0, movement_type=m.movement_type, key=source,
                                 bags=m.bags, quintals=m.quantity_quintals, **common)]

    if m.movement_type == StockMovementType.SALE:
        return [FinishedGoodsLeg(leg_no=0, movement_type=m.movement_type, key=source,
                                 bags=-m.bags, quintals=-m.quantity_quintals, **common)]

    if m.movement_type == StockMovementType.PALTI:
        if m.target_packaging_id is None or m.target_bags is None:
            raise ValueError(f"Palti movement {m.id} has no target side")
        target = StockKey(m.location_code, m.product_type, m.variety, m.target_packaging_id)
        return [
            FinishedGoodsLeg(leg_no=0, movement_type=m.movement_type, key=source,
                             bags=-m.bags, quintals=-m.quantity_quintals,
                             counterpart_packaging_id=m.target_packaging_id, **common),
            FinishedGoodsLeg(leg_no=1, movement_type=m.movement_type, key=target,
                             bags=m.target_bags, quintals=m.target_quantity_quintals or _ZERO,
                             shortage_kg=m.shortage_kg,
                             counterpart_packaging_id=m.packaging_id, **common),
        ]

    raise ValueError(f"No posting rule for finished-goods movement {m.movement_type!r}")


def build_finished_goods_legs(
    productions: Iterable[ProductionOutput],
    movements: Iterable[StockMovement],
) -> list[FinishedGoodsLeg]:
    legs: list[FinishedGoodsLeg] = []
    for p in productions:
        legs.extend(legs_for_production(p))
    for m in movements:
        legs.extend(legs_for_stock_movement(m))
    legs.sort(key=FinishedGoodsLeg.order)
    return legs


# =========================================================================
# Balances
# =========================================================================


@dataclass(frozen=True)
class KeyBalance:
    key: StockKey
    bags: int
    quintals: Decimal


def balance_at(legs: Iterable[FinishedGoodsLeg], key: StockKey, as_of: date) -> KeyBalance:
    """Balance of one key from every leg dated <= as_of."""
    bags, quintals = 0, _ZERO
    for leg in legs:
        if leg.key == key and leg.entry_date <= as_of:
            bags += leg.bags
            quintals += leg.quintals
    return KeyBalance(key, bags, quintals)


def available_from(legs: Iterable[FinishedGoodsLeg], key: StockKey, on: date) -> int:
    """
    Bags of *key* that can leave on *on* without any later balance going
    negative: the balance as of *on*, lowered by any smaller running balance
    on a later date.
    """
    by_day: dict[date, int] = defaultdict(int)
    for leg in legs:
        if leg.key == key:
            by_day[leg.entry_date] += leg.bags
    running = sum(bags for day, bags in by_day.items() if day <= on)
    available = running
    for day in sorted(d for d in by_day if d > on):
        running += by_day[day]
        available = min(available, running)
    return available


def balances_at(
    legs: Iterable[FinishedGoodsLeg],
    location_code: str,
    as_of: date,
    product_filter: ProductFilter | None = None,
) -> list[KeyBalance]:
    """Non-zero balances of every key at a location as of a date."""
    pf = product_filter or ProductFilter()
    bags: dict[StockKey, int] = defaultdict(int)
    quintals: dict[StockKey, Decimal] = defaultdict(lambda: _ZERO)
    for leg in legs:
        if leg.key.location_code == location_code and pf.matches(leg.key) and leg.entry_date <= as_of:
            bags[leg.key] += leg.bags
            quintals[leg.key] += leg.quintals
    return [
        KeyBalance(k, bags[k], quintals[k])
        for k in sorted(bags, key=StockKey.sort_key)
        if bags[k] != 0 or quintals[k] != 0
    ]


# =========================================================================
# Ledger
# =========================================================================


@dataclass(frozen=True)
class LedgerEntry:
    movement_id: UUID
    entry_date: date
    seq: int
    movement_type: StockMovementType
    key: StockKey
    bags: int
    quintals: Decimal
    running_bags: int
    running_quintals: Decimal
    shortage_kg: Decimal | None = None
    counterpart_packaging_id: UUID | None = None


@dataclass(frozen=True)
class KindTotal:
    movement_type: StockMovementType
    movements: int
    bags_in: int
    bags_out: int
    quintals_in: Decimal
    quintals_out: Decimal
    shortage_kg: Decimal = _ZERO


@dataclass(frozen=True)
class Pagination:
    page: int
    page_size: int
    total_entries: int

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_entries / self.page_size))

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


@dataclass(frozen=True)
class FinishedGoodsLedger:
    location_code: str
    date_from: date | None
    date_to: date | None
    opening_balance: tuple[KeyBalance, ...]
    entries: tuple[LedgerEntry, ...]
    totals: dict[StockMovementType, KindTotal]
    closing_balance: tuple[KeyBalance, ...]
    pagination: Pagination
    product_filter: ProductFilter = field(default_factory=ProductFilter)


def _totals(window: list[FinishedGoodsLeg]) -> dict[StockMovementType, KindTotal]:
    acc: dict[StockMovementType, dict] = {}
    for leg in window:
        t = acc.setdefault(leg.movement_type, {
            "ids": set(), "bags_in": 0, "bags_out": 0,
            "q_in": _ZERO, "q_out": _ZERO, "shortage": _ZERO,
        })
        t["ids"].add(leg.movement_id)
        if leg.bags >= 0:
            t["bags_in"] += leg.bags
            t["q_in"] += leg.quintals
        else:
            t["bags_out"] -= leg.bags
            t["q_out"] -= leg.quintals
        if leg.shortage_kg:
            t["shortage"] += leg.shortage_kg
    return {
        kind: KindTotal(
            movement_type=kind,
            movements=len(t["ids"]),
            bags_in=t["bags_in"],
            bags_out=t["bags_out"],
            quintals_in=t["q_in"],
            quintals_out=t["q_out"],
            shortage_kg=t["shortage"],
        )
        for kind, t in sorted(acc.items(), key=lambda kv: kv[0].value)
    }


@traced_engine(
    "finished_goods_ledger", "1.0",
    fingerprint_fields=("location_code", "date_from", "date_to", "page", "page_size"),
)
def ledger(
    legs: Iterable[FinishedGoodsLeg],
    *,
    location_code: str,
    product_filter: ProductFilter | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int = 1,
    page_size: int = 50,
    max_page_size: int = 500,
) -> FinishedGoodsLedger:
    """One page of the finished-goods ledger for a location."""
    if date_from is not None and date_to is not None and date_from > date_to:
        raise InvalidDateRangeError(date_from, date_to)
    if page < 1 or not 1 <= page_size <= max_page_size:
        raise InvalidPaginationError(page, page_size, max_page_size)

    pf = product_filter or ProductFilter()
    scoped = sorted(
        (leg for leg in legs if leg.key.location_code == location_code and pf.matches(leg.key)),
        key=FinishedGoodsLeg.order,
    )

    running_bags: dict[StockKey, int] = defaultdict(int)
    running_q: dict[StockKey, Decimal] = defaultdict(lambda: _ZERO)
    window: list[FinishedGoodsLeg] = []
    entries: list[LedgerEntry] = []

    for leg in scoped:
        if date_to is not None and leg.entry_date > date_to:
            break
        running_bags[leg.key] += leg.bags
        running_q[leg.key] += leg.quintals
        if date_from is not None and leg.entry_date < date_from:
            continue
        window.append(leg)
        entries.append(LedgerEntry(
            movement_id=leg.movement_id,
            entry_date=leg.entry_date,
            seq=leg.seq,
            movement_type=leg.movement_type,
            key=leg.key,
            bags=leg.bags,
            quintals=leg.quintals,
            running_bags=running_bags[leg.key],
            running_quintals=running_q[leg.key],
            shortage_kg=leg.shortage_kg,
            counterpart_packaging_id=leg.counterpart_packaging_id,
        ))

    opening: list[KeyBalance] = []
    if date_from is not None:
        opening_bags: dict[StockKey, int] = defaultdict(int)
        opening_q: dict[StockKey, Decimal] = defaultdict(lambda: _ZERO)
        for leg in scoped:
            if leg.entry_date >= date_from:
                break
            opening_bags[leg.key] += leg.bags
            opening_q[leg.key] += leg.quintals
        opening = [
            KeyBalance(k, opening_bags[k], opening_q[k])
            for k in sorted(opening_bags, key=StockKey.sort_key)
            if opening_bags[k] != 0 or opening_q[k] != 0
        ]

    closing = [
        KeyBalance(k, running_bags[k], running_q[k])
        for k in sorted(running_bags, key=StockKey.sort_key)
        if running_bags[k] != 0 or running_q[k] != 0
    ]

    start = (page - 1) * page_size
    return FinishedGoodsLedger(
        location_code=location_code,
        date_from=date_from,
        date_to=date_to,
        opening_balance=tuple(opening),
        entries=tuple(entries[start:start + page_size]),
        totals=_totals(window),
        closing_balance=tuple(closing),
        pagination=Pagination(page=page, page_size=page_size, total_entries=len(entries)),
        product_filter=pf,
    )
