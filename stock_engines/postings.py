"""
stock_engines.postings -- Posting rules from paddy movements to stock legs.

Responsibility:
    Translate the effective movement log into signed, location-scoped stock
    legs.  Every downstream computation (daily reconstruction, pre-window
    rollup, integrity checks) works on legs only, so the routing rules live
    in exactly one place.

    purchase                 +bags  destination, earmarked if it names an outturn
    loose                    +bags  destination, free
    shifting                 -bags  source free   / +bags destination free
    production-shifting      -bags  source free   / +bags same location, earmarked
    production output        -bags  earmarked lots of the outturn, FIFO
    clearing credit          -bags  earmarked lots, FIFO / +bags destination free
    opening balance          +bags  location (earmarked if it names an outturn)

    Consumption of an outturn is drawn from its earmarked lots first-in
    first-out by (date, seq).  A draw larger than what the lots hold
    overdraws the last eligible lot so the shortfall shows up as a negative
    balance at a real location; a draw with no lot at all produces a leg with
    no location, visible only when the outturn itself is reconstructed.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Pending and rejected movements produce no legs.
    - Conservation: for every two-sided movement the debited bags equal the
      credited bags.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from stock_kernel.domain.movements import (
    OpeningBalance,
    PaddyMovement,
    PaddyMovementKind,
    ProductionOutput,
)
from stock_kernel.domain.quantities import quantize_weight
from stock_engines.tracer import traced_engine


class LegKind(str, Enum):
    OPENING = "opening"
    PURCHASE = "purchase"
    LOOSE = "loose"
    SHIFTING = "shifting"
    PRODUCTION_SHIFTING = "production-shifting"
    PRODUCTION_OUTPUT = "production-output"
    CLEARING = "outturn-clearing"


# ordering of sources within one day
_RANK_OPENING = 0
_RANK_MOVEMENT = 1
_RANK_PRODUCTION = 2


@dataclass(frozen=True)
class BalanceKey:
    """Aggregation key inside one location: variety, and outturn if earmarked."""

    variety: str
    outturn_code: str | None = None

    @property
    def is_earmarked(self) -> bool:
        return self.outturn_code is not None

    def sort_key(self) -> tuple:
        return (self.variety, self.is_earmarked, self.outturn_code or "")


@dataclass(frozen=True)
class StockLeg:
    """One signed bag/weight change at one location."""

    movement_id: UUID
    leg_date: date
    rank: int
    seq: int
    kind: LegKind
    location_id: UUID | None
    warehouse_id: UUID | None
    variety: str
    outturn_id: UUID | None
    outturn_code: str | None
    bags: int
    net_weight: Decimal

    @property
    def key(self) -> BalanceKey:
        return BalanceKey(self.variety, self.outturn_code)

    @property
    def is_inward(self) -> bool:
        return self.bags > 0 or (self.bags == 0 and self.net_weight >= 0)

    def order(self) -> tuple:
        return (self.leg_date, self.rank, self.seq, self.bags > 0)

    def touches(self, location_id: UUID) -> bool:
        """Location id may name the cell, its warehouse, or the outturn."""
        return location_id in (self.location_id, self.warehouse_id, self.outturn_id)


@dataclass(frozen=True)
class PostingContext:
    """Master data the posting rules need."""

    warehouse_of: Mapping[UUID, UUID | None] = field(default_factory=dict)
    outturn_codes: Mapping[UUID, str] = field(default_factory=dict)

    def outturn_code(self, outturn_id: UUID | None) -> str | None:
        if outturn_id is None:
            return None
        return self.outturn_codes.get(outturn_id, str(outturn_id))


# =========================================================================
# FIFO lot book
# =========================================================================


@dataclass
class _Lot:
    movement_id: UUID
    lot_date: date
    seq: int
    location_id: UUID | None
    variety: str
    bags: int
    net_weight: Decimal
    remaining: int

    def weight_for(self, bags: int) -> Decimal:
        if self.bags <= 0:
            return Decimal("0")
        return quantize_weight(self.net_weight * Decimal(bags) / Decimal(self.bags))


@dataclass(frozen=True)
class LotDraw:
    """Bags drawn from one lot (or from nowhere, when ``location_id`` is None)."""

    location_id: UUID | None
    variety: str
    bags: int
    net_weight: Decimal


@dataclass(frozen=True)
class _Debit:
    movement_id: UUID
    debit_date: date
    rank: int
    seq: int
    bags: int
    variety: str
    kind: LegKind


class OutturnLotBook:
    """
    Earmarked lots of one outturn and the FIFO draws made against them.

    Lots are effective production-shifting and purchase movements landing
    on the outturn.  Debits are production outputs and clearing credits.
    """

    def __init__(self, outturn_id: UUID, movements: Iterable[PaddyMovement], productions: Iterable[ProductionOutput]):
        self.outturn_id = outturn_id
        self._lots: list[_Lot] = []
        self._debits: list[_Debit] = []
        for m in movements:
            if not m.is_effective:
                continue
            if m.from_outturn_id == outturn_id:
                self._debits.append(_Debit(
                    m.id, m.movement_date, _RANK_MOVEMENT, m.seq, m.bags, m.variety, LegKind.CLEARING,
                ))
            elif m.outturn_id == outturn_id and m.kind in (
                PaddyMovementKind.PRODUCTION_SHIFTING, PaddyMovementKind.PURCHASE,
            ):
                self._lots.append(_Lot(
                    m.id, m.movement_date, m.seq, m.to_location_id, m.variety,
                    m.bags, m.net_weight, m.bags,
                ))
        for p in productions:
            if p.outturn_id == outturn_id and p.paddy_bags_deducted > 0:
                self._debits.append(_Debit(
                    p.id, p.production_date, _RANK_PRODUCTION, p.seq,
                    p.paddy_bags_deducted, p.variety, LegKind.PRODUCTION_OUTPUT,
                ))
        self._lots.sort(key=lambda lot: (lot.lot_date, lot.seq))
        self._debits.sort(key=lambda d: (d.debit_date, d.rank, d.seq))
        self._draws: dict[UUID, tuple[LotDraw, ...]] = {}
        self._replay()

    def _draw(self, on: date, bags: int, variety: str) -> tuple[LotDraw, ...]:
        draws: list[LotDraw] = []
        eligible = [lot for lot in self._lots if lot.lot_date <= on]
        need = bags
        for lot in eligible:
            if need == 0:
                break
            take = min(lot.remaining, need)
            if take <= 0:
                continue
            lot.remaining -= take
            need -= take
            draws.append(LotDraw(lot.location_id, lot.variety, take, lot.weight_for(take)))
        if need > 0:
            if eligible:
                last = eligible[-1]
                last.remaining -= need
                draws.append(LotDraw(last.location_id, last.variety, need, last.weight_for(need)))
            else:
                draws.append(LotDraw(None, variety, need, Decimal("0")))
        return tuple(draws)

    def _replay(self) -> None:
        for debit in self._debits:
            self._draws[debit.movement_id] = self._draw(debit.debit_date, debit.bags, debit.variety)

    def draws_for(self, movement_id: UUID) -> tuple[LotDraw, ...]:
        return self._draws.get(movement_id, ())

    def debits(self) -> list[_Debit]:
        return list(self._debits)

    def preview_draw(self, on: date, bags: int) -> tuple[LotDraw, ...]:
        """Draws a new debit of *bags* on *on* would take from the lots left
        after every recorded debit, without recording it."""
        snapshot = [lot.remaining for lot in self._lots]
        try:
            variety = self._lots[0].variety if self._lots else ""
            return self._draw(on, bags, variety)
        finally:
            for lot, remaining in zip(self._lots, snapshot):
                lot.remaining = remaining

    def remaining_by_location(self) -> dict[UUID | None, int]:
        out: dict[UUID | None, int] = defaultdict(int)
        for lot in self._lots:
            if lot.remaining:
                out[lot.location_id] += lot.remaining
        return dict(out)

    def latest_lot_location(self) -> UUID | None:
        return self._lots[-1].location_id if self._lots else None


# =========================================================================
# Posting rules
# =========================================================================


def _leg(
    ctx: PostingContext,
    *,
    movement_id: UUID,
    leg_date: date,
    rank: int,
    seq: int,
    kind: LegKind,
    location_id: UUID | None,
    variety: str,
    outturn_id: UUID | None,
    bags: int,
    net_weight: Decimal,
) -> StockLeg:
    return StockLeg(
        movement_id=movement_id,
        leg_date=leg_date,
        rank=rank,
        seq=seq,
        kind=kind,
        location_id=location_id,
        warehouse_id=ctx.warehouse_of.get(location_id) if location_id else None,
        variety=variety,
        outturn_id=outturn_id,
        outturn_code=ctx.outturn_code(outturn_id),
        bags=bags,
        net_weight=net_weight,
    )


def legs_for_movement(movement: PaddyMovement, ctx: PostingContext) -> list[StockLeg]:
    """
    Legs for one paddy movement, excluding the outturn-side debit of a
    clearing credit (that side needs the lot book).
    """
    if not movement.is_effective:
        return []

    m = movement
    common = dict(movement_id=m.id, leg_date=m.movement_date, rank=_RANK_MOVEMENT, seq=m.seq, variety=m.variety)

    if m.is_clearing_credit:
        return [_leg(ctx, kind=LegKind.CLEARING, location_id=m.to_location_id, outturn_id=None,
                     bags=m.bags, net_weight=m.net_weight, **common)]

    if m.kind == PaddyMovementKind.PURCHASE:
        return [_leg(ctx, kind=LegKind.PURCHASE, location_id=m.to_location_id, outturn_id=m.outturn_id,
                     bags=m.bags, net_weight=m.net_weight, **common)]

    if m.kind == PaddyMovementKind.LOOSE:
        return [_leg(ctx, kind=LegKind.LOOSE, location_id=m.to_location_id, outturn_id=None,
                     bags=m.bags, net_weight=m.net_weight, **common)]

    if m.kind == PaddyMovementKind.SHIFTING:
        return [
            _leg(ctx, kind=LegKind.SHIFTING, location_id=m.from_location_id, outturn_id=None,
                 bags=-m.bags, net_weight=-m.net_weight, **common),
            _leg(ctx, kind=LegKind.SHIFTING, location_id=m.to_location_id, outturn_id=None,
                 bags=m.bags, net_weight=m.net_weight, **common),
        ]

    if m.kind == PaddyMovementKind.PRODUCTION_SHIFTING:
        return [
            _leg(ctx, kind=LegKind.PRODUCTION_SHIFTING, location_id=m.from_location_id, outturn_id=None,
                 bags=-m.bags, net_weight=-m.net_weight, **common),
            _leg(ctx, kind=LegKind.PRODUCTION_SHIFTING, location_id=m.to_location_id or m.from_location_id,
                 outturn_id=m.outturn_id, bags=m.bags, net_weight=m.net_weight, **common),
        ]

    raise ValueError(f"No posting rule for paddy movement kind {m.kind!r}")


def legs_for_opening_balance(balance: OpeningBalance, ctx: PostingContext) -> StockLeg:
    return _leg(
        ctx,
        movement_id=balance.id,
        leg_date=balance.balance_date,
        rank=_RANK_OPENING,
        seq=0,
        kind=LegKind.OPENING,
        location_id=balance.location_id,
        variety=balance.variety,
        outturn_id=balance.outturn_id,
        bags=balance.bags,
        net_weight=balance.net_weight,
    )


def _debit_legs(book: OutturnLotBook, ctx: PostingContext) -> list[StockLeg]:
    legs: list[StockLeg] = []
    for debit in book.debits():
        for draw in book.draws_for(debit.movement_id):
            legs.append(_leg(
                ctx,
                movement_id=debit.movement_id,
                leg_date=debit.debit_date,
                rank=debit.rank,
                seq=debit.seq,
                kind=debit.kind,
                location_id=draw.location_id,
                variety=draw.variety,
                outturn_id=book.outturn_id,
                bags=-draw.bags,
                net_weight=-draw.net_weight,
            ))
    return legs


@traced_engine("postings", "1.0")
def build_paddy_legs(
    movements: Iterable[PaddyMovement],
    productions: Iterable[ProductionOutput] = (),
    opening_balances: Iterable[OpeningBalance] = (),
    ctx: PostingContext | None = None,
) -> list[StockLeg]:
    """All legs of the given records, sorted by (date, rank, seq)."""
    ctx = ctx or PostingContext()
    movements = list(movements)
    productions = list(productions)

    legs: list[StockLeg] = [legs_for_opening_balance(b, ctx) for b in opening_balances]
    for m in movements:
        legs.extend(legs_for_movement(m, ctx))

    outturn_ids: set[UUID] = {p.outturn_id for p in productions}
    outturn_ids.update(m.from_outturn_id for m in movements if m.from_outturn_id is not None)
    for outturn_id in sorted(outturn_ids, key=str):
        legs.extend(_debit_legs(OutturnLotBook(outturn_id, movements, productions), ctx))

    legs.sort(key=StockLeg.order)
    return legs
