"""
stock_engines.reconstruction -- Daily paddy balance reconstruction.

Responsibility:
    Turn the stock legs touching one location into an ordered, replayable
    series of daily balance sheets:

        opening[d]  = closing[d-1]            (pre-window rollup for the first day)
        closing[d]  = opening[d] + inward[d] - outward[d]

    per (variety, outturn_code|None) key, so free warehouse stock and stock
    earmarked to an outturn appear as separate rows even when both sit in
    the same cell.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Consumes legs from
    ``stock_engines.postings``.  "Today" is never read here: callers pass
    ``date_to`` explicitly.

Invariants enforced:
    - Continuity: opening[d+1] == closing[d] for every key.
    - Every day of [date_from, date_to] is present, including days without
      movements.
    - Everything before date_from is folded into one synthetic opening by a
      single pass; earlier days are never materialized.
    - Negative closings are reported, never clamped.

Failure modes:
    - InvalidDateRangeError when date_from > date_to.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from stock_kernel.exceptions import InvalidDateRangeError
from stock_engines.postings import BalanceKey, StockLeg
from stock_engines.tracer import traced_engine

_ZERO = Decimal("0")


@dataclass
class _Running:
    bags: int = 0
    net_weight: Decimal = _ZERO

    def is_zero(self) -> bool:
        return self.bags == 0 and self.net_weight == 0


@dataclass(frozen=True)
class DailyBalance:
    balance_date: date
    variety: str
    outturn_code: str | None
    outturn_id: UUID | None
    opening_bags: int
    inward_bags: int
    outward_bags: int
    closing_bags: int
    opening_weight: Decimal = _ZERO
    inward_weight: Decimal = _ZERO
    outward_weight: Decimal = _ZERO
    closing_weight: Decimal = _ZERO

    @property
    def key(self) -> BalanceKey:
        return BalanceKey(self.variety, self.outturn_code)

    @property
    def is_earmarked(self) -> bool:
        return self.outturn_code is not None


@dataclass(frozen=True)
class DaySheet:
    balance_date: date
    rows: tuple[DailyBalance, ...]
    legs: tuple[StockLeg, ...] = ()

    @property
    def free_rows(self) -> tuple[DailyBalance, ...]:
        return tuple(r for r in self.rows if not r.is_earmarked)

    @property
    def earmarked_rows(self) -> tuple[DailyBalance, ...]:
        return tuple(r for r in self.rows if r.is_earmarked)

    @property
    def opening_bags(self) -> int:
        return sum(r.opening_bags for r in self.rows)

    @property
    def closing_bags(self) -> int:
        return sum(r.closing_bags for r in self.rows)

    def row(self, variety: str, outturn_code: str | None = None) -> DailyBalance | None:
        for r in self.rows:
            if r.variety == variety and r.outturn_code == outturn_code:
                return r
        return None


@dataclass(frozen=True)
class NegativeBalance:
    balance_date: date
    variety: str
    outturn_code: str | None
    closing_bags: int


@dataclass(frozen=True)
class Reconstruction:
    location_id: UUID
    date_from: date
    date_to: date
    variety_filter: str | None
    days: tuple[DaySheet, ...]
    negatives: tuple[NegativeBalance, ...] = field(default_factory=tuple)

    def rows(self) -> list[DailyBalance]:
        return [r for day in self.days for r in day.rows]

    def closing(self) -> dict[BalanceKey, int]:
        if not self.days:
            return {}
        return {r.key: r.closing_bags for r in self.days[-1].rows}

    def day(self, on: date) -> DaySheet | None:
        for d in self.days:
            if d.balance_date == on:
                return d
        return None


# =========================================================================
# Helpers
# =========================================================================


def select_legs(
    legs: Iterable[StockLeg],
    location_id: UUID,
    variety_filter: str | None = None,
) -> list[StockLeg]:
    """Legs touching the location (cell, warehouse or outturn), in order."""
    selected = [
        leg for leg in legs
        if leg.touches(location_id)
        and (variety_filter is None or leg.variety == variety_filter)
    ]
    selected.sort(key=StockLeg.order)
    return selected


def rollup_before(legs: Iterable[StockLeg], before: date) -> dict[BalanceKey, _Running]:
    """Single pass summing every leg strictly before *before*."""
    running: dict[BalanceKey, _Running] = defaultdict(_Running)
    for leg in legs:
        if leg.leg_date < before:
            r = running[leg.key]
            r.bags += leg.bags
            r.net_weight += leg.net_weight
    return running


def direct_closing(
    legs: Iterable[StockLeg],
    location_id: UUID,
    as_of: date,
    variety_filter: str | None = None,
) -> dict[BalanceKey, int]:
    """Closing bags per key as the plain sum of legs dated <= as_of."""
    totals: dict[BalanceKey, int] = defaultdict(int)
    for leg in select_legs(legs, location_id, variety_filter):
        if leg.leg_date <= as_of:
            totals[leg.key] += leg.bags
    return {k: v for k, v in totals.items() if v != 0}


def _days(date_from: date, date_to: date) -> Iterator[date]:
    day = date_from
    while day <= date_to:
        yield day
        day += timedelta(days=1)


# =========================================================================
# Reconstruction
# =========================================================================


def iter_daily_balances(
    legs: Iterable[StockLeg],
    *,
    location_id: UUID,
    date_from: date,
    date_to: date,
    variety_filter: str | None = None,
) -> Iterator[DaySheet]:
    """
    Lazily yield one DaySheet per day of [date_from, date_to].

    Memory is bounded by the number of keys, not the number of days.
    """
    if date_from > date_to:
        raise InvalidDateRangeError(date_from, date_to)

    selected = [leg for leg in select_legs(legs, location_id, variety_filter) if leg.leg_date <= date_to]
    running = rollup_before(selected, date_from)
    outturn_ids: dict[BalanceKey, UUID | None] = {}
    for leg in selected:
        if leg.outturn_id is not None:
            outturn_ids.setdefault(leg.key, leg.outturn_id)

    window = [leg for leg in selected if leg.leg_date >= date_from]
    idx = 0
    for day in _days(date_from, date_to):
        day_legs: list[StockLeg] = []
        while idx < len(window) and window[idx].leg_date == day:
            day_legs.append(window[idx])
            idx += 1

        inward: dict[BalanceKey, _Running] = defaultdict(_Running)
        outward: dict[BalanceKey, _Running] = defaultdict(_Running)
        for leg in day_legs:
            if leg.is_inward:
                inward[leg.key].bags += leg.bags
                inward[leg.key].net_weight += leg.net_weight
            else:
                outward[leg.key].bags -= leg.bags
                outward[leg.key].net_weight -= leg.net_weight

        keys = {k for k, r in running.items() if not r.is_zero()} | set(inward) | set(outward)
        rows: list[DailyBalance] = []
        for key in sorted(keys, key=BalanceKey.sort_key):
            opening = running[key]
            i, o = inward.get(key, _Running()), outward.get(key, _Running())
            closing_bags = opening.bags + i.bags - o.bags
            closing_weight = opening.net_weight + i.net_weight - o.net_weight
            rows.append(DailyBalance(
                balance_date=day,
                variety=key.variety,
                outturn_code=key.outturn_code,
                outturn_id=outturn_ids.get(key),
                opening_bags=opening.bags,
                inward_bags=i.bags,
                outward_bags=o.bags,
                closing_bags=closing_bags,
                opening_weight=opening.net_weight,
                inward_weight=i.net_weight,
                outward_weight=o.net_weight,
                closing_weight=closing_weight,
            ))
            running[key] = _Running(closing_bags, closing_weight)

        yield DaySheet(balance_date=day, rows=tuple(rows), legs=tuple(day_legs))


def first_leg_date(legs: Iterable[StockLeg], location_id: UUID) -> date | None:
    dates = [leg.leg_date for leg in legs if leg.touches(location_id)]
    return min(dates) if dates else None


@traced_engine("reconstruction", "1.0", fingerprint_fields=("location_id", "date_from", "date_to", "variety_filter"))
def reconstruct(
    legs: Iterable[StockLeg],
    *,
    location_id: UUID,
    date_to: date,
    date_from: date | None = None,
    variety_filter: str | None = None,
) -> Reconstruction:
    """
    Materialize the daily series and collect negative closings.

    ``date_from`` defaults to the first leg touching the location (or
    ``date_to`` when there is none).
    """
    legs = list(legs)
    if date_from is None:
        date_from = first_leg_date(legs, location_id) or date_to
        date_from = min(date_from, date_to)

    days = tuple(iter_daily_balances(
        legs,
        location_id=location_id,
        date_from=date_from,
        date_to=date_to,
        variety_filter=variety_filter,
    ))
    negatives = tuple(
        NegativeBalance(r.balance_date, r.variety, r.outturn_code, r.closing_bags)
        for day in days for r in day.rows
        if r.closing_bags < 0
    )
    return Reconstruction(
        location_id=location_id,
        date_from=date_from,
        date_to=date_to,
        variety_filter=variety_filter,
        days=days,
        negatives=negatives,
    )
