"""
stock_engines.integrity -- Ledger integrity checks.

Responsibility:
    Inspect a reconstruction and report conditions that mean the stored
    movements disagree with themselves:

    NEGATIVE_BALANCE      a closing balance below zero
    CONTINUITY_BREAK      opening[d+1] != closing[d] for some key
    LEDGER_NOT_DERIVABLE  closing at date_to differs from the direct sum of
                          every leg up to date_to

    Nothing is corrected.  Callers decide whether to report or raise.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from typing import Any
from uuid import UUID

from stock_kernel.exceptions import (
    ContinuityBreakError,
    IntegrityError,
    LedgerNotDerivableError,
    NegativeBalanceError,
)
from stock_engines.postings import StockLeg
from stock_engines.reconstruction import Reconstruction, direct_closing


@dataclass(frozen=True)
class IntegrityViolation:
    code: str
    balance_date: date
    variety: str | None
    outturn_code: str | None
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IntegrityReport:
    location_id: UUID
    date_from: date
    date_to: date
    violations: tuple[IntegrityViolation, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not self.violations

    def by_code(self, code: str) -> tuple[IntegrityViolation, ...]:
        return tuple(v for v in self.violations if v.code == code)

    def first_error(self) -> IntegrityError | None:
        """The first violation as a typed exception, or None."""
        if not self.violations:
            return None
        v = self.violations[0]
        loc = str(self.location_id)
        if v.code == NegativeBalanceError.code:
            return NegativeBalanceError(loc, v.variety or "", v.outturn_code, v.balance_date, v.details["closing_bags"])
        if v.code == ContinuityBreakError.code:
            return ContinuityBreakError(loc, v.balance_date, v.details["expected"], v.details["actual"])
        return LedgerNotDerivableError(loc, v.balance_date, v.details["reconstructed"], v.details["direct"])


def check_negative_balances(recon: Reconstruction) -> list[IntegrityViolation]:
    return [
        IntegrityViolation(
            code=NegativeBalanceError.code,
            balance_date=n.balance_date,
            variety=n.variety,
            outturn_code=n.outturn_code,
            message=f"closing balance {n.closing_bags} bags",
            details={"closing_bags": n.closing_bags},
        )
        for n in recon.negatives
    ]


def check_continuity(recon: Reconstruction) -> list[IntegrityViolation]:
    violations: list[IntegrityViolation] = []
    for prev, cur in zip(recon.days, recon.days[1:]):
        closing = {r.key: r.closing_bags for r in prev.rows}
        opening = {r.key: r.opening_bags for r in cur.rows}
        for key in sorted(set(closing) | set(opening), key=lambda k: k.sort_key()):
            expected, actual = closing.get(key, 0), opening.get(key, 0)
            if expected != actual:
                violations.append(IntegrityViolation(
                    code=ContinuityBreakError.code,
                    balance_date=cur.balance_date,
                    variety=key.variety,
                    outturn_code=key.outturn_code,
                    message=f"opening {actual} != previous closing {expected}",
                    details={"expected": expected, "actual": actual},
                ))
    return violations


def check_derivability(recon: Reconstruction, legs: Iterable[StockLeg]) -> list[IntegrityViolation]:
    direct = direct_closing(legs, recon.location_id, recon.date_to, recon.variety_filter)
    rebuilt = {k: v for k, v in recon.closing().items() if v != 0}
    violations: list[IntegrityViolation] = []
    for key in sorted(set(direct) | set(rebuilt), key=lambda k: k.sort_key()):
        d, r = direct.get(key, 0), rebuilt.get(key, 0)
        if d != r:
            violations.append(IntegrityViolation(
                code=LedgerNotDerivableError.code,
                balance_date=recon.date_to,
                variety=key.variety,
                outturn_code=key.outturn_code,
                message=f"reconstructed {r} != direct sum {d}",
                details={"reconstructed": r, "direct": d},
            ))
    return violations


def check_integrity(recon: Reconstruction, legs: Iterable[StockLeg]) -> IntegrityReport:
    legs = list(legs)
    violations = (
        check_negative_balances(recon)
        + check_continuity(recon)
        + check_derivability(recon, legs)
    )
    return IntegrityReport(
        location_id=recon.location_id,
        date_from=recon.date_from,
        date_to=recon.date_to,
        violations=tuple(violations),
    )
