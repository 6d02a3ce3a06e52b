"""
stock_services.balance_query_service -- Balance Query Facade.

Responsibility:
    Orchestrates selectors and pure engines for every read view:

        paddy_ledger             daily series for a location (cell, warehouse
                                 or outturn), bifurcated into free and
                                 outturn-earmarked rows
        day_sheet                one day of the same series
        outturn_availability     monthly consumption window for an outturn
        outturn_report           lifetime totals and yield for an outturn
        finished_goods_ledger    one page of the packed-rice ledger
        finished_goods_balance   one stock key as of a date
        integrity_report         negative / continuity / derivability checks

    Every call reads a fresh snapshot of the movement log, so an approval
    flushed in the same session is visible to the next query.

Architecture position:
    Services layer.  Read-only: never adds, flushes or commits.  "Today" is
    never read here; callers pass explicit dates (the API injects them from
    a Clock).

Failure modes:
    - LocationNotFoundError / OutturnNotFoundError for unknown ids.
    - InvalidDateRangeError / InvalidPaginationError from the engines.
    - In strict mode, the first integrity violation is raised as its typed
      IntegrityError after a CRITICAL log record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from stock_engines.consumption import (
    OutturnTotals,
    ProductionConsumption,
    compute_consumption,
    compute_outturn_totals,
    month_bounds,
)
from stock_engines.finished_goods import (
    FinishedGoodsLeg,
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
from stock_engines.integrity import IntegrityReport, check_integrity
from stock_engines.postings import OutturnLotBook, PostingContext, StockLeg, build_paddy_legs
from stock_engines.reconstruction import DaySheet, Reconstruction, reconstruct
from stock_kernel.domain.movements import LocationInfo, OutturnInfo
from stock_kernel.domain.policy import StockPolicy
from stock_kernel.exceptions import LocationNotFoundError, NegativeBalanceError
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.selectors.master_data_selector import MasterDataSelector
from stock_kernel.selectors.movement_selector import MovementSelector

logger = get_logger("services.balance_query")


@dataclass(frozen=True)
class PaddyLedgerView:
    """A reconstructed series plus what the location id resolved to."""

    location: LocationInfo | None
    outturn: OutturnInfo | None
    reconstruction: Reconstruction
    integrity: IntegrityReport

    @property
    def days(self) -> tuple[DaySheet, ...]:
        return self.reconstruction.days


@dataclass(frozen=True)
class OutturnAvailability:
    """
    Consumption window of an outturn as of a date, and as of its month end.

    A backdated production must fit both: the bags available on its own
    date and what is left once the rest of the month is counted.
    """

    outturn: OutturnInfo
    consumption: ProductionConsumption
    month_end: ProductionConsumption

    @property
    def available_bags(self) -> int:
        return self.consumption.available_bags

    @property
    def bookable_bags(self) -> int:
        return min(self.consumption.available_bags, self.month_end.available_bags)


class BalanceQueryService:
    """Read views over the movement log."""

    def __init__(
        self,
        session: Session,
        policy: StockPolicy | None = None,
        strict: bool = False,
    ) -> None:
        self._session = session
        self._policy = policy or StockPolicy()
        self._strict = strict
        self._movements = MovementSelector(session)
        self._master = MasterDataSelector(session)

    # ------------------------------------------------------------------
    # Paddy side
    # ------------------------------------------------------------------

    def posting_context(self) -> PostingContext:
        return PostingContext(
            warehouse_of=self._master.warehouse_map(),
            outturn_codes=self._master.outturn_codes(),
        )

    def paddy_legs(self, as_of: date) -> list[StockLeg]:
        """Every effective paddy leg dated on or before *as_of*."""
        return build_paddy_legs(
            self._movements.paddy_movements(as_of=as_of),
            self._movements.productions(as_of=as_of),
            self._movements.opening_balances(as_of=as_of),
            ctx=self.posting_context(),
        )

    def _resolve(self, location_id: UUID) -> tuple[LocationInfo | None, OutturnInfo | None]:
        location = self._master.find_location(location_id)
        if location is not None:
            return location, None
        outturn = self._master.find_outturn(location_id)
        if outturn is not None:
            return None, outturn
        raise LocationNotFoundError(str(location_id))

    def paddy_ledger(
        self,
        location_id: UUID,
        date_to: date,
        date_from: date | None = None,
        variety_filter: str | None = None,
    ) -> PaddyLedgerView:
        with LogContext.bind(location_id=location_id):
            location, outturn = self._resolve(location_id)
            legs = self.paddy_legs(date_to)
            recon = reconstruct(
                legs,
                location_id=location_id,
                date_from=date_from,
                date_to=date_to,
                variety_filter=variety_filter,
            )
            report = self._check(recon, legs)
            logger.debug(
                "paddy_ledger_built",
                extra={
                    "date_from": str(recon.date_from),
                    "date_to": str(recon.date_to),
                    "days": len(recon.days),
                    "violations": len(report.violations),
                },
            )
            return PaddyLedgerView(location, outturn, recon, report)

    def day_sheet(self, location_id: UUID, on: date, variety_filter: str | None = None) -> DaySheet:
        view = self.paddy_ledger(location_id, date_to=on, date_from=on, variety_filter=variety_filter)
        return view.days[0]

    def integrity_report(
        self,
        location_id: UUID,
        date_to: date,
        date_from: date | None = None,
    ) -> IntegrityReport:
        return self.paddy_ledger(location_id, date_to=date_to, date_from=date_from).integrity

    def _check(self, recon: Reconstruction, legs: list[StockLeg]) -> IntegrityReport:
        report = check_integrity(recon, legs)
        for v in report.violations:
            logger.error(
                "ledger_negative_balance" if v.code == NegativeBalanceError.code else "ledger_integrity_violation",
                extra={
                    "violation_code": v.code,
                    "balance_date": str(v.balance_date),
                    "variety": v.variety,
                    "outturn_code": v.outturn_code,
                    "detail": v.message,
                },
            )
        if self._strict and not report.is_clean:
            error = report.first_error()
            logger.critical(
                "ledger_integrity_error",
                extra={"error_code": error.code, "error_message": str(error), "details": error.details()},
            )
            raise error
        return report

    # ------------------------------------------------------------------
    # Outturns
    # ------------------------------------------------------------------

    def outturn_availability(self, outturn_id: UUID, as_of: date) -> OutturnAvailability:
        outturn = self._master.get_outturn(outturn_id)
        _, month_end = month_bounds(as_of)
        movements = self._movements.paddy_movements_for_outturn(outturn_id, as_of=month_end)
        productions = self._movements.productions(as_of=month_end, outturn_id=outturn_id)
        return OutturnAvailability(
            outturn=outturn,
            consumption=compute_consumption(
                outturn_id=outturn_id, as_of=as_of, movements=movements, productions=productions,
            ),
            month_end=compute_consumption(
                outturn_id=outturn_id, as_of=month_end, movements=movements, productions=productions,
            ),
        )

    def outturn_lot_book(self, outturn_id: UUID, as_of: date) -> OutturnLotBook:
        return OutturnLotBook(
            outturn_id,
            self._movements.paddy_movements_for_outturn(outturn_id, as_of=as_of),
            self._movements.productions(as_of=as_of, outturn_id=outturn_id),
        )

    def outturn_report(self, outturn_id: UUID) -> OutturnTotals:
        self._master.get_outturn(outturn_id)
        return compute_outturn_totals(
            outturn_id,
            self._movements.paddy_movements_for_outturn(outturn_id),
            self._movements.productions(outturn_id=outturn_id),
        )

    # ------------------------------------------------------------------
    # Finished goods
    # ------------------------------------------------------------------

    def finished_goods_legs(self, location_code: str, as_of: date | None = None) -> list[FinishedGoodsLeg]:
        return build_finished_goods_legs(
            self._movements.productions_at(location_code, as_of=as_of),
            self._movements.stock_movements_at(location_code, as_of=as_of),
        )

    def finished_goods_ledger(
        self,
        location_code: str,
        product_filter: ProductFilter | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> FinishedGoodsLedger:
        return ledger(
            self.finished_goods_legs(location_code, as_of=date_to),
            location_code=location_code,
            product_filter=product_filter,
            date_from=date_from,
            date_to=date_to,
            page=page,
            page_size=page_size or self._policy.default_page_size,
            max_page_size=self._policy.max_page_size,
        )

    def finished_goods_balance(self, key: StockKey, as_of: date) -> KeyBalance:
        return balance_at(self.finished_goods_legs(key.location_code, as_of=as_of), key, as_of)

    def finished_goods_balances(
        self,
        location_code: str,
        as_of: date,
        product_filter: ProductFilter | None = None,
    ) -> list[KeyBalance]:
        return balances_at(self.finished_goods_legs(location_code, as_of=as_of), location_code, as_of, product_filter)

    def finished_goods_available(self, key: StockKey, on: date) -> int:
        """Bags of *key* that may leave on *on*, considering later-dated entries too."""
        return available_from(self.finished_goods_legs(key.location_code), key, on)
