"""Paddy stock ledger: daily balances per location."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stock_api import serializers
from stock_api.deps import date_or_today, get_clock, get_db, get_policy, optional_date
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.policy import StockPolicy
from stock_services.balance_query_service import BalanceQueryService

router = APIRouter(prefix="/ledger", tags=["ledger"])


@router.get("/paddy-stock/{location_id}")
def paddy_stock(
    location_id: UUID,
    dateFrom: str | None = None,
    dateTo: str | None = None,
    variety: str | None = None,
    strict: bool = False,
    db: Session = Depends(get_db),
    policy: StockPolicy = Depends(get_policy),
    clock: Clock = Depends(get_clock),
):
    view = BalanceQueryService(db, policy, strict=strict).paddy_ledger(
        location_id,
        date_to=date_or_today(dateTo, clock, "dateTo"),
        date_from=optional_date(dateFrom, "dateFrom"),
        variety_filter=variety,
    )
    return serializers.paddy_ledger(view)


@router.get("/paddy-stock/{location_id}/day")
def paddy_stock_day(
    location_id: UUID,
    date: str | None = None,
    variety: str | None = None,
    db: Session = Depends(get_db),
    policy: StockPolicy = Depends(get_policy),
    clock: Clock = Depends(get_clock),
):
    sheet = BalanceQueryService(db, policy).day_sheet(
        location_id, date_or_today(date, clock, "date"), variety_filter=variety,
    )
    return serializers.day_sheet(sheet)


@router.get("/paddy-stock/{location_id}/integrity")
def paddy_stock_integrity(
    location_id: UUID,
    dateFrom: str | None = None,
    dateTo: str | None = None,
    db: Session = Depends(get_db),
    policy: StockPolicy = Depends(get_policy),
    clock: Clock = Depends(get_clock),
):
    report = BalanceQueryService(db, policy).integrity_report(
        location_id,
        date_to=date_or_today(dateTo, clock, "dateTo"),
        date_from=optional_date(dateFrom, "dateFrom"),
    )
    return serializers.integrity(report)
