"""Outturn clearing and yield."""

from uuid import UUID

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from stock_api import serializers
from stock_api.deps import date_or_today, get_actor, get_clock, get_db, get_policy
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.ingestion import parse_uuid
from stock_kernel.domain.policy import StockPolicy
from stock_services.production_service import ProductionService

router = APIRouter(prefix="/outturns", tags=["outturns"])


@router.post("/{outturn_id}/clear")
def clear_outturn(
    outturn_id: UUID,
    payload: dict | None = Body(default=None),
    db: Session = Depends(get_db),
    actor: UUID = Depends(get_actor),
    policy: StockPolicy = Depends(get_policy),
    clock: Clock = Depends(get_clock),
):
    payload = payload or {}
    clear_date = date_or_today(payload.get("clearDate") or payload.get("clear_date"), clock, "clearDate")
    destination = payload.get("toLocationId") or payload.get("to_location_id")
    result = ProductionService(db, policy, clock).clear_outturn(
        outturn_id,
        clear_date,
        actor,
        to_location_id=parse_uuid(destination, "toLocationId") if destination else None,
    )
    db.commit()
    return serializers.clearing(result)


@router.get("/{outturn_id}/yield")
def outturn_yield(
    outturn_id: UUID,
    db: Session = Depends(get_db),
    policy: StockPolicy = Depends(get_policy),
):
    return serializers.outturn_totals(ProductionService(db, policy).outturn_report(outturn_id))
