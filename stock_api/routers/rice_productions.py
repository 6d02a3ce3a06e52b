"""Rice production entries and the paddy availability they are checked against."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stock_api import serializers
from stock_api.deps import date_or_today, get_actor, get_clock, get_db, get_policy
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.policy import StockPolicy
from stock_services.production_service import ProductionService

router = APIRouter(prefix="/rice-productions", tags=["rice-productions"])


@router.post("", status_code=201)
def record_production(
    payload: dict,
    db: Session = Depends(get_db),
    actor: UUID = Depends(get_actor),
    policy: StockPolicy = Depends(get_policy),
    clock: Clock = Depends(get_clock),
):
    output = ProductionService(db, policy, clock).record_output(payload, actor)
    db.commit()
    return serializers.production(output)


@router.get("/outturn/{outturn_id}/available-paddy-bags")
def available_paddy_bags(
    outturn_id: UUID,
    date: str | None = None,
    db: Session = Depends(get_db),
    policy: StockPolicy = Depends(get_policy),
    clock: Clock = Depends(get_clock),
):
    as_of = date_or_today(date, clock, "date")
    return serializers.availability(ProductionService(db, policy, clock).available_bags(outturn_id, as_of))
