from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stock_api import serializers
from stock_api.deps import get_actor, get_db
from stock_kernel.exceptions import MovementValidationError
from stock_services.movement_service import MovementService

router = APIRouter(prefix="/opening-balances", tags=["opening-balances"])


def _field(payload: dict, *names: str):
    for name in names:
        if payload.get(name) not in (None, ""):
            return payload[name]
    return None


@router.post("", status_code=201)
def record_opening_balance(payload: dict, db: Session = Depends(get_db), actor: UUID = Depends(get_actor)):
    location_id = _field(payload, "locationId", "location_id")
    balance_date = _field(payload, "date", "balanceDate", "balance_date")
    bags = _field(payload, "bags")
    if location_id is None or balance_date is None or bags is None:
        raise MovementValidationError("payload", "locationId, date and bags are required")
    balance = MovementService(db).record_opening_balance(
        location_id=location_id,
        variety=_field(payload, "variety") or "",
        balance_date=balance_date,
        bags=bags,
        actor_id=actor,
        net_weight=_field(payload, "netWeight", "net_weight"),
        outturn_id=_field(payload, "outturnId", "outturn_id"),
        remarks=_field(payload, "remarks"),
    )
    db.commit()
    return serializers.opening_balance(balance)
