"""Paddy movement entry (created pending)."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stock_api import serializers
from stock_api.deps import get_actor, get_db
from stock_kernel.exceptions import MovementValidationError
from stock_kernel.selectors.movement_selector import MovementSelector
from stock_services.movement_service import MovementService

router = APIRouter(prefix="/paddy-movements", tags=["paddy-movements"])


@router.post("", status_code=201)
def create_movement(payload: dict, db: Session = Depends(get_db), actor: UUID = Depends(get_actor)):
    movement = MovementService(db).create_paddy_movement(payload, actor)
    db.commit()
    return serializers.paddy_movement(movement)


@router.post("/batch")
def create_movements(payload: dict, db: Session = Depends(get_db), actor: UUID = Depends(get_actor)):
    entries = payload.get("movements")
    if not isinstance(entries, list):
        raise MovementValidationError("movements", "must be a list")
    result = MovementService(db).create_paddy_movements(entries, actor)
    db.commit()
    return serializers.batch(result)


@router.get("/pending")
def pending(limit: int = 500, db: Session = Depends(get_db)):
    return [serializers.paddy_movement(m) for m in MovementSelector(db).pending_movements(limit)]


@router.get("/{movement_id}")
def get_movement(movement_id: UUID, db: Session = Depends(get_db)):
    return serializers.paddy_movement(MovementSelector(db).get_paddy_movement(movement_id))
