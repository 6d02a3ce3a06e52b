"""Approval gate for paddy movements."""

from uuid import UUID

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from stock_api import serializers
from stock_api.deps import get_actor, get_clock, get_db
from stock_kernel.domain.clock import Clock
from stock_kernel.domain.ingestion import parse_uuid
from stock_kernel.exceptions import MovementValidationError
from stock_services.approval_service import ApprovalService

router = APIRouter(prefix="/paddy-movements", tags=["approvals"])


def _ids(payload: dict) -> list[UUID]:
    raw = payload.get("ids") or payload.get("movementIds")
    if not isinstance(raw, list) or not raw:
        raise MovementValidationError("ids", "must be a non-empty list")
    return [parse_uuid(v, "ids") for v in raw]


@router.post("/{movement_id}/approve")
def approve(
    movement_id: UUID,
    db: Session = Depends(get_db),
    actor: UUID = Depends(get_actor),
    clock: Clock = Depends(get_clock),
):
    movement = ApprovalService(db, clock).approve(movement_id, actor)
    db.commit()
    return serializers.paddy_movement(movement)


@router.post("/{movement_id}/reject")
def reject(
    movement_id: UUID,
    payload: dict | None = Body(default=None),
    db: Session = Depends(get_db),
    actor: UUID = Depends(get_actor),
    clock: Clock = Depends(get_clock),
):
    reason = (payload or {}).get("reason")
    movement = ApprovalService(db, clock).reject(movement_id, actor, reason)
    db.commit()
    return serializers.paddy_movement(movement)


@router.post("/bulk-approve")
def bulk_approve(
    payload: dict,
    db: Session = Depends(get_db),
    actor: UUID = Depends(get_actor),
    clock: Clock = Depends(get_clock),
):
    outcome = ApprovalService(db, clock).bulk_approve(_ids(payload), actor)
    db.commit()
    return serializers.bulk(outcome)


@router.post("/bulk-reject")
def bulk_reject(
    payload: dict,
    db: Session = Depends(get_db),
    actor: UUID = Depends(get_actor),
    clock: Clock = Depends(get_clock),
):
    outcome = ApprovalService(db, clock).bulk_reject(_ids(payload), actor, payload.get("reason"))
    db.commit()
    return serializers.bulk(outcome)
