"""
ORM-Level Immutability Enforcement.

Movements are facts.  Once a paddy movement is resolved (approved or
rejected) none of its fields may change, and it may not be deleted.
Production outputs and finished-goods movements are effective on creation
and are immutable from the start.  Corrections are new movements.

SQLAlchemy fires ``before_update`` / ``before_delete`` mapper events during
flush; the listeners below inspect attribute history and raise
ImmutabilityViolationError before any SQL reaches the database.

    session.flush()
         |
         v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
    [before_delete] --> _check_*_delete() --------^

Protected entities:

    PaddyMovementModel        after status leaves pending
    RiceProductionModel       always
    RiceStockMovementModel    always

updated_at / updated_by_id are audit metadata and may always change.

Usage:

    from stock_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from stock_kernel.domain.approval import ApprovalStatus
from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})

# fields the pending -> resolved transition itself writes
_RESOLUTION_FIELDS = frozenset({
    "status", "resolved_at", "resolved_by_id", "rejection_reason",
})


def _changed_fields(target) -> list[str]:
    return [
        attr.key for attr in inspect(target).attrs
        if attr.key not in _AUDIT_FIELDS and attr.history.has_changes()
    ]


def _block(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "reason": reason,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _was_resolved(target) -> bool:
    history = get_history(target, "status")
    if history.deleted:
        old = history.deleted[0]
    elif not history.added:
        old = target.status
    else:
        # status newly set without a prior value: pending insert path
        return False
    return ApprovalStatus(old) != ApprovalStatus.PENDING


def _check_paddy_movement_immutability(mapper, connection, target):
    """
    Allow pending -> approved|rejected; block everything after that.

    While pending, the quantity fields may be corrected; the resolution
    fields may only change as part of the transition.
    """
    changed = _changed_fields(target)
    if not changed:
        return
    if _was_resolved(target):
        _block(
            "PaddyMovement", target, "UPDATE",
            f"resolved movement fields are frozen: {', '.join(sorted(changed))}",
        )
    if "status" not in changed and _RESOLUTION_FIELDS.intersection(changed):
        _block(
            "PaddyMovement", target, "UPDATE",
            "resolution fields change only together with status",
        )


def _check_paddy_movement_delete(mapper, connection, target):
    if ApprovalStatus(target.status) != ApprovalStatus.PENDING:
        _block("PaddyMovement", target, "DELETE", "resolved movements cannot be deleted")


def _check_always_immutable(entity_type: str):
    def _on_update(mapper, connection, target):
        changed = _changed_fields(target)
        if changed:
            _block(entity_type, target, "UPDATE", f"fields are frozen: {', '.join(sorted(changed))}")

    def _on_delete(mapper, connection, target):
        _block(entity_type, target, "DELETE", "effective movements cannot be deleted")

    return _on_update, _on_delete


_production_update, _production_delete = _check_always_immutable("RiceProduction")
_stock_update, _stock_delete = _check_always_immutable("RiceStockMovement")


def _listeners():
    from stock_kernel.models.movements import (
        PaddyMovementModel,
        RiceProductionModel,
        RiceStockMovementModel,
    )

    return (
        (PaddyMovementModel, "before_update", _check_paddy_movement_immutability),
        (PaddyMovementModel, "before_delete", _check_paddy_movement_delete),
        (RiceProductionModel, "before_update", _production_update),
        (RiceProductionModel, "before_delete", _production_delete),
        (RiceStockMovementModel, "before_update", _stock_update),
        (RiceStockMovementModel, "before_delete", _stock_delete),
    )


def register_immutability_listeners() -> None:
    """Register all immutability listeners (idempotent)."""
    for target, name, fn in _listeners():
        if not event.contains(target, name, fn):
            event.listen(target, name, fn)
