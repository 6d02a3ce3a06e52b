"""
stock_services.finished_goods_service -- Packed-rice purchases, sales and palti.

Responsibility:
    Validate and persist finished-goods movements.  They carry no approval
    gate: a movement is effective the moment it is flushed.

        purchase  always accepted
        sale      rejected when bags exceed what the stock key can release on
                  the sale date (InsufficientStockError carries the figure)
        palti     source balance checked like a sale (when the policy
                  enforces it); target bags and shortage from the palti
                  engine

Architecture position:
    Services layer.  Flushes, never commits.

Invariants enforced:
    - Rejected requests write nothing.
    - Writes for one stock key (location, product, packaging) are
      serialized through the caller's commit by the guard-row lock; palti
      holds both its source and target keys.
    - Quantities derive from the packaging's kg per bag unless the caller
      supplies quintals explicitly.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from stock_engines.finished_goods import StockKey
from stock_engines.palti import PaltiResult, compute_palti
from stock_kernel.domain.ingestion import StockMovementDraft, normalize_stock_movement
from stock_kernel.domain.movements import StockMovement, StockMovementType
from stock_kernel.domain.policy import StockPolicy
from stock_kernel.domain.quantities import quantize_quintals, quintals_for
from stock_kernel.exceptions import InsufficientStockError
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.movements import RiceStockMovementModel
from stock_kernel.selectors.master_data_selector import MasterDataSelector
from stock_kernel.services.key_lock import KeyLockRegistry, get_key_locks, lock_aggregate, stock_key
from stock_kernel.services.sequence_service import SequenceService
from stock_services.balance_query_service import BalanceQueryService

logger = get_logger("services.finished_goods")


class FinishedGoodsService:
    """Write path for the finished-goods ledger."""

    def __init__(
        self,
        session: Session,
        policy: StockPolicy | None = None,
        locks: KeyLockRegistry | None = None,
    ) -> None:
        self._session = session
        self._policy = policy or StockPolicy()
        self._locks = locks or get_key_locks()
        self._sequences = SequenceService(session)
        self._master = MasterDataSelector(session)
        self._queries = BalanceQueryService(session, self._policy)

    def _check_available(self, draft: StockMovementDraft, key: StockKey) -> None:
        available = self._queries.finished_goods_available(key, draft.movement_date)
        if draft.bags > available:
            logger.warning(
                "stock_movement_rejected_capacity",
                extra={
                    "movement_type": draft.movement_type.value,
                    "location_code": key.location_code,
                    "product_type": key.product_type,
                    "packaging_id": str(key.packaging_id),
                    "available_bags": available,
                    "requested_bags": draft.bags,
                },
            )
            raise InsufficientStockError(
                key.location_code, key.product_type, str(key.packaging_id),
                available, draft.bags, draft.movement_date,
            )

    def record_movement(
        self,
        entry: StockMovementDraft | Mapping[str, Any],
        actor_id: UUID,
    ) -> StockMovement:
        draft = entry if isinstance(entry, StockMovementDraft) else normalize_stock_movement(entry)
        source = StockKey(draft.location_code, draft.product_type, draft.variety, draft.packaging_id)
        packaging = self._master.get_packaging(draft.packaging_id)

        lock_keys = [stock_key(draft.location_code, draft.product_type, draft.packaging_id)]
        palti: PaltiResult | None = None
        if draft.movement_type == StockMovementType.PALTI:
            target = self._master.get_packaging(draft.target_packaging_id)
            palti = compute_palti(
                source_bags=draft.bags,
                source_kg_per_bag=packaging.kg_per_bag,
                target_kg_per_bag=target.kg_per_bag,
            )
            lock_keys.append(stock_key(draft.location_code, draft.product_type, draft.target_packaging_id))

        with LogContext.bind(actor_id=actor_id), self._locks.hold(*lock_keys):
            lock_aggregate(self._session, *lock_keys)
            if draft.movement_type == StockMovementType.SALE or (
                palti is not None and self._policy.enforce_palti_stock
            ):
                self._check_available(draft, source)

            quintals = draft.quantity_quintals
            if quintals is None:
                quintals = quintals_for(draft.bags, packaging.kg_per_bag)

            row = RiceStockMovementModel(
                seq=self._sequences.next_value(SequenceService.RICE_STOCK_MOVEMENT),
                movement_date=draft.movement_date,
                movement_type=draft.movement_type.value,
                location_code=draft.location_code,
                product_type=draft.product_type,
                variety=draft.variety,
                packaging_id=draft.packaging_id,
                bags=draft.bags,
                quantity_quintals=quintals,
                remarks=draft.remarks,
                created_by_id=actor_id,
            )
            if palti is not None:
                row.quantity_quintals = quantize_quintals(palti.source_quintals)
                row.target_packaging_id = draft.target_packaging_id
                row.target_bags = palti.target_bags
                row.target_quantity_quintals = quantize_quintals(palti.target_quintals)
                row.shortage_kg = palti.shortage_kg
                row.shortage_bags = quantize_quintals(palti.shortage_bags)
                row.shortage_percentage = quantize_quintals(palti.shortage_percentage)
            self._session.add(row)
            self._session.flush()

            extra = {
                "stock_movement_id": str(row.id),
                "movement_type": draft.movement_type.value,
                "location_code": draft.location_code,
                "product_type": draft.product_type,
                "bags": draft.bags,
            }
            if palti is not None:
                extra.update(
                    target_bags=palti.target_bags,
                    shortage_kg=str(palti.shortage_kg),
                    shortage_percentage=str(quantize_quintals(palti.shortage_percentage)),
                )
            logger.info("stock_movement_recorded", extra=extra)
            return row.to_dto()
