"""
stock_services.production_service -- Production outputs, the validation
gate, and outturn clearing.

Responsibility:
    record_output   validate a production entry against the outturn's
                    monthly paddy availability, then persist it
    clear_outturn   one-time open -> cleared transition that returns the
                    outturn's remaining available bags to free stock
    available_bags  the monthly consumption window (delegates to the
                    balance query facade)

Architecture position:
    Services layer.  Flushes, never commits: the caller owns the transaction.

Invariants enforced:
    - A production entry whose paddy deduction exceeds the available bags is
      rejected and writes nothing.
    - paddy_bags_deducted is computed once, at entry time, from the policy
      in force; it is stored and never recomputed.
    - No production entry is accepted against a cleared outturn.
    - Clearing credits exactly the bags bookable on the clear date (what is
      left once later productions in the same month are counted), as an
      approved purchase-equivalent movement carrying from_outturn_id.
    - Every write for one outturn runs under that outturn's key lock and
      row lock.

Failure modes:
    - OutturnNotFoundError / PackagingNotFoundError for unknown ids.
    - InsufficientPaddyBagsError (CapacityError) on over-deduction.
    - OutturnClearedError, OutturnAlreadyClearedError, NothingToClearError
      (StateError).
    - LockContentionError when the outturn is busy.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from stock_engines.consumption import OutturnTotals, compute_deduction
from stock_kernel.domain.approval import ApprovalStatus
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.ingestion import ProductionDraft, normalize_production
from stock_kernel.domain.movements import (
    OutturnInfo,
    PaddyMovement,
    PaddyMovementKind,
    ProductionOutput,
)
from stock_kernel.domain.policy import StockPolicy
from stock_kernel.exceptions import (
    InsufficientPaddyBagsError,
    MovementValidationError,
    NothingToClearError,
    OutturnAlreadyClearedError,
    OutturnClearedError,
    OutturnNotFoundError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.master_data import Outturn
from stock_kernel.models.movements import PaddyMovementModel, RiceProductionModel
from stock_kernel.selectors.master_data_selector import MasterDataSelector
from stock_kernel.services.key_lock import KeyLockRegistry, get_key_locks, lock_row, outturn_key
from stock_kernel.services.sequence_service import SequenceService
from stock_services.balance_query_service import BalanceQueryService, OutturnAvailability

logger = get_logger("services.production")


@dataclass(frozen=True)
class ClearingResult:
    outturn: OutturnInfo
    movement: PaddyMovement

    @property
    def cleared_bags(self) -> int:
        return self.movement.bags


class ProductionService:
    """Write paths for production against outturns."""

    def __init__(
        self,
        session: Session,
        policy: StockPolicy | None = None,
        clock: Clock | None = None,
        locks: KeyLockRegistry | None = None,
    ) -> None:
        self._session = session
        self._policy = policy or StockPolicy()
        self._clock = clock or SystemClock()
        self._locks = locks or get_key_locks()
        self._sequences = SequenceService(session)
        self._master = MasterDataSelector(session)
        self._queries = BalanceQueryService(session, self._policy)

    def available_bags(self, outturn_id: UUID, as_of: date) -> OutturnAvailability:
        return self._queries.outturn_availability(outturn_id, as_of)

    def outturn_report(self, outturn_id: UUID) -> OutturnTotals:
        return self._queries.outturn_report(outturn_id)

    def _locked_outturn(self, outturn_id: UUID) -> Outturn:
        row = lock_row(self._session, Outturn, outturn_id)
        if row is None:
            raise OutturnNotFoundError(str(outturn_id))
        return row

    # ------------------------------------------------------------------
    # Production outputs
    # ------------------------------------------------------------------

    def record_output(
        self,
        entry: ProductionDraft | Mapping[str, Any],
        actor_id: UUID,
    ) -> ProductionOutput:
        """Validate and persist one production entry."""
        draft = entry if isinstance(entry, ProductionDraft) else normalize_production(entry)

        with LogContext.bind(outturn_id=draft.outturn_id, actor_id=actor_id), \
                self._locks.hold(outturn_key(draft.outturn_id)):
            outturn = self._locked_outturn(draft.outturn_id)
            if outturn.is_cleared:
                logger.warning("production_rejected_cleared", extra={"outturn_code": outturn.code})
                raise OutturnClearedError(str(draft.outturn_id))

            packaging = self._master.get_packaging(draft.packaging_id)
            deduction = compute_deduction(draft.bags, packaging.kg_per_bag, draft.product_type, self._policy)

            availability = self.available_bags(draft.outturn_id, draft.production_date)
            available = availability.bookable_bags
            if deduction.paddy_bags_deducted > available:
                logger.warning(
                    "production_rejected_capacity",
                    extra={
                        "outturn_code": outturn.code,
                        "production_date": str(draft.production_date),
                        "available_bags": available,
                        "requested_bags": deduction.paddy_bags_deducted,
                    },
                )
                raise InsufficientPaddyBagsError(
                    str(draft.outturn_id), available, deduction.paddy_bags_deducted,
                )

            row = RiceProductionModel(
                seq=self._sequences.next_value(SequenceService.RICE_PRODUCTION),
                production_date=draft.production_date,
                outturn_id=draft.outturn_id,
                product_type=draft.product_type,
                variety=outturn.allotted_variety,
                packaging_id=draft.packaging_id,
                bags=draft.bags,
                quantity_quintals=deduction.quantity_quintals,
                paddy_bags_deducted=deduction.paddy_bags_deducted,
                location_code=draft.location_code,
                created_by_id=actor_id,
            )
            self._session.add(row)
            self._session.flush()

            logger.info(
                "production_recorded",
                extra={
                    "production_id": str(row.id),
                    "outturn_code": outturn.code,
                    "product_type": draft.product_type,
                    "bags": draft.bags,
                    "quantity_quintals": str(deduction.quantity_quintals),
                    "paddy_bags_deducted": deduction.paddy_bags_deducted,
                    "available_after": available - deduction.paddy_bags_deducted,
                },
            )
            return row.to_dto()

    # ------------------------------------------------------------------
    # Clearing
    # ------------------------------------------------------------------

    def clear_outturn(
        self,
        outturn_id: UUID,
        clear_date: date,
        actor_id: UUID,
        to_location_id: UUID | None = None,
    ) -> ClearingResult:
        """
        Close the outturn and return its available bags to free stock.

        The credit lands at ``to_location_id`` when given, otherwise at the
        location of the outturn's most recent earmarked lot.  Its net weight
        is the weight of the lots the bags are drawn from.
        """
        with LogContext.bind(outturn_id=outturn_id, actor_id=actor_id), \
                self._locks.hold(outturn_key(outturn_id)):
            outturn = self._locked_outturn(outturn_id)
            if outturn.is_cleared:
                logger.warning(
                    "outturn_clear_rejected",
                    extra={"outturn_code": outturn.code, "reason": "already_cleared"},
                )
                raise OutturnAlreadyClearedError(str(outturn_id), outturn.cleared_on)

            available = self.available_bags(outturn_id, clear_date).bookable_bags
            if available <= 0:
                logger.warning(
                    "outturn_clear_rejected",
                    extra={"outturn_code": outturn.code, "reason": "nothing_to_clear", "available_bags": available},
                )
                raise NothingToClearError(str(outturn_id), available)

            book = self._queries.outturn_lot_book(outturn_id, clear_date)
            destination = to_location_id or book.latest_lot_location()
            if destination is None:
                raise MovementValidationError(
                    "to_location_id", f"outturn {outturn.code} has no lot location; a destination is required",
                )
            self._master.get_location(destination)
            draws = book.preview_draw(clear_date, available)
            net_weight = sum((d.net_weight for d in draws), Decimal("0"))

            now = self._clock.now()
            movement = PaddyMovementModel(
                seq=self._sequences.next_value(SequenceService.PADDY_MOVEMENT),
                movement_date=clear_date,
                kind=PaddyMovementKind.PURCHASE.value,
                variety=outturn.allotted_variety,
                bags=available,
                net_weight=net_weight,
                status=ApprovalStatus.APPROVED.value,
                to_location_id=destination,
                from_outturn_id=outturn_id,
                remarks=f"Outturn {outturn.code} cleared",
                resolved_at=now,
                resolved_by_id=actor_id,
                created_by_id=actor_id,
            )
            self._session.add(movement)

            outturn.is_cleared = True
            outturn.cleared_at = now
            outturn.cleared_on = clear_date
            outturn.cleared_by_id = actor_id
            outturn.remaining_bags = available
            outturn.updated_by_id = actor_id
            self._session.flush()

            logger.info(
                "outturn_cleared",
                extra={
                    "outturn_code": outturn.code,
                    "clear_date": str(clear_date),
                    "cleared_bags": available,
                    "net_weight": str(net_weight),
                    "to_location_id": str(destination),
                    "movement_id": str(movement.id),
                },
            )
            return ClearingResult(outturn=outturn.to_dto(), movement=movement.to_dto())
