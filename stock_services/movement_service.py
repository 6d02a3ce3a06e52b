"""
stock_services.movement_service -- Paddy movement entry.

Responsibility:
    Create pending paddy movements (singly or in batches) and record manual
    opening balances.  Inbound records are normalized at the ingestion
    boundary first; master-data rules are checked here:

        - every referenced location and outturn exists
        - no movement lands in, or leaves, a closed location
        - a kunchinittu bound to a variety accepts only that variety
        - bags earmarked to an outturn must match its allotted variety
        - nothing is earmarked to a cleared outturn

    Varieties compare trimmed and case-insensitively.

Architecture position:
    Services layer.  Flushes, never commits.

Invariants enforced:
    - New movements are always pending; they affect no balance until the
      approval gate approves them.
    - Inserts for one location+variety are serialized by the key lock.
    - Batch creation isolates each record in its own savepoint.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.orm import Session

from stock_kernel.domain.approval import ApprovalStatus
from stock_kernel.domain.ingestion import (
    PaddyMovementDraft,
    normalize_paddy_movement,
    parse_bags,
    parse_date,
    parse_quantity,
    parse_uuid,
)
from stock_kernel.domain.movements import (
    LocationInfo,
    LocationKind,
    OpeningBalance,
    PaddyMovement,
)
from stock_kernel.exceptions import MovementValidationError, OutturnClearedError, StockKernelError
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.movements import OpeningBalanceModel, PaddyMovementModel
from stock_kernel.selectors.master_data_selector import MasterDataSelector
from stock_kernel.services.key_lock import KeyLockRegistry, get_key_locks, location_variety_key
from stock_kernel.services.sequence_service import SequenceService

logger = get_logger("services.movement")


def _same_variety(a: str, b: str) -> bool:
    return a.strip().upper() == b.strip().upper()


@dataclass(frozen=True)
class BatchItemResult:
    index: int
    succeeded: bool
    movement: PaddyMovement | None = None
    error_code: str | None = None
    message: str | None = None
    details: dict = field(default_factory=dict)


@dataclass(frozen=True)
class BatchResult:
    items: tuple[BatchItemResult, ...]

    @property
    def created(self) -> tuple[PaddyMovement, ...]:
        return tuple(i.movement for i in self.items if i.movement is not None)

    @property
    def failed(self) -> tuple[BatchItemResult, ...]:
        return tuple(i for i in self.items if not i.succeeded)


class MovementService:
    """Entry of paddy movements and opening balances."""

    def __init__(self, session: Session, locks: KeyLockRegistry | None = None) -> None:
        self._session = session
        self._locks = locks or get_key_locks()
        self._sequences = SequenceService(session)
        self._master = MasterDataSelector(session)

    # ------------------------------------------------------------------
    # Master-data checks
    # ------------------------------------------------------------------

    def _open_location(self, location_id: UUID, field_name: str) -> LocationInfo:
        location = self._master.get_location(location_id)
        if location.is_closed:
            raise MovementValidationError(field_name, f"location {location.code} is closed")
        return location

    def _check_destination(self, location: LocationInfo, variety: str, field_name: str) -> None:
        if (
            location.kind == LocationKind.KUNCHINITTU
            and location.variety
            and not _same_variety(location.variety, variety)
        ):
            raise MovementValidationError(
                field_name,
                f"kunchinittu {location.code} holds {location.variety} only, not {variety}",
            )

    def _validate(self, draft: PaddyMovementDraft) -> None:
        if draft.from_location_id is not None:
            self._open_location(draft.from_location_id, "from_location_id")
        if draft.to_location_id is not None:
            destination = self._open_location(draft.to_location_id, "to_location_id")
            self._check_destination(destination, draft.variety, "to_location_id")
        if draft.outturn_id is not None:
            outturn = self._master.get_outturn(draft.outturn_id)
            if outturn.is_cleared:
                raise OutturnClearedError(str(draft.outturn_id))
            if not _same_variety(outturn.allotted_variety, draft.variety):
                raise MovementValidationError(
                    "variety",
                    f"outturn {outturn.code} is allotted to {outturn.allotted_variety}, not {draft.variety}",
                )

    # ------------------------------------------------------------------
    # Paddy movements
    # ------------------------------------------------------------------

    def create_paddy_movement(
        self,
        entry: PaddyMovementDraft | Mapping[str, Any],
        actor_id: UUID,
    ) -> PaddyMovement:
        """Normalize, validate and persist one pending paddy movement."""
        draft = entry if isinstance(entry, PaddyMovementDraft) else normalize_paddy_movement(entry)
        self._validate(draft)

        keys = [
            location_variety_key(loc, draft.variety)
            for loc in (draft.from_location_id, draft.to_location_id)
            if loc is not None
        ]
        with LogContext.bind(actor_id=actor_id), self._locks.hold(*keys):
            row = PaddyMovementModel(
                seq=self._sequences.next_value(SequenceService.PADDY_MOVEMENT),
                movement_date=draft.movement_date,
                kind=draft.kind.value,
                variety=draft.variety,
                bags=draft.bags,
                net_weight=draft.net_weight,
                status=ApprovalStatus.PENDING.value,
                from_location_id=draft.from_location_id,
                to_location_id=draft.to_location_id,
                outturn_id=draft.outturn_id,
                remarks=draft.remarks,
                created_by_id=actor_id,
            )
            self._session.add(row)
            self._session.flush()

            logger.info(
                "paddy_movement_created",
                extra={
                    "movement_id": str(row.id),
                    "kind": draft.kind.value,
                    "variety": draft.variety,
                    "bags": draft.bags,
                    "movement_date": str(draft.movement_date),
                },
            )
            return row.to_dto()

    def create_paddy_movements(
        self,
        entries: Iterable[PaddyMovementDraft | Mapping[str, Any]],
        actor_id: UUID,
    ) -> BatchResult:
        """Create many movements; a bad record fails alone."""
        items: list[BatchItemResult] = []
        for index, entry in enumerate(entries):
            savepoint = self._session.begin_nested()
            try:
                movement = self.create_paddy_movement(entry, actor_id)
            except StockKernelError as exc:
                savepoint.rollback()
                items.append(BatchItemResult(
                    index=index,
                    succeeded=False,
                    error_code=exc.code,
                    message=str(exc),
                    details=exc.details(),
                ))
                continue
            savepoint.commit()
            items.append(BatchItemResult(index=index, succeeded=True, movement=movement))

        result = BatchResult(items=tuple(items))
        logger.info(
            "paddy_movement_batch_completed",
            extra={"requested": len(items), "created_count": len(result.created), "failed": len(result.failed)},
        )
        return result

    # ------------------------------------------------------------------
    # Opening balances
    # ------------------------------------------------------------------

    def _opening_exists(
        self, location_id: UUID, variety: str, balance_date: date, outturn_id: UUID | None,
    ) -> bool:
        outturn_clause = (
            OpeningBalanceModel.outturn_id.is_(None) if outturn_id is None
            else OpeningBalanceModel.outturn_id == outturn_id
        )
        return self._session.execute(
            select(OpeningBalanceModel.id).where(
                OpeningBalanceModel.location_id == location_id,
                OpeningBalanceModel.variety == variety,
                OpeningBalanceModel.balance_date == balance_date,
                outturn_clause,
            )
        ).first() is not None

    def record_opening_balance(
        self,
        location_id: UUID | str,
        variety: str,
        balance_date: date | str,
        bags: int | str,
        actor_id: UUID,
        net_weight: Decimal | str | None = None,
        outturn_id: UUID | str | None = None,
        remarks: str | None = None,
    ) -> OpeningBalance:
        """
        Record a carried-forward balance.  It enters the ledger as an inward
        leg on ``balance_date``; one row per location, variety, outturn and
        date.
        """
        location_id = parse_uuid(location_id, "location_id")
        balance_date = parse_date(balance_date, "balance_date")
        bags = parse_bags(bags)
        weight = Decimal("0") if net_weight is None else parse_quantity(net_weight, "net_weight")
        if not variety or not variety.strip():
            raise MovementValidationError("variety", "must not be blank")
        variety = variety.strip()

        location = self._open_location(location_id, "location_id")
        self._check_destination(location, variety, "location_id")
        if outturn_id is not None:
            outturn_id = parse_uuid(outturn_id, "outturn_id")
            self._master.get_outturn(outturn_id)

        with self._locks.hold(location_variety_key(location_id, variety)):
            if self._opening_exists(location_id, variety, balance_date, outturn_id):
                raise MovementValidationError(
                    "balance_date",
                    f"an opening balance for {variety} at {location.code} on {balance_date} already exists",
                )
            row = OpeningBalanceModel(
                location_id=location_id,
                variety=variety,
                outturn_id=outturn_id,
                balance_date=balance_date,
                bags=bags,
                net_weight=weight,
                remarks=remarks,
                created_by_id=actor_id,
            )
            savepoint = self._session.begin_nested()
            try:
                self._session.add(row)
                self._session.flush()
            except DBIntegrityError:
                savepoint.rollback()
                raise MovementValidationError(
                    "balance_date",
                    f"an opening balance for {variety} at {location.code} on {balance_date} already exists",
                ) from None
            savepoint.commit()
            logger.info(
                "opening_balance_recorded",
                extra={
                    "location_code": location.code,
                    "variety": variety,
                    "balance_date": str(balance_date),
                    "bags": bags,
                },
            )
            return row.to_dto()
