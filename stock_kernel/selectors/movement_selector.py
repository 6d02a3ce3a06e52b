"""
Module: stock_kernel.selectors.movement_selector
Responsibility: Read-only snapshot of the movement log for a query window.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Every result is ordered by (date, seq) so engines see a stable order.
    - Paddy reads return only effective (approved) rows unless
      ``include_pending`` is passed; the engines filter again regardless.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import or_, select

from stock_kernel.domain.approval import EFFECTIVE_STATUSES, ApprovalStatus
from stock_kernel.domain.movements import (
    OpeningBalance,
    PaddyMovement,
    ProductionOutput,
    StockMovement,
)
from stock_kernel.exceptions import MovementNotFoundError
from stock_kernel.models.movements import (
    OpeningBalanceModel,
    PaddyMovementModel,
    RiceProductionModel,
    RiceStockMovementModel,
)
from stock_kernel.selectors.base import BaseSelector

_EFFECTIVE = [s.value for s in EFFECTIVE_STATUSES]


class MovementSelector(BaseSelector):
    """Movement-log reads feeding the pure engines."""

    def get_paddy_movement(self, movement_id: UUID) -> PaddyMovement:
        row = self.session.get(PaddyMovementModel, movement_id)
        if row is None:
            raise MovementNotFoundError(str(movement_id))
        return row.to_dto()

    def paddy_movements(
        self,
        as_of: date | None = None,
        include_pending: bool = False,
    ) -> list[PaddyMovement]:
        stmt = select(PaddyMovementModel)
        if as_of is not None:
            stmt = stmt.where(PaddyMovementModel.movement_date <= as_of)
        if not include_pending:
            stmt = stmt.where(PaddyMovementModel.status.in_(_EFFECTIVE))
        stmt = stmt.order_by(PaddyMovementModel.movement_date, PaddyMovementModel.seq)
        return [r.to_dto() for r in self.session.execute(stmt).scalars()]

    def paddy_movements_for_outturn(
        self,
        outturn_id: UUID,
        as_of: date | None = None,
    ) -> list[PaddyMovement]:
        """Effective movements earmarking bags to, or clearing bags from, the outturn."""
        stmt = select(PaddyMovementModel).where(
            or_(
                PaddyMovementModel.outturn_id == outturn_id,
                PaddyMovementModel.from_outturn_id == outturn_id,
            ),
            PaddyMovementModel.status.in_(_EFFECTIVE),
        )
        if as_of is not None:
            stmt = stmt.where(PaddyMovementModel.movement_date <= as_of)
        stmt = stmt.order_by(PaddyMovementModel.movement_date, PaddyMovementModel.seq)
        return [r.to_dto() for r in self.session.execute(stmt).scalars()]

    def pending_movements(self, limit: int = 500) -> list[PaddyMovement]:
        stmt = (
            select(PaddyMovementModel)
            .where(PaddyMovementModel.status == ApprovalStatus.PENDING.value)
            .order_by(PaddyMovementModel.movement_date, PaddyMovementModel.seq)
            .limit(limit)
        )
        return [r.to_dto() for r in self.session.execute(stmt).scalars()]

    def productions(
        self,
        as_of: date | None = None,
        outturn_id: UUID | None = None,
    ) -> list[ProductionOutput]:
        stmt = select(RiceProductionModel)
        if as_of is not None:
            stmt = stmt.where(RiceProductionModel.production_date <= as_of)
        if outturn_id is not None:
            stmt = stmt.where(RiceProductionModel.outturn_id == outturn_id)
        stmt = stmt.order_by(RiceProductionModel.production_date, RiceProductionModel.seq)
        return [r.to_dto() for r in self.session.execute(stmt).scalars()]

    def productions_at(self, location_code: str, as_of: date | None = None) -> list[ProductionOutput]:
        stmt = select(RiceProductionModel).where(RiceProductionModel.location_code == location_code)
        if as_of is not None:
            stmt = stmt.where(RiceProductionModel.production_date <= as_of)
        stmt = stmt.order_by(RiceProductionModel.production_date, RiceProductionModel.seq)
        return [r.to_dto() for r in self.session.execute(stmt).scalars()]

    def stock_movements_at(self, location_code: str, as_of: date | None = None) -> list[StockMovement]:
        stmt = select(RiceStockMovementModel).where(RiceStockMovementModel.location_code == location_code)
        if as_of is not None:
            stmt = stmt.where(RiceStockMovementModel.movement_date <= as_of)
        stmt = stmt.order_by(RiceStockMovementModel.movement_date, RiceStockMovementModel.seq)
        return [r.to_dto() for r in self.session.execute(stmt).scalars()]

    def opening_balances(self, as_of: date | None = None) -> list[OpeningBalance]:
        stmt = select(OpeningBalanceModel)
        if as_of is not None:
            stmt = stmt.where(OpeningBalanceModel.balance_date <= as_of)
        stmt = stmt.order_by(OpeningBalanceModel.balance_date, OpeningBalanceModel.location_id)
        return [r.to_dto() for r in self.session.execute(stmt).scalars()]
