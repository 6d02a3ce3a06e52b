"""
Module: stock_kernel.models.movements
Responsibility: ORM persistence for the append-mostly movement log: paddy
    movements, rice production outputs, finished-goods movements, and
    manually recorded opening balances.
Architecture position: Kernel > Models.  Inherits from TrackedBase.  Converts
    to frozen DTOs in stock_kernel.domain.movements via to_dto().

Invariants enforced:
    - No balance table: every balance is derived from these rows.
    - seq is allocated by SequenceService and is unique per table, giving a
      stable (date, seq) order for ledgers and pagination.
    - Resolved paddy movements (approved/rejected) are immutable; see
      db/immutability.py.
    - Quantities are Decimal; bag counts are integers.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.db.types import BAGS, LONG_TEXT, PERCENTAGE, QUINTALS, SHORT_CODE, WEIGHT
from stock_kernel.domain.approval import ApprovalStatus
from stock_kernel.domain.movements import (
    OpeningBalance,
    PaddyMovement,
    PaddyMovementKind,
    ProductionOutput,
    StockMovement,
    StockMovementType,
)


class PaddyMovementModel(TrackedBase):
    """
    A paddy-side movement row (approval gated).

    Maps to: stock_kernel.domain.movements.PaddyMovement.
    """

    __tablename__ = "paddy_movements"

    __table_args__ = (
        UniqueConstraint("seq", name="uq_paddy_movement_seq"),
        Index("idx_paddy_movement_date", "movement_date"),
        Index("idx_paddy_movement_status", "status"),
        Index("idx_paddy_movement_from", "from_location_id"),
        Index("idx_paddy_movement_to", "to_location_id"),
        Index("idx_paddy_movement_outturn", "outturn_id"),
        Index("idx_paddy_movement_from_outturn", "from_outturn_id"),
    )

    seq: Mapped[int] = mapped_column()
    movement_date: Mapped[date] = mapped_column(Date)
    kind: Mapped[str] = mapped_column(String(30))
    variety: Mapped[str] = mapped_column(String(100))
    bags: Mapped[int] = mapped_column(BAGS)
    net_weight: Mapped[Decimal] = mapped_column(WEIGHT, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), default=ApprovalStatus.PENDING.value)

    from_location_id: Mapped[UUID | None] = mapped_column(ForeignKey("locations.id"), nullable=True)
    to_location_id: Mapped[UUID | None] = mapped_column(ForeignKey("locations.id"), nullable=True)
    outturn_id: Mapped[UUID | None] = mapped_column(ForeignKey("outturns.id"), nullable=True)
    from_outturn_id: Mapped[UUID | None] = mapped_column(ForeignKey("outturns.id"), nullable=True)

    remarks: Mapped[str | None] = mapped_column(LONG_TEXT, nullable=True)

    resolved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    resolved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(LONG_TEXT, nullable=True)

    def to_dto(self) -> PaddyMovement:
        return PaddyMovement(
            id=self.id,
            seq=self.seq,
            movement_date=self.movement_date,
            kind=PaddyMovementKind(self.kind),
            variety=self.variety,
            bags=self.bags,
            net_weight=Decimal(self.net_weight),
            status=ApprovalStatus(self.status),
            from_location_id=self.from_location_id,
            to_location_id=self.to_location_id,
            outturn_id=self.outturn_id,
            from_outturn_id=self.from_outturn_id,
            remarks=self.remarks,
        )

    def __repr__(self) -> str:
        return (
            f"<PaddyMovementModel {self.id} {self.kind} {self.bags} bags "
            f"status={self.status}>"
        )


class RiceProductionModel(TrackedBase):
    """
    Rice produced against an outturn.

    Maps to: stock_kernel.domain.movements.ProductionOutput.
    """

    __tablename__ = "rice_productions"

    __table_args__ = (
        UniqueConstraint("seq", name="uq_rice_production_seq"),
        Index("idx_rice_production_outturn_date", "outturn_id", "production_date"),
        Index("idx_rice_production_location", "location_code"),
    )

    seq: Mapped[int] = mapped_column()
    production_date: Mapped[date] = mapped_column(Date)
    outturn_id: Mapped[UUID] = mapped_column(ForeignKey("outturns.id"))
    product_type: Mapped[str] = mapped_column(SHORT_CODE)
    variety: Mapped[str] = mapped_column(String(100))
    packaging_id: Mapped[UUID] = mapped_column(ForeignKey("packagings.id"))
    bags: Mapped[int] = mapped_column(BAGS)
    quantity_quintals: Mapped[Decimal] = mapped_column(QUINTALS)
    paddy_bags_deducted: Mapped[int] = mapped_column(BAGS)
    location_code: Mapped[str | None] = mapped_column(SHORT_CODE, nullable=True)

    def to_dto(self) -> ProductionOutput:
        return ProductionOutput(
            id=self.id,
            seq=self.seq,
            production_date=self.production_date,
            outturn_id=self.outturn_id,
            product_type=self.product_type,
            variety=self.variety,
            packaging_id=self.packaging_id,
            bags=self.bags,
            quantity_quintals=Decimal(self.quantity_quintals),
            paddy_bags_deducted=self.paddy_bags_deducted,
            location_code=self.location_code,
        )

    def __repr__(self) -> str:
        return (
            f"<RiceProductionModel {self.id} outturn={self.outturn_id} "
            f"bags={self.bags} deducted={self.paddy_bags_deducted}>"
        )


class RiceStockMovementModel(TrackedBase):
    """
    Finished-goods purchase, sale or palti.

    Maps to: stock_kernel.domain.movements.StockMovement.
    """

    __tablename__ = "rice_stock_movements"

    __table_args__ = (
        UniqueConstraint("seq", name="uq_rice_stock_movement_seq"),
        Index("idx_rice_stock_location_date", "location_code", "movement_date"),
        Index("idx_rice_stock_product", "product_type", "packaging_id"),
    )

    seq: Mapped[int] = mapped_column()
    movement_date: Mapped[date] = mapped_column(Date)
    movement_type: Mapped[str] = mapped_column(String(20))
    location_code: Mapped[str] = mapped_column(SHORT_CODE)
    product_type: Mapped[str] = mapped_column(SHORT_CODE)
    variety: Mapped[str] = mapped_column(String(100))
    packaging_id: Mapped[UUID] = mapped_column(ForeignKey("packagings.id"))
    bags: Mapped[int] = mapped_column(BAGS)
    quantity_quintals: Mapped[Decimal] = mapped_column(QUINTALS)

    # palti
    target_packaging_id: Mapped[UUID | None] = mapped_column(ForeignKey("packagings.id"), nullable=True)
    target_bags: Mapped[int | None] = mapped_column(BAGS, nullable=True)
    target_quantity_quintals: Mapped[Decimal | None] = mapped_column(QUINTALS, nullable=True)
    shortage_kg: Mapped[Decimal | None] = mapped_column(WEIGHT, nullable=True)
    shortage_bags: Mapped[Decimal | None] = mapped_column(QUINTALS, nullable=True)
    shortage_percentage: Mapped[Decimal | None] = mapped_column(PERCENTAGE, nullable=True)

    remarks: Mapped[str | None] = mapped_column(LONG_TEXT, nullable=True)

    def to_dto(self) -> StockMovement:
        def _dec(v):
            return None if v is None else Decimal(v)

        return StockMovement(
            id=self.id,
            seq=self.seq,
            movement_date=self.movement_date,
            movement_type=StockMovementType(self.movement_type),
            location_code=self.location_code,
            product_type=self.product_type,
            variety=self.variety,
            packaging_id=self.packaging_id,
            bags=self.bags,
            quantity_quintals=Decimal(self.quantity_quintals),
            target_packaging_id=self.target_packaging_id,
            target_bags=self.target_bags,
            target_quantity_quintals=_dec(self.target_quantity_quintals),
            shortage_kg=_dec(self.shortage_kg),
            shortage_bags=_dec(self.shortage_bags),
            shortage_percentage=_dec(self.shortage_percentage),
            remarks=self.remarks,
        )

    def __repr__(self) -> str:
        return (
            f"<RiceStockMovementModel {self.id} {self.movement_type} "
            f"{self.location_code} bags={self.bags}>"
        )


class OpeningBalanceModel(TrackedBase):
    """
    Manually entered carried-forward balance for a location and variety.

    Maps to: stock_kernel.domain.movements.OpeningBalance.
    """

    __tablename__ = "opening_balances"

    __table_args__ = (
        UniqueConstraint(
            "location_id", "variety", "outturn_id", "balance_date",
            name="uq_opening_balance_location_variety_date",
        ),
        Index("idx_opening_balance_location", "location_id", "balance_date"),
    )

    location_id: Mapped[UUID] = mapped_column(ForeignKey("locations.id"))
    variety: Mapped[str] = mapped_column(String(100))
    outturn_id: Mapped[UUID | None] = mapped_column(ForeignKey("outturns.id"), nullable=True)
    balance_date: Mapped[date] = mapped_column(Date)
    bags: Mapped[int] = mapped_column(BAGS)
    net_weight: Mapped[Decimal] = mapped_column(WEIGHT, default=Decimal("0"))
    remarks: Mapped[str | None] = mapped_column(LONG_TEXT, nullable=True)

    def to_dto(self) -> OpeningBalance:
        return OpeningBalance(
            id=self.id,
            location_id=self.location_id,
            variety=self.variety,
            balance_date=self.balance_date,
            bags=self.bags,
            net_weight=Decimal(self.net_weight),
            outturn_id=self.outturn_id,
            remarks=self.remarks,
        )

    def __repr__(self) -> str:
        return (
            f"<OpeningBalanceModel {self.location_id} {self.variety} "
            f"{self.balance_date} bags={self.bags}>"
        )
