"""
Module: stock_kernel.models.master_data
Responsibility: ORM persistence for the reference identities movements point
    at: locations (warehouses and kunchinittus), outturns, and packagings.
Architecture position: Kernel > Models.  Inherits from TrackedBase.

Invariants enforced:
    - Location and packaging rows are immutable identities; only balances
      (derived, never stored) change.
    - An outturn moves open -> cleared exactly once.  is_cleared,
      cleared_at, cleared_on, cleared_by_id and remaining_bags are written
      together by ProductionService.clear_outturn and never again.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.db.types import BAGS, KG_PER_BAG, SHORT_CODE
from stock_kernel.domain.movements import (
    LocationInfo,
    LocationKind,
    OutturnInfo,
    OutturnType,
    PackagingInfo,
)


class Location(TrackedBase):
    """
    A warehouse or a kunchinittu (cell inside a warehouse bound to one variety).

    Maps to: stock_kernel.domain.movements.LocationInfo.
    """

    __tablename__ = "locations"

    __table_args__ = (
        Index("idx_location_warehouse", "warehouse_id"),
    )

    code: Mapped[str] = mapped_column(SHORT_CODE, unique=True)
    name: Mapped[str] = mapped_column(String(200))
    kind: Mapped[str] = mapped_column(String(20), default=LocationKind.KUNCHINITTU.value)
    warehouse_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("locations.id"), nullable=True,
    )
    variety: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False)
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self) -> LocationInfo:
        return LocationInfo(
            id=self.id,
            code=self.code,
            name=self.name,
            kind=LocationKind(self.kind),
            warehouse_id=self.warehouse_id,
            variety=self.variety,
            is_closed=bool(self.is_closed),
        )

    def __repr__(self) -> str:
        return f"<Location {self.code} kind={self.kind}>"


class Outturn(TrackedBase):
    """
    A dated production batch with an allotted variety.

    Maps to: stock_kernel.domain.movements.OutturnInfo.
    """

    __tablename__ = "outturns"

    code: Mapped[str] = mapped_column(SHORT_CODE, unique=True)
    allotted_variety: Mapped[str] = mapped_column(String(100))
    type: Mapped[str] = mapped_column(String(20), default=OutturnType.RAW.value)
    is_cleared: Mapped[bool] = mapped_column(Boolean, default=False)
    cleared_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cleared_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    cleared_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    remaining_bags: Mapped[int | None] = mapped_column(BAGS, nullable=True)

    def to_dto(self) -> OutturnInfo:
        return OutturnInfo(
            id=self.id,
            code=self.code,
            allotted_variety=self.allotted_variety,
            type=OutturnType(self.type),
            is_cleared=bool(self.is_cleared),
            cleared_at=self.cleared_at,
            cleared_on=self.cleared_on,
            remaining_bags=self.remaining_bags,
        )

    def __repr__(self) -> str:
        return f"<Outturn {self.code} cleared={self.is_cleared}>"


class Packaging(TrackedBase):
    """
    A bag type: brand and kilograms per bag.

    Maps to: stock_kernel.domain.movements.PackagingInfo.
    """

    __tablename__ = "packagings"

    brand_name: Mapped[str] = mapped_column(String(100))
    kg_per_bag: Mapped[Decimal] = mapped_column(KG_PER_BAG)

    def to_dto(self) -> PackagingInfo:
        return PackagingInfo(
            id=self.id,
            brand_name=self.brand_name,
            kg_per_bag=Decimal(self.kg_per_bag),
        )

    def __repr__(self) -> str:
        return f"<Packaging {self.brand_name} {self.kg_per_bag}kg>"
