"""
Movement and master-data value objects (``stock_kernel.domain.movements``).

Responsibility
--------------
Canonical, frozen representations of every stock-affecting record and of
the master data the engines need.  ORM models convert to these via
``to_dto()``; pure engines consume nothing else.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* One canonical field set.  Field-name variants are resolved at the
  ingestion boundary (``domain.ingestion``) and never reach the engines.
* A paddy movement contributes to balances only when its status is in
  ``EFFECTIVE_STATUSES``.  Production outputs and finished-goods
  movements carry no approval gate.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from stock_kernel.domain.approval import EFFECTIVE_STATUSES, ApprovalStatus


class LocationKind(str, Enum):
    WAREHOUSE = "warehouse"
    KUNCHINITTU = "kunchinittu"


class OutturnType(str, Enum):
    RAW = "raw"
    STEAM = "steam"


class PaddyMovementKind(str, Enum):
    """Paddy-side movement kinds (approval gated)."""

    PURCHASE = "purchase"
    SHIFTING = "shifting"
    PRODUCTION_SHIFTING = "production-shifting"
    LOOSE = "loose"


class StockMovementType(str, Enum):
    """Finished-goods movement kinds (effective on creation)."""

    PRODUCTION = "production"
    PURCHASE = "purchase"
    SALE = "sale"
    PALTI = "palti"


# =========================================================================
# Master data
# =========================================================================


@dataclass(frozen=True)
class LocationInfo:
    id: UUID
    code: str
    name: str
    kind: LocationKind
    warehouse_id: UUID | None = None
    variety: str | None = None
    is_closed: bool = False


@dataclass(frozen=True)
class PackagingInfo:
    id: UUID
    brand_name: str
    kg_per_bag: Decimal


@dataclass(frozen=True)
class OutturnInfo:
    id: UUID
    code: str
    allotted_variety: str
    type: OutturnType = OutturnType.RAW
    is_cleared: bool = False
    cleared_at: datetime | None = None
    cleared_on: date | None = None
    remaining_bags: int | None = None


# =========================================================================
# Movements
# =========================================================================


@dataclass(frozen=True)
class PaddyMovement:
    """
    A paddy-side movement.

    ``outturn_id`` earmarks the destination bags to a production batch
    (production-shifting, or a purchase straight into production).
    ``from_outturn_id`` is set only on the credit created by clearing an
    outturn: the bags leave the outturn and return to free stock.
    """

    id: UUID
    seq: int
    movement_date: date
    kind: PaddyMovementKind
    variety: str
    bags: int
    net_weight: Decimal
    status: ApprovalStatus
    from_location_id: UUID | None = None
    to_location_id: UUID | None = None
    outturn_id: UUID | None = None
    from_outturn_id: UUID | None = None
    remarks: str | None = None

    @property
    def is_effective(self) -> bool:
        return self.status in EFFECTIVE_STATUSES

    @property
    def is_clearing_credit(self) -> bool:
        return self.from_outturn_id is not None


@dataclass(frozen=True)
class ProductionOutput:
    """
    Rice produced from an outturn.

    ``paddy_bags_deducted`` is fixed at creation from the configured
    ratio; later config changes never rewrite history.  ``location_code``
    is where the packed rice is stored, or None for direct loading.
    """

    id: UUID
    seq: int
    production_date: date
    outturn_id: UUID
    product_type: str
    variety: str
    packaging_id: UUID
    bags: int
    quantity_quintals: Decimal
    paddy_bags_deducted: int
    location_code: str | None = None


@dataclass(frozen=True)
class StockMovement:
    """
    A finished-goods purchase, sale or palti.

    For palti, ``packaging_id`` is the source packaging, ``bags`` equals
    ``source_bags`` and the target side lives in the ``target_*`` fields.
    """

    id: UUID
    seq: int
    movement_date: date
    movement_type: StockMovementType
    location_code: str
    product_type: str
    variety: str
    packaging_id: UUID
    bags: int
    quantity_quintals: Decimal
    target_packaging_id: UUID | None = None
    target_bags: int | None = None
    target_quantity_quintals: Decimal | None = None
    shortage_kg: Decimal | None = None
    shortage_bags: Decimal | None = None
    shortage_percentage: Decimal | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class OpeningBalance:
    """Manually recorded carried-forward balance for a location."""

    id: UUID
    location_id: UUID
    variety: str
    balance_date: date
    bags: int
    net_weight: Decimal
    outturn_id: UUID | None = None
    remarks: str | None = None
