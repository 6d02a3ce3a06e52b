"""
Ingestion boundary (``stock_kernel.domain.ingestion``).

Responsibility
--------------
Turn loosely-shaped inbound records into canonical draft value objects.
Inbound feeds carry the same field under several spellings (snake_case,
camelCase, and legacy spellings such as ``toKunchinintuId``); they are
resolved here, once, so no engine or service ever branches on field-name
variants.

Architecture position
---------------------
**Kernel domain layer** -- pure functions.  ZERO I/O.

Failure modes
-------------
* ``MovementValidationError`` naming the offending canonical field when a
  required value is missing, malformed or out of range.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from stock_kernel.domain.movements import PaddyMovementKind, StockMovementType
from stock_kernel.domain.quantities import to_decimal
from stock_kernel.exceptions import MovementValidationError

# canonical name -> accepted spellings, first match wins
_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "movement_date": ("movement_date", "movementDate", "date"),
    "kind": ("kind", "movement_type", "movementType", "type"),
    "variety": ("variety", "variety_name", "varietyName"),
    "bags": ("bags", "number_of_bags", "numberOfBags"),
    "net_weight": ("net_weight", "netWeight"),
    "from_location_id": (
        "from_location_id", "fromLocationId",
        "from_kunchinittu_id", "fromKunchinittuId", "fromKunchinintuId",
    ),
    "to_location_id": (
        "to_location_id", "toLocationId",
        "to_kunchinittu_id", "toKunchinittuId", "toKunchinintuId",
    ),
    "to_warehouse_id": ("to_warehouse_id", "toWarehouseId"),
    "outturn_id": ("outturn_id", "outturnId"),
    "remarks": ("remarks", "notes"),
    "location_code": ("location_code", "locationCode"),
    "product_type": ("product_type", "productType", "product"),
    "packaging_id": ("packaging_id", "packagingId", "source_packaging_id", "sourcePackagingId"),
    "target_packaging_id": ("target_packaging_id", "targetPackagingId"),
    "source_bags": ("source_bags", "sourceBags"),
    "quantity_quintals": ("quantity_quintals", "quantityQuintals"),
    "production_date": ("production_date", "productionDate", "date"),
    "clear_date": ("clear_date", "clearDate", "date"),
    "status": ("status",),
}

# legacy kind spellings
_PADDY_KIND_ALIASES: dict[str, PaddyMovementKind] = {
    "for-production": PaddyMovementKind.PURCHASE,
    "production": PaddyMovementKind.PRODUCTION_SHIFTING,
}

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%d-%m-%Y", "%d/%m/%Y")


# =========================================================================
# Drafts
# =========================================================================


@dataclass(frozen=True)
class PaddyMovementDraft:
    movement_date: date
    kind: PaddyMovementKind
    variety: str
    bags: int
    net_weight: Decimal
    from_location_id: UUID | None = None
    to_location_id: UUID | None = None
    outturn_id: UUID | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class ProductionDraft:
    production_date: date
    outturn_id: UUID
    product_type: str
    packaging_id: UUID
    bags: int
    location_code: str | None = None


@dataclass(frozen=True)
class StockMovementDraft:
    movement_date: date
    movement_type: StockMovementType
    location_code: str
    product_type: str
    variety: str
    packaging_id: UUID
    bags: int
    target_packaging_id: UUID | None = None
    quantity_quintals: Decimal | None = None
    remarks: str | None = None


# =========================================================================
# Field coercion
# =========================================================================


def _lookup(raw: Mapping[str, Any], canonical: str) -> Any:
    for name in _FIELD_ALIASES.get(canonical, (canonical,)):
        if name in raw and raw[name] not in (None, ""):
            return raw[name]
    return None


def _require(raw: Mapping[str, Any], canonical: str) -> Any:
    value = _lookup(raw, canonical)
    if value is None:
        raise MovementValidationError(canonical, "is required")
    return value


def parse_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        s = value.strip()[:10]
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(s, fmt).date()
            except ValueError:
                continue
    raise MovementValidationError(field, f"not a date: {value!r}")


def parse_uuid(value: Any, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise MovementValidationError(field, f"not a valid id: {value!r}") from None


def parse_bags(value: Any, field: str = "bags") -> int:
    try:
        d = to_decimal(value)
    except (TypeError, ValueError):
        raise MovementValidationError(field, f"not a number: {value!r}") from None
    if d != d.to_integral_value():
        raise MovementValidationError(field, f"must be a whole number of bags: {value!r}")
    n = int(d)
    if n <= 0:
        raise MovementValidationError(field, f"must be positive: {n}")
    return n


def parse_quantity(value: Any, field: str) -> Decimal:
    try:
        d = to_decimal(value)
    except (TypeError, ValueError):
        raise MovementValidationError(field, f"not a number: {value!r}") from None
    if d < 0:
        raise MovementValidationError(field, f"must not be negative: {d}")
    return d


def _optional_uuid(raw: Mapping[str, Any], canonical: str) -> UUID | None:
    value = _lookup(raw, canonical)
    return None if value is None else parse_uuid(value, canonical)


def _text(raw: Mapping[str, Any], canonical: str) -> str:
    value = str(_require(raw, canonical)).strip()
    if not value:
        raise MovementValidationError(canonical, "must not be blank")
    return value


# =========================================================================
# Normalizers
# =========================================================================


def normalize_paddy_kind(value: Any) -> PaddyMovementKind:
    key = str(value).strip().lower().replace("_", "-")
    if key in _PADDY_KIND_ALIASES:
        return _PADDY_KIND_ALIASES[key]
    try:
        return PaddyMovementKind(key)
    except ValueError:
        raise MovementValidationError("kind", f"unknown paddy movement kind: {value!r}") from None


def normalize_paddy_movement(raw: Mapping[str, Any]) -> PaddyMovementDraft:
    """
    Build a PaddyMovementDraft from an inbound record.

    Routing rules by kind:
        purchase             -- needs a destination (kunchinittu, falling back
                                to a warehouse); an outturn earmarks it for
                                production
        shifting             -- needs distinct source and destination
        production-shifting  -- needs a source and an outturn; the bags stay
                                at the source location
        loose                -- needs a destination
    """
    kind = normalize_paddy_kind(_require(raw, "kind"))
    movement_date = parse_date(_require(raw, "movement_date"), "movement_date")
    variety = _text(raw, "variety")
    bags = parse_bags(_require(raw, "bags"))
    weight = _lookup(raw, "net_weight")
    net_weight = Decimal("0") if weight is None else parse_quantity(weight, "net_weight")

    from_id = _optional_uuid(raw, "from_location_id")
    to_id = _optional_uuid(raw, "to_location_id") or _optional_uuid(raw, "to_warehouse_id")
    outturn_id = _optional_uuid(raw, "outturn_id")

    if kind in (PaddyMovementKind.PURCHASE, PaddyMovementKind.LOOSE):
        if to_id is None:
            raise MovementValidationError("to_location_id", f"is required for {kind.value}")
        from_id = None
    elif kind == PaddyMovementKind.SHIFTING:
        if from_id is None:
            raise MovementValidationError("from_location_id", "is required for shifting")
        if to_id is None:
            raise MovementValidationError("to_location_id", "is required for shifting")
        if from_id == to_id:
            raise MovementValidationError("to_location_id", "must differ from from_location_id")
        outturn_id = None
    elif kind == PaddyMovementKind.PRODUCTION_SHIFTING:
        if from_id is None:
            raise MovementValidationError("from_location_id", "is required for production-shifting")
        if outturn_id is None:
            raise MovementValidationError("outturn_id", "is required for production-shifting")
        to_id = from_id

    remarks = _lookup(raw, "remarks")
    return PaddyMovementDraft(
        movement_date=movement_date,
        kind=kind,
        variety=variety,
        bags=bags,
        net_weight=net_weight,
        from_location_id=from_id,
        to_location_id=to_id,
        outturn_id=outturn_id,
        remarks=None if remarks is None else str(remarks),
    )


def normalize_production(raw: Mapping[str, Any]) -> ProductionDraft:
    location_code = _lookup(raw, "location_code")
    return ProductionDraft(
        production_date=parse_date(_require(raw, "production_date"), "production_date"),
        outturn_id=parse_uuid(_require(raw, "outturn_id"), "outturn_id"),
        product_type=_text(raw, "product_type"),
        packaging_id=parse_uuid(_require(raw, "packaging_id"), "packaging_id"),
        bags=parse_bags(_require(raw, "bags")),
        location_code=None if location_code is None else str(location_code).strip(),
    )


def normalize_stock_movement(raw: Mapping[str, Any]) -> StockMovementDraft:
    """
    Build a StockMovementDraft for a finished-goods purchase, sale or palti.

    Production stock is created through production outputs, never here.
    For palti the source bag count may arrive as ``sourceBags`` or ``bags``.
    """
    type_value = str(_require(raw, "kind")).strip().lower()
    try:
        movement_type = StockMovementType(type_value)
    except ValueError:
        raise MovementValidationError("movement_type", f"unknown movement type: {type_value!r}") from None
    if movement_type == StockMovementType.PRODUCTION:
        raise MovementValidationError(
            "movement_type", "production stock is recorded through production outputs"
        )

    target_packaging_id = None
    if movement_type == StockMovementType.PALTI:
        source_bags = _lookup(raw, "source_bags") or _lookup(raw, "bags")
        if source_bags is None:
            raise MovementValidationError("source_bags", "is required for palti")
        bags = parse_bags(source_bags, "source_bags")
        target_packaging_id = parse_uuid(_require(raw, "target_packaging_id"), "target_packaging_id")
    else:
        bags = parse_bags(_require(raw, "bags"))

    packaging_id = parse_uuid(_require(raw, "packaging_id"), "packaging_id")
    if target_packaging_id is not None and target_packaging_id == packaging_id:
        raise MovementValidationError("target_packaging_id", "must differ from the source packaging")

    quintals = _lookup(raw, "quantity_quintals")
    remarks = _lookup(raw, "remarks")
    return StockMovementDraft(
        movement_date=parse_date(_require(raw, "movement_date"), "movement_date"),
        movement_type=movement_type,
        location_code=_text(raw, "location_code"),
        product_type=_text(raw, "product_type"),
        variety=_text(raw, "variety"),
        packaging_id=packaging_id,
        bags=bags,
        target_packaging_id=target_packaging_id,
        quantity_quintals=None if quintals is None else parse_quantity(quintals, "quantity_quintals"),
        remarks=None if remarks is None else str(remarks),
    )
