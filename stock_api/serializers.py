"""Domain results to camelCase JSON payloads."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from stock_engines.consumption import OutturnTotals
from stock_engines.finished_goods import FinishedGoodsLedger, KeyBalance, LedgerEntry
from stock_engines.integrity import IntegrityReport
from stock_engines.reconstruction import DailyBalance, DaySheet
from stock_kernel.domain.approval import BulkOutcome
from stock_kernel.domain.movements import (
    OpeningBalance,
    PaddyMovement,
    ProductionOutput,
    StockMovement,
)
from stock_kernel.domain.quantities import quantize_quintals
from stock_services.balance_query_service import OutturnAvailability, PaddyLedgerView
from stock_services.movement_service import BatchResult
from stock_services.production_service import ClearingResult


def _num(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


def _id(value) -> str | None:
    return None if value is None else str(value)


# ----------------------------------------------------------------------
# Paddy ledger
# ----------------------------------------------------------------------


def daily_row(row: DailyBalance) -> dict[str, Any]:
    return {
        "variety": row.variety,
        "outturnCode": row.outturn_code,
        "outturnId": _id(row.outturn_id),
        "openingBags": row.opening_bags,
        "inwardBags": row.inward_bags,
        "outwardBags": row.outward_bags,
        "closingBags": row.closing_bags,
        "openingWeight": _num(row.opening_weight),
        "inwardWeight": _num(row.inward_weight),
        "outwardWeight": _num(row.outward_weight),
        "closingWeight": _num(row.closing_weight),
    }


def day_sheet(day: DaySheet) -> dict[str, Any]:
    return {
        "date": day.balance_date.isoformat(),
        "openingBags": day.opening_bags,
        "closingBags": day.closing_bags,
        "warehouse": [daily_row(r) for r in day.free_rows],
        "outturns": [daily_row(r) for r in day.earmarked_rows],
    }


def integrity(report: IntegrityReport) -> dict[str, Any]:
    return {
        "clean": report.is_clean,
        "violations": [
            {
                "code": v.code,
                "date": v.balance_date.isoformat(),
                "variety": v.variety,
                "outturnCode": v.outturn_code,
                "message": v.message,
            }
            for v in report.violations
        ],
    }


def paddy_ledger(view: PaddyLedgerView) -> dict[str, Any]:
    recon = view.reconstruction
    return {
        "locationId": str(recon.location_id),
        "locationCode": view.location.code if view.location else None,
        "outturnCode": view.outturn.code if view.outturn else None,
        "dateFrom": recon.date_from.isoformat(),
        "dateTo": recon.date_to.isoformat(),
        "varietyFilter": recon.variety_filter,
        "days": [day_sheet(d) for d in recon.days],
        "integrity": integrity(view.integrity),
    }


# ----------------------------------------------------------------------
# Outturns and production
# ----------------------------------------------------------------------


def availability(result: OutturnAvailability) -> dict[str, Any]:
    c = result.consumption
    return {
        "outturnId": str(result.outturn.id),
        "outturnCode": result.outturn.code,
        "asOf": c.as_of.isoformat(),
        "monthStart": c.month_start.isoformat(),
        "availablePaddyBags": result.bookable_bags,
        "bookableBags": result.bookable_bags,
        "availableOnDateBags": c.available_bags,
        "totalPaddyBags": c.shifted_bags,
        "usedPaddyBags": c.consumed_bags,
        "producedPaddyBags": c.produced_bags_deducted,
        "clearedPaddyBags": c.cleared_bags,
        "isCleared": result.outturn.is_cleared,
        "clearedAt": result.outturn.cleared_at.isoformat() if result.outturn.cleared_at else None,
    }


def outturn_totals(totals: OutturnTotals) -> dict[str, Any]:
    return {
        "outturnId": str(totals.outturn_id),
        "shiftedBags": totals.shifted_bags,
        "shiftedNetWeight": _num(totals.shifted_net_weight),
        "producedPaddyBags": totals.produced_bags_deducted,
        "producedQuintals": _num(totals.produced_quintals),
        "clearedBags": totals.cleared_bags,
        "yieldPercentage": _num(quantize_quintals(totals.yield_percentage)),
    }


def production(p: ProductionOutput) -> dict[str, Any]:
    return {
        "id": str(p.id),
        "seq": p.seq,
        "productionDate": p.production_date.isoformat(),
        "outturnId": str(p.outturn_id),
        "productType": p.product_type,
        "variety": p.variety,
        "packagingId": str(p.packaging_id),
        "bags": p.bags,
        "quantityQuintals": _num(p.quantity_quintals),
        "paddyBagsDeducted": p.paddy_bags_deducted,
        "locationCode": p.location_code,
    }


def clearing(result: ClearingResult) -> dict[str, Any]:
    o = result.outturn
    return {
        "outturnId": str(o.id),
        "outturnCode": o.code,
        "isCleared": o.is_cleared,
        "clearedOn": o.cleared_on.isoformat() if o.cleared_on else None,
        "clearedAt": o.cleared_at.isoformat() if o.cleared_at else None,
        "remainingBags": o.remaining_bags,
        "movement": paddy_movement(result.movement),
    }


# ----------------------------------------------------------------------
# Movements
# ----------------------------------------------------------------------


def paddy_movement(m: PaddyMovement) -> dict[str, Any]:
    return {
        "id": str(m.id),
        "seq": m.seq,
        "date": m.movement_date.isoformat(),
        "kind": m.kind.value,
        "variety": m.variety,
        "bags": m.bags,
        "netWeight": _num(m.net_weight),
        "status": m.status.value,
        "fromLocationId": _id(m.from_location_id),
        "toLocationId": _id(m.to_location_id),
        "outturnId": _id(m.outturn_id),
        "fromOutturnId": _id(m.from_outturn_id),
        "remarks": m.remarks,
    }


def batch(result: BatchResult) -> dict[str, Any]:
    return {
        "created": len(result.created),
        "failed": len(result.failed),
        "items": [
            {
                "index": i.index,
                "succeeded": i.succeeded,
                "movement": paddy_movement(i.movement) if i.movement else None,
                "error": i.error_code,
                "message": i.message,
            }
            for i in result.items
        ],
    }


def bulk(outcome: BulkOutcome) -> dict[str, Any]:
    return {
        "decision": outcome.decision.value,
        "succeeded": len(outcome.succeeded),
        "failed": len(outcome.failed),
        "items": [
            {
                "movementId": str(i.movement_id),
                "outcome": i.outcome.value,
                "error": i.error_code,
                "message": i.message,
            }
            for i in outcome.items
        ],
    }


def opening_balance(b: OpeningBalance) -> dict[str, Any]:
    return {
        "id": str(b.id),
        "locationId": str(b.location_id),
        "variety": b.variety,
        "date": b.balance_date.isoformat(),
        "bags": b.bags,
        "netWeight": _num(b.net_weight),
        "outturnId": _id(b.outturn_id),
        "remarks": b.remarks,
    }


def stock_movement(m: StockMovement) -> dict[str, Any]:
    return {
        "id": str(m.id),
        "seq": m.seq,
        "date": m.movement_date.isoformat(),
        "movementType": m.movement_type.value,
        "locationCode": m.location_code,
        "productType": m.product_type,
        "variety": m.variety,
        "packagingId": str(m.packaging_id),
        "bags": m.bags,
        "quantityQuintals": _num(m.quantity_quintals),
        "targetPackagingId": _id(m.target_packaging_id),
        "targetBags": m.target_bags,
        "targetQuantityQuintals": _num(m.target_quantity_quintals),
        "shortageKg": _num(m.shortage_kg),
        "shortageBags": _num(m.shortage_bags),
        "shortagePercentage": _num(m.shortage_percentage),
        "remarks": m.remarks,
    }


# ----------------------------------------------------------------------
# Finished-goods ledger
# ----------------------------------------------------------------------


def key_balance(b: KeyBalance) -> dict[str, Any]:
    return {
        "productType": b.key.product_type,
        "variety": b.key.variety,
        "packagingId": str(b.key.packaging_id),
        "bags": b.bags,
        "quintals": _num(b.quintals),
    }


def ledger_entry(e: LedgerEntry) -> dict[str, Any]:
    return {
        "movementId": str(e.movement_id),
        "date": e.entry_date.isoformat(),
        "seq": e.seq,
        "movementType": e.movement_type.value,
        "productType": e.key.product_type,
        "variety": e.key.variety,
        "packagingId": str(e.key.packaging_id),
        "bags": e.bags,
        "quintals": _num(e.quintals),
        "runningBags": e.running_bags,
        "runningQuintals": _num(e.running_quintals),
        "shortageKg": _num(e.shortage_kg),
        "counterpartPackagingId": _id(e.counterpart_packaging_id),
    }


def finished_goods_ledger(result: FinishedGoodsLedger) -> dict[str, Any]:
    p = result.pagination
    return {
        "locationCode": result.location_code,
        "dateFrom": result.date_from.isoformat() if result.date_from else None,
        "dateTo": result.date_to.isoformat() if result.date_to else None,
        "openingBalance": [key_balance(b) for b in result.opening_balance],
        "entries": [ledger_entry(e) for e in result.entries],
        "closingBalance": [key_balance(b) for b in result.closing_balance],
        "totals": {
            kind.value: {
                "movements": t.movements,
                "bagsIn": t.bags_in,
                "bagsOut": t.bags_out,
                "quintalsIn": _num(t.quintals_in),
                "quintalsOut": _num(t.quintals_out),
                "shortageKg": _num(t.shortage_kg),
            }
            for kind, t in result.totals.items()
        },
        "pagination": {
            "page": p.page,
            "limit": p.page_size,
            "totalEntries": p.total_entries,
            "totalPages": p.total_pages,
            "hasNext": p.has_next,
            "hasPrevious": p.has_previous,
        },
    }
