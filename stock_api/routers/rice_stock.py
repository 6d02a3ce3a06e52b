"""Finished-goods (packed rice) ledger and movements."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stock_api import serializers
from stock_api.deps import get_actor, get_db, get_policy, optional_date
from stock_engines.finished_goods import ProductFilter
from stock_kernel.domain.ingestion import parse_uuid
from stock_kernel.domain.policy import StockPolicy
from stock_services.balance_query_service import BalanceQueryService
from stock_services.finished_goods_service import FinishedGoodsService

router = APIRouter(prefix="/rice-stock-management", tags=["rice-stock"])


@router.get("/ledger")
def ledger(
    locationCode: str,
    dateFrom: str | None = None,
    dateTo: str | None = None,
    productType: str | None = None,
    variety: str | None = None,
    packagingId: str | None = None,
    page: int = 1,
    limit: int | None = None,
    db: Session = Depends(get_db),
    policy: StockPolicy = Depends(get_policy),
):
    product_filter = ProductFilter(
        product_type=productType,
        variety=variety,
        packaging_id=parse_uuid(packagingId, "packagingId") if packagingId else None,
    )
    result = BalanceQueryService(db, policy).finished_goods_ledger(
        locationCode,
        product_filter=product_filter,
        date_from=optional_date(dateFrom, "dateFrom"),
        date_to=optional_date(dateTo, "dateTo"),
        page=page,
        page_size=limit,
    )
    return serializers.finished_goods_ledger(result)


@router.post("/movements", status_code=201)
def record_movement(
    payload: dict,
    db: Session = Depends(get_db),
    actor: UUID = Depends(get_actor),
    policy: StockPolicy = Depends(get_policy),
):
    movement = FinishedGoodsService(db, policy).record_movement(payload, actor)
    db.commit()
    return serializers.stock_movement(movement)
