# commission_engine/api/v1/commission_sales.py
from __future__ import annotations

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.api.deps.auth import Actor, require_commission_role
from commission_engine.core.config import settings
from commission_engine.core.errors import CommissionError, NotFound
from commission_engine.core.orchestrator import calculate_batch, ensure_calculated
from commission_engine.crud import commission_distribution as distribution_crud
from commission_engine.crud import commission_rule as rule_crud
from commission_engine.crud import commission_sale as sale_crud
from commission_engine.crud import partner as partner_crud
from commission_engine.db.session import get_db
from commission_engine.models.commission_sale import CommissionSale
from commission_engine.schemas.commission_sale import (
    BatchCalculateRequest,
    BatchReportOut,
    CalculateRequest,
    CalculationOutcomeOut,
    SaleDetailOut,
    SaleListOut,
    SaleOut,
    SaleUpsert,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/commissions", tags=["commissions"])


@router.get("/sales", response_model=SaleListOut)
async def list_sales(
    desarrollo: Optional[str] = None,
    propietario_deal: Optional[str] = None,
    fecha_firma_from: Optional[date] = None,
    fecha_firma_to: Optional[date] = None,
    commission_calculated: Optional[bool] = None,
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    rows, total = await sale_crud.list_sales(
        db,
        limit=limit,
        offset=offset,
        desarrollo=desarrollo,
        propietario_deal=propietario_deal,
        fecha_firma_from=fecha_firma_from,
        fecha_firma_to=fecha_firma_to,
        commission_calculated=commission_calculated,
    )
    return SaleListOut(items=rows, total=total, limit=limit, offset=offset)


@router.get("/sales/{sale_id}", response_model=SaleDetailOut)
async def get_sale(
    sale_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    sale = await db.get(CommissionSale, sale_id)
    if not sale:
        raise NotFound("Sale not found", sale_id=str(sale_id))

    return SaleDetailOut(
        **SaleOut.model_validate(sale).model_dump(),
        distributions=await distribution_crud.list_for_sale(db, sale.id),
        adjustments=await distribution_crud.list_adjustments(db, sale.id),
        partner_commissions=await partner_crud.list_partner_commissions(db, sale_id=sale.id),
        rule_bonuses=await rule_crud.list_bonuses(db, sale.id),
    )


@router.post("/sales", response_model=SaleOut)
async def upsert_sale(
    payload: SaleUpsert,
    response: Response,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    sale, created = await sale_crud.upsert_sale(db, payload.model_dump())
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK

    if settings.AUTO_CALCULATE_ON_INGEST and not sale.commission_calculated:
        try:
            await ensure_calculated(db, sale.id, actor_id=actor.user_id)
        except CommissionError as e:
            # the upsert itself stands; calculation can be retried explicitly
            logger.warning("Auto-calculation of %s failed: %s (%s)", sale.external_deal_id, e.message, e.code)
        await db.refresh(sale)

    return sale


@router.post("/sales/{sale_id}/calculate", response_model=CalculationOutcomeOut)
async def calculate_sale(
    sale_id: UUID,
    payload: Optional[CalculateRequest] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    outcome = await ensure_calculated(
        db,
        sale_id,
        actor_id=actor.user_id,
        commission_total=payload.commission_total if payload else None,
    )
    return CalculationOutcomeOut(**outcome.__dict__)


@router.post("/calculate", response_model=BatchReportOut)
async def calculate_many(
    payload: BatchCalculateRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    limit = min(payload.limit, settings.COMMISSION_BATCH_MAX_SALES)
    sale_ids = await sale_crud.list_sale_ids(
        db,
        limit=limit,
        desarrollo=payload.desarrollo,
        propietario_deal=payload.propietario_deal,
        fecha_firma_from=payload.fecha_firma_from,
        fecha_firma_to=payload.fecha_firma_to,
        year=payload.year,
        commission_calculated=False if payload.only_uncalculated else None,
    )
    report = await calculate_batch(db, sale_ids, actor_id=actor.user_id)
    return BatchReportOut(**report.__dict__)
