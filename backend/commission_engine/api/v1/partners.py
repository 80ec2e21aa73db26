# commission_engine/api/v1/partners.py
from __future__ import annotations

import logging
import uuid
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.api.deps.auth import Actor, require_commission_role
from commission_engine.core.collection_tracker import (
    parse_phase,
    set_partner_cash_payment,
    set_partner_commission_status,
)
from commission_engine.core.enums import CollectionStatus
from commission_engine.core.errors import NotFound, ValidationError
from commission_engine.crud import partner as partner_crud
from commission_engine.db.session import get_db
from commission_engine.models.commission_sale import CommissionSale
from commission_engine.schemas.partner import (
    PartnerCashPaymentUpdate,
    PartnerCommissionOut,
    PartnerCommissionStatusUpdate,
    ProductPartnerOut,
    ProductPartnerReplace,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/commissions", tags=["commission-partners"])


def _parse_sale_ids(sale_id: Optional[UUID], sale_ids: Optional[str]) -> list[UUID]:
    if sale_id is not None:
        return [sale_id]
    if not sale_ids:
        raise ValidationError("Provide sale_id or sale_ids.")
    out: list[UUID] = []
    for raw in sale_ids.split(","):
        raw = raw.strip()
        if not raw:
            continue
        try:
            out.append(uuid.UUID(raw))
        except ValueError:
            raise ValidationError(f"Invalid sale id {raw!r} in sale_ids.") from None
    if not out:
        raise ValidationError("Provide sale_id or sale_ids.")
    return out


@router.get("/partner-commissions", response_model=list[PartnerCommissionOut])
async def list_partner_commissions(
    desarrollo: Optional[str] = None,
    year: Optional[int] = None,
    collection_status: Optional[CollectionStatus] = None,
    phase: Optional[str] = None,
    sale_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    return await partner_crud.list_partner_commissions(
        db,
        sale_id=sale_id,
        desarrollo=desarrollo,
        year=year,
        collection_status=collection_status,
        phase=parse_phase(phase) if phase else None,
    )


@router.patch("/partner-commissions", response_model=PartnerCommissionOut)
async def update_partner_commission_status(
    payload: PartnerCommissionStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    return await set_partner_commission_status(
        db,
        payload.id,
        payload.phase,
        payload.collection_status,
        actor.user_id,
    )


@router.patch("/partner-commissions/cash-payment", response_model=PartnerCommissionOut)
async def update_partner_cash_payment(
    payload: PartnerCashPaymentUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    return await set_partner_cash_payment(
        db,
        payload.id,
        payload.phase,
        payload.is_cash_payment,
        actor.user_id,
    )


@router.get("/product-partners", response_model=list[ProductPartnerOut])
async def list_product_partners(
    sale_id: Optional[UUID] = None,
    sale_ids: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    return await partner_crud.list_product_partners(db, _parse_sale_ids(sale_id, sale_ids))


@router.put("/product-partners/{sale_id}", response_model=list[ProductPartnerOut])
async def replace_product_partners(
    sale_id: UUID,
    payload: ProductPartnerReplace,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    sale = await db.get(CommissionSale, sale_id)
    if not sale:
        raise NotFound("Sale not found", sale_id=str(sale_id))

    rows = await partner_crud.replace_product_partners(
        db, sale_id, [p.model_dump() for p in payload.partners]
    )
    logger.info("Sale %s: %d product partners synced by %s", sale_id, len(rows), actor.user_id)
    return rows
