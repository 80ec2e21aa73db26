# commission_engine/crud/partner.py
from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, extract, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.core.enums import CollectionStatus, Phase
from commission_engine.core.partner_allocator import PartnerShare
from commission_engine.crud.bulk import insert_or_skip
from commission_engine.models.commission_sale import CommissionSale
from commission_engine.models.partner import PartnerCommission, ProductPartner


async def list_product_partners(db: AsyncSession, sale_ids: Sequence[uuid.UUID]) -> list[ProductPartner]:
    if not sale_ids:
        return []
    rows = (
        await db.execute(
            select(ProductPartner)
            .where(ProductPartner.commission_sale_id.in_(list(sale_ids)))
            .order_by(ProductPartner.commission_sale_id, ProductPartner.participacion.desc())
        )
    ).scalars().all()
    return list(rows)


async def replace_product_partners(
    db: AsyncSession,
    sale_id: uuid.UUID,
    partners: list[dict[str, Any]],
) -> list[ProductPartner]:
    """Partner source ingestion: the given set becomes THE set for the sale."""
    await db.execute(delete(ProductPartner).where(ProductPartner.commission_sale_id == sale_id))
    for p in partners:
        db.add(ProductPartner(commission_sale_id=sale_id, **p))
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return await list_product_partners(db, [sale_id])


async def count_partner_commissions(db: AsyncSession, sale_id: uuid.UUID) -> int:
    res = await db.execute(
        select(func.count(PartnerCommission.id)).where(PartnerCommission.commission_sale_id == sale_id)
    )
    return int(res.scalar() or 0)


async def insert_shares_or_skip(
    db: AsyncSession,
    sale_id: uuid.UUID,
    shares: list[PartnerShare],
    actor_id: str | None,
) -> int:
    rows = [
        {
            "commission_sale_id": sale_id,
            "socio_name": s.socio_name,
            "participacion": s.participacion,
            "sale_phase_amount": s.sale_phase_amount,
            "post_sale_phase_amount": s.post_sale_phase_amount,
            "total_commission_amount": s.total_commission_amount,
            "sale_phase_collection_status": CollectionStatus.PENDING_INVOICE.value,
            "post_sale_phase_collection_status": CollectionStatus.PENDING_INVOICE.value,
            "sale_phase_is_cash_payment": False,
            "post_sale_phase_is_cash_payment": False,
            "calculated_by": actor_id,
        }
        for s in shares
    ]
    return await insert_or_skip(
        db,
        PartnerCommission.__table__,
        rows,
        ["commission_sale_id", "socio_name"],
    )


async def list_partner_commissions(
    db: AsyncSession,
    *,
    sale_id: uuid.UUID | None = None,
    desarrollo: str | None = None,
    year: int | None = None,
    collection_status: CollectionStatus | None = None,
    phase: Phase | None = None,
) -> list[PartnerCommission]:
    """
    collection_status without phase matches either phase; with phase, only that
    phase's status.
    """
    stmt = select(PartnerCommission).join(CommissionSale, CommissionSale.id == PartnerCommission.commission_sale_id)
    if sale_id is not None:
        stmt = stmt.where(PartnerCommission.commission_sale_id == sale_id)
    if desarrollo:
        stmt = stmt.where(CommissionSale.desarrollo == desarrollo)
    if year is not None:
        stmt = stmt.where(extract("year", CommissionSale.fecha_firma) == year)
    if collection_status is not None:
        status = collection_status.value
        if phase is Phase.SALE:
            stmt = stmt.where(PartnerCommission.sale_phase_collection_status == status)
        elif phase is Phase.POST_SALE:
            stmt = stmt.where(PartnerCommission.post_sale_phase_collection_status == status)
        else:
            stmt = stmt.where(
                or_(
                    PartnerCommission.sale_phase_collection_status == status,
                    PartnerCommission.post_sale_phase_collection_status == status,
                )
            )
    stmt = stmt.order_by(CommissionSale.fecha_firma.desc(), PartnerCommission.socio_name.asc())
    return list((await db.execute(stmt)).scalars().all())
