# commission_engine/crud/commission_distribution.py
from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.core.amounts import money, percent
from commission_engine.core.distribution_calculator import DistributionLine
from commission_engine.core.enums import CollectionStatus
from commission_engine.crud.bulk import insert_or_skip
from commission_engine.models.commission_adjustment import CommissionAdjustment
from commission_engine.models.commission_distribution import CommissionDistribution


async def count_for_sale(db: AsyncSession, sale_id: uuid.UUID) -> int:
    res = await db.execute(
        select(func.count(CommissionDistribution.id)).where(CommissionDistribution.sale_id == sale_id)
    )
    return int(res.scalar() or 0)


async def list_for_sale(db: AsyncSession, sale_id: uuid.UUID) -> list[CommissionDistribution]:
    rows = (
        await db.execute(
            select(CommissionDistribution)
            .where(CommissionDistribution.sale_id == sale_id)
            .order_by(CommissionDistribution.phase.desc(), CommissionDistribution.role_type.asc())
        )
    ).scalars().all()
    return list(rows)


async def insert_lines_or_skip(
    db: AsyncSession,
    sale_id: uuid.UUID,
    lines: list[DistributionLine],
) -> int:
    rows = [
        {
            "sale_id": sale_id,
            "role_type": line.role_type.value,
            "phase": line.phase.value,
            "person_name": line.person_name,
            "person_id": line.person_id,
            "percent_assigned": percent(line.percent_assigned),
            "role_percent": line.role_percent,
            "percent_basis": line.percent_basis.value,
            "amount_calculated": money(line.amount),
            "collection_status": CollectionStatus.PENDING_INVOICE.value,
            "is_cash_payment": False,
        }
        for line in lines
    ]
    return await insert_or_skip(
        db,
        CommissionDistribution.__table__,
        rows,
        ["sale_id", "role_type", "phase"],
    )


async def list_adjustments(db: AsyncSession, sale_id: uuid.UUID) -> list[CommissionAdjustment]:
    rows = (
        await db.execute(
            select(CommissionAdjustment)
            .where(CommissionAdjustment.sale_id == sale_id)
            .order_by(CommissionAdjustment.adjusted_at.asc())
        )
    ).scalars().all()
    return list(rows)
