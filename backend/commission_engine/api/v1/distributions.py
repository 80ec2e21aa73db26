# commission_engine/api/v1/distributions.py
from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.api.deps.auth import Actor, require_commission_role
from commission_engine.core.adjustment_ledger import AdjustmentChange, adjust
from commission_engine.core.collection_tracker import set_distribution_status
from commission_engine.core.enums import Phase
from commission_engine.core.errors import NotFound
from commission_engine.crud import commission_distribution as distribution_crud
from commission_engine.db.session import get_db
from commission_engine.models.commission_sale import CommissionSale
from commission_engine.schemas.commission_adjustment import AdjustmentCreate, AdjustmentOut, AdjustmentResult
from commission_engine.schemas.commission_distribution import (
    CollectionStatusUpdate,
    DistributionListOut,
    DistributionOut,
    PhaseTotals,
)

router = APIRouter(prefix="/commissions", tags=["commission-distributions"])


async def _get_sale(db: AsyncSession, sale_id: UUID) -> CommissionSale:
    sale = await db.get(CommissionSale, sale_id)
    if not sale:
        raise NotFound("Sale not found", sale_id=str(sale_id))
    return sale


@router.get("/distributions", response_model=DistributionListOut)
async def list_distributions(
    sale_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    sale = await _get_sale(db, sale_id)
    rows = await distribution_crud.list_for_sale(db, sale.id)

    totals: list[PhaseTotals] = []
    for phase in Phase:
        phase_rows = [r for r in rows if r.phase == phase.value]
        phase_value = sale.phase_value(phase)
        unallocated = sale.commission_unallocated if phase is Phase.SALE else Decimal("0")
        amount_total = sum((r.amount_calculated for r in phase_rows), Decimal("0"))
        totals.append(
            PhaseTotals(
                phase=phase.value,
                phase_value=phase_value,
                role_count=len(phase_rows),
                percent_total=sum((r.percent_assigned for r in phase_rows), Decimal("0")),
                amount_total=amount_total,
                unallocated=unallocated,
                difference=phase_value - amount_total - unallocated,
            )
        )

    return DistributionListOut(sale_id=sale.id, items=rows, totals=totals)


@router.patch("/distributions/{distribution_id}/collection-status", response_model=DistributionOut)
async def update_distribution_status(
    distribution_id: UUID,
    payload: CollectionStatusUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    return await set_distribution_status(db, distribution_id, payload.collection_status, actor.user_id)


@router.post("/adjustments", response_model=AdjustmentResult, status_code=status.HTTP_201_CREATED)
async def create_adjustment(
    payload: AdjustmentCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    change = AdjustmentChange(
        adjustment_type=payload.adjustment_type,
        new_value=payload.new_value,
        new_role_type=payload.new_role_type,
        new_person_name=payload.new_person_name,
        reason=payload.reason,
        notes=payload.notes,
    )
    entry, dist = await adjust(db, payload.distribution_id, change, actor.user_id)
    return AdjustmentResult(adjustment=entry, distribution=dist)


@router.get("/adjustments", response_model=list[AdjustmentOut])
async def list_adjustments(
    sale_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    sale = await _get_sale(db, sale_id)
    return await distribution_crud.list_adjustments(db, sale.id)
