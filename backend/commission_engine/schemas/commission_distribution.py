# commission_engine/schemas/commission_distribution.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from commission_engine.core.enums import CollectionStatus


class DistributionOut(BaseModel):
    id: UUID
    sale_id: UUID
    role_type: str
    person_name: str
    person_id: Optional[str] = None
    phase: str

    percent_assigned: Decimal
    role_percent: Decimal
    percent_basis: str
    amount_calculated: Decimal

    collection_status: str
    collected_at: Optional[datetime] = None
    status_updated_by: Optional[str] = None
    is_cash_payment: bool = False

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PhaseTotals(BaseModel):
    """Reconciliation view: after adjustments a phase may no longer add up."""
    phase: str
    phase_value: Decimal
    role_count: int
    percent_total: Decimal
    amount_total: Decimal
    unallocated: Decimal
    # phase_value - amount_total - unallocated
    difference: Decimal


class DistributionListOut(BaseModel):
    sale_id: UUID
    items: list[DistributionOut]
    totals: list[PhaseTotals]


class CollectionStatusUpdate(BaseModel):
    collection_status: CollectionStatus
