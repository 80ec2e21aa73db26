# commission_engine/schemas/commission_sale.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from commission_engine.schemas.commission_adjustment import AdjustmentOut
from commission_engine.schemas.commission_distribution import DistributionOut
from commission_engine.schemas.commission_rule import RuleBonusOut
from commission_engine.schemas.partner import PartnerCommissionOut


class SaleUpsert(BaseModel):
    """
    Sent by the sale source (CRM sync) for every closed-won deal.
    precio_por_m2 is derived from valor_total / metros_cuadrados when omitted.
    """
    external_deal_id: str = Field(min_length=1, max_length=255)
    deal_name: Optional[str] = Field(default=None, max_length=500)
    cliente_nombre: Optional[str] = Field(default=None, max_length=500)
    desarrollo: str = Field(min_length=1, max_length=255)
    producto: Optional[str] = Field(default=None, max_length=500)

    propietario_deal: str = Field(min_length=1, max_length=255)
    propietario_deal_id: Optional[str] = Field(default=None, max_length=255)
    asesor_externo: Optional[str] = Field(default=None, max_length=255)
    asesor_externo_id: Optional[str] = Field(default=None, max_length=255)

    metros_cuadrados: Decimal
    precio_por_m2: Optional[Decimal] = None
    valor_total: Decimal
    fecha_firma: date

    commission_rate_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)


class SaleOut(BaseModel):
    id: UUID
    external_deal_id: str
    deal_name: Optional[str] = None
    cliente_nombre: Optional[str] = None
    desarrollo: str
    producto: Optional[str] = None

    propietario_deal: str
    propietario_deal_id: Optional[str] = None
    asesor_externo: Optional[str] = None
    asesor_externo_id: Optional[str] = None

    metros_cuadrados: Decimal
    precio_por_m2: Decimal
    valor_total: Decimal
    fecha_firma: date
    commission_rate_percent: Optional[Decimal] = None

    commission_calculated: bool
    commission_total: Decimal
    commission_sale_phase: Decimal
    commission_post_sale_phase: Decimal
    commission_unallocated: Decimal
    calculated_phase_sale_percent: Optional[Decimal] = None
    calculated_phase_post_sale_percent: Optional[Decimal] = None
    config_snapshot: Optional[dict[str, Any]] = None
    calculated_at: Optional[datetime] = None
    calculated_by: Optional[str] = None

    synced_at: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SaleListOut(BaseModel):
    items: list[SaleOut]
    total: int
    limit: int
    offset: int


class SaleDetailOut(SaleOut):
    distributions: list[DistributionOut] = []
    adjustments: list[AdjustmentOut] = []
    partner_commissions: list[PartnerCommissionOut] = []
    rule_bonuses: list[RuleBonusOut] = []


class CalculateRequest(BaseModel):
    # overrides valor_total * commission_rate_percent
    commission_total: Optional[Decimal] = Field(default=None, ge=0)


class CalculationOutcomeOut(BaseModel):
    sale_id: UUID
    status: str
    distributions_created: int
    partner_commissions_created: int
    rule_bonuses_created: int = 0


class BatchCalculateRequest(BaseModel):
    desarrollo: Optional[str] = None
    propietario_deal: Optional[str] = None
    fecha_firma_from: Optional[date] = None
    fecha_firma_to: Optional[date] = None
    year: Optional[int] = Field(default=None, ge=1900, le=3000)
    only_uncalculated: bool = True
    limit: int = Field(default=1000, ge=1)


class BatchReportOut(BaseModel):
    processed: int
    succeeded: int
    already_calculated: int
    skipped: int
    failed: int
    errors: list[dict[str, Any]]
