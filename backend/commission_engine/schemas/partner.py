# commission_engine/schemas/partner.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from commission_engine.core.enums import CollectionStatus


class ProductPartnerIn(BaseModel):
    socio_name: str = Field(min_length=1, max_length=500)
    participacion: Decimal = Field(ge=0, le=100)
    product_id: Optional[str] = Field(default=None, max_length=255)

    @field_validator("socio_name")
    @classmethod
    def _strip(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("socio_name cannot be blank")
        return v


class ProductPartnerReplace(BaseModel):
    partners: list[ProductPartnerIn]

    @field_validator("partners")
    @classmethod
    def _unique_names(cls, v: list[ProductPartnerIn]) -> list[ProductPartnerIn]:
        names = [p.socio_name for p in v]
        if len(names) != len(set(names)):
            raise ValueError("socio_name must be unique per sale")
        return v


class ProductPartnerOut(BaseModel):
    id: UUID
    commission_sale_id: UUID
    product_id: Optional[str] = None
    socio_name: str
    participacion: Decimal
    synced_at: datetime

    class Config:
        from_attributes = True


class PartnerCommissionOut(BaseModel):
    id: UUID
    commission_sale_id: UUID
    socio_name: str
    participacion: Decimal

    sale_phase_amount: Decimal
    post_sale_phase_amount: Decimal
    total_commission_amount: Decimal

    sale_phase_collection_status: str
    post_sale_phase_collection_status: str
    sale_phase_collected_at: Optional[datetime] = None
    post_sale_phase_collected_at: Optional[datetime] = None
    sale_phase_is_cash_payment: bool = False
    post_sale_phase_is_cash_payment: bool = False

    calculated_by: Optional[str] = None
    calculated_at: datetime
    updated_by: Optional[str] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class PartnerCommissionStatusUpdate(BaseModel):
    id: UUID
    collection_status: CollectionStatus
    # sale | post_sale (legacy sale_phase / post_sale_phase accepted)
    phase: str = Field(min_length=1)


class PartnerCashPaymentUpdate(BaseModel):
    id: UUID
    # sale | post_sale (legacy sale_phase / post_sale_phase accepted)
    phase: str = Field(min_length=1)
    is_cash_payment: bool
