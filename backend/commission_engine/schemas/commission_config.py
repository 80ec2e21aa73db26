# commission_engine/schemas/commission_config.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ConfigUpsert(BaseModel):
    """
    Full replacement of one development's configuration ("*" = global default).
    operations_coordinator_percent / marketing_percent left null fall back to
    the global override.
    """
    desarrollo: str = Field(min_length=1, max_length=255)

    phase_sale_percent: Decimal = Field(ge=0, le=100)
    phase_post_sale_percent: Decimal = Field(ge=0, le=100)

    sale_pool_total_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    sale_manager_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    deal_owner_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    external_advisor_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    redistribute_unused_pool: bool = True

    operations_coordinator_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    marketing_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)

    legal_manager_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    post_sale_coordinator_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    customer_service_enabled: bool = False
    customer_service_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    deliveries_enabled: bool = False
    deliveries_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    bonds_enabled: bool = False
    bonds_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)


class ConfigOut(ConfigUpsert):
    id: UUID
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GlobalConfigUpdate(BaseModel):
    config_value: Decimal = Field(ge=0, le=100)
    description: Optional[str] = Field(default=None, max_length=2000)


class GlobalConfigOut(BaseModel):
    id: UUID
    config_key: str
    config_value: Decimal
    description: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: datetime

    class Config:
        from_attributes = True
