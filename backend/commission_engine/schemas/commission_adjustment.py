# commission_engine/schemas/commission_adjustment.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from commission_engine.core.enums import AdjustmentType, RoleType
from commission_engine.schemas.commission_distribution import DistributionOut


class AdjustmentCreate(BaseModel):
    """
    percent_change -> new_value is the new percent of the phase (0..100)
    amount_change  -> new_value is the new amount
    role_change    -> new_role_type (+ optional new_person_name)
    """
    distribution_id: UUID
    adjustment_type: AdjustmentType
    new_value: Optional[Decimal] = None
    new_role_type: Optional[RoleType] = None
    new_person_name: Optional[str] = Field(default=None, max_length=255)
    reason: Optional[str] = Field(default=None, max_length=2000)
    notes: Optional[str] = Field(default=None, max_length=4000)

    @model_validator(mode="after")
    def _check_shape(self) -> "AdjustmentCreate":
        if self.adjustment_type == AdjustmentType.ROLE_CHANGE:
            if self.new_role_type is None:
                raise ValueError("new_role_type is required for role_change")
        elif self.new_value is None:
            raise ValueError(f"new_value is required for {self.adjustment_type.value}")
        return self


class AdjustmentOut(BaseModel):
    id: UUID
    distribution_id: UUID
    sale_id: UUID
    adjustment_type: str
    old_value: Optional[Decimal] = None
    new_value: Optional[Decimal] = None
    old_role_type: Optional[str] = None
    new_role_type: Optional[str] = None
    old_amount: Decimal
    new_amount: Decimal
    amount_impact: Decimal
    adjusted_by: str
    adjusted_at: datetime
    reason: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class AdjustmentResult(BaseModel):
    adjustment: AdjustmentOut
    distribution: DistributionOut
