# commission_engine/schemas/commission_rule.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from commission_engine.core.enums import PeriodType, RuleOperator


class RuleCreate(BaseModel):
    """
    periodo_value: "2025" (anual), "2025" or "2025-Q1" (trimestre; the rule
    covers every quarter of that year), "2025-01" (mensual).
    """
    desarrollo: str = Field(min_length=1, max_length=255)
    rule_name: str = Field(min_length=1, max_length=500)
    periodo_type: PeriodType
    periodo_value: str = Field(min_length=4, max_length=50)
    operador: RuleOperator
    unidades_vendidas: int = Field(gt=0)
    porcentaje_comision: Decimal = Field(ge=0, le=100)
    porcentaje_iva: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    activo: bool = True
    prioridad: int = 0


class RuleUpdate(BaseModel):
    desarrollo: Optional[str] = Field(default=None, min_length=1, max_length=255)
    rule_name: Optional[str] = Field(default=None, min_length=1, max_length=500)
    periodo_type: Optional[PeriodType] = None
    periodo_value: Optional[str] = Field(default=None, min_length=4, max_length=50)
    operador: Optional[RuleOperator] = None
    unidades_vendidas: Optional[int] = Field(default=None, gt=0)
    porcentaje_comision: Optional[Decimal] = Field(default=None, ge=0, le=100)
    porcentaje_iva: Optional[Decimal] = Field(default=None, ge=0, le=100)
    activo: Optional[bool] = None
    prioridad: Optional[int] = None


class RuleOut(BaseModel):
    id: UUID
    desarrollo: str
    rule_name: str
    periodo_type: str
    periodo_value: str
    operador: str
    unidades_vendidas: int
    porcentaje_comision: Decimal
    porcentaje_iva: Decimal
    activo: bool
    prioridad: int

    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RuleBonusOut(BaseModel):
    """Reference line: paid on top of the commission, outside both phases."""
    id: UUID
    sale_id: UUID
    rule_id: UUID
    rule_name: str
    percent: Decimal
    amount: Decimal
    iva_amount: Decimal
    period_label: str
    units_sold: int
    units_required: int
    operador: str
    fulfilled: bool
    created_at: datetime

    class Config:
        from_attributes = True
