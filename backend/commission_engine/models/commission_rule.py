from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from commission_engine.db.base import Base, utcnow


class CommissionRule(Base):
    """
    Volume rule per development: when the units sold in the period of a sale
    compare to unidades_vendidas via operador, the sale earns
    porcentaje_comision of valor_total as a rule bonus.

    periodo_value: "2025" (anual / trimestre), "2025-Q1" (trimestre), "2025-01" (mensual).
    A trimestre rule covers every quarter of its year; units are counted in the
    quarter of the sale.
    """

    __tablename__ = "commission_rules"
    __table_args__ = (
        CheckConstraint("periodo_type IN ('trimestre', 'mensual', 'anual')", name="ck_commission_rules_periodo_type"),
        CheckConstraint("operador IN ('=', '>=', '<=')", name="ck_commission_rules_operador"),
        CheckConstraint("unidades_vendidas > 0", name="ck_commission_rules_unidades"),
        Index("ix_commission_rules_periodo", "periodo_type", "periodo_value"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    desarrollo: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    rule_name: Mapped[str] = mapped_column(String(500), nullable=False)

    periodo_type: Mapped[str] = mapped_column(String(20), nullable=False)
    periodo_value: Mapped[str] = mapped_column(String(50), nullable=False)
    operador: Mapped[str] = mapped_column(String(10), nullable=False)
    unidades_vendidas: Mapped[int] = mapped_column(Integer, nullable=False)

    porcentaje_comision: Mapped[Decimal] = mapped_column(Numeric(9, 6), nullable=False)
    porcentaje_iva: Mapped[Decimal] = mapped_column(Numeric(9, 6), nullable=False, default=Decimal("0"))

    activo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    # display order only; every applicable rule applies
    prioridad: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class CommissionRuleBonus(Base):
    """
    Outcome of one rule for one sale, written with the first calculation.

    Reference only: it is paid on top of the commission and never counted in
    the sale or post-sale phase balance. Rules whose period covers the sale but
    whose unit condition failed are kept with amount 0 and fulfilled = false.
    rule_id is not a foreign key so deleting a rule keeps the history.
    """

    __tablename__ = "commission_rule_bonuses"
    __table_args__ = (
        UniqueConstraint("sale_id", "rule_id", name="uq_commission_rule_bonuses_sale_rule"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    sale_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("commission_sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rule_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    rule_name: Mapped[str] = mapped_column(String(500), nullable=False)

    percent: Mapped[Decimal] = mapped_column(Numeric(9, 6), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    iva_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))

    period_label: Mapped[str] = mapped_column(String(20), nullable=False)
    units_sold: Mapped[int] = mapped_column(Integer, nullable=False)
    units_required: Mapped[int] = mapped_column(Integer, nullable=False)
    operador: Mapped[str] = mapped_column(String(10), nullable=False)
    fulfilled: Mapped[bool] = mapped_column(Boolean, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
