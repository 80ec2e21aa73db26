from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from commission_engine.core.enums import Phase
from commission_engine.db.base import Base, JSONType, utcnow

MONEY = Numeric(15, 2)


class CommissionSale(Base):
    """
    One closed-won deal, upserted by the sale source keyed by external_deal_id.

    The commission_* columns are denormalized results written once by the
    calculator; commission_calculated flips false -> true exactly once.
    config_snapshot keeps the effective configuration used, so later config
    edits never reinterpret a historical payout.
    """

    __tablename__ = "commission_sales"
    __table_args__ = (
        Index("ix_commission_sales_desarrollo_fecha", "desarrollo", "fecha_firma"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    external_deal_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    deal_name: Mapped[str | None] = mapped_column(String(500), nullable=True)

    cliente_nombre: Mapped[str | None] = mapped_column(String(500), nullable=True)
    desarrollo: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    producto: Mapped[str | None] = mapped_column(String(500), nullable=True)

    propietario_deal: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    propietario_deal_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    asesor_externo: Mapped[str | None] = mapped_column(String(255), nullable=True)
    asesor_externo_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    metros_cuadrados: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    precio_por_m2: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    valor_total: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    fecha_firma: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # agreed rate supplied by the sale source; the engine never decides it
    commission_rate_percent: Mapped[Decimal | None] = mapped_column(Numeric(9, 6), nullable=True)

    commission_calculated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    commission_total: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    commission_sale_phase: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    commission_post_sale_phase: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    # forfeited pool share (advisor absent, redistribution off)
    commission_unallocated: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))

    calculated_phase_sale_percent: Mapped[Decimal | None] = mapped_column(Numeric(9, 6), nullable=True)
    calculated_phase_post_sale_percent: Mapped[Decimal | None] = mapped_column(Numeric(9, 6), nullable=True)
    config_snapshot: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    calculated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    def phase_value(self, phase: Phase | str) -> Decimal:
        if Phase.parse(phase) is Phase.SALE:
            return self.commission_sale_phase
        return self.commission_post_sale_phase
