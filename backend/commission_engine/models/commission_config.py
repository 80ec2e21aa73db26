from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from commission_engine.db.base import Base, utcnow

# Reserved `desarrollo` value for the configuration used when a development has none.
GLOBAL_DEFAULT_DESARROLLO = "*"

PERCENT = Numeric(9, 6)


class CommissionConfig(Base):
    """
    Per-development commission split.

    Sale phase:
      - sale_pool_total_percent of the phase value is the pool, split among
        sale_manager / deal_owner / external_advisor (percent of pool).
      - operations_coordinator / marketing are percent of the TOTAL commission.
        NULL here means "not set for this development" -> global override applies.
    Post-sale phase:
      - legal_manager + post_sale_coordinator always; customer_service /
        deliveries / bonds only when enabled. Percent of the post-sale phase.
    """

    __tablename__ = "commission_configs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    desarrollo: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)

    phase_sale_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    phase_post_sale_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)

    sale_pool_total_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False, default=Decimal("0"))
    sale_manager_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False, default=Decimal("0"))
    deal_owner_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False, default=Decimal("0"))
    external_advisor_percent: Mapped[Decimal | None] = mapped_column(PERCENT, nullable=True)
    # what happens to the advisor share when the sale has no external advisor
    redistribute_unused_pool: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    operations_coordinator_percent: Mapped[Decimal | None] = mapped_column(PERCENT, nullable=True)
    marketing_percent: Mapped[Decimal | None] = mapped_column(PERCENT, nullable=True)

    legal_manager_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False, default=Decimal("0"))
    post_sale_coordinator_percent: Mapped[Decimal] = mapped_column(PERCENT, nullable=False, default=Decimal("0"))

    customer_service_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    customer_service_percent: Mapped[Decimal | None] = mapped_column(PERCENT, nullable=True)
    deliveries_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deliveries_percent: Mapped[Decimal | None] = mapped_column(PERCENT, nullable=True)
    bonds_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    bonds_percent: Mapped[Decimal | None] = mapped_column(PERCENT, nullable=True)

    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


class CommissionGlobalConfig(Base):
    """Global role percentages (operations_coordinator_percent, marketing_percent)."""

    __tablename__ = "commission_global_configs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    config_key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    config_value: Mapped[Decimal] = mapped_column(PERCENT, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
