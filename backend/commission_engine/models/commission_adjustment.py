from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from commission_engine.db.base import Base, utcnow


class CommissionAdjustment(Base):
    """
    Append-only audit trail of manual corrections to a distribution.

    Rows are never updated or deleted. Together with the distribution's
    original calculation they explain why a distribution looks the way it does.

    old_value / new_value hold the percent (percent_change) or the amount
    (amount_change); role changes use old_role_type / new_role_type instead.
    old_amount / new_amount are always filled so amount_impact is auditable.
    """

    __tablename__ = "commission_adjustments"
    __table_args__ = (
        Index("ix_commission_adjustments_sale_adjusted", "sale_id", "adjusted_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    distribution_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("commission_distributions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sale_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("commission_sales.id", ondelete="CASCADE"),
        nullable=False,
    )

    # percent_change | amount_change | role_change
    adjustment_type: Mapped[str] = mapped_column(String(30), nullable=False)

    old_value: Mapped[Decimal | None] = mapped_column(Numeric(15, 6), nullable=True)
    new_value: Mapped[Decimal | None] = mapped_column(Numeric(15, 6), nullable=True)
    old_role_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    new_role_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    old_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    new_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    # new_amount - old_amount (negative for clawbacks)
    amount_impact: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)

    adjusted_by: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    adjusted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
