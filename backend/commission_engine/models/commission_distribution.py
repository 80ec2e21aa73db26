from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from commission_engine.db.base import Base, utcnow


class CommissionDistribution(Base):
    """
    One role's share of one phase of one sale.

    percent_assigned is always a percent of the PHASE value, so
    amount_calculated == percent_assigned / 100 * phase_value holds for every row.
    role_percent + percent_basis keep the configured figure and what it was
    defined against (pool / phase / total) at calculation time.

    Created by the calculator; mutated afterwards only by the adjustment ledger
    (percent/amount/role) or the collection tracker (status).
    """

    __tablename__ = "commission_distributions"
    __table_args__ = (
        # backs insert-or-skip: concurrent calculations of one sale converge here
        UniqueConstraint("sale_id", "role_type", "phase", name="uq_commission_distributions_sale_role_phase"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    sale_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("commission_sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    role_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    person_name: Mapped[str] = mapped_column(String(255), nullable=False)
    person_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # sale | post_sale
    phase: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    percent_assigned: Mapped[Decimal] = mapped_column(Numeric(9, 6), nullable=False)
    role_percent: Mapped[Decimal] = mapped_column(Numeric(9, 6), nullable=False)
    percent_basis: Mapped[str] = mapped_column(String(10), nullable=False)
    amount_calculated: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))

    # pending_invoice | invoiced | collected
    collection_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending_invoice", server_default="pending_invoice"
    )
    collected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    status_updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # mirrors the partner commissions of the same phase
    is_cash_payment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
