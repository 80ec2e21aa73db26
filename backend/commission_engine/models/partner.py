from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from commission_engine.db.base import Base, utcnow


class ProductPartner(Base):
    """A capital partner ("socio") of the product sold, as supplied by the partner source."""

    __tablename__ = "commission_product_partners"
    __table_args__ = (
        UniqueConstraint("commission_sale_id", "socio_name", name="uq_product_partners_sale_socio"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    commission_sale_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("commission_sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    socio_name: Mapped[str] = mapped_column(String(500), nullable=False)
    # 0..100
    participacion: Mapped[Decimal] = mapped_column(Numeric(9, 6), nullable=False, default=Decimal("0"))

    synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)


class PartnerCommission(Base):
    """
    A partner's share of BOTH phases of one sale.

    Invoicing/collection of the sale-phase and post-sale-phase amounts happens
    at different times, hence one status (and collected_at) per phase.
    """

    __tablename__ = "partner_commissions"
    __table_args__ = (
        UniqueConstraint("commission_sale_id", "socio_name", name="uq_partner_commissions_sale_socio"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    commission_sale_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("commission_sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    socio_name: Mapped[str] = mapped_column(String(500), nullable=False)
    participacion: Mapped[Decimal] = mapped_column(Numeric(9, 6), nullable=False)

    sale_phase_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    post_sale_phase_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    total_commission_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0"))

    sale_phase_collection_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending_invoice", server_default="pending_invoice", index=True
    )
    post_sale_phase_collection_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending_invoice", server_default="pending_invoice", index=True
    )
    sale_phase_collected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    post_sale_phase_collected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # paid in cash: no IVA invoice for that phase
    sale_phase_is_cash_payment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    post_sale_phase_is_cash_payment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    calculated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    calculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
