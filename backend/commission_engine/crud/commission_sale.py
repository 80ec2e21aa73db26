# commission_engine/crud/commission_sale.py
from __future__ import annotations

import logging
import uuid
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import Select, extract, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.core.amounts import CENT, ZERO, to_decimal
from commission_engine.core.errors import ValidationError
from commission_engine.db.base import utcnow
from commission_engine.models.commission_sale import CommissionSale

logger = logging.getLogger(__name__)

# changing any of these after calculation does NOT recalculate
MONETARY_BASE_FIELDS = ("valor_total", "commission_rate_percent")


def _filtered(
    stmt: Select,
    *,
    desarrollo: str | None = None,
    propietario_deal: str | None = None,
    fecha_firma_from: date | None = None,
    fecha_firma_to: date | None = None,
    commission_calculated: bool | None = None,
    year: int | None = None,
) -> Select:
    if desarrollo:
        stmt = stmt.where(CommissionSale.desarrollo == desarrollo)
    if propietario_deal:
        stmt = stmt.where(CommissionSale.propietario_deal == propietario_deal)
    if fecha_firma_from:
        stmt = stmt.where(CommissionSale.fecha_firma >= fecha_firma_from)
    if fecha_firma_to:
        stmt = stmt.where(CommissionSale.fecha_firma <= fecha_firma_to)
    if commission_calculated is not None:
        stmt = stmt.where(CommissionSale.commission_calculated.is_(commission_calculated))
    if year is not None:
        stmt = stmt.where(extract("year", CommissionSale.fecha_firma) == year)
    return stmt


async def list_sales(
    db: AsyncSession,
    *,
    limit: int,
    offset: int,
    **filters: Any,
) -> tuple[list[CommissionSale], int]:
    total = await db.scalar(_filtered(select(func.count(CommissionSale.id)), **filters))
    rows = (
        await db.execute(
            _filtered(select(CommissionSale), **filters)
            .order_by(CommissionSale.fecha_firma.desc(), CommissionSale.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
    ).scalars().all()
    return list(rows), int(total or 0)


async def list_sale_ids(db: AsyncSession, *, limit: int, **filters: Any) -> list[uuid.UUID]:
    stmt = _filtered(select(CommissionSale.id), **filters).order_by(CommissionSale.fecha_firma.asc()).limit(limit)
    return list((await db.execute(stmt)).scalars().all())


def compute_precio_por_m2(valor_total: Decimal, metros_cuadrados: Decimal) -> Decimal:
    if metros_cuadrados <= ZERO:
        raise ValidationError(
            "metros_cuadrados must be greater than 0 to derive precio_por_m2.",
            metros_cuadrados=str(metros_cuadrados),
        )
    return (valor_total / metros_cuadrados).quantize(CENT, rounding=ROUND_HALF_UP)


def _prepare(data: dict[str, Any]) -> dict[str, Any]:
    data = dict(data)
    data["valor_total"] = to_decimal(data.get("valor_total"), "valor_total")
    data["metros_cuadrados"] = to_decimal(data.get("metros_cuadrados"), "metros_cuadrados")
    if data["valor_total"] < ZERO:
        raise ValidationError("valor_total cannot be negative.")
    if data.get("precio_por_m2") is None:
        data["precio_por_m2"] = compute_precio_por_m2(data["valor_total"], data["metros_cuadrados"])
    elif data["metros_cuadrados"] <= ZERO:
        raise ValidationError("metros_cuadrados must be greater than 0.")
    return data


def _apply(sale: CommissionSale, data: dict[str, Any]) -> list[str]:
    changed_base: list[str] = []
    for k, v in data.items():
        if k == "external_deal_id":
            continue
        if k in MONETARY_BASE_FIELDS and getattr(sale, k) is not None and v is not None:
            if to_decimal(getattr(sale, k)) != to_decimal(v):
                changed_base.append(k)
        setattr(sale, k, v)
    sale.synced_at = utcnow()
    return changed_base


async def get_by_external_id(db: AsyncSession, external_deal_id: str) -> CommissionSale | None:
    return (
        await db.execute(select(CommissionSale).where(CommissionSale.external_deal_id == external_deal_id))
    ).scalar_one_or_none()


async def upsert_sale(db: AsyncSession, data: dict[str, Any]) -> tuple[CommissionSale, bool]:
    """
    Create or update by external_deal_id. Returns (sale, created).

    Calculation results are never touched here; a monetary change on an
    already-calculated sale is logged, not recalculated.
    """
    data = _prepare(data)
    external_id = str(data["external_deal_id"]).strip()
    data["external_deal_id"] = external_id

    sale = await get_by_external_id(db, external_id)
    created = sale is None
    if created:
        sale = CommissionSale(**data)
        db.add(sale)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            # race: created concurrently by another ingestion; fall through to update
            sale = await get_by_external_id(db, external_id)
            if sale is None:
                raise
            created = False

    if not created:
        changed = _apply(sale, data)
        if changed and sale.commission_calculated:
            logger.warning(
                "Sale %s already calculated; %s changed on upsert. Distributions are NOT recalculated, "
                "use adjustments.",
                external_id,
                ", ".join(changed),
            )
        try:
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    await db.refresh(sale)
    return sale, created
