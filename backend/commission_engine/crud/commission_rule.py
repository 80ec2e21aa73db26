# commission_engine/crud/commission_rule.py
from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.core.errors import NotFound, ValidationError
from commission_engine.core.rule_evaluator import (
    RuleBonusLine,
    check_period_value,
    parse_operator,
    parse_period_type,
)
from commission_engine.crud.bulk import insert_or_skip
from commission_engine.models.commission_rule import CommissionRule, CommissionRuleBonus
from commission_engine.models.commission_sale import CommissionSale

logger = logging.getLogger(__name__)


def _same_development(column, desarrollo: str):
    return func.lower(func.trim(column)) == (desarrollo or "").strip().lower()


async def list_rules(
    db: AsyncSession,
    *,
    desarrollo: str | None = None,
    active_only: bool = False,
) -> list[CommissionRule]:
    stmt = select(CommissionRule)
    if desarrollo:
        stmt = stmt.where(_same_development(CommissionRule.desarrollo, desarrollo))
    if active_only:
        stmt = stmt.where(CommissionRule.activo.is_(True))
    stmt = stmt.order_by(
        CommissionRule.desarrollo.asc(),
        CommissionRule.prioridad.desc(),
        CommissionRule.unidades_vendidas.desc(),
        CommissionRule.created_at.desc(),
    )
    return list((await db.execute(stmt)).scalars().all())


def _clean(data: dict[str, Any], current: CommissionRule | None = None) -> dict[str, Any]:
    data = dict(data)
    if "desarrollo" in data:
        data["desarrollo"] = (data["desarrollo"] or "").strip()
        if not data["desarrollo"]:
            raise ValidationError("desarrollo is required.")
    if "rule_name" in data:
        data["rule_name"] = (data["rule_name"] or "").strip()
        if not data["rule_name"]:
            raise ValidationError("rule_name is required.")
    if "operador" in data:
        data["operador"] = parse_operator(data["operador"]).value
    if "periodo_type" in data:
        data["periodo_type"] = parse_period_type(data["periodo_type"]).value

    # periodo_value is checked against the type it will end up with
    periodo_type = data.get("periodo_type", current.periodo_type if current else None)
    periodo_value = data.get("periodo_value", current.periodo_value if current else None)
    if "periodo_type" in data or "periodo_value" in data:
        data["periodo_value"] = check_period_value(periodo_type, periodo_value)
    return data


async def create_rule(db: AsyncSession, data: dict[str, Any], actor_id: str) -> CommissionRule:
    rule = CommissionRule(**_clean(data), created_by=actor_id, updated_by=actor_id)
    db.add(rule)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(rule)
    logger.info("Commission rule %r created for %r by %s", rule.rule_name, rule.desarrollo, actor_id)
    return rule


async def update_rule(
    db: AsyncSession,
    rule_id: uuid.UUID,
    data: dict[str, Any],
    actor_id: str,
) -> CommissionRule:
    """Prospective: bonuses already written for calculated sales stay as they are."""
    rule = await db.get(CommissionRule, rule_id)
    if not rule:
        raise NotFound("Commission rule not found", rule_id=str(rule_id))

    for k, v in _clean(data, rule).items():
        setattr(rule, k, v)
    rule.updated_by = actor_id

    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(rule)
    logger.info("Commission rule %s updated by %s", rule.id, actor_id)
    return rule


async def delete_rule(db: AsyncSession, rule_id: uuid.UUID, actor_id: str) -> None:
    rule = await db.get(CommissionRule, rule_id)
    if not rule:
        raise NotFound("Commission rule not found", rule_id=str(rule_id))

    await db.delete(rule)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("Commission rule %s deleted by %s", rule_id, actor_id)


async def count_units_sold(db: AsyncSession, desarrollo: str, start: date, end: date) -> int:
    """Sales of the development signed between start and end, both inclusive."""
    res = await db.execute(
        select(func.count(CommissionSale.id))
        .where(_same_development(CommissionSale.desarrollo, desarrollo))
        .where(CommissionSale.fecha_firma >= start)
        .where(CommissionSale.fecha_firma <= end)
    )
    return int(res.scalar() or 0)


async def list_bonuses(db: AsyncSession, sale_id: uuid.UUID) -> list[CommissionRuleBonus]:
    rows = (
        await db.execute(
            select(CommissionRuleBonus)
            .where(CommissionRuleBonus.sale_id == sale_id)
            .order_by(CommissionRuleBonus.fulfilled.desc(), CommissionRuleBonus.rule_name.asc())
        )
    ).scalars().all()
    return list(rows)


async def insert_bonuses_or_skip(
    db: AsyncSession,
    sale_id: uuid.UUID,
    lines: list[RuleBonusLine],
) -> int:
    rows = [
        {
            "sale_id": sale_id,
            "rule_id": line.rule_id,
            "rule_name": line.rule_name,
            "percent": line.percent,
            "amount": line.amount,
            "iva_amount": line.iva_amount,
            "period_label": line.period_label,
            "units_sold": line.units_sold,
            "units_required": line.units_required,
            "operador": line.operador,
            "fulfilled": line.fulfilled,
        }
        for line in lines
    ]
    return await insert_or_skip(
        db,
        CommissionRuleBonus.__table__,
        rows,
        ["sale_id", "rule_id"],
    )
