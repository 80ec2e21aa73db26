# commission_engine/core/orchestrator.py
"""
Calculation Orchestrator

ensure_calculated() is the only way staff distributions come into existence.
It is idempotent: a sale is calculated at most once, concurrent calls converge
on the (sale_id, role_type, phase) unique constraint, and everything after
that goes through the adjustment ledger.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.core.config_resolver import load_effective_config
from commission_engine.core.distribution_calculator import DistributionCalculator
from commission_engine.core.errors import CommissionError, ConfigNotFound, Conflict, NotFound
from commission_engine.core.partner_allocator import PartnerAllocator
from commission_engine.core.rule_evaluator import evaluate_rule, sale_period
from commission_engine.crud import commission_distribution as distribution_crud
from commission_engine.crud import commission_rule as rule_crud
from commission_engine.crud import partner as partner_crud
from commission_engine.db.base import utcnow
from commission_engine.models.commission_sale import CommissionSale
from commission_engine.models.partner import ProductPartner

logger = logging.getLogger(__name__)

STATUS_CALCULATED = "calculated"
STATUS_ALREADY_CALCULATED = "already_calculated"


@dataclass
class CalculationOutcome:
    sale_id: uuid.UUID
    status: str
    distributions_created: int = 0
    partner_commissions_created: int = 0
    rule_bonuses_created: int = 0


@dataclass
class BatchReport:
    processed: int = 0
    succeeded: int = 0
    already_calculated: int = 0
    skipped: int = 0
    failed: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)


async def _allocate_partners(
    db: AsyncSession,
    sale: CommissionSale,
    actor_id: str | None,
) -> int:
    partners = (
        await db.execute(select(ProductPartner).where(ProductPartner.commission_sale_id == sale.id))
    ).scalars().all()
    if not partners:
        return 0
    shares = PartnerAllocator().allocate(sale, partners)
    return await partner_crud.insert_shares_or_skip(db, sale.id, shares, actor_id)


async def _apply_rules(db: AsyncSession, sale: CommissionSale) -> int:
    """
    One bonus line per active rule whose period contains the signing date.
    Units are the development's sales signed in that period up to today.
    """
    lines = []
    for rule in await rule_crud.list_rules(db, desarrollo=sale.desarrollo, active_only=True):
        period = sale_period(rule.periodo_type, rule.periodo_value, sale.fecha_firma)
        if period is None:
            continue
        units = await rule_crud.count_units_sold(db, sale.desarrollo, period.start, min(period.end, date.today()))
        lines.append(evaluate_rule(rule, sale.valor_total, period, units))
    return await rule_crud.insert_bonuses_or_skip(db, sale.id, lines)


async def ensure_calculated(
    db: AsyncSession,
    sale_id: uuid.UUID,
    *,
    actor_id: str | None = None,
    commission_total: Decimal | None = None,
) -> CalculationOutcome:
    """
    Calculate the sale if it has no distributions yet; otherwise only allocate
    partner commissions that are still missing (partners synced late).

    One transaction per call. ConfigNotFound / InvalidConfig / DistributionImbalance /
    ValidationError propagate after a rollback; a duplicate concurrent
    calculation does not.
    """
    try:
        sale = await db.get(CommissionSale, sale_id)
        if not sale:
            raise NotFound("Sale not found", sale_id=str(sale_id))

        if sale.commission_calculated or await distribution_crud.count_for_sale(db, sale.id) > 0:
            created = 0
            if await partner_crud.count_partner_commissions(db, sale.id) == 0:
                created = await _allocate_partners(db, sale, actor_id)
                await db.commit()
                if created:
                    logger.info("Sale %s: allocated %d late partner commissions", sale.external_deal_id, created)
            return CalculationOutcome(sale_id=sale_id, status=STATUS_ALREADY_CALCULATED, partner_commissions_created=created)

        config = await load_effective_config(db, sale.desarrollo)
        result = DistributionCalculator().calculate(sale, config, commission_total)

        inserted = await distribution_crud.insert_lines_or_skip(db, sale.id, result.distributions)
        if inserted != len(result.distributions):
            raise Conflict(
                "Distributions for this sale were written concurrently.",
                sale_id=str(sale_id),
            )

        sale.commission_total = result.commission_total
        sale.commission_sale_phase = result.commission_sale_phase
        sale.commission_post_sale_phase = result.commission_post_sale_phase
        sale.commission_unallocated = result.commission_unallocated
        sale.calculated_phase_sale_percent = config.phase_sale_percent
        sale.calculated_phase_post_sale_percent = config.phase_post_sale_percent
        sale.config_snapshot = config.to_snapshot()
        sale.commission_calculated = True
        sale.calculated_at = utcnow()
        sale.calculated_by = actor_id

        partner_count = await _allocate_partners(db, sale, actor_id)
        bonus_count = await _apply_rules(db, sale)
        external_id = sale.external_deal_id

        await db.commit()
    except Conflict:
        await db.rollback()
        logger.info("Sale %s was calculated concurrently; nothing to do", sale_id)
        return CalculationOutcome(sale_id=sale_id, status=STATUS_ALREADY_CALCULATED)
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Sale %s calculated: total=%s sale_phase=%s post_sale_phase=%s (%d distributions, %d partners, %d rule bonuses)",
        external_id,
        result.commission_total,
        result.commission_sale_phase,
        result.commission_post_sale_phase,
        inserted,
        partner_count,
        bonus_count,
    )
    return CalculationOutcome(
        sale_id=sale_id,
        status=STATUS_CALCULATED,
        distributions_created=inserted,
        partner_commissions_created=partner_count,
        rule_bonuses_created=bonus_count,
    )


async def calculate_batch(
    db: AsyncSession,
    sale_ids: list[uuid.UUID],
    *,
    actor_id: str | None = None,
) -> BatchReport:
    """
    Sequential, one transaction per sale. A failing sale is logged and counted;
    the rest of the batch still runs.
    """
    report = BatchReport()
    logger.info("Commission batch started: %d sales", len(sale_ids))

    for sale_id in sale_ids:
        report.processed += 1
        try:
            outcome = await ensure_calculated(db, sale_id, actor_id=actor_id)
        except ConfigNotFound as e:
            report.skipped += 1
            report.errors.append({"sale_id": str(sale_id), **e.to_detail()})
            logger.warning("Sale %s skipped: %s", sale_id, e.message)
            continue
        except CommissionError as e:
            report.failed += 1
            report.errors.append({"sale_id": str(sale_id), **e.to_detail()})
            logger.error("Sale %s failed: %s (%s)", sale_id, e.message, e.code)
            continue
        except Exception as e:
            report.failed += 1
            report.errors.append({"sale_id": str(sale_id), "code": "internal_error", "message": str(e)})
            logger.exception("Sale %s failed unexpectedly", sale_id)
            continue

        if outcome.status == STATUS_CALCULATED:
            report.succeeded += 1
        else:
            report.already_calculated += 1

    logger.info(
        "Commission batch finished: processed=%d succeeded=%d already_calculated=%d skipped=%d failed=%d",
        report.processed,
        report.succeeded,
        report.already_calculated,
        report.skipped,
        report.failed,
    )
    return report
