# commission_engine/core/adjustment_ledger.py
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.core.amounts import HUNDRED, ZERO, money, percent, percent_of, to_decimal
from commission_engine.core.enums import PHASE_ROLES, ROLE_DISPLAY_NAMES, AdjustmentType, Phase, RoleType
from commission_engine.core.errors import NotFound, ValidationError
from commission_engine.db.base import utcnow
from commission_engine.models.commission_adjustment import CommissionAdjustment
from commission_engine.models.commission_distribution import CommissionDistribution
from commission_engine.models.commission_sale import CommissionSale

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdjustmentChange:
    adjustment_type: AdjustmentType
    # percent (percent_change) or amount (amount_change)
    new_value: Decimal | None = None
    new_role_type: RoleType | None = None
    new_person_name: str | None = None
    reason: str | None = None
    notes: str | None = None


async def _role_taken(db: AsyncSession, dist: CommissionDistribution, role: RoleType) -> bool:
    res = await db.execute(
        select(CommissionDistribution.id)
        .where(CommissionDistribution.sale_id == dist.sale_id)
        .where(CommissionDistribution.phase == dist.phase)
        .where(CommissionDistribution.role_type == role.value)
    )
    return res.first() is not None


async def adjust(
    db: AsyncSession,
    distribution_id: uuid.UUID,
    change: AdjustmentChange,
    actor_id: str,
) -> tuple[CommissionAdjustment, CommissionDistribution]:
    """
    Apply one manual correction and record it, as one transaction.

    The sale's phase values are not touched and the 100%-of-phase balance is
    not re-checked; the distributions endpoint reports per-phase totals for
    reconciliation.
    """
    try:
        dist = await db.get(CommissionDistribution, distribution_id)
        if not dist:
            raise NotFound("Distribution not found", distribution_id=str(distribution_id))
        sale = await db.get(CommissionSale, dist.sale_id)
        phase_value = sale.phase_value(dist.phase)

        old_amount = dist.amount_calculated
        entry = CommissionAdjustment(
            distribution_id=dist.id,
            sale_id=dist.sale_id,
            adjustment_type=change.adjustment_type.value,
            adjusted_by=actor_id,
            reason=change.reason,
            notes=change.notes,
        )

        if change.adjustment_type is AdjustmentType.PERCENT_CHANGE:
            if change.new_value is None:
                raise ValidationError("new_value (percent) is required for percent_change.")
            new_pct = to_decimal(change.new_value, "new_value")
            if new_pct < ZERO or new_pct > HUNDRED:
                raise ValidationError("new_value must be between 0 and 100 for percent_change.")
            entry.old_value = dist.percent_assigned
            entry.new_value = new_pct
            dist.percent_assigned = percent(new_pct)
            dist.amount_calculated = money(percent_of(phase_value, new_pct))

        elif change.adjustment_type is AdjustmentType.AMOUNT_CHANGE:
            if change.new_value is None:
                raise ValidationError("new_value (amount) is required for amount_change.")
            new_amount = money(to_decimal(change.new_value, "new_value"))
            if new_amount < ZERO:
                raise ValidationError("new_value cannot be negative for amount_change.")
            if phase_value <= ZERO:
                # percent_assigned cannot follow an amount on an empty phase
                raise ValidationError(
                    "amount_change needs a phase with a positive value; use percent_change instead.",
                    phase=Phase.parse(dist.phase).value,
                    phase_value=str(phase_value),
                )
            entry.old_value = old_amount
            entry.new_value = new_amount
            dist.amount_calculated = new_amount
            dist.percent_assigned = percent(new_amount * HUNDRED / phase_value)

        elif change.adjustment_type is AdjustmentType.ROLE_CHANGE:
            if change.new_role_type is None:
                raise ValidationError("new_role_type is required for role_change.")
            new_role = RoleType(change.new_role_type)
            phase = Phase.parse(dist.phase)
            if new_role.value == dist.role_type:
                raise ValidationError("new_role_type is the current role.")
            if new_role not in PHASE_ROLES[phase]:
                raise ValidationError(
                    f"Role {new_role.value} does not belong to the {phase.value} phase.",
                    role_type=new_role.value,
                    phase=phase.value,
                )
            if await _role_taken(db, dist, new_role):
                raise ValidationError(
                    f"A {new_role.value} distribution already exists in the {phase.value} phase of this sale.",
                    role_type=new_role.value,
                    phase=phase.value,
                )
            entry.old_role_type = dist.role_type
            entry.new_role_type = new_role.value
            dist.role_type = new_role.value
            dist.person_name = (change.new_person_name or "").strip() or ROLE_DISPLAY_NAMES[new_role]
            dist.person_id = None

        else:
            raise ValidationError(f"Unsupported adjustment_type {change.adjustment_type!r}.")

        entry.old_amount = old_amount
        entry.new_amount = dist.amount_calculated
        entry.amount_impact = dist.amount_calculated - old_amount
        entry.adjusted_at = utcnow()
        db.add(entry)

        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationError("Adjustment conflicts with an existing distribution; nothing was changed.")
    except Exception:
        await db.rollback()
        raise

    await db.refresh(entry)
    await db.refresh(dist)
    logger.info(
        "Adjustment %s on distribution %s by %s: impact %s",
        entry.adjustment_type, dist.id, actor_id, entry.amount_impact,
    )
    return entry, dist
