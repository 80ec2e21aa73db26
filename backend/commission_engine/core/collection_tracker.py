# commission_engine/core/collection_tracker.py
from __future__ import annotations

import logging
import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.core.enums import CollectionStatus, Phase
from commission_engine.core.errors import InvalidStatusTransition, NotFound, ValidationError
from commission_engine.db.base import utcnow
from commission_engine.models.commission_distribution import CommissionDistribution
from commission_engine.models.partner import PartnerCommission

logger = logging.getLogger(__name__)

# forward-only, one step at a time; collected is terminal
NEXT_STATUS: dict[CollectionStatus, CollectionStatus] = {
    CollectionStatus.PENDING_INVOICE: CollectionStatus.INVOICED,
    CollectionStatus.INVOICED: CollectionStatus.COLLECTED,
}


def parse_status(value: str | CollectionStatus) -> CollectionStatus:
    try:
        return CollectionStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in CollectionStatus)
        raise ValidationError(f"Invalid collection_status {value!r}. Allowed: {allowed}") from None


def parse_phase(value: str | Phase | None) -> Phase:
    if value is None:
        raise ValidationError("phase is required (sale or post_sale).")
    try:
        return Phase.parse(value)
    except ValueError as e:
        raise ValidationError(str(e)) from None


def check_transition(current: str | CollectionStatus, new: str | CollectionStatus) -> bool:
    """
    True if `new` is a real step forward, False if it is the current status
    (idempotent no-op). Anything else raises InvalidStatusTransition.
    """
    cur = parse_status(current)
    nxt = parse_status(new)
    if cur is nxt:
        return False
    if NEXT_STATUS.get(cur) is nxt:
        return True
    raise InvalidStatusTransition(
        f"Cannot move collection status from {cur.value} to {nxt.value}.",
        current_status=cur.value,
        requested_status=nxt.value,
    )


async def set_distribution_status(
    db: AsyncSession,
    distribution_id: uuid.UUID,
    new_status: str | CollectionStatus,
    actor_id: str,
) -> CommissionDistribution:
    dist = await db.get(CommissionDistribution, distribution_id)
    if not dist:
        raise NotFound("Distribution not found", distribution_id=str(distribution_id))

    if not check_transition(dist.collection_status, new_status):
        return dist

    status = parse_status(new_status)
    dist.collection_status = status.value
    dist.status_updated_by = actor_id
    if status is CollectionStatus.COLLECTED:
        dist.collected_at = utcnow()

    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(dist)
    logger.info(
        "Distribution %s (%s/%s) -> %s by %s",
        dist.id, dist.role_type, dist.phase, status.value, actor_id,
    )
    return dist


async def set_partner_commission_status(
    db: AsyncSession,
    partner_commission_id: uuid.UUID,
    phase: str | Phase | None,
    new_status: str | CollectionStatus,
    actor_id: str,
) -> PartnerCommission:
    """Each phase of a partner commission has its own status and collected_at."""
    ph = parse_phase(phase)
    pc = await db.get(PartnerCommission, partner_commission_id)
    if not pc:
        raise NotFound("Partner commission not found", partner_commission_id=str(partner_commission_id))

    status_attr = f"{ph.value}_phase_collection_status"
    collected_attr = f"{ph.value}_phase_collected_at"

    if not check_transition(getattr(pc, status_attr), new_status):
        return pc

    status = parse_status(new_status)
    setattr(pc, status_attr, status.value)
    if status is CollectionStatus.COLLECTED:
        setattr(pc, collected_attr, utcnow())
    pc.updated_by = actor_id

    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(pc)
    logger.info(
        "Partner commission %s (%s, %s phase) -> %s by %s",
        pc.id, pc.socio_name, ph.value, status.value, actor_id,
    )
    return pc


async def set_partner_cash_payment(
    db: AsyncSession,
    partner_commission_id: uuid.UUID,
    phase: str | Phase | None,
    is_cash_payment: bool,
    actor_id: str,
) -> PartnerCommission:
    """
    Flag one phase of a partner commission as paid in cash (no IVA invoice).

    The sale's distributions of that phase follow: they are cash payments while
    any partner commission of the sale has the flag set for the phase.
    """
    ph = parse_phase(phase)
    pc = await db.get(PartnerCommission, partner_commission_id)
    if not pc:
        raise NotFound("Partner commission not found", partner_commission_id=str(partner_commission_id))

    flag_attr = f"{ph.value}_phase_is_cash_payment"
    if getattr(pc, flag_attr) == is_cash_payment:
        return pc

    try:
        setattr(pc, flag_attr, is_cash_payment)
        pc.updated_by = actor_id
        await db.flush()

        flag_col = getattr(PartnerCommission, flag_attr)
        any_cash = (
            await db.execute(
                select(PartnerCommission.id)
                .where(PartnerCommission.commission_sale_id == pc.commission_sale_id)
                .where(flag_col.is_(True))
                .limit(1)
            )
        ).first() is not None
        result = await db.execute(
            update(CommissionDistribution)
            .where(CommissionDistribution.sale_id == pc.commission_sale_id)
            .where(CommissionDistribution.phase == ph.value)
            .values(is_cash_payment=any_cash, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(pc)
    logger.info(
        "Partner commission %s (%s, %s phase) cash payment=%s by %s; %d distributions now cash=%s",
        pc.id, pc.socio_name, ph.value, is_cash_payment, actor_id, result.rowcount or 0, any_cash,
    )
    return pc
