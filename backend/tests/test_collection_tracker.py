# tests/test_collection_tracker.py
from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import select

from commission_engine.core.collection_tracker import (
    check_transition,
    set_distribution_status,
    set_partner_cash_payment,
    set_partner_commission_status,
)
from commission_engine.core.errors import InvalidStatusTransition, ValidationError
from commission_engine.core.orchestrator import ensure_calculated
from commission_engine.crud.commission_distribution import list_for_sale
from commission_engine.models.commission_distribution import CommissionDistribution
from commission_engine.models.partner import PartnerCommission

from factories import add_partner, create_config, create_sale


@pytest.mark.parametrize(
    "current,new,expected",
    [
        ("pending_invoice", "invoiced", True),
        ("invoiced", "collected", True),
        ("pending_invoice", "pending_invoice", False),
        ("collected", "collected", False),
    ],
)
def test_allowed_transitions(current, new, expected):
    assert check_transition(current, new) is expected


@pytest.mark.parametrize(
    "current,new",
    [
        ("pending_invoice", "collected"),
        ("invoiced", "pending_invoice"),
        ("collected", "invoiced"),
        ("collected", "pending_invoice"),
    ],
)
def test_skipping_or_going_back_is_rejected(current, new):
    with pytest.raises(InvalidStatusTransition) as exc:
        check_transition(current, new)
    assert exc.value.status_code == 409


def test_unknown_status_is_a_validation_error():
    with pytest.raises(ValidationError):
        check_transition("pending_invoice", "paid")


async def calculated_sale(db, with_partner: bool = False):
    await create_config(db)
    sale = await create_sale(db)
    if with_partner:
        await add_partner(db, sale.id, "Inversiones Alfa", Decimal("100"))
    await db.commit()
    await ensure_calculated(db, sale.id)
    return sale


@pytest.mark.asyncio
async def test_distribution_moves_forward_and_stamps_collected_at(db):
    sale = await calculated_sale(db)
    dist = (await list_for_sale(db, sale.id))[0]

    dist = await set_distribution_status(db, dist.id, "invoiced", "user-admin-1")
    assert dist.collection_status == "invoiced"
    assert dist.collected_at is None
    assert dist.status_updated_by == "user-admin-1"

    dist = await set_distribution_status(db, dist.id, "collected", "user-admin-1")
    assert dist.collection_status == "collected"
    assert dist.collected_at is not None


@pytest.mark.asyncio
async def test_same_status_is_a_no_op(db):
    sale = await calculated_sale(db)
    dist = (await list_for_sale(db, sale.id))[0]

    same = await set_distribution_status(db, dist.id, "pending_invoice", "user-admin-2")

    assert same.collection_status == "pending_invoice"
    assert same.status_updated_by is None


@pytest.mark.asyncio
async def test_collected_distribution_cannot_be_reopened(db):
    sale = await calculated_sale(db)
    dist = (await list_for_sale(db, sale.id))[0]
    dist_id = dist.id

    await set_distribution_status(db, dist_id, "invoiced", "user-admin-1")
    await set_distribution_status(db, dist_id, "collected", "user-admin-1")

    with pytest.raises(InvalidStatusTransition):
        await set_distribution_status(db, dist_id, "pending_invoice", "user-admin-1")


@pytest.mark.asyncio
async def test_partner_phases_are_tracked_independently(db):
    sale = await calculated_sale(db, with_partner=True)
    pc = (
        await db.execute(select(PartnerCommission).where(PartnerCommission.commission_sale_id == sale.id))
    ).scalar_one()

    await set_partner_commission_status(db, pc.id, "sale", "invoiced", "user-admin-1")
    pc = await set_partner_commission_status(db, pc.id, "sale_phase", "collected", "user-admin-1")

    assert pc.sale_phase_collection_status == "collected"
    assert pc.sale_phase_collected_at is not None
    assert pc.post_sale_phase_collection_status == "pending_invoice"
    assert pc.post_sale_phase_collected_at is None

    pc = await set_partner_commission_status(db, pc.id, "post-sale", "invoiced", "user-admin-1")
    assert pc.post_sale_phase_collection_status == "invoiced"


@pytest.mark.asyncio
async def test_partner_status_requires_a_known_phase(db):
    sale = await calculated_sale(db, with_partner=True)
    pc = (
        await db.execute(select(PartnerCommission).where(PartnerCommission.commission_sale_id == sale.id))
    ).scalar_one()

    with pytest.raises(ValidationError):
        await set_partner_commission_status(db, pc.id, None, "invoiced", "user-admin-1")
    with pytest.raises(ValidationError):
        await set_partner_commission_status(db, pc.id, "delivery", "invoiced", "user-admin-1")


async def cash_by_phase(db, sale_id) -> dict[str, set[bool]]:
    rows = (
        await db.execute(
            select(CommissionDistribution.phase, CommissionDistribution.is_cash_payment).where(
                CommissionDistribution.sale_id == sale_id
            )
        )
    ).all()
    out: dict[str, set[bool]] = {}
    for phase, is_cash in rows:
        out.setdefault(phase, set()).add(bool(is_cash))
    return out


@pytest.mark.asyncio
async def test_cash_payment_flag_follows_the_partner_phase_onto_distributions(db):
    await create_config(db)
    sale = await create_sale(db)
    await add_partner(db, sale.id, "Inversiones Alfa", Decimal("60"))
    await add_partner(db, sale.id, "Capital Beta", Decimal("40"))
    await db.commit()
    sale_id = sale.id
    await ensure_calculated(db, sale_id)

    ids = {
        pc.socio_name: pc.id
        for pc in (
            await db.execute(select(PartnerCommission).where(PartnerCommission.commission_sale_id == sale_id))
        ).scalars()
    }
    assert await cash_by_phase(db, sale_id) == {"sale": {False}, "post_sale": {False}}

    pc = await set_partner_cash_payment(db, ids["Inversiones Alfa"], "sale", True, "user-admin-1")
    assert pc.sale_phase_is_cash_payment is True
    assert pc.post_sale_phase_is_cash_payment is False
    assert pc.updated_by == "user-admin-1"
    assert await cash_by_phase(db, sale_id) == {"sale": {True}, "post_sale": {False}}

    # still cash while another partner keeps the flag
    await set_partner_cash_payment(db, ids["Capital Beta"], "sale_phase", True, "user-admin-1")
    await set_partner_cash_payment(db, ids["Inversiones Alfa"], "sale", False, "user-admin-1")
    assert await cash_by_phase(db, sale_id) == {"sale": {True}, "post_sale": {False}}

    await set_partner_cash_payment(db, ids["Capital Beta"], "sale", False, "user-admin-1")
    assert await cash_by_phase(db, sale_id) == {"sale": {False}, "post_sale": {False}}


@pytest.mark.asyncio
async def test_cash_payment_requires_a_known_phase(db):
    sale = await calculated_sale(db, with_partner=True)
    pc = (
        await db.execute(select(PartnerCommission).where(PartnerCommission.commission_sale_id == sale.id))
    ).scalar_one()

    with pytest.raises(ValidationError):
        await set_partner_cash_payment(db, pc.id, "delivery", True, "user-admin-1")
    assert await cash_by_phase(db, sale.id) == {"sale": {False}, "post_sale": {False}}
