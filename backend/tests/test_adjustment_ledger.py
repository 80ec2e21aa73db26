# tests/test_adjustment_ledger.py
from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from commission_engine.core.adjustment_ledger import AdjustmentChange, adjust
from commission_engine.core.enums import AdjustmentType, RoleType
from commission_engine.core.errors import NotFound, ValidationError
from commission_engine.core.orchestrator import ensure_calculated
from commission_engine.crud.commission_distribution import list_adjustments
from commission_engine.models.commission_adjustment import CommissionAdjustment
from commission_engine.models.commission_distribution import CommissionDistribution
from commission_engine.models.commission_sale import CommissionSale

from factories import create_config, create_sale


async def setup_sale(db):
    await create_config(db)
    sale = await create_sale(db)
    await db.commit()
    await ensure_calculated(db, sale.id)
    return sale.id


async def distribution_id(db, sale_id, phase: str, role: str) -> uuid.UUID:
    res = await db.execute(
        select(CommissionDistribution.id)
        .where(CommissionDistribution.sale_id == sale_id)
        .where(CommissionDistribution.phase == phase)
        .where(CommissionDistribution.role_type == role)
    )
    return res.scalar_one()


async def adjustment_count(db) -> int:
    return int((await db.execute(select(func.count(CommissionAdjustment.id)))).scalar())


@pytest.mark.asyncio
async def test_percent_change_recomputes_amount_from_the_phase_value(db):
    sale_id = await setup_sale(db)
    dist_id = await distribution_id(db, sale_id, "sale", "sale_manager")

    entry, dist = await adjust(
        db,
        dist_id,
        AdjustmentChange(AdjustmentType.PERCENT_CHANGE, new_value=Decimal("35"), reason="Acuerdo comercial"),
        "user-admin-1",
    )

    assert dist.percent_assigned == Decimal("35")
    assert dist.amount_calculated == Decimal("18900")
    assert entry.old_value == Decimal("40")
    assert entry.new_value == Decimal("35")
    assert entry.old_amount == Decimal("21600")
    assert entry.new_amount == Decimal("18900")
    assert entry.amount_impact == Decimal("-2700")
    assert entry.adjusted_by == "user-admin-1"
    assert entry.reason == "Acuerdo comercial"

    # phase values on the sale are never rewritten by adjustments
    sale = await db.get(CommissionSale, sale_id)
    assert sale.commission_sale_phase == Decimal("54000")


@pytest.mark.asyncio
async def test_amount_change_recomputes_percent(db):
    sale_id = await setup_sale(db)
    dist_id = await distribution_id(db, sale_id, "post_sale", "legal_manager")

    entry, dist = await adjust(
        db,
        dist_id,
        AdjustmentChange(AdjustmentType.AMOUNT_CHANGE, new_value=Decimal("20000")),
        "user-admin-1",
    )

    assert dist.amount_calculated == Decimal("20000")
    assert dist.percent_assigned == Decimal("55.555556")
    assert entry.old_value == Decimal("18000")
    assert entry.amount_impact == Decimal("2000")


@pytest.mark.asyncio
async def test_amount_change_on_an_empty_phase_is_rejected(db):
    await create_config(db)
    sale = await create_sale(db)
    await db.commit()
    sale_id = sale.id
    await ensure_calculated(db, sale_id, commission_total=Decimal("0"))
    dist_id = await distribution_id(db, sale_id, "post_sale", "legal_manager")

    with pytest.raises(ValidationError) as exc:
        await adjust(
            db,
            dist_id,
            AdjustmentChange(AdjustmentType.AMOUNT_CHANGE, new_value=Decimal("500")),
            "user-admin-1",
        )
    assert exc.value.context["phase"] == "post_sale"

    dist = await db.get(CommissionDistribution, dist_id)
    assert dist.amount_calculated == Decimal("0")
    assert dist.percent_assigned == Decimal("50")
    assert await adjustment_count(db) == 0


@pytest.mark.asyncio
async def test_role_change_moves_the_amount_to_a_free_role(db):
    sale_id = await setup_sale(db)
    dist_id = await distribution_id(db, sale_id, "post_sale", "legal_manager")

    entry, dist = await adjust(
        db,
        dist_id,
        AdjustmentChange(
            AdjustmentType.ROLE_CHANGE,
            new_role_type=RoleType.CUSTOMER_SERVICE,
            new_person_name="María López",
        ),
        "user-admin-1",
    )

    assert dist.role_type == "customer_service"
    assert dist.person_name == "María López"
    assert dist.amount_calculated == Decimal("18000")
    assert entry.old_role_type == "legal_manager"
    assert entry.new_role_type == "customer_service"
    assert entry.amount_impact == Decimal("0")


@pytest.mark.asyncio
async def test_role_change_to_a_taken_role_changes_nothing(db):
    sale_id = await setup_sale(db)
    dist_id = await distribution_id(db, sale_id, "post_sale", "legal_manager")

    with pytest.raises(ValidationError):
        await adjust(
            db,
            dist_id,
            AdjustmentChange(AdjustmentType.ROLE_CHANGE, new_role_type=RoleType.POST_SALE_COORDINATOR),
            "user-admin-1",
        )

    assert await adjustment_count(db) == 0
    assert await distribution_id(db, sale_id, "post_sale", "legal_manager") == dist_id


@pytest.mark.asyncio
async def test_role_change_across_phases_is_rejected(db):
    sale_id = await setup_sale(db)
    dist_id = await distribution_id(db, sale_id, "post_sale", "legal_manager")

    with pytest.raises(ValidationError):
        await adjust(
            db,
            dist_id,
            AdjustmentChange(AdjustmentType.ROLE_CHANGE, new_role_type=RoleType.MARKETING),
            "user-admin-1",
        )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "change",
    [
        AdjustmentChange(AdjustmentType.PERCENT_CHANGE, new_value=Decimal("120")),
        AdjustmentChange(AdjustmentType.PERCENT_CHANGE),
        AdjustmentChange(AdjustmentType.AMOUNT_CHANGE, new_value=Decimal("-5")),
        AdjustmentChange(AdjustmentType.ROLE_CHANGE),
    ],
)
async def test_invalid_changes_leave_no_trace(db, change):
    sale_id = await setup_sale(db)
    dist_id = await distribution_id(db, sale_id, "sale", "sale_manager")

    with pytest.raises(ValidationError):
        await adjust(db, dist_id, change, "user-admin-1")

    dist = await db.get(CommissionDistribution, dist_id)
    assert dist.amount_calculated == Decimal("21600")
    assert await adjustment_count(db) == 0


@pytest.mark.asyncio
async def test_unknown_distribution(db):
    with pytest.raises(NotFound):
        await adjust(
            db,
            uuid.uuid4(),
            AdjustmentChange(AdjustmentType.AMOUNT_CHANGE, new_value=Decimal("1")),
            "user-admin-1",
        )


@pytest.mark.asyncio
async def test_history_is_append_only_and_per_sale(db):
    sale_id = await setup_sale(db)
    dist_id = await distribution_id(db, sale_id, "sale", "marketing")

    for value in ("9000", "8500"):
        await adjust(
            db,
            dist_id,
            AdjustmentChange(AdjustmentType.AMOUNT_CHANGE, new_value=Decimal(value)),
            "user-admin-1",
        )

    history = await list_adjustments(db, sale_id)
    assert len(history) == 2
    assert {(h.old_amount, h.new_amount) for h in history} == {
        (Decimal("8100"), Decimal("9000")),
        (Decimal("9000"), Decimal("8500")),
    }
