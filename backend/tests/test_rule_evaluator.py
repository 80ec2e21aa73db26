# tests/test_rule_evaluator.py
from __future__ import annotations

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select

from commission_engine.core.errors import ValidationError
from commission_engine.core.orchestrator import ensure_calculated
from commission_engine.core.rule_evaluator import (
    RulePeriod,
    check_period_value,
    evaluate_rule,
    rule_fulfilled,
    sale_period,
)
from commission_engine.crud.commission_rule import count_units_sold, list_bonuses
from commission_engine.models.commission_distribution import CommissionDistribution
from commission_engine.models.commission_rule import CommissionRuleBonus
from commission_engine.models.commission_sale import CommissionSale

from factories import create_config, create_rule, create_sale


def test_quarterly_rule_covers_the_quarter_of_the_sale():
    period = sale_period("trimestre", "2025", date(2025, 8, 20))

    assert period == RulePeriod(date(2025, 7, 1), date(2025, 9, 30), "2025-Q3")


def test_quarter_in_the_value_only_fixes_the_year():
    assert sale_period("trimestre", "2025-Q1", date(2025, 11, 2)).label == "2025-Q4"
    assert sale_period("trimestre", "2025-Q1", date(2024, 2, 2)) is None


def test_monthly_rule_matches_only_its_month():
    assert sale_period("mensual", "2025-02", date(2025, 2, 10)) == RulePeriod(
        date(2025, 2, 1), date(2025, 2, 28), "2025-02"
    )
    assert sale_period("mensual", "2025-02", date(2025, 3, 1)) is None


def test_yearly_rule():
    assert sale_period("anual", "2025", date(2025, 12, 31)).start == date(2025, 1, 1)
    assert sale_period("anual", "2024", date(2025, 1, 1)) is None


@pytest.mark.parametrize(
    "operador,units,required,expected",
    [
        ("=", 3, 3, True),
        ("=", 4, 3, False),
        (">=", 5, 3, True),
        (">=", 2, 3, False),
        ("<=", 2, 3, True),
        ("<=", 4, 3, False),
    ],
)
def test_unit_conditions(operador, units, required, expected):
    assert rule_fulfilled(operador, units, required) is expected


@pytest.mark.parametrize(
    "periodo_type,periodo_value",
    [("mensual", "2025"), ("mensual", "2025-13"), ("anual", "2025-01"), ("trimestre", "2025-Q5"), ("semanal", "2025")],
)
def test_period_value_must_fit_its_type(periodo_type, periodo_value):
    with pytest.raises(ValidationError):
        check_period_value(periodo_type, periodo_value)


def test_period_value_is_normalized():
    assert check_period_value("trimestre", " 2025-q2 ") == "2025-Q2"


def test_unfulfilled_rule_is_kept_as_reference_with_no_amount():
    rule = SimpleNamespace(
        id=None,
        rule_name="Meta trimestral",
        porcentaje_comision=Decimal("0.5"),
        porcentaje_iva=Decimal("16"),
        operador=">=",
        unidades_vendidas=10,
    )
    period = RulePeriod(date(2025, 1, 1), date(2025, 3, 31), "2025-Q1")

    missed = evaluate_rule(rule, Decimal("3000000"), period, 4)
    met = evaluate_rule(rule, Decimal("3000000"), period, 10)

    assert missed.fulfilled is False
    assert missed.amount == Decimal("0")
    assert missed.percent == Decimal("0.5")
    assert met.amount == Decimal("15000.00")
    assert met.iva_amount == Decimal("2400.00")


@pytest.mark.asyncio
async def test_units_are_counted_per_development_ignoring_case_and_padding(db):
    await create_sale(db, external_deal_id="deal-001", fecha_firma=date(2025, 1, 10))
    await create_sale(db, external_deal_id="deal-002", desarrollo=" torre norte", fecha_firma=date(2025, 2, 3))
    await create_sale(db, external_deal_id="deal-003", fecha_firma=date(2025, 4, 1))
    await create_sale(db, external_deal_id="deal-004", desarrollo="Bosque Sur", fecha_firma=date(2025, 2, 3))
    await db.commit()

    assert await count_units_sold(db, "Torre Norte", date(2025, 1, 1), date(2025, 3, 31)) == 2
    assert await count_units_sold(db, "TORRE NORTE", date(2025, 1, 1), date(2025, 12, 31)) == 3


@pytest.mark.asyncio
async def test_rule_bonuses_are_written_outside_the_phase_balance(db):
    await create_config(db)
    sale = await create_sale(db, fecha_firma=date(2025, 3, 14))
    await create_sale(db, external_deal_id="deal-002", fecha_firma=date(2025, 5, 2))
    await create_rule(db, desarrollo="torre norte")
    await create_rule(db, rule_name="Meta Q1", periodo_type="trimestre", operador="=", unidades_vendidas=3)
    await create_rule(db, rule_name="Mayo", periodo_type="mensual", periodo_value="2025-05")
    await create_rule(db, rule_name="Inactiva", activo=False)
    await db.commit()
    sale_id = sale.id

    outcome = await ensure_calculated(db, sale_id)

    assert outcome.rule_bonuses_created == 2
    bonuses = {b.rule_name: b for b in await list_bonuses(db, sale_id)}
    assert set(bonuses) == {"Bono volumen anual", "Meta Q1"}

    annual = bonuses["Bono volumen anual"]
    assert annual.fulfilled is True
    assert annual.units_sold == 2
    assert annual.period_label == "2025"
    assert annual.amount == Decimal("30000")

    quarterly = bonuses["Meta Q1"]
    assert quarterly.fulfilled is False
    assert quarterly.units_sold == 1
    assert quarterly.period_label == "2025-Q1"
    assert quarterly.amount == Decimal("0")

    sale = await db.get(CommissionSale, sale_id)
    assert sale.commission_total == Decimal("90000")
    assert sale.commission_sale_phase + sale.commission_post_sale_phase == sale.commission_total
    count = select(func.count()).select_from(CommissionDistribution).where(CommissionDistribution.sale_id == sale_id)
    assert (await db.execute(count)).scalar() == 6


@pytest.mark.asyncio
async def test_recalculation_does_not_repeat_rule_bonuses(db):
    await create_config(db)
    sale = await create_sale(db)
    await create_rule(db, unidades_vendidas=1)
    await db.commit()
    sale_id = sale.id

    await ensure_calculated(db, sale_id)
    again = await ensure_calculated(db, sale_id)

    assert again.rule_bonuses_created == 0
    total = select(func.count()).select_from(CommissionRuleBonus).where(CommissionRuleBonus.sale_id == sale_id)
    assert (await db.execute(total)).scalar() == 1
