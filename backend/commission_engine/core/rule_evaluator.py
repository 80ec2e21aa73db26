# commission_engine/core/rule_evaluator.py
"""
Volume rules

A rule pays porcentaje_comision of valor_total when the number of sales of its
development, counted over the period the sale was signed in, satisfies
`units <operador> unidades_vendidas`. Every rule that applies is paid; the
result is a separate bonus line that never enters the phase balance.
"""

from __future__ import annotations

import calendar
import re
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from commission_engine.core.amounts import ZERO, money, percent_of, to_decimal
from commission_engine.core.enums import PeriodType, RuleOperator
from commission_engine.core.errors import ValidationError

_YEAR = re.compile(r"^(\d{4})$")
_QUARTER = re.compile(r"^(\d{4})-Q([1-4])$")
_MONTH = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


@dataclass(frozen=True)
class RulePeriod:
    start: date
    end: date
    # "2025", "2025-Q1", "2025-03"
    label: str


@dataclass(frozen=True)
class RuleBonusLine:
    rule_id: uuid.UUID
    rule_name: str
    percent: Decimal
    amount: Decimal
    iva_amount: Decimal
    period_label: str
    units_sold: int
    units_required: int
    operador: str
    fulfilled: bool


def parse_period_type(value: str | PeriodType) -> PeriodType:
    try:
        return PeriodType(value)
    except ValueError:
        allowed = ", ".join(p.value for p in PeriodType)
        raise ValidationError(f"Invalid periodo_type {value!r}. Allowed: {allowed}") from None


def parse_operator(value: str | RuleOperator) -> RuleOperator:
    try:
        return RuleOperator(value)
    except ValueError:
        allowed = ", ".join(o.value for o in RuleOperator)
        raise ValidationError(f"Invalid operador {value!r}. Allowed: {allowed}") from None


def check_period_value(periodo_type: str | PeriodType, periodo_value: str) -> str:
    """Normalized periodo_value, or ValidationError when it does not fit the type."""
    kind = parse_period_type(periodo_type)
    value = (periodo_value or "").strip().upper()
    if kind is PeriodType.MONTH:
        ok = _MONTH.match(value)
        expected = "YYYY-MM"
    elif kind is PeriodType.QUARTER:
        ok = _YEAR.match(value) or _QUARTER.match(value)
        expected = "YYYY or YYYY-Qn"
    else:
        ok = _YEAR.match(value)
        expected = "YYYY"
    if not ok:
        raise ValidationError(
            f"periodo_value {periodo_value!r} does not match {expected} for {kind.value} rules.",
            periodo_type=kind.value,
        )
    return value


def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def sale_period(periodo_type: str | PeriodType, periodo_value: str, signed_on: date) -> RulePeriod | None:
    """
    The period of the rule that contains signed_on, or None when the sale falls
    outside the rule. A trimestre rule covers its whole year ("2025-Q3" only
    fixes the year); the period is then the quarter of the sale.
    """
    kind = parse_period_type(periodo_type)
    value = (periodo_value or "").strip().upper()
    y = signed_on.year

    if kind is PeriodType.MONTH:
        m = _MONTH.match(value)
        if not m or (int(m.group(1)), int(m.group(2))) != (y, signed_on.month):
            return None
        return RulePeriod(date(y, signed_on.month, 1), _month_end(y, signed_on.month), f"{y}-{signed_on.month:02d}")

    m = _YEAR.match(value) or _QUARTER.match(value)
    if not m or int(m.group(1)) != y:
        return None
    if kind is PeriodType.YEAR:
        return RulePeriod(date(y, 1, 1), date(y, 12, 31), str(y))

    quarter = (signed_on.month - 1) // 3 + 1
    first_month = 3 * (quarter - 1) + 1
    return RulePeriod(date(y, first_month, 1), _month_end(y, first_month + 2), f"{y}-Q{quarter}")


def rule_fulfilled(operador: str | RuleOperator, units_sold: int, units_required: int) -> bool:
    op = parse_operator(operador)
    if op is RuleOperator.EQ:
        return units_sold == units_required
    if op is RuleOperator.GTE:
        return units_sold >= units_required
    return units_sold <= units_required


def evaluate_rule(rule, valor_total: Decimal, period: RulePeriod, units_sold: int) -> RuleBonusLine:
    pct = to_decimal(rule.porcentaje_comision, "porcentaje_comision")
    fulfilled = rule_fulfilled(rule.operador, units_sold, rule.unidades_vendidas)
    amount = money(percent_of(to_decimal(valor_total, "valor_total"), pct)) if fulfilled else ZERO
    iva = money(percent_of(amount, to_decimal(rule.porcentaje_iva, "porcentaje_iva")))
    return RuleBonusLine(
        rule_id=rule.id,
        rule_name=rule.rule_name,
        percent=pct,
        amount=amount,
        iva_amount=iva,
        period_label=period.label,
        units_sold=units_sold,
        units_required=rule.unidades_vendidas,
        operador=rule.operador,
        fulfilled=fulfilled,
    )
