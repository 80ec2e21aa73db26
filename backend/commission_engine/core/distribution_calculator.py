# commission_engine/core/distribution_calculator.py
"""
Distribution Calculator

Turns one sale + its effective configuration into the per-role, per-phase
breakdown. Pure: no database, no clock. Persistence is the orchestrator's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from commission_engine.core.amounts import HUNDRED, ZERO, money, percent, percent_of, to_decimal
from commission_engine.core.config_resolver import PERCENT_TOLERANCE, EffectiveConfig
from commission_engine.core.enums import ROLE_DISPLAY_NAMES, PercentBasis, Phase, RoleType
from commission_engine.core.errors import DistributionImbalance, ValidationError


@dataclass(frozen=True)
class DistributionLine:
    role_type: RoleType
    phase: Phase
    person_name: str
    person_id: str | None
    # configured percent and what it is a percent of
    role_percent: Decimal
    percent_basis: PercentBasis
    # percent of the phase value, unrounded; amount == percent_assigned / 100 * phase value
    percent_assigned: Decimal
    amount: Decimal


@dataclass(frozen=True)
class CalculationResult:
    commission_total: Decimal
    commission_sale_phase: Decimal
    commission_post_sale_phase: Decimal
    # pool share nobody received (advisor absent, redistribution off)
    commission_unallocated: Decimal = ZERO
    distributions: list[DistributionLine] = field(default_factory=list)

    def for_phase(self, phase: Phase) -> list[DistributionLine]:
        return [d for d in self.distributions if d.phase is phase]

    def phase_value(self, phase: Phase) -> Decimal:
        return self.commission_sale_phase if phase is Phase.SALE else self.commission_post_sale_phase


def commission_base(sale, commission_total: Decimal | None = None) -> Decimal:
    """
    The commission value itself is an external input: an explicit total, or the
    sale's agreed rate applied to valor_total.
    """
    if commission_total is not None:
        total = to_decimal(commission_total, "commission_total")
    elif getattr(sale, "commission_rate_percent", None) is not None:
        total = percent_of(to_decimal(sale.valor_total, "valor_total"), to_decimal(sale.commission_rate_percent))
    else:
        raise ValidationError(
            "Sale has no commission_rate_percent; pass commission_total explicitly.",
            external_deal_id=getattr(sale, "external_deal_id", None),
        )

    if total < ZERO:
        raise ValidationError("commission_total cannot be negative.", commission_total=str(total))
    return money(total)


class DistributionCalculator:
    """Computes the staff distribution of both phases of a sale."""

    def calculate(
        self,
        sale,
        config: EffectiveConfig,
        commission_total: Decimal | None = None,
    ) -> CalculationResult:
        total = commission_base(sale, commission_total)

        sale_value = money(percent_of(total, config.phase_sale_percent))
        # remainder, so both phases add up to the total to the cent
        post_value = total - sale_value if config.phase_post_sale_percent > ZERO else ZERO
        if config.phase_post_sale_percent <= ZERO:
            sale_value = total

        lines: list[DistributionLine] = []
        forfeited = ZERO

        if config.phase_sale_percent > ZERO:
            sale_lines, forfeited = self._sale_phase(sale, config, sale_value)
            self._check_balance(Phase.SALE, sale_lines, forfeited, sale)
            lines.extend(sale_lines)

        if config.phase_post_sale_percent > ZERO:
            post_lines = self._post_sale_phase(config, post_value)
            self._check_balance(Phase.POST_SALE, post_lines, ZERO, sale)
            lines.extend(post_lines)

        return CalculationResult(
            commission_total=total,
            commission_sale_phase=sale_value,
            commission_post_sale_phase=post_value,
            commission_unallocated=money(percent_of(sale_value, forfeited)),
            distributions=lines,
        )

    # ------------------------------------------------------------------
    # Sale phase
    # ------------------------------------------------------------------
    def pool_percents(self, sale, config: EffectiveConfig) -> tuple[dict[RoleType, Decimal], Decimal]:
        """
        Percent-of-pool per direct role, after applying the advisor-absence policy.
        Returns (percents, forfeited percent of pool).
        """
        sm = config.sale_manager_percent
        do = config.deal_owner_percent
        adv = config.external_advisor_percent
        has_advisor = bool((getattr(sale, "asesor_externo", None) or "").strip())

        if has_advisor or adv <= ZERO:
            roles = {RoleType.SALE_MANAGER: sm, RoleType.DEAL_OWNER: do}
            if has_advisor:
                roles[RoleType.EXTERNAL_ADVISOR] = adv
            return roles, ZERO

        if not config.redistribute_unused_pool:
            return {RoleType.SALE_MANAGER: sm, RoleType.DEAL_OWNER: do}, adv

        remaining = sm + do
        if remaining > ZERO:
            return {
                RoleType.SALE_MANAGER: sm * HUNDRED / remaining,
                RoleType.DEAL_OWNER: do * HUNDRED / remaining,
            }, ZERO

        half = HUNDRED / 2
        return {RoleType.SALE_MANAGER: half, RoleType.DEAL_OWNER: half}, ZERO

    def _sale_phase(
        self,
        sale,
        config: EffectiveConfig,
        phase_value: Decimal,
    ) -> tuple[list[DistributionLine], Decimal]:
        lines: list[DistributionLine] = []
        pool = config.sale_pool_total_percent

        pool_roles, forfeited_of_pool = self.pool_percents(sale, config)
        if pool > ZERO:
            for role, role_pct in pool_roles.items():
                if role_pct <= ZERO:
                    continue
                of_phase = role_pct * pool / HUNDRED
                lines.append(self._line(sale, role, Phase.SALE, role_pct, PercentBasis.POOL, of_phase, phase_value))

        # indirect roles are defined against the TOTAL; re-express against the phase
        for role, role_pct in (
            (RoleType.OPERATIONS_COORDINATOR, config.operations_coordinator_percent),
            (RoleType.MARKETING, config.marketing_percent),
        ):
            if role_pct <= ZERO:
                continue
            of_phase = role_pct * HUNDRED / config.phase_sale_percent
            lines.append(self._line(sale, role, Phase.SALE, role_pct, PercentBasis.TOTAL, of_phase, phase_value))

        forfeited_of_phase = forfeited_of_pool * pool / HUNDRED if pool > ZERO else ZERO
        return lines, forfeited_of_phase

    # ------------------------------------------------------------------
    # Post-sale phase
    # ------------------------------------------------------------------
    def _post_sale_phase(self, config: EffectiveConfig, phase_value: Decimal) -> list[DistributionLine]:
        roles: list[tuple[RoleType, Decimal]] = [
            (RoleType.LEGAL_MANAGER, config.legal_manager_percent),
            (RoleType.POST_SALE_COORDINATOR, config.post_sale_coordinator_percent),
        ]
        for name, enabled, pct in config.optional_roles():
            if enabled:
                roles.append((RoleType(name), pct))

        return [
            self._line(None, role, Phase.POST_SALE, pct, PercentBasis.PHASE, pct, phase_value)
            for role, pct in roles
            if pct > ZERO
        ]

    # ------------------------------------------------------------------
    def _line(
        self,
        sale,
        role: RoleType,
        phase: Phase,
        role_pct: Decimal,
        basis: PercentBasis,
        of_phase: Decimal,
        phase_value: Decimal,
    ) -> DistributionLine:
        name, person_id = person_for_role(role, sale)
        return DistributionLine(
            role_type=role,
            phase=phase,
            person_name=name,
            person_id=person_id,
            role_percent=percent(role_pct),
            percent_basis=basis,
            percent_assigned=of_phase,
            amount=money(percent_of(phase_value, of_phase)),
        )

    def _check_balance(self, phase: Phase, lines: list[DistributionLine], forfeited: Decimal, sale) -> None:
        assigned = sum((d.percent_assigned for d in lines), ZERO)
        if abs(assigned + forfeited - HUNDRED) > PERCENT_TOLERANCE:
            raise DistributionImbalance(
                f"{phase.value} phase distributions cover {percent(assigned + forfeited)}% instead of 100%.",
                phase=phase.value,
                assigned_percent=str(percent(assigned)),
                forfeited_percent=str(percent(forfeited)),
                external_deal_id=getattr(sale, "external_deal_id", None),
            )


def person_for_role(role: RoleType, sale) -> tuple[str, str | None]:
    if sale is not None and role is RoleType.DEAL_OWNER and sale.propietario_deal:
        return sale.propietario_deal, sale.propietario_deal_id
    if sale is not None and role is RoleType.EXTERNAL_ADVISOR and sale.asesor_externo:
        return sale.asesor_externo, sale.asesor_externo_id
    return ROLE_DISPLAY_NAMES[role], None
