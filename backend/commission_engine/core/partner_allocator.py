# commission_engine/core/partner_allocator.py
from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from commission_engine.core.amounts import HUNDRED, ZERO, money, percent_of, to_decimal
from commission_engine.core.config import settings
from commission_engine.core.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PartnerShare:
    socio_name: str
    participacion: Decimal
    sale_phase_amount: Decimal
    post_sale_phase_amount: Decimal
    total_commission_amount: Decimal


class PartnerAllocator:
    """
    Participation-weighted share of BOTH phases for each capital partner.

    Independent of the staff distribution: partners and staff are two separate
    allocations over the same phase values.
    """

    def __init__(self, tolerance: Decimal | None = None) -> None:
        self.tolerance = settings.PARTNER_PARTICIPATION_TOLERANCE if tolerance is None else tolerance

    def allocate(self, sale, partners: Iterable) -> list[PartnerShare]:
        sale_value = to_decimal(sale.commission_sale_phase, "commission_sale_phase")
        post_value = to_decimal(sale.commission_post_sale_phase, "commission_post_sale_phase")

        shares: list[PartnerShare] = []
        seen: set[str] = set()
        for p in partners:
            name = (p.socio_name or "").strip()
            if not name:
                raise ValidationError("Partner socio_name is required.")
            if name in seen:
                raise ValidationError(f"Partner {name!r} appears more than once.", socio_name=name)
            seen.add(name)

            part = to_decimal(p.participacion, "participacion")
            if part < ZERO or part > HUNDRED:
                raise ValidationError(
                    f"Partner {name!r} participacion must be between 0 and 100.",
                    socio_name=name,
                    participacion=str(part),
                )

            total = money(percent_of(sale_value + post_value, part))
            sale_amount = money(percent_of(sale_value, part))
            shares.append(
                PartnerShare(
                    socio_name=name,
                    participacion=part,
                    sale_phase_amount=sale_amount,
                    # keeps sale + post == total to the cent
                    post_sale_phase_amount=total - sale_amount,
                    total_commission_amount=total,
                )
            )

        if shares:
            participation = sum((s.participacion for s in shares), ZERO)
            if abs(participation - HUNDRED) > self.tolerance:
                logger.warning(
                    "Partner participations for sale %s sum to %s%% (expected 100 +/- %s)",
                    getattr(sale, "external_deal_id", None) or getattr(sale, "id", None),
                    participation,
                    self.tolerance,
                )

        return shares
