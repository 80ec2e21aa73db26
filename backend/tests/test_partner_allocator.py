# tests/test_partner_allocator.py
from __future__ import annotations

import logging
from decimal import Decimal
from types import SimpleNamespace

import pytest

from commission_engine.core.errors import ValidationError
from commission_engine.core.partner_allocator import PartnerAllocator


def sale(sale_phase="1000", post_sale_phase="500"):
    return SimpleNamespace(
        external_deal_id="deal-001",
        commission_sale_phase=Decimal(sale_phase),
        commission_post_sale_phase=Decimal(post_sale_phase),
    )


def partner(name, participacion):
    return SimpleNamespace(socio_name=name, participacion=Decimal(participacion))


def test_each_partner_gets_its_participation_of_both_phases():
    shares = PartnerAllocator().allocate(sale(), [partner("Socio A", "60"), partner("Socio B", "40")])

    a, b = shares
    assert (a.socio_name, a.total_commission_amount) == ("Socio A", Decimal("900.00"))
    assert a.sale_phase_amount == Decimal("600.00")
    assert a.post_sale_phase_amount == Decimal("300.00")
    assert (b.socio_name, b.total_commission_amount) == ("Socio B", Decimal("600.00"))
    assert b.sale_phase_amount == Decimal("400.00")
    assert b.post_sale_phase_amount == Decimal("200.00")


def test_phase_amounts_always_add_up_to_the_total():
    shares = PartnerAllocator().allocate(
        sale("1000.01", "333.33"),
        [partner("A", "33.333333"), partner("B", "33.333333"), partner("C", "33.333334")],
    )
    for s in shares:
        assert s.sale_phase_amount + s.post_sale_phase_amount == s.total_commission_amount


def test_no_partners_means_no_allocation():
    assert PartnerAllocator().allocate(sale(), []) == []


def test_duplicate_partner_is_rejected():
    with pytest.raises(ValidationError):
        PartnerAllocator().allocate(sale(), [partner("Socio A", "50"), partner(" Socio A ", "50")])


@pytest.mark.parametrize("participacion", ["-1", "100.5"])
def test_participation_out_of_range_is_rejected(participacion):
    with pytest.raises(ValidationError):
        PartnerAllocator().allocate(sale(), [partner("Socio A", participacion)])


def test_participation_not_summing_to_100_only_warns(caplog):
    with caplog.at_level(logging.WARNING, logger="commission_engine.core.partner_allocator"):
        shares = PartnerAllocator().allocate(sale(), [partner("Socio A", "60"), partner("Socio B", "30")])

    assert len(shares) == 2
    assert "sum to 90" in caplog.text


def test_participation_within_tolerance_does_not_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="commission_engine.core.partner_allocator"):
        PartnerAllocator(tolerance=Decimal("0.01")).allocate(
            sale(), [partner("Socio A", "60"), partner("Socio B", "39.995")]
        )

    assert caplog.text == ""
