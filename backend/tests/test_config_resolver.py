# tests/test_config_resolver.py
from __future__ import annotations

import json
from decimal import Decimal

import pytest
from sqlalchemy import select

from commission_engine.core.config_resolver import (
    SOURCE_DEFAULT,
    SOURCE_DEVELOPMENT,
    SOURCE_GLOBAL,
    config_problems,
    load_effective_config,
    resolve,
    validate_config,
)
from commission_engine.core.errors import ConfigNotFound, InvalidConfig
from commission_engine.crud.commission_config import set_global_config
from commission_engine.models.commission_config import (
    GLOBAL_DEFAULT_DESARROLLO,
    CommissionConfig,
    CommissionGlobalConfig,
)

from factories import config_kwargs, create_config, create_global_config


def make_config(**overrides) -> CommissionConfig:
    return CommissionConfig(**config_kwargs(**overrides))


def test_development_value_wins_over_global_override():
    cfg = resolve(
        make_config(),
        {"operations_coordinator_percent": Decimal("5"), "marketing_percent": Decimal("13")},
    )

    assert cfg.operations_coordinator_percent == Decimal("9")
    assert cfg.marketing_percent == Decimal("9")
    assert cfg.indirect_sources["operations_coordinator_percent"] == SOURCE_DEVELOPMENT


def test_global_override_applies_when_development_leaves_it_unset():
    cfg = resolve(
        make_config(operations_coordinator_percent=None, marketing_percent=None),
        {"operations_coordinator_percent": Decimal("10"), "marketing_percent": Decimal("8")},
    )

    assert cfg.operations_coordinator_percent == Decimal("10")
    assert cfg.marketing_percent == Decimal("8")
    assert cfg.indirect_sources == {
        "operations_coordinator_percent": SOURCE_GLOBAL,
        "marketing_percent": SOURCE_GLOBAL,
    }
    assert config_problems(cfg) == []


def test_builtin_default_is_zero_and_then_sale_phase_no_longer_balances():
    cfg = resolve(make_config(operations_coordinator_percent=None, marketing_percent=None), {})

    assert cfg.operations_coordinator_percent == Decimal("0")
    assert cfg.indirect_sources["marketing_percent"] == SOURCE_DEFAULT

    with pytest.raises(InvalidConfig) as exc:
        validate_config(cfg)
    assert any("phase_sale_percent" in p for p in exc.value.context["problems"])


def test_phases_must_sum_to_100():
    problems = config_problems(resolve(make_config(phase_post_sale_percent=Decimal("50")), {}))
    assert any("phase_sale_percent + phase_post_sale_percent" in p for p in problems)


def test_pool_roles_must_sum_to_100():
    problems = config_problems(resolve(make_config(external_advisor_percent=Decimal("20")), {}))
    assert any("100% of the pool" in p for p in problems)


def test_indirect_roles_need_a_sale_phase_to_be_paid_from():
    cfg = resolve(
        make_config(
            phase_sale_percent=Decimal("0"),
            phase_post_sale_percent=Decimal("100"),
            sale_pool_total_percent=Decimal("0"),
            operations_coordinator_percent=Decimal("5"),
            marketing_percent=Decimal("5"),
        ),
        {},
    )

    problems = config_problems(cfg)
    assert any("must be 0 when phase_sale_percent is 0" in p for p in problems)


def test_post_sale_only_config_without_indirect_roles_is_valid():
    cfg = resolve(
        make_config(
            phase_sale_percent=Decimal("0"),
            phase_post_sale_percent=Decimal("100"),
            sale_pool_total_percent=Decimal("0"),
            operations_coordinator_percent=Decimal("0"),
            marketing_percent=Decimal("0"),
        ),
        {},
    )
    assert config_problems(cfg) == []


def test_enabled_optional_role_needs_positive_percent():
    cfg = resolve(
        make_config(
            legal_manager_percent=Decimal("60"),
            post_sale_coordinator_percent=Decimal("40"),
            bonds_enabled=True,
            bonds_percent=Decimal("0"),
        ),
        {},
    )
    problems = config_problems(cfg)
    assert any("bonds_percent must be greater than 0" in p for p in problems)


def test_disabled_optional_role_is_not_counted():
    cfg = resolve(
        make_config(
            legal_manager_percent=Decimal("40"),
            post_sale_coordinator_percent=Decimal("30"),
            customer_service_enabled=True,
            customer_service_percent=Decimal("30"),
            deliveries_enabled=False,
            deliveries_percent=Decimal("25"),
        ),
        {},
    )
    assert config_problems(cfg) == []


def test_snapshot_is_json_serializable():
    snapshot = resolve(make_config(), {}).to_snapshot()

    assert snapshot["phase_sale_percent"] == "60"
    assert snapshot["redistribute_unused_pool"] is True
    json.dumps(snapshot)


@pytest.mark.asyncio
async def test_load_prefers_development_then_global_default(db):
    await create_config(db, desarrollo=GLOBAL_DEFAULT_DESARROLLO)
    await create_config(db, desarrollo="Torre Norte", redistribute_unused_pool=False)
    await db.commit()

    own = await load_effective_config(db, "Torre Norte")
    fallback = await load_effective_config(db, "Bosque Sur")

    assert own.source_desarrollo == "Torre Norte"
    assert own.redistribute_unused_pool is False
    assert fallback.source_desarrollo == GLOBAL_DEFAULT_DESARROLLO
    assert fallback.desarrollo == "Bosque Sur"


@pytest.mark.asyncio
async def test_load_applies_stored_global_overrides(db):
    await create_config(db, operations_coordinator_percent=None, marketing_percent=None)
    await create_global_config(db, "operations_coordinator_percent", Decimal("12"))
    await create_global_config(db, "marketing_percent", Decimal("6"))
    await db.commit()

    cfg = await load_effective_config(db, "Torre Norte")

    assert cfg.operations_coordinator_percent == Decimal("12")
    assert cfg.marketing_percent == Decimal("6")


@pytest.mark.asyncio
async def test_load_without_any_config_is_a_hard_stop(db):
    with pytest.raises(ConfigNotFound) as exc:
        await load_effective_config(db, "Torre Norte")
    assert exc.value.context["desarrollo"] == "Torre Norte"


@pytest.mark.asyncio
async def test_global_override_that_unbalances_an_inheriting_config_is_rejected(db):
    await create_config(db, operations_coordinator_percent=None, marketing_percent=None)
    await create_config(db, desarrollo="Bosque Sur")
    await create_global_config(db, "operations_coordinator_percent", Decimal("9"))
    await create_global_config(db, "marketing_percent", Decimal("9"))
    await db.commit()

    with pytest.raises(InvalidConfig) as exc:
        await set_global_config(db, "marketing_percent", Decimal("12"), "user-admin-1")

    assert exc.value.context["developments"] == ["Torre Norte"]
    assert exc.value.context["config_key"] == "marketing_percent"

    stored = (
        await db.execute(select(CommissionGlobalConfig).where(CommissionGlobalConfig.config_key == "marketing_percent"))
    ).scalar_one()
    assert stored.config_value == Decimal("9")
    cfg = await load_effective_config(db, "Torre Norte")
    assert cfg.marketing_percent == Decimal("9")


@pytest.mark.asyncio
async def test_global_override_change_is_accepted_when_no_config_inherits_it(db):
    await create_config(db)
    await create_global_config(db, "marketing_percent", Decimal("9"))
    await db.commit()

    row = await set_global_config(db, "marketing_percent", Decimal("12"), "user-admin-1")

    assert row.config_value == Decimal("12")
    assert row.updated_by == "user-admin-1"
