# commission_engine/core/config_resolver.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.core.amounts import HUNDRED, ZERO, to_decimal
from commission_engine.core.errors import ConfigNotFound, InvalidConfig
from commission_engine.models.commission_config import (
    GLOBAL_DEFAULT_DESARROLLO,
    CommissionConfig,
    CommissionGlobalConfig,
)

logger = logging.getLogger(__name__)

# Indirect roles: the only percentages a global override may supply
GLOBAL_CONFIG_KEYS = ("operations_coordinator_percent", "marketing_percent")

# percentage points
PERCENT_TOLERANCE = Decimal("0.0001")

SOURCE_DEVELOPMENT = "development"
SOURCE_GLOBAL = "global"
SOURCE_DEFAULT = "default"


@dataclass(frozen=True)
class EffectiveConfig:
    """
    The configuration one calculation actually runs with.

    Layering for the indirect roles: development value, else global override,
    else 0. Every other field comes straight from the development row (or the
    "*" default row when the development has none).
    """

    desarrollo: str
    source_desarrollo: str

    phase_sale_percent: Decimal
    phase_post_sale_percent: Decimal

    sale_pool_total_percent: Decimal
    sale_manager_percent: Decimal
    deal_owner_percent: Decimal
    external_advisor_percent: Decimal
    redistribute_unused_pool: bool

    operations_coordinator_percent: Decimal
    marketing_percent: Decimal

    legal_manager_percent: Decimal
    post_sale_coordinator_percent: Decimal
    customer_service_enabled: bool = False
    customer_service_percent: Decimal = ZERO
    deliveries_enabled: bool = False
    deliveries_percent: Decimal = ZERO
    bonds_enabled: bool = False
    bonds_percent: Decimal = ZERO

    # field name -> development | global | default
    indirect_sources: dict[str, str] = field(default_factory=dict)

    def optional_roles(self) -> list[tuple[str, bool, Decimal]]:
        return [
            ("customer_service", self.customer_service_enabled, self.customer_service_percent),
            ("deliveries", self.deliveries_enabled, self.deliveries_percent),
            ("bonds", self.bonds_enabled, self.bonds_percent),
        ]

    def to_snapshot(self) -> dict[str, Any]:
        """JSON-safe copy stored on the sale at calculation time."""
        out: dict[str, Any] = {}
        for f in fields(self):
            v = getattr(self, f.name)
            out[f.name] = str(v) if isinstance(v, Decimal) else v
        return out


def _layered(
    name: str,
    development_value,
    global_values: Mapping[str, Decimal],
) -> tuple[Decimal, str]:
    if development_value is not None:
        return to_decimal(development_value, name), SOURCE_DEVELOPMENT
    if name in global_values and global_values[name] is not None:
        return to_decimal(global_values[name], name), SOURCE_GLOBAL
    return ZERO, SOURCE_DEFAULT


def resolve(
    config,
    global_values: Mapping[str, Decimal] | None = None,
    *,
    desarrollo: str | None = None,
) -> EffectiveConfig:
    """
    Merge a stored configuration (ORM row or any object with the same
    attributes) with the global indirect-role overrides.
    """
    global_values = global_values or {}
    ops, ops_src = _layered("operations_coordinator_percent", config.operations_coordinator_percent, global_values)
    mkt, mkt_src = _layered("marketing_percent", config.marketing_percent, global_values)

    def d(name: str) -> Decimal:
        return to_decimal(getattr(config, name, None), name)

    return EffectiveConfig(
        desarrollo=desarrollo or config.desarrollo,
        source_desarrollo=config.desarrollo,
        phase_sale_percent=d("phase_sale_percent"),
        phase_post_sale_percent=d("phase_post_sale_percent"),
        sale_pool_total_percent=d("sale_pool_total_percent"),
        sale_manager_percent=d("sale_manager_percent"),
        deal_owner_percent=d("deal_owner_percent"),
        external_advisor_percent=d("external_advisor_percent"),
        redistribute_unused_pool=bool(
            True if getattr(config, "redistribute_unused_pool", None) is None else config.redistribute_unused_pool
        ),
        operations_coordinator_percent=ops,
        marketing_percent=mkt,
        legal_manager_percent=d("legal_manager_percent"),
        post_sale_coordinator_percent=d("post_sale_coordinator_percent"),
        customer_service_enabled=bool(getattr(config, "customer_service_enabled", False)),
        customer_service_percent=d("customer_service_percent"),
        deliveries_enabled=bool(getattr(config, "deliveries_enabled", False)),
        deliveries_percent=d("deliveries_percent"),
        bonds_enabled=bool(getattr(config, "bonds_enabled", False)),
        bonds_percent=d("bonds_percent"),
        indirect_sources={
            "operations_coordinator_percent": ops_src,
            "marketing_percent": mkt_src,
        },
    )


def _close(a: Decimal, b: Decimal) -> bool:
    return abs(a - b) <= PERCENT_TOLERANCE


def config_problems(cfg: EffectiveConfig) -> list[str]:
    problems: list[str] = []

    ranged = [
        "phase_sale_percent",
        "phase_post_sale_percent",
        "sale_pool_total_percent",
        "sale_manager_percent",
        "deal_owner_percent",
        "external_advisor_percent",
        "operations_coordinator_percent",
        "marketing_percent",
        "legal_manager_percent",
        "post_sale_coordinator_percent",
        "customer_service_percent",
        "deliveries_percent",
        "bonds_percent",
    ]
    for name in ranged:
        v = getattr(cfg, name)
        if v < ZERO or v > HUNDRED:
            problems.append(f"{name} must be between 0 and 100 (got {v}).")

    phases = cfg.phase_sale_percent + cfg.phase_post_sale_percent
    if not _close(phases, HUNDRED):
        problems.append(f"phase_sale_percent + phase_post_sale_percent must be 100 (got {phases}).")

    if cfg.phase_sale_percent > ZERO:
        pool_roles = cfg.sale_manager_percent + cfg.deal_owner_percent + cfg.external_advisor_percent
        if cfg.sale_pool_total_percent > ZERO and not _close(pool_roles, HUNDRED):
            problems.append(
                f"sale_manager + deal_owner + external_advisor must be 100% of the pool (got {pool_roles})."
            )

        # pool is a share of the sale phase; indirect roles are a share of the total
        sale_phase_used = (
            cfg.sale_pool_total_percent * cfg.phase_sale_percent / HUNDRED
            + cfg.operations_coordinator_percent
            + cfg.marketing_percent
        )
        if not _close(sale_phase_used, cfg.phase_sale_percent):
            problems.append(
                "pool (in % of total) + operations_coordinator + marketing must equal "
                f"phase_sale_percent {cfg.phase_sale_percent} (got {sale_phase_used})."
            )
    else:
        # no sale phase to pay them from
        indirect = cfg.operations_coordinator_percent + cfg.marketing_percent
        if indirect > ZERO:
            problems.append(
                "operations_coordinator + marketing must be 0 when phase_sale_percent is 0 "
                f"(got {indirect})."
            )

    for name, enabled, pct in cfg.optional_roles():
        if enabled and pct <= ZERO:
            problems.append(f"{name}_percent must be greater than 0 when {name} is enabled.")

    if cfg.phase_post_sale_percent > ZERO:
        post = cfg.legal_manager_percent + cfg.post_sale_coordinator_percent
        post += sum((pct for _, enabled, pct in cfg.optional_roles() if enabled), ZERO)
        if not _close(post, HUNDRED):
            problems.append(f"post-sale roles (enabled only) must sum to 100 (got {post}).")

    return problems


def validate_config(cfg: EffectiveConfig) -> EffectiveConfig:
    problems = config_problems(cfg)
    if problems:
        raise InvalidConfig(
            f"Commission configuration for {cfg.source_desarrollo!r} is invalid.",
            desarrollo=cfg.source_desarrollo,
            problems=problems,
        )
    return cfg


async def get_global_values(db: AsyncSession) -> dict[str, Decimal]:
    rows = (
        await db.execute(
            select(CommissionGlobalConfig).where(CommissionGlobalConfig.config_key.in_(GLOBAL_CONFIG_KEYS))
        )
    ).scalars().all()
    return {r.config_key: to_decimal(r.config_value, r.config_key) for r in rows}


async def load_effective_config(db: AsyncSession, desarrollo: str) -> EffectiveConfig:
    """
    Development config, else the global default ("*") row, else ConfigNotFound.
    The result is validated: a stored config that no longer balances (e.g. after
    a global override edit) stops the calculation instead of misstating payouts.
    """
    key = (desarrollo or "").strip()
    config = (
        await db.execute(select(CommissionConfig).where(CommissionConfig.desarrollo == key))
    ).scalar_one_or_none()

    if config is None:
        config = (
            await db.execute(
                select(CommissionConfig).where(CommissionConfig.desarrollo == GLOBAL_DEFAULT_DESARROLLO)
            )
        ).scalar_one_or_none()
        if config is None:
            raise ConfigNotFound(
                f"No commission configuration for development {key!r} and no global default.",
                desarrollo=key,
            )
        logger.debug("Development %r has no config; using global default", key)

    cfg = resolve(config, await get_global_values(db), desarrollo=key)
    return validate_config(cfg)
