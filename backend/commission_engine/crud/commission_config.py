# commission_engine/crud/commission_config.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.core.config_resolver import (
    GLOBAL_CONFIG_KEYS,
    config_problems,
    get_global_values,
    resolve,
    validate_config,
)
from commission_engine.core.errors import Conflict, InvalidConfig, NotFound, ValidationError
from commission_engine.models.commission_config import CommissionConfig, CommissionGlobalConfig

logger = logging.getLogger(__name__)


async def get_config(db: AsyncSession, desarrollo: str) -> CommissionConfig | None:
    return (
        await db.execute(select(CommissionConfig).where(CommissionConfig.desarrollo == desarrollo))
    ).scalar_one_or_none()


async def list_configs(db: AsyncSession) -> list[CommissionConfig]:
    return list((await db.execute(select(CommissionConfig).order_by(CommissionConfig.desarrollo))).scalars().all())


async def upsert_config(db: AsyncSession, data: dict[str, Any], actor_id: str) -> CommissionConfig:
    """
    Validated against the CURRENT global overrides before anything is written.
    Applies prospectively: sales already calculated keep their snapshot.
    """
    data = dict(data)
    desarrollo = (data.get("desarrollo") or "").strip()
    if not desarrollo:
        raise ValidationError("desarrollo is required.")
    data["desarrollo"] = desarrollo

    global_values = await get_global_values(db)
    config = await get_config(db, desarrollo)
    created = config is None
    if created:
        config = CommissionConfig(created_by=actor_id)
        db.add(config)

    for k, v in data.items():
        setattr(config, k, v)
    config.updated_by = actor_id

    try:
        validate_config(resolve(config, global_values))
    except InvalidConfig:
        await db.rollback()
        raise

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Configuration was created concurrently; retry.", desarrollo=desarrollo)
    except Exception:
        await db.rollback()
        raise

    await db.refresh(config)
    logger.info("Commission config %r %s by %s", desarrollo, "created" if created else "updated", actor_id)
    return config


async def list_global_configs(db: AsyncSession) -> list[CommissionGlobalConfig]:
    return list(
        (await db.execute(select(CommissionGlobalConfig).order_by(CommissionGlobalConfig.config_key))).scalars().all()
    )


async def _configs_broken_by(
    db: AsyncSession,
    config_key: str,
    global_values: dict[str, Decimal],
) -> dict[str, list[str]]:
    """Configs (the "*" default included) that inherit config_key and would stop balancing."""
    inheriting = (
        await db.execute(select(CommissionConfig).where(getattr(CommissionConfig, config_key).is_(None)))
    ).scalars().all()
    broken: dict[str, list[str]] = {}
    for config in inheriting:
        problems = config_problems(resolve(config, global_values))
        if problems:
            broken[config.desarrollo] = problems
    return broken


async def set_global_config(
    db: AsyncSession,
    config_key: str,
    value: Decimal,
    actor_id: str,
    description: str | None = None,
) -> CommissionGlobalConfig:
    """
    Rejected with InvalidConfig when any configuration inheriting the override
    would no longer balance; nothing is written in that case.
    """
    if config_key not in GLOBAL_CONFIG_KEYS:
        raise NotFound(
            f"Unknown global config key {config_key!r}.",
            allowed=list(GLOBAL_CONFIG_KEYS),
        )
    if value < 0 or value > 100:
        raise ValidationError(f"{config_key} must be between 0 and 100.")

    global_values = await get_global_values(db)
    global_values[config_key] = value
    broken = await _configs_broken_by(db, config_key, global_values)
    if broken:
        raise InvalidConfig(
            f"Setting {config_key} = {value} would unbalance {len(broken)} configuration(s) inheriting it.",
            config_key=config_key,
            developments=sorted(broken),
            problems=broken,
        )

    row = (
        await db.execute(select(CommissionGlobalConfig).where(CommissionGlobalConfig.config_key == config_key))
    ).scalar_one_or_none()
    if row is None:
        row = CommissionGlobalConfig(config_key=config_key)
        db.add(row)

    row.config_value = value
    if description is not None:
        row.description = description
    row.updated_by = actor_id

    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(row)
    logger.info("Global commission config %s = %s by %s", config_key, value, actor_id)
    return row
