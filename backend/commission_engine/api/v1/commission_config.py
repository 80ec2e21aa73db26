# commission_engine/api/v1/commission_config.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.api.deps.auth import Actor, require_commission_role
from commission_engine.core.errors import NotFound
from commission_engine.crud import commission_config as config_crud
from commission_engine.db.session import get_db
from commission_engine.schemas.commission_config import (
    ConfigOut,
    ConfigUpsert,
    GlobalConfigOut,
    GlobalConfigUpdate,
)

router = APIRouter(prefix="/commissions", tags=["commission-config"])


@router.get("/config", response_model=list[ConfigOut])
async def get_config(
    desarrollo: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    if desarrollo is None:
        return await config_crud.list_configs(db)

    config = await config_crud.get_config(db, desarrollo.strip())
    if not config:
        raise NotFound("No configuration for this development", desarrollo=desarrollo)
    return [config]


@router.put("/config", response_model=ConfigOut)
async def put_config(
    payload: ConfigUpsert,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    return await config_crud.upsert_config(db, payload.model_dump(), actor.user_id)


@router.get("/global-config", response_model=list[GlobalConfigOut])
async def list_global_config(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    return await config_crud.list_global_configs(db)


@router.put("/global-config/{config_key}", response_model=GlobalConfigOut)
async def put_global_config(
    config_key: str,
    payload: GlobalConfigUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    return await config_crud.set_global_config(
        db,
        config_key,
        payload.config_value,
        actor.user_id,
        description=payload.description,
    )
