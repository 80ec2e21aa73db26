# commission_engine/api/v1/commission_rules.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from commission_engine.api.deps.auth import Actor, require_commission_role
from commission_engine.crud import commission_rule as rule_crud
from commission_engine.db.session import get_db
from commission_engine.schemas.commission_rule import RuleCreate, RuleOut, RuleUpdate

router = APIRouter(prefix="/commissions", tags=["commission-rules"])


@router.get("/rules", response_model=list[RuleOut])
async def list_rules(
    desarrollo: Optional[str] = None,
    active_only: bool = False,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    return await rule_crud.list_rules(db, desarrollo=desarrollo, active_only=active_only)


@router.post("/rules", response_model=RuleOut, status_code=status.HTTP_201_CREATED)
async def create_rule(
    payload: RuleCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    return await rule_crud.create_rule(db, payload.model_dump(), actor.user_id)


@router.put("/rules/{rule_id}", response_model=RuleOut)
async def update_rule(
    rule_id: UUID,
    payload: RuleUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    return await rule_crud.update_rule(
        db,
        rule_id,
        payload.model_dump(exclude_unset=True, exclude_none=True),
        actor.user_id,
    )


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rule(
    rule_id: UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_commission_role),
):
    await rule_crud.delete_rule(db, rule_id, actor.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
