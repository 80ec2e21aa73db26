from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials

from commission_engine.core.config import settings
from commission_engine.core.security import bearer_scheme, decode_access_token


@dataclass(frozen=True)
class Actor:
    user_id: str
    role: str


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> Actor:
    payload = decode_access_token(credentials.credentials)
    role = str(payload.get("role") or "").strip().lower()
    return Actor(user_id=str(payload["sub"]), role=role)


def require_roles(roles: str | Sequence[str] | None = None) -> Callable:
    """
    Role gate for commission endpoints.
    Defaults to settings.COMMISSION_ALLOWED_ROLES (admin / ceo).
    """
    if roles is None:
        allowed = None
    else:
        allowed = {r.lower() for r in ([roles] if isinstance(roles, str) else roles)}

    async def _checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        permitted = allowed if allowed is not None else {r.lower() for r in settings.COMMISSION_ALLOWED_ROLES}
        if not actor.role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "rbac_role_missing", "message": "Token carries no role."},
            )
        if actor.role not in permitted:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "rbac_forbidden",
                    "message": "You do not have permission to perform this action.",
                    "required": sorted(permitted),
                    "role": actor.role,
                },
            )
        return actor

    return _checker


# admin / ceo (settings.COMMISSION_ALLOWED_ROLES)
require_commission_role = require_roles()
