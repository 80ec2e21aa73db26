# commission_engine/core/security.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from commission_engine.core.config import settings

bearer_scheme = HTTPBearer(auto_error=True)

_QUOTES = ('"', "'")


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _normalize_token(token: Optional[str]) -> str:
    """
    Tokens pasted into Swagger often arrive quoted, padded with whitespace or
    with a second "Bearer " prefix.
    """
    t = (token or "").strip()
    if len(t) >= 2 and t[0] in _QUOTES and t[-1] == t[0]:
        t = t[1:-1].strip()
    if t[:7].lower() == "bearer ":
        t = t[7:].strip()
    return t


def create_access_token(
    subject: str,
    role: Optional[str] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """
    Tokens are normally issued by the identity service; this mirrors its claims
    (sub + role) for local use and tests.
    """
    issued = datetime.now(timezone.utc)
    expires = issued + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims: dict[str, Any] = {
        "sub": str(subject),
        "iat": int(issued.timestamp()),
        "exp": int(expires.timestamp()),
    }
    if role:
        claims["role"] = role

    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verified claims; any failure (expired, bad signature, no sub) is a 401."""
    token = _normalize_token(token)
    if not token:
        raise _unauthorized()

    try:
        claims = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError:
        raise _unauthorized() from None

    if not claims.get("sub"):
        raise _unauthorized()
    return claims
