# backend/commission_engine/core/config.py

from __future__ import annotations

from decimal import Decimal
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_JWT_SECRET = "dev-secret-change-me"

# libpq-style query params asyncpg.connect() does not accept
_ASYNCPG_REJECTED_PARAMS = frozenset({"sslmode", "channel_binding"})


def clean_async_url(url: str) -> str:
    """
    Managed PostgreSQL URLs (Neon, Supabase, ...) come with ?sslmode=require;
    passed through to asyncpg that ends in
    TypeError: connect() got an unexpected keyword argument 'sslmode'.
    """
    parts = urlsplit(url)
    if not parts.query:
        return url
    kept = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in _ASYNCPG_REJECTED_PARAMS]
    return urlunsplit(parts._replace(query=urlencode(kept, doseq=True)))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -----------------------------
    # Environment
    # -----------------------------
    # development | staging | production
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # -----------------------------
    # DB
    # -----------------------------
    # Local fallback is a SQLite file; production points at PostgreSQL (asyncpg).
    DATABASE_URL_ASYNC: str = "sqlite+aiosqlite:///./commissions.db"

    # -----------------------------
    # JWT (issued by the identity service; we only verify)
    # -----------------------------
    JWT_SECRET: str = PLACEHOLDER_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # -----------------------------
    # Commissions
    # -----------------------------
    COMMISSION_ALLOWED_ROLES: list[str] = ["admin", "ceo"]
    COMMISSION_BATCH_MAX_SALES: int = 1000
    # percentage points of slack allowed when partner participations don't add up to 100
    PARTNER_PARTICIPATION_TOLERANCE: Decimal = Decimal("0.5")
    AUTO_CALCULATE_ON_INGEST: bool = False

    # -----------------------------
    # CORS (dashboard frontend)
    # -----------------------------
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    @field_validator("LOG_LEVEL")
    @classmethod
    def _log_level(cls, v: str) -> str:
        level = (v or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported LOG_LEVEL={v!r}.")
        return level

    @field_validator("COMMISSION_ALLOWED_ROLES")
    @classmethod
    def _roles(cls, v: list[str]) -> list[str]:
        roles = [r.strip().lower() for r in v if r and r.strip()]
        if not roles:
            raise ValueError("COMMISSION_ALLOWED_ROLES cannot be empty.")
        return roles

    @property
    def DATABASE_URL_ASYNC_CLEAN(self) -> str:
        return clean_async_url(self.DATABASE_URL_ASYNC)

    def model_post_init(self, __context) -> None:  # pydantic v2 hook
        env = (self.ENVIRONMENT or "").strip().lower()

        # staging/production never run with the placeholder secret
        if env in {"staging", "production"}:
            secret = (self.JWT_SECRET or "").strip()
            if not secret or secret == PLACEHOLDER_JWT_SECRET:
                raise ValueError("JWT_SECRET must be set to a strong value in staging/production.")
            if len(secret) < 32:
                raise ValueError("JWT_SECRET is too short; use at least 32 characters in staging/production.")

        if self.JWT_ALGORITHM not in {"HS256"}:
            raise ValueError(f"Unsupported JWT_ALGORITHM={self.JWT_ALGORITHM!r}. Allowed: HS256")

        if self.COMMISSION_BATCH_MAX_SALES < 1:
            raise ValueError("COMMISSION_BATCH_MAX_SALES must be >= 1.")
        if self.PARTNER_PARTICIPATION_TOLERANCE < 0:
            raise ValueError("PARTNER_PARTICIPATION_TOLERANCE cannot be negative.")


settings = Settings()
