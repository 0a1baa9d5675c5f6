# backend/cowork/core/config.py

from __future__ import annotations

from typing import List, Optional
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

from pydantic_settings import BaseSettings, SettingsConfigDict

ALLOWED_IDP_ALGORITHMS = {"HS256", "RS256"}


def _strip_asyncpg_unsupported_params(url: str) -> str:
    """
    asyncpg does NOT accept sslmode or channel_binding as connect kwargs.
    If these appear in the URL query, SQLAlchemy can end up passing them to
    asyncpg.connect(), causing:
      TypeError: connect() got an unexpected keyword argument 'sslmode'
    """
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = parse_qsl(parts.query, keep_blank_values=True)
    filtered = [(k, v) for (k, v) in params if k not in {"sslmode", "channel_binding"}]
    new_query = urlencode(filtered, doseq=True)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, new_query, parts.fragment))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -----------------------------
    # Environment
    # -----------------------------
    # Use: development | staging | production
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # -----------------------------
    # DB
    # -----------------------------
    # App role: row-level security is enforced for every query on this URL.
    DATABASE_URL_ASYNC: str
    DATABASE_URL_SYNC: str

    # Role with BYPASSRLS, used only for identity resolution and invitation
    # acceptance (the caller has no tenant claims yet). Falls back to the app URL.
    SYSTEM_DATABASE_URL_ASYNC: Optional[str] = None

    # -----------------------------
    # Identity provider
    # -----------------------------
    # Tokens are issued by the external provider; we only verify them.
    IDP_JWT_KEY: str = "dev-idp-key-change-me"
    IDP_JWT_ALGORITHM: str = "HS256"
    IDP_ISSUER: Optional[str] = None
    IDP_AUDIENCE: Optional[str] = None

    # -----------------------------
    # Invitations / HTTP
    # -----------------------------
    INVITE_EXPIRY_DAYS: int = 7
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @property
    def DATABASE_URL_ASYNC_CLEAN(self) -> str:
        return _strip_asyncpg_unsupported_params(self.DATABASE_URL_ASYNC)

    @property
    def SYSTEM_DATABASE_URL_ASYNC_CLEAN(self) -> str:
        return _strip_asyncpg_unsupported_params(self.SYSTEM_DATABASE_URL_ASYNC or self.DATABASE_URL_ASYNC)

    def model_post_init(self, __context) -> None:  # pydantic v2 hook
        env = (self.ENVIRONMENT or "").strip().lower()

        # Never run staging/production with the placeholder verification key.
        if env in {"staging", "production"}:
            if not self.IDP_JWT_KEY or self.IDP_JWT_KEY.strip() == "dev-idp-key-change-me":
                raise ValueError("IDP_JWT_KEY must be set in staging/production.")
            if not self.IDP_ISSUER:
                raise ValueError("IDP_ISSUER must be set in staging/production.")
            if not self.SYSTEM_DATABASE_URL_ASYNC:
                raise ValueError("SYSTEM_DATABASE_URL_ASYNC must be set in staging/production.")

        # Light sanity checks (all envs)
        if self.IDP_JWT_ALGORITHM not in ALLOWED_IDP_ALGORITHMS:
            raise ValueError(
                f"Unsupported IDP_JWT_ALGORITHM={self.IDP_JWT_ALGORITHM!r}. "
                f"Allowed: {', '.join(sorted(ALLOWED_IDP_ALGORITHMS))}"
            )
        if self.INVITE_EXPIRY_DAYS < 1:
            raise ValueError("INVITE_EXPIRY_DAYS must be at least 1.")


# this must exist for: `from cowork.core.config import settings`
settings = Settings()
