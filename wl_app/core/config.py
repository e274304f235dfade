# wl_app/core/config.py
from __future__ import annotations
import logging
from typing import List, Optional, Set

from pydantic import Field, AliasChoices, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- storage ---
    database_url: str = Field(
        default="sqlite+aiosqlite:///./waitlist.db",
        validation_alias=AliasChoices("WL_DATABASE_URL", "DATABASE_URL"),
    )

    # --- admin auth ---
    jwt_secret: str = Field(
        default="change_me",
        validation_alias=AliasChoices("WL_JWT_SECRET", "JWT_SECRET"),
    )
    admin_token_hours: int = Field(
        default=24,
        validation_alias=AliasChoices("WL_ADMIN_TOKEN_HOURS"),
    )
    admin_emails_raw: str = Field(
        default="",
        validation_alias=AliasChoices("WL_ADMIN_EMAILS"),
    )
    admin_emails_file: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("WL_ADMIN_EMAILS_FILE"),
    )
    admin_require_password: bool = Field(
        default=False,
        validation_alias=AliasChoices("WL_ADMIN_REQUIRE_PASSWORD"),
    )

    # --- verification ---
    verification_token_hours: int = Field(
        default=24,
        validation_alias=AliasChoices("WL_VERIFICATION_TOKEN_HOURS"),
    )

    # --- rate limits (max requests, window ms) ---
    signup_rate_max: int = Field(default=5, validation_alias=AliasChoices("WL_SIGNUP_RATE_MAX"))
    signup_rate_window_ms: int = Field(default=15 * 60 * 1000, validation_alias=AliasChoices("WL_SIGNUP_RATE_WINDOW_MS"))
    verify_rate_max: int = Field(default=10, validation_alias=AliasChoices("WL_VERIFY_RATE_MAX"))
    verify_rate_window_ms: int = Field(default=15 * 60 * 1000, validation_alias=AliasChoices("WL_VERIFY_RATE_WINDOW_MS"))
    admin_auth_rate_max: int = Field(default=5, validation_alias=AliasChoices("WL_ADMIN_AUTH_RATE_MAX"))
    admin_auth_rate_window_ms: int = Field(default=15 * 60 * 1000, validation_alias=AliasChoices("WL_ADMIN_AUTH_RATE_WINDOW_MS"))
    admin_verify_rate_max: int = Field(default=30, validation_alias=AliasChoices("WL_ADMIN_VERIFY_RATE_MAX"))
    admin_verify_rate_window_ms: int = Field(default=60 * 1000, validation_alias=AliasChoices("WL_ADMIN_VERIFY_RATE_WINDOW_MS"))
    admin_api_rate_max: int = Field(default=100, validation_alias=AliasChoices("WL_ADMIN_API_RATE_MAX"))
    admin_api_rate_window_ms: int = Field(default=60 * 1000, validation_alias=AliasChoices("WL_ADMIN_API_RATE_WINDOW_MS"))

    # --- http ---
    # proxies in front of the app that append to X-Forwarded-For; 0 = use the socket peer
    trusted_proxy_hops: int = Field(
        default=0,
        validation_alias=AliasChoices("WL_TRUSTED_PROXY_HOPS"),
    )
    cors_origins_raw: str = Field(
        default="http://localhost:5000,http://localhost:3000,http://localhost:5173",
        validation_alias=AliasChoices("WL_CORS_ORIGINS"),
    )

    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("WL_LOG_LEVEL", "LOG_LEVEL"),
    )
    env: str = Field(
        default="development",
        validation_alias=AliasChoices("env", "ENV"),
    )

    # Derived/normalized
    admin_emails: Set[str] = set()
    cors_origins: List[str] = []

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _normalize(self):
        self.admin_emails = {
            e.strip().lower() for e in self.admin_emails_raw.split(",") if e.strip()
        }
        self.cors_origins = [o.strip() for o in self.cors_origins_raw.split(",") if o.strip()]
        self.log_level = self.log_level.upper()
        return self


settings = Settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("wl_app")
