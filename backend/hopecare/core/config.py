# /backend/hopecare/core/config.py

import json
import logging
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, EmailStr, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False
    )

    # --- Environment & Debug ---
    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development", validation_alias="APP_ENV"
    )
    DEBUG: bool = Field(default=False, validation_alias=AliasChoices("DEBUG_MODE", "DEBUG"))
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
    )

    # --- Core Application Settings ---
    APP_NAME: str = Field(default="HopeCare Login Guard", validation_alias="APP_NAME")
    APP_VERSION: str = Field(default="0.1.0", validation_alias="APP_VERSION")
    APP_DESCRIPTION: str = Field(
        default="Login attempt lockout and session validity service for the HopeCare portal.",
        validation_alias="APP_DESCRIPTION",
    )
    API_V1_STR: str = Field(default="/api/v1", validation_alias="API_V1_STR")
    ADMIN_API_TOKEN: str | None = Field(
        default=None,
        description="Shared secret for the admin unlock endpoints. Admin routes are disabled when unset.",
        validation_alias="ADMIN_API_TOKEN",
    )

    # --- Initial Admin (in-memory credential store only) ---
    FIRST_ADMIN_EMAIL: EmailStr | None = Field(default=None, validation_alias="FIRST_ADMIN_EMAIL")
    FIRST_ADMIN_PASSWORD: str | None = Field(default=None, validation_alias="FIRST_ADMIN_PASSWORD")

    # --- Account Lockout Settings ---
    LOGIN_MAX_ATTEMPTS: int = Field(
        default=5,
        ge=1,
        description="Max failed login attempts before lockout",
        validation_alias="LOGIN_MAX_ATTEMPTS",
    )
    LOGIN_LOCKOUT_SECONDS: int = Field(
        default=900,
        ge=0,
        description="Lockout duration in seconds after max failed attempts",
        validation_alias="LOGIN_LOCKOUT_SECONDS",
    )
    LOGIN_GUARD_MAX_RECORDS: int = Field(
        default=10_000,
        ge=1,
        description="Soft bound on tracked identifiers; stale ones are evicted to make room",
        validation_alias="LOGIN_GUARD_MAX_RECORDS",
    )
    LOGIN_GUARD_STALE_AFTER_SECONDS: int = Field(
        default=24 * 60 * 60,
        ge=0,
        description="Idle time after which an unlocked record is dropped by the sweeper",
        validation_alias="LOGIN_GUARD_STALE_AFTER_SECONDS",
    )
    LOGIN_GUARD_SWEEP_INTERVAL_SECONDS: int = Field(
        default=300,
        ge=0,
        description="Interval of the background sweep. 0 disables it.",
        validation_alias="LOGIN_GUARD_SWEEP_INTERVAL_SECONDS",
    )
    SESSION_DURATION_SECONDS: int = Field(
        default=3600, ge=1, validation_alias="SESSION_DURATION_SECONDS"
    )

    # --- Rate Limiting ---
    RATE_LIMIT_ENABLED: bool = Field(default=True, validation_alias="RATE_LIMIT_ENABLED")
    LOGIN_RATE_LIMIT: str = Field(default="20/minute", validation_alias="LOGIN_RATE_LIMIT")

    # --- Security Headers & CSRF ---
    CSRF_PROTECTION_ENABLED: bool = Field(default=True, validation_alias="CSRF_PROTECTION_ENABLED")
    CSRF_COOKIE_NAME: str = Field(default="csrf-token", validation_alias="CSRF_COOKIE_NAME")
    COOKIE_SECURE: bool = Field(default=True, validation_alias="COOKIE_SECURE")
    CONTENT_SECURITY_POLICY: str = Field(
        default=(
            "default-src 'self'; script-src 'self' 'unsafe-inline' 'unsafe-eval'; "
            "style-src 'self' 'unsafe-inline'; img-src 'self' data: https:; font-src 'self' data:;"
        ),
        validation_alias="CONTENT_SECURITY_POLICY",
    )
    PERMISSIONS_POLICY: str = Field(
        default="camera=(), microphone=(), geolocation=(), interest-cohort=()",
        validation_alias="PERMISSIONS_POLICY",
    )

    # --- Logging ---
    SECURITY_LOG_PATH: Path | None = Field(
        default=None,
        description="File for fail2ban-compatible security events. Not written when unset.",
        validation_alias="SECURITY_LOG_PATH",
    )

    # --- Fields for complex parsing ---
    backend_cors_origins_env_str: str | None = Field(
        default='["http://localhost:5173","http://localhost:3000"]',
        validation_alias=AliasChoices("BACKEND_CORS_ORIGINS", "BACKEND_CORS_ORIGINS_ENV"),
    )
    trusted_proxies_env_str: str | None = Field(
        default=None,
        description="Peers allowed to set X-Forwarded-For (JSON list or comma separated)",
        validation_alias="TRUSTED_PROXIES",
    )

    # --- Private storage for parsed values ---
    _parsed_backend_cors_origins: list[str] = []
    _parsed_trusted_proxies: list[str] = []

    def _parse_string_list_input_helper(
        self, input_str: str | None, field_name_for_log: str
    ) -> list[str]:
        parsed_list: list[str] = []
        if not input_str or not input_str.strip():
            return parsed_list
        try:
            loaded_items = json.loads(input_str)
            if isinstance(loaded_items, list):
                parsed_list = [str(item).strip() for item in loaded_items if str(item).strip()]
            else:
                parsed_list = [item.strip() for item in input_str.split(",") if item.strip()]
        except json.JSONDecodeError:
            logger.debug(
                f"JSONDecodeError for {field_name_for_log}. Falling back to comma separation for: '{input_str}'"
            )
            parsed_list = [item.strip() for item in input_str.split(",") if item.strip()]

        if not parsed_list:
            logger.warning(
                f"Env var {field_name_for_log} (value: '{input_str}') resulted in an empty parsed list."
            )
        return parsed_list

    @model_validator(mode="after")
    def _process_complex_fields_and_debug_overrides(self) -> "Settings":
        self._parsed_backend_cors_origins = self._parse_string_list_input_helper(
            self.backend_cors_origins_env_str, "BACKEND_CORS_ORIGINS"
        )
        self._parsed_trusted_proxies = self._parse_string_list_input_helper(
            self.trusted_proxies_env_str, "TRUSTED_PROXIES"
        )

        if self.DEBUG:
            if self.LOG_LEVEL != "DEBUG":
                logger.info("DEBUG mode is ON. Overriding LOG_LEVEL to DEBUG.")
                self.LOG_LEVEL = "DEBUG"
            if self.COOKIE_SECURE:  # http://localhost cannot receive Secure cookies
                logger.info("DEBUG mode is ON. Overriding COOKIE_SECURE to False.")
                self.COOKIE_SECURE = False
        elif self.ENVIRONMENT == "production" and not self.CSRF_PROTECTION_ENABLED:
            logger.warning("CSRF protection is disabled in production.")
        return self

    @property
    def BACKEND_CORS_ORIGINS(self) -> list[str]:
        return self._parsed_backend_cors_origins

    @property
    def TRUSTED_PROXIES(self) -> list[str]:
        return self._parsed_trusted_proxies


settings = Settings()
