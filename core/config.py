"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the library API happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment. Used for the signing-secret fallback.

Security notes:
  SECRET_KEY and REFRESH_SECRET_KEY fall back to well-known insecure defaults
  when unset, so existing deployments keep booting. The fallback is always
  logged; outside DEBUG it is logged at ERROR level.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/ or catalog/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("libraryapi.config")

_INSECURE_SECRET_KEY = "default_secret"
_INSECURE_REFRESH_SECRET_KEY = "default_refresh_secret"

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'library.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured".
    secret_key: str = ""
    refresh_secret_key: str = ""
    access_token_expire_seconds: int = 3600  # 1 hour
    refresh_token_expire_seconds: int = 7 * 24 * 3600  # 7 days
    bcrypt_rounds: int = 10

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def apply_secret_fallbacks(self) -> "Settings":
        """Fill unset signing secrets with the insecure defaults.

        Both secrets are checked independently: a deployment that only sets
        SECRET_KEY still gets a warning for REFRESH_SECRET_KEY.
        """
        level = logging.WARNING if self.debug else logging.ERROR
        if not self.secret_key:
            self.secret_key = _INSECURE_SECRET_KEY
            logger.log(level, "SECRET_KEY is not set; using the insecure default.")
        if not self.refresh_secret_key:
            self.refresh_secret_key = _INSECURE_REFRESH_SECRET_KEY
            logger.log(level, "REFRESH_SECRET_KEY is not set; using the insecure default.")
        for name in ("secret_key", "refresh_secret_key"):
            if len(getattr(self, name)) < 32:
                logger.warning("%s is shorter than 32 characters.", name.upper())
        if self.bcrypt_rounds < 4 or self.bcrypt_rounds > 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
