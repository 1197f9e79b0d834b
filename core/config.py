"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Biblio happen here. No module should call
os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file. Field names map to env var names
      (e.g. access_token_secret -> ACCESS_TOKEN_SECRET).

  @model_validator(mode="after"): cross-field validation once every field is
      resolved. Secrets, the bcrypt work factor and the test environment
      overrides are all settled here.

Security notes:
  [S1] Access and refresh tokens are signed with two different secrets. A
       leaked access secret cannot mint refresh tokens and vice versa, so the
       validator refuses identical values.

  [S2] Secrets shorter than 32 chars are rejected outright.

  [S3] Outside debug/test mode a missing secret is a hard startup failure.

Layer rule: core/ is the kernel. This module may not import from api/, auth/
or library/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("biblio.config")

# bcrypt accepts cost factors 4..31. 4 is the fastest legal value and is what
# the test environment uses.
_BCRYPT_MIN_ROUNDS = 4
_BCRYPT_MAX_ROUNDS = 31


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

    environment: str = "development"  # "development" | "test" | "production"
    debug: bool = False
    database_url: str = "sqlite:///biblio.db"

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = 3001
    cors_origins: list[str] = ["http://localhost:3000"]

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured". The validator either
    # generates a throwaway secret or refuses to start.
    access_token_secret: str = ""
    refresh_token_secret: str = ""
    access_token_expire_seconds: int = 5 * 60
    refresh_token_expire_seconds: int = 24 * 60 * 60
    bcrypt_work_factor: int = 12
    secure_cookies: bool = False

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    login_rate_limit: str = "10/minute"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_auth_settings(self) -> "Settings":
        """Settle token secrets and the bcrypt cost factor.

        Debug or test mode: missing secrets are generated with a warning.
            Sessions do not survive a restart, which is fine locally.

        Otherwise: a missing secret is refused [S3].

        Test mode always drops the bcrypt cost to the minimum so suites that
        create many users stay fast.
        """
        lenient = self.debug or self.is_test
        for field_name in ("access_token_secret", "refresh_token_secret"):
            value = getattr(self, field_name)
            if not value:
                if not lenient:
                    raise ValueError(
                        f"{field_name.upper()} is required in production mode. "
                        "Set it in your environment or .env file. "
                        "To run in development mode, set DEBUG=true."
                    )
                value = secrets.token_hex(32)
                setattr(self, field_name, value)
                if not self.is_test:
                    logger.warning(
                        "WARNING: Using auto-generated %s. Sessions will not persist across restarts.",
                        field_name.upper(),
                    )
            if len(value) < 32:
                raise ValueError(f"{field_name.upper()} must be at least 32 characters.")  # [S2]

        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ.")  # [S1]

        if self.is_test:
            self.bcrypt_work_factor = _BCRYPT_MIN_ROUNDS
        if not _BCRYPT_MIN_ROUNDS <= self.bcrypt_work_factor <= _BCRYPT_MAX_ROUNDS:
            raise ValueError(
                f"BCRYPT_WORK_FACTOR must be between {_BCRYPT_MIN_ROUNDS} and {_BCRYPT_MAX_ROUNDS}."
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() if you need to inject different
    environment variables.
    """
    return Settings()
