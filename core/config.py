"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for UserAuth happen here. No module should
call os.getenv() or os.environ.get() directly. The process entry points
(asgi.py, main.py) call get_settings() once and pass the resulting object
down explicitly: create_app(settings) -> TokenService(settings),
PasswordHasher(settings.bcrypt_rounds), UserStore(settings.database_url).

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. access_token_secret -> ACCESS_TOKEN_SECRET).

  @model_validator(mode="after"): Cross-field validation of the two signing
      secrets once all fields are resolved.

Security notes:
  Signing secrets shorter than 32 chars are rejected outright. HS256 signing
  relies on key entropy.

  The access and refresh secrets must differ. If they were equal, an access
  token would verify as a refresh token and vice versa.

  In production mode (DEBUG not set or false), a missing secret is a hard
  startup failure. Debug mode generates random secrets with a warning, so
  issued tokens do not survive a restart.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("userauth.config")

_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file, as long as DEBUG=true or both
    secrets are supplied.
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
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 5555
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = "sqlite:///userauth.db"

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Empty string is the "not configured" sentinel. The validator either
    # generates a dev secret or raises, so callers never see "".
    access_token_secret: str = ""
    refresh_token_secret: str = ""
    access_token_expire_seconds: int = Field(default=15 * 60, gt=0)
    refresh_token_expire_seconds: int = Field(default=2 * 24 * 60 * 60, gt=0)

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    # bcrypt accepts 4..31; each step doubles the cost.
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # ------------------------------------------------------------------
    # Profile pictures
    # ------------------------------------------------------------------

    max_upload_bytes: int = Field(default=5 * 1024 * 1024, gt=0)
    guard_profile_upload: bool = True

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secrets(self) -> "Settings":
        """Enforce the signing-secret policy.

        Dev mode (DEBUG=true): auto-generate any missing secret with a warning.
        Production mode: refuse to start if either secret is missing.
        Both modes: reject short secrets and identical access/refresh secrets.
        """
        for field_name in ("access_token_secret", "refresh_token_secret"):
            env_name = field_name.upper()
            value = getattr(self, field_name)
            if not value:
                if not self.debug:
                    raise ValueError(
                        f"{env_name} is required in production mode. "
                        "Set it in your environment or .env file. "
                        "To run in development mode, set DEBUG=true."
                    )
                setattr(self, field_name, secrets.token_hex(32))
                logger.warning(
                    "Using auto-generated %s. Issued tokens will not survive a restart.",
                    env_name,
                )
            elif len(value) < _MIN_SECRET_LENGTH:
                raise ValueError(f"{env_name} must be at least {_MIN_SECRET_LENGTH} characters.")
        if self.access_token_secret == self.refresh_token_secret:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Called once by the process entry point; everything below it receives the
    object as an argument. In tests, construct Settings(...) directly instead.
    """
    return Settings()
