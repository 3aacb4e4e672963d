"""HTTP host configuration loaded from environment variables.

Backend selection lives in :class:`feed_core.config.FeedSettings`; this
module only covers how the server itself is exposed.
"""

from __future__ import annotations

from typing import Self

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class APISettings(BaseSettings):
    """FastAPI application settings.

    All values can be overridden via environment variables prefixed with
    ``API_`` (e.g. ``API_PORT=5000``) or through a ``.env`` file in the
    working directory.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False

    # Prefix the application is mounted under behind a reverse proxy.
    path_base: str = ""

    # Origins permitted by the CORS middleware.
    cors_origins: list[str] = ["*"]

    # Whether CORS responses include credentials (cookies, auth headers).
    cors_allow_credentials: bool = False

    # Answer /robots.txt with a disallow-all policy.
    robots_disallow_all: bool = True

    # Create catalog tables on startup (SQL catalogs only).
    create_tables: bool = True

    # Structured JSON logging for log aggregators.
    structured_logging: bool = False

    @field_validator("path_base")
    @classmethod
    def _normalise_path_base(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = "/" + v
        return v

    @model_validator(mode="after")
    def _validate_cors_credentials_not_wildcard(self) -> Self:
        """Reject wildcard origins when credentials are enabled.

        Browsers reject ``Access-Control-Allow-Origin: *`` together with
        ``Access-Control-Allow-Credentials: true``; fail at startup instead.
        """
        if self.cors_allow_credentials and "*" in self.cors_origins:
            raise ValueError(
                "Cannot use wildcard origins with credentials. "
                "Specify explicit origins instead of '*' when "
                "cors_allow_credentials=True."
            )
        return self


def load_api_settings() -> APISettings:
    """Construct settings from the environment / ``.env`` file."""
    return APISettings()
