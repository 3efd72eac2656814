"""Runtime configuration loaded from environment variables.

Uses pydantic-settings so that every value can come from the process
environment or a ``.env`` file.  The signing secret and Redis URL also
accept the unprefixed ``JWT_SECRET`` / ``REDIS_URL`` names used by existing
deployments.

Classes
-------
- HandoffSettings  — validated settings for the server, CLI and runtime
"""
from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_SQLITE_PATH: Path = Path.home() / ".kiosk-handoff" / "handoff.db"


class HandoffSettings(BaseSettings):
    """Settings for the handoff server and CLI.

    Parameters
    ----------
    signing_secret:
        Shared HMAC secret for transfer tokens.  When unset, token issue and
        validation fail with ``ConfigurationError`` while the rest of the
        service keeps running.
    redis_url:
        Connection URL of the shared key-value store.  When unset an
        in-process store is used, which only works for a single process.
    record_backend:
        Where session and product records live: ``"memory"``,
        ``"sqlite"`` or ``"redis"``.
    sqlite_path:
        Database file for the ``sqlite`` record backend.
    token_ttl_seconds:
        Validity window of a transfer token, measured from issuance.
    sweep_interval_seconds:
        Period of the expiry sweeper.
    registry_ttl_seconds:
        Lifetime of a connection registration, refreshed by every inbound
        event from that identity.  ``None`` keeps entries until disconnect.
    mobile_recommendation_limit:
        Products returned with each chat reply.
    kiosk_recommendation_limit:
        Products pushed to the kiosk after a transfer.
    catalog_path:
        Optional JSON or YAML product file loaded at startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="HANDOFF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="none",
        populate_by_name=True,
    )

    signing_secret: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("HANDOFF_SIGNING_SECRET", "JWT_SECRET"),
    )
    redis_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("HANDOFF_REDIS_URL", "REDIS_URL"),
    )
    record_backend: Literal["memory", "sqlite", "redis"] = "memory"
    sqlite_path: Path = _DEFAULT_SQLITE_PATH

    token_ttl_seconds: int = Field(default=300, gt=0)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)
    registry_ttl_seconds: int | None = Field(default=1800, gt=0)

    mobile_recommendation_limit: int = Field(default=3, ge=1)
    kiosk_recommendation_limit: int = Field(default=5, ge=1)
    catalog_path: Path | None = None

    host: str = "0.0.0.0"  # nosec B104
    port: int = 5000
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    @field_validator("signing_secret", mode="before")
    @classmethod
    def _blank_secret_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, value: str) -> str:
        return value.upper()

    def secret_bytes(self) -> bytes | None:
        """Return the signing secret as bytes, or None when unset."""
        if self.signing_secret is None:
            return None
        return self.signing_secret.get_secret_value().encode("utf-8")


__all__ = ["HandoffSettings"]
