from __future__ import annotations

from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from common.utils.settings_base import BaseSettings
from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(default="ledger-api")
    env: Literal["dev", "prod", "local"] = Field(default="local")


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    host: str = Field(default="0.0.0.0")  # noqa: S104
    port: int = Field(default=8000, ge=1, le=65535)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")


class DatabaseConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # Empty means "build the URL from DATABASE_URL / POSTGRES_* env vars".
    url: str | None = Field(default=None)
    echo: bool = Field(default=False)
    pool_size: int = Field(default=20, ge=1)
    max_overflow: int = Field(default=10, ge=0)


class ReportsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timezone: str = Field(default="UTC")
    max_workers: int = Field(default=4, ge=1, le=32)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {value}") from e
        return value

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


class Settings(BaseSettings):
    """
    Root config schema for ledger-api.
    Matches YAML structure in services/ledger-api/config/*.yaml
    """

    app: AppConfig = Field(default_factory=AppConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    reports: ReportsConfig = Field(default_factory=ReportsConfig)
