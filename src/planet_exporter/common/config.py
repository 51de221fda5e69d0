"""Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env files.
Each collection task has its own settings block with a shared base.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExporterSettings(BaseSettings):
    """HTTP exposition configuration."""

    model_config = SettingsConfigDict(env_prefix="EXPORTER_")

    host: str = "0.0.0.0"
    port: int = Field(default=19100, ge=1, le=65535)


class TaskSettings(BaseSettings):
    """Collection interval configuration."""

    model_config = SettingsConfigDict(env_prefix="TASK_")

    # Interval between collections of expensive data (socket correlation)
    interval_seconds: float = Field(default=7.0, gt=0)

    # Inventory changes rarely, so it refreshes on a multiple of the interval
    inventory_interval_multiplier: int = Field(default=25, ge=1)

    @property
    def inventory_interval_seconds(self) -> float:
        """Interval between inventory refreshes."""
        return self.interval_seconds * self.inventory_interval_multiplier


class InventorySettings(BaseSettings):
    """Inventory feed configuration."""

    model_config = SettingsConfigDict(env_prefix="INVENTORY_")

    enabled: bool = False
    url: str | None = None
    format: Literal["arrayjson", "ndjson"] = "arrayjson"

    request_timeout_seconds: float = Field(default=5.0, gt=0)
    deadline_seconds: float = Field(default=10.0, gt=0)


class SocketstatSettings(BaseSettings):
    """Socket correlation configuration."""

    model_config = SettingsConfigDict(env_prefix="SOCKETSTAT_")

    enabled: bool = True
    deadline_seconds: float = Field(default=5.0, gt=0)

    # Sockets kept per owning process, applied after the OS socket table is read
    max_connections_per_process: int = Field(default=4096, ge=1)

    # Well-known external address used to discover the default local address.
    # No packet is sent to it.
    probe_address: str = "8.8.8.8"
    probe_port: int = Field(default=53, ge=1, le=65535)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    include_timestamp: bool = True
    include_caller: bool = True


class Settings(BaseSettings):
    """Main application settings aggregating all configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application info
    app_name: str = "planet-exporter"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "production"

    # Sub-configurations
    exporter: ExporterSettings = Field(default_factory=ExporterSettings)
    task: TaskSettings = Field(default_factory=TaskSettings)
    inventory: InventorySettings = Field(default_factory=InventorySettings)
    socketstat: SocketstatSettings = Field(default_factory=SocketstatSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
