"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "SES Platform API"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Storage
    data_dir: Path = Path("data")

    # OpenTelemetry
    otel_enabled: bool = True
    otel_service_name: str = "ses-platform-api"
    otel_exporter_endpoint: str = "http://localhost:4317"

    # Provisioning
    provision_on_create: bool = True  # Launch simulated provisioning as soon as an environment is created
    provisioning_stage_interval_seconds: float = 2.0  # Delay per simulated stage
    fleet_validation_delay_seconds: float = 1.0  # Delay before calling the fleet backend
    uptime_tick_seconds: float = 60.0  # Uptime/cost accrual period for running environments

    # Fleet backend (AWS IoT FleetWise)
    fleet_default_region: str = "us-east-1"

    def ensure_data_dirs(self) -> None:
        """Create data directory structure if it doesn't exist."""
        (self.data_dir / "metadata").mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
