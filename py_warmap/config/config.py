from pathlib import Path
from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

import os

# Explicitly load .env for local/dev environments only if values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ and v is not None}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage Configuration
    database_url: str = Field(default="sqlite:///./data/towns.db", description="Town ledger database URL")
    retention_days: int = Field(default=30, description="Days of untouched ledger rows kept by cleanup")

    # War API Configuration
    war_api_url: str = Field(
        default="https://war-service-live.foxholeservices.com/api",
        description="Base URL of the world conquest API",
    )
    war_api_user_agent: str = Field(default="py-warmap", description="User-Agent sent to the war API")
    request_timeout_seconds: float = Field(default=30.0, description="Timeout for a single war API request")

    # Update Loop Configuration
    update_interval_seconds: float = Field(default=300.0, description="Seconds between update cycles")
    request_delay_seconds: float = Field(default=0.1, description="Pause between per-region fetches")

    # Static Geometry
    static_data_path: str = Field(default="./public/static.json", description="Static region/cell geometry file")

    # Rendering
    output_dir: str = Field(default="./output", description="Directory for rendered SVG maps")
    recent_window_hours: float = Field(default=48.0, description="Window of the recent captures view")
    default_required_victory_towns: int = Field(default=32, description="Victory towns required when the API omits it")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3000, description="API port")
    start_updater: bool = Field(default=True, description="Run the update loop alongside the API")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (json or console)")

    @property
    def retention_ms(self) -> int:
        """Retention window in epoch milliseconds."""
        return int(self.retention_days * 24 * 60 * 60 * 1000)

    @property
    def recent_window_ms(self) -> int:
        return int(self.recent_window_hours * 60 * 60 * 1000)


# Instantiate singleton settings object
settings = Settings()
