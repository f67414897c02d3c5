import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # HTTP Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")
    cors_allow_origins: str = Field(default="*", alias="CORS_ALLOW_ORIGINS")

    # Upstream (Apps Script) Configuration
    upstream_url: str = Field(
        default=(
            "https://script.google.com/macros/s/"
            "AKfycbyGQ9NJhoY--Fl07JOtfIZKS1dS4Ujzeirf-lDcGYY9XM0ItOCgJItMwit5rIiSge_u/exec"
        ),
        alias="UPSTREAM_URL",
    )

    # Retry Configuration
    retry_attempts: int = Field(default=3, gt=0, alias="RETRY_ATTEMPTS")
    backoff_unit_ms: int = Field(default=1000, gt=0, alias="BACKOFF_UNIT_MS")
    attempt_timeout_seconds: float = Field(default=30.0, gt=0, alias="ATTEMPT_TIMEOUT")

    # Health Check Configuration
    health_check_interval_minutes: int = Field(
        default=60, gt=0, alias="HEALTH_CHECK_INTERVAL"
    )
    health_check_action: str = Field(default="getDrivers", alias="HEALTH_CHECK_ACTION")
    health_check_on_startup: bool = Field(
        default=False, alias="HEALTH_CHECK_ON_STARTUP"
    )

    # Audit Log Configuration
    log_dir: str = Field(default="logs", alias="LOG_DIR")
    log_file: str = Field(default="system.log", alias="LOG_FILE")

    @property
    def log_path(self) -> str:
        return os.path.join(self.log_dir, self.log_file)

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


def load_settings() -> Settings:
    """Build settings from the process environment (after .env is loaded)."""
    return Settings.model_validate(dict(os.environ))


global_settings = load_settings()
