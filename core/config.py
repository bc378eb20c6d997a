"""
Runtime configuration for the automation engine.

Values are read from the environment (prefix ``AUTOMATION_``) and from a
``.env`` file in the working directory. Nested values use ``__`` as the
delimiter, e.g. ``AUTOMATION_LOGGING__LEVEL=DEBUG``.
"""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Format used by the file handler",
    )
    log_file: str | None = Field(default=None, description="Optional log file path")
    max_bytes: int = Field(default=10485760, description="Max log file size before rotation")
    backup_count: int = Field(default=5, description="Number of rotated files kept")

    @field_validator("level")
    @classmethod
    def normalise_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {value}")
        return level


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AUTOMATION_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(default="sqlite:///./automation.db", description="SQLAlchemy database URL")
    api_base_url: str = Field(default="http://localhost:5000", description="Base URL for tracking links")
    scheduler_interval_seconds: int = Field(default=60, gt=0, description="Polling interval for due executions")
    scheduler_batch_size: int = Field(default=100, gt=0, description="Max executions resumed per tick")
    default_delay_minutes: int = Field(default=5, gt=0, description="Fallback delay for unknown delay policies")
    timezone: str = Field(default="UTC", description="Timezone for wall-clock delay policies")
    openai_model: str = Field(default="gpt-4o-mini", description="Model used for natural-language authoring")
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process."""
    load_dotenv(override=False)
    return Settings()
