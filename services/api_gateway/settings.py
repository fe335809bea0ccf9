from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration for the dispatch API.
    Values are read from environment variables prefixed with DISPATCH_ or a .env file.
    """

    app_name: str = "Rescue Dispatch API"
    version: str = "0.1.0"
    log_level: str = "INFO"

    # Unset keeps everything in process memory.
    database_url: Optional[str] = None
    db_pool_timeout_sec: float = Field(default=10.0, gt=0.0)
    db_statement_timeout_ms: int = Field(default=5000, ge=0)

    # Assignment
    assignment_max_distance_km: Optional[float] = Field(default=None, gt=0.0)
    team_speed_kmh: float = Field(default=40.0, gt=0.0)

    # Role verification after sign-in
    role_check_attempts: int = Field(default=3, ge=1)
    role_check_delay_sec: float = Field(default=0.5, ge=0.0)

    model_config = SettingsConfigDict(
        env_prefix="DISPATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("database_url")
    @classmethod
    def fix_database_url_scheme(cls, v: Optional[str]) -> Optional[str]:
        """Accept the postgres:// scheme hosted providers hand out."""
        if not v:
            return None
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()


settings = Settings()
