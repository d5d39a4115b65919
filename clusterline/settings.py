from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CLUSTERLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    aws_region: str = "us-east-1"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None
    aws_profile: str | None = None

    # seconds between convergence checks
    poll_interval: float = 15.0

    retry_max_attempts: int = 5
    retry_initial_delay: float = 1.0
    retry_multiplier: float = 2.0

    default_cidr: str = "10.0.0.0/24"
    service_desired_count: int = 1

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
