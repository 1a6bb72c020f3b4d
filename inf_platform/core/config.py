"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "inf_user"
    postgres_password: str = "password"
    postgres_db: str = "inf_platform"

    # MongoDB (student CV storage)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "inf_documents"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440
    verify_email_expire_minutes: int = 2880
    require_email_confirmation: bool = True

    # Signup rules
    allowed_email_domains: List[str] = ["um6p.ma", "gmail.com"]
    password_min_length: int = 12

    # Booking workflow
    slot_refresh_seconds: float = 10.0
    profile_poll_attempts: int = 5
    profile_poll_base_delay: float = 0.5

    # Uploads
    max_upload_mb: int = 5

    # App
    debug: bool = False
    log_level: str = "INFO"

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
