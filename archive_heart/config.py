"""Application configuration loaded from the environment."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .themes import DEFAULT_THEME_ID


class Settings(BaseSettings):
    """Settings read from ARCHIVE_HEART_* environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="ARCHIVE_HEART_",
        env_file=".env",
        extra="ignore",
    )

    app_url: str = Field(
        "https://tim3l1ne.vercel.app", description="Public base URL used in share links"
    )
    default_skin: str = Field(DEFAULT_THEME_ID, description="Theme used for new sessions")
    max_upload_bytes: int = Field(10 * 1024 * 1024, description="Largest accepted export or decompressed share link")
    host: str = Field("0.0.0.0", description="Interface the server binds to")
    port: int = Field(8000, description="Port the server listens on")
    log_level: str = Field("info", description="Logging level for server and CLI")


def get_settings() -> Settings:
    return Settings()
