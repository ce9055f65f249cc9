"""Configuration settings for the directory admin API."""
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: Optional[str] = None
    database_name: str = "bizdirectory"

    # Runtime
    environment: str = "development"
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Auth
    session_hours: int = 24

    # Cloudinary (CLOUDINARY_URL is read by the SDK itself)
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None

    # Upload ceilings, in characters of the base64 data URL
    logo_max_chars: int = 2_500_000
    category_image_max_chars: int = 3_000_000

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


settings = Settings()
