from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global SignDesk settings.
    Values are read from the environment and from the .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Project
    project_name: str = "SignDesk API"
    api_v1_str: str = "/api/v1"
    debug: bool = False

    # Security / JWT
    secret_key: str = "changeme"
    access_token_expire_minutes: int = 60
    refresh_token_expire_minutes: int = 10080
    algorithm: str = "HS256"

    # Database
    database_url: str = "sqlite:///./dev.db"

    # S3 / MinIO storage
    s3_endpoint_url: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_bucket_documents: str = "signdesk-documents"

    # CORS
    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Local storage
    signdesk_storage: str = "_storage"
    uploads_dir: str = "uploads"
    signed_dir: str = "signed_documents"
    max_upload_bytes: int = 25 * 1024 * 1024

    # Signature rendering policy
    text_signature_font: str = "Helvetica"
    text_signature_font_size: float = 24.0
    image_display_width: float = 150.0

    # Logging
    log_dir: str = "log"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return the cached global settings instance."""
    return Settings()


settings = get_settings()
