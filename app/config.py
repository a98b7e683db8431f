"""Application configuration settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    MONGODB_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "second_light"

    # Analysis Service (OpenAI)
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o"
    ANALYSIS_TEMPERATURE: float = 0.2
    ANALYSIS_MAX_TOKENS: int = 2000
    ANALYSIS_TIMEOUT_SECONDS: float = 60.0
    ANALYSIS_MAX_RETRIES: int = 2  # SDK-level retries with backoff on timeout/429/5xx

    # Analysis pipeline
    MIN_DOCUMENT_TEXT_LENGTH: int = 20  # text must be strictly longer than this
    FAIL_ON_PARTIAL_PERSIST: bool = False

    # Client polling
    POLL_INTERVAL_SECONDS: float = 5.0

    # Quota
    MONTHLY_REPORT_LIMIT: int = 30

    # Auth - tokens are issued by the external auth provider
    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None

    # Storage
    STORAGE_BACKEND: str = "local"  # "local" or "gcs"
    UPLOAD_DIR: str = "/tmp/second_light_uploads"
    PUBLIC_BASE_URL: str = "http://localhost:8000/files"
    GCP_PROJECT_ID: Optional[str] = None
    GCP_STORAGE_BUCKET_NAME: Optional[str] = None
    GOOGLE_APPLICATION_CREDENTIALS: Optional[str] = None
    SIGNED_URL_TTL_SECONDS: int = 3600

    # Application
    APP_NAME: str = "Second Light"
    API_V1_PREFIX: str = "/api/v1"
    PORT: int = 8000

    # CORS
    BACKEND_CORS_ORIGINS: str = '["http://localhost:3000", "http://localhost:5173"]'

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from JSON string."""
        try:
            return json.loads(self.BACKEND_CORS_ORIGINS)
        except json.JSONDecodeError:
            return ["http://localhost:3000"]


settings = Settings()
