"""Application settings and configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings with environment variable loading."""

    # API settings
    PROJECT_NAME: str = "Overlay Mailer"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_PREFIX: str = "/api"

    # CORS
    CORS_ORIGINS: str = "*"
    CORS_HEADERS: str = "*"
    CORS_METHODS: str = "*"

    # JWT Settings (session tokens issued by the identity provider)
    JWT_SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    SESSION_COOKIE_NAME: str = "session_token"

    # Storage Configuration
    STORAGE_PROVIDER: str = "aws_s3"  # Options: local, aws_s3
    LOCAL_STORAGE_PATH: str = "storage"

    # AWS S3 Configuration
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION: Optional[str] = None
    AWS_S3_ENDPOINT: Optional[str] = None
    AWS_S3_FORCE_PATH_STYLE: bool = False

    # Template dataset locations
    TEMPLATES_BUCKET: str
    TEMPLATES_KEY: str = "templates.parquet"
    TEMPLATES_OVERLAY_KEY: str = "templates_overlay.json"
    TEMPLATES_COLORS_KEY: str = "templates_colors.json"
    BASE_DATASET_SOURCE: str = "buffer"  # Options: buffer, url
    PRESIGNED_URL_EXPIRES: int = 300
    ANONYMOUS_USER_ID: str = "anon"

    # Gmail API
    GMAIL_API_BASE_URL: str = "https://gmail.googleapis.com/gmail/v1"
    GMAIL_TIMEOUT_SECONDS: float = 30.0
    EMAIL_SENDER_NAME: str = "Me"

    # Logging
    LOG_DIRECTORY: str = "logs"
    LOG_MAX_BYTES: int = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT: int = 5
    SERVICE_NAME: str = "overlay-mailer"

    @field_validator("API_PREFIX")
    def ensure_api_prefix_has_slash(cls, v: str) -> str:
        """Ensure API prefix starts with a slash."""
        if not v.startswith("/"):
            return f"/{v}"
        return v

    @field_validator("BASE_DATASET_SOURCE")
    def check_dataset_source(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("buffer", "url"):
            raise ValueError("BASE_DATASET_SOURCE must be 'buffer' or 'url'")
        return v

    @staticmethod
    def _split_csv(value: str) -> List[str]:
        if value.strip() == "*":
            return ["*"]
        return [item.strip() for item in value.split(",") if item.strip()]

    @property
    def CORS_ORIGINS_LIST(self) -> List[str]:
        return self._split_csv(self.CORS_ORIGINS)

    @property
    def CORS_METHODS_LIST(self) -> List[str]:
        return self._split_csv(self.CORS_METHODS)

    @property
    def CORS_HEADERS_LIST(self) -> List[str]:
        return self._split_csv(self.CORS_HEADERS)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
