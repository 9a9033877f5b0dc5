"""Library configuration using Pydantic Settings."""

import re
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings
from typing import Optional


KIB = 1024
MIB = 1024 * KIB

# S3 refuses non-final multipart parts smaller than this
S3_MIN_PART_SIZE = 5 * MIB


class Settings(BaseSettings):
    """Library settings with environment variable support.

    Connection values are only defaults for ``new_s3client_from_settings``;
    the extension layer itself never reads credentials from here.
    """

    # Identity (injected into every log record)
    SERVICE_NAME: str = "s3-ext"
    VERSION: str = "0.5.2"
    ENVIRONMENT: str = "development"  # development, staging, production

    # Logging Configuration
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_JSON: bool = True    # JSON logs (prod) vs pretty console (dev)
    DEBUG: bool = False

    # S3 Connection Defaults
    AWS_REGION: str = "eu-west-1"
    AWS_ENDPOINT_URL: Optional[str] = None  # For MinIO or S3-compatible services
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    S3_ADDRESSING_STYLE: str = "path"  # path, virtual, auto

    # Transfer Tuning
    DOWNLOAD_CHUNK_SIZE: int = 512 * KIB
    LIST_PAGE_SIZE: int = 1000
    MULTIPART_MIN_PART_SIZE: int = S3_MIN_PART_SIZE

    @field_validator('AWS_ENDPOINT_URL')
    @classmethod
    def validate_endpoint_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate endpoint URL format if provided."""
        if v is None or v == "":
            return None

        if not re.match(r'^https?://.+', v):
            raise ValueError(
                f"AWS_ENDPOINT_URL must start with http:// or https://, got '{v}'"
            )

        return v

    @field_validator('S3_ADDRESSING_STYLE')
    @classmethod
    def validate_addressing_style(cls, v: str) -> str:
        """Normalize addressing style to one botocore understands."""
        style = (v or "path").strip().lower()
        if style not in ("path", "virtual", "auto"):
            raise ValueError(
                f"S3_ADDRESSING_STYLE must be one of path, virtual, auto, got '{v}'"
            )
        return style

    @field_validator('DOWNLOAD_CHUNK_SIZE', 'MULTIPART_MIN_PART_SIZE')
    @classmethod
    def validate_positive_size(cls, v: int) -> int:
        """Ensure byte sizes are positive."""
        if v <= 0:
            raise ValueError(f"Size must be positive, got {v}")
        return v

    @field_validator('LIST_PAGE_SIZE')
    @classmethod
    def validate_list_page_size(cls, v: int) -> int:
        """S3 returns at most 1000 keys per ListObjectsV2 call."""
        if not 1 <= v <= 1000:
            raise ValueError(f"LIST_PAGE_SIZE must be between 1 and 1000, got {v}")
        return v

    @model_validator(mode='after')
    def validate_credentials_pair(self):
        """Access key and secret key must be configured together."""
        if bool(self.AWS_ACCESS_KEY_ID) != bool(self.AWS_SECRET_ACCESS_KEY):
            raise ValueError(
                "AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY must be set together"
            )
        return self

    @property
    def is_debug_mode(self) -> bool:
        """Check if debug mode is enabled."""
        return self.DEBUG or self.LOG_LEVEL.upper() == "DEBUG"

    @property
    def use_json_logs(self) -> bool:
        """Determine if JSON logging should be used.

        In production, always use JSON logs.
        In development, allow override via LOG_JSON setting.
        """
        if self.ENVIRONMENT == "production":
            return True
        if self.DEBUG:
            return self.LOG_JSON
        return True

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
