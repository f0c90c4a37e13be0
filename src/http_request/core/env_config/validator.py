"""
Pydantic settings for engine configuration from the environment.
"""

from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """
    Engine configuration from environment variables.

    Reads from:
    1. Environment variables (HTTP_REQUEST_*)
    2. .env file
    3. Defaults

    Example .env file:
        HTTP_REQUEST_MAX_REDIRECTS=10
        HTTP_REQUEST_LEGACY_METHOD_REWRITE=preserve
        HTTP_REQUEST_CONNECTION_TIMEOUT_MS=5000
        HTTP_REQUEST_LOG_LEVEL=DEBUG
        HTTP_REQUEST_LOG_FORMAT=json
    """

    model_config = SettingsConfigDict(
        env_prefix='HTTP_REQUEST_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )

    # Redirects
    max_redirects: int = Field(default=5, ge=0, le=100)
    legacy_method_rewrite: Literal["get", "preserve"] = Field(default="get")
    allow_downgrade: bool = Field(default=False)
    strip_auth_on_cross_origin: bool = Field(default=True)

    # Default timeouts for parameter mappings without explicit values
    connection_timeout_ms: int = Field(default=10000, ge=0)
    read_timeout_ms: int = Field(default=10000, ge=0)

    user_agent: Optional[str] = Field(default="http-request-core")

    # Logging (disabled unless a level is configured)
    log_enabled: bool = Field(default=False)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text", "colored"] = Field(default="text")
    log_enable_console: bool = Field(default=True)
    log_enable_file: bool = Field(default=False)
    log_file_path: Optional[str] = Field(default=None, validate_default=True)
    log_max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    log_backup_count: int = Field(default=5, ge=0)
    log_enable_correlation_id: bool = Field(default=True)

    @field_validator('legacy_method_rewrite', 'log_format', mode='before')
    @classmethod
    def lower_case(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator('log_level', mode='before')
    @classmethod
    def upper_case(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator('log_file_path')
    @classmethod
    def validate_file_path(cls, v: Optional[str], info) -> Optional[str]:
        """file_path is required when log_enable_file=True."""
        if info.data.get('log_enable_file') and not v:
            raise ValueError("log_file_path is required when log_enable_file=True")
        return v
