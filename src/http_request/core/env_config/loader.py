"""
Configuration loader from environment variables and .env files.
"""

from typing import Any, Optional

from pydantic import ValidationError

from ..config import EngineConfig, LegacyRedirectRewrite, RedirectPolicy
from ..exceptions import ConfigurationError
from ..logging.config import LoggingConfig
from .validator import EngineSettings


def load_from_env(env_file: Optional[str] = None, **overrides: Any) -> EngineConfig:
    """
    Load EngineConfig from the environment.

    Priority (highest to lowest):
    1. **overrides - explicit parameters (EngineSettings field names)
    2. Environment variables (HTTP_REQUEST_*)
    3. .env file
    4. Defaults

    Raises:
        ConfigurationError: A value fails validation

    Example:
        >>> config = load_from_env()
        >>> config = load_from_env(env_file=".env.production", max_redirects=3)
    """
    try:
        settings = EngineSettings(_env_file=env_file or '.env', **overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid engine configuration: {exc}") from exc

    logging_config = None
    if settings.log_enabled:
        logging_config = LoggingConfig.create(
            level=settings.log_level,
            format=settings.log_format,
            enable_console=settings.log_enable_console,
            enable_file=settings.log_enable_file,
            file_path=settings.log_file_path,
            max_bytes=settings.log_max_bytes,
            backup_count=settings.log_backup_count,
            enable_correlation_id=settings.log_enable_correlation_id,
        )

    return EngineConfig(
        max_redirects=settings.max_redirects,
        redirect_policy=RedirectPolicy(
            legacy_method_rewrite=LegacyRedirectRewrite(settings.legacy_method_rewrite),
            allow_downgrade=settings.allow_downgrade,
            strip_auth_on_cross_origin=settings.strip_auth_on_cross_origin,
        ),
        default_connection_timeout_ms=settings.connection_timeout_ms,
        default_read_timeout_ms=settings.read_timeout_ms,
        user_agent=settings.user_agent,
        logging=logging_config,
    )


def print_config_summary(config: EngineConfig) -> None:
    """
    Print configuration summary.

    Example:
        >>> print_config_summary(load_from_env())
        EngineConfig:
          max_redirects: 5
          ...
    """
    print("EngineConfig:")
    print(f"  max_redirects: {config.max_redirects}")
    print(f"  redirect_policy: legacy_method_rewrite={config.redirect_policy.legacy_method_rewrite.value}, "
          f"allow_downgrade={config.redirect_policy.allow_downgrade}")
    print(f"  timeouts: connect={config.default_connection_timeout_ms}ms, read={config.default_read_timeout_ms}ms")
    print(f"  user_agent: {config.user_agent}")

    if config.logging:
        print(f"  logging: level={config.logging.level.value}, format={config.logging.format.value}")
        if config.logging.enable_file:
            print(f"    file: {config.logging.file_path}")
