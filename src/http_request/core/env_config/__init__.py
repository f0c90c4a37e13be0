"""
Environment-based engine configuration.

Example:
    >>> from http_request.core.env_config import load_from_env
    >>> config = load_from_env()
"""

from .loader import load_from_env, print_config_summary
from .validator import EngineSettings

__all__ = [
    "load_from_env",
    "print_config_summary",
    "EngineSettings",
]
