"""
Process-wide settings, read once from the environment at start-up.

Components never read os.environ themselves; the CLI builds a Settings object
and hands the relevant values to each constructor.
"""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"


class Settings(BaseModel):
    wordpress_base_url: Optional[str] = None
    wordpress_collection: str = "posts"
    wordpress_timeout: float = Field(default=30.0, gt=0)
    wordpress_max_retries: int = Field(default=3, ge=1)
    wordpress_retry_delay: float = Field(default=2.0, ge=0)

    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_timeout: float = Field(default=120.0, gt=0)
    gemini_temperature: float = Field(default=0.3, ge=0, le=2)
    gemini_top_k: int = Field(default=40, ge=1)
    gemini_top_p: float = Field(default=0.95, gt=0, le=1)
    gemini_max_output_tokens: int = Field(default=8192, ge=256)

    reports_dir: Path = Path("reports")
    config_dir: Path = Path("config")
    logs_dir: Path = Path("logs")
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> "Settings":
        """Build settings from environment variables (and a .env file when present)."""
        if environ is None:
            if dotenv:
                load_dotenv(override=False)
            environ = os.environ

        mapping = {
            "wordpress_base_url": "WORDPRESS_BASE_URL",
            "wordpress_collection": "WP_COLLECTION",
            "wordpress_timeout": "WP_TIMEOUT",
            "wordpress_max_retries": "WP_MAX_RETRIES",
            "wordpress_retry_delay": "WP_RETRY_DELAY",
            "gemini_api_key": "GEMINI_API_KEY",
            "gemini_model": "GEMINI_MODEL",
            "gemini_timeout": "GEMINI_TIMEOUT",
            "gemini_temperature": "GEMINI_TEMPERATURE",
            "gemini_top_k": "GEMINI_TOP_K",
            "gemini_top_p": "GEMINI_TOP_P",
            "gemini_max_output_tokens": "GEMINI_MAX_OUTPUT_TOKENS",
            "reports_dir": "REPORTS_DIR",
            "config_dir": "CONFIG_DIR",
            "logs_dir": "LOGS_DIR",
            "log_level": "LOG_LEVEL",
        }
        values = {field: environ[var] for field, var in mapping.items() if environ.get(var)}
        try:
            settings = cls(**values)
        except PydanticValidationError as e:
            raise ConfigError(f"Invalid environment configuration: {e}") from e

        if settings.wordpress_base_url:
            settings.wordpress_base_url = settings.wordpress_base_url.rstrip('/')
        return settings

    def require_wordpress(self) -> str:
        if not self.wordpress_base_url:
            raise ConfigError("WORDPRESS_BASE_URL environment variable is required")
        return self.wordpress_base_url

    def require_gemini(self) -> str:
        if not self.gemini_api_key:
            raise ConfigError("GEMINI_API_KEY environment variable is required")
        return self.gemini_api_key
