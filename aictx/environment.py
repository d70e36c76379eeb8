"""Environment configuration management."""

import os
import sys
from enum import Enum
from typing import Optional

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from aictx.utils.paths import DEFAULT_STORE_NAME


DEFAULT_TEMPLATE_URL = "https://raw.githubusercontent.com/BrianInAz/context-standards/main/AGENTS.md"
DEFAULT_REPOSITORY_URL = "https://github.com/BrianInAz/context-standards.git"


class ContextSyncError(Exception):
    """Base exception for context synchronization errors."""

    pass


class ConfigurationError(ContextSyncError):
    """Raised when an environment variable holds an unusable value."""

    pass


class DivergencePolicy(str, Enum):
    """What to do when the local document differs from the template."""

    always_replace = "always-replace"
    preserve_if_larger = "preserve-if-larger"


class LinkStrategy(str, Enum):
    """How aliases are materialised on disk."""

    symlink = "symlink"
    copy = "copy"


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ["true", "1", "yes", "on"]


class Settings(BaseModel):
    """Settings for a run, read from the environment (and a ``.env`` file)."""

    SLACK_WEBHOOK_URL: Optional[str] = Field(None, description="Slack webhook for notifications")
    slack_channel: str = Field("#monitoring", description="Channel named in the notification payload")
    template_url: str = Field(DEFAULT_TEMPLATE_URL, description="Raw URL of the AGENTS.md template")
    repository_url: str = Field(DEFAULT_REPOSITORY_URL, description="Standards repository mirrored into the store")
    store_dir: str = Field(DEFAULT_STORE_NAME, description="Global store directory under the home directory")
    divergence_policy: DivergencePolicy = DivergencePolicy.always_replace
    link_strategy: LinkStrategy = LinkStrategy.symlink
    mirror_repository: bool = True
    fetch_attempts: int = Field(3, ge=1)
    fetch_backoff: float = Field(2.0, ge=0)
    connect_timeout: float = Field(10.0, gt=0)
    fetch_timeout: float = Field(30.0, gt=0)
    sync_timeout: float = Field(30.0, gt=0)
    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    debug: bool = False
    log_file: Optional[str] = None

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError(f"invalid log level {value}")
        return value

    @field_validator("store_dir")
    @classmethod
    def _check_store_dir(cls, value: str) -> str:
        if not value or "/" in value or value in [".", ".."]:
            raise ValueError("store directory must be a single path component")
        return value

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    @classmethod
    def load(cls, environ: dict[str, str] | None = None) -> "Settings":
        """Load settings from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``

        Raises:
            ConfigurationError: If a variable cannot be parsed or validated
        """
        if environ is None:
            load_dotenv()
            environ = dict(os.environ)

        env_vars = {
            "SLACK_WEBHOOK_URL": environ.get("SLACK_WEBHOOK_URL") or None,
            "slack_channel": environ.get("AICTX_SLACK_CHANNEL"),
            "template_url": environ.get("AICTX_TEMPLATE_URL"),
            "repository_url": environ.get("AICTX_REPOSITORY_URL"),
            "store_dir": environ.get("AICTX_STORE_DIR"),
            "divergence_policy": environ.get("AICTX_DIVERGENCE_POLICY"),
            "link_strategy": environ.get("AICTX_LINK_STRATEGY"),
            "fetch_attempts": environ.get("AICTX_FETCH_ATTEMPTS"),
            "fetch_backoff": environ.get("AICTX_FETCH_BACKOFF"),
            "connect_timeout": environ.get("AICTX_CONNECT_TIMEOUT"),
            "fetch_timeout": environ.get("AICTX_FETCH_TIMEOUT"),
            "sync_timeout": environ.get("AICTX_SYNC_TIMEOUT"),
            "log_level": environ.get("AICTX_LOG_LEVEL"),
            "log_file": environ.get("AICTX_LOG_FILE") or None,
        }
        # Unset variables fall back to the field defaults
        env_vars = {key: value for key, value in env_vars.items() if value is not None}
        env_vars["mirror_repository"] = _as_bool(environ.get("AICTX_MIRROR_REPOSITORY"), default=True)
        env_vars["debug"] = _as_bool(environ.get("AICTX_DEBUG"))

        try:
            return cls(**env_vars)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e


def configure_logging(settings: Settings) -> None:
    """Route loguru output to stderr (and an optional file) at the configured level."""
    logger.remove()
    log_level = settings.effective_log_level
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    )
    if settings.log_file:
        logger.add(settings.log_file, level=log_level, rotation="1 MB")


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings() -> None:
    """Forget the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
