"""Configuration management for the kittens application.

Configuration comes from environment variables. Entry points load an optional
``.env`` file with python-dotenv before the first lookup.
"""

import os
from datetime import timedelta
from typing import Any

from .logging_config import get_logger

logger = get_logger(__name__)


class Config:
    """Centralized configuration management using environment variables."""

    def __init__(self, overrides: dict[str, Any] | None = None):
        """Initialize configuration.

        Args:
            overrides: Values that take precedence over the environment (used by tests
                and embedding applications)
        """
        self._overrides = dict(overrides or {})
        self._cache: dict[str, Any] = {}

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get configuration value from overrides or environment variables.

        Args:
            key: Configuration key
            default: Default value if not found
            cast_type: Type to cast the value to (str, int, bool, float)

        Returns:
            Configuration value cast to the specified type
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        value = self._overrides.get(key)
        if value is None:
            value = os.getenv(key)

        if value is None:
            value = default

        if value is not None:
            try:
                if cast_type is bool:
                    if isinstance(value, str):
                        value = value.lower() in ("true", "1", "yes", "on")
                    else:
                        value = bool(value)
                elif cast_type is not str:
                    value = cast_type(value)
            except (ValueError, TypeError) as e:
                logger.warning("config_cast_failed", key=key, cast_type=cast_type.__name__, error=str(e))
                value = default

        self._cache[cache_key] = value
        return value

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """Get required configuration value.

        Raises:
            ValueError: If the required configuration is not found
        """
        value = self.get(key, cast_type=cast_type)
        if value is None or value == "":
            raise ValueError(f"Required configuration '{key}' not found")
        return value

    def get_duration(self, key: str, default_seconds: float) -> timedelta:
        """Get a duration expressed in seconds as a timedelta.

        Non-positive values fall back to the default.
        """
        seconds = self.get(key, default_seconds, float)
        if seconds is None or seconds <= 0:
            logger.warning("config_duration_ignored", key=key, value=seconds, default_seconds=default_seconds)
            seconds = default_seconds
        return timedelta(seconds=seconds)

    def is_development(self) -> bool:
        """Check if running in development mode."""
        environment = self.get("ENVIRONMENT", "development").lower()
        return environment in ["development", "dev", "local"]

    def is_production(self) -> bool:
        """Check if running in production mode."""
        environment = self.get("ENVIRONMENT", "development").lower()
        return environment in ["production", "prod"]

    def clear_cache(self) -> None:
        """Clear configuration cache."""
        self._cache.clear()

    # Application settings

    @property
    def project_id(self) -> str:
        return str(self.get_required("GOOGLE_CLOUD_PROJECT"))

    @property
    def gcs_bucket(self) -> str:
        return str(self.get_required("GCS_BUCKET"))

    @property
    def database_path(self) -> str:
        return str(self.get("DATABASE_PATH", "data/kittens.db"))

    @property
    def retention_window(self) -> timedelta:
        """How long an upload is kept before the retention sweep removes it."""
        return self.get_duration("RETENTION_WINDOW_SECONDS", 300)

    @property
    def signed_url_expiration(self) -> int:
        return int(self.get("SIGNED_URL_EXPIRATION", 3600, int))

    @property
    def upload_session_expiration(self) -> int:
        return int(self.get("UPLOAD_SESSION_EXPIRATION", 3600, int))

    @property
    def serving_image_max_size(self) -> int:
        return int(self.get("SERVING_IMAGE_MAX_SIZE", 512, int))

    @property
    def serving_image_quality(self) -> int:
        return int(self.get("SERVING_IMAGE_QUALITY", 85, int))

    @property
    def request_timeout(self) -> timedelta:
        return self.get_duration("REQUEST_TIMEOUT_SECONDS", 60)

    @property
    def max_upload_bytes(self) -> int:
        return int(self.get("MAX_UPLOAD_BYTES", 32 * 1024 * 1024, int))

    @property
    def host(self) -> str:
        return str(self.get("HOST", "0.0.0.0"))  # nosec B104

    @property
    def port(self) -> int:
        return int(self.get("PORT", 8080, int))

    @property
    def debug(self) -> bool:
        return bool(self.get("DEBUG", False, bool))


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Drop the global configuration instance so the next lookup re-reads the environment."""
    global _config
    _config = None
