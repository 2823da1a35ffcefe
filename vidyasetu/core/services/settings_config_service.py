"""
Settings Configuration Service for VidyaSetu

This module provides centralized configuration management using properties files.
It handles loading, parsing, and providing access to application settings.

Configuration files:
- env.properties: Production configuration (default)
- env-test.properties: Test configuration (used when VIDYASETU_TEST_MODE=1)

Any key can be overridden from the environment as VIDYASETU_<SECTION>_<KEY>,
with dots in the key replaced by underscores, e.g. VIDYASETU_UPLOADS_MAX_FILE_SIZE_MB.
"""

import os
import configparser
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union

ENV_PREFIX = "VIDYASETU"

DEFAULTS: Dict[str, Dict[str, str]] = {
    "server": {
        "host": "127.0.0.1",
        "port": "5000",
        "cors_origins": "http://localhost:3000",
    },
    "database": {"path": "vidyasetu.db", "echo": "false"},
    "security": {"token_expiry_minutes": "10080"},
    "uploads": {"directory": "uploads", "max_file_size_mb": "50"},
    "quiz": {"clock_skew_seconds": "60", "max_attempt_retries": "3"},
    "logging": {
        "directory": "logs",
        "default_level": "INFO",
        "max_file_size_mb": "10",
        "backup_count": "5",
    },
    "errors": {"expose_details": "false"},
}


def get_config_file_path() -> str:
    """
    Determine the appropriate configuration file based on environment.

    Priority:
    1. VIDYASETU_CONFIG_FILE environment variable (explicit override)
    2. env-test.properties (when VIDYASETU_TEST_MODE=1)
    3. env.properties (production default)
    """
    explicit_config = os.environ.get(f"{ENV_PREFIX}_CONFIG_FILE")
    if explicit_config and os.path.exists(explicit_config):
        return explicit_config

    search_paths = [
        Path.cwd(),
        Path(__file__).parent.parent.parent.parent,  # Project root
    ]

    for base_path in search_paths:
        if os.environ.get(f"{ENV_PREFIX}_TEST_MODE") == "1":
            test_config = base_path / "env-test.properties"
            if test_config.exists():
                return str(test_config)

        prod_config = base_path / "env.properties"
        if prod_config.exists():
            return str(prod_config)

    return "env.properties"


def env_override_name(section: str, key: str) -> str:
    return f"{ENV_PREFIX}_{section}_{key}".upper().replace(".", "_")


class SettingsConfigService:
    """Service for managing application settings from properties files."""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize the settings configuration service.

        Args:
            config_file: Optional path to config file. If None, auto-detects based on environment.
        """
        self.config_file = config_file or get_config_file_path()
        self.config = configparser.ConfigParser()
        self.logger = logging.getLogger(__name__)
        self._load_defaults()
        self._load_config()

    def _load_defaults(self):
        for section, values in DEFAULTS.items():
            self.config.add_section(section)
            for key, value in values.items():
                self.config.set(section, key, value)

    def _load_config(self):
        """Load configuration from properties file on top of the defaults."""
        if not os.path.exists(self.config_file):
            self.logger.warning(
                f"Config file {self.config_file} not found, using defaults"
            )
            return

        try:
            self.config.read(self.config_file, encoding="utf-8")
            self.logger.info(f"Configuration loaded from {self.config_file}")
        except configparser.Error as e:
            self.logger.error(f"Failed to load configuration: {e}")

    def _raw(self, section: str, key: str) -> Optional[str]:
        override = os.environ.get(env_override_name(section, key))
        if override is not None:
            return override
        try:
            return self.config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return None

    def get(self, section: str, key: str, fallback: Optional[str] = None) -> str:
        """Get a configuration value."""
        value = self._raw(section, key)
        if value is not None:
            return value
        if fallback is not None:
            return fallback
        self.logger.warning(f"Configuration not found: {section}.{key}")
        return ""

    def getint(self, section: str, key: str, fallback: Optional[int] = None) -> int:
        """Get an integer configuration value."""
        value = self._raw(section, key)
        try:
            return int(str(value).strip())
        except (TypeError, ValueError):
            if fallback is not None:
                return fallback
            self.logger.warning(f"Integer configuration not found: {section}.{key}")
            return 0

    def getboolean(
        self, section: str, key: str, fallback: Optional[bool] = None
    ) -> bool:
        """Get a boolean configuration value."""
        value = self._raw(section, key)
        if value is not None:
            lowered = value.strip().lower()
            if lowered in configparser.ConfigParser.BOOLEAN_STATES:
                return configparser.ConfigParser.BOOLEAN_STATES[lowered]
        if fallback is not None:
            return fallback
        self.logger.warning(f"Boolean configuration not found: {section}.{key}")
        return False

    def get_list(self, section: str, key: str, fallback: Optional[list] = None) -> list:
        """Get a list configuration value (comma-separated)."""
        value = self.get(section, key, "")
        if value:
            return [item.strip() for item in value.split(",") if item.strip()]
        return fallback or []

    def set(self, section: str, key: str, value: Union[str, int, float, bool]):
        """Set a configuration value."""
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, key, str(value))

    def get_logging_defaults(self) -> Dict[str, Any]:
        """Get logging configuration defaults."""
        return {
            "directory": self.get("logging", "directory", "logs"),
            "default_level": self.get("logging", "default_level", "INFO"),
            "max_file_size_mb": self.getint("logging", "max_file_size_mb", 10),
            "backup_count": self.getint("logging", "backup_count", 5),
        }

    def get_upload_defaults(self) -> Dict[str, Any]:
        """Get upload storage defaults."""
        return {
            "directory": self.get("uploads", "directory", "uploads"),
            "max_file_size_mb": self.getint("uploads", "max_file_size_mb", 50),
        }


# Global instance
_settings_service: Optional[SettingsConfigService] = None


def get_settings_service(config_file: Optional[str] = None) -> SettingsConfigService:
    """
    Get the global settings service instance.

    Args:
        config_file: Optional path to config file. If None, auto-detects:
                    - env-test.properties when VIDYASETU_TEST_MODE=1
                    - env.properties for production

    Returns:
        SettingsConfigService instance
    """
    global _settings_service
    if _settings_service is None:
        _settings_service = SettingsConfigService(config_file)
    return _settings_service


def reset_settings_service():
    """Reset the global settings service instance. Useful for testing."""
    global _settings_service
    _settings_service = None
