"""Environment settings."""

import os
from typing import Optional


class Settings:
    """Application settings from environment variables."""

    CONFIG_VAR = "REACHCHECK_CONFIG"
    STATUS_FILE_VAR = "REACHCHECK_STATUS_FILE"
    LOG_LEVEL_VAR = "LOG_LEVEL"

    @staticmethod
    def get(key: str, default: Optional[str] = None, required: bool = False) -> str:
        """
        Get environment variable value.

        Args:
            key: Environment variable name
            default: Default value if not set
            required: Whether the variable is required

        Returns:
            str: Environment variable value

        Raises:
            ValueError: If required variable is not set
        """
        value = os.getenv(key, default)
        if required and not value:
            raise ValueError(f"Required environment variable not set: {key}")
        return value or ""

    @staticmethod
    def config_path() -> Optional[str]:
        """Configuration file named by REACHCHECK_CONFIG, if any."""
        return Settings.get(Settings.CONFIG_VAR) or None

    @staticmethod
    def status_file() -> Optional[str]:
        return Settings.get(Settings.STATUS_FILE_VAR) or None

    @staticmethod
    def log_level() -> str:
        return Settings.get(Settings.LOG_LEVEL_VAR, "INFO").upper()
