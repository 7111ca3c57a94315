"""
Secure Configuration Management

Provides validated configuration for the Jira connection and the metric store.
Replaces loose os.getenv() calls with strict validation and fail-fast behavior.

Usage:
    from rollup.secure_config import get_config

    config = get_config()
    jira_config = config.get_jira_config()
    print(jira_config.base_url)

Security Features:
    - Strict validation of all configuration values
    - Fail-fast on missing/invalid configuration
    - Placeholder detection (e.g., "your_token_here")
    - HTTPS enforcement for URLs

Raises:
    ConfigurationError: If configuration is missing or invalid
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_STORE_PATH = ".tmp/rollup_store.json"


class ConfigurationError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class JiraConfig:
    """
    Validated Jira Cloud configuration.
    """

    base_url: str
    email: str
    api_token: str

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.base_url = self.base_url.rstrip("/")
        self._validate()

    def _validate(self) -> None:
        """
        Validate Jira configuration.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.base_url:
            raise ConfigurationError("JIRA_BASE_URL is required")

        if not self.base_url.startswith("https://"):
            raise ConfigurationError(f"JIRA_BASE_URL must use HTTPS: {self.base_url}")

        if not re.match(r"^https://[a-zA-Z0-9.\-]+(:\d+)?(/.*)?$", self.base_url):
            raise ConfigurationError(f"JIRA_BASE_URL must be a valid URL: {self.base_url}")

        if not self.email:
            raise ConfigurationError("JIRA_EMAIL is required")

        email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
        if not re.match(email_pattern, self.email):
            raise ConfigurationError(f"JIRA_EMAIL must be a valid email address: {self.email}")

        if not self.api_token:
            raise ConfigurationError("JIRA_API_TOKEN is required")

        if len(self.api_token) < 16:
            raise ConfigurationError(
                f"JIRA_API_TOKEN appears invalid (too short: {len(self.api_token)} chars, expected >=16)"
            )

        placeholders = ["your_token", "your_api_token", "example", "placeholder", "xxx", "replace_me"]
        if any(placeholder in self.api_token.lower() for placeholder in placeholders):
            raise ConfigurationError("JIRA_API_TOKEN contains a placeholder value - please set a real API token")


@dataclass
class StorageConfig:
    """
    Validated metric store configuration.
    """

    path: Path

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.path = Path(self.path)
        self._validate()

    def _validate(self) -> None:
        """
        Validate store location.

        Raises:
            ConfigurationError: If the path is unusable
        """
        if not str(self.path).strip() or str(self.path) == ".":
            raise ConfigurationError("ROLLUP_STORE_PATH must name a file")

        if self.path.suffix.lower() != ".json":
            raise ConfigurationError(f"ROLLUP_STORE_PATH must be a .json file: {self.path}")

        if self.path.exists() and self.path.is_dir():
            raise ConfigurationError(f"ROLLUP_STORE_PATH points to a directory: {self.path}")


class SecureConfig:
    """
    Configuration manager.

    Loads and validates application configuration from environment variables.
    Construct one at the entry point and pass the values it builds downward.
    """

    def __init__(self, env_file: str | Path | None = None):
        """
        Initialize configuration (loads .env file).

        Args:
            env_file: Optional explicit .env path (default: search from the working directory)
        """
        load_dotenv(dotenv_path=env_file)

    def get_jira_config(self) -> JiraConfig:
        """
        Get validated Jira configuration.

        Returns:
            JiraConfig: Validated configuration

        Raises:
            ConfigurationError: If configuration is missing or invalid
        """
        return JiraConfig(
            base_url=os.getenv("JIRA_BASE_URL") or "",
            email=os.getenv("JIRA_EMAIL") or "",
            api_token=os.getenv("JIRA_API_TOKEN") or "",
        )

    def get_storage_config(self, path: str | Path | None = None) -> StorageConfig:
        """
        Get validated store configuration.

        Args:
            path: Optional path overriding ROLLUP_STORE_PATH

        Returns:
            StorageConfig: Validated configuration

        Raises:
            ConfigurationError: If the path is invalid
        """
        raw_path = path or os.getenv("ROLLUP_STORE_PATH") or DEFAULT_STORE_PATH
        return StorageConfig(path=Path(raw_path))


def get_config(env_file: str | Path | None = None) -> SecureConfig:
    """
    Build a configuration manager.

    A new instance is returned on each call; nothing is cached at module level.

    Returns:
        SecureConfig: The configuration manager
    """
    return SecureConfig(env_file=env_file)


def validate_config_on_startup(required_services: list[str], config: SecureConfig | None = None) -> None:
    """
    Validate required configuration at application startup.

    Args:
        required_services: Services to validate ('jira', 'storage')
        config: Optional existing configuration manager

    Raises:
        ConfigurationError: If any required configuration is missing or invalid
        ValueError: If an unknown service is named

    Example:
        validate_config_on_startup(["jira", "storage"])
    """
    config = config or get_config()

    for service in required_services:
        if service == "jira":
            config.get_jira_config()
        elif service == "storage":
            config.get_storage_config()
        else:
            raise ValueError(f"Unknown service: {service}")
