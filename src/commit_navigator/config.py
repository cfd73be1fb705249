"""Configuration management for commit-navigator."""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator
from rich import print

from commit_navigator.errors import ConfigurationError

logger = logging.getLogger(__name__)

AI_PROVIDERS = ("openai", "anthropic")

# Provider name -> key used in config.json
_API_KEY_FIELDS = {
    "openai": "openai_api_key",
    "anthropic": "anthropic_api_key",
}


class NavigatorSettings(BaseModel):
    """Runtime settings threaded into the git client and the gateway."""

    default_model: str | None = None
    max_depth: int = 3
    max_concurrency: int = 8
    max_tokens: int = 20000
    temperature: float = 0.2
    request_timeout: float = 120.0
    color_output: bool = True

    @field_validator("max_depth")
    @classmethod
    def validate_max_depth(cls, v: int) -> int:
        """Validate tree depth stays readable."""
        if v < 1 or v > 10:
            raise ValueError("max_depth must be between 1 and 10")
        return v

    @field_validator("max_concurrency")
    @classmethod
    def validate_max_concurrency(cls, v: int) -> int:
        """Validate the git fan-out cap.

        - Minimum 1: sequential fetching
        - Maximum 64: avoids spawning hundreds of git processes at once
        """
        if v < 1 or v > 64:
            raise ValueError("max_concurrency must be between 1 and 64")
        return v

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_tokens must be positive")
        return v

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if v < 0 or v > 2:
            raise ValueError("temperature must be between 0 and 2")
        return v


class Config:
    """Manage commit-navigator configuration and API key storage."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize config with default paths.

        Args:
            config_dir: Override for the configuration directory (defaults to ~/.cnav)
        """
        self.config_dir = config_dir or Path.home() / ".cnav"
        self.config_file = self.config_dir / "config.json"
        self._ensure_config_dir()

    def _ensure_config_dir(self) -> None:
        """Create config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        # Set restrictive permissions on the config directory
        self.config_dir.chmod(0o700)

    def _load_config(self) -> dict[str, Any]:
        """Load existing config or return empty dict."""
        if not self.config_file.exists():
            return {}

        try:
            with self.config_file.open() as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {self.config_file}: root is not an object")
            return {}
        return data

    def _save_config(self, config_data: dict[str, Any]) -> None:
        with self.config_file.open("w") as f:
            json.dump(config_data, f, indent=2)

        # Set restrictive permissions on the config file
        self.config_file.chmod(0o600)

    def load_settings(self) -> NavigatorSettings:
        """Build validated settings from the stored config.

        Returns:
            NavigatorSettings with defaults for missing keys

        Raises:
            ConfigurationError: If a stored value is invalid
        """
        data = self._load_config()
        known = {
            key: value
            for key, value in data.items()
            if key in NavigatorSettings.model_fields
        }
        try:
            return NavigatorSettings(**known)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid settings in {self.config_file}: {e}"
            ) from e

    def get_ai_api_key(self, provider: str) -> str | None:
        """Get stored API key for an AI provider.

        Args:
            provider: Provider name (openai or anthropic)

        Returns:
            API key if stored, None otherwise
        """
        field = _API_KEY_FIELDS.get(provider.lower())
        if field is None:
            return None

        value = self._load_config().get(field)
        if isinstance(value, str) and value:
            return value
        return None

    def set_ai_api_key(self, provider: str, api_key: str) -> None:
        """Store an AI provider API key.

        Args:
            provider: Provider name (openai or anthropic)
            api_key: Key to store
        """
        field = _API_KEY_FIELDS.get(provider.lower())
        if field is None:
            raise ConfigurationError(f"Unknown provider: {provider}")

        config_data = self._load_config()
        config_data[field] = api_key
        self._save_config(config_data)
        print(f"[green]✓[/green] {provider.title()} API key stored securely in {self.config_file}")

    def remove_ai_api_key(self, provider: str) -> None:
        """Remove a stored AI provider API key."""
        field = _API_KEY_FIELDS.get(provider.lower())
        if field is None:
            raise ConfigurationError(f"Unknown provider: {provider}")

        config_data = self._load_config()
        config_data.pop(field, None)

        if config_data:
            self._save_config(config_data)
        else:
            # Remove empty config file
            self.config_file.unlink(missing_ok=True)

        print(f"[green]✓[/green] {provider.title()} API key removed from local storage")

    def list_ai_api_keys(self) -> dict[str, bool]:
        """Report which providers have a stored key."""
        return {
            provider: self.get_ai_api_key(provider) is not None
            for provider in AI_PROVIDERS
        }

    def get_config_info(self) -> dict[str, Any]:
        """Get information about current configuration.

        Returns:
            Dictionary with config status information
        """
        config_exists = self.config_file.exists()

        return {
            "config_file": str(self.config_file),
            "config_exists": config_exists,
            "ai_api_keys": self.list_ai_api_keys(),
            "config_file_permissions": oct(self.config_file.stat().st_mode)[-3:]
            if config_exists
            else None,
        }
