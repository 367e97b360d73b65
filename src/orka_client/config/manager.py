"""Configuration manager for orka_client."""

import os
from pathlib import Path
from typing import Any

import pydantic
import yaml
from pydantic import BaseModel, Field

from ..api.exceptions import ConfigError
from ..crypto import SecretBox, is_encrypted
from ..models.config import ProfileConfig

SECRET_FIELDS = ("token", "password", "license_key")


class Config(BaseModel):
    """Main configuration model."""

    default_profile: str | None = None
    profiles: dict[str, ProfileConfig] = Field(default_factory=dict)


class ConfigManager:
    """Manage Orka connection profiles stored in a YAML file."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize config manager.

        Args:
            config_dir: Custom config directory (defaults to ~/.config/orka-client)
        """
        if config_dir is None:
            config_dir = Path.home() / ".config" / "orka-client"
        self.config_dir = config_dir
        self.config_file = self.config_dir / "config.yaml"
        self.secrets = SecretBox(self.config_dir / ".age-identity")
        self._config: Config | None = None

    def _ensure_config_dir(self) -> None:
        """Create config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        os.chmod(self.config_dir, 0o700)

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_file.exists()

    def load(self) -> Config:
        """Load configuration from file.

        Plaintext secrets found in the file are encrypted and written back.

        Returns:
            Loaded configuration

        Raises:
            ConfigError: If config file doesn't exist or is invalid
        """
        if not self.exists():
            raise ConfigError(f"Configuration file not found at {self.config_file}")

        try:
            with open(self.config_file) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to read config: {e}")

        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a mapping")

        needs_save = self._decrypt_data(data)
        try:
            config = Config(**data)
        except pydantic.ValidationError as e:
            raise ConfigError(f"Invalid config: {e}")

        self._config = config
        if needs_save:
            self.save(config)
        return config

    def save(self, config: Config) -> None:
        """Save configuration to file, encrypting secrets.

        Raises:
            ConfigError: If save fails
        """
        self._ensure_config_dir()
        data = config.model_dump(exclude_none=True)
        self._encrypt_data(data)
        try:
            with open(self.config_file, "w") as f:
                yaml.safe_dump(data, f, default_flow_style=False)
            os.chmod(self.config_file, 0o600)
        except OSError as e:
            raise ConfigError(f"Failed to save config: {e}")
        self._config = config

    def get(self) -> Config:
        """Get current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def get_profile(self, name: str | None = None) -> ProfileConfig:
        """Get a specific profile or the default.

        Args:
            name: Profile name (uses default if None)

        Raises:
            ConfigError: If profile not found
        """
        config = self.get()

        if name is None:
            if config.default_profile is None:
                raise ConfigError("No default profile set")
            name = config.default_profile

        if name not in config.profiles:
            raise ConfigError(
                f"Profile '{name}' not found. Available profiles: "
                f"{', '.join(config.profiles.keys())}"
            )

        return config.profiles[name]

    def add_profile(self, name: str, profile: ProfileConfig) -> None:
        """Add or update a profile. The first profile becomes the default."""
        config = self.get() if self.exists() else Config()
        config.profiles[name] = profile

        if config.default_profile is None:
            config.default_profile = name

        self.save(config)

    def remove_profile(self, name: str) -> None:
        """Remove a profile.

        Raises:
            ConfigError: If profile not found
        """
        config = self.get()

        if name not in config.profiles:
            raise ConfigError(f"Profile '{name}' not found")

        del config.profiles[name]

        if config.default_profile == name:
            config.default_profile = next(iter(config.profiles.keys()), None)

        self.save(config)

    def set_default_profile(self, name: str) -> None:
        """Set the default profile.

        Raises:
            ConfigError: If profile not found
        """
        config = self.get()

        if name not in config.profiles:
            raise ConfigError(f"Profile '{name}' not found")

        config.default_profile = name
        self.save(config)

    def list_profiles(self) -> list[str]:
        """List all profile names."""
        return list(self.get().profiles.keys())

    def _decrypt_data(self, data: dict[str, Any]) -> bool:
        """Decrypt secrets in the raw file data in place.

        Returns:
            True if a plaintext secret was found and the file should be re-saved
        """
        needs_save = False
        for profile in (data.get("profiles") or {}).values():
            auth = profile.get("auth") if isinstance(profile, dict) else None
            if not isinstance(auth, dict):
                continue
            for field in SECRET_FIELDS:
                value = auth.get(field)
                if not value:
                    continue
                if is_encrypted(value):
                    auth[field] = self.secrets.decrypt(value)
                else:
                    needs_save = True
        return needs_save

    def _encrypt_data(self, data: dict[str, Any]) -> None:
        """Encrypt secrets in the serialized dict before writing."""
        for profile in data.get("profiles", {}).values():
            auth = profile.get("auth", {})
            for field in SECRET_FIELDS:
                if auth.get(field):
                    auth[field] = self.secrets.encrypt(auth[field])
