"""
Configuration management for the stream manager.

This module handles loading, validating, and saving configuration from YAML files.
"""

from pathlib import Path
from typing import Optional

import yaml

from stream_manager.config.models import ManagerConfig
from stream_manager.utils import ConfigurationError, get_logger

logger = get_logger(__name__)


class ConfigManager:
    """Manages stream manager configuration."""

    DEFAULT_CONFIG_LOCATIONS = [
        Path.home() / ".stream-manager.yaml",
        Path.home() / ".config" / "stream-manager" / "config.yaml",
        Path.cwd() / ".stream-manager.yaml",
    ]

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file
        """
        self.config_path = config_path
        self._config: Optional[ManagerConfig] = None

    @property
    def config(self) -> ManagerConfig:
        """
        Get current configuration, loading it if necessary.

        Raises:
            ConfigurationError: If configuration cannot be loaded
        """
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self, config_path: Optional[Path] = None) -> ManagerConfig:
        """
        Load configuration from file or create default.

        Args:
            config_path: Optional path to configuration file

        Returns:
            Loaded ManagerConfig

        Raises:
            ConfigurationError: If configuration file is invalid
        """
        path = config_path or self.config_path

        if path:
            if not path.exists():
                raise ConfigurationError(f"Configuration file not found: {path}")
            return self._load_from_file(path)

        for default_path in self.DEFAULT_CONFIG_LOCATIONS:
            if default_path.exists():
                logger.info(f"Loading configuration from {default_path}")
                return self._load_from_file(default_path)

        logger.info("No configuration file found, using defaults")
        return ManagerConfig()

    def _load_from_file(self, path: Path) -> ManagerConfig:
        """
        Load configuration from YAML file.

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to read configuration: {e}")

        if data is None:
            raise ConfigurationError(f"Configuration file is empty: {path}")
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file must contain a mapping: {path}")

        try:
            config = ManagerConfig(**data)
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}")

        logger.debug(f"Successfully loaded configuration from {path}")
        return config

    def save(self, path: Optional[Path] = None, config: Optional[ManagerConfig] = None) -> None:
        """
        Save configuration to file.

        Args:
            path: Path to save configuration (uses default if None)
            config: Configuration to save (uses current if None)

        Raises:
            ConfigurationError: If configuration cannot be saved
        """
        cfg = config or self.config
        save_path = path or self.config_path or self.DEFAULT_CONFIG_LOCATIONS[0]

        try:
            save_path.parent.mkdir(parents=True, exist_ok=True)
            data = cfg.model_dump(mode="json")

            with open(save_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, indent=2)

            logger.info(f"Configuration saved to {save_path}")

        except Exception as e:
            raise ConfigurationError(f"Failed to save configuration: {e}")

    def init_default_config(self, path: Optional[Path] = None, force: bool = False) -> Path:
        """
        Initialize default configuration file.

        Args:
            path: Path to create configuration file (uses default if None)
            force: Overwrite existing file

        Returns:
            Path to created configuration file

        Raises:
            ConfigurationError: If file already exists and force=False
        """
        target_path = path or self.DEFAULT_CONFIG_LOCATIONS[0]

        if target_path.exists() and not force:
            raise ConfigurationError(
                f"Configuration file already exists: {target_path}. Use force=True to overwrite."
            )

        self.save(target_path, ManagerConfig())

        logger.info(f"Default configuration created at {target_path}")
        return target_path

    def reload(self) -> ManagerConfig:
        """Reload configuration from file."""
        self._config = None
        return self.config


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_path: Optional[Path] = None) -> ConfigManager:
    """
    Get global configuration manager instance.

    Args:
        config_path: Optional path to configuration file

    Returns:
        ConfigManager instance
    """
    global _config_manager

    if _config_manager is None:
        _config_manager = ConfigManager(config_path)

    return _config_manager
