"""
Configuration module for the music library.
"""

import os
from typing import Any, Dict, List, Optional

import yaml


class Config:
    """Configuration manager for the music library."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration.

        Args:
            config_path: Path to YAML configuration file. If None, uses defaults.
        """
        self._config: Dict[str, Any] = self._get_builtin_defaults()
        self._config_path = config_path

        if config_path and os.path.exists(config_path):
            self.load_from_file(config_path)

    def _get_builtin_defaults(self) -> Dict[str, Any]:
        """Return built-in default configuration."""
        data_dir = os.path.join(os.path.expanduser("~"), ".music_library")
        return {
            "library": {
                "database_path": os.path.join(data_dir, "music.db"),
                "settings_path": os.path.join(data_dir, "settings.yaml"),
            },
            "scanner": {
                "supported_formats": ["mp3", "flac", "wav", "m4a", "aac", "ogg"],
            },
            "importer": {
                "batch_size": 10,
                "yield_seconds": 0.01,
            },
            "watcher": {
                "debounce_seconds": 1.0,
                "ignore_hidden": True,
                "rescan_on_startup": True,
                "prune_missing": False,
            },
            "metadata": {
                "normalize_strings": True,
            },
            "logging": {
                "level": "INFO",
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "file": None,
            },
        }

    def load_from_file(self, config_path: str) -> None:
        """Load configuration from YAML file.

        Values in the file override the built-in defaults section by section.

        Args:
            config_path: Path to YAML configuration file.
        """
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f) or {}

        for section, values in loaded.items():
            if isinstance(values, dict) and isinstance(self._config.get(section), dict):
                self._config[section].update(values)
            else:
                self._config[section] = values

        self._resolve_paths()

    def _resolve_paths(self) -> None:
        """Resolve relative paths in configuration against the config file."""
        config_dir = os.path.dirname(os.path.abspath(self._config_path or ""))

        library = self._config.get("library", {})
        for key in ("database_path", "settings_path"):
            value = library.get(key)
            if not value or value == ":memory:":
                continue
            value = os.path.expanduser(value)
            if not os.path.isabs(value):
                value = os.path.join(config_dir, value)
            library[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-separated key.

        Args:
            key: Dot-separated configuration key (e.g., "watcher.debounce_seconds")
            default: Default value if key not found

        Returns:
            Configuration value
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value by dot-separated key.

        Args:
            key: Dot-separated configuration key
            value: Value to set
        """
        keys = key.split(".")
        config = self._config

        for k in keys[:-1]:
            if k not in config or not isinstance(config[k], dict):
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    @property
    def library(self) -> Dict[str, Any]:
        """Get library storage configuration."""
        return self._config.get("library", {})

    @property
    def importer(self) -> Dict[str, Any]:
        """Get bulk import configuration."""
        return self._config.get("importer", {})

    @property
    def watcher(self) -> Dict[str, Any]:
        """Get folder watcher configuration."""
        return self._config.get("watcher", {})

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self._config.get("logging", {})

    @property
    def database_path(self) -> str:
        """Get SQLite database path."""
        return self.get("library.database_path", "music.db")

    @property
    def settings_path(self) -> str:
        """Get settings file path."""
        return self.get("library.settings_path", "settings.yaml")

    @property
    def supported_formats(self) -> List[str]:
        """Get lower-case audio extensions without the leading dot."""
        formats = self.get("scanner.supported_formats", [])
        return [str(fmt).lower().lstrip(".") for fmt in formats]

    @property
    def batch_size(self) -> int:
        """Get bulk import sub-batch size."""
        return int(self.get("importer.batch_size", 10))

    @property
    def yield_seconds(self) -> float:
        """Get delay between sub-batches."""
        return float(self.get("importer.yield_seconds", 0.01))

    @property
    def debounce_seconds(self) -> float:
        """Get settle window before draining the import queue."""
        return float(self.get("watcher.debounce_seconds", 1.0))

    def save(self, path: str) -> None:
        """Save configuration to YAML file.

        Args:
            path: Path to save configuration.
        """
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, 'w') as f:
            yaml.dump(self._config, f, default_flow_style=False)


# Global config instance
_config_instance: Optional[Config] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """Get global configuration instance.

    Args:
        config_path: Optional path to configuration file.

    Returns:
        Configuration instance.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config(config_path)
    return _config_instance


def set_config(config: Config) -> None:
    """Set global configuration instance.

    Args:
        config: Configuration instance.
    """
    global _config_instance
    _config_instance = config
