"""
Settings store for user state that survives restarts.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import yaml

from music_library.config import Config


logger = logging.getLogger(__name__)


SETTINGS_VERSION = "1.0.0"


class SettingsStore:
    """YAML-backed settings file."""

    def __init__(self, config: Optional[Config] = None, path: Optional[str] = None):
        """Initialize settings store.

        Args:
            config: Configuration object.
            path: Settings file path. Uses config if None.
        """
        self.config = config or Config()
        self.path = path or self.config.settings_path

    def load(self) -> Dict[str, Any]:
        """Load all settings.

        Returns:
            Settings dictionary, empty if the file is missing or unreadable.
        """
        if not os.path.exists(self.path):
            return {}

        try:
            with open(self.path, 'r') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load settings from {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed settings file: {self.path}")
            return {}

        return data

    def save(self, settings: Dict[str, Any]) -> None:
        """Write all settings.

        Args:
            settings: Settings dictionary.
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)

        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, 'w') as f:
            yaml.safe_dump(settings, f, default_flow_style=False)
        os.replace(tmp_path, self.path)

    def load_watched_paths(self) -> List[str]:
        """Get the persisted watched folders."""
        paths = self.load().get("watched_folders") or []
        if not isinstance(paths, list):
            logger.warning("Ignoring malformed watched_folders setting")
            return []
        return [str(path) for path in paths]

    def save_watched_paths(self, paths: List[str]) -> None:
        """Persist the watched folders, keeping all other settings.

        Args:
            paths: Full set of watched folder paths.
        """
        settings = self.load()
        settings["watched_folders"] = sorted(paths)
        settings["version"] = SETTINGS_VERSION
        self.save(settings)
        logger.debug(f"Saved {len(paths)} watched folders to {self.path}")
