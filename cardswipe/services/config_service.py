"""
SwipeConfigService - Settings file management with migration support.

Handles loading, saving, and migrating the detector's JSON settings file
while staying compatible with the legacy option names.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from ..decoders.yaml_loader import load_yaml_decoders
from ..models.config import (
    CONFIG_VERSION,
    DEFAULT_DECODERS,
    DEFAULT_INTERDIGIT_TIMEOUT_MS,
    SwipeConfig,
)

logger = logging.getLogger(__name__)

# Legacy (version 0) option names and their current equivalents
LEGACY_KEYS = {
    "interdigitTimeout": "interdigit_timeout_ms",
    "parsers": "decoders",
    "firstLineOnly": "first_line_only",
    "prefixCharacter": "prefix_characters",
}


class SwipeConfigService:
    """
    Service for managing detector settings.

    Provides:
    - Loading/saving the settings JSON file
    - Automatic migration of legacy option names
    - Safe handling of corrupted files
    - Registration of YAML decoder files listed in the settings
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        on_success: Optional[Callable[..., Any]] = None,
        on_failure: Optional[Callable[[str], Any]] = None,
    ):
        """
        Initialize the config service.

        Args:
            config_path: Path to the settings file. Defaults to 'cardswipe.json' in current dir.
            on_success: Success callback attached to loaded configs
            on_failure: Failure callback attached to loaded configs
        """
        self._config_path = config_path or "cardswipe.json"
        self._on_success = on_success
        self._on_failure = on_failure
        self._config: Optional[SwipeConfig] = None

    def get_config_path(self) -> str:
        """Get the path to the settings file."""
        return self._config_path

    def load(self) -> SwipeConfig:
        """
        Load settings from disk.

        If the file doesn't exist, returns default settings.
        If the file is corrupted, backs it up and returns default settings.
        If the file is old format, migrates it automatically.
        Invalid settings (bad prefix, unknown decoder) raise SwipeConfigError.

        Returns:
            SwipeConfig instance
        """
        if not os.path.exists(self._config_path):
            self._config = self._build({})
            return self._config

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                raw_data = json.load(f)
        except json.JSONDecodeError as e:
            # Corrupted file - back it up and start fresh
            logger.warning(f"Settings file {self._config_path} is corrupted: {e}")
            self._backup_corrupted()
            self._config = self._build({})
            return self._config

        if not isinstance(raw_data, dict):
            logger.warning(f"Settings file {self._config_path} is not a JSON object")
            self._backup_corrupted()
            self._config = self._build({})
            return self._config

        # Check version and migrate if needed
        version = raw_data.get("_version", 0)
        if version < CONFIG_VERSION:
            raw_data = self._migrate(raw_data, version)
            # Save migrated settings
            self._save_raw(raw_data)

        self._register_decoder_files(raw_data.get("decoder_files", []))
        self._config = self._build(raw_data)
        return self._config

    def save(self, config: Optional[SwipeConfig] = None) -> None:
        """
        Save settings to disk.

        Args:
            config: SwipeConfig to save. Uses cached config if None.
        """
        if config is not None:
            self._config = config

        if self._config is None:
            self._config = self._build({})

        data = self._config.to_dict()
        existing = self._read_decoder_files()
        if existing:
            data["decoder_files"] = existing
        self._save_raw(data)

    def get(self) -> SwipeConfig:
        """Get the current settings, loading if necessary."""
        if self._config is None:
            return self.load()
        return self._config

    def _build(self, data: Dict[str, Any]) -> SwipeConfig:
        return SwipeConfig.from_dict(
            data, on_success=self._on_success, on_failure=self._on_failure
        )

    def _register_decoder_files(self, files: Any) -> None:
        """Load and register YAML decoders; relative paths follow the settings file."""
        base_dir = Path(self._config_path).resolve().parent
        for entry in files or []:
            path = Path(entry)
            if not path.is_absolute():
                path = base_dir / path
            decoders = load_yaml_decoders(path, register=True)
            logger.info(f"Loaded {len(decoders)} decoder(s) from {path}")

    def _read_decoder_files(self) -> list:
        """Keep decoder_files from the file on disk when saving."""
        if not os.path.exists(self._config_path):
            return []
        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError):
            return []
        if not isinstance(data, dict):
            return []
        return list(data.get("decoder_files", []))

    def _save_raw(self, data: Dict[str, Any]) -> None:
        """Save raw dictionary to settings file."""
        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=4)

    def _backup_corrupted(self) -> None:
        """Backup a corrupted settings file."""
        if not os.path.exists(self._config_path):
            return

        timestamp = int(time.time())
        backup_path = f"{self._config_path}-{timestamp}.broken"
        try:
            os.rename(self._config_path, backup_path)
        except OSError as e:
            logger.error(f"Failed to back up corrupted settings: {e}")

    def _migrate(self, data: Dict[str, Any], from_version: int) -> Dict[str, Any]:
        """
        Apply migrations sequentially from old version to current.

        Args:
            data: Raw settings dictionary
            from_version: Version to migrate from

        Returns:
            Migrated settings dictionary
        """
        migrations = {
            0: self._migrate_v0_to_v1,
            # Add future migrations here:
            # 1: self._migrate_v1_to_v2,
        }

        current = dict(data)
        for v in range(from_version, CONFIG_VERSION):
            if v in migrations:
                current = migrations[v](current)

        current["_version"] = CONFIG_VERSION
        logger.info(f"Migrated settings from version {from_version} to {CONFIG_VERSION}")
        return current

    def _migrate_v0_to_v1(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Migrate from the legacy camelCase options to v1.

        Legacy values win only where the new key is absent.
        """
        result = dict(data)

        for old_key, new_key in LEGACY_KEYS.items():
            if old_key in result:
                value = result.pop(old_key)
                result.setdefault(new_key, value)

        # prefixCharacter was a single string
        prefix = result.get("prefix_characters", [])
        if isinstance(prefix, str):
            result["prefix_characters"] = [prefix]

        if "interdigit_timeout_ms" not in result:
            result["interdigit_timeout_ms"] = DEFAULT_INTERDIGIT_TIMEOUT_MS

        if "decoders" not in result:
            result["decoders"] = list(DEFAULT_DECODERS)

        return result


class MockSwipeConfigService(SwipeConfigService):
    """
    Mock SwipeConfigService for testing.

    Stores settings in memory instead of disk.
    """

    def __init__(self, config: Optional[SwipeConfig] = None):
        super().__init__("/dev/null")  # Won't actually be used
        self._config = config or SwipeConfig()
        self._saved_configs: list = []

    def load(self) -> SwipeConfig:
        return self._config

    def save(self, config: Optional[SwipeConfig] = None) -> None:
        if config is not None:
            self._config = config
        self._saved_configs.append(self._config.to_dict())

    def get_saved_configs(self) -> list:
        """Get list of all settings that were saved (for testing)."""
        return self._saved_configs

    def reset(self) -> None:
        """Reset to default settings."""
        self._config = SwipeConfig()
        self._saved_configs.clear()
