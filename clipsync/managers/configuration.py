"""
Configuration Manager for ClipSync.

Holds application settings with validation and JSON persistence, and builds
the explicit SyncConfig handed to the sync, gap and timeline components.
"""

import copy
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional
from pathlib import Path
from PyQt6.QtCore import QObject, pyqtSignal

from .base import BaseManager


@dataclass(frozen=True)
class SyncConfig:
    """Tuning policy for drift correction, gap detection and time estimates."""
    drift_threshold_s: float = 0.3
    check_interval_ms: int = 100
    sync_interval_s: float = 30.0
    end_of_clip_buffer_s: float = 5.0
    clip_start_window_s: float = 2.0
    expected_clip_duration_s: float = 60.0
    gap_tolerance_s: float = 30.0
    estimated_clip_duration_s: float = 60.0


class ConfigurationManagerSignals(QObject):
    """Signals for ConfigurationManager."""
    setting_changed = pyqtSignal(str, object)  # setting_key, new_value
    settings_loaded = pyqtSignal()
    settings_saved = pyqtSignal()
    settings_reset = pyqtSignal()
    validation_failed = pyqtSignal(str, str)  # setting_key, error_message


class ConfigurationManager(BaseManager):
    """
    Manages application configuration.

    Handles:
    - nested settings addressed with dotted keys ('sync.drift_threshold_s')
    - validation against type and range rules
    - persistence to ``<base_dir>/config/settings.json``
    - SyncConfig construction for the playback engine
    """

    DEFAULT_SETTINGS = {
        'app': {
            'version': '1.0.0',
            'last_folder_path': '',
        },

        'sync': {
            'drift_threshold_s': 0.3,
            'check_interval_ms': 100,
            'sync_interval_s': 30.0,
            'end_of_clip_buffer_s': 5.0,
            'clip_start_window_s': 2.0,
        },

        'gaps': {
            'expected_clip_duration_s': 60.0,
            'gap_tolerance_s': 30.0,
        },

        'timeline': {
            'estimated_clip_duration_s': 60.0,
        },

        'playback': {
            'default_speed': 1.0,
            'loop': False,
            'sentry_lead_in_s': 64.0,
            'sentry_trigger_offset_s': 60.0,
        },

        'logging': {
            'default_level': 'INFO',
            'debug_mode': False,
            'console_enabled': True,
            'file_enabled': True,
            'max_file_size_mb': 10,
            'max_backup_count': 5,
            'retention_days': 30,
        },
    }

    VALIDATION_RULES = {
        'sync.drift_threshold_s': {'type': (int, float), 'min': 0.01, 'max': 10.0},
        'sync.check_interval_ms': {'type': int, 'min': 10, 'max': 5000},
        'sync.sync_interval_s': {'type': (int, float), 'min': 0.0, 'max': 600.0},
        'sync.end_of_clip_buffer_s': {'type': (int, float), 'min': 0.0, 'max': 60.0},
        'sync.clip_start_window_s': {'type': (int, float), 'min': 0.0, 'max': 60.0},
        'gaps.expected_clip_duration_s': {'type': (int, float), 'min': 1.0, 'max': 3600.0},
        'gaps.gap_tolerance_s': {'type': (int, float), 'min': 0.0, 'max': 3600.0},
        'timeline.estimated_clip_duration_s': {'type': (int, float), 'min': 1.0, 'max': 3600.0},
        'playback.default_speed': {'type': (int, float), 'min': 0.1, 'max': 8.0},
        'playback.loop': {'type': bool},
        'playback.sentry_lead_in_s': {'type': (int, float), 'min': 0.0},
        'playback.sentry_trigger_offset_s': {'type': (int, float), 'min': 0.0},
        'logging.default_level': {'type': str, 'choices': ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']},
        'logging.max_file_size_mb': {'type': (int, float), 'min': 1, 'max': 1024},
        'logging.max_backup_count': {'type': int, 'min': 0, 'max': 100},
        'logging.retention_days': {'type': int, 'min': 1},
    }

    def __init__(self, parent, dependency_container=None, base_dir: Optional[Path] = None):
        super().__init__(parent, dependency_container)

        self.signals = ConfigurationManagerSignals()
        self.settings: Dict[str, Any] = self._get_default_settings()

        self.base_dir = Path(base_dir) if base_dir else Path.home() / '.clipsync'
        self.config_dir = self.base_dir / 'config'
        self.logs_dir = self.base_dir / 'logs'
        self.settings_file = self.config_dir / 'settings.json'

    def initialize(self) -> bool:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            self._load_configuration()
            self._validate_configuration()
            self._mark_initialized()
            return True

        except Exception as e:
            self.handle_error(e, "ConfigurationManager initialization")
            return False

    def cleanup(self) -> None:
        try:
            self._mark_cleanup_started()
            if self._initialized:
                self.save_configuration()
        except Exception as e:
            self.handle_error(e, "ConfigurationManager cleanup")

    # ========================================
    # Configuration Management
    # ========================================

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Return the value at a dotted key, or ``default`` when it does not exist."""
        value = self.settings
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set_setting(self, key: str, value: Any, save: bool = True) -> bool:
        """
        Set a dotted-key setting.

        Returns:
            bool: False if the value failed validation or could not be stored
        """
        try:
            if not self._validate_setting(key, value):
                self.logger.warning(f"Rejected invalid value for {key}: {value!r}")
                return False

            keys = key.split('.')
            current = self.settings
            for k in keys[:-1]:
                current = current.setdefault(k, {})

            old_value = current.get(keys[-1])
            current[keys[-1]] = value

            if old_value != value:
                self.signals.setting_changed.emit(key, value)

            if save:
                self.save_configuration()

            self.logger.debug(f"Setting updated: {key} = {value}")
            return True

        except Exception as e:
            self.handle_error(e, f"set_setting({key}, {value})")
            return False

    def get_all_settings(self) -> Dict[str, Any]:
        return copy.deepcopy(self.settings)

    def update_settings(self, settings_dict: Dict[str, Any], save: bool = True) -> bool:
        success = True
        for key, value in settings_dict.items():
            if not self.set_setting(key, value, save=False):
                success = False

        if save and success:
            self.save_configuration()
        return success

    def reset_setting(self, key: str, save: bool = True) -> bool:
        default_value = self._get_default_setting(key)
        if default_value is None:
            return False
        return self.set_setting(key, default_value, save)

    def save_configuration(self) -> bool:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.settings_file, 'w', encoding='utf-8') as f:
                json.dump(self.settings, f, indent=2, ensure_ascii=False)

            self.signals.settings_saved.emit()
            self.logger.debug(f"Configuration saved to {self.settings_file}")
            return True

        except Exception as e:
            self.handle_error(e, "save_configuration")
            return False

    def load_configuration(self) -> bool:
        try:
            self._load_configuration()
            self._validate_configuration()
            self.signals.settings_loaded.emit()
            return True

        except Exception as e:
            self.handle_error(e, "load_configuration")
            return False

    def reset_to_defaults(self) -> bool:
        self.settings = self._get_default_settings()
        self.signals.settings_reset.emit()
        self.logger.info("Configuration reset to defaults")
        return self.save_configuration()

    def get_sync_config(self) -> SyncConfig:
        """Snapshot of the current sync, gap and timeline policy."""
        return SyncConfig(
            drift_threshold_s=float(self.get_setting('sync.drift_threshold_s')),
            check_interval_ms=int(self.get_setting('sync.check_interval_ms')),
            sync_interval_s=float(self.get_setting('sync.sync_interval_s')),
            end_of_clip_buffer_s=float(self.get_setting('sync.end_of_clip_buffer_s')),
            clip_start_window_s=float(self.get_setting('sync.clip_start_window_s')),
            expected_clip_duration_s=float(self.get_setting('gaps.expected_clip_duration_s')),
            gap_tolerance_s=float(self.get_setting('gaps.gap_tolerance_s')),
            estimated_clip_duration_s=float(self.get_setting('timeline.estimated_clip_duration_s')),
        )

    def get_logs_directory(self) -> Path:
        return self.logs_dir

    # ========================================
    # Helper Methods
    # ========================================

    def _load_configuration(self) -> None:
        """Load settings from disk on top of the defaults, so new keys always exist."""
        self.settings = self._get_default_settings()
        if not self.settings_file.exists():
            self.logger.debug("Using default configuration")
            return

        try:
            with open(self.settings_file, 'r', encoding='utf-8') as f:
                stored = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            self.logger.warning(f"Error loading configuration: {e}, using defaults")
            return

        if isinstance(stored, dict):
            self._merge(self.settings, stored)
            self.logger.debug(f"Configuration loaded from {self.settings_file}")

    def _merge(self, target: Dict[str, Any], source: Dict[str, Any]) -> None:
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                self._merge(target[key], value)
            else:
                target[key] = value

    def _get_default_settings(self) -> Dict[str, Any]:
        return copy.deepcopy(self.DEFAULT_SETTINGS)

    def _get_default_setting(self, key: str) -> Any:
        value = self.DEFAULT_SETTINGS
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return None
        return copy.deepcopy(value)

    def _validate_configuration(self) -> None:
        """Replace every stored value that breaks its rule with the default."""
        for key in self.VALIDATION_RULES:
            value = self.get_setting(key)
            if not self._validate_setting(key, value):
                default_value = self._get_default_setting(key)
                self.logger.warning(f"Invalid stored value for {key}: {value!r}, using {default_value!r}")
                self.set_setting(key, default_value, save=False)

    def _validate_setting(self, key: str, value: Any) -> bool:
        rule = self.VALIDATION_RULES.get(key)
        if rule is None:
            return True

        expected_type = rule.get('type')
        if expected_type is not None:
            # bool is an int subclass; only accept it where a bool is expected
            if isinstance(value, bool) and expected_type is not bool:
                self.signals.validation_failed.emit(key, f"Invalid type for {key}")
                return False
            if not isinstance(value, expected_type):
                self.signals.validation_failed.emit(key, f"Invalid type for {key}")
                return False

        if 'min' in rule and value < rule['min']:
            self.signals.validation_failed.emit(key, f"{key} below minimum value")
            return False

        if 'max' in rule and value > rule['max']:
            self.signals.validation_failed.emit(key, f"{key} above maximum value")
            return False

        if 'choices' in rule and value not in rule['choices']:
            self.signals.validation_failed.emit(key, f"Invalid choice for {key}")
            return False

        return True
