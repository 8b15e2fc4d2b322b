"""
Logging Manager for ClipSync.

Configures rotating log files and console output for the package and the
manager loggers, and exposes runtime control of the log level.
"""

import logging
import logging.handlers
from typing import Dict, List, Optional, Any
from pathlib import Path
from datetime import datetime, timedelta
from PyQt6.QtCore import QObject, pyqtSignal

from .base import BaseManager


class LoggingManagerSignals(QObject):
    """Signals for LoggingManager."""
    log_level_changed = pyqtSignal(str)  # new_level
    debug_mode_changed = pyqtSignal(bool)  # enabled
    log_cleanup_completed = pyqtSignal(int)  # files_removed


class LoggingManager(BaseManager):
    """
    Manages log handlers for the application.

    Handles:
    - a main rotating log file and a WARNING+ error file
    - console output
    - log level and debug mode switching
    - retention cleanup of old log files
    """

    LOG_LEVELS = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }

    # Package logger plus the per-manager loggers created by BaseManager
    COMPONENT_LOGGERS = (
        'clipsync',
        'SyncController',
        'VideoPlaybackManager',
        'ClipManager',
        'ConfigurationManager',
        'LoggingManager',
        'EventScanWorker',
    )

    def __init__(self, parent, dependency_container=None, logs_directory: Optional[Path] = None):
        super().__init__(parent, dependency_container)

        self.signals = LoggingManagerSignals()

        self.current_log_level = 'INFO'
        self.debug_mode = False
        self.log_to_console = True
        self.log_to_file = True

        self.max_file_size_mb = 10
        self.max_backup_count = 5
        self.log_retention_days = 30

        self.logs_directory: Optional[Path] = Path(logs_directory) if logs_directory else None
        self.main_log_file: Optional[Path] = None
        self.error_log_file: Optional[Path] = None

        self.loggers: Dict[str, logging.Logger] = {}
        self.file_handlers: Dict[str, logging.handlers.RotatingFileHandler] = {}
        self.console_handler: Optional[logging.StreamHandler] = None

    def initialize(self) -> bool:
        try:
            self._configure_logging()
            self._setup_log_directories()
            self._setup_file_handlers()
            self._setup_console_handler()

            for name in self.COMPONENT_LOGGERS:
                self._create_logger(name)

            if self.debug_mode:
                self.set_log_level('DEBUG')

            self.cleanup_old_logs()

            self._mark_initialized()
            return True

        except Exception as e:
            self.handle_error(e, "LoggingManager initialization")
            return False

    def cleanup(self) -> None:
        try:
            self._mark_cleanup_started()

            handlers = list(self.file_handlers.values())
            if self.console_handler:
                handlers.append(self.console_handler)

            for logger in self.loggers.values():
                for handler in handlers:
                    logger.removeHandler(handler)
                logger.propagate = True

            for handler in self.file_handlers.values():
                handler.close()

            self.file_handlers.clear()
            self.console_handler = None
            self.loggers.clear()

        except Exception as e:
            self.handle_error(e, "LoggingManager cleanup")

    # ========================================
    # Log Level Management
    # ========================================

    def set_log_level(self, level: str) -> bool:
        level = str(level).upper()
        if level not in self.LOG_LEVELS:
            self.logger.warning(f"Invalid log level: {level}")
            return False

        old_level = self.current_log_level
        self.current_log_level = level
        numeric_level = self.LOG_LEVELS[level]

        for logger in self.loggers.values():
            logger.setLevel(numeric_level)
        if 'main' in self.file_handlers:
            self.file_handlers['main'].setLevel(numeric_level)
        if self.console_handler:
            self.console_handler.setLevel(numeric_level)

        self.signals.log_level_changed.emit(level)
        if old_level != level:
            self.logger.info(f"Log level changed from {old_level} to {level}")
        return True

    def get_log_level(self) -> str:
        return self.current_log_level

    def set_debug_mode(self, enabled: bool) -> None:
        self.debug_mode = enabled
        if enabled:
            self.set_log_level('DEBUG')
        else:
            config_manager = self.get_service('configuration')
            default_level = 'INFO'
            if config_manager is not None:
                default_level = config_manager.get_setting('logging.default_level', 'INFO')
            self.set_log_level(default_level)

        self.signals.debug_mode_changed.emit(enabled)
        self.logger.info(f"Debug mode {'enabled' if enabled else 'disabled'}")

    def is_debug_mode(self) -> bool:
        return self.debug_mode

    def get_logger(self, name: str) -> logging.Logger:
        if name not in self.loggers:
            self._create_logger(name)
        return self.loggers[name]

    def _create_logger(self, name: str) -> None:
        logger = logging.getLogger(name)
        logger.setLevel(self.LOG_LEVELS[self.current_log_level])

        for handler in self.file_handlers.values():
            logger.addHandler(handler)
        if self.console_handler:
            logger.addHandler(self.console_handler)

        # Handlers are attached per component; avoid doubling through root
        logger.propagate = False
        self.loggers[name] = logger

    # ========================================
    # Log File Management
    # ========================================

    def get_log_files(self) -> List[Path]:
        if not self.logs_directory or not self.logs_directory.exists():
            return []
        log_files = [p for p in self.logs_directory.iterdir() if p.is_file() and '.log' in p.suffixes]
        return sorted(log_files, key=lambda p: p.stat().st_mtime, reverse=True)

    def get_log_file_info(self) -> Dict[str, Any]:
        log_files = self.get_log_files()
        return {
            'logs_directory': str(self.logs_directory) if self.logs_directory else None,
            'main_log_file': str(self.main_log_file) if self.main_log_file else None,
            'error_log_file': str(self.error_log_file) if self.error_log_file else None,
            'total_files': len(log_files),
            'total_size_mb': sum(p.stat().st_size for p in log_files) / 1024 / 1024,
        }

    def cleanup_old_logs(self, days: Optional[int] = None) -> int:
        """Delete log files older than ``days`` (configured retention by default)."""
        try:
            if days is None:
                days = self.log_retention_days

            active = {self.main_log_file, self.error_log_file}
            cutoff = datetime.now() - timedelta(days=days)
            removed = 0
            for path in self.get_log_files():
                if path in active:
                    continue
                if datetime.fromtimestamp(path.stat().st_mtime) < cutoff:
                    path.unlink()
                    removed += 1

            if removed:
                self.signals.log_cleanup_completed.emit(removed)
                self.logger.info(f"Cleaned up {removed} old log files")
            return removed

        except Exception as e:
            self.handle_error(e, f"cleanup_old_logs({days})")
            return 0

    # ========================================
    # Helper Methods
    # ========================================

    def _configure_logging(self) -> None:
        config_manager = self.get_service('configuration')
        if config_manager is None:
            return
        self.current_log_level = str(config_manager.get_setting('logging.default_level', 'INFO')).upper()
        self.debug_mode = config_manager.get_setting('logging.debug_mode', False)
        self.log_to_console = config_manager.get_setting('logging.console_enabled', True)
        self.log_to_file = config_manager.get_setting('logging.file_enabled', True)
        self.max_file_size_mb = config_manager.get_setting('logging.max_file_size_mb', 10)
        self.max_backup_count = config_manager.get_setting('logging.max_backup_count', 5)
        self.log_retention_days = config_manager.get_setting('logging.retention_days', 30)
        if self.logs_directory is None:
            self.logs_directory = config_manager.get_logs_directory()

    def _setup_log_directories(self) -> None:
        if not self.log_to_file:
            return
        if self.logs_directory is None:
            self.logs_directory = Path.home() / '.clipsync' / 'logs'
        self.logs_directory.mkdir(parents=True, exist_ok=True)

        stamp = datetime.now().strftime('%Y%m%d')
        self.main_log_file = self.logs_directory / f'clipsync_{stamp}.log'
        self.error_log_file = self.logs_directory / f'clipsync_errors_{stamp}.log'

    def _setup_file_handlers(self) -> None:
        if not self.log_to_file or not self.main_log_file:
            return

        max_bytes = int(self.max_file_size_mb * 1024 * 1024)

        main_handler = logging.handlers.RotatingFileHandler(
            self.main_log_file, maxBytes=max_bytes,
            backupCount=self.max_backup_count, encoding='utf-8'
        )
        main_handler.setLevel(self.LOG_LEVELS[self.current_log_level])
        main_handler.setFormatter(self._get_file_formatter())
        self.file_handlers['main'] = main_handler

        error_handler = logging.handlers.RotatingFileHandler(
            self.error_log_file, maxBytes=max_bytes,
            backupCount=self.max_backup_count, encoding='utf-8'
        )
        error_handler.setLevel(logging.WARNING)
        error_handler.setFormatter(self._get_file_formatter())
        self.file_handlers['error'] = error_handler

    def _setup_console_handler(self) -> None:
        if not self.log_to_console:
            return
        self.console_handler = logging.StreamHandler()
        self.console_handler.setLevel(self.LOG_LEVELS[self.current_log_level])
        self.console_handler.setFormatter(self._get_console_formatter())

    def _get_file_formatter(self) -> logging.Formatter:
        return logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    def _get_console_formatter(self) -> logging.Formatter:
        return logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt='%H:%M:%S'
        )
