"""
ClipSync Manager Components

This package contains the manager-based components that handle specific
aspects of the application:

- BaseManager: Abstract base class for all managers
- DependencyContainer: Service locator for manager communication
- ErrorHandler: Centralized error handling and user notification
- SyncController: Multi-camera drift monitoring and correction
- VideoPlaybackManager: Stream loading, seeking and clip transitions
- ClipManager: Event discovery, clip grouping and gap detection
- ConfigurationManager: Application settings and sync policy
- LoggingManager: Centralized logging with file rotation and debugging
"""

from .base import BaseManager
from .container import DependencyContainer
from .error_handling import ErrorHandler, ErrorContext, ErrorSeverity
from .sync import SyncController
from .video_playback import VideoPlaybackManager
from .clip import ClipManager, EventScanResult
from .configuration import ConfigurationManager, SyncConfig
from .logging import LoggingManager

__all__ = [
    'BaseManager',
    'DependencyContainer',
    'ErrorHandler',
    'ErrorContext',
    'ErrorSeverity',
    'SyncController',
    'VideoPlaybackManager',
    'ClipManager',
    'EventScanResult',
    'ConfigurationManager',
    'SyncConfig',
    'LoggingManager',
]
