"""
Base Manager Class

Lifecycle and error routing shared by every ClipSync manager.
"""

from abc import ABC, abstractmethod
from typing import Optional
import logging
from datetime import datetime


class BaseManager(ABC):
    """
    Abstract base class for managers.

    Provides:
    - initialize/cleanup lifecycle tracking
    - error logging routed to the shared ErrorHandler when one is registered
    - access to the dependency container
    """

    def __init__(self, parent, dependency_container=None):
        """
        Args:
            parent: Owning object (a window or the CLI application), may be None
            dependency_container: DependencyContainer used to look up shared services
        """
        self.parent = parent
        self.container = dependency_container
        self.logger = logging.getLogger(self.__class__.__name__)
        self._initialized = False
        self._initialization_time: Optional[datetime] = None
        self._is_cleaning_up = False
        self._error_count = 0

    @abstractmethod
    def initialize(self) -> bool:
        """Return True if the manager is ready for use."""

    @abstractmethod
    def cleanup(self) -> None:
        """Release timers, threads and references."""

    def is_initialized(self) -> bool:
        return self._initialized

    def get_initialization_time(self) -> Optional[datetime]:
        return self._initialization_time

    def get_service(self, name: str, default=None):
        """Look up a shared service, returning ``default`` when it is not registered."""
        if self.container and self.container.has_service(name):
            return self.container.get_service(name)
        return default

    def handle_error(self, error: Exception, context: str,
                     user_friendly_message: Optional[str] = None) -> None:
        """
        Log an error and hand it to the ErrorHandler service, if any.

        Never raises; a failure inside the handler itself is logged as critical.
        """
        self._error_count += 1

        self.logger.error(
            f"Error in {context}: {error}",
            exc_info=error,
            extra={
                'manager': self.__class__.__name__,
                'context': context,
                'error_count': self._error_count
            }
        )

        try:
            error_handler = self.get_service('error_handler')
            if error_handler is not None:
                from .error_handling import ErrorContext, ErrorSeverity

                error_context = ErrorContext(
                    component=self.__class__.__name__,
                    operation=context
                )
                error_handler.handle_error(error, error_context, ErrorSeverity.ERROR,
                                           log=False, message=user_friendly_message)
            elif hasattr(self.parent, 'show_error_message'):
                message = user_friendly_message or f"Error in {context}: {error}"
                self.parent.show_error_message(message)

        except Exception as handler_error:
            self.logger.critical(f"Error in error handler: {handler_error}", exc_info=True)

    def _mark_initialized(self) -> None:
        self._initialized = True
        self._initialization_time = datetime.now()
        self.logger.info(f"{self.__class__.__name__} initialized successfully")

    def _mark_cleanup_started(self) -> None:
        self._is_cleaning_up = True
        self.logger.debug(f"{self.__class__.__name__} cleanup started")

    def get_error_count(self) -> int:
        return self._error_count

    def reset_error_count(self) -> None:
        self._error_count = 0
