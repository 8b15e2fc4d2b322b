"""
Dependency Injection Container

Service lookup shared by the managers. Configuration, the error handler and
the sync controller are registered here once and handed to every manager,
so no component needs module level singletons.
"""

from typing import Any, Callable, Dict
import logging
from threading import RLock


class DependencyContainer:
    """
    Name-to-service registry.

    Supports:
    - registering ready instances
    - lazy factories, cached on first use
    - cleanup of every registered service that has a ``cleanup`` method
    """

    def __init__(self):
        self._services: Dict[str, Any] = {}
        self._factories: Dict[str, Callable[[], Any]] = {}
        # Re-entrant: a factory may look up other services
        self._lock = RLock()
        self.logger = logging.getLogger(__name__)

    def register_service(self, name: str, instance: Any) -> None:
        with self._lock:
            if name in self._services:
                self.logger.warning(f"Overriding existing service: {name}")
            self._services[name] = instance
            self.logger.debug(f"Registered service: {name} ({type(instance).__name__})")

    def register_factory(self, name: str, factory: Callable[[], Any]) -> None:
        with self._lock:
            self._factories[name] = factory
            self.logger.debug(f"Registered factory: {name}")

    def get_service(self, name: str) -> Any:
        """
        Return the named service, creating it from its factory on first use.

        Raises:
            ValueError: if nothing is registered under ``name`` or the factory fails
        """
        with self._lock:
            if name in self._services:
                return self._services[name]

            factory = self._factories.get(name)
            if factory is None:
                raise ValueError(f"Service '{name}' not found")

            try:
                instance = factory()
            except Exception as e:
                self.logger.error(f"Failed to create service '{name}': {e}", exc_info=True)
                raise ValueError(f"Failed to create service '{name}': {e}") from e

            self._services[name] = instance
            self.logger.debug(f"Created service: {name}")
            return instance

    def has_service(self, name: str) -> bool:
        with self._lock:
            return name in self._services or name in self._factories

    def get_service_names(self) -> list[str]:
        with self._lock:
            return sorted(set(self._services) | set(self._factories))

    def remove_service(self, name: str) -> bool:
        with self._lock:
            service = self._services.pop(name, None)
            factory = self._factories.pop(name, None)
            if service is not None:
                self._cleanup_service(name, service)
            return service is not None or factory is not None

    def clear(self) -> None:
        """Clean up every instantiated service, newest first, and forget all registrations."""
        with self._lock:
            for name, service in reversed(list(self._services.items())):
                self._cleanup_service(name, service)
            self._services.clear()
            self._factories.clear()

    def _cleanup_service(self, name: str, service: Any) -> None:
        if hasattr(service, 'cleanup'):
            try:
                service.cleanup()
            except Exception as e:
                self.logger.error(f"Error during cleanup of {name}: {e}")
