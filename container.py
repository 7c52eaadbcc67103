"""
Service Container - Dependency Injection Container for TallTales
Manages service creation, dependencies, and lifecycle.
"""

from typing import Dict, Any, List, Optional, Callable
import inspect
from enum import Enum


class ServiceLifecycle(Enum):
    """Service lifecycle management options"""
    SINGLETON = "singleton"  # One instance per container
    TRANSIENT = "transient"  # New instance every time


class ServiceDefinition:
    """Definition of how a service should be created"""

    def __init__(
        self,
        name: str,
        factory: Callable,
        dependencies: List[str] = None,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
        config: Dict[str, Any] = None
    ):
        self.name = name
        self.factory = factory
        self.dependencies = dependencies or []
        self.lifecycle = lifecycle
        self.config = config or {}


class CircularDependencyError(Exception):
    """Raised when circular dependency is detected"""
    pass


class ServiceNotFoundError(Exception):
    """Raised when requested service is not registered"""
    pass


class ServiceContainer:
    """
    Dependency Injection Container for managing services and their dependencies.

    Dependencies are listed explicitly at registration and passed to the
    factory positionally, in the order given.
    """

    def __init__(self):
        self._services: Dict[str, ServiceDefinition] = {}
        self._instances: Dict[str, Any] = {}
        self._creating: List[str] = []  # Services being created, in order
        self._config: Dict[str, Any] = {}

    def register(
        self,
        name: str,
        factory: Callable,
        dependencies: List[str] = None,
        lifecycle: ServiceLifecycle = ServiceLifecycle.SINGLETON,
        config: Dict[str, Any] = None
    ) -> 'ServiceContainer':
        """
        Register a service with the container.

        Args:
            name: Service name for retrieval
            factory: Class or function to create the service
            dependencies: List of service names this service depends on
            lifecycle: How the service instance should be managed
            config: Keyword arguments passed to function factories

        Returns:
            Self for method chaining
        """
        if name in self._services:
            raise ValueError(f"Service '{name}' is already registered")

        if not callable(factory):
            raise ValueError(f"Factory for '{name}' must be callable")

        self._services[name] = ServiceDefinition(
            name=name,
            factory=factory,
            dependencies=dependencies,
            lifecycle=lifecycle,
            config=config
        )
        return self

    def configure_services(self) -> 'ServiceContainer':
        """
        Register all TallTales services with their dependencies.
        This method contains the service configuration for the application.
        """
        from config_factory import ConfigurationFactory
        from src.store.room_store import create_room_store
        from src.services.room_state_service import RoomStateService
        from src.services.concurrency_control_service import ConcurrencyControlService
        from src.services.identity_service import IdentityService
        from src.services.validation_service import ValidationService
        from src.services.error_response_factory import ErrorResponseFactory
        from src.services.room_registry_service import RoomRegistryService
        from src.services.presence_service import PresenceService
        from src.services.story_scheduler_service import StorySchedulerService
        from src.services.scoring_service import ScoringService
        from src.services.vote_tally_service import VoteTallyService
        from src.services.game_flow_service import GameFlowService
        from src.services.room_state_presenter import RoomStatePresenter
        from src.services.broadcast_service import BroadcastService
        from src.services.auto_game_flow_service import AutoGameFlowService

        # Configuration (no dependencies)
        self.register('ConfigurationFactory', ConfigurationFactory)
        self.register('GameSettings', self._create_game_settings)

        # Shared room store - everything stateful sits on top of it
        self.register('RoomStore', create_room_store, dependencies=['GameSettings'])
        self.register('RoomStateService', RoomStateService, dependencies=['RoomStore'])
        self.register('ConcurrencyControlService', ConcurrencyControlService,
                      dependencies=['RoomStore', 'GameSettings'])

        # Connection identity, validation and error handling
        self.register('IdentityService', IdentityService)
        self.register('ValidationService', ValidationService, dependencies=['GameSettings'])
        self.register('ErrorResponseFactory', ErrorResponseFactory)

        # Rooms and presence
        self.register('RoomRegistryService', RoomRegistryService,
                      dependencies=['RoomStore', 'RoomStateService', 'GameSettings'])
        self.register('PresenceService', PresenceService,
                      dependencies=['RoomStore', 'RoomStateService', 'RoomRegistryService', 'GameSettings'])

        # Game
        self.register('StorySchedulerService', StorySchedulerService,
                      dependencies=['RoomStore', 'RoomStateService', 'GameSettings'])
        self.register('ScoringService', ScoringService)
        self.register('VoteTallyService', VoteTallyService,
                      dependencies=['RoomStore', 'RoomStateService', 'ConcurrencyControlService',
                                    'ScoringService', 'GameSettings'])
        self.register('GameFlowService', GameFlowService,
                      dependencies=['RoomStore', 'RoomStateService', 'ConcurrencyControlService',
                                    'StorySchedulerService', 'GameSettings'])

        # Broadcasting - socketio is injected as an external dependency
        self.register('RoomStatePresenter', RoomStatePresenter,
                      dependencies=['RoomStateService', 'ScoringService'])
        self.register('BroadcastService', BroadcastService, dependencies=['socketio', 'RoomStatePresenter'])

        self.register('AutoGameFlowService', AutoGameFlowService,
                      dependencies=['BroadcastService', 'GameFlowService', 'PresenceService',
                                    'VoteTallyService', 'RoomStateService', 'RoomRegistryService',
                                    'GameSettings'])

        return self

    def _create_game_settings(self):
        """Build GameSettings from the container config, or the global config if none was set."""
        from config_factory import ConfigurationFactory
        from src.config.game_settings import GameSettings, get_game_settings

        if self._config:
            return GameSettings(ConfigurationFactory().load_from_dict(self._config))
        return get_game_settings()

    def set_external_dependency(self, name: str, instance: Any) -> 'ServiceContainer':
        """
        Set an external dependency that's created outside the container.
        Useful for Flask-SocketIO and similar framework objects.
        """
        self._instances[name] = instance
        return self

    def set_config(self, config: Dict[str, Any]) -> 'ServiceContainer':
        """Set global configuration for the container"""
        self._config.update(config)
        return self

    def get(self, name: str) -> Any:
        """
        Get a service instance, creating it if necessary.

        Raises:
            ServiceNotFoundError: If service is not registered
            CircularDependencyError: If circular dependency detected
        """
        if name in self._instances:
            return self._instances[name]

        if name not in self._services:
            raise ServiceNotFoundError(f"Service '{name}' is not registered")

        return self._create_service(name)

    def _create_service(self, name: str) -> Any:
        if name in self._creating:
            cycle = ' -> '.join(self._creating + [name])
            raise CircularDependencyError(f"Circular dependency detected: {cycle}")

        self._creating.append(name)

        try:
            service_def = self._services[name]
            dependencies = [self.get(dep_name) for dep_name in service_def.dependencies]

            if inspect.isclass(service_def.factory):
                instance = service_def.factory(*dependencies)
            else:
                instance = service_def.factory(*dependencies, **service_def.config)

            if service_def.lifecycle == ServiceLifecycle.SINGLETON:
                self._instances[name] = instance

            return instance

        finally:
            self._creating.remove(name)

    def has_service(self, name: str) -> bool:
        """Check if a service is registered"""
        return name in self._services

    def get_service_names(self) -> List[str]:
        """Get list of all registered service names"""
        return list(self._services.keys())

    def validate_dependencies(self) -> Dict[str, List[str]]:
        """
        Validate all service dependencies can be resolved.

        Returns:
            Dictionary mapping service names to lists of missing dependencies
        """
        issues = {}

        for name, service_def in self._services.items():
            missing_deps = [
                dep for dep in service_def.dependencies
                if not self.has_service(dep) and dep not in self._instances
            ]
            if missing_deps:
                issues[name] = missing_deps

        return issues

    def clear(self) -> 'ServiceContainer':
        """Clear all services and instances (useful for testing)"""
        self._services.clear()
        self._instances.clear()
        self._creating.clear()
        self._config.clear()
        return self

    def __repr__(self) -> str:
        return f"ServiceContainer(services={len(self._services)}, instances={len(self._instances)})"


# Global container instance for the application
_app_container: Optional[ServiceContainer] = None


def get_container() -> ServiceContainer:
    """Get the global application service container"""
    global _app_container
    if _app_container is None:
        _app_container = ServiceContainer()
    return _app_container


def reset_container() -> None:
    """Drop the global container (for testing)"""
    global _app_container
    if _app_container is not None:
        _app_container.clear()
    _app_container = None


def configure_container(socketio=None, config=None) -> ServiceContainer:
    """
    Configure the global service container with TallTales services.

    Args:
        socketio: Flask-SocketIO instance
        config: Application configuration

    Returns:
        Configured service container
    """
    container = get_container()
    container.clear()

    if socketio is not None:
        container.set_external_dependency('socketio', socketio)

    if config is not None:
        container.set_config(config)

    container.configure_services()

    return container
