"""
Configuration Factory - Centralized configuration management for TallTales
Provides type-safe configuration with validation and environment-specific settings.
"""

import os
import logging
from typing import Any, Dict, Optional, Type
from enum import Enum
from dataclasses import dataclass, field


class Environment(Enum):
    """Environment types for configuration"""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class ConfigError(Exception):
    """Configuration-related errors"""
    pass


STORE_BACKENDS = ('redis', 'memory')


@dataclass
class AppConfig:
    """Application configuration with type safety and validation"""

    # Core Flask settings
    secret_key: str = field(default_factory=lambda: 'dev-secret-key-change-in-production')
    debug: bool = False
    flask_env: str = 'development'  # Default to development for safety

    # Server settings
    host: str = '0.0.0.0'
    port: int = 5000

    # Room store settings
    store_backend: str = 'redis'
    redis_url: str = 'redis://localhost:6379/0'

    # Room settings
    pin_length: int = 4
    max_pin_attempts: int = 50
    max_players_per_room: int = 10
    min_players_required: int = 3  # minimum present players to start a game

    # Story settings
    story_list_size: int = 8
    max_stories_per_player: int = 5
    max_story_length: int = 500  # characters
    max_username_length: int = 20  # characters

    # Timing settings (seconds)
    disconnect_grace_seconds: int = 60
    round_display_seconds: int = 20
    reveal_display_seconds: int = 0  # 0 leaves REVEAL -> ROUND to the host
    lease_ttl_seconds: int = 30
    game_flow_check_interval: int = 1
    room_cleanup_inactive_minutes: int = 60  # minutes before an idle room is deleted

    # Gunicorn settings (for production deployment)
    worker_connections: int = 1000
    timeout: int = 30
    keepalive: int = 2
    log_level: str = 'info'

    # Environment
    environment: Environment = Environment.DEVELOPMENT

    def __post_init__(self):
        """Validate configuration after initialization"""
        self._validate()

    def _validate(self):
        """Validate configuration values"""
        if self.port < 1 or self.port > 65535:
            raise ConfigError(f"Invalid port number: {self.port}")

        if self.store_backend not in STORE_BACKENDS:
            raise ConfigError(f"Invalid store_backend: {self.store_backend}")

        if self.pin_length < 1 or self.pin_length > 12:
            raise ConfigError(f"Invalid pin_length: {self.pin_length}")

        if self.max_pin_attempts < 1:
            raise ConfigError(f"Invalid max_pin_attempts: {self.max_pin_attempts}")

        if self.max_players_per_room < 1 or self.max_players_per_room > 50:
            raise ConfigError(f"Invalid max_players_per_room: {self.max_players_per_room}")

        if self.min_players_required < 1 or self.min_players_required > self.max_players_per_room:
            raise ConfigError(f"Invalid min_players_required: {self.min_players_required}")

        if self.story_list_size < 1 or self.story_list_size > 100:
            raise ConfigError(f"Invalid story_list_size: {self.story_list_size}")

        if self.max_stories_per_player < 1 or self.max_stories_per_player > 50:
            raise ConfigError(f"Invalid max_stories_per_player: {self.max_stories_per_player}")

        if self.max_story_length < 1 or self.max_story_length > 5000:
            raise ConfigError(f"Invalid max_story_length: {self.max_story_length}")

        if self.max_username_length < 1 or self.max_username_length > 100:
            raise ConfigError(f"Invalid max_username_length: {self.max_username_length}")

        if self.disconnect_grace_seconds < 1 or self.disconnect_grace_seconds > 3600:
            raise ConfigError(f"Invalid disconnect_grace_seconds: {self.disconnect_grace_seconds}")

        if self.round_display_seconds < 1 or self.round_display_seconds > 600:
            raise ConfigError(f"Invalid round_display_seconds: {self.round_display_seconds}")

        if self.reveal_display_seconds < 0 or self.reveal_display_seconds > 600:
            raise ConfigError(f"Invalid reveal_display_seconds: {self.reveal_display_seconds}")

        if self.lease_ttl_seconds < 1 or self.lease_ttl_seconds > 3600:
            raise ConfigError(f"Invalid lease_ttl_seconds: {self.lease_ttl_seconds}")

        if self.game_flow_check_interval < 1 or self.game_flow_check_interval > 60:
            raise ConfigError(f"Invalid game_flow_check_interval: {self.game_flow_check_interval}")

        if self.room_cleanup_inactive_minutes < 1:
            raise ConfigError(f"Invalid room_cleanup_inactive_minutes: {self.room_cleanup_inactive_minutes}")

        if self.environment == Environment.PRODUCTION and self.secret_key == 'dev-secret-key-change-in-production':
            raise ConfigError("Production environment requires a secure SECRET_KEY")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode"""
        return self.environment == Environment.TESTING


class ConfigurationFactory:
    """
    Factory for creating and managing application configuration.

    Features:
    - Environment variable loading with type conversion
    - Configuration validation
    - Environment-specific defaults
    - Singleton pattern for global config access
    """

    _instance: Optional['ConfigurationFactory'] = None
    _config: Optional[AppConfig] = None

    def __new__(cls) -> 'ConfigurationFactory':
        """Singleton pattern implementation"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize the configuration factory"""
        if not hasattr(self, '_initialized'):
            self._logger = logging.getLogger(__name__)
            self._env_overrides: Dict[str, Any] = {}
            self._initialized = True

    def load_from_environment(self, env_prefix: str = '') -> AppConfig:
        """
        Load configuration from environment variables.

        Args:
            env_prefix: Optional prefix for environment variables (e.g., 'TALLTALES_')

        Returns:
            Configured AppConfig instance
        """
        def get_env_var(key: str, default: Any = None, var_type: Type = str) -> Any:
            """Get environment variable with type conversion"""
            env_key = f"{env_prefix}{key}" if env_prefix else key
            value = os.environ.get(env_key)

            if value is None:
                return default

            if var_type == bool:
                return value.lower() in ('true', '1', 'yes', 'on')
            elif var_type == int:
                try:
                    return int(value)
                except ValueError:
                    self._logger.warning(f"Invalid integer value for {env_key}: {value}, using default: {default}")
                    return default
            else:
                return value

        # Determine environment
        flask_env = get_env_var('FLASK_ENV', 'development')
        if os.environ.get('TESTING') == '1':
            flask_env = 'testing'
        if flask_env == 'development':
            environment = Environment.DEVELOPMENT
            debug = True
        elif flask_env == 'testing':
            environment = Environment.TESTING
            debug = True
        else:
            environment = Environment.PRODUCTION
            debug = False

        # Tests and local runs default to the in-process store
        default_backend = 'memory' if environment == Environment.TESTING else 'redis'

        config = AppConfig(
            # Core Flask settings
            secret_key=get_env_var('SECRET_KEY', 'dev-secret-key-change-in-production'),
            debug=get_env_var('DEBUG', debug, bool),
            flask_env=flask_env,

            # Server settings
            host=get_env_var('HOST', '0.0.0.0'),
            port=get_env_var('PORT', 5000, int),

            # Room store settings
            store_backend=get_env_var('STORE_BACKEND', default_backend),
            redis_url=get_env_var('REDIS_URL', 'redis://localhost:6379/0'),

            # Room settings
            pin_length=get_env_var('PIN_LENGTH', 4, int),
            max_pin_attempts=get_env_var('MAX_PIN_ATTEMPTS', 50, int),
            max_players_per_room=get_env_var('MAX_PLAYERS_PER_ROOM', 10, int),
            min_players_required=get_env_var('MIN_PLAYERS_REQUIRED', 3, int),

            # Story settings
            story_list_size=get_env_var('STORY_LIST_SIZE', 8, int),
            max_stories_per_player=get_env_var('MAX_STORIES_PER_PLAYER', 5, int),
            max_story_length=get_env_var('MAX_STORY_LENGTH', 500, int),
            max_username_length=get_env_var('MAX_USERNAME_LENGTH', 20, int),

            # Timing settings
            disconnect_grace_seconds=get_env_var('DISCONNECT_GRACE_SECONDS', 60, int),
            round_display_seconds=get_env_var('ROUND_DISPLAY_SECONDS', 20, int),
            reveal_display_seconds=get_env_var('REVEAL_DISPLAY_SECONDS', 0, int),
            lease_ttl_seconds=get_env_var('LEASE_TTL_SECONDS', 30, int),
            game_flow_check_interval=get_env_var('GAME_FLOW_CHECK_INTERVAL', 1, int),
            room_cleanup_inactive_minutes=get_env_var('ROOM_CLEANUP_INACTIVE_MINUTES', 60, int),

            # Gunicorn settings
            worker_connections=get_env_var('WORKER_CONNECTIONS', 1000, int),
            timeout=get_env_var('TIMEOUT', 30, int),
            keepalive=get_env_var('KEEPALIVE', 2, int),
            log_level=get_env_var('LOG_LEVEL', 'info'),

            # Environment
            environment=environment
        )

        # Apply any manual overrides
        for key, value in self._env_overrides.items():
            if hasattr(config, key):
                setattr(config, key, value)

        self._config = config
        self._logger.info(f"Configuration loaded for environment: {environment.value}")
        return config

    def load_from_dict(self, config_dict: Dict[str, Any]) -> AppConfig:
        """
        Load configuration from dictionary (useful for testing).

        Args:
            config_dict: Dictionary of configuration values

        Returns:
            Configured AppConfig instance
        """
        config_dict = dict(config_dict)
        if 'environment' in config_dict and isinstance(config_dict['environment'], str):
            config_dict['environment'] = Environment(config_dict['environment'])

        self._config = AppConfig(**config_dict)
        return self._config

    def override_setting(self, key: str, value: Any) -> 'ConfigurationFactory':
        """
        Override a specific configuration setting.

        Args:
            key: Configuration key to override
            value: New value for the setting

        Returns:
            Self for method chaining
        """
        self._env_overrides[key] = value

        if self._config and hasattr(self._config, key):
            setattr(self._config, key, value)
            self._config._validate()  # Re-validate after change

        return self

    def get_config(self) -> AppConfig:
        """
        Get the current configuration.

        Returns:
            Current AppConfig instance

        Raises:
            ConfigError: If no configuration has been loaded
        """
        if self._config is None:
            raise ConfigError("Configuration not loaded. Call load_from_environment() or load_from_dict() first.")
        return self._config

    def reset(self) -> 'ConfigurationFactory':
        """Reset the factory (useful for testing)"""
        self._config = None
        self._env_overrides.clear()
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert current configuration to dictionary"""
        if self._config is None:
            raise ConfigError("Configuration not loaded")

        config_dict = {}
        for field_info in self._config.__dataclass_fields__.values():
            value = getattr(self._config, field_info.name)
            if isinstance(value, Environment):
                config_dict[field_info.name] = value.value
            else:
                config_dict[field_info.name] = value

        return config_dict

    def get_flask_config(self) -> Dict[str, Any]:
        """
        Get Flask-compatible configuration dictionary.

        Returns:
            Dictionary suitable for Flask app.config.update()
        """
        if self._config is None:
            raise ConfigError("Configuration not loaded")

        return {
            'SECRET_KEY': self._config.secret_key,
            'DEBUG': self._config.debug,
            'ENV': self._config.flask_env,
            'MAX_PLAYERS_PER_ROOM': self._config.max_players_per_room,
            'MIN_PLAYERS_REQUIRED': self._config.min_players_required,
            'STORY_LIST_SIZE': self._config.story_list_size,
            'DISCONNECT_GRACE_SECONDS': self._config.disconnect_grace_seconds,
        }


# Global factory instance
_config_factory = ConfigurationFactory()


def get_config() -> AppConfig:
    """Get the global application configuration"""
    return _config_factory.get_config()


def load_config(env_prefix: str = '') -> AppConfig:
    """Load configuration from environment variables"""
    return _config_factory.load_from_environment(env_prefix)


def load_config_from_dict(config_dict: Dict[str, Any]) -> AppConfig:
    """Load configuration from dictionary"""
    return _config_factory.load_from_dict(config_dict)


def override_config(key: str, value: Any) -> ConfigurationFactory:
    """Override a configuration setting"""
    return _config_factory.override_setting(key, value)


def reset_config() -> ConfigurationFactory:
    """Reset configuration (for testing)"""
    return _config_factory.reset()
