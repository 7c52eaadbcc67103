"""
Game Settings Configuration Module

Provides centralized access to game-specific configuration values,
replacing hardcoded constants throughout the codebase.
"""

import logging
from typing import Optional

from config_factory import AppConfig, ConfigError

logger = logging.getLogger(__name__)


class GameSettings:
    """Centralized game settings management."""

    def __init__(self, app_config: Optional[AppConfig] = None):
        """
        Initialize game settings.

        Args:
            app_config: Application configuration instance from config_factory
        """
        self._config = app_config
        if app_config is None:
            try:
                from config_factory import get_config
                self._config = get_config()
            except ConfigError as e:
                logger.warning(f"Could not load configuration: {e}, using defaults")
                self._config = AppConfig()

    @property
    def app_config(self) -> AppConfig:
        return self._config

    @property
    def store_backend(self) -> str:
        return self._config.store_backend

    @property
    def redis_url(self) -> str:
        return self._config.redis_url

    @property
    def pin_length(self) -> int:
        return self._config.pin_length

    @property
    def max_pin_attempts(self) -> int:
        return self._config.max_pin_attempts

    @property
    def max_players_per_room(self) -> int:
        """
        Get maximum players per room.

        Returns:
            Maximum number of players allowed in a lobby
        """
        return self._config.max_players_per_room

    @property
    def min_players_required(self) -> int:
        """
        Get minimum players required to start a game.

        Returns:
            Minimum number of present players
        """
        return self._config.min_players_required

    @property
    def story_list_size(self) -> int:
        return self._config.story_list_size

    @property
    def max_stories_per_player(self) -> int:
        return self._config.max_stories_per_player

    @property
    def max_story_length(self) -> int:
        return self._config.max_story_length

    @property
    def max_username_length(self) -> int:
        return self._config.max_username_length

    @property
    def disconnect_grace_seconds(self) -> int:
        """
        Get the grace period before a disconnected in-game player is removed.

        Returns:
            DisconnectMarker TTL in seconds
        """
        return self._config.disconnect_grace_seconds

    @property
    def round_display_seconds(self) -> int:
        return self._config.round_display_seconds

    @property
    def reveal_display_seconds(self) -> int:
        return self._config.reveal_display_seconds

    @property
    def lease_ttl_seconds(self) -> int:
        return self._config.lease_ttl_seconds

    @property
    def game_flow_check_interval(self) -> int:
        return self._config.game_flow_check_interval

    @property
    def room_cleanup_inactive_minutes(self) -> int:
        """
        Get how long a room may sit idle before it is deleted.

        Returns:
            Minutes without activity or connected players
        """
        return self._config.room_cleanup_inactive_minutes


# Global instance for easy access
_game_settings_instance = None


def get_game_settings(app_config=None) -> GameSettings:
    """
    Get or create the global game settings instance.

    Args:
        app_config: Optional app config to use

    Returns:
        GameSettings instance
    """
    global _game_settings_instance

    if _game_settings_instance is None or app_config is not None:
        _game_settings_instance = GameSettings(app_config)

    return _game_settings_instance


def reset_game_settings():
    """Reset the global game settings instance (mainly for testing)."""
    global _game_settings_instance
    _game_settings_instance = None
