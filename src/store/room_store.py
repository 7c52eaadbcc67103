"""
Room Store contract.

The shared room store is the single source of truth for all cross-connection
state. Backends must provide atomic single-key operations, set-if-not-exists
with TTL, hash and set operations, and a notification when a key expires.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Set

logger = logging.getLogger(__name__)

ExpiryCallback = Callable[[str], None]


class StoreError(Exception):
    """Raised when a store operation is applied to a key of the wrong type."""
    pass


class RoomStore(ABC):
    """Key/value operations used by the coordination services."""

    # Strings

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value, ex: Optional[int] = None, nx: bool = False) -> bool:
        """
        Set a string value.

        Args:
            key: Key to write
            value: Value, stored as a string
            ex: Optional TTL in seconds
            nx: Only write if the key does not exist

        Returns:
            True if the value was written
        """

    @abstractmethod
    def delete(self, *keys: str) -> int:
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        pass

    # Hashes

    @abstractmethod
    def hget(self, key: str, field: str) -> Optional[str]:
        pass

    @abstractmethod
    def hset(self, key: str, field: str, value) -> None:
        pass

    @abstractmethod
    def hsetnx(self, key: str, field: str, value) -> bool:
        pass

    @abstractmethod
    def hgetall(self, key: str) -> Dict[str, str]:
        pass

    @abstractmethod
    def hdel(self, key: str, *fields: str) -> int:
        pass

    @abstractmethod
    def hexists(self, key: str, field: str) -> bool:
        pass

    @abstractmethod
    def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        pass

    # Sets

    @abstractmethod
    def sadd(self, key: str, *members: str) -> int:
        pass

    @abstractmethod
    def srem(self, key: str, *members: str) -> int:
        pass

    @abstractmethod
    def smembers(self, key: str) -> Set[str]:
        pass

    @abstractmethod
    def scard(self, key: str) -> int:
        pass

    @abstractmethod
    def sismember(self, key: str, member: str) -> bool:
        pass

    # Keyspace

    @abstractmethod
    def scan_keys(self, pattern: str) -> List[str]:
        """Return all keys matching a glob-style pattern."""

    @abstractmethod
    def start_expiry_listener(self, callback: ExpiryCallback) -> None:
        """Invoke ``callback(key)`` for every key that expires from now on."""

    @abstractmethod
    def stop_expiry_listener(self) -> None:
        pass

    @abstractmethod
    def ping(self) -> bool:
        pass


def create_room_store(game_settings) -> RoomStore:
    """
    Create the configured room store backend.

    Args:
        game_settings: GameSettings instance

    Returns:
        RoomStore implementation
    """
    backend = game_settings.store_backend
    if backend == 'redis':
        from src.store.redis_store import RedisRoomStore
        logger.info(f"Using redis room store at {game_settings.redis_url}")
        return RedisRoomStore.from_url(game_settings.redis_url)

    from src.store.memory_store import MemoryRoomStore
    logger.info("Using in-memory room store")
    return MemoryRoomStore(sweep_interval=game_settings.game_flow_check_interval)
