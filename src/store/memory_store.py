"""
In-process room store.

Implements the RoomStore contract with plain dictionaries guarded by a
single lock, including TTLs and expiry notifications. Used for local
development and tests; production deployments use the redis backend.
"""

import fnmatch
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Set

from src.store.room_store import ExpiryCallback, RoomStore, StoreError

logger = logging.getLogger(__name__)


class MemoryRoomStore(RoomStore):
    """Dictionary-backed store with lazy and periodic key expiry."""

    def __init__(self, clock: Callable[[], float] = time.time, sweep_interval: float = 1.0):
        """
        Args:
            clock: Time source, replaceable in tests
            sweep_interval: Seconds between expiry sweeps of the listener thread
        """
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._lock = threading.RLock()
        self._data: Dict[str, object] = {}
        self._expires_at: Dict[str, float] = {}
        self._expired_pending: List[str] = []
        self._callbacks: List[ExpiryCallback] = []
        self._running = False
        self._sweep_thread: Optional[threading.Thread] = None

    # Internal helpers (callers hold the lock)

    def _expire_if_due(self, key: str) -> None:
        deadline = self._expires_at.get(key)
        if deadline is not None and deadline <= self._clock():
            self._data.pop(key, None)
            del self._expires_at[key]
            self._expired_pending.append(key)

    def _read(self, key: str, kind: type):
        self._expire_if_due(key)
        value = self._data.get(key)
        if value is not None and not isinstance(value, kind):
            raise StoreError(f"Key {key} holds a {type(value).__name__}, not a {kind.__name__}")
        return value

    def _read_or_create(self, key: str, kind: type):
        value = self._read(key, kind)
        if value is None:
            value = kind()
            self._data[key] = value
        return value

    def _drop_if_empty(self, key: str) -> None:
        value = self._data.get(key)
        if isinstance(value, (dict, set)) and not value:
            self._data.pop(key, None)
            self._expires_at.pop(key, None)

    # Strings

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read(key, str)

    def set(self, key: str, value, ex: Optional[int] = None, nx: bool = False) -> bool:
        with self._lock:
            self._expire_if_due(key)
            if nx and key in self._data:
                return False
            self._data[key] = str(value)
            if ex is not None:
                self._expires_at[key] = self._clock() + ex
            else:
                self._expires_at.pop(key, None)
            return True

    def delete(self, *keys: str) -> int:
        removed = 0
        with self._lock:
            for key in keys:
                self._expire_if_due(key)
                if key in self._data:
                    del self._data[key]
                    removed += 1
                self._expires_at.pop(key, None)
        return removed

    def exists(self, key: str) -> bool:
        with self._lock:
            self._expire_if_due(key)
            return key in self._data

    def ttl(self, key: str) -> Optional[float]:
        """Seconds until ``key`` expires, or None if it has no TTL."""
        with self._lock:
            self._expire_if_due(key)
            deadline = self._expires_at.get(key)
            return None if deadline is None else deadline - self._clock()

    # Hashes

    def hget(self, key: str, field: str) -> Optional[str]:
        with self._lock:
            value = self._read(key, dict)
            return value.get(field) if value else None

    def hset(self, key: str, field: str, value) -> None:
        with self._lock:
            self._read_or_create(key, dict)[field] = str(value)

    def hsetnx(self, key: str, field: str, value) -> bool:
        with self._lock:
            mapping = self._read_or_create(key, dict)
            if field in mapping:
                return False
            mapping[field] = str(value)
            return True

    def hgetall(self, key: str) -> Dict[str, str]:
        with self._lock:
            value = self._read(key, dict)
            return dict(value) if value else {}

    def hdel(self, key: str, *fields: str) -> int:
        with self._lock:
            mapping = self._read(key, dict)
            if not mapping:
                return 0
            removed = sum(1 for field in fields if mapping.pop(field, None) is not None)
            self._drop_if_empty(key)
            return removed

    def hexists(self, key: str, field: str) -> bool:
        with self._lock:
            value = self._read(key, dict)
            return bool(value) and field in value

    def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        with self._lock:
            mapping = self._read_or_create(key, dict)
            try:
                current = int(mapping.get(field, 0))
            except ValueError:
                raise StoreError(f"Hash field {key}.{field} is not an integer")
            current += amount
            mapping[field] = str(current)
            return current

    # Sets

    def sadd(self, key: str, *members: str) -> int:
        with self._lock:
            members_set = self._read_or_create(key, set)
            before = len(members_set)
            members_set.update(str(m) for m in members)
            return len(members_set) - before

    def srem(self, key: str, *members: str) -> int:
        with self._lock:
            members_set = self._read(key, set)
            if not members_set:
                return 0
            removed = 0
            for member in members:
                if member in members_set:
                    members_set.discard(member)
                    removed += 1
            self._drop_if_empty(key)
            return removed

    def smembers(self, key: str) -> Set[str]:
        with self._lock:
            value = self._read(key, set)
            return set(value) if value else set()

    def scard(self, key: str) -> int:
        with self._lock:
            value = self._read(key, set)
            return len(value) if value else 0

    def sismember(self, key: str, member: str) -> bool:
        with self._lock:
            value = self._read(key, set)
            return bool(value) and member in value

    # Keyspace

    def scan_keys(self, pattern: str) -> List[str]:
        with self._lock:
            for key in list(self._expires_at):
                self._expire_if_due(key)
            return [key for key in self._data if fnmatch.fnmatchcase(key, pattern)]

    def sweep_expired(self) -> List[str]:
        """
        Expire every key whose TTL has passed and notify listeners.

        Returns:
            The keys that expired since the previous sweep
        """
        with self._lock:
            for key in list(self._expires_at):
                self._expire_if_due(key)
            expired, self._expired_pending = self._expired_pending, []
            callbacks = list(self._callbacks)

        # Callbacks run outside the lock; they call back into the store.
        for key in expired:
            for callback in callbacks:
                try:
                    callback(key)
                except Exception as e:
                    logger.error(f"Error in expiry callback for {key}: {e}")
        return expired

    def start_expiry_listener(self, callback: ExpiryCallback) -> None:
        with self._lock:
            self._callbacks.append(callback)
            if self._running:
                return
            self._running = True
        self._sweep_thread = threading.Thread(target=self._sweep_loop, daemon=True)
        self._sweep_thread.start()
        logger.info("In-memory expiry listener started")

    def stop_expiry_listener(self) -> None:
        self._running = False
        if self._sweep_thread and self._sweep_thread.is_alive():
            self._sweep_thread.join(timeout=2)
        with self._lock:
            self._callbacks.clear()

    def add_expiry_callback(self, callback: ExpiryCallback) -> None:
        """Register a callback without starting the sweep thread."""
        with self._lock:
            self._callbacks.append(callback)

    def _sweep_loop(self):
        while self._running:
            try:
                self.sweep_expired()
            except Exception as e:
                logger.error(f"Error sweeping expired keys: {e}")
            time.sleep(self._sweep_interval)

    def ping(self) -> bool:
        return True

    def flush(self) -> None:
        """Drop all keys (useful for testing)."""
        with self._lock:
            self._data.clear()
            self._expires_at.clear()
            self._expired_pending.clear()
