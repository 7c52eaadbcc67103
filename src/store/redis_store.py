"""
Redis room store.

Thin adapter from the RoomStore contract onto redis-py. Disconnect grace
periods rely on keyspace notifications for expired keys, delivered on the
``__keyevent@<db>__:expired`` channel.
"""

import logging
from typing import Dict, List, Optional, Set

import redis

from src.store.room_store import ExpiryCallback, RoomStore

logger = logging.getLogger(__name__)

KEYSPACE_EVENTS = 'Ex'


class RedisRoomStore(RoomStore):
    """RoomStore backed by a redis client created with ``decode_responses=True``."""

    def __init__(self, client: redis.Redis):
        self._client = client
        self._pubsub = None
        self._listener_thread = None

    @classmethod
    def from_url(cls, url: str) -> 'RedisRoomStore':
        return cls(redis.from_url(url, decode_responses=True))

    @property
    def client(self) -> redis.Redis:
        return self._client

    # Strings

    def get(self, key: str) -> Optional[str]:
        return self._client.get(key)

    def set(self, key: str, value, ex: Optional[int] = None, nx: bool = False) -> bool:
        return bool(self._client.set(key, value, ex=ex, nx=nx))

    def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return self._client.delete(*keys)

    def exists(self, key: str) -> bool:
        return bool(self._client.exists(key))

    # Hashes

    def hget(self, key: str, field: str) -> Optional[str]:
        return self._client.hget(key, field)

    def hset(self, key: str, field: str, value) -> None:
        self._client.hset(key, field, value)

    def hsetnx(self, key: str, field: str, value) -> bool:
        return bool(self._client.hsetnx(key, field, value))

    def hgetall(self, key: str) -> Dict[str, str]:
        return self._client.hgetall(key) or {}

    def hdel(self, key: str, *fields: str) -> int:
        if not fields:
            return 0
        return self._client.hdel(key, *fields)

    def hexists(self, key: str, field: str) -> bool:
        return bool(self._client.hexists(key, field))

    def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        return int(self._client.hincrby(key, field, amount))

    # Sets

    def sadd(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return self._client.sadd(key, *members)

    def srem(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return self._client.srem(key, *members)

    def smembers(self, key: str) -> Set[str]:
        return set(self._client.smembers(key))

    def scard(self, key: str) -> int:
        return int(self._client.scard(key))

    def sismember(self, key: str, member: str) -> bool:
        return bool(self._client.sismember(key, member))

    # Keyspace

    def scan_keys(self, pattern: str) -> List[str]:
        return list(self._client.scan_iter(match=pattern))

    def _expired_channel(self) -> str:
        db = self._client.connection_pool.connection_kwargs.get('db', 0)
        return f'__keyevent@{db}__:expired'

    def start_expiry_listener(self, callback: ExpiryCallback) -> None:
        """
        Subscribe to expired-key events and dispatch them to ``callback``.

        Enables ``notify-keyspace-events`` when the server permits CONFIG SET;
        managed deployments have to enable it themselves.
        """
        try:
            self._client.config_set('notify-keyspace-events', KEYSPACE_EVENTS)
        except redis.ResponseError as e:
            logger.warning(f"Could not enable keyspace notifications, expecting them to be preconfigured: {e}")

        def handle_message(message):
            key = message.get('data')
            try:
                callback(key)
            except Exception as e:
                logger.error(f"Error in expiry callback for {key}: {e}")

        channel = self._expired_channel()
        self._pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        self._pubsub.subscribe(**{channel: handle_message})
        self._listener_thread = self._pubsub.run_in_thread(sleep_time=0.5, daemon=True)
        logger.info(f"Listening for expired keys on {channel}")

    def stop_expiry_listener(self) -> None:
        if self._listener_thread is not None:
            self._listener_thread.stop()
            self._listener_thread = None
        if self._pubsub is not None:
            self._pubsub.close()
            self._pubsub = None

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False
