"""
Identity Service for TallTales

Resolves the stable player identity for each Socket.IO connection and keeps
the connection-scoped context (user id, joined room, username). Only this
per-connection bookkeeping lives in process; room state lives in the store.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

MAX_USER_ID_LENGTH = 64


@dataclass(frozen=True)
class ConnectionContext:
    """Identity and room membership of a single connection."""
    sid: str
    user_id: str
    pin: Optional[str] = None
    username: Optional[str] = None


class IdentityService:
    """Maps connection ids to stable user ids and connection context."""

    def __init__(self):
        self._contexts: Dict[str, ConnectionContext] = {}
        self._lock = threading.Lock()

    @staticmethod
    def generate_user_id() -> str:
        return uuid.uuid4().hex

    def resolve_user_id(self, auth) -> Optional[str]:
        """
        Extract the client-persisted user id from handshake auth data.

        Args:
            auth: Handshake auth payload, typically {'userId': '...'}

        Returns:
            The user id, or None if the client did not send a usable one
        """
        if not isinstance(auth, dict):
            return None
        user_id = auth.get('userId') or auth.get('user_id')
        if not isinstance(user_id, str):
            return None
        user_id = user_id.strip()
        if not user_id or len(user_id) > MAX_USER_ID_LENGTH or ':' in user_id:
            logger.warning("Ignoring malformed user id from handshake")
            return None
        return user_id

    def bind_connection(self, sid: str, auth=None) -> ConnectionContext:
        """
        Resolve the identity for a new connection, generating one if needed.

        Args:
            sid: Socket.IO connection id
            auth: Handshake auth payload

        Returns:
            The connection context
        """
        user_id = self.resolve_user_id(auth)
        if user_id is None:
            user_id = self.generate_user_id()
            logger.info(f"Generated user id {user_id} for connection {sid}")
        context = ConnectionContext(sid=sid, user_id=user_id)
        with self._lock:
            self._contexts[sid] = context
        return context

    def get_context(self, sid: str) -> Optional[ConnectionContext]:
        with self._lock:
            return self._contexts.get(sid)

    def rebind_user(self, sid: str, user_id: str) -> ConnectionContext:
        """Replace the user id of a connection that has not joined a room yet."""
        with self._lock:
            context = self._contexts.get(sid) or ConnectionContext(sid=sid, user_id=user_id)
            context = replace(context, user_id=user_id)
            self._contexts[sid] = context
            return context

    def attach_room(self, sid: str, pin: str, username: str) -> Optional[ConnectionContext]:
        """Record the room a connection joined."""
        with self._lock:
            context = self._contexts.get(sid)
            if context is None:
                logger.warning(f"attach_room for unknown connection {sid}")
                return None
            context = replace(context, pin=pin, username=username)
            self._contexts[sid] = context
            return context

    def detach_room(self, sid: str) -> Optional[ConnectionContext]:
        """Forget the room of a connection, keeping its identity."""
        with self._lock:
            context = self._contexts.get(sid)
            if context is None:
                return None
            context = replace(context, pin=None, username=None)
            self._contexts[sid] = context
            return context

    def release(self, sid: str) -> Optional[ConnectionContext]:
        """
        Remove a connection's context on disconnect.

        Returns:
            The removed context, or None if the connection was unknown
        """
        with self._lock:
            return self._contexts.pop(sid, None)

    def get_connections_by_room(self, pin: str) -> List[ConnectionContext]:
        with self._lock:
            return [ctx for ctx in self._contexts.values() if ctx.pin == pin]

    def get_connections_count(self) -> int:
        with self._lock:
            return len(self._contexts)
