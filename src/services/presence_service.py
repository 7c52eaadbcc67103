"""
Presence Service for TallTales

Tracks each player's connection to a room. Disconnects in the lobby remove
the player at once; disconnects during a game start a grace period (a
disconnect marker key with a TTL) whose expiry removes the player for good.
Rejoining within the grace period deletes the marker.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from src.core.game_phases import GamePhase
from src.store.keys import RoomKeys

logger = logging.getLogger(__name__)


class DisconnectOutcome(Enum):
    """What a disconnect did to the player's membership."""
    IGNORED = "ignored"
    REMOVED = "removed"
    MARKED = "marked"


@dataclass(frozen=True)
class JoinResult:
    player: Dict
    is_new: bool
    is_host: bool


class PresenceService:
    """Manages join, disconnect and grace-period expiry for players."""

    def __init__(self, store, room_state_service, room_registry_service, game_settings):
        self.store = store
        self.room_state = room_state_service
        self.room_registry = room_registry_service
        self.game_settings = game_settings

    def join(self, pin: str, user_id: str, username: str, sid: str) -> JoinResult:
        """
        Add a player to a room or restore a returning player.

        Args:
            pin: Room PIN
            user_id: Stable player id
            username: Display name; replaces the stored name on rejoin
            sid: Connection id now serving this player

        Returns:
            JoinResult with the stored player record

        Raises:
            ValidationError: If the room refuses the join
        """
        self.room_registry.require_join(pin, user_id)
        keys = RoomKeys(pin)

        # Cancel any pending removal
        if self.store.delete(keys.disconnect_marker(user_id)):
            logger.info(f"Player {user_id} returned to room {pin} within grace period")

        existing = self.room_state.get_player(pin, user_id)
        if existing is None:
            player = {'id': user_id, 'username': username, 'ready': False, 'connected': True}
        else:
            player = dict(existing, username=username or existing['username'], connected=True)

        self.room_state.save_player(pin, player)
        self.store.hsetnx(keys.scores, user_id, 0)
        self.room_state.set_socket(pin, user_id, sid)
        self._ensure_host(pin, user_id)

        is_host = self.room_state.get_host(pin) == user_id
        logger.info(f"Player {username} ({user_id}) {'joined' if existing is None else 'rejoined'} room {pin}")
        return JoinResult(player=player, is_new=existing is None, is_host=is_host)

    def disconnect(self, pin: str, user_id: str, sid: str) -> DisconnectOutcome:
        """
        Handle the loss of a player's connection.

        A disconnect from a connection that has since been replaced by a newer
        one is ignored.
        """
        current_sid = self.room_state.get_socket(pin, user_id)
        if current_sid is not None and current_sid != sid:
            logger.info(f"Ignoring disconnect of superseded connection {sid} for {user_id} in room {pin}")
            return DisconnectOutcome.IGNORED

        player = self.room_state.get_player(pin, user_id)
        if player is None:
            return DisconnectOutcome.IGNORED

        keys = RoomKeys(pin)
        if self.room_state.get_phase(pin) == GamePhase.LOBBY:
            self.store.hdel(keys.players, user_id)
            self.store.hdel(keys.scores, user_id)
            self.store.hdel(keys.stories, user_id)
            self.store.srem(keys.submissions, user_id)
            self.store.hdel(keys.sockets, user_id)
            self._reassign_host(pin, user_id)
            logger.info(f"Player {user_id} left lobby of room {pin}")
            return DisconnectOutcome.REMOVED

        player['connected'] = False
        self.room_state.save_player(pin, player)
        self.store.hdel(keys.sockets, user_id)
        grace = self.game_settings.disconnect_grace_seconds
        self.store.set(keys.disconnect_marker(user_id), '1', ex=grace)
        logger.info(f"Player {user_id} disconnected from room {pin}, removal in {grace}s unless they return")
        return DisconnectOutcome.MARKED

    def handle_marker_expired(self, pin: str, user_id: str) -> bool:
        """
        Permanently remove a player whose grace period ran out.

        Scores and the initial-player snapshot are kept so final standings
        still include the player.

        Returns:
            True if the player was removed
        """
        player = self.room_state.get_player(pin, user_id)
        if player is None:
            return False
        if player['connected']:
            logger.debug(f"Marker for {user_id} in room {pin} expired after rejoin, ignoring")
            return False

        keys = RoomKeys(pin)
        self.store.hdel(keys.players, user_id)
        self.store.hdel(keys.stories, user_id)
        self.store.srem(keys.submissions, user_id)
        self.store.hdel(keys.sockets, user_id)
        new_host = self._reassign_host(pin, user_id)
        logger.info(f"Player {user_id} permanently removed from room {pin}"
                    + (f", host passed to {new_host}" if new_host else ""))
        return True

    def _ensure_host(self, pin: str, user_id: str) -> None:
        if self.room_state.get_returning_host(pin) == user_id:
            self.room_state.clear_returning_host(pin)
            if self.room_state.get_host(pin) != user_id:
                self.room_state.set_host(pin, user_id)
                logger.info(f"Player {user_id} rejoined room {pin} after reset and is host again")
            return

        if self.room_state.claim_host(pin, user_id):
            logger.info(f"Player {user_id} is host of room {pin}")
            return
        host = self.room_state.get_host(pin)
        if host != user_id and not self.room_state.has_player(pin, host):
            # Recorded host left the room (or the room was reset)
            self.room_state.set_host(pin, user_id)
            logger.info(f"Host {host} is no longer in room {pin}, {user_id} takes over")

    def _reassign_host(self, pin: str, departed_id: str) -> Optional[str]:
        """Promote a remaining player if the departed player was host."""
        if self.room_state.get_host(pin) != departed_id:
            return None

        players = self.room_state.get_players(pin)
        candidates = sorted(uid for uid, p in players.items() if p['connected']) or sorted(players)
        if not candidates:
            self.room_state.clear_host(pin)
            return None

        self.room_state.set_host(pin, candidates[0])
        return candidates[0]
