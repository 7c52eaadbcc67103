"""
Room Registry Service for TallTales

Creates rooms, answers existence probes and decides whether a player may
join a room.
"""

import logging
import secrets
import string
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from src.core.errors import ErrorCode, ValidationError
from src.core.game_phases import GamePhase
from src.store.keys import ROOMS_INDEX_KEY, RoomKeys

logger = logging.getLogger(__name__)

PIN_ALPHABET = string.ascii_uppercase + string.digits

_JOIN_MESSAGES = {
    ErrorCode.ROOM_NOT_FOUND: "Room not found",
    ErrorCode.GAME_IN_PROGRESS: "Game already in progress",
    ErrorCode.ROOM_FULL: "Room is full",
}


@dataclass(frozen=True)
class JoinDecision:
    """Outcome of a join validation."""
    ok: bool
    reason: Optional[ErrorCode] = None

    @property
    def message(self) -> Optional[str]:
        return _JOIN_MESSAGES.get(self.reason) if self.reason else None


class RoomRegistryService:
    """Manages room creation and join admission."""

    def __init__(self, store, room_state_service, game_settings,
                 pin_generator: Optional[Callable[[int], str]] = None):
        self.store = store
        self.room_state = room_state_service
        self.game_settings = game_settings
        self._pin_generator = pin_generator or self._random_pin

    @staticmethod
    def _random_pin(length: int) -> str:
        return ''.join(secrets.choice(PIN_ALPHABET) for _ in range(length))

    def create_room(self) -> str:
        """
        Create a new room in the lobby phase.

        Returns:
            The new room's PIN

        Raises:
            ValidationError: If no free PIN was found within the attempt limit
        """
        attempts = self.game_settings.max_pin_attempts
        for _ in range(attempts):
            pin = self._pin_generator(self.game_settings.pin_length)
            keys = RoomKeys(pin)
            # Claiming the phase key doubles as the existence probe
            if not self.store.set(keys.phase, GamePhase.LOBBY.value, nx=True):
                logger.debug(f"PIN collision on {pin}, retrying")
                continue

            self.store.delete(*[key for key in keys.room_keys() if key != keys.phase])
            self.store.sadd(ROOMS_INDEX_KEY, pin)
            self.room_state.touch(pin)
            logger.info(f"Room {pin} created")
            return pin

        logger.error(f"Could not allocate a room PIN after {attempts} attempts")
        raise ValidationError(
            ErrorCode.SERVICE_UNAVAILABLE,
            "Could not allocate a room, try again later",
            {"attempts": attempts}
        )

    def room_exists(self, pin: str) -> bool:
        return self.store.exists(RoomKeys(pin).phase)

    def list_rooms(self):
        return sorted(self.store.smembers(ROOMS_INDEX_KEY))

    def delete_room(self, pin: str) -> None:
        """Remove every key of a room and drop it from the index."""
        keys = RoomKeys(pin)
        transient = self.store.scan_keys(keys.disconnect_marker_pattern) + self.store.scan_keys(keys.round_lease_pattern)
        self.store.delete(*keys.room_keys(), *transient)
        self.store.srem(ROOMS_INDEX_KEY, pin)
        logger.info(f"Room {pin} deleted")

    def cleanup_inactive_rooms(self, now: float, max_inactive_minutes: int = 60) -> int:
        """
        Delete rooms that have been inactive for too long.

        A room is inactive when nothing has happened in it for
        ``max_inactive_minutes`` and no player is connected. Index entries
        whose room no longer exists are dropped as well.

        Args:
            now: Current time
            max_inactive_minutes: Maximum minutes of inactivity before cleanup

        Returns:
            Number of rooms cleaned up
        """
        cutoff = now - max_inactive_minutes * 60
        cleaned_count = 0
        for pin in self.list_rooms():
            if self.room_exists(pin):
                last_activity = self.room_state.get_last_activity(pin)
                if last_activity is not None and last_activity >= cutoff:
                    continue
                if self.room_state.get_connected_player_ids(pin):
                    continue
            self.delete_room(pin)
            cleaned_count += 1
        return cleaned_count

    def validate_join(self, pin: str, user_id: str) -> JoinDecision:
        """
        Decide whether ``user_id`` may join room ``pin``.

        Original players may always rejoin; newcomers are refused once the
        game has started or when the lobby is full.
        """
        if not self.room_exists(pin):
            return JoinDecision(False, ErrorCode.ROOM_NOT_FOUND)

        phase = self.room_state.get_phase(pin)
        if phase != GamePhase.LOBBY:
            if self.room_state.is_initial_player(pin, user_id):
                return JoinDecision(True)
            return JoinDecision(False, ErrorCode.GAME_IN_PROGRESS)

        if self.room_state.has_player(pin, user_id):
            return JoinDecision(True)

        players = self.room_state.get_players(pin)
        if len(players) >= self.game_settings.max_players_per_room:
            return JoinDecision(False, ErrorCode.ROOM_FULL)

        return JoinDecision(True)

    def require_join(self, pin: str, user_id: str) -> None:
        """
        Raises:
            ValidationError: If the join is refused
        """
        decision = self.validate_join(pin, user_id)
        if not decision.ok:
            raise ValidationError(decision.reason, decision.message, {"pin": pin})

    def get_room_summary(self, pin: str) -> Optional[Dict]:
        """Public summary of a room for the REST API."""
        if not self.room_exists(pin):
            return None
        players = self.room_state.get_players(pin)
        return {
            'pin': pin,
            'phase': self.room_state.get_phase(pin).value,
            'player_count': len(players),
            'connected_count': sum(1 for p in players.values() if p['connected']),
            'max_players': self.game_settings.max_players_per_room,
            'round': self.room_state.get_current_round(pin),
        }
