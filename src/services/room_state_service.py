"""
Room State Service for TallTales

Typed reads and writes of a room's keys in the shared store. Every other
service goes through here instead of formatting keys or JSON itself.
"""

import json
import logging
import time
from typing import Callable, Dict, List, Optional, Set

from src.core.game_phases import GamePhase, parse_phase
from src.store.keys import RoomKeys

logger = logging.getLogger(__name__)


class RoomStateService:
    """Reads and writes per-room state in the shared store."""

    def __init__(self, store, clock: Callable[[], float] = time.time):
        self.store = store
        self._clock = clock

    # Phase and round pointer

    def get_phase(self, pin: str) -> GamePhase:
        return parse_phase(self.store.get(RoomKeys(pin).phase))

    def set_phase(self, pin: str, phase: GamePhase) -> None:
        self.store.set(RoomKeys(pin).phase, phase.value)
        self.touch(pin)
        logger.info(f"Room {pin} entered phase {phase.value}")

    def get_current_round(self, pin: str) -> int:
        raw = self.store.get(RoomKeys(pin).current_round)
        try:
            return int(raw) if raw is not None else 0
        except ValueError:
            logger.error(f"Corrupt round pointer for room {pin}: {raw}")
            return 0

    def get_current_author(self, pin: str) -> Optional[str]:
        return self.store.get(RoomKeys(pin).current_author)

    def set_round(self, pin: str, round_index: int, author_id: str) -> None:
        keys = RoomKeys(pin)
        self.store.set(keys.current_round, round_index)
        self.store.set(keys.current_author, author_id)

    def get_phase_deadline(self, pin: str) -> Optional[float]:
        raw = self.store.get(RoomKeys(pin).phase_deadline)
        return float(raw) if raw else None

    def set_phase_deadline(self, pin: str, deadline: Optional[float]) -> None:
        key = RoomKeys(pin).phase_deadline
        if deadline is None:
            self.store.delete(key)
        else:
            self.store.set(key, repr(deadline))

    # Activity

    def touch(self, pin: str) -> None:
        """Record activity in the room now."""
        self.store.set(RoomKeys(pin).last_activity, repr(self._clock()))

    def get_last_activity(self, pin: str) -> Optional[float]:
        raw = self.store.get(RoomKeys(pin).last_activity)
        try:
            return float(raw) if raw else None
        except ValueError:
            logger.error(f"Corrupt last activity for room {pin}: {raw}")
            return None

    # Host

    def get_host(self, pin: str) -> Optional[str]:
        return self.store.get(RoomKeys(pin).host) or None

    def claim_host(self, pin: str, user_id: str) -> bool:
        """Assign the host only if no host is recorded."""
        return self.store.set(RoomKeys(pin).host, user_id, nx=True)

    def set_host(self, pin: str, user_id: str) -> None:
        self.store.set(RoomKeys(pin).host, user_id)

    def clear_host(self, pin: str) -> None:
        self.store.delete(RoomKeys(pin).host)

    def get_returning_host(self, pin: str) -> Optional[str]:
        """Host of the previous game, entitled to the role when they rejoin after a reset."""
        return self.store.get(RoomKeys(pin).returning_host) or None

    def set_returning_host(self, pin: str, user_id: str) -> None:
        self.store.set(RoomKeys(pin).returning_host, user_id)

    def clear_returning_host(self, pin: str) -> None:
        self.store.delete(RoomKeys(pin).returning_host)

    # Players

    def get_players(self, pin: str) -> Dict[str, Dict]:
        """
        Get all player records of a room.

        Returns:
            Dict mapping user id to {'id', 'username', 'ready', 'connected'}
        """
        players = {}
        for user_id, raw in self.store.hgetall(RoomKeys(pin).players).items():
            record = self._decode_player(pin, user_id, raw)
            if record is not None:
                players[user_id] = record
        return players

    def get_player(self, pin: str, user_id: str) -> Optional[Dict]:
        raw = self.store.hget(RoomKeys(pin).players, user_id)
        if raw is None:
            return None
        return self._decode_player(pin, user_id, raw)

    def save_player(self, pin: str, player: Dict) -> None:
        payload = {
            'username': player['username'],
            'ready': bool(player.get('ready', False)),
            'connected': bool(player.get('connected', True)),
        }
        self.store.hset(RoomKeys(pin).players, player['id'], json.dumps(payload))
        self.touch(pin)

    def has_player(self, pin: str, user_id: str) -> bool:
        return self.store.hexists(RoomKeys(pin).players, user_id)

    def get_connected_player_ids(self, pin: str) -> List[str]:
        return [user_id for user_id, p in self.get_players(pin).items() if p['connected']]

    def _decode_player(self, pin: str, user_id: str, raw: str) -> Optional[Dict]:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.error(f"Corrupt player record for {user_id} in room {pin}")
            return None
        return {
            'id': user_id,
            'username': data.get('username', ''),
            'ready': bool(data.get('ready', False)),
            'connected': bool(data.get('connected', True)),
        }

    # Connection map

    def set_socket(self, pin: str, user_id: str, sid: str) -> None:
        self.store.hset(RoomKeys(pin).sockets, user_id, sid)

    def get_socket(self, pin: str, user_id: str) -> Optional[str]:
        return self.store.hget(RoomKeys(pin).sockets, user_id)

    # Scores, votes, snapshot

    def get_scores(self, pin: str) -> Dict[str, int]:
        scores = {}
        for user_id, raw in self.store.hgetall(RoomKeys(pin).scores).items():
            try:
                scores[user_id] = int(raw)
            except ValueError:
                logger.error(f"Corrupt score for {user_id} in room {pin}: {raw}")
        return scores

    def get_votes(self, pin: str) -> Dict[str, str]:
        return self.store.hgetall(RoomKeys(pin).votes)

    def get_initial_players(self, pin: str) -> Set[str]:
        return set(self.get_initial_player_names(pin))

    def get_initial_player_names(self, pin: str) -> Dict[str, str]:
        """Usernames of the players snapshotted at game start, by user id."""
        return self.store.hgetall(RoomKeys(pin).initial_players)

    def save_initial_players(self, pin: str, players: Dict[str, Dict]) -> None:
        key = RoomKeys(pin).initial_players
        self.store.delete(key)
        for user_id, player in players.items():
            self.store.hset(key, user_id, player['username'])

    def is_initial_player(self, pin: str, user_id: str) -> bool:
        return self.store.hexists(RoomKeys(pin).initial_players, user_id)

    # Story list

    def get_story_list(self, pin: str) -> Optional[List[Optional[Dict]]]:
        raw = self.store.get(RoomKeys(pin).story_list)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.error(f"Corrupt story list for room {pin}")
            return None

    def save_story_list(self, pin: str, story_list: List[Optional[Dict]]) -> None:
        self.store.set(RoomKeys(pin).story_list, json.dumps(story_list))

    def get_story(self, pin: str, round_index: int) -> Optional[Dict]:
        """Get the story for a 1-based round, or None if out of range."""
        story_list = self.get_story_list(pin)
        if not story_list or round_index < 1 or round_index >= len(story_list):
            return None
        return story_list[round_index]
