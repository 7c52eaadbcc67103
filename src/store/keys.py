"""
Room store key namespace.

Every piece of room state lives under ``game:<pin>:<field>``; a room is
nothing more than the aggregate of these keys.
"""

from typing import List, Optional, Tuple

KEY_PREFIX = 'game'
ROOMS_INDEX_KEY = f'{KEY_PREFIX}:rooms'

_MARKER_SEGMENT = 'disconnect'
_ROUND_SEGMENT = 'round'


class RoomKeys:
    """Key names for a single room."""

    def __init__(self, pin: str):
        self.pin = pin
        self._base = f'{KEY_PREFIX}:{pin}'

    def _key(self, name: str) -> str:
        return f'{self._base}:{name}'

    @property
    def host(self) -> str:
        return self._key('host')

    @property
    def phase(self) -> str:
        return self._key('phase')

    @property
    def players(self) -> str:
        return self._key('players')

    @property
    def scores(self) -> str:
        return self._key('scores')

    @property
    def stories(self) -> str:
        return self._key('stories')

    @property
    def submissions(self) -> str:
        return self._key('submissions')

    @property
    def votes(self) -> str:
        return self._key('votes')

    @property
    def story_list(self) -> str:
        return self._key('storyList')

    @property
    def current_round(self) -> str:
        return self._key('currentRound')

    @property
    def current_author(self) -> str:
        return self._key('currentAuthor')

    @property
    def initial_players(self) -> str:
        return self._key('initialPlayers')

    @property
    def in_progress(self) -> str:
        return self._key('inProgress')

    @property
    def sockets(self) -> str:
        return self._key('sockets')

    @property
    def phase_deadline(self) -> str:
        return self._key('phaseDeadline')

    @property
    def last_activity(self) -> str:
        return self._key('lastActivity')

    @property
    def returning_host(self) -> str:
        return self._key('returningHost')

    def disconnect_marker(self, user_id: str) -> str:
        return self._key(f'{_MARKER_SEGMENT}:{user_id}')

    def round_lease(self, round_index: int, operation: str) -> str:
        return self._key(f'{_ROUND_SEGMENT}:{round_index}:{operation}')

    @property
    def disconnect_marker_pattern(self) -> str:
        return self._key(f'{_MARKER_SEGMENT}:*')

    @property
    def round_lease_pattern(self) -> str:
        return self._key(f'{_ROUND_SEGMENT}:*')

    def game_state_keys(self) -> List[str]:
        """Keys holding per-game state, cleared when the room is reset."""
        return [
            self.players,
            self.scores,
            self.stories,
            self.submissions,
            self.votes,
            self.story_list,
            self.current_round,
            self.current_author,
            self.initial_players,
            self.in_progress,
            self.sockets,
            self.phase_deadline,
        ]

    def room_keys(self) -> List[str]:
        """Every fixed key of the room, deleted when the room is cleaned up."""
        return [self.phase, self.host, self.returning_host, self.last_activity, *self.game_state_keys()]


def parse_disconnect_marker(key: str) -> Optional[Tuple[str, str]]:
    """
    Extract ``(pin, user_id)`` from a disconnect marker key.

    Returns:
        The pair, or None if the key is not a disconnect marker
    """
    if not isinstance(key, str):
        return None
    parts = key.split(':', 3)
    if len(parts) != 4 or parts[0] != KEY_PREFIX or parts[2] != _MARKER_SEGMENT:
        return None
    pin, user_id = parts[1], parts[3]
    if not pin or not user_id:
        return None
    return pin, user_id
