"""
Game Phase Enumeration

Defines the room phases and the transitions allowed between them.
"""

from enum import Enum


class GamePhase(Enum):
    """Game phase enumeration."""
    LOBBY = "LOBBY"
    ROUND = "ROUND"
    VOTE = "VOTE"
    REVEAL = "REVEAL"
    FINAL = "FINAL"


# Forward-only, except the explicit reset back to the lobby.
VALID_TRANSITIONS = {
    GamePhase.LOBBY: {GamePhase.ROUND},
    GamePhase.ROUND: {GamePhase.VOTE},
    GamePhase.VOTE: {GamePhase.REVEAL},
    GamePhase.REVEAL: {GamePhase.ROUND, GamePhase.FINAL},
    GamePhase.FINAL: {GamePhase.LOBBY},
}


def can_transition(current: GamePhase, target: GamePhase) -> bool:
    """Check whether a room may move from ``current`` to ``target``."""
    return target in VALID_TRANSITIONS.get(current, set())


def parse_phase(value) -> GamePhase:
    """Parse a stored phase value, treating a missing value as the lobby."""
    if not value:
        return GamePhase.LOBBY
    if isinstance(value, GamePhase):
        return value
    return GamePhase(value)
