"""
Game Flow Service for TallTales

Owns a room's phase: LOBBY -> ROUND -> VOTE -> REVEAL -> (ROUND ... | FINAL),
and FINAL -> LOBBY on reset. Transitions that can be triggered more than once
for the same round (by the host and by the server timer) are guarded by a
round lease so only the first trigger has an effect.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from src.core.errors import ErrorCode, ValidationError
from src.core.game_phases import GamePhase, can_transition
from src.store.keys import RoomKeys

logger = logging.getLogger(__name__)

START_LEASE = 'start'
VOTE_LEASE = 'vote'
ADVANCE_LEASE = 'advance'


@dataclass(frozen=True)
class RoundInfo:
    round: int
    author_id: str
    text: str


@dataclass(frozen=True)
class GameStartResult:
    round_info: RoundInfo
    initial_players: List[str]


@dataclass(frozen=True)
class AdvanceResult:
    ended: bool
    round_info: Optional[RoundInfo] = None
    scores: Dict[str, int] = field(default_factory=dict)


class GameFlowService:
    """Manages phase transitions of a room's game."""

    def __init__(self, store, room_state_service, concurrency_control_service,
                 story_scheduler_service, game_settings, clock: Callable[[], float] = time.time):
        self.store = store
        self.room_state = room_state_service
        self.concurrency = concurrency_control_service
        self.story_scheduler = story_scheduler_service
        self.game_settings = game_settings
        self._clock = clock

    def is_host(self, pin: str, user_id: Optional[str]) -> bool:
        return user_id is not None and self.room_state.get_host(pin) == user_id

    def _round_deadline(self) -> float:
        return self._clock() + self.game_settings.round_display_seconds

    def _enter_round(self, pin: str, round_index: int, story: Dict) -> RoundInfo:
        self.store.delete(RoomKeys(pin).votes)
        self.room_state.set_round(pin, round_index, story['author_id'])
        self.room_state.set_phase(pin, GamePhase.ROUND)
        self.room_state.set_phase_deadline(pin, self._round_deadline())
        return RoundInfo(round=round_index, author_id=story['author_id'], text=story['text'])

    def start_game(self, pin: str, user_id: str) -> Optional[GameStartResult]:
        """
        Start the game: snapshot the players, draw the stories and open round 1.

        Args:
            pin: Room PIN
            user_id: Player requesting the start; only the host may start

        Returns:
            GameStartResult, or None if the request was ignored (not the host,
            or the game was already started)

        Raises:
            ValidationError: Too few players present, or no stories submitted
        """
        if not self.is_host(pin, user_id):
            logger.info(f"Ignoring start_game from non-host {user_id} in room {pin}")
            return None

        if self.room_state.get_phase(pin) != GamePhase.LOBBY:
            logger.info(f"Room {pin} already started, ignoring start_game")
            return None

        present = self.room_state.get_connected_player_ids(pin)
        required = self.game_settings.min_players_required
        if len(present) < required:
            raise ValidationError(
                ErrorCode.INSUFFICIENT_PLAYERS,
                f"At least {required} players are needed to start",
                {"required": required, "current": len(present)}
            )

        if self.story_scheduler.count_stories(pin) == 0:
            raise ValidationError(ErrorCode.NO_STORIES_SUBMITTED, "No stories have been submitted yet")

        if not self.concurrency.acquire_round_lease(pin, 0, START_LEASE):
            return None

        keys = RoomKeys(pin)
        players = self.room_state.get_players(pin)
        initial_players = sorted(players)
        self.room_state.save_initial_players(pin, players)
        # A returning host who missed the lobby has lost the claim
        self.room_state.clear_returning_host(pin)
        for player_id in initial_players:
            self.store.hsetnx(keys.scores, player_id, 0)

        story_list = self.story_scheduler.build_story_list(pin)
        self.store.set(keys.in_progress, '1')
        round_info = self._enter_round(pin, 1, story_list[1])

        logger.info(f"Game started in room {pin} with {len(initial_players)} players "
                    f"and {len(story_list) - 1} rounds")
        return GameStartResult(round_info=round_info, initial_players=initial_players)

    def begin_voting(self, pin: str, expected_round: int) -> bool:
        """
        Move a round from display to voting.

        Returns:
            True if this call performed the transition
        """
        if self.room_state.get_phase(pin) != GamePhase.ROUND:
            return False
        if self.room_state.get_current_round(pin) != expected_round:
            return False
        if not self.concurrency.acquire_round_lease(pin, expected_round, VOTE_LEASE):
            return False

        self.room_state.set_phase(pin, GamePhase.VOTE)
        self.room_state.set_phase_deadline(pin, None)
        return True

    def advance_round(self, pin: str, expected_round: int, user_id: Optional[str] = None) -> Optional[AdvanceResult]:
        """
        Leave the reveal of ``expected_round`` for the next round or the final standings.

        Only the first trigger for a given round has an effect; later or
        concurrent duplicates return None.

        Args:
            pin: Room PIN
            expected_round: The round the caller believes is being revealed
            user_id: Requesting player, or None for the server timer

        Returns:
            AdvanceResult, or None if the request was ignored

        Raises:
            ValidationError: If ``expected_round`` is outside the story list
        """
        if user_id is not None and not self.is_host(pin, user_id):
            logger.info(f"Ignoring advance_round from non-host {user_id} in room {pin}")
            return None

        story_list = self.room_state.get_story_list(pin)
        if not story_list:
            raise ValidationError(ErrorCode.INVALID_ROUND, "No game in progress", {"round": expected_round})
        if expected_round < 1 or expected_round >= len(story_list):
            raise ValidationError(
                ErrorCode.INVALID_ROUND,
                f"Invalid round: {expected_round}",
                {"round": expected_round, "rounds": len(story_list) - 1}
            )

        phase = self.room_state.get_phase(pin)
        if phase != GamePhase.REVEAL or self.room_state.get_current_round(pin) != expected_round:
            logger.info(f"Round {expected_round} of room {pin} already advanced or not revealed yet")
            return None

        if not self.concurrency.acquire_round_lease(pin, expected_round, ADVANCE_LEASE):
            return None

        next_round = expected_round + 1
        if next_round >= len(story_list):
            self.room_state.set_phase(pin, GamePhase.FINAL)
            self.room_state.set_phase_deadline(pin, None)
            logger.info(f"Game in room {pin} finished after {expected_round} rounds")
            return AdvanceResult(ended=True, scores=self.room_state.get_scores(pin))

        round_info = self._enter_round(pin, next_round, story_list[next_round])
        return AdvanceResult(ended=False, round_info=round_info)

    def get_round_info(self, pin: str, round_index: int) -> RoundInfo:
        """
        Look up the story of the current or an earlier round.

        Raises:
            ValidationError: If the round does not exist or has not been played yet
        """
        story = self.room_state.get_story(pin, round_index)
        if story is None or round_index > self.room_state.get_current_round(pin):
            raise ValidationError(ErrorCode.INVALID_ROUND, f"Invalid round: {round_index}", {"round": round_index})
        return RoundInfo(round=round_index, author_id=story['author_id'], text=story['text'])

    def reset_game(self, pin: str, user_id: str) -> bool:
        """
        Clear all per-game state and return the room to the lobby.

        The PIN and the recorded host survive the reset; the host gets the
        role back on rejoining even if another player rejoined first.

        Returns:
            True if the room was reset, False if the request was ignored
            (not the host, or the room is already in the lobby)

        Raises:
            ValidationError: If the game is still running
        """
        if not self.is_host(pin, user_id):
            logger.info(f"Ignoring reset_game from non-host {user_id} in room {pin}")
            return False

        phase = self.room_state.get_phase(pin)
        if phase == GamePhase.LOBBY:
            logger.info(f"Room {pin} is already in the lobby, ignoring reset_game")
            return False
        if not can_transition(phase, GamePhase.LOBBY):
            raise ValidationError(ErrorCode.WRONG_PHASE, "The game can only be reset once it has ended",
                                  {"phase": phase.value})

        keys = RoomKeys(pin)
        markers = self.store.scan_keys(keys.disconnect_marker_pattern)
        self.store.delete(*keys.game_state_keys(), *markers)
        self.concurrency.release_round_leases(pin)
        self.room_state.set_returning_host(pin, user_id)
        self.room_state.set_phase(pin, GamePhase.LOBBY)
        logger.info(f"Room {pin} reset by host {user_id}")
        return True
