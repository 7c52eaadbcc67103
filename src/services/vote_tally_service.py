"""
Vote Tally Service for TallTales

Records votes and scores each round exactly once. A round is complete when
every connected player other than the author has voted; the first caller to
observe completion takes the round's scoring lease and applies the scores.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from src.core.errors import ErrorCode, ValidationError
from src.core.game_phases import GamePhase
from src.store.keys import RoomKeys

logger = logging.getLogger(__name__)

SCORING_LEASE = 'scored'


@dataclass(frozen=True)
class TallyResult:
    round: int
    author_id: str
    votes: Dict[str, str]
    scores: Dict[str, int]
    round_scores: Dict[str, int]


@dataclass(frozen=True)
class VoteOutcome:
    votes: Dict[str, str]
    tally: Optional[TallyResult] = None


class VoteTallyService:
    """Manages voting and round scoring."""

    def __init__(self, store, room_state_service, concurrency_control_service, scoring_service,
                 game_settings, clock: Callable[[], float] = time.time):
        self.store = store
        self.room_state = room_state_service
        self.concurrency = concurrency_control_service
        self.scoring = scoring_service
        self.game_settings = game_settings
        self._clock = clock

    def cast_vote(self, pin: str, voter_id: str, choice_id: str) -> VoteOutcome:
        """
        Record a vote for the current round, replacing any earlier vote.

        Args:
            pin: Room PIN
            voter_id: Voting player
            choice_id: Player the voter believes wrote the story

        Returns:
            VoteOutcome with the current votes and, if this vote completed the
            round, the tally

        Raises:
            ValidationError: If the vote is not allowed
        """
        if self.room_state.get_phase(pin) != GamePhase.VOTE:
            raise ValidationError(ErrorCode.WRONG_PHASE, "Votes are only accepted during the vote phase")

        voter = self.room_state.get_player(pin, voter_id)
        if voter is None or not voter['connected']:
            raise ValidationError(ErrorCode.NOT_IN_ROOM, "You are not in this room")

        if voter_id == self.room_state.get_current_author(pin):
            raise ValidationError(ErrorCode.CANNOT_VOTE_OWN_STORY, "You cannot vote on your own story")

        if not self.room_state.is_initial_player(pin, choice_id):
            raise ValidationError(
                ErrorCode.INVALID_CHOICE,
                "Choice must be one of the players in this game",
                {"choice_id": choice_id}
            )

        self.store.hset(RoomKeys(pin).votes, voter_id, choice_id)
        votes = self.room_state.get_votes(pin)
        logger.info(f"Player {voter_id} voted in room {pin} ({len(votes)} votes)")

        return VoteOutcome(votes=votes, tally=self.evaluate_completion(pin))

    def get_eligible_voters(self, pin: str, author_id: Optional[str] = None):
        """Connected players other than the round's author."""
        author_id = author_id or self.room_state.get_current_author(pin)
        return {uid for uid in self.room_state.get_connected_player_ids(pin) if uid != author_id}

    def evaluate_completion(self, pin: str) -> Optional[TallyResult]:
        """
        Score the round if every eligible voter has voted.

        Safe to call from any number of concurrent triggers: only the holder
        of the round's scoring lease applies scores.

        Returns:
            TallyResult for the caller that scored the round, otherwise None
        """
        if self.room_state.get_phase(pin) != GamePhase.VOTE:
            return None

        round_index = self.room_state.get_current_round(pin)
        author_id = self.room_state.get_current_author(pin)
        if not author_id:
            logger.error(f"Room {pin} is voting without a current author")
            return None

        eligible = self.get_eligible_voters(pin, author_id)
        votes = self.room_state.get_votes(pin)
        if not eligible and not votes:
            return None
        if not eligible.issubset(votes):
            return None

        if not self.concurrency.acquire_round_lease(pin, round_index, SCORING_LEASE):
            return None

        round_scores = self.scoring.calculate_round_scores(votes, author_id)
        keys = RoomKeys(pin)
        for player_id, points in round_scores.items():
            if points:
                self.store.hincrby(keys.scores, player_id, points)
            else:
                self.store.hsetnx(keys.scores, player_id, 0)

        self.room_state.set_phase(pin, GamePhase.REVEAL)
        reveal_seconds = self.game_settings.reveal_display_seconds
        self.room_state.set_phase_deadline(pin, self._clock() + reveal_seconds if reveal_seconds else None)

        scores = self.room_state.get_scores(pin)
        logger.info(f"Scored round {round_index} of room {pin}: {round_scores}")
        return TallyResult(
            round=round_index,
            author_id=author_id,
            votes=votes,
            scores=scores,
            round_scores=round_scores
        )
