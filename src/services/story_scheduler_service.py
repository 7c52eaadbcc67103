"""
Story Scheduler Service for TallTales

Collects the stories players submit in the lobby and, when the game
starts, draws the fixed sequence of stories that drives the rounds.
"""

import json
import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from src.core.errors import ErrorCode, ValidationError
from src.core.game_phases import GamePhase
from src.store.keys import RoomKeys

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    player: Dict
    all_submitted: bool


class StorySchedulerService:
    """Manages story submissions and the per-game story list."""

    def __init__(self, store, room_state_service, game_settings, rng: Optional[random.Random] = None):
        self.store = store
        self.room_state = room_state_service
        self.game_settings = game_settings
        self._rng = rng or random.SystemRandom()

    def submit_stories(self, pin: str, user_id: str, stories: List[str]) -> SubmissionResult:
        """
        Store a player's stories and mark them ready.

        A later submission replaces the earlier one.

        Raises:
            ValidationError: Outside the lobby, or if the player is not in the room
        """
        if self.room_state.get_phase(pin) != GamePhase.LOBBY:
            raise ValidationError(ErrorCode.WRONG_PHASE, "Stories can only be submitted in the lobby")

        player = self.room_state.get_player(pin, user_id)
        if player is None:
            raise ValidationError(ErrorCode.NOT_IN_ROOM, "You are not in this room")

        keys = RoomKeys(pin)
        self.store.hset(keys.stories, user_id, json.dumps(list(stories)))
        self.store.sadd(keys.submissions, user_id)
        player['ready'] = True
        self.room_state.save_player(pin, player)

        players = self.room_state.get_players(pin)
        submitted = self.store.smembers(keys.submissions)
        all_submitted = bool(players) and set(players).issubset(submitted)
        logger.info(f"Player {user_id} submitted {len(stories)} stories in room {pin}"
                    f" ({len(submitted)}/{len(players)} submitted)")
        return SubmissionResult(player=player, all_submitted=all_submitted)

    def collect_stories(self, pin: str) -> List[Dict]:
        """Flatten every submission in the room into [{'author_id', 'text'}, ...]."""
        items = []
        for author_id, raw in sorted(self.store.hgetall(RoomKeys(pin).stories).items()):
            try:
                texts = json.loads(raw)
            except ValueError:
                logger.error(f"Corrupt submission from {author_id} in room {pin}, skipping")
                continue
            items.extend({'author_id': author_id, 'text': text} for text in texts)
        return items

    def count_stories(self, pin: str) -> int:
        return len(self.collect_stories(pin))

    def build_story_list(self, pin: str) -> List[Optional[Dict]]:
        """
        Draw the story list for a new game and store it.

        Takes a uniform sample without replacement of up to
        ``story_list_size`` stories. Index 0 holds an unused placeholder so
        round numbers start at 1.

        Returns:
            The stored list
        """
        items = self.collect_stories(pin)
        count = min(self.game_settings.story_list_size, len(items))
        story_list = [None] + self._rng.sample(items, count)
        self.room_state.save_story_list(pin, story_list)
        logger.info(f"Built story list of {count} stories for room {pin} from {len(items)} submitted")
        return story_list

    def get_round_story(self, pin: str, round_index: int) -> Optional[Dict]:
        return self.room_state.get_story(pin, round_index)
