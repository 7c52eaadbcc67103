"""
Room State Presenter - Centralized room state transformation for broadcasts.

This service provides canonical transformations for room state data that needs
to be sent to clients, ensuring consistent payload shapes.
"""

import logging
from typing import Any, Dict, List

from src.core.game_phases import GamePhase

logger = logging.getLogger(__name__)


class RoomStatePresenter:
    """Centralized service for transforming room state data for client broadcasts."""

    def __init__(self, room_state_service, scoring_service):
        """Initialize the room state presenter.

        Args:
            room_state_service: Store-backed room state access
            scoring_service: Scoring rules, used for standings
        """
        self.room_state = room_state_service
        self.scoring = scoring_service

    def create_roster(self, pin: str) -> List[Dict[str, Any]]:
        """Create the player list for client consumption.

        Args:
            pin: Room PIN

        Returns:
            List of {'id', 'username', 'is_host', 'ready', 'connected'}
        """
        host_id = self.room_state.get_host(pin)
        players = self.room_state.get_players(pin)
        return [
            {
                'id': player['id'],
                'username': player['username'],
                'is_host': player['id'] == host_id,
                'ready': player['ready'],
                'connected': player['connected'],
            }
            for player in sorted(players.values(), key=lambda p: (p['username'].lower(), p['id']))
        ]

    def create_roster_update(self, pin: str) -> Dict[str, Any]:
        return {'pin': pin, 'players': self.create_roster(pin)}

    def create_leaderboard(self, pin: str, scores: Dict[str, int] = None) -> List[Dict[str, Any]]:
        """Standings including players that have since left the room."""
        if scores is None:
            scores = self.room_state.get_scores(pin)
        # Names from the start snapshot, overridden by current names of players still here
        usernames = self.room_state.get_initial_player_names(pin)
        usernames.update({uid: p['username'] for uid, p in self.room_state.get_players(pin).items()})
        return self.scoring.get_leaderboard(scores, usernames)

    def create_round_payload(self, round_info) -> Dict[str, Any]:
        return {
            'round': round_info.round,
            'author_id': round_info.author_id,
            'text': round_info.text,
        }

    def create_game_started(self, pin: str, result) -> Dict[str, Any]:
        payload = self.create_round_payload(result.round_info)
        payload['initial_players'] = list(result.initial_players)
        payload['phase_deadline'] = self.room_state.get_phase_deadline(pin)
        return payload

    def create_round_advanced(self, pin: str, round_info) -> Dict[str, Any]:
        payload = self.create_round_payload(round_info)
        payload['phase_deadline'] = self.room_state.get_phase_deadline(pin)
        return payload

    def create_vote_result(self, tally) -> Dict[str, Any]:
        return {
            'round': tally.round,
            'author_id': tally.author_id,
            'votes': dict(tally.votes),
            'scores': dict(tally.scores),
            'round_scores': dict(tally.round_scores),
        }

    def create_game_ended(self, pin: str, scores: Dict[str, int]) -> Dict[str, Any]:
        return {
            'scores': dict(scores),
            'leaderboard': self.create_leaderboard(pin, scores),
        }

    def create_sync_state(self, pin: str) -> Dict[str, Any]:
        """Create the complete room state for a joining or reconnecting player.

        Args:
            pin: Room PIN

        Returns:
            Everything a client needs to rebuild its view without replaying history
        """
        phase = self.room_state.get_phase(pin)
        round_index = self.room_state.get_current_round(pin)

        story = None
        if phase != GamePhase.LOBBY and round_index:
            current = self.room_state.get_story(pin, round_index)
            story = current['text'] if current else None

        story_list = self.room_state.get_story_list(pin)
        return {
            'pin': pin,
            'phase': phase.value,
            'host_id': self.room_state.get_host(pin),
            'players': self.create_roster(pin),
            'initial_players': sorted(self.room_state.get_initial_players(pin)),
            'round': round_index,
            'total_rounds': len(story_list) - 1 if story_list else 0,
            'author_id': self.room_state.get_current_author(pin),
            'story': story,
            'votes': self.room_state.get_votes(pin),
            'scores': self.room_state.get_scores(pin),
            'phase_deadline': self.room_state.get_phase_deadline(pin),
        }
