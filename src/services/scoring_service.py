"""
Scoring Service for TallTales

Pure scoring rules for a round of votes.
"""

import logging
from typing import Dict, List

logger = logging.getLogger(__name__)

CORRECT_GUESS_POINTS = 2
POINTS_PER_WRONG_GUESS = 1


class ScoringService:
    """Calculates round scores and standings."""

    def calculate_round_scores(self, votes: Dict[str, str], author_id: str) -> Dict[str, int]:
        """
        Calculate the points earned in a round.

        Every voter who picked the true author earns 2 points. The author
        earns 1 point for every voter who picked someone else.

        Args:
            votes: Mapping of voter id to the author id they chose
            author_id: The true author of the round's story

        Returns:
            Dict mapping player id to points earned this round
        """
        round_scores: Dict[str, int] = {}
        wrong_count = 0

        for voter_id, choice_id in votes.items():
            if voter_id == author_id:
                continue
            if choice_id == author_id:
                round_scores[voter_id] = round_scores.get(voter_id, 0) + CORRECT_GUESS_POINTS
            else:
                wrong_count += 1

        round_scores[author_id] = round_scores.get(author_id, 0) + wrong_count * POINTS_PER_WRONG_GUESS
        return round_scores

    def get_leaderboard(self, scores: Dict[str, int], usernames: Dict[str, str]) -> List[Dict]:
        """
        Build the standings for a set of scores.

        Args:
            scores: Mapping of player id to total score
            usernames: Mapping of player id to display name, where known

        Returns:
            List of {'id', 'username', 'score', 'rank'} sorted by score (highest first)
        """
        leaderboard = sorted(
            ({'id': uid, 'username': usernames.get(uid, ''), 'score': score} for uid, score in scores.items()),
            key=lambda p: (-p['score'], p['username'], p['id'])
        )

        rank = 0
        previous_score = None
        for position, entry in enumerate(leaderboard, start=1):
            if entry['score'] != previous_score:
                rank = position
                previous_score = entry['score']
            entry['rank'] = rank

        return leaderboard
