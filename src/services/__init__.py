"""
Services package for TallTales

Contains one service per concern of a game room, all sharing the room store.
"""

from .room_state_service import RoomStateService
from .concurrency_control_service import ConcurrencyControlService
from .identity_service import IdentityService
from .room_registry_service import RoomRegistryService
from .presence_service import PresenceService
from .story_scheduler_service import StorySchedulerService
from .scoring_service import ScoringService
from .vote_tally_service import VoteTallyService
from .game_flow_service import GameFlowService

__all__ = [
    'RoomStateService',
    'ConcurrencyControlService',
    'IdentityService',
    'RoomRegistryService',
    'PresenceService',
    'StorySchedulerService',
    'ScoringService',
    'VoteTallyService',
    'GameFlowService'
]
