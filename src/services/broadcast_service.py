"""
Broadcast Service - Centralized Socket.IO message broadcasting.

This service handles all Socket.IO emissions in a centralized way:
- Room-wide broadcasts
- Individual player messages
- Phase transition notifications
- Eviction of every connection from a room
"""

import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


class BroadcastService:
    """Centralized service for all Socket.IO broadcasting operations."""

    def __init__(self, socketio, room_state_presenter):
        """Initialize the broadcast service.

        Args:
            socketio: Flask-SocketIO instance for emitting messages
            room_state_presenter: Payload builder for room state
        """
        self.socketio = socketio
        self.presenter = room_state_presenter

    # Core emission methods

    def emit_to_room(self, event: str, data: Dict[str, Any], pin: str):
        """Emit an event to all players in a room."""
        try:
            self.socketio.emit(event, data, room=pin)
            logger.debug(f'Emitted {event} to room {pin}')
        except Exception as e:
            logger.error(f'Error emitting {event} to room {pin}: {e}')

    def emit_to_player(self, event: str, data: Dict[str, Any], sid: str):
        """Emit an event to a specific connection."""
        try:
            self.socketio.emit(event, data, room=sid)
            logger.debug(f'Emitted {event} to connection {sid}')
        except Exception as e:
            logger.error(f'Error emitting {event} to connection {sid}: {e}')

    def emit_error_to_player(self, error_response: Dict[str, Any], sid: str):
        """Emit an error message to a specific connection."""
        try:
            self.socketio.emit('error', error_response, room=sid)
            logger.debug(f'Emitted error to connection {sid}: {error_response.get("error", {}).get("code", "unknown")}')
        except Exception as e:
            logger.error(f'Error emitting error to connection {sid}: {e}')

    # High-level broadcast methods

    def broadcast_roster(self, pin: str):
        """Broadcast the current player list to the room."""
        try:
            self.emit_to_room('roster_updated', self.presenter.create_roster_update(pin), pin)
        except Exception as e:
            logger.error(f'Error broadcasting roster for room {pin}: {e}')

    def send_sync_state(self, pin: str, sid: str):
        """Send the full room state to one connection."""
        try:
            self.emit_to_player('sync_state', self.presenter.create_sync_state(pin), sid)
        except Exception as e:
            logger.error(f'Error sending state of room {pin} to {sid}: {e}')

    def broadcast_submissions_complete(self, pin: str):
        self.emit_to_room('submissions_complete', {'pin': pin}, pin)

    def broadcast_game_started(self, pin: str, result):
        try:
            self.emit_to_room('game_started', self.presenter.create_game_started(pin, result), pin)
        except Exception as e:
            logger.error(f'Error broadcasting game start for room {pin}: {e}')

    def broadcast_start_failed(self, pin: str, error):
        """Let the whole room know why the game did not start."""
        self.emit_to_room('start_failed', {
            'code': error.code.value,
            'message': error.message,
            'details': dict(error.details),
        }, pin)

    def broadcast_voting_started(self, pin: str, round_index: int):
        self.emit_to_room('voting_started', {'round': round_index}, pin)

    def broadcast_votes_updated(self, pin: str, votes: Dict[str, str]):
        self.emit_to_room('votes_updated', {'votes': dict(votes)}, pin)

    def broadcast_vote_result(self, pin: str, tally):
        try:
            self.emit_to_room('vote_result', self.presenter.create_vote_result(tally), pin)
        except Exception as e:
            logger.error(f'Error broadcasting vote result for room {pin}: {e}')

    def broadcast_round_advanced(self, pin: str, result):
        """Broadcast the outcome of an advance: the next round or the end of the game."""
        try:
            if result.ended:
                self.emit_to_room('game_ended', self.presenter.create_game_ended(pin, result.scores), pin)
            else:
                self.emit_to_room('round_advanced', self.presenter.create_round_advanced(pin, result.round_info), pin)
        except Exception as e:
            logger.error(f'Error broadcasting round advance for room {pin}: {e}')

    def send_round_info(self, round_info, sid: str):
        self.emit_to_player('round_prepared', self.presenter.create_round_payload(round_info), sid)

    def evict_room(self, pin: str):
        """Notify the room of a reset and remove every connection from it."""
        self.emit_to_room('room_reset', {'pin': pin}, pin)
        try:
            self.socketio.close_room(pin)
            logger.info(f'Evicted all connections from room {pin}')
        except Exception as e:
            logger.error(f'Error evicting connections from room {pin}: {e}')
