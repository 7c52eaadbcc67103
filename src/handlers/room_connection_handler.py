"""
Room Connection Handler

This module handles Socket.IO events related to room connections,
including joining rooms and resynchronizing room state.
"""

import logging
from flask import request

from src.core.errors import ErrorCode, ValidationError
from src.services.error_response_factory import with_error_handling
from src.services.presence_service import DisconnectOutcome
from .base_handler import BaseRoomHandler

logger = logging.getLogger(__name__)


class RoomConnectionHandler(BaseRoomHandler):
    """Handler for room connection operations like join and state sync."""

    @with_error_handling
    def handle_join_room(self, data):
        """
        Handle player joining or rejoining a room.

        Expected data format:
        {
            'pin': 'AB12',
            'username': 'display_name',
            'user_id': 'optional stable id'
        }
        """
        self.log_handler_start('handle_join_room', data)

        pin, username, user_id = self.validate_join_data(data)
        context = self.require_context()

        switching_user = bool(user_id) and user_id != context.user_id
        if context.pin and (context.pin != pin or switching_user):
            self._leave_previous_room(context)

        if switching_user:
            context = self.identity_service.rebind_user(request.sid, user_id)

        result = self.presence_service.join(pin, context.user_id, username, request.sid)

        self.join_socketio_room(pin)
        self.identity_service.attach_room(request.sid, pin, username)

        self.log_handler_success(
            'handle_join_room',
            f'Player {username} ({context.user_id}) joined room {pin}'
        )

        response = self.emit_success('room_joined', {
            'pin': pin,
            'user_id': context.user_id,
            'username': result.player['username'],
            'is_host': result.is_host,
            'rejoined': not result.is_new,
        })

        self.broadcast_service.broadcast_roster(pin)
        self.broadcast_service.send_sync_state(pin, request.sid)
        return response

    def _leave_previous_room(self, context):
        """Treat switching rooms or identities as a disconnect from the old room."""
        old_pin = context.pin
        outcome = self.presence_service.disconnect(old_pin, context.user_id, request.sid)
        self.leave_socketio_room(old_pin)
        self.identity_service.detach_room(request.sid)
        if outcome != DisconnectOutcome.IGNORED:
            self.broadcast_service.broadcast_roster(old_pin)
            self.auto_flow_service.handle_player_disconnect_game_impact(old_pin)

    @with_error_handling
    def handle_request_sync(self, data=None):
        """Handle request for the full state of the player's current room."""
        self.log_handler_start('handle_request_sync', data)

        context = self.require_context()
        if context.pin is None:
            raise ValidationError(ErrorCode.NOT_IN_ROOM, 'You are not currently in a room')

        self.broadcast_service.send_sync_state(context.pin, request.sid)
        self.log_handler_success('handle_request_sync')
        return self.create_success({'pin': context.pin})
