"""
Socket.IO event handlers for the TallTales game.

This module provides the main registration function and the
connection/disconnection handlers.
"""

import logging
import os
from flask import request
from flask_socketio import emit

from container import get_container
from src.services.presence_service import DisconnectOutcome
from .socket_event_router import setup_router
from .room_connection_handler import RoomConnectionHandler
from .game_action_handler import GameActionHandler

logger = logging.getLogger(__name__)


def register_socket_handlers(socketio_instance):
    """Register all socket handlers with the SocketIO instance."""
    router = setup_router()

    room_handler = RoomConnectionHandler()
    game_handler = GameActionHandler()

    # Connection events don't go through the router since they have special behavior
    socketio_instance.on_event('connect', handle_connect)
    socketio_instance.on_event('disconnect', handle_disconnect)

    router.register_route('join_room', room_handler.handle_join_room)
    router.register_route('request_sync', room_handler.handle_request_sync)

    router.register_route('submit_stories', game_handler.handle_submit_stories)
    router.register_route('start_game', game_handler.handle_start_game)
    router.register_route('advance_round', game_handler.handle_advance_round)
    router.register_route('get_round', game_handler.handle_get_round)
    router.register_route('cast_vote', game_handler.handle_cast_vote)
    router.register_route('reset_game', game_handler.handle_reset_game)

    router.register_with_socketio(socketio_instance)

    logger.info(f"Registered {len(router.get_registered_events())} socket event handlers")
    return router


def handle_connect(auth=None):
    """Bind a player identity to the new connection, with Origin enforcement in production."""
    container = get_container()
    app_config = container.get('GameSettings').app_config
    allowed_origins_env = os.environ.get('SOCKETIO_CORS_ALLOWED_ORIGINS', '')

    origin = request.headers.get('Origin')
    if app_config.is_production and allowed_origins_env:
        allowed = {o.strip() for o in allowed_origins_env.split(',') if o.strip()}
        if origin and origin not in allowed:
            logger.warning(f'Rejecting connection from disallowed Origin: {origin}')
            return False

    context = container.get('IdentityService').bind_connection(request.sid, auth)  # type: ignore[attr-defined]
    logger.info(f'Client connected: {request.sid} as {context.user_id}')  # type: ignore[attr-defined]
    emit('connected', {'user_id': context.user_id})


def handle_disconnect(reason=None):
    """Handle client disconnection: lobby departure or start of the grace period."""
    container = get_container()
    identity_service = container.get('IdentityService')

    logger.info(f'Client disconnected: {request.sid}')  # type: ignore[attr-defined]

    context = identity_service.release(request.sid)  # type: ignore[attr-defined]
    if context is None or context.pin is None:
        return

    try:
        outcome = container.get('PresenceService').disconnect(context.pin, context.user_id, context.sid)
    except Exception as e:
        logger.error(f'Error handling disconnect of {context.user_id} from room {context.pin}: {e}')
        return

    if outcome == DisconnectOutcome.IGNORED:
        return

    container.get('BroadcastService').broadcast_roster(context.pin)
    container.get('AutoGameFlowService').handle_player_disconnect_game_impact(context.pin)
