"""
REST API endpoints for the TallTales application.
"""

import logging
from flask import Blueprint, jsonify

from src.core.errors import ValidationError

logger = logging.getLogger(__name__)


def create_api_blueprint(services):
    """Create and configure the API Blueprint with service dependencies."""
    room_registry = services['room_registry']
    validation_service = services['validation_service']
    error_response_factory = services['error_response_factory']
    store = services['room_store']

    api = Blueprint('api', __name__)

    @api.route('/create', methods=['POST'])
    def create_room():
        """Create a new room and return its PIN."""
        try:
            pin = room_registry.create_room()
        except ValidationError as e:
            logger.error(f'Could not create room: {e.message}')
            return jsonify(error_response_factory.create_error_response(e.code, e.message, e.details)), 503
        return jsonify({'pin': pin}), 201

    @api.route('/health')
    def health():
        """Liveness check that also probes the room store."""
        if not store.ping():
            return 'Store unavailable', 503
        return 'OK', 200

    @api.route('/api/rooms/<pin>')
    def room_summary(pin):
        """Public summary of a room, used by clients before joining."""
        try:
            pin = validation_service.validate_pin(pin)
        except ValidationError as e:
            return jsonify(error_response_factory.create_error_response(e.code, e.message, e.details)), 400

        summary = room_registry.get_room_summary(pin)
        if summary is None:
            return jsonify({'error': 'Room not found'}), 404
        return jsonify(summary)

    return api
