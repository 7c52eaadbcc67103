"""
Unit tests for API routes

Tests room creation, the health check and the public room summary.
"""

import pytest
from unittest.mock import Mock
from flask import Flask

from src.core.errors import ErrorCode, ValidationError
from src.routes.api import create_api_blueprint


@pytest.fixture
def services(container):
    return {
        'room_registry': container.get('RoomRegistryService'),
        'validation_service': container.get('ValidationService'),
        'error_response_factory': container.get('ErrorResponseFactory'),
        'room_store': container.get('RoomStore'),
    }


@pytest.fixture
def client(services):
    app = Flask(__name__)
    app.config['TESTING'] = True
    app.register_blueprint(create_api_blueprint(services))
    return app.test_client()


class TestCreateRoom:
    """Test POST /create"""

    def test_create_room(self, client, services):
        response = client.post('/create')

        assert response.status_code == 201
        pin = response.get_json()['pin']
        assert len(pin) == 4
        assert services['room_registry'].room_exists(pin)

    def test_create_room_when_pins_exhausted(self, services):
        services['room_registry'] = Mock()
        services['room_registry'].create_room.side_effect = ValidationError(
            ErrorCode.SERVICE_UNAVAILABLE, 'Could not allocate a room PIN'
        )
        app = Flask(__name__)
        app.register_blueprint(create_api_blueprint(services))

        response = app.test_client().post('/create')

        assert response.status_code == 503
        assert response.get_json()['error']['code'] == 'SERVICE_UNAVAILABLE'

    def test_get_is_not_allowed(self, client):
        assert client.get('/create').status_code == 405


class TestHealth:
    """Test GET /health"""

    def test_healthy(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_data(as_text=True) == 'OK'

    def test_store_unavailable(self, services):
        services['room_store'] = Mock()
        services['room_store'].ping.return_value = False
        app = Flask(__name__)
        app.register_blueprint(create_api_blueprint(services))

        response = app.test_client().get('/health')

        assert response.status_code == 503


class TestRoomSummary:
    """Test GET /api/rooms/<pin>"""

    def test_existing_room(self, client, services):
        pin = services['room_registry'].create_room()

        response = client.get(f'/api/rooms/{pin.lower()}')

        assert response.status_code == 200
        data = response.get_json()
        assert data['pin'] == pin
        assert data['phase'] == 'LOBBY'
        assert data['player_count'] == 0

    def test_unknown_room(self, client):
        response = client.get('/api/rooms/ZZZZ')
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Room not found'}

    def test_invalid_pin(self, client):
        response = client.get('/api/rooms/AB-12')
        assert response.status_code == 400
        assert response.get_json()['error']['code'] == 'INVALID_PIN'
