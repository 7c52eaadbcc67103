"""
Global pytest configuration and fixtures.
Provides service fixtures for proper dependency injection in tests.
"""

import pytest
import os
from flask_socketio import SocketIO
from flask import Flask

# Ensure testing environment with the in-memory room store
os.environ['TESTING'] = '1'
os.environ.setdefault('STORE_BACKEND', 'memory')


@pytest.fixture(scope="function", autouse=True)
def reset_global_container():
    """Reset the global container before each test to ensure clean state."""
    from container import reset_container, configure_container
    from config_factory import ConfigurationFactory
    from src.config.game_settings import reset_game_settings

    reset_container()
    reset_game_settings()

    from app import socketio as app_socketio
    config_factory = ConfigurationFactory()
    config_factory.reset()
    config_factory.load_from_environment()
    configure_container(socketio=app_socketio, config=config_factory.to_dict())

    yield


@pytest.fixture(scope="session")
def app():
    """Create Flask app for testing."""
    from app import app as flask_app
    return flask_app


@pytest.fixture(scope="session")
def socketio():
    """Create SocketIO instance for testing."""
    from app import socketio as socketio_instance
    return socketio_instance


@pytest.fixture(scope="function")
def container():
    """Create service container backed by a standalone SocketIO instance."""
    from container import configure_container
    from config_factory import ConfigurationFactory

    test_app = Flask(__name__)
    test_socketio = SocketIO(test_app, async_mode='eventlet')

    config = ConfigurationFactory().to_dict()
    return configure_container(socketio=test_socketio, config=config)


@pytest.fixture(scope="function")
def room_store(container):
    return container.get('RoomStore')


@pytest.fixture(scope="function")
def game_settings(container):
    return container.get('GameSettings')


@pytest.fixture(scope="function")
def room_state_service(container):
    return container.get('RoomStateService')


@pytest.fixture(scope="function")
def room_registry(container):
    return container.get('RoomRegistryService')


@pytest.fixture(scope="function")
def presence_service(container):
    return container.get('PresenceService')


@pytest.fixture(scope="function")
def story_scheduler(container):
    return container.get('StorySchedulerService')


@pytest.fixture(scope="function")
def game_flow(container):
    return container.get('GameFlowService')


@pytest.fixture(scope="function")
def vote_tally(container):
    return container.get('VoteTallyService')


@pytest.fixture(scope="function")
def validation_service(container):
    return container.get('ValidationService')


@pytest.fixture(scope="function")
def error_response_factory(container):
    return container.get('ErrorResponseFactory')
