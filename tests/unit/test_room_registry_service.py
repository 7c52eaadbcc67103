"""
Room Registry Service Tests

Tests room creation, PIN collision handling and join admission.
"""

import pytest

from src.core.errors import ErrorCode, ValidationError
from src.core.game_phases import GamePhase
from src.services.room_registry_service import PIN_ALPHABET, RoomRegistryService
from src.store.keys import ROOMS_INDEX_KEY
from tests.helpers.room_helpers import build_services, create_lobby, start_game


class TestRoomCreation:
    """Test creating rooms"""

    def setup_method(self):
        self.services = build_services()

    def test_create_room_starts_in_lobby(self):
        pin = self.services.registry.create_room()

        assert len(pin) == 4
        assert set(pin) <= set(PIN_ALPHABET)
        assert self.services.registry.room_exists(pin)
        assert self.services.room_state.get_phase(pin) == GamePhase.LOBBY
        assert pin in self.services.store.smembers(ROOMS_INDEX_KEY)
        assert self.services.registry.list_rooms() == [pin]

    def test_pin_length_is_configurable(self):
        services = build_services(pin_length=6)
        assert len(services.registry.create_room()) == 6

    def test_collision_retries_with_new_pin(self):
        s = self.services
        pins = iter(['AAAA', 'AAAA', 'BBBB'])
        registry = RoomRegistryService(s.store, s.room_state, s.settings, pin_generator=lambda _: next(pins))

        assert registry.create_room() == 'AAAA'
        assert registry.create_room() == 'BBBB'

    def test_gives_up_after_max_attempts(self):
        s = build_services(max_pin_attempts=3)
        registry = RoomRegistryService(s.store, s.room_state, s.settings, pin_generator=lambda _: 'AAAA')
        registry.create_room()

        with pytest.raises(ValidationError) as exc_info:
            registry.create_room()
        assert exc_info.value.code == ErrorCode.SERVICE_UNAVAILABLE

    def test_unknown_room_does_not_exist(self):
        assert self.services.registry.room_exists('ZZZZ') is False


class TestJoinValidation:
    """Test join admission rules"""

    def setup_method(self):
        self.services = build_services()

    def test_unknown_room_is_not_found(self):
        decision = self.services.registry.validate_join('ZZZZ', 'alice')
        assert not decision.ok
        assert decision.reason == ErrorCode.ROOM_NOT_FOUND
        assert decision.message == 'Room not found'

    def test_new_player_may_join_lobby(self):
        pin = self.services.registry.create_room()
        assert self.services.registry.validate_join(pin, 'alice').ok

    def test_full_lobby_rejects_new_players_only(self):
        s = build_services(max_players_per_room=3)
        pin = create_lobby(s, ['alice', 'bob', 'carol'])

        decision = s.registry.validate_join(pin, 'dave')
        assert decision.reason == ErrorCode.ROOM_FULL
        assert s.registry.validate_join(pin, 'bob').ok

    def test_late_join_rejected_once_game_started(self):
        pin = start_game(self.services, ['alice', 'bob', 'carol'])

        decision = self.services.registry.validate_join(pin, 'dave')
        assert decision.reason == ErrorCode.GAME_IN_PROGRESS

    def test_initial_players_may_rejoin_running_game(self):
        pin = start_game(self.services, ['alice', 'bob', 'carol'])
        assert self.services.registry.validate_join(pin, 'carol').ok

    def test_require_join_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            self.services.registry.require_join('ZZZZ', 'alice')
        assert exc_info.value.code == ErrorCode.ROOM_NOT_FOUND
        assert exc_info.value.details == {'pin': 'ZZZZ'}


class TestRoomSummary:
    """Test the public room summary"""

    def test_summary(self):
        services = build_services()
        pin = create_lobby(services, ['alice', 'bob'])

        summary = services.registry.get_room_summary(pin)
        assert summary == {
            'pin': pin,
            'phase': 'LOBBY',
            'player_count': 2,
            'connected_count': 2,
            'max_players': 10,
            'round': 0,
        }

    def test_summary_of_unknown_room(self):
        assert build_services().registry.get_room_summary('ZZZZ') is None


class TestInactiveRoomCleanup:
    """Test deletion of idle rooms"""

    def setup_method(self):
        self.services = build_services()
        self.registry = self.services.registry

    def test_idle_empty_room_is_deleted(self):
        pin = self.registry.create_room()
        self.services.clock.advance(61 * 60)

        assert self.registry.cleanup_inactive_rooms(self.services.clock(), 60) == 1

        assert not self.registry.room_exists(pin)
        assert self.registry.list_rooms() == []
        assert self.services.store.scan_keys(f'game:{pin}:*') == []

    def test_recent_activity_keeps_room(self):
        pin = self.registry.create_room()
        self.services.clock.advance(59 * 60)

        assert self.registry.cleanup_inactive_rooms(self.services.clock(), 60) == 0
        assert self.registry.list_rooms() == [pin]

    def test_connected_players_keep_idle_room(self):
        pin = create_lobby(self.services, ['alice'])
        self.services.clock.advance(120 * 60)

        assert self.registry.cleanup_inactive_rooms(self.services.clock(), 60) == 0
        assert self.registry.room_exists(pin)

    def test_finished_game_with_nobody_left_is_deleted(self):
        pin = start_game(self.services, ['alice', 'bob', 'carol'])
        for user_id in ['alice', 'bob', 'carol']:
            self.services.presence.disconnect(pin, user_id, f'sid-{user_id}')
        self.services.clock.advance(61 * 60)

        assert self.registry.cleanup_inactive_rooms(self.services.clock(), 60) == 1

        assert self.services.store.scan_keys(f'game:{pin}:*') == []

    def test_index_entry_without_room_is_dropped(self):
        self.services.store.sadd(ROOMS_INDEX_KEY, 'GONE')

        assert self.registry.cleanup_inactive_rooms(self.services.clock(), 60) == 1
        assert self.registry.list_rooms() == []
