"""
Room State Service Unit Tests

Tests typed reads and writes of room keys, including handling of missing
and corrupt values.
"""

import json

from src.core.game_phases import GamePhase
from src.services.room_state_service import RoomStateService
from src.store.keys import RoomKeys
from src.store.memory_store import MemoryRoomStore
from tests.helpers.room_helpers import FakeClock

PIN = 'AB12'


class TestPhaseAndRound:
    """Test phase, round pointer and deadline"""

    def setup_method(self):
        self.store = MemoryRoomStore(clock=FakeClock())
        self.state = RoomStateService(self.store)

    def test_defaults_for_empty_room(self):
        assert self.state.get_phase(PIN) == GamePhase.LOBBY
        assert self.state.get_current_round(PIN) == 0
        assert self.state.get_current_author(PIN) is None
        assert self.state.get_phase_deadline(PIN) is None

    def test_phase_round_trip(self):
        self.state.set_phase(PIN, GamePhase.REVEAL)
        assert self.state.get_phase(PIN) == GamePhase.REVEAL
        assert self.store.get(RoomKeys(PIN).phase) == 'REVEAL'

    def test_phase_change_records_activity(self):
        clock = FakeClock(500.0)
        state = RoomStateService(self.store, clock=clock)
        assert state.get_last_activity(PIN) is None

        state.set_phase(PIN, GamePhase.ROUND)
        clock.advance(30)
        state.save_player(PIN, {'id': 'alice', 'username': 'Alice'})

        assert state.get_last_activity(PIN) == 530.0

    def test_set_round(self):
        self.state.set_round(PIN, 3, 'alice')
        assert self.state.get_current_round(PIN) == 3
        assert self.state.get_current_author(PIN) == 'alice'

    def test_corrupt_round_pointer(self):
        self.store.set(RoomKeys(PIN).current_round, 'three')
        assert self.state.get_current_round(PIN) == 0

    def test_deadline_set_and_clear(self):
        self.state.set_phase_deadline(PIN, 1234.5)
        assert self.state.get_phase_deadline(PIN) == 1234.5

        self.state.set_phase_deadline(PIN, None)
        assert self.state.get_phase_deadline(PIN) is None
        assert not self.store.exists(RoomKeys(PIN).phase_deadline)


class TestHost:
    """Test the host key"""

    def setup_method(self):
        self.state = RoomStateService(MemoryRoomStore(clock=FakeClock()))

    def test_claim_only_when_unset(self):
        assert self.state.claim_host(PIN, 'alice') is True
        assert self.state.claim_host(PIN, 'bob') is False
        assert self.state.get_host(PIN) == 'alice'

    def test_set_and_clear(self):
        self.state.set_host(PIN, 'bob')
        assert self.state.get_host(PIN) == 'bob'
        self.state.clear_host(PIN)
        assert self.state.get_host(PIN) is None


class TestPlayers:
    """Test player records"""

    def setup_method(self):
        self.store = MemoryRoomStore(clock=FakeClock())
        self.state = RoomStateService(self.store)

    def test_save_and_read_player(self):
        self.state.save_player(PIN, {'id': 'alice', 'username': 'Alice'})

        assert self.state.get_player(PIN, 'alice') == {
            'id': 'alice', 'username': 'Alice', 'ready': False, 'connected': True
        }
        assert self.state.has_player(PIN, 'alice')
        assert self.state.get_player(PIN, 'bob') is None

    def test_connected_player_ids(self):
        self.state.save_player(PIN, {'id': 'alice', 'username': 'Alice', 'connected': True})
        self.state.save_player(PIN, {'id': 'bob', 'username': 'Bob', 'connected': False})

        assert self.state.get_connected_player_ids(PIN) == ['alice']

    def test_corrupt_player_record_is_skipped(self):
        self.state.save_player(PIN, {'id': 'alice', 'username': 'Alice'})
        self.store.hset(RoomKeys(PIN).players, 'bob', '{not json')

        assert list(self.state.get_players(PIN)) == ['alice']
        assert self.state.get_player(PIN, 'bob') is None

    def test_sockets(self):
        self.state.set_socket(PIN, 'alice', 'sid-1')
        assert self.state.get_socket(PIN, 'alice') == 'sid-1'


class TestScoresAndStories:
    """Test scores, votes, snapshot and story list"""

    def setup_method(self):
        self.store = MemoryRoomStore(clock=FakeClock())
        self.state = RoomStateService(self.store)
        self.keys = RoomKeys(PIN)

    def test_scores_are_integers(self):
        self.store.hincrby(self.keys.scores, 'alice', 3)
        self.store.hset(self.keys.scores, 'bob', 'lots')

        assert self.state.get_scores(PIN) == {'alice': 3}

    def test_votes_and_initial_players(self):
        self.store.hset(self.keys.votes, 'bob', 'alice')
        self.state.save_initial_players(PIN, {
            'alice': {'id': 'alice', 'username': 'Alice'},
            'bob': {'id': 'bob', 'username': 'Bob'},
        })

        assert self.state.get_votes(PIN) == {'bob': 'alice'}
        assert self.state.get_initial_players(PIN) == {'alice', 'bob'}
        assert self.state.get_initial_player_names(PIN) == {'alice': 'Alice', 'bob': 'Bob'}
        assert self.state.is_initial_player(PIN, 'bob')
        assert not self.state.is_initial_player(PIN, 'carol')

    def test_returning_host(self):
        assert self.state.get_returning_host(PIN) is None
        self.state.set_returning_host(PIN, 'alice')
        assert self.state.get_returning_host(PIN) == 'alice'
        self.state.clear_returning_host(PIN)
        assert self.state.get_returning_host(PIN) is None

    def test_story_list_is_one_based(self):
        story_list = [None, {'author_id': 'alice', 'text': 'one'}, {'author_id': 'bob', 'text': 'two'}]
        self.state.save_story_list(PIN, story_list)

        assert self.state.get_story_list(PIN) == story_list
        assert self.state.get_story(PIN, 2) == {'author_id': 'bob', 'text': 'two'}
        assert self.state.get_story(PIN, 0) is None
        assert self.state.get_story(PIN, 3) is None

    def test_missing_or_corrupt_story_list(self):
        assert self.state.get_story_list(PIN) is None
        assert self.state.get_story(PIN, 1) is None

        self.store.set(self.keys.story_list, 'nope')
        assert self.state.get_story_list(PIN) is None

    def test_story_list_is_json(self):
        self.state.save_story_list(PIN, [None])
        assert json.loads(self.store.get(self.keys.story_list)) == [None]
