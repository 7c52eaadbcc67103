"""
Integration tests for a full game session over Socket.IO.
Drives join, story submission, start, voting, reveal, advance, the final
standings and reset through real test clients and the configured services.
"""

import pytest
from flask_socketio import SocketIOTestClient

from app import app, socketio
from container import get_container
from src.core.game_phases import GamePhase
from tests.helpers.room_helpers import find_event_in_received, find_events, join_room_helper

PLAYERS = ['alice', 'bob', 'carol']


class GameSessionTestBase:
    """Connects test clients with stable user ids and tears them down."""

    @pytest.fixture(autouse=True)
    def session(self, reset_global_container):
        self.container = get_container()
        self.registry = self.container.get('RoomRegistryService')
        self.room_state = self.container.get('RoomStateService')
        self.auto_flow = self.container.get('AutoGameFlowService')
        self.clients = {}
        yield
        for client in self.clients.values():
            if client.is_connected():
                client.disconnect()

    def connect(self, user_id, key=None):
        client = SocketIOTestClient(app, socketio, auth={'userId': user_id})
        self.clients[key or user_id] = client
        return client

    def lobby(self, player_ids=PLAYERS):
        pin = self.registry.create_room()
        for user_id in player_ids:
            join_room_helper(self.connect(user_id), pin, user_id.title())
        return pin

    def submit(self, pin, user_id, stories):
        return self.clients[user_id].emit('submit_stories', {'pin': pin, 'stories': stories}, callback=True)

    def start(self, pin, player_ids=PLAYERS):
        pin = pin or self.lobby(player_ids)
        for user_id in player_ids:
            self.submit(pin, user_id, [f'{user_id} once met a bear'])
        ack = self.clients[player_ids[0]].emit('start_game', {'pin': pin}, callback=True)
        assert ack['success'] is True
        return pin

    def expire_round_display(self, pin):
        """Make the round display deadline pass and let the timer act on it."""
        self.room_state.set_phase_deadline(pin, 0)
        self.auto_flow._check_phase_deadlines()

    def drain(self):
        for client in self.clients.values():
            client.get_received()


class TestFullGame(GameSessionTestBase):
    """A complete three-round game"""

    def test_game_from_lobby_to_final_and_reset(self):
        pin = self.lobby()
        alice, bob = self.clients['alice'], self.clients['bob']

        # Stories
        for user_id in PLAYERS:
            ack = self.submit(pin, user_id, [f'{user_id} once met a bear'])
            assert ack == {'success': True, 'data': {'count': 1}}
        assert find_event_in_received(bob.get_received(), 'submissions_complete') is not None

        # Only the host can start
        assert not bob.emit('start_game', {'pin': pin}, callback=True)
        ack = alice.emit('start_game', {'pin': pin}, callback=True)
        assert ack == {'success': True, 'data': {'round': 1}}

        started = find_event_in_received(bob.get_received(), 'game_started')['args'][0]
        assert started['round'] == 1
        assert sorted(started['initial_players']) == PLAYERS

        scores = {}
        for round_index in (1, 2, 3):
            self.drain()
            self.expire_round_display(pin)
            voting = find_event_in_received(bob.get_received(), 'voting_started')
            assert voting['args'][0] == {'round': round_index}

            author = self.room_state.get_current_author(pin)
            voters = [uid for uid in PLAYERS if uid != author]

            own = self.clients[author].emit('cast_vote', {'pin': pin, 'choice_id': voters[0]}, callback=True)
            assert own['error']['code'] == 'CANNOT_VOTE_OWN_STORY'

            for voter in voters:
                ack = self.clients[voter].emit('cast_vote', {'pin': pin, 'choice_id': author}, callback=True)
                assert ack['success'] is True

            result = find_event_in_received(alice.get_received(), 'vote_result')['args'][0]
            assert result['round'] == round_index
            assert result['author_id'] == author
            scores = result['scores']
            assert self.room_state.get_phase(pin) == GamePhase.REVEAL

            ack = alice.emit('advance_round', {'pin': pin, 'expected_round': round_index}, callback=True)
            assert ack['data']['ended'] is (round_index == 3)
            # A duplicate advance for the same round changes nothing
            assert not alice.emit('advance_round', {'pin': pin, 'expected_round': round_index}, callback=True)

        # Each player wrote one story and guessed right twice
        assert scores == {'alice': 4, 'bob': 4, 'carol': 4}
        ended = find_events(bob.get_received(), 'game_ended')
        assert len(ended) == 1
        assert [entry['rank'] for entry in ended[0]['args'][0]['leaderboard']] == [1, 1, 1]
        assert self.room_state.get_phase(pin) == GamePhase.FINAL

        # Reset returns the room to an empty lobby
        assert not bob.emit('reset_game', {'pin': pin}, callback=True)
        ack = alice.emit('reset_game', {'pin': pin}, callback=True)
        assert ack == {'success': True, 'data': {'pin': pin}}
        assert find_event_in_received(bob.get_received(), 'room_reset') is not None
        assert self.room_state.get_phase(pin) == GamePhase.LOBBY
        assert self.room_state.get_players(pin) == {}

        # Players can join again and the recorded host keeps the role
        data = join_room_helper(alice, pin, 'Alice')
        assert data['is_host'] is True

    def test_get_round_returns_current_story(self):
        pin = self.start(None)
        bob = self.clients['bob']

        ack = bob.emit('get_round', {'pin': pin, 'round': 1}, callback=True)

        assert ack['data']['round'] == 1
        assert ack['data']['text'] == self.room_state.get_story(pin, 1)['text']
        assert find_event_in_received(bob.get_received(), 'round_prepared') is not None

        ack = bob.emit('get_round', {'pin': pin, 'round': 2}, callback=True)
        assert ack['error']['code'] == 'INVALID_ROUND'


class TestJoinErrors(GameSessionTestBase):
    """Errors are returned in the acknowledgement and emitted as 'error'"""

    def test_unknown_room(self):
        client = self.connect('alice')
        client.get_received()

        ack = client.emit('join_room', {'pin': 'ZZZZ', 'username': 'Alice'}, callback=True)

        assert ack['success'] is False
        assert ack['error']['code'] == 'ROOM_NOT_FOUND'
        error = find_event_in_received(client.get_received(), 'error')
        assert error['args'][0] == ack

    def test_missing_username(self):
        pin = self.registry.create_room()
        client = self.connect('alice')

        ack = client.emit('join_room', {'pin': pin}, callback=True)
        assert ack['error']['code'] == 'MISSING_USERNAME'

    def test_late_join_rejected(self):
        pin = self.start(None)
        client = self.connect('dave')

        ack = client.emit('join_room', {'pin': pin, 'username': 'Dave'}, callback=True)
        assert ack['error']['code'] == 'GAME_IN_PROGRESS'

    def test_start_with_two_players(self):
        pin = self.lobby(['alice', 'bob'])
        for user_id in ['alice', 'bob']:
            self.submit(pin, user_id, ['a story'])

        ack = self.clients['alice'].emit('start_game', {'pin': pin}, callback=True)

        assert ack['error']['code'] == 'INSUFFICIENT_PLAYERS'
        assert ack['error']['details'] == {'required': 3, 'current': 2}
        # The rest of the room is told why nothing happened
        advisory = find_event_in_received(self.clients['bob'].get_received(), 'start_failed')
        assert advisory['args'][0]['code'] == 'INSUFFICIENT_PLAYERS'

    def test_request_sync_outside_room(self):
        client = self.connect('alice')
        ack = client.emit('request_sync', {}, callback=True)
        assert ack['error']['code'] == 'NOT_IN_ROOM'

    def test_actions_for_other_room_are_rejected(self):
        pin = self.lobby(['alice'])
        other = self.registry.create_room()

        ack = self.clients['alice'].emit('submit_stories', {'pin': other, 'stories': ['x']}, callback=True)
        assert ack['error']['code'] == 'NOT_IN_ROOM'
        assert self.room_state.get_phase(pin) == GamePhase.LOBBY


class TestPresence(GameSessionTestBase):
    """Disconnects and rejoins through real connections"""

    def test_lobby_disconnect_updates_roster(self):
        pin = self.lobby(['alice', 'bob'])
        alice = self.clients['alice']
        alice.get_received()

        self.clients['bob'].disconnect()

        roster = find_events(alice.get_received(), 'roster_updated')[-1]['args'][0]
        assert [p['id'] for p in roster['players']] == ['alice']

    def test_rejoin_mid_game_receives_sync_state(self):
        pin = self.start(None)
        self.clients['bob'].disconnect()
        assert self.room_state.get_player(pin, 'bob')['connected'] is False

        client = self.connect('bob', key='bob-again')
        data = join_room_helper(client, pin, 'Bob')

        assert data['rejoined'] is True
        assert data['user_id'] == 'bob'
        state = find_event_in_received(client.get_received(), 'sync_state')['args'][0]
        assert state['phase'] == 'ROUND'
        assert state['round'] == 1
        assert state['host_id'] == 'alice'
        assert self.room_state.get_player(pin, 'bob')['connected'] is True

    def test_disconnect_of_last_voter_completes_round(self):
        pin = self.start(None)
        self.expire_round_display(pin)
        author = self.room_state.get_current_author(pin)
        voter, pending = [uid for uid in PLAYERS if uid != author]

        self.clients[voter].emit('cast_vote', {'pin': pin, 'choice_id': author}, callback=True)
        self.clients[author].get_received()
        self.clients[pending].disconnect()

        result = find_event_in_received(self.clients[author].get_received(), 'vote_result')
        assert result is not None
        assert result['args'][0]['votes'] == {voter: author}

    def test_switching_user_id_on_same_connection_leaves_old_player(self):
        pin = self.lobby(['alice', 'bob'])
        bob = self.clients['bob']

        ack = bob.emit('join_room', {'pin': pin, 'username': 'Dave', 'user_id': 'dave'}, callback=True)

        assert ack['data']['user_id'] == 'dave'
        assert sorted(self.room_state.get_players(pin)) == ['alice', 'dave']
        assert self.room_state.get_socket(pin, 'bob') is None
