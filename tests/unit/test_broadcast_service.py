"""
Unit tests for BroadcastService - centralized Socket.IO broadcasting.
"""

from unittest.mock import Mock

from src.core.errors import ErrorCode, ValidationError
from src.services.broadcast_service import BroadcastService
from src.services.game_flow_service import AdvanceResult, RoundInfo
from tests.helpers.socket_mocks import MockSocketIOTestHelper, create_mock_socketio


class TestBroadcastService:
    """Test suite for BroadcastService"""

    def setup_method(self):
        """Set up test fixtures"""
        self.mock_socketio = create_mock_socketio()
        self.mock_presenter = Mock()
        self.helper = MockSocketIOTestHelper(self.mock_socketio)
        self.service = BroadcastService(self.mock_socketio, self.mock_presenter)

    def test_emit_to_room(self):
        self.service.emit_to_room('test_event', {'key': 'value'}, 'AB12')
        self.mock_socketio.emit.assert_called_once_with('test_event', {'key': 'value'}, room='AB12')

    def test_emit_to_player(self):
        self.service.emit_to_player('test_event', {'key': 'value'}, 'sid-1')
        self.mock_socketio.emit.assert_called_once_with('test_event', {'key': 'value'}, room='sid-1')

    def test_emit_failure_is_logged_not_raised(self):
        """Test that a failing transport does not break the caller"""
        self.mock_socketio.emit.side_effect = RuntimeError('transport closed')
        self.service.emit_to_room('test_event', {}, 'AB12')
        self.service.emit_error_to_player({'success': False}, 'sid-1')

    def test_broadcast_roster(self):
        self.mock_presenter.create_roster_update.return_value = {'pin': 'AB12', 'players': []}

        self.service.broadcast_roster('AB12')

        data = self.helper.assert_emitted_to_room('roster_updated', 'AB12')
        assert data == {'pin': 'AB12', 'players': []}

    def test_presenter_failure_is_logged(self):
        self.mock_presenter.create_roster_update.side_effect = ValueError('bad state')
        self.service.broadcast_roster('AB12')
        self.helper.assert_not_emitted('roster_updated')

    def test_send_sync_state_targets_connection(self):
        self.mock_presenter.create_sync_state.return_value = {'phase': 'LOBBY'}

        self.service.send_sync_state('AB12', 'sid-1')

        assert self.helper.assert_emitted_to_room('sync_state', 'sid-1') == {'phase': 'LOBBY'}

    def test_round_advanced(self):
        round_info = RoundInfo(round=2, author_id='bob', text='story')
        self.mock_presenter.create_round_advanced.return_value = {'round': 2}

        self.service.broadcast_round_advanced('AB12', AdvanceResult(ended=False, round_info=round_info))

        self.mock_presenter.create_round_advanced.assert_called_once_with('AB12', round_info)
        assert self.helper.assert_emitted_to_room('round_advanced', 'AB12') == {'round': 2}
        self.helper.assert_not_emitted('game_ended')

    def test_game_ended(self):
        self.mock_presenter.create_game_ended.return_value = {'scores': {'alice': 3}}

        self.service.broadcast_round_advanced('AB12', AdvanceResult(ended=True, scores={'alice': 3}))

        self.mock_presenter.create_game_ended.assert_called_once_with('AB12', {'alice': 3})
        self.helper.assert_emitted_to_room('game_ended', 'AB12')
        self.helper.assert_not_emitted('round_advanced')

    def test_simple_phase_events(self):
        self.service.broadcast_voting_started('AB12', 3)
        self.service.broadcast_votes_updated('AB12', {'bob': 'alice'})
        self.service.broadcast_submissions_complete('AB12')

        assert self.helper.assert_emitted_to_room('voting_started', 'AB12') == {'round': 3}
        assert self.helper.assert_emitted_to_room('votes_updated', 'AB12') == {'votes': {'bob': 'alice'}}
        assert self.helper.assert_emitted_to_room('submissions_complete', 'AB12') == {'pin': 'AB12'}

    def test_start_failed_advisory(self):
        error = ValidationError(ErrorCode.INSUFFICIENT_PLAYERS, 'Need more players', {'required': 3, 'current': 2})

        self.service.broadcast_start_failed('AB12', error)

        assert self.helper.assert_emitted_to_room('start_failed', 'AB12') == {
            'code': 'INSUFFICIENT_PLAYERS',
            'message': 'Need more players',
            'details': {'required': 3, 'current': 2},
        }

    def test_evict_room(self):
        """Test reset notifies the room and then closes it"""
        self.service.evict_room('AB12')

        self.helper.assert_emitted_to_room('room_reset', 'AB12')
        self.mock_socketio.close_room.assert_called_once_with('AB12')
