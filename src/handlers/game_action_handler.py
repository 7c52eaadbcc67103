"""
Game Action Handler

This module handles Socket.IO events related to game actions: story
submission, starting the game, voting, advancing rounds and resetting.

Host-only actions sent by other players are ignored without an error.
"""

import logging
from flask import request

from src.core.errors import ErrorCode, ValidationError
from src.services.error_response_factory import with_error_handling
from .base_handler import BaseGameHandler

logger = logging.getLogger(__name__)


class GameActionHandler(BaseGameHandler):
    """Handler for game action operations."""

    @with_error_handling
    def handle_submit_stories(self, data):
        """
        Handle a player's story submission in the lobby.

        Expected data format:
        {
            'pin': 'AB12',
            'stories': ['story one', 'story two']
        }
        """
        self.log_handler_start('handle_submit_stories', data)

        validated_data, pin = self.validate_pin_data(data)
        context = self.require_room_member(pin)
        validated_data = self.validate_data_dict(validated_data, ['stories'])
        stories = self.validation_service.validate_stories(validated_data['stories'])

        result = self.story_scheduler.submit_stories(pin, context.user_id, stories)
        self.log_handler_success('handle_submit_stories', f'{len(stories)} stories from {context.user_id}')

        self.broadcast_service.broadcast_roster(pin)
        if result.all_submitted:
            self.broadcast_service.broadcast_submissions_complete(pin)
        return self.create_success({'count': len(stories)})

    @with_error_handling
    def handle_start_game(self, data):
        """Handle the host's request to start the game."""
        self.log_handler_start('handle_start_game', data)

        _, pin = self.validate_pin_data(data)
        context = self.require_room_member(pin)

        try:
            result = self.game_flow.start_game(pin, context.user_id)
        except ValidationError as e:
            if e.code == ErrorCode.INSUFFICIENT_PLAYERS:
                self.broadcast_service.broadcast_start_failed(pin, e)
            raise
        if result is None:
            return None

        self.log_handler_success('handle_start_game', f'Room {pin} started')
        self.broadcast_service.broadcast_game_started(pin, result)
        self.broadcast_service.broadcast_roster(pin)
        return self.create_success({'round': result.round_info.round})

    @with_error_handling
    def handle_advance_round(self, data):
        """
        Handle the host's request to leave the reveal of a round.

        Expected data format:
        {
            'pin': 'AB12',
            'expected_round': 3
        }
        """
        self.log_handler_start('handle_advance_round', data)

        validated_data, pin = self.validate_pin_data(data)
        context = self.require_room_member(pin)
        validated_data = self.validate_data_dict(validated_data, ['expected_round'])
        expected_round = self.validation_service.validate_round_index(validated_data['expected_round'])

        result = self.game_flow.advance_round(pin, expected_round, context.user_id)
        if result is None:
            return None

        self.log_handler_success('handle_advance_round', f'Room {pin} left round {expected_round}')
        self.broadcast_service.broadcast_round_advanced(pin, result)
        return self.create_success({'ended': result.ended})

    @with_error_handling
    def handle_get_round(self, data):
        """Send the story of the current or an earlier round to the requesting player."""
        self.log_handler_start('handle_get_round', data)

        validated_data, pin = self.validate_pin_data(data)
        self.require_room_member(pin)
        validated_data = self.validate_data_dict(validated_data, ['round'])
        round_index = self.validation_service.validate_round_index(validated_data['round'])

        round_info = self.game_flow.get_round_info(pin, round_index)
        self.broadcast_service.send_round_info(round_info, request.sid)
        return self.create_success({
            'round': round_info.round,
            'author_id': round_info.author_id,
            'text': round_info.text,
        })

    @with_error_handling
    def handle_cast_vote(self, data):
        """
        Handle a player's vote on who wrote the current story.

        Expected data format:
        {
            'pin': 'AB12',
            'choice_id': '<user id of the suspected author>'
        }
        """
        self.log_handler_start('handle_cast_vote', data)

        validated_data, pin = self.validate_pin_data(data)
        context = self.require_room_member(pin)
        validated_data = self.validate_data_dict(validated_data, ['choice_id'])
        choice_id = self.validation_service.validate_choice_id(validated_data['choice_id'])

        outcome = self.vote_tally.cast_vote(pin, context.user_id, choice_id)
        self.broadcast_service.broadcast_votes_updated(pin, outcome.votes)
        if outcome.tally is not None:
            self.broadcast_service.broadcast_vote_result(pin, outcome.tally)

        self.log_handler_success('handle_cast_vote')
        return self.create_success({'votes': len(outcome.votes)})

    @with_error_handling
    def handle_reset_game(self, data):
        """Handle the host's request to clear the game and reopen the lobby."""
        self.log_handler_start('handle_reset_game', data)

        _, pin = self.validate_pin_data(data)
        context = self.require_room_member(pin)

        if not self.game_flow.reset_game(pin, context.user_id):
            return None

        for connection in self.identity_service.get_connections_by_room(pin):
            self.identity_service.detach_room(connection.sid)
        self.broadcast_service.evict_room(pin)

        self.log_handler_success('handle_reset_game', f'Room {pin} reset')
        return self.create_success({'pin': pin})
