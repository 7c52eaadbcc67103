"""
Base Handler Classes

This module provides base classes for Socket.IO handlers with common patterns
for validation, connection context, and response formatting.
"""

import logging
from abc import ABC
from typing import Any, Dict, Optional
from flask import request
from flask_socketio import emit, join_room, leave_room

from container import get_container
from src.core.errors import ErrorCode, ValidationError
from src.services.identity_service import ConnectionContext

logger = logging.getLogger(__name__)

# Field-specific error codes for missing payload fields
_MISSING_FIELD_ERRORS = {
    'pin': (ErrorCode.MISSING_PIN, "Room PIN is required"),
    'username': (ErrorCode.MISSING_USERNAME, "Username is required"),
    'stories': (ErrorCode.MISSING_STORIES, "At least one story is required"),
    'choice_id': (ErrorCode.MISSING_CHOICE, "A choice is required"),
    'expected_round': (ErrorCode.INVALID_ROUND, "Round is required"),
    'round': (ErrorCode.INVALID_ROUND, "Round is required"),
}


class BaseHandler(ABC):
    """
    Abstract base class for all Socket.IO handlers.

    Provides common functionality like service access, connection context,
    validation patterns, and standardized response formatting.
    """

    @property
    def _container(self):
        return get_container()

    @property
    def identity_service(self):
        return self._container.get('IdentityService')

    @property
    def room_registry(self):
        return self._container.get('RoomRegistryService')

    @property
    def room_state(self):
        return self._container.get('RoomStateService')

    @property
    def presence_service(self):
        return self._container.get('PresenceService')

    @property
    def story_scheduler(self):
        return self._container.get('StorySchedulerService')

    @property
    def game_flow(self):
        return self._container.get('GameFlowService')

    @property
    def vote_tally(self):
        return self._container.get('VoteTallyService')

    @property
    def validation_service(self):
        return self._container.get('ValidationService')

    @property
    def error_response_factory(self):
        return self._container.get('ErrorResponseFactory')

    @property
    def broadcast_service(self):
        return self._container.get('BroadcastService')

    @property
    def auto_flow_service(self):
        return self._container.get('AutoGameFlowService')

    def get_current_context(self) -> Optional[ConnectionContext]:
        """Get the connection context of the requesting client."""
        return self.identity_service.get_context(request.sid)  # type: ignore[attr-defined]

    def require_context(self) -> ConnectionContext:
        """
        Get the connection context, raising an error if the connection is unknown.

        Raises:
            ValidationError: If the connection has no bound identity
        """
        context = self.get_current_context()
        if context is None:
            raise ValidationError(ErrorCode.INVALID_USER_ID, 'Connection has no player identity')
        return context

    def require_room_member(self, pin: str) -> ConnectionContext:
        """
        Get the connection context, requiring that it joined room ``pin``.

        Raises:
            ValidationError: If the player is not in that room
        """
        context = self.require_context()
        if context.pin != pin:
            raise ValidationError(ErrorCode.NOT_IN_ROOM, 'You are not currently in this room', {'pin': pin})
        return context

    def validate_data_dict(self, data: Any, required_fields: Optional[list] = None) -> Dict[str, Any]:
        """
        Validate that data is a dictionary and contains required fields.

        Raises:
            ValidationError: If validation fails
        """
        if data is None:
            raise ValidationError(ErrorCode.MISSING_DATA, "Request data is required")

        if not isinstance(data, dict):
            raise ValidationError(
                ErrorCode.INVALID_DATA,
                "Invalid data format - expected dictionary"
            )

        for field in required_fields or []:
            if field not in data:
                code, message = _MISSING_FIELD_ERRORS.get(
                    field, (ErrorCode.INVALID_DATA, f"Missing required field: {field}")
                )
                raise ValidationError(code, message)

        return data

    def create_success(self, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.error_response_factory.create_success_response(data or {})

    def emit_success(self, event_name: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Emit a success response to the requesting client.

        Returns:
            The emitted response, for use as the acknowledgement
        """
        response = self.create_success(data)
        emit(event_name, response)
        return response

    def log_handler_start(self, handler_name: str, data: Any = None) -> None:
        """Log the start of handler execution."""
        logger.info(f'{handler_name} called by client: {request.sid}')  # type: ignore[attr-defined]
        if data:
            logger.debug(f'{handler_name} data: {data}')

    def log_handler_success(self, handler_name: str, message: Optional[str] = None) -> None:
        """Log successful handler completion."""
        log_msg = f'{handler_name} completed successfully for client: {request.sid}'  # type: ignore[attr-defined]
        if message:
            log_msg += f' - {message}'
        logger.info(log_msg)


class RoomHandlerMixin:
    """
    Mixin for handlers that deal with room operations.

    Provides joining and leaving of Socket.IO rooms, which are the broadcast
    groups keyed by PIN.
    """

    def join_socketio_room(self, pin: str) -> None:
        """Join a Socket.IO room for broadcasting."""
        join_room(pin)
        logger.debug(f'Client {request.sid} joined Socket.IO room: {pin}')  # type: ignore[attr-defined]

    def leave_socketio_room(self, pin: str) -> None:
        """Leave a Socket.IO room."""
        leave_room(pin)
        logger.debug(f'Client {request.sid} left Socket.IO room: {pin}')  # type: ignore[attr-defined]


class ValidationHandlerMixin:
    """
    Mixin for handlers that need common validation patterns.

    Provides standardized validation methods for payloads shared across
    multiple handlers.
    """

    # Type hints for expected attributes from BaseHandler
    validation_service: Any

    def validate_data_dict(self, data: Any, required_fields: Optional[list] = None) -> Dict[str, Any]:
        """Expected to be implemented by BaseHandler"""
        raise NotImplementedError("This method should be provided by BaseHandler")

    def validate_pin_data(self, data: Any) -> tuple[Dict[str, Any], str]:
        """
        Validate a payload carrying a room PIN.

        Returns:
            Tuple of (payload, normalized pin)
        """
        validated_data = self.validate_data_dict(data, ['pin'])
        return validated_data, self.validation_service.validate_pin(validated_data['pin'])

    def validate_join_data(self, data: Any) -> tuple[str, str, Optional[str]]:
        """
        Validate room join data.

        Returns:
            Tuple of (pin, username, user_id or None)
        """
        validated_data, pin = self.validate_pin_data(data)
        if 'username' not in validated_data:
            raise ValidationError(ErrorCode.MISSING_USERNAME, "Username is required")
        username = self.validation_service.validate_username(validated_data['username'])

        user_id = validated_data.get('user_id')
        if user_id is not None:
            user_id = self.validation_service.validate_user_id(user_id)
        return pin, username, user_id


class BaseRoomHandler(BaseHandler, RoomHandlerMixin, ValidationHandlerMixin):
    """Base class for handlers that deal with room operations."""
    pass


class BaseGameHandler(BaseHandler, ValidationHandlerMixin):
    """Base class for handlers that deal with game operations."""
    pass
