"""
Core error definitions for TallTales

Provides error codes and validation exception that don't depend on other services.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorCode(Enum):
    """Standardized error codes for the application."""

    # Request format errors
    INVALID_DATA = "INVALID_DATA"
    MISSING_DATA = "MISSING_DATA"
    MISSING_PIN = "MISSING_PIN"
    INVALID_PIN = "INVALID_PIN"
    MISSING_USERNAME = "MISSING_USERNAME"
    USERNAME_TOO_LONG = "USERNAME_TOO_LONG"
    INVALID_USER_ID = "INVALID_USER_ID"
    NOT_IN_ROOM = "NOT_IN_ROOM"

    # Room errors
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ROOM_FULL = "ROOM_FULL"
    GAME_IN_PROGRESS = "GAME_IN_PROGRESS"
    INSUFFICIENT_PLAYERS = "INSUFFICIENT_PLAYERS"

    # Game flow errors
    WRONG_PHASE = "WRONG_PHASE"
    INVALID_ROUND = "INVALID_ROUND"
    NO_STORIES_SUBMITTED = "NO_STORIES_SUBMITTED"

    # Story submission errors
    MISSING_STORIES = "MISSING_STORIES"
    EMPTY_STORY = "EMPTY_STORY"
    STORY_TOO_LONG = "STORY_TOO_LONG"
    TOO_MANY_STORIES = "TOO_MANY_STORIES"

    # Vote errors
    MISSING_CHOICE = "MISSING_CHOICE"
    INVALID_CHOICE = "INVALID_CHOICE"
    CANNOT_VOTE_OWN_STORY = "CANNOT_VOTE_OWN_STORY"

    # System errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class ValidationError(Exception):
    """Custom exception for validation errors."""

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)
