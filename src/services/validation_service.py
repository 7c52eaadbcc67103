"""
Validation Service for TallTales

Provides input validation and sanitization for client payloads.
"""

import logging
import re
from typing import Any, List

from src.core.errors import ErrorCode, ValidationError

logger = logging.getLogger(__name__)


class ValidationService:
    """Service responsible for input validation and sanitization."""

    MAX_PIN_LENGTH = 12
    MAX_ID_LENGTH = 64

    PIN_PATTERN = re.compile(r'^[A-Z0-9]+$')
    CONTROL_CHARS = re.compile(r'[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]')

    def __init__(self, game_settings):
        """
        Args:
            game_settings: GameSettings providing length limits
        """
        self.game_settings = game_settings

    def _clean_text(self, text: str) -> str:
        return self.CONTROL_CHARS.sub('', text).strip()

    def validate_pin(self, pin: Any) -> str:
        """
        Validate and normalize a room PIN.

        Args:
            pin: Raw PIN value

        Returns:
            Upper-cased PIN

        Raises:
            ValidationError: If the PIN is missing or malformed
        """
        if pin is None or (isinstance(pin, str) and not pin.strip()):
            raise ValidationError(ErrorCode.MISSING_PIN, "Room PIN is required")

        if not isinstance(pin, str):
            raise ValidationError(ErrorCode.INVALID_PIN, "Room PIN must be a string")

        pin = pin.strip().upper()
        if len(pin) > self.MAX_PIN_LENGTH or not self.PIN_PATTERN.match(pin):
            raise ValidationError(
                ErrorCode.INVALID_PIN,
                "Room PIN can only contain letters and numbers",
                {"max_length": self.MAX_PIN_LENGTH}
            )
        return pin

    def validate_username(self, username: Any) -> str:
        """
        Validate and sanitize a display name.

        Raises:
            ValidationError: If the name is missing or too long
        """
        if not username or not isinstance(username, str):
            raise ValidationError(ErrorCode.MISSING_USERNAME, "Username is required")

        username = self._clean_text(username)
        if not username:
            raise ValidationError(ErrorCode.MISSING_USERNAME, "Username cannot be empty")

        max_length = self.game_settings.max_username_length
        if len(username) > max_length:
            raise ValidationError(
                ErrorCode.USERNAME_TOO_LONG,
                f"Username must be {max_length} characters or less",
                {"max_length": max_length, "actual_length": len(username)}
            )
        return username

    def validate_user_id(self, user_id: Any) -> str:
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError(ErrorCode.INVALID_USER_ID, "User id must be a non-empty string")

        user_id = user_id.strip()
        if len(user_id) > self.MAX_ID_LENGTH or ':' in user_id:
            raise ValidationError(ErrorCode.INVALID_USER_ID, "User id is malformed")
        return user_id

    def validate_stories(self, stories: Any) -> List[str]:
        """
        Validate a player's story submission.

        Args:
            stories: Raw list of story texts

        Returns:
            List of sanitized, non-empty stories

        Raises:
            ValidationError: If the submission is empty, too large or contains bad items
        """
        if isinstance(stories, str):
            stories = [stories]

        if not isinstance(stories, list) or not stories:
            raise ValidationError(ErrorCode.MISSING_STORIES, "At least one story is required")

        max_count = self.game_settings.max_stories_per_player
        if len(stories) > max_count:
            raise ValidationError(
                ErrorCode.TOO_MANY_STORIES,
                f"At most {max_count} stories can be submitted",
                {"max_count": max_count, "actual_count": len(stories)}
            )

        max_length = self.game_settings.max_story_length
        cleaned = []
        for index, story in enumerate(stories):
            if not isinstance(story, str) or not self._clean_text(story):
                raise ValidationError(ErrorCode.EMPTY_STORY, "Stories cannot be empty", {"index": index})
            story = self._clean_text(story)
            if len(story) > max_length:
                raise ValidationError(
                    ErrorCode.STORY_TOO_LONG,
                    f"Stories must be {max_length} characters or less",
                    {"index": index, "max_length": max_length, "actual_length": len(story)}
                )
            cleaned.append(story)
        return cleaned

    def validate_choice_id(self, choice_id: Any) -> str:
        if choice_id is None or (isinstance(choice_id, str) and not choice_id.strip()):
            raise ValidationError(ErrorCode.MISSING_CHOICE, "A choice is required")
        if not isinstance(choice_id, str) or len(choice_id) > self.MAX_ID_LENGTH:
            raise ValidationError(ErrorCode.INVALID_CHOICE, "Choice must be a player id")
        return choice_id.strip()

    def validate_round_index(self, round_index: Any) -> int:
        """
        Validate a round number sent by a client.

        Accepts integers and numeric strings.

        Raises:
            ValidationError: If the value is not a positive integer
        """
        if isinstance(round_index, bool):
            raise ValidationError(ErrorCode.INVALID_ROUND, "Round must be a number")
        if isinstance(round_index, str) and round_index.strip().isdigit():
            round_index = int(round_index.strip())
        if not isinstance(round_index, int):
            raise ValidationError(ErrorCode.INVALID_ROUND, f"Invalid round: {round_index}")
        if round_index < 1:
            raise ValidationError(ErrorCode.INVALID_ROUND, f"Invalid round: {round_index}",
                                  {"round": round_index})
        return round_index
