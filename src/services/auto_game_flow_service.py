"""
Auto Game Flow Service - Manages server-driven phase transitions.

This service handles:
- Moving a round from display to voting once its deadline passes
- Optionally advancing past the reveal when a reveal duration is configured
- Permanent removal of players whose disconnect grace period ran out
- Re-evaluating vote completion when the set of connected players shrinks
- Cleaning up rooms that have been idle for too long
"""

import logging
import threading
import time
from typing import Callable

from src.core.game_phases import GamePhase
from src.store.keys import parse_disconnect_marker

logger = logging.getLogger(__name__)

ROOM_CLEANUP_INTERVAL = 60  # seconds between inactive room sweeps


class AutoGameFlowService:
    """Manages automatic phase transitions and timing for game rooms."""

    def __init__(self, broadcast_service, game_flow_service, presence_service, vote_tally_service,
                 room_state_service, room_registry_service, game_settings,
                 clock: Callable[[], float] = time.time):
        """Initialize the auto game flow service.

        Args:
            broadcast_service: Service for broadcasting messages to rooms
            game_flow_service: Phase transitions
            presence_service: Player presence tracking
            vote_tally_service: Vote completion and scoring
            room_state_service: Store-backed room state access
            room_registry_service: Room index
            game_settings: Timing configuration
            clock: Time source, replaceable in tests
        """
        self.broadcast_service = broadcast_service
        self.game_flow = game_flow_service
        self.presence = presence_service
        self.vote_tally = vote_tally_service
        self.room_state = room_state_service
        self.room_registry = room_registry_service
        self.game_settings = game_settings
        self.check_interval = game_settings.game_flow_check_interval
        self._clock = clock
        self._last_cleanup = clock()
        self.running = False
        self.timer_thread = None

    def start(self):
        """Start the background timer thread."""
        if self.running:
            return
        self.running = True
        self.timer_thread = threading.Thread(target=self._timer_loop, daemon=True)
        self.timer_thread.start()
        logger.info("AutoGameFlowService started")

    def stop(self):
        """Stop the automatic game flow service."""
        self.running = False
        if self.timer_thread is not None and self.timer_thread.is_alive():
            self.timer_thread.join(timeout=2)
        logger.info("AutoGameFlowService stopped")

    def _timer_loop(self):
        """Main timer loop that checks for phase transitions."""
        while self.running:
            try:
                self._check_phase_deadlines()

                # Clean up inactive rooms (less frequently)
                now = self._clock()
                if now - self._last_cleanup >= ROOM_CLEANUP_INTERVAL:
                    self._last_cleanup = now
                    self._cleanup_inactive_rooms()
            except Exception as e:
                logger.error(f"Error in timer loop: {e}")
            time.sleep(self.check_interval)

    def _check_phase_deadlines(self):
        """Check all rooms for passed phase deadlines and advance if needed."""
        now = self._clock()
        for pin in self.room_registry.list_rooms():
            try:
                deadline = self.room_state.get_phase_deadline(pin)
                if deadline is None or now < deadline:
                    continue
                self._handle_phase_timeout(pin)
            except Exception as e:
                logger.error(f"Error checking phase deadline for room {pin}: {e}")

    def _cleanup_inactive_rooms(self):
        """Clean up rooms that have been inactive for too long."""
        try:
            cleaned_count = self.room_registry.cleanup_inactive_rooms(
                self._clock(), self.game_settings.room_cleanup_inactive_minutes)
            if cleaned_count > 0:
                logger.info(f"Cleaned up {cleaned_count} inactive rooms")
        except Exception as e:
            logger.error(f"Error cleaning up inactive rooms: {e}")

    def _handle_phase_timeout(self, pin: str):
        phase = self.room_state.get_phase(pin)
        round_index = self.room_state.get_current_round(pin)

        if phase == GamePhase.ROUND:
            if self.game_flow.begin_voting(pin, round_index):
                logger.info(f"Round {round_index} of room {pin} moved to voting")
                self.broadcast_service.broadcast_voting_started(pin, round_index)
                # Nobody may be eligible to vote if only the author is connected
                self.handle_player_disconnect_game_impact(pin)

        elif phase == GamePhase.REVEAL and self.game_settings.reveal_display_seconds:
            result = self.game_flow.advance_round(pin, round_index)
            if result is not None:
                logger.info(f"Reveal of round {round_index} in room {pin} timed out, advancing")
                self.broadcast_service.broadcast_round_advanced(pin, result)

        else:
            # Stale deadline left behind by a concurrent transition
            self.room_state.set_phase_deadline(pin, None)

    def handle_expired_key(self, key: str):
        """Handle a store key expiry; disconnect markers trigger permanent removal."""
        parsed = parse_disconnect_marker(key)
        if parsed is None:
            return

        pin, user_id = parsed
        try:
            if not self.presence.handle_marker_expired(pin, user_id):
                return
            self.broadcast_service.broadcast_roster(pin)
            self.handle_player_disconnect_game_impact(pin)
        except Exception as e:
            logger.error(f"Error removing player {user_id} from room {pin} after grace period: {e}")

    def handle_player_disconnect_game_impact(self, pin: str):
        """Score the round if the departed player was the last pending voter."""
        try:
            tally = self.vote_tally.evaluate_completion(pin)
            if tally is not None:
                logger.info(f"Round {tally.round} of room {pin} completed after a player left")
                self.broadcast_service.broadcast_vote_result(pin, tally)
        except Exception as e:
            logger.error(f"Error handling disconnect game impact for room {pin}: {e}")
