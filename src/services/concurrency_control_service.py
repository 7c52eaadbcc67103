"""
Concurrency Control Service for TallTales

Short-lived leases held in the shared room store. A lease is a
set-if-not-exists key with a TTL; whoever creates it owns the operation it
names, and every concurrent duplicate sees the key already present.
"""

import logging

from src.store.keys import RoomKeys

logger = logging.getLogger(__name__)


class ConcurrencyControlService:
    """Manages store-backed leases keyed by (room, round, operation)."""

    def __init__(self, store, game_settings):
        self.store = store
        self.game_settings = game_settings

    def acquire_round_lease(self, pin: str, round_index: int, operation: str) -> bool:
        """
        Try to take the lease for an operation on a given round.

        Args:
            pin: Room PIN
            round_index: Round the operation applies to
            operation: Operation name, e.g. 'scored' or 'advance'

        Returns:
            True if this caller won the lease, False if it is already held
        """
        key = RoomKeys(pin).round_lease(round_index, operation)
        acquired = self.store.set(key, '1', ex=self.game_settings.lease_ttl_seconds, nx=True)
        if acquired:
            logger.debug(f"Acquired lease {key}")
        else:
            logger.info(f"Lease {key} already held, skipping duplicate {operation}")
        return acquired

    def release_round_leases(self, pin: str) -> int:
        """
        Remove every round lease of a room.

        Returns:
            Number of leases removed
        """
        keys = self.store.scan_keys(RoomKeys(pin).round_lease_pattern)
        if not keys:
            return 0
        removed = self.store.delete(*keys)
        logger.debug(f"Cleared {removed} round leases for room {pin}")
        return removed
