"""
Shared room store backends for TallTales.
"""

from .keys import RoomKeys, ROOMS_INDEX_KEY, parse_disconnect_marker
from .room_store import RoomStore, StoreError, create_room_store
from .memory_store import MemoryRoomStore

__all__ = [
    'RoomKeys',
    'ROOMS_INDEX_KEY',
    'parse_disconnect_marker',
    'RoomStore',
    'StoreError',
    'create_room_store',
    'MemoryRoomStore'
]
