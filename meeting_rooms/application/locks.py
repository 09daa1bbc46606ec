"""Per-room serialization for availability check + write"""
import asyncio
from typing import Dict
from uuid import UUID


class RoomLockRegistry:
    """Hands out one asyncio.Lock per room id.

    Lock creation happens without awaiting, so two coroutines asking for
    the same room always receive the same lock.
    """

    def __init__(self):
        self._locks: Dict[UUID, asyncio.Lock] = {}

    def lock_for(self, room_id: UUID) -> asyncio.Lock:
        lock = self._locks.get(room_id)
        if lock is None:
            lock = self._locks[room_id] = asyncio.Lock()
        return lock
