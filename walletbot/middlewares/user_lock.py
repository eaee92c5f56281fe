"""Serialize events per Telegram user.

Registered as an *outer* middleware so the lock is already held while the
routers' filters read the user's pending flow. Different users never wait
on each other.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict

from aiogram import BaseMiddleware

logger = logging.getLogger(__name__)


class UserLocks:
    """Locks exist only while some event of that user holds or awaits one."""

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}
        self._users: Dict[int, int] = {}

    def for_user(self, uid: int) -> asyncio.Lock:
        lock = self._locks.get(uid)
        if lock is None:
            lock = self._locks[uid] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, uid: int):
        lock = self.for_user(uid)
        if lock.locked():
            logger.debug("User %s busy, queueing event", uid)
        self._users[uid] = self._users.get(uid, 0) + 1
        try:
            async with lock:
                yield lock
        finally:
            self._users[uid] -= 1
            if not self._users[uid]:
                del self._users[uid]
                del self._locks[uid]

    def __len__(self) -> int:
        return len(self._locks)


class UserLockMiddleware(BaseMiddleware):
    def __init__(self, locks: UserLocks):
        self.locks = locks

    async def __call__(self, handler, event, data):
        user = data.get("event_from_user")
        if user is None:
            return await handler(event, data)

        async with self.locks.hold(user.id):
            return await handler(event, data)
