"""
Keyed asyncio locks.
"""
import asyncio
import weakref
from typing import Hashable


class KeyedLock:
    """
    Hands out one asyncio.Lock per key.

    Locks are held weakly, so a key's lock disappears once no coroutine is
    holding or waiting on it.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[Hashable, asyncio.Lock]" = weakref.WeakValueDictionary()

    def __call__(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock
