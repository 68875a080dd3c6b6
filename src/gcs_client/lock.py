"""Reader/writer lock and the token cell built on it."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from .models import Token


class RWLock:
    """asyncio reader/writer lock.

    Any number of readers may hold the lock while no writer does. A writer
    holds it alone. Once a writer is waiting, new readers queue behind it.
    """

    def __init__(self):
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @property
    def readers(self) -> int:
        return self._readers

    @property
    def writing(self) -> bool:
        return self._writer

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and not self._writers_waiting
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._writer and not self._readers
                )
            finally:
                self._writers_waiting -= 1
                # readers parked behind a cancelled writer must re-check
                self._cond.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class TokenCell:
    """Holds exactly one current Token behind an RWLock.

    Readers see either the old or the new token, never anything in between.
    """

    def __init__(self, token: Token):
        self._token = token
        self._lock = RWLock()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[Token]:
        """Read view of the current token; held until the block exits."""
        async with self._lock.read():
            yield self._token

    async def get(self) -> Token:
        async with self.read() as token:
            return token

    async def replace(self, token: Token) -> None:
        """Install ``token`` under the write lock. Does not suspend once held."""
        async with self._lock.write():
            self._token = token
