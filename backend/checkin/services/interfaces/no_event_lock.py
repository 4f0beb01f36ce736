"""
Database-only strategy - no extra lock.
Relies entirely on the conditional capacity update and unique index.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from checkin.services.interfaces.event_lock import EventLock


class NoEventLock(EventLock):
    """
    No serialization beyond the database.

    Use when:
    - Single database, moderate contention per event
    - Redis is not deployed
    """

    @asynccontextmanager
    async def hold(self, event_id: int) -> AsyncIterator[None]:
        yield
