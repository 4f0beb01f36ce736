"""
Event lock strategy interface.
Allows swapping how register/cancel flows for one event are serialized.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager


class EventLock(ABC):
    """
    Interface for per-event serialization.

    Implementations:
    - NoEventLock: rely on the database's conditional updates and unique index
    - RedisEventLock: hold a Redis lock per event around the whole flow

    Either way the database guards stay authoritative; a lock only reduces
    contention on the event row.
    """

    @abstractmethod
    def hold(self, event_id: int) -> AbstractAsyncContextManager[None]:
        """
        Async context manager held for the duration of one register/cancel flow.

        Args:
            event_id: Event whose capacity is being changed
        """
        pass
