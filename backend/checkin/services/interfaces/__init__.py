"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .event_lock import EventLock
from .no_event_lock import NoEventLock

__all__ = ['EventLock', 'NoEventLock']
