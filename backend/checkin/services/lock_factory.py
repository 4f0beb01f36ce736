"""
Event lock strategy factory.
Configures which serialization strategy registration flows use.
"""

from typing import Optional

from checkin.services.interfaces.event_lock import EventLock
from checkin.services.interfaces.no_event_lock import NoEventLock
from checkin.services.event_lock_service import RedisEventLock
from checkin.core.config import get_settings


def get_event_lock_strategy() -> EventLock:
    """
    Build the configured strategy.

    - "none" (default): database guards only
    - "redis": RedisEventLock around each register/cancel flow
    """
    strategy = get_settings().EVENT_LOCK_STRATEGY

    if strategy == "redis":
        return RedisEventLock()
    return NoEventLock()


_strategy: Optional[EventLock] = None


def get_event_lock() -> EventLock:
    """Get event lock strategy singleton."""
    global _strategy
    if _strategy is None:
        _strategy = get_event_lock_strategy()
    return _strategy
