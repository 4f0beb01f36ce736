"""
Redis-backed per-event lock.
Implements the EventLock interface using redis.asyncio's Lock.

Fail-open policy:
  If Redis is unreachable or the lock cannot be acquired in time, the flow
  proceeds without it. The database remains authoritative: the conditional
  capacity update and the (event_id, user_id) unique index still reject
  oversell and duplicates. Redis only serializes contenders so they stop
  competing for the same event row.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis.exceptions import RedisError

from checkin.core.config import get_settings
from checkin.core.logging import get_logger
from checkin.core.metrics import event_lock_errors
from checkin.infrastructure.redis_client import get_redis
from checkin.services.interfaces.event_lock import EventLock

logger = get_logger(__name__)


class RedisEventLock(EventLock):
    """
    Lock key pattern: "event-lock:{event_id}".

    Use when:
    - Many concurrent registrations for the same event (ticket drops)
    - Several API replicas share one database
    """

    def __init__(self):
        settings = get_settings()
        self.redis = get_redis()
        self.timeout = settings.EVENT_LOCK_TIMEOUT
        self.wait = settings.EVENT_LOCK_WAIT

    @asynccontextmanager
    async def hold(self, event_id: int) -> AsyncIterator[None]:
        lock = self.redis.lock(
            f"event-lock:{event_id}",
            timeout=self.timeout,
            blocking_timeout=self.wait,
        )
        try:
            acquired = await lock.acquire()
        except (RedisError, OSError) as e:
            event_lock_errors.inc()
            logger.warning("event_lock_unavailable", event_id=event_id, error=str(e))
            acquired = False
        else:
            if not acquired:
                logger.warning("event_lock_wait_expired", event_id=event_id)

        try:
            yield
        finally:
            if acquired:
                try:
                    await lock.release()
                except (RedisError, OSError) as e:
                    # Lock already expired; nothing else holds state for us
                    event_lock_errors.inc()
                    logger.warning("event_lock_release_failed", event_id=event_id, error=str(e))
