"""
Tests for the event lock strategies and their wiring into registration.
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from checkin.services.event_lock_service import RedisEventLock
from checkin.services.interfaces import NoEventLock
from checkin.services.lock_factory import get_event_lock_strategy
from checkin.services import registration_service
from checkin.schemas.registration import RegistrationCreate
from checkin.core.exceptions import CapacityExceededError
from conftest import make_event


class RecordingLock:
    def __init__(self, acquire_result=True, acquire_error=None):
        self.acquire_result = acquire_result
        self.acquire_error = acquire_error
        self.released = False

    async def acquire(self):
        if self.acquire_error:
            raise self.acquire_error
        return self.acquire_result

    async def release(self):
        self.released = True


class FakeRedis:
    def __init__(self, lock: RecordingLock):
        self._lock = lock
        self.keys: list[str] = []

    def lock(self, name, timeout=None, blocking_timeout=None):
        self.keys.append(name)
        return self._lock


def _redis_lock(lock: RecordingLock) -> tuple[RedisEventLock, FakeRedis]:
    event_lock = RedisEventLock()
    fake = FakeRedis(lock)
    event_lock.redis = fake
    return event_lock, fake


def test_default_strategy_is_database_only():
    assert isinstance(get_event_lock_strategy(), NoEventLock)


@pytest.mark.asyncio
async def test_redis_lock_held_and_released():
    recording = RecordingLock()
    event_lock, fake = _redis_lock(recording)

    async with event_lock.hold(12):
        assert fake.keys == ["event-lock:12"]
        assert recording.released is False

    assert recording.released is True


@pytest.mark.asyncio
async def test_redis_lock_fails_open_when_unreachable():
    """An unreachable Redis does not block the flow or try to release."""
    recording = RecordingLock(acquire_error=RedisConnectionError("connection refused"))
    event_lock, _ = _redis_lock(recording)

    entered = False
    async with event_lock.hold(3):
        entered = True

    assert entered
    assert recording.released is False


@pytest.mark.asyncio
async def test_redis_lock_fails_open_on_wait_timeout():
    recording = RecordingLock(acquire_result=False)
    event_lock, _ = _redis_lock(recording)

    async with event_lock.hold(3):
        pass

    assert recording.released is False


@pytest.mark.asyncio
async def test_database_still_guards_capacity_without_lock(db_session, session_factory):
    """With the lock failing open, the conditional update still enforces capacity."""
    event = await make_event(db_session, "Tiny Room", 1)
    event_lock, _ = _redis_lock(RecordingLock(acquire_error=RedisConnectionError("down")))

    async with session_factory() as session:
        await registration_service.register_for_event(
            session,
            event.id,
            RegistrationCreate(user_id=1, user_email="one@example.com", user_name="One"),
            event_lock,
        )
        await session.commit()

    async with session_factory() as session:
        with pytest.raises(CapacityExceededError):
            await registration_service.register_for_event(
                session,
                event.id,
                RegistrationCreate(user_id=2, user_email="two@example.com", user_name="Two"),
                event_lock,
            )
