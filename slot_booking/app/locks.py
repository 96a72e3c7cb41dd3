import logging

from redis.exceptions import LockError


class SweepLock:
    """Mutual exclusion around the expiry sweep. Subclasses decide the scope."""

    def acquire(self) -> bool:
        raise NotImplementedError

    def release(self) -> None:
        raise NotImplementedError


class NullSweepLock(SweepLock):
    """Single-instance deployments: every sweep may run."""

    def acquire(self) -> bool:
        return True

    def release(self) -> None:
        pass


class RedisSweepLock(SweepLock):
    """
    Lease held in Redis so only one instance sweeps at a time.

    Built on redis-py's ``Lock``: the key expires after ``ttl`` seconds, so a
    crashed holder cannot block sweeps for longer than that, and release only
    deletes the key if this holder's token is still the one stored.
    """

    def __init__(self, redis_client, lock_key="lock:expire-reservations", ttl=60):
        self.lock_key = lock_key
        self._lock = redis_client.lock(lock_key, timeout=ttl, blocking=False)

    def acquire(self) -> bool:
        return bool(self._lock.acquire())

    def release(self) -> None:
        try:
            self._lock.release()
        except LockError as e:
            logging.warning(f"Lock {self.lock_key} was not held at release: {e}")
