from contextlib import contextmanager

from voucherspot.extensions import get_redis_client


class LockUnavailable(RuntimeError):
    pass


@contextmanager
def redis_lock(key, ttl=300):
    """Non-blocking lock; raises LockUnavailable when another holder exists.

    Without a Redis connection the body runs unguarded.
    """
    client = get_redis_client()
    if client is None:
        yield
        return

    lock = client.lock(key, timeout=ttl)
    if not lock.acquire(blocking=False):
        raise LockUnavailable(f"Duplicate task execution prevented: {key}")

    try:
        yield
    finally:
        lock.release()
