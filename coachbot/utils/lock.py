from contextlib import contextmanager
import time
import uuid

from coachbot.settings import settings
from coachbot.store.redis_conn import get_redis

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockUnavailableError(RuntimeError):
    pass


@contextmanager
def redis_lock(key: str, ttl_ms: int, retries: int = 0, wait_sec: float = 0.1, redis=None):
    """
    Single-owner Redis lock (SET NX PX). Spins `retries` times before giving up.
    """
    r = redis or get_redis()
    token = uuid.uuid4().hex
    acquired = bool(r.set(key, token, px=ttl_ms, nx=True))

    try:
        if not acquired:
            for _ in range(retries):
                time.sleep(wait_sec)
                if r.set(key, token, px=ttl_ms, nx=True):
                    acquired = True
                    break

            if not acquired:
                raise LockUnavailableError(f"Could not acquire lock {key}")

        yield
    finally:
        if acquired:
            # Release only if we own it
            try:
                r.eval(_RELEASE_SCRIPT, 1, key, token)
            except Exception:
                pass


def record_lock(address: str):
    """
    Serializes every mutation of one subject's records, across both flows
    (inbound reply, command, sweep, delayed job).
    """
    return redis_lock(
        f"lock:subject:{address}",
        ttl_ms=settings.RECORD_LOCK_TTL_MS,
        retries=settings.RECORD_LOCK_RETRIES,
    )


def sweep_lock(name: str):
    """Non-blocking: an overlapping run of the same sweep fails fast."""
    return redis_lock(f"lock:sweep:{name}", ttl_ms=settings.SWEEP_LOCK_TTL_MS, retries=0)
