from __future__ import annotations

from redis import Redis

from meetai.settings import get_settings


_redis_bytes: Redis | None = None


def get_redis_bytes() -> Redis:
    """
    Redis client that returns raw bytes.
    Required for RQ, which stores pickled binary blobs in Redis.
    """
    global _redis_bytes
    if _redis_bytes is None:
        settings = get_settings()
        _redis_bytes = Redis.from_url(settings.REDIS_URL, decode_responses=False)
    return _redis_bytes
