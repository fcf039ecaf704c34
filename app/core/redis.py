"""Shared Redis/Valkey client backing the tenant and permission caches."""
from __future__ import annotations
from functools import lru_cache
import redis
from core.config import settings

_TRUTHY = ("1", "true", "yes")


@lru_cache
def get_redis() -> redis.Redis:
    # Building the client opens no connection; that happens on the first command.
    return redis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        password=settings.REDIS_PASSWORD,
        ssl=settings.REDIS_SSL.lower() in _TRUTHY,
        ssl_cert_reqs=None,
        decode_responses=True,
        socket_keepalive=True,
    )
