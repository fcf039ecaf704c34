# app/core/cache.py
"""
Per-user permission map cache.

Keyed by user id, entries expire after a TTL and are dropped explicitly
whenever that user's permissions are granted or revoked.
"""
from __future__ import annotations
import json
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple
from domain.models import PermissionEntry, PermissionMap

KEY_PREFIX = "perm:user:"


def _key(user_id: str) -> str:
    return f"{KEY_PREFIX}{user_id}"


def _dump(perms: PermissionMap) -> str:
    return json.dumps({table: entry.model_dump(mode="json") for table, entry in perms.items()})


def _load(raw: str) -> PermissionMap:
    return {table: PermissionEntry(**entry) for table, entry in json.loads(raw).items()}


class PermissionCache(ABC):
    """Interface shared by the cache backends."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[PermissionMap]: ...

    @abstractmethod
    def set(self, user_id: str, perms: PermissionMap) -> None: ...

    @abstractmethod
    def invalidate(self, *user_ids: str) -> None: ...


class MemoryPermissionCache(PermissionCache):
    """Single-process cache; safe to share across the request threadpool."""

    def __init__(self, ttl: int, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[str, float]] = {}

    def get(self, user_id: str) -> Optional[PermissionMap]:
        with self._lock:
            hit = self._entries.get(user_id)
            if hit is None:
                return None
            raw, expires_at = hit
            if self._clock() >= expires_at:
                del self._entries[user_id]
                return None
        return _load(raw)

    def set(self, user_id: str, perms: PermissionMap) -> None:
        # Stored serialized so callers can't mutate a cached map in place.
        raw = _dump(perms)
        with self._lock:
            self._entries[user_id] = (raw, self._clock() + self.ttl)

    def invalidate(self, *user_ids: str) -> None:
        with self._lock:
            for user_id in user_ids:
                self._entries.pop(user_id, None)


class RedisPermissionCache(PermissionCache):
    """Cache shared by every worker process through Redis/Valkey."""

    def __init__(self, client: Any, ttl: int) -> None:
        self.client = client
        self.ttl = ttl

    def get(self, user_id: str) -> Optional[PermissionMap]:
        hit = self.client.get(_key(user_id))
        if hit is None:
            return None
        return _load(hit)

    def set(self, user_id: str, perms: PermissionMap) -> None:
        self.client.setex(_key(user_id), self.ttl, _dump(perms))

    def invalidate(self, *user_ids: str) -> None:
        if user_ids:
            self.client.delete(*(_key(u) for u in user_ids))
