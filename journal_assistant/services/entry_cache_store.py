from __future__ import annotations

import logging
import random

from pydantic import BaseModel, TypeAdapter, ValidationError
from redis.asyncio import Redis

from journal_assistant.models.journal import JournalEntry

logger = logging.getLogger(__name__)

_ENTRY_LIST = TypeAdapter(list[JournalEntry])


class CachedEntry(BaseModel):
    """Single-entry cache slot; ``entry`` is ``None`` for a remembered not-found lookup."""

    entry: JournalEntry | None = None


class RedisEntryCacheStore:
    """Read-through cache for an owner's entries.

    Layout under ``{prefix}:v1:owner:{owner_id}``:

    - ``:list`` holds the full newest-first entry list,
    - ``:entry:{entry_id}`` holds a :class:`CachedEntry`,
    - ``:keys`` is a set of every key written for the owner, dropped as a whole on write.
    """

    def __init__(
        self,
        redis_url: str,
        *,
        key_prefix: str = "assistant:entry-cache",
        entry_ttl_seconds: int = 30,
        list_ttl_seconds: int = 20,
        negative_ttl_seconds: int = 8,
        jitter_max_seconds: int = 5,
        redis_client: Redis | None = None,
    ) -> None:
        self._redis = redis_client if redis_client is not None else Redis.from_url(redis_url, decode_responses=True)
        self._key_prefix = key_prefix.strip(":")
        self._entry_ttl = entry_ttl_seconds
        self._list_ttl = list_ttl_seconds
        self._negative_ttl = negative_ttl_seconds
        self._jitter_max_seconds = max(0, jitter_max_seconds)

    async def ping(self) -> bool:
        return bool(await self._redis.ping())

    async def get_entries(self, owner_id: str) -> list[JournalEntry] | None:
        raw = await self._redis.get(self._list_key(owner_id))
        if raw is None:
            return None
        try:
            return _ENTRY_LIST.validate_json(raw)
        except ValidationError:
            logger.warning("discarding unreadable cached entry list", extra={"owner_id": owner_id})
            return None

    async def set_entries(self, owner_id: str, entries: list[JournalEntry]) -> None:
        await self._write(owner_id, self._list_key(owner_id), _ENTRY_LIST.dump_json(entries).decode(), self._list_ttl)

    async def get_entry(self, owner_id: str, entry_id: str) -> CachedEntry | None:
        """Return the cached slot, or ``None`` when the lookup has not been cached."""
        raw = await self._redis.get(self._entry_key(owner_id, entry_id))
        if raw is None:
            return None
        try:
            return CachedEntry.model_validate_json(raw)
        except ValidationError:
            logger.warning("discarding unreadable cached entry", extra={"owner_id": owner_id, "entry_id": entry_id})
            return None

    async def set_entry(self, owner_id: str, entry_id: str, entry: JournalEntry | None) -> None:
        ttl = self._entry_ttl if entry is not None else self._negative_ttl
        await self._write(owner_id, self._entry_key(owner_id, entry_id), CachedEntry(entry=entry).model_dump_json(), ttl)

    async def invalidate_owner(self, owner_id: str) -> None:
        owner_keys = self._owner_keys(owner_id)
        members = await self._redis.smembers(owner_keys)
        await self._redis.delete(*members, owner_keys)
        logger.debug("entry cache invalidated", extra={"owner_id": owner_id, "keys": len(members)})

    async def close(self) -> None:
        await self._redis.aclose()

    async def _write(self, owner_id: str, key: str, payload: str, ttl_seconds: int) -> None:
        ttl = max(1, ttl_seconds + random.randint(0, self._jitter_max_seconds))
        await self._redis.set(key, payload, ex=ttl)
        await self._redis.sadd(self._owner_keys(owner_id), key)

    def _owner_prefix(self, owner_id: str) -> str:
        return f"{self._key_prefix}:v1:owner:{owner_id}"

    def _list_key(self, owner_id: str) -> str:
        return f"{self._owner_prefix(owner_id)}:list"

    def _entry_key(self, owner_id: str, entry_id: str) -> str:
        return f"{self._owner_prefix(owner_id)}:entry:{entry_id}"

    def _owner_keys(self, owner_id: str) -> str:
        return f"{self._owner_prefix(owner_id)}:keys"
