from __future__ import annotations

import logging

from journal_assistant.models.journal import EntryCreate, EntryFilters, EntryUpdate, JournalEntry
from journal_assistant.services.contracts import EntryCacheProtocol, EntryStoreProtocol

logger = logging.getLogger(__name__)


class EntryService:
    """Owner-scoped entry workflows shared by the entries API and the journal tools.

    Plain reads (full list, single entry) go through an optional Redis cache. Filtered
    queries always hit the store. Any write drops every cached read of the owner.
    """

    def __init__(self, store: EntryStoreProtocol, cache: EntryCacheProtocol | None = None) -> None:
        self._store = store
        self._cache = cache

    async def list_entries(self, owner_id: str) -> list[JournalEntry]:
        if self._cache is not None:
            cached = await self._cache.get_entries(owner_id)
            if cached is not None:
                logger.debug("entry cache hit", extra={"cache_area": "entry_list"})
                return cached

        entries = await self._store.list(owner_id)
        if self._cache is not None:
            await self._cache.set_entries(owner_id, entries)
        return entries

    async def query_entries(self, owner_id: str, filters: EntryFilters) -> list[JournalEntry]:
        return await self._store.list(owner_id, filters)

    async def get_entry(self, owner_id: str, entry_id: str) -> JournalEntry | None:
        if self._cache is not None:
            cached = await self._cache.get_entry(owner_id, entry_id)
            if cached is not None:
                logger.debug("entry cache hit", extra={"cache_area": "entry"})
                return cached.entry

        entry = await self._store.get(owner_id, entry_id)
        if self._cache is not None:
            await self._cache.set_entry(owner_id, entry_id, entry)
        return entry

    async def create_entry(self, owner_id: str, fields: EntryCreate) -> JournalEntry:
        entry = await self._store.create(owner_id, fields)
        await self._invalidate_owner(owner_id)
        return entry

    async def update_entry(self, owner_id: str, entry_id: str, changes: EntryUpdate) -> JournalEntry | None:
        entry = await self._store.update(owner_id, entry_id, changes)
        if entry is not None:
            await self._invalidate_owner(owner_id)
        return entry

    async def delete_entry(self, owner_id: str, entry_id: str) -> bool:
        deleted = await self._store.delete(owner_id, entry_id)
        if deleted:
            await self._invalidate_owner(owner_id)
        return deleted

    async def _invalidate_owner(self, owner_id: str) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.invalidate_owner(owner_id)
        except Exception:
            logger.exception("entry cache invalidation failed", extra={"owner_id": owner_id})
