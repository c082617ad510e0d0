from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any
import uuid

from journal_assistant.core.dates import Clock
from journal_assistant.models.journal import EntryCreate, EntryFilters, EntryUpdate, JournalEntry
from journal_assistant.services.contracts import DatabaseServiceProtocol

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = "id::text AS id, owner_id, content, summary, entry_date, mood, tags, created_at, updated_at"


def is_valid_id(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def entry_from_row(row: Mapping[str, Any]) -> JournalEntry:
    return JournalEntry(
        id=str(row["id"]),
        owner_id=row["owner_id"],
        content=row["content"],
        summary=row["summary"],
        entry_date=row["entry_date"],
        mood=row["mood"],
        tags=list(row["tags"] or []),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresEntryStore:
    """Journal entry persistence on top of ``journal_entries``.

    Every statement carries ``owner_id`` in its WHERE clause. Ids that are not UUIDs
    short-circuit to "not found" instead of surfacing a Postgres cast error.
    """

    def __init__(self, database: DatabaseServiceProtocol, clock: Clock) -> None:
        self._database = database
        self._clock = clock

    async def create(self, owner_id: str, fields: EntryCreate) -> JournalEntry:
        row = await self._database.fetchrow(
            f"""
            INSERT INTO journal_entries (owner_id, content, summary, entry_date, mood, tags)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {_ENTRY_COLUMNS}
            """,
            owner_id,
            fields.content,
            fields.summary,
            fields.entry_date or self._clock(),
            fields.mood.value if fields.mood else None,
            list(fields.tags),
        )
        if row is None:
            raise RuntimeError("failed to create journal entry")
        entry = entry_from_row(row)
        logger.info("journal entry created", extra={"entry_id": entry.id, "entry_date": str(entry.entry_date)})
        return entry

    async def get(self, owner_id: str, entry_id: str) -> JournalEntry | None:
        if not is_valid_id(entry_id):
            return None
        row = await self._database.fetchrow(
            f"SELECT {_ENTRY_COLUMNS} FROM journal_entries WHERE id = $1::uuid AND owner_id = $2",
            entry_id,
            owner_id,
        )
        return entry_from_row(row) if row is not None else None

    async def list(self, owner_id: str, filters: EntryFilters | None = None) -> list[JournalEntry]:
        filters = filters or EntryFilters()
        clauses = ["owner_id = $1"]
        args: list[Any] = [owner_id]

        if filters.since is not None:
            args.append(filters.since)
            clauses.append(f"entry_date >= ${len(args)}")
        if filters.search:
            args.append(f"%{escape_like(filters.search)}%")
            clauses.append(f"content ILIKE ${len(args)}")
        if filters.tag:
            args.append(filters.tag)
            clauses.append(f"${len(args)} = ANY(tags)")

        query = (
            f"SELECT {_ENTRY_COLUMNS} FROM journal_entries WHERE {' AND '.join(clauses)} "
            "ORDER BY entry_date DESC, created_at DESC"
        )
        if filters.limit is not None:
            args.append(filters.limit)
            query += f" LIMIT ${len(args)}"

        rows = await self._database.fetch(query, *args)
        return [entry_from_row(row) for row in rows]

    async def update(self, owner_id: str, entry_id: str, changes: EntryUpdate) -> JournalEntry | None:
        if not is_valid_id(entry_id):
            return None

        supplied = changes.changes()
        if "mood" in supplied and supplied["mood"] is not None:
            supplied["mood"] = str(supplied["mood"])

        args: list[Any] = [entry_id, owner_id]
        assignments: list[str] = []
        for column, value in supplied.items():
            args.append(value)
            assignments.append(f"{column} = ${len(args)}")
        assignments.append("updated_at = NOW()")

        row = await self._database.fetchrow(
            f"""
            UPDATE journal_entries
            SET {', '.join(assignments)}
            WHERE id = $1::uuid AND owner_id = $2
            RETURNING {_ENTRY_COLUMNS}
            """,
            *args,
        )
        if row is None:
            return None
        logger.info("journal entry updated", extra={"entry_id": entry_id, "fields": sorted(supplied)})
        return entry_from_row(row)

    async def delete(self, owner_id: str, entry_id: str) -> bool:
        if not is_valid_id(entry_id):
            return False
        row = await self._database.fetchrow(
            "DELETE FROM journal_entries WHERE id = $1::uuid AND owner_id = $2 RETURNING id",
            entry_id,
            owner_id,
        )
        return row is not None
