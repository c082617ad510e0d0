from collections.abc import Sequence
import json
import logging
from typing import Any

import asyncpg

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS journal_entries (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    owner_id TEXT NOT NULL,
    content TEXT NOT NULL,
    summary VARCHAR(100),
    entry_date DATE NOT NULL DEFAULT CURRENT_DATE,
    mood TEXT CHECK (mood IN ('very_sad', 'sad', 'neutral', 'happy', 'very_happy')),
    tags TEXT[] NOT NULL DEFAULT '{}',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS journal_entries_owner_date_idx
    ON journal_entries (owner_id, entry_date DESC, created_at DESC);

CREATE INDEX IF NOT EXISTS journal_entries_tags_idx
    ON journal_entries USING GIN (tags);

CREATE TABLE IF NOT EXISTS chat_sessions (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    owner_id TEXT NOT NULL,
    title TEXT,
    messages JSONB NOT NULL DEFAULT '[]'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS chat_sessions_owner_updated_idx
    ON chat_sessions (owner_id, updated_at DESC);
"""


class DatabaseService:
    """Thin asyncpg wrapper used by the journal and chat session stores."""

    def __init__(self, dsn: str, schema_sql: str | None = None) -> None:
        self._dsn = dsn
        self._schema_sql = SCHEMA_SQL if schema_sql is None else schema_sql
        self._pool: asyncpg.Pool | None = None

    async def _initialize_connection(self, connection: asyncpg.Connection) -> None:
        # JSONB columns round-trip as Python lists/dicts.
        await connection.set_type_codec("jsonb", encoder=json.dumps, decoder=json.loads, schema="pg_catalog")

    async def connect(self) -> None:
        if self._pool is None:
            logger.info("creating database connection pool")
            self._pool = await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=1,
                max_size=5,
                init=self._initialize_connection,
            )

    async def disconnect(self) -> None:
        if self._pool is not None:
            logger.info("closing database connection pool")
            await self._pool.close()
            self._pool = None

    async def apply_schema(self) -> None:
        if not self._schema_sql.strip():
            return
        logger.info("applying journal schema")
        await self.execute(self._schema_sql)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self._acquire() as connection:
            logger.debug("executing fetchrow", extra={"args_count": len(args)})
            return await connection.fetchrow(query, *args)

    async def fetch(self, query: str, *args: Any) -> Sequence[asyncpg.Record]:
        async with self._acquire() as connection:
            logger.debug("executing fetch", extra={"args_count": len(args)})
            return await connection.fetch(query, *args)

    async def execute(self, query: str, *args: Any) -> str:
        async with self._acquire() as connection:
            logger.debug("executing statement", extra={"args_count": len(args)})
            return await connection.execute(query, *args)

    def _acquire(self) -> Any:
        if self._pool is None:
            raise RuntimeError("database service is not connected")
        return self._pool.acquire()
