from __future__ import annotations

from collections.abc import Mapping, Sequence
import logging
from typing import Any

from journal_assistant.models.chat import (
    ChatMessage,
    ChatSession,
    ChatSessionSummary,
    dump_transcript,
    validate_transcript,
)
from journal_assistant.services.contracts import DatabaseServiceProtocol
from journal_assistant.services.entry_store import is_valid_id

logger = logging.getLogger(__name__)

SESSION_LIST_LIMIT = 50

_SESSION_COLUMNS = "id::text AS id, owner_id, title, messages, created_at, updated_at"


def session_from_row(row: Mapping[str, Any]) -> ChatSession:
    return ChatSession(
        id=str(row["id"]),
        owner_id=row["owner_id"],
        title=row["title"],
        messages=validate_transcript(row["messages"] or []),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresChatSessionStore:
    """Chat transcripts stored as JSONB in ``chat_sessions``.

    Transcripts are validated before every write; a malformed transcript raises
    ``InvalidTranscriptError`` and nothing is persisted.
    """

    def __init__(self, database: DatabaseServiceProtocol) -> None:
        self._database = database

    async def create(
        self,
        owner_id: str,
        messages: Sequence[ChatMessage | dict[str, Any]],
        title: str | None = None,
    ) -> ChatSession:
        transcript = validate_transcript(messages)
        row = await self._database.fetchrow(
            f"""
            INSERT INTO chat_sessions (owner_id, title, messages)
            VALUES ($1, $2, $3)
            RETURNING {_SESSION_COLUMNS}
            """,
            owner_id,
            title,
            dump_transcript(transcript),
        )
        if row is None:
            raise RuntimeError("failed to create chat session")
        session = session_from_row(row)
        logger.info("chat session created", extra={"session_id": session.id, "message_count": len(transcript)})
        return session

    async def get(self, owner_id: str, session_id: str) -> ChatSession | None:
        if not is_valid_id(session_id):
            return None
        row = await self._database.fetchrow(
            f"SELECT {_SESSION_COLUMNS} FROM chat_sessions WHERE id = $1::uuid AND owner_id = $2",
            session_id,
            owner_id,
        )
        return session_from_row(row) if row is not None else None

    async def list(self, owner_id: str) -> list[ChatSessionSummary]:
        rows = await self._database.fetch(
            """
            SELECT id::text AS id, title, created_at, updated_at
            FROM chat_sessions
            WHERE owner_id = $1
            ORDER BY updated_at DESC
            LIMIT $2
            """,
            owner_id,
            SESSION_LIST_LIMIT,
        )
        return [
            ChatSessionSummary(
                id=str(row["id"]),
                title=row["title"],
                created_at=row["created_at"],
                updated_at=row["updated_at"],
            )
            for row in rows
        ]

    async def update(
        self,
        owner_id: str,
        session_id: str,
        *,
        messages: Sequence[ChatMessage | dict[str, Any]] | None = None,
        title: str | None = None,
    ) -> ChatSession | None:
        if not is_valid_id(session_id):
            return None

        args: list[Any] = [session_id, owner_id]
        assignments: list[str] = []
        if messages is not None:
            args.append(dump_transcript(validate_transcript(messages)))
            assignments.append(f"messages = ${len(args)}")
        if title is not None:
            args.append(title)
            assignments.append(f"title = ${len(args)}")
        assignments.append("updated_at = NOW()")

        row = await self._database.fetchrow(
            f"""
            UPDATE chat_sessions
            SET {', '.join(assignments)}
            WHERE id = $1::uuid AND owner_id = $2
            RETURNING {_SESSION_COLUMNS}
            """,
            *args,
        )
        return session_from_row(row) if row is not None else None

    async def delete(self, owner_id: str, session_id: str) -> bool:
        if not is_valid_id(session_id):
            return False
        row = await self._database.fetchrow(
            "DELETE FROM chat_sessions WHERE id = $1::uuid AND owner_id = $2 RETURNING id",
            session_id,
            owner_id,
        )
        return row is not None
