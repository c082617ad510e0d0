from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum
import logging
import time
from typing import TYPE_CHECKING, Any, Literal, assert_never
import uuid

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from journal_assistant.agents.tools.contracts import ToolCallRequest, ToolOutcome, ToolRunner
from journal_assistant.core.dates import Clock, compute_streak, days_ago, format_date
from journal_assistant.models.journal import SUMMARY_MAX_CHARS, EntryCreate, EntryFilters, EntryUpdate, JournalEntry, Mood

if TYPE_CHECKING:
    from journal_assistant.services.contracts import EntryServiceProtocol

logger = logging.getLogger(__name__)

QUERY_MAX_DAYS = 90
QUERY_MAX_LIMIT = 20
QUERY_DEFAULT_LIMIT = 10
PERIOD_DAYS: dict[str, int] = {"week": 7, "month": 30, "all": 365 * 10}
INVALID_INPUT_ERROR = "invalid input"


class ToolName(StrEnum):
    SAVE_ENTRY = "save_entry"
    QUERY_ENTRIES = "query_entries"
    ANALYZE_JOURNAL = "analyze_journal"


class SaveEntryInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    entry_id: uuid.UUID | None = Field(default=None, description="ID of the entry to update; omit to create a new entry")
    content: str = Field(..., min_length=1, description="Entry content in first person, markdown formatted")
    summary: str = Field(..., max_length=SUMMARY_MAX_CHARS, description="One-line summary, max 100 chars")
    entry_date: date | None = Field(default=None, description="YYYY-MM-DD; defaults to today")
    mood: Mood | None = Field(default=None, description="Detected mood level")
    tags: list[str] | None = Field(default=None, description="1-3 lowercase category tags")


class QueryEntriesInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    days: int | None = Field(default=None, ge=1, le=QUERY_MAX_DAYS, description="Look back N days")
    search: str | None = Field(default=None, description="Case-insensitive text search in entry content")
    tag: str | None = Field(default=None, description="Only entries carrying this exact tag")
    limit: int = Field(default=QUERY_DEFAULT_LIMIT, ge=1, le=QUERY_MAX_LIMIT, description="Max results, default 10")
    include_content: bool = Field(default=False, description="Include full entry content")


class AnalyzeJournalInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    period: Literal["week", "month", "all"] = Field(default="week", description="Analysis period")


@dataclass(frozen=True)
class _ToolSpec:
    name: ToolName
    title: str
    description: str
    input_model: type[BaseModel]

    def definition(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": self.input_model.model_json_schema(),
            },
        }


TOOL_SPECS: dict[ToolName, _ToolSpec] = {
    ToolName.SAVE_ENTRY: _ToolSpec(
        name=ToolName.SAVE_ENTRY,
        title="Saving entry",
        description=(
            "Create or update a journal entry. Omit entry_id to create a new entry dated today "
            "(or entry_date); pass entry_id to update that entry. Always set a mood."
        ),
        input_model=SaveEntryInput,
    ),
    ToolName.QUERY_ENTRIES: _ToolSpec(
        name=ToolName.QUERY_ENTRIES,
        title="Searching entries",
        description=(
            "Search and filter journal entries by lookback window in days, text, or tag. Filters "
            "combine with AND. Returns summaries unless include_content is true, newest first."
        ),
        input_model=QueryEntriesInput,
    ),
    ToolName.ANALYZE_JOURNAL: _ToolSpec(
        name=ToolName.ANALYZE_JOURNAL,
        title="Analyzing journal",
        description=(
            "Get journaling stats for a period: entry count, current streak, average entry "
            "length, mood distribution, and tags used."
        ),
        input_model=AnalyzeJournalInput,
    ),
}


def _round_half_up(numerator: int, denominator: int) -> int:
    return (2 * numerator + denominator) // (2 * denominator)


def _entry_row(entry: JournalEntry, *, include_content: bool) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": entry.id,
        "summary": entry.summary,
        "entry_date": format_date(entry.entry_date),
        "mood": entry.mood.value if entry.mood else None,
        "tags": list(entry.tags),
    }
    if include_content:
        row["content"] = entry.content
    return row


class JournalToolbox(ToolRunner):
    """Journal tools bound to one owner for the duration of a chat turn."""

    def __init__(self, *, entry_service: EntryServiceProtocol, owner_id: str, clock: Clock) -> None:
        self._entry_service = entry_service
        self._owner_id = owner_id
        self._clock = clock

    def definitions(self) -> list[dict[str, Any]]:
        return [spec.definition() for spec in TOOL_SPECS.values()]

    def title_for(self, tool_name: str) -> str:
        try:
            return TOOL_SPECS[ToolName(tool_name)].title
        except ValueError:
            return tool_name

    async def run(self, call: ToolCallRequest) -> ToolOutcome:
        try:
            name = ToolName(call.name)
        except ValueError:
            logger.info("unknown tool requested", extra={"tool_name": call.name})
            return ToolOutcome(call=call, result={"success": False, "error": f"unknown tool: {call.name}"})

        if call.parse_error is not None:
            logger.info("tool arguments could not be parsed", extra={"tool_name": name.value})
            return ToolOutcome(call=call, result={"success": False, "error": INVALID_INPUT_ERROR})

        try:
            payload = TOOL_SPECS[name].input_model.model_validate(call.args)
        except ValidationError as exc:
            logger.info("tool input rejected", extra={"tool_name": name.value, "error_count": exc.error_count()})
            details = [f"{'.'.join(str(loc) for loc in error['loc']) or 'input'}: {error['msg']}" for error in exc.errors()]
            return ToolOutcome(call=call, result={"success": False, "error": INVALID_INPUT_ERROR, "details": details})

        if not self._owner_id:
            return ToolOutcome(call=call, result={"success": False, "error": "Unauthorized"})

        logger.debug("journal tool input", extra={"tool_name": name.value, "tool_input": payload.model_dump(mode="json")})
        started = time.perf_counter()
        try:
            result = await self._dispatch(name, payload)
        except Exception as exc:
            logger.exception("journal tool failed", extra={"tool_name": name.value})
            result = {"success": False, "error": str(exc) or exc.__class__.__name__}

        logger.debug(
            "journal tool output",
            extra={
                "tool_name": name.value,
                "success": bool(result.get("success")),
                "duration_ms": round((time.perf_counter() - started) * 1000, 1),
            },
        )
        return ToolOutcome(call=call, result=result)

    async def _dispatch(self, name: ToolName, payload: BaseModel) -> dict[str, Any]:
        match name:
            case ToolName.SAVE_ENTRY:
                assert isinstance(payload, SaveEntryInput)
                return await self._save_entry(payload)
            case ToolName.QUERY_ENTRIES:
                assert isinstance(payload, QueryEntriesInput)
                return await self._query_entries(payload)
            case ToolName.ANALYZE_JOURNAL:
                assert isinstance(payload, AnalyzeJournalInput)
                return await self._analyze_journal(payload)
            case _:
                assert_never(name)

    async def _save_entry(self, payload: SaveEntryInput) -> dict[str, Any]:
        if payload.entry_id is not None:
            supplied = payload.model_dump(exclude={"entry_id"}, exclude_none=True)
            entry = await self._entry_service.update_entry(
                self._owner_id,
                str(payload.entry_id),
                EntryUpdate.model_validate(supplied),
            )
            if entry is None:
                return {"success": False, "error": "entry not found"}
            return {"success": True, "entry_id": entry.id, "updated": True}

        entry = await self._entry_service.create_entry(
            self._owner_id,
            EntryCreate(
                content=payload.content,
                summary=payload.summary,
                entry_date=payload.entry_date or self._clock(),
                mood=payload.mood,
                tags=payload.tags or [],
            ),
        )
        return {"success": True, "entry_id": entry.id, "created": True}

    async def _query_entries(self, payload: QueryEntriesInput) -> dict[str, Any]:
        filters = EntryFilters(
            since=days_ago(payload.days, reference=self._clock()) if payload.days else None,
            search=payload.search or None,
            tag=payload.tag or None,
            limit=payload.limit,
        )
        entries = await self._entry_service.query_entries(self._owner_id, filters)
        rows = [_entry_row(entry, include_content=payload.include_content) for entry in entries]
        return {"success": True, "entries": rows, "count": len(rows)}

    async def _analyze_journal(self, payload: AnalyzeJournalInput) -> dict[str, Any]:
        reference = self._clock()
        entries = await self._entry_service.query_entries(
            self._owner_id,
            EntryFilters(since=days_ago(PERIOD_DAYS[payload.period], reference=reference)),
        )

        mood_distribution = {mood.value: 0 for mood in Mood}
        unique_tags: dict[str, None] = {}
        for entry in entries:
            if entry.mood is not None:
                mood_distribution[entry.mood.value] += 1
            unique_tags.update(dict.fromkeys(entry.tags))

        total_chars = sum(len(entry.content) for entry in entries)
        return {
            "success": True,
            "total_entries": len(entries),
            "streak_days": compute_streak({entry.entry_date for entry in entries}, reference=reference),
            "avg_entry_length": _round_half_up(total_chars, len(entries)) if entries else 0,
            "mood_distribution": mood_distribution,
            "unique_tags": list(unique_tags),
            "period": payload.period,
        }
