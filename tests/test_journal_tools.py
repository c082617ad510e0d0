from __future__ import annotations

from datetime import date

import pytest

from journal_assistant.agents.tools.contracts import ToolCallRequest
from journal_assistant.agents.tools.journal import JournalToolbox, ToolName
from journal_assistant.models.journal import EntryCreate, Mood
from journal_assistant.services.entry_service import EntryService
from tests.conftest import TODAY


class RecordingEntryService(EntryService):
    def __init__(self, inner: EntryService) -> None:
        self._inner = inner
        self.calls: list[str] = []

    async def query_entries(self, owner_id, filters):
        self.calls.append("query_entries")
        return await self._inner.query_entries(owner_id, filters)

    async def create_entry(self, owner_id, fields):
        self.calls.append("create_entry")
        return await self._inner.create_entry(owner_id, fields)

    async def update_entry(self, owner_id, entry_id, changes):
        self.calls.append("update_entry")
        return await self._inner.update_entry(owner_id, entry_id, changes)


class ExplodingEntryService(EntryService):
    def __init__(self) -> None:
        pass

    async def query_entries(self, owner_id, filters):
        raise ConnectionError("connection reset by peer")


def _toolbox(service, owner_id: str = "user-1") -> JournalToolbox:
    return JournalToolbox(entry_service=service, owner_id=owner_id, clock=lambda: TODAY)


async def _run(toolbox: JournalToolbox, name: str, args: dict) -> dict:
    outcome = await toolbox.run(ToolCallRequest(id="call-1", name=name, args=args))
    return outcome.result


def test_definitions_cover_the_closed_tool_set(entry_service: EntryService) -> None:
    toolbox = _toolbox(entry_service)

    definitions = toolbox.definitions()

    assert [definition["function"]["name"] for definition in definitions] == [name.value for name in ToolName]
    query_schema = definitions[1]["function"]["parameters"]
    assert query_schema["properties"]["limit"]["maximum"] == 20
    assert toolbox.title_for("save_entry") == "Saving entry"
    assert toolbox.title_for("nope") == "nope"


@pytest.mark.asyncio
async def test_save_entry_creates_with_today_as_default_date(entry_service: EntryService) -> None:
    result = await _run(
        _toolbox(entry_service),
        "save_entry",
        {"content": "Good day at work", "summary": "Good work day", "mood": "happy", "tags": ["work"]},
    )

    assert result["success"] is True
    assert result["created"] is True
    entry = await entry_service.get_entry("user-1", result["entry_id"])
    assert entry is not None
    assert entry.entry_date == TODAY
    assert entry.mood is Mood.HAPPY


@pytest.mark.asyncio
async def test_save_entry_with_id_updates_instead_of_inserting(entry_service: EntryService) -> None:
    toolbox = _toolbox(entry_service)
    created = await _run(toolbox, "save_entry", {"content": "Good day", "summary": "Good day", "mood": "happy"})

    result = await _run(
        toolbox,
        "save_entry",
        {
            "entry_id": created["entry_id"],
            "content": "Good day, but stressful too",
            "summary": "Good but stressful day",
            "mood": "neutral",
        },
    )

    assert result == {"success": True, "entry_id": created["entry_id"], "updated": True}
    entries = await entry_service.list_entries("user-1")
    assert len(entries) == 1
    assert entries[0].mood is Mood.NEUTRAL
    assert entries[0].entry_date == TODAY


@pytest.mark.asyncio
async def test_save_entry_update_of_foreign_entry_is_not_found(entry_service: EntryService) -> None:
    foreign = await entry_service.create_entry("user-2", EntryCreate(content="not yours"))

    result = await _run(
        _toolbox(entry_service),
        "save_entry",
        {"entry_id": foreign.id, "content": "mine now", "summary": "x"},
    )

    assert result == {"success": False, "error": "entry not found"}
    assert (await entry_service.get_entry("user-2", foreign.id)).content == "not yours"


@pytest.mark.asyncio
async def test_query_limit_above_maximum_is_rejected_before_the_store(entry_service: EntryService) -> None:
    recording = RecordingEntryService(entry_service)

    result = await _run(_toolbox(recording), "query_entries", {"limit": 50})

    assert result["success"] is False
    assert result["error"] == "invalid input"
    assert any(detail.startswith("limit") for detail in result["details"])
    assert recording.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("args", [{"days": 0}, {"days": 91}, {"limit": 0}, {"unknown": True}])
async def test_query_rejects_out_of_range_arguments(entry_service: EntryService, args: dict) -> None:
    result = await _run(_toolbox(entry_service), "query_entries", args)

    assert result["success"] is False


@pytest.mark.asyncio
async def test_query_search_is_case_insensitive_and_omits_content_by_default(entry_service: EntryService) -> None:
    await entry_service.create_entry("user-1", EntryCreate(content="Felt Anxious before the talk", summary="Talk nerves"))
    await entry_service.create_entry("user-1", EntryCreate(content="Calm evening", summary="Calm"))
    await entry_service.create_entry("user-2", EntryCreate(content="anxious too", summary="Other user"))

    result = await _run(_toolbox(entry_service), "query_entries", {"search": "anxious"})

    assert result["count"] == 1
    assert result["entries"][0]["summary"] == "Talk nerves"
    assert "content" not in result["entries"][0]


@pytest.mark.asyncio
async def test_query_search_returns_matches_newest_day_first(entry_service: EntryService) -> None:
    await entry_service.create_entry("user-1", EntryCreate(content="project kickoff", entry_date=date(2026, 3, 10)))
    await entry_service.create_entry("user-1", EntryCreate(content="lazy sunday", entry_date=date(2026, 3, 12)))
    await entry_service.create_entry("user-1", EntryCreate(content="project demo", entry_date=date(2026, 3, 13)))

    result = await _run(
        _toolbox(entry_service),
        "query_entries",
        {"search": "project", "limit": 5, "include_content": True},
    )

    assert result["count"] == 2
    assert [entry["content"] for entry in result["entries"]] == ["project demo", "project kickoff"]


@pytest.mark.asyncio
async def test_query_tag_and_days_filters(entry_service: EntryService) -> None:
    await entry_service.create_entry("user-1", EntryCreate(content="sprint", tags=["work"], entry_date=date(2026, 3, 13)))
    await entry_service.create_entry("user-1", EntryCreate(content="old sprint", tags=["work"], entry_date=date(2026, 2, 1)))
    await entry_service.create_entry("user-1", EntryCreate(content="gym", tags=["health"]))

    result = await _run(
        _toolbox(entry_service),
        "query_entries",
        {"tag": "work", "days": 7, "include_content": True},
    )

    assert [entry["content"] for entry in result["entries"]] == ["sprint"]
    assert result["entries"][0]["entry_date"] == "2026-03-13"


@pytest.mark.asyncio
async def test_analyze_with_no_entries_returns_zeroed_stats(entry_service: EntryService) -> None:
    result = await _run(_toolbox(entry_service), "analyze_journal", {})

    assert result == {
        "success": True,
        "total_entries": 0,
        "streak_days": 0,
        "avg_entry_length": 0,
        "mood_distribution": {"very_sad": 0, "sad": 0, "neutral": 0, "happy": 0, "very_happy": 0},
        "unique_tags": [],
        "period": "week",
    }


@pytest.mark.asyncio
async def test_analyze_computes_stats_for_period(entry_service: EntryService) -> None:
    await entry_service.create_entry("user-1", EntryCreate(content="abc", mood=Mood.HAPPY, tags=["work"]))
    await entry_service.create_entry(
        "user-1",
        EntryCreate(content="abcdef", mood=Mood.SAD, tags=["work", "sleep"], entry_date=date(2026, 3, 13)),
    )
    await entry_service.create_entry("user-1", EntryCreate(content="abcd", entry_date=date(2026, 3, 11)))
    await entry_service.create_entry("user-1", EntryCreate(content="too old", entry_date=date(2026, 2, 1)))

    result = await _run(_toolbox(entry_service), "analyze_journal", {"period": "week"})

    assert result["total_entries"] == 3
    assert result["streak_days"] == 2
    assert result["avg_entry_length"] == 4
    assert result["mood_distribution"]["happy"] == 1
    assert result["mood_distribution"]["sad"] == 1
    assert sorted(result["unique_tags"]) == ["sleep", "work"]


@pytest.mark.asyncio
async def test_analyze_rounds_average_half_up(entry_service: EntryService) -> None:
    await entry_service.create_entry("user-1", EntryCreate(content="ab"))
    await entry_service.create_entry("user-1", EntryCreate(content="abc"))

    result = await _run(_toolbox(entry_service), "analyze_journal", {"period": "all"})

    assert result["avg_entry_length"] == 3


@pytest.mark.asyncio
async def test_executor_exceptions_become_tool_results() -> None:
    result = await _run(_toolbox(ExplodingEntryService()), "query_entries", {})

    assert result == {"success": False, "error": "connection reset by peer"}


@pytest.mark.asyncio
async def test_unknown_tool_and_unparsed_arguments_are_data(entry_service: EntryService) -> None:
    toolbox = _toolbox(entry_service)

    unknown = await toolbox.run(ToolCallRequest(id="c1", name="delete_everything"))
    unparsed = await toolbox.run(ToolCallRequest(id="c2", name="query_entries", parse_error="bad json"))

    assert unknown.ok is False and "unknown tool" in (unknown.error or "")
    assert unparsed.result == {"success": False, "error": "invalid input"}


@pytest.mark.asyncio
async def test_missing_owner_is_unauthorized(entry_service: EntryService) -> None:
    result = await _run(_toolbox(entry_service, owner_id=""), "analyze_journal", {})

    assert result == {"success": False, "error": "Unauthorized"}
