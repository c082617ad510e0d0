from datetime import UTC, date, datetime

from journal_assistant.agents.prompts import (
    JOURNAL_PRESETS,
    JOURNAL_SYSTEM_PROMPT,
    NO_RECENT_ENTRIES,
    build_system_prompt,
    render_context_block,
)
from journal_assistant.models.journal import JournalEntry, Mood

STAMP = datetime(2026, 3, 14, 9, 0, tzinfo=UTC)


def _entry(day: date, summary: str | None, mood: Mood | None) -> JournalEntry:
    return JournalEntry(
        id="e",
        owner_id="u",
        content="body",
        summary=summary,
        entry_date=day,
        mood=mood,
        created_at=STAMP,
        updated_at=STAMP,
    )


def test_context_block_lists_entries_with_mood_fallback() -> None:
    block = render_context_block(
        date(2026, 3, 14),
        [_entry(date(2026, 3, 13), "Gym day", Mood.HAPPY), _entry(date(2026, 3, 12), "Quiet", None)],
    )

    assert block == (
        "[Context: Today is 2026-03-14]\n"
        "Recent entries:\n"
        "• 2026-03-13: Gym day (happy)\n"
        "• 2026-03-12: Quiet (no mood)"
    )


def test_context_block_without_entries() -> None:
    block = render_context_block(date(2026, 3, 14), [])

    assert block.endswith(f"Recent entries:\n{NO_RECENT_ENTRIES}")


def test_default_prompt_is_used_when_none_is_configured() -> None:
    prompt = build_system_prompt(None, today=date(2026, 3, 14), recent_entries=[])

    assert prompt.startswith(JOURNAL_SYSTEM_PROMPT)
    assert "one entry per day" in prompt


def test_presets_have_unique_ids() -> None:
    ids = [preset.id for preset in JOURNAL_PRESETS]

    assert len(ids) == len(set(ids)) == 4
