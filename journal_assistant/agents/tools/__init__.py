from journal_assistant.agents.tools.contracts import ToolCallRequest, ToolOutcome, ToolRunner
from journal_assistant.agents.tools.journal import TOOL_SPECS, JournalToolbox, ToolName

__all__ = [
    "JournalToolbox",
    "TOOL_SPECS",
    "ToolCallRequest",
    "ToolName",
    "ToolOutcome",
    "ToolRunner",
]
