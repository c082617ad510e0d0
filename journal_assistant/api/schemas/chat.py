from pydantic import BaseModel, Field

from journal_assistant.models.chat import ChatMessage


class ChatTurnRequest(BaseModel):
    message: str = Field(..., min_length=1, description="New user message text")
    messages: list[ChatMessage] = Field(
        default_factory=list,
        description="Prior transcript of the conversation, oldest turn first",
    )


class PromptPresetResponse(BaseModel):
    id: str = Field(..., description="Stable preset identifier")
    label: str = Field(..., description="Short button label")
    message: str = Field(..., description="Message sent when the preset is chosen")
