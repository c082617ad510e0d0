from pydantic import BaseModel, Field


class UnifiedPrincipal(BaseModel):
    user_id: str = Field(..., min_length=1, description="Stable identifier of the authenticated user")
    email: str | None = Field(default=None, description="Email claim, when the token carries one")
    display_name: str | None = Field(default=None, description="User-facing display name, when known")
