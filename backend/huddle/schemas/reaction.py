from datetime import datetime

from pydantic import BaseModel, Field


class ReactionToggle(BaseModel):
    emoji: str = Field(..., min_length=1, max_length=50)


class ReactionResponse(BaseModel):
    id: str
    message_id: str
    user_id: str
    emoji: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ReactionToggleResult(BaseModel):
    added: bool
