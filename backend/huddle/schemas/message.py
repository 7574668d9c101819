from datetime import datetime

from pydantic import BaseModel, Field

from huddle.schemas.reaction import ReactionResponse
from huddle.schemas.user import UserBrief


class MessageCreate(BaseModel):
    # Blank content is accepted here and dropped by the store
    content: str = Field("", max_length=4000)


class PinToggle(BaseModel):
    is_pinned: bool


class PinToggleResult(BaseModel):
    is_pinned: bool


class MessageResponse(BaseModel):
    id: str
    content: str
    channel_id: str | None = None
    user_id: str | None = None
    parent_message_id: str | None = None
    is_pinned: bool = False
    created_at: datetime
    updated_at: datetime
    user: UserBrief | None = None
    reactions: list[ReactionResponse] = []

    model_config = {"from_attributes": True}
