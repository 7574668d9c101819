from datetime import datetime

from pydantic import BaseModel, Field


class ChannelCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=80)
    description: str | None = Field(None, max_length=500)


class ChannelResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    created_by: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
