from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from huddle.schemas.user import UserResponse


class InviteGenerateRequest(BaseModel):
    userId: str | None = None


class InviteCodeBrief(BaseModel):
    code: str
    expires_at: datetime

    model_config = {"from_attributes": True}


class InviteGenerateResponse(BaseModel):
    inviteCode: InviteCodeBrief


class InviteResponse(BaseModel):
    code: str
    created_by: str | None = None
    expires_at: datetime
    uses_remaining: int
    is_active: bool

    model_config = {"from_attributes": True}


class InviteRedeemRequest(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=1, max_length=30)
    password: str = Field(..., min_length=1)


class InviteRedeemResponse(BaseModel):
    access_token: str
    token_type: str
    user: UserResponse
