from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserBrief(BaseModel):
    """Author fields joined onto messages."""

    username: str
    avatar_url: str | None = None

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    id: str
    email: str
    username: str
    avatar_url: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1, max_length=30)


class SignInRequest(BaseModel):
    email: str
    password: str


class ProfileUpdate(BaseModel):
    username: str | None = Field(None, min_length=1, max_length=30)
    avatar_url: str | None = Field(None, max_length=500)

    @field_validator("username")
    @classmethod
    def username_lowercase(cls, v: str | None) -> str | None:
        return v.strip().lower() if v is not None else v


class AuthResponse(BaseModel):
    """Bearer token issued on sign-up or sign-in, with the caller's profile."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse
