from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SignUpRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class SignInRequest(BaseModel):
    email: str
    password: str


class UserPublic(BaseModel):
    """User fields safe to return to clients."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AuthPayload(BaseModel):
    token: str
    user: UserPublic
