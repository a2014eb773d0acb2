"""
Pydantic models for user data.

Defines schemas for creating users, authenticating and reading user
information.  Password hashes are never returned through the API.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class Role(str, Enum):
    ADMIN = "ADMIN"
    ORGANIZER = "ORGANIZER"
    VISITOR = "VISITOR"


class UserBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, example="Jane Doe")
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN, example="jane@example.com")
    mobile_number: Optional[str] = Field(None, max_length=15, example="+15550100")


class UserCreate(UserBase):
    """Schema for signing up.

    Only ``ORGANIZER`` and ``VISITOR`` accounts can be created through
    the public sign-up; administrators are seeded from configuration.
    """

    password: str = Field(..., min_length=6, example="strongpassword")
    role: Role = Field(Role.VISITOR, example="VISITOR")


class UserLogin(BaseModel):
    email: str = Field(..., example="jane@example.com")
    password: str = Field(..., example="strongpassword")


class UserUpdate(BaseModel):
    """Profile changes a user may make to their own account.

    All fields are optional; only provided fields will be updated.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    mobile_number: Optional[str] = Field(None, max_length=15)
    password: Optional[str] = Field(None, min_length=6)


class UserStatusUpdate(BaseModel):
    is_active: bool


class UserRead(UserBase):
    """Schema for reading a user from the API."""

    id: int
    role: Role
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
