"""
User-related Pydantic schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class UserBase(BaseModel):
    """Base user schema with common fields."""

    email: str
    username: str = Field(..., min_length=1, max_length=50)


class UserCreate(UserBase):
    """Schema for user registration.

    Email format and password strength are checked by the identity service
    so that every problem is reported in a single response.
    """

    password: str
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=32)


class UserResponse(UserBase):
    """Schema for user responses (public-safe)."""

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    country: Optional[str] = None
    phone_number: Optional[str] = None
    profile_pic: Optional[str] = None
    karma: int = 0
    is_verified: bool = False
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
