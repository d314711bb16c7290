"""
Authentication-related Pydantic schemas.

Accounts sign in with email and password once their email address has been
verified with a one-time code.
"""

from typing import Optional

from pydantic import BaseModel, Field

from schemas.user import UserResponse


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    """Session token response."""

    access_token: str
    token_type: str = "bearer"
    user: Optional[UserResponse] = None


class VerifyEmailRequest(BaseModel):
    """Email address plus the code that was mailed to it."""

    email: str
    code: str = Field(..., min_length=1, max_length=12)


class ResendVerificationRequest(BaseModel):
    email: str


class MessageResponse(BaseModel):
    message: str
