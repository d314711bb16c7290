"""
Authentication endpoints.

Signup with emailed verification code, login with email and password, and
logout by revoking the presented session token.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from api.deps import get_bearer_token, get_identity_service
from schemas.auth import (
    LoginRequest,
    MessageResponse,
    ResendVerificationRequest,
    TokenResponse,
    VerifyEmailRequest,
)
from schemas.user import UserCreate, UserResponse
from services.identity_service import IdentityService

router = APIRouter()


@router.post("/signup", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    user_data: UserCreate,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> UserResponse:
    """
    Register a new account.

    The account stays unverified until the code mailed to it is confirmed
    through ``/verify``.
    """
    user = await identity.signup(
        email=user_data.email,
        username=user_data.username,
        password=user_data.password,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        country=user_data.country,
        phone_number=user_data.phone_number,
    )
    return UserResponse.model_validate(user)


@router.post("/verify", response_model=UserResponse)
async def verify_email(
    request: VerifyEmailRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> UserResponse:
    """Confirm an email address with its one-time code."""
    user = await identity.verify(request.email, request.code)
    return UserResponse.model_validate(user)


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    request: ResendVerificationRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> MessageResponse:
    await identity.resend_verification(request.email)
    return MessageResponse(message="A new verification code has been sent")


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: LoginRequest,
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> TokenResponse:
    result = await identity.login(credentials.email, credentials.password)
    return TokenResponse(
        access_token=result.access_token,
        token_type=result.token_type,
        user=UserResponse.model_validate(result.user),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    token: Annotated[str, Depends(get_bearer_token)],
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> MessageResponse:
    """Revoke the current session token."""
    await identity.logout(token)
    return MessageResponse(message="Logged out")
