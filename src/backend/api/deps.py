"""
Shared dependencies for API endpoints.

Includes:
- Construction of services with their repositories and collaborators
- Session token authentication
"""

from typing import Annotated, Optional

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import Settings, get_settings
from core.exceptions import UnauthorizedError
from core.security import PasswordHasher, TokenIssuer
from models.cosmos_documents import UserDocument
from repositories.provider import (
    CommentRepositoryProtocol,
    CommunityRepositoryProtocol,
    OTPRepositoryProtocol,
    PostRepositoryProtocol,
    RevokedTokenRepositoryProtocol,
    UserRepositoryProtocol,
    VoteRepositoryProtocol,
    get_comment_repository,
    get_community_repository,
    get_otp_repository,
    get_post_repository,
    get_revoked_token_repository,
    get_user_repository,
    get_vote_repository,
)
from services.authorization import AuthorizationService
from services.content_service import ContentService
from services.email_service import EmailService
from services.identity_service import IdentityService
from services.media_service import MediaService
from services.membership_service import MembershipService
from services.vote_service import VoteReconciliationEngine

logger = structlog.get_logger(__name__)

# Security scheme; missing credentials are reported by get_current_user
security = HTTPBearer(auto_error=False)

# Long-lived collaborators, created on first use
_email_service: Optional[EmailService] = None
_media_service: Optional[MediaService] = None


# =============================================================================
# Collaborators
# =============================================================================


def get_token_issuer(settings: Annotated[Settings, Depends(get_settings)]) -> TokenIssuer:
    return TokenIssuer.from_settings(settings)


def get_password_hasher(settings: Annotated[Settings, Depends(get_settings)]) -> PasswordHasher:
    return PasswordHasher(rounds=settings.BCRYPT_ROUNDS)


async def get_email_service(settings: Annotated[Settings, Depends(get_settings)]) -> EmailService:
    """Dependency for getting email service."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService(settings)
    await _email_service.initialize()
    return _email_service


def get_media_service(settings: Annotated[Settings, Depends(get_settings)]) -> MediaService:
    global _media_service
    if _media_service is None:
        _media_service = MediaService(settings)
    return _media_service


# =============================================================================
# Services
# =============================================================================


def get_authorization_service(
    communities: Annotated[CommunityRepositoryProtocol, Depends(get_community_repository)],
    posts: Annotated[PostRepositoryProtocol, Depends(get_post_repository)],
    comments: Annotated[CommentRepositoryProtocol, Depends(get_comment_repository)],
) -> AuthorizationService:
    return AuthorizationService(communities, posts, comments)


def get_content_service(
    communities: Annotated[CommunityRepositoryProtocol, Depends(get_community_repository)],
    posts: Annotated[PostRepositoryProtocol, Depends(get_post_repository)],
    comments: Annotated[CommentRepositoryProtocol, Depends(get_comment_repository)],
    votes: Annotated[VoteRepositoryProtocol, Depends(get_vote_repository)],
    authz: Annotated[AuthorizationService, Depends(get_authorization_service)],
) -> ContentService:
    return ContentService(communities, posts, comments, votes, authz)


def get_membership_service(
    communities: Annotated[CommunityRepositoryProtocol, Depends(get_community_repository)],
    authz: Annotated[AuthorizationService, Depends(get_authorization_service)],
    content: Annotated[ContentService, Depends(get_content_service)],
) -> MembershipService:
    return MembershipService(communities, authz, content)


def get_vote_engine(
    votes: Annotated[VoteRepositoryProtocol, Depends(get_vote_repository)],
    posts: Annotated[PostRepositoryProtocol, Depends(get_post_repository)],
    comments: Annotated[CommentRepositoryProtocol, Depends(get_comment_repository)],
    users: Annotated[UserRepositoryProtocol, Depends(get_user_repository)],
    authz: Annotated[AuthorizationService, Depends(get_authorization_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> VoteReconciliationEngine:
    return VoteReconciliationEngine(
        votes,
        posts,
        comments,
        users,
        authz,
        max_attempts=settings.COSMOS_MAX_UPDATE_ATTEMPTS,
    )


def get_identity_service(
    users: Annotated[UserRepositoryProtocol, Depends(get_user_repository)],
    otps: Annotated[OTPRepositoryProtocol, Depends(get_otp_repository)],
    revoked_tokens: Annotated[RevokedTokenRepositoryProtocol, Depends(get_revoked_token_repository)],
    hasher: Annotated[PasswordHasher, Depends(get_password_hasher)],
    tokens: Annotated[TokenIssuer, Depends(get_token_issuer)],
    email: Annotated[EmailService, Depends(get_email_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> IdentityService:
    return IdentityService(users, otps, revoked_tokens, hasher, tokens, email, settings)


# =============================================================================
# User Authentication (session token)
# =============================================================================


def get_bearer_token(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> str:
    """Extract the raw bearer token from the Authorization header."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("Not authenticated", code="not_authenticated")
    return credentials.credentials


async def get_current_user(
    token: Annotated[str, Depends(get_bearer_token)],
    identity: Annotated[IdentityService, Depends(get_identity_service)],
) -> UserDocument:
    """
    Resolve the current user from the session token.

    Also checks if the token has been revoked (user logged out).

    Raises:
        UnauthorizedError: If token is invalid, revoked, or user not found.
    """
    try:
        return await identity.authenticate(token)
    except UnauthorizedError as e:
        logger.warning("authentication_failed", code=e.code)
        raise
