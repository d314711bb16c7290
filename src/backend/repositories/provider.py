"""
Repository provider for dependency injection.

This module provides a unified interface for accessing repositories
using Cosmos DB as the primary data store. Services only depend on the
protocols below, so tests can hand them in-memory stand-ins.

Usage:
    from repositories.provider import get_user_repository, get_vote_repository, ...

    # In FastAPI dependencies:
    async def some_endpoint(
        user_repo: UserRepositoryProtocol = Depends(get_user_repository),
    ):
        user = await user_repo.get_by_id(user_id)
"""

import logging
from typing import Callable, Optional, Protocol, runtime_checkable

from core.config import get_settings
from models.cosmos_documents import (
    AccessMode,
    CommentDocument,
    CommunityDocument,
    PostDocument,
    TargetType,
    UserDocument,
    UserOTPDocument,
    VoteDocument,
    VoteType,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================


def is_cosmos_enabled() -> bool:
    """Check if Cosmos DB is configured and enabled."""
    # Cosmos DB can be configured via either:
    # 1. AZURE_COSMOS_ENDPOINT (for Azure deployment with RBAC)
    # 2. AZURE_COSMOS_CONNECTION_STRING (for local emulator)
    return get_settings().cosmos_enabled


def _require_cosmos() -> None:
    if not is_cosmos_enabled():
        raise RuntimeError(
            "Cosmos DB is not configured. Set AZURE_COSMOS_ENDPOINT or AZURE_COSMOS_CONNECTION_STRING."
        )


# =============================================================================
# Repository Protocols (Interfaces)
# =============================================================================


@runtime_checkable
class UserRepositoryProtocol(Protocol):
    """Protocol defining user repository operations."""

    async def get_by_id(self, item_id: str) -> Optional[UserDocument]: ...
    async def get_by_email(self, email: str) -> Optional[UserDocument]: ...
    async def create(
        self,
        email: str,
        username: str,
        hashed_password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        country: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> UserDocument: ...
    async def mark_verified(self, user_id: str) -> Optional[UserDocument]: ...
    async def adjust_karma(self, user_id: str, delta: int) -> Optional[UserDocument]: ...
    async def update_last_login(self, user_id: str) -> Optional[UserDocument]: ...


@runtime_checkable
class CommunityRepositoryProtocol(Protocol):
    """Protocol defining community repository operations."""

    async def get_by_id(self, item_id: str) -> Optional[CommunityDocument]: ...
    async def list_all(self, offset: int = 0, limit: int = 50) -> list[CommunityDocument]: ...
    async def list_for_member(self, user_id: str) -> list[CommunityDocument]: ...
    async def create(
        self,
        name: str,
        owner_id: str,
        access: AccessMode = AccessMode.PUBLIC,
        description: Optional[str] = None,
        banner_image: Optional[str] = None,
    ) -> CommunityDocument: ...
    async def mutate(
        self, item_id: str, mutator: Callable[[CommunityDocument], None]
    ) -> Optional[CommunityDocument]: ...
    async def remove(self, community: CommunityDocument) -> bool: ...


@runtime_checkable
class PostRepositoryProtocol(Protocol):
    """Protocol defining post repository operations."""

    async def get_by_id(self, item_id: str) -> Optional[PostDocument]: ...
    async def insert(self, document: PostDocument) -> PostDocument: ...
    async def list_by_community(self, community_id: str) -> list[PostDocument]: ...
    async def mutate(self, item_id: str, mutator: Callable[[PostDocument], None]) -> Optional[PostDocument]: ...
    async def apply_vote_delta(self, item_id: str, delta: int) -> Optional[PostDocument]: ...
    async def delete(self, item_id: str) -> bool: ...


@runtime_checkable
class CommentRepositoryProtocol(Protocol):
    """Protocol defining comment repository operations."""

    async def get_by_id(self, item_id: str) -> Optional[CommentDocument]: ...
    async def insert(self, document: CommentDocument) -> CommentDocument: ...
    async def list_by_post(self, post_id: str) -> list[CommentDocument]: ...
    async def mutate(
        self, item_id: str, mutator: Callable[[CommentDocument], None]
    ) -> Optional[CommentDocument]: ...
    async def apply_vote_delta(self, item_id: str, delta: int) -> Optional[CommentDocument]: ...
    async def delete(self, item_id: str) -> bool: ...


@runtime_checkable
class VoteRepositoryProtocol(Protocol):
    """Protocol defining vote repository operations."""

    async def get(self, user_id: str, target_id: str) -> Optional[VoteDocument]: ...
    async def list_for_target(self, target_id: str) -> list[VoteDocument]: ...
    async def create(
        self, user_id: str, target_id: str, target_type: TargetType, vote_type: VoteType
    ) -> VoteDocument: ...
    async def change_type(self, vote: VoteDocument, vote_type: VoteType) -> VoteDocument: ...
    async def delete(self, vote: VoteDocument) -> None: ...
    async def discard(self, user_id: str, target_id: str) -> bool: ...
    async def delete_for_target(self, target_id: str) -> int: ...


@runtime_checkable
class OTPRepositoryProtocol(Protocol):
    """Protocol defining verification code storage."""

    async def list_for_user(self, user_id: str) -> list[UserOTPDocument]: ...
    async def create(self, user_id: str, hashed_code: str, ttl_minutes: int) -> UserOTPDocument: ...
    async def delete_for_user(self, user_id: str) -> int: ...


@runtime_checkable
class RevokedTokenRepositoryProtocol(Protocol):
    """Protocol defining session token revocation."""

    async def revoke(self, jti: str, user_id: str) -> None: ...
    async def is_revoked(self, jti: str) -> bool: ...


# =============================================================================
# Repository Factory Functions
# =============================================================================


def get_user_repository() -> UserRepositoryProtocol:
    """Get the user repository."""
    _require_cosmos()
    from repositories.cosmos_user_repository import CosmosUserRepository

    return CosmosUserRepository()


def get_community_repository() -> CommunityRepositoryProtocol:
    """Get the community repository."""
    _require_cosmos()
    from repositories.cosmos_community_repository import CosmosCommunityRepository

    return CosmosCommunityRepository()


def get_post_repository() -> PostRepositoryProtocol:
    """Get the post repository."""
    _require_cosmos()
    from repositories.cosmos_content_repository import CosmosPostRepository

    return CosmosPostRepository()


def get_comment_repository() -> CommentRepositoryProtocol:
    """Get the comment repository."""
    _require_cosmos()
    from repositories.cosmos_content_repository import CosmosCommentRepository

    return CosmosCommentRepository()


def get_vote_repository() -> VoteRepositoryProtocol:
    """Get the vote repository."""
    _require_cosmos()
    from repositories.cosmos_vote_repository import CosmosVoteRepository

    return CosmosVoteRepository()


def get_otp_repository() -> OTPRepositoryProtocol:
    """Get the verification code repository."""
    _require_cosmos()
    from repositories.cosmos_otp_repository import CosmosOTPRepository

    return CosmosOTPRepository()


def get_revoked_token_repository() -> RevokedTokenRepositoryProtocol:
    """Get the revoked token repository."""
    _require_cosmos()
    from repositories.cosmos_token_repository import CosmosRevokedTokenRepository

    return CosmosRevokedTokenRepository()
