"""Repository modules for database access."""

from repositories.cosmos_community_repository import CosmosCommunityRepository
from repositories.cosmos_content_repository import CosmosCommentRepository, CosmosPostRepository
from repositories.cosmos_otp_repository import CosmosOTPRepository
from repositories.cosmos_token_repository import CosmosRevokedTokenRepository
from repositories.cosmos_user_repository import CosmosUserRepository
from repositories.cosmos_vote_repository import CosmosVoteRepository

__all__ = [
    "CosmosCommentRepository",
    "CosmosCommunityRepository",
    "CosmosOTPRepository",
    "CosmosPostRepository",
    "CosmosRevokedTokenRepository",
    "CosmosUserRepository",
    "CosmosVoteRepository",
]
