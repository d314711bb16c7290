"""
Authorization checks.

Resolves the role facts (owner, admin, member, author) that every other
service relies on. Role queries are answered from the community document
itself; callers never scan id lists on their own.
"""

from dataclasses import dataclass
from typing import Optional, Union

import structlog

from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from models.cosmos_documents import (
    CommentDocument,
    CommunityDocument,
    PostDocument,
    TargetType,
)
from repositories.provider import (
    CommentRepositoryProtocol,
    CommunityRepositoryProtocol,
    PostRepositoryProtocol,
)

logger = structlog.get_logger(__name__)


@dataclass
class ResolvedTarget:
    """A votable target together with the post and community that own it."""

    target_type: TargetType
    target: Union[PostDocument, CommentDocument]
    post: PostDocument
    community: CommunityDocument

    @property
    def author_id(self) -> str:
        return self.target.author_id


def parse_target_type(value: str) -> TargetType:
    try:
        return TargetType(value)
    except ValueError:
        raise ValidationError(
            f"Invalid target type '{value}'",
            code="invalid_target_type",
        )


class AuthorizationService:
    """Capability queries and guards over communities and their content."""

    def __init__(
        self,
        communities: CommunityRepositoryProtocol,
        posts: PostRepositoryProtocol,
        comments: CommentRepositoryProtocol,
    ):
        self.communities = communities
        self.posts = posts
        self.comments = comments

    # ========================================================================
    # Lookups
    # ========================================================================

    async def require_community(self, community_id: str) -> CommunityDocument:
        community = await self.communities.get_by_id(community_id)
        if community is None:
            raise NotFoundError("Community not found", code="community_not_found")
        return community

    async def require_post(self, post_id: str) -> PostDocument:
        post = await self.posts.get_by_id(post_id)
        if post is None:
            raise NotFoundError("Post not found", code="post_not_found")
        return post

    async def require_comment(self, comment_id: str) -> CommentDocument:
        comment = await self.comments.get_by_id(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found", code="comment_not_found")
        return comment

    async def resolve_target(self, target_id: str, target_type: TargetType) -> ResolvedTarget:
        """
        Load a vote target and walk up to its community.

        A comment resolves to its parent post, and the post to its community.

        Raises:
            NotFoundError: if the target, its post or its community is missing
        """
        if target_type == TargetType.COMMENT:
            comment = await self.require_comment(target_id)
            post = await self.require_post(comment.post_id)
            target: Union[PostDocument, CommentDocument] = comment
        else:
            post = await self.require_post(target_id)
            target = post

        community = await self.require_community(post.community_id)
        return ResolvedTarget(
            target_type=target_type,
            target=target,
            post=post,
            community=community,
        )

    # ========================================================================
    # Capability queries
    # ========================================================================

    async def is_owner(self, user_id: str, community_id: str) -> bool:
        community = await self.communities.get_by_id(community_id)
        return community is not None and community.is_owner(user_id)

    async def is_admin(self, user_id: str, community_id: str) -> bool:
        community = await self.communities.get_by_id(community_id)
        return community is not None and community.is_admin(user_id)

    async def is_member(self, user_id: str, community_id: str) -> bool:
        community = await self.communities.get_by_id(community_id)
        return community is not None and community.is_member(user_id)

    # ========================================================================
    # Guards
    # ========================================================================

    @staticmethod
    def require_member(user_id: str, community: CommunityDocument) -> None:
        if not community.is_member(user_id):
            logger.info("not_a_member", user_id=user_id, community_id=community.id)
            raise ForbiddenError("You are not a member of this community", code="not_a_member")

    @staticmethod
    def require_admin(user_id: str, community: CommunityDocument) -> None:
        if not community.is_admin(user_id):
            logger.info("not_an_admin", user_id=user_id, community_id=community.id)
            raise ForbiddenError("Only community admins can do this", code="not_an_admin")

    @staticmethod
    def require_owner(user_id: str, community: CommunityDocument) -> None:
        if not community.is_owner(user_id):
            logger.info("not_the_owner", user_id=user_id, community_id=community.id)
            raise ForbiddenError("Only the community owner can do this", code="not_the_owner")

    @staticmethod
    def require_author(user_id: str, author_id: str) -> None:
        if user_id != author_id:
            raise ForbiddenError("Only the author can do this", code="not_the_author")

    @staticmethod
    def require_author_or_admin(
        user_id: str,
        author_id: str,
        community: Optional[CommunityDocument],
    ) -> None:
        """Author may always act; otherwise the actor must administer the community."""
        if user_id == author_id:
            return
        if community is not None and community.is_admin(user_id):
            return
        raise ForbiddenError("Only the author or a community admin can do this", code="not_author_or_admin")
