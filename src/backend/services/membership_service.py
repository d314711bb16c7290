"""
Community membership manager.

Tracks who owns, administers and belongs to a community and handles join
requests for private communities. Every role change is a guarded
read-modify-write on the community document: the preconditions are checked
inside the mutator against the freshest copy, so two racing requests can
never both pass a check that only one of them should.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models.cosmos_documents import AccessMode, CommunityDocument
from repositories.provider import CommunityRepositoryProtocol
from services.authorization import AuthorizationService
from services.content_service import ContentService

logger = structlog.get_logger(__name__)


@dataclass
class JoinResult:
    """Outcome of a join attempt: ``joined`` or ``requested``."""

    status: str
    community: CommunityDocument


class MembershipService:
    """Create communities and manage their member, admin and request sets."""

    def __init__(
        self,
        communities: CommunityRepositoryProtocol,
        authz: AuthorizationService,
        content: ContentService,
    ):
        self.communities = communities
        self.authz = authz
        self.content = content

    async def _mutate(self, community_id: str, mutator) -> CommunityDocument:
        updated = await self.communities.mutate(community_id, mutator)
        if updated is None:
            raise NotFoundError("Community not found", code="community_not_found")
        return updated

    # ========================================================================
    # Communities
    # ========================================================================

    async def create_community(
        self,
        user_id: str,
        name: str,
        description: Optional[str] = None,
        access: AccessMode = AccessMode.PUBLIC,
        banner_image: Optional[str] = None,
    ) -> CommunityDocument:
        """Create a community; the creator becomes owner, admin and first member."""
        if not name or not name.strip():
            raise ValidationError("Community name is required", code="name_required")

        community = await self.communities.create(
            name=name,
            owner_id=user_id,
            access=access,
            description=description,
            banner_image=banner_image,
        )
        logger.info("community_created", community_id=community.id, owner_id=user_id)
        return community

    async def list_communities(self, offset: int = 0, limit: int = 50) -> list[CommunityDocument]:
        return await self.communities.list_all(offset=offset, limit=limit)

    async def get_community(self, community_id: str) -> CommunityDocument:
        return await self.authz.require_community(community_id)

    async def list_user_communities(self, user_id: str) -> list[CommunityDocument]:
        """Communities the user is a member of."""
        return await self.communities.list_for_member(user_id)

    # ========================================================================
    # Joining
    # ========================================================================

    async def join(self, user_id: str, community_id: str) -> JoinResult:
        """
        Join a community.

        Public communities admit the user immediately. Private communities
        record a join request that an admin must accept.

        Raises:
            NotFoundError: community missing
            ConflictError: already a member, or already requested
        """

        def apply(community: CommunityDocument) -> None:
            if community.is_member(user_id):
                raise ConflictError("You are already a member of this community", code="already_member")

            if community.access == AccessMode.PUBLIC:
                community.member_ids.append(user_id)
                community.member_count += 1
                return

            if community.has_requested(user_id):
                raise ConflictError("You already requested to join", code="already_requested")
            community.join_request_ids.append(user_id)

        updated = await self._mutate(community_id, apply)
        status = "joined" if updated.is_member(user_id) else "requested"
        logger.info("community_join", community_id=community_id, user_id=user_id, status=status)
        return JoinResult(status=status, community=updated)

    async def accept_join(self, admin_id: str, community_id: str, requested_user_id: str) -> CommunityDocument:
        """
        Admit a pending requester as a member (admin only).

        Raises:
            ForbiddenError: actor is not an admin
            ConflictError: user already a member, or has no pending request
        """
        community = await self.authz.require_community(community_id)
        self.authz.require_admin(admin_id, community)

        def apply(community: CommunityDocument) -> None:
            self.authz.require_admin(admin_id, community)
            if community.is_member(requested_user_id):
                raise ConflictError("User is already a member", code="already_member")
            if not community.has_requested(requested_user_id):
                raise ConflictError("User has not requested to join", code="not_requested")

            community.join_request_ids.remove(requested_user_id)
            community.member_ids.append(requested_user_id)
            community.member_count += 1

        updated = await self._mutate(community_id, apply)
        logger.info(
            "join_request_accepted",
            community_id=community_id,
            admin_id=admin_id,
            user_id=requested_user_id,
        )
        return updated

    async def decline_join(self, admin_id: str, community_id: str, requested_user_id: str) -> CommunityDocument:
        """Drop a pending join request without admitting the user (admin only)."""
        community = await self.authz.require_community(community_id)
        self.authz.require_admin(admin_id, community)

        def apply(community: CommunityDocument) -> None:
            self.authz.require_admin(admin_id, community)
            if not community.has_requested(requested_user_id):
                raise ConflictError("User has not requested to join", code="not_requested")
            community.join_request_ids.remove(requested_user_id)

        updated = await self._mutate(community_id, apply)
        logger.info(
            "join_request_declined",
            community_id=community_id,
            admin_id=admin_id,
            user_id=requested_user_id,
        )
        return updated

    async def remove_member(self, admin_id: str, community_id: str, target_user_id: str) -> CommunityDocument:
        """
        Remove a member from a community (admin only).

        Admins cannot remove themselves and nobody can remove the owner. A
        removed admin also loses the admin role.
        """
        if target_user_id == admin_id:
            raise ValidationError("You cannot remove yourself", code="cannot_remove_self")

        community = await self.authz.require_community(community_id)
        self.authz.require_admin(admin_id, community)

        def apply(community: CommunityDocument) -> None:
            self.authz.require_admin(admin_id, community)
            if community.is_owner(target_user_id):
                raise ForbiddenError("The community owner cannot be removed", code="cannot_remove_owner")
            if not community.is_member(target_user_id):
                raise NotFoundError("User is not a member of this community", code="member_not_found")

            community.member_ids.remove(target_user_id)
            community.member_count -= 1
            if target_user_id in community.admin_ids:
                community.admin_ids.remove(target_user_id)

        updated = await self._mutate(community_id, apply)
        logger.info(
            "member_removed",
            community_id=community_id,
            admin_id=admin_id,
            user_id=target_user_id,
        )
        return updated

    # ========================================================================
    # Deletion
    # ========================================================================

    async def delete_community(self, owner_id: str, community_id: str) -> None:
        """
        Delete a community and everything that only exists inside it (owner only).

        Posts are discovered both from the community's post list and by their
        community pointer, then each is cascaded leaf-first before the
        community document itself goes. Every step tolerates documents that
        are already gone, so an interrupted delete can simply be re-issued.
        """
        community = await self.authz.require_community(community_id)
        self.authz.require_owner(owner_id, community)

        post_ids = list(community.post_ids)
        for post in await self.content.posts.list_by_community(community_id):
            if post.id not in post_ids:
                post_ids.append(post.id)

        for post_id in post_ids:
            await self.content.purge_post(post_id, detach=False)

        await self.communities.remove(community)

        # Posts attached while the cascade ran
        late_posts = await self.content.posts.list_by_community(community_id)
        for post in late_posts:
            await self.content.purge_post(post.id, detach=False)

        logger.info(
            "community_deleted",
            community_id=community_id,
            owner_id=owner_id,
            posts_deleted=len(post_ids) + len(late_posts),
        )

    # ========================================================================
    # Capability queries
    # ========================================================================

    async def is_owner(self, user_id: str, community_id: str) -> bool:
        return await self.authz.is_owner(user_id, community_id)

    async def is_admin(self, user_id: str, community_id: str) -> bool:
        return await self.authz.is_admin(user_id, community_id)

    async def is_member(self, user_id: str, community_id: str) -> bool:
        return await self.authz.is_member(user_id, community_id)
