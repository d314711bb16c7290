"""
Cosmos DB Community repository.

Communities hold their role sets (owner, admins, members, join requests)
inline; every change to them goes through the etag-guarded ``mutate``.
"""

import logging
from typing import Optional

from azure.cosmos.exceptions import CosmosResourceExistsError

from core.exceptions import ConflictError
from db.cosmos_session import (
    COMMUNITIES_CONTAINER,
    COMMUNITY_NAME_LOOKUP_CONTAINER,
    create_item,
    delete_item_if_exists,
    query_items,
)
from models.cosmos_documents import (
    AccessMode,
    CommunityDocument,
    CommunityNameLookupDocument,
)
from repositories.base import CosmosDocumentRepository

logger = logging.getLogger(__name__)


def _name_key(name: str) -> str:
    return name.strip().lower()


class CosmosCommunityRepository(CosmosDocumentRepository[CommunityDocument]):
    """Repository for community operations using Cosmos DB."""

    container_name = COMMUNITIES_CONTAINER
    document_type = CommunityDocument

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def list_all(self, offset: int = 0, limit: int = 50) -> list[CommunityDocument]:
        """List communities, newest first."""
        query = """
            SELECT * FROM c
            ORDER BY c.created_at DESC
            OFFSET @offset LIMIT @limit
        """
        results = await query_items(
            COMMUNITIES_CONTAINER,
            query,
            parameters=[
                {"name": "@offset", "value": offset},
                {"name": "@limit", "value": limit},
            ],
        )
        return [self._from_item(r) for r in results]

    async def list_for_member(self, user_id: str) -> list[CommunityDocument]:
        """Communities the user belongs to (derived from member lists)."""
        query = """
            SELECT * FROM c
            WHERE ARRAY_CONTAINS(c.member_ids, @user_id)
            ORDER BY c.created_at DESC
        """
        results = await query_items(
            COMMUNITIES_CONTAINER,
            query,
            parameters=[{"name": "@user_id", "value": user_id}],
        )
        return [self._from_item(r) for r in results]

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def create(
        self,
        name: str,
        owner_id: str,
        access: AccessMode = AccessMode.PUBLIC,
        description: Optional[str] = None,
        banner_image: Optional[str] = None,
    ) -> CommunityDocument:
        """
        Create a community owned by ``owner_id``.

        The owner starts as the only admin and member.

        Raises:
            ConflictError: if the name is already taken
        """
        community = CommunityDocument(
            name=name.strip(),
            description=description,
            banner_image=banner_image,
            access=access,
            owner_id=owner_id,
            admin_ids=[owner_id],
            member_ids=[owner_id],
            member_count=1,
        )

        key = _name_key(name)
        try:
            await create_item(
                COMMUNITY_NAME_LOOKUP_CONTAINER,
                CommunityNameLookupDocument(id=key, community_id=community.id).model_dump(mode="json"),
            )
        except CosmosResourceExistsError:
            raise ConflictError("Community name already exists", code="community_name_taken")

        community = await self.insert(community)
        logger.info(f"Created community {community.id} owned by {owner_id}")
        return community

    async def remove(self, community: CommunityDocument) -> bool:
        """Delete a community and release its name."""
        deleted = await self.delete(community.id)
        key = _name_key(community.name)
        await delete_item_if_exists(COMMUNITY_NAME_LOOKUP_CONTAINER, key, partition_key=key)
        return deleted
