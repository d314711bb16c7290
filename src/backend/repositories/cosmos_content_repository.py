"""
Cosmos DB repositories for votable content (posts and comments).

Both keep a net ``vote_count`` that is only moved through
``apply_vote_delta``.
"""

import logging
from typing import Optional

from db.cosmos_session import COMMENTS_CONTAINER, POSTS_CONTAINER, query_items
from models.cosmos_documents import CommentDocument, PostDocument
from repositories.base import CosmosDocumentRepository, DocumentT

logger = logging.getLogger(__name__)


class _VotableRepository(CosmosDocumentRepository[DocumentT]):
    async def apply_vote_delta(self, item_id: str, delta: int) -> Optional[DocumentT]:
        """Add ``delta`` to the target's vote counter; None if it is gone."""

        def apply(document: DocumentT) -> None:
            document.vote_count += delta

        return await self.mutate(item_id, apply)


class CosmosPostRepository(_VotableRepository[PostDocument]):
    """Repository for post operations using Cosmos DB."""

    container_name = POSTS_CONTAINER
    document_type = PostDocument

    async def list_by_community(self, community_id: str) -> list[PostDocument]:
        """All posts pointing at a community, oldest first."""
        query = """
            SELECT * FROM c
            WHERE c.community_id = @community_id
            ORDER BY c.created_at ASC
        """
        results = await query_items(
            POSTS_CONTAINER,
            query,
            parameters=[{"name": "@community_id", "value": community_id}],
        )
        return [self._from_item(r) for r in results]


class CosmosCommentRepository(_VotableRepository[CommentDocument]):
    """Repository for comment operations using Cosmos DB."""

    container_name = COMMENTS_CONTAINER
    document_type = CommentDocument

    async def list_by_post(self, post_id: str) -> list[CommentDocument]:
        """All comments pointing at a post, oldest first."""
        query = """
            SELECT * FROM c
            WHERE c.post_id = @post_id
            ORDER BY c.created_at ASC
        """
        results = await query_items(
            COMMENTS_CONTAINER,
            query,
            parameters=[{"name": "@post_id", "value": post_id}],
        )
        return [self._from_item(r) for r in results]
