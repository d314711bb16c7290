"""
Cosmos DB Vote repository.

Handles vote storage with one document per (user, target).
Partition key is target_id for efficient per-target queries, and the
document id is derived from the pair so the store itself rejects a second
vote by the same user on the same target.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)

from core.exceptions import ConcurrencyError
from core.security import generate_vote_id
from db.cosmos_session import (
    VOTES_CONTAINER,
    create_item,
    delete_item,
    delete_item_if_exists,
    query_items,
    read_item,
    replace_item,
)
from models.cosmos_documents import TargetType, VoteDocument, VoteType

logger = logging.getLogger(__name__)


class CosmosVoteRepository:
    """
    Repository for vote operations using Cosmos DB.

    Every write is conditional: ``create`` fails if the vote appeared in the
    meantime, ``change_type`` and ``delete`` fail if it changed since it was
    read. Each such race surfaces as ``ConcurrencyError`` so the caller can
    re-read and retry.
    """

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def get(self, user_id: str, target_id: str) -> Optional[VoteDocument]:
        """Point read of a user's vote on a target."""
        data = await read_item(
            VOTES_CONTAINER,
            generate_vote_id(user_id, target_id),
            partition_key=target_id,
        )
        if data is None:
            return None
        return VoteDocument.model_validate(data)

    async def list_for_target(self, target_id: str) -> list[VoteDocument]:
        """All votes on a target (single partition)."""
        query = """
            SELECT * FROM c
            WHERE c.target_id = @target_id
            ORDER BY c.created_at ASC
        """
        results = await query_items(
            VOTES_CONTAINER,
            query,
            parameters=[{"name": "@target_id", "value": target_id}],
            partition_key=target_id,
        )
        return [VoteDocument.model_validate(r) for r in results]

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def create(
        self,
        user_id: str,
        target_id: str,
        target_type: TargetType,
        vote_type: VoteType,
    ) -> VoteDocument:
        """
        Record a new vote.

        Raises:
            ConcurrencyError: if the user already has a vote on the target
        """
        vote = VoteDocument(
            id=generate_vote_id(user_id, target_id),
            user_id=user_id,
            target_id=target_id,
            target_type=target_type,
            vote_type=vote_type,
        )
        try:
            data = await create_item(VOTES_CONTAINER, vote.model_dump(mode="json"))
        except CosmosResourceExistsError:
            raise ConcurrencyError("Vote was cast concurrently, please retry")

        logger.debug(f"Created vote on {target_id}")
        return VoteDocument.model_validate(data)

    async def change_type(self, vote: VoteDocument, vote_type: VoteType) -> VoteDocument:
        """
        Flip an existing vote's direction.

        Raises:
            ConcurrencyError: if the vote changed or vanished since it was read
        """
        updated = vote.model_copy(update={"vote_type": vote_type, "updated_at": datetime.now(timezone.utc)})
        try:
            data = await replace_item(VOTES_CONTAINER, updated.model_dump(mode="json"), etag=vote.etag)
        except (CosmosAccessConditionFailedError, CosmosResourceNotFoundError):
            raise ConcurrencyError("Vote was changed concurrently, please retry")
        return VoteDocument.model_validate(data)

    async def delete(self, vote: VoteDocument) -> None:
        """
        Withdraw a vote.

        Raises:
            ConcurrencyError: if the vote changed or vanished since it was read
        """
        try:
            await delete_item(VOTES_CONTAINER, vote.id, partition_key=vote.target_id, etag=vote.etag)
        except (CosmosAccessConditionFailedError, CosmosResourceNotFoundError):
            raise ConcurrencyError("Vote was changed concurrently, please retry")
        logger.debug(f"Deleted vote on {vote.target_id}")

    async def discard(self, user_id: str, target_id: str) -> bool:
        """Unconditionally remove a vote; False if there was none."""
        return await delete_item_if_exists(
            VOTES_CONTAINER,
            generate_vote_id(user_id, target_id),
            partition_key=target_id,
        )

    async def delete_for_target(self, target_id: str) -> int:
        """Remove every vote on a target. Returns how many were deleted."""
        deleted = 0
        for vote in await self.list_for_target(target_id):
            if await delete_item_if_exists(VOTES_CONTAINER, vote.id, partition_key=target_id):
                deleted += 1
        if deleted:
            logger.debug(f"Deleted {deleted} votes on {target_id}")
        return deleted
