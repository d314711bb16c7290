"""
Cosmos DB repository for email verification codes.

Codes are stored hashed, partitioned by user so that "all codes of a user"
is a single-partition query.
"""

import logging
from datetime import datetime, timedelta, timezone

from db.cosmos_session import (
    USER_OTPS_CONTAINER,
    create_item,
    delete_item_if_exists,
    query_items,
)
from models.cosmos_documents import UserOTPDocument

logger = logging.getLogger(__name__)


class CosmosOTPRepository:
    """Repository for verification code records."""

    async def list_for_user(self, user_id: str) -> list[UserOTPDocument]:
        """All stored codes for a user, newest first."""
        query = """
            SELECT * FROM c
            WHERE c.user_id = @user_id
            ORDER BY c.created_at DESC
        """
        results = await query_items(
            USER_OTPS_CONTAINER,
            query,
            parameters=[{"name": "@user_id", "value": user_id}],
            partition_key=user_id,
        )
        return [UserOTPDocument.model_validate(r) for r in results]

    async def create(self, user_id: str, hashed_code: str, ttl_minutes: int) -> UserOTPDocument:
        """Store a freshly hashed code valid for ``ttl_minutes``."""
        now = datetime.now(timezone.utc)
        record = UserOTPDocument(
            user_id=user_id,
            hashed_code=hashed_code,
            created_at=now,
            expires_at=now + timedelta(minutes=ttl_minutes),
        )
        data = await create_item(USER_OTPS_CONTAINER, record.model_dump(mode="json"))
        logger.debug(f"Stored verification code for user {user_id}")
        return UserOTPDocument.model_validate(data)

    async def delete_for_user(self, user_id: str) -> int:
        """Purge every code of a user. Returns how many were deleted."""
        deleted = 0
        for record in await self.list_for_user(user_id):
            if await delete_item_if_exists(USER_OTPS_CONTAINER, record.id, partition_key=user_id):
                deleted += 1
        return deleted
