"""Cosmos DB repository for revoked session tokens."""

import logging

from azure.cosmos.exceptions import CosmosResourceExistsError

from db.cosmos_session import REVOKED_TOKENS_CONTAINER, create_item, read_item
from models.cosmos_documents import RevokedTokenDocument

logger = logging.getLogger(__name__)


class CosmosRevokedTokenRepository:
    """Tracks token ids (jti) that must no longer authenticate."""

    async def revoke(self, jti: str, user_id: str) -> None:
        """Mark a token id as revoked; revoking twice is a no-op."""
        record = RevokedTokenDocument(id=jti, user_id=user_id)
        try:
            await create_item(REVOKED_TOKENS_CONTAINER, record.model_dump(mode="json"))
        except CosmosResourceExistsError:
            return
        logger.debug(f"Revoked session token for user {user_id}")

    async def is_revoked(self, jti: str) -> bool:
        return await read_item(REVOKED_TOKENS_CONTAINER, jti, partition_key=jti) is not None
