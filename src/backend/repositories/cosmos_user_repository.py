"""
Cosmos DB User repository.

Handles user CRUD operations using Azure Cosmos DB with secondary indexes
for email and username lookups.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from azure.cosmos.exceptions import CosmosResourceExistsError

from core.exceptions import ConflictError
from db.cosmos_session import (
    EMAIL_LOOKUP_CONTAINER,
    USERNAME_LOOKUP_CONTAINER,
    USERS_CONTAINER,
    create_item,
    delete_item_if_exists,
    read_item,
)
from models.cosmos_documents import (
    EmailLookupDocument,
    UserDocument,
    UsernameLookupDocument,
)
from repositories.base import CosmosDocumentRepository

logger = logging.getLogger(__name__)


class CosmosUserRepository(CosmosDocumentRepository[UserDocument]):
    """Repository for user operations using Cosmos DB."""

    container_name = USERS_CONTAINER
    document_type = UserDocument

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def get_by_email(self, email: str) -> Optional[UserDocument]:
        """
        Get a user by email using secondary index lookup.

        Two-step process:
        1. Look up user_id from email-lookup container
        2. Point read user from users container
        """
        email_lower = email.strip().lower()

        lookup_data = await read_item(EMAIL_LOOKUP_CONTAINER, email_lower, partition_key=email_lower)
        if lookup_data is None:
            return None

        user_id = lookup_data.get("user_id")
        if not user_id:
            return None

        return await self.get_by_id(user_id)

    # ========================================================================
    # Write Operations
    # ========================================================================

    async def create(
        self,
        email: str,
        username: str,
        hashed_password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        country: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> UserDocument:
        """
        Create a new unverified user with secondary indexes.

        The lookup documents are written first so that a duplicate email or
        username is rejected by the store before the user document exists.

        Raises:
            ConflictError: if the email or username is already taken
        """
        user_id = str(uuid4())
        email_lower = email.strip().lower()
        username_lower = username.strip().lower()

        try:
            await create_item(
                EMAIL_LOOKUP_CONTAINER,
                EmailLookupDocument(id=email_lower, user_id=user_id).model_dump(mode="json"),
            )
        except CosmosResourceExistsError:
            raise ConflictError("Email already registered", code="email_taken")

        try:
            await create_item(
                USERNAME_LOOKUP_CONTAINER,
                UsernameLookupDocument(id=username_lower, user_id=user_id).model_dump(mode="json"),
            )
        except CosmosResourceExistsError:
            await delete_item_if_exists(EMAIL_LOOKUP_CONTAINER, email_lower, partition_key=email_lower)
            raise ConflictError("Username already taken", code="username_taken")

        user = UserDocument(
            id=user_id,
            email=email_lower,
            username=username.strip(),
            hashed_password=hashed_password,
            first_name=first_name,
            last_name=last_name,
            country=country,
            phone_number=phone_number,
        )
        user = await self.insert(user)

        logger.info(f"Created user {user_id}")
        return user

    async def mark_verified(self, user_id: str) -> Optional[UserDocument]:
        """Flip the user's verified flag."""

        def verify(user: UserDocument) -> None:
            user.is_verified = True

        return await self.mutate(user_id, verify)

    async def adjust_karma(self, user_id: str, delta: int) -> Optional[UserDocument]:
        """
        Add ``delta`` to the user's karma.

        Returns None if the user no longer exists.
        """

        def apply(user: UserDocument) -> None:
            user.karma += delta

        return await self.mutate(user_id, apply)

    async def update_last_login(self, user_id: str) -> Optional[UserDocument]:
        """Update user's last login timestamp."""

        def touch(user: UserDocument) -> None:
            user.last_login_at = datetime.now(timezone.utc)

        return await self.mutate(user_id, touch)
