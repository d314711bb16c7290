"""
Azure Cosmos DB session management for document storage.

Uses async Cosmos DB SDK with DefaultAzureCredential for RBAC authentication.
This module provides a unified client for all Cosmos DB operations, including
the etag-guarded read-modify-write used for every compound single-document
update.
"""

import logging
from typing import Any, Callable

from azure.core import MatchConditions
from azure.cosmos.aio import ContainerProxy, CosmosClient, DatabaseProxy
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosResourceNotFoundError,
)
from azure.identity.aio import DefaultAzureCredential

from core.config import get_settings
from core.exceptions import ConcurrencyError

logger = logging.getLogger(__name__)

# Container names
USERS_CONTAINER = "users"
EMAIL_LOOKUP_CONTAINER = "email-lookup"
USERNAME_LOOKUP_CONTAINER = "username-lookup"
COMMUNITIES_CONTAINER = "communities"
COMMUNITY_NAME_LOOKUP_CONTAINER = "community-name-lookup"
POSTS_CONTAINER = "posts"
COMMENTS_CONTAINER = "comments"
VOTES_CONTAINER = "votes"
USER_OTPS_CONTAINER = "user-otps"
REVOKED_TOKENS_CONTAINER = "revoked-tokens"

# Container name -> partition key path
CONTAINER_PARTITION_KEYS = {
    USERS_CONTAINER: "/id",
    EMAIL_LOOKUP_CONTAINER: "/id",
    USERNAME_LOOKUP_CONTAINER: "/id",
    COMMUNITIES_CONTAINER: "/id",
    COMMUNITY_NAME_LOOKUP_CONTAINER: "/id",
    POSTS_CONTAINER: "/id",
    COMMENTS_CONTAINER: "/id",
    VOTES_CONTAINER: "/target_id",
    USER_OTPS_CONTAINER: "/user_id",
    REVOKED_TOKENS_CONTAINER: "/id",
}

# Global client instances (lazy-initialized)
_cosmos_client: CosmosClient | None = None
_database: DatabaseProxy | None = None
_credential: DefaultAzureCredential | None = None


async def get_cosmos_client() -> CosmosClient:
    """
    Get or create the Cosmos DB client.

    Supports two authentication modes:
    1. Connection string (for local development with Cosmos DB Emulator)
    2. DefaultAzureCredential/RBAC (for Azure deployment)

    The client is singleton and reused across requests.
    """
    global _cosmos_client, _credential

    if _cosmos_client is None:
        settings = get_settings()
        if settings.AZURE_COSMOS_CONNECTION_STRING:
            # Format: AccountEndpoint=https://...;AccountKey=...;
            conn_parts = dict(
                part.split("=", 1) for part in settings.AZURE_COSMOS_CONNECTION_STRING.split(";") if "=" in part
            )
            endpoint = conn_parts.get("AccountEndpoint", "")
            key = conn_parts.get("AccountKey", "")

            if not endpoint or not key:
                raise ValueError("AZURE_COSMOS_CONNECTION_STRING must contain AccountEndpoint and AccountKey")

            _cosmos_client = CosmosClient(
                url=endpoint,
                credential=key,
                connection_verify=not settings.AZURE_COSMOS_DISABLE_SSL,
            )
            logger.info(
                f"Initialized Cosmos DB client for {endpoint} (connection string mode, "
                f"SSL verification: {not settings.AZURE_COSMOS_DISABLE_SSL})"
            )
        else:
            if not settings.AZURE_COSMOS_ENDPOINT:
                raise ValueError("Either AZURE_COSMOS_ENDPOINT or AZURE_COSMOS_CONNECTION_STRING must be set")

            _credential = DefaultAzureCredential()
            _cosmos_client = CosmosClient(
                url=settings.AZURE_COSMOS_ENDPOINT,
                credential=_credential,
            )
            logger.info(f"Initialized Cosmos DB client for {settings.AZURE_COSMOS_ENDPOINT} (RBAC mode)")

    return _cosmos_client


async def get_database() -> DatabaseProxy:
    """Get the Cosmos DB database proxy."""
    global _database

    if _database is None:
        client = await get_cosmos_client()
        database_name = get_settings().AZURE_COSMOS_DATABASE
        _database = client.get_database_client(database_name)
        logger.info(f"Connected to database: {database_name}")

    return _database


async def get_container(container_name: str) -> ContainerProxy:
    """
    Get a container proxy for the specified container.

    Args:
        container_name: Name of the container (e.g., 'users', 'posts')
    """
    database = await get_database()
    return database.get_container_client(container_name)


async def close_cosmos() -> None:
    """
    Close Cosmos DB connections.

    Should be called during application shutdown.
    """
    global _cosmos_client, _database, _credential

    if _cosmos_client is not None:
        await _cosmos_client.close()
        _cosmos_client = None
        _database = None
        logger.info("Closed Cosmos DB client")

    if _credential is not None:
        await _credential.close()
        _credential = None


# ============================================================================
# Utility Functions for Common Operations
# ============================================================================


async def create_item(container_name: str, item: dict[str, Any]) -> dict[str, Any]:
    """
    Create a new item in the specified container.

    Raises ``CosmosResourceExistsError`` if an item with the same id already
    exists in the partition; callers rely on this for uniqueness.
    """
    container = await get_container(container_name)
    return await container.create_item(body=item)


async def read_item(
    container_name: str,
    item_id: str,
    partition_key: str,
) -> dict[str, Any] | None:
    """
    Read an item by ID and partition key.

    Returns:
        Item data (including ``_etag``) or None if not found
    """
    container = await get_container(container_name)
    try:
        return await container.read_item(item=item_id, partition_key=partition_key)
    except CosmosResourceNotFoundError:
        return None


async def replace_item(
    container_name: str,
    item: dict[str, Any],
    etag: str | None = None,
) -> dict[str, Any]:
    """
    Replace an existing item, optionally only if its etag still matches.

    Raises ``CosmosAccessConditionFailedError`` when ``etag`` is stale and
    ``CosmosResourceNotFoundError`` when the item is gone.
    """
    container = await get_container(container_name)
    kwargs: dict[str, Any] = {}
    if etag:
        kwargs["etag"] = etag
        kwargs["match_condition"] = MatchConditions.IfNotModified
    return await container.replace_item(item=item["id"], body=item, **kwargs)


async def delete_item(
    container_name: str,
    item_id: str,
    partition_key: str,
    etag: str | None = None,
) -> None:
    """
    Delete an item by ID and partition key.

    With ``etag`` the delete only succeeds if the item is unchanged.
    """
    container = await get_container(container_name)
    kwargs: dict[str, Any] = {}
    if etag:
        kwargs["etag"] = etag
        kwargs["match_condition"] = MatchConditions.IfNotModified
    await container.delete_item(item=item_id, partition_key=partition_key, **kwargs)


async def delete_item_if_exists(
    container_name: str,
    item_id: str,
    partition_key: str,
) -> bool:
    """Delete an item, treating an already-missing item as success."""
    try:
        await delete_item(container_name, item_id, partition_key)
    except CosmosResourceNotFoundError:
        return False
    return True


async def mutate_item(
    container_name: str,
    item_id: str,
    partition_key: str,
    mutate: Callable[[dict[str, Any]], dict[str, Any]],
    max_attempts: int | None = None,
) -> dict[str, Any] | None:
    """
    Apply ``mutate`` to an item with optimistic concurrency.

    Reads the item, passes it to ``mutate`` and replaces it guarded by the
    etag that was read. If another writer got there first the whole cycle is
    repeated against the fresh copy. Exceptions raised by ``mutate`` propagate
    without anything being written.

    Returns:
        The stored item, or None if the item does not exist

    Raises:
        ConcurrencyError: if every attempt lost the race
    """
    attempts = max_attempts or get_settings().COSMOS_MAX_UPDATE_ATTEMPTS
    container = await get_container(container_name)

    for attempt in range(1, attempts + 1):
        try:
            current = await container.read_item(item=item_id, partition_key=partition_key)
        except CosmosResourceNotFoundError:
            return None

        etag = current.get("_etag")
        updated = mutate(current)

        try:
            return await container.replace_item(
                item=item_id,
                body=updated,
                etag=etag,
                match_condition=MatchConditions.IfNotModified,
            )
        except CosmosAccessConditionFailedError:
            logger.debug(f"Etag conflict on {container_name}/{item_id} (attempt {attempt}/{attempts})")
        except CosmosResourceNotFoundError:
            return None

    logger.warning(f"Gave up updating {container_name}/{item_id} after {attempts} attempts")
    raise ConcurrencyError("The resource was modified concurrently, please retry")


async def query_items(
    container_name: str,
    query: str,
    parameters: list[dict[str, Any]] | None = None,
    partition_key: str | None = None,
    max_items: int | None = None,
) -> list[dict[str, Any]]:
    """
    Query items using SQL-like syntax.

    Example:
        results = await query_items(
            'posts',
            'SELECT * FROM c WHERE c.community_id = @community_id',
            parameters=[{'name': '@community_id', 'value': community_id}]
        )
    """
    container = await get_container(container_name)

    query_kwargs: dict[str, Any] = {
        "query": query,
    }

    if parameters:
        query_kwargs["parameters"] = parameters

    if partition_key:
        query_kwargs["partition_key"] = partition_key

    if max_items:
        query_kwargs["max_item_count"] = max_items

    items: list[dict[str, Any]] = []
    async for item in container.query_items(**query_kwargs):
        items.append(item)
        if max_items and len(items) >= max_items:
            break

    return items
