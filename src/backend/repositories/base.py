"""
Shared plumbing for repositories over id-partitioned containers.

Every read returns a typed document; every compound update goes through
``mutate`` which applies a callback under optimistic concurrency.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Optional, TypeVar

from db.cosmos_session import (
    create_item,
    delete_item_if_exists,
    mutate_item,
    read_item,
)
from models.cosmos_documents import CosmosDocument

logger = logging.getLogger(__name__)

DocumentT = TypeVar("DocumentT", bound=CosmosDocument)


class CosmosDocumentRepository(Generic[DocumentT]):
    """Point reads, inserts, guarded updates and deletes for one container."""

    container_name: str
    document_type: type[DocumentT]

    def _from_item(self, data: dict[str, Any]) -> DocumentT:
        return self.document_type.model_validate(data)

    async def get_by_id(self, item_id: str) -> Optional[DocumentT]:
        """Direct point read (partition key is the id)."""
        data = await read_item(self.container_name, item_id, partition_key=item_id)
        if data is None:
            return None
        return self._from_item(data)

    async def insert(self, document: DocumentT) -> DocumentT:
        """Store a new document; fails if the id is already taken."""
        data = await create_item(self.container_name, document.model_dump(mode="json"))
        return self._from_item(data)

    async def mutate(
        self,
        item_id: str,
        mutator: Callable[[DocumentT], None],
    ) -> Optional[DocumentT]:
        """
        Apply ``mutator`` to the stored document and save it atomically.

        ``mutator`` edits the document in place and may raise to abort the
        update. It can run more than once if a concurrent writer wins the
        race, so it must only depend on the document it is given.

        Returns:
            The updated document, or None if it does not exist
        """

        def apply(raw: dict[str, Any]) -> dict[str, Any]:
            document = self._from_item(raw)
            mutator(document)
            if hasattr(document, "updated_at"):
                document.updated_at = datetime.now(timezone.utc)
            return document.model_dump(mode="json")

        data = await mutate_item(self.container_name, item_id, item_id, apply)
        if data is None:
            return None
        return self._from_item(data)

    async def delete(self, item_id: str) -> bool:
        """Delete by id; returns False if it was already gone."""
        deleted = await delete_item_if_exists(self.container_name, item_id, partition_key=item_id)
        if deleted:
            logger.debug(f"Deleted {self.container_name}/{item_id}")
        return deleted
