"""Item service for owner-scoped CRUD."""

import logging
import secrets
import uuid

from metered_api.errors.exceptions import ItemNotFoundError
from metered_api.models.item import Item
from metered_api.models.user import UserRef
from metered_api.storage.base import ItemStore
from metered_api.storage.manager import get_storage

logger = logging.getLogger(__name__)


def generate_tx_hash() -> str:
    """Random 32-character hex transaction hash."""
    return secrets.token_hex(16)


class ItemService:
    """
    Service for item CRUD operations.

    Every lookup and mutation is filtered by the authorized user's id.
    An item owned by someone else is reported exactly like a missing one.
    """

    def __init__(self, store: ItemStore | None = None):
        self._store = store

    @property
    def items(self) -> ItemStore:
        """Get item store."""
        if self._store is None:
            self._store = get_storage().items
        return self._store

    async def create_item(self, user: UserRef, value: float, tx_hash: str | None = None) -> Item:
        """Create an item owned by ``user``."""
        item = Item(
            id=f"item_{uuid.uuid4().hex[:12]}",
            user_id=user.id,
            value=value,
            tx_hash=tx_hash or generate_tx_hash(),
        )
        await self.items.create(item)
        logger.info("Created item %s for user %s", item.id, user.id)
        return item

    async def list_items(
        self,
        user: UserRef,
        page: int = 1,
        per_page: int = 20,
    ) -> tuple[list[Item], int]:
        """
        List items for a user, newest first.

        Returns:
            Tuple of (items, total_count)
        """
        offset = (page - 1) * per_page
        return await self.items.list_for_user(user.id, offset=offset, limit=per_page)

    async def get_item(self, item_id: str, user: UserRef) -> Item:
        """
        Get an item by ID.

        Raises:
            ItemNotFoundError: If the item doesn't exist or belongs to another user
        """
        item = await self.items.get(item_id)
        if item is None or item.user_id != user.id:
            raise ItemNotFoundError(item_id)
        return item

    async def get_item_by_tx_hash(self, tx_hash: str, user: UserRef) -> Item:
        """Get the caller's item with the given transaction hash."""
        item = await self.items.find_by_tx_hash(user.id, tx_hash)
        if item is None:
            raise ItemNotFoundError(tx_hash)
        return item

    async def update_item(
        self,
        item_id: str,
        user: UserRef,
        value: float | None = None,
        tx_hash: str | None = None,
    ) -> Item:
        """Update value and/or tx hash of an owned item."""
        item = await self.items.update_owned(item_id, user.id, value=value, tx_hash=tx_hash)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    async def delete_item(self, item_id: str, user: UserRef) -> None:
        """Delete an owned item."""
        if not await self.items.delete_owned(item_id, user.id):
            raise ItemNotFoundError(item_id)
        logger.info("Deleted item %s for user %s", item_id, user.id)


# Singleton instance
_item_service: ItemService | None = None


def get_item_service() -> ItemService:
    """Get item service instance."""
    global _item_service
    if _item_service is None:
        _item_service = ItemService()
    return _item_service


def reset_item_service() -> None:
    """Reset item service (for testing)."""
    global _item_service
    _item_service = None
