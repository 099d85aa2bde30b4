"""
Wishlist Service
Set-semantics wishlist per user (no quantities)
"""
import logging
from typing import List, Optional

from lensloft.core.errors import NotFound, StoreError
from lensloft.domain.cart import WishlistItem
from lensloft.repositories.wishlist_repository import WishlistRepository

logger = logging.getLogger(__name__)


class WishlistStore:
    """Service for the persisted wishlist of a user"""

    def __init__(self, repository: Optional[WishlistRepository] = None):
        self.repository = repository or WishlistRepository()

    async def get_wishlist(self, user_id: str) -> List[WishlistItem]:
        return await self.repository.find_by_user(user_id)

    async def add_wishlist_item(self, user_id: str, product_id: str) -> WishlistItem:
        """
        Raises:
            DuplicateEntry: the product is already in the wishlist
        """
        return await self.repository.insert(user_id, product_id)

    async def remove_wishlist_item(self, user_id: str, product_id: str) -> None:
        try:
            await self.repository.delete(user_id, product_id)
        except NotFound:
            pass

    async def is_in_wishlist(self, user_id: str, product_id: str) -> bool:
        return await self.repository.exists(user_id, product_id)

    async def clear_wishlist(self, user_id: str) -> None:
        try:
            await self.repository.delete_by_user(user_id)
        except NotFound:
            pass

    async def wishlist_count(self, user_id: str) -> int:
        """Number of wishlist entries; 0 when the store cannot be reached"""
        try:
            return await self.repository.count(user_id)
        except StoreError as e:
            logger.warning(f"wishlist count unavailable for user {user_id}: {e}")
            return 0
