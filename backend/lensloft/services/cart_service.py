"""
Cart Service
Authoritative per-user cart with add-or-increment semantics

Mutations of the same (user, product) line are serialized with an
asyncio.Lock so two concurrent add_item calls cannot both miss the existing
row and insert a duplicate line.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Tuple, Union

from lensloft.core.errors import NotFound, StoreError
from lensloft.domain.cart import CartItem
from lensloft.repositories.cart_repository import CartRepository
from lensloft.repositories.product_repository import ProductRepository
from lensloft.services.stock_validator import ensure_can_fulfill

logger = logging.getLogger(__name__)


class LineLocks:
    """
    One asyncio.Lock per (user_id, product_id) in use

    A line's lock is dropped as soon as no coroutine holds or awaits it.
    """

    def __init__(self):
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._users: Dict[Tuple[str, str], int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, user_id: str, product_id: str) -> AsyncIterator[None]:
        key = (str(user_id), str(product_id))
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


# Shared by every CartStore of the process
line_locks = LineLocks()


class CartStore:
    """
    Service for the persisted cart of a user

    Handles:
    - add-or-increment of product lines
    - quantity updates guarded by stock
    - idempotent removal and clearing
    - degraded (0 on error) counts for the header badge
    """

    def __init__(
        self,
        repository: Optional[CartRepository] = None,
        product_repository: Optional[ProductRepository] = None,
        locks: Optional[LineLocks] = None,
    ):
        self.repository = repository or CartRepository()
        self.product_repository = product_repository or ProductRepository()
        self.locks = locks or line_locks

    async def get_cart(self, user_id: str) -> List[CartItem]:
        """Cart lines joined with their products, oldest first"""
        return await self.repository.find_by_user(user_id)

    async def add_item(self, user_id: str, product_id: str, quantity: int = 1) -> CartItem:
        """
        Add a product, or increase the quantity of its existing line.

        Duplicates never fail and stock is not enforced here.
        """
        async with self.locks.hold(user_id, product_id):
            existing = await self.repository.find_item(user_id, product_id)
            if existing:
                return await self.repository.update_quantity(existing.id, existing.quantity + quantity)
            return await self.repository.insert(user_id, product_id, quantity)

    async def add_item_within_stock(self, user_id: str, product_id: str, quantity: int = 1) -> CartItem:
        """
        add_item for the shop pages: the resulting line quantity must fit the
        product's current stock.

        Raises:
            NotFound: product does not exist
            InsufficientStock: line quantity would exceed stock
        """
        product = await self.product_repository.find_by_id(product_id)
        if product is None:
            raise NotFound(f"product {product_id} not found")

        async with self.locks.hold(user_id, product_id):
            existing = await self.repository.find_item(user_id, product_id)
            current = existing.quantity if existing else 0
            ensure_can_fulfill(product, current + quantity, product_id)
            if existing:
                return await self.repository.update_quantity(existing.id, current + quantity)
            return await self.repository.insert(user_id, product_id, quantity)

    async def merge_item(self, user_id: str, product_id: str, quantity: int) -> CartItem:
        """
        Merge a guest line taking max(local, remote).

        Replaying the same merge leaves the quantity unchanged.
        """
        async with self.locks.hold(user_id, product_id):
            existing = await self.repository.find_item(user_id, product_id)
            if existing:
                if existing.quantity >= quantity:
                    return existing
                return await self.repository.update_quantity(existing.id, quantity)
            return await self.repository.insert(user_id, product_id, quantity)

    async def update_quantity(self, item: CartItem, new_quantity: int) -> Optional[CartItem]:
        """
        Overwrite a line's quantity; 0 or less removes the line.

        The new quantity is checked against the line's product stock before
        the store is touched. A line whose product is gone can only shrink
        to removal.

        Returns:
            The updated line, or None when it was removed
        """
        if new_quantity <= 0:
            await self.remove_item(item.id, item.user_id)
            return None

        ensure_can_fulfill(item.product, new_quantity, item.product_id)

        async with self.locks.hold(item.user_id, item.product_id):
            updated = await self.repository.update_quantity(item.id, new_quantity)
        if updated.product is None:
            updated.product = item.product
        return updated

    async def update_item_quantity(self, user_id: str, item_id: str, new_quantity: int) -> Optional[CartItem]:
        """
        Raises:
            NotFound: the line does not belong to the user
        """
        item = await self.repository.find_by_id(item_id, user_id)
        if item is None:
            raise NotFound(f"cart item {item_id} not found")
        return await self.update_quantity(item, new_quantity)

    async def remove_item(self, item_id: Union[str, CartItem], user_id: Optional[str] = None) -> None:
        """Idempotent: removing a missing line succeeds"""
        if isinstance(item_id, CartItem):
            user_id = user_id or item_id.user_id
            item_id = item_id.id
        try:
            await self.repository.delete(item_id, user_id)
        except NotFound:
            logger.debug(f"cart item {item_id} already gone")

    async def clear(self, user_id: str) -> None:
        try:
            await self.repository.delete_by_user(user_id)
        except NotFound:
            pass

    async def cart_count(self, user_id: str) -> int:
        """Number of cart lines; 0 when the store cannot be reached"""
        try:
            return await self.repository.count(user_id)
        except StoreError as e:
            logger.warning(f"cart count unavailable for user {user_id}: {e}")
            return 0

    async def load_session(self, user_id: str, wishlist) -> Dict[str, list]:
        """
        Initial reads after login: cart and wishlist fetched concurrently

        Args:
            wishlist: WishlistStore of the same user
        """
        cart_items, wishlist_items = await asyncio.gather(
            self.get_cart(user_id),
            wishlist.get_wishlist(user_id),
        )
        return {"cart": cart_items, "wishlist": wishlist_items}
