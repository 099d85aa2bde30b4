"""
Cart Repository - Data Access Layer for cart lines

Handles all queries against the `cart` table and returns CartItem domain
models joined with their product.

(user_id, product_id) is logically unique; the table has no constraint for
it, CartStore keeps it unique through add-or-increment.
"""
from typing import List, Optional

from postgrest.types import CountMethod

from lensloft.core.errors import NotFound
from lensloft.domain.cart import CartItem
from lensloft.repositories.base import SupabaseRepository, execute, utc_now_iso


class CartRepository(SupabaseRepository):
    """Repository for cart rows"""

    table_name = "cart"

    async def find_by_user(self, user_id: str) -> List[CartItem]:
        """All cart lines of a user with product details, oldest first"""
        table = await self._table()
        res = await execute(
            table.select("*, products(*)").eq("user_id", user_id).order("created_at"),
            "cart.find_by_user",
        )
        return [CartItem(**row) for row in res.data or []]

    async def find_item(self, user_id: str, product_id: str) -> Optional[CartItem]:
        """The cart line for (user, product), if any"""
        table = await self._table()
        res = await execute(
            table.select("*").eq("user_id", user_id).eq("product_id", product_id).limit(1),
            "cart.find_item",
        )
        rows = res.data or []
        return CartItem(**rows[0]) if rows else None

    async def find_by_id(self, item_id: str, user_id: str) -> Optional[CartItem]:
        """A cart line by ID, restricted to its owner, with product details"""
        table = await self._table()
        res = await execute(
            table.select("*, products(*)").eq("id", item_id).eq("user_id", user_id).limit(1),
            "cart.find_by_id",
        )
        rows = res.data or []
        return CartItem(**rows[0]) if rows else None

    async def insert(self, user_id: str, product_id: str, quantity: int) -> CartItem:
        table = await self._table()
        res = await execute(
            table.insert({
                "user_id": user_id,
                "product_id": product_id,
                "quantity": quantity,
            }),
            "cart.insert",
        )
        return CartItem(**res.data[0])

    async def update_quantity(self, item_id: str, quantity: int) -> CartItem:
        """
        Overwrite the quantity of a cart line

        Raises:
            NotFound: the line no longer exists
        """
        table = await self._table()
        res = await execute(
            table.update({"quantity": quantity, "updated_at": utc_now_iso()}).eq("id", item_id),
            "cart.update_quantity",
        )
        if not res.data:
            raise NotFound(f"cart item {item_id} not found")
        return CartItem(**res.data[0])

    async def delete(self, item_id: str, user_id: Optional[str] = None) -> None:
        table = await self._table()
        query = table.delete().eq("id", item_id)
        if user_id:
            query = query.eq("user_id", user_id)
        await execute(query, "cart.delete")

    async def delete_by_user(self, user_id: str) -> None:
        table = await self._table()
        await execute(table.delete().eq("user_id", user_id), "cart.delete_by_user")

    async def count(self, user_id: str) -> int:
        table = await self._table()
        res = await execute(
            table.select("id", count=CountMethod.exact).eq("user_id", user_id).limit(1),
            "cart.count",
        )
        return res.count or 0
