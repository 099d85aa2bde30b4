"""
Wishlist Repository - Data Access Layer for wishlist entries

The `wishlist` table carries a unique (user_id, product_id) constraint; a
second insert of the same pair surfaces as DuplicateEntry.
"""
from typing import List

from postgrest.types import CountMethod

from lensloft.domain.cart import WishlistItem
from lensloft.repositories.base import SupabaseRepository, execute


class WishlistRepository(SupabaseRepository):
    """Repository for wishlist rows"""

    table_name = "wishlist"

    async def find_by_user(self, user_id: str) -> List[WishlistItem]:
        """Wishlist entries with product details, newest first"""
        table = await self._table()
        res = await execute(
            table.select("*, products(*)")
            .eq("user_id", user_id)
            .order("created_at", desc=True),
            "wishlist.find_by_user",
        )
        return [WishlistItem(**row) for row in res.data or []]

    async def insert(self, user_id: str, product_id: str) -> WishlistItem:
        """
        Raises:
            DuplicateEntry: the product is already in the user's wishlist
        """
        table = await self._table()
        res = await execute(
            table.insert({"user_id": user_id, "product_id": product_id}),
            "wishlist.insert",
        )
        return WishlistItem(**res.data[0])

    async def exists(self, user_id: str, product_id: str) -> bool:
        table = await self._table()
        res = await execute(
            table.select("id").eq("user_id", user_id).eq("product_id", product_id).limit(1),
            "wishlist.exists",
        )
        return bool(res.data)

    async def delete(self, user_id: str, product_id: str) -> None:
        table = await self._table()
        await execute(
            table.delete().eq("user_id", user_id).eq("product_id", product_id),
            "wishlist.delete",
        )

    async def delete_by_user(self, user_id: str) -> None:
        table = await self._table()
        await execute(table.delete().eq("user_id", user_id), "wishlist.delete_by_user")

    async def count(self, user_id: str) -> int:
        table = await self._table()
        res = await execute(
            table.select("id", count=CountMethod.exact).eq("user_id", user_id).limit(1),
            "wishlist.count",
        )
        return res.count or 0
