"""
Address Repository - Data Access Layer for shipping addresses

The table enforces nothing about defaults; AddressBook keeps at most one
is_default row per user.
"""
from typing import Any, Dict, List, Optional

from lensloft.core.errors import NotFound
from lensloft.domain.address import Address
from lensloft.repositories.base import SupabaseRepository, execute, utc_now_iso


class AddressRepository(SupabaseRepository):
    """Repository for address rows"""

    table_name = "addresses"

    async def find_by_user(self, user_id: str) -> List[Address]:
        """Addresses of a user, default first then newest first"""
        table = await self._table()
        res = await execute(
            table.select("*")
            .eq("user_id", user_id)
            .order("is_default", desc=True)
            .order("created_at", desc=True),
            "addresses.find_by_user",
        )
        return [Address(**row) for row in res.data or []]

    async def find_by_id(self, address_id: str, user_id: str) -> Optional[Address]:
        table = await self._table()
        res = await execute(
            table.select("*").eq("id", address_id).eq("user_id", user_id).limit(1),
            "addresses.find_by_id",
        )
        rows = res.data or []
        return Address(**rows[0]) if rows else None

    async def find_default(self, user_id: str) -> Optional[Address]:
        table = await self._table()
        res = await execute(
            table.select("*").eq("user_id", user_id).eq("is_default", True).limit(1),
            "addresses.find_default",
        )
        rows = res.data or []
        return Address(**rows[0]) if rows else None

    async def count(self, user_id: str) -> int:
        table = await self._table()
        res = await execute(
            table.select("id").eq("user_id", user_id),
            "addresses.count",
        )
        return len(res.data or [])

    async def insert(self, user_id: str, data: Dict[str, Any]) -> Address:
        table = await self._table()
        res = await execute(
            table.insert({**data, "user_id": user_id}),
            "addresses.insert",
        )
        return Address(**res.data[0])

    async def update(self, address_id: str, user_id: str, changes: Dict[str, Any]) -> Address:
        """
        Raises:
            NotFound: no such address for this user
        """
        table = await self._table()
        res = await execute(
            table.update({**changes, "updated_at": utc_now_iso()})
            .eq("id", address_id)
            .eq("user_id", user_id),
            "addresses.update",
        )
        if not res.data:
            raise NotFound(f"address {address_id} not found")
        return Address(**res.data[0])

    async def clear_default(self, user_id: str) -> None:
        """Unset is_default on every address of the user"""
        table = await self._table()
        await execute(
            table.update({"is_default": False}).eq("user_id", user_id).eq("is_default", True),
            "addresses.clear_default",
        )

    async def delete(self, address_id: str, user_id: str) -> None:
        table = await self._table()
        await execute(
            table.delete().eq("id", address_id).eq("user_id", user_id),
            "addresses.delete",
        )
