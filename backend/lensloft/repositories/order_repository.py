"""
Order Repository - Data Access Layer for orders and order items

Supabase exposes no multi-statement transaction, so each method here is one
independent write. OrderPipeline composes them into a saga (header staged as
awaiting_items, items, then header committed) with compensating deletes.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from lensloft.core.errors import NotFound
from lensloft.domain.order import Order, OrderItem
from lensloft.repositories.base import SupabaseRepository, execute, utc_now_iso

ORDER_WITH_ITEMS = "*, order_items(*)"


class OrderRepository(SupabaseRepository):
    """
    Repository for Order data access

    All queries for orders and order_items are centralized here.
    Returns Order domain models with their items.
    """

    table_name = "orders"

    async def insert_order(self, row: Dict[str, Any]) -> Order:
        """
        Insert an order header

        Raises:
            DuplicateEntry: order_number already taken
        """
        table = await self._table()
        res = await execute(table.insert(row), "orders.insert_order")
        return Order(**res.data[0])

    async def insert_items(self, rows: List[Dict[str, Any]]) -> List[OrderItem]:
        """Insert every line item of an order in one request"""
        if not rows:
            return []
        table = await self._table("order_items")
        res = await execute(table.insert(rows), "orders.insert_items")
        return [OrderItem(**row) for row in res.data or []]

    async def update_status(self, order_id: str, status: str) -> Order:
        table = await self._table()
        res = await execute(
            table.update({"status": status, "updated_at": utc_now_iso()}).eq("id", order_id),
            "orders.update_status",
        )
        if not res.data:
            raise NotFound(f"order {order_id} not found")
        return Order(**res.data[0])

    async def delete_items(self, order_id: str) -> None:
        table = await self._table("order_items")
        await execute(table.delete().eq("order_id", order_id), "orders.delete_items")

    async def delete_order(self, order_id: str) -> None:
        table = await self._table()
        await execute(table.delete().eq("id", order_id), "orders.delete_order")

    async def find_by_id(self, order_id: str, user_id: str) -> Optional[Order]:
        """Find order by ID, restricted to its owner, with items"""
        table = await self._table()
        res = await execute(
            table.select(ORDER_WITH_ITEMS).eq("id", order_id).eq("user_id", user_id).limit(1),
            "orders.find_by_id",
        )
        rows = res.data or []
        return Order(**rows[0]) if rows else None

    async def find_by_number(self, order_number: str) -> Optional[Order]:
        table = await self._table()
        res = await execute(
            table.select(ORDER_WITH_ITEMS).eq("order_number", order_number).limit(1),
            "orders.find_by_number",
        )
        rows = res.data or []
        return Order(**rows[0]) if rows else None

    async def find_by_user(
        self,
        user_id: str,
        status: Optional[str] = None,
        exclude_status: Optional[str] = None,
    ) -> List[Order]:
        """Orders of a user, newest first, optionally filtered by status"""
        table = await self._table()
        query = table.select(ORDER_WITH_ITEMS).eq("user_id", user_id)
        if status:
            query = query.eq("status", status)
        if exclude_status:
            query = query.neq("status", exclude_status)
        res = await execute(query.order("created_at", desc=True), "orders.find_by_user")
        return [Order(**row) for row in res.data or []]

    async def find_stale(self, status: str, created_before: datetime) -> List[Dict[str, Any]]:
        """Headers still in `status` that were created before the cutoff"""
        table = await self._table()
        res = await execute(
            table.select("id, order_number, created_at")
            .eq("status", status)
            .lt("created_at", created_before.isoformat()),
            "orders.find_stale",
        )
        return res.data or []

    async def statuses(self, user_id: str) -> List[str]:
        table = await self._table()
        res = await execute(
            table.select("status").eq("user_id", user_id),
            "orders.statuses",
        )
        return [row.get("status") for row in res.data or []]
